import setuptools
from setuptools import find_packages

with open("readme.md", "r") as fh:
    long_description = fh.read()


vars2find = ["__author__", "__version__"]
vars2readme = {}
with open("./asset_backup/__init__.py") as f:
    for line in f.readlines():
        for v in vars2find:
            if line.startswith(v):
                line = line.replace(" ", "").replace('"', "").replace("'", "").strip()
                vars2readme[v] = line.split("=")[1]

core_deps = [
    "pydantic>=2.0",
    "httpx>=0.24",
    "tenacity",
    "redis[hiredis]>=5.0.1",
]

setuptools.setup(
    name="asset-backup",
    version=vars2readme["__version__"],
    author=vars2readme["__author__"],
    description="Backup, validation, restore and retention engine for the asset dashboard data store",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["asset_backup", "asset_backup.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    install_requires=core_deps,
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
)
