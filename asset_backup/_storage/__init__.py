"""Concrete collaborators with lazy loading support."""

from typing import TYPE_CHECKING

from .factory import StorageFactory, _register_backends
from .file_saver import DirectoryFileSaver

if TYPE_CHECKING:
    from .client_memory import InMemoryDataClient
    from .client_postgrest import PostgrestDataClient
    from .settings_json import JsonSettingsStore
    from .settings_redis import RedisSettingsStore


def __getattr__(name):
    """Lazy import backends so optional services are only loaded when used."""
    if name == "InMemoryDataClient":
        from .client_memory import InMemoryDataClient
        return InMemoryDataClient
    elif name == "PostgrestDataClient":
        from .client_postgrest import PostgrestDataClient
        return PostgrestDataClient
    elif name == "JsonSettingsStore":
        from .settings_json import JsonSettingsStore
        return JsonSettingsStore
    elif name == "RedisSettingsStore":
        from .settings_redis import RedisSettingsStore
        return RedisSettingsStore
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "StorageFactory",
    "_register_backends",
    "DirectoryFileSaver",
    "InMemoryDataClient",
    "PostgrestDataClient",
    "JsonSettingsStore",
    "RedisSettingsStore",
]
