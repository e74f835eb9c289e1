from .backup import BackupManager, BackupOptions, BackupType
from .config import EngineConfig
from .registry import CollectionRegistry

__version__ = "0.1.0"
__author__ = "Asset Dashboard Team"
