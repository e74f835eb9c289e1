"""Storage factory for centralized backend creation."""

from typing import Callable, Dict, Type

from ..base import BaseDataClient, BaseSettingsStore


class StorageFactory:
    """Factory for creating data clients and settings stores by backend name."""

    _settings_backends: Dict[str, Callable[[], Type[BaseSettingsStore]]] = {}
    _client_backends: Dict[str, Callable[[], Type[BaseDataClient]]] = {}

    ALLOWED_SETTINGS = {"json", "redis"}
    ALLOWED_CLIENT = {"memory", "postgrest"}

    @classmethod
    def register_settings(cls, name: str, backend_loader: Callable[[], Type[BaseSettingsStore]]) -> None:
        """Register a settings store backend.

        Args:
            name: Backend name (must be in ALLOWED_SETTINGS)
            backend_loader: Function that returns the settings store class

        Raises:
            ValueError: If backend name not in allowed list
        """
        if name not in cls.ALLOWED_SETTINGS:
            raise ValueError(f"Backend {name} not in allowed settings backends: {cls.ALLOWED_SETTINGS}")
        cls._settings_backends[name] = backend_loader

    @classmethod
    def register_client(cls, name: str, backend_loader: Callable[[], Type[BaseDataClient]]) -> None:
        if name not in cls.ALLOWED_CLIENT:
            raise ValueError(f"Backend {name} not in allowed data client backends: {cls.ALLOWED_CLIENT}")
        cls._client_backends[name] = backend_loader

    @classmethod
    def create_settings_store(
        cls,
        backend: str,
        global_config: dict,
        namespace: str = "settings",
        **kwargs
    ) -> BaseSettingsStore:
        """Create a settings store instance.

        Raises:
            ValueError: If backend not registered
        """
        if backend not in cls._settings_backends:
            _register_backends()
            if backend not in cls._settings_backends:
                raise ValueError(
                    f"Unknown settings backend: {backend}. Available: {list(cls._settings_backends.keys())}"
                )

        backend_class = cls._settings_backends[backend]()
        return backend_class(namespace=namespace, global_config=global_config, **kwargs)

    @classmethod
    def create_data_client(cls, backend: str, global_config: dict, **kwargs) -> BaseDataClient:
        """Create a data client instance.

        Raises:
            ValueError: If backend not registered
        """
        if backend not in cls._client_backends:
            _register_backends()
            if backend not in cls._client_backends:
                raise ValueError(
                    f"Unknown data client backend: {backend}. Available: {list(cls._client_backends.keys())}"
                )

        backend_class = cls._client_backends[backend]()
        return backend_class(global_config=global_config, **kwargs)


def _get_json_settings():
    """Lazy loader for JSON file settings."""
    from .settings_json import JsonSettingsStore
    return JsonSettingsStore


def _get_redis_settings():
    """Lazy loader for Redis settings."""
    from .settings_redis import RedisSettingsStore
    return RedisSettingsStore


def _get_memory_client():
    from .client_memory import InMemoryDataClient
    return InMemoryDataClient


def _get_postgrest_client():
    """Lazy loader for the PostgREST client."""
    from .client_postgrest import PostgrestDataClient
    return PostgrestDataClient


def _register_backends():
    """Register built-in backends with lazy loaders. Called when factory is first used."""
    if not StorageFactory._settings_backends:
        StorageFactory.register_settings("json", _get_json_settings)
        StorageFactory.register_settings("redis", _get_redis_settings)

    if not StorageFactory._client_backends:
        StorageFactory.register_client("memory", _get_memory_client)
        StorageFactory.register_client("postgrest", _get_postgrest_client)
