"""File-backed settings store."""

import json
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from ..base import BaseSettingsStore
from ..exceptions import ConfigurationError
from .._utils import logger


@dataclass
class JsonSettingsStore(BaseSettingsStore):
    """Settings persisted in one JSON file, one object per namespace."""

    _data: Dict[str, Dict[str, str]] = field(init=False, default_factory=dict)

    def __post_init__(self):
        self._file_name = self.global_config.get("settings_json_path", "./backup_settings.json")
        if os.path.exists(self._file_name):
            try:
                with open(self._file_name, encoding="utf-8") as f:
                    self._data = json.load(f)
            except (OSError, ValueError) as e:
                raise ConfigurationError(f"Unreadable settings file {self._file_name}: {e}") from e
            logger.info(f"Loaded settings namespace {self.namespace} from {self._file_name}")

    @property
    def _namespace_data(self) -> Dict[str, str]:
        return self._data.setdefault(self.namespace, {})

    def _flush(self) -> None:
        directory = os.path.dirname(os.path.abspath(self._file_name))
        os.makedirs(directory, exist_ok=True)
        tmp_name = f"{self._file_name}.tmp"
        with open(tmp_name, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_name, self._file_name)

    async def get(self, key: str) -> Optional[str]:
        return self._namespace_data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._namespace_data[key] = value
        self._flush()

    async def delete(self, key: str) -> None:
        if self._namespace_data.pop(key, None) is not None:
            self._flush()

    async def all_keys(self):
        return list(self._namespace_data.keys())
