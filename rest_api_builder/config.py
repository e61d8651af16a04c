"""Configuration for the REST API builder.

Values come from the defaults below, then an optional JSON config file
and ``REST_API_BUILDER_*`` environment variables, then the runtime
overrides saved in ``<dataDir>/config.json`` by ``PUT /api/config``.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Optional

from .store.document_store import write_json_file

CONFIG_FILE_ENV = "REST_API_BUILDER_CONFIG"
ENV_PREFIX = "REST_API_BUILDER_"
RUNTIME_CONFIG_FILENAME = "config.json"

# Settings that only make sense at startup
IMMUTABLE_AT_RUNTIME = ("data_dir", "path")

_TRUE_VALUES = ("1", "true", "yes", "on")


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return bool(value)


@dataclass
class BuilderConfig:
    """Settings of one documentation instance

    Args:
        name: Project name shown in the UI
        description: Project description
        version: Documented API version
        author: Documentation author
        base_url: Base URL the tester prefixes to endpoint paths
        path: Mount path of the documentation app
        allow_external_edit: Allow edits from non-local hosts
        theme: UI theme
        primary_color: UI accent color
        data_dir: Directory holding ``endpoints/`` and ``sockets/``
    """
    name: str = "API Documentation"
    description: str = "API documentation and testing interface"
    version: str = "1.0.0"
    author: str = "API Team"
    base_url: str = "http://localhost:3000"
    path: str = "/api-docs"
    allow_external_edit: bool = False
    theme: str = "dark"
    primary_color: str = "#6B7280"
    data_dir: str = "./api-docs"

    @property
    def endpoints_dir(self) -> str:
        return os.path.join(os.path.abspath(self.data_dir), "endpoints")

    @property
    def sockets_dir(self) -> str:
        return os.path.join(os.path.abspath(self.data_dir), "sockets")

    @property
    def runtime_config_file(self) -> str:
        return os.path.join(os.path.abspath(self.data_dir), RUNTIME_CONFIG_FILENAME)

    @classmethod
    def _field_names(cls) -> Dict[str, str]:
        """Map of accepted keys (snake and camel case) to field names"""
        names = {}
        for f in fields(cls):
            names[f.name] = f.name
            names[_camel_case(f.name)] = f.name
        return names

    @classmethod
    def _coerce(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        known = cls._field_names()
        result = {}
        for key, value in values.items():
            field_name = known.get(key)
            if field_name is None:
                continue
            if field_name == "allow_external_edit":
                value = _to_bool(value)
            elif value is not None:
                value = str(value)
            else:
                continue
            result[field_name] = value
        return result

    @classmethod
    def from_dict(cls, values: Optional[Dict[str, Any]] = None) -> "BuilderConfig":
        """Build a config from a mapping with camelCase or snake_case keys

        Unknown keys are ignored.
        """
        return cls(**cls._coerce(values or {}))

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "BuilderConfig":
        """Build a config from an optional JSON file and environment variables

        ``REST_API_BUILDER_CONFIG`` names the JSON file; variables such as
        ``REST_API_BUILDER_ALLOW_EXTERNAL_EDIT`` override single settings.
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        config_file = environ.get(CONFIG_FILE_ENV)
        if config_file:
            with open(config_file, "r", encoding="utf-8") as f:
                values.update(json.load(f))
            logging.info(f"[Config] Loaded configuration from {config_file}")

        for f in fields(cls):
            env_name = ENV_PREFIX + f.name.upper()
            if env_name in environ:
                values[f.name] = environ[env_name]

        return cls.from_dict(values)

    def merged(self, updates: Dict[str, Any]) -> "BuilderConfig":
        """Copy of this config with ``updates`` applied

        ``data_dir`` and ``path`` are kept as they are.
        """
        changes = {
            key: value for key, value in self._coerce(updates).items()
            if key not in IMMUTABLE_AT_RUNTIME
        }
        return replace(self, **changes)

    def load_runtime_overrides(self) -> "BuilderConfig":
        """Apply the settings previously saved to ``<dataDir>/config.json``"""
        if not os.path.exists(self.runtime_config_file):
            return self
        try:
            with open(self.runtime_config_file, "r", encoding="utf-8") as f:
                saved = json.load(f)
        except (OSError, ValueError) as e:
            logging.warning(f"[Config] Ignoring unreadable {self.runtime_config_file}: {e}")
            return self
        if not isinstance(saved, dict):
            return self
        return self.merged(saved)

    def save_runtime_overrides(self) -> None:
        """Persist the runtime-changeable settings to ``<dataDir>/config.json``

        Raises:
            IOFailure: If the file cannot be written
        """
        data = {
            key: value for key, value in self.to_dict().items()
            if key not in {_camel_case(name) for name in IMMUTABLE_AT_RUNTIME}
        }
        write_json_file(self.runtime_config_file, data)
        logging.info(f"[Config] Saved configuration to {self.runtime_config_file}")

    def to_dict(self) -> Dict[str, Any]:
        """Settings with camelCase keys, as exposed by ``/api/config``"""
        return {_camel_case(key): value for key, value in asdict(self).items()}


__all__ = [
    "BuilderConfig",
]
