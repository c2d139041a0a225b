"""
Config system - typed settings loaded from files, .env and environment.

Merge order (later overrides earlier):
1. Config files (JSON or YAML)
2. .env file
3. Environment variables (DACTYL_* prefix)
4. Manual overrides
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, get_type_hints
import json
import os

import yaml
from dotenv import dotenv_values


class ConfigError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass
class Settings:
    """Runtime settings of an application."""

    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "info"
    debug: bool = False
    logging_enabled: bool = True
    timing_enabled: bool = True
    cors_enabled: bool = True
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


class ConfigLoader:
    """Loads and merges configuration into a ``Settings`` instance."""

    def __init__(self, env_prefix: str = "DACTYL_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[List[str]] = None,
        env_file: Optional[str] = None,
        env_prefix: str = "DACTYL_",
        overrides: Optional[Dict[str, Any]] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> Settings:
        """
        Load settings from all sources.

        Args:
            paths: JSON/YAML config files, applied in order
            env_file: Path to a .env file
            env_prefix: Prefix for environment variables
            overrides: Manual overrides (highest precedence)
            environ: Environment mapping (defaults to ``os.environ``)
        """
        loader = cls(env_prefix=env_prefix)

        for path in paths or ():
            loader._load_file(Path(path))

        if env_file:
            loader._load_env(dotenv_values(env_file))

        loader._load_env(os.environ if environ is None else environ)

        if overrides:
            loader.config_data.update(overrides)

        return loader.build()

    def _load_file(self, path: Path) -> None:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        with open(path) as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            elif path.suffix == ".json":
                data = json.load(f)
            else:
                raise ConfigError(f"Unsupported config file type: {path}")

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        self.config_data.update(data)

    def _load_env(self, env: Dict[str, Optional[str]]) -> None:
        for key, value in env.items():
            if key.startswith(self.env_prefix) and value is not None:
                name = key[len(self.env_prefix):].lower()
                self.config_data[name] = self._parse_value(value)

    @staticmethod
    def _parse_value(value: str) -> Any:
        """Parse string value to appropriate type."""
        lowered = value.lower()
        if lowered in ("true", "yes", "on"):
            return True
        if lowered in ("false", "no", "off"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def build(self) -> Settings:
        """Instantiate and validate ``Settings``; unknown keys are ignored."""
        hints = get_type_hints(Settings)
        kwargs = {}
        for f in fields(Settings):
            if f.name not in self.config_data:
                continue
            kwargs[f.name] = self._convert(f.name, hints[f.name], self.config_data[f.name])
        return Settings(**kwargs)

    @staticmethod
    def _convert(name: str, expected: Any, value: Any) -> Any:
        if expected is bool:
            if isinstance(value, bool):
                return value
            if value in (0, 1):
                return bool(value)
        elif expected is int:
            if isinstance(value, int) and not isinstance(value, bool):
                return value
        elif expected is str:
            return str(value)
        elif expected == List[str]:
            if isinstance(value, str):
                return [item.strip() for item in value.split(",") if item.strip()]
            if isinstance(value, list):
                return [str(item) for item in value]

        raise ConfigError(f"Invalid value for '{name}': {value!r}")
