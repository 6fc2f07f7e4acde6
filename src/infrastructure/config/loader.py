"""Configuration loading, validation and persistence."""

import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass, asdict, fields

from domain.exceptions import ConfigurationError
from shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_API_BASE = "https://generativelanguage.googleapis.com"
CONFIG_DIR = Path.home() / ".gemini-batch"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

# Keys that are never written back to the config file
_TRANSIENT_FIELDS = {"output_dir"}


@dataclass
class BatchConfig:
    """Configuration for batch submission and monitoring."""

    # Provider
    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    api_base: str = DEFAULT_API_BASE

    # Scheduling
    max_concurrent_jobs: int = 5

    # Polling (seconds)
    check_interval: float = 5.0
    max_check_interval: float = 60.0
    poll_timeout: Optional[float] = None  # None: poll until terminal

    # Input/Output
    input_extension: str = ".jsonl"
    output_dir: Path = CONFIG_DIR / "results"

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.output_dir = Path(self.output_dir).expanduser()
        if self.poll_timeout is not None and self.poll_timeout <= 0:
            self.poll_timeout = None
        if self.input_extension and not self.input_extension.startswith("."):
            self.input_extension = f".{self.input_extension}"
        self._validate()

    def _validate(self):
        """Validate configuration values."""
        if not self.model:
            raise ConfigurationError("Model must be set")

        if self.max_concurrent_jobs < 1:
            raise ConfigurationError(
                f"max_concurrent_jobs must be >= 1, got: {self.max_concurrent_jobs}"
            )

        if self.check_interval <= 0:
            raise ConfigurationError(f"check_interval must be positive, got: {self.check_interval}")

        if self.max_check_interval < self.check_interval:
            raise ConfigurationError(
                f"max_check_interval ({self.max_check_interval}) "
                f"is below check_interval ({self.check_interval})"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view for the config file."""
        data = asdict(self)
        for key in _TRANSIENT_FIELDS:
            data.pop(key, None)
        return {k: v for k, v in data.items() if v is not None}


class ConfigLoader:
    """Loads configuration from YAML, environment variables and overrides."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize config loader.

        Args:
            config_path: Optional path to YAML config file
                (default: $GEMINI_BATCH_CONFIG or ~/.gemini-batch/config.yaml)
        """
        env_path = os.getenv("GEMINI_BATCH_CONFIG")
        self.config_path = Path(config_path or env_path or CONFIG_FILE).expanduser()
        self._logger = get_logger(__name__)

    def load(self, overrides: Optional[Dict[str, Any]] = None) -> BatchConfig:
        """
        Load configuration from file and environment.

        An API key stored in the file wins over the environment; every other
        environment value overrides the file. Runtime overrides win over both.

        Returns:
            BatchConfig instance

        Raises:
            ConfigurationError: If configuration is invalid
        """
        config_dict = self._load_file()
        file_api_key = config_dict.get("api_key")

        config_dict.update(self._load_from_env())
        if file_api_key:
            config_dict["api_key"] = file_api_key

        if overrides:
            for k, v in overrides.items():
                if v is None:
                    continue
                config_dict[k] = v

        valid_fields = {f.name for f in fields(BatchConfig)}
        unknown = set(config_dict) - valid_fields
        if unknown:
            self._logger.warning(f"Ignoring unknown config keys: {', '.join(sorted(unknown))}")

        filtered_config = {k: v for k, v in config_dict.items() if k in valid_fields}

        try:
            return BatchConfig(**filtered_config)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def save(self, config: BatchConfig) -> Path:
        """Write configuration to the YAML file."""
        return self._write(config.to_dict())

    def _write(self, data: Dict[str, Any]) -> Path:
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, sort_keys=False)
        except OSError as e:
            raise ConfigurationError(f"Failed to save config to {self.config_path}: {e}") from e

        self._logger.debug(f"Saved config to {self.config_path}")
        return self.config_path

    def update(self, changes: Dict[str, Any]) -> BatchConfig:
        """
        Persist selected keys, leaving the rest of the file untouched.

        Only values stored in the file are written back; environment
        variables are never copied into it.
        """
        data = self._load_file()
        data.update({k: v for k, v in changes.items() if v is not None})

        valid_fields = {f.name for f in fields(BatchConfig)}
        try:
            config = BatchConfig(**{k: v for k, v in data.items() if k in valid_fields})
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        self._write(data)
        return config

    def reset(self) -> BatchConfig:
        """Restore defaults, keeping the stored API key."""
        current = self._load_file()
        config = BatchConfig(api_key=current.get("api_key"))
        self.save(config)
        return config

    def _load_file(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            self._logger.debug(f"Config file not found: {self.config_path}")
            return {}

        self._logger.debug(f"Loading config from {self.config_path}")
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            # An unreadable file falls back to defaults
            self._logger.warning(f"Invalid config file {self.config_path}: {e}")
            return {}

        if not isinstance(data, dict):
            self._logger.warning(f"Config file {self.config_path} is not a mapping, ignoring")
            return {}
        return data

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env_config = {}

        if api_key := os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_GENERATIVE_AI_API_KEY"):
            env_config["api_key"] = api_key

        if model := os.getenv("GEMINI_MODEL"):
            env_config["model"] = model

        if api_base := os.getenv("GEMINI_API_BASE"):
            env_config["api_base"] = api_base

        if max_concurrent := os.getenv("GEMINI_BATCH_MAX_CONCURRENT"):
            try:
                env_config["max_concurrent_jobs"] = int(max_concurrent)
            except ValueError:
                self._logger.warning(f"Invalid GEMINI_BATCH_MAX_CONCURRENT value: {max_concurrent}")

        if check_interval := os.getenv("GEMINI_BATCH_CHECK_INTERVAL"):
            try:
                env_config["check_interval"] = float(check_interval)
            except ValueError:
                self._logger.warning(f"Invalid GEMINI_BATCH_CHECK_INTERVAL value: {check_interval}")

        if poll_timeout := os.getenv("GEMINI_BATCH_POLL_TIMEOUT"):
            try:
                env_config["poll_timeout"] = float(poll_timeout)
            except ValueError:
                self._logger.warning(f"Invalid GEMINI_BATCH_POLL_TIMEOUT value: {poll_timeout}")

        return env_config
