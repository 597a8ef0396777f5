"""Runtime settings schema and loader.

Settings are read from a YAML file (``PATTERN_PROBE_CONFIG`` or
``./pattern_probe.yaml``) and then overridden by ``PATTERN_PROBE_*``
environment variables. A ``.env`` file in the working directory is loaded
first so overrides can live there.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PATTERN_PROBE_CONFIG"
ENV_PREFIX = "PATTERN_PROBE_"
DEFAULT_CONFIG_FILENAME = "pattern_probe.yaml"

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ValidationLimits(BaseModel):
    """Bounds on user-authored pattern trees."""

    max_depth: int = Field(default=32, gt=0, description="Maximum node depth (root = 0)")
    max_nodes: int = Field(default=2000, gt=0, description="Maximum node count")


class ProbeSettings(BaseModel):
    """Settings for pattern validation, task management and storage.

    Attributes:
        max_depth: Maximum pattern depth accepted by the validator.
        max_nodes: Maximum pattern size accepted by the validator.
        cache_size: Number of materialization results kept in memory.
        storage_dir: Directory for the file task store (None = in-memory).
        log_level: Default log level for the CLI.
    """

    max_depth: int = Field(default=32, gt=0)
    max_nodes: int = Field(default=2000, gt=0)
    cache_size: int = Field(default=128, ge=0)
    storage_dir: Optional[Path] = None
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the log level name."""
        level = v.upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Unknown log level '{v}'. Valid levels: {sorted(VALID_LOG_LEVELS)}"
            )
        return level

    @property
    def limits(self) -> ValidationLimits:
        return ValidationLimits(max_depth=self.max_depth, max_nodes=self.max_nodes)


def _env_overrides() -> Dict[str, Any]:
    """Collect PATTERN_PROBE_<FIELD> environment overrides."""
    overrides: Dict[str, Any] = {}
    for field_name in ProbeSettings.model_fields:
        value = os.getenv(f"{ENV_PREFIX}{field_name.upper()}")
        if value is not None and value != "":
            overrides[field_name] = value
    return overrides


def _resolve_config_path(path: Optional[Path]) -> Optional[Path]:
    if path is not None:
        return path
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    default = Path.cwd() / DEFAULT_CONFIG_FILENAME
    if default.exists():
        return default
    return None


def load_settings(path: Optional[Path] = None, use_env: bool = True) -> ProbeSettings:
    """Load settings from YAML with environment overrides.

    Args:
        path: Explicit config file. Defaults to PATTERN_PROBE_CONFIG, then
            ./pattern_probe.yaml. A missing file yields defaults.
        use_env: Apply .env and PATTERN_PROBE_* overrides.

    Returns:
        Validated ProbeSettings.

    Raises:
        ValueError: If the file is not valid YAML or not a mapping.
        pydantic.ValidationError: If a value is out of range.
    """
    if use_env:
        load_dotenv()

    data: Dict[str, Any] = {}
    config_path = _resolve_config_path(path)
    if config_path is not None and config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_path}: {e}")
        if not isinstance(loaded, dict):
            raise ValueError(f"Settings file {config_path} must contain a mapping")
        data.update(loaded)
        logger.debug(f"Loaded settings from {config_path}")
    elif config_path is not None:
        logger.warning(f"Settings file not found: {config_path}, using defaults")

    if use_env:
        data.update(_env_overrides())

    return ProbeSettings.model_validate(data)
