"""Engine settings loader.

Reads project-specific engine configuration from ``.form-foundry.yaml`` in
the project root, then applies ``FORMS_*`` environment overrides (an
optional ``.env`` in the project root is loaded first).

Example .form-foundry.yaml:
    forms:
      validation_mode: on_change     # on_next | on_change | debounce | on_exit | manual
      debounce_seconds: 0.3
      autosave_delay_seconds: 1.0
      draft_backend: local           # memory | local | s3
      draft_dir: ./.drafts
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import Field, ValidationError as PydanticValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from forms.lib.errors import ConfigError
from forms.models.state import ValidationMode

logger = logging.getLogger(__name__)

__all__ = ["EngineSettings", "DRAFT_BACKENDS", "SETTINGS_FILENAME"]

SETTINGS_FILENAME = ".form-foundry.yaml"
DRAFT_BACKENDS = ("memory", "local", "s3")


class EngineSettings(BaseSettings):
    """Engine-wide settings using pydantic-settings.

    Environment variables with the ``FORMS_`` prefix take precedence over
    values passed in code or read from the YAML file.

    Example:
        >>> # FORMS_VALIDATION_MODE=manual
        >>> settings = EngineSettings()
        >>> settings.validation_mode
        <ValidationMode.MANUAL: 'manual'>
    """

    validation_mode: ValidationMode = Field(
        default=ValidationMode.ON_NEXT, description="Default validation timing mode"
    )
    debounce_seconds: float = Field(
        default=0.3, ge=0.0, le=60.0, description="Debounce window for validation"
    )
    autosave_delay_seconds: float = Field(
        default=1.0, ge=0.0, le=300.0, description="Delay before an autosave write"
    )
    draft_backend: str = Field(default="memory", description="memory, local or s3")
    draft_dir: str = Field(default="./.drafts", description="Directory for local drafts")
    draft_key_prefix: str = Field(default="form_foundry_", description="Draft key prefix")
    s3_bucket: Optional[str] = Field(default=None, description="Bucket for S3 drafts")
    s3_prefix: str = Field(default="drafts/", description="Key prefix inside the bucket")
    storage_retries: int = Field(default=3, ge=1, le=10, description="Draft storage attempts")
    storage_backoff_seconds: float = Field(
        default=0.1, ge=0.0, le=60.0, description="Base delay between storage attempts"
    )

    model_config = SettingsConfigDict(
        env_prefix="FORMS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Any,
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple:
        # Environment wins over YAML/init values
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @field_validator("validation_mode", mode="before")
    @classmethod
    def parse_validation_mode(cls, v: Any) -> ValidationMode:
        """Accept on_change, onChange and ON-CHANGE alike."""
        return ValidationMode.parse(v)

    @field_validator("draft_backend")
    @classmethod
    def validate_draft_backend(cls, v: str) -> str:
        backend = v.strip().lower()
        if backend not in DRAFT_BACKENDS:
            raise ValueError(f"draft_backend must be one of: {list(DRAFT_BACKENDS)}")
        return backend

    @classmethod
    def load(cls, project_root: Path | None = None) -> "EngineSettings":
        """Load settings from .form-foundry.yaml in project root.

        Args:
            project_root: Project root directory. Defaults to cwd.

        Returns:
            EngineSettings built from the file, environment and defaults.

        Raises:
            ConfigError: If a value is present but invalid
        """
        root = project_root or Path.cwd()
        env_path = root / ".env"
        if env_path.exists():
            load_dotenv(dotenv_path=env_path, override=False)

        values = _read_yaml_section(root / SETTINGS_FILENAME)
        try:
            return cls(**values)
        except PydanticValidationError as e:
            issues = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            ]
            raise ConfigError(
                f"Invalid settings in {SETTINGS_FILENAME} or FORMS_* environment",
                issues=issues,
            ) from e

    def get_draft_dir(self, project_root: Path | None = None) -> Path:
        """Get absolute path to the local draft directory."""
        root = project_root or Path.cwd()
        return (root / self.draft_dir).resolve()


def _read_yaml_section(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        return {}
    try:
        with open(config_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
        section = config.get("forms", {}) if isinstance(config, dict) else {}
        if not isinstance(section, dict):
            raise ValueError("'forms' must be a mapping")
        return section
    except (OSError, yaml.YAMLError, ValueError) as e:
        # Malformed file: fall back to defaults
        logger.warning("Ignoring malformed %s: %s", config_path, e)
        return {}
