"""Template settings and title mapping loaders."""

# Module responsibilities:
# - Hold the tunables of template generation in a frozen pydantic model with sensible defaults.
# - Load settings and title (rename) mappings from YAML with explicit validation.

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .columns import DEFAULT_DATE_FORMAT
from .errors import ConfigurationError


class TemplateSettings(BaseModel):
    """Tunables for header rendering, dropdowns and column sizing."""

    model_config = ConfigDict(extra="forbid", frozen=True, strict=True)

    required_mark: str = "*"
    max_column_width: int = Field(default=255, gt=0)
    dropdown_row_limit: int = Field(default=65535, ge=1)
    default_date_format: str = DEFAULT_DATE_FORMAT
    header_fill: str = Field(default="D9D9D9", pattern=r"^[0-9A-Fa-f]{6}$")
    header_style_name: str = Field(default="excel_template_header", min_length=1)
    sheet_title: str = Field(default="Sheet1", min_length=1, max_length=31)


def _load_yaml(path: Path) -> Any:
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc


def settings_from_mapping(payload: Mapping[str, Any]) -> TemplateSettings:
    """Build settings from a mapping, rejecting unknown keys and wrong types."""

    try:
        return TemplateSettings.model_validate(dict(payload))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid template settings: {exc}") from exc


def load_settings(path: Path) -> TemplateSettings:
    """Load template settings from a YAML file (an empty file gives the defaults)."""

    payload = _load_yaml(path) or {}
    if not isinstance(payload, dict):
        raise ConfigurationError("Settings YAML must be a mapping")
    return settings_from_mapping(payload)


def load_title_mapper(path: Path) -> Dict[str, str]:
    """Load a ``declared column name -> display title`` mapping from YAML."""

    payload = _load_yaml(path) or {}
    if not isinstance(payload, dict):
        raise ConfigurationError("Title mapping YAML must be a mapping")
    return {str(key): str(value) for key, value in payload.items()}
