# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Type-safe formatter configuration using Pydantic.

This module defines the formatter options and the settings for the external
Topiary engine, and loads both from an optional JSON file.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, model_validator
from returns.result import Failure, Result, Success

from .errors import ConfigError

DEFAULT_CONFIG_FILENAME = "gdfmt.json"


class FormatterConfig(BaseModel):
    """Options consumed by the formatting pipeline."""
    use_spaces: bool = Field(False, description="Indent with spaces instead of tabs")
    indent_size: int = Field(4, ge=1, description="Spaces per indentation level when use_spaces is set")
    reorder_code: bool = Field(False, description="Reorder declarations after formatting")
    safe: bool = Field(False, description="Verify the code structure did not change")

    @model_validator(mode="after")
    def _safe_excludes_reorder(self) -> "FormatterConfig":
        if self.safe and self.reorder_code:
            raise ValueError("safe mode cannot be combined with reorder_code")
        return self

    @property
    def indent_string(self) -> str:
        """Indentation unit handed to the formatting engine."""
        return " " * self.indent_size if self.use_spaces else "\t"


class EngineSettings(BaseModel):
    """Settings for the external Topiary formatting engine."""
    executable: str = Field("topiary", description="Topiary executable name or path")
    query_path: Optional[Path] = Field(None, description="GDScript formatting query file (.scm)")
    configuration_path: Optional[Path] = Field(None, description="Topiary Nickel configuration file")
    grammar_path: Optional[Path] = Field(None, description="Compiled GDScript grammar for a generated configuration")
    timeout_seconds: float = Field(30.0, gt=0, description="Timeout per formatting call")
    tolerate_parsing_errors: bool = Field(True, description="Format even if the input has syntax errors")
    skip_idempotence: bool = Field(True, description="Skip Topiary's own idempotence check")


class GdfmtSettings(BaseModel):
    """Root configuration file model."""
    formatter: FormatterConfig = Field(default_factory=FormatterConfig)
    engine: EngineSettings = Field(default_factory=EngineSettings)

    @classmethod
    def load(cls, path: Path) -> "GdfmtSettings":
        """Load settings from a JSON file.

        Args:
            path: Path to JSON configuration file

        Returns:
            GdfmtSettings: Validated settings

        Raises:
            FileNotFoundError: If the file does not exist
            pydantic.ValidationError: If JSON doesn't match the schema
        """
        return cls.model_validate_json(path.read_text(encoding="utf-8"))

    @classmethod
    def load_from_path_or_default(
        cls, path: Optional[Path], default_filename: str = DEFAULT_CONFIG_FILENAME
    ) -> "GdfmtSettings":
        """Load settings from the given path or look for the default file."""
        if path:
            return cls.load(path)

        default_path = Path(default_filename)
        if default_path.exists():
            return cls.load(default_path)

        return cls()


def load_settings(path: Optional[Path]) -> Result[GdfmtSettings, ConfigError]:
    """Load settings, mapping every failure to a ConfigError."""
    try:
        return Success(GdfmtSettings.load_from_path_or_default(path))
    except ValidationError as e:
        return Failure(ConfigError(
            message=f"Invalid configuration: {e}",
            config_file=path
        ))
    except (OSError, UnicodeDecodeError) as e:
        return Failure(ConfigError(
            message=f"Cannot read configuration {path}: {e}",
            config_file=path
        ))


def build_config(**options) -> Result[FormatterConfig, ConfigError]:
    """Validate formatter options coming from the command line."""
    try:
        return Success(FormatterConfig(**options))
    except ValidationError as e:
        first = e.errors()[0]
        return Failure(ConfigError(
            message=first["msg"],
            key=".".join(str(part) for part in first["loc"]) or None
        ))
