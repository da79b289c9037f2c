"""YAML schema validation and config loading.

Provides validation for the diff configuration (diff.v1.yaml) using pydantic:
    - Comparison mode (perceptual / exact) and tolerance
    - Highlight color of the rendered diff
    - Work partitioning (chunk_rows, workers)
    - Logging settings consumed by logging_config.setup_logging()

Loading fails fast with the offending file in the message.

Usage:
    from perceptual_diff.utils import validators

    cfg = validators.load_diff_config("configs/diff.v1.yaml")
    cfg = validators.DiffConfig(tolerance=2.0)
"""

from pathlib import Path
from typing import Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(BaseModel):
    """Logging section of diff.v1.yaml."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    level: LogLevel = Field("INFO", description="Root log level")
    json_format: bool = Field(False, alias="json", description="Emit JSON lines")
    color: bool = Field(True, description="ANSI colors on a TTY")
    file: Optional[str] = Field(None, description="Optional log file path")

    @field_validator('level', mode='before')
    @classmethod
    def normalize_level(cls, v):
        return v.upper() if isinstance(v, str) else v


class DiffConfig(BaseModel):
    """Complete diff configuration (diff.v1.yaml schema)."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    schema_version: str = Field("diff.v1", alias="schema", description="Schema version")
    mode: Literal["perceptual", "exact"] = Field("perceptual", description="Comparison strategy")
    tolerance: float = Field(0.0, ge=0.0, allow_inf_nan=False, description="ΔE2000 threshold")
    highlight_color: Tuple[int, int, int] = Field((200, 1, 1), description="Diff highlight RGB")
    chunk_rows: Optional[int] = Field(None, ge=1, description="Rows per work band (None = auto)")
    workers: int = Field(1, ge=1, description="Worker threads")
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "diff.v1":
            raise ValueError(f"Expected schema 'diff.v1', got '{v}'")
        return v

    @field_validator('highlight_color')
    @classmethod
    def validate_highlight(cls, v: Tuple[int, int, int]) -> Tuple[int, int, int]:
        for channel in v:
            if not 0 <= channel <= 255:
                raise ValueError(f"highlight_color channel {channel} out of range [0, 255]")
        return v


def load_diff_config(path: Union[str, Path]) -> DiffConfig:
    """Load and validate diff config from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to diff.v1.yaml file

    Returns
    -------
    DiffConfig
        Validated configuration

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If parsing or validation fails
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Diff config not found: {path}")

    try:
        data = fs.load_yaml(path) or {}
        return DiffConfig(**data)
    except Exception as e:
        raise ValueError(f"Diff config validation failed at {path}: {e}") from e
