"""Configuration management for toygrep."""

from pathlib import Path
from typing import Optional
import yaml
from loguru import logger
from pydantic import BaseModel, Field, field_validator, model_validator


class BufferConfig(BaseModel):
    start_size_bytes: int = 8 * 1024
    max_size_bytes: int = 2_000_000
    prewarm: int = 4

    @field_validator('start_size_bytes', 'prewarm')
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator('max_size_bytes')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("max_size_bytes must be positive")
        return v

    @model_validator(mode='after')
    def validate_bounds(self) -> "BufferConfig":
        if self.max_size_bytes < self.start_size_bytes:
            raise ValueError("max_size_bytes must be >= start_size_bytes")
        return self


class CrawlConfig(BaseModel):
    worker_count: int = 16

    @field_validator('worker_count')
    @classmethod
    def validate_worker_count(cls, v: int) -> int:
        if v < 1:
            raise ValueError("worker_count must be at least 1")
        return v


class SearchConfig(BaseModel):
    binary_sample_bytes: int = 512
    stdin_line_numbers: bool = False

    @field_validator('binary_sample_bytes')
    @classmethod
    def validate_sample(cls, v: int) -> int:
        if v < 0:
            raise ValueError("binary_sample_bytes must not be negative")
        return v


class PrinterConfig(BaseModel):
    # None lets the target list decide (see PrintMode.for_targets)
    group_by_target: Optional[bool] = None
    line_numbers: bool = True
    # None auto-detects from the terminal
    color: Optional[bool] = None
    line_number_style: str = "green"
    match_style: str = "bold red"
    header_style: str = "bold"


class Config(BaseModel):
    """Main configuration for a toygrep run."""

    buffers: BufferConfig = Field(default_factory=BufferConfig)
    crawl: CrawlConfig = Field(default_factory=CrawlConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    printer: PrinterConfig = Field(default_factory=PrinterConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from YAML file.

        Without an explicit path the default locations are tried in order;
        when none exists the built-in defaults are returned.
        """
        if config_path is None:
            candidates = [
                Path("toygrep.yaml"),
                Path.home() / ".config" / "toygrep" / "config.yaml",
            ]
            for candidate in candidates:
                if candidate.exists():
                    config_path = candidate
                    break
            else:
                logger.debug("No config file found, using defaults")
                return cls()

        logger.debug(f"Loading config from: {config_path}")
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)

        return cls(**(data or {}))

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            yaml.safe_dump(self.model_dump(), f, default_flow_style=False)
