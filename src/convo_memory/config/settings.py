"""
Pydantic settings models for the conversation memory manager.

All configuration is defined here with defaults matching the behaviour
of the chat assistant the memory manager was built for.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class MemorySettings(BaseModel):
    """Context window, compression and retention configuration."""

    max_context_tokens: int = Field(
        default=8000,
        ge=1,
        description="Token budget used to compute memory usage percentages",
    )
    compression_threshold: int = Field(
        default=6000,
        ge=1,
        description="Token count above which a conversation is compressed",
    )
    retention_days: int = Field(
        default=90,
        ge=1,
        le=3650,
        description="Conversations idle for longer than this are purged",
    )
    auto_compress: bool = Field(
        default=True,
        description="Compress automatically when the threshold is crossed",
    )
    keep_recent_messages: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Messages kept verbatim after compression",
    )
    excerpt_length: int = Field(
        default=100,
        ge=10,
        le=2000,
        description="Characters kept from each message in a summary",
    )
    compression_insight_limit: int = Field(
        default=10,
        ge=0,
        le=100,
        description="Maximum insights recovered from compressed messages",
    )
    compression_warning_percent: float = Field(
        default=85.0,
        gt=0.0,
        le=100.0,
        description="Usage percentage above which compression is advised",
    )
    max_list_items: int = Field(
        default=50,
        ge=1,
        le=10000,
        description="Cap on insights, actions, challenges and research logs. Oldest entries are evicted.",
    )
    summary_mode: Literal["replace", "append"] = Field(
        default="replace",
        description="Whether a compression replaces or extends the previous summary",
    )

    model_config = {
        "extra": "forbid",
        "validate_assignment": True,
    }

    @model_validator(mode="after")
    def check_threshold(self) -> "MemorySettings":
        if self.compression_threshold > self.max_context_tokens:
            raise ValueError(
                "compression_threshold must not exceed max_context_tokens"
            )
        return self


class StorageSettings(BaseModel):
    """Key-value persistence configuration."""

    backend: Literal["memory", "sqlite", "file"] = Field(
        default="sqlite",
        description="Storage backend holding conversation snapshots",
    )
    database_path: Path = Field(
        default=Path("data/memory.db"),
        description="Path to SQLite database file (sqlite backend)",
    )
    directory: Path = Field(
        default=Path("data/conversations"),
        description="Directory holding one JSON file per key (file backend)",
    )
    wal_mode: bool = Field(
        default=True,
        description="Enable WAL mode for better concurrent access",
    )

    @field_validator("database_path", "directory", mode="before")
    @classmethod
    def convert_to_path(cls, v: str | Path) -> Path:
        """Convert string paths to Path objects."""
        return Path(v) if isinstance(v, str) else v


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum logging level",
    )
    format: str = Field(
        default="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        description="Log message format string",
    )
    date_format: str = Field(
        default="%Y-%m-%d %H:%M:%S",
        description="Date format for log timestamps",
    )
    file_path: Path | None = Field(
        default=None,
        description="Path to log file. None means console only.",
    )
    max_file_size_mb: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum log file size before rotation",
    )
    backup_count: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Number of backup log files to keep",
    )
    log_to_console: bool = Field(
        default=True,
        description="Whether to output logs to console",
    )

    @field_validator("file_path", mode="before")
    @classmethod
    def convert_file_path(cls, v: str | Path | None) -> Path | None:
        """Convert string paths to Path objects."""
        if v is None:
            return None
        return Path(v) if isinstance(v, str) else v


class Settings(BaseModel):
    """
    Root configuration model containing all subsystem settings.

    Settings are loaded from YAML with environment variable overrides.
    """

    memory: MemorySettings = Field(
        default_factory=MemorySettings,
        description="Compression and retention settings",
    )
    storage: StorageSettings = Field(
        default_factory=StorageSettings,
        description="Persistence settings",
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )

    model_config = {
        "extra": "forbid",
        "validate_default": True,
    }
