"""Application settings using Pydantic Settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OTELSettings(BaseSettings):
    """OpenTelemetry and observability settings."""

    model_config = SettingsConfigDict(
        env_prefix="OTEL__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    enabled: bool = Field(
        default=False,
        description="Enable OpenTelemetry instrumentation (disabled by default for local dev)",
    )

    service_name: str = Field(
        default="kvquery",
        description="Service name for traces",
    )


class Settings(BaseSettings):
    """Query layer configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="KVQUERY_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Store
    store_backend: str = Field(
        default="memory",
        description="Key-value store backend: memory | rocksdb",
    )
    db_path: str = Field(default="./data/kvquery.db", description="RocksDB path")
    scan_batch_size: int = Field(
        default=256,
        description="Entries fetched per worker-thread hop during RocksDB prefix scans",
    )

    # Schema conventions
    primary_key_field: str = Field(
        default="id",
        description="Primary key field used when a model does not tag one explicitly",
    )
    created_at_field: str = Field(
        default="created_at",
        description="Creation timestamp field, stamped on create when the model defines it",
    )
    updated_at_field: str = Field(
        default="updated_at",
        description="Modification timestamp field, stamped on update when the model defines it",
    )

    # Project name (for trace resources)
    project_name: str = Field(
        default="kvquery",
        description="Project name attached to the tracing resource",
    )

    # OpenTelemetry (nested)
    otel: "OTELSettings" = Field(default_factory=lambda: OTELSettings())


settings = Settings()
