"""Server configuration via environment variables."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

VALID_TRANSPORTS = {"stdio", "http"}

_DATA_HOME = Path.home() / ".local" / "share" / "manimbot-mcp"


def _resolve_tracing_enabled(flag_value: str, tracking_uri: str) -> bool:
    """Derive tracing_enabled from env vars.

    ``GEMINI_TRACING_ENABLED=false`` always disables; otherwise tracing is on
    whenever ``MLFLOW_TRACKING_URI`` is non-empty.
    """
    if flag_value.lower() == "false":
        return False
    return bool(tracking_uri)


class ServerConfig(BaseModel):
    """Runtime configuration resolved from environment.

    ``s3_bucket`` is optional: without it rendered videos are published to
    ``publish_dir`` on the local filesystem.
    """

    gemini_api_key: str = Field(default="")
    model: str = Field(default="gemini-2.0-flash")
    temperature: float = Field(default=1.0)
    manim_bin: str = Field(default="manim")
    ffprobe_bin: str = Field(default="ffprobe")
    quality_flag: str = Field(default="-ql")
    render_timeout: int = Field(default=600)
    probe_timeout: int = Field(default=30)
    max_retries: int = Field(default=2)
    min_duration_seconds: int = Field(default=60)
    probe_fallback_seconds: int = Field(default=60)
    work_dir: str = Field(default="")
    db_path: str = Field(default="")
    s3_bucket: str = Field(default="")
    s3_region: str = Field(default="ap-south-1")
    s3_prefix: str = Field(default="")
    publish_dir: str = Field(default="")
    retry_max_attempts: int = Field(default=3)
    retry_base_delay: float = Field(default=1.0)
    retry_max_delay: float = Field(default=60.0)
    transport: str = Field(default="stdio")
    http_host: str = Field(default="127.0.0.1")
    http_port: int = Field(default=8000)
    tracing_enabled: bool = Field(default=False)
    mlflow_tracking_uri: str = Field(default="")
    mlflow_experiment_name: str = Field(default="manimbot-mcp")

    @field_validator("render_timeout", "probe_timeout", "min_duration_seconds", "retry_max_attempts")
    @classmethod
    def validate_positive_ints(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Configuration values must be >= 1")
        return value

    @field_validator("max_retries", "probe_fallback_seconds")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("Configuration values must be >= 0")
        return value

    @field_validator("retry_base_delay", "retry_max_delay")
    @classmethod
    def validate_retry_delays(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Retry delay must be > 0")
        return value

    @field_validator("transport")
    @classmethod
    def validate_transport(cls, value: str) -> str:
        v = value.strip().lower()
        if v not in VALID_TRANSPORTS:
            allowed = ", ".join(sorted(VALID_TRANSPORTS))
            raise ValueError(f"Invalid transport '{value}'. Allowed: {allowed}")
        return v

    @property
    def resolved_work_dir(self) -> Path:
        """Parent directory for per-request render workspaces."""
        return Path(self.work_dir or tempfile.gettempdir()).expanduser()

    @property
    def resolved_db_path(self) -> Path:
        """SQLite file holding users, chats and messages."""
        if self.db_path:
            return Path(self.db_path).expanduser()
        return _DATA_HOME / "chats.db"

    @property
    def resolved_publish_dir(self) -> Path:
        """Local publish target used when no S3 bucket is configured."""
        if self.publish_dir:
            return Path(self.publish_dir).expanduser()
        return _DATA_HOME / "videos"

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Build config from environment variables."""
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            model=os.getenv("MANIMBOT_MODEL", "gemini-2.0-flash"),
            temperature=float(os.getenv("MANIMBOT_TEMPERATURE", "1.0")),
            manim_bin=os.getenv("MANIMBOT_MANIM_BIN", "manim"),
            ffprobe_bin=os.getenv("MANIMBOT_FFPROBE_BIN", "ffprobe"),
            quality_flag=os.getenv("MANIMBOT_QUALITY_FLAG", "-ql"),
            render_timeout=int(os.getenv("MANIMBOT_RENDER_TIMEOUT", "600")),
            probe_timeout=int(os.getenv("MANIMBOT_PROBE_TIMEOUT", "30")),
            max_retries=int(os.getenv("MANIMBOT_MAX_RETRIES", "2")),
            min_duration_seconds=int(os.getenv("MANIMBOT_MIN_DURATION", "60")),
            probe_fallback_seconds=int(os.getenv("MANIMBOT_PROBE_FALLBACK", "60")),
            work_dir=os.getenv("MANIMBOT_WORK_DIR", ""),
            db_path=os.getenv("MANIMBOT_DB", ""),
            s3_bucket=os.getenv("MANIMBOT_S3_BUCKET", ""),
            s3_region=os.getenv("MANIMBOT_S3_REGION", "ap-south-1"),
            s3_prefix=os.getenv("MANIMBOT_S3_PREFIX", ""),
            publish_dir=os.getenv("MANIMBOT_PUBLISH_DIR", ""),
            retry_max_attempts=int(os.getenv("GEMINI_RETRY_MAX_ATTEMPTS", "3")),
            retry_base_delay=float(os.getenv("GEMINI_RETRY_BASE_DELAY", "1.0")),
            retry_max_delay=float(os.getenv("GEMINI_RETRY_MAX_DELAY", "60.0")),
            transport=os.getenv("MANIMBOT_TRANSPORT", "stdio"),
            http_host=os.getenv("MANIMBOT_HOST", "127.0.0.1"),
            http_port=int(os.getenv("MANIMBOT_PORT", "8000")),
            tracing_enabled=_resolve_tracing_enabled(
                os.getenv("GEMINI_TRACING_ENABLED", ""),
                os.getenv("MLFLOW_TRACKING_URI", ""),
            ),
            mlflow_tracking_uri=os.getenv("MLFLOW_TRACKING_URI", ""),
            mlflow_experiment_name=os.getenv("MLFLOW_EXPERIMENT_NAME", "manimbot-mcp"),
        )


# Singleton: initialised once on first access.
_config: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Return the global config singleton, creating it on first access.

    Loads ``~/.config/manimbot-mcp/.env`` before reading env vars.
    Process environment always takes precedence over the config file.
    """
    global _config
    if _config is None:
        from .envfile import load_env_file

        load_env_file()
        _config = ServerConfig.from_env()
    return _config


def update_config(**overrides: object) -> ServerConfig:
    """Patch the live config."""
    global _config
    cfg = get_config()
    data = cfg.model_dump()
    data.update({k: v for k, v in overrides.items() if v is not None})
    _config = ServerConfig(**data)
    return _config
