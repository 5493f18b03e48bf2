"""
Server configuration loaded from the environment.
"""

import os
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


class ServerConfig(BaseModel):
    """Runtime settings for the bingo server."""

    host: str = Field(
        default="0.0.0.0",
        description="Interface to bind"
    )
    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port to listen on"
    )
    log_level: str = Field(
        default="info",
        description="Logging level name"
    )
    reload: bool = Field(
        default=False,
        description="Enable uvicorn auto-reload"
    )
    snapshot_path: Optional[str] = Field(
        default="data/bingo-state.json",
        description="JSON snapshot file; empty keeps state in memory only"
    )
    cors_origins: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Normalise and check the log level name."""
        level = v.strip().lower()
        if level not in LOG_LEVELS:
            raise ValueError(f'log_level must be one of {", ".join(LOG_LEVELS)}')
        return level

    @field_validator('cors_origins', mode='before')
    @classmethod
    def split_origins(cls, v):
        """Accept a comma separated string of origins."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',') if origin.strip()] or ["*"]
        return v

    @classmethod
    def from_env(cls) -> 'ServerConfig':
        values = {}
        env_map = {
            "HOST": "host",
            "PORT": "port",
            "LOG_LEVEL": "log_level",
            "SNAPSHOT_PATH": "snapshot_path",
            "CORS_ORIGINS": "cors_origins",
        }
        for env_name, field_name in env_map.items():
            if env_name in os.environ:
                values[field_name] = os.environ[env_name]
        values["reload"] = os.getenv("RELOAD", "false").lower() == "true"
        return cls(**values)
