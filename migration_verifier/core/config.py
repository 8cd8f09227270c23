"""Configuration models and YAML loader for the URL verifier."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field


class RunConfig(BaseModel):
    """Per-job run parameters. Frozen: captured once when the job is created."""

    model_config = ConfigDict(frozen=True)

    follow_redirects: bool = True
    max_concurrency: int = Field(default=10, ge=1)
    retry_attempts: int = Field(default=3, ge=0)
    timeout_seconds: float = Field(default=10.0, gt=0)

    def with_overrides(self, **overrides: Any) -> "RunConfig":
        """Return a validated copy with the non-None overrides applied."""
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return RunConfig.model_validate(data)


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/verifier.db"


class HttpConfig(BaseModel):
    """HTTP client and polling configuration."""

    user_agent: str = "site-migration-verifier/0.1"
    poll_interval_seconds: float = Field(default=1.0, gt=0)


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    defaults: RunConfig = Field(default_factory=RunConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
