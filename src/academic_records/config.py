"""Settings — runtime configuration loaded from the process environment.

Only a handful of values are consumed by the core: the two token signing
secrets, the runtime mode (which controls cookie security and error
verbosity), the listen address, and the optional paths for the offline geo
database and the persistent activity trail.
"""
from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator

_PRODUCTION_NAMES = frozenset({"prod", "production"})


class Settings(BaseModel):
    """Validated application settings.

    Parameters
    ----------
    access_secret:
        Secret used to sign access tokens.
    refresh_secret:
        Secret used to sign refresh tokens. Must differ from ``access_secret``.
    environment:
        Runtime mode name. ``"production"`` enables secure cookies and hides
        internal error detail from responses.
    host, port:
        Bind address of the HTTP server.
    geoip_database:
        Path to a MaxMind City database. None disables geolocation.
    audit_log_path:
        JSONL file backing the activity trail. None keeps it in memory.
    identities_path:
        JSON file of seeded identities loaded by ``serve``.
    audit_workers, audit_queue_size:
        Size of the background audit worker pool and its queue.
    """

    access_secret: str = Field(min_length=1)
    refresh_secret: str = Field(min_length=1)
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = Field(default=4000, ge=0, le=65535)
    geoip_database: Optional[Path] = None
    audit_log_path: Optional[Path] = None
    identities_path: Optional[Path] = None
    audit_workers: int = Field(default=2, ge=1)
    audit_queue_size: int = Field(default=1000, ge=1)

    @model_validator(mode="after")
    def _secrets_must_differ(self) -> "Settings":
        if self.access_secret == self.refresh_secret:
            raise ValueError("access and refresh secrets must be distinct")
        return self

    @property
    def is_production(self) -> bool:
        """Return True when running in production mode."""
        return self.environment.strip().lower() in _PRODUCTION_NAMES

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables.

        Parameters
        ----------
        environ:
            Mapping to read from. Defaults to ``os.environ``.

        Raises
        ------
        pydantic.ValidationError
            If a required secret is missing or a value is out of range.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {
            "access_secret": env.get("JWT_ACCESS_SECRET", ""),
            "refresh_secret": env.get("JWT_REFRESH_SECRET", ""),
            "environment": env.get("APP_ENV", "development"),
            "host": env.get("HOST", "0.0.0.0"),
            "port": env.get("PORT", "4000"),
            "audit_workers": env.get("AUDIT_WORKERS", "2"),
            "audit_queue_size": env.get("AUDIT_QUEUE_SIZE", "1000"),
        }
        for key, field_name in (
            ("GEOIP_DATABASE", "geoip_database"),
            ("AUDIT_LOG_PATH", "audit_log_path"),
            ("IDENTITIES_PATH", "identities_path"),
        ):
            if env.get(key):
                values[field_name] = env[key]
        return cls.model_validate(values)
