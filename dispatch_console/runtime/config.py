"""Console configuration model."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

TOKEN_ENV_VAR = "DISPATCH_CONSOLE_TOKEN"

CONSOLE_ROLES: tuple[str, ...] = ("admin", "agency_owner", "agent", "customer")


class ConsoleConfig(BaseModel):
    """Connection and view settings. Credentials never live in the file."""

    api_base_url: str = Field(..., min_length=1)
    push_url: str | None = None

    page_size: int = Field(10, ge=1)
    export_limit: int = Field(10_000, ge=1)
    refresh_window_s: float = Field(0.5, ge=0)
    currency_token: str = "KSH"

    role: str = "admin"
    agency_id: str | None = None

    event_log_path: Path | None = None

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> ConsoleConfig:
        """Create a ConsoleConfig instance from a JSON-compatible object."""
        return cls.model_validate(obj)

    @model_validator(mode="after")
    def validate_consistency(self) -> ConsoleConfig:
        if self.role not in CONSOLE_ROLES:
            raise ValueError(f"role must be one of {CONSOLE_ROLES}, got {self.role!r}")
        if self.role == "agency_owner" and not self.agency_id:
            raise ValueError("agency_id is required for role 'agency_owner'")
        return self


def load_config(path: str | Path) -> ConsoleConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    return ConsoleConfig.from_json_obj(json.loads(path.read_text(encoding="utf-8")))


def token_from_env() -> str | None:
    token = os.environ.get(TOKEN_ENV_VAR, "").strip()
    return token or None
