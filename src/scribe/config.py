"""
Bridge settings, read from the environment.

    DISCORD_BOT_TOKEN  transport credential (required to connect)
    OWNER_ID           only accept messages from this author id
    AGENT_NAME         only accept messages mentioning this name; stripped from content
    POLL_INTERVAL      outbox poll interval in milliseconds (default 100)
    TASK_ROOT          mailbox root (default /tasks)
    SCRIBE_LOG_LEVEL   logging level (default INFO)
    MAXIMUS_DIR        build context used by `scribe provision`
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .mailbox.errors import ConfigurationError
from .paths import task_root

DEFAULT_POLL_INTERVAL_MS = 100
DEFAULT_MAXIMUS_DIR = "/path/to/maximus"


class BridgeSettings(BaseModel):
    token: str = ""
    owner_id: Optional[str] = None
    agent_name: Optional[str] = None
    poll_interval_ms: int = Field(default=DEFAULT_POLL_INTERVAL_MS, gt=0)
    task_root: Path = Path("/tasks")
    platform: str = "discord"
    log_level: str = "INFO"
    maximus_dir: str = DEFAULT_MAXIMUS_DIR

    model_config = ConfigDict(extra="forbid")

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000.0

    def require_token(self) -> str:
        if not self.token:
            raise ConfigurationError("DISCORD_BOT_TOKEN environment variable is required")
        return self.token


def _opt(environ: Mapping[str, str], key: str) -> Optional[str]:
    v = str(environ.get(key, "") or "").strip()
    return v or None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> BridgeSettings:
    env = environ if environ is not None else os.environ
    raw_interval = _opt(env, "POLL_INTERVAL")
    try:
        interval = int(raw_interval) if raw_interval is not None else DEFAULT_POLL_INTERVAL_MS
    except ValueError as e:
        raise ConfigurationError(f"POLL_INTERVAL must be an integer number of milliseconds, got {raw_interval!r}") from e

    try:
        return BridgeSettings(
            token=_opt(env, "DISCORD_BOT_TOKEN") or "",
            owner_id=_opt(env, "OWNER_ID"),
            agent_name=_opt(env, "AGENT_NAME"),
            poll_interval_ms=interval,
            task_root=task_root(env),
            log_level=_opt(env, "SCRIBE_LOG_LEVEL") or "INFO",
            maximus_dir=_opt(env, "MAXIMUS_DIR") or DEFAULT_MAXIMUS_DIR,
        )
    except ValidationError as e:
        problems = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        raise ConfigurationError(f"invalid configuration: {problems}") from e
