"""
Provisioning: render a docker-compose service stub for a new agent instance
bound to one channel. Input is validated before rendering; problems are
reported as a user-facing message (ProvisionError), never a traceback.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from .contracts.v1 import ConversationInfo
from .mailbox.errors import ScribeError

_NAME = re.compile(r"^[a-z0-9-]+$", re.IGNORECASE)
_NAME_DROP = re.compile(r"[^A-Za-z0-9-]")
_MOUNT = re.compile(r"^[^:]+:[^:]+(:[a-z]+)?$")


class ProvisionError(ScribeError, ValueError):
    pass


class ProvisionRequest(BaseModel):
    name: str
    channel: str
    credentials: bool = False
    claude_oauth_token: bool = False
    anthropic_api_key: bool = False
    gh_credentials: bool = False
    gh_token: bool = False
    ssh: bool = False
    codebase: Optional[str] = None
    mounts: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    def validate_request(self) -> None:
        if not _NAME.match(self.name or ""):
            raise ProvisionError("Invalid name: only alphanumeric characters and hyphens are allowed.")
        if not (self.channel or "").strip():
            raise ProvisionError("A channel is required.")
        if not (self.credentials or self.claude_oauth_token or self.anthropic_api_key):
            raise ProvisionError(
                "At least one Claude auth method is required: "
                "`credentials`, `claude-oauth-token`, or `anthropic-api-key`."
            )
        invalid = next((m for m in self.mounts if not _MOUNT.match(m)), None)
        if invalid is not None:
            raise ProvisionError(f"Invalid mount format: `{invalid}`. Expected `host:container[:mode]`.")
        if self.codebase and not self.codebase.startswith("/"):
            raise ProvisionError(f"Invalid codebase: `{self.codebase}` must be an absolute path.")


def parse_mounts(raw: Optional[str]) -> List[str]:
    return [m.strip() for m in (raw or "").split(",") if m.strip()]


def _service(req: ProvisionRequest, maximus_dir: str) -> Dict[str, Any]:
    environment: Dict[str, str] = {"AGENT_NAME": req.name, "CHANNEL": req.channel}
    if req.claude_oauth_token:
        environment["CLAUDE_CODE_OAUTH_TOKEN"] = "${CLAUDE_CODE_OAUTH_TOKEN}"
    if req.anthropic_api_key:
        environment["ANTHROPIC_API_KEY"] = "${ANTHROPIC_API_KEY}"
    if req.gh_token:
        environment["GH_TOKEN"] = "${GH_TOKEN}"

    volumes: List[str] = [f"./tasks/discord/{req.channel}:/tasks"]
    if req.credentials:
        volumes.append("~/.claude/.credentials.json:/home/agent/.claude/.credentials.json:ro")
    if req.gh_credentials:
        volumes.append("~/.config/gh:/home/agent/.config/gh:ro")
    if req.ssh:
        volumes.append("~/.ssh:/home/agent/.ssh:ro")
    if req.codebase:
        volumes.append(f"{req.codebase}:/workspace")
    volumes.extend(req.mounts)

    return {
        "build": maximus_dir,
        "restart": "unless-stopped",
        "environment": environment,
        "volumes": volumes,
    }


def render_provision(req: ProvisionRequest, maximus_dir: str) -> str:
    """Validate and render; raises ProvisionError with a readable message."""
    req.validate_request()
    doc = {"services": {f"artifex-{req.name}": _service(req, maximus_dir)}}
    stub = yaml.safe_dump(doc, allow_unicode=True, sort_keys=False, default_flow_style=False).strip()
    try:
        yaml.safe_load(stub)
    except yaml.YAMLError as e:
        raise ProvisionError(f"Generated YAML is invalid: {e}") from e
    return stub


def provision_all(auth: ProvisionRequest, conversations: Iterable[ConversationInfo], maximus_dir: str) -> List[str]:
    """One stub per channel; name and channel come from the channel, auth switches from `auth`."""
    channels = list(conversations)
    if not channels:
        raise ProvisionError("No visible text channels found.")
    stubs: List[str] = []
    for conv in channels:
        name = _NAME_DROP.sub("", conv.display_name) or _NAME_DROP.sub("", conv.id)
        req = auth.model_copy(update={"name": name, "channel": conv.id, "codebase": None, "mounts": []})
        stubs.append(render_provision(req, maximus_dir))
    return stubs
