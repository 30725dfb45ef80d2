from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional

from . import __version__
from .bridge import list_channels, run_backfill, serve
from .config import BridgeSettings, load_settings
from .mailbox.errors import ConfigurationError
from .provision import ProvisionError, ProvisionRequest, parse_mounts, provision_all, render_provision
from .util.obslog import setup_root_json_logging


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, ensure_ascii=False, indent=2))


def _settings(args: argparse.Namespace) -> BridgeSettings:
    settings = load_settings()
    if getattr(args, "task_root", None):
        settings = settings.model_copy(update={"task_root": Path(args.task_root).expanduser().resolve()})
    setup_root_json_logging(component="scribe", level=settings.log_level)
    return settings


def _connect_and_run(args: argparse.Namespace, runner) -> int:
    try:
        settings = _settings(args)
        settings.require_token()
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    try:
        result = asyncio.run(runner(settings))
    except ConnectionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    if result is not None:
        _print_json({"ok": True, "result": result})
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    return _connect_and_run(args, serve)


def cmd_backfill(args: argparse.Namespace) -> int:
    return _connect_and_run(args, run_backfill)


def _render_all(req: ProvisionRequest, settings: BridgeSettings, maximus_dir: str) -> int:
    try:
        settings.require_token()
        channels = asyncio.run(list_channels(settings))
    except (ConfigurationError, ConnectionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print("\n---\n".join(provision_all(req, channels, maximus_dir)))
    return 0


def cmd_provision(args: argparse.Namespace) -> int:
    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if not args.all and not (args.name and args.channel):
        print("--name and --channel are required unless --all is given.", file=sys.stderr)
        return 2
    req = ProvisionRequest(
        name=args.name or "all",
        channel=args.channel or "all",
        credentials=args.credentials,
        claude_oauth_token=args.claude_oauth_token,
        anthropic_api_key=args.anthropic_api_key,
        gh_credentials=args.gh_credentials,
        gh_token=args.gh_token,
        ssh=args.ssh,
        codebase=args.codebase or None,
        mounts=parse_mounts(args.mounts),
    )
    maximus_dir = args.maximus_dir or settings.maximus_dir
    try:
        if args.all:
            # Auth switches are checked before connecting.
            req.validate_request()
            return _render_all(req, settings, maximus_dir)
        print(render_provision(req, maximus_dir))
    except ProvisionError as e:
        print(str(e), file=sys.stderr)
        return 2
    return 0


def cmd_version(_: argparse.Namespace) -> int:
    print(__version__)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="scribe", description="Bridge chat conversations to inbox/outbox task files")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_serve = sub.add_parser("serve", help="Write inbound messages to inbox/ and deliver outbox/ replies")
    p_serve.add_argument("--task-root", default="", help="Mailbox root (default: $TASK_ROOT or /tasks)")
    p_serve.set_defaults(func=cmd_serve)

    p_backfill = sub.add_parser("backfill", help="Write every channel's message history to history/ and exit")
    p_backfill.add_argument("--task-root", default="", help="Mailbox root (default: $TASK_ROOT or /tasks)")
    p_backfill.set_defaults(func=cmd_backfill)

    p_prov = sub.add_parser("provision", help="Render a docker-compose stub for a new agent instance")
    p_prov.add_argument("--name", default="", help="Service name suffix (e.g. steward)")
    p_prov.add_argument("--channel", default="", help="Channel for task routing")
    p_prov.add_argument("--all", action="store_true", help="One stub per visible text channel (connects to Discord)")
    p_prov.add_argument("--codebase", default="", help="Absolute path to project dir (empty = no mount)")
    p_prov.add_argument("--mounts", default="", help="Comma-separated host:container[:mode] mounts")
    p_prov.add_argument("--maximus-dir", default="", help="Build context (default: $MAXIMUS_DIR)")
    p_prov.add_argument("--credentials", action="store_true", help="Mount Claude credentials file")
    p_prov.add_argument("--claude-oauth-token", action="store_true", help="Pass CLAUDE_CODE_OAUTH_TOKEN env var")
    p_prov.add_argument("--anthropic-api-key", action="store_true", help="Pass ANTHROPIC_API_KEY env var")
    p_prov.add_argument("--gh-credentials", action="store_true", help="Mount GitHub CLI credentials")
    p_prov.add_argument("--gh-token", action="store_true", help="Pass GH_TOKEN env var")
    p_prov.add_argument("--ssh", action="store_true", help="Mount SSH key for git push access")
    p_prov.set_defaults(func=cmd_provision)

    p_ver = sub.add_parser("version", help="Show version")
    p_ver.set_defaults(func=cmd_version)
    return p


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
