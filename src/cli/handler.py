from __future__ import annotations

import argparse
import getpass
import json
import logging
import sys
from typing import Any, Dict, List, Optional, TextIO

from authclient.settings import Settings
from authstate.controller import AuthController
from authstate.models import Route


logger = logging.getLogger(__name__)


def _parse_fields(pairs: List[str]) -> Dict[str, Any]:
    """Turn repeated `key=value` arguments into a registration payload."""
    out: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"Expected key=value, got {pair!r}")
        out[key] = value
    return out


def _registration_payload(args: argparse.Namespace) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    if args.data:
        try:
            data = json.loads(args.data)
        except ValueError as exc:
            raise ValueError(f"--data is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError("--data must be a JSON object")
        payload.update(data)
    payload.update(_parse_fields(args.field or []))
    if not payload:
        raise ValueError("Provide registration data with --data or --field")
    return payload


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="auth-session",
        description="Log in, log out and inspect the stored session against the auth backend.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("whoami", help="Resolve the stored token and print the current user")

    p_login = sub.add_parser("login", help="Exchange credentials for a session")
    p_login.add_argument("--username", required=True)
    p_login.add_argument("--password", help="Prompted for when omitted")

    sub.add_parser("logout", help="Forget the stored session (no backend call)")

    p_reg = sub.add_parser("register", help="Create an account (does not log in)")
    p_reg.add_argument("--data", help="Registration payload as a JSON object")
    p_reg.add_argument("--field", action="append", metavar="KEY=VALUE", help="Registration field; repeatable")
    return parser


def run_command(args: argparse.Namespace, controller: AuthController, out: TextIO) -> int:
    """Execute one parsed command against `controller`; returns the exit code."""
    if args.command == "whoami":
        session = controller.initialize()
        if not session.is_logged_in:
            print("Not logged in.", file=out)
            return 1
        print(json.dumps(session.user, indent=2, sort_keys=True), file=out)
        return 0

    if args.command == "login":
        password = args.password if args.password is not None else getpass.getpass("Password: ")
        result = controller.login(args.username, password)
    elif args.command == "logout":
        controller.logout()
        return 0
    elif args.command == "register":
        try:
            payload = _registration_payload(args)
        except ValueError as exc:
            print(f"error: {exc}", file=out)
            return 2
        result = controller.register(payload)
    else:  # pragma: no cover - argparse restricts choices
        raise ValueError(f"Unknown command: {args.command}")

    if not result.ok:
        print(f"error: {result.message}", file=out)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Console entry point (`auth-session`).

    Environment:
    - AUTH_BACKEND_URL (fallback BACKEND_URL, default http://localhost:3000)
    - AUTH_STORAGE_PATH (default .cache/session.json), AUTH_FERNET_KEY, AUTH_HTTP_TIMEOUT
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    out = sys.stdout

    def navigate(route: Route) -> None:
        print(f"-> {route.value}", file=out)

    try:
        settings = Settings.from_env()
    except RuntimeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    with AuthController.from_settings(settings, navigate=navigate) as controller:
        return run_command(args, controller, out)


if __name__ == "__main__":
    sys.exit(main())
