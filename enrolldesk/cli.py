"""
CLI (Command Line Interface).

This module provides quick terminal commands for scripting and for testing, e.g.:

    enrolldesk list courses --search CS101 --page 2
    enrolldesk show students 12
    enrolldesk delete courses 7
    enrolldesk login --email a@b.com
    enrolldesk register --first-name Ada --last-name Lovelace --email ada@uni.edu
    enrolldesk whoami
    enrolldesk logout
    enrolldesk interactive

Note:
- The interactive UI lives in enrolldesk/interactive.py
- This CLI is intentionally simple and prints plain text (no rich formatting)
- Exit codes: 0 ok, 1 user/validation/server error, 2 unknown command
"""

from __future__ import annotations

import argparse
import getpass
from typing import Any

from enrolldesk.app import AppContext, build_context
from enrolldesk.config import load_settings
from enrolldesk.errors import AuthError, ConsoleError, ValidationError
from enrolldesk.forms import TITLES, AuthForm
from enrolldesk.logging_config import setup_logging
from enrolldesk.model import (
    COURSE,
    INSTRUCTOR,
    KINDS,
    EntityKind,
    Record,
    can_manage,
    course_status,
    kind_by_name,
    principal_name,
)


def _safe_str(x: Any) -> str:
    return "" if x is None else str(x)


def _row_label(kind: EntityKind, r: Record) -> str:
    """
    One-line summary of a record for plain-text listings.
    """
    rid = _safe_str(kind.record_id(r))
    if kind is COURSE:
        bits = [
            rid,
            _safe_str(r.get("course_code")),
            _safe_str(r.get("course_name")),
            f"{_safe_str(r.get('enrolled_count') or 0)}/{_safe_str(r.get('max_capacity'))}",
            course_status(r),
        ]
    elif kind is INSTRUCTOR:
        bits = [rid, principal_name(r), _safe_str(r.get("email")), _safe_str(r.get("department"))]
    else:
        name = f"{_safe_str(r.get('first_name'))} {_safe_str(r.get('last_name'))}".strip()
        bits = [rid, name, _safe_str(r.get("email"))]
    return " | ".join(b for b in bits if b)


def _resolve_kind(name: str) -> EntityKind | None:
    kind = kind_by_name(name)
    if kind is None:
        print(f"Unknown resource '{name}'. Choose one of: {', '.join(KINDS)}")
    return kind


def _print_validation(exc: ValidationError) -> None:
    print(exc.message)
    for field, msg in exc.errors.items():
        print(f"- {field}: {msg}")


def _cmd_list(args: argparse.Namespace, ctx: AppContext) -> int:
    kind = _resolve_kind(args.resource)
    if kind is None:
        return 1
    if args.page < 1 or args.limit < 1:
        print("--page and --limit must be positive.")
        return 1

    try:
        page = ctx.client(kind).list(page=args.page, page_size=args.limit, search=args.search or "")
    except ConsoleError as exc:
        print(f"Failed to fetch {kind.plural}: {exc.message}")
        return 1

    if not page.items:
        print("No results.")
    for r in page.items:
        print(_row_label(kind, r))
    print(f"page {page.page}/{page.page_count} | {page.total} {kind.plural}")
    return 0


def _cmd_show(args: argparse.Namespace, ctx: AppContext) -> int:
    kind = _resolve_kind(args.resource)
    if kind is None:
        return 1

    try:
        record = ctx.client(kind).get_by_id(args.id)
    except ConsoleError as exc:
        print(exc.message)
        return 1

    if not isinstance(record, dict):
        print("No data.")
        return 1
    for key, value in record.items():
        print(f"{key}: {_safe_str(value)}")
    return 0


def _cmd_delete(args: argparse.Namespace, ctx: AppContext) -> int:
    kind = _resolve_kind(args.resource)
    if kind is None:
        return 1
    client = ctx.client(kind)

    try:
        record = client.get_by_id(args.id)
    except ConsoleError as exc:
        print(exc.message)
        return 1

    if not can_manage(ctx.store.current_principal(), record or {}, kind):
        print(f"You can only delete your own {kind.plural}.")
        return 1

    if not args.yes:
        sure = input(f"Are you sure you want to delete this {kind.name} ({args.id})? [y/N]: ")
        if sure.strip().lower() != "y":
            print("Cancelled.")
            return 0

    try:
        client.delete_by_id(args.id)
    except ConsoleError as exc:
        print(exc.message)
        return 1

    print(f"{kind.label} deleted successfully")
    return 0


def _cmd_login(args: argparse.Namespace, ctx: AppContext) -> int:
    password = args.password if args.password is not None else getpass.getpass("Password: ")
    try:
        session = AuthForm(ctx.store).login({"email": args.email, "password": password})
    except ValidationError as exc:
        _print_validation(exc)
        return 1
    except AuthError as exc:
        print(exc.message)
        return 1

    print("Login successful")
    if not ctx.store.is_authenticated():
        print("Warning: the session could not be saved; you are not logged in.")
        return 1
    print(f"Logged in as {principal_name(session.principal)}")
    return 0


def _cmd_register(args: argparse.Namespace, ctx: AppContext) -> int:
    password = args.password if args.password is not None else getpass.getpass("Password: ")
    profile = {
        "title": args.title,
        "first_name": args.first_name,
        "last_name": args.last_name,
        "email": args.email,
        "password": password,
        "department": args.department,
        "phone": args.phone,
    }
    try:
        AuthForm(ctx.store, mode="register").register({k: v for k, v in profile.items() if v is not None})
    except ValidationError as exc:
        _print_validation(exc)
        return 1
    except AuthError as exc:
        print(exc.message)
        return 1

    print("Registration successful! Please login.")
    return 0


def _cmd_logout(args: argparse.Namespace, ctx: AppContext) -> int:
    if not ctx.store.logout():
        print("Logged out for now, but the saved session could not be removed.")
        return 1
    print("Logged out successfully")
    return 0


def _cmd_whoami(args: argparse.Namespace, ctx: AppContext) -> int:
    principal = ctx.store.current_principal()
    if not principal:
        print("Not logged in.")
        return 0
    print(f"{principal_name(principal)} (instructor_id={_safe_str(principal.get('instructor_id'))})")
    dept = _safe_str(principal.get("department"))
    if dept:
        print(f"Department: {dept}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="enrolldesk", description="Student enrollment admin console")
    parser.add_argument("--api-url", type=str, default=None, help="API base URL (overrides ENROLLDESK_API_URL)")
    sub = parser.add_subparsers(dest="command", required=True)

    resources = ", ".join(KINDS)

    p_list = sub.add_parser("list", help="List one page of records")
    p_list.add_argument("resource", type=str, help=f"One of: {resources}")
    p_list.add_argument("--page", type=int, default=1, help="Page number (default 1)")
    p_list.add_argument("--limit", type=int, default=None, help="Page size (default ENROLLDESK_PAGE_SIZE or 10)")
    p_list.add_argument("--search", type=str, default="", help="Search text")

    p_show = sub.add_parser("show", help="Show one record")
    p_show.add_argument("resource", type=str, help=f"One of: {resources}")
    p_show.add_argument("id", type=str, help="Record id")

    p_delete = sub.add_parser("delete", help="Delete one record")
    p_delete.add_argument("resource", type=str, help=f"One of: {resources}")
    p_delete.add_argument("id", type=str, help="Record id")
    p_delete.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    p_login = sub.add_parser("login", help="Login as instructor")
    p_login.add_argument("--email", type=str, required=True)
    p_login.add_argument("--password", type=str, default=None, help="Prompted when omitted")

    p_register = sub.add_parser("register", help="Register a new instructor (does not log in)")
    p_register.add_argument("--title", type=str, default="Mr.", choices=TITLES)
    p_register.add_argument("--first-name", type=str, required=True)
    p_register.add_argument("--last-name", type=str, required=True)
    p_register.add_argument("--email", type=str, required=True)
    p_register.add_argument("--password", type=str, default=None, help="Prompted when omitted")
    p_register.add_argument("--department", type=str, default=None)
    p_register.add_argument("--phone", type=str, default=None)

    sub.add_parser("logout", help="Forget the stored session")
    sub.add_parser("whoami", help="Show the logged-in instructor")
    sub.add_parser("interactive", help="Interactive menu mode")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings(api_url=args.api_url)
    setup_logging(settings.log_level, settings.log_path)
    ctx = build_context(settings)

    if args.command == "list":
        if args.limit is None:
            args.limit = settings.page_size
        raise SystemExit(_cmd_list(args, ctx))
    if args.command == "show":
        raise SystemExit(_cmd_show(args, ctx))
    if args.command == "delete":
        raise SystemExit(_cmd_delete(args, ctx))
    if args.command == "login":
        raise SystemExit(_cmd_login(args, ctx))
    if args.command == "register":
        raise SystemExit(_cmd_register(args, ctx))
    if args.command == "logout":
        raise SystemExit(_cmd_logout(args, ctx))
    if args.command == "whoami":
        raise SystemExit(_cmd_whoami(args, ctx))

    if args.command == "interactive":
        from enrolldesk.interactive import run_interactive

        run_interactive(ctx)
        raise SystemExit(0)

    raise SystemExit(2)
