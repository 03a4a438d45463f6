"""
Name: Platform Bootstrap CLI

Responsibilities:
  - status: show whether the platform is bootstrapped
  - superadmin: one-shot creation of the first SUPER_ADMIN (shared secret)
  - tenant: provision a tenant (runs as the SYSTEM actor)
  - tenant-admin: provision the TENANT_ADMIN of an existing tenant

Notes:
  - Passwords and the bootstrap secret are prompted securely when omitted.
  - Errors are printed as RFC 7807 problem payloads on stderr.
  - Without DATABASE_URL every command runs against in-memory repositories
    (nothing survives the process).
"""

from __future__ import annotations

import argparse
import getpass
import sys
from typing import Callable, Sequence
from uuid import uuid4

from ... import container
from ...application.usecases.bootstrap import (
    BootstrapPlatformInput,
    CreateTenantAdminInput,
    CreateTenantInput,
)
from ...context import clear_context, set_request_context
from ...crosscutting.config import get_settings
from ...crosscutting.error_responses import problem_from_error, problem_from_exception
from ...crosscutting.exceptions import ComplianceError
from ...domain.scope import Actor, ActorScope

EXIT_OK = 0
EXIT_ERROR = 1


def _prompt_secret(label: str, *, confirm: bool = False) -> str:
    value = getpass.getpass(f"{label}: ")
    if not value:
        raise SystemExit(f"{label} is required.")
    if confirm and getpass.getpass(f"Confirm {label.lower()}: ") != value:
        raise SystemExit(f"{label}s do not match.")
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="compliance-bootstrap",
        description="Bootstrap the platform and provision tenants.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Show bootstrap status")

    superadmin = sub.add_parser("superadmin", help="Create the first super admin")
    superadmin.add_argument("--email", required=True)
    superadmin.add_argument("--display-name", required=True)
    superadmin.add_argument(
        "--password", help="Password (omit to be prompted securely)"
    )
    superadmin.add_argument(
        "--secret", help="Bootstrap secret (omit to be prompted securely)"
    )

    tenant = sub.add_parser("tenant", help="Create a tenant")
    tenant.add_argument("--slug", required=True)
    tenant.add_argument("--name", required=True)

    tenant_admin = sub.add_parser("tenant-admin", help="Create a tenant admin")
    tenant_admin.add_argument("--tenant-slug", required=True)
    tenant_admin.add_argument("--email", required=True)
    tenant_admin.add_argument("--display-name", required=True)
    tenant_admin.add_argument(
        "--password", help="Password (omit to be prompted securely)"
    )
    return parser


def _fail(error) -> int:
    print(problem_from_error(error).to_json(), file=sys.stderr)
    return EXIT_ERROR


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------
def _cmd_status(args: argparse.Namespace) -> int:
    result = container.get_bootstrap_status_use_case().execute()
    status = result.status
    print(
        f"bootstrapped={str(status.bootstrapped).lower()} "
        f"super_admin_exists={str(status.super_admin_exists).lower()}"
    )
    return EXIT_OK


def _cmd_superadmin(args: argparse.Namespace) -> int:
    secret = args.secret or _prompt_secret("Bootstrap secret")
    password = args.password or _prompt_secret("Password", confirm=True)
    result = container.get_bootstrap_platform_use_case().execute(
        BootstrapPlatformInput(
            secret=secret,
            email=args.email,
            display_name=args.display_name,
            password=password,
        )
    )
    if result.error is not None:
        return _fail(result.error)
    print(f"Created super admin: id={result.user_id}")
    return EXIT_OK


def _cmd_tenant(args: argparse.Namespace) -> int:
    result = container.get_create_tenant_use_case().execute(
        CreateTenantInput(actor=Actor.system(), slug=args.slug, name=args.name)
    )
    if result.error is not None:
        return _fail(result.error)
    print(f"Created tenant: id={result.tenant.id} slug={result.tenant.slug}")
    return EXIT_OK


def _cmd_tenant_admin(args: argparse.Namespace) -> int:
    password = args.password or _prompt_secret("Password", confirm=True)
    result = container.get_create_tenant_admin_use_case().execute(
        CreateTenantAdminInput(
            actor=Actor.system(),
            tenant_slug=args.tenant_slug,
            email=args.email,
            display_name=args.display_name,
            password=password,
        )
    )
    if result.error is not None:
        return _fail(result.error)
    print(
        f"Created tenant admin: id={result.user.id} tenant_id={result.user.tenant_id}"
    )
    return EXIT_OK


_COMMANDS: dict[str, Callable[[argparse.Namespace], int]] = {
    "status": _cmd_status,
    "superadmin": _cmd_superadmin,
    "tenant": _cmd_tenant,
    "tenant-admin": _cmd_tenant_admin,
}


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()

    pool_started = False
    if container.use_postgres():
        from ...infrastructure.db.pool import close_pool, init_pool

        init_pool(
            settings.database_url,
            settings.db_pool_min_size,
            settings.db_pool_max_size,
        )
        pool_started = True
    else:
        print(
            "DATABASE_URL not configured: using in-memory repositories.",
            file=sys.stderr,
        )

    set_request_context(request_id=str(uuid4()), actor_scope=ActorScope.SYSTEM.value)
    try:
        return _COMMANDS[args.command](args)
    except ComplianceError as exc:
        print(problem_from_exception(exc).to_json(), file=sys.stderr)
        return EXIT_ERROR
    finally:
        clear_context()
        if pool_started:
            close_pool()


if __name__ == "__main__":
    sys.exit(main())
