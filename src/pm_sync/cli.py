"""Command-line interface for pm-sync.

Usage:
    pm-sync init-config                      # Create config file
    pm-sync login --email me@example.com     # Sign in and store the token
    pm-sync projects --status active         # List projects
    pm-sync notifications --mark-all-read    # List notifications
    pm-sync watch                            # Stream notifications as they arrive
    pm-sync --help                           # Show help

Every command prints JSON on stdout; logs go to stderr.
"""

import asyncio
import contextlib
import json
import signal
import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path
from typing import Any

import click
import tomli_w

from pm_sync import __version__
from pm_sync.app import SyncApp
from pm_sync.config import Settings, get_config_path, load_settings_with_toml
from pm_sync.core.events import Toast
from pm_sync.core.projects import get_project_progress
from pm_sync.core.state import OperationResult
from pm_sync.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


class ErrorCategory:
    """Error categories for CLI error messages."""

    CONFIGURATION = "configuration"
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    BACKEND = "backend"


def format_error(category: str, message: str, remediation: str) -> str:
    """Format error with category and remediation."""
    return f"""
Error [{category.upper()}]: {message}

Remediation: {remediation}
"""


def get_default_config() -> dict[str, Any]:
    """Default configuration written by init-config."""
    return {
        "api": {
            "base_url": "http://localhost:3000/api",
            "timeout_seconds": 10.0,
        },
        "websocket": {
            "url": "ws://localhost:3001",
            "reconnect_delay_seconds": 5.0,
        },
        "notifications": {
            "poll_interval_seconds": 30.0,
            "list_limit": 50,
        },
        "storage": {
            "path": "~/.local/share/pm-sync/storage.db",
        },
        "server": {
            "log_level": "INFO",
            "log_format": "json",
            "metrics_enabled": False,
            "host": "127.0.0.1",
            "port": 9090,
        },
        "features": {
            "real_time_updates": True,
            "notifications": True,
        },
    }


def emit(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def fail(category: str, message: str, remediation: str) -> None:
    click.echo(format_error(category, message, remediation), err=True)
    sys.exit(1)


def dump(record: Any) -> Any:
    return record.model_dump(mode="json", exclude_none=True) if record is not None else None


def fail_result(result: OperationResult[Any], remediation: str) -> None:
    if result.field_errors:
        details = "\n".join(f"  {field}: {message}" for field, message in result.field_errors.items())
        fail(ErrorCategory.VALIDATION, result.error or "Invalid input", f"Fix these fields:\n{details}")
    fail(ErrorCategory.BACKEND, result.error or "Request failed", remediation)


def load_settings(options: dict[str, Any]) -> Settings:
    config_path = options.get("config_path")
    settings = load_settings_with_toml(
        Path(config_path) if config_path else None,
        log_level=options.get("log_level"),
        api_base_url=options.get("api_url"),
    )
    setup_logging(settings, use_stderr=True)
    return settings


def build_app(settings: Settings) -> SyncApp:
    return SyncApp.from_settings(settings)


@contextlib.asynccontextmanager
async def open_app(
    options: dict[str, Any],
    require_auth: bool = True,
    prepare: Callable[[SyncApp], Any] | None = None,
) -> AsyncIterator[SyncApp]:
    """Start an app without the push channel and close it afterwards.

    ``prepare`` runs before the session is restored, so state it sets (such
    as project filters) is already in place for the refresh that follows login.
    """
    app = build_app(load_settings(options))
    try:
        if prepare is not None:
            prepare(app)
        await app.start(connect_channel=False)
        if require_auth and not app.auth.is_authenticated:
            fail(
                ErrorCategory.AUTHENTICATION,
                "Not signed in or the stored session has expired",
                "Run: pm-sync login",
            )
        yield app
    finally:
        await app.close()


def run(coro_fn: Callable[..., Awaitable[None]], *args: Any) -> None:
    asyncio.run(coro_fn(*args))


@click.group()
@click.option("--config", type=click.Path(exists=False), help="Override global config file path")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Override log level",
)
@click.option("--api-url", type=str, help="Override backend API base URL")
@click.version_option(version=__version__, prog_name="pm-sync")
@click.pass_context
def main(ctx: click.Context, config: str | None, log_level: str | None, api_url: str | None) -> None:
    """Project-management sync client.

    Configuration is loaded from (in priority order):
    1. CLI arguments
    2. Environment variables (PM_SYNC_*)
    3. Global config file (~/.config/pm-sync/config.toml)
    4. Built-in defaults
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["log_level"] = log_level
    ctx.obj["api_url"] = api_url


@main.command()
@click.option("--force", is_flag=True, help="Overwrite an existing file without asking")
@click.pass_context
def init_config(ctx: click.Context, force: bool) -> None:
    """Create the global configuration file with defaults."""
    config_path = Path(ctx.obj.get("config_path") or get_config_path())

    if config_path.exists() and not force:
        click.echo(f"Config file already exists: {config_path}")
        if not click.confirm("Overwrite?"):
            sys.exit(0)

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "wb") as f:
        tomli_w.dump(get_default_config(), f)

    with contextlib.suppress(OSError):
        config_path.chmod(0o600)

    click.echo(f"Created config file: {config_path}")
    click.echo()
    click.echo("Next steps:")
    click.echo("  1. Point api.base_url and websocket.url at your backend")
    click.echo("  2. Sign in: pm-sync login")


@main.command("config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Show effective settings. Secrets are masked."""
    settings = load_settings(ctx.obj)
    emit(settings.model_dump(mode="json"))


@main.command()
@click.option("--email", "identifier", type=str, help="Email or username")
@click.option("--password", type=str, help="Password (prompted when omitted)")
@click.pass_context
def login(ctx: click.Context, identifier: str | None, password: str | None) -> None:
    """Sign in and store the session token."""
    run(_login, ctx.obj, identifier, password)


async def _login(options: dict[str, Any], identifier: str | None, password: str | None) -> None:
    async with open_app(options, require_auth=False) as app:
        identifier = identifier or app.settings.username
        if not identifier:
            identifier = click.prompt("Email")
        if not password:
            password = app.settings.password.get_secret_value() if app.settings.password else None
        if not password:
            password = click.prompt("Password", hide_input=True)

        field = "email" if "@" in identifier else "username"
        result = await app.auth.login({field: identifier, "password": password})
        if not result.success:
            fail_result(result, "Check your credentials and the api.base_url setting")
        emit({"signed_in": True, "user": dump(result.value)})


@main.command()
@click.pass_context
def logout(ctx: click.Context) -> None:
    """Forget the stored session token."""
    run(_logout, ctx.obj)


async def _logout(options: dict[str, Any]) -> None:
    async with open_app(options, require_auth=False) as app:
        await app.auth.logout()
        emit({"signed_in": False})


@main.command()
@click.pass_context
def whoami(ctx: click.Context) -> None:
    """Show the signed-in user."""
    run(_whoami, ctx.obj)


async def _whoami(options: dict[str, Any]) -> None:
    async with open_app(options) as app:
        emit(dump(app.auth.user))


@main.command()
@click.option("--status", type=str, default="", help="Filter by status")
@click.option("--priority", type=str, default="", help="Filter by priority")
@click.option("--search", type=str, default="", help="Case-insensitive name/description search")
@click.pass_context
def projects(ctx: click.Context, status: str, priority: str, search: str) -> None:
    """List projects with derived progress."""
    run(_projects, ctx.obj, status, priority, search)


async def _projects(options: dict[str, Any], status: str, priority: str, search: str) -> None:
    def set_filters(app: SyncApp) -> None:
        app.projects.update_filters(status=status, priority=priority, search=search)

    # Signing in refreshes projects once with these filters
    async with open_app(options, prepare=set_filters) as app:
        if app.projects.error:
            fail(ErrorCategory.BACKEND, app.projects.error, "Check that the backend is reachable")

        emit(
            [
                {**dump(project), "progress": get_project_progress(project)}
                for project in app.projects.get_filtered_projects()
            ]
        )


@main.command()
@click.option("--mark-all-read", is_flag=True, help="Mark every notification as read first")
@click.pass_context
def notifications(ctx: click.Context, mark_all_read: bool) -> None:
    """List notifications."""
    run(_notifications, ctx.obj, mark_all_read)


async def _notifications(options: dict[str, Any], mark_all_read: bool) -> None:
    async with open_app(options) as app:
        controller = app.notifications
        await controller.fetch_notifications()
        if controller.error:
            fail(ErrorCategory.BACKEND, controller.error, "Check that the backend is reachable")

        if mark_all_read:
            result = await controller.mark_all_as_read()
            if not result.success:
                fail_result(result, "Retry later")

        emit(
            {
                "unread": controller.unread_count,
                "notifications": [dump(n) for n in controller.notifications],
            }
        )


@main.command()
@click.option("--email", required=True, help="Invitee email address")
@click.option("--role", default="member", show_default=True, help="member, developer, project_manager or viewer")
@click.option("--project-id", default=None, help="Project to join")
@click.pass_context
def invite(ctx: click.Context, email: str, role: str, project_id: str | None) -> None:
    """Invite someone to the team."""
    run(_invite, ctx.obj, email, role, project_id)


async def _invite(options: dict[str, Any], email: str, role: str, project_id: str | None) -> None:
    async with open_app(options) as app:
        result = await app.invitations.invite(email, role, project_id)
        if not result.success:
            fail_result(result, "Check the email address and your permissions")
        emit(dump(result.value))


@main.command("accept-invite")
@click.option("--token", required=True, help="Token from the invitation link")
@click.option("--username", required=True)
@click.option("--first-name", required=True)
@click.option("--last-name", required=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.pass_context
def accept_invite(
    ctx: click.Context,
    token: str,
    username: str,
    first_name: str,
    last_name: str,
    password: str,
) -> None:
    """Create an account from an invitation."""
    form = {
        "username": username,
        "first_name": first_name,
        "last_name": last_name,
        "password": password,
        "confirm_password": password,
    }
    run(_accept_invite, ctx.obj, token, form)


async def _accept_invite(options: dict[str, Any], token: str, form: dict[str, Any]) -> None:
    async with open_app(options, require_auth=False) as app:
        loaded = await app.invitations.load(token)
        if not loaded.success:
            fail(ErrorCategory.VALIDATION, loaded.error or "Invalid invitation", "Ask for a new invitation")

        result = await app.invitations.accept(form)
        if not result.success:
            fail_result(result, "Retry or ask for a new invitation")
        emit({"accepted": True, "next": "pm-sync login"})


@main.command()
@click.argument("project_id")
@click.option("--add", "add_user", default=None, help="Add this user to the project")
@click.option("--set-role", "role_user", default=None, help="Change this member's role")
@click.option("--remove", "remove_user", default=None, help="Remove this member from the project")
@click.option("--role", default="member", show_default=True, help="member, developer, project_manager or viewer")
@click.pass_context
def team(
    ctx: click.Context,
    project_id: str,
    add_user: str | None,
    role_user: str | None,
    remove_user: str | None,
    role: str,
) -> None:
    """List or change a project's team."""
    run(_team, ctx.obj, project_id, add_user, role_user, remove_user, role)


async def _team(
    options: dict[str, Any],
    project_id: str,
    add_user: str | None,
    role_user: str | None,
    remove_user: str | None,
    role: str,
) -> None:
    async with open_app(options) as app:
        controller = app.team
        if add_user:
            result = await controller.add_member(project_id, add_user, role)
        elif role_user:
            result = await controller.update_member_role(project_id, role_user, role)
        elif remove_user:
            result = await controller.remove_member(project_id, remove_user)
        else:
            members = await controller.fetch_members(project_id)
            if controller.error:
                fail(ErrorCategory.BACKEND, controller.error, "Check the project id and your access")
            emit([dump(m) for m in members])
            return

        if not result.success:
            fail_result(result, "Check the project id and your permissions")
        emit([dump(m) for m in controller.members.get(project_id, [])])


@main.command()
@click.argument("task_id")
@click.option("--add", "content", default=None, help="Post this comment first")
@click.pass_context
def comments(ctx: click.Context, task_id: str, content: str | None) -> None:
    """Show a task's comment thread."""
    run(_comments, ctx.obj, task_id, content)


async def _comments(options: dict[str, Any], task_id: str, content: str | None) -> None:
    async with open_app(options) as app:
        controller = app.comments
        if content is not None:
            result = await controller.add_comment(task_id, content)
            if not result.success:
                fail_result(result, "Check the task id and retry")
            thread = result.value or []
        else:
            thread = await controller.fetch_task_comments(task_id)
            if controller.error:
                fail(ErrorCategory.BACKEND, controller.error, "Check the task id and your access")
        emit([dump(c) for c in thread])


@main.command()
@click.option("--project-id", default=None, help="Only events for this project")
@click.pass_context
def events(ctx: click.Context, project_id: str | None) -> None:
    """List calendar events (placeholders when the backend is unreachable)."""
    run(_events, ctx.obj, project_id)


async def _events(options: dict[str, Any], project_id: str | None) -> None:
    async with open_app(options) as app:
        if project_id:
            items = await app.calendar.get_events_by_project(project_id)
        else:
            await app.calendar.fetch_events()
            if app.calendar.error:
                fail(ErrorCategory.BACKEND, app.calendar.error, "Check the backend events endpoint")
            items = app.calendar.events

        emit({"mode": app.calendar.mode.value, "events": [dump(e) for e in items]})


@main.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Stream notifications as JSON lines until interrupted."""
    with contextlib.suppress(KeyboardInterrupt):
        run(_watch, ctx.obj)


async def _watch(options: dict[str, Any]) -> None:
    async with open_app(options) as app:
        if app.channel is None:
            fail(
                ErrorCategory.CONFIGURATION,
                "Real-time updates are disabled",
                "Set features.real_time_updates = true in config.toml",
            )

        def print_toast(toast: Toast) -> None:
            click.echo(json.dumps({"type": toast.type, "title": toast.title, "message": toast.message}))

        app.toasts.subscribe(print_toast)

        shutdown_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, shutdown_event.set)

        app.channel.start()
        logger.info("watching_notifications", url=app.settings.ws_url)
        await shutdown_event.wait()


if __name__ == "__main__":
    main()
