"""Shared test fixtures for topicli.

Provides a small sample command tree (``user`` and ``team`` topics), an
application wired to it, in-memory output streams, and isolated config
environments. These fixtures are automatically discovered by pytest and
available to all test modules without explicit imports.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any

import pytest

from topicli.advisor import FollowupAdvisor
from topicli.app import Application
from topicli.exceptions import TypedError
from topicli.models import Settings
from topicli.output import OutputFormat
from topicli.registry import Argument, CommandRegistry, Flag


USERS = [
    {"id": "u1", "username": "alice", "email": "alice@example.com"},
    {"id": "u2", "username": "bob", "email": "bob@example.com"},
]


# ---------------------------------------------------------------------------
# Sample command tree
# ---------------------------------------------------------------------------


def build_sample_registry() -> tuple[CommandRegistry, FollowupAdvisor]:
    """A registry resembling a server admin CLI, plus its follow-ups."""
    registry = CommandRegistry()
    advisor = FollowupAdvisor()

    registry.topic("user", summary="Manage users.", aliases=["users"])
    registry.topic("team", summary="Manage teams.")

    @registry.command("user", "list", aliases=["ls"], local_capable=True)
    def user_list(args: list[Any], flags: dict[str, Any]) -> Any:
        """List users."""
        return [dict(u) for u in USERS]

    @registry.command(
        "user",
        "create",
        summary="Create a user.",
        flags=[
            Flag("email", help="Email address.", required=True),
            Flag("admin", help="Grant admin rights.", is_flag=True),
        ],
        arguments=[Argument("username", help="Login name.")],
        examples=["topicli user create bob --email bob@example.com"],
    )
    def user_create(args: list[Any], flags: dict[str, Any]) -> Any:
        return {"id": "u3", "username": args[0], "email": flags["email"], "admin": flags["admin"]}

    @registry.command(
        "user",
        "get",
        summary="Show one user.",
        arguments=[Argument("username")],
        render_human=lambda r: f"{r['username']} <{r['email']}>",
    )
    def user_get(args: list[Any], flags: dict[str, Any]) -> Any:
        for user in USERS:
            if user["username"] == args[0]:
                return dict(user)
        return TypedError.not_found("user not found", context={"username": args[0]})

    @registry.command("user", "whoami", summary="Show the logged-in user.")
    def user_whoami(args: list[Any], flags: dict[str, Any]) -> Any:
        return None, TypedError.auth("cannot read credentials")

    @registry.command("user", "purge", summary="Delete every user.")
    def user_purge(args: list[Any], flags: dict[str, Any]) -> Any:
        raise RuntimeError("database exploded")

    @registry.command("team", "list", summary="List teams.", local_capable=True)
    def team_list(args: list[Any], flags: dict[str, Any]) -> Any:
        return [{"id": "t1", "name": "core"}]

    advisor.add(["user", "create"], ["topicli user get <username>"])
    registry.seal()
    return registry, advisor


@pytest.fixture
def sample_registry() -> CommandRegistry:
    registry, _ = build_sample_registry()
    return registry


@pytest.fixture
def application(tmp_path: Path) -> Application:
    """Application over the sample tree, writing crash logs under tmp_path."""
    registry, advisor = build_sample_registry()
    return Application(registry, advisor, crash_dir=tmp_path / "crash")


@pytest.fixture
def sample_app(application: Application, monkeypatch: pytest.MonkeyPatch) -> Application:
    """Make the Typer entry point run the sample tree instead of discovering providers."""
    monkeypatch.setattr("topicli.app.build_application", lambda config=None: application)
    return application


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def streams() -> tuple[io.StringIO, io.StringIO]:
    """In-memory ``(stdout, stderr)`` pair."""
    return io.StringIO(), io.StringIO()


@pytest.fixture
def human_settings() -> Settings:
    return Settings(format=OutputFormat.HUMAN, color=False)


@pytest.fixture
def json_settings() -> Settings:
    return Settings(format=OutputFormat.STRUCTURED, color=False)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config, clears every environment
    variable that influences settings, and changes the working directory to
    tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("topicli.config._is_xdg_platform", lambda: True)

    for var in [
        "TOPICLI_FORMAT",
        "TOPICLI_COLOR",
        "TOPICLI_LOCAL",
        "TOPICLI_DEBUG",
        "NO_COLOR",
        "TERM",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
