"""Tests for topicli.help.

Covers:
- Usage lines for actions with and without options/arguments
- Action help sections (arguments, flags, local mode, examples)
- Topic help listing children in registration order
"""

from __future__ import annotations

import pytest

from topicli.help import render_action_help, render_topic_help, usage_line
from topicli.registry import Action, Argument, CommandRegistry, Flag


def _action(**kwargs):
    return Action(name="create", handler=lambda args, flags: None, **kwargs)


class TestUsageLine:
    def test_bare(self):
        assert usage_line("topicli", ["user", "list"], _action()) == "Usage: topicli user list"

    def test_options_and_arguments(self):
        action = _action(
            flags=(Flag("email"),),
            arguments=(
                Argument("username"),
                Argument("roles", required=False, nargs=-1),
            ),
        )
        assert usage_line("topicli", ["user", "create"], action) == (
            "Usage: topicli user create [OPTIONS] USERNAME [ROLES...]"
        )


class TestActionHelp:
    def test_sections(self, sample_registry):
        action = sample_registry.find(["user", "create"])
        text = render_action_help("topicli", ["user", "create"], action)
        assert text.splitlines() == [
            "Usage: topicli user create [OPTIONS] USERNAME",
            "",
            "Create a user.",
            "",
            "Arguments:",
            "  USERNAME  Login name.",
            "",
            "Flags:",
            "  --email TEXT  Email address. [required]",
            "  --admin       Grant admin rights.",
            "",
            "Examples:",
            "  topicli user create bob --email bob@example.com",
        ]

    def test_local_capable_note(self, sample_registry):
        action = sample_registry.find(["user", "list"])
        text = render_action_help("topicli", ["user", "list"], action)
        assert "This command can run in local mode (--local)." in text

    def test_flag_notes(self):
        action = _action(
            flags=(
                Flag("limit", type=int, default=20, short="n"),
                Flag("tag", multiple=True, metavar="NAME"),
            )
        )
        text = render_action_help("topicli", ["x"], action)
        assert "-n, --limit INTEGER  [default: 20]" in text
        assert "--tag NAME" in text
        assert "[repeatable]" in text


class TestTopicHelp:
    def test_root(self, sample_registry):
        text = render_topic_help("topicli", sample_registry)
        assert text.splitlines() == [
            "Usage: topicli <command> [ARGS]...",
            "",
            "Commands:",
            "  user  Manage users.",
            "  team  Manage teams.",
            "",
            "Run 'topicli <command> --help' for details.",
        ]

    def test_nested_topic_lists_actions_in_order(self, sample_registry):
        text = render_topic_help("topicli", sample_registry, ["user"])
        lines = text.splitlines()
        assert lines[0] == "Usage: topicli user <command> [ARGS]..."
        assert lines[2] == "Manage users."
        commands = [line.split()[0] for line in lines[5:10]]
        assert commands == ["list", "create", "get", "whoami", "purge"]
        assert "users" not in text.split("Commands:")[1].split()

    def test_empty_topic(self):
        registry = CommandRegistry()
        assert "No commands available." in render_topic_help("topicli", registry)

    def test_not_a_topic(self, sample_registry):
        with pytest.raises(ValueError):
            render_topic_help("topicli", sample_registry, ["user", "list"])
