"""Tests for topicli.reporter.

Covers:
- The policy table covers every error kind
- Per-kind rendering: message, context, status, remediation, exit code
- Generic internal message, debug detail and crash logs
- Unresolved commands: suggestions and topic listings
- Nothing is ever written to stdout
"""

from __future__ import annotations

import io

import pytest

from topicli.exceptions import ErrorKind, TypedError
from topicli.exit_codes import EXIT_CANCELLED, EXIT_FAILURE, EXIT_INTERNAL_ERROR
from topicli.output import Printer
from topicli.registry import Argument, Action, Flag, Unresolved, UnresolvedReason
from topicli.reporter import INTERNAL_MESSAGE, POLICIES, ErrorReporter, write_crash_log


@pytest.fixture
def capture():
    out, err = io.StringIO(), io.StringIO()
    return Printer(stdout=out, stderr=err), out, err


def _create_action(examples=()):
    return Action(
        name="create",
        handler=lambda args, flags: None,
        flags=(Flag("email", required=True),),
        arguments=(Argument("username"),),
        examples=tuple(examples),
    )


class TestPolicies:
    def test_every_kind_has_a_policy(self):
        assert set(POLICIES) == set(ErrorKind)

    @pytest.mark.parametrize(
        ("kind", "code"),
        [
            (ErrorKind.AUTH, EXIT_FAILURE),
            (ErrorKind.VALIDATION, EXIT_FAILURE),
            (ErrorKind.NOT_FOUND, EXIT_FAILURE),
            (ErrorKind.API, EXIT_FAILURE),
            (ErrorKind.CANCELLED, EXIT_CANCELLED),
            (ErrorKind.INTERNAL, EXIT_INTERNAL_ERROR),
        ],
    )
    def test_exit_codes(self, capture, kind, code):
        printer, out, _ = capture
        assert ErrorReporter(printer).report(TypedError(kind, "x")) == code
        assert out.getvalue() == ""


class TestReport:
    def test_auth_suggests_login(self, capture):
        printer, _, err = capture
        code = ErrorReporter(printer).report(TypedError.auth("cannot read credentials"))
        assert code == EXIT_FAILURE
        assert err.getvalue().splitlines() == [
            "Error: cannot read credentials",
            "Try: topicli auth login",
        ]

    def test_auth_login_command_configurable(self, capture):
        printer, _, err = capture
        reporter = ErrorReporter(printer, prog="mmctl", login_command="login --sso")
        reporter.report(TypedError.auth("expired"))
        assert "Try: mmctl login --sso" in err.getvalue()

    def test_explicit_remediation_wins(self, capture):
        printer, _, err = capture
        ErrorReporter(printer).report(TypedError.auth("expired", remediation="topicli token refresh"))
        assert "Try: topicli token refresh" in err.getvalue()
        assert "auth login" not in err.getvalue()

    def test_validation_uses_first_example(self, capture):
        printer, _, err = capture
        action = _create_action(examples=["topicli user create bob --email b@x.io"])
        ErrorReporter(printer).report(
            TypedError.validation("Missing option '--email'."),
            path=("user", "create"),
            action=action,
        )
        assert err.getvalue().splitlines() == [
            "Error: Missing option '--email'.",
            "Try: topicli user create bob --email b@x.io",
        ]

    def test_validation_falls_back_to_usage(self, capture):
        printer, _, err = capture
        ErrorReporter(printer).report(
            TypedError.validation("bad"), path=("user", "create"), action=_create_action()
        )
        assert "Try: topicli user create [OPTIONS] USERNAME" in err.getvalue()

    def test_validation_without_action_has_no_remediation(self, capture):
        printer, _, err = capture
        ErrorReporter(printer).report(TypedError.validation("bad", context={"field": "email"}))
        assert err.getvalue().splitlines() == ["Error: bad", "  field: email"]

    def test_not_found_shows_context(self, capture):
        printer, _, err = capture
        ErrorReporter(printer).report(
            TypedError.not_found("user not found", context={"username": "carol"})
        )
        assert err.getvalue().splitlines() == ["Error: user not found", "  username: carol"]

    def test_api_shows_status(self, capture):
        printer, _, err = capture
        ErrorReporter(printer).report(TypedError.api("HTTP 502: bad gateway", status=502))
        assert err.getvalue().splitlines() == ["Error: HTTP 502: bad gateway", "  status: 502"]

    def test_cancelled(self, capture):
        printer, _, err = capture
        code = ErrorReporter(printer).report(KeyboardInterrupt())
        assert code == EXIT_CANCELLED
        assert err.getvalue() == "Error: Cancelled.\n"

    def test_internal_hides_detail(self, capture):
        printer, _, err = capture
        code = ErrorReporter(printer).report(RuntimeError("database exploded"))
        assert code == EXIT_INTERNAL_ERROR
        assert err.getvalue() == f"Error: {INTERNAL_MESSAGE}\n"

    def test_internal_detail_in_debug(self, capture):
        printer, _, err = capture
        ErrorReporter(printer, debug=True).report(RuntimeError("database exploded"))
        assert err.getvalue() == f"Error: {INTERNAL_MESSAGE} database exploded\n"

    def test_internal_writes_crash_log(self, capture, tmp_path):
        printer, _, err = capture
        try:
            raise RuntimeError("database exploded")
        except RuntimeError as exc:
            ErrorReporter(printer, crash_dir=tmp_path / "logs").report(exc)

        logs = list((tmp_path / "logs").glob("crash-*.log"))
        assert len(logs) == 1
        assert "RuntimeError: database exploded" in logs[0].read_text()
        assert f"Debug log: {logs[0]}" in err.getvalue()

    def test_context_not_shown_for_auth(self, capture):
        printer, _, err = capture
        ErrorReporter(printer).report(TypedError.auth("no", context={"secret": "x"}))
        assert "secret" not in err.getvalue()


class TestReportUnresolved:
    def test_unknown_with_suggestions(self, capture):
        printer, out, err = capture
        result = Unresolved(
            reason=UnresolvedReason.UNKNOWN, path=("user",), token="lsit", suggestions=("list",)
        )
        assert ErrorReporter(printer).report_unresolved(result) == EXIT_FAILURE
        assert err.getvalue().splitlines() == [
            'Error: unknown command "lsit" for "topicli user"',
            "",
            "Did you mean this?",
            "  list",
            "",
            "Run 'topicli user --help' for usage.",
        ]
        assert out.getvalue() == ""

    def test_unknown_without_suggestions(self, capture):
        printer, _, err = capture
        result = Unresolved(reason=UnresolvedReason.UNKNOWN, path=(), token="xyzzy")
        ErrorReporter(printer).report_unresolved(result)
        assert "Did you mean" not in err.getvalue()
        assert 'unknown command "xyzzy" for "topicli"' in err.getvalue()

    def test_incomplete_lists_children(self, capture, sample_registry):
        printer, _, err = capture
        result = sample_registry.resolve(["team"])
        ErrorReporter(printer).report_unresolved(result, sample_registry.children(["team"]))
        assert err.getvalue().splitlines() == [
            'Error: "topicli team" requires a command',
            "",
            "Available commands:",
            "  list  List teams.",
            "",
            "Run 'topicli team --help' for usage.",
        ]

    def test_incomplete_at_root(self, capture):
        printer, _, err = capture
        result = Unresolved(reason=UnresolvedReason.INCOMPLETE, path=())
        ErrorReporter(printer).report_unresolved(result)
        assert err.getvalue().startswith("Error: no command given\n")


class TestWriteCrashLog:
    def test_unwritable_directory(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        assert write_crash_log(RuntimeError("x"), blocker / "logs") is None
