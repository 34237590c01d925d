"""Numeric process exit codes.

Every failure path ends in exactly one of these codes. The mapping from
error kind to code lives in :data:`topicli.reporter.POLICIES`; this module
only names the numbers so that shell wrappers and tests can refer to them.

Example::

    $ topicli user get nobody
    $ echo $?
    1   # EXIT_FAILURE -- the user does not exist
"""

EXIT_SUCCESS = 0
"""The command completed and its output was flushed."""

EXIT_FAILURE = 1
"""A classified failure: auth, validation, not found, API, or an unresolved command."""

EXIT_INTERNAL_ERROR = 2
"""An unexpected failure, or a command tree that could not be built."""

EXIT_CANCELLED = 130
"""The user interrupted the command (Ctrl-C)."""
