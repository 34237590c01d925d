"""Pydantic models for configuration.

**Persisted configuration** -- :class:`GlobalConfig` and its parts are
serialised as JSON in the user's config directory and loaded by
:func:`~topicli.config.load_global_config`.

**Resolved settings** -- :class:`Settings` is the read-only snapshot
produced by :func:`~topicli.config.resolve_settings` once per invocation,
after flags, environment variables, the config file and defaults have been
merged.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from topicli.output import OutputFormat


class OutputConfig(BaseModel):
    """Default output preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default=OutputFormat.HUMAN.value,
        description="Output format: human, structured (json), tabular (table)",
    )
    color: bool = Field(default=True, description="Use colour on interactive terminals")

    @field_validator("format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        return OutputFormat.parse(value).value


class PluginsConfig(BaseModel):
    """Explicit allow/deny lists for command providers."""

    enabled: list[str] = Field(default_factory=list)
    disabled: list[str] = Field(default_factory=list)


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/topicli/config.json``.

    Fields here have the lowest precedence apart from the built-in defaults;
    see :func:`~topicli.config.resolve_settings`.
    """

    output: OutputConfig = Field(default_factory=OutputConfig)
    local_mode: bool = Field(
        default=False, description="Run commands against the local resource"
    )
    debug: bool = False
    login_command: str = Field(
        default="auth login",
        description="Command (without the program name) suggested on auth failures",
    )
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)


class Settings(BaseModel):
    """Effective options for one invocation. Immutable."""

    model_config = ConfigDict(frozen=True)

    format: OutputFormat = OutputFormat.HUMAN
    color: bool = False
    local_mode: bool = False
    debug: bool = False
    login_command: str = "auth login"
