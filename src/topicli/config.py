"""Configuration with XDG paths and precedence resolution.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.topicli/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- a single :class:`~topicli.models.GlobalConfig` JSON
  file.
* **Precedence resolution** -- :func:`resolve_settings` merges CLI flags,
  environment variables, the config file and defaults into a
  :class:`~topicli.models.Settings` snapshot.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Optional, TextIO

from pydantic import ValidationError

from topicli.exceptions import TypedError
from topicli.models import GlobalConfig, Settings
from topicli.output import OutputFormat, is_tty, should_disable_color

_APP_NAME = "topicli"
_CONFIG_FILENAME = "config.json"

ENV_FORMAT = "TOPICLI_FORMAT"
ENV_COLOR = "TOPICLI_COLOR"
ENV_LOCAL = "TOPICLI_LOCAL"
ENV_DEBUG = "TOPICLI_DEBUG"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Whether topicli keeps its config and crash logs in XDG directories (Linux, BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Single ``~/.topicli`` directory holding config and data on macOS and Windows."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Base directory named by *env_var*, or *default_segments* under the home directory.

    An empty variable counts as unset, so ``XDG_DATA_HOME=`` falls back to
    ``~/.local/share`` and crash logs still land somewhere predictable.
    """
    configured = os.environ.get(env_var)
    if configured:
        return Path(configured)
    return Path.home().joinpath(*default_segments)


def get_config_dir() -> Path:
    """Return the configuration directory (not created).

    On Linux/BSD: ``$XDG_CONFIG_HOME/topicli/`` (default ``~/.config/topicli/``).
    On macOS/Windows: ``~/.topicli/``.
    """
    if _is_xdg_platform():
        return _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    return _fallback_base_dir()


def get_data_dir() -> Path:
    """Return the data directory (not created).

    On Linux/BSD: ``$XDG_DATA_HOME/topicli/`` (default ``~/.local/share/topicli/``).
    On macOS/Windows: ``~/.topicli/data/``.
    """
    if _is_xdg_platform():
        return _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    return _fallback_base_dir() / "data"


def get_crash_dir() -> Path:
    """Directory for crash logs written on internal errors."""
    return get_data_dir() / "logs"


# --- Global config ---


def global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config(path: Optional[Path] = None) -> GlobalConfig:
    """Load the global configuration.

    Args:
        path: Config file to read; defaults to :func:`global_config_path`.

    Returns:
        The deserialised :class:`~topicli.models.GlobalConfig`, or a
        default instance when the file does not exist.

    Raises:
        TypedError: ``VALIDATION`` if the file is not valid JSON or does not
            match the schema.
    """
    path = path if path is not None else global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as exc:
        raise TypedError.validation(
            f"Invalid config file: {exc}", context={"path": str(path)}
        ) from exc


# --- Precedence resolution ---


def resolve_settings(
    cli_format: Optional[str] = None,
    cli_color: Optional[bool] = None,
    cli_local: Optional[bool] = None,
    cli_debug: Optional[bool] = None,
    config: Optional[GlobalConfig] = None,
    stream: Optional[TextIO] = None,
) -> Settings:
    """Resolve the effective settings for one invocation.

    Precedence per option (high to low):
        1. CLI flags (``cli_*`` arguments; ``None`` means "not given")
        2. Environment variables (``TOPICLI_FORMAT``, ``TOPICLI_COLOR``,
           ``NO_COLOR``, ``TERM=dumb``, ``TOPICLI_LOCAL``, ``TOPICLI_DEBUG``)
        3. The config file (*config*, loaded if not supplied)
        4. Defaults

    Colour is forced off when *stream* (default stdout) is not a TTY.

    Raises:
        TypedError: ``VALIDATION`` for an unknown format name or an
            unparseable boolean environment variable.
    """
    if config is None:
        config = load_global_config()

    format_name = config.output.format
    env_format = os.environ.get(ENV_FORMAT)
    if env_format:
        format_name = env_format
    if cli_format is not None:
        format_name = cli_format
    try:
        output_format = OutputFormat.parse(format_name)
    except ValueError as exc:
        raise TypedError.validation(
            str(exc), context={"accepted": ", ".join(f.value for f in OutputFormat)}
        ) from exc

    color = config.output.color
    env_color = _env_bool(ENV_COLOR)
    if env_color is not None:
        color = env_color
    if should_disable_color():
        color = False
    if cli_color is not None:
        color = cli_color
    if not is_tty(stream):
        color = False

    local_mode = _first(cli_local, _env_bool(ENV_LOCAL), config.local_mode)
    debug = _first(cli_debug, _env_bool(ENV_DEBUG), config.debug)

    return Settings(
        format=output_format,
        color=color,
        local_mode=local_mode,
        debug=debug,
        login_command=config.login_command,
    )


def _first(*values: Optional[bool]) -> bool:
    for value in values:
        if value is not None:
            return value
    return False


def _env_bool(name: str) -> Optional[bool]:
    """Parse a boolean environment variable; ``None`` when unset."""
    raw = os.environ.get(name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise TypedError.validation(
        f"Environment variable {name} must be a boolean, got '{raw}'",
        context={"accepted": "1, true, yes, on, 0, false, no, off"},
    )
