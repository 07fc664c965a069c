"""Configuration management with XDG paths, atomic writes, and precedence resolution.

specval reads two optional JSON files, both deserialised into
:class:`ValidationConfig`:

* **Global config** -- ``$XDG_CONFIG_HOME/specval/config.json`` (default
  ``~/.config/specval/config.json``) on Linux/BSD, ``~/.specval/config.json``
  elsewhere. Written by ``specval config set``.
* **Project config** -- ``specval.json``, found by searching from the
  current directory upwards. A repository pins its accepted opt-outs here.

:func:`resolve_config` merges them with the ``SPECVAL_IGNORE`` and
``SPECVAL_DIALECT`` environment variables and the CLI flags. Each setting
is taken from the highest-precedence layer that sets it; layers do not
accumulate.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`).
"""

from __future__ import annotations

import json
import logging
import os
import platform
import tempfile
from pathlib import Path
from typing import Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from specval.exceptions import ConfigError, InvalidUsageError
from specval.options import Options, parse_options

logger = logging.getLogger(__name__)

_APP_NAME = "specval"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "specval.json"

IGNORE_ENV = "SPECVAL_IGNORE"
DIALECT_ENV = "SPECVAL_DIALECT"

DialectName = Literal["2.0", "3.0", "3.1"]


class ValidationConfig(BaseModel):
    """Defaults for ``specval validate``, as stored in a config file.

    ``ignore`` holds option names (``ignore-missing-tags``, presets, ...) and
    ``dialect`` forces a dialect instead of detecting it.
    """

    model_config = ConfigDict(extra="forbid")

    ignore: list[str] = Field(default_factory=list, description="Option names to switch off")
    dialect: Optional[DialectName] = Field(default=None, description="Force 2.0, 3.0 or 3.1")

    def options(self) -> Options:
        """Combine ``ignore`` into a single :class:`~specval.options.Options` value.

        Raises:
            InvalidUsageError: If a name is unknown.
        """
        return parse_options(self.ignore)


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/specval/`` (default ``~/.config/specval/``).
    On macOS/Windows: ``~/.specval/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On failure the temp
    file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Reading config files ---


def _read_config(path: Path, label: str) -> ValidationConfig:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        config = ValidationConfig.model_validate(data)
    except (json.JSONDecodeError, ValidationError, OSError) as exc:
        raise ConfigError(f"Invalid {label} config at {path}: {exc}") from exc
    try:
        config.options()
    except InvalidUsageError as exc:
        raise ConfigError(f"Invalid {label} config at {path}: {exc}") from exc
    return config


def global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> ValidationConfig:
    """Load the global configuration.

    Returns:
        The stored :class:`ValidationConfig`, or a default instance when the
        file does not exist.

    Raises:
        ConfigError: If the file is not valid JSON, has unknown keys or names
            an unknown option.
    """
    path = global_config_path()
    if not path.is_file():
        return ValidationConfig()
    return _read_config(path, "global")


def save_global_config(config: ValidationConfig) -> None:
    """Persist the global configuration atomically."""
    data = config.model_dump(mode="json")
    _atomic_write(global_config_path(), json.dumps(data, indent=2) + "\n")


def find_project_config(start: Optional[Path] = None) -> Optional[Path]:
    """Return the nearest ``specval.json`` at or above *start* (default: cwd)."""
    directory = (start or Path.cwd()).resolve()
    for candidate in (directory, *directory.parents):
        path = candidate / _PROJECT_CONFIG_FILENAME
        if path.is_file():
            return path
    return None


def load_project_config(start: Optional[Path] = None) -> Optional[ValidationConfig]:
    """Load the nearest project config, or ``None`` when there is none.

    Raises:
        ConfigError: If the file exists but is invalid.
    """
    path = find_project_config(start)
    if path is None:
        return None
    logger.debug("Using project config %s", path)
    return _read_config(path, "project")


# --- Precedence resolution ---


def resolve_config(
    cli_ignore: Optional[Sequence[str]] = None,
    cli_dialect: Optional[str] = None,
) -> ValidationConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. CLI flags (``--ignore``, ``--dialect``)
        2. Environment variables (``SPECVAL_IGNORE`` comma-separated,
           ``SPECVAL_DIALECT``)
        3. Project config (nearest ``specval.json``)
        4. Global config (``~/.config/specval/config.json``)
        5. Defaults (no opt-outs, dialect detected)

    Raises:
        ConfigError: If a config file or environment variable is invalid.
        InvalidUsageError: If a CLI flag names an unknown option or dialect.
    """
    ignore: list[str] = []
    dialect: Optional[str] = None

    for layer in (load_global_config(), load_project_config()):
        if layer is None:
            continue
        if layer.ignore:
            ignore = list(layer.ignore)
        if layer.dialect is not None:
            dialect = layer.dialect

    env_ignore = os.environ.get(IGNORE_ENV)
    if env_ignore:
        ignore = [name for name in env_ignore.split(",") if name.strip()]
    env_dialect = os.environ.get(DIALECT_ENV)
    if env_dialect:
        dialect = env_dialect

    try:
        env_resolved = ValidationConfig(ignore=ignore, dialect=dialect)
        env_resolved.options()
    except (ValidationError, InvalidUsageError) as exc:
        raise ConfigError(f"Invalid {IGNORE_ENV}/{DIALECT_ENV} environment: {exc}") from exc

    if cli_ignore:
        ignore = list(cli_ignore)
    if cli_dialect is not None:
        dialect = cli_dialect

    try:
        resolved = ValidationConfig(ignore=ignore, dialect=dialect)
    except ValidationError:
        raise InvalidUsageError(
            f"Unknown dialect '{dialect}'. Expected one of: 2.0, 3.0, 3.1."
        ) from None
    resolved.options()
    return resolved
