"""Config commands -- view and modify the global configuration.

Provides the ``specval config`` sub-command group. ``show`` prints the
effective configuration after precedence resolution; ``set`` and ``reset``
edit the global file (:class:`~specval.config.ValidationConfig`). Project
files (``specval.json``) are edited by hand and committed with the API
description they apply to.
"""

from __future__ import annotations

import typer

from specval.commands import fail
from specval.exceptions import InvalidUsageError, SpecvalError
from specval.output import format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration.

    Example::

        specval config show
        specval --json config show
    """
    from specval.config import find_project_config, global_config_path, resolve_config

    try:
        config = resolve_config()
    except SpecvalError as exc:
        fail(exc)

    project = find_project_config()
    info(f"Global config: {global_config_path()}")
    info(f"Project config: {project if project is not None else '-'}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key: 'ignore' or 'dialect'."),
    value: str = typer.Argument(
        help="Comma-separated option names for 'ignore'; 2.0, 3.0, 3.1 or '' for 'dialect'."
    ),
) -> None:
    """Set a value in the global configuration.

    The updated config is validated before it is saved, so unknown option
    names and dialects are rejected.

    Example::

        specval config set ignore ignore-unused,ignore-missing-tags
        specval config set dialect 3.1
        specval config set dialect ''
    """
    from pydantic import ValidationError

    from specval.config import ValidationConfig, load_global_config, save_global_config

    try:
        config = load_global_config()
        data = config.model_dump(mode="json")
        if key == "ignore":
            data["ignore"] = [name.strip() for name in value.split(",") if name.strip()]
        elif key == "dialect":
            data["dialect"] = value or None
        else:
            raise InvalidUsageError(f"Unknown config key: {key}")

        try:
            new_config = ValidationConfig.model_validate(data)
        except ValidationError as exc:
            raise InvalidUsageError(f"Invalid value for {key}: {exc}") from None
        new_config.options()
        save_global_config(new_config)
    except SpecvalError as exc:
        fail(exc)

    success(f"Set {key} = {value}")


@config_app.command("reset")
def config_reset(
    ctx: typer.Context,
) -> None:
    """Reset the global configuration to defaults.

    Asks for confirmation unless ``--force`` is active.

    Example::

        specval config reset
        specval --force config reset
    """
    from specval.config import ValidationConfig, save_global_config

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset global config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(ValidationConfig())
    success("Configuration reset to defaults.")
