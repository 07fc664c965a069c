"""Options command -- list every option flag and preset.

Shows the kebab-case name accepted by ``--ignore``, ``SPECVAL_IGNORE`` and
config files, the dialects where the flag can change a result and, for
presets, the flags they expand to.
"""

from __future__ import annotations

from specval.options import PRESETS, Options, option_name, option_names
from specval.output import get_output


def options_command() -> None:
    """List option flags and presets.

    Example::

        specval options
        specval --json options
    """
    from specval.dialects import ADAPTERS

    def dialects_for(option: Options) -> str:
        applies = [
            adapter.dialect.value
            for adapter in ADAPTERS.values()
            if option & adapter.applicable_options
        ]
        return ", ".join(applies)

    rows: list[list[str]] = []
    for member in Options:
        if member is Options.NONE or member in PRESETS:
            continue
        rows.append([option_name(member), "flag", dialects_for(member), "-"])
    for preset in PRESETS:
        rows.append([
            option_name(preset),
            "preset",
            dialects_for(preset),
            ", ".join(option_names(preset)),
        ])

    get_output().print_table(["Name", "Type", "Dialects", "Expands to"], rows, title="Options")
