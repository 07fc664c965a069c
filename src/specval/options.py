"""Combinable flags that switch individual validation rule families off.

:class:`Options` is an :class:`enum.Flag`, so flags combine with ``|`` and
the result is commutative and idempotent::

    opts = Options.IGNORE_MISSING_TAGS | Options.IGNORE_EXTERNAL_REFERENCES
    assert Options.IGNORE_MISSING_TAGS in opts

``Options.NONE`` (no flag set) is the strictest validation. A rule is active
unless its flag is present, so forgetting to pass options never weakens a
check.

Names on the command line and in config files are the kebab-case form of
the member names (``ignore-missing-tags``). Presets such as
``ignore-unused-components`` expand to several flags.

``ignore-unused`` covers every unused-component flag, reusable path items
included, plus unused tags and server variables. Some validators leave path
items out of that preset and skip the unused-path-item check by default;
here ``Options.NONE`` reports them like any other unused component.
"""

from __future__ import annotations

import enum
from typing import Iterable

from specval.exceptions import InvalidUsageError


class Options(enum.Flag):
    """Opt-out flags for the validation engine. Each member disables one rule family."""

    NONE = 0

    # Reference integrity
    IGNORE_EXTERNAL_REFERENCES = 1 << 0

    # Uniqueness
    IGNORE_NON_UNIQUE_OPERATION_IDS = 1 << 1
    IGNORE_DUPLICATE_PARAMETERS = 1 << 2
    IGNORE_DUPLICATE_TAGS = 1 << 3

    # Declared vs used
    IGNORE_MISSING_TAGS = 1 << 4
    IGNORE_UNDECLARED_SECURITY_SCHEMES = 1 << 5

    # Schema well-formedness
    IGNORE_EMPTY_COMPOSITIONS = 1 << 6
    IGNORE_MISPLACED_DISCRIMINATORS = 1 << 7
    IGNORE_DANGLING_REQUIRED_PROPERTIES = 1 << 8

    # Unused artifacts
    IGNORE_UNUSED_TAGS = 1 << 9
    IGNORE_UNUSED_SCHEMAS = 1 << 10
    IGNORE_UNUSED_PARAMETERS = 1 << 11
    IGNORE_UNUSED_RESPONSES = 1 << 12
    IGNORE_UNUSED_REQUEST_BODIES = 1 << 13
    IGNORE_UNUSED_HEADERS = 1 << 14
    IGNORE_UNUSED_SECURITY_SCHEMES = 1 << 15
    IGNORE_UNUSED_EXAMPLES = 1 << 16
    IGNORE_UNUSED_LINKS = 1 << 17
    IGNORE_UNUSED_CALLBACKS = 1 << 18
    IGNORE_UNUSED_PATH_ITEMS = 1 << 19
    IGNORE_UNUSED_SERVER_VARIABLES = 1 << 20

    # Required fields and URLs
    IGNORE_EMPTY_INFO_TITLE = 1 << 21
    IGNORE_EMPTY_INFO_VERSION = 1 << 22
    IGNORE_EMPTY_RESPONSE_DESCRIPTION = 1 << 23
    IGNORE_EMPTY_EXTERNAL_DOCUMENTATION_URL = 1 << 24
    IGNORE_INVALID_URLS = 1 << 25

    # Presets (multi-flag aliases)
    IGNORE_UNUSED_COMPONENTS = (
        IGNORE_UNUSED_SCHEMAS
        | IGNORE_UNUSED_PARAMETERS
        | IGNORE_UNUSED_RESPONSES
        | IGNORE_UNUSED_REQUEST_BODIES
        | IGNORE_UNUSED_HEADERS
        | IGNORE_UNUSED_SECURITY_SCHEMES
        | IGNORE_UNUSED_EXAMPLES
        | IGNORE_UNUSED_LINKS
        | IGNORE_UNUSED_CALLBACKS
        | IGNORE_UNUSED_PATH_ITEMS
    )
    IGNORE_UNUSED = (
        IGNORE_UNUSED_COMPONENTS | IGNORE_UNUSED_TAGS | IGNORE_UNUSED_SERVER_VARIABLES
    )
    IGNORE_EMPTY_REQUIRED_FIELDS = (
        IGNORE_EMPTY_INFO_TITLE
        | IGNORE_EMPTY_INFO_VERSION
        | IGNORE_EMPTY_RESPONSE_DESCRIPTION
        | IGNORE_EMPTY_EXTERNAL_DOCUMENTATION_URL
    )
    IGNORE_SCHEMA_RULES = (
        IGNORE_EMPTY_COMPOSITIONS
        | IGNORE_MISPLACED_DISCRIMINATORS
        | IGNORE_DANGLING_REQUIRED_PROPERTIES
    )


PRESETS: tuple[Options, ...] = (
    Options.IGNORE_UNUSED_COMPONENTS,
    Options.IGNORE_UNUSED,
    Options.IGNORE_EMPTY_REQUIRED_FIELDS,
    Options.IGNORE_SCHEMA_RULES,
)
"""Multi-flag members, listed separately by ``specval options``."""


def option_name(option: Options) -> str:
    """Return the kebab-case name of a single member or preset."""
    assert option.name is not None
    return option.name.lower().replace("_", "-")


def _by_name() -> dict[str, Options]:
    names = {option_name(member): member for member in Options if member is not Options.NONE}
    names.update({option_name(preset): preset for preset in PRESETS})
    return names


def parse_options(names: Iterable[str]) -> Options:
    """Combine option names into a single :class:`Options` value.

    Accepts member names and preset names in kebab-case or upper snake case
    (``ignore-missing-tags`` or ``IGNORE_MISSING_TAGS``). Duplicates are
    harmless.

    Raises:
        InvalidUsageError: If any name is unknown.
    """
    known = _by_name()
    result = Options.NONE
    for raw in names:
        key = raw.strip().lower().replace("_", "-")
        if not key:
            continue
        if key not in known:
            raise InvalidUsageError(
                f"Unknown option '{raw}'. Run 'specval options' to list valid names."
            )
        result |= known[key]
    return result


def option_names(options: Options) -> list[str]:
    """Return the kebab-case names of every single flag set in *options*."""
    return [option_name(member) for member in Options if member in options and member is not Options.NONE]
