"""Shared test fixtures for specval.

Provides the petstore fixture documents (raw and parsed), an isolated
config environment, output-state management and a CLI runner. These
fixtures are discovered by pytest and available to every test module.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Callable

import pytest

from specval.dialects import parse_document
from specval.models import OpenAPI30Document, OpenAPI31Document, SwaggerDocument
from specval.output import OutputFormat, OutputManager, reset_output, set_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams and the
    test finishes, the cached references go stale. Resetting forces a fresh
    manager on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Raw document fixtures (plain dicts loaded from JSON files)
# ---------------------------------------------------------------------------


def load_fixture(name: str) -> dict[str, Any]:
    with open(FIXTURES_DIR / name, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def petstore_20_raw() -> dict[str, Any]:
    """Load raw petstore Swagger 2.0 dict."""
    return load_fixture("petstore_2.0.json")


@pytest.fixture
def petstore_30_raw() -> dict[str, Any]:
    """Load raw petstore 3.0 dict."""
    return load_fixture("petstore_3.0.json")


@pytest.fixture
def petstore_31_raw() -> dict[str, Any]:
    """Load raw petstore 3.1 dict."""
    return load_fixture("petstore_3.1.json")


@pytest.fixture
def edit() -> Callable[[dict[str, Any], Callable[[dict[str, Any]], None]], dict[str, Any]]:
    """Return a helper that deep-copies a raw document and applies a mutation."""

    def _edit(raw: dict[str, Any], mutate: Callable[[dict[str, Any]], None]) -> dict[str, Any]:
        changed = copy.deepcopy(raw)
        mutate(changed)
        return changed

    return _edit


# ---------------------------------------------------------------------------
# Parsed document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_20(petstore_20_raw: dict[str, Any]) -> SwaggerDocument:
    return parse_document(petstore_20_raw)


@pytest.fixture
def petstore_30(petstore_30_raw: dict[str, Any]) -> OpenAPI30Document:
    return parse_document(petstore_30_raw)


@pytest.fixture
def petstore_31(petstore_31_raw: dict[str, Any]) -> OpenAPI31Document:
    return parse_document(petstore_31_raw)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME at a subdirectory of tmp_path, forces the XDG
    layout, clears all SPECVAL_* environment variables and changes the
    working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("specval.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for var in ("SPECVAL_IGNORE", "SPECVAL_DIALECT"):
        monkeypatch.delenv(var, raising=False)

    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
