"""Tests for specval.dialects."""

from __future__ import annotations

from typing import Any

import pytest

from specval.dialects import ADAPTERS, adapter_for, detect_dialect, parse_document
from specval.exceptions import MalformedDocument
from specval.models import Dialect, OpenAPI30Document, OpenAPI31Document, SwaggerDocument
from specval.options import Options


def _raw(key: str, version: Any) -> dict[str, Any]:
    return {key: version, "info": {"title": "T", "version": "1"}, "paths": {}}


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


class TestDetectDialect:
    """The version field picks the dialect."""

    @pytest.mark.parametrize(
        ("key", "version", "expected"),
        [
            ("swagger", "2.0", Dialect.V2),
            ("openapi", "3.0.0", Dialect.V3_0),
            ("openapi", "3.0.3", Dialect.V3_0),
            ("openapi", "3.0", Dialect.V3_0),
            ("openapi", "3.1.0", Dialect.V3_1),
            ("openapi", "3.1.1", Dialect.V3_1),
            ("openapi", "3.1.0-rc1", Dialect.V3_1),
        ],
    )
    def test_supported_versions(self, key: str, version: str, expected: Dialect) -> None:
        assert detect_dialect(_raw(key, version)) == expected

    def test_numeric_version(self) -> None:
        assert detect_dialect(_raw("swagger", 2.0)) == Dialect.V2

    @pytest.mark.parametrize(
        ("key", "version"),
        [("swagger", "1.2"), ("openapi", "2.0"), ("openapi", "3.2.0"), ("openapi", "4.0.0")],
    )
    def test_unsupported_versions(self, key: str, version: str) -> None:
        with pytest.raises(MalformedDocument, match="unsupported version") as exc_info:
            detect_dialect(_raw(key, version))
        assert exc_info.value.path == (key,)

    def test_both_fields(self) -> None:
        raw = _raw("openapi", "3.0.0")
        raw["swagger"] = "2.0"
        with pytest.raises(MalformedDocument, match="both"):
            detect_dialect(raw)

    def test_no_version_field(self) -> None:
        with pytest.raises(MalformedDocument, match="missing 'swagger' or 'openapi'"):
            detect_dialect({"info": {}})

    def test_parse_errors_exit_with_parse_code(self) -> None:
        with pytest.raises(MalformedDocument) as exc_info:
            parse_document({"info": {}})
        assert exc_info.value.exit_code == 7


# ---------------------------------------------------------------------------
# Forcing a dialect
# ---------------------------------------------------------------------------


class TestParseDocument:
    """Building through the adapters."""

    def test_builds_the_right_root(self, petstore_20_raw, petstore_30_raw, petstore_31_raw) -> None:
        assert isinstance(parse_document(petstore_20_raw), SwaggerDocument)
        assert isinstance(parse_document(petstore_30_raw), OpenAPI30Document)
        assert isinstance(parse_document(petstore_31_raw), OpenAPI31Document)

    @pytest.mark.parametrize("dialect", [Dialect.V3_1, "3.1"])
    def test_forced_dialect_that_agrees(self, petstore_31_raw, dialect) -> None:
        assert isinstance(parse_document(petstore_31_raw, dialect=dialect), OpenAPI31Document)

    def test_forced_dialect_that_disagrees(self, petstore_30_raw) -> None:
        with pytest.raises(MalformedDocument, match="declares version '3.0.3', not dialect 3.1"):
            parse_document(petstore_30_raw, dialect="3.1")

    def test_unknown_forced_dialect(self, petstore_30_raw) -> None:
        with pytest.raises(MalformedDocument, match="unknown dialect"):
            parse_document(petstore_30_raw, dialect="4.0")

    def test_root_must_be_mapping(self) -> None:
        with pytest.raises(MalformedDocument, match="must be an object"):
            parse_document(["openapi"])  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Adapter behaviour
# ---------------------------------------------------------------------------


class TestAdapters:
    """Per-dialect differences."""

    def test_one_adapter_per_dialect(self) -> None:
        assert set(ADAPTERS) == set(Dialect)
        for dialect, adapter in ADAPTERS.items():
            assert adapter.dialect == dialect
            assert adapter_for(dialect.value) is adapter

    def test_unknown_dialect(self) -> None:
        with pytest.raises(ValueError):
            adapter_for("1.0")

    def test_swagger_options(self) -> None:
        options = adapter_for(Dialect.V2).applicable_options
        assert Options.IGNORE_UNUSED_SCHEMAS in options
        assert Options.IGNORE_UNUSED_REQUEST_BODIES not in options
        assert Options.IGNORE_UNUSED_SERVER_VARIABLES not in options

    def test_openapi_options(self) -> None:
        assert Options.IGNORE_UNUSED_PATH_ITEMS not in adapter_for(Dialect.V3_0).applicable_options
        assert Options.IGNORE_UNUSED_PATH_ITEMS in adapter_for(Dialect.V3_1).applicable_options
        assert Options.IGNORE_UNUSED_CALLBACKS in adapter_for(Dialect.V3_0).applicable_options

    def test_entry_points_include_webhooks(self, petstore_31) -> None:
        paths = [path for path, _ in adapter_for(Dialect.V3_1).iter_entry_points(petstore_31)]
        assert paths == [("paths", "/pets"), ("paths", "/pets/{petId}"), ("webhooks", "newPet")]

    def test_entry_points_without_webhooks(self, petstore_30) -> None:
        paths = [path for path, _ in adapter_for(Dialect.V3_0).iter_entry_points(petstore_30)]
        assert paths == [("paths", "/pets"), ("paths", "/pets/{petId}")]
