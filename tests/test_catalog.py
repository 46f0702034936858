"""Tests for the node catalog loader."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from pipeline_builder.catalog import Catalog, load_catalog, parse_catalog
from pipeline_builder.core.exceptions import CatalogError


class TestBundledCatalog:
    """Tests for the catalog shipped with the package."""

    def test_loads(self) -> None:
        """The bundled dataset parses into categories."""
        catalog = load_catalog()

        assert isinstance(catalog, Catalog)
        assert len(catalog) > 10
        assert catalog.categories[0].title == "Source Control"

    def test_core_templates_present(self) -> None:
        """Checkout and run templates carry their defaults."""
        catalog = load_catalog()

        checkout = catalog.find("checkout")
        assert checkout is not None
        assert checkout.config["repository"] == "actions/checkout@v4"
        assert catalog.find("run").config["run"] == ""

    def test_types_are_unique(self) -> None:
        """No two templates share a type."""
        types = [template.type for template in load_catalog().templates()]
        assert len(types) == len(set(types))

    def test_find_unknown(self) -> None:
        """Unknown types return ``None``."""
        assert load_catalog().find("teleport") is None


class TestParseCatalog:
    """Tests for catalog validation."""

    def test_minimal(self) -> None:
        """A category with one template is enough."""
        catalog = parse_catalog({"nodeCategories": [{"title": "Misc", "nodes": [{"type": "x", "name": "X"}]}]})

        assert [c.title for c in catalog.categories] == ["Misc"]
        assert catalog.find("x").name == "X"

    def test_duplicate_type_keeps_first(self) -> None:
        """Lookups return the first template of a type."""
        catalog = parse_catalog(
            {
                "nodeCategories": [
                    {"title": "A", "nodes": [{"type": "x", "name": "First"}]},
                    {"title": "B", "nodes": [{"type": "x", "name": "Second"}]},
                ]
            }
        )

        assert catalog.find("x").name == "First"
        assert len(catalog) == 1
        assert len(catalog.templates()) == 2

    @pytest.mark.parametrize(
        "data",
        [
            [],
            {"categories": []},
            {"nodeCategories": ["oops"]},
            {"nodeCategories": [{"title": "A", "nodes": [{"name": "no type"}]}]},
        ],
    )
    def test_bad_shapes_rejected(self, data: object) -> None:
        """Malformed documents raise ``CatalogError``."""
        with pytest.raises(CatalogError):
            parse_catalog(data)


class TestLoadCatalogFile:
    """Tests for loading a catalog from disk."""

    def test_custom_file(self, tmp_path: Path) -> None:
        """A catalog file on disk replaces the bundled one."""
        path = tmp_path / "nodes.json"
        path.write_text(json.dumps({"nodeCategories": [{"title": "Mine", "nodes": [{"type": "lint"}]}]}))

        catalog = load_catalog(path)

        assert catalog.find("lint").name == "lint"

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file raises ``CatalogError``."""
        with pytest.raises(CatalogError, match="Cannot read"):
            load_catalog(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        """Unparsable JSON raises ``CatalogError``."""
        path = tmp_path / "nodes.json"
        path.write_text("{")

        with pytest.raises(CatalogError):
            load_catalog(path)
