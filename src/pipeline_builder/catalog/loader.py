"""Node catalog loader — reads the palette's template dataset."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

from pipeline_builder.core.datatypes import NodeTemplate
from pipeline_builder.core.exceptions import CatalogError

logger = logging.getLogger(__name__)

BUNDLED_CATALOG = "nodes.json"


@dataclass(frozen=True)
class NodeCategory:
    """A titled group of templates shown together in the palette."""

    title: str
    templates: tuple[NodeTemplate, ...]


class Catalog:
    """Read-only collection of node templates grouped by category.

    Args:
        categories: Categories in display order.
    """

    def __init__(self, categories: tuple[NodeCategory, ...]) -> None:
        """Initialise the catalog and index templates by type.

        Args:
            categories: Categories in display order.
        """
        self._categories = categories
        self._by_type: dict[str, NodeTemplate] = {}
        for category in categories:
            for template in category.templates:
                self._by_type.setdefault(template.type, template)

    @property
    def categories(self) -> tuple[NodeCategory, ...]:
        """Return the categories in display order."""
        return self._categories

    def templates(self) -> list[NodeTemplate]:
        """Return every template, category by category."""
        return [template for category in self._categories for template in category.templates]

    def find(self, node_type: str) -> NodeTemplate | None:
        """Look up a template by its type tag.

        Args:
            node_type: The template's ``type`` (e.g. ``"checkout"``).

        Returns:
            The template, or ``None`` if the catalog has no such type.
        """
        return self._by_type.get(node_type)

    def __len__(self) -> int:
        return len(self._by_type)


def parse_catalog(data: Any) -> Catalog:
    """Build a ``Catalog`` from the decoded JSON document.

    Raises:
        CatalogError: If the document does not have the expected shape.
    """
    if not isinstance(data, dict) or not isinstance(data.get("nodeCategories"), list):
        msg = "Catalog must be an object with a 'nodeCategories' list"
        raise CatalogError(msg)

    categories: list[NodeCategory] = []
    for index, raw_category in enumerate(data["nodeCategories"]):
        if not isinstance(raw_category, dict) or not isinstance(raw_category.get("nodes"), list):
            msg = f"Category #{index} must be an object with a 'nodes' list"
            raise CatalogError(msg)
        templates: list[NodeTemplate] = []
        for raw_node in raw_category["nodes"]:
            if not isinstance(raw_node, dict) or not raw_node.get("type"):
                msg = f"Category '{raw_category.get('title', index)}' holds a node without a 'type'"
                raise CatalogError(msg)
            templates.append(NodeTemplate.from_payload(raw_node))
        categories.append(NodeCategory(title=str(raw_category.get("title", "")), templates=tuple(templates)))
    return Catalog(tuple(categories))


def load_catalog(path: Path | None = None) -> Catalog:
    """Load a node catalog from *path*, or the bundled one.

    Args:
        path: A catalog JSON file.  ``None`` loads the catalog shipped with
              the package.

    Returns:
        The parsed catalog.

    Raises:
        CatalogError: If the file cannot be read or parsed.
    """
    try:
        if path is None:
            text = resources.files("pipeline_builder.catalog").joinpath(BUNDLED_CATALOG).read_text(encoding="utf-8")
            source = "bundled catalog"
        else:
            text = path.read_text(encoding="utf-8")
            source = str(path)
        data = json.loads(text)
    except (OSError, json.JSONDecodeError) as exc:
        msg = f"Cannot read node catalog: {exc}"
        raise CatalogError(msg) from exc

    catalog = parse_catalog(data)
    logger.info("Loaded %d node templates from %s", len(catalog), source)
    return catalog
