"""Node catalog — the static set of action templates shown in the palette."""

from pipeline_builder.catalog.loader import Catalog, NodeCategory, load_catalog, parse_catalog

__all__ = ["Catalog", "NodeCategory", "load_catalog", "parse_catalog"]
