"""
Catalog context: the read-only reference data every engine call runs against.

Products, processings, processing rules and product dependencies are loaded
once (from JSON, or built directly in tests) and then shared by reference.
Nothing in the engine mutates a catalog; swapping catalogs means building a
new CatalogContext, never editing one.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import ValidationError

from .config import settings
from .errors import ConfigurationError, NotFoundError
from .schemas import (
    Processing,
    ProcessingRule,
    Product,
    ProductDependency,
    RuleKind,
)

logger = logging.getLogger(__name__)


class CatalogContext:
    """Indexed, read-only view over one catalog snapshot."""

    def __init__(self,
                 products: Iterable[Product] = (),
                 processings: Iterable[Processing] = (),
                 rules: Iterable[ProcessingRule] = (),
                 dependencies: Iterable[ProductDependency] = (),
                 version: str = "0.0.0"):
        self.version = version
        self._products = {p.id: p for p in products}
        self._processings = {p.id: p for p in processings}
        # sorted() is stable: equal priorities keep their authoring order
        self._rules = tuple(sorted(rules, key=lambda r: r.priority))
        self._dependencies = tuple(dependencies)

    # --- Products ---

    @property
    def products(self) -> tuple:
        return tuple(self._products.values())

    def product(self, product_id: str) -> Product:
        try:
            return self._products[product_id]
        except KeyError:
            raise NotFoundError(f"Unknown product: {product_id}") from None

    def products_in_category(self, category: str) -> List[Product]:
        return [p for p in self._products.values() if p.category == category]

    # --- Processings ---

    @property
    def processings(self) -> tuple:
        return tuple(self._processings.values())

    def processing(self, processing_id: str) -> Processing:
        try:
            return self._processings[processing_id]
        except KeyError:
            raise NotFoundError(f"Unknown processing: {processing_id}") from None

    def has_processing(self, processing_id: str) -> bool:
        return processing_id in self._processings

    def processings_for_category(self, category: str) -> List[Processing]:
        """Catalog processings applicable to a product category, catalog order."""
        return [p for p in self._processings.values() if p.applies_to(category)]

    # --- Rules ---

    @property
    def rules(self) -> tuple:
        """All rules in evaluation order (ascending priority)."""
        return self._rules

    def rules_of_kind(self, kind: RuleKind) -> List[ProcessingRule]:
        return [r for r in self._rules if r.kind == kind]

    # --- Dependencies ---

    @property
    def dependencies(self) -> tuple:
        return self._dependencies

    def dependencies_for(self, product_id: str) -> List[ProductDependency]:
        return [d for d in self._dependencies if d.product_id == product_id]

    @classmethod
    def from_dict(cls, raw: dict) -> "CatalogContext":
        """Build a context from the JSON catalog layout. Raises
        ConfigurationError if any record fails validation."""
        try:
            return cls(
                products=[Product(**p) for p in raw.get("products", [])],
                processings=[Processing(**p) for p in raw.get("processings", [])],
                rules=[ProcessingRule(**r) for r in raw.get("rules", [])],
                dependencies=[ProductDependency(**d) for d in raw.get("dependencies", [])],
                version=str(raw.get("version", "0.0.0")),
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid catalog data: {e}") from e


def load_catalog(path: Optional[str] = None) -> CatalogContext:
    """Load a catalog JSON file. Defaults to settings.CATALOG_PATH."""
    filepath = Path(path or settings.CATALOG_PATH)
    if not filepath.exists():
        raise ConfigurationError(f"No catalog found at {filepath}")

    try:
        with open(filepath) as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Catalog {filepath} is not valid JSON: {e}") from e

    catalog = CatalogContext.from_dict(raw)
    logger.info(
        "Loaded catalog %s v%s: %d products, %d processings, %d rules, %d dependencies",
        filepath.name, catalog.version, len(catalog.products),
        len(catalog.processings), len(catalog.rules), len(catalog.dependencies),
    )
    return catalog
