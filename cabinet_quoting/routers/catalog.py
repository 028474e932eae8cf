from fastapi import APIRouter, Depends
from typing import Optional

from ..catalog import CatalogContext
from ..deps import get_catalog

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/products")
def list_products(category: Optional[str] = None, catalog: CatalogContext = Depends(get_catalog)):
    products = catalog.products_in_category(category) if category else catalog.products
    return [p.model_dump(mode="json") for p in products]


@router.get("/processings")
def list_processings(category: Optional[str] = None, catalog: CatalogContext = Depends(get_catalog)):
    """All processings, or only those applicable to one product category."""
    processings = catalog.processings_for_category(category) if category else catalog.processings
    return [p.model_dump(mode="json") for p in processings]


@router.get("/rules")
def list_rules(catalog: CatalogContext = Depends(get_catalog)):
    return [r.model_dump(mode="json") for r in catalog.rules]
