"""FastAPI dependencies shared by the routers."""

from functools import lru_cache

from fastapi import Depends, HTTPException

from .catalog import CatalogContext, load_catalog
from .engine.quote_engine import QuoteEngine
from .errors import ConfigurationError, CPQError, InvalidActionError, NotFoundError

STATUS_CODES = {
    NotFoundError: 404,
    InvalidActionError: 400,
    ConfigurationError: 422,
}


@lru_cache
def get_catalog() -> CatalogContext:
    """Catalog loaded once per process from settings.CATALOG_PATH."""
    return load_catalog()


def get_engine(catalog: CatalogContext = Depends(get_catalog)) -> QuoteEngine:
    return QuoteEngine(catalog)


def to_http_exception(exc: CPQError) -> HTTPException:
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
