from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .config import settings
from .deps import get_catalog
from .routers import catalog, dependencies, quotes

logger = logging.getLogger("cabinet_quoting")

app = FastAPI(
    title=settings.APP_NAME,
    description="Configure-price-quote engine for kitchen cabinetry",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(catalog.router, prefix="/api")
app.include_router(quotes.router, prefix="/api")
app.include_router(dependencies.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "cabinet-quoting-engine"}


@app.on_event("startup")
def load_catalog_on_startup():
    """Load the catalog up front so a broken catalog file fails at boot."""
    catalog = get_catalog()
    logger.info("Serving catalog v%s with %d products", catalog.version, len(catalog.products))
