from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..deps import get_engine, to_http_exception
from ..engine.quote_engine import QuoteEngine
from ..errors import CPQError

router = APIRouter(prefix="/dependencies", tags=["dependencies"])


class ResolveRequest(BaseModel):
    product_id: str
    quantity: int = 1


@router.post("/resolve")
def resolve_dependencies(request: ResolveRequest, engine: QuoteEngine = Depends(get_engine)):
    """Automatic and suggested companion products for a product and quantity."""
    try:
        resolved = engine.resolve_dependencies(request.product_id, request.quantity)
    except CPQError as e:
        raise to_http_exception(e)
    return {
        "automatic": [d.model_dump(mode="json") for d in resolved if d.is_automatic],
        "suggested": [d.model_dump(mode="json") for d in resolved if not d.is_automatic],
    }
