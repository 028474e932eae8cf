from decimal import Decimal
from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from typing import List, Optional
from pydantic import BaseModel

from ..deps import get_engine, to_http_exception
from ..display import quote_summary
from ..engine.quote_engine import QuoteEngine
from ..errors import CPQError
from ..schemas import Quote, QuoteAction, Room

router = APIRouter(prefix="/quotes", tags=["quotes"])

# The server keeps no quotes. Clients post the last snapshot they received
# together with the next action and get the new snapshot back.


class QuoteCreate(BaseModel):
    customer_id: str
    contract_discount: Decimal = Decimal("0")
    customer_discount: Decimal = Decimal("0")
    rooms: List[Room] = []
    approval_threshold: Optional[Decimal] = None
    notes: Optional[str] = None


class ActionRequest(BaseModel):
    quote: Quote
    action: QuoteAction


class AvailableProcessingsRequest(BaseModel):
    quote: Quote
    item_id: str


class SummaryRequest(BaseModel):
    quote: Quote


def _rebuilt(engine: QuoteEngine, quote: Quote) -> Quote:
    """Posted snapshots are re-priced from the catalog before anything reads
    their money fields."""
    return engine.recalculate(quote).quote


@router.post("")
def create_quote(request: QuoteCreate, engine: QuoteEngine = Depends(get_engine)):
    try:
        result = engine.create_quote(
            request.customer_id,
            contract_discount=request.contract_discount,
            customer_discount=request.customer_discount,
            rooms=request.rooms,
            approval_threshold=request.approval_threshold,
            notes=request.notes,
        )
    except CPQError as e:
        raise to_http_exception(e)
    return result.model_dump(mode="json")


@router.post("/actions")
def apply_action(request: ActionRequest, engine: QuoteEngine = Depends(get_engine)):
    """Apply one user action to a quote snapshot."""
    try:
        result = engine.apply_action(_rebuilt(engine, request.quote), request.action)
    except CPQError as e:
        raise to_http_exception(e)
    return result.model_dump(mode="json")


@router.post("/available-processings")
def available_processings(request: AvailableProcessingsRequest,
                          engine: QuoteEngine = Depends(get_engine)):
    try:
        available = engine.available_processings(_rebuilt(engine, request.quote), request.item_id)
    except CPQError as e:
        raise to_http_exception(e)
    return [p.model_dump(mode="json") for p in available]


@router.post("/summary")
def summarize_quote(request: SummaryRequest, engine: QuoteEngine = Depends(get_engine)):
    """Rounded, print-ready summary. Money goes out as strings, never floats."""
    try:
        summary = quote_summary(_rebuilt(engine, request.quote), engine.catalog)
    except CPQError as e:
        raise to_http_exception(e)
    return jsonable_encoder(summary, custom_encoder={Decimal: str})
