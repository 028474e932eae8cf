"""
Display boundary: the one place money gets rounded.

The engine carries full Decimal precision end to end. Print, export and the
HTTP summary endpoint all go through quote_summary(), which quantizes every
amount half-up to settings.CURRENCY_PLACES and renders processing labels the
way they appear on a printed quote:

    "Custom Paint (#FFFFFF, Satin)"
    "Glass Door Insert"
    "Custom Panel (W: 24" × H: 30")"
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from .config import settings
from .engine.quote_calculator import QuoteCalculator
from .schemas import Processing, ProcessingOption, Quote


def round_currency(value, places: Optional[int] = None) -> Decimal:
    """Quantize to `places` decimals (default settings.CURRENCY_PLACES), half-up."""
    if places is None:
        places = settings.CURRENCY_PLACES
    exponent = Decimal(1).scaleb(-places)
    return Decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def format_money(value) -> str:
    return f"${round_currency(value):,.{settings.CURRENCY_PLACES}f}"


def _format_option_value(option: ProcessingOption, value) -> str:
    if option.type == "select":
        choice = option.choice(value)
        return choice.label if choice is not None and choice.label else str(value)
    if option.type == "boolean":
        return "Yes" if value else "No"
    if option.type == "dimensions" and isinstance(value, dict):
        parts = []
        for key, prefix in (("width", "W"), ("height", "H"), ("depth", "D")):
            if value.get(key) is not None:
                parts.append(f'{prefix}: {value[key]}"')
        return " × ".join(parts)
    return str(value)


def format_processing_display(processing: Processing, options: Optional[dict] = None) -> str:
    """Processing name followed by its chosen option values, in option order."""
    if not options:
        return processing.name

    labels = []
    for option in processing.options:
        value = options.get(option.id)
        if value is None or value == "":
            continue
        label = _format_option_value(option, value)
        if label:
            labels.append(label)

    if not labels:
        return processing.name
    return f"{processing.name} ({', '.join(labels)})"


def quote_summary(quote: Quote, catalog) -> dict:
    """
    Rounded, print-ready view of a quote.

    Amounts are rounded here and only here; the quote itself is not changed.
    Discount lines are listed in cascade order so the printed numbers add up
    the same way the engine computed them.
    """
    totals = QuoteCalculator().breakdown(quote)
    rooms = {room.id: room.name for room in quote.rooms}

    lines = []
    for item in quote.items:
        product = catalog.product(item.product_id)
        processings = []
        for ap in item.applied_processings:
            processing = catalog.processing(ap.processing_id)
            processings.append({
                "processing_id": ap.processing_id,
                "formatted": format_processing_display(processing, ap.options),
                "price": round_currency(ap.calculated_price),
                "inherited": ap.is_inherited,
                "pending": ap.pending,
            })
        lines.append({
            "item_id": item.id,
            "product_id": product.id,
            "product_name": product.name,
            "room": rooms.get(item.room_id) if item.room_id else None,
            "quantity": item.quantity,
            "unit_price": round_currency(item.base_price),
            "processings": processings,
            "total": round_currency(item.total_price),
        })

    return {
        "quote_id": quote.id,
        "quote_number": quote.quote_number,
        "customer_id": quote.customer_id,
        "status": quote.status.value,
        "created_at": quote.created_at.isoformat() if quote.created_at else None,
        "expires_at": quote.expires_at.isoformat() if quote.expires_at else None,
        "lines": lines,
        "subtotal": round_currency(totals["subtotal"]),
        "discounts": [
            {"label": f"Contract discount ({quote.contract_discount}%)",
             "amount": round_currency(totals["contract_amount"])},
            {"label": f"Customer discount ({quote.customer_discount}%)",
             "amount": round_currency(totals["customer_amount"])},
            {"label": "Order discount",
             "amount": round_currency(totals["order_discount"])},
        ],
        "total_discount": round_currency(totals["total_discount"]),
        "final_total": round_currency(totals["final_total"]),
        "formatted_total": format_money(totals["final_total"]),
        "requires_approval": totals["requires_approval"],
        "notes": quote.notes,
    }
