"""
Pricing primitives: what one processing adds to one quote item.

Each pricing model is a pure function of (processing, item, product).
PRICING_MODELS maps the catalog's pricing_model string to its function.
An unknown model is a catalog mistake and raises ConfigurationError; it is
never priced as zero.
"""

import logging
from decimal import Decimal
from typing import Callable, Dict, Optional, Tuple

from ..errors import ConfigurationError, InvalidActionError
from ..schemas import (
    ZERO,
    AppliedProcessing,
    PricingModel,
    Processing,
    Product,
    QuoteItem,
)

logger = logging.getLogger(__name__)

PriceFn = Callable[[Processing, QuoteItem, Product], Decimal]


def price_fixed(processing: Processing, item: QuoteItem, product: Product) -> Decimal:
    """Flat fee, charged once per line regardless of quantity."""
    return processing.rate


def price_per_unit(processing: Processing, item: QuoteItem, product: Product) -> Decimal:
    return processing.rate * item.quantity


def price_percentage(processing: Processing, item: QuoteItem, product: Product) -> Decimal:
    """rate is a fraction of the line's base value: 0.15 means 15%."""
    return item.base_price * item.quantity * processing.rate


def price_per_dimension(processing: Processing, item: QuoteItem, product: Product) -> Decimal:
    """
    Product width × rate. Height and depth are ignored.
    A product without dimensions contributes 0, not an error.
    """
    dims = product.dimensions
    if dims is None or dims.width is None:
        return ZERO
    return dims.width * processing.rate


PRICING_MODELS: Dict[str, PriceFn] = {
    PricingModel.PER_UNIT.value: price_per_unit,
    PricingModel.PERCENTAGE.value: price_percentage,
    PricingModel.PER_DIMENSION.value: price_per_dimension,
    PricingModel.FIXED.value: price_fixed,
}


def get_pricing_model(name: str) -> PriceFn:
    """Returns the price function for a pricing model, or raises ConfigurationError."""
    if name not in PRICING_MODELS:
        raise ConfigurationError(
            f"Unknown pricing model: {name}. "
            f"Available: {list(PRICING_MODELS.keys())}"
        )
    return PRICING_MODELS[name]


def has_pricing_model(name: str) -> bool:
    return name in PRICING_MODELS


def price(processing: Processing, item: QuoteItem, product: Product) -> Decimal:
    """Price contribution of a processing under its pricing model alone."""
    return get_pricing_model(processing.pricing_model)(processing, item, product)


# --- Options ---

def _is_blank(value) -> bool:
    return value is None or value == ""


def options_pending(processing: Processing, options: Optional[dict]) -> bool:
    """
    True while a processing that needs configuration cannot be costed yet:
    no options at all, or a required option without a value.
    """
    if not processing.requires_options:
        return False
    if not options:
        return True
    return any(
        opt.required and _is_blank(options.get(opt.id))
        for opt in processing.options
    )


def validate_options(processing: Processing, options: Optional[dict]) -> None:
    """Reject select values that are not among the option's declared choices."""
    if not options:
        return
    for opt in processing.options:
        value = options.get(opt.id)
        if opt.type != "select" or not opt.choices or _is_blank(value):
            continue
        if opt.choice(value) is None:
            raise InvalidActionError(
                f"'{value}' is not a valid choice for {processing.id}.{opt.id}. "
                f"Choices: {[c.value for c in opt.choices]}"
            )


def option_modifiers(processing: Processing, item: QuoteItem, options: Optional[dict]) -> Decimal:
    """Sum of chosen select modifiers, each charged per unit."""
    total = ZERO
    if not options:
        return total
    for opt in processing.options:
        choice = opt.choice(options.get(opt.id))
        if choice is not None:
            total += choice.price_modifier * item.quantity
    return total


def calculate_processing_price(processing: Processing, item: QuoteItem, product: Product,
                               options: Optional[dict] = None) -> Tuple[Decimal, bool]:
    """
    Price of one applied processing, options included.

    Returns (price, pending). A pending processing is priced at 0 until its
    options are complete. The pricing model is resolved first so a bad
    catalog entry fails even while the entry is still pending.
    """
    price_fn = get_pricing_model(processing.pricing_model)
    if options_pending(processing, options):
        return ZERO, True
    return price_fn(processing, item, product) + option_modifiers(processing, item, options), False


# --- Item level ---

def build_entry(processing: Processing, item: QuoteItem, product: Product,
                options: Optional[dict] = None,
                source_room_id: Optional[str] = None) -> AppliedProcessing:
    """New AppliedProcessing for an item, priced against the item as it is now."""
    validate_options(processing, options)
    amount, pending = calculate_processing_price(processing, item, product, options)
    return AppliedProcessing(
        processing_id=processing.id,
        calculated_price=amount,
        options=dict(options) if options else None,
        source_room_id=source_room_id,
        pending=pending,
    )


def item_total(item: QuoteItem) -> Decimal:
    """base_price × quantity + every applied processing's calculated price."""
    return item.base_price * item.quantity + sum(
        (ap.calculated_price for ap in item.applied_processings), ZERO
    )


def with_processings(item: QuoteItem, entries) -> QuoteItem:
    """Copy of item carrying exactly these entries, total recomputed."""
    updated = item.model_copy(update={"applied_processings": tuple(entries)})
    return updated.model_copy(update={"total_price": item_total(updated)})


def reprice_item(item: QuoteItem, catalog) -> QuoteItem:
    """
    Recompute every applied processing against the item's current quantity,
    then the item total. The unit price is read from the catalog again.
    Options and room tags are carried over unchanged.
    """
    product = catalog.product(item.product_id)
    item = item.model_copy(update={"base_price": product.base_price})
    entries = []
    for ap in item.applied_processings:
        processing = catalog.processing(ap.processing_id)
        amount, pending = calculate_processing_price(processing, item, product, ap.options)
        entries.append(ap.model_copy(update={"calculated_price": amount, "pending": pending}))
    return with_processings(item, entries)
