"""
Quote Engine: the orchestrator every user action goes through.

Composes the pricing primitives, rule resolver, dependency resolver,
inheritance propagator and quote calculator. The engine holds only the
catalog it was built with; quotes are passed in and a new EngineResult is
passed back. Nothing is cached between calls, so two engines over the same
catalog are interchangeable.

Every action ends the same way: item totals are already current, the quote
totals are re-derived, and the diagnostics (pending options, missing
companion processings) are collected fresh from the new snapshot.
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, List, Optional
from uuid import uuid4

from .. import workflow
from ..config import settings
from ..errors import InvalidActionError, NotFoundError
from ..schemas import (
    AddItem,
    AddRoom,
    ApplyProcessing,
    Diagnostic,
    DiagnosticCode,
    EngineResult,
    Processing,
    Quote,
    QuoteItem,
    QuoteStatus,
    RemoveItem,
    RemoveProcessing,
    ResolvedDependency,
    Room,
    SetOrderDiscount,
    SetProcessingOptions,
    SetQuantity,
    SetRoomProcessing,
    TransitionStatus,
)
from .dependency_resolver import DependencyResolver
from .inheritance import InheritancePropagator
from .pricing import (
    build_entry,
    calculate_processing_price,
    reprice_item,
    validate_options,
    with_processings,
)
from .quote_calculator import HUNDRED, QuoteCalculator
from .rule_resolver import RuleResolver

logger = logging.getLogger(__name__)


def _decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def generate_quote_number(now: datetime) -> str:
    return f"{settings.QUOTE_NUMBER_PREFIX}-{now.year}-{uuid4().hex[:6].upper()}"


class QuoteEngine:
    """
    Stateless quote editing over one catalog.

    Args:
        catalog: CatalogContext shared read-only by every call
        approval_threshold: default threshold stamped on new quotes
        validity_days: days until a new quote expires
    """

    def __init__(self, catalog, approval_threshold=None, validity_days: Optional[int] = None):
        self.catalog = catalog
        self.rules = RuleResolver(catalog)
        self.dependencies = DependencyResolver(catalog)
        self.inheritance = InheritancePropagator(catalog)
        self.calculator = QuoteCalculator()
        self.approval_threshold = _decimal(
            approval_threshold if approval_threshold is not None else settings.APPROVAL_THRESHOLD
        )
        self.validity_days = validity_days if validity_days is not None else settings.QUOTE_VALIDITY_DAYS

    # --- Quote lifecycle ---

    def create_quote(self, customer_id: str, contract_discount=0, customer_discount=0,
                     rooms: Iterable[Room] = (), approval_threshold=None,
                     quote_id: Optional[str] = None, notes: Optional[str] = None,
                     now: Optional[datetime] = None) -> EngineResult:
        """
        New draft quote. The two discount percentages come from the
        customer/contract lookup and are fixed for the life of the quote.
        """
        contract = _decimal(contract_discount)
        customer = _decimal(customer_discount)
        for label, pct in (("contract", contract), ("customer", customer)):
            if pct < 0 or pct > HUNDRED:
                raise InvalidActionError(f"{label} discount must be between 0 and 100, got {pct}")

        rooms = tuple(rooms)
        for room in rooms:
            self._check_processing_ids(room.processing_ids)
        room_ids = [r.id for r in rooms]
        if len(set(room_ids)) != len(room_ids):
            raise InvalidActionError(f"Duplicate room ids: {room_ids}")

        now = now or datetime.now(timezone.utc)
        quote = Quote(
            id=quote_id or uuid4().hex,
            quote_number=generate_quote_number(now),
            customer_id=customer_id,
            rooms=rooms,
            contract_discount=contract,
            customer_discount=customer,
            approval_threshold=_decimal(
                approval_threshold if approval_threshold is not None else self.approval_threshold
            ),
            status=QuoteStatus.DRAFT,
            created_at=now,
            expires_at=now + timedelta(days=self.validity_days),
            notes=notes,
        )
        logger.info("Created quote %s for customer %s (contract=%s%%, customer=%s%%)",
                    quote.quote_number, customer_id, contract, customer)
        return self._result(quote)

    def recalculate(self, quote: Quote) -> EngineResult:
        """Re-price every item against the catalog and re-derive the totals.
        Running it on its own output changes nothing."""
        items = tuple(reprice_item(item, self.catalog) for item in quote.items)
        return self._result(quote.model_copy(update={"items": items}))

    def transition_status(self, quote: Quote, status: QuoteStatus) -> EngineResult:
        current = self.calculator.recalculate(quote)
        return self._result(workflow.transition(current, status))

    # --- Rooms ---

    def add_room(self, quote: Quote, room_id: str, name: str = "",
                 front_model_id: Optional[str] = None,
                 processing_ids: Iterable[str] = ()) -> EngineResult:
        if any(r.id == room_id for r in quote.rooms):
            raise InvalidActionError(f"Room {room_id} already exists on quote {quote.id}")
        ids = tuple(dict.fromkeys(processing_ids))
        self._check_processing_ids(ids)
        room = Room(id=room_id, name=name, front_model_id=front_model_id, processing_ids=ids)
        logger.info("Quote %s: added room %s with %s", quote.id, room_id, list(ids))
        return self._result(quote.model_copy(update={"rooms": quote.rooms + (room,)}))

    def set_room_processing(self, quote: Quote, room_id: str,
                            processing_ids: Iterable[str]) -> EngineResult:
        """Replace a room's selection and re-propagate it to the room's items."""
        room = quote.room(room_id)
        ids = tuple(dict.fromkeys(processing_ids))
        self._check_processing_ids(ids)

        room = room.model_copy(update={"processing_ids": ids})
        rooms = tuple(room if r.id == room_id else r for r in quote.rooms)
        items = self.inheritance.propagate(quote.items, room)
        return self._result(quote.model_copy(update={"rooms": rooms, "items": items}))

    # --- Items ---

    def add_item(self, quote: Quote, product_id: str, quantity: int = 1,
                 room_id: Optional[str] = None, item_id: Optional[str] = None) -> EngineResult:
        """
        Add a product line. The room's selection is inherited, automatic
        dependencies are added as their own lines in the same room, and
        suggested dependencies come back on the result for the caller to
        offer. Dependencies of the added dependencies are not followed.
        """
        product = self.catalog.product(product_id)
        self._check_quantity(quantity)
        room = quote.room(room_id) if room_id is not None else None
        item_id = item_id or uuid4().hex
        existing_ids = {it.id for it in quote.items}
        if item_id in existing_ids:
            raise InvalidActionError(f"Item {item_id} already exists on quote {quote.id}")

        new_items = [self._new_item(product, quantity, room, item_id)]
        suggestions: List[ResolvedDependency] = []
        for dep in self.dependencies.resolve(product, quantity):
            if not dep.is_automatic:
                suggestions.append(dep)
                continue
            if dep.quantity <= 0:
                continue
            dep_item_id = f"{item_id}:{dep.dependency_id}"
            # Lines added for an earlier item under the same id outlive it
            if dep_item_id in existing_ids:
                raise InvalidActionError(
                    f"Item {dep_item_id} already exists on quote {quote.id}; "
                    f"remove it or add {product_id} under another id"
                )
            required = self.catalog.product(dep.product_id)
            new_items.append(self._new_item(required, dep.quantity, room, dep_item_id))
            logger.info("Quote %s: auto-added %s x%d required by %s",
                        quote.id, required.id, dep.quantity, product.id)

        logger.info("Quote %s: added %s x%d (item %s, room %s)",
                    quote.id, product.id, quantity, item_id, room_id)
        updated = quote.model_copy(update={"items": quote.items + tuple(new_items)})
        return self._result(updated, suggestions)

    def remove_item(self, quote: Quote, item_id: str) -> EngineResult:
        quote.item(item_id)
        items = tuple(it for it in quote.items if it.id != item_id)
        logger.info("Quote %s: removed item %s", quote.id, item_id)
        return self._result(quote.model_copy(update={"items": items}))

    def set_quantity(self, quote: Quote, item_id: str, quantity: int) -> EngineResult:
        """Change a line's quantity; quantity-driven processing prices follow."""
        self._check_quantity(quantity)
        item = quote.item(item_id)
        updated = reprice_item(item.model_copy(update={"quantity": quantity}), self.catalog)
        return self._result(self._replace_item(quote, updated))

    # --- Processings ---

    def available_processings(self, quote: Quote, item_id: str) -> List[Processing]:
        item = quote.item(item_id)
        product = self.catalog.product(item.product_id)
        return self.rules.available_processings(product, item.applied_ids())

    def apply_processing(self, quote: Quote, item_id: str, processing_id: str,
                         options: Optional[dict] = None) -> EngineResult:
        """
        Add a processing to one item by hand. A processing that is not in the
        item's available list (already applied, excluded by a rule, wrong
        category) is ignored and the quote comes back unchanged.
        """
        item = quote.item(item_id)
        product = self.catalog.product(item.product_id)
        processing = self.catalog.processing(processing_id)

        if not self.rules.is_available(product, item.applied_ids(), processing_id):
            logger.warning("Quote %s: %s is not available for item %s, ignored",
                           quote.id, processing_id, item_id)
            return self._result(quote)

        entry = build_entry(processing, item, product, options)
        updated = with_processings(item, item.applied_processings + (entry,))
        logger.info("Quote %s: applied %s to item %s (pending=%s)",
                    quote.id, processing_id, item_id, entry.pending)
        return self._result(self._replace_item(quote, updated))

    def set_processing_options(self, quote: Quote, item_id: str, processing_id: str,
                               options: dict) -> EngineResult:
        """Supply options for an applied processing and re-price it."""
        item = quote.item(item_id)
        entry = item.find(processing_id)
        if entry is None:
            raise NotFoundError(f"Processing {processing_id} is not applied to item {item_id}")
        product = self.catalog.product(item.product_id)
        processing = self.catalog.processing(processing_id)

        validate_options(processing, options)
        amount, pending = calculate_processing_price(processing, item, product, options)
        configured = entry.model_copy(update={
            "options": dict(options) if options else None,
            "calculated_price": amount,
            "pending": pending,
        })
        entries = [configured if ap.processing_id == processing_id else ap
                   for ap in item.applied_processings]
        return self._result(self._replace_item(quote, with_processings(item, entries)))

    def remove_processing(self, quote: Quote, item_id: str, processing_id: str) -> EngineResult:
        """
        Remove a manually added processing. Inherited entries belong to the
        room and are left in place; change the room selection instead.
        """
        item = quote.item(item_id)
        entry = item.find(processing_id)
        if entry is None:
            logger.warning("Quote %s: %s is not applied to item %s, nothing to remove",
                           quote.id, processing_id, item_id)
            return self._result(quote)
        if entry.is_inherited:
            logger.warning("Quote %s: %s on item %s is inherited from room %s, "
                           "change it at the room", quote.id, processing_id, item_id,
                           entry.source_room_id)
            return self._result(quote)

        entries = [ap for ap in item.applied_processings if ap.processing_id != processing_id]
        logger.info("Quote %s: removed %s from item %s", quote.id, processing_id, item_id)
        return self._result(self._replace_item(quote, with_processings(item, entries)))

    # --- Discounts ---

    def set_order_discount(self, quote: Quote, amount) -> EngineResult:
        """Flat order discount in currency, editable at any time."""
        amount = _decimal(amount)
        if amount < 0:
            raise InvalidActionError(f"Order discount cannot be negative, got {amount}")
        return self._result(quote.model_copy(update={"order_discount": amount}))

    # --- Dependencies ---

    def resolve_dependencies(self, product_id: str, quantity: int) -> List[ResolvedDependency]:
        self._check_quantity(quantity)
        return self.dependencies.resolve(self.catalog.product(product_id), quantity)

    # --- Action stream ---

    def apply_action(self, quote: Quote, action) -> EngineResult:
        """Dispatch one user action record (see schemas.QuoteAction)."""
        if isinstance(action, AddRoom):
            return self.add_room(quote, action.room_id, action.name,
                                 action.front_model_id, action.processing_ids)
        if isinstance(action, AddItem):
            return self.add_item(quote, action.product_id, action.quantity,
                                 action.room_id, action.item_id)
        if isinstance(action, RemoveItem):
            return self.remove_item(quote, action.item_id)
        if isinstance(action, SetQuantity):
            return self.set_quantity(quote, action.item_id, action.quantity)
        if isinstance(action, ApplyProcessing):
            return self.apply_processing(quote, action.item_id, action.processing_id, action.options)
        if isinstance(action, SetProcessingOptions):
            return self.set_processing_options(quote, action.item_id, action.processing_id,
                                               action.options)
        if isinstance(action, RemoveProcessing):
            return self.remove_processing(quote, action.item_id, action.processing_id)
        if isinstance(action, SetRoomProcessing):
            return self.set_room_processing(quote, action.room_id, action.processing_ids)
        if isinstance(action, SetOrderDiscount):
            return self.set_order_discount(quote, action.amount)
        if isinstance(action, TransitionStatus):
            return self.transition_status(quote, action.status)
        raise InvalidActionError(f"Unsupported action: {type(action).__name__}")

    # --- Diagnostics ---

    def diagnostics(self, quote: Quote) -> List[Diagnostic]:
        """Soft validation state of a quote: processings still waiting for
        options, and companion processings a requirement rule asks for."""
        found = []
        for item in quote.items:
            for ap in item.applied_processings:
                if ap.pending:
                    processing = self.catalog.processing(ap.processing_id)
                    found.append(Diagnostic(
                        code=DiagnosticCode.PENDING_OPTIONS,
                        item_id=item.id,
                        processing_id=ap.processing_id,
                        message=f"{processing.name} needs its options set before it can be priced",
                    ))
            for rule, missing_id in self.rules.missing_requirements(item.applied_ids()):
                found.append(Diagnostic(
                    code=DiagnosticCode.MISSING_REQUIRED_PROCESSING,
                    item_id=item.id,
                    processing_id=missing_id,
                    message=rule.description or f"Rule {rule.id} requires {missing_id}",
                ))
        return found

    # --- Helpers ---

    def _result(self, quote: Quote, suggestions: Iterable[ResolvedDependency] = ()) -> EngineResult:
        quote = self.calculator.recalculate(quote)
        return EngineResult(
            quote=quote,
            diagnostics=tuple(self.diagnostics(quote)),
            suggestions=tuple(suggestions),
        )

    def _new_item(self, product, quantity: int, room: Optional[Room], item_id: str) -> QuoteItem:
        item = QuoteItem(
            id=item_id,
            product_id=product.id,
            room_id=room.id if room is not None else None,
            quantity=quantity,
            base_price=product.base_price,
        )
        item = with_processings(item, ())
        if room is not None:
            item = self.inheritance.apply_to_new_item(item, room)
        return item

    def _replace_item(self, quote: Quote, updated: QuoteItem) -> Quote:
        items = tuple(updated if it.id == updated.id else it for it in quote.items)
        return quote.model_copy(update={"items": items})

    def _check_quantity(self, quantity) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidActionError(f"Quantity must be a whole number of at least 1, got {quantity!r}")

    def _check_processing_ids(self, processing_ids) -> None:
        for pid in processing_ids:
            self.catalog.processing(pid)
