"""
Data model for the quoting engine.

Catalog records (Product, Processing, ProcessingRule, ProductDependency) are
read-only reference data shared by every calculation. Quote records are
immutable snapshots: every engine action returns a new Quote and leaves the
one it was given untouched.

All money is Decimal. Nothing in here rounds.
"""

import enum
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field

from .errors import NotFoundError

ZERO = Decimal("0")


# --- Enums ---

class PricingModel(str, enum.Enum):
    PER_UNIT = "per_unit"
    PERCENTAGE = "percentage"
    PER_DIMENSION = "per_dimension"
    FIXED = "fixed"


class RuleKind(str, enum.Enum):
    MUTUAL_EXCLUSION = "mutual_exclusion"
    REQUIREMENT = "requirement"


class QuoteStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    SENT = "sent"
    ACCEPTED = "accepted"


class DiagnosticCode(str, enum.Enum):
    PENDING_OPTIONS = "pending_options"
    MISSING_REQUIRED_PROCESSING = "missing_required_processing"


class _Record(BaseModel):
    class Config:
        frozen = True


# --- Catalog ---

class Dimensions(_Record):
    width: Optional[Decimal] = None
    height: Optional[Decimal] = None
    depth: Optional[Decimal] = None


class Product(_Record):
    id: str
    name: str = ""
    category: str
    sub_category: str = ""
    model_id: Optional[str] = None
    base_price: Decimal
    unit: str = "each"  # each | sqft | linft
    dimensions: Optional[Dimensions] = None
    in_stock: bool = True
    lead_time_days: int = 0
    description: str = ""


class OptionChoice(_Record):
    value: str
    label: str = ""
    price_modifier: Decimal = ZERO


class ProcessingOption(_Record):
    id: str
    name: str = ""
    type: Literal["select", "color", "text", "number", "boolean", "dimensions"] = "select"
    required: bool = False
    description: str = ""
    choices: Tuple[OptionChoice, ...] = ()
    default_value: Any = None

    def choice(self, value) -> Optional[OptionChoice]:
        for c in self.choices:
            if c.value == value:
                return c
        return None


class Processing(_Record):
    id: str
    name: str
    description: str = ""
    category: str = ""
    # Kept as a plain string: an unknown model must surface as a
    # ConfigurationError when priced, not as a catalog load failure.
    pricing_model: str
    rate: Decimal
    applicable_categories: Tuple[str, ...] = ()
    requires_options: bool = False
    options: Tuple[ProcessingOption, ...] = ()

    def applies_to(self, category: str) -> bool:
        return category in self.applicable_categories


class ProcessingRule(_Record):
    id: str
    kind: RuleKind = RuleKind.MUTUAL_EXCLUSION
    trigger_ids: Tuple[str, ...]
    exclude_ids: Tuple[str, ...] = ()
    require_ids: Tuple[str, ...] = ()
    priority: int = 100  # lower evaluates first
    description: str = ""

    def is_triggered_by(self, applied_ids) -> bool:
        return any(pid in applied_ids for pid in self.trigger_ids)


class ProductDependency(_Record):
    id: str
    product_id: str
    required_product_id: str
    quantity_formula: str = "1"
    is_automatic: bool = False
    description: str = ""


class ResolvedDependency(_Record):
    dependency_id: str
    product_id: str
    product_name: str
    quantity: int
    is_automatic: bool
    description: str = ""


# --- Quote ---

class AppliedProcessing(_Record):
    processing_id: str
    calculated_price: Decimal = ZERO
    options: Optional[Dict[str, Any]] = None
    # Set only when the entry was copied from a room selection.
    source_room_id: Optional[str] = None
    pending: bool = False

    @property
    def is_inherited(self) -> bool:
        return self.source_room_id is not None


class QuoteItem(_Record):
    id: str
    product_id: str
    room_id: Optional[str] = None
    quantity: int = 1
    base_price: Decimal
    applied_processings: Tuple[AppliedProcessing, ...] = ()
    total_price: Decimal = ZERO

    def applied_ids(self) -> List[str]:
        return [ap.processing_id for ap in self.applied_processings]

    def find(self, processing_id: str) -> Optional[AppliedProcessing]:
        for ap in self.applied_processings:
            if ap.processing_id == processing_id:
                return ap
        return None


class Room(_Record):
    id: str
    name: str = ""
    front_model_id: Optional[str] = None
    processing_ids: Tuple[str, ...] = ()


class Quote(_Record):
    id: str
    quote_number: str = ""
    customer_id: str
    rooms: Tuple[Room, ...] = ()
    items: Tuple[QuoteItem, ...] = ()
    contract_discount: Decimal = ZERO   # percent, fixed at creation
    customer_discount: Decimal = ZERO   # percent, fixed at creation
    order_discount: Decimal = ZERO      # flat currency amount
    subtotal: Decimal = ZERO
    total_discount: Decimal = ZERO
    final_total: Decimal = ZERO
    requires_approval: bool = False
    approval_threshold: Decimal
    status: QuoteStatus = QuoteStatus.DRAFT
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    notes: Optional[str] = None

    def item(self, item_id: str) -> QuoteItem:
        for it in self.items:
            if it.id == item_id:
                return it
        raise NotFoundError(f"Unknown quote item: {item_id}")

    def room(self, room_id: str) -> Room:
        for r in self.rooms:
            if r.id == room_id:
                return r
        raise NotFoundError(f"Unknown room: {room_id}")

    def items_in_room(self, room_id: str) -> List[QuoteItem]:
        return [it for it in self.items if it.room_id == room_id]


class Diagnostic(_Record):
    code: DiagnosticCode
    item_id: str
    processing_id: str
    message: str


class EngineResult(_Record):
    """What every engine action hands back: the new snapshot plus the
    validation state that goes with it."""
    quote: Quote
    diagnostics: Tuple[Diagnostic, ...] = ()
    suggestions: Tuple[ResolvedDependency, ...] = ()

    @property
    def pending(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.code == DiagnosticCode.PENDING_OPTIONS]


# --- User actions ---

class AddRoom(_Record):
    type: Literal["add_room"] = "add_room"
    room_id: str
    name: str = ""
    front_model_id: Optional[str] = None
    processing_ids: Tuple[str, ...] = ()


class AddItem(_Record):
    type: Literal["add_item"] = "add_item"
    product_id: str
    quantity: int = 1
    room_id: Optional[str] = None
    item_id: Optional[str] = None


class RemoveItem(_Record):
    type: Literal["remove_item"] = "remove_item"
    item_id: str


class SetQuantity(_Record):
    type: Literal["set_quantity"] = "set_quantity"
    item_id: str
    quantity: int


class ApplyProcessing(_Record):
    type: Literal["apply_processing"] = "apply_processing"
    item_id: str
    processing_id: str
    options: Optional[Dict[str, Any]] = None


class SetProcessingOptions(_Record):
    type: Literal["set_processing_options"] = "set_processing_options"
    item_id: str
    processing_id: str
    options: Dict[str, Any]


class RemoveProcessing(_Record):
    type: Literal["remove_processing"] = "remove_processing"
    item_id: str
    processing_id: str


class SetRoomProcessing(_Record):
    type: Literal["set_room_processing"] = "set_room_processing"
    room_id: str
    processing_ids: Tuple[str, ...] = ()


class SetOrderDiscount(_Record):
    type: Literal["set_order_discount"] = "set_order_discount"
    amount: Decimal


class TransitionStatus(_Record):
    type: Literal["transition_status"] = "transition_status"
    status: QuoteStatus


QuoteAction = Annotated[
    Union[
        AddRoom, AddItem, RemoveItem, SetQuantity, ApplyProcessing,
        SetProcessingOptions, RemoveProcessing, SetRoomProcessing,
        SetOrderDiscount, TransitionStatus,
    ],
    Field(discriminator="type"),
]
