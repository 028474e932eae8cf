"""
Shared test fixtures: fabricated catalog, engine, quote helpers, test client.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from cabinet_quoting.catalog import CatalogContext
from cabinet_quoting.deps import get_catalog
from cabinet_quoting.engine.quote_engine import QuoteEngine
from cabinet_quoting.main import app
from cabinet_quoting.schemas import (
    Dimensions,
    OptionChoice,
    Processing,
    ProcessingOption,
    ProcessingRule,
    Product,
    ProductDependency,
    Room,
    RuleKind,
)

FIXED_NOW = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


def make_catalog(extra_processings=(), extra_rules=(), extra_dependencies=()):
    """Small, hand-checkable catalog. Every number below is used in some test."""
    products = [
        Product(id="base", name="Base Cabinet", category="cabinet", base_price=Decimal("100"),
                dimensions=Dimensions(width=Decimal("12"), height=Decimal("34.5"), depth=Decimal("24"))),
        Product(id="wall", name="Wall Cabinet", category="cabinet", base_price=Decimal("200")),
        Product(id="counter", name="Quartz Top", category="countertop", base_price=Decimal("50"),
                unit="sqft", dimensions=Dimensions(width=Decimal("30"))),
        Product(id="hinge", name="Hinge", category="hardware", base_price=Decimal("5")),
        Product(id="knob", name="Knob", category="hardware", base_price=Decimal("3")),
    ]
    processings = [
        Processing(id="knobs", name="Install Knobs", pricing_model="per_unit", rate=Decimal("8"),
                   applicable_categories=("cabinet",)),
        Processing(id="pulls", name="Install Pulls", pricing_model="per_unit", rate=Decimal("12"),
                   applicable_categories=("cabinet",)),
        Processing(id="push", name="Install Push-Open", pricing_model="per_unit", rate=Decimal("35"),
                   applicable_categories=("cabinet",)),
        Processing(id="hinges_sc", name="Soft-Close Hinges", pricing_model="per_unit", rate=Decimal("18"),
                   applicable_categories=("cabinet",)),
        Processing(
            id="stain", name="Dark Stain", pricing_model="percentage", rate=Decimal("0.15"),
            applicable_categories=("cabinet",), requires_options=True,
            options=(
                ProcessingOption(id="color", name="Stain Color", type="select", required=True, choices=(
                    OptionChoice(value="walnut", label="Dark Walnut", price_modifier=Decimal("0")),
                    OptionChoice(value="cherry", label="Cherry", price_modifier=Decimal("2")),
                )),
            ),
        ),
        Processing(
            id="paint", name="Custom Paint Color", pricing_model="percentage", rate=Decimal("0.25"),
            applicable_categories=("cabinet",), requires_options=True,
            options=(
                ProcessingOption(id="paint_color", name="Paint Color", type="color", required=True),
                ProcessingOption(id="paint_finish", name="Paint Finish", type="select", required=True, choices=(
                    OptionChoice(value="matte", label="Matte", price_modifier=Decimal("0")),
                    OptionChoice(value="satin", label="Satin", price_modifier=Decimal("1")),
                )),
            ),
        ),
        Processing(id="glass", name="Glass Door Insert", pricing_model="fixed", rate=Decimal("75"),
                   applicable_categories=("cabinet",)),
        Processing(id="led", name="Under-Cabinet LED", pricing_model="per_dimension", rate=Decimal("18"),
                   applicable_categories=("cabinet",)),
        Processing(id="edge", name="Bullnose Edge", pricing_model="per_dimension", rate=Decimal("8"),
                   applicable_categories=("countertop",)),
        Processing(id="sink", name="Sink Cutout", pricing_model="fixed", rate=Decimal("125"),
                   applicable_categories=("countertop",)),
    ]
    rules = [
        ProcessingRule(id="push_excludes_handles", trigger_ids=("push",),
                       exclude_ids=("knobs", "pulls"), priority=1),
        ProcessingRule(id="handles_exclude_push", trigger_ids=("knobs", "pulls"),
                       exclude_ids=("push",), priority=1),
        ProcessingRule(id="push_needs_soft_close", kind=RuleKind.REQUIREMENT, trigger_ids=("push",),
                       require_ids=("hinges_sc",), priority=5,
                       description="Push-to-open needs soft-close hinges"),
    ]
    dependencies = [
        ProductDependency(id="base_hinges", product_id="base", required_product_id="hinge",
                          quantity_formula="2 * quantity", is_automatic=True),
        ProductDependency(id="base_knob", product_id="base", required_product_id="knob",
                          quantity_formula="1", is_automatic=False,
                          description="Base cabinets need a knob or pull"),
        ProductDependency(id="counter_support", product_id="counter", required_product_id="base",
                          quantity_formula="ceil(quantity / 10)", is_automatic=True),
        ProductDependency(id="wall_knob", product_id="wall", required_product_id="knob",
                          quantity_formula="0 * quantity", is_automatic=True),
    ]
    return CatalogContext(
        products=products,
        processings=processings + list(extra_processings),
        rules=rules + list(extra_rules),
        dependencies=dependencies + list(extra_dependencies),
        version="test",
    )


@pytest.fixture
def catalog():
    return make_catalog()


@pytest.fixture
def engine(catalog):
    return QuoteEngine(catalog, approval_threshold=Decimal("5000"), validity_days=30)


@pytest.fixture
def quote(engine):
    """Empty draft quote with one room (no room selection) and no discounts."""
    result = engine.create_quote(
        "cust_01",
        rooms=[Room(id="kitchen", name="Kitchen")],
        quote_id="q-1",
        now=FIXED_NOW,
    )
    return result.quote


@pytest.fixture
def client(catalog):
    """FastAPI test client running against the fabricated catalog."""
    app.dependency_overrides[get_catalog] = lambda: catalog
    yield TestClient(app)
    app.dependency_overrides.clear()
