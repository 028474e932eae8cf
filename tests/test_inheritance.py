"""
Room inheritance tests: room selections copied onto the room's items.

Tests:
1-3. New items inherit the room selection (tagged, category-filtered)
4-7. Room change replaces inherited entries, manual entries survive
8.   Guard against merged inherited entries
9-10. Mutual-exclusion rules hold for inherited entries
"""

import logging
from decimal import Decimal

import pytest

from cabinet_quoting.engine.inheritance import InheritancePropagator
from cabinet_quoting.errors import PropagationError
from cabinet_quoting.schemas import AppliedProcessing, DiagnosticCode, QuoteItem, Room


def _entries(item):
    return {ap.processing_id: ap.source_room_id for ap in item.applied_processings}


# ============================================================
# 1-3. New items
# ============================================================

def test_new_item_inherits_room_selection(engine, quote):
    quote = engine.set_room_processing(quote, "kitchen", ["knobs", "glass"]).quote
    quote = engine.add_item(quote, "base", quantity=2, room_id="kitchen", item_id="b1").quote

    item = quote.item("b1")
    assert _entries(item) == {"knobs": "kitchen", "glass": "kitchen"}
    # 2 × 100 + 2 × 8 + 75
    assert item.total_price == Decimal("291")


def test_inapplicable_room_processing_skipped(engine, quote):
    quote = engine.set_room_processing(quote, "kitchen", ["knobs", "edge"]).quote
    quote = engine.add_item(quote, "base", room_id="kitchen", item_id="b1").quote
    quote = engine.add_item(quote, "counter", room_id="kitchen", item_id="c1").quote

    assert _entries(quote.item("b1")) == {"knobs": "kitchen"}
    assert _entries(quote.item("c1")) == {"edge": "kitchen"}
    # The automatically added hinges sit in the room but take neither
    assert quote.item("b1:base_hinges").applied_processings == ()


def test_item_outside_room_inherits_nothing(engine, quote):
    quote = engine.set_room_processing(quote, "kitchen", ["knobs"]).quote
    quote = engine.add_item(quote, "base", item_id="loose").quote
    assert quote.item("loose").applied_processings == ()


# ============================================================
# 4-7. Replace, never merge
# ============================================================

def test_room_change_replaces_inherited_and_keeps_manual(engine, quote):
    quote = engine.set_room_processing(quote, "kitchen", ["knobs"]).quote
    quote = engine.add_item(quote, "base", room_id="kitchen", item_id="b1").quote
    quote = engine.apply_processing(quote, "b1", "glass").quote

    quote = engine.set_room_processing(quote, "kitchen", ["pulls"]).quote

    entries = _entries(quote.item("b1"))
    assert "pulls" in entries
    assert "knobs" not in entries
    assert entries["glass"] is None
    assert entries["pulls"] == "kitchen"
    # 100 + 12 + 75
    assert quote.item("b1").total_price == Decimal("187")


def test_empty_room_selection_strips_only_inherited(engine, quote):
    quote = engine.set_room_processing(quote, "kitchen", ["knobs", "led"]).quote
    quote = engine.add_item(quote, "base", room_id="kitchen", item_id="b1").quote
    quote = engine.apply_processing(quote, "b1", "glass").quote

    quote = engine.set_room_processing(quote, "kitchen", []).quote

    assert _entries(quote.item("b1")) == {"glass": None}
    assert quote.room("kitchen").processing_ids == ()


def test_manual_entry_not_duplicated_by_room(engine, quote):
    quote = engine.add_item(quote, "base", room_id="kitchen", item_id="b1").quote
    quote = engine.apply_processing(quote, "b1", "knobs").quote

    quote = engine.set_room_processing(quote, "kitchen", ["knobs", "glass"]).quote

    item = quote.item("b1")
    assert item.applied_ids().count("knobs") == 1
    assert _entries(item) == {"knobs": None, "glass": "kitchen"}


def test_other_rooms_untouched(engine, quote):
    quote = engine.add_room(quote, "pantry", name="Pantry", processing_ids=["glass"]).quote
    quote = engine.add_item(quote, "base", room_id="pantry", item_id="p1").quote
    quote = engine.add_item(quote, "base", room_id="kitchen", item_id="k1").quote
    before = quote.item("p1")

    quote = engine.set_room_processing(quote, "kitchen", ["knobs"]).quote

    assert quote.item("p1") == before
    assert _entries(quote.item("k1")) == {"knobs": "kitchen"}


# ============================================================
# 8. Merge guard
# ============================================================

def test_duplicate_inherited_entries_raise(catalog):
    room = Room(id="kitchen", processing_ids=("knobs",))
    tagged = AppliedProcessing(processing_id="knobs", calculated_price=Decimal("8"), source_room_id="kitchen")
    item = QuoteItem(id="b1", product_id="base", base_price=Decimal("100"),
                     applied_processings=(tagged, tagged))
    with pytest.raises(PropagationError):
        InheritancePropagator(catalog)._check_replaced(item, room)


# ============================================================
# 9-10. Exclusion rules
# ============================================================

def test_room_processing_excluded_by_manual_entry_is_skipped(engine, quote, caplog):
    quote = engine.add_item(quote, "wall", room_id="kitchen", item_id="w1").quote
    quote = engine.add_item(quote, "wall", room_id="kitchen", item_id="w2").quote
    quote = engine.apply_processing(quote, "w1", "knobs").quote

    with caplog.at_level(logging.WARNING):
        result = engine.set_room_processing(quote, "kitchen", ["push"])
    quote = result.quote

    # Knobs on w1 rule out push-to-open, so w1 keeps only its manual entry
    assert _entries(quote.item("w1")) == {"knobs": None}
    assert _entries(quote.item("w2")) == {"push": "kitchen"}
    assert "excluded" in caplog.text
    # 200 + 8
    assert quote.item("w1").total_price == Decimal("208")
    assert [(d.item_id, d.code) for d in result.diagnostics] == [
        ("w2", DiagnosticCode.MISSING_REQUIRED_PROCESSING),
    ]


def test_conflicting_room_selection_keeps_first_in_order(engine, quote):
    quote = engine.set_room_processing(quote, "kitchen", ["knobs", "push", "glass"]).quote
    quote = engine.add_item(quote, "wall", room_id="kitchen", item_id="w1").quote

    assert _entries(quote.item("w1")) == {"knobs": "kitchen", "glass": "kitchen"}
    # The room keeps its selection; only the item leaves push off
    assert quote.room("kitchen").processing_ids == ("knobs", "push", "glass")
    assert "push" not in [p.id for p in engine.available_processings(quote, "w1")]
