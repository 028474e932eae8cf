"""
Quote calculator tests: discount cascade, approval flag, recalculation.

Tests:
1-3. Cascade order and discount amounts
4-5. Approval threshold boundary
6-8. Recalculate (idempotent, empty quote, no clamping)
"""

from decimal import Decimal

from cabinet_quoting.engine.quote_calculator import QuoteCalculator
from cabinet_quoting.schemas import Quote, QuoteItem


def _line(total, item_id="i1"):
    total = Decimal(total)
    return QuoteItem(id=item_id, product_id="base", base_price=total, total_price=total)


def _quote(items, contract="0", customer="0", order="0", threshold="5000"):
    return Quote(
        id="q-1",
        customer_id="cust_01",
        items=tuple(items),
        contract_discount=Decimal(contract),
        customer_discount=Decimal(customer),
        order_discount=Decimal(order),
        approval_threshold=Decimal(threshold),
    )


# ============================================================
# 1-3. Discount cascade
# ============================================================

def test_customer_discount_compounds_on_post_contract_base():
    totals = QuoteCalculator().calculate_totals(
        [_line("1000")], Decimal("10"), Decimal("5"), Decimal("20"), Decimal("5000")
    )
    assert totals["subtotal"] == Decimal("1000")
    assert totals["contract_amount"] == Decimal("100")
    assert totals["customer_amount"] == Decimal("45")
    assert totals["total_discount"] == Decimal("165")
    assert totals["final_total"] == Decimal("835")
    # Stacking both percentages on the original subtotal would give 830
    assert totals["final_total"] != Decimal("830")


def test_subtotal_sums_item_totals():
    quote = _quote([_line("400", "a"), _line("350.50", "b"), _line("249.50", "c")])
    assert QuoteCalculator().breakdown(quote)["subtotal"] == Decimal("1000")


def test_no_intermediate_rounding():
    """33.333...% of the line survives to final_total unrounded."""
    quote = QuoteCalculator().recalculate(_quote([_line("100")], contract="33.3333"))
    assert quote.total_discount == Decimal("33.3333")
    assert quote.final_total == Decimal("66.6667")


# ============================================================
# 4-5. Approval threshold
# ============================================================

def test_total_equal_to_threshold_needs_no_approval():
    quote = QuoteCalculator().recalculate(_quote([_line("5000")]))
    assert quote.final_total == Decimal("5000")
    assert quote.requires_approval is False


def test_one_cent_over_threshold_needs_approval():
    quote = QuoteCalculator().recalculate(_quote([_line("5000.01")]))
    assert quote.requires_approval is True


# ============================================================
# 6-8. Recalculate
# ============================================================

def test_recalculate_is_idempotent():
    calc = QuoteCalculator()
    quote = _quote([_line("1000")], contract="10", customer="5", order="20")
    once = calc.recalculate(quote)
    twice = calc.recalculate(once)
    assert once.model_dump_json() == twice.model_dump_json()
    assert once.final_total == Decimal("835")


def test_empty_quote_totals_zero():
    quote = QuoteCalculator().recalculate(_quote([], contract="10", customer="5"))
    assert quote.subtotal == Decimal("0")
    assert quote.final_total == Decimal("0")
    assert quote.requires_approval is False


def test_order_discount_larger_than_total_not_clamped():
    quote = QuoteCalculator().recalculate(_quote([_line("10")], order="20"))
    assert quote.final_total == Decimal("-10")
