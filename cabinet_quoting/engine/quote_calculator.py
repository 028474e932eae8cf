"""
Quote Calculator: folds priced items and discounts into the quote totals.

Pure math on Decimals, no rounding between steps. The cascade order is fixed:

    subtotal         = Σ item.total_price
    contract_amount  = subtotal × contract% / 100
    customer_amount  = (subtotal − contract_amount) × customer% / 100
    total_discount   = contract_amount + customer_amount + order_discount
    final_total      = subtotal − total_discount
    requires_approval = final_total > approval_threshold

The customer discount compounds on the post-contract base; it does not
stack on the original subtotal. Swapping the two steps changes the result.
"""

from decimal import Decimal

from ..schemas import ZERO, Quote

HUNDRED = Decimal("100")


class QuoteCalculator:
    """Quote-level totals. Stateless; every call is a pure function of its input."""

    def calculate_totals(self, items, contract_discount: Decimal, customer_discount: Decimal,
                         order_discount: Decimal, approval_threshold: Decimal) -> dict:
        """
        Run the discount cascade.

        Returns:
            {
                subtotal, contract_amount, customer_amount, order_discount,
                total_discount, final_total, requires_approval,
            }
        """
        subtotal = sum((item.total_price for item in items), ZERO)
        contract_amount = subtotal * contract_discount / HUNDRED
        customer_amount = (subtotal - contract_amount) * customer_discount / HUNDRED
        total_discount = contract_amount + customer_amount + order_discount
        final_total = subtotal - total_discount

        return {
            "subtotal": subtotal,
            "contract_amount": contract_amount,
            "customer_amount": customer_amount,
            "order_discount": order_discount,
            "total_discount": total_discount,
            "final_total": final_total,
            "requires_approval": final_total > approval_threshold,
        }

    def breakdown(self, quote: Quote) -> dict:
        """Totals for an existing quote, including the per-step discount amounts."""
        return self.calculate_totals(
            quote.items,
            quote.contract_discount,
            quote.customer_discount,
            quote.order_discount,
            quote.approval_threshold,
        )

    def recalculate(self, quote: Quote) -> Quote:
        """New Quote with subtotal, total_discount, final_total and
        requires_approval derived from its items and discount terms."""
        totals = self.breakdown(quote)
        return quote.model_copy(update={
            "subtotal": totals["subtotal"],
            "total_discount": totals["total_discount"],
            "final_total": totals["final_total"],
            "requires_approval": totals["requires_approval"],
        })
