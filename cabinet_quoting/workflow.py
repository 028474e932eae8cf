"""
Quote status workflow.

Only the transition table and its guard live here; who triggers a
transition (a manager approving, a rep sending) is the surrounding
application's business.

    draft ──> pending_approval ──> approved ──> sent ──> accepted
      │                      └──> rejected         └──> rejected
      └──> sent   (only when the quote does not require approval)
"""

import logging

from .errors import InvalidActionError
from .schemas import Quote, QuoteStatus

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    QuoteStatus.DRAFT: {QuoteStatus.PENDING_APPROVAL, QuoteStatus.SENT},
    QuoteStatus.PENDING_APPROVAL: {QuoteStatus.APPROVED, QuoteStatus.REJECTED},
    QuoteStatus.APPROVED: {QuoteStatus.SENT},
    QuoteStatus.SENT: {QuoteStatus.ACCEPTED, QuoteStatus.REJECTED},
    QuoteStatus.ACCEPTED: set(),
    QuoteStatus.REJECTED: set(),
}


def can_transition(quote: Quote, target: QuoteStatus) -> bool:
    if target not in ALLOWED_TRANSITIONS[quote.status]:
        return False
    # Over-threshold drafts have to pass through approval first
    if quote.status == QuoteStatus.DRAFT and target == QuoteStatus.SENT and quote.requires_approval:
        return False
    return True


def transition(quote: Quote, target: QuoteStatus) -> Quote:
    """New Quote in status `target`, or InvalidActionError."""
    target = QuoteStatus(target)
    if not can_transition(quote, target):
        raise InvalidActionError(
            f"Quote {quote.id} cannot move from {quote.status.value} to {target.value}"
            + (" (approval required)" if quote.requires_approval else "")
        )
    logger.info("Quote %s: %s -> %s", quote.id, quote.status.value, target.value)
    return quote.model_copy(update={"status": target})
