"""
Rule Resolver: which processings may still be added to an item.

Rules are plain catalog records interpreted here, never per-processing code:
  1. start from the processings applicable to the product's category
  2. strip every exclusion set whose rule is triggered by an applied id
  3. strip the ids already applied (a processing is applied at most once)

Mutual-exclusion rules run in ascending priority. Exclusions only accumulate
within one pass; a later rule can never put back what an earlier one removed.
Overlapping exclusion sets simply union. A rule whose trigger was excluded
by another rule just never fires for that item; that is a catalog authoring
matter, not something the resolver flags.
"""

import logging
from typing import Iterable, List, Set, Tuple

from ..schemas import Processing, ProcessingRule, Product, RuleKind

logger = logging.getLogger(__name__)


class RuleResolver:
    """Interprets the catalog's ProcessingRule records for one product at a time."""

    def __init__(self, catalog):
        self.catalog = catalog

    def excluded_ids(self, applied_ids: Iterable[str]) -> Set[str]:
        """Union of the exclusion sets of every triggered mutual-exclusion rule."""
        applied = set(applied_ids)
        excluded: Set[str] = set()
        for rule in self.catalog.rules_of_kind(RuleKind.MUTUAL_EXCLUSION):
            if rule.is_triggered_by(applied):
                logger.debug("Rule %s excludes %s", rule.id, list(rule.exclude_ids))
                excluded.update(rule.exclude_ids)
        return excluded

    def available_processings(self, product: Product, applied_ids: Iterable[str]) -> List[Processing]:
        """Processings that can still be added to an item of this product."""
        applied = set(applied_ids)
        excluded = self.excluded_ids(applied)
        return [
            p for p in self.catalog.processings_for_category(product.category)
            if p.id not in excluded and p.id not in applied
        ]

    def is_available(self, product: Product, applied_ids: Iterable[str], processing_id: str) -> bool:
        return any(p.id == processing_id for p in self.available_processings(product, applied_ids))

    def missing_requirements(self, applied_ids: Iterable[str]) -> List[Tuple[ProcessingRule, str]]:
        """
        (rule, missing processing id) for every requirement rule whose trigger
        is applied but whose companion processing is not.
        """
        applied = set(applied_ids)
        missing = []
        for rule in self.catalog.rules_of_kind(RuleKind.REQUIREMENT):
            if not rule.is_triggered_by(applied):
                continue
            for required_id in rule.require_ids:
                if required_id not in applied:
                    missing.append((rule, required_id))
        return missing
