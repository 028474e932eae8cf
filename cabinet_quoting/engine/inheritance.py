"""
Inheritance Propagator: room-level processing selections copied onto items.

Every entry copied from a room carries source_room_id = room.id. That tag is
the only thing that separates an inherited entry from one the user added on
the item directly, and the propagator only ever touches tagged entries:

- item created in a room: the room's selection is appended as tagged entries
- room selection changed: for each item in the room, every entry tagged with
  that room is dropped and the new selection is copied on again. Replace,
  never merge. Untagged (manual) entries are left exactly as they were, also
  when the room selection becomes empty.

Room processings that do not apply to an item's product category are not
copied, an id the user already applied manually is not copied a second time,
and an id excluded by a mutual-exclusion rule on the item is left off.
"""

import logging
from collections import Counter
from typing import List

from ..errors import PropagationError
from ..schemas import AppliedProcessing, Product, QuoteItem, Room
from .pricing import build_entry, with_processings
from .rule_resolver import RuleResolver

logger = logging.getLogger(__name__)


class InheritancePropagator:

    def __init__(self, catalog):
        self.catalog = catalog
        self.rules = RuleResolver(catalog)

    def inherited_entries(self, room: Room, item: QuoteItem, product: Product) -> List[AppliedProcessing]:
        """Tagged entries the room contributes to this item, priced against it.

        Room ids are taken in selection order; one that a mutual-exclusion
        rule rules out, given what the item already carries, is skipped.
        """
        applied = set(item.applied_ids())
        entries = []
        for processing_id in room.processing_ids:
            processing = self.catalog.processing(processing_id)
            if not processing.applies_to(product.category):
                logger.debug("Room %s: %s does not apply to %s (%s), skipped",
                             room.id, processing_id, product.id, product.category)
                continue
            if processing_id in applied:
                continue
            if processing_id in self.rules.excluded_ids(applied):
                logger.warning("Room %s: %s is excluded on item %s by %s, not inherited",
                               room.id, processing_id, item.id, sorted(applied))
                continue
            entries.append(build_entry(processing, item, product, source_room_id=room.id))
            applied.add(processing_id)
        return entries

    def apply_to_new_item(self, item: QuoteItem, room: Room) -> QuoteItem:
        """Copy the room's current selection onto a freshly created item."""
        product = self.catalog.product(item.product_id)
        inherited = self.inherited_entries(room, item, product)
        updated = with_processings(item, list(item.applied_processings) + inherited)
        self._check_replaced(updated, room)
        return updated

    def reapply(self, item: QuoteItem, room: Room) -> QuoteItem:
        """Drop the item's entries inherited from this room and copy the room's
        current selection on again. Manual entries keep their place."""
        product = self.catalog.product(item.product_id)
        kept = [ap for ap in item.applied_processings if ap.source_room_id != room.id]
        stripped = with_processings(item, kept)
        inherited = self.inherited_entries(room, stripped, product)
        updated = with_processings(item, kept + inherited)
        self._check_replaced(updated, room)
        return updated

    def propagate(self, items, room: Room) -> tuple:
        """Re-run inheritance for every item assigned to the room; other items
        pass through untouched."""
        result = []
        touched = 0
        for item in items:
            if item.room_id == room.id:
                result.append(self.reapply(item, room))
                touched += 1
            else:
                result.append(item)
        logger.info("Room %s selection %s propagated to %d item(s)",
                    room.id, list(room.processing_ids), touched)
        return tuple(result)

    def _check_replaced(self, item: QuoteItem, room: Room) -> None:
        """After a pass, the room's entries on the item must be exactly its
        current selection, each once."""
        tagged = [ap.processing_id for ap in item.applied_processings if ap.source_room_id == room.id]
        duplicates = [pid for pid, n in Counter(tagged).items() if n > 1]
        stale = [pid for pid in tagged if pid not in room.processing_ids]
        if duplicates or stale:
            raise PropagationError(
                f"Item {item.id} in room {room.id} has merged inherited entries "
                f"(duplicates={duplicates}, stale={stale})"
            )
