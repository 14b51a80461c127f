"""
Entity Deduplicator - run-scoped natural key to id lookup tables.
"""

import logging
from enum import Enum
from typing import Dict, Hashable, Optional

logger = logging.getLogger(__name__)


class EntityKind(str, Enum):
    """Entity kinds deduplicated during an import run."""
    CUSTOMER = 'customer'
    PRODUCT = 'product'
    INVOICE = 'invoice'


class EntityDeduplicator:
    """
    Remembers which entities were already created in the current run.

    Keys are natural identities (customer name, product name, invoice
    number) compared exactly, without any normalization. Callers check
    with :meth:`lookup`, create the entity themselves when it returns
    ``None`` and then :meth:`register` the new id before moving to the
    next row.

    One instance belongs to one run; it holds no state worth keeping
    once the run ends.
    """

    def __init__(self):
        self._ids: Dict[EntityKind, Dict[Hashable, int]] = {kind: {} for kind in EntityKind}

    def lookup(self, kind: EntityKind, key: Hashable) -> Optional[int]:
        """Return the id registered for ``key``, or None if not seen in this run."""
        return self._ids[kind].get(key)

    def register(self, kind: EntityKind, key: Hashable, entity_id: int):
        """
        Record the id assigned to a newly created entity.

        Raises:
            ValueError: If ``key`` was already registered for ``kind``.
        """
        table = self._ids[kind]
        if key in table:
            raise ValueError(f"{kind.value} {key!r} already registered with id {table[key]}")
        table[key] = entity_id
        logger.debug(f"Registered {kind.value} {key!r} -> {entity_id}")

    def resolve(self, kind: EntityKind, key: Hashable) -> int:
        """Return the id for a key that must already be registered."""
        try:
            return self._ids[kind][key]
        except KeyError:
            raise KeyError(f"{kind.value} {key!r} has not been registered") from None

    def count(self, kind: EntityKind) -> int:
        return len(self._ids[kind])

    def seen(self, kind: EntityKind, key: Hashable) -> bool:
        return key in self._ids[kind]
