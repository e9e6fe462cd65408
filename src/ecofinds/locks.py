"""Per-entity mutation locks."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from .errors import EntityLockedError

log = logging.getLogger(__name__)

# Key held by cart-wide operations (clear, checkout)
ALL_ENTITIES = "*"


class LockTable:
    """
    Busy flags keyed by entity id.

    A held id rejects further acquisition instead of queueing it, so a caller
    that loses the race sends nothing. Acquisition is scoped: the flag is
    cleared on every exit path of the ``with`` block, including errors and
    task cancellation. Unrelated ids can be held at the same time.

    ``hold_all`` is the exclusive variant for operations that touch every
    entity at once. It needs the table to be empty and blocks every per-id
    acquisition while held.
    """

    def __init__(self) -> None:
        self._held: set[str] = set()

    def is_locked(self, entity_id: str) -> bool:
        return entity_id in self._held or ALL_ENTITIES in self._held

    def any_held(self) -> bool:
        return bool(self._held)

    @property
    def held(self) -> frozenset[str]:
        return frozenset(self._held)

    @contextmanager
    def hold(self, entity_id: str) -> Iterator[None]:
        """
        Hold the lock for entity_id for the duration of the block.

        Raises:
            EntityLockedError: If entity_id (or the whole table) is already held.
        """
        if self.is_locked(entity_id):
            log.debug("Rejected mutation of busy entity %s", entity_id)
            raise EntityLockedError(entity_id)
        self._held.add(entity_id)
        try:
            yield
        finally:
            self._held.discard(entity_id)

    @contextmanager
    def hold_all(self) -> Iterator[None]:
        """
        Hold every entity for the duration of the block.

        Raises:
            EntityLockedError: If any lock is currently held.
        """
        if self._held:
            busy = ALL_ENTITIES if ALL_ENTITIES in self._held else sorted(self._held)[0]
            log.debug("Rejected exclusive hold, %s is busy", busy)
            raise EntityLockedError(busy)
        self._held.add(ALL_ENTITIES)
        try:
            yield
        finally:
            self._held.discard(ALL_ENTITIES)
