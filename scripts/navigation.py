#!/usr/bin/env python3
"""
Previous/next navigation between records in an edit dialog.

Navigation saves the current record before moving on. Only one navigation
may be in flight at a time; an overlapping request is refused instead of
interleaving its save with the one already running.
"""

import logging
import threading
from typing import Any, Callable, Optional, Sequence

logger = logging.getLogger(__name__)

DIRECTIONS = ('next', 'previous')


class NavigationInProgress(RuntimeError):
    """Another navigation is still saving"""


class RecordNavigator:
    """Single-flight save-then-move helper"""

    def __init__(self):
        self._in_flight = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._in_flight.locked()

    def navigate(self, ids: Sequence[Any], current_id: Any, direction: str,
                 save: Optional[Callable[[], Any]] = None) -> Optional[Any]:
        """
        Save the current record, then return the id next to it.

        Args:
            ids: Record ids in display order
            current_id: Id of the record being edited
            direction: 'next' or 'previous'
            save: Called before moving; an exception aborts the move

        Returns:
            The neighbouring id, or None at either end of the list.

        Raises:
            NavigationInProgress: a navigation is already running
            ValueError: unknown direction or current_id not in ids
        """
        if direction not in DIRECTIONS:
            raise ValueError(f'direction must be one of {", ".join(DIRECTIONS)}')

        if not self._in_flight.acquire(blocking=False):
            logger.warning(f"Navigation from {current_id} refused, another one is in flight")
            raise NavigationInProgress('Navigation already in progress')

        try:
            ids = list(ids)
            if current_id not in ids:
                raise ValueError(f'Record {current_id} is not in the current list')

            if save is not None:
                save()

            index = ids.index(current_id)
            target = index + 1 if direction == 'next' else index - 1
            if 0 <= target < len(ids):
                return ids[target]
            return None
        finally:
            self._in_flight.release()
