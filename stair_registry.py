"""Registry of detected staircases.

Holds the current list of Staircases for one process. Every operation takes
the same lock, so readers always see either the state before or after a
mutation, never a mix. Snapshots are tuples of frozen Staircases and can be
handed out without copying.
"""
import logging
import threading
from typing import Iterable, Tuple

from stair_model import Staircase

LOG = logging.getLogger(__name__)


class StaircaseRegistry:
    def __init__(self, stairs: Iterable[Staircase] = ()):
        self._lock = threading.Lock()
        self._stairs: Tuple[Staircase, ...] = tuple(stairs)

    def replace_all(self, staircases: Iterable[Staircase]) -> None:
        """Discard the current collection and install ``staircases`` in order."""
        new_stairs = tuple(staircases)
        with self._lock:
            self._stairs = new_stairs
        LOG.info(f"Registry replaced: {len(new_stairs)} staircase(s)")

    def snapshot(self) -> Tuple[Staircase, ...]:
        with self._lock:
            return self._stairs

    def clear(self) -> None:
        with self._lock:
            self._stairs = ()
        LOG.info("Registry cleared")

    def append(self, staircase: Staircase) -> None:
        with self._lock:
            self._stairs = self._stairs + (staircase,)
            total = len(self._stairs)
        LOG.info(f"Registry: added staircase with {len(staircase)} step(s), {total} total")

    def __len__(self):
        with self._lock:
            return len(self._stairs)
