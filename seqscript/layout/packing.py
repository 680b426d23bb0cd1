import logging
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

Span = Tuple[float, float]


def spans_overlap(a: Span, b: Span) -> bool:
    """Strict overlap: spans that only touch at an endpoint do not collide."""
    return a[0] < b[1] and b[0] < a[1]


class LevelPacker:
    """Greedy first-come packing of message spans onto shared y levels.

    Only the currently open level accepts new spans. A span that collides with
    anything already claimed on it opens a fresh level below the tallest
    message of the previous one.
    """

    def __init__(self) -> None:
        self.level = -1
        self.level_y: Optional[float] = None
        self.level_height = 0.0
        self._claimed: List[Span] = []

    @property
    def is_open(self) -> bool:
        return self.level_y is not None

    def fits(self, span: Span) -> bool:
        return self.is_open and not any(spans_overlap(span, claimed) for claimed in self._claimed)

    def place(self, span: Span, cursor: float, height: float) -> float:
        if not self.fits(span):
            start = self.close(cursor)
            self.level += 1
            self.level_y = start
            self.level_height = 0.0
            self._claimed = []
            logger.debug("Opened packing level %d at y=%s", self.level, start)
        self._claimed.append(span)
        self.level_height = max(self.level_height, height)
        return self.level_y

    def close(self, cursor: float) -> float:
        """Close the open level and return the cursor below it."""
        if not self.is_open:
            return cursor
        bottom = self.level_y + self.level_height
        self.level_y = None
        self.level_height = 0.0
        self._claimed = []
        return max(cursor, bottom)


class ParallelSection:
    """Messages of a parallel section all share the section's start y."""

    def __init__(self, start_y: float) -> None:
        self.start_y = start_y
        self.max_height = 0.0

    def place(self, height: float) -> float:
        self.max_height = max(self.max_height, height)
        return self.start_y

    def close(self, cursor: float) -> float:
        return max(cursor, self.start_y + self.max_height)
