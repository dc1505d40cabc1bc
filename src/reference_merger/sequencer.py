"""Output ordering for merged reference lists."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Tuple

from .models import Decision, DecisionLog
from .normalization import natural_sort_key

logger = logging.getLogger(__name__)


class OrderingMode(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class OrderingEvent(str, Enum):
    DRAG = "drag"
    ENABLE_AUTO_SORT = "enable_auto_sort"
    DISABLE_AUTO_SORT = "disable_auto_sort"


_TRANSITIONS: Dict[Tuple[OrderingMode, OrderingEvent], OrderingMode] = {
    (OrderingMode.AUTO, OrderingEvent.DRAG): OrderingMode.MANUAL,
    (OrderingMode.AUTO, OrderingEvent.ENABLE_AUTO_SORT): OrderingMode.AUTO,
    (OrderingMode.AUTO, OrderingEvent.DISABLE_AUTO_SORT): OrderingMode.MANUAL,
    (OrderingMode.MANUAL, OrderingEvent.DRAG): OrderingMode.MANUAL,
    (OrderingMode.MANUAL, OrderingEvent.ENABLE_AUTO_SORT): OrderingMode.AUTO,
    (OrderingMode.MANUAL, OrderingEvent.DISABLE_AUTO_SORT): OrderingMode.MANUAL,
}


def next_mode(mode: OrderingMode, event: OrderingEvent) -> OrderingMode:
    """Ordering-mode state machine; only the explicit toggle leads back to AUTO."""
    return _TRANSITIONS[(mode, event)]


def initial_mode(auto_sort: bool) -> OrderingMode:
    return OrderingMode.AUTO if auto_sort else OrderingMode.MANUAL


def emits(decision: Decision) -> bool:
    """Backbone entries always produce output; additions only when selected."""
    return decision.is_backbone or decision.selected


class Sequencer:
    """Computes display and output order from a decision log."""

    def order(self, log: DecisionLog, mode: OrderingMode) -> List[Decision]:
        """All decisions in the order they are shown."""
        if mode == OrderingMode.MANUAL:
            return log.entries
        return self._interleave(log)

    def project(self, log: DecisionLog, mode: OrderingMode) -> List[Decision]:
        """The decisions that end up in the merged document, in output order."""
        return [decision for decision in self.order(log, mode) if emits(decision)]

    def drag(self, log: DecisionLog, mode: OrderingMode, source: int, target: int) -> Tuple[DecisionLog, OrderingMode]:
        """Move the entry shown at ``source`` to ``target`` and commit to manual mode.

        In auto mode the shown order is materialized into the log first, so the
        move happens relative to what the user sees.
        """
        shown = self.order(log, mode)
        if not 0 <= source < len(shown):
            raise IndexError(f"source position {source} out of range")
        if not 0 <= target < len(shown):
            raise IndexError(f"target position {target} out of range")
        moved = shown.pop(source)
        shown.insert(target, moved)
        logger.debug("Moved entry %d to %d", source, target)
        return log.reordered(shown), next_mode(mode, OrderingEvent.DRAG)

    @staticmethod
    def _interleave(log: DecisionLog) -> List[Decision]:
        # manual moves never leak into auto order
        backbone = sorted((d for d in log if d.is_backbone), key=lambda d: d.original_ref)
        additions = sorted(
            (d for d in log if not d.is_backbone), key=lambda d: natural_sort_key(d.sort_key)
        )
        merged = list(backbone)
        for addition in additions:
            key = natural_sort_key(addition.sort_key)
            position = len(merged)
            for idx, existing in enumerate(merged):
                if natural_sort_key(existing.sort_key) > key:
                    position = idx
                    break
            merged.insert(position, addition)
        return merged
