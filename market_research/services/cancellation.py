from __future__ import annotations

from market_research.errors import ResearchCancelled


class CancellationToken:
    """Cooperative cancellation checked at pipeline stage boundaries.

    Cancelling never interrupts an external call already in flight; the run
    stops at the next check instead.
    """

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self, stage: str) -> None:
        if self._cancelled:
            raise ResearchCancelled(stage)
