from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .grid import GameGrid
from .pieces import Piece
from .rules import Phase


@dataclass(frozen=True)
class GameSnapshot:
    """Deep copy of everything an undo or revive has to put back."""

    grid: GameGrid
    slots: Tuple[Optional[Piece], ...]
    score: int
    phase: Phase
    can_skip_slide: bool

    def copy(self) -> "GameSnapshot":
        return GameSnapshot(
            grid=self.grid.copy(),
            slots=tuple(p.copy() if p is not None else None for p in self.slots),
            score=int(self.score),
            phase=Phase(self.phase),
            can_skip_slide=bool(self.can_skip_slide),
        )


def capture(
    grid: GameGrid,
    slots: Sequence[Optional[Piece]],
    score: int,
    phase: Phase,
    can_skip_slide: bool,
) -> GameSnapshot:
    return GameSnapshot(grid, tuple(slots), score, phase, can_skip_slide).copy()


def restore(snapshot: GameSnapshot) -> GameSnapshot:
    """Return a fresh copy so the caller never aliases the stored snapshot."""
    return snapshot.copy()


class UndoManager:
    """Single-level undo with a finite, replenishable number of uses."""

    def __init__(self, remaining: int = 3, cap: int = 99) -> None:
        self.cap = int(cap)
        self.remaining = max(0, min(int(remaining), self.cap))
        self.snapshot: Optional[GameSnapshot] = None

    def record(self, snapshot: GameSnapshot) -> None:
        self.snapshot = snapshot

    def clear(self) -> None:
        self.snapshot = None

    def refusal(self, busy: bool = False) -> Optional[str]:
        """Reason an undo would be refused right now, or None when it is allowed."""
        if busy:
            return "busy"
        if self.snapshot is None:
            return "no_snapshot"
        if self.remaining <= 0:
            return "no_undo_left"
        return None

    def pop(self) -> GameSnapshot:
        if self.snapshot is None:
            raise RuntimeError("no snapshot to undo to")
        snapshot = self.snapshot
        self.snapshot = None
        self.remaining -= 1
        return restore(snapshot)

    def grant(self, count: int = 1) -> int:
        self.remaining = min(self.cap, self.remaining + max(0, int(count)))
        return self.remaining
