from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


SUPPORTED_BOARD_SIZES: tuple[int, ...] = (4, 5, 7, 8, 10)


class Phase(str, Enum):
    PLACE = "PLACE"
    SLIDE = "SLIDE"


@dataclass
class TurnRules:
    base_piece_value: int = 1
    # When set, a scoring slide lets the player place a piece instead of sliding again.
    allow_skip_after_merge: bool = False
    undo_initial: int = 3
    undo_cap: int = 99
    revive_limit: int = 1

    def clamp_undo(self, remaining: int) -> int:
        return max(0, min(int(remaining), self.undo_cap))


@dataclass
class RevealTiming:
    slide_ms: int = 150
    merge_pop_ms: int = 100
