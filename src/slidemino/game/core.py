from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from .grid import GameGrid, TileIdAllocator
from .pieces import Piece, PieceGenerator
from .rules import SUPPORTED_BOARD_SIZES, Phase, RevealTiming, TurnRules
from .slide import Direction, RevealSchedule, SlideResult, slide_grid
from .snapshot import GameSnapshot, UndoManager, capture, restore


LOGGER = logging.getLogger(__name__)


@dataclass
class GameConfig:
    board_size: int = 8
    slot_count: int = 3
    random_seed: Optional[int] = None
    max_episode_steps: int = 10000

    def __post_init__(self) -> None:
        if self.board_size not in SUPPORTED_BOARD_SIZES:
            raise ValueError(
                f"board_size must be one of {SUPPORTED_BOARD_SIZES}, got {self.board_size}"
            )
        if self.slot_count < 1:
            raise ValueError(f"slot_count must be >= 1, got {self.slot_count}")


@dataclass
class ActionResult:
    """Outcome of a player action. ``reason`` names why a refused action was refused."""

    ok: bool
    phase: Phase
    reason: Optional[str] = None
    score_delta: int = 0
    game_over: bool = False
    grid: Optional[GameGrid] = None
    slide: Optional[SlideResult] = None
    reveal: Optional[RevealSchedule] = None
    # (tile_id, x, y) for every tile a placement created
    placed_tiles: List[Tuple[int, int, int]] = field(default_factory=list)


def check_game_over(grid: GameGrid, slots: Sequence[Optional[Piece]]) -> bool:
    """True when no slot piece fits anywhere on ``grid`` in any rotation.

    With every slot empty there is nothing to judge, so the game goes on.
    """
    pieces = [p for p in slots if p is not None]
    if not pieces:
        return False
    for piece in pieces:
        for rotation in range(4):
            candidate = piece.rotated(rotation)
            for y in range(grid.size):
                for x in range(grid.size):
                    if grid.can_place(candidate, x, y):
                        return False
    return True


class SlideminoGame:
    """Place-then-slide turn engine.

    PLACE: drop a slot piece on the board. If the board can slide afterwards the
    turn moves to SLIDE, otherwise the player places again.
    SLIDE: swipe the board. A swipe that merges keeps the turn in SLIDE (combo);
    a swipe that only moves tiles hands the turn back to PLACE.
    The game ends in PLACE once no slot piece fits anywhere in any rotation.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        rules: Optional[TurnRules] = None,
        timing: Optional[RevealTiming] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.config = config or GameConfig()
        self.rules = rules or TurnRules()
        self.timing = timing or RevealTiming()
        self.clock = clock or time.monotonic
        self.rng = random.Random(self.config.random_seed)
        self.reset()

    def reset(self, seed: Optional[int] = None, board_size: Optional[int] = None) -> None:
        if seed is not None:
            self.rng.seed(seed)
        if board_size is not None:
            self.config = GameConfig(
                board_size=board_size,
                slot_count=self.config.slot_count,
                random_seed=self.config.random_seed,
                max_episode_steps=self.config.max_episode_steps,
            )
        self.grid = GameGrid(self.config.board_size)
        self.tile_ids = TileIdAllocator()
        self.generator = PieceGenerator(self.rng, value=self.rules.base_piece_value)
        self.slots: List[Optional[Piece]] = list(self.generator.generate_set(self.config.slot_count))
        self.score = 0
        self.phase = Phase.PLACE
        self.can_skip_slide = False
        self.undo = UndoManager(self.rules.undo_initial, self.rules.undo_cap)
        self.revive_snapshot: Optional[GameSnapshot] = None
        self.revives = 0
        self.move_count = 0
        self.placements = 0
        self.slides = 0
        self.merges = 0
        self.game_over = False
        self.started_at = int(time.time() * 1000)
        self._elapsed_base_ms = 0
        self._running_since: Optional[float] = self.clock()
        LOGGER.info("new game: %dx%d board", self.grid.size, self.grid.size)

    # ---- clock -------------------------------------------------------------------

    @property
    def elapsed_ms(self) -> int:
        if self._running_since is None:
            return self._elapsed_base_ms
        return self._elapsed_base_ms + int(round((self.clock() - self._running_since) * 1000))

    def _stop_clock(self) -> None:
        self._elapsed_base_ms = self.elapsed_ms
        self._running_since = None

    def _start_clock(self) -> None:
        if self._running_since is None:
            self._running_since = self.clock()

    @property
    def revive_used(self) -> bool:
        return self.revives > 0

    def resume(
        self,
        state: GameSnapshot,
        *,
        undo_snapshot: Optional[GameSnapshot] = None,
        undo_remaining: Optional[int] = None,
        move_count: int = 0,
        placements: int = 0,
        slides: int = 0,
        merges: int = 0,
        elapsed_ms: int = 0,
        started_at: Optional[int] = None,
        revives: int = 0,
        next_tile_id: int = 1,
        next_piece_id: int = 1,
    ) -> None:
        """Continue a game in progress from previously saved parts."""
        self._apply(state)
        self.undo = UndoManager(
            self.rules.undo_initial if undo_remaining is None else undo_remaining,
            self.rules.undo_cap,
        )
        if undo_snapshot is not None:
            self.undo.record(undo_snapshot)
        self.tile_ids = TileIdAllocator(next_tile_id)
        grids = [self.grid] + ([undo_snapshot.grid] if undo_snapshot is not None else [])
        for grid in grids:
            for _x, _y, tile in grid.tiles():
                self.tile_ids.ensure_above(tile.id)
        self.generator.next_id = max(
            int(next_piece_id),
            1 + max((p.id for p in self.slots if p is not None), default=0),
        )
        self.revive_snapshot = None
        self.revives = int(revives)
        self.move_count = int(move_count)
        self.placements = int(placements)
        self.slides = int(slides)
        self.merges = int(merges)
        self.game_over = False
        if started_at is not None:
            self.started_at = int(started_at)
        self._elapsed_base_ms = int(elapsed_ms)
        self._running_since = self.clock()
        LOGGER.info("resumed game: score=%d moves=%d", self.score, self.move_count)
        if self.phase == Phase.PLACE and check_game_over(self.grid, self.slots):
            # Saved on a dead position: there is no pre-action snapshot to revive to.
            self.game_over = True
            self._stop_clock()
            LOGGER.info(
                "game over: score=%d moves=%d elapsed_ms=%d",
                self.score, self.move_count, self.elapsed_ms,
            )

    # ---- snapshots ---------------------------------------------------------------

    def snapshot(self) -> GameSnapshot:
        return capture(self.grid, self.slots, self.score, self.phase, self.can_skip_slide)

    def _apply(self, snapshot: GameSnapshot) -> None:
        state = restore(snapshot)
        self.grid = state.grid
        self.slots = list(state.slots)
        self.score = state.score
        self.phase = state.phase
        self.can_skip_slide = state.can_skip_slide

    def _commit(self, before: GameSnapshot, undoable: bool = True) -> None:
        """Record ``before`` as the undo point and end the game if PLACE is stuck."""
        if undoable:
            self.undo.record(before)
        if self.phase == Phase.PLACE and check_game_over(self.grid, self.slots):
            self.game_over = True
            self.revive_snapshot = before
            self._stop_clock()
            LOGGER.info(
                "game over: score=%d moves=%d elapsed_ms=%d",
                self.score, self.move_count, self.elapsed_ms,
            )

    def _refuse(self, reason: str) -> ActionResult:
        return ActionResult(ok=False, phase=self.phase, reason=reason, game_over=self.game_over)

    # ---- phase transitions -------------------------------------------------------

    def _enter_slide(self) -> None:
        if self.grid.has_possible_moves():
            self.phase = Phase.SLIDE
        else:
            self.phase = Phase.PLACE
        self.can_skip_slide = False

    def _finish_slide_turn(self) -> None:
        self.phase = Phase.PLACE
        self.can_skip_slide = False

    # ---- actions -----------------------------------------------------------------

    def try_place(self, slot: int, origin_x: int, origin_y: int, rotation: Optional[int] = None) -> ActionResult:
        """Place the piece in ``slot`` with its origin at ``(origin_x, origin_y)``.

        ``rotation`` overrides the piece's current rotation for this placement.
        """
        if self.game_over:
            return self._refuse("game_over")
        if not 0 <= slot < len(self.slots):
            return self._refuse("bad_slot")
        piece = self.slots[slot]
        if piece is None:
            return self._refuse("empty_slot")
        skipping = self.phase == Phase.SLIDE and self.can_skip_slide
        if self.phase != Phase.PLACE and not skipping:
            return self._refuse("wrong_phase")
        candidate = piece if rotation is None else piece.rotated(rotation)
        if not self.grid.can_place(candidate, origin_x, origin_y):
            return self._refuse("blocked")

        before = self.snapshot()
        if skipping:
            self._finish_slide_turn()
        self.grid = self.grid.place(candidate, origin_x, origin_y, self.tile_ids)
        placed = [
            (int(self.grid.ids[y, x]), x, y) for x, y in candidate.cells_at(origin_x, origin_y)
        ]
        self.slots[slot] = self.generator.generate()
        self.move_count += 1
        self.placements += 1
        self._enter_slide()
        self._commit(before)
        LOGGER.debug(
            "placed piece %d (%s r%d) at (%d, %d) -> %s",
            piece.id, candidate.shape.name, candidate.rotation, origin_x, origin_y, self.phase.value,
        )
        return ActionResult(
            ok=True,
            phase=self.phase,
            game_over=self.game_over,
            grid=self.grid,
            placed_tiles=placed,
        )

    def try_rotate(self, slot: int, delta: int = 1) -> ActionResult:
        """Rotate the piece resting in ``slot``. Not a move and not undoable."""
        if self.game_over:
            return self._refuse("game_over")
        if not 0 <= slot < len(self.slots):
            return self._refuse("bad_slot")
        piece = self.slots[slot]
        if piece is None:
            return self._refuse("empty_slot")
        piece.rotate(delta)
        return ActionResult(ok=True, phase=self.phase, grid=self.grid)

    def try_slide(self, direction: Direction) -> ActionResult:
        if self.game_over:
            return self._refuse("game_over")
        if self.phase != Phase.SLIDE:
            return self._refuse("wrong_phase")
        result = slide_grid(self.grid, Direction(direction))
        if not result.moved:
            if not self.grid.has_possible_moves():
                # Nothing can slide at all: hand the turn back instead of deadlocking.
                before = self.snapshot()
                self._finish_slide_turn()
                self._commit(before, undoable=False)
            refused = self._refuse("no_move")
            refused.slide = result
            return refused

        before = self.snapshot()
        self.grid = result.grid
        self.score += result.score
        self.move_count += 1
        self.slides += 1
        self.merges += len(result.merges)
        if result.score > 0:
            self.can_skip_slide = self.rules.allow_skip_after_merge
            if not self.grid.has_possible_moves():
                self._finish_slide_turn()
        else:
            self._finish_slide_turn()
        self._commit(before)
        LOGGER.debug(
            "slide %s: +%d (%d merges) -> %s",
            result.direction.value, result.score, len(result.merges), self.phase.value,
        )
        return ActionResult(
            ok=True,
            phase=self.phase,
            score_delta=result.score,
            game_over=self.game_over,
            grid=self.grid,
            slide=result,
            reveal=RevealSchedule.for_slide(result, self.timing),
        )

    def skip_slide(self) -> ActionResult:
        """End a combo early. Only possible when the skip rule granted it."""
        if self.game_over:
            return self._refuse("game_over")
        if self.phase != Phase.SLIDE or not self.can_skip_slide:
            return self._refuse("wrong_phase")
        before = self.snapshot()
        self._finish_slide_turn()
        self._commit(before)
        return ActionResult(ok=True, phase=self.phase, game_over=self.game_over, grid=self.grid)

    def try_undo(self, busy: bool = False) -> ActionResult:
        """Step back one action. ``busy`` is the caller's in-flight animation flag."""
        if self.game_over:
            return self._refuse("game_over")
        reason = self.undo.refusal(busy)
        if reason is not None:
            return self._refuse(reason)
        score_before = self.score
        self._apply(self.undo.pop())
        LOGGER.info("undo used, %d left", self.undo.remaining)
        return ActionResult(
            ok=True,
            phase=self.phase,
            score_delta=self.score - score_before,
            grid=self.grid,
        )

    def try_revive(self) -> ActionResult:
        """Resume a finished game from the position before its fatal move."""
        if not self.game_over:
            return self._refuse("not_game_over")
        if self.revive_snapshot is None:
            return self._refuse("no_revive_point")
        if self.revives >= self.rules.revive_limit:
            return self._refuse("revive_used")
        score_before = self.score
        self._apply(self.revive_snapshot)
        self.revive_snapshot = None
        self.revives += 1
        self.game_over = False
        self.undo.clear()
        self._start_clock()
        LOGGER.info("revived at score=%d", self.score)
        return ActionResult(ok=True, phase=self.phase, score_delta=self.score - score_before, grid=self.grid)

    def refresh_slots(self) -> ActionResult:
        """Swap every slot for a fresh piece (reward-granted); undoable, not a move."""
        if self.game_over:
            return self._refuse("game_over")
        if self.phase != Phase.PLACE:
            return self._refuse("wrong_phase")
        before = self.snapshot()
        self.slots = list(self.generator.generate_set(len(self.slots)))
        self._commit(before)
        return ActionResult(ok=True, phase=self.phase, game_over=self.game_over, grid=self.grid)

    def grant_undo(self, count: int = 1) -> int:
        return self.undo.grant(count)

    # ---- queries -----------------------------------------------------------------

    def is_game_over(self) -> bool:
        return self.game_over

    def get_valid_actions(self) -> List[Tuple[int, int, int, int]]:
        """List of (slot, x, y, rotation) placements legal right now."""
        if self.game_over:
            return []
        if self.phase != Phase.PLACE and not self.can_skip_slide:
            return []
        actions: List[Tuple[int, int, int, int]] = []
        for slot, piece in enumerate(self.slots):
            if piece is None:
                continue
            for rotation in range(4):
                for x, y in self.grid.valid_placements(piece.rotated(rotation)):
                    actions.append((slot, x, y, rotation))
        return actions

    def get_state(self) -> dict:
        return {
            "values": self.grid.values.copy(),
            "ids": self.grid.ids.copy(),
            "slots": [None if p is None else (int(p.shape), p.rotation) for p in self.slots],
            "score": self.score,
            "phase": self.phase,
            "can_skip_slide": self.can_skip_slide,
            "undo_remaining": self.undo.remaining,
            "move_count": self.move_count,
            "game_over": self.game_over,
        }

    def stats(self) -> dict:
        return {
            "final_score": self.score,
            "move_count": self.move_count,
            "elapsed_ms": self.elapsed_ms,
            "placements": self.placements,
            "slides": self.slides,
            "merges": self.merges,
            "max_tile": self.grid.max_value(),
        }
