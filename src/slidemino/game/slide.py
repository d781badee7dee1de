"""Slide/merge pass over the whole board.

Every direction is reduced to one routine that slides a 1-D line toward index 0.
A line is read from the board through a list of ``(x, y)`` coordinates ordered in
the direction of travel, so RIGHT and DOWN simply read their rows/columns back to
front and the same coordinate list maps results back onto the board.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .grid import GameGrid, Tile
from .pieces import Coordinate
from .rules import RevealTiming


class Direction(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    LEFT = "LEFT"
    RIGHT = "RIGHT"


@dataclass(frozen=True)
class TileMove:
    """A surviving tile's travel. ``merged`` marks tiles that absorbed another."""

    tile_id: int
    value: int
    from_xy: Coordinate
    to_xy: Coordinate
    merged: bool = False


@dataclass(frozen=True)
class MergeEvent:
    """``absorbed_id`` slides from ``from_xy`` into ``to_xy`` and disappears."""

    tile_id: int
    absorbed_id: int
    absorbed_value: int
    from_xy: Coordinate
    to_xy: Coordinate
    value: int


@dataclass(frozen=True)
class TileDelta:
    tile_id: int
    x: int
    y: int
    old_value: int
    new_value: int


@dataclass
class LineResult:
    line: List[Optional[Tile]]
    score: int
    changed: bool
    # (tile_id, from_index, to_index, merged)
    moves: List[Tuple[int, int, int, bool]] = field(default_factory=list)
    # (absorbed tile, from_index, to_index)
    absorbed: List[Tuple[Tile, int, int]] = field(default_factory=list)


@dataclass
class SlideResult:
    grid: GameGrid
    score: int
    moved: bool
    direction: Direction
    moves: List[TileMove] = field(default_factory=list)
    merges: List[MergeEvent] = field(default_factory=list)
    deltas: List[TileDelta] = field(default_factory=list)


def merge_line(line: Sequence[Optional[Tile]]) -> LineResult:
    """Slide ``line`` toward index 0, merging equal neighbours once each.

    The lower-index tile of a pair keeps its id; the other is reported as absorbed.
    """
    compact = [(index, tile) for index, tile in enumerate(line) if tile is not None]
    out: List[Optional[Tile]] = []
    moves: List[Tuple[int, int, int, bool]] = []
    absorbed: List[Tuple[Tile, int, int]] = []
    score = 0
    i = 0
    while i < len(compact):
        index, tile = compact[i]
        target = len(out)
        if i + 1 < len(compact) and compact[i + 1][1].value == tile.value:
            next_index, next_tile = compact[i + 1]
            doubled = tile.value * 2
            out.append(Tile(tile.id, doubled))
            moves.append((tile.id, index, target, True))
            absorbed.append((next_tile, next_index, target))
            score += doubled
            i += 2
        else:
            out.append(tile)
            moves.append((tile.id, index, target, False))
            i += 1
    out.extend([None] * (len(line) - len(out)))

    before = [t.id if t is not None else 0 for t in line]
    after = [t.id if t is not None else 0 for t in out]
    return LineResult(line=out, score=score, changed=before != after, moves=moves, absorbed=absorbed)


def line_coords(size: int, direction: Direction, index: int) -> List[Coordinate]:
    """Board coordinates of line ``index``, ordered so that index 0 is the wall tiles slide toward."""
    if direction == Direction.LEFT:
        return [(x, index) for x in range(size)]
    if direction == Direction.RIGHT:
        return [(x, index) for x in reversed(range(size))]
    if direction == Direction.UP:
        return [(index, y) for y in range(size)]
    return [(index, y) for y in reversed(range(size))]


def slide_grid(grid: GameGrid, direction: Direction) -> SlideResult:
    """Slide every line of ``grid`` toward ``direction``. The input grid is untouched."""
    direction = Direction(direction)
    new_grid = GameGrid(grid.size)
    result = SlideResult(grid=new_grid, score=0, moved=False, direction=direction)

    for index in range(grid.size):
        coords = line_coords(grid.size, direction, index)
        line = [grid.tile_at(x, y) for x, y in coords]
        merged = merge_line(line)
        result.score += merged.score
        result.moved = result.moved or merged.changed

        for (x, y), tile in zip(coords, merged.line):
            new_grid.set_tile(x, y, tile)

        for tile_id, src, dst, was_merged in merged.moves:
            new_value = int(new_grid.values[coords[dst][1], coords[dst][0]])
            result.moves.append(TileMove(tile_id, new_value, coords[src], coords[dst], was_merged))
            if was_merged:
                result.deltas.append(
                    TileDelta(tile_id, coords[dst][0], coords[dst][1], new_value // 2, new_value)
                )
        for tile, src, dst in merged.absorbed:
            result.merges.append(
                MergeEvent(
                    tile_id=int(new_grid.ids[coords[dst][1], coords[dst][0]]),
                    absorbed_id=tile.id,
                    absorbed_value=tile.value,
                    from_xy=coords[src],
                    to_xy=coords[dst],
                    value=tile.value * 2,
                )
            )
    return result


def has_possible_moves(grid: GameGrid) -> bool:
    return grid.has_possible_moves()


def movable_directions(grid: GameGrid) -> List[Direction]:
    """Directions whose slide would change the board."""
    return [d for d in Direction if slide_grid(grid, d).moved]


@dataclass(frozen=True)
class RevealStep:
    at_ms: int
    kind: str  # "move" | "merge" | "score"
    tile_id: Optional[int]
    value: int


@dataclass
class RevealSchedule:
    """When the presentation layer should show each part of an already-committed slide."""

    steps: List[RevealStep] = field(default_factory=list)
    duration_ms: int = 0

    @classmethod
    def for_slide(cls, result: SlideResult, timing: Optional[RevealTiming] = None) -> "RevealSchedule":
        timing = timing or RevealTiming()
        if not result.moved:
            return cls()
        steps = [RevealStep(0, "move", move.tile_id, move.value // 2 if move.merged else move.value)
                 for move in result.moves]
        steps += [RevealStep(timing.slide_ms, "merge", delta.tile_id, delta.new_value) for delta in result.deltas]
        duration = timing.slide_ms
        if result.score > 0:
            duration += timing.merge_pop_ms
            steps.append(RevealStep(duration, "score", None, result.score))
        return cls(steps=steps, duration_ms=duration)
