from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .pieces import Coordinate, Piece


class EngineInvariantError(RuntimeError):
    """Raised when the board breaks an invariant only an engine bug can break."""


@dataclass(frozen=True)
class Tile:
    id: int
    value: int


def is_power_of_two(value: int) -> bool:
    return value >= 1 and (value & (value - 1)) == 0


class TileIdAllocator:
    """Monotonic source of tile ids. Id 0 is reserved for empty cells."""

    def __init__(self, next_id: int = 1) -> None:
        self.next_id = max(1, int(next_id))

    def allocate(self) -> int:
        tile_id = self.next_id
        self.next_id += 1
        return tile_id

    def ensure_above(self, tile_id: int) -> None:
        if tile_id >= self.next_id:
            self.next_id = int(tile_id) + 1


class GameGrid:
    """Square board of nullable tiles.

    Two parallel ``(size, size)`` integer arrays indexed ``[y, x]``: ``values``
    holds tile values (0 = empty) and ``ids`` holds tile ids (0 = empty).
    """

    def __init__(self, size: int) -> None:
        self.size = int(size)
        if self.size <= 0:
            raise ValueError(f"grid size must be positive, got {self.size}")
        self.values = np.zeros((self.size, self.size), dtype=np.int64)
        self.ids = np.zeros((self.size, self.size), dtype=np.int64)

    @classmethod
    def from_values(cls, rows: Sequence[Sequence[int]], ids: Optional[TileIdAllocator] = None) -> "GameGrid":
        """Build a grid from literal value rows; non-zero cells get fresh ids in row-major order."""
        size = len(rows)
        if any(len(row) != size for row in rows):
            raise ValueError("grid rows must form a square")
        ids = ids or TileIdAllocator()
        grid = cls(size)
        for y, row in enumerate(rows):
            for x, value in enumerate(row):
                if value:
                    grid.set_tile(x, y, Tile(ids.allocate(), int(value)))
        return grid

    @classmethod
    def from_tiles(cls, rows: Sequence[Sequence[Optional[Tile]]]) -> "GameGrid":
        size = len(rows)
        if any(len(row) != size for row in rows):
            raise ValueError("grid rows must form a square")
        grid = cls(size)
        for y, row in enumerate(rows):
            for x, tile in enumerate(row):
                if tile is not None:
                    grid.set_tile(x, y, tile)
        grid.validate()
        return grid

    # ---- cell access -------------------------------------------------------------

    def is_inside(self, x: int, y: int) -> bool:
        return 0 <= x < self.size and 0 <= y < self.size

    def is_empty(self, x: int, y: int) -> bool:
        return self.values[y, x] == 0

    def tile_at(self, x: int, y: int) -> Optional[Tile]:
        if self.values[y, x] == 0:
            return None
        return Tile(int(self.ids[y, x]), int(self.values[y, x]))

    def set_tile(self, x: int, y: int, tile: Optional[Tile]) -> None:
        if tile is None:
            self.values[y, x] = 0
            self.ids[y, x] = 0
            return
        if tile.id <= 0:
            raise EngineInvariantError(f"tile id must be positive, got {tile.id}")
        if not is_power_of_two(tile.value):
            raise EngineInvariantError(f"tile value must be a power of two >= 1, got {tile.value}")
        self.values[y, x] = tile.value
        self.ids[y, x] = tile.id

    def tiles(self) -> Iterator[Tuple[int, int, Tile]]:
        ys, xs = np.nonzero(self.values)
        for y, x in zip(ys.tolist(), xs.tolist()):
            yield x, y, Tile(int(self.ids[y, x]), int(self.values[y, x]))

    def rows(self) -> List[List[Optional[Tile]]]:
        return [[self.tile_at(x, y) for x in range(self.size)] for y in range(self.size)]

    # ---- placement ---------------------------------------------------------------

    def can_place_cells(self, cells: Iterable[Coordinate]) -> bool:
        for x, y in cells:
            if not self.is_inside(x, y):
                return False
            if self.values[y, x] != 0:
                return False
        return True

    def can_place(self, piece: Piece, origin_x: int, origin_y: int) -> bool:
        return self.can_place_cells(piece.cells_at(origin_x, origin_y))

    def place(self, piece: Piece, origin_x: int, origin_y: int, ids: TileIdAllocator) -> "GameGrid":
        """Return a copy with one new tile per piece cell. The input grid is untouched."""
        cells = piece.cells_at(origin_x, origin_y)
        if not self.can_place_cells(cells):
            raise ValueError(f"piece {piece.id} cannot be placed at ({origin_x}, {origin_y})")
        new_grid = self.copy()
        existing = set(self.ids[self.values != 0].tolist())
        for x, y in cells:
            tile_id = ids.allocate()
            if tile_id in existing:
                raise EngineInvariantError(f"tile id collision on placement: {tile_id}")
            new_grid.set_tile(x, y, Tile(tile_id, piece.value))
        return new_grid

    def valid_placements(self, piece: Piece) -> List[Coordinate]:
        """All origins where ``piece`` fits, scanning rows top to bottom."""
        return [
            (x, y)
            for y in range(self.size)
            for x in range(self.size)
            if self.can_place(piece, x, y)
        ]

    # ---- board queries -----------------------------------------------------------

    def empty_count(self) -> int:
        return int(np.count_nonzero(self.values == 0))

    def max_value(self) -> int:
        return int(self.values.max()) if self.values.size else 0

    def has_possible_moves(self) -> bool:
        """True when an empty cell exists or two orthogonal neighbours share a value."""
        v = self.values
        if np.any(v == 0):
            return True
        if np.any(v[:, 1:] == v[:, :-1]):
            return True
        return bool(np.any(v[1:, :] == v[:-1, :]))

    def validate(self) -> None:
        occupied = self.values != 0
        if np.any(self.ids[~occupied] != 0):
            raise EngineInvariantError("empty cell carries a tile id")
        tile_ids = self.ids[occupied]
        if np.any(tile_ids <= 0):
            raise EngineInvariantError("occupied cell carries a non-positive tile id")
        if len(set(tile_ids.tolist())) != int(tile_ids.size):
            raise EngineInvariantError("duplicate tile ids on the board")
        for value in self.values[occupied].tolist():
            if not is_power_of_two(int(value)):
                raise EngineInvariantError(f"tile value {value} is not a power of two")

    def copy(self) -> "GameGrid":
        new_grid = GameGrid(self.size)
        new_grid.values = self.values.copy()
        new_grid.ids = self.ids.copy()
        return new_grid

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GameGrid):
            return NotImplemented
        return (
            self.size == other.size
            and np.array_equal(self.values, other.values)
            and np.array_equal(self.ids, other.ids)
        )

    def __repr__(self) -> str:
        return f"GameGrid(size={self.size}, values={self.values.tolist()!r})"
