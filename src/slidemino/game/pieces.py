from __future__ import annotations

import random
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Optional, Tuple


Coordinate = Tuple[int, int]


class ShapeType(IntEnum):
    I = 0
    O = 1
    T = 2
    S = 3
    Z = 4
    J = 5
    L = 6


# Rotation-0 offsets as (x, y) relative to the piece origin.
BASE_SHAPES: Dict[ShapeType, Tuple[Coordinate, ...]] = {
    ShapeType.I: ((-1, 0), (0, 0), (1, 0), (2, 0)),
    ShapeType.O: ((0, 0), (1, 0), (0, 1), (1, 1)),
    ShapeType.T: ((-1, 0), (0, 0), (1, 0), (0, 1)),
    ShapeType.S: ((0, 0), (1, 0), (-1, 1), (0, 1)),
    ShapeType.Z: ((-1, 0), (0, 0), (0, 1), (1, 1)),
    ShapeType.J: ((-1, 0), (0, 0), (1, 0), (1, 1)),
    ShapeType.L: ((-1, 0), (0, 0), (1, 0), (-1, 1)),
}


def rotate_cells(cells: Tuple[Coordinate, ...], k: int) -> Tuple[Coordinate, ...]:
    """Apply the quarter turn (x, y) -> (-y, x) ``k`` times."""
    out = cells
    for _ in range(k % 4):
        out = tuple((-y, x) for x, y in out)
    return out


def cells_of(shape: ShapeType, rotation: int = 0) -> Tuple[Coordinate, ...]:
    """Relative cells of ``shape`` at ``rotation``. O ignores rotation."""
    base = BASE_SHAPES[shape]
    if shape == ShapeType.O:
        return base
    return rotate_cells(base, rotation)


@dataclass
class Piece:
    """A placeable unit resting in a slot or being dragged.

    ``cells`` is always derived from ``(shape, rotation)`` so a piece restored
    from storage can never carry stale geometry.
    """

    id: int
    shape: ShapeType
    rotation: int = 0  # 0..3
    value: int = 1

    def __post_init__(self) -> None:
        self.shape = ShapeType(self.shape)
        self.rotation = int(self.rotation) % 4

    @property
    def cells(self) -> Tuple[Coordinate, ...]:
        return cells_of(self.shape, self.rotation)

    def rotate(self, delta: int = 1) -> None:
        self.rotation = (self.rotation + delta) % 4

    def rotated(self, rotation: int) -> "Piece":
        return Piece(self.id, self.shape, rotation, self.value)

    def copy(self) -> "Piece":
        return Piece(self.id, self.shape, self.rotation, self.value)

    def cells_at(self, origin_x: int, origin_y: int) -> List[Coordinate]:
        return [(origin_x + dx, origin_y + dy) for dx, dy in self.cells]


class PieceGenerator:
    """Draws uniformly random shapes and rotations from a shared RNG."""

    def __init__(self, rng: Optional[random.Random] = None, value: int = 1, next_id: int = 1) -> None:
        self.rng = rng or random.Random()
        self.value = int(value)
        self.next_id = int(next_id)

    def generate(self) -> Piece:
        shape = self.rng.choice(list(ShapeType))
        rotation = self.rng.randrange(4)
        piece = Piece(id=self.next_id, shape=shape, rotation=rotation, value=self.value)
        self.next_id += 1
        return piece

    def generate_set(self, count: int) -> List[Piece]:
        return [self.generate() for _ in range(count)]
