from __future__ import annotations

import random

import pytest

from slidemino.game import BASE_SHAPES, Piece, PieceGenerator, ShapeType, cells_of


@pytest.mark.parametrize("shape", list(ShapeType))
def test_cells_of_is_pure(shape: ShapeType) -> None:
    for rotation in range(4):
        assert cells_of(shape, rotation) == cells_of(shape, rotation)
    assert BASE_SHAPES[shape] == cells_of(shape, 0)


def test_o_shape_ignores_rotation() -> None:
    expected = cells_of(ShapeType.O, 0)
    for rotation in range(1, 8):
        assert cells_of(ShapeType.O, rotation) == expected


def test_quarter_turn_maps_x_y_to_minus_y_x() -> None:
    assert cells_of(ShapeType.T, 1) == ((0, -1), (0, 0), (0, 1), (-1, 0))
    assert cells_of(ShapeType.I, 2) == ((1, 0), (0, 0), (-1, 0), (-2, 0))


@pytest.mark.parametrize("shape", list(ShapeType))
def test_four_quarter_turns_return_to_start(shape: ShapeType) -> None:
    assert cells_of(shape, 4) == cells_of(shape, 0)
    assert len(set(cells_of(shape, 3))) == 4


def test_piece_cells_follow_rotation() -> None:
    piece = Piece(id=1, shape=ShapeType.L, rotation=6)
    assert piece.rotation == 2
    piece.rotate()
    assert piece.rotation == 3
    assert piece.cells == cells_of(ShapeType.L, 3)
    assert piece.cells_at(2, 2) == [(2 + dx, 2 + dy) for dx, dy in cells_of(ShapeType.L, 3)]


def test_generator_is_deterministic_for_a_seed() -> None:
    a = PieceGenerator(random.Random(7)).generate_set(20)
    b = PieceGenerator(random.Random(7)).generate_set(20)
    assert [(p.shape, p.rotation) for p in a] == [(p.shape, p.rotation) for p in b]


def test_generator_assigns_fresh_ids_and_base_value() -> None:
    pieces = PieceGenerator(random.Random(1)).generate_set(50)
    assert len({p.id for p in pieces}) == 50
    assert all(p.value == 1 for p in pieces)
    assert all(0 <= p.rotation < 4 for p in pieces)
    assert {p.shape for p in pieces} <= set(ShapeType)
