from __future__ import annotations

import logging

from slidemino.game import (
    Direction,
    GameConfig,
    GameGrid,
    Phase,
    Piece,
    ShapeType,
    SlideminoGame,
    TurnRules,
    UndoManager,
    capture,
    restore,
)


def make_game() -> SlideminoGame:
    game = SlideminoGame(GameConfig(board_size=5, random_seed=3))
    game.slots = [Piece(id=i, shape=ShapeType.O) for i in (1, 2, 3)]
    return game


def test_restore_of_capture_is_equal_and_detached() -> None:
    grid = GameGrid.from_values([[2, 0, 0, 0], [0, 4, 0, 0], [0, 0, 0, 0], [0, 0, 0, 1]])
    slots = [Piece(id=1, shape=ShapeType.S, rotation=2), None, Piece(id=2, shape=ShapeType.J)]
    snapshot = capture(grid, slots, 42, Phase.SLIDE, True)

    grid.values[0, 0] = 8
    slots[0].rotate()

    state = restore(snapshot)
    assert state == snapshot
    assert state.grid.values[0, 0] == 2
    assert state.slots[0].rotation == 2
    assert state.score == 42 and state.phase == Phase.SLIDE and state.can_skip_slide
    state.grid.values[1, 1] = 16
    assert snapshot.grid.values[1, 1] == 4


def test_undo_restores_previous_position(caplog) -> None:
    game = make_game()
    before = game.snapshot()
    game.try_place(0, 0, 0)
    assert game.phase == Phase.SLIDE

    with caplog.at_level(logging.INFO, logger="slidemino.game.core"):
        result = game.try_undo()
    assert result.ok
    assert game.snapshot() == before
    assert game.slots[0].id == 1
    assert game.undo.remaining == 2
    assert "undo used" in caplog.text

    assert game.try_undo().reason == "no_snapshot"


def test_undo_keeps_only_the_latest_snapshot() -> None:
    game = make_game()
    game.try_place(0, 0, 0)
    after_place = game.snapshot()
    game.try_slide(Direction.LEFT)
    assert game.score == 4

    result = game.try_undo()
    assert result.score_delta == -4
    assert game.snapshot() == after_place
    assert game.try_undo().reason == "no_snapshot"


def test_undo_refusals() -> None:
    game = make_game()
    game.try_place(0, 0, 0)
    assert game.try_undo(busy=True).reason == "busy"

    game.undo.remaining = 0
    assert game.try_undo().reason == "no_undo_left"
    assert game.undo.snapshot is not None


def test_undo_counter_is_replenishable_up_to_cap() -> None:
    game = SlideminoGame(GameConfig(board_size=5), TurnRules(undo_initial=0, undo_cap=99))
    assert game.undo.remaining == 0
    assert game.grant_undo(2) == 2
    assert game.grant_undo(500) == 99


def test_undo_manager_pop_consumes_snapshot() -> None:
    manager = UndoManager(remaining=1)
    snapshot = capture(GameGrid(4), [None], 0, Phase.PLACE, False)
    manager.record(snapshot)
    assert manager.refusal() is None
    assert manager.pop() == snapshot
    assert manager.snapshot is None
    assert manager.refusal() == "no_snapshot"
