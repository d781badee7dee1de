from __future__ import annotations

import pytest

from slidemino.game import (
    Direction,
    GameGrid,
    MergeEvent,
    RevealSchedule,
    RevealTiming,
    Tile,
    TileDelta,
    TileMove,
    merge_line,
    movable_directions,
    slide_grid,
)


ALTERNATING = [
    [1, 2, 1, 2],
    [2, 1, 2, 1],
    [1, 2, 1, 2],
    [2, 1, 2, 1],
]


def test_merge_keeps_the_front_tile_identity() -> None:
    a, b = Tile(id=10, value=2), Tile(id=20, value=2)
    result = merge_line([a, None, b])
    assert result.line == [Tile(10, 4), None, None]
    assert result.score == 4
    assert result.changed
    assert result.absorbed == [(b, 2, 0)]


def test_no_chained_merge_within_one_pass() -> None:
    line = [Tile(1, 2), Tile(2, 2), Tile(3, 2), Tile(4, 2)]
    result = merge_line(line)
    assert result.line == [Tile(1, 4), Tile(3, 4), None, None]
    assert result.score == 8

    result = merge_line([Tile(1, 4), Tile(2, 2), Tile(3, 2)])
    assert [t.value if t else 0 for t in result.line] == [4, 4, 0]


def test_closing_a_gap_moves_without_scoring() -> None:
    result = merge_line([None, Tile(1, 2), None, Tile(2, 4)])
    assert result.line == [Tile(1, 2), Tile(2, 4), None, None]
    assert result.changed
    assert result.score == 0
    assert result.absorbed == []


def test_static_lines_do_not_change() -> None:
    assert not merge_line([None, None, None]).changed
    assert not merge_line([Tile(1, 2), Tile(2, 4), Tile(3, 8)]).changed


def test_slide_right_reports_board_coordinates() -> None:
    grid = GameGrid.from_values([[2, 2, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]])
    # ids are assigned row-major: (0,0) -> 1, (1,0) -> 2
    result = slide_grid(grid, Direction.RIGHT)

    assert result.moved
    assert result.score == 4
    assert result.grid.values[0].tolist() == [0, 0, 0, 4]
    assert int(result.grid.ids[0, 3]) == 2
    assert result.merges == [
        MergeEvent(tile_id=2, absorbed_id=1, absorbed_value=2, from_xy=(0, 0), to_xy=(3, 0), value=4)
    ]
    assert result.moves == [TileMove(2, 4, (1, 0), (3, 0), merged=True)]
    assert result.deltas == [TileDelta(2, 3, 0, 2, 4)]
    assert grid.values[0].tolist() == [2, 2, 0, 0]


def test_slide_down_merges_columns() -> None:
    grid = GameGrid.from_values([[0, 2, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 2, 0, 0]])
    result = slide_grid(grid, Direction.DOWN)
    assert result.grid.values[:, 1].tolist() == [0, 0, 0, 4]
    assert int(result.grid.ids[3, 1]) == 2
    assert result.merges[0].from_xy == (1, 0)
    assert result.merges[0].to_xy == (1, 3)


def test_slide_up_moves_without_merge() -> None:
    grid = GameGrid.from_values([[0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [8, 0, 0, 0]])
    result = slide_grid(grid, Direction.UP)
    assert result.moved
    assert result.score == 0
    assert result.merges == []
    assert result.grid.values[0, 0] == 8
    assert result.moves == [TileMove(1, 8, (0, 3), (0, 0), merged=False)]


def test_score_is_sum_of_all_merges() -> None:
    grid = GameGrid.from_values(
        [
            [2, 2, 4, 4],
            [1, 1, 0, 0],
            [8, 0, 8, 0],
            [0, 0, 0, 0],
        ]
    )
    result = slide_grid(grid, Direction.LEFT)
    assert result.score == 4 + 8 + 2 + 16
    assert result.score == sum(event.value for event in result.merges)
    assert result.grid.values.tolist() == [
        [4, 8, 0, 0],
        [2, 0, 0, 0],
        [16, 0, 0, 0],
        [0, 0, 0, 0],
    ]


def test_simple_merge_scenario_on_five_by_five() -> None:
    grid = GameGrid.from_values(
        [
            [1, 1, 0, 0, 0],
            [0, 0, 0, 0, 0],
            [0, 0, 0, 0, 0],
            [0, 0, 0, 0, 0],
            [0, 0, 0, 0, 0],
        ]
    )
    result = slide_grid(grid, Direction.LEFT)
    assert result.moved
    assert result.score == 2
    assert result.grid.tile_at(0, 0) == Tile(1, 2)
    assert result.grid.empty_count() == 24


@pytest.mark.parametrize("direction", list(Direction))
def test_packed_alternating_grid_cannot_move(direction: Direction) -> None:
    result = slide_grid(GameGrid.from_values(ALTERNATING), direction)
    assert not result.moved
    assert result.score == 0


def test_any_empty_cell_allows_some_direction() -> None:
    for y in range(4):
        for x in range(4):
            rows = [row[:] for row in ALTERNATING]
            rows[y][x] = 0
            assert movable_directions(GameGrid.from_values(rows))


def test_reveal_schedule_delays_merged_values_and_score() -> None:
    timing = RevealTiming(slide_ms=120, merge_pop_ms=80)
    grid = GameGrid.from_values([[2, 2, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 4, 0, 0]])
    schedule = RevealSchedule.for_slide(slide_grid(grid, Direction.LEFT), timing)

    assert schedule.duration_ms == 200
    kinds = [(step.at_ms, step.kind, step.value) for step in schedule.steps]
    assert (0, "move", 2) in kinds
    assert (120, "merge", 4) in kinds
    assert kinds[-1] == (200, "score", 4)

    moved_only = RevealSchedule.for_slide(slide_grid(grid, Direction.DOWN), timing)
    assert moved_only.duration_ms == 120
    assert all(step.kind == "move" for step in moved_only.steps)

    still = RevealSchedule.for_slide(slide_grid(GameGrid.from_values(ALTERNATING), Direction.UP), timing)
    assert still.steps == [] and still.duration_ms == 0
