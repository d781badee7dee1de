"""Plain-record save format for a game in progress.

The storage medium belongs to the caller. A record that fails validation is
treated as "no resumable game": :func:`from_record` logs why and returns None.
Piece geometry is never stored; it is rehydrated from ``(shape, rotation)``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional

from .core import GameConfig, SlideminoGame
from .grid import EngineInvariantError, GameGrid, Tile, is_power_of_two
from .pieces import Piece, ShapeType
from .rules import Phase, TurnRules
from .snapshot import GameSnapshot


LOGGER = logging.getLogger(__name__)

RECORD_VERSION = 1

# Grid cells are stored as int64; keep ids and values well inside that range.
MAX_STORED_INT = 2 ** 62


class CorruptStateError(ValueError):
    """A saved record that cannot be resumed."""


# ---- encoding ----------------------------------------------------------------------


def _grid_to_rows(grid: GameGrid) -> List[List[Optional[Dict[str, int]]]]:
    return [
        [None if tile is None else {"id": tile.id, "value": tile.value} for tile in row]
        for row in grid.rows()
    ]


def _piece_to_dict(piece: Optional[Piece]) -> Optional[Dict[str, Any]]:
    if piece is None:
        return None
    return {"id": piece.id, "shape": piece.shape.name, "rotation": piece.rotation, "value": piece.value}


def _snapshot_to_dict(snapshot: GameSnapshot) -> Dict[str, Any]:
    return {
        "grid": _grid_to_rows(snapshot.grid),
        "slots": [_piece_to_dict(p) for p in snapshot.slots],
        "score": snapshot.score,
        "phase": snapshot.phase.value,
        "can_skip_slide": snapshot.can_skip_slide,
    }


def to_record(game: SlideminoGame) -> Dict[str, Any]:
    record = _snapshot_to_dict(game.snapshot())
    record.update(
        {
            "version": RECORD_VERSION,
            "board_size": game.grid.size,
            "undo_remaining": game.undo.remaining,
            "undo_snapshot": None if game.undo.snapshot is None else _snapshot_to_dict(game.undo.snapshot),
            "move_count": game.move_count,
            "placements": game.placements,
            "slides": game.slides,
            "merges": game.merges,
            "elapsed_ms": game.elapsed_ms,
            "started_at": game.started_at,
            "revives": game.revives,
            "revive_used": game.revive_used,
            "next_tile_id": game.tile_ids.next_id,
            "next_piece_id": game.generator.next_id,
            "game_over": game.game_over,
        }
    )
    return record


def dumps(game: SlideminoGame) -> str:
    return json.dumps(to_record(game), separators=(",", ":"))


# ---- decoding ----------------------------------------------------------------------


def _require_int(record: Dict[str, Any], key: str, minimum: int = 0) -> int:
    value = record.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or not minimum <= value < MAX_STORED_INT:
        raise CorruptStateError(f"{key} must be an int in [{minimum}, 2**62), got {value!r}")
    return value


def _optional_int(record: Dict[str, Any], key: str, default: int = 0, minimum: int = 0) -> int:
    if key not in record:
        return default
    return _require_int(record, key, minimum)


def _grid_from_rows(rows: Any, size: int) -> GameGrid:
    if not isinstance(rows, list) or len(rows) != size:
        raise CorruptStateError(f"grid must have {size} rows")
    tiles: List[List[Optional[Tile]]] = []
    for row in rows:
        if not isinstance(row, list) or len(row) != size:
            raise CorruptStateError(f"grid rows must have {size} cells")
        out_row: List[Optional[Tile]] = []
        for cell in row:
            if cell is None:
                out_row.append(None)
                continue
            if not isinstance(cell, dict):
                raise CorruptStateError(f"bad grid cell {cell!r}")
            out_row.append(Tile(_require_int(cell, "id", 1), _require_int(cell, "value", 1)))
        tiles.append(out_row)
    try:
        return GameGrid.from_tiles(tiles)
    except EngineInvariantError as exc:
        raise CorruptStateError(str(exc)) from exc


def _piece_from_dict(data: Any) -> Optional[Piece]:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise CorruptStateError(f"bad slot {data!r}")
    shape_name = data.get("shape")
    if shape_name not in ShapeType.__members__:
        raise CorruptStateError(f"unknown shape {shape_name!r}")
    rotation = _require_int(data, "rotation")
    if rotation > 3:
        raise CorruptStateError(f"rotation out of range: {rotation}")
    value = _require_int(data, "value", 1)
    if not is_power_of_two(value):
        raise CorruptStateError(f"piece value must be a power of two, got {value}")
    # Cells are derived from (shape, rotation) by Piece itself; stored cells are ignored.
    return Piece(id=_require_int(data, "id", 1), shape=ShapeType[shape_name], rotation=rotation, value=value)


def _snapshot_from_dict(data: Any, size: int, slot_count: int) -> GameSnapshot:
    if not isinstance(data, dict):
        raise CorruptStateError("snapshot must be a mapping")
    slots = data.get("slots")
    if not isinstance(slots, list) or len(slots) != slot_count:
        raise CorruptStateError(f"slots must be a list of {slot_count}")
    try:
        phase = Phase(data.get("phase"))
    except ValueError:
        raise CorruptStateError(f"unknown phase {data.get('phase')!r}") from None
    can_skip_slide = data.get("can_skip_slide", False)
    if not isinstance(can_skip_slide, bool):
        raise CorruptStateError(f"can_skip_slide must be a bool, got {can_skip_slide!r}")
    return GameSnapshot(
        grid=_grid_from_rows(data.get("grid"), size),
        slots=tuple(_piece_from_dict(p) for p in slots),
        score=_require_int(data, "score"),
        phase=phase,
        can_skip_slide=can_skip_slide,
    )


def _rehydrate(
    record: Any,
    config: Optional[GameConfig],
    rules: Optional[TurnRules],
    clock: Optional[Callable[[], float]],
) -> Optional[SlideminoGame]:
    if not isinstance(record, dict):
        raise CorruptStateError("record must be a mapping")
    if record.get("version") != RECORD_VERSION:
        raise CorruptStateError(f"unsupported version {record.get('version')!r}")
    if record.get("game_over"):
        return None
    size = _require_int(record, "board_size", 1)
    base = config or GameConfig()
    try:
        config = GameConfig(
            board_size=size,
            slot_count=base.slot_count,
            random_seed=base.random_seed,
            max_episode_steps=base.max_episode_steps,
        )
    except ValueError as exc:
        raise CorruptStateError(str(exc)) from exc

    state = _snapshot_from_dict(record, size, config.slot_count)
    undo_data = record.get("undo_snapshot")
    undo_snapshot = None if undo_data is None else _snapshot_from_dict(undo_data, size, config.slot_count)

    game = SlideminoGame(config, rules, clock=clock)
    game.resume(
        state,
        undo_snapshot=undo_snapshot,
        undo_remaining=_require_int(record, "undo_remaining"),
        move_count=_require_int(record, "move_count"),
        placements=_optional_int(record, "placements"),
        slides=_optional_int(record, "slides"),
        merges=_optional_int(record, "merges"),
        elapsed_ms=_require_int(record, "elapsed_ms"),
        started_at=record.get("started_at") if isinstance(record.get("started_at"), int) else None,
        revives=_optional_int(record, "revives", 1 if record.get("revive_used") else 0),
        next_tile_id=_optional_int(record, "next_tile_id", 1, minimum=1),
        next_piece_id=_optional_int(record, "next_piece_id", 1, minimum=1),
    )
    return game


def from_record(
    record: Any,
    config: Optional[GameConfig] = None,
    rules: Optional[TurnRules] = None,
    clock: Optional[Callable[[], float]] = None,
) -> Optional[SlideminoGame]:
    """Rebuild a game from :func:`to_record` output, or None when there is nothing to resume."""
    try:
        return _rehydrate(record, config, rules, clock)
    except (TypeError, ValueError) as exc:
        LOGGER.warning("discarding saved game: %s", exc)
        return None


def loads(
    text: str,
    config: Optional[GameConfig] = None,
    rules: Optional[TurnRules] = None,
    clock: Optional[Callable[[], float]] = None,
) -> Optional[SlideminoGame]:
    try:
        record = json.loads(text)
    except json.JSONDecodeError as exc:
        LOGGER.warning("discarding saved game: %s", exc)
        return None
    return from_record(record, config, rules, clock)
