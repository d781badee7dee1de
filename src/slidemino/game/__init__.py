"""Game module for Slidemino.

Exports the core game engine and supporting classes:
- ShapeType / Piece / PieceGenerator: the seven shapes, rotation and random pieces
- GameGrid / Tile: board of identified power-of-two tiles and piece placement
- slide_grid / Direction: the 2048-style slide-and-merge pass
- GameSnapshot / UndoManager: single-level undo and revive points
- SlideminoGame: the PLACE/SLIDE turn engine
- to_record / from_record: save and resume a game in progress
"""

from .pieces import BASE_SHAPES, Piece, PieceGenerator, ShapeType, cells_of, rotate_cells
from .grid import EngineInvariantError, GameGrid, Tile, TileIdAllocator
from .rules import SUPPORTED_BOARD_SIZES, Phase, RevealTiming, TurnRules
from .slide import (
    Direction,
    MergeEvent,
    RevealSchedule,
    SlideResult,
    TileDelta,
    TileMove,
    has_possible_moves,
    merge_line,
    movable_directions,
    slide_grid,
)
from .snapshot import GameSnapshot, UndoManager, capture, restore
from .core import ActionResult, GameConfig, SlideminoGame, check_game_over
from .persistence import CorruptStateError, dumps, from_record, loads, to_record

__all__ = [
    "BASE_SHAPES",
    "Piece",
    "PieceGenerator",
    "ShapeType",
    "cells_of",
    "rotate_cells",
    "EngineInvariantError",
    "GameGrid",
    "Tile",
    "TileIdAllocator",
    "SUPPORTED_BOARD_SIZES",
    "Phase",
    "RevealTiming",
    "TurnRules",
    "Direction",
    "MergeEvent",
    "RevealSchedule",
    "SlideResult",
    "TileDelta",
    "TileMove",
    "has_possible_moves",
    "merge_line",
    "movable_directions",
    "slide_grid",
    "GameSnapshot",
    "UndoManager",
    "capture",
    "restore",
    "ActionResult",
    "GameConfig",
    "SlideminoGame",
    "check_game_over",
    "CorruptStateError",
    "dumps",
    "from_record",
    "loads",
    "to_record",
]
