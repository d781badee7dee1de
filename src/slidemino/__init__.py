"""Slidemino: place tetromino pieces, then slide the board to merge tiles."""

from .game import GameConfig, SlideminoGame, TurnRules

__all__ = ["GameConfig", "SlideminoGame", "TurnRules"]
