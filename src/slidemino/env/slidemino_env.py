from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from slidemino.game import Direction, GameConfig, Phase, SlideminoGame, TurnRules, slide_grid

DIRECTIONS: Tuple[Direction, ...] = (Direction.UP, Direction.DOWN, Direction.LEFT, Direction.RIGHT)


def placement_action_count(game: SlideminoGame) -> int:
    size = game.grid.size
    return len(game.slots) * size * size * 4


def encode_placement(game: SlideminoGame, slot: int, x: int, y: int, rotation: int) -> int:
    size = game.grid.size
    return ((slot * size + y) * size + x) * 4 + rotation


def decode_action(game: SlideminoGame, action: int) -> Tuple[str, Tuple[int, ...]]:
    """Flat index -> ("place", (slot, x, y, rotation)) or ("slide", (direction_idx,))."""
    n_place = placement_action_count(game)
    if action >= n_place:
        return "slide", (action - n_place,)
    size = game.grid.size
    rotation = action % 4
    action //= 4
    x = action % size
    action //= size
    y = action % size
    slot = action // size
    return "place", (int(slot), int(x), int(y), int(rotation))


def compute_action_mask(game: SlideminoGame) -> np.ndarray:
    mask = np.zeros((placement_action_count(game) + len(DIRECTIONS),), dtype=np.bool_)
    for slot, x, y, r in game.get_valid_actions():
        mask[encode_placement(game, slot, x, y, r)] = True
    if not game.game_over and game.phase == Phase.SLIDE:
        n_place = placement_action_count(game)
        for i, direction in enumerate(DIRECTIONS):
            mask[n_place + i] = slide_grid(game.grid, direction).moved
    return mask


class SlideminoEnv(gym.Env):
    """Gymnasium view of the engine: one flat discrete action per placement or swipe."""

    metadata = {"render_modes": ["ansi"], "render_fps": 30}

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        rules: Optional[TurnRules] = None,
        render_mode: Optional[str] = None,
        invalid_action_penalty: float = -1.0,
    ) -> None:
        super().__init__()
        self.game = SlideminoGame(config, rules)
        self.render_mode = render_mode
        self.invalid_action_penalty = float(invalid_action_penalty)

        size = self.game.config.board_size
        k = self.game.config.slot_count

        # Tile values are observed as log2(value) + 1, with 0 for empty cells.
        self.observation_space = spaces.Dict(
            {
                "values": spaces.Box(low=0, high=32, shape=(size, size), dtype=np.int8),
                "slots": spaces.Box(low=-1, high=6, shape=(k,), dtype=np.int8),
                "rotations": spaces.Box(low=0, high=3, shape=(k,), dtype=np.int8),
                "phase": spaces.Discrete(2),
            }
        )
        self.action_space = spaces.Discrete(placement_action_count(self.game) + len(DIRECTIONS))
        self._steps = 0

    def _get_obs(self) -> Dict[str, Any]:
        k = self.game.config.slot_count
        values = self.game.grid.values
        encoded = np.zeros(values.shape, dtype=np.int8)
        occupied = values > 0
        encoded[occupied] = (np.log2(values[occupied]).astype(np.int64) + 1).astype(np.int8)
        slots = np.full((k,), -1, dtype=np.int8)
        rotations = np.zeros((k,), dtype=np.int8)
        for i, piece in enumerate(self.game.slots[:k]):
            if piece is not None:
                slots[i] = int(piece.shape)
                rotations[i] = piece.rotation
        return {
            "values": encoded,
            "slots": slots,
            "rotations": rotations,
            "phase": 0 if self.game.phase == Phase.PLACE else 1,
        }

    def _get_info(self) -> Dict[str, Any]:
        return {
            "action_mask": compute_action_mask(self.game),
            "score": self.game.score,
            "moves": self.game.move_count,
            "phase": self.game.phase.value,
        }

    def get_action_mask(self) -> np.ndarray:
        return compute_action_mask(self.game)

    def reset(self, *, seed: Optional[int] = None, options: Optional[dict] = None) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        super().reset(seed=seed)
        self.game.reset(seed)
        self._steps = 0
        return self._get_obs(), self._get_info()

    def step(self, action: int):
        kind, args = decode_action(self.game, int(action))
        if kind == "place":
            slot, x, y, r = args
            result = self.game.try_place(slot, x, y, rotation=r)
        else:
            result = self.game.try_slide(DIRECTIONS[args[0]])

        reward = float(result.score_delta) if result.ok else self.invalid_action_penalty
        self._steps += 1
        terminated = bool(self.game.game_over)
        truncated = self._steps >= self.game.config.max_episode_steps

        info = self._get_info()
        info["accepted"] = result.ok
        info["reason"] = result.reason
        return self._get_obs(), reward, terminated, truncated, info

    def render(self) -> Optional[str]:
        if self.render_mode != "ansi":
            return None
        lines = [" ".join(f"{int(v):>4}" if v else "   ." for v in row) for row in self.game.grid.values]
        lines.append(f"score={self.game.score} phase={self.game.phase.value}")
        return "\n".join(lines)

    def close(self) -> None:
        pass
