"""Gymnasium environments for Slidemino."""

from __future__ import annotations

from gymnasium.envs.registration import register

from .slidemino_env import SlideminoEnv, compute_action_mask, decode_action, encode_placement

register(
    id="Slidemino-8x8-v0",
    entry_point="slidemino.env.slidemino_env:SlideminoEnv",
)

__all__ = ["SlideminoEnv", "compute_action_mask", "decode_action", "encode_placement"]
