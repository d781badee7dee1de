from __future__ import annotations

import logging
import random
from typing import Optional, Tuple

import gymnasium as gym
import numpy as np

import slidemino.env  # noqa: F401  registers the environments


LOGGER = logging.getLogger(__name__)


def run_random(env: Optional[gym.Env] = None, steps: int = 200, seed: Optional[int] = None) -> Tuple[float, int]:
    """Play uniformly random legal actions; returns (total reward, finished episodes)."""
    env = env or gym.make("Slidemino-8x8-v0")
    rng = random.Random(seed)
    obs, info = env.reset(seed=seed)
    total_reward = 0.0
    episodes = 0
    for _ in range(steps):
        valid = np.flatnonzero(info["action_mask"])
        if valid.size:
            action = int(rng.choice(valid.tolist()))
        else:
            action = int(env.action_space.sample())
        obs, reward, terminated, truncated, info = env.step(action)
        total_reward += float(reward)
        if terminated or truncated:
            episodes += 1
            LOGGER.info("episode %d finished with score %d", episodes, info["score"])
            obs, info = env.reset()
    env.close()
    return total_reward, episodes


if __name__ == "__main__":  # pragma: no cover
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    reward, finished = run_random()
    print(f"Random agent total reward: {reward:.2f} over {finished} finished episodes")
