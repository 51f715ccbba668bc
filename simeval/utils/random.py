"""Control of the global random number generators."""

import random

import numpy as np


def set_random_seed(seed: int) -> None:
    """Seed the built-in and the Numpy global random number generators."""
    # Numpy only accepts seeds in [0, 2**32)
    seed %= 2**32
    random.seed(seed)
    np.random.seed(seed)
