"""Per-pixel color similarity formulas.

Each function returns a similarity in ``[0, 1]`` where ``1`` means identical
colors. They accept plain numbers or broadcastable numpy arrays.
"""

from __future__ import annotations

import numpy as np

__all__ = [
    "MAX_COLOR_DISTANCE",
    "compare_color",
    "compare_color_squared",
    "compare_color_strict",
]

MAX_COLOR_DISTANCE = float(np.sqrt(3 * 255.0**2))


def compare_color(r1, g1, b1, r2, g2, b2):
    """Euclidean RGB distance normalized by the largest possible distance."""
    d_r = np.square(np.subtract(r1, r2, dtype=np.float64))
    d_g = np.square(np.subtract(g1, g2, dtype=np.float64))
    d_b = np.square(np.subtract(b1, b2, dtype=np.float64))
    return 1.0 - np.sqrt(d_r + d_g + d_b) / MAX_COLOR_DISTANCE


def compare_color_strict(r1, g1, b1, r2, g2, b2):
    """Average of the per-channel similarities."""
    d_r = 1.0 - np.abs(np.subtract(r1, r2, dtype=np.float64)) / 255.0
    d_g = 1.0 - np.abs(np.subtract(g1, g2, dtype=np.float64)) / 255.0
    d_b = 1.0 - np.abs(np.subtract(b1, b2, dtype=np.float64)) / 255.0
    return (d_r + d_g + d_b) / 3.0


def compare_color_squared(r1, g1, b1, r2, g2, b2):
    """Average of the squared per-channel similarities."""
    d_r = 1.0 - np.abs(np.subtract(r1, r2, dtype=np.float64)) / 255.0
    d_g = 1.0 - np.abs(np.subtract(g1, g2, dtype=np.float64)) / 255.0
    d_b = 1.0 - np.abs(np.subtract(b1, b2, dtype=np.float64)) / 255.0
    return (d_r * d_r + d_g * d_g + d_b * d_b) / 3.0
