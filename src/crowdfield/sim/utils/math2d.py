from __future__ import annotations

import math

from pygame.math import Vector2

# Below this squared length a vector has no usable direction.
_EPSILON_SQ = 1e-12


def _is_degenerate_xy(x: float, y: float) -> bool:
    return x * x + y * y < _EPSILON_SQ


def _cos_angle_xy(ax: float, ay: float, bx: float, by: float) -> float:
    """Normalized dot product of two vectors, 0.0 when either has no direction."""
    len_a_sq = ax * ax + ay * ay
    len_b_sq = bx * bx + by * by
    if len_a_sq < _EPSILON_SQ or len_b_sq < _EPSILON_SQ:
        return 0.0
    cos = (ax * bx + ay * by) / math.sqrt(len_a_sq * len_b_sq)
    return _clamp_value(cos, -1.0, 1.0)


def _clamp_length_range_xy(x: float, y: float, min_length: float, max_length: float) -> Vector2:
    if max_length <= 0.0:
        return Vector2()
    magnitude_sq = x * x + y * y
    if magnitude_sq < _EPSILON_SQ:
        return Vector2()
    magnitude = math.sqrt(magnitude_sq)
    target = _clamp_value(magnitude, min_length, max_length)
    if target == magnitude:
        return Vector2(x, y)
    scale = target / magnitude
    return Vector2(x * scale, y * scale)


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))
