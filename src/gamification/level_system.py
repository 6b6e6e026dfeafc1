"""
Points and Leveling System

Levels follow a square-root curve over accumulated points:

    level = floor(sqrt(total_points / 100)) + 1

so reaching level L takes (L - 1)^2 * 100 points:

- Level 1: 0 points
- Level 2: 100 points
- Level 3: 400 points
- Level 4: 900 points

The level is always derived from points and never tracked on its own.
"""

import math
from typing import Dict

from src.config import POINTS_PER_LEVEL_UNIT


def calculate_level(total_points: int) -> int:
    """
    Level for a points total

    Negative totals are treated as zero.
    """
    points = max(0, int(total_points))
    # isqrt keeps level boundaries exact for any total
    return max(1, math.isqrt(points // POINTS_PER_LEVEL_UNIT) + 1)


def points_for_level(level: int) -> int:
    """Minimum total points needed to be at `level`"""
    level = max(1, int(level))
    return (level - 1) ** 2 * POINTS_PER_LEVEL_UNIT


def points_for_next_level(current_level: int) -> int:
    """Total points at which a student at `current_level` levels up"""
    return points_for_level(max(1, int(current_level)) + 1)


def calculate_level_progress(total_points: int) -> Dict[str, int]:
    """
    Calculate level and progress toward the next level

    Returns:
        {
            'current_level': int,
            'points_for_current_level': int,
            'points_for_next_level': int,
            'points_in_current_level': int,
            'points_to_next_level': int,
            'progress_percentage': int (0-100)
        }
    """
    points = max(0, int(total_points))
    level = calculate_level(points)
    floor_points = points_for_level(level)
    next_points = points_for_next_level(level)
    span = next_points - floor_points
    into_level = points - floor_points

    return {
        "current_level": level,
        "points_for_current_level": floor_points,
        "points_for_next_level": next_points,
        "points_in_current_level": into_level,
        "points_to_next_level": next_points - points,
        "progress_percentage": min(100, into_level * 100 // span),
    }
