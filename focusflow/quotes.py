"""
Motivational quotes shown after each phase change.
"""

import random
from typing import Optional, Sequence

QUOTES = (
    "Stay focused, stay present.",
    "Small steps every day.",
    "Deep work, big results.",
    "Breaks fuel your brain.",
    "Consistency beats intensity.",
    "You're building a habit!",
    "One Pomodoro at a time.",
)


def pick_quote(rng: Optional[random.Random] = None, quotes: Sequence[str] = QUOTES) -> str:
    """
    Pick a quote uniformly at random.

    Args:
        rng: Random source; pass a seeded instance for repeatable picks.
        quotes: Pool to choose from.
    """
    if not quotes:
        return ""
    return (rng or random).choice(quotes)
