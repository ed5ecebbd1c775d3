from __future__ import annotations

import random as _random
from typing import Callable

from .config import ReconnectionPolicy

JITTER_RATIO = 0.25


def reconnect_delay(
    attempt: int,
    policy: ReconnectionPolicy,
    *,
    random: Callable[[], float] = _random.random,
) -> float:
    """Seconds to wait before reconnection attempt ``attempt`` (1-based).

    ``initial_delay * backoff_multiplier ** (attempt - 1)`` capped at
    ``max_delay``; with jitter the result moves by up to +/-25% and never
    drops below zero.
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")

    try:
        delay = policy.initial_delay * policy.backoff_multiplier ** (attempt - 1)
    except OverflowError:
        delay = policy.max_delay
    delay = min(delay, policy.max_delay)

    if policy.jitter:
        delay += (random() - 0.5) * 2 * (delay * JITTER_RATIO)

    return max(0.0, delay)
