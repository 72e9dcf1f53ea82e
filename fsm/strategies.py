"""
Ready-made selection strategies.

Each strategy takes the validated candidates (in declaration order) and
returns exactly one Transition.
"""
from __future__ import annotations

import logging
import random
from typing import Callable, List, Optional

from fsm.exceptions import AmbiguousTransitionError, NoValidTransitionError
from fsm.transitions import Transition


logger = logging.getLogger(__name__)


def _require_candidates(candidates: List[Transition]) -> None:
    if not candidates:
        raise NoValidTransitionError("No valid transition to select from")


def first_match(candidates: List[Transition]) -> Transition:
    """Pick the first candidate in declaration order."""
    _require_candidates(candidates)
    return candidates[0]


def only_one(candidates: List[Transition]) -> Transition:
    """Require exactly one candidate."""
    _require_candidates(candidates)
    if len(candidates) > 1:
        raise AmbiguousTransitionError(len(candidates))
    return candidates[0]


def highest_priority(candidates: List[Transition]) -> Transition:
    """Pick the highest priority candidate; ties keep declaration order."""
    _require_candidates(candidates)
    best = candidates[0]
    for candidate in candidates[1:]:
        if candidate.priority > best.priority:
            best = candidate
    return best


def random_choice(seed: Optional[int] = None) -> Callable[[List[Transition]], Transition]:
    """Build a strategy choosing uniformly at random with its own generator."""
    rng = random.Random(seed)

    def choose(candidates: List[Transition]) -> Transition:
        _require_candidates(candidates)
        chosen = rng.choice(candidates)
        logger.debug("Randomly selected %r among %d candidate(s)", chosen, len(candidates))
        return chosen

    return choose
