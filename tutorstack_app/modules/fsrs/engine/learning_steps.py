"""
Short fixed-interval steps walked before a card graduates to the memory model.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Sequence

from ..exceptions import InvalidLearningStepError
from ..schemas import CardStateDTO, CardStateEnum, Rating

_STEP_RE = re.compile(r'^(\d+)([smhd])$')
_UNIT_MS = {
    's': 1000,
    'm': 60 * 1000,
    'h': 60 * 60 * 1000,
    'd': 24 * 60 * 60 * 1000,
}


def parse_step(step: str) -> int:
    """'15m' -> 900000 (milliseconds)."""
    match = _STEP_RE.match(step) if isinstance(step, str) else None
    if not match:
        raise InvalidLearningStepError(step)
    amount, unit = match.groups()
    return int(amount) * _UNIT_MS[unit]


def parse_steps(steps: Sequence[str]) -> List[int]:
    return [parse_step(step) for step in steps]


def in_learning_steps(card: CardStateDTO, steps_done: int, step_count: int) -> bool:
    # LEARNING is included so a card can walk the whole ladder
    return card.state != CardStateEnum.REVIEW and steps_done < step_count


@dataclass(frozen=True)
class StepDecision:
    """Outcome of one rating inside the learning steps."""
    graduate: bool
    step_index: Optional[int] = None
    delay: Optional[timedelta] = None
    state: Optional[str] = None


def decide_step(card: CardStateDTO, rating: int, steps_done: int, step_ms: Sequence[int]) -> StepDecision:
    if rating == Rating.Easy:
        return StepDecision(graduate=True)

    if rating == Rating.Again:
        index = 0
    else:
        index = steps_done + 1
        if index >= len(step_ms):
            return StepDecision(graduate=True)

    if card.state in (CardStateEnum.REVIEW, CardStateEnum.RELEARNING):
        state = CardStateEnum.RELEARNING
    else:
        state = CardStateEnum.LEARNING

    return StepDecision(
        graduate=False,
        step_index=index,
        delay=timedelta(milliseconds=step_ms[index]),
        state=state,
    )
