from __future__ import annotations
import logging
import math
from typing import List, Optional
from fsrs_rs_python import FSRS, DEFAULT_PARAMETERS, MemoryState
from ..config import FSRSDefaultConfig
from ..schemas import CardStateDTO, NextState, NextStates

logger = logging.getLogger(__name__)


def retrievability(stability: float, elapsed_days: float) -> float:
    """
    Probability of recall after ``elapsed_days``: exp(-t / S).

    The single source of the formula; queue selection, stats and candidate
    filtering all call this instead of computing it in SQL.
    """
    if stability is None or stability <= 0:
        return 0.0
    if elapsed_days <= 0:
        return 1.0
    return math.exp(-elapsed_days / stability)


class FSRSEngine:
    """
    Memory model backed by fsrs-rs-python.
    Pure Logic Layer: No Database, No Flask Context.
    """

    def __init__(self, custom_weights: Optional[List[float]] = None,
                 desired_retention: float = FSRSDefaultConfig.FSRS_DESIRED_RETENTION):
        self.weights = list(custom_weights) if custom_weights else list(DEFAULT_PARAMETERS)
        self.fsrs = FSRS(parameters=self.weights)
        self.desired_retention = desired_retention

    @staticmethod
    def to_memory_state(card: CardStateDTO) -> Optional[MemoryState]:
        # NEW cards and cards that only walked learning steps start from scratch
        if not card.has_memory:
            return None
        return MemoryState(stability=float(card.stability), difficulty=float(card.difficulty))

    def next_states(self, memory: Optional[MemoryState], days_elapsed: int) -> NextStates:
        """Four candidate (stability, difficulty, interval) triples, one per rating."""
        days = 0 if memory is None else max(0, int(days_elapsed))
        try:
            raw = self.fsrs.next_states(memory, self.desired_retention, days)
        except Exception as e:
            logger.error(f"[FSRS ENGINE] next_states error: {e}")
            raise

        def _convert(item_state) -> NextState:
            return NextState(
                stability=float(item_state.memory.stability),
                difficulty=float(item_state.memory.difficulty),
                interval_days=float(item_state.interval),
            )

        return NextStates(
            again=_convert(raw.again),
            hard=_convert(raw.hard),
            good=_convert(raw.good),
            easy=_convert(raw.easy),
        )

    def next_states_for_card(self, card: CardStateDTO, days_elapsed: int) -> NextStates:
        return self.next_states(self.to_memory_state(card), days_elapsed)
