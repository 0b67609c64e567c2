from .core import FSRSEngine, retrievability
from .learning_steps import parse_step, parse_steps, in_learning_steps
from .transitions import ReviewOutcome, apply_review, replay_history, validate_rating

__all__ = [
    'FSRSEngine',
    'retrievability',
    'parse_step',
    'parse_steps',
    'in_learning_steps',
    'ReviewOutcome',
    'apply_review',
    'replay_history',
    'validate_rating',
]
