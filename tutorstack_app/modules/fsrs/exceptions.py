from tutorstack_app.core.error_handlers import TutorStackError


class FSRSError(TutorStackError):
    """Base exception for the scheduling core."""

    def __init__(self, message: str, code: str = 'FSRS_ERROR', status_code: int = 500, details: dict = None):
        super().__init__(message=message, code=code, status_code=status_code, details=details)


class CardStateMissingError(FSRSError):
    """Raised when a review targets a card that was never given an initial state."""

    def __init__(self, student_id: str, card_id: str, context: str):
        super().__init__(
            f"Card {card_id} has no initial {context.lower()} state for student {student_id}.",
            code='CARD_STATE_MISSING',
            status_code=409,
            details={'student_id': student_id, 'card_id': card_id, 'context': context},
        )


class InvalidRatingError(FSRSError):
    """Raised when the provided rating is not valid (must be 1-4)."""

    def __init__(self, rating):
        super().__init__(
            f"Rating must be an integer between 1 and 4, got {rating!r}.",
            code='INVALID_RATING',
            status_code=400,
        )


class InvalidLearningStepError(FSRSError):
    """Raised when a learning step is not of the form '<digits><s|m|h|d>'."""

    def __init__(self, step):
        super().__init__(
            f"Invalid learning step {step!r}: expected a format like '3m', '15m', '1h' or '2d'.",
            code='INVALID_LEARNING_STEP',
            status_code=400,
        )


class UnknownContextError(FSRSError):
    def __init__(self, context):
        super().__init__(
            f"Unknown review context {context!r}.",
            code='UNKNOWN_CONTEXT',
            status_code=400,
        )


class OptimizationError(FSRSError):
    """Raised when parameter fitting fails on an otherwise sufficient history."""

    def __init__(self, student_id: str, context: str, reason: str):
        super().__init__(
            f"Parameter optimization failed for student {student_id} ({context}): {reason}",
            code='OPTIMIZATION_FAILED',
            status_code=500,
        )
