from blinker import Namespace

# Define a signal namespace for FSRS
_signals = Namespace()

# Signal emitted after a review is committed
# Arguments:
# - sender: The ReviewRecorder class
# - student_id: str
# - card_id: str
# - context: ReviewContext
# - rating: int
# - state: CardStateDTO (state after the review)
# - is_learning_step: bool
card_reviewed = _signals.signal('card-reviewed')

# Signal emitted after a new active parameter row is stored
# Arguments:
# - sender: The FSRSOptimizerService class
# - student_id: str
# - context: ReviewContext
# - training_data_size: int
parameters_updated = _signals.signal('parameters-updated')

# Signal emitted after a student's state table was rebuilt from history
# Arguments:
# - sender: The CacheRebuilder class
# - student_id: str
# - context: ReviewContext
# - cards_rebuilt: int
cache_rebuilt = _signals.signal('cache-rebuilt')
