# modules/fsrs/config.py

from fsrs_rs_python import DEFAULT_PARAMETERS


class FSRSDefaultConfig:
    FSRS_DESIRED_RETENTION = 0.90
    FSRS_DEFAULT_WEIGHTS = list(DEFAULT_PARAMETERS)

    # Short fixed intervals walked before a card graduates to the memory model
    FSRS_LEARNING_STEPS = ['3m', '15m', '30m']

    # Session queue sizing
    FSRS_NEW_CARDS = 10
    FSRS_MAX_DUE = 50
    FSRS_MIN_DUE = 10

    # Cross-context candidate selection
    FSRS_VOCABULARY_CONFIDENCE_THRESHOLD = 0.8
    # exp(-1) ~ 0.37: elapsed time has not yet exceeded stability
    FSRS_LISTENING_CANDIDATE_THRESHOLD = 0.36
    FSRS_CANDIDATE_MAX_CARDS = 20

    # Below this many memory-model reviews the fit is unreliable
    FSRS_OPTIMIZER_MIN_REVIEWS = 50
