import uuid
from datetime import datetime, timezone
from tutorstack_app.core.extensions import db
from tutorstack_app.utils.time_utils import ensure_utc


class JobStatus:
    PENDING = 'PENDING'
    RUNNING = 'RUNNING'
    COMPLETED = 'COMPLETED'
    FAILED = 'FAILED'
    SKIPPED = 'SKIPPED'


class JobType:
    OPTIMIZE_VOCABULARY_PARAMS = 'OPTIMIZE_VOCABULARY_PARAMS'
    OPTIMIZE_LISTENING_PARAMS = 'OPTIMIZE_LISTENING_PARAMS'
    OPTIMIZE_GENERIC_PARAMS = 'OPTIMIZE_GENERIC_PARAMS'
    REBUILD_VOCABULARY_CACHE = 'REBUILD_VOCABULARY_CACHE'
    REBUILD_LISTENING_CACHE = 'REBUILD_LISTENING_CACHE'
    REBUILD_GENERIC_CACHE = 'REBUILD_GENERIC_CACHE'
    INITIALIZE_VOCABULARY_CARD_STATES = 'INITIALIZE_VOCABULARY_CARD_STATES'
    INITIALIZE_LISTENING_CARD_STATES = 'INITIALIZE_LISTENING_CARD_STATES'
    INITIALIZE_GENERIC_CARD_STATES = 'INITIALIZE_GENERIC_CARD_STATES'

    @staticmethod
    def optimize(context) -> str:
        return f"OPTIMIZE_{context.value}_PARAMS"

    @staticmethod
    def rebuild(context) -> str:
        return f"REBUILD_{context.value}_CACHE"

    @staticmethod
    def initialize(context) -> str:
        return f"INITIALIZE_{context.value}_CARD_STATES"


class Job(db.Model):
    """
    Queued background work (optimize, rebuild, initialize).
    Acts as an audit log and a status tracker for async tasks.
    """
    __tablename__ = 'jobs'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    type = db.Column(db.String(64), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default=JobStatus.PENDING, index=True)
    payload = db.Column(db.JSON, nullable=False, default=dict)
    result = db.Column(db.JSON, nullable=True)
    error = db.Column(db.Text, nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self):
        def _iso(value):
            return ensure_utc(value).isoformat() if value else None

        return {
            'id': self.id,
            'type': self.type,
            'status': self.status,
            'payload': self.payload,
            'result': self.result,
            'error': self.error,
            'createdAt': _iso(self.created_at),
            'startedAt': _iso(self.started_at),
            'completedAt': _iso(self.completed_at),
        }

    def __repr__(self):
        return f'<Job {self.id} - {self.type} ({self.status})>'
