# File: tutorstack_app/modules/students/models.py
import uuid
from datetime import datetime, timezone
from tutorstack_app.core.extensions import db


class StudentStatus:
    ACTIVE = 'ACTIVE'
    PAUSED = 'PAUSED'
    INACTIVE = 'INACTIVE'


class Student(db.Model):
    __tablename__ = 'students'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=StudentStatus.ACTIVE)
    is_archived = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @property
    def is_schedulable(self) -> bool:
        """Jobs run only for active, non-archived students."""
        return self.status == StudentStatus.ACTIVE and not self.is_archived

    def __repr__(self):
        return f"<Student({self.id}, {self.status})>"
