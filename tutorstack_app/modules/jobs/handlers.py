"""
Job type -> (payload schema, handler) table.

Handlers receive the loaded payload and return a JSON-serializable result.
"""
from typing import Any, Callable, Dict, Tuple
from marshmallow import Schema
from tutorstack_app.modules.fsrs.interface import FSRSInterface
from tutorstack_app.modules.fsrs.schemas import ReviewContext
from .models import JobType
from .schemas import InitializeCardStatesPayloadSchema, StudentPayloadSchema


def _optimize(context: ReviewContext):
    def handler(payload: Dict[str, Any]) -> Dict[str, Any]:
        return FSRSInterface.optimize_parameters(payload['student_id'], context)
    return handler


def _rebuild(context: ReviewContext):
    def handler(payload: Dict[str, Any]) -> Dict[str, Any]:
        return FSRSInterface.rebuild_cache(payload['student_id'], context)
    return handler


def _initialize(context: ReviewContext):
    def handler(payload: Dict[str, Any]) -> Dict[str, Any]:
        created = FSRSInterface.initialize_deck(payload['student_id'], payload['deck_id'], context)
        return {'cardsInitialized': created}
    return handler


JOB_HANDLERS: Dict[str, Tuple[Schema, Callable[[Dict[str, Any]], Dict[str, Any]]]] = {}
for _context in ReviewContext:
    JOB_HANDLERS[JobType.optimize(_context)] = (StudentPayloadSchema(), _optimize(_context))
    JOB_HANDLERS[JobType.rebuild(_context)] = (StudentPayloadSchema(), _rebuild(_context))
    JOB_HANDLERS[JobType.initialize(_context)] = (InitializeCardStatesPayloadSchema(), _initialize(_context))
