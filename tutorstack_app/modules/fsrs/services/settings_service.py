# File: tutorstack_app/modules/fsrs/services/settings_service.py
from __future__ import annotations
from typing import Any, Dict, List
from flask import current_app, has_app_context
from ..config import FSRSDefaultConfig
from ..engine.learning_steps import parse_steps


class FSRSSettingsService:
    """Service for resolving FSRS configuration (app config first, then defaults)."""

    DEFAULTS: Dict[str, Any] = {
        key: getattr(FSRSDefaultConfig, key)
        for key in dir(FSRSDefaultConfig)
        if key.startswith('FSRS_')
    }

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        if has_app_context() and key in current_app.config:
            return current_app.config[key]
        if key in cls.DEFAULTS:
            return cls.DEFAULTS[key]
        return default

    @classmethod
    def desired_retention(cls) -> float:
        return float(cls.get('FSRS_DESIRED_RETENTION'))

    @classmethod
    def default_weights(cls) -> List[float]:
        return list(cls.get('FSRS_DEFAULT_WEIGHTS'))

    @classmethod
    def learning_steps(cls) -> List[str]:
        return list(cls.get('FSRS_LEARNING_STEPS'))

    @classmethod
    def learning_step_ms(cls, steps: List[str] = None) -> List[int]:
        """Parse ``steps`` (or the configured ones); malformed entries raise."""
        return parse_steps(steps if steps is not None else cls.learning_steps())

    @classmethod
    def optimizer_min_reviews(cls) -> int:
        return int(cls.get('FSRS_OPTIMIZER_MIN_REVIEWS'))
