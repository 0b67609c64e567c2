# File: tutorstack_app/core/config.py
# Core Infrastructure Layer

import os
from dotenv import load_dotenv

load_dotenv()

# tutorstack_app/core/ -> project root
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))

DATABASE_PATH = os.path.join(BASE_DIR, "database", "tutorstack.db")


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes')


class Config:
    """Application configuration."""

    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY:
        # Fallback for development, though env is preferred
        SECRET_KEY = 'dev-secret-key-replace-in-production'

    SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI') or f'sqlite:///{DATABASE_PATH}'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'connect_args': {'timeout': 30},
    }
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Calendar used for "due later today" backfill
    SYSTEM_TIMEZONE = os.environ.get('SYSTEM_TIMEZONE', 'UTC')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_DIR = os.environ.get('LOG_DIR')

    # Background job polling
    JOB_WORKER_ENABLED = _env_flag('JOB_WORKER_ENABLED')
    JOB_WORKER_INTERVAL_SECONDS = int(os.environ.get('JOB_WORKER_INTERVAL_SECONDS', 30))
    JOB_WORKER_BATCH_SIZE = int(os.environ.get('JOB_WORKER_BATCH_SIZE', 10))

    @classmethod
    def init_app(cls, app):
        """Create the directories the configuration points at."""
        if app.config['SQLALCHEMY_DATABASE_URI'] == f'sqlite:///{DATABASE_PATH}':
            os.makedirs(os.path.dirname(DATABASE_PATH), exist_ok=True)
        if app.config.get('LOG_DIR'):
            os.makedirs(app.config['LOG_DIR'], exist_ok=True)
