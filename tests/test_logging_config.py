import logging
import logging.handlers

from tutorstack_app.core.logging_config import setup_logging


def test_console_only_without_log_dir():
    logger = setup_logging(log_level='debug')

    assert logger.name == 'tutorstack_app'
    assert logger.level == logging.DEBUG
    assert [type(h) for h in logger.handlers] == [logging.StreamHandler]


def test_rotating_file_handler_with_log_dir(tmp_path):
    log_dir = tmp_path / 'logs'

    logger = setup_logging(log_level='WARNING', log_dir=str(log_dir))
    file_handlers = [h for h in logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]

    assert len(file_handlers) == 1
    assert file_handlers[0].baseFilename == str(log_dir / 'tutorstack.log')
    assert log_dir.is_dir()
    for handler in file_handlers:
        handler.close()
    logger.handlers.clear()
