import logging

import pytest
from loguru import logger

from utils.logging_setup import NOISY_LOGGERS, InterceptHandler, setup_logging


@pytest.fixture
def restore_logging():
    root_handlers = list(logging.root.handlers)
    root_level = logging.root.level
    yield
    logger.remove()
    logging.root.handlers = root_handlers
    logging.root.setLevel(root_level)


@pytest.mark.unit
def test_setup_logging_writes_json_file(tmp_path, restore_logging):
    setup_logging(app_name="paperlens-test", log_dir=str(tmp_path), level="INFO")

    logger.info("ingestion finished")
    # Removing the sinks drains the queue and closes the file
    logger.remove()

    log_files = list(tmp_path.glob("paperlens-test_*.log"))
    assert len(log_files) == 1
    assert '"message": "ingestion finished"' in log_files[0].read_text()


@pytest.mark.unit
def test_setup_logging_intercepts_stdlib(restore_logging):
    setup_logging(log_dir=None, level="DEBUG")

    assert isinstance(logging.root.handlers[0], InterceptHandler)
    for name in NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING


@pytest.mark.unit
def test_intercepted_records_reach_loguru(restore_logging):
    setup_logging(log_dir=None, level="DEBUG")
    messages = []
    logger.add(messages.append, format="{message}")

    logging.getLogger("some.library").warning("stdlib says hi")
    logger.complete()

    assert any("stdlib says hi" in m for m in messages)
