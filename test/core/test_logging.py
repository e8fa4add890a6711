import logging

import pytest

from vmdrec.core import get_logger, set_subsystem_levels
from vmdrec.core.logging import ColoredFormatter, EXPORT_THREAD_PREFIX, ExportWorkerFilter


def _record(level, thread_name):
    record = logging.LogRecord("vmdrec.export.vmd", level, __file__, 1, "message", None, None)
    record.threadName = thread_name
    return record


def test_export_worker_filter_drops_routine_records():
    worker_filter = ExportWorkerFilter("WARNING")
    worker = f"{EXPORT_THREAD_PREFIX}_0"

    assert not worker_filter.filter(_record(logging.INFO, worker))
    assert worker_filter.filter(_record(logging.WARNING, worker))
    assert worker_filter.filter(_record(logging.DEBUG, "MainThread"))


def test_colored_formatter_leaves_record_untouched():
    record = _record(logging.INFO, f"{EXPORT_THREAD_PREFIX}_0")
    text = ColoredFormatter("%(levelname)s %(name)s %(message)s").format(record)

    assert "[export]" in text
    assert record.levelname == "INFO"
    assert record.name == "vmdrec.export.vmd"


@pytest.fixture
def clip_logger():
    logger = get_logger("motion.clip")
    previous = logger.level
    yield logger
    logger.setLevel(previous)


def test_subsystem_levels(clip_logger):
    set_subsystem_levels({"motion.clip": "warning"})
    assert clip_logger.level == logging.WARNING

    set_subsystem_levels({"motion.clip": logging.DEBUG})
    assert clip_logger.level == logging.DEBUG


def test_unknown_level_rejected(clip_logger):
    with pytest.raises(ValueError):
        set_subsystem_levels({"motion.clip": "LOUD"})
