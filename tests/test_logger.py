import logging
from logging.handlers import RotatingFileHandler

import kestrel.util.logger as logger_module
from kestrel.util.logger import (
    LOG_BACKUP_COUNT,
    MAX_LOG_BYTES,
    ConsoleHandler,
    console_level,
    get_log_filepath,
    get_logger,
    handle_exception,
    setup_logger,
    should_use_color,
)


class DummyStream:
    def write(self, msg):
        pass

    def isatty(self):
        return True


def make_record(level, message):
    return logging.LogRecord("test", level, __file__, 1, message, None, None)


def test_get_logger_has_console_and_rotating_file_handlers():
    logger = get_logger("test_logger")

    assert isinstance(logger, logging.Logger)
    assert logger.propagate is False
    assert any(isinstance(h, ConsoleHandler) for h in logger.handlers)
    file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
    assert len(file_handlers) == 1
    assert file_handlers[0].maxBytes == MAX_LOG_BYTES
    assert file_handlers[0].backupCount == LOG_BACKUP_COUNT


def test_setup_logger_idempotent():
    logger1 = setup_logger("test_logger_idem")
    logger2 = setup_logger("test_logger_idem")

    assert logger1 is logger2
    assert len(logger1.handlers) == 2


def test_console_handler_styles_by_level(monkeypatch):
    printed = []
    monkeypatch.setattr(logger_module, "print_formatted_text", printed.append)

    ConsoleHandler(colour=True).emit(make_record(logging.ERROR, "error occurred"))

    (fragments,) = printed
    style, text = list(fragments)[0][:2]
    assert style == "ansired"
    assert "error occurred" in text


def test_console_handler_without_colour_is_unstyled(monkeypatch):
    printed = []
    monkeypatch.setattr(logger_module, "print_formatted_text", printed.append)

    ConsoleHandler().emit(make_record(logging.WARNING, "careful"))

    style, text = list(printed[0])[0][:2]
    assert style == ""
    assert "[WARNING]" in text


def test_should_use_color_true(monkeypatch):
    monkeypatch.setattr("sys.stderr", DummyStream())
    assert should_use_color() is True


def test_console_level_from_environment(monkeypatch):
    monkeypatch.setenv("KESTREL_LOG_LEVEL", "debug")
    assert console_level() == logging.DEBUG

    monkeypatch.setenv("KESTREL_LOG_LEVEL", "chatty")
    assert console_level() == logging.INFO


def test_log_filepath_is_shared_by_the_session():
    path = get_log_filepath()

    assert path == get_log_filepath()
    assert path.parent.exists()
    assert path.name.startswith("kestrel-") and path.suffix == ".log"


def test_noisy_libraries_are_quietened():
    assert logging.getLogger("discord").level == logging.ERROR
    assert logging.getLogger("aiohttp").level == logging.ERROR


def test_handle_exception_logs_error(caplog):
    class DummyException(Exception):
        pass

    with caplog.at_level(logging.ERROR):
        try:
            raise DummyException("fail")
        except DummyException as exc:
            handle_exception(DummyException, exc, exc.__traceback__)

    assert any("Uncaught exception" in r.message for r in caplog.records)


def test_handle_exception_passes_keyboard_interrupt_through(monkeypatch):
    seen = []
    monkeypatch.setattr("sys.__excepthook__", lambda *args: seen.append(args[0]))

    handle_exception(KeyboardInterrupt, KeyboardInterrupt(), None)

    assert seen == [KeyboardInterrupt]
