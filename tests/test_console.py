import logging

from unwrapped.console import ConsoleOptions, make_console, resolve_width
from unwrapped.logging_setup import setup_logging


def test_explicit_width_wins_over_the_env_pin(monkeypatch):
    monkeypatch.setenv("UNWRAPPED_CONSOLE_WIDTH", "90")
    assert resolve_width(150) == 150
    assert resolve_width() == 90


def test_unparseable_env_width_falls_back_to_the_terminal(monkeypatch):
    monkeypatch.setenv("UNWRAPPED_CONSOLE_WIDTH", "wide")
    assert resolve_width() > 0


def test_logging_console_writes_to_stderr():
    assert make_console(ConsoleOptions(width=80, stderr=True)).stderr
    assert not make_console(ConsoleOptions(width=80)).stderr


def test_setup_logging_adds_a_file_handler(tmp_path):
    log_file = tmp_path / "logs" / "run.log"
    setup_logging(level="DEBUG", log_file=str(log_file), console_width=100, no_color=True)
    try:
        logging.getLogger("unwrapped.test").info("hello [brackets]")
        for h in logging.getLogger().handlers:
            h.flush()
        assert "hello [brackets]" in log_file.read_text(encoding="utf-8")
        assert logging.getLogger("urllib3").level == logging.WARNING
    finally:
        for h in list(logging.getLogger().handlers):
            if isinstance(h, logging.FileHandler):
                h.close()
                logging.getLogger().removeHandler(h)
