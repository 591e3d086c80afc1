import logging

import optrisk.logutils as logutils
from optrisk.logutils import _LoggerProxy, _format_result, log_result


class DummyLogger:
    def __init__(self, events):
        self.events = events

    def info(self, message, **kwargs):
        self.events.append(("info", message, kwargs))

    def debug(self, message, **kwargs):
        self.events.append(("debug", message, kwargs))

    def opt(self, **kwargs):
        self.events.append(("opt", kwargs))
        return self


def test_logger_proxy_formats_percent_style_messages():
    events = []
    proxy = _LoggerProxy(DummyLogger(events))
    proxy.info("span=%s exposure=%.1f", 1200, 225.0)

    assert events == [("info", "span=1200 exposure=225.0", {})]


def test_logger_proxy_joins_arguments_when_formatting_fails():
    events = []
    proxy = _LoggerProxy(DummyLogger(events))
    proxy.info("legs", 4)

    assert events == [("info", "legs 4", {})]


def test_logger_proxy_respects_exc_info():
    events = []
    proxy = _LoggerProxy(DummyLogger(events))
    proxy.info("failure", exc_info=True)

    assert events == [("opt", {"exception": True}), ("info", "failure", {})]


def test_format_result_truncates_long_values():
    text = _format_result("x" * 500, max_length=10)
    assert text.startswith("x" * 10)
    assert "[truncated 500 chars]" in text


def test_log_result_logs_call_and_return(monkeypatch):
    events = []
    monkeypatch.setattr(logutils, "logger", DummyLogger(events))

    @log_result
    def total(a, b):
        return a + b

    assert total(2, 3) == 5
    assert total.__name__ == "total"
    assert [e[1] for e in events] == ["calling total", "total -> 5"]


def test_setup_logging_honours_debug_env(monkeypatch):
    monkeypatch.setenv("OPTRISK_DEBUG", "1")
    logutils.setup_logging()
    assert logging.getLogger().level == logging.DEBUG

    monkeypatch.setenv("OPTRISK_DEBUG", "0")
    monkeypatch.setenv("OPTRISK_LOG_LEVEL", "warning")
    logutils.setup_logging()
    assert logging.getLogger().level == logging.WARNING
