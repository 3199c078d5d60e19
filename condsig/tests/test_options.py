# -*- coding: utf-8 -*-

import io
import threading

import pytest

from condsig.options import options, set_options


def test_defaults():
    assert options.warning_action == "warn"
    assert options.message_action == "display"
    assert options.message_stream is None
    assert options.asdict() == {"warning_action": "warn",
                                "message_action": "display",
                                "message_stream": None}


def test_let_is_dynamically_scoped():
    def f():
        return options.warning_action
    assert f() == "warn"
    with options.let(warning_action="log"):
        assert f() == "log"
        with options.let(warning_action="ignore", message_action="log"):
            assert f() == "ignore"
            assert options.message_action == "log"
        assert f() == "log"
        assert options.message_action == "display"
    assert f() == "warn"


def test_let_restores_on_exception():
    with pytest.raises(RuntimeError):
        with options.let(warning_action="error"):
            raise RuntimeError("oops")
    assert options.warning_action == "warn"


def test_validation():
    with pytest.raises(ValueError):
        options.let(warning_action="shout")
    with pytest.raises(ValueError):
        options.let(message_action="warn")
    with pytest.raises(ValueError):
        options.let(message_stream="stderr")
    with pytest.raises(AttributeError):
        options.let(no_such_option=42)
    with pytest.raises(AttributeError):
        getattr(options, "no_such_option")


def test_read_only():
    with pytest.raises(AttributeError):
        options.warning_action = "error"
    assert "warning_action" in options
    assert "no_such_option" not in options


def test_set_options():
    stream = io.StringIO()
    old = set_options(message_action="ignore", message_stream=stream)
    try:
        assert old == {"message_action": "display", "message_stream": None}
        assert options.message_action == "ignore"
        assert options.message_stream is stream
        # a dynamic binding still wins
        with options.let(message_action="log"):
            assert options.message_action == "log"
    finally:
        set_options(**old)
    assert options.message_action == "display"
    assert options.message_stream is None


def test_set_options_validation():
    with pytest.raises(ValueError):
        set_options(warning_action="shout")
    assert options.warning_action == "warn"


def test_let_does_not_leak_into_other_threads():
    seen = []
    started = threading.Event()
    done = threading.Event()
    def worker():
        started.wait()
        seen.append(options.warning_action)
        done.set()
    t = threading.Thread(target=worker)
    t.start()
    with options.let(warning_action="error"):
        started.set()
        done.wait()
    t.join()
    # The thread was created before the override, and reads its own context.
    assert seen == ["warn"]
