# -*- coding: utf-8 -*-
"""Dynamically scoped configuration for the condition system.

The defaults of the `warning` and `message` families are configurable::

    from condsig import options, set_options

    options.warning_action            # "warn"

    with options.let(warning_action="error"):
        ...  # unhandled warnings become errors, for the dynamic extent of the block

    old = set_options(message_action="log")   # change the global default
    ...
    set_options(**old)                        # and put it back

Overrides made with `options.let` are local to the current execution
context (thread, or asyncio task), like the handler stack itself. The global
defaults set by `set_options` are shared.

Available options:

    warning_action: "warn" | "log" | "ignore" | "error"
        What an unhandled warning does. "warn" emits a `ConditionWarning`
        through Python's `warnings` module, "log" logs it at WARNING level,
        "error" converts it into an error condition.

    message_action: "display" | "log" | "ignore"
        What an unhandled message does. "display" writes it to
        `message_stream`, "log" logs it at INFO level.

    message_stream: writable text stream, or None
        Where "display" writes. `None` means `sys.stderr`, looked up each
        time a message is displayed.
"""

__all__ = ["options", "set_options"]

import contextvars

def _oneof(*choices):
    def validate(name, value):
        if value not in choices:
            raise ValueError(f"Option {repr(name)} must be one of {choices}, got {repr(value)}")
    return validate

def _stream(name, value):
    if value is not None and not callable(getattr(value, "write", None)):
        raise ValueError(f"Option {repr(name)} must be a writable stream or None, got {repr(value)}")

_validators = {"warning_action": _oneof("warn", "log", "ignore", "error"),
               "message_action": _oneof("display", "log", "ignore"),
               "message_stream": _stream}

_global_options = {"warning_action": "warn",
                   "message_action": "display",
                   "message_stream": None}

# Tuple of binding dicts, innermost last. Replaced, never mutated in place,
# so that each context (thread, task) keeps its own view.
_scopes = contextvars.ContextVar("condsig_option_scopes", default=())

def _validate(bindings):
    for name, value in bindings.items():
        if name not in _validators:
            raise AttributeError(f"No such option {repr(name)}; available: {sorted(_validators)}")
        _validators[name](name, value)

class _OptionsBlock:
    def __init__(self, bindings):
        self.bindings = bindings
        self.tokens = []
    def __enter__(self):
        self.tokens.append(_scopes.set(_scopes.get() + (self.bindings,)))
        return self
    def __exit__(self, exctype, excvalue, traceback):
        _scopes.reset(self.tokens.pop())

class _Options:
    """Read access to the current option values; see the module docstring."""
    def _resolve(self, name):
        for scope in reversed(_scopes.get()):
            if name in scope:
                return scope
        if name in _global_options:
            return _global_options
        raise AttributeError(f"No such option {repr(name)}; available: {sorted(_validators)}")

    def __getattr__(self, name):
        return self._resolve(name)[name]

    def __setattr__(self, name, value):
        raise AttributeError("Options are read-only; use `options.let(...)` or `set_options(...)`")

    def let(self, **bindings):
        """Override options for the dynamic extent of a `with` block."""
        _validate(bindings)
        return _OptionsBlock(dict(bindings))

    def __contains__(self, name):
        return name in _global_options

    def asdict(self):
        """Return a snapshot of the current option values as a plain dict."""
        return {name: getattr(self, name) for name in _global_options}

    def __repr__(self):  # pragma: no cover
        bindings = ["{:s}={}".format(k, repr(v)) for k, v in self.asdict().items()]
        return "<options at 0x{:x}: {{{:s}}}>".format(id(self), ", ".join(bindings))
options = _Options()

def set_options(**bindings):
    """Set global default values for options.

    Returns a dict of the previous values of the options that were set, so
    they can be restored with ``set_options(**old)``.

    Overrides currently active via `options.let` still take precedence.
    """
    _validate(bindings)
    old = {name: _global_options[name] for name in bindings}
    _global_options.update(bindings)
    return old
