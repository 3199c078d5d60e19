# -*- coding: utf-8 -*-
"""Signaling conditions, and resuming from them.

Signaling a condition walks the handler stack from dynamically innermost to
outermost. At each registration, the first binding (in declared order) whose
tag the condition carries is chosen:

  - An **exiting** handler takes over. The caller of `signal` exits
    nonlocally, as if an exception occurred, and execution resumes after the
    registration's block, with the handler's return value as the block's
    result. The search stops.

  - An **in-place** handler is just called, with the condition as its
    argument. It runs *inside* the `signal` call, with the handler stack
    temporarily set to what it was below its own registration. If it returns
    normally, the search continues outward. If it calls `muffle`, the search
    stops and `signal` returns to its caller.

If the search runs out without a taker, the family default applies: an error
aborts (the condition is raised), an interrupt aborts (`Interrupted` is
raised), a warning or a message is reported according to `condsig.options`,
and a generic condition is a no-op.

The resumption side is a restart registry, as in Common Lisp. A restart is
a named recovery action established for the dynamic extent of a block; a
handler invokes one to decide how the lower-level code should proceed. Each
of the family protocols establishes one restart for the duration of the
signal operation: `muffle_warning`, `muffle_message`, or `muffle` (generic
conditions). `muffle(c)` invokes whichever of these belongs to `c`.

For the scoping side (registering handlers), see `condsig.handlers`.
"""

__all__ = ["signal", "signal_error", "signal_warning", "signal_message", "signal_interrupt",
           "muffle",
           "restarts", "with_restarts",
           "invoke_restart", "find_restart", "available_restarts",
           "invoker", "use_value",
           "ConditionWarning", "Interrupted"]

import contextlib
import logging
import sys
import warnings
from collections import namedtuple
from functools import partial

from .collections import box, unbox
from .conditions import (Condition, ControlError, ROOT,
                         _normalize_classes, condition_family)
from .options import options
from .stack import (EXITING, Unwind,
                      _current_handlers, _current_restarts,
                      _handlers_below, _pushed_restarts, _call_handler)

logger = logging.getLogger(__name__)

_MUFFLE_RESTARTS = {"warning": "muffle_warning",
                    "message": "muffle_message",
                    ROOT: "muffle"}

class ConditionWarning(UserWarning):
    """Python warning category used to report an unhandled warning condition.

    The condition itself is available as the `condition` attribute.
    """
    def __init__(self, condition):
        super().__init__(condition.message)
        self.condition = condition

class Interrupted(KeyboardInterrupt):
    """Raised when an interrupt condition is not handled.

    A `KeyboardInterrupt`, so that ``except Exception`` does not swallow
    cancellation. The condition is available as the `condition` attribute.
    """
    def __init__(self, condition):
        super().__init__(condition.message)
        self.condition = condition

# --------------------------------------------------------------------------------
# Restarts

class _RestartFrame:
    # One `with restarts` block. `condition`, if not None, associates the
    # restarts with one particular signal operation.
    def __init__(self, bindings, condition=None):
        self.bindings = bindings
        self.condition = condition
        self.active = False

BoundRestart = namedtuple("BoundRestart", ["name", "function", "frame"])

class InvokeRestart(BaseException):
    def __init__(self, restart, *args, **kwargs):
        self.restart, self.a, self.kw = restart, args, kwargs
        # message when uncaught
        self.args = ("condsig: internal error: uncaught InvokeRestart",)
    def __call__(self):
        return self.restart.function(*self.a, **self.kw)

@contextlib.contextmanager
def _establish(bindings, condition=None):
    for name, function in bindings.items():
        if not (isinstance(name, str) and callable(function)):
            raise TypeError("Each restart binding must be of the form name=callable")
    frame = _RestartFrame(bindings, condition)
    result = box(None)
    with _pushed_restarts(frame):
        try:
            yield result
        except InvokeRestart as exc:
            if exc.restart.frame is frame:  # if it's ours
                result << exc()
            else:
                raise  # unwind this level, propagate outwards

@contextlib.contextmanager
def restarts(**bindings):
    """Provide restarts. Known as `RESTART-CASE` in Common Lisp.

    Restarts are canned recovery strategies. The low-level code defines what
    can be done; a handler in higher-level code picks one by invoking it.

    Example::

        with restarts(use_value=(lambda x: x)) as result:
            ...
            result << 42

    `result` is a `box`. If the block runs to completion, it holds whatever
    the block put there (`None` by default). If a handler invokes one of
    these restarts, the rest of the block is skipped, and the box holds the
    restart's return value.
    """
    with _establish(bindings) as result:
        yield result

def with_restarts(**bindings):
    """Alternate syntax. Use restarts with a `def` instead of a `with`.

    Parametric decorator. Returns a `call_with_restarts` function that calls
    its thunk argument with the restarts specified here::

        @with_restarts(use_value=(lambda x: x))
        def result():
            ...
            return 42
        # now `result` is either 42 or the return value of a restart
    """
    def call_with_restarts(f):
        """Call `f`, providing the restarts stored in this closure."""
        with restarts(**bindings) as result:
            result << f()
        return unbox(result)
    return call_with_restarts

def find_restart(name, condition=None):
    """Look up a restart by name. Known as `FIND-RESTART` in Common Lisp.

    Return an opaque object, accepted by `invoke_restart`, representing the
    innermost restart of that name currently in effect; or `None`.

    If `condition` is given, restarts associated with some other signal
    operation are skipped.
    """
    for frame in _current_restarts():
        if condition is not None and frame.condition is not None and frame.condition is not condition:
            continue
        if name in frame.bindings:
            return BoundRestart(name, frame.bindings[name], frame)
    return None

def available_restarts(condition=None):
    """Return a sorted list of the restarts currently in effect.

    Shadowing is respected; for each name, only the innermost restart is
    listed. The format is ``[(name, callable), ...]``.

    If `condition` is given, restarts associated with some other signal
    operation are skipped.
    """
    out = []
    seen = set()
    for frame in _current_restarts():
        if condition is not None and frame.condition is not None and frame.condition is not condition:
            continue
        for name, function in frame.bindings.items():
            if name not in seen:
                seen.add(name)
                out.append((name, function))
    return sorted(out, key=lambda x: x[0])

def invoke_restart(name_or_restart, *args, **kwargs):
    """Invoke a restart. Known as `INVOKE-RESTART` in Common Lisp.

    `name_or_restart` is the name of a restart, or a return value of
    `find_restart`. Any args and kwargs are passed to the restart.

    If there is no such restart, or its dynamic extent has already ended,
    `ControlError` is signaled.

    This function never returns normally.
    """
    if isinstance(name_or_restart, str):
        restart = find_restart(name_or_restart)
        if restart is None:
            signal_error(ControlError(f"No such restart: {repr(name_or_restart)}; available restarts: {[n for n, _ in available_restarts()]}",
                                      {"restart": name_or_restart}))
    elif isinstance(name_or_restart, BoundRestart):
        restart = name_or_restart
        if not restart.frame.active:
            signal_error(ControlError(f"Restart {repr(restart.name)} is no longer in effect; its signal operation has concluded",
                                      {"restart": restart.name}))
    else:
        raise TypeError(f"Expected str or a return value of find_restart, got {type(name_or_restart)} with value {repr(name_or_restart)}")
    logger.debug("invoking restart %r", restart.name)
    raise InvokeRestart(restart, *args, **kwargs)

def invoker(restart_name, *args, **kwargs):
    """Create a handler that just invokes the named restart.

    The args and kwargs are frozen into the handler by closure, and passed to
    the restart when it fires. The handler accepts, and ignores, the
    condition instance::

        with calling_handlers(my_condition=invoker("use_value", 42)):
            ...
    """
    def the_invoker(condition):
        invoke_restart(restart_name, *args, **kwargs)
    the_invoker.__name__ = the_invoker.__qualname__ = restart_name
    the_invoker.__doc__ = f"Invoke the {repr(restart_name)} restart."
    return the_invoker

use_value = partial(invoke_restart, "use_value")
use_value.__doc__ = """Invoke the 'use_value' restart immediately with given args and kwargs.

Shorthand for ``invoke_restart("use_value", ...)``::

    with calling_handlers(bad_entry=lambda c: use_value(repair(c.metadata["entry"]))):
        ...
"""

# --------------------------------------------------------------------------------
# Dispatch

def _dispatch(condition):
    """Walk the handler stack for `condition`.

    Returns normally if no handler took over. An exiting handler, a restart
    invoked by an in-place handler, or an exception from one, leaves by raising.
    """
    registrations = _current_handlers()
    for depth, registration in enumerate(registrations):
        handler = registration.match(condition)
        if handler is None:
            continue
        if registration.kind is EXITING:
            logger.debug("%s: transferring to exiting handler %r at depth %d",
                         condition.classes[0], handler, depth)
            raise Unwind(registration, handler, condition)
        logger.debug("%s: calling in-place handler %r at depth %d",
                     condition.classes[0], handler, depth)
        with _handlers_below(registrations[depth + 1:]):
            _call_handler(handler, condition)

def _resume():
    """Continue from the point where the condition was signaled."""

def _coerce(condition, family, classes, metadata, origin):
    # Build the condition for a family entry point.
    if isinstance(condition, str):
        # A conflicting family tag in `classes` is a ValueError here.
        tags = _normalize_classes(classes, family)
        return Condition(condition, tags, metadata, origin)
    if not isinstance(condition, Condition):
        raise TypeError(f"Expected a Condition or a str message, got {type(condition)} with value {repr(condition)}")
    if classes or metadata is not None or origin is not None:
        raise TypeError("classes, metadata and origin can only be given together with a str message")
    current = condition_family(condition)
    if current == family:
        return condition
    if current != ROOT:
        raise TypeError(f"Expected a {family} condition, got a {current} condition: {repr(condition)}")
    return condition._rerooted(family)

def signal(condition):
    """Signal a condition, according to its family.

    Error and interrupt conditions are delegated to `signal_error` and
    `signal_interrupt`, and never return normally. Warnings and messages
    follow their own protocols (see `signal_warning`, `signal_message`).

    A generic condition establishes a `muffle` restart, walks the handler
    stack, and returns `None` whether or not it was handled (unless an
    exiting handler took over). This is the building block for custom
    protocols.
    """
    if not isinstance(condition, Condition):
        raise TypeError(f"Expected a Condition, got {type(condition)} with value {repr(condition)}")
    family = condition_family(condition)
    if family == "error":
        signal_error(condition)
    elif family == "interrupt":
        _signal_interrupt(condition, None)
    elif family == "warning":
        _signal_warning(condition, stacklevel=4)
    elif family == "message":
        _signal_message(condition)
    else:
        with _establish({"muffle": _resume}, condition):
            _dispatch(condition)

def signal_error(condition, *, classes=(), metadata=None, origin=None, cause=None):
    """Signal an error. Never returns normally.

    `condition` is an error condition, a generic one (which is then placed
    into the error family), or a `str` message. With a message, extra tags
    (`classes`), `metadata` and `origin` can be given for the new condition.

    In-place handlers run as usual; an exiting handler for the error takes
    over. If none does, the condition is raised as an exception, with
    ``raise ... from cause`` when `cause` is given.

    Example::

        signal_error("`x` must be numeric", classes="error_bad_argument",
                     metadata={"arg": "x", "must": "numeric"})
    """
    condition = _coerce(condition, "error", classes, metadata, origin)
    _dispatch(condition)
    logger.debug("%s: unhandled error, aborting", condition.classes[0])
    if cause is not None:
        raise condition from cause
    raise condition

def signal_warning(condition, *, classes=(), metadata=None, origin=None):
    """Signal a warning.

    `condition` is a warning condition, a generic one, or a `str` message
    (see `signal_error` for the other parameters).

    A `muffle_warning` restart is in effect while handlers run; an in-place
    handler can `muffle` the warning to stop its propagation and suppress the
    default report. If unhandled, `options.warning_action` decides what
    happens. Execution then continues after the call.
    """
    condition = _coerce(condition, "warning", classes, metadata, origin)
    _signal_warning(condition, stacklevel=4)

def _signal_warning(condition, stacklevel):
    with _establish({"muffle_warning": _resume}, condition):
        _dispatch(condition)
        _default_warning(condition, stacklevel)

def _default_warning(condition, stacklevel):
    action = options.warning_action
    logger.debug("%s: unhandled warning, action %r", condition.classes[0], action)
    if action == "ignore":
        return
    if action == "log":
        logger.warning("%s", condition.message)
    elif action == "error":
        converted = Condition(f"(converted from warning) {condition.message}",
                              ("converted_warning", "error"),
                              {"warning": condition},
                              condition.origin)
        signal_error(converted)
    else:
        # stacklevel: point at the caller of the public entry point.
        warnings.warn(ConditionWarning(condition), stacklevel=stacklevel)

def signal_message(condition, *, classes=(), metadata=None, origin=None):
    """Signal an informational message.

    `condition` is a message condition, a generic one, or a `str` message
    (see `signal_error` for the other parameters).

    A `muffle_message` restart is in effect while handlers run. If
    unhandled, `options.message_action` decides what happens (by default,
    the message is written to standard error). Execution then continues.
    """
    condition = _coerce(condition, "message", classes, metadata, origin)
    _signal_message(condition)

def _signal_message(condition):
    with _establish({"muffle_message": _resume}, condition):
        _dispatch(condition)
        _default_message(condition)

def _default_message(condition):
    action = options.message_action
    logger.debug("%s: unhandled message, action %r", condition.classes[0], action)
    if action == "ignore":
        return
    if action == "log":
        logger.info("%s", condition.message)
        return
    stream = options.message_stream
    if stream is None:
        stream = sys.stderr
    text = condition.message
    stream.write(text if text.endswith("\n") else text + "\n")

def signal_interrupt(message="interrupted", *, cause=None):
    """Deliver a cancellation request as an interrupt condition.

    For collaborators that implement cancellation (a SIGINT hook, a timeout):
    user code cannot construct interrupts. Only bindings for the tag
    ``"interrupt"`` itself see the condition; a generic ``"condition"``
    binding does not. Unless an exiting handler takes over, `Interrupted`
    is raised. Never returns normally.

    `cause` is typically the `KeyboardInterrupt` being converted.
    """
    _signal_interrupt(Condition(message, ("interrupt",)), cause)

def _signal_interrupt(condition, cause):
    _dispatch(condition)
    logger.debug("unhandled interrupt, aborting")
    if cause is not None:
        raise Interrupted(condition) from cause
    raise Interrupted(condition)

def muffle(condition):
    """Stop the propagation of `condition`, and resume after its signal site.

    Call this from an in-place handler. The handler search for the condition
    ends, the family default (e.g. printing a warning) is skipped, and the
    `signal` call that raised the condition returns normally.

    Usable directly as a handler::

        with calling_handlers(warning=muffle):
            ...

    Errors cannot be muffled: trying signals `ControlError`. So does calling
    this when no muffle restart is in effect for the condition (e.g. from
    outside its signal operation).

    This function never returns normally.
    """
    if not isinstance(condition, Condition):
        raise TypeError(f"Expected a Condition, got {type(condition)} with value {repr(condition)}")
    family = condition_family(condition)
    if family == "error":
        signal_error(ControlError("Cannot muffle an error", {"condition": condition}))
    name = _MUFFLE_RESTARTS.get(family)
    restart = _find_muffle_restart(name, condition) if name is not None else None
    if restart is None:
        signal_error(ControlError(f"No muffle restart in effect for this {family} condition",
                                  {"condition": condition}))
    invoke_restart(restart)

def _find_muffle_restart(name, condition):
    # Only the restart established by this condition's own signal operation.
    for frame in _current_restarts():
        if frame.condition is condition and name in frame.bindings:
            return BoundRestart(name, frame.bindings[name], frame)
    return None
