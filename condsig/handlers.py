# -*- coding: utf-8 -*-
"""Registering condition handlers for the dynamic extent of a block.

Two disciplines, each in a function form and a `with` form:

  - **Exiting** handlers, `run_with_exiting_handlers` / `with exiting_handlers`.
    Known as `tryCatch` in R and `HANDLER-CASE` in Common Lisp. When one of
    them matches, the body is abandoned at the signal site, the registration
    is removed, and the handler runs in the caller's environment. Its return
    value becomes the result of the whole form::

        result = run_with_exiting_handlers({"error": lambda c: 10},
                                           lambda: compute())  # 10 if compute() signals an error

  - **In-place** (calling) handlers, `run_with_calling_handlers` /
    `with calling_handlers`. Known as `withCallingHandlers` in R and
    `HANDLER-BIND` in Common Lisp. The handler runs inside the signal call,
    for its side effects; the body then continues, unless the handler
    transferred control elsewhere (e.g. via `muffle` or a restart)::

        with calling_handlers(message=lambda c: log.append(c.message)):
            signal_message("hello")   # logged, and also displayed
            ...                       # continues here

Bindings map a class tag to a handler. Within one registration, bindings are
tried in the order they are declared, and the first match wins, so declare
specific tags before generic ones.

Some conveniences are built from these: `catch_first`, `suppress_warnings`,
`suppress_messages`.
"""

__all__ = ["exiting_handlers", "run_with_exiting_handlers",
           "calling_handlers", "run_with_calling_handlers",
           "catch_first", "suppress_warnings", "suppress_messages"]

import contextlib
import logging

from .collections import box, unbox
from .signals import Interrupted, muffle, signal_interrupt
from .stack import (EXITING, IN_PLACE, Registration, Unwind,
                    _binding_pairs, _parse_bindings, _pushed, _call_handler)

logger = logging.getLogger(__name__)

@contextlib.contextmanager
def exiting_handlers(*bindings, **kwbindings):
    """Set up exiting condition handlers for the dynamic extent of a block.

    Usage::

        with exiting_handlers(("error_bad_argument", h1), error=h2) as result:
            ...
            result << value

    Each positional binding is ``(tag, handler)`` or ``((t0, ..., tn), handler)``;
    keyword bindings follow them, in order. A handler takes the condition as
    its argument (or no arguments, if it does not need it).

    `result` is a `box`. If the block runs to completion, it holds whatever
    the block put there (`None` by default). If a condition signaled inside
    the block is taken by one of these handlers, the rest of the block is
    skipped, the registration is removed, and the box holds the handler's
    return value.

    If the body raises a real `KeyboardInterrupt` and this registration has
    an ``"interrupt"`` binding, the interrupt is signaled as a condition
    from here, so the innermost interested handler gets it.

    There is no `finally` here; use a plain `try`/`finally` around the
    `with`, or `run_with_exiting_handlers`.
    """
    registration = Registration(EXITING, _parse_bindings(bindings, kwbindings))
    result = box(None)
    caught = None
    with _pushed(registration):
        try:
            try:
                yield result
            except KeyboardInterrupt as exc:
                if isinstance(exc, Interrupted) or not registration.declares("interrupt"):
                    raise
                signal_interrupt(str(exc) or "interrupted", cause=exc)
        except Unwind as exc:
            if exc.registration is not registration:
                raise  # meant for someone further out; keep unwinding
            caught = exc
    if caught is not None:
        # The registration is gone now, so a condition signaled by the
        # handler is dispatched against the stack as it was outside the block.
        logger.debug("%s: exiting handler %r taking over",
                     caught.condition.classes[0], caught.handler)
        try:
            value = _call_handler(caught.handler, caught.condition)
        except BaseException as err:
            # Still inside the `__exit__` that received the transfer; an
            # escalation is not an error in handling it.
            if err.__context__ is caught:
                err.__context__ = None
            raise
        result << value

def run_with_exiting_handlers(bindings, body, finallyf=None):
    """Call `body` with exiting handlers in effect. Known as `tryCatch` in R.

    `bindings` is a mapping ``{tag: handler}`` (declaration order matters),
    or an iterable of ``(tag_or_tuple, handler)`` pairs. `body` is a thunk.

    Returns the return value of `body`, or, if one of the handlers took a
    condition signaled during `body`, the return value of that handler.

    `finallyf`, if given, is a thunk that runs exactly once on every exit
    path: normal completion, a handled condition, or anything propagating
    out (including exceptions from the handler itself).

    Example::

        def body():
            trace.append("before")
            signal_error("boom")
            trace.append("after")  # never runs
        assert run_with_exiting_handlers({"error": lambda c: 10}, body) == 10
    """
    try:
        with exiting_handlers(*_binding_pairs(bindings)) as result:
            result << body()
        return unbox(result)
    finally:
        if finallyf is not None:
            finallyf()

class calling_handlers:
    """Set up in-place condition handlers. Known as `withCallingHandlers` in R.

    Usage::

        with calling_handlers(("deprecated", h1), warning=h2):
            ...

    Binding format as in `exiting_handlers`.

    When a condition signaled inside the block matches, the handler is
    called with the condition, at the signal site, without unwinding
    anything. Its return value is ignored. While it runs, this registration
    (and anything above it) is invisible, so the handler can signal freely,
    even the same kind of condition, without recursing into itself.

    To stop the propagation of a warning, message, or generic condition,
    call `muffle` in the handler. To pick a recovery strategy offered by the
    lower-level code, invoke a restart. To let outer handlers see the
    condition too, just return normally.
    """
    def __init__(self, *bindings, **kwbindings):
        self.registration = Registration(IN_PLACE, _parse_bindings(bindings, kwbindings))
        self._scopes = []
    def __enter__(self):
        scope = _pushed(self.registration)
        scope.__enter__()
        self._scopes.append(scope)
        return self
    def __exit__(self, exctype, excvalue, traceback):
        return self._scopes.pop().__exit__(exctype, excvalue, traceback)

def run_with_calling_handlers(bindings, body):
    """Call `body` with in-place handlers in effect, and return its value.

    Binding format as in `run_with_exiting_handlers`; see `calling_handlers`.

    Example::

        seen = []
        def body():
            signal_message("hello")
            return "body value"
        result = run_with_calling_handlers({"message": lambda c: seen.append(c.message)}, body)
        assert result == "body value" and seen == ["hello"]
    """
    with calling_handlers(*_binding_pairs(bindings)):
        return body()

def catch_first(body, classes="condition"):
    """Call `body`, and return the first condition it signals, or `None`.

    The condition is taken by an exiting handler, so `body` is abandoned at
    that point, and nothing is re-raised::

        assert catch_first(lambda: 1 + 1) is None
        c = catch_first(lambda: [signal_warning("one"), signal_warning("two")])
        assert c.message == "one"

    `classes` is a tag, or a tuple of tags, to restrict what is caught.
    Interrupts are caught only if ``"interrupt"`` is named explicitly.
    """
    if not isinstance(classes, tuple):
        classes = (classes,)
    with exiting_handlers((classes, lambda c: c)) as result:
        body()
    return unbox(result)

def suppress_warnings(body, classes="warning"):
    """Call `body`, muffling warnings of the given classes, and return its value.

    Muffled warnings are neither propagated to outer handlers nor reported.
    Execution continues normally after each one.
    """
    with calling_handlers((classes, muffle)):
        return body()

def suppress_messages(body, classes="message"):
    """Call `body`, muffling messages of the given classes, and return its value."""
    with calling_handlers((classes, muffle)):
        return body()
