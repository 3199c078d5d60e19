# -*- coding: utf-8 -*-
"""The handler stack, and the restart stack beside it.

Each execution context (thread, or asyncio task) has its own pair of stacks.
They live in `contextvars`, as immutable tuples, innermost entry first.
Pushing rebinds the context variable to a longer tuple, popping resets it,
so a stack is never shared between contexts and needs no locking.

Only the scoping primitives in `condsig.handlers` and `condsig.signals` push
and pop; everything else just reads. The invariant is strict balance: the
depth at block exit equals the depth at block entry, on every exit path.
"""

__all__ = ["handler_stack_depth", "available_handlers"]

import contextlib
import contextvars
from inspect import signature

EXITING = "exiting"
IN_PLACE = "in_place"

_handlers = contextvars.ContextVar("condsig_handlers", default=())
_restarts = contextvars.ContextVar("condsig_restarts", default=())

def _current_handlers():
    return _handlers.get()

def _current_restarts():
    return _restarts.get()

def _binding_pairs(bindings):
    """Return `bindings`, a mapping ``{tag: handler}`` or an iterable of pairs, as a list of pairs."""
    if hasattr(bindings, "items"):
        return list(bindings.items())
    return list(bindings)

def _parse_bindings(pairs, kwbindings=None):
    """Validate and canonize handler bindings into a tuple of (key, handler) pairs.

    `pairs` is an iterable of ``(key, handler)`` pairs where `key` is a tag or
    a tuple of tags. `kwbindings`, if given, are appended in order.
    """
    pairs = list(pairs)
    if kwbindings:
        pairs.extend(kwbindings.items())
    out = []
    for pair in pairs:
        try:
            key, handler = pair
        except (TypeError, ValueError):
            raise TypeError(f"Each binding must be of the form (tag, callable) or ((t0, ..., tn), callable), got {repr(pair)}")
        tags = key if isinstance(key, tuple) else (key,)
        if not (tags and all(isinstance(t, str) and t for t in tags) and callable(handler)):
            raise TypeError(f"Each binding must be of the form (tag, callable) or ((t0, ..., tn), callable), got {repr(pair)}")
        out.append((key, handler))
    return tuple(out)

class Registration:
    """One scoped handler registration on the handler stack.

    `kind` is `EXITING` or `IN_PLACE`. `bindings` is a tuple of
    ``(key, handler)`` pairs in declared order, as returned by
    `_parse_bindings`; `key` is a tag, or a tuple of tags (OR'd, like in
    `except`).

    The registration object itself identifies the dynamic extent that owns
    it; a non-local transfer targets it by identity.
    """
    __slots__ = ("kind", "bindings")

    def __init__(self, kind, bindings):
        if kind not in (EXITING, IN_PLACE):
            raise ValueError(f"kind must be {repr(EXITING)} or {repr(IN_PLACE)}, got {repr(kind)}")
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "bindings", tuple(bindings))

    def __setattr__(self, name, value):
        raise AttributeError("Registration is immutable")

    def __repr__(self):  # pragma: no cover
        keys = [key for key, _ in self.bindings]
        return f"<Registration {self.kind} {keys} at 0x{id(self):x}>"

    def match(self, condition):
        """Return the handler that applies to `condition`, or `None`.

        The first binding, in declared order, with a key tag among the
        condition's classes wins. The most specific tag does not get priority;
        declare specific handlers before generic ones.

        An interrupt only matches a tag spelled exactly ``"interrupt"``.
        """
        classes = condition.classes
        interrupt = "interrupt" in classes
        for key, handler in self.bindings:
            tags = key if isinstance(key, tuple) else (key,)
            for tag in tags:
                if interrupt and tag != "interrupt":
                    continue
                if tag in classes:
                    return handler
        return None

    def declares(self, tag):
        """Return whether some binding of this registration names `tag`."""
        return any(tag == key or (isinstance(key, tuple) and tag in key)
                   for key, _ in self.bindings)

@contextlib.contextmanager
def _pushed(registration):
    token = _handlers.set((registration,) + _handlers.get())
    try:
        yield registration
    finally:
        _handlers.reset(token)

@contextlib.contextmanager
def _handlers_below(below):
    """Run the block with the handler stack replaced by `below`.

    A firing in-place handler runs like this, so it does not see its own
    registration, nor anything above it.
    """
    token = _handlers.set(tuple(below))
    try:
        yield
    finally:
        _handlers.reset(token)

@contextlib.contextmanager
def _pushed_restarts(frame):
    token = _restarts.set((frame,) + _restarts.get())
    frame.active = True
    try:
        yield frame
    finally:
        frame.active = False
        _restarts.reset(token)

def _accepts_arg(f):
    try:
        signature(f).bind(None)
    except TypeError:
        return False
    except ValueError:  # pragma: no cover, not inspectable; just assume it
        return True
    return True

def _call_handler(handler, condition):
    """Call `handler` with the condition, or with no args if it takes none."""
    if _accepts_arg(handler):
        return handler(condition)
    return handler()

class Unwind(BaseException):
    """Non-local transfer to an exiting registration.

    Raised by the signal engine once an exiting handler has been chosen;
    caught only by the scope owning `registration`. Intervening scopes run
    their cleanup as it passes through.

    A `BaseException`, so that ``except Exception`` in user code between the
    signal site and the registration does not intercept the transfer.
    """
    def __init__(self, registration, handler, condition):
        self.registration = registration
        self.handler = handler
        self.condition = condition
        # message when uncaught
        self.args = ("condsig: internal error: uncaught Unwind",)

def handler_stack_depth():
    """Return the number of handler registrations currently in effect.

    Inside a firing in-place handler, this is the depth below that handler's
    registration.
    """
    return len(_handlers.get())

def available_handlers():
    """Return the handlers currently in effect, innermost first.

    Shadowing is respected: for each tag, only the innermost binding is listed.
    A binding with a tuple key is listed once for each of its tags.

    The return value format is ``[(tag, kind, handler), ...]``.
    """
    out = []
    seen = set()
    for registration in _handlers.get():
        for key, handler in registration.bindings:
            tags = key if isinstance(key, tuple) else (key,)
            for tag in tags:
                if tag not in seen:
                    seen.add(tag)
                    out.append((tag, registration.kind, handler))
    return out
