# -*- coding: utf-8 -*-
"""The condition data model.

A condition represents one signaled event. Its *class* is not a Python type
but an ordered sequence of string tags, most specific first, always ending in
the root tag ``"condition"``. Just ahead of the root sits at most one *family*
tag, which decides what happens when nobody handles the condition:

    error       abort the current operation
    warning     record or display, then continue
    message     display, then continue
    interrupt   abort the current operation (cancellation)

Custom conditions prepend their own tags ahead of a family tag::

    c = make_condition(["bad_argument", "error"], "`x` must be numeric",
                       {"arg": "x", "must": "numeric"})
    assert c.classes == ("bad_argument", "error", "condition")

Handlers are matched against the tags, so a handler bound to ``"error"``
sees every error, and one bound to ``"bad_argument"`` sees only those.

`Condition` is an `Exception` subclass, so an unhandled error condition can
propagate as itself, with its message, tags and metadata intact. But it is
a value first: signaling one (see `condsig.signals`) does **not** raise it.

Conditions are immutable. `classes`, `message`, `metadata` and `origin` are
read-only, and the metadata lives in a `frozendict`.
"""

__all__ = ["Condition", "ControlError",
           "make_condition",
           "error_condition", "warning_condition", "message_condition", "generic_condition",
           "condition_family", "is_condition", "inherits",
           "message_of", "classes_of", "metadata_of", "origin_of",
           "ROOT", "FAMILIES"]

from collections.abc import Mapping

from .collections import frozendict

ROOT = "condition"
FAMILIES = ("error", "warning", "message", "interrupt")

def _normalize_classes(classes, family=None):
    """Validate and canonize a tag sequence.

    Custom tags keep their order (duplicates dropped), then the family tag,
    then the root. If `family` is given, it is the family to use when `classes`
    does not already name one.
    """
    if isinstance(classes, str):
        classes = (classes,)
    out = []
    families = []
    for tag in classes:
        if not isinstance(tag, str) or not tag:
            raise TypeError(f"Condition class tags must be non-empty strings, got {type(tag)} with value {repr(tag)}")
        if tag == ROOT:
            continue
        if tag in FAMILIES:
            if tag not in families:
                families.append(tag)
            continue
        if tag not in out:
            out.append(tag)
    if family is not None and family != ROOT and family not in families:
        families.append(family)
    if len(families) > 1:
        raise ValueError(f"A condition can belong to at most one family, got {families}")
    return tuple(out + families + [ROOT])

class Condition(Exception):
    """A signaled event: class tags, a message, and read-only metadata.

    Parameters:

        message: str
            Human-readable description of the event. Required.

        classes: str, or iterable of str
            Tags, most specific first. The root tag is added automatically,
            and any family tag is moved to just ahead of it.

        metadata: mapping or `None`
            Structured data about the event. Frozen at construction time.

        origin: anything
            Optional opaque reference to whatever produced the condition
            (a function name, a frame, a request id...). Often omitted.

    Prefer `make_condition` or the family constructors in user code; those
    refuse to build interrupts, which only the system may create.
    """
    def __init__(self, message, classes=(), metadata=None, origin=None):
        if not isinstance(message, str):
            raise TypeError(f"A condition must have a str message, got {type(message)} with value {repr(message)}")
        if metadata is None:
            metadata = frozendict()
        elif isinstance(metadata, Mapping):
            metadata = frozendict(metadata)
        else:
            raise TypeError(f"Condition metadata must be a mapping, got {type(metadata)} with value {repr(metadata)}")
        super().__init__(message)
        self._message = message
        self._classes = _normalize_classes(classes)
        self._metadata = metadata
        self._origin = origin

    @property
    def message(self):
        """The human-readable message (also `str(condition)`)."""
        return self._message
    @property
    def classes(self):
        """The class tags, most specific first, ending in ``"condition"``."""
        return self._classes
    @property
    def metadata(self):
        """Structured data about the event, as a `frozendict`."""
        return self._metadata
    @property
    def origin(self):
        """Whatever produced the condition, or `None`."""
        return self._origin
    @property
    def family(self):
        """Shorthand for `condition_family(self)`."""
        return condition_family(self)

    def __str__(self):
        return self._message

    def __repr__(self):
        parts = [repr(self._message), f"classes={self._classes!r}"]
        if self._metadata:
            parts.append(f"metadata={dict(self._metadata)!r}")
        if self._origin is not None:
            parts.append(f"origin={self._origin!r}")
        return f"{type(self).__name__}({', '.join(parts)})"

    def _rerooted(self, family):
        """Return a copy of this condition, placed into the given family.

        Used by the family-specific signal functions when given a generic
        condition. The original is not touched.
        """
        cls = type(self)
        other = cls.__new__(cls)
        other.__dict__.update(self.__dict__)
        other.args = self.args
        other._classes = _normalize_classes(self._classes, family)
        return other

class ControlError(Condition):
    """An error detected by the condition system itself.

    Signaled (via `signal_error`) e.g. when muffling an error, or when
    invoking a restart that does not exist or whose dynamic extent has ended.
    Like any error condition, it can be handled; if it is not, it propagates
    as an exception.
    """
    def __init__(self, message, metadata=None, origin=None):
        super().__init__(message, ("control_error", "error"), metadata, origin)

def make_condition(classes, message, metadata=None, *, origin=None):
    """Create a condition.

    `classes` is an ordered sequence of tags, most specific first (a single
    `str` counts as one tag). It may name one family (``"error"``,
    ``"warning"``, ``"message"``); the root tag ``"condition"`` is appended
    automatically. With no family tag, the condition is *generic*.

    Interrupts cannot be constructed here; they are created by the system
    when cancellation is delivered (see `signal_interrupt`).

    Example::

        c = make_condition(["error_bad_argument", "error"], "`x` must be numeric",
                           {"arg": "x", "must": "numeric", "not": "character"})
    """
    tags = _normalize_classes(classes)
    if "interrupt" in tags:
        raise ValueError("Interrupt conditions are not user-constructible")
    return Condition(message, tags, metadata, origin)

def _family_constructor(family):
    def construct(message, classes=(), metadata=None, *, origin=None):
        # A conflicting family tag in `classes` is a ValueError here.
        tags = _normalize_classes(classes, family)
        return Condition(message, tags, metadata, origin)
    construct.__name__ = construct.__qualname__ = f"{family}_condition"
    construct.__doc__ = f"""Create a {family} condition.

    `classes` are extra tags to prepend ahead of the ``"{family}"`` root,
    most specific first.
    """
    return construct

error_condition = _family_constructor("error")
warning_condition = _family_constructor("warning")
message_condition = _family_constructor("message")

def generic_condition(message, classes=(), metadata=None, *, origin=None):
    """Create a condition that belongs to no family.

    Unhandled, a generic condition is a no-op; it exists for custom protocols
    built on top of `signal`.
    """
    tags = _normalize_classes(classes)
    if condition_family(tags) != ROOT:
        raise ValueError(f"A generic condition cannot carry a family tag, got {list(classes)}")
    return Condition(message, tags, metadata, origin)

def condition_family(c):
    """Return the family of condition `c`.

    One of ``"error"``, ``"warning"``, ``"message"``, ``"interrupt"``, or
    ``"condition"`` for a generic condition. Also accepts a tag sequence.
    """
    classes = c.classes if isinstance(c, Condition) else c
    for tag in classes:
        if tag in FAMILIES:
            return tag
    return ROOT

def is_condition(x):
    """Return whether `x` is a `Condition`."""
    return isinstance(x, Condition)

def inherits(c, *tags):
    """Return whether condition `c` carries any of the given class tags."""
    return any(tag in c.classes for tag in tags)

def _check(c):
    if not isinstance(c, Condition):
        raise TypeError(f"Expected a Condition, got {type(c)} with value {repr(c)}")
    return c

def message_of(c):
    """Return the message of condition `c`."""
    return _check(c).message

def classes_of(c):
    """Return the class tags of condition `c`, most specific first."""
    return _check(c).classes

def metadata_of(c, key, *default):
    """Return the metadata field `key` of condition `c`.

    If `key` is not present, return `default` if given, else raise `KeyError`.
    """
    metadata = _check(c).metadata
    if key in metadata:
        return metadata[key]
    if default:
        return default[0]
    raise KeyError(f"Condition has no metadata field {repr(key)}; available: {list(metadata)}")

def origin_of(c):
    """Return the origin of condition `c`, or `None` if it has none."""
    return _check(c).origin
