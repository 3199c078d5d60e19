# -*- coding: utf-8 -*-
"""Small containers used by the condition system.

`box` is a mutable single-item cell. The `with` forms of the scoping
primitives (`exiting_handlers`, `restarts`) bind one, because a `with`
statement cannot return a value; the cell is filled either by the block
itself (`result << value`) or by whichever handler or restart took over.

`frozendict` is the read-only mapping that holds condition metadata.
"""

__all__ = ["box", "unbox", "frozendict"]

from functools import wraps
from collections.abc import Container, Iterable, Sized, Mapping, Hashable

class box:
    """Minimalistic, mutable single-item container à la Racket.

    Usage::

        b = box(17)
        b << 23          # or b.set(23)
        assert unbox(b) == 23

    A box compares equal to the item it contains.
    """
    def __init__(self, x=None):
        self.x = x
    def __repr__(self):  # pragma: no cover
        return f"box({repr(self.x)})"
    def __contains__(self, x):
        return self.x == x
    def __iter__(self):
        return (x for x in (self.x,))
    def __len__(self):
        return 1
    def __eq__(self, other):
        return other == self.x
    def set(self, x):
        """Store a new value in the box, replacing the old one.

        As a convenience, returns the new value, so this can be used in an
        expression position (e.g. in a lambda).
        """
        self.x = x
        return x
    def __lshift__(self, x):
        """Syntactic sugar for storing a new value. `b << 42` is `b.set(42)`."""
        return self.set(x)
    def get(self):
        """Return the value currently in the box. Sugar: `unbox(b)`."""
        return self.x

def unbox(b):
    """Return the value from inside the box b.

    If `b` is not a `box`, raises `TypeError`.
    """
    if not isinstance(b, box):
        raise TypeError(f"Expected box, got {type(b)} with value {repr(b)}")
    return b.get()

_the_empty_frozendict = None
class frozendict:
    """Immutable dictionary.

    Usage::

        d = frozendict({'arg': 'x', 'must': 'numeric'})
        d = frozendict(m, must='character')  # functional update

    The input mappings are shallow-copied, so later mutation of the originals
    does not leak into the `frozendict`. As with `tuple`, this does **not**
    protect the values themselves, if they happen to be mutable.

    The empty `frozendict` is a singleton.
    """
    def __new__(cls, *ms, **bindings):
        if not ms and not bindings:
            global _the_empty_frozendict
            if _the_empty_frozendict is None:
                _the_empty_frozendict = super().__new__(cls)
            return _the_empty_frozendict
        return super().__new__(cls)

    # Pickling: `__new__` only needs to see *some* argument to know the instance
    # is nonempty; the data itself comes back via the instance `__dict__`.
    def __getnewargs__(self):
        if self is not _the_empty_frozendict:
            return ("nonempty",)
        return ()

    def __init__(self, *ms, **bindings):
        if self is _the_empty_frozendict and hasattr(self, "_data"):
            return
        self._data = {}
        for m in ms:
            self._data.update(m)
        self._data.update(bindings)

    def __setattr__(self, name, value):
        if name == "_data" and "_data" not in self.__dict__:
            return super().__setattr__(name, value)
        raise TypeError(f"'frozendict' object does not support attribute assignment ({repr(name)})")

    @wraps(dict.__repr__)
    def __repr__(self):
        return f"frozendict({self._data.__repr__()})"

    def __hash__(self):
        return hash(frozenset(self.items()))

    # Read-access parts of the dict API only. Composition, not inheritance:
    # subclassing dict would make us a MutableMapping.
    @wraps(dict.__getitem__)
    def __getitem__(self, k):
        return self._data.__getitem__(k)
    @wraps(dict.__iter__)
    def __iter__(self):
        return self._data.__iter__()
    @wraps(dict.__len__)
    def __len__(self):
        return self._data.__len__()
    @wraps(dict.__contains__)
    def __contains__(self, k):
        return self._data.__contains__(k)
    @wraps(dict.keys)
    def keys(self):
        return self._data.keys()
    @wraps(dict.items)
    def items(self):
        return self._data.items()
    @wraps(dict.values)
    def values(self):
        return self._data.values()
    @wraps(dict.get)
    def get(self, k, *d):
        return self._data.get(k, *d)
    @wraps(dict.__eq__)
    def __eq__(self, other):
        return other == self._data

# Virtual ABCs, like the builtins have.
for abscls in (Container, Iterable, Sized, Mapping, Hashable):
    abscls.register(frozendict)
for abscls in (Container, Iterable, Sized):
    abscls.register(box)
del abscls
