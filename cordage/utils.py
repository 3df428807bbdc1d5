"""
Cordage utilities (small helpers shared by every layer).

Scope
- Sentinels and value plumbing used by the registration and parsing layers.
- Naming helpers that keep generated callables readable in tracebacks.
- Command-path helpers: the single place where "space-joined ancestor names"
  is turned into segments and back.

Overview
- UnsetType / Unset
  • Singleton sentinel for “value not provided”; distinct from None.
- coalesce(value, default=None)
  • Replace Unset with a default, keep every other value (None, 0, "" included).
- rename(callable, name) / @rename("name")
  • Assign stable __name__/__qualname__ on generated wrappers.
- mirror("attr")
  • Read-only property exposing a private backing field as a fresh copy.
- ordinal(number)
  • Human ordinal ("first", "12th") used by position-first fault messages.
- split_path(path) / join_path(*segments) / ancestors(path)
  • Normalise command paths ("server  start" → ("server", "start")).
- IntrospectableType
  • Metaclass exposing __introspectable__ fields as read-only properties with
    stable __repr__/__rich_repr__.

Stability
- Names listed in __all__ are shared across the package; anything else is
  internal and may change without notice.
"""
import builtins
import functools
import operator
import re
from collections.abc import Sequence, Mapping, Set
from typing import final


@final
class UnsetType:
    """
    Sentinel type representing a value that was not provided.

    Characteristics
    - Boolean-false, but distinct from None and 0.
    - repr(Unset) -> "Unset".
    - Singleton per process, sealed against subclassing.
    """

    def __or__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Return object unless it is Unset, in which case return default.

    Falsey values are preserved: coalesce(None, 1) is None, coalesce("", 1) is "".
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set __name__/__qualname__ on a callable, or return a decorator doing so.

    Forms
    - rename(callable, name) -> callable
    - @rename(name)
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _detach(object):
    """
    Recursively copy containers so callers never receive internal state.

    Sequences become lists, mappings dicts, sets sets; strings, tuples of
    scalars and every other object are returned as-is.
    """
    if isinstance(object, (str, bytes, tuple)):
        return object
    if isinstance(object, Sequence):
        return list(map(_detach, object))
    elif isinstance(object, Mapping):
        return dict(zip(object.keys(), map(_detach, object.values())))
    elif isinstance(object, Set):
        return set(map(_detach, object))
    return object


def mirror(name, /):
    """
    Define a read-only property reading self._{name} through _detach().

    Example
    - Given self._children, declare children = mirror("children").
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _detach(getattr(self, "_" + name))

    return property(getter)


@functools.cache
def ordinal(number, /):
    """
    Return a human-friendly ordinal for a 1-based position.

    1..10 are spelled out ("first" … "tenth"); other numbers use suffixes
    ("11th", "22nd", "103rd").
    """
    if not isinstance(number, int) or isinstance(number, bool):
        raise TypeError("ordinal() argument must be an integer")

    try:
        return (
            "first", "second", "third", "fourth", "fifth",
            "sixth", "seventh", "eighth", "ninth", "tenth",
        )[number - 1] if number > 0 else f"{number}th"
    except IndexError:
        pass

    if 10 < number % 100 < 20:
        return f"{number}th"
    return f"{number}%s" % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


def split_path(path, /):
    """
    Split a command path into its segments.

    Accepts a space-joined string ("server start") or an iterable of
    segments; surrounding and repeated whitespace is ignored. The empty path
    (root) is the empty tuple.
    """
    if isinstance(path, str):
        return tuple(path.split())
    if isinstance(path, Sequence):
        segments = []
        for segment in path:
            segments.extend(split_path(segment))
        return tuple(segments)
    raise TypeError("command path must be a string or a sequence of strings")


def join_path(*segments):
    """
    Join segments (or partial paths) into the canonical space-joined form.
    """
    return " ".join(split_path(segments))


def ancestors(path, /):
    """
    Yield the canonical paths from the given node up to the root.

    >>> list(ancestors("a b c"))
    ['a b c', 'a b', 'a', '']
    """
    segments = split_path(path)
    for length in range(len(segments), -1, -1):
        yield " ".join(segments[:length])


def envname(*segments):
    """
    Build an environment variable name from path segments and a flag name.

    Non-alphanumeric runs become underscores, the result is upper-cased:
    envname("app", "server start", "log-level") -> "APP_SERVER_START_LOG_LEVEL".
    """
    return "_".join(
        part for part in (re.sub(r"[^0-9A-Za-z]+", "_", str(segment)).strip("_") for segment in segments) if part
    ).upper()


Unset = UnsetType()
"""
Sentinel for “not provided”.

Use it as a default when None is a meaningful user value; materialise it with
coalesce(value, default).
"""


class IntrospectableType(type):
    """
    Metaclass for the registration-time records (flags, commands).

    Responsibilities
    - Expose every name listed in __introspectable__ as a read-only property
      backed by self._{name} (see mirror()).
    - Provide stable __repr__/__rich_repr__ implementations for diagnostics.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used in messages.
    - __displayable__ (if set) narrows which properties __rich_repr__ shows;
      otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "ordinal",
    "split_path",
    "join_path",
    "ancestors",
    "envname",

    # Types
    "UnsetType",
    "IntrospectableType",

    # Constants
    "Unset",
)
