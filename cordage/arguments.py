r"""
Cordage flag specifications.

Overview
- OptionType: the type tag of a flag.
  • STANDALONE: presence-only boolean (-v, --verbose, --verbose=false).
  • SINGLE: one value (--out=path, --out path, -opath).
  • CHAINED: repeatable list value, split on ',', '|' and whitespace and
    accumulated across occurrences (--tag a,b --tag c → ["a", "b", "c"]).
  • FILE: the value names a file whose text content is the value.
- PatternValue: an accepted-value regular expression with an optional
  human-readable description and its compiled form.
- Argument: the full flag spec (short alias, tag, converter, default, required,
  positional slot, dependency rules, conflicts, validators, accepted patterns,
  visibility).

Introspection
- IntrospectableType exposes every field listed in __introspectable__ as a read-only
  property and gives stable __repr__/__rich_repr__ implementations.

Validation highlights (sanitised on construction)
- short: a single letter or digit.
- position: non-negative integer.
- depends_on: mapping name -> iterable of accepted values, or iterable of names
  (empty values mean "must be present").
- accepted patterns: compiled eagerly. A pattern that fails to compile is kept
  as "never matches" (every value is then rejected at parse time) unless the
  argument is built with strict=True, which raises InvalidPatternError instead.

Example
    >>> Argument(short="p", type=int, default=8080, descr="listen port")
    >>> Argument(kind=OptionType.CHAINED, accepted=[PatternValue(r"^(red|green)$", "a colour")])
    >>> Argument(depends_on={"format": ["json", "yaml"]}, conflicts=("quiet",))
"""
import re
from collections import namedtuple
from collections.abc import Iterable, Mapping
from enum import IntEnum

from rich.text import Text

from . import converters
from .faults import InvalidPatternError, FaultCode, getdoc
from .utils import *


class OptionType(IntEnum):
    """
    flag type tags (0 is reserved).
    """
    SINGLE = 1
    CHAINED = 2
    STANDALONE = 3
    FILE = 4

    def __str__(self):
        return self.name.lower()


class PatternValue(namedtuple("PatternValue", ("pattern", "descr", "compiled"), defaults=(Unset, Unset))):
    """
    An accepted-value pattern.

    Fields
    - pattern: the regular expression source.
    - descr: optional human-readable description (shown instead of the pattern).
    - compiled: Unset (not compiled yet), a compiled re.Pattern, or None when
      compilation failed under lenient construction ("never matches").
    """
    __slots__ = ()

    def describe(self):
        return coalesce(self.descr, self.pattern)

    def compile(self, *, strict=False):
        """
        Return a copy carrying its compiled form.

        Lenient mode stores None when the pattern is invalid; strict mode
        raises InvalidPatternError.
        """
        if isinstance(self.compiled, re.Pattern):
            return self
        try:
            return self._replace(compiled=re.compile(self.pattern))
        except (re.error, TypeError) as exception:
            if strict:
                raise InvalidPatternError(
                    "accepted-value pattern %r does not compile: %s" % (self.pattern, exception),
                    title="invalid pattern",
                    pattern=self.pattern,
                    hint="fix the regular expression or build the flag leniently",
                    docs=getdoc(FaultCode.INVALID_PATTERN),
                ) from None
            return self._replace(compiled=None)

    def matches(self, value, /):
        """
        True when the compiled pattern is found in value (search semantics).
        """
        if not isinstance(self.compiled, re.Pattern):
            return False
        return self.compiled.search(str(value)) is not None


def _sanitize_metadata(cls, metadata, /):
    """
    Normalise descriptive and shape fields: short, descr, kind, type, position.
    """
    if not isinstance(short := metadata["short"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'short' must be a string")
    elif isinstance(short, str) and not re.fullmatch(r"[^\W_]", short := short.strip().lstrip("-")):
        raise ValueError(f"{cls.__typename__} 'short' must be a single letter or digit")
    metadata["short"] = coalesce(short)

    if not isinstance(descr := metadata["descr"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)

    if not callable(metadata["type"]):
        raise TypeError(f"{cls.__typename__} 'type' must be callable")

    if (kind := metadata["kind"]) is Unset:
        kind = OptionType.STANDALONE if metadata["type"] in (bool, converters.boolean) else OptionType.SINGLE
    try:
        metadata["kind"] = OptionType(kind)
    except ValueError:
        raise ValueError(f"{cls.__typename__} 'kind' must be an option type") from None

    if not isinstance(position := metadata["position"], int | Unset) or isinstance(position, bool):
        raise TypeError(f"{cls.__typename__} 'position' must be an integer")
    elif isinstance(position, int) and position < 0:
        raise ValueError(f"{cls.__typename__} 'position' must be non-negative")
    if position is not Unset and metadata["kind"] is OptionType.STANDALONE:
        raise TypeError(f"{cls.__typename__} positional slots cannot be standalone")
    metadata["position"] = coalesce(position)


def _sanitize_names(cls, object, field, /):
    """
    Validate an iterable of flag names (no plain string, no empties, no duplicates).
    """
    if isinstance(object, (str, Text)) or not isinstance(object, Iterable):
        raise TypeError(f"{cls.__typename__} {field!r} must be an iterable of strings")
    names = []
    for name in object:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} {field!r} must be an iterable of strings")
        elif not (name := name.strip().lstrip("-")):
            raise ValueError(f"{cls.__typename__} {field!r} cannot contain empty names")
        elif name in names:
            raise ValueError(f"{cls.__typename__} {field!r} cannot contain duplicates")
        names.append(name)
    return names


def _sanitize_rules(cls, metadata, /):
    """
    Normalise depends_on into {name: (values, ...)} and conflicts into a tuple.
    """
    depends = metadata["depends_on"]
    if isinstance(depends, Mapping):
        rules = {}
        for name in _sanitize_names(cls, depends.keys(), "depends_on"):
            values = depends.get(name, depends.get("--" + name, ()))
            if values is None:
                values = ()
            elif isinstance(values, str):
                values = (values,)
            elif not isinstance(values, Iterable):
                raise TypeError(f"{cls.__typename__} 'depends_on' values must be strings")
            rules[name] = tuple(map(str, values))
        metadata["depends_on"] = rules
    else:
        metadata["depends_on"] = dict.fromkeys(_sanitize_names(cls, depends, "depends_on"), ())

    metadata["conflicts"] = tuple(_sanitize_names(cls, metadata["conflicts"], "conflicts"))


def _sanitize_checks(cls, metadata, /):
    """
    Normalise validators (callables) and accepted patterns (compiled eagerly).
    """
    if not isinstance(validators := metadata["validators"], Iterable):
        raise TypeError(f"{cls.__typename__} 'validators' must be an iterable of callables")
    validators = tuple(validators)
    if not all(map(callable, validators)):
        raise TypeError(f"{cls.__typename__} 'validators' must be an iterable of callables")
    metadata["validators"] = validators

    if isinstance(accepted := metadata["accepted"], (str, PatternValue)) or not isinstance(accepted, Iterable):
        raise TypeError(f"{cls.__typename__} 'accepted' must be an iterable of patterns")
    patterns = []
    for pattern in accepted:
        if isinstance(pattern, str):
            pattern = PatternValue(pattern)
        elif isinstance(pattern, re.Pattern):
            pattern = PatternValue(pattern.pattern, Unset, pattern)
        elif not isinstance(pattern, PatternValue):
            raise TypeError(f"{cls.__typename__} 'accepted' must be an iterable of patterns")
        patterns.append(pattern.compile(strict=metadata["strict"]))
    metadata["accepted"] = tuple(patterns)


class Argument(metaclass=IntrospectableType):
    """
    Flag specification.

    An Argument describes how one flag is recognised, converted and checked.
    Its name is given at registration (Parser.add_flag), so the same spec can be
    reused under several command paths; the registry copies it on registration.

    Properties
    - Every name in __introspectable__ is a read-only property.
    - standalone / valued / positional are derived views of 'kind'/'position'.
    """

    __introspectable__ = (
        "short",
        "kind",
        "type",
        "default",
        "required",
        "position",
        "descr",
        "depends_on",
        "conflicts",
        "validators",
        "accepted",
        "inherited",
        "override",
        "strict",
    )

    __displayable__ = (
        "short",
        "kind",
        "default",
        "required",
        "position",
        "descr",
    )

    def __init__(
            self,
            *,
            short=Unset,
            kind=Unset,
            type=str,
            default=Unset,
            required=False,
            position=Unset,
            descr=Unset,
            depends_on=(),
            conflicts=(),
            validators=(),
            accepted=(),
            inherited=False,
            override=False,
            strict=False,
    ):
        """
        Construct a flag spec.

        Parameters
        - short: Unset | str
          Single-character alias ("v" or "-v").
        - kind: Unset | OptionType
          Type tag; inferred as STANDALONE for type=bool, SINGLE otherwise.
        - type: Callable
          Converter applied to each value (builtin str/int/float/bool map to
          type-specific converters, see cordage.converters).
        - default: Any
          Value reported when the flag is not bound. Not converted.
        - required: bool
          Report RequiredFlag (or RequiredPositionalFlag) when unbound.
        - position: Unset | int
          0-based positional slot among the positionals of the owning command.
        - descr: Unset | str
          Short description.
        - depends_on: Mapping[str, Iterable[str]] | Iterable[str]
          Flags that must be bound (optionally with one of the given values)
          whenever this flag is bound.
        - conflicts: Iterable[str]
          Flags that must not be bound together with this one.
        - validators: Iterable[Callable]
          Called in order with each converted value; returning False or an
          Exception, or raising an Exception, is a failure. The first failure
          short-circuits.
        - accepted: Iterable[PatternValue | str | re.Pattern]
          Each value must match at least one pattern when any is declared.
        - inherited: bool
          Make a command-scoped flag visible to the command's descendants.
        - override: bool
          Explicitly allow this flag to shadow an inherited/global flag of the
          same name or alias.
        - strict: bool
          Raise InvalidPatternError for patterns that do not compile.
        """
        metadata = {
            "short": short,
            "kind": kind,
            "type": type,
            "default": default,
            "required": bool(required),
            "position": position,
            "descr": descr,
            "depends_on": depends_on,
            "conflicts": conflicts,
            "validators": validators,
            "accepted": accepted,
            "inherited": bool(inherited),
            "override": bool(override),
            "strict": bool(strict),
        }
        _sanitize_metadata(Argument, metadata)
        _sanitize_rules(Argument, metadata)
        _sanitize_checks(Argument, metadata)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        self._converter = converters.normalize(metadata["type"])

    @property
    def standalone(self):
        return self._kind is OptionType.STANDALONE

    @property
    def valued(self):
        return self._kind is not OptionType.STANDALONE

    @property
    def positional(self):
        return self._position is not None

    @property
    def converter(self):
        return self._converter

    @property
    def fallback(self):
        """
        The value reported for an unbound flag: the default, else False for
        standalone flags, else [] for chained flags, else None.
        """
        if self._default is not Unset:
            return self._default
        if self.standalone:
            return False
        if self._kind is OptionType.CHAINED:
            return []
        return None

    def set_validators(self, *validators):
        """
        Replace every validator (full overwrite).
        """
        if not all(map(callable, validators)):
            raise TypeError(f"{type(self).__typename__} validators must be callables")
        self._validators = tuple(validators)

    def add_validators(self, *validators):
        """
        Append validators after the existing ones.
        """
        if not all(map(callable, validators)):
            raise TypeError(f"{type(self).__typename__} validators must be callables")
        self._validators += tuple(validators)

    def add_dependency(self, target, *values):
        """
        Require target (optionally with one of values) whenever this flag is bound.
        """
        rules = {"depends_on": {target: values}, "conflicts": ()}
        _sanitize_rules(type(self), rules)
        self._depends_on = self._depends_on | rules["depends_on"]

    def remove_dependency(self, target):
        self._depends_on = {
            name: values for name, values in self._depends_on.items() if name != target.strip().lstrip("-")
        }

    def __copy__(self):
        clone = object.__new__(type(self))
        clone.__dict__.update(self.__dict__)
        return clone

    def __deepcopy__(self, memo, /):
        clone = self.__copy__()
        clone._depends_on = {name: tuple(values) for name, values in self._depends_on.items()}
        return clone


__all__ = (
    "OptionType",
    "PatternValue",
    "Argument",
)
