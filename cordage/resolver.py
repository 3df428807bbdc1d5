"""
Cordage flag namespace and binding.

Overview
- FlagKey: (path, name) identity of a registered flag; path "" is global.
- FlagEntry: a registered flag (its key plus the registry's own copy of the
  Argument).
- FlagRegistry: the visibility rules.
  • Flags registered without a path are global and visible everywhere.
  • Flags registered at a path are local to it; inherited=True also makes them
    visible to every descendant.
  • Lookup from a node: local, then the nearest ancestor's inherited flags
    outward, then global.
  • A name, short alias or positional slot that collides with a mutually
    visible flag is rejected at registration unless the new flag was built
    with override=True, in which case it shadows the other one for its subtree.
- FlagResolver: binds raw values for one parse pass (coercion, accepted
  patterns, validators) and keeps the bound-value tables.

Binding order for each value
1. FILE flags read the named file, its text becomes the raw value.
2. CHAINED flags split the raw value on ',', '|' and whitespace.
3. Each piece is converted with the flag's converter.
4. Each piece must match one accepted pattern when patterns are declared.
5. Validators run in declaration order; False, a returned Exception or a
   raised Exception is a failure, and the first failure stops the chain.
"""
import logging
import pathlib
import re
from collections import namedtuple
from types import MappingProxyType

from .arguments import OptionType
from .faults import *
from .utils import *

log = logging.getLogger(__name__)


class FlagKey(namedtuple("FlagKey", ("path", "name"))):
    __slots__ = ()

    def __str__(self):
        return f"--{self.name}" + (f" ({self.path})" if self.path else "")


FlagEntry = namedtuple("FlagEntry", ("key", "argument"))


def _describe(argument):
    return "positional slot" if argument.positional else "flag"


class FlagRegistry:
    """
    Flags of one parser, addressed by FlagKey.
    """

    def __init__(self, tree, /):
        self._tree = tree
        self._entries = {}

    def __contains__(self, key):
        return key in self._entries

    def __iter__(self):
        return iter(self._entries.values())

    def __len__(self):
        return len(self._entries)

    def entry(self, key, /):
        return self._entries.get(key)

    def _scopes(self, path):
        """
        Yield (path, inherited_only) in lookup order for a node.
        """
        for ancestor in ancestors(path):
            if ancestor == path and ancestor:
                yield ancestor, False
            elif ancestor:
                yield ancestor, True
        yield "", False

    def lookup(self, name, path="", /):
        """
        Return the FlagEntry visible as --name from path, or None.
        """
        path = join_path(path)
        for scope, inherited in self._scopes(path):
            entry = self._entries.get(FlagKey(scope, name))
            if entry is not None and (not inherited or entry.argument.inherited):
                return entry
        return None

    def lookup_short(self, alias, path="", /):
        """
        Return the FlagEntry visible as -alias from path, or None.
        """
        path = join_path(path)
        for scope, inherited in self._scopes(path):
            for key, entry in self._entries.items():
                if key.path != scope or entry.argument.short != alias:
                    continue
                if not inherited or entry.argument.inherited:
                    return entry
        return None

    def resolve(self, name, path="", /):
        """
        Return the FlagKey visible as --name from path, or None.
        """
        entry = self.lookup(name, path)
        return entry.key if entry is not None else None

    def visible(self, path="", /):
        """
        Map every name visible from path to its FlagEntry, shadowing applied.
        """
        path = join_path(path)
        visible = {}
        for scope, inherited in reversed(list(self._scopes(path))):
            for key, entry in self._entries.items():
                if key.path == scope and (not inherited or entry.argument.inherited):
                    visible[key.name] = entry
        return visible

    def positionals(self, path="", /):
        """
        Visible positional slots from path, ordered by slot.
        """
        return sorted(
            (entry for entry in self.visible(path).values() if entry.argument.positional),
            key=lambda entry: entry.argument.position,
        )

    def _conflicts(self, key, argument):
        """
        Yield (kind, entry) for every registered flag that would collide with a
        new flag registered under key.
        """
        for other in self._entries.values():
            if key.path == other.key.path:
                pass
            elif not key.path or (argument.inherited and key.path in ancestors(other.key.path)):
                # the new flag reaches the other's scope
                if other.argument.override:
                    continue
            elif not other.key.path or (other.argument.inherited and other.key.path in ancestors(key.path)):
                # the other flag reaches the new flag's scope
                if argument.override:
                    continue
            else:
                continue

            if other.key.name == key.name:
                yield "name", other
            elif argument.short is not None and other.argument.short == argument.short:
                yield "short", other
            elif argument.positional and other.argument.position == argument.position:
                yield "position", other

    def register(self, name, argument, path="", /):
        """
        Register a copy of argument as --name at path and return its FlagEntry.
        """
        if not isinstance(name, str):
            raise TypeError("flag name must be a string")
        if not (name := name.strip().lstrip("-")) or re.search(r"[\s=]", name):
            raise EmptyFlagError(
                "flag name %r is empty or malformed" % name,
                title="empty flag",
                hint="use a non-empty name without spaces or '=', e.g. 'log-level'",
                docs=getdoc(FaultCode.EMPTY_FLAG),
            )

        path = join_path(path)
        if path and path not in self._tree:
            raise CommandNotFoundError(
                "cannot register flag %r: command %r is not registered" % (name, path),
                title="command not found",
                path=path,
                hint="register the command before its flags",
                docs=getdoc(FaultCode.COMMAND_NOT_FOUND),
            )

        key = FlagKey(path, name)
        for kind, other in self._conflicts(key, argument):
            if kind == "position":
                raise DuplicatePositionError(
                    "%s %s takes positional slot %d, already used by %s" % (
                        _describe(argument), key, argument.position, other.key
                    ),
                    title="duplicate position",
                    flag=key,
                    other=other.key,
                    hint="pick another 'position' for one of the two flags",
                    docs=getdoc(FaultCode.DUPLICATE_POSITION),
                )
            raise DuplicateFlagError(
                "flag %s collides with %s (same %s)" % (
                    key if kind == "name" else f"-{argument.short}", other.key, kind
                ),
                title="duplicate flag",
                flag=key,
                other=other.key,
                hint="rename one of the flags or build the local one with override=True",
                docs=getdoc(FaultCode.DUPLICATE_FLAG),
            )

        entry = FlagEntry(key, argument.__deepcopy__({}))
        self._entries[key] = entry
        log.debug("registered %s %s (%s)", _describe(argument), key, argument.kind)
        return entry

    def discard(self, key, /):
        self._entries.pop(key, None)


def _split(raw):
    return [piece for piece in re.split(r"[,|\s]+", raw) if piece]


class FlagResolver:
    """
    Bound values of one parse pass.

    - values: FlagKey -> converted value (a list for chained flags).
    - raw: FlagKey -> list of raw strings, as given (used by dependency checks).
    - sources: FlagKey -> "argv" or the environment variable it was read from.
    """

    def __init__(self, registry, /):
        self._registry = registry
        self._values = {}
        self._raw = {}
        self._sources = {}

    @property
    def values(self):
        return MappingProxyType(self._values)

    @property
    def raw(self):
        return MappingProxyType(self._raw)

    @property
    def sources(self):
        return MappingProxyType(self._sources)

    def clear(self):
        self._values.clear()
        self._raw.clear()
        self._sources.clear()

    def bound(self, key, /):
        return key in self._values

    def value(self, entry, /):
        """
        The bound value of entry, or its fallback when unbound.
        """
        try:
            return self._values[entry.key]
        except KeyError:
            return entry.argument.fallback

    def bind(self, entry, raw, /, *, index=None, source="argv"):
        """
        Convert, check and store one occurrence of a flag.

        Raises the fault describing the first problem found; nothing is stored
        in that case.
        """
        key, argument = entry
        where = "at %s position" % ordinal(index + 1) if index is not None else "from %s" % source

        if key in self._values and argument.kind is not OptionType.CHAINED:
            raise DuplicateFlagValueError(
                "flag %s %s was already given" % (key, where),
                title="duplicate flag",
                flag=key,
                index=index,
                hint="give %s once, or declare it as a chained flag" % key,
                docs=getdoc(FaultCode.DUPLICATE_FLAG_VALUE),
            )

        if raw is None:
            if not argument.standalone:
                raise FlagExpectsValueError(
                    "flag %s %s expects a value" % (key, where),
                    title="missing value",
                    flag=key,
                    index=index,
                    hint="pass a value, e.g. --%s=<value> or --%s <value>" % (key.name, key.name),
                    docs=getdoc(FaultCode.FLAG_EXPECTS_VALUE),
                )
            raw = "true"

        if argument.kind is OptionType.FILE:
            try:
                raw = pathlib.Path(raw).expanduser().read_text().rstrip("\r\n")
            except (OSError, UnicodeDecodeError) as exception:
                raise FileReferenceError(
                    "flag %s %s: cannot read %r (%s)" % (key, where, raw, exception),
                    title="unreadable file",
                    flag=key,
                    index=index,
                    input=raw,
                    exception=exception,
                    hint="check that the file exists and is readable",
                    docs=getdoc(FaultCode.FILE_REFERENCE),
                ) from exception

        pieces = _split(raw) if argument.kind is OptionType.CHAINED else [raw]
        converted = [self._check(entry, piece, where, index) for piece in pieces]

        if argument.kind is OptionType.CHAINED:
            self._values.setdefault(key, []).extend(converted)
            self._raw.setdefault(key, []).extend(pieces)
        else:
            self._values[key] = converted[0]
            self._raw[key] = pieces
        self._sources[key] = source
        log.debug("bound %s = %r from %s", key, self._values[key], source)
        return self._values[key]

    def _check(self, entry, piece, where, index):
        key, argument = entry

        try:
            value = argument.converter(piece)
        except ConversionError as exception:
            raise type(exception)(
                "flag %s %s: %s" % (key, where, exception.message),
                **{**exception.options, "flag": key, "index": index, "docs": getdoc(exception.code)},
            ) from exception

        if argument.accepted and not any(pattern.matches(piece) for pattern in argument.accepted):
            raise PatternMismatchError(
                "flag %s %s: %r is not an accepted value" % (key, where, piece),
                title="value not accepted",
                flag=key,
                index=index,
                input=piece,
                hint="accepted: %s" % ", ".join(pattern.describe() for pattern in argument.accepted),
                docs=getdoc(FaultCode.PATTERN_MISMATCH),
            )

        for validator in argument.validators:
            failure = None
            try:
                result = validator(value)
            except Exception as exception:
                failure = exception
            else:
                if isinstance(result, Exception):
                    failure = result
                elif result is not False:
                    continue
            if failure is not None:
                reason = str(failure) or type(failure).__name__
            else:
                reason = "rejected by %s" % getattr(validator, "__name__", "validator")
            raise ValidationFailedError(
                "flag %s %s: %r is invalid, %s" % (key, where, piece, reason),
                title="validation failed",
                flag=key,
                index=index,
                input=piece,
                exception=failure,
                docs=getdoc(FaultCode.VALIDATION_FAILED),
            ) from failure

        return value


__all__ = (
    "FlagKey",
    "FlagEntry",
    "FlagRegistry",
    "FlagResolver",
)
