"""
Cordage tokenizer: classify raw command-line tokens in one left-to-right pass.

Token kinds
- CommandSegment(name, path, index, fresh): a registered command name; path is
  the command path reached; fresh marks the start of a new invocation.
- LongFlag(name, value, index): --name, --name=value, --name value.
- ShortFlag(alias, value, index): -n, -nvalue, -n=value, -n value, and every
  member of a boolean cluster (-abc).
- Positional(value, index): anything else, and every token after "--".
- UnknownFlag(text, index): a dash token that names no visible flag.

Rules
- Values are consumed eagerly: a valued flag without an inline value takes the
  next token unless that token looks like a flag. A standalone flag only takes
  the next token when it is a boolean literal that names no command
  (--verbose false).
- A cluster expands into one boolean flag per character until a valued flag is
  met; the rest of the cluster (or the next token) is that flag's value.
- "-5" and "-1.5" are positionals unless a "5"/"1" short alias is visible.
- While the command path is still being resolved, a registered command name
  always wins over a positional. After a leaf command, a top-level command name
  starts a new invocation.
- Under a passthrough command, unknown dash tokens are positionals.
"""
import logging
import re
from collections import namedtuple

from .converters import isboolean
from .utils import *

log = logging.getLogger(__name__)

CommandSegment = namedtuple("CommandSegment", ("name", "path", "index", "fresh"))
LongFlag = namedtuple("LongFlag", ("name", "value", "index"))
ShortFlag = namedtuple("ShortFlag", ("alias", "value", "index"))
Positional = namedtuple("Positional", ("value", "index"))
UnknownFlag = namedtuple("UnknownFlag", ("text", "index"))

_NUMERIC = re.compile(r"-\d[\d_]*(\.\d*)?([eE][+-]?\d+)?")


class Scope:
    """
    Read-only view of the namespace the tokenizer needs.

    Wraps the command tree and the flag registry of one parser; the tokenizer
    never mutates either.
    """

    def __init__(self, tree, registry, /, *, passthrough=False):
        self._tree = tree
        self._registry = registry
        self._passthrough = bool(passthrough)

    def command(self, path, name, /):
        """
        Path of the command name under path, or None.
        """
        return self._tree.child(path, name)

    def terminal(self, path, /):
        return bool(path) and self._tree[path].terminal

    def flag(self, name, path, /):
        return self._registry.lookup(name, path)

    def short(self, alias, path, /):
        return self._registry.lookup_short(alias, path)

    def passthrough(self, path, /):
        return self._passthrough or (bool(path) and self._tree.passthrough(path))


def _flaglike(token):
    return len(token) > 1 and token.startswith("-") and not _NUMERIC.fullmatch(token)


class Tokenizer:
    """
    Single-pass tokenizer bound to a Scope.
    """

    def __init__(self, scope, /):
        if not isinstance(scope, Scope):
            raise TypeError("tokenizer argument must be a scope")
        self._scope = scope

    def tokenize(self, arguments, /):
        """
        Yield the tokens of arguments (an iterable of strings).
        """
        arguments = list(arguments)
        scope = self._scope
        path = ""
        resolving = True
        literal = False
        index = 0

        def following():
            return arguments[index + 1] if index + 1 < len(arguments) else None

        def names_command(token):
            # a command name is never a boolean value for the flag before it
            if resolving and scope.command(path, token) is not None:
                return True
            return scope.terminal(path) and scope.command("", token) is not None

        while index < len(arguments):
            argument = arguments[index]
            if not isinstance(argument, str):
                raise TypeError("tokenize() arguments must be strings")

            if literal:
                yield Positional(argument, index)

            elif argument == "--":
                literal = True

            elif argument.startswith("--"):
                name, separator, value = argument[2:].partition("=")
                entry = scope.flag(name, path)
                if entry is None:
                    if scope.passthrough(path):
                        yield Positional(argument, index)
                    else:
                        yield UnknownFlag(argument, index)
                else:
                    start = index
                    if not separator:
                        value = None
                        ahead = following()
                        if entry.argument.standalone:
                            if isboolean(ahead) and not names_command(ahead):
                                value = ahead
                                index += 1
                        elif ahead is not None and not _flaglike(ahead) and ahead != "--":
                            value = ahead
                            index += 1
                    yield LongFlag(name, value, start)

            elif _flaglike(argument) or (_NUMERIC.fullmatch(argument) and scope.short(argument[1], path)):
                ahead = following()
                literal_ahead = ahead if isboolean(ahead) and not names_command(ahead) else None
                tokens, consumed = self._cluster(argument, path, index, ahead, literal_ahead)
                yield from tokens
                index += consumed

            else:
                candidate = scope.command(path, argument) if resolving else None
                if candidate is None and scope.terminal(path):
                    candidate = scope.command("", argument)
                    if candidate is not None:
                        log.debug("%r starts a new invocation at %s position", argument, ordinal(index + 1))
                        path = candidate
                        resolving = True
                        yield CommandSegment(argument, path, index, True)
                        index += 1
                        continue
                if candidate is not None:
                    path = candidate
                    yield CommandSegment(argument, path, index, False)
                else:
                    resolving = False
                    yield Positional(argument, index)

            index += 1

    def _cluster(self, argument, path, index, ahead, literal_ahead=None):
        """
        Expand one single-dash token; return (tokens, extra tokens consumed).

        ahead is the next raw token; literal_ahead is that token when a lone
        standalone flag may take it as its boolean value.
        """
        scope = self._scope
        body = argument[1:]
        tokens = []

        if scope.passthrough(path) and scope.short(body[0], path) is None:
            return [Positional(argument, index)], 0

        for offset, alias in enumerate(body):
            entry = scope.short(alias, path)
            rest = body[offset + 1:]

            if entry is None:
                tokens.append(UnknownFlag("-" + alias, index))
                continue

            if entry.argument.standalone:
                if rest.startswith("="):
                    tokens.append(ShortFlag(alias, rest[1:], index))
                    return tokens, 0
                if not rest and len(body) == 1 and literal_ahead is not None:
                    tokens.append(ShortFlag(alias, literal_ahead, index))
                    return tokens, 1
                tokens.append(ShortFlag(alias, None, index))
                continue

            if rest:
                tokens.append(ShortFlag(alias, rest.removeprefix("="), index))
                return tokens, 0
            if ahead is not None and not _flaglike(ahead) and ahead != "--":
                tokens.append(ShortFlag(alias, ahead, index))
                return tokens, 1
            tokens.append(ShortFlag(alias, None, index))
            return tokens, 0

        return tokens, 0


__all__ = (
    "CommandSegment",
    "LongFlag",
    "ShortFlag",
    "Positional",
    "UnknownFlag",
    "Scope",
    "Tokenizer",
)
