"""
Typed converters used by flag binding.

Every converter takes the raw string of one value and returns the typed value
or raises the matching ConversionError subclass. The resolver only relies on
that contract; any other callable used as a flag 'type' is wrapped so that a
ValueError/TypeError it raises becomes a generic ConversionError.

Converters
- text: identity on strings.
- integer: base-prefixed integers ("42", "-7", "0x1f", "0o17", "0b101", "1_000").
- floating: decimal and scientific floats ("1.5", "-2e3", "inf").
- boolean: true/false literals (see TRUE_LITERALS / FALSE_LITERALS).
- duration: Go-style durations ("1h30m", "250ms", "1.5s", "-2m") → timedelta.
"""
import datetime
import functools
import re

from .faults import ConversionError, ParseIntError, ParseFloatError, ParseBoolError, ParseDurationError

TRUE_LITERALS = frozenset({"1", "t", "true", "y", "yes", "on"})
FALSE_LITERALS = frozenset({"0", "f", "false", "n", "no", "off"})

_UNITS = {
    "ns": datetime.timedelta(microseconds=1e-3),
    "us": datetime.timedelta(microseconds=1),
    "µs": datetime.timedelta(microseconds=1),
    "ms": datetime.timedelta(milliseconds=1),
    "s": datetime.timedelta(seconds=1),
    "m": datetime.timedelta(minutes=1),
    "h": datetime.timedelta(hours=1),
    "d": datetime.timedelta(days=1),
}


def text(value, /):
    return str(value)


def integer(value, /):
    try:
        return int(value, 0)
    except (TypeError, ValueError):
        pass
    # int(..., 0) rejects leading zeros ("007"); accept them as decimal
    try:
        return int(value, 10)
    except (TypeError, ValueError):
        raise ParseIntError("%r is not a valid integer" % (value,), title="malformed integer", input=value) from None


def floating(value, /):
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ParseFloatError("%r is not a valid number" % (value,), title="malformed number", input=value) from None


def boolean(value, /):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        if (lowered := value.strip().lower()) in TRUE_LITERALS:
            return True
        if lowered in FALSE_LITERALS:
            return False
    raise ParseBoolError(
        "%r is not a valid boolean" % (value,),
        title="malformed boolean",
        input=value,
        hint="use one of: %s" % ", ".join(sorted(TRUE_LITERALS | FALSE_LITERALS)),
    )


def isboolean(value, /):
    """
    True when value is one of the recognised boolean literals.
    """
    return isinstance(value, str) and value.strip().lower() in TRUE_LITERALS | FALSE_LITERALS


def duration(value, /):
    """
    Parse a duration made of <number><unit> pairs into a timedelta.

    Units: ns, us (µs), ms, s, m, h, d. A bare "0" is accepted; anything else
    without a unit is rejected.
    """
    if not isinstance(value, str) or not (source := value.strip()):
        raise ParseDurationError("%r is not a valid duration" % (value,), title="malformed duration", input=value)

    sign = -1 if source[0] == "-" else 1
    body = source.lstrip("+-")
    if body == "0":
        return datetime.timedelta(0)

    total = datetime.timedelta(0)
    position = 0
    for match in re.finditer(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h|d)", body):
        if match.start() != position:
            break
        total += _UNITS[match[2]] * float(match[1])
        position = match.end()
    else:
        if position == len(body) and position:
            return sign * total

    raise ParseDurationError(
        "%r is not a valid duration" % (value,),
        title="malformed duration",
        input=value,
        hint="combine a number and a unit, e.g. 1h30m, 250ms or 1.5s",
    )


# builtins are normalised to their package counterpart so that errors are type-specific
_BUILTINS = {
    str: text,
    int: integer,
    float: floating,
    bool: boolean,
}


def normalize(converter, /):
    """
    Return the converter the resolver should call for a flag 'type'.

    - builtin str/int/float/bool map to text/integer/floating/boolean.
    - package converters are returned unchanged.
    - any other callable is wrapped: ValueError/TypeError become ConversionError.
    """
    if not callable(converter):
        raise TypeError("converter must be callable")
    try:
        converter = _BUILTINS.get(converter, converter)
    except TypeError:  # unhashable callables
        pass
    if converter in (text, integer, floating, boolean, duration):
        return converter
    return _guarded(converter)


def _guarded(converter):
    @functools.wraps(converter)
    def wrapper(value, /):
        try:
            return converter(value)
        except ConversionError:
            raise
        except (TypeError, ValueError) as exception:
            raise ConversionError(
                "%r cannot be converted: %s" % (value, exception),
                title="conversion failed",
                input=value,
                exception=exception,
            ) from exception
    return wrapper


__all__ = (
    "TRUE_LITERALS",
    "FALSE_LITERALS",
    "text",
    "integer",
    "floating",
    "boolean",
    "isboolean",
    "duration",
    "normalize",
)
