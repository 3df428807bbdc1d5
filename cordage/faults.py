"""
Cordage faults (registration, resolution and execution errors) and rendering.

Scope
- FaultCode: stable numeric identifiers for every fault the engine can report,
  grouped by domain so logs and documentation stay searchable.
- ParserFault: base type carrying a message plus keyword options (title, code,
  hint, docs and any context such as input/index/path) in a read-only mapping.
  Faults render themselves with rich and can be re-optioned via copy.replace().
- FaultSet: ExceptionGroup of the faults collected by one parse pass.
- trigger(): surface a fault (print in shell mode, raise otherwise).
- getdoc(): optional long description lookup provided by the host application.

Taxonomy
- registration (10xxx): raised directly from registration calls; the engine's
  state is left untouched when they fire.
- resolution/binding (11xxx) and dependencies (12xxx): collected for the whole
  parse pass and exposed as data (Parser.errors / Parser.faults).
- execution (13xxx): bookkeeping faults of the execution report; user errors
  raised by hooks and callbacks are stored as-is, never wrapped.

Host customisation (read from __main__, as for every renderer in this package)
- __styles__: mapping of style names to rich styles.
- __codes__: mapping FaultCode -> label, used by FaultCode.normalize().
- __prog__: program name shown in headers.
- __docs__: mapping FaultCode -> documentation string, used by getdoc().
"""
import copy
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - registration (101xx commands, 1011x flags, 1012x dependencies)
    - tokens and binding (110xx tokens, 1111x conversion, 1112x values, 1113x required)
    - dependencies (121xx)
    - execution (131xx)
    """
    # --- registration: commands ---
    DUPLICATE_COMMAND              = 10101
    EMPTY_COMMAND_PATH             = 10102
    RECURSION_DEPTH_EXCEEDED       = 10103
    MISSING_PARENT_COMMAND         = 10104
    COMMAND_NOT_FOUND              = 10105

    # --- registration: flags ---
    DUPLICATE_FLAG                 = 10111
    EMPTY_FLAG                     = 10112
    FLAG_NOT_FOUND                 = 10113
    INVALID_PATTERN                = 10114
    DUPLICATE_POSITION             = 10115

    # --- registration: dependencies ---
    CIRCULAR_DEPENDENCY            = 10121
    DEPENDENCY_NOT_DECLARED        = 10122

    # --- tokens ---
    UNKNOWN_FLAG                   = 11101
    UNKNOWN_COMMAND                = 11102
    FLAG_EXPECTS_VALUE             = 11103
    DUPLICATE_FLAG_VALUE           = 11104
    COMMAND_EXPECTS_SUBCOMMAND     = 11105

    # --- conversion ---
    CONVERSION                     = 11111
    PARSE_INT                      = 11112
    PARSE_FLOAT                    = 11113
    PARSE_BOOL                     = 11114
    PARSE_DURATION                 = 11115
    FILE_REFERENCE                 = 11116

    # --- values ---
    PATTERN_MISMATCH               = 11121
    VALIDATION_FAILED              = 11122

    # --- required ---
    REQUIRED_FLAG                  = 11131
    REQUIRED_POSITIONAL_FLAG       = 11132

    # --- dependencies ---
    DEPENDENCY_NOT_FOUND           = 12101
    DEPENDENCY_VALUE_NOT_SPECIFIED = 12102
    CONFLICTING_FLAGS              = 12103
    DEPENDENCY_DEPTH_EXCEEDED      = 12104

    # --- execution ---
    COMMAND_NOT_EXECUTED           = 13101

    def normalize(self):
        """
        return a host-normalized label for this code (numeric string by default).
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _styler(options, styles):
    def styler(style):
        return styles[style] if options.get("colorful", True) else ""
    return styler


def _text(options):
    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment
        if not options.get("colorful", True):
            return Text(str(fragment))
        return Text(str(fragment), style)
    return text


def _prog(options):
    main = __import__("__main__")
    return getattr(main, "__prog__", options.get("prog") or "cordage")


class ParserFault(Exception):
    """
    base fault: a message plus read-only keyword options.

    common options
    - title: short, lowercased headline ("unknown flag").
    - code: FaultCode of the fault.
    - hint: one actionable sentence.
    - docs: optional long description (see getdoc()).
    - prog/shell/fancy/colorful/deferred: runtime options merged by trigger().
    - any context the reporter may show (input, index, path, flag, ...).
    """
    __faultcode__ = Unset

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*((message,) if message else ()))
        self.message = message
        if "code" not in options and self.__faultcode__ is not Unset:
            options["code"] = self.__faultcode__
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code")

    def __str__(self):
        return self.message or ""

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        } | getattr(main, "__styles__", {}))

        styler = _styler(self.options, styles)
        text = _text(self.options)

        code = self.code.normalize() if isinstance(self.code, FaultCode) else "?"
        title = str(self.options.get("title") or type(self).__name__)

        header = Text.assemble(
            "[ ",
            text(_prog(self.options), styler("prog-name")),
            " — ",
            text(code, styler("code")),
            " | ",
            text(title.title(), styler("error-title")),
            " ]"
        )
        message = text(self.message, styler("error-message"))
        renders = [message]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))

        if self.options.get("fancy", False):
            try:
                width = int((console.width - 4) * self.options["ratio"])
            except KeyError:
                width = None
            return Panel(Group(*renders), title=header, title_align="left", width=width)

        return Group(header, *renders)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        if self.options.get("deferred", False):
            return
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


# --- registration ---
class RegistrationError(ParserFault): ...
class DuplicateCommandError(RegistrationError): __faultcode__ = FaultCode.DUPLICATE_COMMAND
class EmptyCommandPathError(RegistrationError): __faultcode__ = FaultCode.EMPTY_COMMAND_PATH
class RecursionDepthExceededError(RegistrationError): __faultcode__ = FaultCode.RECURSION_DEPTH_EXCEEDED
class MissingParentCommandError(RegistrationError): __faultcode__ = FaultCode.MISSING_PARENT_COMMAND
class CommandNotFoundError(RegistrationError): __faultcode__ = FaultCode.COMMAND_NOT_FOUND
class DuplicateFlagError(RegistrationError): __faultcode__ = FaultCode.DUPLICATE_FLAG
class EmptyFlagError(RegistrationError): __faultcode__ = FaultCode.EMPTY_FLAG
class FlagNotFoundError(RegistrationError): __faultcode__ = FaultCode.FLAG_NOT_FOUND
class InvalidPatternError(RegistrationError): __faultcode__ = FaultCode.INVALID_PATTERN
class DuplicatePositionError(RegistrationError): __faultcode__ = FaultCode.DUPLICATE_POSITION
class CircularDependencyError(RegistrationError): __faultcode__ = FaultCode.CIRCULAR_DEPENDENCY
class DependencyNotDeclaredError(RegistrationError): __faultcode__ = FaultCode.DEPENDENCY_NOT_DECLARED


# --- resolution and binding ---
class ResolutionError(ParserFault): ...
class UnknownFlagError(ResolutionError): __faultcode__ = FaultCode.UNKNOWN_FLAG
class UnknownCommandError(ResolutionError): __faultcode__ = FaultCode.UNKNOWN_COMMAND
class FlagExpectsValueError(ResolutionError): __faultcode__ = FaultCode.FLAG_EXPECTS_VALUE
class DuplicateFlagValueError(ResolutionError): __faultcode__ = FaultCode.DUPLICATE_FLAG_VALUE
class CommandExpectsSubcommandError(ResolutionError): __faultcode__ = FaultCode.COMMAND_EXPECTS_SUBCOMMAND
class ConversionError(ResolutionError): __faultcode__ = FaultCode.CONVERSION
class ParseIntError(ConversionError): __faultcode__ = FaultCode.PARSE_INT
class ParseFloatError(ConversionError): __faultcode__ = FaultCode.PARSE_FLOAT
class ParseBoolError(ConversionError): __faultcode__ = FaultCode.PARSE_BOOL
class ParseDurationError(ConversionError): __faultcode__ = FaultCode.PARSE_DURATION
class FileReferenceError(ConversionError): __faultcode__ = FaultCode.FILE_REFERENCE
class PatternMismatchError(ResolutionError): __faultcode__ = FaultCode.PATTERN_MISMATCH
class ValidationFailedError(ResolutionError): __faultcode__ = FaultCode.VALIDATION_FAILED
class RequiredFlagError(ResolutionError): __faultcode__ = FaultCode.REQUIRED_FLAG
class RequiredPositionalFlagError(ResolutionError): __faultcode__ = FaultCode.REQUIRED_POSITIONAL_FLAG


# --- dependencies ---
class DependencyError(ResolutionError): ...
class DependencyNotFoundError(DependencyError): __faultcode__ = FaultCode.DEPENDENCY_NOT_FOUND
class DependencyValueNotSpecifiedError(DependencyError): __faultcode__ = FaultCode.DEPENDENCY_VALUE_NOT_SPECIFIED
class ConflictingFlagsError(DependencyError): __faultcode__ = FaultCode.CONFLICTING_FLAGS
class DependencyDepthExceededError(DependencyError): __faultcode__ = FaultCode.DEPENDENCY_DEPTH_EXCEEDED


# --- execution ---
class CommandNotExecutedError(ParserFault): __faultcode__ = FaultCode.COMMAND_NOT_EXECUTED


class FaultSet(ExceptionGroup[ParserFault]):
    """
    the structured error set of one parse pass.

    Behaves like any ExceptionGroup (split/subgroup/except*), keeps the faults
    in the order they were detected and renders them grouped under one header.
    """

    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "parse failed", tuple(exceptions))

    def __init__(self, exceptions, **options):
        super().__init__("parse failed", tuple(exceptions))
        self.options = MappingProxyType(options)

    def derive(self, exceptions):
        return type(self)(exceptions, **self.options)

    @property
    def codes(self):
        return tuple(exception.code for exception in self.exceptions)

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            "prog-name": "bold #E6E6F0",
            "title": "bold #FF4DA6",
        } | getattr(main, "__styles__", {}))

        styler = _styler(self.options, styles)
        text = _text(self.options)

        header = Text.assemble(
            "[ ",
            text(_prog(self.options), styler("prog-name")),
            " — ",
            text(self.message.title(), styler("title")),
            " ]"
        )

        renders = [copy.replace(exception, **{**self.options, "ratio": 2 / 3}) for exception in self.exceptions]

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        if self.options.get("deferred", False):
            return
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ (ParserFault and FaultSet do).
    - options are merged via copy.replace(fault, **options) before triggering.
    - shell mode prints through the rich console (and exits with status 1 unless
      deferred); otherwise the fault is raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation for a fault code, read from __main__.__docs__.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "FaultCode",
    "ParserFault",
    "RegistrationError",
    "DuplicateCommandError",
    "EmptyCommandPathError",
    "RecursionDepthExceededError",
    "MissingParentCommandError",
    "CommandNotFoundError",
    "DuplicateFlagError",
    "EmptyFlagError",
    "FlagNotFoundError",
    "InvalidPatternError",
    "DuplicatePositionError",
    "CircularDependencyError",
    "DependencyNotDeclaredError",
    "ResolutionError",
    "UnknownFlagError",
    "UnknownCommandError",
    "FlagExpectsValueError",
    "DuplicateFlagValueError",
    "CommandExpectsSubcommandError",
    "ConversionError",
    "ParseIntError",
    "ParseFloatError",
    "ParseBoolError",
    "ParseDurationError",
    "FileReferenceError",
    "PatternMismatchError",
    "ValidationFailedError",
    "RequiredFlagError",
    "RequiredPositionalFlagError",
    "DependencyError",
    "DependencyNotFoundError",
    "DependencyValueNotSpecifiedError",
    "ConflictingFlagsError",
    "DependencyDepthExceededError",
    "CommandNotExecutedError",
    "FaultSet",
    "trigger",
    "getdoc",
)
