"""
Cordage parser: registration, resolution and execution behind one object.

What this module provides
- Parser: owns one command tree, one flag registry, one dependency graph, one
  hook registry and the bound values of the last parse pass.
  • registration: add_command, add_flag, set/add_validators, add/remove_dependency,
    hooks and hook order. Registration faults are raised and leave the parser
    unchanged.
  • parse(arguments) -> bool: tokenize, bind, apply environment fallbacks,
    check required flags and dependencies. Faults are collected, never raised,
    and stay queryable (errors, faults, error_count) until the next parse.
  • execute_command / execute_commands: run the resolved commands through
    their hook chains and keep an ExecutionReport.
- ParsedInvocation: one matched command path, its bound flags and positionals.
- invoke(parser, prompt): parse, surface faults, execute; the shell entry point.

Quick start
    from cordage import Parser, Command, Argument, invoke

    parser = Parser(name="tool", shell=True)
    parser.add_command(Command("server", children=[Command("start", callback=start)]))
    parser.add_flag("verbose", Argument(short="v", type=bool))
    parser.add_flag("port", Argument(short="p", type=int, default=8080), "server start")

    if __name__ == "__main__":
        raise SystemExit(invoke(parser))
"""
import builtins
import difflib
import logging
import os
import shlex
import sys
from collections import deque, namedtuple
from collections.abc import Iterable
from types import MappingProxyType

from rich.text import Text

from .arguments import Argument
from .commands import Command, CommandTree, DEFAULT_MAX_DEPTH
from .dependencies import DependencyGraph, DEFAULT_MAX_DEPTH as DEFAULT_MAX_DEPENDENCY_DEPTH
from .execution import Execution, ExecutionReport
from .faults import *
from .hooks import HookOrder, HookRegistry
from .resolver import FlagRegistry, FlagResolver
from .tokens import *
from .utils import *

log = logging.getLogger(__name__)


class ParsedInvocation(namedtuple("ParsedInvocation", ("path", "flags", "positionals"))):
    """
    One command invocation of a parse pass.

    - path: the matched command path.
    - flags: read-only {name: value} of the flags bound and visible at path.
    - positionals: the positional values given to this invocation, in order.
    """
    __slots__ = ()


class _Invocation:
    __slots__ = ("path", "positionals")

    def __init__(self, path=""):
        self.path = path
        self.positionals = []


def _sanitize_options(options, /):
    """
    Type and range check the runtime options of a Parser.
    """
    if not isinstance(name := options["name"], str | Unset):
        raise TypeError("parser 'name' must be a string")
    elif isinstance(name, str) and not (name := name.strip()):
        raise ValueError("parser 'name' cannot be empty")
    options["name"] = coalesce(name)

    if not isinstance(descr := options["descr"], str | Text | Unset):
        raise TypeError("parser 'descr' must be a string")
    options["descr"] = coalesce(descr)

    try:
        options["hook_order"] = HookOrder(options["hook_order"])
    except ValueError:
        raise ValueError("parser 'hook_order' must be a hook order") from None

    for field in ("max_depth", "max_dependency_depth"):
        if not isinstance(value := options[field], int) or isinstance(value, bool):
            raise TypeError(f"parser {field!r} must be an integer")
        elif value < 1:
            raise ValueError(f"parser {field!r} must be positive")

    if not isinstance(prefix := options["env_prefix"], str | Unset) and prefix is not None:
        raise TypeError("parser 'env_prefix' must be a string")
    options["env_prefix"] = coalesce(prefix) or None

    for field in ("passthrough", "exec_on_parse", "shell", "fancy", "colorful", "deferred"):
        if not isinstance(options[field], bool):
            raise TypeError(f"parser {field!r} must be a boolean")


class Parser(metaclass=IntrospectableType):
    """
    Command-line parser and execution engine.

    Runtime options (read-only properties)
    - name: program name shown in fault headers.
    - descr: short description.
    - hook_order: HookOrder used to chain global and command hooks.
    - max_depth: deepest allowed command nesting.
    - max_dependency_depth: longest allowed chain of bound dependencies.
    - env_prefix: when set, unbound flags are read from PREFIX_PATH_NAME
      environment variables before defaults and required checks apply.
    - passthrough: keep unknown flags and unknown root words as positionals.
    - exec_on_parse: run execute_commands() after a successful parse.
    - shell / fancy / colorful / deferred: fault surfacing (see faults.trigger).
    """

    __introspectable__ = (
        "name",
        "descr",
        "hook_order",
        "max_depth",
        "max_dependency_depth",
        "env_prefix",
        "passthrough",
        "exec_on_parse",
        "shell",
        "fancy",
        "colorful",
        "deferred",
    )

    __displayable__ = (
        "name",
        "hook_order",
        "env_prefix",
        "passthrough",
        "shell",
    )

    def __init__(
            self,
            *,
            name=Unset,
            descr=Unset,
            hook_order=HookOrder.GLOBAL_FIRST,
            max_depth=DEFAULT_MAX_DEPTH,
            max_dependency_depth=DEFAULT_MAX_DEPENDENCY_DEPTH,
            env_prefix=Unset,
            passthrough=False,
            exec_on_parse=False,
            shell=False,
            fancy=False,
            colorful=True,
            deferred=False,
    ):
        options = {
            "name": name,
            "descr": descr,
            "hook_order": hook_order,
            "max_depth": max_depth,
            "max_dependency_depth": max_dependency_depth,
            "env_prefix": env_prefix,
            "passthrough": passthrough,
            "exec_on_parse": exec_on_parse,
            "shell": shell,
            "fancy": fancy,
            "colorful": colorful,
            "deferred": deferred,
        }
        _sanitize_options(options)
        for field, object in options.items():
            setattr(self, "_" + field, object)

        self._tree = CommandTree(max_depth=self._max_depth)
        self._registry = FlagRegistry(self._tree)
        self._graph = DependencyGraph(max_depth=self._max_dependency_depth)
        self._hooks = HookRegistry()
        self._resolver = FlagResolver(self._registry)
        self._report = ExecutionReport()
        self._faults = []
        self._invocations = []
        self._positionals = []
        self._pending = deque()

    # --- registration: commands and flags ---

    def add_command(self, command, /, parent=Unset):
        """
        Register command (with its subcommands) under parent ("" or Unset for
        top level). Returns the registered copy.
        """
        if not isinstance(command, Command):
            raise TypeError("add_command() argument must be a command")
        return self._tree.register(join_path(coalesce(parent, ""), command.name), command)

    def add_flag(self, name, argument, /, *paths):
        """
        Register argument as --name at every given command path (global when no
        path is given). All paths are registered, or none.
        """
        if not isinstance(argument, Argument):
            raise TypeError("add_flag() second argument must be an argument")
        done = []
        try:
            for path in paths or ("",):
                entry = self._registry.register(name, argument, path)
                done.append(entry.key)
                self._graph.extend(entry.key, entry.argument.depends_on, resolve=self._registry.resolve)
                self._graph.conflict(entry.key, *entry.argument.conflicts)
        except RegistrationError:
            for key in done:
                self._registry.discard(key)
                self._graph.discard(key)
            raise

    def _entry(self, name, path):
        if (entry := self._registry.lookup(name.strip().lstrip("-"), path)) is None:
            raise FlagNotFoundError(
                "flag --%s is not visible from %s" % (name, repr(join_path(path)) if join_path(path) else "the root"),
                title="flag not found",
                flag=name,
                path=join_path(path),
                docs=getdoc(FaultCode.FLAG_NOT_FOUND),
            )
        return entry

    def flag(self, name, /, path=""):
        """
        A copy of the Argument visible as --name from path.
        """
        return self._entry(name, path).argument.__deepcopy__({})

    def command(self, path, /):
        """
        The registered Command at path.
        """
        return self._tree[path]

    def set_validators(self, name, /, *validators, path=""):
        """
        Replace every validator of --name (full overwrite).
        """
        self._entry(name, path).argument.set_validators(*validators)

    def add_validators(self, name, /, *validators, path=""):
        """
        Append validators to --name, after the existing ones.
        """
        self._entry(name, path).argument.add_validators(*validators)

    def add_dependency(self, name, target, /, *values, path=""):
        """
        Make --name require --target (with one of values, when given).
        """
        entry = self._entry(name, path)
        self._graph.add(entry.key, target, values, resolve=self._registry.resolve)
        entry.argument.add_dependency(target, *values)

    def remove_dependency(self, name, target, /, path=""):
        entry = self._entry(name, path)
        self._graph.remove(entry.key, target)
        entry.argument.remove_dependency(target)

    # --- registration: hooks ---

    def add_global_pre_hook(self, hook, /):
        self._hooks.add_global_pre(hook)

    def add_global_post_hook(self, hook, /):
        self._hooks.add_global_post(hook)

    def add_command_pre_hook(self, path, hook, /):
        self._hooks.add_command_pre(path, hook)

    def add_command_post_hook(self, path, hook, /):
        self._hooks.add_command_post(path, hook)

    def clear_global_hooks(self):
        self._hooks.clear_global()

    def clear_command_hooks(self, path, /):
        self._hooks.clear_command(path)

    def set_hook_order(self, order, /):
        self._hook_order = HookOrder(order)

    @property
    def hooks(self):
        return self._hooks

    # --- parsing ---

    def _bind(self, entry, raw, index=None, source="argv"):
        try:
            self._resolver.bind(entry, raw, index=index, source=source)
        except ResolutionError as fault:
            self._faults.append(fault)

    def _unknown_flag(self, token, path):
        visible = self._registry.visible(path)
        input = token.text.partition("=")[0]
        candidates = ["--" + name for name in visible]
        candidates += ["-" + entry.argument.short for entry in visible.values() if entry.argument.short]
        suggestions = difflib.get_close_matches(input, candidates, 5)
        try:
            hint = "did you mean %r?" % suggestions[0]
        except IndexError:
            hint = "remove it, or pass it after '--' to keep it as a positional"
        self._faults.append(UnknownFlagError(
            "unknown flag %r at %s position" % (input, ordinal(token.index + 1)),
            title="unknown flag",
            input=input,
            index=token.index,
            path=path,
            suggestions=suggestions,
            hint=hint,
            docs=getdoc(FaultCode.UNKNOWN_FLAG),
        ))

    def _positional(self, invocation, token):
        slot = len(invocation.positionals)
        invocation.positionals.append(token.value)
        self._positionals.append(token.value)

        for entry in self._registry.positionals(invocation.path):
            if entry.argument.position == slot and not self._resolver.bound(entry.key):
                return self._bind(entry, token.value, token.index)

        if not invocation.path and self._tree and not self._passthrough:
            suggestions = difflib.get_close_matches(token.value, self._tree.children(), 5)
            try:
                hint = "did you mean %r?" % suggestions[0]
            except IndexError:
                hint = "available commands: %s" % ", ".join(self._tree.children())
            self._faults.append(UnknownCommandError(
                "unknown command %r at %s position" % (token.value, ordinal(token.index + 1)),
                title="unknown command",
                input=token.value,
                index=token.index,
                suggestions=suggestions,
                hint=hint,
                docs=getdoc(FaultCode.UNKNOWN_COMMAND),
            ))

    def _relevant(self, invocations):
        """
        Flags whose fallbacks and required checks apply to this pass: the
        globals plus every flag visible from an invoked path.
        """
        relevant = {}
        for path in dict.fromkeys(["", *(invocation.path for invocation in invocations)]):
            for entry in self._registry.visible(path).values():
                relevant[entry.key] = entry
        return relevant.values()

    def _environment(self, entries):
        if not self._env_prefix:
            return
        for entry in entries:
            if self._resolver.bound(entry.key):
                continue
            variable = envname(self._env_prefix, entry.key.path, entry.key.name)
            if (value := os.environ.get(variable)) is not None:
                log.debug("%s read from $%s", entry.key, variable)
                self._bind(entry, value, source=variable)

    def _required(self, entries):
        for entry in entries:
            if not entry.argument.required or self._resolver.bound(entry.key):
                continue
            if entry.argument.positional:
                self._faults.append(RequiredPositionalFlagError(
                    "positional %s (slot %d) is required" % (entry.key, entry.argument.position),
                    title="missing positional",
                    flag=entry.key,
                    hint="pass a %s positional value" % ordinal(entry.argument.position + 1),
                    docs=getdoc(FaultCode.REQUIRED_POSITIONAL_FLAG),
                ))
            else:
                self._faults.append(RequiredFlagError(
                    "flag %s is required" % entry.key,
                    title="missing flag",
                    flag=entry.key,
                    hint="pass --%s" % entry.key.name,
                    docs=getdoc(FaultCode.REQUIRED_FLAG),
                ))

    def _subcommands(self, invocation):
        if not invocation.path or not self._tree.expects_subcommand(invocation.path):
            return
        children = self._tree.children(invocation.path)
        suggestions = []
        if invocation.positionals:
            suggestions = difflib.get_close_matches(invocation.positionals[0], children, 5)
        try:
            hint = "did you mean %r?" % " ".join((invocation.path, suggestions[0]))
        except IndexError:
            hint = "choose one of: %s" % ", ".join(children)
        self._faults.append(CommandExpectsSubcommandError(
            "command %r expects a subcommand" % invocation.path,
            title="missing subcommand",
            path=invocation.path,
            suggestions=suggestions,
            hint=hint,
            docs=getdoc(FaultCode.COMMAND_EXPECTS_SUBCOMMAND),
        ))

    def parse(self, arguments, /):
        """
        Resolve arguments (an iterable of strings) against the registered
        commands and flags.

        Returns True when no fault was found. The faults (errors, faults,
        error_count), the bound values (get, has) and the matched invocations
        are kept until the next parse.
        """
        if isinstance(arguments, str) or not isinstance(arguments, Iterable):
            raise TypeError("parse() argument must be an iterable of strings")

        self._faults.clear()
        self._resolver.clear()
        self._positionals.clear()
        self._pending.clear()

        tokenizer = Tokenizer(Scope(self._tree, self._registry, passthrough=self._passthrough))
        current = _Invocation()
        invocations = [current]

        for token in tokenizer.tokenize(arguments):
            match token:
                case CommandSegment(fresh=True):
                    invocations.append(current := _Invocation(token.path))
                case CommandSegment():
                    current.path = token.path
                case LongFlag():
                    self._bind(self._registry.lookup(token.name, current.path), token.value, token.index)
                case ShortFlag():
                    self._bind(self._registry.lookup_short(token.alias, current.path), token.value, token.index)
                case UnknownFlag():
                    self._unknown_flag(token, current.path)
                case Positional():
                    self._positional(current, token)

        for invocation in invocations:
            self._subcommands(invocation)

        relevant = self._relevant(invocations)
        self._environment(relevant)
        self._required(relevant)
        self._faults.extend(self._graph.validate(
            self._resolver.values.keys(),
            self._resolver.raw,
            resolve=self._registry.resolve,
        ))

        self._invocations = [
            ParsedInvocation(
                invocation.path,
                MappingProxyType({
                    name: self._resolver.values[entry.key]
                    for name, entry in self._registry.visible(invocation.path).items()
                    if self._resolver.bound(entry.key)
                }),
                tuple(invocation.positionals),
            )
            for invocation in invocations if invocation.path
        ]

        log.debug(
            "parsed %d invocation(s) with %d fault(s): %s",
            len(self._invocations),
            len(self._faults),
            ", ".join(repr(invocation.path) for invocation in self._invocations) or "-",
        )

        if self._faults:
            return False

        self._pending.extend(
            invocation for invocation in self._invocations if self._tree[invocation.path].callback is not None
        )
        if self._exec_on_parse:
            self.execute_commands()
        return True

    # --- results of the last parse ---

    @property
    def errors(self):
        return tuple(self._faults)

    @property
    def error_count(self):
        return len(self._faults)

    @property
    def faults(self):
        """
        The faults of the last parse as a FaultSet, or None.
        """
        if not self._faults:
            return None
        return FaultSet(self._faults, **self._runtime())

    def clear_errors(self):
        self._faults.clear()

    @property
    def invocations(self):
        return tuple(self._invocations)

    @property
    def positionals(self):
        return tuple(self._positionals)

    def get(self, name, /, path="", default=Unset):
        """
        Value of --name as seen from path.

        Unbound flags report default when given, else the flag's own fallback
        (its default, False for standalone, [] for chained, None otherwise).
        """
        entry = self._entry(name, path)
        if self._resolver.bound(entry.key):
            return self._resolver.values[entry.key]
        return default if default is not Unset else entry.argument.fallback

    def has(self, name, /, path=""):
        """
        True when --name (as seen from path) was bound by the last parse.
        """
        entry = self._registry.lookup(name.strip().lstrip("-"), path)
        return entry is not None and self._resolver.bound(entry.key)

    def _runtime(self):
        return {
            "prog": self._name,
            "shell": self._shell,
            "fancy": self._fancy,
            "colorful": self._colorful,
            "deferred": self._deferred,
        }

    def finalize(self):
        """
        Surface the faults of the last parse through faults.trigger().

        Nothing happens when there are none. Otherwise, in shell mode the
        FaultSet is printed (and the process exits with status 1 unless
        deferred); outside shell mode the FaultSet is raised.
        """
        if self._faults:
            trigger(FaultSet(self._faults), **self._runtime())

    # --- execution ---

    def execute_command(self, path=Unset, /):
        """
        Run one command through its hook chain and return its terminal error.

        Without a path, the next pending invocation of the last parse is run
        (None when there is none). With a path, that command is run and removed
        from the pending invocations; a path that names no registered command
        gets a CommandNotFoundError back (returned, not raised) and leaves the
        report untouched.
        """
        if path is Unset:
            if not self._pending:
                return None
            path = self._pending.popleft().path
        else:
            path = join_path(path)
            for invocation in self._pending:
                if invocation.path == path:
                    self._pending.remove(invocation)
                    break

        command = self._tree.get(path)
        if command is None:
            return CommandNotFoundError(
                "command %r is not registered" % path,
                title="command not found",
                path=path,
                docs=getdoc(FaultCode.COMMAND_NOT_FOUND),
            )
        execution = Execution(
            self,
            command,
            pre=self._hooks.pre_chain(path, self._hook_order),
            post=self._hooks.post_chain(path, self._hook_order),
        )
        record = execution.run()
        self._report.record(record)
        return record.error

    def execute_commands(self):
        """
        Run every pending invocation of the last parse, in order.

        The report is rebuilt; returns the number of command paths whose
        terminal error is not None.
        """
        self._report.clear()
        while self._pending:
            self.execute_command()
        return self._report.error_count

    @property
    def report(self):
        return self._report

    def get_command_execution_error(self, path, /):
        """
        Terminal error of path, None when it succeeded, CommandNotExecutedError
        (returned, not raised) when it was not executed.
        """
        if path in self._report:
            return self._report.error(path)
        return CommandNotExecutedError(
            "command %r was not executed" % join_path(path),
            title="command not executed",
            path=join_path(path),
            docs=getdoc(FaultCode.COMMAND_NOT_EXECUTED),
        )

    def get_command_execution_errors(self):
        return self._report.errors

    def __invoke__(self, prompt=Unset):
        """
        Parse prompt, surface faults, execute; return the execution error count.

        Parameters
        - prompt:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string; will be split via shlex.split.
          • Iterable[str]: pre-tokenized sequence.
        """
        if prompt is Unset:
            tokens = sys.argv[1:]
        elif isinstance(prompt, str):
            tokens = shlex.split(prompt)
        elif isinstance(prompt, Iterable):
            tokens = list(prompt)
            if not all(isinstance(token, str) for token in tokens):
                raise TypeError("__invoke__() argument must be a string or an iterable of strings")
        else:
            raise TypeError("__invoke__() argument must be a string or an iterable of strings")

        if not self.parse(tokens):
            self.finalize()
            return self.error_count
        if self._exec_on_parse:
            return self._report.error_count
        return self.execute_commands()


def invoke(object, prompt=Unset, /):
    """
    Convenience runner.

    Parameters
    - object: a Parser (anything implementing __invoke__(prompt)).
    - prompt:
      • Unset: read sys.argv[1:].
      • str: split with shlex.split.
      • Iterable[str]: use items as tokens.

    Returns the number of failed command paths (or of parse faults when the
    parse failed in deferred shell mode).
    """
    if hasattr(object, "__invoke__") and builtins.callable(object.__invoke__):
        return object.__invoke__(prompt)
    target = "argument" if prompt is Unset else "first argument"
    raise TypeError(f"invoke() {target} must implement __invoke__ method")


__all__ = (
    "ParsedInvocation",
    "Parser",
    "invoke",
)
