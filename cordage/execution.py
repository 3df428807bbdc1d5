"""
Cordage execution engine: run one command through its hook chain.

State machine (one Execution per command run)
    IDLE → PRE_HOOKS_RUNNING → CALLBACK_RUNNING | SKIPPED → POST_HOOKS_RUNNING → DONE

- The first pre-hook error stops the remaining pre-hooks; the callback is then
  SKIPPED and that error is the terminal error.
- Otherwise the callback runs exactly once; its error becomes the terminal error.
- Every post-hook runs, whatever happened before, and receives the error
  observed so far. A post-hook error becomes terminal only when there was none;
  the first one wins.

Errors are data: an Exception raised by a hook or callback, or an Exception
instance it returns, is captured and stored as-is. Nothing escapes run().

ExecutionReport keeps the last ExecutionRecord of every command path and renders
as a rich table.
"""
import logging
from collections import namedtuple
from enum import Enum
from types import MappingProxyType

from rich.table import Table
from rich.text import Text

from .utils import *

log = logging.getLogger(__name__)


class ExecutionState(Enum):
    IDLE = "idle"
    PRE_HOOKS_RUNNING = "pre-hooks running"
    CALLBACK_RUNNING = "callback running"
    SKIPPED = "skipped"
    POST_HOOKS_RUNNING = "post-hooks running"
    DONE = "done"

    def __str__(self):
        return self.value


_TRANSITIONS = {
    ExecutionState.IDLE: {ExecutionState.PRE_HOOKS_RUNNING},
    ExecutionState.PRE_HOOKS_RUNNING: {ExecutionState.CALLBACK_RUNNING, ExecutionState.SKIPPED},
    ExecutionState.CALLBACK_RUNNING: {ExecutionState.POST_HOOKS_RUNNING},
    ExecutionState.SKIPPED: {ExecutionState.POST_HOOKS_RUNNING},
    ExecutionState.POST_HOOKS_RUNNING: {ExecutionState.DONE},
    ExecutionState.DONE: set(),
}


def outcome(function, /, *args):
    """
    Call function and return the Exception it raised or returned, else None.
    """
    try:
        result = function(*args)
    except Exception as exception:
        return exception
    return result if isinstance(result, Exception) else None


class ExecutionRecord(namedtuple("ExecutionRecord", ("path", "error", "skipped", "trace"))):
    """
    Result of one command run.

    - error: the terminal error (exact object) or None.
    - skipped: True when a pre-hook error prevented the callback.
    - trace: the states the run went through, in order.
    """
    __slots__ = ()

    @property
    def failed(self):
        return self.error is not None


class Execution:
    """
    One run of a command: pre-hooks, callback, post-hooks.
    """

    def __init__(self, parser, command, /, *, pre=(), post=()):
        self._parser = parser
        self._command = command
        self._pre = tuple(pre)
        self._post = tuple(post)
        self._state = ExecutionState.IDLE
        self._trace = [ExecutionState.IDLE]
        self._error = None

    @property
    def state(self):
        return self._state

    @property
    def trace(self):
        return tuple(self._trace)

    @property
    def error(self):
        return self._error

    def _enter(self, state):
        if state not in _TRANSITIONS[self._state]:
            raise RuntimeError(f"execution cannot move from {self._state} to {state}")
        log.debug("%s: %s → %s", self._command.path, self._state, state)
        self._state = state
        self._trace.append(state)

    def run(self):
        """
        Run the whole chain once and return its ExecutionRecord.
        """
        if self._state is not ExecutionState.IDLE:
            raise RuntimeError("execution already ran")

        self._enter(ExecutionState.PRE_HOOKS_RUNNING)
        for hook in self._pre:
            if (error := outcome(hook, self._parser, self._command)) is not None:
                self._error = error
                break

        if self._error is not None:
            self._enter(ExecutionState.SKIPPED)
        else:
            self._enter(ExecutionState.CALLBACK_RUNNING)
            if self._command.callback is not None:
                self._error = outcome(self._command.callback, self._parser, self._command)

        self._enter(ExecutionState.POST_HOOKS_RUNNING)
        for hook in self._post:
            error = outcome(hook, self._parser, self._command, self._error)
            if error is not None and self._error is None:
                self._error = error

        self._enter(ExecutionState.DONE)
        if self._error is not None:
            log.debug("%s: terminal error %r", self._command.path, self._error)
        return ExecutionRecord(
            self._command.path,
            self._error,
            ExecutionState.SKIPPED in self._trace,
            self.trace,
        )


class ExecutionReport:
    """
    Last ExecutionRecord of every executed command path.
    """

    def __init__(self):
        self._records = {}

    def record(self, record, /):
        # a path run again replaces its previous record
        self._records.pop(record.path, None)
        self._records[record.path] = record

    def clear(self):
        self._records.clear()

    @property
    def records(self):
        return MappingProxyType(self._records)

    def __getitem__(self, path):
        return self._records[join_path(path)]

    def __contains__(self, path):
        try:
            return join_path(path) in self._records
        except TypeError:
            return False

    def __iter__(self):
        return iter(self._records.values())

    def __len__(self):
        return len(self._records)

    def error(self, path, /):
        return self._records[join_path(path)].error

    @property
    def errors(self):
        """
        {path: terminal error} for every failed path.
        """
        return {path: record.error for path, record in self._records.items() if record.failed}

    @property
    def error_count(self):
        return sum(record.failed for record in self._records.values())

    @property
    def success_count(self):
        return sum(not record.failed for record in self._records.values())

    def __rich__(self):
        table = Table(title="execution report", title_justify="left")
        table.add_column("command", style="bold")
        table.add_column("state")
        table.add_column("error")
        for record in self._records.values():
            if record.failed:
                state = Text("skipped" if record.skipped else "failed", style="bold #FF4DA6")
                error = Text(f"{type(record.error).__name__}: {record.error}")
            else:
                state = Text("ok", style="#9CE19C")
                error = Text("")
            table.add_row(record.path, state, error)
        table.caption = f"{self.success_count} succeeded, {self.error_count} failed"
        return table


__all__ = (
    "ExecutionState",
    "ExecutionRecord",
    "Execution",
    "ExecutionReport",
    "outcome",
)
