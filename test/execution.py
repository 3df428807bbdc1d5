"""
Execution module tests (state machine, error precedence and the report).

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from rich.console import Console
from rich.table import Table

from cordage import Command, ExecutionReport, ExecutionState
from cordage.commands import CommandTree
from cordage.execution import Execution, outcome


class TestOutcome(TestCase):
    def testRaisedException(self):
        error = ValueError("boom")

        def failing():
            raise error

        self.assertIs(outcome(failing), error)

    def testReturnedException(self):
        error = RuntimeError("returned")
        self.assertIs(outcome(lambda: error), error)

    def testOrdinaryResultsAreSuccess(self):
        self.assertIsNone(outcome(lambda: 42))
        self.assertIsNone(outcome(lambda: None))


class TestExecution(TestCase):
    def setUp(self):
        self.calls = []
        self.tree = CommandTree()
        self.command = self.tree.register("deploy", Command("deploy", self.callback))

    def callback(self, parser, command):
        self.calls.append("callback")

    def pre(self, label, error=None):
        def hook(parser, command):
            self.calls.append(label)
            if error is not None:
                raise error
        return hook

    def post(self, label, error=None):
        def hook(parser, command, observed):
            self.calls.append((label, observed))
            return error
        return hook

    def testHappyPath(self):
        execution = Execution(None, self.command, pre=[self.pre("pre")], post=[self.post("post")])
        record = execution.run()
        self.assertEqual(self.calls, ["pre", "callback", ("post", None)])
        self.assertIsNone(record.error)
        self.assertFalse(record.failed)
        self.assertFalse(record.skipped)
        self.assertEqual(record.path, "deploy")
        self.assertEqual(record.trace, (
            ExecutionState.IDLE,
            ExecutionState.PRE_HOOKS_RUNNING,
            ExecutionState.CALLBACK_RUNNING,
            ExecutionState.POST_HOOKS_RUNNING,
            ExecutionState.DONE,
        ))
        self.assertIs(execution.state, ExecutionState.DONE)

    def testPreHookErrorSkipsCallback(self):
        error = PermissionError("denied")
        execution = Execution(
            None,
            self.command,
            pre=[self.pre("first", error), self.pre("second")],
            post=[self.post("a"), self.post("b")],
        )
        record = execution.run()
        self.assertEqual(self.calls, ["first", ("a", error), ("b", error)])
        self.assertIs(record.error, error)
        self.assertTrue(record.skipped)
        self.assertIn(ExecutionState.SKIPPED, record.trace)
        self.assertNotIn(ExecutionState.CALLBACK_RUNNING, record.trace)

    def testCallbackErrorBeatsPostHookError(self):
        error = ValueError("callback")

        def callback(parser, command):
            raise error

        command = self.tree.register("build", Command("build", callback))
        record = Execution(None, command, post=[self.post("post", RuntimeError("post"))]).run()
        self.assertIs(record.error, error)
        self.assertEqual(self.calls, [("post", error)])

    def testFirstPostHookErrorWins(self):
        first, second = RuntimeError("first"), RuntimeError("second")
        record = Execution(None, self.command, post=[self.post("a", first), self.post("b", second)]).run()
        self.assertIs(record.error, first)
        self.assertEqual(self.calls, ["callback", ("a", None), ("b", None)])

    def testCommandWithoutCallback(self):
        command = self.tree.register("noop", Command("noop"))
        record = Execution(None, command).run()
        self.assertIsNone(record.error)

    def testRunsOnce(self):
        execution = Execution(None, self.command)
        execution.run()
        with self.assertRaises(RuntimeError):
            execution.run()


class TestExecutionReport(TestCase):
    def setUp(self):
        tree = CommandTree()
        self.ok = tree.register("ok", Command("ok"))
        self.bad = tree.register("bad", Command("bad", lambda parser, command: ValueError("nope")))
        self.report = ExecutionReport()
        self.report.record(Execution(None, self.ok).run())
        self.report.record(Execution(None, self.bad).run())

    def testCounts(self):
        self.assertEqual(len(self.report), 2)
        self.assertEqual(self.report.error_count, 1)
        self.assertEqual(self.report.success_count, 1)
        self.assertEqual(list(self.report.errors), ["bad"])
        self.assertIsInstance(self.report.error("bad"), ValueError)
        self.assertIsNone(self.report.error("ok"))

    def testRerunReplacesRecord(self):
        self.report.record(Execution(None, self.bad).run())
        self.assertEqual(len(self.report), 2)
        self.assertEqual([record.path for record in self.report], ["ok", "bad"])

    def testContains(self):
        self.assertIn("ok", self.report)
        self.assertNotIn("missing", self.report)
        self.assertNotIn(42, self.report)

    def testRichTable(self):
        table = self.report.__rich__()
        self.assertIsInstance(table, Table)
        self.assertEqual(table.row_count, 2)
        console = Console(record=True, width=100, color_system=None)
        console.print(self.report)
        output = console.export_text()
        self.assertIn("ValueError: nope", output)
        self.assertIn("1 succeeded, 1 failed", output)

    def testClear(self):
        self.report.clear()
        self.assertEqual(len(self.report), 0)
        self.assertEqual(self.report.error_count, 0)


if __name__ == "__main__":
    unittest.main()
