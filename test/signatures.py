"""
Signatures module tests (commands declared from plain functions).

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from cordage import Argument, Command, Parser, command
from cordage.faults import FlagNotFoundError, MissingParentCommandError


class TestCommandDecorator(TestCase):
    def setUp(self):
        self.parser = Parser()
        self.parser.add_command(Command("server"))
        self.calls = []

    def testRegistersCommandAndFlags(self):
        @command(self.parser, "server start")
        def start(port=Argument(type=int, default=8080), log_level=Argument(default="info")):
            """Start the server.

            Longer description.
            """
            self.calls.append((port, log_level))

        self.assertTrue(callable(start))
        registered = self.parser.command("server start")
        self.assertEqual(registered.descr, "Start the server.")
        self.assertEqual(self.parser.flag("log-level", "server start").default, "info")

        self.assertTrue(self.parser.parse(["server", "start", "--port", "9000"]))
        self.assertEqual(self.parser.execute_commands(), 0)
        self.assertEqual(self.calls, [(9000, "info")])

    def testExplicitDescription(self):
        @command(self.parser, "server stop", descr="stop it")
        def stop():
            """Ignored."""

        self.assertEqual(self.parser.command("server stop").descr, "stop it")

    def testDecoratedFunctionIsUnchanged(self):
        @command(self.parser, "ping")
        def ping(count=Argument(type=int, default=1)):
            return count

        self.assertEqual(ping(count=3), 3)

    def testFunctionErrorsBecomeCommandErrors(self):
        @command(self.parser, "fail")
        def fail():
            raise RuntimeError("boom")

        self.parser.parse(["fail"])
        self.assertEqual(self.parser.execute_commands(), 1)
        self.assertIsInstance(self.parser.get_command_execution_error("fail"), RuntimeError)

    def testFlagsAreScopedToTheCommand(self):
        @command(self.parser, "server start")
        def start(port=Argument(type=int, default=8080)):
            pass

        with self.assertRaises(FlagNotFoundError):
            self.parser.flag("port")

    def testParameterChecks(self):
        with self.assertRaises(TypeError):
            @command(self.parser, "bad")
            def bad(value):
                pass

        with self.assertRaises(TypeError):
            @command(self.parser, "bad")
            def positional_only(value=Argument(), /):
                pass

    def testVariadicParametersAreIgnored(self):
        @command(self.parser, "run")
        def run(*args, verbose=Argument(type=bool), **kwargs):
            self.calls.append(verbose)

        self.parser.parse(["run", "--verbose"])
        self.parser.execute_commands()
        self.assertEqual(self.calls, [True])

    def testMissingParent(self):
        with self.assertRaises(MissingParentCommandError):
            @command(self.parser, "client connect")
            def connect():
                pass

    def testEmptyPath(self):
        with self.assertRaises(ValueError):
            command(self.parser, "  ")


if __name__ == "__main__":
    unittest.main()
