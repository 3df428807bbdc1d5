"""
Tokens module tests (single-pass classification of raw tokens).

Conventions
- Test method names follow CamelCase per project convention.
- A small namespace is rebuilt for every test (see setUp).
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from cordage import Argument, Command, CommandTree, OptionType
from cordage.resolver import FlagRegistry
from cordage.tokens import (
    CommandSegment,
    LongFlag,
    ShortFlag,
    Positional,
    UnknownFlag,
    Scope,
    Tokenizer,
)


def noop(parser, command):
    return None


class TestTokenizer(TestCase):
    def setUp(self):
        self.tree = CommandTree()
        self.tree.register("server", Command("server", children=[Command("start", noop), Command("stop", noop)]))
        self.tree.register("test", Command("test", noop))
        self.tree.register("exec", Command("exec", noop, passthrough=True))
        self.registry = FlagRegistry(self.tree)
        self.registry.register("verbose", Argument(short="v", type=bool))
        self.registry.register("all", Argument(short="a", type=bool))
        self.registry.register("output", Argument(short="o"))
        self.registry.register("tags", Argument(kind=OptionType.CHAINED))
        self.registry.register("port", Argument(short="p", type=int), "server start")

    def tokenize(self, *arguments, passthrough=False):
        scope = Scope(self.tree, self.registry, passthrough=passthrough)
        return list(Tokenizer(scope).tokenize(arguments))

    def testLongFlagForms(self):
        self.assertEqual(self.tokenize("--output=x"), [LongFlag("output", "x", 0)])
        self.assertEqual(self.tokenize("--output", "x"), [LongFlag("output", "x", 0)])
        self.assertEqual(self.tokenize("--output="), [LongFlag("output", "", 0)])

    def testValuedFlagDoesNotSwallowFlags(self):
        self.assertEqual(
            self.tokenize("--output", "--verbose"),
            [LongFlag("output", None, 0), LongFlag("verbose", None, 1)],
        )

    def testValuedFlagTakesNegativeNumbers(self):
        self.assertEqual(self.tokenize("--output", "-5"), [LongFlag("output", "-5", 0)])

    def testStandaloneTakesOnlyBooleanLiterals(self):
        self.assertEqual(self.tokenize("--verbose", "false"), [LongFlag("verbose", "false", 0)])
        self.assertEqual(
            self.tokenize("--verbose", "test"),
            [LongFlag("verbose", None, 0), CommandSegment("test", "test", 1, False)],
        )

    def testCommandNamedLikeABooleanIsNotAFlagValue(self):
        self.tree.register("yes", Command("yes", noop))
        self.assertEqual(
            self.tokenize("--verbose", "yes"),
            [LongFlag("verbose", None, 0), CommandSegment("yes", "yes", 1, False)],
        )
        self.assertEqual(
            self.tokenize("-v", "yes"),
            [ShortFlag("v", None, 0), CommandSegment("yes", "yes", 1, False)],
        )
        self.assertEqual(
            self.tokenize("test", "--verbose", "yes"),
            [
                CommandSegment("test", "test", 0, False),
                LongFlag("verbose", None, 1),
                CommandSegment("yes", "yes", 2, True),
            ],
        )
        self.assertEqual(self.tokenize("-v", "on"), [ShortFlag("v", "on", 0)])

    def testShortForms(self):
        self.assertEqual(self.tokenize("-ox"), [ShortFlag("o", "x", 0)])
        self.assertEqual(self.tokenize("-o=x"), [ShortFlag("o", "x", 0)])
        self.assertEqual(self.tokenize("-o", "x"), [ShortFlag("o", "x", 0)])
        self.assertEqual(self.tokenize("-v", "off"), [ShortFlag("v", "off", 0)])

    def testClusterOfBooleans(self):
        self.assertEqual(self.tokenize("-va"), [ShortFlag("v", None, 0), ShortFlag("a", None, 0)])

    def testClusterEndingWithValuedFlag(self):
        self.assertEqual(
            self.tokenize("-vaofile"),
            [ShortFlag("v", None, 0), ShortFlag("a", None, 0), ShortFlag("o", "file", 0)],
        )
        self.assertEqual(
            self.tokenize("-vo", "file"),
            [ShortFlag("v", None, 0), ShortFlag("o", "file", 0)],
        )

    def testUnknownFlags(self):
        self.assertEqual(self.tokenize("--nope"), [UnknownFlag("--nope", 0)])
        self.assertEqual(self.tokenize("-vx"), [ShortFlag("v", None, 0), UnknownFlag("-x", 0)])

    def testDoubleDashForcesPositionals(self):
        self.assertEqual(
            self.tokenize("--", "--verbose", "test"),
            [Positional("--verbose", 1), Positional("test", 2)],
        )

    def testNumbersArePositionals(self):
        self.assertEqual(self.tokenize("-5", "-1.5"), [Positional("-5", 0), Positional("-1.5", 1)])

    def testCommandPathAndScopedFlags(self):
        self.assertEqual(
            self.tokenize("server", "start", "-p", "80"),
            [
                CommandSegment("server", "server", 0, False),
                CommandSegment("start", "server start", 1, False),
                ShortFlag("p", "80", 2),
            ],
        )

    def testScopedFlagIsUnknownElsewhere(self):
        self.assertEqual(
            self.tokenize("server", "stop", "--port=80"),
            [
                CommandSegment("server", "server", 0, False),
                CommandSegment("stop", "server stop", 1, False),
                UnknownFlag("--port=80", 2),
            ],
        )

    def testUnmatchedChildStopsResolution(self):
        self.assertEqual(
            self.tokenize("server", "restart", "start"),
            [
                CommandSegment("server", "server", 0, False),
                Positional("restart", 1),
                Positional("start", 2),
            ],
        )

    def testTopLevelCommandAfterLeafStartsNewInvocation(self):
        self.assertEqual(
            self.tokenize("test", "server", "stop"),
            [
                CommandSegment("test", "test", 0, False),
                CommandSegment("server", "server", 1, True),
                CommandSegment("stop", "server stop", 2, False),
            ],
        )

    def testPassthroughCommandKeepsUnknownFlags(self):
        self.assertEqual(
            self.tokenize("exec", "--raw", "-x"),
            [CommandSegment("exec", "exec", 0, False), Positional("--raw", 1), Positional("-x", 2)],
        )

    def testPassthroughParser(self):
        self.assertEqual(self.tokenize("--raw", passthrough=True), [Positional("--raw", 0)])

    def testRejectsNonStrings(self):
        with self.assertRaises(TypeError):
            self.tokenize(1)

    def testScopeRequiresTokenizerType(self):
        with self.assertRaises(TypeError):
            Tokenizer(object())


if __name__ == "__main__":
    unittest.main()
