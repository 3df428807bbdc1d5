"""
Hooks module tests (ordering policies and scoped clearing).

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from cordage import HookOrder, HookRegistry


def named(name):
    def hook(*args):
        return None
    hook.__name__ = name
    return hook


class TestHookRegistry(TestCase):
    def setUp(self):
        self.hooks = HookRegistry()
        self.g1, self.g2 = named("g1"), named("g2")
        self.c1, self.c2 = named("c1"), named("c2")
        self.p1, self.p2 = named("p1"), named("p2")
        self.q1, self.q2 = named("q1"), named("q2")
        self.hooks.add_global_pre(self.g1)
        self.hooks.add_global_pre(self.g2)
        self.hooks.add_command_pre("server start", self.c1)
        self.hooks.add_command_pre("server  start", self.c2)
        self.hooks.add_global_post(self.p1)
        self.hooks.add_global_post(self.p2)
        self.hooks.add_command_post("server start", self.q1)
        self.hooks.add_command_post("server start", self.q2)

    def testGlobalFirst(self):
        self.assertEqual(
            self.hooks.pre_chain("server start", HookOrder.GLOBAL_FIRST),
            [self.g1, self.g2, self.c1, self.c2],
        )
        self.assertEqual(
            self.hooks.post_chain("server start", HookOrder.GLOBAL_FIRST),
            [self.q1, self.q2, self.p1, self.p2],
        )

    def testCommandFirst(self):
        self.assertEqual(
            self.hooks.pre_chain("server start", HookOrder.COMMAND_FIRST),
            [self.c1, self.c2, self.g1, self.g2],
        )
        self.assertEqual(
            self.hooks.post_chain("server start", HookOrder.COMMAND_FIRST),
            [self.p1, self.p2, self.q1, self.q2],
        )

    def testCommandHooksAreExactPath(self):
        self.assertEqual(self.hooks.pre_chain("server stop"), [self.g1, self.g2])
        self.assertEqual(self.hooks.pre_chain("server"), [self.g1, self.g2])

    def testClearGlobalKeepsCommandHooks(self):
        self.hooks.clear_global()
        self.assertEqual(self.hooks.global_hooks(), ([], []))
        self.assertEqual(self.hooks.command_hooks("server start"), ([self.c1, self.c2], [self.q1, self.q2]))

    def testClearCommandKeepsGlobalHooks(self):
        self.hooks.clear_command("server start")
        self.assertEqual(self.hooks.command_hooks("server start"), ([], []))
        self.assertEqual(self.hooks.global_hooks(), ([self.g1, self.g2], [self.p1, self.p2]))

    def testClearCommandOnlyTouchesThatPath(self):
        other = named("other")
        self.hooks.add_command_pre("server stop", other)
        self.hooks.clear_command("server start")
        self.assertEqual(self.hooks.command_hooks("server stop"), ([other], []))

    def testChainsAreCopies(self):
        self.hooks.pre_chain("server start").clear()
        self.assertEqual(len(self.hooks.pre_chain("server start")), 4)

    def testHooksMustBeCallable(self):
        with self.assertRaises(TypeError):
            self.hooks.add_global_pre("nope")

    def testOrderLabel(self):
        self.assertEqual(str(HookOrder.COMMAND_FIRST), "command-first")


if __name__ == "__main__":
    unittest.main()
