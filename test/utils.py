"""
Utils module tests (sentinel, path helpers, introspection metaclass).

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import copy
import unittest
from unittest import TestCase

from cordage.utils import (
    Unset,
    UnsetType,
    IntrospectableType,
    coalesce,
    mirror,
    ordinal,
    split_path,
    join_path,
    ancestors,
    envname,
)


class TestUnset(TestCase):
    def testUnsetIsFalseyAndSingleton(self):
        self.assertFalse(Unset)
        self.assertIs(UnsetType(), Unset)
        self.assertEqual(repr(Unset), "Unset")

    def testUnsetSurvivesCopies(self):
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy([Unset])[0], Unset)

    def testUnsetCannotBeSubclassed(self):
        with self.assertRaises(TypeError):
            type("Other", (UnsetType,), {})

    def testCoalesceKeepsFalseyValues(self):
        self.assertIsNone(coalesce(None, 1))
        self.assertEqual(coalesce("", 1), "")
        self.assertEqual(coalesce(Unset, 1), 1)
        self.assertIsNone(coalesce(Unset))


class TestPaths(TestCase):
    def testSplitPathNormalisesWhitespace(self):
        self.assertEqual(split_path("  server   start "), ("server", "start"))
        self.assertEqual(split_path(["server", "start"]), ("server", "start"))
        self.assertEqual(split_path(""), ())

    def testSplitPathRejectsOtherTypes(self):
        with self.assertRaises(TypeError):
            split_path(42)
        with self.assertRaises(TypeError):
            split_path(["server", 1])

    def testJoinPath(self):
        self.assertEqual(join_path("server", "start"), "server start")
        self.assertEqual(join_path("", "server"), "server")
        self.assertEqual(join_path(""), "")

    def testAncestorsWalkUpToRoot(self):
        self.assertEqual(list(ancestors("a b c")), ["a b c", "a b", "a", ""])
        self.assertEqual(list(ancestors("")), [""])

    def testEnvname(self):
        self.assertEqual(envname("app", "server start", "log-level"), "APP_SERVER_START_LOG_LEVEL")
        self.assertEqual(envname("app", "", "verbose"), "APP_VERBOSE")


class TestOrdinal(TestCase):
    def testSpelledOut(self):
        self.assertEqual(ordinal(1), "first")
        self.assertEqual(ordinal(10), "tenth")

    def testSuffixes(self):
        self.assertEqual(ordinal(11), "11th")
        self.assertEqual(ordinal(12), "12th")
        self.assertEqual(ordinal(22), "22nd")
        self.assertEqual(ordinal(103), "103rd")

    def testRejectsNonIntegers(self):
        with self.assertRaises(TypeError):
            ordinal(True)


class TestIntrospection(TestCase):
    def setUp(self):
        class SampleRecord(metaclass=IntrospectableType):
            __introspectable__ = ("items", "label")
            __displayable__ = ("label",)

            def __init__(self):
                self._items = [1, 2]
                self._label = "x"

        self.record = SampleRecord()

    def testPropertiesAreReadOnly(self):
        with self.assertRaises(AttributeError):
            self.record.label = "y"

    def testMirrorDetachesContainers(self):
        items = self.record.items
        items.append(3)
        self.assertEqual(self.record.items, [1, 2])

    def testReprUsesDisplayableFields(self):
        self.assertEqual(repr(self.record), "sample-record(label='x')")

    def testMirrorRejectsNonString(self):
        with self.assertRaises(TypeError):
            mirror(1)


if __name__ == "__main__":
    unittest.main()
