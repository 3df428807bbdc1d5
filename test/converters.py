"""
Converters module tests (type-specific parse errors, guarded callables).

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import datetime
import unittest
from unittest import TestCase

from cordage import converters
from cordage.faults import (
    ConversionError,
    ParseIntError,
    ParseFloatError,
    ParseBoolError,
    ParseDurationError,
    FaultCode,
)


class TestConverters(TestCase):
    def testIntegerAcceptsPrefixesAndLeadingZeros(self):
        self.assertEqual(converters.integer("42"), 42)
        self.assertEqual(converters.integer("-7"), -7)
        self.assertEqual(converters.integer("0x1f"), 31)
        self.assertEqual(converters.integer("007"), 7)
        self.assertEqual(converters.integer("1_000"), 1000)

    def testIntegerRejectsGarbage(self):
        with self.assertRaises(ParseIntError) as context:
            converters.integer("12abc")
        self.assertEqual(context.exception.code, FaultCode.PARSE_INT)

    def testFloating(self):
        self.assertEqual(converters.floating("1.5"), 1.5)
        self.assertEqual(converters.floating("-2e3"), -2000.0)
        with self.assertRaises(ParseFloatError):
            converters.floating("one")

    def testBooleanLiterals(self):
        for literal in ("1", "t", "TRUE", "yes", "y", "On"):
            self.assertIs(converters.boolean(literal), True)
        for literal in ("0", "f", "False", "no", "n", "off"):
            self.assertIs(converters.boolean(literal), False)
        with self.assertRaises(ParseBoolError):
            converters.boolean("maybe")

    def testIsBoolean(self):
        self.assertTrue(converters.isboolean("off"))
        self.assertFalse(converters.isboolean("test"))
        self.assertFalse(converters.isboolean(None))

    def testDuration(self):
        self.assertEqual(converters.duration("1h30m"), datetime.timedelta(hours=1, minutes=30))
        self.assertEqual(converters.duration("250ms"), datetime.timedelta(milliseconds=250))
        self.assertEqual(converters.duration("1.5s"), datetime.timedelta(seconds=1.5))
        self.assertEqual(converters.duration("-2m"), datetime.timedelta(minutes=-2))
        self.assertEqual(converters.duration("0"), datetime.timedelta(0))

    def testDurationRejectsMissingUnits(self):
        for value in ("10", "1h30", "h", "", "1x"):
            with self.assertRaises(ParseDurationError):
                converters.duration(value)

    def testNormalizeMapsBuiltins(self):
        self.assertIs(converters.normalize(int), converters.integer)
        self.assertIs(converters.normalize(bool), converters.boolean)
        self.assertIs(converters.normalize(converters.duration), converters.duration)

    def testNormalizeWrapsOtherCallables(self):
        def port(value):
            if not value.isdigit():
                raise ValueError("not a port")
            return int(value)

        guarded = converters.normalize(port)
        self.assertEqual(guarded("80"), 80)
        self.assertEqual(guarded.__name__, "port")
        with self.assertRaises(ConversionError) as context:
            guarded("http")
        self.assertIs(type(context.exception), ConversionError)
        self.assertIsInstance(context.exception.options["exception"], ValueError)

    def testNormalizeRejectsNonCallables(self):
        with self.assertRaises(TypeError):
            converters.normalize("int")


if __name__ == "__main__":
    unittest.main()
