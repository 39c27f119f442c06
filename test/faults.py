"""
Faults behavioral tests (codes, options, replacement, rendering, triggering).

Conventions
- Test method names follow CamelCase per project convention.
- Rendering is checked through a recording rich Console, never a real terminal.
"""

from __future__ import annotations

import copy
import unittest
from unittest import TestCase, mock

from rich.console import Console

from quiver.faults import (
    CommandException,
    FaultCode,
    HelpRequested,
    MissingRequiredArgumentError,
    UnknownFlagError,
    ValidationError,
    VersionRequested,
    getdoc,
    trigger,
)


def render(renderable):
    console = Console(record=True, width=120, color_system=None)
    console.print(renderable)
    return console.export_text()


class TestFaultCodes(TestCase):
    """Stable identifiers and host remapping."""

    def testClassCodes(self):
        self.assertEqual(UnknownFlagError().code, FaultCode.UNKNOWN_FLAG)
        self.assertEqual(ValidationError().code, 11401)
        self.assertEqual(VersionRequested().code, FaultCode.VERSION_REQUESTED)

    def testNormalizeDefaultsToNumber(self):
        self.assertEqual(FaultCode.UNKNOWN_FLAG.normalize(), "11102")

    def testNormalizeUsesHostMapping(self):
        main = __import__("__main__")
        with mock.patch.object(main, "__codes__", {FaultCode.UNKNOWN_FLAG: "E-FLAG"}, create=True):
            self.assertEqual(FaultCode.UNKNOWN_FLAG.normalize(), "E-FLAG")

    def testGetdoc(self):
        main = __import__("__main__")
        self.assertIsNone(getdoc(FaultCode.UNKNOWN_FLAG))
        with mock.patch.object(main, "__docs__", {FaultCode.UNKNOWN_FLAG: "see --help"}, create=True):
            self.assertEqual(getdoc(FaultCode.UNKNOWN_FLAG), "see --help")
        with self.assertRaises(TypeError):
            getdoc(11102)


class TestCommandException(TestCase):
    """Options, replacement and rendering."""

    def testOptionsAreReadOnly(self):
        fault = UnknownFlagError("unknown flag '--x' at first position", token="--x", index=1)
        self.assertEqual(str(fault), "unknown flag '--x' at first position")
        self.assertEqual((fault.token, fault.index, fault.hint), ("--x", 1, None))
        with self.assertRaises(TypeError):
            fault.options["token"] = "--y"

    def testTitleAndCodeOverrides(self):
        fault = CommandException("boom", code=FaultCode.CONFIG_ERROR, title="custom")
        self.assertEqual((fault.code, fault.title), (FaultCode.CONFIG_ERROR, "custom"))

    def testReplaceKeepsTypeAndOptions(self):
        fault = MissingRequiredArgumentError("missing", argument="name")
        replaced = copy.replace(fault, message="still missing", hint="pass --name")
        self.assertIsInstance(replaced, MissingRequiredArgumentError)
        self.assertEqual(replaced.message, "still missing")
        self.assertEqual((replaced.argument, replaced.hint), ("name", "pass --name"))
        self.assertEqual(fault.hint, None)

    def testValidationReason(self):
        fault = ValidationError("invalid value for --port at second position: must be at least 1", reason="must be at least 1")
        self.assertEqual(fault.reason, "must be at least 1")
        self.assertEqual(ValidationError("plain").reason, "plain")

    def testRendering(self):
        fault = UnknownFlagError("unknown flag '--bogus' at first position", hint="try 'tool --help'", colorful=False)
        text = render(fault)
        self.assertIn("[ quiver — 11102 | Unknown Flag ]", text)
        self.assertIn("unknown flag '--bogus' at first position", text)
        self.assertIn("→ try 'tool --help'", text)

    def testDocumentationFooter(self):
        fault = UnknownFlagError("unknown flag", docs="see https://example.org/flags", colorful=False)
        self.assertIn("see https://example.org/flags", render(fault))
        self.assertNotIn("example.org", render(UnknownFlagError("unknown flag", colorful=False)))
        main = __import__("__main__")
        with mock.patch.object(main, "__docs__", {FaultCode.UNKNOWN_FLAG: "flags are listed by --help"}, create=True):
            self.assertIn("flags are listed by --help", render(UnknownFlagError("unknown flag", colorful=False)))

    def testFancyRendering(self):
        fault = UnknownFlagError("unknown flag", fancy=True, colorful=False)
        self.assertIn("unknown flag", render(fault))


class TestTrigger(TestCase):
    """Raising versus rendering."""

    def testRaisesOutsideShell(self):
        with self.assertRaises(UnknownFlagError) as captured:
            trigger(UnknownFlagError("unknown flag"), hint="check spelling")
        self.assertEqual(captured.exception.hint, "check spelling")

    def testShellExitsWithOne(self):
        with mock.patch("quiver.faults.console.print") as printer:
            with self.assertRaises(SystemExit) as captured:
                trigger(UnknownFlagError("unknown flag"), shell=True)
        self.assertEqual(captured.exception.code, 1)
        printer.assert_called_once()

    def testSignalExitsWithZero(self):
        with mock.patch("quiver.faults.console.print"):
            with self.assertRaises(SystemExit) as captured:
                trigger(HelpRequested("usage: tool"), shell=True)
        self.assertEqual(captured.exception.code, 0)

    def testRejectsPlainObjects(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("nope"))


if __name__ == "__main__":
    unittest.main()
