"""
Parser behavioral tests (token grammar, descent, finalization, faults).

Scope
- Validate long/short switches, clusters, inline values and the "--" terminator.
- Validate subcommand descent, abbreviations and inherited flags.
- Validate finalization: required entries, defaults, validators.
- Validate fault types and position-first messages.

Conventions
- Test method names follow CamelCase per project convention.
- Each test builds its own tree or uses the shared fixture below.
"""

from __future__ import annotations

import sys
import unittest
from unittest import TestCase, mock

from quiver import (
    ArgType,
    ArgValue,
    ArgumentSpec,
    CommandSpec,
    FlagSpec,
    Length,
    Parser,
    Range,
    parse,
)
from quiver.faults import (
    AmbiguousCommandError,
    HelpRequested,
    InvalidArgumentError,
    InvalidFlagValueError,
    InvalidIntValueError,
    MissingRequiredArgumentError,
    MissingSubcommandError,
    TooFewArgumentsError,
    TooManyArgumentsError,
    UnknownCommandError,
    UnknownFlagError,
    ValidationError,
    VersionRequested,
)


def greeter():
    return CommandSpec("tool", version="1.2.0").with_args(
        ArgumentSpec("name", short="n", long="name", required=True),
        ArgumentSpec("count", ArgType.INT, short="c", long="count", default=1),
        ArgumentSpec("tags", ArgType.ARRAY, long="tags"),
    ).with_flags(
        FlagSpec("verbose", short="v"),
        FlagSpec("dry-run", short="d", long="dry-run"),
    )


def service():
    start = CommandSpec("start", about="start the service").with_args(
        ArgumentSpec("unit"),
    ).with_handler(lambda context: "started")
    stop = CommandSpec("stop", aliases=("halt",)).with_handler(lambda context: "stopped")
    status = CommandSpec("status").with_handler(lambda context: "ok")
    return CommandSpec("tool").with_flags(
        FlagSpec("debug", short="g").set_inherited(),
    ).with_subcommands(
        CommandSpec("service").with_subcommands(start, stop, status),
    )


class TestSwitches(TestCase):
    """Long and short switch grammar."""

    def testNamedValuesAndFlags(self):
        context = parse(greeter(), ["--name", "Alice", "--count", "5", "--verbose"])
        self.assertEqual(context.get_string("name"), "Alice")
        self.assertEqual(context.get_int("count"), 5)
        self.assertTrue(context.get_flag("verbose"))
        self.assertFalse(context.get_flag("dry-run"))

    def testInlineValues(self):
        context = parse(greeter(), ["--name=Bob", "-c7"])
        self.assertEqual(context.get_string("name"), "Bob")
        self.assertEqual(context.get_int("count"), 7)

    def testEmptyInlineValue(self):
        context = parse(greeter(), ["--name="])
        self.assertEqual(context.get_string("name"), "")

    def testShortCluster(self):
        context = parse(greeter(), ["-vdn", "Carol"])
        self.assertTrue(context.get_flag("verbose"))
        self.assertTrue(context.get_flag("dry-run"))
        self.assertEqual(context.get_string("name"), "Carol")

    def testClusterValueTakesRestOfToken(self):
        context = parse(greeter(), ["-vnDave"])
        self.assertTrue(context.get_flag("verbose"))
        self.assertEqual(context.get_string("name"), "Dave")

    def testFlagWithExplicitValue(self):
        context = parse(greeter(), ["-n", "x", "--verbose=false"])
        self.assertFalse(context.get_flag("verbose"))
        with self.assertRaises(InvalidFlagValueError):
            parse(greeter(), ["-n", "x", "--verbose=maybe"])

    def testDefaultApplied(self):
        context = parse(greeter(), ["--name", "Alice"])
        self.assertEqual(context.get("count"), ArgValue.int(1))

    def testArraySplitsAndStrips(self):
        context = parse(greeter(), ["-n", "x", "--tags", "a, b ,c"])
        self.assertEqual(context.get_strings("tags"), ["a", "b", "c"])

    def testArrayRepetitionMerges(self):
        context = parse(greeter(), ["-n", "x", "--tags", "a,b", "--tags", "c"])
        self.assertEqual(context.get_strings("tags"), ["a", "b", "c"])

    def testRepeatedFlagIsIdempotent(self):
        context = parse(greeter(), ["-n", "x", "-v", "--verbose", "-vv"])
        self.assertTrue(context.get_flag("verbose"))

    def testScalarRepetitionRejected(self):
        with self.assertRaises(InvalidArgumentError):
            parse(greeter(), ["-n", "x", "-n", "y"])

    def testMissingRequired(self):
        with self.assertRaises(MissingRequiredArgumentError) as captured:
            parse(greeter(), ["--count", "5"])
        self.assertEqual(captured.exception.argument, "name")

    def testUnknownFlag(self):
        with self.assertRaises(UnknownFlagError) as captured:
            parse(greeter(), ["--bogus", "value"])
        self.assertEqual(captured.exception.token, "--bogus")
        self.assertEqual(captured.exception.message, "unknown flag '--bogus' at first position")

    def testUnknownFlagSuggestions(self):
        with self.assertRaises(UnknownFlagError) as captured:
            parse(greeter(), ["-n", "x", "--verbos"])
        self.assertIn("--verbose", captured.exception.options["suggestions"])

    def testMissingValueAtEnd(self):
        with self.assertRaises(TooFewArgumentsError):
            parse(greeter(), ["--name"])

    def testSwitchNotConsumedAsValue(self):
        with self.assertRaises(TooFewArgumentsError):
            parse(greeter(), ["--name", "--verbose"])

    def testCoercionFaultMentionsPosition(self):
        with self.assertRaises(InvalidIntValueError) as captured:
            parse(greeter(), ["-n", "x", "--count", "five"])
        self.assertEqual(captured.exception.index, 3)
        self.assertIn("--count at third position", captured.exception.message)

    def testNegativeNumberAsValue(self):
        context = parse(greeter(), ["-n", "x", "--count", "-3"])
        self.assertEqual(context.get_int("count"), -3)

    def testEmptyLongNameRejected(self):
        with self.assertRaises(InvalidArgumentError):
            parse(greeter(), ["--=x"])

    def testTokensMustBeStrings(self):
        with self.assertRaises(TypeError):
            parse(greeter(), "--name x")
        with self.assertRaises(TypeError):
            parse(greeter(), ["--count", 5])


class TestPositionals(TestCase):
    """Positional slots and the terminator."""

    def setUp(self):
        self.copy = CommandSpec("copy").with_args(
            ArgumentSpec("source", required=True),
            ArgumentSpec("target"),
        ).with_flags(FlagSpec("force", short="f"))

    def testSlotsFilledInOrder(self):
        context = parse(self.copy, ["a.txt", "b.txt"])
        self.assertEqual(context.get_string("source"), "a.txt")
        self.assertEqual(context.get_string("target"), "b.txt")
        self.assertEqual(context.positional_count, 2)
        self.assertEqual(context.get_positional(0), ArgValue.string("a.txt"))

    def testTooManyArguments(self):
        with self.assertRaises(TooManyArgumentsError) as captured:
            parse(self.copy, ["a", "b", "c"])
        self.assertEqual(captured.exception.index, 3)

    def testTerminatorMakesDashTokensPositional(self):
        context = parse(self.copy, ["-f", "--", "-weird", "--odd"])
        self.assertTrue(context.get_flag("force"))
        self.assertEqual(context.get_string("source"), "-weird")
        self.assertEqual(context.get_string("target"), "--odd")

    def testSingleDashIsPositional(self):
        context = parse(self.copy, ["-"])
        self.assertEqual(context.get_string("source"), "-")

    def testMultipleSlotCollectsRest(self):
        command = CommandSpec("cat").with_args(ArgumentSpec("files").set_multiple())
        context = parse(command, ["a", "b", "c"])
        self.assertEqual(context.get_strings("files"), ["a", "b", "c"])
        self.assertEqual(context.positional_count, 3)

    def testProgramNameDroppedOnRequest(self):
        context = Parser(program=True).parse(self.copy, ["copy", "a"])
        self.assertEqual(context.get_string("source"), "a")
        self.assertEqual(context.get_raw_args(), ("copy", "a"))

    def testPositionalMayEqualCommandName(self):
        context = parse(self.copy, ["copy"])
        self.assertEqual(context.get_string("source"), "copy")
        context = parse(self.copy, ["copy", "b.txt"])
        self.assertEqual(context.get_string("source"), "copy")
        self.assertEqual(context.get_string("target"), "b.txt")

    def testProgramNameReadFromArgv(self):
        with mock.patch.object(sys, "argv", ["copy", "a.txt"]):
            self.assertEqual(Parser(program=True).parse(self.copy).get_string("source"), "a.txt")
            self.assertEqual(Parser().parse(self.copy).get_string("source"), "a.txt")


class TestSubcommands(TestCase):
    """Descent through the command tree."""

    def testDescent(self):
        context = parse(service(), ["service", "start", "web"])
        self.assertEqual(context.get_path(), ("service", "start"))
        self.assertEqual(context.get_subcommand(), "start")
        self.assertEqual(context.get_string("unit"), "web")

    def testAlias(self):
        context = parse(service(), ["service", "halt"])
        self.assertEqual(context.get_path(), ("service", "stop"))

    def testUnknownCommand(self):
        with self.assertRaises(UnknownCommandError) as captured:
            parse(service(), ["service", "strat"])
        self.assertEqual(captured.exception.options["suggestions"][0], "start")

    def testInheritedFlag(self):
        context = parse(service(), ["service", "stop", "--debug"])
        self.assertTrue(context.get_flag("debug"))
        context = parse(service(), ["service", "stop", "-g"])
        self.assertTrue(context.get_flag("debug"))

    def testNonInheritedFlagStaysLocal(self):
        tree = CommandSpec("tool").with_flags(FlagSpec("quiet", short="q")).with_subcommands(
            CommandSpec("run"),
        )
        with self.assertRaises(UnknownFlagError):
            parse(tree, ["run", "--quiet"])

    def testAbbreviation(self):
        parser = Parser(abbreviate=True)
        context = parser.parse(service(), ["serv", "sto"])
        self.assertEqual(context.get_path(), ("service", "stop"))

    def testAmbiguousAbbreviation(self):
        with self.assertRaises(AmbiguousCommandError) as captured:
            Parser(abbreviate=True).parse(service(), ["service", "st"])
        self.assertEqual(set(captured.exception.options["suggestions"]), {"start", "stop", "status"})

    def testAbbreviationOffByDefault(self):
        with self.assertRaises(UnknownCommandError):
            parse(service(), ["serv"])

    def testRequireSubcommand(self):
        self.assertEqual(parse(service(), ["service"]).get_path(), ("service",))
        with self.assertRaises(MissingSubcommandError):
            Parser(require_subcommand=True).parse(service(), ["service"])


class TestFinalization(TestCase):
    """Validators and defaults across the selected path."""

    def testValidatorRejection(self):
        command = CommandSpec("serve").with_args(
            ArgumentSpec("port", ArgType.INT, long="port", validator=Range(1, 65535)),
        )
        self.assertEqual(parse(command, ["--port", "8080"]).get_int("port"), 8080)
        with self.assertRaises(ValidationError) as captured:
            parse(command, ["--port", "0"])
        self.assertEqual(captured.exception.argument, "port")
        self.assertEqual(captured.exception.reason, "must be at least 1")

    def testTextValidatorOnNumberIsRejection(self):
        command = CommandSpec("serve").with_args(
            ArgumentSpec("port", ArgType.INT, long="port", validator=Length(max=4)),
        )
        with self.assertRaises(ValidationError) as captured:
            parse(command, ["--port", "8080"])
        self.assertEqual(captured.exception.reason, "expected text, got int")

    def testValidatorSkipsDefaults(self):
        command = CommandSpec("serve").with_args(
            ArgumentSpec("port", ArgType.INT, long="port", default=0, validator=Range(1, 65535)),
        )
        self.assertEqual(parse(command, []).get_int("port"), 0)

    def testAncestorRequiredChecked(self):
        tree = CommandSpec("tool").with_args(
            ArgumentSpec("profile", long="profile", required=True),
        ).with_subcommands(CommandSpec("run"))
        with self.assertRaises(MissingRequiredArgumentError):
            parse(tree, ["run"])
        self.assertEqual(parse(tree, ["--profile", "dev", "run"]).get_string("profile"), "dev")

    def testParserIsReusable(self):
        parser, command = Parser(), greeter()
        first = parser.parse(command, ["-n", "a"])
        second = parser.parse(command, ["-n", "b", "-v"])
        self.assertEqual(first.get_string("name"), "a")
        self.assertFalse(first.get_flag("verbose"))
        self.assertTrue(second.get_flag("verbose"))


class TestBuiltins(TestCase):
    """Help and version signals."""

    def testHelpSignal(self):
        with self.assertRaises(HelpRequested) as captured:
            parse(service(), ["service", "start", "--help"])
        self.assertEqual(captured.exception.command.name, "start")
        self.assertEqual(captured.exception.message, "start the service")

    def testShortHelp(self):
        with self.assertRaises(HelpRequested):
            parse(service(), ["-h"])

    def testVersionSignal(self):
        with self.assertRaises(VersionRequested) as captured:
            parse(greeter(), ["--version"])
        self.assertEqual(captured.exception.message, "tool 1.2.0")

    def testBuiltinsDisabled(self):
        with self.assertRaises(UnknownFlagError):
            Parser(builtins=False).parse(greeter(), ["--help"])

    def testDeclaredSpellingWins(self):
        command = CommandSpec("tool").with_flags(FlagSpec("human", short="h"))
        self.assertTrue(parse(command, ["-h"]).get_flag("human"))


if __name__ == "__main__":
    unittest.main()
