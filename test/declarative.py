"""
Declarative reflection tests (dataclass records ⇄ schemas and contexts).

Scope
- Validate describe(): kinds, naming and rejections.
- Validate generate(): flags for booleans, arguments for the rest.
- Validate materialize()/parse(): context values, defaults, zero values, required.
- Validate unparse(): records survive a round trip through the parser.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import dataclasses
import enum
import unittest
from unittest import TestCase

from quiver import ArgType, Context, Range, argument, declarative, describe, generate, materialize, unparse
from quiver.faults import MissingRequiredArgumentError, ValidationError
from quiver.declarative import Kind


class Mode(enum.Enum):
    FAST = "fast"
    SAFE = "safe"


@dataclasses.dataclass
class Serve:
    """Serve files over http."""
    host: str = argument("localhost", help="bind address")
    port: int = argument(8080, short="p", validator=Range(1, 65535))
    verbose: bool = argument(False, short="v")
    ratio: float = 1.0
    mode: Mode = Mode.SAFE
    label: str | None = None
    tags: list[str] = argument(default_factory=list)


@dataclasses.dataclass
class Copy:
    source: str = argument(long=None, required=True)
    target: str | None = argument(None, long=None)
    force: bool = argument(False, short="f")


@dataclasses.dataclass
class Build:
    jobs: int = argument(required=True)
    cache: bool = True
    dry_run: bool = False
    files: list[str] = argument(default_factory=list, long=None, multiple=True)


@dataclasses.dataclass
class Bare:
    name: str
    count: int
    mode: Mode
    names: tuple[str, ...]
    rate: float | None


class TestDescribe(TestCase):
    """Schema-description table."""

    def testKinds(self):
        kinds = {field.name: field.kind for field in describe(Serve)}
        self.assertEqual(kinds, {
            "host": Kind.TEXT,
            "port": Kind.INTEGER,
            "verbose": Kind.BOOLEAN,
            "ratio": Kind.FLOAT,
            "mode": Kind.CHOICE,
            "label": Kind.OPTIONAL_TEXT,
            "tags": Kind.TEXT_SEQUENCE,
        })

    def testNaming(self):
        fields = {field.name: field for field in describe(Build)}
        self.assertEqual(fields["dry_run"].long, "dry-run")
        self.assertIsNone(fields["files"].long)
        self.assertEqual({field.name: field.short for field in describe(Serve)}["port"], "p")

    def testUnsupportedType(self):
        @dataclasses.dataclass
        class Broken:
            mapping: dict[str, str] = dataclasses.field(default_factory=dict)

        with self.assertRaises(TypeError):
            describe(Broken)

    def testNotADataclass(self):
        with self.assertRaises(TypeError):
            describe(object)

    def testMultipleNeedsSequence(self):
        @dataclasses.dataclass
        class Broken:
            name: str = argument("", multiple=True)

        with self.assertRaises(TypeError):
            describe(Broken)


class TestGenerate(TestCase):
    """CommandSpec derived from a record type."""

    def testCommandShape(self):
        command = generate(Serve)
        self.assertEqual(command.name, "serve")
        self.assertEqual(command.about, "Serve files over http.")
        self.assertEqual([flag.name for flag in command.flags], ["verbose"])
        self.assertEqual(command.find_arg("port").type, ArgType.INT)
        self.assertEqual(command.find_arg("mode").choices, ("FAST", "SAFE"))
        self.assertEqual(command.find_arg("host").help, "bind address")

    def testAutoDocIgnored(self):
        self.assertEqual(generate(Copy).about, "")

    def testRequiredAndPositional(self):
        command = generate(Copy)
        self.assertTrue(command.find_arg("source").required)
        self.assertEqual([entry.name for entry in command.positionals], ["source", "target"])

    def testExplicitName(self):
        self.assertEqual(generate(Build, name="make").name, "make")


class TestMaterialize(TestCase):
    """Records rebuilt from contexts."""

    def testParseWithDefaults(self):
        self.assertEqual(declarative.parse(Serve, []), Serve())

    def testParseValues(self):
        record = declarative.parse(Serve, [
            "--host", "0.0.0.0", "-p", "9000", "-v", "--ratio", "0.25", "--mode", "FAST", "--tags", "a,b",
        ])
        self.assertEqual(record, Serve(
            host="0.0.0.0", port=9000, verbose=True, ratio=0.25, mode=Mode.FAST, tags=["a", "b"],
        ))

    def testValidatorApplies(self):
        with self.assertRaises(ValidationError):
            declarative.parse(Serve, ["-p", "0"])

    def testRequiredField(self):
        with self.assertRaises(MissingRequiredArgumentError):
            declarative.parse(Copy, [])
        self.assertEqual(declarative.parse(Copy, ["a.txt", "-f"]), Copy("a.txt", None, True))

    def testTrueDefaultFlag(self):
        self.assertTrue(declarative.parse(Build, ["--jobs", "2"]).cache)
        self.assertFalse(declarative.parse(Build, ["--jobs", "2", "--cache=false"]).cache)

    def testMultiplePositionals(self):
        record = declarative.parse(Build, ["--jobs", "4", "--dry-run", "a.c", "b.c"])
        self.assertEqual(record, Build(jobs=4, cache=True, dry_run=True, files=["a.c", "b.c"]))

    def testZeroValues(self):
        record = materialize(Bare, Context())
        self.assertEqual(record, Bare(name="", count=0, mode=Mode.FAST, names=(), rate=None))

    def testDefaultFactoryIsFresh(self):
        first, second = declarative.parse(Serve, []), declarative.parse(Serve, [])
        self.assertIsNot(first.tags, second.tags)


class TestUnparse(TestCase):
    """Token vectors that parse back into equal records."""

    def testDefaultsRoundTrip(self):
        tokens = unparse(Serve())
        self.assertIn("--host=localhost", tokens)
        self.assertNotIn("--verbose", tokens)
        self.assertNotIn("--tags=", tokens)
        self.assertEqual(declarative.parse(Serve, tokens), Serve())

    def testNamedValues(self):
        record = Serve(host="example.org", port=443, verbose=True, mode=Mode.FAST, label="edge", tags=["x", "y"])
        tokens = unparse(record)
        self.assertIn("--host=example.org", tokens)
        self.assertIn("--port=443", tokens)
        self.assertIn("--verbose", tokens)
        self.assertIn("--mode=FAST", tokens)
        self.assertEqual(declarative.parse(Serve, tokens), record)

    def testPositionalsFollowTerminator(self):
        record = Copy("-odd-name", "out", True)
        tokens = unparse(record)
        self.assertEqual(tokens[-3:], ["--", "-odd-name", "out"])
        self.assertEqual(declarative.parse(Copy, tokens), record)

    def testShortOnlyField(self):
        @dataclasses.dataclass
        class Tail:
            lines: int = argument(10, short="n", long=None)

        self.assertEqual(unparse(Tail(lines=3)), ["-n3"])
        self.assertEqual(declarative.parse(Tail, ["-n3"]), Tail(lines=3))

    def testFalseAgainstTrueDefault(self):
        record = Build(jobs=1, cache=False, files=["a", "b"])
        tokens = unparse(record)
        self.assertIn("--cache=false", tokens)
        self.assertEqual(declarative.parse(Build, tokens), record)

    def testEmptyValuesAgainstDefaults(self):
        @dataclasses.dataclass
        class Lint:
            rules: list[str] = argument(default_factory=lambda: ["style", "names"])
            prefix: str = argument("> ", short="p", long=None)

        record = Lint(rules=[], prefix="")
        tokens = unparse(record)
        self.assertEqual(tokens, ["--rules=", "-p", ""])
        self.assertEqual(declarative.parse(Lint, tokens), record)

    def testNamedMultipleRepeatsSwitch(self):
        @dataclasses.dataclass
        class Tag:
            labels: list[str] = argument(default_factory=list, multiple=True)

        record = Tag(labels=["a,b", "c"])
        tokens = unparse(record)
        self.assertEqual(tokens, ["--labels=a,b", "--labels=c"])
        self.assertEqual(declarative.parse(Tag, tokens), record)


if __name__ == "__main__":
    unittest.main()
