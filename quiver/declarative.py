"""
Quiver declarative reflection: dataclass records ⇄ command schemas and contexts.

Overview
- argument(...): dataclasses.field() with command-line metadata attached
  (help, short/long names, env variable, required, hidden, multiple, validator).
- describe(cls): the schema-description table for a record type, one FieldSchema
  per field, each with exactly one Kind taken from a single rule table.
- generate(cls): CommandSpec for the record; booleans become flags, every other
  field an argument named after the field ("dry_run" → "--dry-run").
- materialize(cls, context): rebuild a record from a Context.
- parse(cls, tokens): generate + Parser + materialize in one call.
- unparse(record): the token vector that parses back into an equal record.

Supported field types (Kind)
- str, str | None            → TEXT, OPTIONAL_TEXT
- int, int | None            → INTEGER, OPTIONAL_INTEGER
- float, float | None        → FLOAT, OPTIONAL_FLOAT
- bool                       → BOOLEAN
- list[str], tuple[str, ...] → TEXT_SEQUENCE
- Enum, Enum | None          → CHOICE, OPTIONAL_CHOICE (members by name)

Anything else is rejected with TypeError when the record is described.

Materialization, per field
1. the Context value (flags: the recorded flag state), else
2. the declared default (default_factory is called afresh), else
3. MissingRequiredArgumentError when the field is marked required, else
4. the kind's zero value ("", 0, 0.0, False, empty sequence, None, first member).

Example
    >>> @dataclasses.dataclass
    ... class Serve:
    ...     host: str = argument("localhost", help="bind address")
    ...     port: int = argument(8080, short="p")
    ...     verbose: bool = argument(False, short="v")
    >>> parse(Serve, ["-p", "9000", "-v"])
    Serve(host='localhost', port=9000, verbose=True)
"""
import dataclasses
import enum
import functools
import typing
from typing import NamedTuple

from .arguments import ArgumentSpec, FlagSpec
from .commands import CommandSpec
from .faults import InvalidEnumValueError, MissingRequiredArgumentError
from .parser import Parser
from .utils import Unset, coalesce, hyphenate
from .values import ArgType, ArgValue, coerce, infer, split_optional

METADATA = "quiver"


class Kind(enum.Enum):
    """
    Rule table: one schema representation and one reconstruction rule per kind.

    Each member carries (argument type, optional).
    """
    TEXT = (ArgType.STRING, False)
    OPTIONAL_TEXT = (ArgType.STRING, True)
    INTEGER = (ArgType.INT, False)
    OPTIONAL_INTEGER = (ArgType.INT, True)
    FLOAT = (ArgType.FLOAT, False)
    OPTIONAL_FLOAT = (ArgType.FLOAT, True)
    BOOLEAN = (ArgType.BOOL, False)
    TEXT_SEQUENCE = (ArgType.ARRAY, False)
    CHOICE = (ArgType.ENUM, False)
    OPTIONAL_CHOICE = (ArgType.ENUM, True)

    @property
    def argtype(self):
        return self.value[0]

    @property
    def optional(self):
        return self.value[1]

    @classmethod
    def of(cls, annotation, /):
        """
        Classify a field annotation; TypeError when unsupported.
        """
        inner, optional = split_optional(annotation)
        argtype = infer(inner)
        for kind in cls:
            if kind.value == (argtype, optional):
                return kind
        raise TypeError(f"unsupported field type: {annotation!r}")


def argument(
        default=dataclasses.MISSING,
        *,
        help="",
        short=Unset,
        long=Unset,
        env=Unset,
        required=False,
        hidden=False,
        multiple=False,
        validator=Unset,
        default_factory=dataclasses.MISSING,
):
    """
    Declare a record field with command-line metadata.

    - long=None drops the long spelling; with no short name either the field
      becomes positional.
    - multiple=True on a sequence field accumulates repeated values.
    """
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata={METADATA: dict(
            help=help,
            short=short,
            long=long,
            env=env,
            required=required,
            hidden=hidden,
            multiple=multiple,
            validator=validator,
        )},
    )


class FieldSchema(NamedTuple):
    name: str
    kind: Kind
    annotation: object
    choices: type | None
    sequence: type
    help: str
    short: str | None
    long: str | None
    env: str | None
    required: bool
    hidden: bool
    multiple: bool
    validator: object
    default: object
    factory: object

    @property
    def has_default(self):
        return self.default is not Unset or self.factory is not None

    def declared(self):
        """
        The declared default (factories are called each time).
        """
        if self.factory is not None:
            return self.factory()
        return self.default

    def zero(self):
        match self.kind:
            case Kind.TEXT:
                return ""
            case Kind.INTEGER:
                return 0
            case Kind.FLOAT:
                return 0.0
            case Kind.BOOLEAN:
                return False
            case Kind.TEXT_SEQUENCE:
                return self.sequence()
            case Kind.CHOICE:
                return next(iter(self.choices))
        return None

    def restore(self, value, /):
        """
        Turn an ArgValue back into the field's Python value.
        """
        match self.kind.argtype:
            case ArgType.STRING:
                return value.as_string()
            case ArgType.INT:
                return value.as_int()
            case ArgType.FLOAT:
                return value.as_float()
            case ArgType.BOOL:
                return value.as_bool()
            case ArgType.ARRAY:
                return self.sequence(element.as_string() for element in value.as_array())
            case ArgType.ENUM:
                try:
                    return self.choices[value.as_string()]
                except KeyError:
                    raise InvalidEnumValueError(
                        "%r is not a valid choice for %r" % (value.as_string(), self.name),
                        argument=self.name,
                        hint="choose one of: %s" % ", ".join(self.choices.__members__),
                    ) from None

    def render(self, value, /):
        """
        Turn the field's Python value into the text the parser coerces back.
        """
        match self.kind.argtype:
            case ArgType.ARRAY:
                return ",".join(value)
            case ArgType.ENUM:
                return value.name
            case ArgType.FLOAT:
                return repr(float(value))
            case ArgType.BOOL:
                return "true" if value else "false"
        return str(value)

    def convert(self, text, /):
        """
        Coerce raw text (environment values) with this field's rules.
        """
        return self.restore(coerce(self.kind.argtype, text))

    def wrap(self, value, /):
        """
        Schema default for a declared Python value, or None when not representable.
        """
        if value is None:
            return None
        try:
            if self.kind.argtype is ArgType.ARRAY:
                return ArgValue.array([ArgValue.string(item) for item in value])
            return ArgValue.of(self.kind.argtype, value)
        except (TypeError, ValueError):
            return None


@functools.cache
def describe(cls, /):
    """
    Build the schema-description table of a dataclass record type.
    """
    if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
        raise TypeError("describe() argument must be a dataclass type")

    hints = typing.get_type_hints(cls)
    table = []
    for field in dataclasses.fields(cls):
        if not field.init:
            continue
        annotation = hints[field.name]
        try:
            kind = Kind.of(annotation)
        except TypeError:
            raise TypeError(f"field {cls.__name__}.{field.name} has an unsupported type: {annotation!r}") from None

        inner, _ = split_optional(annotation)
        metadata = field.metadata.get(METADATA, {})
        short = coalesce(metadata.get("short", Unset))
        long = metadata.get("long", Unset)
        if long is Unset:
            long = field.name.replace("_", "-")
            if len(long) == 1:
                short, long = coalesce(short, long), None
        multiple = bool(metadata.get("multiple", False))
        if multiple and kind is not Kind.TEXT_SEQUENCE:
            raise TypeError(f"field {cls.__name__}.{field.name} is multiple but not a sequence")

        table.append(FieldSchema(
            name=field.name,
            kind=kind,
            annotation=annotation,
            choices=inner if kind.argtype is ArgType.ENUM else None,
            sequence=tuple if typing.get_origin(inner) is tuple else list,
            help=metadata.get("help", ""),
            short=short,
            long=long,
            env=coalesce(metadata.get("env", Unset)),
            required=bool(metadata.get("required", False)),
            hidden=bool(metadata.get("hidden", False)),
            multiple=multiple,
            validator=metadata.get("validator", Unset),
            default=field.default if field.default is not dataclasses.MISSING else Unset,
            factory=field.default_factory if field.default_factory is not dataclasses.MISSING else None,
        ))
    return tuple(table)


def generate(cls, /, *, name=Unset, about=Unset, long_about="", version=""):
    """
    Build the CommandSpec of a record type.

    The command is named after the class ("ServeConfig" → "serve-config") and
    described by the first line of its docstring unless told otherwise.
    """
    args, flags = [], []
    for field in describe(cls):
        default = field.declared() if field.has_default else None
        required = field.required and not field.has_default

        if field.kind is Kind.BOOLEAN:
            flags.append(FlagSpec(
                field.name,
                help=field.help,
                short=coalesce(field.short, Unset),
                long=coalesce(field.long, Unset),
                default=bool(default),
                required=required and not default,
                hidden=field.hidden,
                validator=field.validator,
                env=coalesce(field.env, Unset),
            ))
            continue

        args.append(ArgumentSpec(
            field.name,
            ArgType.STRING if field.multiple else field.kind.argtype,
            help=field.help,
            required=required,
            default=coalesce(field.wrap(default), Unset) if not field.multiple else Unset,
            short=coalesce(field.short, Unset),
            long=coalesce(field.long, Unset),
            multiple=field.multiple,
            hidden=field.hidden,
            validator=field.validator,
            choices=tuple(field.choices) if field.choices is not None else (),
            env=coalesce(field.env, Unset),
        ))

    if about is Unset:
        about = (cls.__doc__ or "").strip().partition("\n")[0]
        if about.startswith(cls.__name__ + "("):
            about = ""
    return CommandSpec(
        coalesce(name, hyphenate(cls.__name__)),
        about=about,
        long_about=long_about,
        version=version,
        args=args,
        flags=flags,
    )


def materialize(cls, context, /):
    """
    Rebuild a record from a Context, field by field.
    """
    values = {}
    for field in describe(cls):
        if field.kind is Kind.BOOLEAN and field.name in context.flags:
            values[field.name] = context.flags[field.name]
            continue
        value = context.get(field.name)

        if value is not None:
            values[field.name] = field.restore(value)
        elif field.has_default:
            values[field.name] = field.declared()
        elif field.required:
            raise MissingRequiredArgumentError(
                "missing required field %r" % field.name,
                argument=field.name,
                hint="pass it as --%s <value>" % field.long if field.long else "pass a value for %r" % field.name,
            )
        else:
            values[field.name] = field.zero()
    return cls(**values)


def parse(cls, tokens=Unset, /, **config):
    """
    Parse tokens straight into a record of type cls.

    Keyword arguments configure the Parser (require_subcommand, abbreviate, builtins, program).
    """
    return materialize(cls, Parser(**config).parse(generate(cls), tokens))


def _spell(field, text, /):
    if field.long is not None:
        return ["--%s=%s" % (field.long, text)]
    if text:
        return ["-%s%s" % (field.short, text)]
    return ["-" + field.short, ""]


def unparse(record, /):
    """
    Return the token vector describing record.

    Named fields are written as --long=value (or -svalue, "-s" "" for empty
    text), booleans as a bare switch (or --long=false against a true default)
    and multiple fields as one switch per element; positional fields follow a
    "--" terminator. An empty sequence is written as an empty value only when
    its default is not empty.

    Two values cannot be written back: None on a field whose default is not
    None, and an empty multiple field whose default is not empty. Sequence
    elements of non-multiple fields must not contain "," nor surrounding
    whitespace, as the parser splits and strips them.
    """
    cls = type(record)
    tokens, positionals = [], []
    for field in describe(cls):
        value = getattr(record, field.name)
        positional = field.long is None and field.short is None

        if field.kind is Kind.BOOLEAN:
            if value:
                tokens.append("--" + field.long if field.long else "-" + field.short)
            elif field.long and field.has_default and field.declared():
                tokens.append("--%s=false" % field.long)
            continue

        if value is None:
            continue

        if field.multiple:
            if positional:
                positionals.extend(value)
            else:
                for item in value:
                    tokens.extend(_spell(field, item))
            continue

        if field.kind is Kind.TEXT_SEQUENCE and not value and not (field.has_default and list(field.declared())):
            continue

        text = field.render(value)
        if positional:
            positionals.append(text)
        else:
            tokens.extend(_spell(field, text))

    return tokens + ["--"] + positionals if positionals else tokens


__all__ = (
    "Kind",
    "FieldSchema",
    "argument",
    "describe",
    "generate",
    "materialize",
    "parse",
    "unparse",
)
