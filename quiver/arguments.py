r"""
Quiver argument and flag specifications.

Overview
- Specs
  • ArgumentSpec: value-bearing input. Named when it has a short and/or long
    name (-o/--output), positional otherwise (filled by declared order).
  • FlagSpec: presence-only boolean switch (-v/--verbose); absent means False
    unless a default says otherwise.

- Builders
  • with_help, with_default, set_required, with_short, with_long, set_multiple,
    set_hidden, with_validator, with_choices, with_env (and set_inherited on flags).
  • Each builder returns a new, independent spec (copy.replace protocol); specs
    are never mutated once built, so a command tree can be shared freely.

- Introspection & representation
  • SchemaType metaclass provides stable __repr__/__rich_repr__ and exposes the
    fields declared in __introspectable__ as read-only properties.

Metadata (sanitized on construction)
- name: non-empty, no whitespace; unique within the owning command.
- short: Unset | single character, not "-" and not whitespace.
- long: Unset | two characters or more, starting with a letter or digit,
  without "=" or whitespace.
- default: Unset | ArgValue | native value wrapped under the entry's value type.
  A default implies the entry is not required; declaring both is an error.
- choices: closed set of accepted payloads (enum members are stored by name).
- validator: Unset | Validator | callable (wrapped in Predicate).

Quick example:
    >>> from quiver import ArgumentSpec, FlagSpec, ArgType
    >>> name = ArgumentSpec("name", short="n", required=True)
    >>> count = ArgumentSpec("count", ArgType.INT, long="count").with_default(1)
    >>> verbose = FlagSpec("verbose", short="v")
"""
import builtins
import copy
import difflib
import enum
import re

from .faults import InvalidEnumValueError
from .utils import *
from .validators import validator as as_validator
from .values import ArgType, ArgValue, coerce, infer


def _sanitize_name(cls, name, /):
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    if not (name := name.strip()) or re.search(r"\s", name):
        raise ValueError(f"{cls.__typename__} 'name' must be a non-empty word")
    return name


def _sanitize_switches(cls, short, long, /):
    """
    Internal: validate short/long spellings (given without leading dashes).
    """
    if not isinstance(short, str | Unset | None):
        raise TypeError(f"{cls.__typename__} 'short' must be a string")
    if isinstance(short, str) and (len(short) != 1 or short == "-" or short.isspace()):
        raise ValueError(f"{cls.__typename__} 'short' must be a single character other than '-'")

    if not isinstance(long, str | Unset | None):
        raise TypeError(f"{cls.__typename__} 'long' must be a string")
    if isinstance(long, str) and not re.fullmatch(r"[^\W_][^=\s]+", long):
        raise ValueError(
            f"{cls.__typename__} 'long' must have two characters or more, start with a letter or digit "
            "and contain no '=' or whitespace"
        )

    return coalesce(short), coalesce(long)


def _sanitize_env(cls, env, /):
    if not isinstance(env, str | Unset | None):
        raise TypeError(f"{cls.__typename__} 'env' must be a string")
    if isinstance(env, str) and not (env := env.strip()):
        raise ValueError(f"{cls.__typename__} 'env' cannot be empty")
    return coalesce(env)


def _sanitize_validator(cls, validator, /):
    if validator is Unset or validator is None:
        return None
    try:
        return as_validator(validator)
    except TypeError:
        raise TypeError(f"{cls.__typename__} 'validator' must be a validator or a callable") from None


class ArgumentSpec(metaclass=SchemaType):
    """
    Value-bearing argument specification.

    Properties
    - The names listed in __introspectable__ are exposed as read-only attributes
      on instances, mirroring the sanitized metadata values.
    - positional: True when neither a short nor a long name is declared.
    - valuetype: tag of the stored value (ARRAY for multiple entries).
    """

    __introspectable__ = (
        "name",
        "type",
        "help",
        "required",
        "default",
        "short",
        "long",
        "multiple",
        "hidden",
        "validator",
        "choices",
        "element",
        "env",
    )
    __displayable__ = (
        "name",
        "type",
        "required",
        "default",
        "short",
        "long",
        "multiple",
    )

    def __init__(
            self,
            name,
            type=ArgType.STRING,
            *,
            help="",
            required=False,
            default=Unset,
            short=Unset,
            long=Unset,
            multiple=False,
            hidden=False,
            validator=Unset,
            choices=(),
            element=ArgType.STRING,
            env=Unset,
    ):
        cls = builtins.type(self)
        self._name = _sanitize_name(cls, name)
        try:
            self._type = infer(type)
        except TypeError as error:
            raise TypeError(f"{cls.__typename__} {self._name!r}: {error}") from None
        if not isinstance(help, str):
            raise TypeError(f"{cls.__typename__} 'help' must be a string")
        self._help = help.strip()
        self._short, self._long = _sanitize_switches(cls, short, long)
        self._multiple = bool(multiple)
        self._hidden = bool(hidden)
        self._validator = _sanitize_validator(cls, validator)
        self._env = _sanitize_env(cls, env)

        if not isinstance(element, ArgType) or element is ArgType.ARRAY:
            raise TypeError(f"{cls.__typename__} 'element' must be a scalar argument type")
        self._element = element

        sanitized = []
        for choice in choices:
            if isinstance(choice, enum.Enum):
                choice = choice.name
            if choice in sanitized:
                raise ValueError(f"{cls.__typename__} 'choices' cannot contain duplicates")
            sanitized.append(choice)
        self._choices = tuple(sanitized)

        self._default = self._sanitize_default(default)
        if self._default is not None and (miss := self._unchosen(self._default)) is not None:
            raise ValueError(
                f"{cls.__typename__} {self._name!r} default {miss.value!r} is not one of its choices"
            )
        self._required = bool(required)
        if self._required and self._default is not None:
            raise ValueError(f"{cls.__typename__} {self._name!r} cannot be required and have a default")

    def _sanitize_default(self, default, /):
        if default is Unset or default is None:
            return None
        expected = self.valuetype
        element = self._element if self._type is ArgType.ARRAY else self._type
        if isinstance(default, ArgValue):
            if default.type is not expected and not (expected is ArgType.ENUM and default.type is ArgType.STRING):
                raise TypeError(
                    f"{type(self).__typename__} {self._name!r} default must be {expected.value}, "
                    f"not {default.type.value}"
                )
            if expected is ArgType.ARRAY:
                for item in default.value:
                    if item.type is not element and not (element is ArgType.ENUM and item.type is ArgType.STRING):
                        raise TypeError(
                            f"{type(self).__typename__} {self._name!r} default elements must be {element.value}, "
                            f"not {item.type.value}"
                        )
            return default
        if expected is ArgType.ARRAY:
            if isinstance(default, str):
                raise TypeError(f"{type(self).__typename__} {self._name!r} default must be a list of values, not a string")
            return ArgValue.array([ArgValue.of(element, item) for item in default])
        return ArgValue.of(expected, default)

    def _unchosen(self, value, /):
        """
        First payload of value outside the closed set, or None.
        """
        if not self._choices:
            return None
        for item in (value.value if value.type is ArgType.ARRAY else (value,)):
            if item.value not in self._choices:
                return item
        return None

    @property
    def positional(self):
        return self._short is None and self._long is None

    @property
    def valuetype(self):
        return ArgType.ARRAY if self._multiple else self._type

    @property
    def label(self):
        """
        How the entry is spelled on the command line, for messages.
        """
        if self._long is not None:
            return "--" + self._long
        if self._short is not None:
            return "-" + self._short
        return "<%s>" % self._name

    def matches(self, token, /):
        """
        Whether a switch name (without dashes) addresses this entry.

        A single character matches the short name only; anything longer matches
        the long name only.
        """
        if len(token) == 1:
            return self._short is not None and token == self._short
        return self._long is not None and token == self._long

    def parse(self, text, /):
        """
        Coerce one raw token and check it against the closed set, if any.

        Validators are not run here; the parser runs them once every token has
        been consumed.
        """
        value = coerce(self._type, text, element=self._element)
        if (item := self._unchosen(value)) is not None:
            suggestions = difflib.get_close_matches(str(item.value), list(map(str, self._choices)), 3)
            try:
                hint = "did you mean %r?" % suggestions[0]
            except IndexError:
                hint = "choose one of: %s" % ", ".join(map(str, self._choices))
            raise InvalidEnumValueError(
                "%r is not a valid choice for %s" % (item.value, self.label),
                argument=self._name,
                token=text,
                suggestions=suggestions,
                hint=hint,
            )
        return value

    def __replace__(self, **changes):
        fields = {name: getattr(self, "_" + name) for name in type(self).__introspectable__}
        return type(self)(**fields | changes)

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return all(
            getattr(self, "_" + name) == getattr(other, "_" + name)
            for name in type(self).__introspectable__
        )

    def __hash__(self):
        return hash((type(self), self._name))

    def with_help(self, help, /):
        return copy.replace(self, help=help)

    def with_default(self, default, /):
        return copy.replace(self, default=default, required=False)

    def set_required(self, required=True, /):
        if required:
            return copy.replace(self, required=True, default=None)
        return copy.replace(self, required=False)

    def with_short(self, short, /):
        return copy.replace(self, short=short)

    def with_long(self, long, /):
        return copy.replace(self, long=long)

    def set_multiple(self, multiple=True, /):
        """
        Toggle repetition. A scalar default becomes a one-element array default;
        turning repetition off while an array default is set is an error.
        """
        default = self._default
        if default is not None and multiple and default.type is not ArgType.ARRAY:
            default = ArgValue.array([default])
        elif default is not None and not multiple and self._type is not ArgType.ARRAY and default.type is ArgType.ARRAY:
            raise ValueError(f"{type(self).__typename__} {self._name!r} cannot drop multiple while it has an array default")
        return copy.replace(self, multiple=multiple, default=default)

    def set_hidden(self, hidden=True, /):
        return copy.replace(self, hidden=hidden)

    def with_validator(self, validator, /):
        return copy.replace(self, validator=validator)

    def with_choices(self, *choices):
        return copy.replace(self, choices=choices)

    def with_env(self, env, /):
        return copy.replace(self, env=env)


class FlagSpec(metaclass=SchemaType):
    """
    Presence-only boolean switch.

    A flag declared with neither a short nor a long name answers to its own
    name as long name. Inherited flags, declared on a command, are matched in
    every descendant of that command as well.
    """

    __introspectable__ = (
        "name",
        "help",
        "short",
        "long",
        "default",
        "required",
        "hidden",
        "validator",
        "inherited",
        "env",
    )
    __displayable__ = (
        "name",
        "short",
        "long",
        "default",
        "inherited",
    )

    def __init__(
            self,
            name,
            *,
            help="",
            short=Unset,
            long=Unset,
            default=False,
            required=False,
            hidden=False,
            validator=Unset,
            inherited=False,
            env=Unset,
    ):
        cls = builtins.type(self)
        self._name = _sanitize_name(cls, name)
        if not isinstance(help, str):
            raise TypeError(f"{cls.__typename__} 'help' must be a string")
        self._help = help.strip()
        if short is Unset and long is Unset:
            if len(self._name) == 1:
                short = self._name
            else:
                long = self._name
        self._short, self._long = _sanitize_switches(cls, short, long)
        if self._short is None and self._long is None:
            raise ValueError(f"{cls.__typename__} {self._name!r} must have a short or a long name")
        if isinstance(default, ArgValue):
            default = default.as_bool()
        if not isinstance(default, bool):
            raise TypeError(f"{cls.__typename__} 'default' must be a bool")
        self._default = default
        self._required = bool(required)
        if self._required and self._default:
            raise ValueError(f"{cls.__typename__} {self._name!r} cannot be required and default to true")
        self._hidden = bool(hidden)
        self._validator = _sanitize_validator(cls, validator)
        self._inherited = bool(inherited)
        self._env = _sanitize_env(cls, env)

    type = ArgType.BOOL
    valuetype = ArgType.BOOL
    positional = False
    multiple = False

    @property
    def label(self):
        return "--" + self._long if self._long is not None else "-" + self._short

    def matches(self, token, /):
        if len(token) == 1:
            return self._short is not None and token == self._short
        return self._long is not None and token == self._long

    def parse(self, text, /):
        return coerce(ArgType.BOOL, text)

    def __replace__(self, **changes):
        fields = {name: getattr(self, "_" + name) for name in type(self).__introspectable__}
        return type(self)(**fields | changes)

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return all(
            getattr(self, "_" + name) == getattr(other, "_" + name)
            for name in type(self).__introspectable__
        )

    def __hash__(self):
        return hash((type(self), self._name))

    def with_help(self, help, /):
        return copy.replace(self, help=help)

    def with_default(self, default, /):
        return copy.replace(self, default=default, required=False)

    def set_required(self, required=True, /):
        if required:
            return copy.replace(self, required=True, default=False)
        return copy.replace(self, required=False)

    def with_short(self, short, /):
        return copy.replace(self, short=short)

    def with_long(self, long, /):
        return copy.replace(self, long=long)

    def set_hidden(self, hidden=True, /):
        return copy.replace(self, hidden=hidden)

    def with_validator(self, validator, /):
        return copy.replace(self, validator=validator)

    def with_env(self, env, /):
        return copy.replace(self, env=env)

    def set_inherited(self, inherited=True, /):
        return copy.replace(self, inherited=inherited)


__all__ = (
    "ArgumentSpec",
    "FlagSpec",
)
