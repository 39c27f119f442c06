"""
Quiver value model: argument types, tagged values, inference and coercion.

Overview
- ArgType
  • Closed set of argument types: STRING, INT, FLOAT, BOOL, ENUM, ARRAY.

- ArgValue
  • Immutable tagged value (type, value). The payload always matches the tag:
    str for STRING/ENUM, int for INT (64-bit signed range), float for FLOAT,
    bool for BOOL and a tuple of ArgValue for ARRAY.
  • Typed accessors (as_string, as_int, ...) raise TypeError on a tag mismatch;
    asking for the wrong type is a programming error, not a user error.

- infer(descriptor)
  • Maps a Python type descriptor to an ArgType at schema-build time.

- coerce(type, text, element=ArgType.STRING)
  • Turns one raw token into an ArgValue. Pure: no I/O, no global state.

Coercion rules
- BOOL: "true"/"1"/"yes" → True, "false"/"0"/"no" → False (case sensitive).
- INT: base-10 integer within [-2**63, 2**63).
- FLOAT: standard float syntax.
- ENUM: raw text kept verbatim; closed sets are checked by the owning spec.
- ARRAY: split on ",", strip each element, drop empty ones, coerce each
  element with the element type (STRING unless told otherwise).
"""
import enum
import types
import typing
from collections.abc import Sequence
from typing import NamedTuple

from .faults import InvalidBoolValueError, InvalidFloatValueError, InvalidIntValueError

INT_MIN = -2 ** 63
INT_MAX = 2 ** 63 - 1

TRUTHY = frozenset({"true", "1", "yes"})
FALSY = frozenset({"false", "0", "no"})


class ArgType(enum.Enum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    ENUM = "enum"
    ARRAY = "array"

    def __repr__(self):
        return f"ArgType.{self.name}"


class ArgValue(NamedTuple):
    """
    Tagged value holding exactly one coerced argument.

    Build instances through the factories (ArgValue.string("x"), ArgValue.int(5), ...)
    or ArgValue.of(type, value); they check that the payload fits the tag.
    """
    type: ArgType
    value: object

    @classmethod
    def string(cls, value, /):
        if not isinstance(value, str):
            raise TypeError("string value must be a str")
        return cls(ArgType.STRING, value)

    @classmethod
    def int(cls, value, /):
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError("int value must be an int")
        if not INT_MIN <= value <= INT_MAX:
            raise ValueError("int value must fit in 64 bits")
        return cls(ArgType.INT, value)

    @classmethod
    def float(cls, value, /):
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise TypeError("float value must be a number")
        return cls(ArgType.FLOAT, float(value))

    @classmethod
    def bool(cls, value, /):
        if not isinstance(value, bool):
            raise TypeError("bool value must be a bool")
        return cls(ArgType.BOOL, value)

    @classmethod
    def enum(cls, value, /):
        if isinstance(value, enum.Enum):
            value = value.name
        if not isinstance(value, str):
            raise TypeError("enum value must be a str or an enum member")
        return cls(ArgType.ENUM, value)

    @classmethod
    def array(cls, values=(), /):
        elements = []
        for value in values:
            value = ArgValue.wrap(value)
            if value.type is ArgType.ARRAY:
                raise TypeError("array values cannot be nested")
            elements.append(value)
        return cls(ArgType.ARRAY, tuple(elements))

    @classmethod
    def of(cls, type, value, /):
        """
        Wrap a native Python value under an explicit tag.
        """
        match type:
            case ArgType.STRING:
                return cls.string(value)
            case ArgType.INT:
                return cls.int(value)
            case ArgType.FLOAT:
                return cls.float(value)
            case ArgType.BOOL:
                return cls.bool(value)
            case ArgType.ENUM:
                return cls.enum(value)
            case ArgType.ARRAY:
                return cls.array(value)
        raise TypeError(f"unknown argument type: {type!r}")

    @classmethod
    def wrap(cls, value, /):
        """
        Wrap a native Python value, picking the tag from its Python type.
        """
        if isinstance(value, ArgValue):
            return value
        if isinstance(value, bool):
            return cls.bool(value)
        if isinstance(value, int):
            return cls.int(value)
        if isinstance(value, float):
            return cls.float(value)
        if isinstance(value, enum.Enum):
            return cls.enum(value)
        if isinstance(value, str):
            return cls.string(value)
        if isinstance(value, list | tuple):
            return cls.array(value)
        raise TypeError(f"cannot wrap {type(value).__name__!r} as an argument value")

    def _expect(self, *types):
        if self.type not in types:
            raise TypeError(f"argument value is {self.type.value}, not {types[0].value}")
        return self.value

    def as_string(self):
        return self._expect(ArgType.STRING, ArgType.ENUM)

    def as_int(self):
        return self._expect(ArgType.INT)

    def as_float(self):
        return self._expect(ArgType.FLOAT)

    def as_bool(self):
        return self._expect(ArgType.BOOL)

    def as_array(self):
        return self._expect(ArgType.ARRAY)

    def unwrap(self):
        """
        Return the plain Python payload; arrays become lists of payloads.
        """
        if self.type is ArgType.ARRAY:
            return [element.unwrap() for element in self.value]
        return self.value

    def __str__(self):
        if self.type is ArgType.ARRAY:
            return ",".join(map(str, self.value))
        if self.type is ArgType.BOOL:
            return "true" if self.value else "false"
        if self.type is ArgType.FLOAT:
            return repr(self.value)
        return str(self.value)


def split_optional(descriptor, /):
    """
    Split X | None (or Optional[X]) into (X, True); anything else into (descriptor, False).
    """
    if typing.get_origin(descriptor) in (typing.Union, types.UnionType):
        members = [member for member in typing.get_args(descriptor) if member is not type(None)]
        if len(members) == 1:
            return members[0], True
    return descriptor, False


def infer(descriptor, /):
    """
    Map a Python type descriptor to its ArgType.

    - ArgType                              → itself
    - bool                                 → BOOL (checked before int)
    - int                                  → INT
    - float                                → FLOAT
    - enum.Enum subclass                   → ENUM
    - str                                  → STRING
    - list[str] / tuple[str, ...] / Sequence[str] → ARRAY
    - X | None                             → infer(X)

    Raises TypeError for anything else.
    """
    if isinstance(descriptor, ArgType):
        return descriptor

    descriptor, _ = split_optional(descriptor)

    if descriptor is bool:
        return ArgType.BOOL
    if descriptor is int:
        return ArgType.INT
    if descriptor is float:
        return ArgType.FLOAT
    if isinstance(descriptor, type) and issubclass(descriptor, enum.Enum):
        return ArgType.ENUM
    if descriptor is str:
        return ArgType.STRING

    origin = typing.get_origin(descriptor)
    arguments = typing.get_args(descriptor)
    if origin in (list, Sequence) and arguments == (str,):
        return ArgType.ARRAY
    if origin is tuple and arguments == (str, ...):
        return ArgType.ARRAY

    raise TypeError(f"unsupported argument type: {descriptor!r}")


def coerce(type, text, /, element=ArgType.STRING):
    """
    Coerce one raw token into an ArgValue of the requested type.

    Raises InvalidBoolValueError, InvalidIntValueError or InvalidFloatValueError
    when the text does not parse; the parser decorates these with the position
    of the offending token.
    """
    if not isinstance(text, str):
        raise TypeError("coerce() text must be a string")

    match type:
        case ArgType.STRING:
            return ArgValue(ArgType.STRING, text)
        case ArgType.ENUM:
            return ArgValue(ArgType.ENUM, text)
        case ArgType.BOOL:
            if text in TRUTHY:
                return ArgValue(ArgType.BOOL, True)
            if text in FALSY:
                return ArgValue(ArgType.BOOL, False)
            raise InvalidBoolValueError(
                f"{text!r} is not a boolean",
                token=text,
                hint="use one of: true, false, yes, no, 1, 0",
            )
        case ArgType.INT:
            try:
                value = int(text, 10)
            except ValueError:
                raise InvalidIntValueError(f"{text!r} is not an integer", token=text) from None
            if not INT_MIN <= value <= INT_MAX:
                raise InvalidIntValueError(
                    f"{text!r} does not fit in a 64-bit integer",
                    token=text,
                    hint=f"use a value between {INT_MIN} and {INT_MAX}",
                )
            return ArgValue(ArgType.INT, value)
        case ArgType.FLOAT:
            try:
                return ArgValue(ArgType.FLOAT, float(text))
            except ValueError:
                raise InvalidFloatValueError(f"{text!r} is not a number", token=text) from None
        case ArgType.ARRAY:
            if element is ArgType.ARRAY:
                raise TypeError("array elements cannot be arrays")
            return ArgValue(ArgType.ARRAY, tuple(
                coerce(element, piece) for piece in map(str.strip, text.split(",")) if piece
            ))

    raise TypeError(f"unknown argument type: {type!r}")


__all__ = (
    "ArgType",
    "ArgValue",
    "infer",
    "coerce",
    "split_optional",
)
