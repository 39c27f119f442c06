"""
Quiver validators: a small capability interface plus stock variants.

A validator receives one successfully coerced ArgValue and answers with a
Verdict. The parser runs validators after every token has been consumed;
the first rejection aborts the parse with a ValidationError carrying the
entry name and the verdict message.

Composition
- Chain(a, b, ...) or a & b: runs validators in order, first rejection wins.
- Any plain callable can be used where a validator is expected; it is wrapped
  in Predicate, and may return a bool, a Verdict, or a (bool, message) pair.

Arrays
- Stock validators inspect scalar payloads; given an ARRAY value they check
  every element and report the first failing one.
"""
import json
import re
import uuid
from abc import ABC, abstractmethod
from typing import NamedTuple
from urllib.parse import urlsplit

from .values import ArgType, ArgValue

EMAIL = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")


class Verdict(NamedTuple):
    ok: bool
    message: str = ""

    def __bool__(self):
        return self.ok

    @classmethod
    def accept(cls):
        return cls(True)

    @classmethod
    def reject(cls, message, /):
        return cls(False, message)


class Validator(ABC):
    """
    Capability interface: one method, validate(value) -> Verdict.
    """

    @abstractmethod
    def validate(self, value, /):
        raise NotImplementedError

    def __call__(self, value, /):
        return self.validate(value)

    def __and__(self, other):
        if not isinstance(other, Validator):
            if not callable(other):
                return NotImplemented
            other = Predicate(other)
        return Chain(self, other)

    def __repr__(self):
        return f"{type(self).__name__}()"


def validator(object, /):
    """
    Return object as a Validator, wrapping plain callables in Predicate.
    """
    if isinstance(object, Validator):
        return object
    if callable(object):
        return Predicate(object)
    raise TypeError("validator must be a Validator or a callable")


class Predicate(Validator):
    """
    Adapt a callable. The callable receives the ArgValue and may return a
    bool, a Verdict, or a (bool, message) pair.
    """

    def __init__(self, function, /, message="invalid value"):
        if not callable(function):
            raise TypeError("predicate must be callable")
        self.function = function
        self.message = message

    def validate(self, value, /):
        result = self.function(value)
        if isinstance(result, Verdict):
            return result
        if isinstance(result, tuple):
            ok, message = result
            return Verdict(bool(ok), message or ("" if ok else self.message))
        return Verdict.accept() if result else Verdict.reject(self.message)

    def __repr__(self):
        return f"Predicate({getattr(self.function, '__name__', self.function)!r})"


class Chain(Validator):
    def __init__(self, *validators):
        flattened = []
        for item in map(validator, validators):
            flattened.extend(item.validators if isinstance(item, Chain) else (item,))
        self.validators = tuple(flattened)

    def validate(self, value, /):
        for item in self.validators:
            if not (verdict := item.validate(value)):
                return verdict
        return Verdict.accept()

    def __repr__(self):
        return f"Chain({', '.join(map(repr, self.validators))})"


class ScalarValidator(Validator):
    """
    Base for stock validators: checks scalar payloads, arrays element-wise.
    """

    def validate(self, value, /):
        if value.type is ArgType.ARRAY:
            for position, element in enumerate(value.value, 1):
                if not (verdict := self.validate(element)):
                    return Verdict.reject(f"element {position}: {verdict.message}")
            return Verdict.accept()
        return self.check(value)

    @abstractmethod
    def check(self, value, /):
        raise NotImplementedError


class TextValidator(ScalarValidator):
    """
    Base for validators of textual payloads (STRING and ENUM); other tags are rejected.
    """

    def check(self, value, /):
        if value.type not in (ArgType.STRING, ArgType.ENUM):
            return Verdict.reject(f"expected text, got {value.type.value}")
        return self.check_text(value.value)

    @abstractmethod
    def check_text(self, text, /):
        raise NotImplementedError


class NonEmpty(ScalarValidator):
    def validate(self, value, /):
        if value.type is ArgType.ARRAY and not value.value:
            return Verdict.reject("value cannot be empty")
        return super().validate(value)

    def check(self, value, /):
        if isinstance(value.value, str) and not value.value.strip():
            return Verdict.reject("value cannot be empty")
        return Verdict.accept()


class Length(TextValidator):
    def __init__(self, min=0, max=None):
        if max is not None and max < min:
            raise ValueError("length 'max' must not be lower than 'min'")
        self.min = min
        self.max = max

    def check_text(self, text, /):
        size = len(text)
        if size < self.min:
            return Verdict.reject(f"must be at least {self.min} characters long")
        if self.max is not None and size > self.max:
            return Verdict.reject(f"must be at most {self.max} characters long")
        return Verdict.accept()

    def __repr__(self):
        return f"Length(min={self.min!r}, max={self.max!r})"


class Range(ScalarValidator):
    """
    Inclusive numeric bounds for INT and FLOAT values; either bound may be None.
    """

    def __init__(self, min=None, max=None):
        if min is not None and max is not None and max < min:
            raise ValueError("range 'max' must not be lower than 'min'")
        self.min = min
        self.max = max

    def check(self, value, /):
        if value.type not in (ArgType.INT, ArgType.FLOAT):
            return Verdict.reject(f"expected a number, got {value.type.value}")
        if self.min is not None and value.value < self.min:
            return Verdict.reject(f"must be at least {self.min}")
        if self.max is not None and value.value > self.max:
            return Verdict.reject(f"must be at most {self.max}")
        return Verdict.accept()

    def __repr__(self):
        return f"Range(min={self.min!r}, max={self.max!r})"


class OneOf(ScalarValidator):
    def __init__(self, *choices):
        if not choices:
            raise ValueError("one-of requires at least one choice")
        self.choices = choices

    def check(self, value, /):
        if value.value in self.choices:
            return Verdict.accept()
        return Verdict.reject(f"must be one of: {', '.join(map(str, self.choices))}")

    def __repr__(self):
        return f"OneOf({', '.join(map(repr, self.choices))})"


class Pattern(TextValidator):
    def __init__(self, pattern, /, message=None):
        self.pattern = re.compile(pattern)
        self.message = message

    def check_text(self, text, /):
        if self.pattern.fullmatch(text):
            return Verdict.accept()
        return Verdict.reject(self.message or f"must match {self.pattern.pattern!r}")

    def __repr__(self):
        return f"Pattern({self.pattern.pattern!r})"


class Email(TextValidator):
    def check_text(self, text, /):
        if EMAIL.fullmatch(text):
            return Verdict.accept()
        return Verdict.reject("must be an email address")


class Url(TextValidator):
    def __init__(self, schemes=("http", "https")):
        self.schemes = tuple(schemes)

    def check_text(self, text, /):
        try:
            parts = urlsplit(text)
        except ValueError:
            return Verdict.reject("must be a url")
        if parts.scheme not in self.schemes or not parts.netloc:
            return Verdict.reject(f"must be a url ({', '.join(self.schemes)})")
        return Verdict.accept()


class Port(ScalarValidator):
    def check(self, value, /):
        if value.type is not ArgType.INT or not 1 <= value.value <= 65535:
            return Verdict.reject("must be a port number between 1 and 65535")
        return Verdict.accept()


class Uuid(TextValidator):
    def check_text(self, text, /):
        try:
            uuid.UUID(text)
        except ValueError:
            return Verdict.reject("must be a uuid")
        return Verdict.accept()


class Json(TextValidator):
    def check_text(self, text, /):
        try:
            json.loads(text)
        except json.JSONDecodeError as error:
            return Verdict.reject(f"must be json ({error.msg.lower()})")
        return Verdict.accept()


def run(checker, value, /):
    """
    Run a validator against a value; plain callables are accepted too.
    """
    if not isinstance(value, ArgValue):
        raise TypeError("validators receive argument values")
    verdict = validator(checker).validate(value)
    if not isinstance(verdict, Verdict):
        raise TypeError("validate() must return a verdict")
    return verdict


__all__ = (
    "Verdict",
    "Validator",
    "Predicate",
    "Chain",
    "ScalarValidator",
    "TextValidator",
    "NonEmpty",
    "Length",
    "Range",
    "OneOf",
    "Pattern",
    "Email",
    "Url",
    "Port",
    "Uuid",
    "Json",
    "validator",
    "run",
)
