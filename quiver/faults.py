"""
Quiver faults (errors and control-flow signals) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
  Codes are grouped by domain to keep copy consistent and make logs/searches predictable.
- CommandException: base type that carries message + options and knows how to
  render itself in a friendly, lowercased, and actionable way.
- CommandSignal: base type for the help/version sentinels; they are not failures.
- trigger(): central entry point to surface any fault (respecting shell/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

UX goals
- Position-first messages: parser faults include the ordinal position of the
  offending token so users can learn by trying (“at third position”, etc.).
- Soft but technical language: short titles, one-sentence bodies, a single clear hint.

Integration
- The parser raises faults directly (fail-fast); no partial result escapes.
- invoke() calls trigger(fault, shell=...): in non-shell mode the fault is raised,
  in shell mode it is rendered via rich and the process exits.
"""
import copy
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, coalesce

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the cli (stable identifiers).

    grouping (by high-level domain)
    - malformed input (111xx)
      • INVALID_ARGUMENT, UNKNOWN_FLAG, INVALID_FLAG_VALUE, TOO_MANY_ARGUMENTS,
        TOO_FEW_ARGUMENTS
    - type coercion (112xx)
      • INVALID_BOOL_VALUE, INVALID_INT_VALUE, INVALID_FLOAT_VALUE, INVALID_ENUM_VALUE
    - structural (113xx)
      • MISSING_REQUIRED_ARGUMENT, UNKNOWN_COMMAND, MISSING_SUBCOMMAND, AMBIGUOUS_COMMAND
    - semantic (114xx)
      • VALIDATION_ERROR
    - host/environment (115xx)
      • INPUT_OUTPUT_ERROR, CONFIG_ERROR
    - signals (190xx), not failures
      • HELP_REQUESTED, VERSION_REQUESTED

    rationale
    - codes are discoverable (searchable in logs and docs) and normalized to a string
      via normalize() so hosts can remap them if desired (e.g., to shorter labels).
    """
    # --- malformed input (111xx) ---
    INVALID_ARGUMENT            = 11101
    UNKNOWN_FLAG                = 11102
    INVALID_FLAG_VALUE          = 11103
    TOO_MANY_ARGUMENTS          = 11104
    TOO_FEW_ARGUMENTS           = 11105

    # --- type coercion (112xx) ---
    INVALID_BOOL_VALUE          = 11201
    INVALID_INT_VALUE           = 11202
    INVALID_FLOAT_VALUE         = 11203
    INVALID_ENUM_VALUE          = 11204

    # --- structural (113xx) ---
    MISSING_REQUIRED_ARGUMENT   = 11301
    UNKNOWN_COMMAND             = 11302
    MISSING_SUBCOMMAND          = 11303
    AMBIGUOUS_COMMAND           = 11304

    # --- semantic (114xx) ---
    VALIDATION_ERROR            = 11401

    # --- host/environment (115xx) ---
    INPUT_OUTPUT_ERROR          = 11501
    CONFIG_ERROR                = 11502

    # --- signals (190xx) ---
    HELP_REQUESTED              = 19001
    VERSION_REQUESTED           = 19002

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _render(fault, header_styles):
    """
    shared rich rendering for faults: a header, the message, a hint line and
    the documentation footer when one is known.
    """
    main = __import__("__main__")
    options = fault.options

    styles = defaultdict(str, header_styles | getattr(main, "__styles__", {}))
    colorful = options.get("colorful", True)
    fancy = options.get("fancy", False)

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    tool = options.get("tool")
    prog = text(getattr(main, "__prog__", getattr(tool, "name", "quiver")), styler("prog-name"))

    header = Text.assemble(
        "[ ",
        prog,
        " — ",
        text(fault.code.normalize(), styler("code")),
        " | ",
        text(fault.title.title(), styler("title")),
        " ]"
    )
    message = text(fault.message, styler("message"))
    parts = [message]
    if fault.hint:
        parts.append(Text.assemble(text(" → ", styler("hint-arrow")), text(fault.hint, styler("hint"))))
    if fault.docs:
        parts.append(text(fault.docs, styler("exit-docs")))

    if fancy:
        return Panel(Group(*parts), title=header, title_align="left")
    return Group(header, *parts)


class CommandException(Exception):
    """
    base class for every parse/reflection/layering failure.

    options (all optional, surfaced as read-only properties)
    - code: FaultCode, defaults to the class-level __code__
    - title: short lowercase title for the header
    - hint: a single actionable sentence
    - argument: the schema entry name involved, when any
    - token: the raw token involved, when any
    - index: 1-based position of the token in the stream, when known
    - docs: longer description, defaults to getdoc(code)
    - rendering switches: tool, shell, fancy, colorful
    """
    __code__ = FaultCode.INVALID_ARGUMENT
    __title__ = "invalid argument"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = coalesce(message, "")
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code", type(self).__code__)

    @property
    def title(self):
        return self.options.get("title", type(self).__title__)

    @property
    def hint(self):
        return self.options.get("hint")

    @property
    def argument(self):
        return self.options.get("argument")

    @property
    def token(self):
        return self.options.get("token")

    @property
    def index(self):
        return self.options.get("index")

    @property
    def docs(self):
        return self.options.get("docs", getdoc(self.code))

    def __str__(self):
        return self.message

    def __rich__(self):
        return _render(self, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "title": "bold #FF4DA6",  # friendly pinky title

            # body
            "message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text

            # footer
            "exit-docs": "underline #00E5FF dim",  # host-provided documentation line
        })

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, message=Unset, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(coalesce(message, self.message), **{**self.options, **overrides})


class InvalidArgumentError(CommandException): ...


class UnknownFlagError(CommandException):
    __code__ = FaultCode.UNKNOWN_FLAG
    __title__ = "unknown flag"


class InvalidFlagValueError(CommandException):
    __code__ = FaultCode.INVALID_FLAG_VALUE
    __title__ = "invalid flag value"


class TooManyArgumentsError(CommandException):
    __code__ = FaultCode.TOO_MANY_ARGUMENTS
    __title__ = "too many arguments"


class TooFewArgumentsError(CommandException):
    __code__ = FaultCode.TOO_FEW_ARGUMENTS
    __title__ = "missing value"


class InvalidBoolValueError(CommandException):
    __code__ = FaultCode.INVALID_BOOL_VALUE
    __title__ = "invalid boolean"


class InvalidIntValueError(CommandException):
    __code__ = FaultCode.INVALID_INT_VALUE
    __title__ = "invalid integer"


class InvalidFloatValueError(CommandException):
    __code__ = FaultCode.INVALID_FLOAT_VALUE
    __title__ = "invalid number"


class InvalidEnumValueError(CommandException):
    __code__ = FaultCode.INVALID_ENUM_VALUE
    __title__ = "invalid choice"


class MissingRequiredArgumentError(CommandException):
    __code__ = FaultCode.MISSING_REQUIRED_ARGUMENT
    __title__ = "missing argument"


class UnknownCommandError(CommandException):
    __code__ = FaultCode.UNKNOWN_COMMAND
    __title__ = "unknown command"


class MissingSubcommandError(CommandException):
    __code__ = FaultCode.MISSING_SUBCOMMAND
    __title__ = "missing subcommand"


class AmbiguousCommandError(CommandException):
    __code__ = FaultCode.AMBIGUOUS_COMMAND
    __title__ = "ambiguous command"


class ValidationError(CommandException):
    """
    a validator rejected a successfully coerced value.

    carries the argument/flag name (``argument``) and the validator's own
    message (``reason``); ``message`` is the full user-facing sentence.
    """
    __code__ = FaultCode.VALIDATION_ERROR
    __title__ = "validation failed"

    @property
    def reason(self):
        return self.options.get("reason", self.message)


class InputOutputError(CommandException):
    __code__ = FaultCode.INPUT_OUTPUT_ERROR
    __title__ = "input/output error"


class ConfigError(CommandException):
    __code__ = FaultCode.CONFIG_ERROR
    __title__ = "configuration error"


class CommandSignal(Exception):
    """
    base class for control-flow sentinels (help/version).

    signals are not failures: the driver prints static text taken from the
    command in scope (``command`` option) and exits successfully.
    """
    __code__ = FaultCode.HELP_REQUESTED

    def __init__(self, message=Unset, /, **options):
        super().__init__(coalesce(message, ""))
        self.message = coalesce(message, "")
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return type(self).__code__

    @property
    def command(self):
        return self.options.get("command")

    def __rich__(self):
        return Text(self.message)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        if self.message:
            console.file = sys.stdout
            try:
                console.print(self)
            finally:
                console.file = sys.stderr
        sys.exit(0)

    def __replace__(self, *unused, message=Unset, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(coalesce(message, self.message), **{**self.options, **overrides})


class HelpRequested(CommandSignal):
    __code__ = FaultCode.HELP_REQUESTED


class VersionRequested(CommandSignal):
    __code__ = FaultCode.VERSION_REQUESTED


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering.
    - in shell mode, rendering happens via rich console; otherwise, exceptions are raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings.
    when not found, returns None (renderers treat docs as optional).
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be an fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "FaultCode",
    "CommandException",
    "InvalidArgumentError",
    "UnknownFlagError",
    "InvalidFlagValueError",
    "TooManyArgumentsError",
    "TooFewArgumentsError",
    "InvalidBoolValueError",
    "InvalidIntValueError",
    "InvalidFloatValueError",
    "InvalidEnumValueError",
    "MissingRequiredArgumentError",
    "UnknownCommandError",
    "MissingSubcommandError",
    "AmbiguousCommandError",
    "ValidationError",
    "InputOutputError",
    "ConfigError",
    "CommandSignal",
    "HelpRequested",
    "VersionRequested",
    "trigger",
    "getdoc",
)
