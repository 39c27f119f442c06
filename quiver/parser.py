"""
Quiver parser: turns a token vector into a Context against a command tree.

Overview
- Parser(require_subcommand=False, abbreviate=False, builtins=True, program=False)
  holds the configuration only; every parse() call works on its own private state, so a
  single Parser (and a single command tree) can serve concurrent parses.

Token grammar
- "--name", "--name=value": long switch; a value-bearing entry without "=value"
  takes the following token.
- "-x", "-xvalue", "-vdx": short switch or cluster; flags in a cluster are set
  one by one and the first value-bearing entry takes the rest of the token, or
  the following token when nothing is left.
- "--": ends switch parsing; every later token is positional.
- anything else: subcommand name first (when the node declares children), then
  the next free positional slot.

Tie rules
- A token that exactly matches a switch in scope is never consumed as the
  value of a preceding entry; that entry fails with TooFewArgumentsError.
- Array values are split on "," inside one token only.
- Unknown dash-led tokens never fall back to positional assignment.

Finalization (over every node of the selected path, root first)
- missing required entries → MissingRequiredArgumentError;
- unsupplied entries with a default receive it, flags default to their declared bool;
- validators run once per supplied value, first rejection → ValidationError;
- a terminal node with children, no handler and no selection is a
  MissingSubcommandError when require_subcommand is on.

Messages are position-first: "unknown flag '--bogus' at first position".
"""
import copy
import difflib
import logging
import sys
from collections import deque
from collections.abc import Iterable

from .arguments import FlagSpec
from .context import Context
from .faults import *
from .utils import Unset, ordinal
from .validators import run
from .values import ArgType, ArgValue

logger = logging.getLogger(__name__)

COERCION_FAULTS = (
    InvalidBoolValueError,
    InvalidIntValueError,
    InvalidFloatValueError,
    InvalidEnumValueError,
)


class _State:
    """
    Per-call parse state; never shared between calls.
    """

    def __init__(self, command, tokens):
        self.raw = tuple(tokens)
        self.tokens = deque(tokens)
        self.index = 0
        self.nodes = [command]
        self.path = []
        self.values = {}
        self.flags = {}
        self.positionals = []
        self.pending = []
        self.slot = 0
        self.terminated = False

    @property
    def node(self):
        return self.nodes[-1]

    @property
    def route(self):
        return " ".join(node.name for node in self.nodes)

    def next(self):
        self.index += 1
        return self.tokens.popleft()


class Parser:
    """
    Configured parser.

    Options
    - require_subcommand: a terminal node that declares subcommands but has no
      handler must be followed by one of them.
    - abbreviate: a unique prefix of a subcommand name (or alias) selects it;
      a prefix shared by several children is an AmbiguousCommandError.
    - builtins: answer --help/-h and --version/-V with HelpRequested and
      VersionRequested unless the command declares those spellings itself.
    - program: the first token is the program name and is dropped; with tokens
      omitted the whole of sys.argv is read.
    """

    def __init__(self, *, require_subcommand=False, abbreviate=False, builtins=True, program=False):
        self.require_subcommand = bool(require_subcommand)
        self.abbreviate = bool(abbreviate)
        self.builtins = bool(builtins)
        self.program = bool(program)

    def __repr__(self):
        return "parser(require_subcommand=%r, abbreviate=%r, builtins=%r, program=%r)" % (
            self.require_subcommand, self.abbreviate, self.builtins, self.program
        )

    def parse(self, command, tokens=Unset, /):
        """
        Parse tokens (sys.argv when omitted, without its first item unless
        program is on) against command.

        Returns a fresh Context; raises the first fault met, and never exposes
        a partial result.
        """
        if tokens is Unset:
            tokens = sys.argv if self.program else sys.argv[1:]
        if isinstance(tokens, str) or not isinstance(tokens, Iterable):
            raise TypeError("parse() tokens must be an iterable of strings")
        tokens = list(tokens)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("parse() tokens must be an iterable of strings")

        state = _State(command, tokens)
        logger.debug("parsing %d token(s) against %r", len(tokens), command.name)

        if self.program and state.tokens:
            state.next()

        while state.tokens:
            token = state.next()

            if state.terminated:
                self._positional(state, token)
            elif token == "--":
                state.terminated = True
            elif token.startswith("--"):
                self._long(state, token)
            elif token.startswith("-") and token != "-":
                self._short(state, token)
            else:
                self._bare(state, token)

        self._finalize(state)

        context = Context(
            values=state.values,
            flags=state.flags,
            positionals=state.positionals,
            path=state.path,
            raw=state.raw,
        )
        logger.debug("parsed %r: %r", state.route, context)
        return context

    # --- lookup ---

    def _lookup(self, state, name, /):
        """
        Find the entry a switch name addresses: the current node first, then
        inherited flags of its ancestors, nearest first.
        """
        for entry in state.node.entries:
            if entry.matches(name):
                return entry
        for ancestor in reversed(state.nodes[:-1]):
            for flag in ancestor.flags:
                if flag.inherited and flag.matches(name):
                    return flag
        return None

    def _spellings(self, state, /):
        spellings = []
        for entry in state.node.entries:
            spellings.extend(filter(None, (
                entry.long and "--" + entry.long,
                entry.short and "-" + entry.short,
            )))
        for ancestor in state.nodes[:-1]:
            for flag in ancestor.flags:
                if flag.inherited:
                    spellings.extend(filter(None, (flag.long and "--" + flag.long, flag.short and "-" + flag.short)))
        return spellings

    def _blocks(self, state, token, /):
        """
        Whether token must not be consumed as a value: "--" or an exact switch in scope.
        """
        if token == "--":
            return True
        if token.startswith("--"):
            name = token[2:].partition("=")[0]
        elif token.startswith("-") and len(token) == 2:
            name = token[1]
        else:
            return False
        return bool(name) and (self._lookup(state, name) is not None or self._builtin(name) is not None)

    def _builtin(self, name, /):
        if not self.builtins:
            return None
        return {"help": HelpRequested, "h": HelpRequested, "version": VersionRequested, "V": VersionRequested}.get(name)

    # --- signals ---

    def _signal(self, state, signal, /):
        if signal is HelpRequested:
            node = state.node
            text = "\n\n".join(filter(None, (node.usage, node.long_about or node.about))) or state.route
            raise HelpRequested(text, command=node, path=tuple(state.path))
        for node in reversed(state.nodes):
            if node.version:
                raise VersionRequested("%s %s" % (state.nodes[0].name, node.version), command=node, path=tuple(state.path))
        raise VersionRequested(state.nodes[0].name, command=state.node, path=tuple(state.path))

    def _unknown(self, state, spelled, /):
        suggestions = difflib.get_close_matches(spelled, self._spellings(state), 5)
        try:
            hint = "did you mean %r? you can also run '%s --help' to see all options" % (suggestions[0], state.route)
        except IndexError:
            hint = "try '%s --help' to see all available options" % state.route
        return UnknownFlagError(
            "unknown flag %r at %s position" % (spelled, ordinal(state.index)),
            token=spelled,
            index=state.index,
            suggestions=suggestions,
            hint=hint,
            docs=getdoc(FaultCode.UNKNOWN_FLAG),
        )

    # --- switches ---

    def _long(self, state, token, /):
        name, separator, value = token[2:].partition("=")
        if not name:
            raise InvalidArgumentError(
                "missing option name in %r at %s position" % (token, ordinal(state.index)),
                token=token,
                index=state.index,
                hint="write options as --name or --name=value",
            )

        if (entry := self._lookup(state, name)) is None:
            if (signal := self._builtin(name)) is not None and len(name) > 1:
                self._signal(state, signal)
            raise self._unknown(state, "--" + name)

        index = state.index
        if isinstance(entry, FlagSpec):
            if not separator:
                return self._flag(state, entry, True, index)
            try:
                flag = entry.parse(value).value
            except InvalidBoolValueError:
                raise InvalidFlagValueError(
                    "flag %s does not take %r at %s position" % (entry.label, value, ordinal(index)),
                    argument=entry.name,
                    token=token,
                    index=index,
                    hint="flags accept true/false, yes/no or 1/0 after '=' (for example: %s=false)" % entry.label,
                ) from None
            return self._flag(state, entry, flag, index)

        if not separator:
            value = self._take(state, entry, token)
        self._store(state, entry, value, index)

    def _short(self, state, token, /):
        index = state.index
        cluster = token[1:]
        for position, char in enumerate(cluster):
            if (entry := self._lookup(state, char)) is None:
                if (signal := self._builtin(char)) is not None:
                    self._signal(state, signal)
                raise self._unknown(state, "-" + char)

            if isinstance(entry, FlagSpec):
                self._flag(state, entry, True, index)
                continue

            value = cluster[position + 1:] or self._take(state, entry, "-" + char)
            self._store(state, entry, value, index)
            return

    def _take(self, state, entry, spelled, /):
        if not state.tokens or self._blocks(state, state.tokens[0]):
            raise TooFewArgumentsError(
                "%s expects a value after %s position" % (spelled, ordinal(state.index)),
                argument=entry.name,
                token=spelled,
                index=state.index,
                hint="pass a value right after it (for example: %s <value>)" % spelled,
            )
        return state.next()

    # --- storage ---

    def _flag(self, state, entry, value, index, /):
        state.flags[entry.name] = value
        state.pending.append((entry, ArgValue.bool(value), index))

    def _store(self, state, entry, text, index, /):
        try:
            value = entry.parse(text)
        except COERCION_FAULTS as fault:
            raise copy.replace(
                fault,
                message="%s for %s at %s position" % (fault.message, entry.label, ordinal(index)),
                argument=entry.name,
                index=index,
            ) from None

        previous = state.values.get(entry.name)
        if entry.multiple or entry.type is ArgType.ARRAY:
            elements = value.value if value.type is ArgType.ARRAY else (value,)
            if previous is not None:
                elements = previous.value + elements
            state.values[entry.name] = ArgValue(ArgType.ARRAY, elements)
        elif previous is not None:
            raise InvalidArgumentError(
                "%s given more than once at %s position" % (entry.label, ordinal(index)),
                argument=entry.name,
                token=text,
                index=index,
                hint="pass %s only once" % entry.label,
            )
        else:
            state.values[entry.name] = value

        state.pending.append((entry, value, index))
        return value

    # --- bare tokens ---

    def _bare(self, state, token, /):
        node = state.node
        if node.subcommands and (child := self._match(state, token)) is not None:
            state.nodes.append(child)
            state.path.append(child.name)
            state.slot = 0
            logger.debug("descending into %r at %s position", state.route, ordinal(state.index))
            return
        self._positional(state, token)

    def _match(self, state, token, /):
        node = state.node
        if (child := node.find_subcommand(token)) is not None:
            return child
        if not self.abbreviate:
            return None

        candidates = [
            child for child in node.subcommands
            if any(word.startswith(token) for word in (child.name, *child.aliases))
        ]
        if len(candidates) > 1:
            raise AmbiguousCommandError(
                "ambiguous command %r at %s position" % (token, ordinal(state.index)),
                token=token,
                index=state.index,
                suggestions=[child.name for child in candidates],
                hint="it could be any of: %s" % ", ".join(child.name for child in candidates),
            )
        return candidates[0] if candidates else None

    def _positional(self, state, token, /):
        node = state.node
        slots = node.positionals
        if state.slot < len(slots):
            entry = slots[state.slot]
            value = self._store(state, entry, token, state.index)
            state.positionals.extend(value.value if value.type is ArgType.ARRAY else (value,))
            if not entry.multiple:
                state.slot += 1
            return

        if node.subcommands and not state.terminated:
            names = [child.name for child in node.subcommands if not child.hidden]
            suggestions = difflib.get_close_matches(token, names, 5)
            kind = "subcommand" if state.path else "command"
            try:
                hint = "did you mean %r? you can also run '%s --help' to see available %ss" % (
                    suggestions[0], state.route, kind
                )
            except IndexError:
                hint = "run '%s --help' to see available %ss" % (state.route, kind)
            raise UnknownCommandError(
                "unknown %s %r at %s position" % (kind, token, ordinal(state.index)),
                token=token,
                index=state.index,
                suggestions=suggestions,
                hint=hint,
            )

        raise TooManyArgumentsError(
            "unexpected argument %r at %s position" % (token, ordinal(state.index)),
            token=token,
            index=state.index,
            hint="'%s' takes %d positional argument%s" % (state.route, len(slots), "" if len(slots) == 1 else "s"),
        )

    # --- finalization ---

    def _finalize(self, state, /):
        for node in state.nodes:
            for entry in node.args:
                if entry.name in state.values:
                    continue
                if entry.required:
                    raise MissingRequiredArgumentError(
                        "missing required argument %s" % entry.label,
                        argument=entry.name,
                        hint=(
                            "pass a value for %s" % entry.label
                            if entry.positional else
                            "pass it as %s <value>" % entry.label
                        ),
                    )
                if entry.default is not None:
                    state.values[entry.name] = entry.default

            for flag in node.flags:
                if flag.name in state.flags:
                    continue
                if flag.required:
                    raise MissingRequiredArgumentError(
                        "missing required flag %s" % flag.label,
                        argument=flag.name,
                        hint="pass %s" % flag.label,
                    )
                state.flags[flag.name] = flag.default

        for entry, value, index in state.pending:
            if entry.validator is None:
                continue
            if not (verdict := run(entry.validator, value)):
                raise ValidationError(
                    "invalid value for %s at %s position: %s" % (entry.label, ordinal(index), verdict.message),
                    argument=entry.name,
                    reason=verdict.message,
                    index=index,
                )

        terminal = state.node
        if self.require_subcommand and terminal.subcommands and terminal.handler is None:
            names = [child.name for child in terminal.subcommands if not child.hidden]
            raise MissingSubcommandError(
                "%r expects a subcommand" % state.route,
                argument=terminal.name,
                hint="choose one of: %s" % ", ".join(names),
            )


def parse(command, tokens=Unset, /, **options):
    """
    Parse with a one-off Parser(**options).
    """
    return Parser(**options).parse(command, tokens)


__all__ = (
    "Parser",
    "parse",
)
