"""
Quiver command layer: the command schema tree and the dispatch driver.

What this module provides
- CommandSpec: an immutable node of the command tree carrying
  • its own arguments (ArgumentSpec) and flags (FlagSpec),
  • an ordered list of child CommandSpec (subcommands), looked up by name or alias,
  • an optional handler plus before/after hooks,
  • opaque about/long-about/usage/version text (never interpreted by the parser).

- invoke(command, tokens): parse tokens against the tree, then run before hooks,
  the terminal handler and after hooks along the selected path.

Core ideas
- Build once, share freely: every composition method returns a new node and the
  tree is never mutated afterwards, so concurrent parses need no coordination.
- Schema mistakes are caught at construction time (duplicate names, clashing
  switches, a multiple positional slot that is not last) with TypeError/ValueError.

Quick start
    from quiver import ArgType, ArgumentSpec, CommandSpec, FlagSpec, invoke

    def greet(context):
        print("hello", context.get_string("name"))

    tool = CommandSpec("tool", about="says hello").with_args(
        ArgumentSpec("name", long="name", required=True),
    ).with_flags(
        FlagSpec("verbose", short="v"),
    ).with_handler(greet)

    if __name__ == "__main__":
        invoke(tool, shell=True)
"""
import copy
import logging
import re
import shlex
from collections.abc import Iterable

from .arguments import ArgumentSpec, FlagSpec
from .faults import CommandException, CommandSignal, MissingSubcommandError, trigger
from .parser import Parser
from .utils import *

logger = logging.getLogger(__name__)


def _sanitize_text(cls, field, text, /):
    if not isinstance(text, str):
        raise TypeError(f"{cls.__typename__} {field!r} must be a string")
    return text.strip()


def _sanitize_hooks(cls, field, hooks, /):
    if callable(hooks):
        hooks = (hooks,)
    hooks = tuple(hooks)
    if not all(map(callable, hooks)):
        raise TypeError(f"{cls.__typename__} {field!r} must contain callables")
    return hooks


class CommandSpec(metaclass=SchemaType):
    """
    Immutable command node.

    Invariants checked on construction
    - argument and flag names are unique within the node;
    - short names are unique, long names are unique;
    - sibling subcommand names and aliases are unique;
    - only the last positional slot may accept multiple values.

    A node with subcommands and no handler defers execution to one of its
    children; reaching it as the terminal node is a MissingSubcommandError
    when dispatching (and when parsing with require_subcommand=True).
    """

    __introspectable__ = (
        "name",
        "about",
        "long_about",
        "usage",
        "version",
        "args",
        "flags",
        "subcommands",
        "handler",
        "before",
        "after",
        "hidden",
        "aliases",
    )
    __displayable__ = (
        "name",
        "about",
        "args",
        "flags",
        "subcommands",
    )

    def __init__(
            self,
            name,
            *,
            about="",
            long_about="",
            usage="",
            version="",
            args=(),
            flags=(),
            subcommands=(),
            handler=Unset,
            before=(),
            after=(),
            hidden=False,
            aliases=(),
    ):
        cls = type(self)
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} 'name' must be a string")
        if not re.fullmatch(r"[^\s-]\S*", name := name.strip()):
            raise ValueError(f"{cls.__typename__} 'name' must be a word not starting with '-'")
        self._name = name

        self._about = _sanitize_text(cls, "about", about)
        self._long_about = _sanitize_text(cls, "long_about", long_about)
        self._usage = _sanitize_text(cls, "usage", usage)
        self._version = _sanitize_text(cls, "version", version)

        if isinstance(aliases, str):
            aliases = (aliases,)
        self._aliases = tuple(aliases)
        for alias in self._aliases:
            if not isinstance(alias, str) or not re.fullmatch(r"[^\s-]\S*", alias):
                raise ValueError(f"{cls.__typename__} {name!r} aliases must be words not starting with '-'")

        self._args = tuple(args)
        if not all(isinstance(argument, ArgumentSpec) for argument in self._args):
            raise TypeError(f"{cls.__typename__} 'args' must contain argument-spec instances")
        self._flags = tuple(flags)
        if not all(isinstance(flag, FlagSpec) for flag in self._flags):
            raise TypeError(f"{cls.__typename__} 'flags' must contain flag-spec instances")
        self._subcommands = tuple(subcommands)
        if not all(isinstance(child, CommandSpec) for child in self._subcommands):
            raise TypeError(f"{cls.__typename__} 'subcommands' must contain command-spec instances")

        if handler is not Unset and handler is not None and not callable(handler):
            raise TypeError(f"{cls.__typename__} 'handler' must be callable")
        self._handler = coalesce(handler)
        self._before = _sanitize_hooks(cls, "before", before)
        self._after = _sanitize_hooks(cls, "after", after)
        self._hidden = bool(hidden)

        self._check_entries()
        self._check_children()

    def _check_entries(self):
        names, shorts, longs = set(), set(), set()
        for entry in (*self._args, *self._flags):
            if entry.name in names:
                raise ValueError(f"{self._name!r} declares {entry.name!r} more than once")
            names.add(entry.name)
            if entry.short is not None:
                if entry.short in shorts:
                    raise ValueError(f"{self._name!r} declares the short name '-{entry.short}' more than once")
                shorts.add(entry.short)
            if entry.long is not None:
                if entry.long in longs:
                    raise ValueError(f"{self._name!r} declares the long name '--{entry.long}' more than once")
                longs.add(entry.long)

        positionals = self.positionals
        for argument in positionals[:-1]:
            if argument.multiple:
                raise ValueError(
                    f"{self._name!r} positional {argument.name!r} accepts multiple values but is not the last one"
                )

    def _check_children(self):
        seen = set()
        for child in self._subcommands:
            for word in (child.name, *child.aliases):
                if word in seen:
                    raise ValueError(f"{self._name!r} has more than one subcommand answering to {word!r}")
                seen.add(word)

    def __replace__(self, **changes):
        fields = {name: getattr(self, "_" + name) for name in type(self).__introspectable__}
        return type(self)(**fields | changes)

    @property
    def positionals(self):
        return tuple(argument for argument in self._args if argument.positional)

    @property
    def entries(self):
        return (*self._args, *self._flags)

    def find_subcommand(self, name, /):
        """
        Return the first immediate child whose name or alias is name, else None.

        The lookup is a single level deep; the parser descends one token at a time.
        """
        for child in self._subcommands:
            if child.name == name or name in child.aliases:
                return child
        return None

    def find_arg(self, name, /):
        for argument in self._args:
            if argument.name == name:
                return argument
        return None

    def find_flag(self, name, /):
        for flag in self._flags:
            if flag.name == name:
                return flag
        return None

    def walk(self, path, /):
        """
        Resolve a path of subcommand names into the list of nodes, root first.
        """
        nodes = [self]
        for name in path:
            if (child := nodes[-1].find_subcommand(name)) is None:
                raise LookupError(f"{nodes[-1].name!r} has no subcommand {name!r}")
            nodes.append(child)
        return nodes

    def with_args(self, *args):
        return copy.replace(self, args=(*self._args, *args))

    def with_flags(self, *flags):
        return copy.replace(self, flags=(*self._flags, *flags))

    def with_subcommands(self, *subcommands):
        return copy.replace(self, subcommands=(*self._subcommands, *subcommands))

    def with_handler(self, handler, /):
        return copy.replace(self, handler=handler)

    def with_about(self, about, /):
        return copy.replace(self, about=about)

    def with_long_about(self, long_about, /):
        return copy.replace(self, long_about=long_about)

    def with_usage(self, usage, /):
        return copy.replace(self, usage=usage)

    def with_version(self, version, /):
        return copy.replace(self, version=version)

    def with_aliases(self, *aliases):
        return copy.replace(self, aliases=(*self._aliases, *aliases))

    def with_before(self, *hooks):
        return copy.replace(self, before=(*self._before, *hooks))

    def with_after(self, *hooks):
        return copy.replace(self, after=(*self._after, *hooks))

    def set_hidden(self, hidden=True, /):
        return copy.replace(self, hidden=hidden)


def _tokenize(tokens, /):
    if tokens is Unset:
        return Unset
    if isinstance(tokens, str):
        return shlex.split(tokens)
    if not isinstance(tokens, Iterable):
        raise TypeError("invoke() tokens must be a string or an iterable of strings")
    tokens = list(tokens)
    if not all(isinstance(token, str) for token in tokens):
        raise TypeError("invoke() tokens must be a string or an iterable of strings")
    return tokens


def invoke(command, tokens=Unset, /, *, shell=False, parser=Unset, fancy=False, colorful=True):
    """
    Parse tokens against command and dispatch to the selected handler.

    Parameters
    - tokens:
      • Unset: read sys.argv (the parser decides whether its first item is dropped).
      • str: split with shlex.split.
      • Iterable[str]: use items as tokens.
    - shell: when True, faults are rendered with rich and the process exits
      with status 1; help/version requests print their text and exit with 0.
      When False, faults and signals propagate to the caller.
    - parser: a configured Parser (defaults to Parser()).

    Dispatch
    - before hooks run root first, each with the Context;
    - the terminal node's handler runs with the Context; its result is returned;
    - after hooks run terminal first, back up to the root.
    """
    if not isinstance(command, CommandSpec):
        raise TypeError("invoke() first argument must be a command-spec")
    parser = coalesce(parser, Parser())
    options = dict(shell=shell, tool=command, fancy=fancy, colorful=colorful)

    try:
        context = parser.parse(command, _tokenize(tokens))
        nodes = command.walk(context.path)
        terminal = nodes[-1]

        if terminal.handler is None and terminal.subcommands:
            raise MissingSubcommandError(
                "%r expects a subcommand" % " ".join(node.name for node in nodes),
                argument=terminal.name,
                hint="choose one of: %s" % ", ".join(child.name for child in terminal.subcommands if not child.hidden),
            )
    except (CommandException, CommandSignal) as fault:
        if not shell:
            raise
        trigger(fault, **options)
        return None

    for node in nodes:
        for hook in node.before:
            hook(context)

    if terminal.handler is None:
        logger.debug("no handler on %r, nothing to dispatch", terminal.name)
        result = None
    else:
        logger.debug("dispatching %r", " ".join(node.name for node in nodes))
        result = terminal.handler(context)

    for node in reversed(nodes):
        for hook in node.after:
            hook(context)

    return result


__all__ = (
    "CommandSpec",
    "invoke",
)
