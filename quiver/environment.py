"""
Quiver layering: merge defaults, environment variables, config files and
command-line values into one record.

Overview
- envname(name, prefix, transform) / envprefix(cls): variable naming.
- Environment: one read-only snapshot of the process environment (or of a
  mapping handed in), able to turn set variables into field values.
- ConfigFile: a JSON, TOML or YAML document whose top-level keys name fields.
- merge(base, overlay, fields): copy the fields the overlay supplied.
- Layering(sources).resolve(cls, cli): apply sources in order.

What counts as "supplied"
- environment and file layers: exactly the fields whose variable or key is present;
- command-line layer (and any overlay merged without an explicit field set):
  fields whose value is not None, not the kind's zero value and not the
  declared default.

The merge itself knows nothing about sources; precedence is only the order
the layers are applied in. override=True moves the environment layer after
the command-line layer so set variables win over command-line values.
"""
import copy
import dataclasses
import difflib
import enum
import json
import logging
import os
import re
import tomllib
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

import yaml

from .context import Context
from .declarative import Kind, describe, materialize
from .faults import *
from .utils import Unset, coalesce, hyphenate

logger = logging.getLogger(__name__)

FORMATS = {
    ".json": "json",
    ".toml": "toml",
    ".yaml": "yaml",
    ".yml": "yaml",
}


def envname(name, /, prefix="", transform=True):
    """
    Environment variable name for a field.

    With transform (the default) the name is upper-cased and its word separators
    ("-", "_", camelCase humps) become "_": "max-retries" → "MAX_RETRIES".
    """
    if transform:
        name = re.sub(r"[-_\s]+", "_", hyphenate(name)).upper()
    return prefix + name


def envprefix(cls, /):
    """
    Default variable prefix of a record type: its upper-cased name and "_".
    """
    return cls.__name__.upper() + "_"


class Source(enum.Enum):
    DEFAULTS = "defaults"
    ENVIRONMENT = "environment"
    FILE = "file"
    CLI = "cli"


def defaults(cls, /):
    """
    Record built from declared defaults, zero values elsewhere (required fields included).
    """
    return cls(**{field.name: field.declared() if field.has_default else field.zero() for field in describe(cls)})


def supplied(field, value, /):
    """
    Whether a value counts as supplied for a field merged without an explicit field set.
    """
    if value is None or value == field.zero():
        return False
    if field.has_default and value == field.declared():
        return False
    return True


def merge(base, overlay, /, fields=Unset):
    """
    Return base with the fields the overlay supplied copied over.

    fields, when given, names exactly the fields to copy; otherwise the
    supplied() rule decides. Merging the same overlay twice changes nothing.
    """
    if type(base) is not type(overlay):
        raise TypeError("merge() arguments must be records of the same type")
    if fields is Unset:
        fields = [field.name for field in describe(type(base)) if supplied(field, getattr(overlay, field.name))]
    return dataclasses.replace(base, **{name: getattr(overlay, name) for name in fields})


class Environment:
    """
    Read-only snapshot of environment variables, taken once at construction.

    prefix may be a string or a record type (envprefix() is used then).
    """

    def __init__(self, prefix="", /, *, transform=True, environ=Unset):
        if isinstance(prefix, type):
            prefix = envprefix(prefix)
        if not isinstance(prefix, str):
            raise TypeError("environment prefix must be a string or a record type")
        self.prefix = prefix
        self.transform = bool(transform)
        self.environ = MappingProxyType(dict(coalesce(environ, os.environ)))

    def __repr__(self):
        return "environment(prefix=%r, transform=%r)" % (self.prefix, self.transform)

    def variable(self, field, /):
        """
        Variable name for a field: its explicit env name, else prefix + transformed name.
        """
        if field.env is not None:
            return field.env
        return envname(field.name, self.prefix, self.transform)

    def lookup(self, field, /):
        return self.environ.get(self.variable(field))

    def supplied(self, cls, /):
        return frozenset(field.name for field in describe(cls) if self.variable(field) in self.environ)

    def values(self, cls, /):
        """
        Field values for every set variable, coerced with the field's rules.
        """
        values = {}
        for field in describe(cls):
            if (text := self.lookup(field)) is None:
                continue
            variable = self.variable(field)
            try:
                values[field.name] = field.convert(text)
            except CommandException as fault:
                raise copy.replace(
                    fault,
                    message="%s in environment variable %s" % (fault.message, variable),
                    argument=field.name,
                    token=text,
                    hint="fix or unset %s" % variable,
                ) from None
        return values

    def load(self, cls, /):
        """
        Record built from defaults with every set variable applied.
        """
        return dataclasses.replace(defaults(cls), **self.values(cls))


def _check(field, value, /):
    """
    Convert a decoded config value to the field's Python type, or raise TypeError.
    """
    if value is None and field.kind.optional:
        return None
    match field.kind:
        case Kind.TEXT | Kind.OPTIONAL_TEXT if isinstance(value, str):
            return value
        case Kind.INTEGER | Kind.OPTIONAL_INTEGER if isinstance(value, int) and not isinstance(value, bool):
            return value
        case Kind.FLOAT | Kind.OPTIONAL_FLOAT if isinstance(value, int | float) and not isinstance(value, bool):
            return float(value)
        case Kind.BOOLEAN if isinstance(value, bool):
            return value
        case Kind.TEXT_SEQUENCE if isinstance(value, list) and all(isinstance(item, str) for item in value):
            return field.sequence(value)
        case Kind.CHOICE | Kind.OPTIONAL_CHOICE if isinstance(value, str) and value in field.choices.__members__:
            return field.choices[value]
    raise TypeError("expected %s, got %r" % (field.kind.name.lower().replace("_", " "), value))


class ConfigFile:
    """
    Configuration document (JSON, TOML or YAML) read on demand.

    Top-level keys name record fields, either by field name ("max_retries") or
    by long spelling ("max-retries"). Unknown keys are rejected.
    """

    def __init__(self, path, /, format=Unset):
        self.path = Path(path)
        if format is Unset:
            try:
                format = FORMATS[self.path.suffix.lower()]
            except KeyError:
                raise ConfigError(
                    "cannot tell the format of %s" % self.path,
                    hint="use a .json, .toml, .yaml or .yml file, or pass format explicitly",
                ) from None
        if format not in ("json", "toml", "yaml"):
            raise ValueError("config format must be one of 'json', 'toml' or 'yaml'")
        self.format = format

    def __repr__(self):
        return "config-file(%r, format=%r)" % (str(self.path), self.format)

    def read(self):
        """
        Decode the document into a mapping.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as error:
            raise InputOutputError(
                "cannot read %s: %s" % (self.path, error.strerror or error),
                hint="check that the file exists and is readable",
            ) from None
        except UnicodeDecodeError:
            raise ConfigError("%s is not valid utf-8" % self.path) from None

        try:
            match self.format:
                case "json":
                    document = json.loads(text)
                case "toml":
                    document = tomllib.loads(text)
                case _:
                    document = yaml.safe_load(text)
        except (json.JSONDecodeError, tomllib.TOMLDecodeError, yaml.YAMLError) as error:
            raise ConfigError("malformed %s in %s: %s" % (self.format, self.path, error)) from None

        if document is None:
            return {}
        if not isinstance(document, Mapping):
            raise ConfigError("%s must hold a table of settings at the top level" % self.path)
        return document

    def values(self, cls, /):
        fields = {field.name: field for field in describe(cls)}
        spellings = {field.name.replace("_", "-"): field for field in fields.values()}
        values = {}
        for key, value in self.read().items():
            if (field := fields.get(key, spellings.get(key))) is None:
                suggestions = difflib.get_close_matches(str(key), list(fields), 3)
                raise ConfigError(
                    "unknown setting %r in %s" % (key, self.path),
                    token=str(key),
                    suggestions=suggestions,
                    hint="did you mean %r?" % suggestions[0] if suggestions else "known settings: %s" % ", ".join(fields),
                )
            try:
                values[field.name] = _check(field, value)
            except TypeError as error:
                raise ConfigError(
                    "setting %r in %s: %s" % (key, self.path, error),
                    argument=field.name,
                ) from None
        return values

    def supplied(self, cls, /):
        return frozenset(self.values(cls))

    def load(self, cls, /):
        return dataclasses.replace(defaults(cls), **self.values(cls))


class Layering:
    """
    Ordered source list plus the collaborators needed to read each source.

    - sources: iterable of Source, applied first to last (later wins).
    - environment: Environment to read (default: a snapshot of os.environ).
    - file: ConfigFile, required when Source.FILE is listed.
    - override: move the environment layer after the command-line layer.
    """

    def __init__(self, sources=(Source.DEFAULTS, Source.ENVIRONMENT, Source.CLI), /, *,
                 environment=Unset, file=Unset, override=False):
        sources = [Source(source) for source in sources]
        if len(set(sources)) != len(sources):
            raise ValueError("layering sources cannot contain duplicates")
        if override and Source.ENVIRONMENT in sources and Source.CLI in sources:
            sources.remove(Source.ENVIRONMENT)
            sources.insert(sources.index(Source.CLI) + 1, Source.ENVIRONMENT)
        if file is Unset and Source.FILE in sources:
            raise ValueError("layering with a file source needs a config file")
        self.sources = tuple(sources)
        self.environment = environment
        self.file = coalesce(file, None)
        self.override = bool(override)

    def __repr__(self):
        return "layering(%s, override=%r)" % (", ".join(source.value for source in self.sources), self.override)

    def resolve(self, cls, /, cli=Unset):
        """
        Merge every source into one record of type cls.

        cli may be a record of type cls, a Context (materialized first) or Unset
        to skip the command-line layer.
        """
        if isinstance(cli, Context):
            cli = materialize(cls, cli)
        if cli is not Unset and type(cli) is not cls:
            raise TypeError("resolve() cli must be a %s record or a context" % cls.__name__)

        environment = self.environment if self.environment is not Unset else Environment(envprefix(cls))
        record = defaults(cls)
        for source in self.sources:
            match source:
                case Source.DEFAULTS:
                    record = merge(record, defaults(cls), [field.name for field in describe(cls)])
                case Source.ENVIRONMENT:
                    overlay = environment.values(cls)
                    record = dataclasses.replace(record, **overlay)
                case Source.FILE:
                    record = dataclasses.replace(record, **self.file.values(cls))
                case Source.CLI if cli is not Unset:
                    record = merge(record, cli)
            logger.debug("applied %s layer: %r", source.value, record)
        return record


__all__ = (
    "Source",
    "Environment",
    "ConfigFile",
    "Layering",
    "envname",
    "envprefix",
    "defaults",
    "supplied",
    "merge",
)
