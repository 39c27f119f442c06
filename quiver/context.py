"""
Quiver result context: the typed, read-only outcome of one successful parse.

A Context is created by the parser for a single invocation and handed to the
caller, who owns it exclusively. Nothing in it can be mutated after the fact:
mappings are exposed as MappingProxyType views and sequences as tuples.

Absent values
- get/get_string/get_int/... return None for an entry that was neither supplied
  nor defaulted; get_flag returns False.
- get_with_default(name, default) returns the caller's default instead.

Tag mismatches
- Asking get_int for a STRING entry (and so on) raises TypeError: accessors must
  match the type declared in the schema.
"""
from types import MappingProxyType

from .values import ArgValue


class Context:
    __slots__ = ("_values", "_flags", "_positionals", "_path", "_raw")

    def __init__(self, values=(), flags=(), positionals=(), path=(), raw=()):
        self._values = MappingProxyType(dict(values))
        self._flags = MappingProxyType({name: bool(value) for name, value in dict(flags).items()})
        self._positionals = tuple(positionals)
        self._path = tuple(path)
        self._raw = tuple(raw)
        for value in (*self._values.values(), *self._positionals):
            if not isinstance(value, ArgValue):
                raise TypeError("context values must be argument values")

    @property
    def values(self):
        return self._values

    @property
    def flags(self):
        return self._flags

    @property
    def positionals(self):
        return self._positionals

    @property
    def path(self):
        return self._path

    @property
    def raw(self):
        return self._raw

    def get(self, name, /):
        """
        Return the ArgValue recorded for name, or None.
        """
        return self._values.get(name)

    def _get(self, name, accessor, /):
        if (value := self._values.get(name)) is None:
            return None
        return accessor(value)

    def get_string(self, name, /):
        return self._get(name, ArgValue.as_string)

    def get_int(self, name, /):
        return self._get(name, ArgValue.as_int)

    def get_float(self, name, /):
        return self._get(name, ArgValue.as_float)

    def get_bool(self, name, /):
        """
        Return a BOOL argument value; flags are looked up too.
        """
        if name in self._flags and name not in self._values:
            return self._flags[name]
        return self._get(name, ArgValue.as_bool)

    def get_array(self, name, /):
        return self._get(name, ArgValue.as_array)

    def get_strings(self, name, /):
        """
        Return an ARRAY entry as a list of strings, or None.
        """
        if (elements := self.get_array(name)) is None:
            return None
        return [element.as_string() for element in elements]

    def get_flag(self, name, /):
        return self._flags.get(name, False)

    def get_positional(self, index, /):
        """
        Return the positional value at index (0-based), or None when out of range.
        """
        if not 0 <= index < len(self._positionals):
            return None
        return self._positionals[index]

    @property
    def positional_count(self):
        return len(self._positionals)

    def has_arg(self, name, /):
        return name in self._values

    def has_flag(self, name, /):
        """
        Answer with the flag's recorded state, not its presence: the parser records
        every flag of the selected path, so presence alone would always be true.
        Unknown names answer False.
        """
        return self._flags.get(name, False)

    def get_subcommand(self):
        """
        Return the name of the deepest selected subcommand, or None at the root.
        """
        return self._path[-1] if self._path else None

    def get_path(self):
        return self._path

    def get_raw_args(self):
        return self._raw

    def get_with_default(self, name, default, /):
        """
        Return the plain payload for name, or default when absent.

        Flags answer with their recorded boolean state; arrays come back as
        lists of payloads.
        """
        if (value := self._values.get(name)) is not None:
            return value.unwrap()
        if name in self._flags:
            return self._flags[name]
        return default

    def __contains__(self, name):
        return name in self._values or name in self._flags

    def __eq__(self, other):
        if not isinstance(other, Context):
            return NotImplemented
        return (
            dict(self._values) == dict(other._values) and
            dict(self._flags) == dict(other._flags) and
            self._positionals == other._positionals and
            self._path == other._path and
            self._raw == other._raw
        )

    __hash__ = None

    def __repr__(self):
        return "context(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())

    def __rich_repr__(self):
        yield "values", {name: value.unwrap() for name, value in self._values.items()}
        yield "flags", dict(self._flags)
        yield "positionals", [value.unwrap() for value in self._positionals]
        yield "path", list(self._path)
        yield "raw", list(self._raw)


__all__ = (
    "Context",
)
