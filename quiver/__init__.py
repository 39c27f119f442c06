__path__ = __import__("pkgutil").extend_path(__path__, __name__)  # NOQA: F-821
__title__ = 'quiver'
__author__ = 'Quiver Developers'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.0.0"

from .values import *
from .validators import Validator, Verdict, Predicate, Chain, NonEmpty, Length, Range, OneOf, Pattern, Email, Url, Port, Uuid, Json
from .arguments import *
from .commands import *
from .context import *
from .parser import *
from .declarative import Kind, FieldSchema, argument, describe, generate, materialize, unparse
from .environment import *
from .faults import *
from . import declarative, validators

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

# Placeholder, modified by dynamic-versioning.
version_info = VersionInfo(0, 0, 0, "final", 0, "")

__all__ = (
    "__path__",
    "__title__",
    "__author__",
    "__license__",
    "__version__",
    "version_info",
    "declarative",
    "validators",
)

# Load the exposed API of the value model
__all__ += values.__all__  # type: ignore[attr-defined]
# Load the validator interface and the stock validators
__all__ += (
    "Validator",
    "Verdict",
    "Predicate",
    "Chain",
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
)
# Load the exposed API of the arguments
__all__ += arguments.__all__  # type: ignore[attr-defined]
# Load the exposed API of the commands
__all__ += commands.__all__  # type: ignore[attr-defined]
# Load the exposed API of the context
__all__ += context.__all__  # type: ignore[attr-defined]
# Load the exposed API of the parser
__all__ += parser.__all__  # type: ignore[attr-defined]
# Load the record reflection helpers (declarative.parse stays namespaced)
__all__ += (
    "Kind",
    "FieldSchema",
    "argument",
    "describe",
    "generate",
    "materialize",
    "unparse",
)
# Load the exposed API of the layering
__all__ += environment.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
