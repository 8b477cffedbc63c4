"""Trellis: declarative project generation from JSON templates and import documents."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("trellis")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from trellis.core import Trellis
from trellis.engine import execute
from trellis.importer import import_project
from trellis.models import GeneratedProject

__all__ = ["GeneratedProject", "Trellis", "__version__", "execute", "import_project"]
