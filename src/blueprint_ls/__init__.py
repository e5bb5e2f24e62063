"""Blueprint language server package root."""

from blueprint_ls.exceptions import NeverRaise, NeverThrown
from blueprint_ls.invariants import never

__all__ = ["__version__", "NeverRaise", "NeverThrown", "never"]

__version__ = "0.1.0"
