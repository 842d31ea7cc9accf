"""
Paths component - safe resolution of caller-supplied asset paths.
"""

from .component import PathResolver, normalize_relative_path
from .models import ResolvedPath

__all__ = [
    "PathResolver",
    "ResolvedPath",
    "normalize_relative_path",
]
