"""Snapshot comparison package for treesync.

Example:
    >>> from treesync.comparison import Comparator
    >>> from treesync.models import CompareMode
    >>> actions = Comparator(CompareMode.DIGEST).compare(source, destination)
    >>> print(f"{len(actions)} file(s) to copy")
"""

from .comparator import Comparator

__all__ = ["Comparator"]
