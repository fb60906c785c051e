"""
Exception hierarchy for the Kosmos package.

Every failure a host application is expected to present to a user derives
from KosmosError and carries enough context (file, line, item name) to
build an actionable message.
"""

from typing import Optional


class KosmosError(Exception):
    """Base class for all Kosmos errors."""


class EphemerisError(KosmosError):
    """An ephemeris dataset could not be loaded."""

    def __init__(self, path, message: str):
        self.path = str(path)
        self.message = message
        super().__init__(f"{self.path}: {message}")


class DatasetUnreadable(EphemerisError):
    """The dataset file could not be opened or read."""


class DatasetCorrupt(EphemerisError, ValueError):
    """The dataset was read but failed structural validation."""


class CatalogError(KosmosError):
    """A catalog document or one of its items is invalid."""


class ParseError(CatalogError, ValueError):
    """
    A catalog document is syntactically malformed.

    Attributes
    ----------
    line : int or None
        1-based line number of the problem, None if unknown
    message : str
        Description suitable for direct display
    filename : str or None
        Document the error was found in
    """

    def __init__(self, line: Optional[int], message: str,
                 filename: Optional[str] = None):
        self.line = line
        self.message = message
        self.filename = filename
        super().__init__(self._format())

    def _format(self) -> str:
        where = f"{self.filename}: " if self.filename else ""
        if self.line is None:
            return f"{where}{self.message}"
        return f"{where}Line {self.line}: {self.message}"


class UnresolvedReference(CatalogError, LookupError):
    """
    A catalog item names something that cannot be found.

    Attributes
    ----------
    item : str
        Name of the item that could not be resolved
    reference : str
        The missing (or cyclic, or failed) name it depends on
    """

    def __init__(self, item: str, reference: str, reason: str = "is not defined"):
        self.item = item
        self.reference = reference
        self.reason = reason
        super().__init__(f"Item '{item}': reference '{reference}' {reason}")
