class GridError(Exception):
    """Base class for schema resolution and population failures."""


class DataError(GridError):
    """Persisted survey JSON could not be decoded into the expected shape."""


class ResolutionError(GridError):
    """Metadata needed to build a table could not be read."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class SubtableNotFound(GridError):
    def __init__(self, subtable: str):
        super().__init__(f"Unknown subtable: {subtable}")
        self.subtable = subtable
