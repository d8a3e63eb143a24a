class UsageError(Exception):
    """Bad or missing command-line input. Nothing has been attempted yet."""


class StoreError(Exception):
    """Reading from or writing to the database failed."""
