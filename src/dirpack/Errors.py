"""Exceptions raised by the dirpack archive engine.

Most failures surface as builtin exceptions (`FileNotFoundError` for missing
sources, `ValueError` for bad arguments, `OSError` for I/O). The classes here
cover the cases callers usually want to tell apart.
"""


class DuplicateEntryError(OSError):
    """A codec refused an entry because the name is already in the container.

    Attributes:
        name (str): The rejected entry name.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Duplicate entry: {name}")


class UnsafeEntryError(ValueError):
    """An entry name would resolve outside the extraction destination."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Unsafe entry '{name}': {reason}")


class UnknownFormatError(ValueError):
    """No codec is registered for the requested format or file extension."""

    def __init__(self, what: str) -> None:
        self.what = what
        super().__init__(f"Unknown archive format: {what}")
