"""Exceptions raised by termpix.

Display and clear operations never raise; failures come back as False.
The only error surfaced to callers is a bad explicit protocol name.
"""


class TermpixError(Exception):
    """Base class for termpix errors."""


class UnknownProtocolError(TermpixError, ValueError):
    """An explicitly requested graphics protocol does not exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown graphics protocol: {name!r} "
                         f"(expected kitty, sixel, w3m or none)")
