"""Exceptions for failed system and library calls."""

from __future__ import annotations

import os
from typing import Any, TypeVar

T = TypeVar("T")


class TaggedError(Exception):
    """A failed call, tagged with a description of what was attempted."""

    def __init__(self, attempt: str, error_code: int, message: str) -> None:
        super().__init__(attempt, error_code, message)
        self.attempt = attempt
        self.error_code = error_code
        self.message = message

    def __str__(self) -> str:
        return f"{self.attempt}: {self.message}"


class UnixError(TaggedError):
    """A failed operating-system call, described by its errno value."""

    def __init__(self, attempt: str, errno_value: int) -> None:
        super().__init__(attempt, errno_value, os.strerror(errno_value))


def check_system_call(attempt: str, return_value: int) -> int:
    """Return a non-negative result unchanged; raise for a negative one.

    A negative result is taken as a negated errno value.
    """
    if return_value >= 0:
        return return_value
    raise UnixError(attempt, -return_value)


def notnull(context: str, value: Any) -> Any:
    """Return ``value`` unless it is None, in which case raise ValueError."""
    if value is None:
        raise ValueError(f"{context}: returned null pointer")
    return value