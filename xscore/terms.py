"""Terms, shell errors and small system helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


@dataclass
class Term:
    """A shell value: either a string or a closure, never both."""

    text: Optional[str] = None
    closure: Any = None

    def __post_init__(self) -> None:
        if (self.text is None) == (self.closure is None):
            raise ValueError("a term holds exactly one of a string or a closure")

    def is_closure(self) -> bool:
        return self.closure is not None

    def __str__(self) -> str:
        return self.text if self.text is not None else str(self.closure)


def term_eq(term: Term, text: str) -> bool:
    """Is ``term`` a string term equal to ``text``?"""
    return term.text is not None and term.text == text


def term_cat(t1: Optional[Term], t2: Optional[Term]) -> Optional[Term]:
    """Concatenate two terms as strings; a missing term yields the other."""
    if t1 is None:
        return t2
    if t2 is None:
        return t1
    return Term(str(t1) + str(t2))


class XsError(Exception):
    """A user-catchable shell error raised by ``origin``."""

    def __init__(self, origin: str, message: str) -> None:
        super().__init__(f"{origin}: {message}")
        self.origin = origin
        self.message = message

    @property
    def exception_list(self) -> tuple[str, str, str]:
        """The exception as the shell sees it: error, origin, message."""
        return ("error", self.origin, self.message)


def fail(origin: str, message: str) -> None:
    """Raise an :class:`XsError`."""
    raise XsError(origin, message)


def is_absolute(path: str) -> bool:
    """Does ``path`` begin with ``/``, ``./`` or ``../``?"""
    return path.startswith(("/", "./", "../"))


def streq2(text: str, first: str, second: str) -> bool:
    """Is ``text`` the concatenation of ``first`` and ``second``?"""
    return text == first + second


def strerror(code: int) -> str:
    """Describe an errno value."""
    try:
        message = os.strerror(code)
    except (ValueError, OverflowError):
        return "unknown error"
    return message or "unknown error"


class OpenKind(Enum):
    OPEN = "r"
    CREATE = "w"
    APPEND = "a"
    READ_WRITE = "r+"
    READ_CREATE = "w+"
    READ_APPEND = "a+"


_OPEN_FLAGS = {
    OpenKind.OPEN: os.O_RDONLY,
    OpenKind.CREATE: os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
    OpenKind.APPEND: os.O_WRONLY | os.O_CREAT | os.O_APPEND,
    OpenKind.READ_WRITE: os.O_RDWR | os.O_CREAT,
    OpenKind.READ_CREATE: os.O_RDWR | os.O_CREAT | os.O_TRUNC,
    OpenKind.READ_APPEND: os.O_RDWR | os.O_CREAT | os.O_APPEND,
}


def open_flags(kind: OpenKind) -> int:
    """The ``os.open`` flags for an open kind."""
    return _OPEN_FLAGS[kind]


def eopen(name: str, kind: OpenKind) -> int:
    """Open ``name`` and return its descriptor; raises OSError on failure."""
    return os.open(name, open_flags(kind), 0o666)