"""Splitting strings into words at separator characters."""

from __future__ import annotations

from typing import Iterable


class Splitter:
    """Incrementally split text into words.

    With ``coalesce`` true, runs of separators count as one and no empty
    words are produced. Otherwise every separator ends a word, and an empty
    separator string splits text into single characters. The NUL character
    always separates.
    """

    def __init__(self, sep: str, coalesce: bool) -> None:
        self._separators = frozenset(sep) | {"\0"}
        self._coalesce = coalesce
        self._each_char = not coalesce and sep == ""
        self._buf: list[str] = []
        self._words: list[str] = []

    def _emit(self) -> None:
        self._words.append("".join(self._buf))
        self._buf.clear()

    def feed(self, data: str, end_word: bool = False) -> None:
        """Split another piece of text; ``end_word`` closes any pending word."""
        if self._each_char:
            self._words.extend(data)
            return
        for ch in data:
            if ch in self._separators:
                if self._buf or not self._coalesce:
                    self._emit()
            else:
                self._buf.append(ch)
        if end_word and self._buf:
            self._emit()

    def finish(self) -> list[str]:
        """Return the words collected so far and reset the splitter."""
        if self._buf:
            self._emit()
        words, self._words = self._words, []
        return words


def fsplit(sep: str, words: Iterable[str], coalesce: bool) -> list[str]:
    """Split each of ``words`` at the characters of ``sep``."""
    splitter = Splitter(sep, coalesce)
    for word in words:
        splitter.feed(word, True)
    return splitter.finish()