"""Lexical analysis of shell input into tokens."""

from __future__ import annotations

import string
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Iterator, Optional

from .tree import NodeKind, mk, mkclose, mkdup, mkredircmd

_CLOSED = -1
_DEFAULT = -2

# Characters that end a word in ordinary input.
_NONWORD = frozenset("\0\t\n !#$&'();<>\\^`{|}")
# Characters that may appear in a variable name after ``$``.
_VAR_CHARS = frozenset(string.ascii_letters + string.digits + "%*-@_")
# Characters that may appear in a variable name inside arithmetic.
_ARITH_VAR_CHARS = frozenset(string.ascii_letters + string.digits + "@_")

_SIMPLE_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "e": "\033",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}


class TokenKind(Enum):
    WORD = auto()
    QWORD = auto()
    PUNCT = auto()
    SUB = auto()
    FOR = auto()
    LOCAL = auto()
    LET = auto()
    EXTRACT = auto()
    CLOSURE = auto()
    LT = auto()
    LE = auto()
    GT = auto()
    GE = auto()
    EQ = auto()
    NE = auto()
    NL = auto()
    ENDFILE = auto()
    BACKBACK = auto()
    ARITH_BEGIN = auto()
    COUNT = auto()
    FLAT = auto()
    PRIM = auto()
    ASSIGN = auto()
    ANDAND = auto()
    OROR = auto()
    PARAM_BEGIN = auto()
    PARAM_END = auto()
    PIPE = auto()
    CALL = auto()
    DUP = auto()
    REDIR = auto()
    INT = auto()
    FLOAT = auto()
    POW = auto()
    ARITH_VAR = auto()


_KEYWORDS = {
    "for": TokenKind.FOR,
    "local": TokenKind.LOCAL,
    "let": TokenKind.LET,
    "~~": TokenKind.EXTRACT,
    "%closure": TokenKind.CLOSURE,
    ":lt": TokenKind.LT,
    ":le": TokenKind.LE,
    ":gt": TokenKind.GT,
    ":ge": TokenKind.GE,
    ":eq": TokenKind.EQ,
    ":ne": TokenKind.NE,
}


@dataclass(frozen=True)
class Token:
    """A token: its kind, its value (text, character or tree) and its line."""

    kind: TokenKind
    value: Any = None
    line: int = 1


class LexError(Exception):
    """A lexical error; the rest of the offending line has been skipped."""

    def __init__(self, message: str, line: int) -> None:
        super().__init__(f"line {line}: {message}")
        self.message = message
        self.line = line


class _State(Enum):
    NONWORD = auto()
    REALWORD = auto()
    KEYWORD = auto()


def _is_meta(c: str) -> bool:
    return c in _NONWORD


def _is_var_meta(c: str) -> bool:
    return c not in _VAR_CHARS


def _hex(c: Optional[str]) -> Optional[int]:
    if c is not None and c in string.hexdigits:
        return int(c, 16)
    return None


def _digit(c: Optional[str]) -> Optional[int]:
    if c is not None and c in string.digits:
        return int(c)
    return None


class Lexer:
    """Turns input text into tokens, one call to :meth:`next_token` at a time."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0
        self._pushback: list[Optional[str]] = []
        self._w = _State.NONWORD
        self._got_error = False
        self._dollar = False
        self._begin_block = False
        self._param_block = False
        self._arith = False
        self._paren_count = 1
        self._line = 1
        self.lineno = 1
        self.continued_input = False

    # -- input ---------------------------------------------------------

    def _getc(self) -> Optional[str]:
        if self._pushback:
            return self._pushback.pop()
        if self._pos < len(self._text):
            c = self._text[self._pos]
            self._pos += 1
            return c
        return None

    def _unget(self, c: Optional[str]) -> None:
        self._pushback.append(c)

    def _prompt2(self) -> None:
        self.lineno += 1
        self.continued_input = True

    def _error(self, message: str) -> LexError:
        while True:
            c = self._getc()
            if c is None or c == "\n":
                break
        self._got_error = True
        return LexError(message, self._line)

    def _tok(self, kind: TokenKind, value: Any = None) -> Token:
        return Token(kind, value, self._line)

    def _caret(self, c: Optional[str]) -> Optional[Token]:
        if self._w is not _State.NONWORD:
            self._w = _State.NONWORD
            self._unget(c)
            return self._tok(TokenKind.PUNCT, "^")
        return None

    # -- public interface ----------------------------------------------

    def next_token(self) -> Token:
        """Return the next token; raises :class:`LexError` on bad input."""
        if self._got_error:
            self._got_error = False
            return Token(TokenKind.NL, None, self.lineno)
        self._line = self.lineno
        if self._arith:
            return self._lex_arithmetic()
        return self._lex_normal()

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.next_token()
            yield token
            if token.kind is TokenKind.ENDFILE:
                return

    # -- arithmetic ----------------------------------------------------

    def _lex_arithmetic(self) -> Token:
        c = self._getc()
        while c in (" ", "\t", "\n"):
            c = self._getc()
        if c is not None and (c in string.digits or c == "."):
            chars = []
            radix = digits = False
            while c is not None and (c in string.digits or c == "."):
                if c == ".":
                    radix = True
                else:
                    digits = True
                chars.append(c)
                c = self._getc()
            self._unget(c)
            if not digits:
                raise self._error("Invalid token in arithmetic expression")
            kind = TokenKind.FLOAT if radix else TokenKind.INT
            return self._tok(kind, "".join(chars))
        if c == "(":
            self._paren_count += 1
            return self._tok(TokenKind.PUNCT, c)
        if c in ("+", "-", "/", "%"):
            return self._tok(TokenKind.PUNCT, c)
        if c == "*":
            nxt = self._getc()
            if nxt == "*":
                return self._tok(TokenKind.POW, "**")
            self._unget(nxt)
            return self._tok(TokenKind.PUNCT, "*")
        if c == ")":
            self._paren_count -= 1
            if self._paren_count == 0:
                self._paren_count = 1
                self._arith = False
            return self._tok(TokenKind.PUNCT, c)
        if c == "$":
            chars = []
            c = self._getc()
            while c is not None and c in _ARITH_VAR_CHARS:
                chars.append(c)
                c = self._getc()
            self._unget(c)
            if not chars:
                raise self._error(
                    "Variable with no name inside arithmetic expression"
                )
            return self._tok(TokenKind.ARITH_VAR, "".join(chars))
        raise self._error("Invalid token in arithmetic expression")

    # -- ordinary input ------------------------------------------------

    def _lex_normal(self) -> Token:
        is_meta = _is_var_meta if self._dollar else _is_meta
        self._dollar = False
        while True:
            c = self._getc()
            while c in (" ", "\t"):
                self._w = _State.NONWORD
                c = self._getc()
            if c != "\n" and c != "|":
                self._begin_block = False
            if c is None:
                return self._tok(TokenKind.ENDFILE)
            if not is_meta(c) and c != "=":
                return self._word(c, is_meta)
            if c == "\\":
                c = self._getc()
                if c == "\n":
                    self._prompt2()
                    self._unget(" ")
                    continue
                if c is None:
                    raise self._error("bad backslash escape")
                self._unget(c)
                caret = self._caret("\\")
                if caret is not None:
                    return caret
                self._w = _State.REALWORD
                return self._escape()
            return self._special(c)

    def _word(self, c: str, is_meta: Any) -> Token:
        caret = self._caret(c)
        if caret is not None:
            return caret
        chars = [c]
        while True:
            c = self._getc()
            if c is None or is_meta(c):
                break
            chars.append(c)
        self._unget(c)
        word = "".join(chars)
        self._w = _State.KEYWORD
        if word == "~":
            return self._tok(TokenKind.PUNCT, "~")
        kind = _KEYWORDS.get(word)
        if kind is not None:
            return self._tok(kind, word)
        self._w = _State.REALWORD
        return self._tok(TokenKind.WORD, word)

    def _escape(self) -> Token:
        c = self._getc()
        bad = "bad backslash escape"
        if c in _SIMPLE_ESCAPES:
            text = _SIMPLE_ESCAPES[c]
        elif c in ("x", "X"):
            n, remaining = 0, 2
            while remaining:
                h = _hex(self._getc())
                if h is None:
                    break
                n = n * 16 + h
                remaining -= 1
            if remaining or n == 0:
                raise self._error(bad)
            text = chr(n)
        elif c in ("u", "U"):
            remaining = 4 if c == "u" else 8
            quoted = False
            c = self._getc()
            if c == "'":
                if remaining == 8:
                    raise self._error(bad)
                remaining, quoted = 6, True
            else:
                self._unget(c)
            n = 0
            while remaining:
                c = self._getc()
                if quoted and c == "'":
                    break
                h = _hex(c)
                if h is None:
                    break
                n = n * 16 + h
                remaining -= 1
            if quoted:
                if remaining == 0:
                    c = self._getc()
                if remaining == 6 or c != "'":
                    raise self._error(bad)
            elif remaining:
                raise self._error(bad)
            if n == 0 or 0xD800 <= n < 0xE000 or n >= 0x110000:
                raise self._error(bad)
            text = chr(n)
        elif c in ("0", "1", "2", "3"):
            n, remaining = int(c), 2
            while remaining:
                c = self._getc()
                if c is None or c not in "01234567":
                    break
                n = n * 8 + int(c)
                remaining -= 1
            if remaining or n == 0:
                raise self._error(bad)
            text = chr(n)
        elif c is None or (c.isascii() and c.isalnum()):
            raise self._error(bad)
        else:
            text = c
        return self._tok(TokenKind.QWORD, text)

    def _special(self, c: str) -> Token:
        if c in ("`", "!", "$", "'"):
            caret = self._caret(c)
            if caret is not None:
                return caret
            if c == "!":
                self._w = _State.KEYWORD
        if c == "!":
            return self._tok(TokenKind.PUNCT, "!")
        if c == "`":
            nxt = self._getc()
            if nxt == "`":
                return self._tok(TokenKind.BACKBACK, "``")
            if nxt == "(":
                self._arith = True
                return self._tok(TokenKind.ARITH_BEGIN, "`(")
            self._unget(nxt)
            return self._tok(TokenKind.PUNCT, "`")
        if c == "$":
            self._dollar = True
            nxt = self._getc()
            if nxt == "#":
                return self._tok(TokenKind.COUNT, "$#")
            if nxt == "^":
                return self._tok(TokenKind.FLAT, "$^")
            if nxt == "&":
                return self._tok(TokenKind.PRIM, "$&")
            self._unget(nxt)
            return self._tok(TokenKind.PUNCT, "$")
        if c == "'":
            return self._quoted()
        if c == "#":
            while True:
                c = self._getc()
                if c is None:
                    return self._tok(TokenKind.ENDFILE)
                if c == "\n":
                    break
        if c == "\n":
            self._prompt2()
            self._w = _State.NONWORD
            return self._tok(TokenKind.NL)
        if c == "=":
            nxt = self._getc()
            self._unget(nxt)
            if nxt is None or _is_meta(nxt):
                self._w = _State.NONWORD
                return self._tok(TokenKind.ASSIGN, "=")
            self._w = _State.REALWORD
            return self._tok(TokenKind.WORD, "=")
        if c in ("(", ";", "^", ")", "{", "}"):
            kind = TokenKind.PUNCT
            if c == "(" and self._w is _State.REALWORD:
                kind = TokenKind.SUB
            if c == "{":
                self._begin_block = True
            self._w = _State.NONWORD
            return self._tok(kind, c)
        if c == "&":
            self._w = _State.NONWORD
            nxt = self._getc()
            if nxt == "&":
                return self._tok(TokenKind.ANDAND, "&&")
            self._unget(nxt)
            return self._tok(TokenKind.PUNCT, "&")
        if c == "|":
            return self._pipe()
        if c in ("<", ">"):
            return self._redirection(c)
        self._w = _State.NONWORD
        return self._tok(TokenKind.PUNCT, c)

    def _quoted(self) -> Token:
        self._w = _State.REALWORD
        chars = []
        while True:
            c = self._getc()
            if c == "'":
                c = self._getc()
                if c != "'":
                    break
            if c is None:
                self._w = _State.NONWORD
                raise self._error("eof in quoted string")
            chars.append(c)
            if c == "\n":
                self._prompt2()
        self._unget(c)
        return self._tok(TokenKind.QWORD, "".join(chars))

    def _pipe(self) -> Token:
        if self._begin_block:
            self._begin_block = False
            self._param_block = True
            return self._tok(TokenKind.PARAM_BEGIN, "|")
        if self._param_block:
            self._param_block = False
            return self._tok(TokenKind.PARAM_END, "|")
        self._w = _State.NONWORD
        c = self._getc()
        if c == "|":
            return self._tok(TokenKind.OROR, "||")
        outfd, infd = self._getfds(c, 1, 0)
        if infd == _CLOSED:
            raise self._error("expected digit after '='")
        return self._tok(TokenKind.PIPE, mk(NodeKind.PIPE, outfd, infd))

    def _redirection(self, c: str) -> Token:
        if c == "<":
            fd = 0
            c = self._getc()
            if c == ">":
                c = self._getc()
                if c == ">":
                    c = self._getc()
                    cmd = "%open-append"
                else:
                    cmd = "%open-write"
            elif c == "<":
                c = self._getc()
                if c == "<":
                    c = self._getc()
                    cmd = "%here"
                else:
                    cmd = "%heredoc"
            elif c == "=":
                return self._tok(TokenKind.CALL, "<=")
            else:
                cmd = "%open"
        else:
            fd = 1
            c = self._getc()
            if c == ">":
                c = self._getc()
                if c == "<":
                    c = self._getc()
                    cmd = "%open-append"
                else:
                    cmd = "%append"
            elif c == "<":
                c = self._getc()
                cmd = "%open-create"
            else:
                cmd = "%create"
        self._w = _State.NONWORD
        fd0, fd1 = self._getfds(c, fd, _DEFAULT)
        if fd1 != _DEFAULT:
            tree = mkclose(fd0) if fd1 == _CLOSED else mkdup(fd0, fd1)
            return self._tok(TokenKind.DUP, tree)
        return self._tok(TokenKind.REDIR, mkredircmd(cmd, fd0))

    def _getfds(self, c: Optional[str], default0: int, default1: int) -> tuple[int, int]:
        """Scan a descriptor pair such as ``[2=1]`` or ``[2=]``."""
        if c != "[":
            self._unget(c)
            return default0, default1
        n = _digit(self._getc())
        if n is None:
            raise self._error("expected digit after '['")
        while True:
            c = self._getc()
            d = _digit(c)
            if d is None:
                break
            n = n * 10 + d
        fd0, fd1 = n, default1
        if c == "=":
            c = self._getc()
            n = _digit(c)
            if n is None:
                if c != "]":
                    raise self._error("expected digit or ']' after '='")
                fd1 = _CLOSED
            else:
                while True:
                    c = self._getc()
                    d = _digit(c)
                    if d is None:
                        break
                    n = n * 10 + d
                if c != "]":
                    raise self._error("expected ']' after digit")
                fd1 = n
        elif c != "]":
            raise self._error("expected '=' or ']' after digit")
        return fd0, fd1


def tokenize(text: str) -> list[Token]:
    """All tokens of ``text``, ending with an ENDFILE token."""
    return list(Lexer(text))