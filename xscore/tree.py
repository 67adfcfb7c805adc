"""Syntax tree nodes and the rewriting rules the parser applies to them."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, Optional


class TreeError(Exception):
    """Raised for malformed trees or invalid tree constructions."""


class NodeKind(Enum):
    ASSIGN = auto()
    CALL = auto()
    CLOSURE = auto()
    CONCAT = auto()
    FOR = auto()
    LAMBDA = auto()
    LET = auto()
    LIST = auto()
    LOCAL = auto()
    MATCH = auto()
    EXTRACT = auto()
    PRIM = auto()
    QWORD = auto()
    THUNK = auto()
    VAR = auto()
    VARSUB = auto()
    WORD = auto()
    ARITH = auto()
    PLUS = auto()
    MINUS = auto()
    MULT = auto()
    DIVIDE = auto()
    MODULUS = auto()
    POW = auto()
    INT = auto()
    FLOAT = auto()
    REDIR = auto()  # only during construction
    PIPE = auto()  # only during construction


class Relation(Enum):
    LESS = auto()
    LESS_EQUAL = auto()
    GREATER = auto()
    GREATER_EQUAL = auto()
    EQUAL = auto()
    NOT_EQUAL = auto()


_STRING_KINDS = frozenset(
    {NodeKind.WORD, NodeKind.QWORD, NodeKind.PRIM, NodeKind.INT, NodeKind.FLOAT}
)
_UNARY_KINDS = frozenset({NodeKind.CALL, NodeKind.THUNK, NodeKind.VAR, NodeKind.ARITH})


@dataclass
class Tree:
    """A parse-tree node; ``car`` and ``cdr`` hold its one or two fields."""

    kind: NodeKind
    car: Any = None
    cdr: Any = None


PLACEHOLDER = Tree(NodeKind.REDIR)
"""Marks where a redirection's body is spliced in by :func:`redirect`."""

ERROR_NODE = Tree(NodeKind.ASSIGN)
"""Returned by :func:`redirect` when a here document cannot be queued."""

_devfd_ids = itertools.count()


def mk(kind: NodeKind, *args: Any) -> Tree:
    """Make a new node of the given kind from its fields."""
    if not isinstance(kind, NodeKind):
        raise TreeError(f"mk: bad node kind {kind!r}")
    arity = 1 if kind in _STRING_KINDS or kind in _UNARY_KINDS else 2
    if len(args) != arity:
        raise TreeError(f"mk: {kind.name} takes {arity} field(s), got {len(args)}")
    if kind in _STRING_KINDS and not isinstance(args[0], str):
        raise TreeError(f"mk: {kind.name} needs a string")
    if kind is NodeKind.PIPE and not all(isinstance(a, int) for a in args):
        raise TreeError("mk: PIPE needs two descriptors")
    return Tree(kind, *args)


def _check_list(tree: Optional[Tree]) -> None:
    if tree is not None and tree.kind is not NodeKind.LIST:
        raise TreeError(f"expected a list node, got {tree.kind.name}")


def tree_cons(car: Optional[Tree], cdr: Optional[Tree]) -> Tree:
    """Create a new list cell."""
    _check_list(cdr)
    return mk(NodeKind.LIST, car, cdr)


def tree_cons_if(car: Optional[Tree], cdr: Optional[Tree]) -> Optional[Tree]:
    """Create a list cell, or return ``cdr`` unchanged when ``car`` is None."""
    _check_list(cdr)
    return cdr if car is None else mk(NodeKind.LIST, car, cdr)


def tree_append(head: Optional[Tree], tail: Optional[Tree]) -> Optional[Tree]:
    """Destructively append ``tail`` to the end of the list ``head``."""
    if head is None:
        return tail
    node = head
    while True:
        if node.kind not in (NodeKind.LIST, NodeKind.REDIR):
            raise TreeError(f"cannot append to a {node.kind.name} node")
        if node.cdr is None:
            node.cdr = tail
            return head
        node = node.cdr


def tree_cons_end(head: Optional[Tree], tail: Optional[Tree]) -> Tree:
    """Destructively add a node at the end of a list."""
    return tree_append(head, tree_cons(tail, None))


def tree_cons_end_if(head: Optional[Tree], tail: Optional[Tree]) -> Optional[Tree]:
    """Like :func:`tree_cons_end`, but does nothing when ``tail`` is None."""
    if tail is None:
        if head is not None and head.kind not in (NodeKind.LIST, NodeKind.REDIR):
            raise TreeError(f"expected a list node, got {head.kind.name}")
        return head
    return tree_append(head, tree_cons(tail, None))


def thunkify(tree: Optional[Tree]) -> Tree:
    """Wrap a tree in thunk braces unless it already is a thunk."""
    if tree is not None and (
        tree.kind is NodeKind.THUNK
        or (
            tree.kind is NodeKind.LIST
            and tree.car is not None
            and tree.car.kind is NodeKind.THUNK
            and tree.cdr is None
        )
    ):
        return tree
    return mk(NodeKind.THUNK, tree)


def _first_is(tree: Optional[Tree], word: str) -> bool:
    if tree is None or tree.kind is not NodeKind.LIST:
        return False
    first = tree.car
    if first is None or first.kind is not NodeKind.WORD:
        return False
    return first.car == word


def prefix(word: str, tree: Optional[Tree]) -> Tree:
    """Prefix a list with a word."""
    return tree_cons(mk(NodeKind.WORD, word), tree)


def flatten(tree: Optional[Tree], sep: str) -> Tree:
    """Wrap ``tree`` in a call that joins its words with ``sep``."""
    return mk(
        NodeKind.CALL,
        prefix("%flatten", tree_cons(mk(NodeKind.QWORD, sep), tree_cons(tree, None))),
    )


def backquote(ifs: Optional[Tree], body: Optional[Tree]) -> Tree:
    """Create a backquote command."""
    return mk(
        NodeKind.CALL,
        prefix("%backquote", tree_cons(flatten(ifs, ""), tree_cons(body, None))),
    )


def fnassign(name: Optional[Tree], defn: Optional[Tree]) -> Tree:
    """Turn a function definition into an assignment to ``fn-<name>``."""
    return mk(NodeKind.ASSIGN, mk(NodeKind.CONCAT, mk(NodeKind.WORD, "fn-"), name), defn)


def mklambda(params: Optional[Tree], body: Optional[Tree]) -> Tree:
    """Create a lambda node."""
    return mk(NodeKind.LAMBDA, params, body)


def mkseq(op: str, t1: Optional[Tree], t2: Optional[Tree]) -> Optional[Tree]:
    """Destructively build a flat sequence of thunks under the command ``op``."""
    if op == "%seq":
        if t1 is None:
            return t2
        if t2 is None:
            return t1
    same_tail = _first_is(t2, op)
    tail = t2.cdr if same_tail else tree_cons(thunkify(t2), None)
    if _first_is(t1, op):
        return tree_append(t1, tail)
    t1 = thunkify(t1)
    if same_tail:
        t2.cdr = tree_cons(t1, tail)
        return t2
    return prefix(op, tree_cons(t1, tail))


def mkpipe(t1: Optional[Tree], outfd: int, infd: int, t2: Optional[Tree]) -> Tree:
    """Assemble a pipeline from its commands (destructive)."""
    pipe_tail = _first_is(t2, "%pipe")
    rest = t2.cdr if pipe_tail else tree_cons(thunkify(t2), None)
    tail = prefix(str(outfd), prefix(str(infd), rest))
    if _first_is(t1, "%pipe"):
        return tree_append(t1, tail)
    t1 = thunkify(t1)
    if pipe_tail:
        t2.cdr = tree_cons(t1, tail)
        return t2
    return prefix("%pipe", tree_cons(t1, tail))


def redirect(
    tree: Optional[Tree],
    queue_heredoc: Optional[Callable[[Tree], bool]] = None,
) -> Optional[Tree]:
    """Rewrite a queued redirection so that it wraps the command it applies to.

    ``queue_heredoc`` is called with a ``%heredoc`` command; when it returns
    false, :data:`ERROR_NODE` is returned.
    """
    if tree is None:
        return None
    if tree.kind is not NodeKind.REDIR:
        return tree
    redir = tree.car
    body = tree.cdr
    while redir.kind is NodeKind.REDIR:
        body = tree_append(body, redir.car)
        redir = redir.cdr
    slot = redir
    while slot is not None and slot.car is not PLACEHOLDER:
        if slot.kind is not NodeKind.LIST:
            raise TreeError("redirection is not a list")
        slot = slot.cdr
    if slot is None:
        raise TreeError("redirection has no placeholder")
    if _first_is(redir, "%heredoc") and queue_heredoc is not None:
        if not queue_heredoc(redir):
            return ERROR_NODE
    slot.car = thunkify(redirect(body, queue_heredoc))
    return redir


def mkredircmd(cmd: str, fd: int) -> Tree:
    """Start a redirection command for descriptor ``fd``."""
    return prefix(cmd, prefix(str(fd), None))


def mkredir(cmd: Tree, file: Optional[Tree]) -> Tree:
    """Complete a redirection command with its file and a placeholder."""
    word = None
    if file is not None and file.kind is NodeKind.THUNK:
        if _first_is(cmd, "%open"):
            op = "%readfrom"
        elif _first_is(cmd, "%create"):
            op = "%writeto"
        else:
            raise TreeError("bad /dev/fd redirection")
        var = mk(NodeKind.WORD, f"_devfd{next(_devfd_ids)}")
        cmd = tree_cons(mk(NodeKind.WORD, op), tree_cons(var, None))
        word = tree_cons(mk(NodeKind.VAR, var), None)
    elif not _first_is(cmd, "%heredoc") and not _first_is(cmd, "%here"):
        file = mk(NodeKind.CALL, prefix("%one", tree_cons(file, None)))
    cmd = tree_append(cmd, tree_cons(file, tree_cons(PLACEHOLDER, None)))
    if word is not None:
        cmd = mk(NodeKind.REDIR, word, cmd)
    return cmd


def mkclose(fd: int) -> Tree:
    """Make a ``%close`` command with a placeholder."""
    return prefix("%close", prefix(str(fd), tree_cons(PLACEHOLDER, None)))


def mkdup(fd0: int, fd1: int) -> Tree:
    """Make a ``%dup`` command with a placeholder."""
    return prefix(
        "%dup", prefix(str(fd0), prefix(str(fd1), tree_cons(PLACEHOLDER, None)))
    )


def redirappend(tree: Optional[Tree], redir: Tree) -> Tree:
    """Destructively add a redirection ahead of the other nodes of a list."""
    while redir.kind is NodeKind.REDIR:
        tree = tree_append(tree, redir.car)
        redir = redir.cdr
    if redir.kind is not NodeKind.LIST:
        raise TreeError("redirection is not a list")
    previous = None
    node = tree
    while node is not None and node.kind is NodeKind.REDIR:
        previous = node
        node = node.cdr
    if node is not None and node.kind is not NodeKind.LIST:
        raise TreeError(f"expected a list node, got {node.kind.name}")
    cell = mk(NodeKind.REDIR, redir, node)
    if previous is None:
        return cell
    previous.cdr = cell
    return tree


def _words(*values: str) -> Tree:
    result = None
    for value in reversed(values):
        result = tree_cons(mk(NodeKind.WORD, value), result)
    return result


def relop(left: Optional[Tree], right: Optional[Tree], rel: Relation) -> Tree:
    """Build the prefix form of an infix relational operator."""
    if rel is Relation.LESS:
        match = mk(NodeKind.WORD, "-1")
    elif rel is Relation.LESS_EQUAL:
        match = _words("-1", "0")
    elif rel is Relation.GREATER:
        match = mk(NodeKind.WORD, "1")
    elif rel is Relation.GREATER_EQUAL:
        match = _words("1", "0")
    elif rel is Relation.EQUAL:
        match = mk(NodeKind.WORD, "0")
    elif rel is Relation.NOT_EQUAL:
        match = _words("-1", "1")
    else:
        raise TreeError(f"unknown relation {rel!r}")
    call = mk(
        NodeKind.CALL,
        tree_cons(mk(NodeKind.WORD, "%cmp"), tree_cons(left, tree_cons(right, None))),
    )
    return mk(NodeKind.MATCH, call, match)