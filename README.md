# xscore

Building blocks of a higher-order, list-valued shell, in plain Python with no
dependencies outside the standard library. It runs on POSIX systems.

- `xscore.lexer`: turns shell text into tokens (`tokenize`, `Lexer`, `Token`,
  `TokenKind`). It handles quoting, backslash escapes (`\n`, `\x41`,
  `\u'1F600'`, octal), keywords such as `for`, `let` and `:lt`, redirections
  such as `>[2=1]` and `>[2=]`, and arithmetic blocks started by `` `( ``.
  Bad input raises `LexError`.
- `xscore.tree`: builds and rewrites syntax trees (`Tree`, `NodeKind`, `mk`,
  `tree_cons`, `tree_append`, `thunkify`, `mkseq`, `mkpipe`, `mkredir`,
  `mkclose`, `mkdup`, `redirect`, `redirappend`, `relop` and more).
  Malformed constructions raise `TreeError`.
- `xscore.split`: word splitting, with or without coalescing separators
  (`Splitter`, `fsplit`).
- `xscore.terms`: the `Term` value type, the user-facing error `XsError`
  (raised by `fail`), and small helpers: `is_absolute`, `streq2`,
  `strerror`, `OpenKind`, `open_flags`, `eopen`.
- `xscore.variables`: variable storage with lexical `Binding`s, dynamic
  scoping (`VarStore.dynamic`), an optional settor callback, export control
  and environment import and export.
- `xscore.signals`: signal names and numbers (`signal_number`,
  `signal_name`, `signal_message`), effects (`SigEffect`,
  `parse_signal_specs`) and deferred delivery of caught signals as
  `ShellSignal` exceptions (`SignalTable`).
- `xscore.status`: truth of status lists and conversion of wait statuses
  (`is_true`, `exit_status`, `make_status`, `status_message`).
- `xscore.sysprims`: resource limits (`LIMITS`, `find_limit`,
  `parse_limit`, `format_limit`, `limit_command`), the umask
  (`parse_umask`, `umask_command`), `parse_sleep` and `change_directory`.

## Installation

```
pip install .
```

## Examples

Tokenize a command line:

```python
from xscore.lexer import tokenize

for token in tokenize("echo 'hello world' >[2=1]\n"):
    print(token.kind, token.value)
# WORD, QWORD, DUP (a %dup tree), NL, ENDFILE
```

Build a relational test the way the parser would:

```python
from xscore.tree import NodeKind, Relation, mk, relop

node = relop(mk(NodeKind.WORD, "a"), mk(NodeKind.WORD, "b"), Relation.LESS)
node.kind  # NodeKind.MATCH
```

Split words the way the shell does:

```python
from xscore.split import fsplit

fsplit(" ", ["a  b", "c"], True)    # ['a', 'b', 'c']
fsplit(":", ["a::b"], False)        # ['a', '', 'b']
```

Keep variables:

```python
from xscore.variables import VarStore

store = VarStore()
store.define("path", ["/bin", "/usr/bin"])
store.lookup("path")           # ['/bin', '/usr/bin']
with store.dynamic("path", ["/opt/bin"]):
    store.lookup("path")       # ['/opt/bin']
store.environment()            # ['path=/bin\x01/usr/bin']
```

Signals and statuses:

```python
from xscore.signals import signal_number
from xscore.status import exit_status, is_true

signal_number("sigint")        # 2
is_true(["", "0"])             # True
exit_status(["3"])             # 3
```

Resource limits and the umask:

```python
from xscore.sysprims import find_limit, format_limit, parse_limit, parse_umask

parse_limit(find_limit("cputime"), "1:30")   # 90
format_limit(find_limit("cputime"), 90)      # 'cputime \t90s'
parse_umask("022")                           # 18
```

Errors that the shell reports to the user are raised as `xscore.terms.XsError`;
its `exception_list` gives the `("error", origin, message)` triple.

## What the package does not do

There is no parser that turns tokens into trees, no evaluator, no command to
run, and no interactive prompt: the package supplies the lexer, the tree
rewriting rules and the supporting pieces that such a shell is built from.
It has no `%`-style output formatter and no primitives for printing,
comparing, pipes, redirections or reading input.

## Running the tests

```
pip install .[test]
pytest
```