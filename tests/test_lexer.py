import pytest

from xscore.lexer import LexError, Lexer, Token, TokenKind, tokenize
from xscore.tree import NodeKind, mk, mkclose, mkdup, mkredircmd

K = TokenKind


def pairs(text):
    tokens = tokenize(text)
    assert tokens[-1].kind is K.ENDFILE
    return [(t.kind, t.value) for t in tokens[:-1]]


def test_simple_words():
    assert pairs("echo hello") == [(K.WORD, "echo"), (K.WORD, "hello")]


def test_empty_input_is_endfile():
    assert [t.kind for t in tokenize("")] == [K.ENDFILE]


@pytest.mark.parametrize(
    "word,kind",
    [
        ("for", K.FOR),
        ("local", K.LOCAL),
        ("let", K.LET),
        ("~~", K.EXTRACT),
        ("%closure", K.CLOSURE),
        (":lt", K.LT),
        (":le", K.LE),
        (":gt", K.GT),
        (":ge", K.GE),
        (":eq", K.EQ),
        (":ne", K.NE),
    ],
)
def test_keywords(word, kind):
    assert pairs(word) == [(kind, word)]


def test_tilde_is_character_token():
    assert pairs("~") == [(K.PUNCT, "~")]


def test_free_caret_between_word_and_quote():
    assert pairs("a'b'") == [(K.WORD, "a"), (K.PUNCT, "^"), (K.QWORD, "b")]


def test_free_caret_before_variable():
    assert pairs("a$b") == [
        (K.WORD, "a"),
        (K.PUNCT, "^"),
        (K.PUNCT, "$"),
        (K.WORD, "b"),
    ]


def test_variable_name_stops_at_dot():
    assert pairs("$a.b") == [
        (K.PUNCT, "$"),
        (K.WORD, "a"),
        (K.PUNCT, "^"),
        (K.WORD, ".b"),
    ]


def test_doubled_quote_in_quoted_string():
    assert pairs("'it''s'") == [(K.QWORD, "it's")]


def test_eof_in_quoted_string_then_newline():
    lexer = Lexer("'abc")
    with pytest.raises(LexError) as info:
        lexer.next_token()
    assert info.value.message == "eof in quoted string"
    assert lexer.next_token().kind is K.NL
    assert lexer.next_token().kind is K.ENDFILE


@pytest.mark.parametrize(
    "text,expected",
    [
        ("\\n", "\n"),
        ("\\t", "\t"),
        ("\\e", "\033"),
        ("\\x41", "\x41"),
        ("\\101", "\101"),
        ("\\u00e9", "\u00e9"),
        ("\\u'1F600'", "\U0001F600"),
        ("\\U0001F600", "\U0001F600"),
        ("\\;", ";"),
    ],
)
def test_backslash_escapes(text, expected):
    assert pairs(text) == [(K.QWORD, expected)]


@pytest.mark.parametrize(
    "text", ["\\q", "\\x00", "\\ud800", "\\x4", "\\12", "\\U'41'", "\\u'41", "\\"]
)
def test_bad_escapes(text):
    with pytest.raises(LexError) as info:
        tokenize(text)
    assert info.value.message == "bad backslash escape"


def test_error_recovery_skips_rest_of_line():
    lexer = Lexer("\\q rest\nok")
    with pytest.raises(LexError):
        lexer.next_token()
    assert lexer.next_token().kind is K.NL
    token = lexer.next_token()
    assert (token.kind, token.value) == (K.WORD, "ok")


def test_escape_inside_word_gets_carets():
    assert pairs("a\\tb") == [
        (K.WORD, "a"),
        (K.PUNCT, "^"),
        (K.QWORD, "\t"),
        (K.PUNCT, "^"),
        (K.WORD, "b"),
    ]


def test_backslash_newline_continues_line():
    tokens = tokenize("a\\\nb")
    assert [(t.kind, t.value) for t in tokens[:-1]] == [(K.WORD, "a"), (K.WORD, "b")]
    assert tokens[1].line == tokens[0].line + 1


def test_comment_ends_at_newline():
    assert pairs("a # note\nb") == [(K.WORD, "a"), (K.NL, None), (K.WORD, "b")]


def test_comment_at_end_of_input():
    assert [t.kind for t in tokenize("a # note")] == [K.WORD, K.ENDFILE]


def test_line_numbers_advance_on_newline():
    tokens = tokenize("a\nb")
    assert tokens[2].line == tokens[0].line + 1


def test_assignment():
    assert pairs("x = y") == [(K.WORD, "x"), (K.ASSIGN, "="), (K.WORD, "y")]


def test_equals_inside_word():
    assert pairs("a=b") == [(K.WORD, "a=b")]


def test_equals_starting_word():
    assert pairs("=b") == [(K.WORD, "="), (K.PUNCT, "^"), (K.WORD, "b")]


@pytest.mark.parametrize(
    "text,cmd,fd",
    [
        (">", "%create", 1),
        (">>", "%append", 1),
        (">><", "%open-append", 1),
        ("><", "%open-create", 1),
        ("<", "%open", 0),
        ("<>", "%open-write", 0),
        ("<>>", "%open-append", 0),
        ("<<", "%heredoc", 0),
        ("<<<", "%here", 0),
    ],
)
def test_redirections(text, cmd, fd):
    assert pairs(text + " f") == [(K.REDIR, mkredircmd(cmd, fd)), (K.WORD, "f")]


def test_redirection_with_descriptor():
    assert pairs(">[2] f") == [(K.REDIR, mkredircmd("%create", 2)), (K.WORD, "f")]


def test_dup_and_close():
    assert pairs(">[2=1]") == [(K.DUP, mkdup(2, 1))]
    assert pairs(">[2=]") == [(K.DUP, mkclose(2))]


def test_call_token():
    assert pairs("<=f") == [(K.CALL, "<="), (K.WORD, "f")]


@pytest.mark.parametrize(
    "text,message",
    [
        (">[x]", "expected digit after '['"),
        (">[2=x]", "expected digit or ']' after '='"),
        (">[2=1x", "expected ']' after digit"),
        (">[2x", "expected '=' or ']' after digit"),
    ],
)
def test_bad_descriptor_pairs(text, message):
    with pytest.raises(LexError) as info:
        tokenize(text)
    assert info.value.message == message


def test_pipes():
    assert pairs("a | b") == [
        (K.WORD, "a"),
        (K.PIPE, mk(NodeKind.PIPE, 1, 0)),
        (K.WORD, "b"),
    ]
    assert pairs("|[2]") == [(K.PIPE, mk(NodeKind.PIPE, 2, 0))]
    assert pairs("|[2=3]") == [(K.PIPE, mk(NodeKind.PIPE, 2, 3))]


def test_pipe_cannot_close():
    with pytest.raises(LexError) as info:
        tokenize("|[1=]")
    assert info.value.message == "expected digit after '='"


def test_oror_and_andand():
    assert [k for k, _ in pairs("a || b && c & d")] == [
        K.WORD, K.OROR, K.WORD, K.ANDAND, K.WORD, K.PUNCT, K.WORD,
    ]


def test_lambda_parameters():
    assert pairs("{|x| y}") == [
        (K.PUNCT, "{"),
        (K.PARAM_BEGIN, "|"),
        (K.WORD, "x"),
        (K.PARAM_END, "|"),
        (K.WORD, "y"),
        (K.PUNCT, "}"),
    ]


def test_sub_after_word():
    assert pairs("f(x)") == [
        (K.WORD, "f"),
        (K.SUB, "("),
        (K.WORD, "x"),
        (K.PUNCT, ")"),
    ]
    assert pairs("(x)")[0] == (K.PUNCT, "(")


def test_dollar_forms():
    assert pairs("$#x $^y $&z") == [
        (K.COUNT, "$#"),
        (K.WORD, "x"),
        (K.FLAT, "$^"),
        (K.WORD, "y"),
        (K.PRIM, "$&"),
        (K.WORD, "z"),
    ]


def test_backquotes():
    assert pairs("``")[0][0] is K.BACKBACK
    assert pairs("`{x}")[0] == (K.PUNCT, "`")


def test_arithmetic():
    assert pairs("`(1 + 2.5 ** $x) foo") == [
        (K.ARITH_BEGIN, "`("),
        (K.INT, "1"),
        (K.PUNCT, "+"),
        (K.FLOAT, "2.5"),
        (K.POW, "**"),
        (K.ARITH_VAR, "x"),
        (K.PUNCT, ")"),
        (K.WORD, "foo"),
    ]


def test_arithmetic_nested_parentheses():
    kinds = [k for k, _ in pairs("`((2) * 3) w")]
    assert kinds == [
        K.ARITH_BEGIN, K.PUNCT, K.INT, K.PUNCT, K.PUNCT, K.INT, K.PUNCT, K.WORD,
    ]


def test_arithmetic_errors():
    with pytest.raises(LexError) as info:
        tokenize("`(#)")
    assert info.value.message == "Invalid token in arithmetic expression"
    with pytest.raises(LexError) as info:
        tokenize("`($ )")
    assert info.value.message == "Variable with no name inside arithmetic expression"
    with pytest.raises(LexError):
        tokenize("`(. )")


def test_iteration_matches_tokenize():
    text = "for i x { echo $i }\n"
    assert list(Lexer(text)) == tokenize(text)
    assert tokenize(text)[-1] == Token(K.ENDFILE, None, tokenize(text)[-1].line)


def test_newline_sets_continued_input():
    lexer = Lexer("a\nb")
    list(lexer)
    assert lexer.continued_input is True
    assert lexer.lineno == 2