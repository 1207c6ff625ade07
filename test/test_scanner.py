"""
Scanner tests for the Oberon-07 front-end
Tests lexeme classification, positions and lexical errors
"""

import pytest
from scanning import OberonScanner, Token, TokenKind, classify_lexeme, scan, tokenize
from error_handling import ErrorKind, LexError
from utilities import make_collecting_tracer


def texts(tokens):
  return [token.text for token in tokens]


def kinds(tokens):
  return [token.kind for token in tokens]


class TestNumbers:
  """Test integer, real and hexadecimal literals"""

  def test_range_is_not_a_real(self):
    """1..10 lexes as integer, range operator, integer"""
    tokens = tokenize("1..10")
    assert texts(tokens) == ["1", "..", "10"]
    assert kinds(tokens) == [TokenKind.INTEGER, TokenKind.OPERATOR_OR_DELIMITER, TokenKind.INTEGER]

  def test_real(self):
    """A decimal point followed by digits makes one real"""
    tokens = tokenize("3.14")
    assert len(tokens) == 1
    assert tokens[0].kind is TokenKind.REAL
    assert tokens[0].text == "3.14"

  def test_real_with_exponent(self):
    tokens = tokenize("1.5E+3 2.0D-7 6.02E23")
    assert texts(tokens) == ["1.5E+3", "2.0D-7", "6.02E23"]
    assert all(token.kind is TokenKind.REAL for token in tokens)

  def test_real_without_fraction_digits(self):
    tokens = tokenize("1. ")
    assert texts(tokens) == ["1."]
    assert tokens[0].kind is TokenKind.REAL

  def test_hexadecimal_integer(self):
    """0FFH is one hexadecimal integer"""
    tokens = tokenize("0FFH")
    assert texts(tokens) == ["0FFH"]
    assert tokens[0].kind is TokenKind.INTEGER

  def test_character_constant_is_a_string(self):
    tokens = tokenize("41X 0DX")
    assert texts(tokens) == ["41X", "0DX"]
    assert kinds(tokens) == [TokenKind.STRING, TokenKind.STRING]

  def test_bad_hexadecimal_digits(self):
    """0GGH is not a valid lexeme"""
    result = scan("0GGH")
    assert not result.ok
    assert result.error.kind is ErrorKind.UNRECOGNIZED_TOKEN
    assert result.error.text == "0GGH"
    assert result.tokens == []

  def test_number_directly_before_range_in_brackets(self):
    tokens = tokenize("{0..31}")
    assert texts(tokens) == ["{", "0", "..", "31", "}"]


class TestWordsAndOperators:
  """Test identifier reclassification and operator recognition"""

  def test_reserved_predefined_and_plain_identifiers(self):
    tokens = tokenize("IF INTEGER counter")
    assert kinds(tokens) == [TokenKind.RESERVED_WORD, TokenKind.PREDEFINED, TokenKind.IDENTIFIER]

  def test_true_and_false_are_reserved_words(self):
    """The reserved-word table is consulted before the predefined one"""
    tokens = tokenize("TRUE FALSE")
    assert kinds(tokens) == [TokenKind.RESERVED_WORD, TokenKind.RESERVED_WORD]

  def test_identifiers_are_case_sensitive(self):
    tokens = tokenize("If if")
    assert kinds(tokens) == [TokenKind.IDENTIFIER, TokenKind.IDENTIFIER]

  def test_two_character_operators(self):
    tokens = tokenize("a:=b<=c>=d")
    assert texts(tokens) == ["a", ":=", "b", "<=", "c", ">=", "d"]

  def test_single_character_operators(self):
    source = "+ - * / ~ & . , ; | ( [ { ^ = # < > : ) ] }"
    tokens = tokenize(source)
    assert texts(tokens) == source.split()
    assert all(token.kind is TokenKind.OPERATOR_OR_DELIMITER for token in tokens)

  def test_operator_ends_identifier(self):
    tokens = tokenize("Out.Int(x,0)")
    assert texts(tokens) == ["Out", ".", "Int", "(", "x", ",", "0", ")"]

  def test_identifier_with_digits(self):
    tokens = tokenize("x1 y2z")
    assert texts(tokens) == ["x1", "y2z"]
    assert kinds(tokens) == [TokenKind.IDENTIFIER, TokenKind.IDENTIFIER]

  def test_underscore_is_rejected(self):
    result = scan("my_var")
    assert result.error.kind is ErrorKind.UNRECOGNIZED_TOKEN
    assert result.error.text == "my_var"

  def test_stray_character_is_rejected(self):
    result = scan("x := @")
    assert texts(result.tokens) == ["x", ":="]
    assert result.error.kind is ErrorKind.UNRECOGNIZED_TOKEN
    assert (result.error.line, result.error.column) == (1, 6)


class TestStringsAndComments:
  """Test string literals and comments"""

  def test_string_keeps_its_quotes(self):
    tokens = tokenize('"Hello, world"')
    assert texts(tokens) == ['"Hello, world"']
    assert tokens[0].kind is TokenKind.STRING

  def test_empty_string(self):
    tokens = tokenize('""')
    assert texts(tokens) == ['""']

  def test_string_ends_identifier(self):
    tokens = tokenize('x"y"')
    assert texts(tokens) == ["x", '"y"']

  def test_unterminated_string(self):
    result = scan('s := "abc')
    assert texts(result.tokens) == ["s", ":="]
    assert result.error.kind is ErrorKind.UNTERMINATED_STRING

  def test_comments_are_skipped(self):
    tokens = tokenize("a (* a comment *) b")
    assert texts(tokens) == ["a", "b"]

  def test_comment_directly_after_identifier(self):
    tokens = tokenize("a(*x*)b")
    assert texts(tokens) == ["a", "b"]

  def test_comments_do_not_nest(self):
    """The first *) closes the comment"""
    tokens = tokenize("(* a (* b *) c *)")
    assert texts(tokens) == ["c", "*", ")"]

  def test_unterminated_comment(self):
    result = scan("x (* oops")
    assert texts(result.tokens) == ["x"]
    assert result.error.kind is ErrorKind.UNTERMINATED_COMMENT

  def test_tokenize_raises_lex_error(self):
    with pytest.raises(LexError) as exc_info:
      tokenize("(* never closed")
    assert exc_info.value.kind is ErrorKind.UNTERMINATED_COMMENT


class TestPositions:
  """Test line and column tracking"""

  def test_columns_point_at_first_character(self):
    tokens = tokenize("x := 10")
    assert [(token.line, token.column) for token in tokens] == [(1, 1), (1, 3), (1, 6)]

  def test_lines_advance_on_newline(self):
    tokens = tokenize("MODULE M;\n  END M.")
    end = tokens[3]
    assert end.text == "END"
    assert (end.line, end.column) == (2, 3)

  def test_multiline_comment_advances_lines(self):
    tokens = tokenize("(* one\ntwo\n*) x")
    assert (tokens[0].line, tokens[0].column) == (3, 4)

  def test_lexeme_at_end_of_input_is_kept(self):
    tokens = tokenize("END M")
    assert texts(tokens) == ["END", "M"]


class TestScannerInterface:
  """Test scan/tokenize entry points and the scanner object"""

  def test_empty_source(self):
    result = scan("")
    assert result.ok
    assert result.tokens == []

  def test_bytes_input(self):
    tokens = tokenize(b"VAR x: INTEGER;")
    assert texts(tokens) == ["VAR", "x", ":", "INTEGER", ";"]

  def test_scanning_is_pure(self):
    source = "MODULE M; VAR x: REAL; BEGIN x := 1.5 END M."
    assert scan(source) == scan(source)

  def test_scanner_is_reusable(self):
    scanner = OberonScanner()
    first = scanner.scan("a b")
    second = scanner.scan("c")
    assert texts(first.tokens) == ["a", "b"]
    assert texts(second.tokens) == ["c"]

  def test_tracer_sees_every_token(self):
    messages = []
    tokens = tokenize("x := 1", tracer=make_collecting_tracer(messages))
    assert len(messages) == len(tokens)
    assert messages[0].startswith("Emitted Identifier('x')")

  def test_tracer_sees_errors(self):
    messages = []
    scan("x (* oops", tracer=make_collecting_tracer(messages))
    assert messages[-1].startswith("Lexical error: unclosed comment")

  def test_token_str(self):
    token = Token("x", TokenKind.IDENTIFIER, 2, 5)
    assert str(token) == "Identifier('x') at 2:5"

  def test_classify_lexeme(self):
    assert classify_lexeme("MODULE") is TokenKind.RESERVED_WORD
    assert classify_lexeme("NEW") is TokenKind.PREDEFINED
    assert classify_lexeme("42") is TokenKind.INTEGER
    assert classify_lexeme("0AH") is TokenKind.INTEGER
    assert classify_lexeme("foo") is TokenKind.IDENTIFIER
    assert classify_lexeme("4x") is None
