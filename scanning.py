"""
Oberon-07 Scanner
Single forward pass turning raw source into classified, position-tagged tokens
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, NamedTuple, Optional, Tuple, Union

from pyparsing import Regex, Word, alphas, alphanums, nums

from error_handling import ErrorKind, LexError
from utilities import Tracer, decode_source


class TokenKind(Enum):
    """Token classifications (COMMENT and KEYWORD are never emitted)"""
    INTEGER = "Integer"
    REAL = "Real"
    STRING = "String"
    COMMENT = "Comment"
    KEYWORD = "Keyword"
    PREDEFINED = "Predefined"
    IDENTIFIER = "Identifier"
    OPERATOR_OR_DELIMITER = "OperatorOrDelimiter"
    RESERVED_WORD = "ReservedWord"


@dataclass(frozen=True)
class Token:
    """Oberon token with source position of its first character"""
    text: str
    kind: TokenKind
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.kind.value}({self.text!r}) at {self.line}:{self.column}"


class ScanState(Enum):
    """What the current lexeme is accumulating into"""
    NORMAL = "normal"
    IN_COMMENT = "comment"
    IN_IDENTIFIER = "identifier"
    IN_NUMBER = "number"
    IN_STRING = "string"


class ScanResult(NamedTuple):
    """Tokens produced so far, plus the error that stopped the scan (if any)"""
    tokens: List[Token]
    error: Optional[LexError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


RESERVED_WORDS = frozenset({
    "ARRAY", "BEGIN", "BY", "CASE", "CONST", "DIV", "DO", "ELSE", "ELSIF",
    "END", "FALSE", "FOR", "IF", "IMPORT", "IN", "IS", "MOD", "MODULE", "NIL",
    "OF", "OR", "POINTER", "PROCEDURE", "RECORD", "REPEAT", "RETURN", "THEN",
    "TO", "TRUE", "TYPE", "UNTIL", "VAR", "WHILE",
})

PREDEFINED_IDENTIFIERS = frozenset({
    "ABS", "ASH", "BOOLEAN", "CAP", "CHAR", "CHR", "COPY", "DEC", "ENTIER",
    "EXCL", "FALSE", "HALT", "INC", "INCL", "INTEGER", "LEN", "LONG",
    "LONGINT", "LONGREAL", "MAX", "MIN", "NEW", "ODD", "ORD", "REAL", "SET",
    "SHORT", "SHORTINT", "SIZE", "TRUE",
})

MULTI_CHAR_OPERATORS = frozenset({":=", ">=", "<=", ".."})

OPERATOR_CHARS = frozenset("+-*/~&.,;|([{^=#<>:)]}")

OPERATORS = OPERATOR_CHARS | MULTI_CHAR_OPERATORS

WHITESPACE = frozenset(" \t\n\r\v\f")


# Lexeme shapes, each matched against a whole lexeme
STRING_SHAPE = Regex(r'"[^"]*"') | Regex(r'[0-9][0-9A-F]*X')
INTEGER_SHAPE = Regex(r'[0-9][0-9A-F]*H') | Word(nums)
REAL_SHAPE = Regex(r'[0-9]+\.[0-9]*(?:[ED][+-]?[0-9]+)?')
IDENTIFIER_SHAPE = Word(alphas, alphanums)

# Ordered, first match wins: reserved words and predefined identifiers are
# identifier-shaped and must be claimed before the identifier shape is tried.
CLASSIFIERS: List[Tuple[Callable[[str], bool], TokenKind]] = [
    (RESERVED_WORDS.__contains__, TokenKind.RESERVED_WORD),
    (PREDEFINED_IDENTIFIERS.__contains__, TokenKind.PREDEFINED),
    (STRING_SHAPE.matches, TokenKind.STRING),
    (INTEGER_SHAPE.matches, TokenKind.INTEGER),
    (REAL_SHAPE.matches, TokenKind.REAL),
    (IDENTIFIER_SHAPE.matches, TokenKind.IDENTIFIER),
]


def classify_lexeme(lexeme: str) -> Optional[TokenKind]:
    """Return the kind of the first classifier accepting lexeme, or None"""
    for accepts, kind in CLASSIFIERS:
        if accepts(lexeme):
            return kind
    return None


def is_boundary(char: str) -> bool:
    """Characters that end an identifier or number lexeme"""
    return char in WHITESPACE or char in OPERATOR_CHARS or char == '"'


class OberonScanner:
    """Oberon-07 scanner; one instance may scan any number of buffers"""

    def __init__(self, tracer: Optional[Tracer] = None):
        self.tracer = tracer
        self._reset("")

    def _reset(self, text: str) -> None:
        self._text = text
        self._index = 0
        self._line = 1
        self._column = 1
        self._tokens: List[Token] = []
        self._state = ScanState.NORMAL
        self._lexeme = ""
        self._lexeme_line = 0
        self._lexeme_column = 0

    def scan(self, source: Union[bytes, bytearray, str]) -> ScanResult:
        """Scan a whole buffer; lexical errors are returned, not raised"""
        self._reset(decode_source(source))
        try:
            self._run()
        except LexError as e:
            self._trace(f"Lexical error: {e.message}")
            return ScanResult(list(self._tokens), e)
        return ScanResult(list(self._tokens))

    def _run(self) -> None:
        text = self._text
        while self._index < len(text):
            char = text[self._index]
            following = text[self._index + 1] if self._index + 1 < len(text) else ""

            if self._state is ScanState.IN_COMMENT:
                # not nestable: the first "*)" closes
                self._advance(2 if char == "*" and following == ")" else 1)
                if char == "*" and following == ")":
                    self._state = ScanState.NORMAL
                continue

            if self._state is ScanState.IN_STRING:
                self._extend(char)
                if char == '"':
                    self._flush()
                continue

            if self._state is ScanState.IN_NUMBER:
                if self._extends_number(char, following):
                    self._extend(char)
                    continue
                self._flush()

            elif self._state is ScanState.IN_IDENTIFIER:
                if not is_boundary(char):
                    self._extend(char)
                    continue
                self._flush()

            self._scan_normal(char, following)

        self._finish()

    def _scan_normal(self, char: str, following: str) -> None:
        if char == "(" and following == "*":
            self._state = ScanState.IN_COMMENT
            self._advance(2)
        elif char in WHITESPACE:
            self._advance(1)
        elif char == '"':
            self._start(ScanState.IN_STRING)
            self._extend(char)
        elif char.isdigit():
            self._start(ScanState.IN_NUMBER)
            self._extend(char)
        elif char in OPERATOR_CHARS:
            pair = char + following
            if pair in MULTI_CHAR_OPERATORS:
                self._emit(pair, TokenKind.OPERATOR_OR_DELIMITER, self._line, self._column)
                self._advance(2)
            else:
                self._emit(char, TokenKind.OPERATOR_OR_DELIMITER, self._line, self._column)
                self._advance(1)
        else:
            # anything else starts an identifier-shaped lexeme; classification
            # rejects it later if it is not one
            self._start(ScanState.IN_IDENTIFIER)
            self._extend(char)

    def _extends_number(self, char: str, following: str) -> bool:
        lexeme = self._lexeme
        if char == ".":
            # "1..10" is a range, not the real "1."
            return following != "." and "." not in lexeme
        if char in "+-":
            return "." in lexeme and lexeme[-1] in "ED"
        return not is_boundary(char)

    def _finish(self) -> None:
        if self._state is ScanState.IN_COMMENT:
            raise LexError(
                ErrorKind.UNTERMINATED_COMMENT,
                f"unclosed comment at line {self._line}, column {self._column}",
                self._line, self._column,
            )
        if self._state is ScanState.IN_STRING:
            raise LexError(
                ErrorKind.UNTERMINATED_STRING,
                f"unfinished string at line {self._line}, column {self._column}",
                self._line, self._column, text=self._lexeme,
            )
        if self._state is not ScanState.NORMAL:
            self._flush()

    def _start(self, state: ScanState) -> None:
        self._state = state
        self._lexeme = ""
        self._lexeme_line = self._line
        self._lexeme_column = self._column

    def _extend(self, char: str) -> None:
        self._lexeme += char
        self._advance(1)

    def _flush(self) -> None:
        lexeme = self._lexeme
        kind = classify_lexeme(lexeme)
        if kind is None:
            raise LexError(
                ErrorKind.UNRECOGNIZED_TOKEN,
                f"unrecognized token at line {self._lexeme_line}, column {self._lexeme_column}: {lexeme}",
                self._lexeme_line, self._lexeme_column, text=lexeme,
            )
        self._emit(lexeme, kind, self._lexeme_line, self._lexeme_column)
        self._state = ScanState.NORMAL
        self._lexeme = ""

    def _emit(self, text: str, kind: TokenKind, line: int, column: int) -> None:
        token = Token(text, kind, line, column)
        self._tokens.append(token)
        self._trace(f"Emitted {token}")

    def _advance(self, count: int) -> None:
        for _ in range(count):
            if self._text[self._index] == "\n":
                self._line += 1
                self._column = 1
            else:
                self._column += 1
            self._index += 1

    def _trace(self, message: str) -> None:
        if self.tracer is not None:
            self.tracer(message)


def scan(source: Union[bytes, bytearray, str], tracer: Optional[Tracer] = None) -> ScanResult:
    """Scan source into tokens; on failure the result carries the prefix and the error"""
    return OberonScanner(tracer).scan(source)


def tokenize(source: Union[bytes, bytearray, str], tracer: Optional[Tracer] = None) -> List[Token]:
    """Scan source into tokens, raising LexError on failure"""
    result = scan(source, tracer)
    if result.error is not None:
        raise result.error
    return result.tokens
