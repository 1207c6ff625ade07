"""
Error handling for the Oberon-07 front-end
Structured lexical/syntax errors plus pure helpers for human-readable reports
"""

from enum import Enum
from typing import Dict, List, Optional


# ============================================================================
# ERROR KINDS
# ============================================================================

class ErrorKind(Enum):
    """Every way scanning or parsing can fail"""
    # lexical
    UNRECOGNIZED_TOKEN = "unrecognized token"
    UNTERMINATED_COMMENT = "unterminated comment"
    UNTERMINATED_STRING = "unterminated string"
    # syntactic
    UNEXPECTED_TOKEN = "unexpected token"
    UNEXPECTED_END = "unexpected end of stream"
    NAME_MISMATCH = "name mismatch"
    TRAILING_TOKEN = "unparsed trailing token"
    NESTING_TOO_DEEP = "nesting too deep"


# ============================================================================
# EXCEPTION CLASSES
# ============================================================================

class OberonError(Exception):
    """Base class for fatal front-end errors with a source location"""

    def __init__(self, kind: ErrorKind, message: str, line: int = 0, column: int = 0,
                 token_index: Optional[int] = None, text: Optional[str] = None):
        self.kind = kind
        self.message = message
        self.line = line
        self.column = column
        self.token_index = token_index
        self.text = text
        super().__init__(message)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (f"{type(self).__name__}({self.kind.name}, {self.message!r}, "
                f"line={self.line}, column={self.column}, token_index={self.token_index})")


class LexError(OberonError):
    """Raised (or returned) when the scanner cannot classify the input"""
    pass


class ParseError(OberonError):
    """Raised when a committed production cannot complete"""
    pass


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_error_report(
    error: OberonError,
    source_text: Optional[str] = None,
    filename: str = "<input>",
    context_lines: int = 2
) -> Dict:
    """Create an immutable error report structure from an error"""
    context = None
    if source_text and error.line > 0:
        context = get_context_lines(source_text, error.line, error.column, context_lines)
    return {
        'filename': filename,
        'stage': 'Lexical' if isinstance(error, LexError) else 'Parse',
        'kind': error.kind.value,
        'message': error.message,
        'line': error.line,
        'column': error.column,
        'token_index': error.token_index,
        'got': error.text,
        'context': context,
        'suggestions': generate_suggestions(error),
    }


def format_error_report(report: Dict) -> str:
    """Format an error report as a string"""
    if report['line'] > 0:
        error_msg = (f"{report['stage']} error in {report['filename']} at line {report['line']}, "
                     f"column {report['column']}:\n")
    else:
        error_msg = f"{report['stage']} error in {report['filename']}:\n"
    error_msg += f"  {report['message']}\n"

    if report['got'] is not None:
        error_msg += f"  Got: {report['got']!r}\n"

    if report['context']:
        error_msg += f"  Context:\n{report['context']}\n"

    if report['suggestions']:
        error_msg += "  Suggestions:\n"
        for suggestion in report['suggestions']:
            error_msg += f"    - {suggestion}\n"

    return error_msg


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 2) -> str:
    """Get context lines around the error"""
    lines = source_text.split('\n')
    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i]}")
        if i == line_num - 1:
            context_parts.append(f"{'':6}{' ' * max(col_num - 1, 0)}^ Error here")

    return '\n'.join(context_parts)


def generate_suggestions(error: OberonError) -> List[str]:
    """Generate helpful suggestions based on the error"""
    suggestions = []

    if error.kind is ErrorKind.UNTERMINATED_COMMENT:
        suggestions.append("Comments do not nest: the first '*)' closes the comment")
    elif error.kind is ErrorKind.UNTERMINATED_STRING:
        suggestions.append("Close the string literal with a matching '\"'")
    elif error.kind is ErrorKind.UNRECOGNIZED_TOKEN and error.text:
        if error.text[:1].isdigit():
            suggestions.append("Hexadecimal literals use the digits 0-9 and A-F and end in 'H' (or 'X' for characters)")
        elif '_' in error.text:
            suggestions.append("Oberon identifiers may only contain letters and digits")
    elif error.kind is ErrorKind.NAME_MISMATCH:
        suggestions.append("The identifier after END must repeat the declared name")
    elif error.kind is ErrorKind.TRAILING_TOKEN:
        suggestions.append("Nothing may follow the '.' that ends a module")
    elif error.kind is ErrorKind.UNEXPECTED_TOKEN and error.text == "END":
        suggestions.append("Check for a missing ';' or an unbalanced END")

    return suggestions


# ============================================================================
# COMPATIBILITY CLASSES
# ============================================================================

class OberonErrorHandler:
    """Binds a source text so errors can be rendered with context"""
    def __init__(self, source_text: str, filename: str = "<input>"):
        self.source_text = source_text
        self.filename = filename
        self.lines = source_text.split('\n')

    def report(self, error: OberonError) -> Dict:
        return make_error_report(error, self.source_text, self.filename)

    def format(self, error: OberonError) -> str:
        return format_error_report(self.report(error))

    def _get_context(self, line_num: int, col_num: int, context_lines: int = 2) -> str:
        return get_context_lines(self.source_text, line_num, col_num, context_lines)
