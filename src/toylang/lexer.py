"""
Lexers for toylang.

The language is line-oriented, so lexing happens at two levels:

- tokenize_lines(): splits source text into classified Lines
  (assignment, end, keyword lines, bare function calls)
- ExpressionLexer: splits one expression into infix ExprTokens
  (parentheses, operators, operands)

Operands are kept whole: a call chain such as ``obj.get(1, 2).name`` or a
list literal ``[1, 2]`` is a single operand token whose inner pieces are
parsed later by the expression parser.
"""

import re
from typing import List, Optional, Iterator

from .tokens import (
    Line, LineKind, ExprToken, ExprKind, SourceLocation, KEYWORDS,
)
from .errors import (
    error_unexpected_character,
    error_unterminated_string,
    error_unbalanced_brackets,
    error_invalid_escape_sequence,
)


ASSIGN_PATTERN = re.compile(
    r"^([A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*)\s*(<<|>>|[-+*/%&|^])?=(?!=)\s*(.*)$"
)
KEYWORD_PATTERN = re.compile(r"^([A-Za-z_]\w*)\s*(.*)$")
NUMBER_PATTERN = re.compile(r"\d+(?:\.\d+)?")
IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_]\w*")

TWO_CHAR_OPERATORS = ("==", "!=", "<=", ">=", "<<", ">>")
ONE_CHAR_OPERATORS = "+-*/%&|^<>"
WORD_OPERATORS = ("and", "or")

ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "\\": "\\",
    "'": "'",
    '"': '"',
}


def scan_string(text: str, start: int, location: Optional[SourceLocation] = None,
                source_line: Optional[str] = None) -> int:
    """Return the index after the closing quote of the literal at start."""
    quote = text[start]
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == '\\':
            i += 2
            continue
        if ch == quote:
            return i + 1
        i += 1
    raise error_unterminated_string(location, source_line)


def scan_balanced(text: str, start: int, location: Optional[SourceLocation] = None,
                  source_line: Optional[str] = None) -> int:
    """Return the index after the bracket group opened at start."""
    depth = 0
    i = start
    while i < len(text):
        ch = text[i]
        if ch in '\'"':
            i = scan_string(text, i, location, source_line)
            continue
        if ch in '([':
            depth += 1
        elif ch in ')]':
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    raise error_unbalanced_brackets(text[start:], location, source_line)


class LineLexer:
    """
    Statement-level lexer.

    Usage:
        lexer = LineLexer(source, filename)
        lines = lexer.tokenize()
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename

    def _classify(self, text: str, location: SourceLocation) -> Line:
        """Classify one trimmed, non-empty line."""
        assign = ASSIGN_PATTERN.match(text)
        if assign:
            target, operator, value = assign.groups()
            return Line(LineKind.ASSIGN, (target, operator or "", value), location, text)

        # 'end' is an empty statement
        if text == "end":
            return Line(LineKind.END, (), location, text)

        matched = KEYWORD_PATTERN.match(text)
        if matched:
            word, rest = matched.groups()
            kind = KEYWORDS.get(word)
            if kind is not None:
                return Line(kind, (word, rest), location, text)
            return Line(LineKind.FUNCALL, (text,), location, text)

        return Line(LineKind.UNKNOWN, (text,), location, text)

    def __iter__(self) -> Iterator[Line]:
        for number, raw in enumerate(self.source.splitlines(), start=1):
            text = raw.strip()
            if not text or text.startswith("#"):
                continue
            location = SourceLocation(number, len(raw) - len(raw.lstrip()) + 1, self.filename)
            yield self._classify(text, location)

    def tokenize(self) -> List[Line]:
        """Tokenize the entire source, returning the classified lines."""
        return list(self)


class ExpressionLexer:
    """
    Expression-level lexer producing infix tokens, left to right, greedily.

    A '-' in prefix position (start of expression, after an operator or
    after '(') is emitted as the unary 'neg' operator; 'not' is always
    unary.
    """

    def __init__(self, expr: str, location: Optional[SourceLocation] = None,
                 source_line: Optional[str] = None):
        self.expr = expr
        self.location = location
        self.source_line = source_line
        self.pos = 0
        self._tokens: List[ExprToken] = []

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx >= len(self.expr):
            return '\0'
        return self.expr[idx]

    def _in_prefix_position(self) -> bool:
        if not self._tokens:
            return True
        return self._tokens[-1].kind in (ExprKind.OPERATOR, ExprKind.UNARY, ExprKind.LPAREN)

    def _emit(self, kind: ExprKind, text: str) -> None:
        self._tokens.append(ExprToken(kind, text))

    def _scan_string(self, start: int) -> int:
        return scan_string(self.expr, start, self.location, self.source_line)

    def _scan_balanced(self, start: int) -> int:
        return scan_balanced(self.expr, start, self.location, self.source_line)

    def _scan_chain(self, start: int) -> str:
        """Extend the operand ending at pos with any '.name' and '(...)' suffixes."""
        while True:
            if self._peek() == '(':
                self.pos = self._scan_balanced(self.pos)
            elif self._peek() == '.' and (self._peek(1).isalpha() or self._peek(1) == '_'):
                self.pos = IDENTIFIER_PATTERN.match(self.expr, self.pos + 1).end()
            else:
                break
        return self.expr[start:self.pos]

    def tokens(self) -> List[ExprToken]:
        """Tokenize the whole expression into infix order."""
        while self.pos < len(self.expr):
            ch = self._peek()

            if ch.isspace():
                self.pos += 1
                continue

            if ch == '(':
                self._emit(ExprKind.LPAREN, ch)
                self.pos += 1
                continue
            if ch == ')':
                self._emit(ExprKind.RPAREN, ch)
                self.pos += 1
                continue

            two = self.expr[self.pos:self.pos + 2]
            if two in TWO_CHAR_OPERATORS:
                self._emit(ExprKind.OPERATOR, two)
                self.pos += 2
                continue
            if ch in ONE_CHAR_OPERATORS:
                if ch == '-' and self._in_prefix_position():
                    self._emit(ExprKind.UNARY, "neg")
                else:
                    self._emit(ExprKind.OPERATOR, ch)
                self.pos += 1
                continue

            if ch in '\'"':
                start = self.pos
                self.pos = self._scan_string(start)
                self._emit(ExprKind.OPERAND, self._scan_chain(start))
                continue

            if ch.isdigit():
                end = NUMBER_PATTERN.match(self.expr, self.pos).end()
                self._emit(ExprKind.OPERAND, self.expr[self.pos:end])
                self.pos = end
                continue

            if ch == '[':
                start = self.pos
                self.pos = self._scan_balanced(start)
                self._emit(ExprKind.OPERAND, self._scan_chain(start))
                continue

            if ch.isalpha() or ch == '_':
                word = IDENTIFIER_PATTERN.match(self.expr, self.pos).group()
                if word in WORD_OPERATORS:
                    self._emit(ExprKind.OPERATOR, word)
                    self.pos += len(word)
                elif word == "not":
                    self._emit(ExprKind.UNARY, word)
                    self.pos += len(word)
                else:
                    start = self.pos
                    self.pos = IDENTIFIER_PATTERN.match(self.expr, start).end()
                    self._emit(ExprKind.OPERAND, self._scan_chain(start))
                continue

            raise error_unexpected_character(ch, self.location, self.source_line)

        return self._tokens


def tokenize_lines(source: str, filename: Optional[str] = None) -> List[Line]:
    """
    Convenience function to split source code into classified lines.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of classified lines (blank and comment lines dropped)
    """
    return LineLexer(source, filename).tokenize()


def tokenize_expression(expr: str, location: Optional[SourceLocation] = None,
                        source_line: Optional[str] = None) -> List[ExprToken]:
    """
    Convenience function to tokenize one expression.

    Raises:
        LexerError: If the expression contains an unknown character,
            an unterminated text literal or unbalanced brackets
    """
    return ExpressionLexer(expr, location, source_line).tokens()


def split_top_level(text: str, separator: str = ",") -> List[str]:
    """Split text at separators that are outside brackets and quotes."""
    parts = []
    depth = 0
    quote = None
    start = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == '\\':
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in '\'"':
            quote = ch
        elif ch in '([':
            depth += 1
        elif ch in ')]':
            depth -= 1
        elif ch == separator and depth == 0:
            parts.append(text[start:i].strip())
            start = i + 1
        i += 1
    tail = text[start:].strip()
    if tail or parts:
        parts.append(tail)
    return parts


def decode_text(raw: str, location: Optional[SourceLocation] = None,
                source_line: Optional[str] = None) -> str:
    """Strip the quotes of a text literal and resolve its escape sequences."""
    body = raw[1:-1]
    chars = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == '\\':
            if i + 1 >= len(body):
                raise error_invalid_escape_sequence("", location, source_line)
            esc = body[i + 1]
            if esc not in ESCAPES:
                raise error_invalid_escape_sequence(esc, location, source_line)
            chars.append(ESCAPES[esc])
            i += 2
        else:
            chars.append(ch)
            i += 1
    return ''.join(chars)
