"""
Token types for the toylang lexers.

Two token levels exist:
- Line: one classified source line (statement level)
- ExprToken: one atomic piece of an infix expression

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime failures
- E5xx: Uncaught language exceptions
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Optional, Tuple


class LineKind(Enum):
    """Classification of a source line."""

    ASSIGN = auto()             # x = expr, x += expr, obj.prop = expr
    END = auto()                # end (empty/terminator)

    # --- Keyword lines ---
    DEF = auto()                # def name(params):
    CLASS = auto()              # class Name(Parent, ...):
    RETURN = auto()             # return [expr]
    IF = auto()                 # if cond:
    ELSE = auto()               # else:
    WHILE = auto()              # while cond:
    SWITCH = auto()             # switch expr:
    CASE = auto()               # case v1, v2:
    DEFAULT = auto()            # default:
    TRY = auto()                # try:
    CATCH = auto()              # catch(e):
    THROW = auto()              # throw expr
    BREAK = auto()              # break
    NONLOCAL = auto()           # nonlocal x = expr
    IMPORT = auto()             # import a.b [as c]

    # --- Anything else ---
    FUNCALL = auto()            # f(x), obj.method(x)
    UNKNOWN = auto()            # rejected by the statement parser


class ExprKind(Enum):
    """Classification of an expression token."""
    OPERAND = auto()            # literal, variable, call chain, list literal
    OPERATOR = auto()           # binary operator
    UNARY = auto()              # not, prefix -
    LPAREN = auto()             # (
    RPAREN = auto()             # )


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int = 1     # 1-indexed column number
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Line:
    """A classified source line."""
    kind: LineKind
    tokens: Tuple[str, ...]     # Raw sub-token strings
    location: SourceLocation
    text: str                   # The trimmed source text

    @property
    def number(self) -> int:
        return self.location.line

    def __str__(self) -> str:
        return f"{self.kind.name}({self.text!r})"


@dataclass(frozen=True)
class ExprToken:
    """A single infix expression token."""
    kind: ExprKind
    text: str

    def __str__(self) -> str:
        return self.text


# Keyword mapping - first word of a line to its kind
KEYWORDS: dict[str, LineKind] = {
    "def": LineKind.DEF,
    "class": LineKind.CLASS,
    "return": LineKind.RETURN,
    "if": LineKind.IF,
    "else": LineKind.ELSE,
    "while": LineKind.WHILE,
    "switch": LineKind.SWITCH,
    "case": LineKind.CASE,
    "default": LineKind.DEFAULT,
    "try": LineKind.TRY,
    "catch": LineKind.CATCH,
    "throw": LineKind.THROW,
    "break": LineKind.BREAK,
    "nonlocal": LineKind.NONLOCAL,
    "import": LineKind.IMPORT,
}

# Lines that open a block closed by a matching 'end'
BLOCK_OPENERS: frozenset = frozenset({
    LineKind.IF, LineKind.WHILE, LineKind.DEF,
    LineKind.CLASS, LineKind.SWITCH, LineKind.TRY,
})

# Lines that end the statement chain of the enclosing block
TERMINATORS: frozenset = frozenset({
    LineKind.END, LineKind.ELSE, LineKind.CASE,
    LineKind.DEFAULT, LineKind.CATCH,
})

# Binary operator priorities (higher = tighter binding)
PRIORITY: dict[str, int] = {
    "or": 1,
    "and": 2,
    "==": 4, "!=": 4, "<": 4, ">": 4, "<=": 4, ">=": 4,
    "|": 5,
    "^": 6,
    "&": 7,
    "<<": 8, ">>": 8,
    "+": 9, "-": 9,
    "*": 10, "/": 10, "%": 10,
}

# Unary operator priorities
UNARY_PRIORITY: dict[str, int] = {
    "not": 3,
    "neg": 11,
}

# Operators that may prefix the '=' of a compound assignment
ASSIGN_OPERATORS: Tuple[str, ...] = ("<<", ">>", "+", "-", "*", "/", "%", "&", "|", "^")

# Operand words that denote literals rather than variables
LITERAL_WORDS: dict[str, object] = {
    "true": True,
    "false": False,
}

NULL_WORD = "null"


def is_block_opener(kind: LineKind) -> bool:
    """Check if a line kind opens an 'end'-terminated block."""
    return kind in BLOCK_OPENERS


def is_terminator(kind: LineKind) -> bool:
    """Check if a line kind terminates a statement chain."""
    return kind in TERMINATORS


def priority(token: ExprToken) -> int:
    """Get the priority of an operator token (0 for anything else)."""
    if token.kind == ExprKind.OPERATOR:
        return PRIORITY[token.text]
    if token.kind == ExprKind.UNARY:
        return UNARY_PRIORITY[token.text]
    return 0
