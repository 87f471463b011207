"""
toylang exceptions and error handling.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime failures (host-level, not catchable by try/catch)
- E5xx: Language exceptions that escaped the program
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional
from .tokens import SourceLocation


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"


@dataclass
class Diagnostic:
    """A single diagnostic message (error, warning, etc.)."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    location: Optional[SourceLocation] = None
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: severity[code]: message
        if self.location is not None:
            parts.append(f"{self.location}: {self.severity.value}[{self.code}]: {self.message}")
        else:
            parts.append(f"{self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.source_line is not None and self.location is not None:
            parts.append("  |")
            line_num = str(self.location.line)
            parts.append(f"{line_num:>3} | {self.source_line}")
            col = self.location.column
            parts.append(f"    | {' ' * (col - 1)}^")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        location = None
        if self.location is not None:
            location = {
                "file": self.location.filename,
                "line": self.location.line,
                "column": self.location.column,
            }
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "location": location,
            "hints": self.hints,
        }


class ToyError(Exception):
    """Base exception for toylang errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def code(self) -> str:
        return self.diagnostic.code

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(ToyError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(ToyError):
    """Error during parsing (E1xx)."""
    pass


class RuntimeFailure(ToyError):
    """
    Host-level failure during evaluation (E4xx).

    Runtime failures are not language values: try/catch never sees them.
    Statement sequences annotate them with one stack frame per scope as
    they unwind.
    """

    def __init__(self, diagnostic: Diagnostic):
        super().__init__(diagnostic)
        self.frames: List[Any] = []
        self.frame_context: Any = None

    def add_frame(self, context: Any, frame: Any) -> None:
        """Record a frame unless this scope already contributed one."""
        if self.frames and self.frame_context is not None and context.same_frame(self.frame_context):
            return
        self.frame_context = context
        self.frames.append(frame)

    def __str__(self) -> str:
        lines = [self.diagnostic.format()]
        for frame in self.frames:
            lines.append(f"  at {frame}")
        return "\n".join(lines)


class ToyReferenceError(RuntimeFailure):
    """Unresolved variable, method or parent class (E401)."""
    pass


class ClassHierarchyError(RuntimeFailure):
    """Invalid class parent list (E402)."""
    pass


class ModuleNotFoundFailure(RuntimeFailure):
    """A module could not be located on the search path (E403)."""
    pass


class UncaughtException(ToyError):
    """A thrown language value escaped the whole program (E501)."""

    def __init__(self, diagnostic: Diagnostic, thrown: Any):
        super().__init__(diagnostic)
        self.thrown = thrown

    @property
    def frames(self) -> List[Any]:
        return self.thrown.frames


# --- Lexer error codes ---

def error_unexpected_character(char: str, location: SourceLocation = None,
                               source_line: str = None) -> LexerError:
    """E001: Unexpected character in an expression."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}'",
        severity=ErrorSeverity.ERROR,
        location=location,
        source_line=source_line,
    )
    return LexerError(diag)


def error_unterminated_string(location: SourceLocation = None,
                              source_line: str = None) -> LexerError:
    """E002: Unterminated text literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated text literal",
        severity=ErrorSeverity.ERROR,
        location=location,
        source_line=source_line,
        hints=["text literals must be closed with matching quotes"],
    )
    return LexerError(diag)


def error_unbalanced_brackets(text: str, location: SourceLocation = None,
                              source_line: str = None) -> LexerError:
    """E003: Unbalanced brackets inside an operand."""
    diag = Diagnostic(
        code="E003",
        message=f"unbalanced brackets in '{text}'",
        severity=ErrorSeverity.ERROR,
        location=location,
        source_line=source_line,
    )
    return LexerError(diag)


def error_invalid_escape_sequence(seq: str, location: SourceLocation = None,
                                  source_line: str = None) -> LexerError:
    """E005: Invalid escape sequence in a text literal."""
    diag = Diagnostic(
        code="E005",
        message=f"invalid escape sequence '\\{seq}'",
        severity=ErrorSeverity.ERROR,
        location=location,
        source_line=source_line,
        hints=["valid escape sequences: \\n, \\r, \\t, \\\\, \\', \\\""],
    )
    return LexerError(diag)


# --- Parser error codes ---

def error_no_production(line_text: str, location: SourceLocation = None) -> ParserError:
    """E101: No statement production matches the line."""
    diag = Diagnostic(
        code="E101",
        message=f"syntax error: {line_text}",
        severity=ErrorSeverity.ERROR,
        location=location,
        source_line=line_text,
    )
    return ParserError(diag)


def error_missing_end(line_text: str, location: SourceLocation = None) -> ParserError:
    """E102: Block opened without a matching 'end'."""
    diag = Diagnostic(
        code="E102",
        message=f"missing 'end' for block: {line_text}",
        severity=ErrorSeverity.ERROR,
        location=location,
        source_line=line_text,
    )
    return ParserError(diag)


def error_invalid_expression(text: str, location: SourceLocation = None,
                             source_line: str = None) -> ParserError:
    """E103: Invalid expression."""
    diag = Diagnostic(
        code="E103",
        message=f"invalid expression '{text}'",
        severity=ErrorSeverity.ERROR,
        location=location,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unexpected_line(expected: str, line_text: str,
                          location: SourceLocation = None) -> ParserError:
    """E104: A line appears where the block structure forbids it."""
    diag = Diagnostic(
        code="E104",
        message=f"expected {expected}, found: {line_text}",
        severity=ErrorSeverity.ERROR,
        location=location,
        source_line=line_text,
    )
    return ParserError(diag)


def error_mismatched_parenthesis(text: str, location: SourceLocation = None,
                                 source_line: str = None) -> ParserError:
    """E105: Mismatched parenthesis in an expression."""
    diag = Diagnostic(
        code="E105",
        message=f"mismatched parenthesis in '{text}'",
        severity=ErrorSeverity.ERROR,
        location=location,
        source_line=source_line,
    )
    return ParserError(diag)


def error_break_outside_loop(line_text: str, location: SourceLocation = None) -> ParserError:
    """E106: 'break' with no enclosing loop in the same function."""
    diag = Diagnostic(
        code="E106",
        message="'break' outside loop",
        severity=ErrorSeverity.ERROR,
        location=location,
        source_line=line_text,
    )
    return ParserError(diag)


# --- Runtime failure codes ---

def error_not_defined(name: str) -> ToyReferenceError:
    """E401: Name lookup exhausted the scope or class chain."""
    diag = Diagnostic(
        code="E401",
        message=f"{name} is not defined",
        severity=ErrorSeverity.ERROR,
    )
    return ToyReferenceError(diag)


def error_class_hierarchy(message: str) -> ClassHierarchyError:
    """E402: Invalid parent list."""
    diag = Diagnostic(
        code="E402",
        message=message,
        severity=ErrorSeverity.ERROR,
    )
    return ClassHierarchyError(diag)


def error_module_not_found(name: str, searched: List[str]) -> ModuleNotFoundFailure:
    """E403: Module source not found."""
    diag = Diagnostic(
        code="E403",
        message=f"module '{name}' not found",
        severity=ErrorSeverity.ERROR,
        hints=[f"searched: {', '.join(searched)}"] if searched else [],
    )
    return ModuleNotFoundFailure(diag)


def error_not_callable(description: str) -> RuntimeFailure:
    """E404: Call target is not a function or class."""
    diag = Diagnostic(
        code="E404",
        message=f"{description} is not callable",
        severity=ErrorSeverity.ERROR,
    )
    return RuntimeFailure(diag)


def error_no_properties(description: str, name: str) -> RuntimeFailure:
    """E405: Property access on a value without properties."""
    diag = Diagnostic(
        code="E405",
        message=f"cannot read property '{name}' of {description}",
        severity=ErrorSeverity.ERROR,
    )
    return RuntimeFailure(diag)


def error_unsupported_operand(operator: str, left: str, right: str = None) -> RuntimeFailure:
    """E406: Operator applied to values it does not support."""
    if right is None:
        message = f"unsupported operand for '{operator}': {left}"
    else:
        message = f"unsupported operands for '{operator}': {left} and {right}"
    diag = Diagnostic(
        code="E406",
        message=message,
        severity=ErrorSeverity.ERROR,
    )
    return RuntimeFailure(diag)


def error_bad_argument(function: str, message: str) -> RuntimeFailure:
    """E407: A built-in rejected its arguments."""
    diag = Diagnostic(
        code="E407",
        message=f"{function}: {message}",
        severity=ErrorSeverity.ERROR,
    )
    return RuntimeFailure(diag)


def error_recursion_depth(limit: int) -> RuntimeFailure:
    """E408: Evaluation nested deeper than the host allows."""
    diag = Diagnostic(
        code="E408",
        message="maximum recursion depth exceeded",
        severity=ErrorSeverity.ERROR,
        hints=[f"recursion_limit is {limit}"],
    )
    return RuntimeFailure(diag)


def error_module_unreadable(name: str, path: str, reason: Exception) -> RuntimeFailure:
    """E409: Module source found but could not be read or decoded."""
    diag = Diagnostic(
        code="E409",
        message=f"cannot read module '{name}' from {path}: {reason}",
        severity=ErrorSeverity.ERROR,
        hints=["check the file's permissions and the configured encoding"],
    )
    return RuntimeFailure(diag)


# --- Uncaught language exceptions ---

def error_uncaught(thrown: Any, description: str) -> UncaughtException:
    """E501: A thrown value escaped the program."""
    diag = Diagnostic(
        code="E501",
        message=f"uncaught exception: {description}",
        severity=ErrorSeverity.ERROR,
    )
    return UncaughtException(diag, thrown)
