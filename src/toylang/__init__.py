"""
toylang - a tree-walking interpreter for a small line-oriented language.

This module provides:
- Lexer: classifies source lines and tokenizes expressions
- Parser: builds a statement chain using block matching and shunting-yard
- Interpreter: evaluates the tree against a chained-scope context

Usage:
    from toylang import compile_and_run

    source = '''
    def counter():
        n = 0
        def next():
            nonlocal n += 1
            return n
        end
        return next
    end
    c = counter()
    c()
    println(c())
    '''
    result = compile_and_run(source)
    if not result.success:
        print(result.error_message)
"""

from .tokens import (
    LineKind,
    ExprKind,
    SourceLocation,
    Line,
    ExprToken,
    KEYWORDS,
)

from .lexer import (
    LineLexer,
    ExpressionLexer,
    tokenize_lines,
    tokenize_expression,
)

from .parser import (
    Parser,
    parse,
    lines_after_block,
)

from .expression import (
    ExpressionParser,
    Interner,
    parse_expression,
)

from .errors import (
    ErrorSeverity,
    Diagnostic,
    ToyError,
    LexerError,
    ParserError,
    RuntimeFailure,
    ToyReferenceError,
    ClassHierarchyError,
    ModuleNotFoundFailure,
    UncaughtException,
)

from .config import (
    InterpreterConfig,
    load_config,
)

from .runtime.interpreter import (
    Interpreter,
    ExecutionResult,
    execute,
    compile_and_run,
)

__version__ = "0.1.0"

__all__ = [
    # Tokens
    "LineKind",
    "ExprKind",
    "SourceLocation",
    "Line",
    "ExprToken",
    "KEYWORDS",
    # Lexer
    "LineLexer",
    "ExpressionLexer",
    "tokenize_lines",
    "tokenize_expression",
    # Parser
    "Parser",
    "parse",
    "lines_after_block",
    "ExpressionParser",
    "Interner",
    "parse_expression",
    # Errors
    "ErrorSeverity",
    "Diagnostic",
    "ToyError",
    "LexerError",
    "ParserError",
    "RuntimeFailure",
    "ToyReferenceError",
    "ClassHierarchyError",
    "ModuleNotFoundFailure",
    "UncaughtException",
    # Config
    "InterpreterConfig",
    "load_config",
    # Runtime
    "Interpreter",
    "ExecutionResult",
    "execute",
    "compile_and_run",
]
