"""
Interpreter facade for toylang.

Parses a program, builds a fresh global context with the built-in library
installed, evaluates the program and reports exceptions that escape it.
"""

import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .values import Thrown
from .context import Context, Environment, SourceFile
from .builtins import root_context, display
from .modules import ModuleLoader
from ..ast import Statement
from ..config import InterpreterConfig
from ..errors import (
    ToyError,
    LexerError,
    ParserError,
    UncaughtException,
    error_uncaught,
    error_recursion_depth,
)
from ..parser import parse

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Result of running a program."""
    success: bool
    context: Optional[Context] = None
    error_message: Optional[str] = None
    uncaught: Optional[Thrown] = None
    error: Optional[ToyError] = None


@contextmanager
def _recursion_limit(limit: int):
    """Raise the host recursion limit for the duration of a run."""
    previous = sys.getrecursionlimit()
    if limit > previous:
        sys.setrecursionlimit(limit)
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)


class Interpreter:
    """
    Tree-walking interpreter.

    Usage:
        interp = Interpreter(output=chunks.append)
        interp.run("println(2 + 3 * 4)")
    """

    def __init__(self, config: Optional[InterpreterConfig] = None,
                 output: Optional[Callable[[str], None]] = None,
                 input: Optional[Callable[[str], str]] = None):
        """
        Initialize the interpreter.

        Args:
            config: Settings; defaults to InterpreterConfig()
            output: Sink receiving each printed text fragment (default stdout)
            input: Source answering input(prompt) calls (default builtin input)
        """
        self.config = config if config is not None else InterpreterConfig()
        self.loader = ModuleLoader(self.config)
        self.environment = Environment(loader=self.loader)
        if output is not None:
            self.environment.output = output
        if input is not None:
            self.environment.input = input

    def parse(self, source: str, file_name: str = "<main>") -> Statement:
        return parse(source, file_name)

    def run(self, source: str, file_name: str = "<main>") -> Context:
        """
        Parse and run a program, returning the final global context.

        Raises:
            LexerError, ParserError: If the program does not parse
            RuntimeFailure: On an unresolved name or other host-level failure
            UncaughtException: If a thrown value escapes the program
        """
        program = self.parse(source, file_name)
        context = root_context(self.environment, SourceFile.from_source(file_name, source))
        logger.debug("running %s", file_name)

        with _recursion_limit(self.config.recursion_limit):
            try:
                done = program.evaluate(context)
            except RecursionError as e:
                raise error_recursion_depth(self.config.recursion_limit) from e

            if done.is_thrown:
                raise self._uncaught(done)
        return done

    def run_file(self, path: Path | str) -> Context:
        """
        Run a source file, decoding it with the configured encoding.

        Raises OSError or UnicodeDecodeError if the file cannot be read,
        besides the errors of run().
        """
        source_path = Path(path)
        source = source_path.read_text(encoding=self.config.encoding)
        return self.run(source, str(source_path))

    def _uncaught(self, context: Context) -> UncaughtException:
        """Write the uncaught report to the output sink and build the host error."""
        thrown = context.thrown_node
        shown = display(context, thrown.value)
        description = str(thrown.value) if shown.is_thrown else shown.value
        lines = [f"Uncaught {description}"]
        lines.extend(f"  at {frame}" for frame in thrown.frames)
        context.output("\n".join(lines) + "\n")
        return error_uncaught(thrown, description)


def execute(source: str, output: Optional[Callable[[str], None]] = None,
            config: Optional[InterpreterConfig] = None) -> Context:
    """
    Run source code and return the final global context.

    Raises the same errors as Interpreter.run().
    """
    return Interpreter(config, output).run(source)


def compile_and_run(
    source: str,
    file_name: str = "<main>",
    output: Optional[Callable[[str], None]] = None,
    input: Optional[Callable[[str], str]] = None,
    config: Optional[InterpreterConfig] = None,
) -> ExecutionResult:
    """
    High-level API to parse and run toylang source in one call.

        from toylang import compile_and_run

        chunks = []
        result = compile_and_run('println("hi")', output=chunks.append)
        if not result.success:
            print(f"Error: {result.error_message}")

    Errors are reported in the result rather than raised.

    Returns:
        ExecutionResult with the final context or the error
    """
    interpreter = Interpreter(config, output, input)
    try:
        context = interpreter.run(source, file_name)
    except LexerError as e:
        return ExecutionResult(success=False, error_message=f"Lexer error: {e}", error=e)
    except ParserError as e:
        return ExecutionResult(success=False, error_message=f"Parser error: {e}", error=e)
    except UncaughtException as e:
        return ExecutionResult(success=False, error_message=str(e), uncaught=e.thrown, error=e)
    except ToyError as e:
        return ExecutionResult(success=False, error_message=f"Runtime error: {e}", error=e)
    return ExecutionResult(success=True, context=context)
