"""
Statement parser for toylang.

Converts classified Lines into a right-leaning chain of Sequence nodes.
Each line is tried against the statement productions in priority order:

    terminator (end / else / case / default / catch / end of input)
    assignment, function call, def, class, return, if, while,
    switch, try, throw, break, nonlocal, import

Block bodies are found by counting openers against 'end' lines; see
lines_after_block().
"""

import logging
import re
from typing import Callable, Dict, List, Optional, Tuple

from .tokens import Line, LineKind, is_block_opener, is_terminator
from .lexer import tokenize_lines, split_top_level, IDENTIFIER_PATTERN
from .errors import (
    error_no_production,
    error_missing_end,
    error_unexpected_line,
    error_break_outside_loop,
)
from .ast import (
    Statement, EMPTY, Sequence, ExprStatement, Assign, NonlocalAssign,
    PropertyAssign, If, While, Switch, Return, Throw, Try, Break, Import,
    FunCall,
)
from .expression import ExpressionParser, Interner
from .runtime.values import Func, Class

logger = logging.getLogger(__name__)


DEF_PATTERN = re.compile(r"^([A-Za-z_]\w*)\s*\(([^)]*)\)\s*:$")
CLASS_PATTERN = re.compile(r"^([A-Za-z_]\w*)\s*(?:\(([^)]*)\))?\s*:$")
CATCH_PATTERN = re.compile(r"^\(?\s*([A-Za-z_]\w*)\s*\)?\s*:$")
NONLOCAL_PATTERN = re.compile(r"^([A-Za-z_]\w*)\s*(<<|>>|[-+*/%&|^])?=(?!=)\s*(.*)$")
IMPORT_PATTERN = re.compile(
    r"^([A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*)(?:\s+as\s+([A-Za-z_]\w*))?$"
)

Production = Callable[[int], Optional[Tuple[Statement, int]]]


def lines_after_block(lines: List[Line], start: int) -> int:
    """
    Index of the first line after the block whose body starts at start.

    The depth counter starts at 1, rises on every block opener and falls on
    every 'end'; else/case/default/catch leave it unchanged.

    Raises:
        ParserError: If the block has no matching 'end'
    """
    depth = 1
    i = start
    while i < len(lines):
        kind = lines[i].kind
        if is_block_opener(kind):
            depth += 1
        elif kind == LineKind.END:
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    opener = lines[start - 1]
    raise error_missing_end(opener.text, opener.location)


def _names(text: str, line: Line) -> Tuple[str, ...]:
    names = tuple(split_top_level(text))
    for name in names:
        if not IDENTIFIER_PATTERN.fullmatch(name):
            raise error_no_production(line.text, line.location)
    return names


class Parser:
    """
    Production-priority statement parser.

    Usage:
        parser = Parser(tokenize_lines(source), "main.toy")
        program = parser.parse()
    """

    def __init__(self, lines: List[Line], filename: Optional[str] = None,
                 interner: Optional[Interner] = None):
        self.lines = lines
        self.filename = filename
        self.interner = interner if interner is not None else Interner()
        self.expressions = ExpressionParser(self.interner)
        # enclosing while loops in the current function or class body
        self._loop_depth = 0
        self._productions: List[Production] = [
            self._parse_assign,
            self._parse_funcall,
            self._parse_def,
            self._parse_class,
            self._parse_return,
            self._parse_if,
            self._parse_while,
            self._parse_switch,
            self._parse_try,
            self._parse_throw,
            self._parse_break,
            self._parse_nonlocal,
            self._parse_import,
        ]

    # =========================================================================
    # Helpers
    # =========================================================================

    def _expr(self, text: str, line: Line):
        return self.expressions.parse(text, line.location, line.text)

    def _header(self, index: int) -> str:
        """The text after the keyword of a block opener, without its ':'."""
        line = self.lines[index]
        rest = line.tokens[1]
        if not rest.endswith(":"):
            raise error_no_production(line.text, line.location)
        return rest[:-1].strip()

    def _parse_nested(self, parse_body: Callable, loop_depth: int):
        """Run parse_body with the loop depth of the body it parses."""
        outer = self._loop_depth
        self._loop_depth = loop_depth
        try:
            return parse_body()
        finally:
            self._loop_depth = outer

    def _expect_end(self, stop: int, end: int) -> None:
        """The body parse must stop exactly on the block's matching 'end'."""
        if stop != end:
            line = self.lines[stop]
            raise error_unexpected_line("'end'", line.text, line.location)

    # =========================================================================
    # Blocks
    # =========================================================================

    def parse(self) -> Statement:
        """Parse all lines into one statement chain."""
        program, stop = self.parse_block(0)
        if stop < len(self.lines):
            line = self.lines[stop]
            raise error_unexpected_line("a statement", line.text, line.location)
        logger.debug("parsed %s: %d lines, %d interned nodes",
                     self.filename or "<source>", len(self.lines), len(self.interner))
        return program

    def parse_block(self, start: int) -> Tuple[Statement, int]:
        """
        Parse statements from start up to the next terminator line.

        Returns the statement chain and the index of the terminator (or the
        number of lines at end of input).
        """
        parsed: List[Tuple[Statement, int]] = []
        i = start
        while i < len(self.lines) and not is_terminator(self.lines[i].kind):
            stmt, next_index = self.parse_statement(i)
            parsed.append((stmt, self.lines[i].number))
            i = next_index

        chain: Statement = EMPTY
        for stmt, line_number in reversed(parsed):
            chain = Sequence(stmt, chain, line_number)
        return chain, i

    def parse_statement(self, index: int) -> Tuple[Statement, int]:
        """Try each production in priority order on the line at index."""
        for production in self._productions:
            result = production(index)
            if result is not None:
                return result
        line = self.lines[index]
        raise error_no_production(line.text, line.location)

    # =========================================================================
    # Productions
    # =========================================================================

    def _parse_assign(self, index: int) -> Optional[Tuple[Statement, int]]:
        line = self.lines[index]
        if line.kind != LineKind.ASSIGN:
            return None
        target, operator, value_text = line.tokens
        value = self._expr(value_text, line)
        if "." in target:
            owner, name = target.rsplit(".", 1)
            return PropertyAssign(self._expr(owner, line), name, value, operator), index + 1
        return Assign(target, value, operator), index + 1

    def _parse_funcall(self, index: int) -> Optional[Tuple[Statement, int]]:
        line = self.lines[index]
        if line.kind != LineKind.FUNCALL:
            return None
        expr = self._expr(line.tokens[0], line)
        if not isinstance(expr, FunCall):
            raise error_no_production(line.text, line.location)
        return ExprStatement(expr), index + 1

    def parse_function(self, index: int) -> Tuple[str, Func, int]:
        """Parse a def block into its name, function literal and next index."""
        line = self.lines[index]
        matched = DEF_PATTERN.match(line.tokens[1])
        if matched is None:
            raise error_no_production(line.text, line.location)
        name, params = matched.groups()
        end = lines_after_block(self.lines, index + 1)
        body, stop = self._parse_nested(lambda: self.parse_block(index + 1), 0)
        self._expect_end(stop, end - 1)
        return name, Func(_names(params, line), body, name), end

    def _parse_def(self, index: int) -> Optional[Tuple[Statement, int]]:
        if self.lines[index].kind != LineKind.DEF:
            return None
        name, func, next_index = self.parse_function(index)
        return Assign(name, func), next_index

    def _parse_class(self, index: int) -> Optional[Tuple[Statement, int]]:
        line = self.lines[index]
        if line.kind != LineKind.CLASS:
            return None
        matched = CLASS_PATTERN.match(line.tokens[1])
        if matched is None:
            raise error_no_production(line.text, line.location)
        name, parents = matched.groups()
        parent_names = _names(parents, line) if parents and parents.strip() else ("Object",)

        end = lines_after_block(self.lines, index + 1)
        methods: Dict[str, Func] = {}
        statics: List[Tuple[Statement, int]] = []
        i = index + 1
        while i < end - 1:
            member = self.lines[i]
            if member.kind == LineKind.DEF:
                method_name, method, i = self.parse_function(i)
                methods[method_name] = method
            elif is_terminator(member.kind):
                raise error_unexpected_line("'def' or a statement", member.text, member.location)
            else:
                stmt, next_index = self._parse_nested(lambda: self.parse_statement(i), 0)
                statics.append((stmt, member.number))
                i = next_index

        body: Statement = EMPTY
        for stmt, line_number in reversed(statics):
            body = Sequence(stmt, body, line_number)
        clz = Class((), body, name, None, methods, parent_names)
        return Assign(name, clz), end

    def _parse_return(self, index: int) -> Optional[Tuple[Statement, int]]:
        line = self.lines[index]
        if line.kind != LineKind.RETURN:
            return None
        rest = line.tokens[1]
        if not rest:
            return Return(), index + 1
        return Return(self._expr(rest, line)), index + 1

    def _parse_if(self, index: int) -> Optional[Tuple[Statement, int]]:
        line = self.lines[index]
        if line.kind != LineKind.IF:
            return None
        condition = self._expr(self._header(index), line)
        end = lines_after_block(self.lines, index + 1)

        then_branch, stop = self.parse_block(index + 1)
        else_branch: Statement = EMPTY
        if stop < end - 1 and self.lines[stop].kind == LineKind.ELSE:
            if self._header(stop):
                raise error_no_production(self.lines[stop].text, self.lines[stop].location)
            else_branch, stop = self.parse_block(stop + 1)
        self._expect_end(stop, end - 1)
        return If(condition, then_branch, else_branch), end

    def _parse_while(self, index: int) -> Optional[Tuple[Statement, int]]:
        line = self.lines[index]
        if line.kind != LineKind.WHILE:
            return None
        condition = self._expr(self._header(index), line)
        end = lines_after_block(self.lines, index + 1)
        body, stop = self._parse_nested(lambda: self.parse_block(index + 1),
                                        self._loop_depth + 1)
        self._expect_end(stop, end - 1)
        return While(condition, body), end

    def _parse_switch(self, index: int) -> Optional[Tuple[Statement, int]]:
        line = self.lines[index]
        if line.kind != LineKind.SWITCH:
            return None
        subject = self._expr(self._header(index), line)
        end = lines_after_block(self.lines, index + 1)

        cases = []
        default: Statement = EMPTY
        i = index + 1
        while i < end - 1:
            branch = self.lines[i]
            if branch.kind == LineKind.CASE:
                values = tuple(self._expr(v, branch) for v in split_top_level(self._header(i)))
                if not values:
                    raise error_no_production(branch.text, branch.location)
                body, i = self.parse_block(i + 1)
                cases.append((values, body))
            elif branch.kind == LineKind.DEFAULT:
                if self._header(i):
                    raise error_no_production(branch.text, branch.location)
                default, i = self.parse_block(i + 1)
                self._expect_end(i, end - 1)
            else:
                raise error_unexpected_line("'case' or 'default'", branch.text, branch.location)
        return Switch(subject, tuple(cases), default), end

    def _parse_try(self, index: int) -> Optional[Tuple[Statement, int]]:
        line = self.lines[index]
        if line.kind != LineKind.TRY:
            return None
        if self._header(index):
            raise error_no_production(line.text, line.location)
        end = lines_after_block(self.lines, index + 1)

        body, stop = self.parse_block(index + 1)
        handler_line = self.lines[stop]
        if stop >= end - 1 or handler_line.kind != LineKind.CATCH:
            raise error_unexpected_line("'catch'", handler_line.text, handler_line.location)
        matched = CATCH_PATTERN.match(handler_line.tokens[1])
        if matched is None:
            raise error_no_production(handler_line.text, handler_line.location)
        handler, stop = self.parse_block(stop + 1)
        self._expect_end(stop, end - 1)
        return Try(body, matched.group(1), handler), end

    def _parse_throw(self, index: int) -> Optional[Tuple[Statement, int]]:
        line = self.lines[index]
        if line.kind != LineKind.THROW:
            return None
        return Throw(self._expr(line.tokens[1], line)), index + 1

    def _parse_break(self, index: int) -> Optional[Tuple[Statement, int]]:
        line = self.lines[index]
        if line.kind != LineKind.BREAK:
            return None
        if line.tokens[1]:
            raise error_no_production(line.text, line.location)
        if not self._loop_depth:
            raise error_break_outside_loop(line.text, line.location)
        return Break(), index + 1

    def _parse_nonlocal(self, index: int) -> Optional[Tuple[Statement, int]]:
        line = self.lines[index]
        if line.kind != LineKind.NONLOCAL:
            return None
        matched = NONLOCAL_PATTERN.match(line.tokens[1])
        if matched is None:
            raise error_no_production(line.text, line.location)
        name, operator, value_text = matched.groups()
        return NonlocalAssign(name, self._expr(value_text, line), operator or ""), index + 1

    def _parse_import(self, index: int) -> Optional[Tuple[Statement, int]]:
        line = self.lines[index]
        if line.kind != LineKind.IMPORT:
            return None
        matched = IMPORT_PATTERN.match(line.tokens[1])
        if matched is None:
            raise error_no_production(line.text, line.location)
        module, alias = matched.groups()
        return Import(module, alias), index + 1


def parse(source: str, filename: Optional[str] = None,
          interner: Optional[Interner] = None) -> Statement:
    """
    Convenience function to parse source code into a statement chain.

    Args:
        source: The source code
        filename: Optional filename for error messages
        interner: Optional node arena to share with other parses

    Returns:
        The program as a Sequence chain (EMPTY for an empty program)

    Raises:
        LexerError: If an expression cannot be tokenized
        ParserError: If a line matches no production or blocks are unbalanced
    """
    return Parser(tokenize_lines(source, filename), filename, interner).parse()
