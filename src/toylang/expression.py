"""
Expression parser for toylang.

Parsing runs in two phases:

1. to_postfix(): shunting-yard over the infix ExprTokens
2. from_postfix(): an operand stack folds the postfix stream into a tree

Operand tokens go through a chain of operand parsers, each returning None
when the text is not its kind: text literal, number, keyword literal
(true/false/null), list literal, call/property chain, plain variable.
A chain may start at a text or list literal, as in ``"a,b".split(",")``.
"""

from typing import Callable, List, Optional

from .tokens import ExprToken, ExprKind, SourceLocation, LITERAL_WORDS, NULL_WORD, priority
from .lexer import (
    tokenize_expression, split_top_level, decode_text, scan_balanced, scan_string,
    NUMBER_PATTERN, IDENTIFIER_PATTERN,
)
from .errors import error_invalid_expression, error_mismatched_parenthesis
from .ast import Expr, Variable, BinaryOp, UnaryOp, Property, FunCall, ListLiteral
from .runtime.values import Null, Primitive


class Interner:
    """
    Shared Variable nodes and literal Primitives for one parsed program.

    Owned by the Parser that creates it; its tables live as long as the
    parsed program does.
    """

    def __init__(self):
        self._variables = {}
        self._primitives = {}

    def variable(self, name: str) -> Variable:
        node = self._variables.get(name)
        if node is None:
            node = self._variables[name] = Variable(name)
        return node

    def primitive(self, value) -> Primitive:
        key = (type(value), value)
        node = self._primitives.get(key)
        if node is None:
            node = self._primitives[key] = Primitive(value)
        return node

    def __len__(self) -> int:
        return len(self._variables) + len(self._primitives)


class ExpressionParser:
    """
    Infix text to expression tree.

    Usage:
        parser = ExpressionParser(Interner())
        tree = parser.parse("2 + 3 * 4")
    """

    def __init__(self, interner: Optional[Interner] = None):
        self.interner = interner if interner is not None else Interner()
        self.location: Optional[SourceLocation] = None
        self.source_line: Optional[str] = None
        self._operand_parsers: List[Callable[[str], Optional[Expr]]] = [
            self._text,
            self._number,
            self._keyword,
            self._list,
            self._chain,
            self._variable,
        ]

    def parse(self, text: str, location: Optional[SourceLocation] = None,
              source_line: Optional[str] = None) -> Expr:
        """Parse one complete expression."""
        if location is not None:
            self.location = location
            self.source_line = source_line
        text = text.strip()
        if not text:
            raise error_invalid_expression(text, self.location, self.source_line)
        tokens = tokenize_expression(text, self.location, self.source_line)
        return self.from_postfix(self.to_postfix(tokens), text)

    # --- Phase 1: infix -> postfix ---

    def to_postfix(self, tokens: List[ExprToken]) -> List[ExprToken]:
        """Shunting-yard; equal priorities pop first (left associative)."""
        output: List[ExprToken] = []
        stack: List[ExprToken] = []

        for token in tokens:
            if token.kind == ExprKind.OPERAND:
                output.append(token)
            elif token.kind in (ExprKind.LPAREN, ExprKind.UNARY):
                stack.append(token)
            elif token.kind == ExprKind.RPAREN:
                while stack and stack[-1].kind != ExprKind.LPAREN:
                    output.append(stack.pop())
                if not stack:
                    raise error_mismatched_parenthesis(
                        " ".join(map(str, tokens)), self.location, self.source_line)
                stack.pop()
            else:
                incoming = priority(token)
                while (stack and stack[-1].kind != ExprKind.LPAREN
                       and priority(stack[-1]) >= incoming):
                    output.append(stack.pop())
                stack.append(token)

        while stack:
            token = stack.pop()
            if token.kind == ExprKind.LPAREN:
                raise error_mismatched_parenthesis(
                    " ".join(map(str, tokens)), self.location, self.source_line)
            output.append(token)
        return output

    # --- Phase 2: postfix -> tree ---

    def from_postfix(self, tokens: List[ExprToken], text: str = "") -> Expr:
        """Fold postfix tokens with an operand stack."""
        stack: List[Expr] = []
        for token in tokens:
            if token.kind == ExprKind.OPERATOR:
                if len(stack) < 2:
                    raise error_invalid_expression(text, self.location, self.source_line)
                right = stack.pop()
                left = stack.pop()
                stack.append(BinaryOp(token.text, left, right))
            elif token.kind == ExprKind.UNARY:
                if not stack:
                    raise error_invalid_expression(text, self.location, self.source_line)
                stack.append(UnaryOp(token.text, stack.pop()))
            else:
                stack.append(self.operand(token.text))

        if len(stack) != 1:
            raise error_invalid_expression(text, self.location, self.source_line)
        return stack[0]

    def operand(self, text: str) -> Expr:
        """Resolve one operand token through the operand parsers."""
        for parse in self._operand_parsers:
            node = parse(text)
            if node is not None:
                return node
        raise error_invalid_expression(text, self.location, self.source_line)

    # --- Operand parsers ---

    def _text(self, text: str) -> Optional[Expr]:
        if len(text) >= 2 and text[0] in '\'"' and text[-1] == text[0]:
            return self.interner.primitive(decode_text(text, self.location, self.source_line))
        return None

    def _number(self, text: str) -> Optional[Expr]:
        if NUMBER_PATTERN.fullmatch(text):
            return self.interner.primitive(float(text))
        return None

    def _keyword(self, text: str) -> Optional[Expr]:
        if text in LITERAL_WORDS:
            return self.interner.primitive(LITERAL_WORDS[text])
        if text == NULL_WORD:
            return Null
        return None

    def _list(self, text: str) -> Optional[Expr]:
        if text.startswith("[") and text.endswith("]"):
            items = split_top_level(text[1:-1])
            return ListLiteral(tuple(self.parse(item) for item in items))
        return None

    def _chain(self, text: str) -> Optional[Expr]:
        node: Optional[Expr]
        if text[:1] in ("'", '"'):
            pos = scan_string(text, 0, self.location, self.source_line)
            node = self._text(text[:pos])
        elif text[:1] == "[":
            pos = scan_balanced(text, 0, self.location, self.source_line)
            node = self._list(text[:pos])
        else:
            head = IDENTIFIER_PATTERN.match(text)
            if head is None:
                return None
            pos = head.end()
            node = self.interner.variable(head.group())
        if node is None or pos == len(text):
            return None

        while pos < len(text):
            if text[pos] == "(":
                end = scan_balanced(text, pos, self.location, self.source_line)
                args = split_top_level(text[pos + 1:end - 1])
                node = FunCall(node, tuple(self.parse(arg) for arg in args))
                pos = end
            elif text[pos] == ".":
                name = IDENTIFIER_PATTERN.match(text, pos + 1)
                if name is None:
                    return None
                node = Property(node, name.group())
                pos = name.end()
            else:
                return None
        return node

    def _variable(self, text: str) -> Optional[Expr]:
        if IDENTIFIER_PATTERN.fullmatch(text):
            return self.interner.variable(text)
        return None


def parse_expression(text: str, interner: Optional[Interner] = None) -> Expr:
    """
    Convenience function to parse a single expression.

    Raises:
        LexerError: If the text cannot be tokenized
        ParserError: If the tokens do not form an expression
    """
    return ExpressionParser(interner).parse(text)
