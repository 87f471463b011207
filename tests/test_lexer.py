"""
Unit tests for the toylang line and expression lexers.
"""

import pytest
import textwrap

from toylang import (
    tokenize_lines, tokenize_expression, LineKind, ExprKind, LexerError,
)
from toylang.lexer import split_top_level, decode_text


class TestLineClassification:
    """Test statement-level line classification."""

    def test_empty_source(self):
        """Empty source produces no lines."""
        assert tokenize_lines("") == []

    def test_blank_and_comment_lines_dropped(self):
        """Blank lines and full-line comments are skipped."""
        source = "\n   \n# a comment\n  # indented comment\nx = 1\n"
        lines = tokenize_lines(source)
        assert len(lines) == 1
        assert lines[0].kind == LineKind.ASSIGN

    def test_line_numbers_preserved(self):
        """Original 1-based line numbers survive dropped lines."""
        lines = tokenize_lines("# header\n\nx = 1\n\ny = 2")
        assert [line.number for line in lines] == [3, 5]

    def test_lines_are_trimmed(self):
        """Leading and trailing whitespace is removed from the text."""
        lines = tokenize_lines("    x = 1   ")
        assert lines[0].text == "x = 1"
        assert lines[0].location.column == 5

    def test_plain_assignment(self):
        """A plain assignment yields target, empty operator and value."""
        line = tokenize_lines("total = a + b")[0]
        assert line.kind == LineKind.ASSIGN
        assert line.tokens == ("total", "", "a + b")

    def test_compound_assignment(self):
        """Compound operators are split from the '='."""
        assert tokenize_lines("x += 2")[0].tokens == ("x", "+", "2")
        assert tokenize_lines("x <<= 1")[0].tokens == ("x", "<<", "1")
        assert tokenize_lines("x ^= y")[0].tokens == ("x", "^", "y")

    def test_property_assignment(self):
        """A dotted target is an assignment line."""
        line = tokenize_lines("this.count = 0")[0]
        assert line.kind == LineKind.ASSIGN
        assert line.tokens[0] == "this.count"

    def test_equality_is_not_assignment(self):
        """'==' never starts an assignment."""
        line = tokenize_lines("check(a == b)")[0]
        assert line.kind == LineKind.FUNCALL

    def test_end_line(self):
        """Bare 'end' is the terminator kind."""
        assert tokenize_lines("end")[0].kind == LineKind.END

    def test_keyword_lines(self):
        """Keyword lines carry the keyword and the rest of the line."""
        source = textwrap.dedent("""
            def f(a, b):
            class Point(Object):
            return a
            if x > 1:
            else:
            while true:
            switch x:
            case 1, 2:
            default:
            try:
            catch(e):
            throw e
            break
            nonlocal n += 1
            import util.strings as s
        """)
        kinds = [line.kind for line in tokenize_lines(source)]
        assert kinds == [
            LineKind.DEF, LineKind.CLASS, LineKind.RETURN, LineKind.IF,
            LineKind.ELSE, LineKind.WHILE, LineKind.SWITCH, LineKind.CASE,
            LineKind.DEFAULT, LineKind.TRY, LineKind.CATCH, LineKind.THROW,
            LineKind.BREAK, LineKind.NONLOCAL, LineKind.IMPORT,
        ]

    def test_keyword_rest(self):
        """The keyword's remainder is kept verbatim."""
        line = tokenize_lines("def add(a, b):")[0]
        assert line.tokens == ("def", "add(a, b):")

    def test_funcall_candidate(self):
        """Any other word line is a function-call candidate."""
        line = tokenize_lines("obj.method(1, 2)")[0]
        assert line.kind == LineKind.FUNCALL
        assert line.tokens == ("obj.method(1, 2)",)

    def test_unknown_line(self):
        """Lines not starting with a word are left for the parser to reject."""
        assert tokenize_lines("(x)")[0].kind == LineKind.UNKNOWN
        assert tokenize_lines("42")[0].kind == LineKind.UNKNOWN

    def test_filename_in_location(self):
        """The filename is recorded in each line's location."""
        line = tokenize_lines("x = 1", "main.toy")[0]
        assert str(line.location) == "main.toy:1:1"


class TestExpressionTokens:
    """Test expression-level tokenization."""

    def _kinds(self, expr):
        return [t.kind for t in tokenize_expression(expr)]

    def _texts(self, expr):
        return [t.text for t in tokenize_expression(expr)]

    def test_simple_arithmetic(self):
        """Operands and operators alternate."""
        assert self._texts("2 + 3 * 4") == ["2", "+", "3", "*", "4"]

    def test_whitespace_optional(self):
        """Whitespace between tokens is not required."""
        assert self._texts("2+3*4") == ["2", "+", "3", "*", "4"]

    def test_parentheses(self):
        """Parentheses become their own token kinds."""
        assert self._kinds("(1)") == [ExprKind.LPAREN, ExprKind.OPERAND, ExprKind.RPAREN]

    def test_two_char_operators(self):
        """Two-character operators are matched greedily."""
        assert self._texts("a <= b") == ["a", "<=", "b"]
        assert self._texts("a<<2") == ["a", "<<", "2"]
        assert self._texts("a != b") == ["a", "!=", "b"]

    def test_word_operators(self):
        """'and'/'or' are binary, 'not' is unary."""
        tokens = tokenize_expression("not a and b or c")
        assert tokens[0].kind == ExprKind.UNARY
        assert tokens[2].kind == ExprKind.OPERATOR
        assert tokens[2].text == "and"
        assert tokens[4].text == "or"

    def test_word_operator_prefix_is_identifier(self):
        """Identifiers starting with an operator word stay identifiers."""
        assert self._texts("order + nothing") == ["order", "+", "nothing"]

    def test_prefix_minus_is_unary(self):
        """A leading '-' or one after an operator or '(' is negation."""
        tokens = tokenize_expression("-a - (-b)")
        assert tokens[0].kind == ExprKind.UNARY
        assert tokens[0].text == "neg"
        assert tokens[2].kind == ExprKind.OPERATOR
        assert tokens[4].kind == ExprKind.UNARY

    def test_number_literals(self):
        """Integers and decimals are single operands."""
        assert self._texts("12 + 3.25") == ["12", "+", "3.25"]

    def test_text_literals(self):
        """Quoted text keeps its quotes and may contain operators."""
        assert self._texts("'a + b' + \"c\"") == ["'a + b'", "+", '"c"']

    def test_text_literal_with_escaped_quote(self):
        """An escaped quote does not close the literal."""
        assert self._texts(r"'it\'s'") == [r"'it\'s'"]

    def test_list_literal_is_one_operand(self):
        """A list literal is kept whole."""
        assert self._texts("[1, [2, 3]] + x") == ["[1, [2, 3]]", "+", "x"]

    def test_call_chain_is_one_operand(self):
        """Calls and property accesses attach to their identifier."""
        assert self._texts("obj.get(1, 2).name * 2") == ["obj.get(1, 2).name", "*", "2"]

    def test_text_literal_method_chain(self):
        """A method call on a text literal stays one operand."""
        assert self._texts("'a,b'.split(',')") == ["'a,b'.split(',')"]

    def test_unexpected_character(self):
        """Unknown characters raise E001."""
        with pytest.raises(LexerError) as exc_info:
            tokenize_expression("a $ b")
        assert exc_info.value.code == "E001"

    def test_unterminated_string(self):
        """A missing closing quote raises E002."""
        with pytest.raises(LexerError) as exc_info:
            tokenize_expression("'abc")
        assert exc_info.value.code == "E002"

    def test_unbalanced_brackets(self):
        """An unclosed call or list raises E003."""
        with pytest.raises(LexerError) as exc_info:
            tokenize_expression("f(1, 2")
        assert exc_info.value.code == "E003"
        with pytest.raises(LexerError):
            tokenize_expression("[1, 2")


class TestHelpers:
    """Test the splitting and decoding helpers."""

    def test_split_top_level(self):
        """Commas inside brackets and quotes do not split."""
        assert split_top_level("a, f(b, c), [d, e], 'x,y'") == ["a", "f(b, c)", "[d, e]", "'x,y'"]

    def test_split_empty(self):
        """Empty text yields no parts."""
        assert split_top_level("") == []
        assert split_top_level("   ") == []

    def test_decode_escapes(self):
        """Escape sequences are resolved."""
        assert decode_text(r"'a\nb\t\\'") == "a\nb\t\\"
        assert decode_text(r'"say \"hi\""') == 'say "hi"'

    def test_invalid_escape(self):
        """Unknown escapes raise E005."""
        with pytest.raises(LexerError) as exc_info:
            decode_text(r"'\q'")
        assert exc_info.value.code == "E005"
