"""A recursive descent parser for single lines of PHP.

The parser only has to understand enough PHP to find the structure the
columnator aligns on: statements, the operator precedence ladder, object
chains, function calls, array indices and the odd unary form. Each line is
parsed on its own and must be a complete fragment.

Tokens come from a `Tokenizer` through a small lookahead buffer. Every rule
either returns a tree or raises `ParseFailed`; `attempt()` turns that into
ordered alternation by snapshotting the buffer and the tokenizer cursor and
rolling back when the rule it wraps fails.

The precedence ladder, loosest first:

    statements, statement (if / while / expression ;)
    or, xor, and
    assignment and `=>` pairs (right associative)
    ternary
    ||, &&, |, ^, &, == != === !==, < > <= >= <>, << >>, + - ., * / %
    !, @, new/clone, ( ... ), ~ - (cast), ++x --x, object chains, x++ x--
"""

import logging
import typing

from . import tree
from .errors import ParseFailed
from .tokenizer import Token, TokenKind, Tokenizer

parse_log = logging.getLogger("columnator.parse")
tree_log = logging.getLogger("columnator.tree")


CAST_TYPES = frozenset(("int", "float", "string", "array", "object", "bool"))

T = typing.TypeVar("T")


class LineParser:
    tokenizer: Tokenizer
    _lookahead: list[Token]

    def __init__(self, tokenizer: Tokenizer):
        self.tokenizer = tokenizer
        self._lookahead = []

    ############################################################################
    # Lookahead and backtracking
    ############################################################################

    def reset(self):
        self._lookahead.clear()
        self.tokenizer.reset()

    def la(self, distance: int = 1) -> Token | None:
        """Peek at the token `distance` places ahead, skipping whitespace."""
        while len(self._lookahead) < distance:
            token = self.tokenizer.next_token()
            if token is None:
                break
            if token.kind != TokenKind.WHITESPACE:
                self._lookahead.append(token)

        if len(self._lookahead) < distance:
            return None
        return self._lookahead[distance - 1]

    def la_kind(self, distance: int = 1) -> TokenKind | None:
        token = self.la(distance)
        return None if token is None else token.kind

    def la_is(self, *kinds: TokenKind) -> bool:
        """True if the next tokens are exactly `kinds`, in order."""
        return all(self.la_kind(i + 1) == kind for i, kind in enumerate(kinds))

    def la_is_one_of(self, *kinds: TokenKind) -> bool:
        return self.la_kind() in kinds

    def fail(self) -> typing.NoReturn:
        raise ParseFailed(self.la())

    def fail_unless_done(self):
        if self.la() is not None:
            self.fail()

    def consume(self, kind: TokenKind | None = None, text: str | None = None) -> Token:
        token = self.la()
        if token is None:
            self.fail()
        if kind is not None and token.kind != kind:
            self.fail()
        if text is not None and token.text != text:
            self.fail()

        self._lookahead.pop(0)
        if parse_log.isEnabledFor(logging.DEBUG):
            parse_log.debug(f"   ==> consumed ({token.kind.value} {token.text!r})")
        return token

    def consume_one_of(self, *kinds: TokenKind) -> Token:
        if self.la_is_one_of(*kinds):
            return self.consume()
        self.fail()

    def attempt(self, rule: typing.Callable[[], T]) -> T | None:
        """Run `rule`, rolling back and returning None if it fails to parse.

        Only ParseFailed is caught: a TokenizeError means the line can't be
        handled at all, and it goes straight up.
        """
        lookahead = list(self._lookahead)
        mark = self.tokenizer.mark()
        try:
            return rule()
        except ParseFailed:
            self._lookahead = lookahead
            self.tokenizer.restore(mark)
            if parse_log.isEnabledFor(logging.DEBUG):
                parse_log.debug(f"   ==> {rule.__name__} failed; restored to column {mark}")
            return None

    def trace(self, name: str):
        if parse_log.isEnabledFor(logging.DEBUG):
            first, second = self.la(1), self.la(2)
            parse_log.debug(
                "   {name}() with ({first}), ({second})".format(
                    name=name,
                    first=f"{first.kind.value} {first.text!r}" if first else "eol",
                    second=f"{second.kind.value} {second.text!r}" if second else "eol",
                )
            )

    def binary_operator_expression(
        self,
        node_type: type[tree.Binary],
        operators: tuple[TokenKind, ...],
        operand: typing.Callable[[], tree.Node | Token],
    ) -> tree.Node | Token:
        """Parse `operand (op operand)*`, folding to the left."""
        expression = operand()
        while self.la_is_one_of(*operators):
            op = self.consume_one_of(*operators)
            expression = node_type(lhs=expression, op=op, rhs=operand())
        return expression

    ############################################################################
    # Entry points
    ############################################################################

    def parse(self) -> tree.Node | Token | None:
        """Parse the whole line.

        A line that isn't a sequence of statements gets a second chance as a
        single list item (an expression with an optional trailing comma), the
        shape of one argument in a call spread over several lines.
        """
        try:
            return self.parse_statements()
        except ParseFailed as failure:
            self.reset()
            result = self.attempt(self.parse_whole_list_item)
            if result is None:
                raise failure
            return result

    def parse_whole_list_item(self) -> tree.ListItem:
        item = self.parse_list_item()
        self.fail_unless_done()
        return item

    def parse_list_item(self) -> tree.ListItem:
        self.trace("parse_list_item")
        expression = self.parse_expression()
        comma = self.consume(TokenKind.COMMA) if self.la_kind() == TokenKind.COMMA else None
        return tree.ListItem(expression=expression, comma=comma)

    ############################################################################
    # Statements
    ############################################################################

    def parse_statements(self, terminator: TokenKind | None = None) -> tree.Node | Token | None:
        self.trace("parse_statements")
        if self.la() is None or self.la_kind() == terminator:
            return None

        first = self.parse_statement()
        if self.la() is None or self.la_kind() == terminator:
            return first
        return tree.StatementSequence(first=first, rest=self.parse_statements(terminator))

    def parse_statement(self) -> tree.Node:
        self.trace("parse_statement")
        statement = self.attempt(self.parse_if_statement) or self.attempt(self.parse_while_statement)
        if statement is not None:
            return statement

        body = self.parse_sequence_or_expression()
        return tree.Statement(body=body, terminator=self.consume(TokenKind.SEMICOLON))

    def parse_block(self) -> tree.Node:
        self.trace("parse_block")
        if self.la_kind() != TokenKind.OPEN_BRACE:
            return self.parse_statement()

        open_brace = self.consume(TokenKind.OPEN_BRACE)
        body = self.parse_statements(TokenKind.CLOSE_BRACE)
        return tree.StatementBlock(
            open_brace=open_brace,
            body=body,
            close_brace=self.consume(TokenKind.CLOSE_BRACE),
        )

    def parse_if_statement(self) -> tree.IfStatement:
        self.trace("parse_if_statement")
        return tree.IfStatement(
            keyword=self.consume(TokenKind.KEYWORD_IF),
            open_paren=self.consume(TokenKind.OPEN_PAREN),
            condition=self.parse_expression(),
            close_paren=self.consume(TokenKind.CLOSE_PAREN),
            body=self.parse_block(),
        )

    def parse_while_statement(self) -> tree.WhileStatement:
        self.trace("parse_while_statement")
        return tree.WhileStatement(
            keyword=self.consume(TokenKind.KEYWORD_WHILE),
            open_paren=self.consume(TokenKind.OPEN_PAREN),
            condition=self.parse_expression(),
            close_paren=self.consume(TokenKind.CLOSE_PAREN),
            body=self.parse_block(),
        )

    ############################################################################
    # Expressions
    ############################################################################

    def parse_expression(self) -> tree.Node | Token:
        self.trace("parse_expression")
        return self.parse_sequence_or_expression()

    def parse_sequence_or_expression(self):
        self.trace("parse_sequence_or_expression")
        return self.binary_operator_expression(
            tree.SequenceOr, (TokenKind.KEYWORD_OR,), self.parse_sequence_xor_expression
        )

    def parse_sequence_xor_expression(self):
        self.trace("parse_sequence_xor_expression")
        return self.binary_operator_expression(
            tree.SequenceXor, (TokenKind.KEYWORD_XOR,), self.parse_sequence_and_expression
        )

    def parse_sequence_and_expression(self):
        self.trace("parse_sequence_and_expression")
        return self.binary_operator_expression(
            tree.SequenceAnd, (TokenKind.KEYWORD_AND,), self.parse_assignment_expression
        )

    def parse_assignment_expression(self) -> tree.Node | Token:
        self.trace("parse_assignment_expression")
        expression = self.parse_ternary_expression()
        if not self.la_is_one_of(TokenKind.ASSIGNER, TokenKind.PAIRER):
            return expression

        target = assignment_target(expression)
        if target is None:
            return expression

        op = self.consume()
        return tree.Assignment(lhs=target, op=op, rhs=self.parse_assignment_expression())

    def parse_ternary_expression(self) -> tree.Node | Token:
        self.trace("parse_ternary_expression")
        condition = self.parse_logical_or_expression()
        if self.la_kind() != TokenKind.QUESTION:
            return condition

        question = self.consume(TokenKind.QUESTION)
        true_branch = self.parse_ternary_expression()
        colon = self.consume(TokenKind.COLON)
        return tree.TernaryExpression(
            condition=condition,
            question=question,
            true_branch=true_branch,
            colon=colon,
            false_branch=self.parse_ternary_expression(),
        )

    def parse_logical_or_expression(self):
        self.trace("parse_logical_or_expression")
        return self.binary_operator_expression(
            tree.LogicalOr, (TokenKind.DOUBLE_PIPE,), self.parse_logical_and_expression
        )

    def parse_logical_and_expression(self):
        self.trace("parse_logical_and_expression")
        return self.binary_operator_expression(
            tree.LogicalAnd, (TokenKind.DOUBLE_AMPERSAND,), self.parse_bitwise_or_expression
        )

    def parse_bitwise_or_expression(self):
        self.trace("parse_bitwise_or_expression")
        return self.binary_operator_expression(
            tree.BitwiseOr, (TokenKind.PIPE,), self.parse_bitwise_xor_expression
        )

    def parse_bitwise_xor_expression(self):
        self.trace("parse_bitwise_xor_expression")
        return self.binary_operator_expression(
            tree.BitwiseXor, (TokenKind.CARET,), self.parse_bitwise_and_expression
        )

    def parse_bitwise_and_expression(self):
        self.trace("parse_bitwise_and_expression")
        return self.binary_operator_expression(
            tree.BitwiseAnd, (TokenKind.AMPERSAND,), self.parse_equality_expression
        )

    def parse_equality_expression(self):
        self.trace("parse_equality_expression")
        return self.binary_operator_expression(
            tree.EqualityTest, (TokenKind.IN_EQUALITY,), self.parse_comparison_expression
        )

    def parse_comparison_expression(self):
        self.trace("parse_comparison_expression")
        return self.binary_operator_expression(
            tree.ComparisonTest, (TokenKind.COMPARATOR,), self.parse_bitwise_shift_expression
        )

    def parse_bitwise_shift_expression(self):
        self.trace("parse_bitwise_shift_expression")
        return self.binary_operator_expression(
            tree.BitwiseShift,
            (TokenKind.DOUBLE_LEFT, TokenKind.DOUBLE_RIGHT),
            self.parse_addition_expression,
        )

    def parse_addition_expression(self):
        self.trace("parse_addition_expression")
        return self.binary_operator_expression(
            tree.Addition,
            (TokenKind.PLUS, TokenKind.MINUS, TokenKind.DOT),
            self.parse_multiplication_expression,
        )

    def parse_multiplication_expression(self):
        self.trace("parse_multiplication_expression")
        return self.binary_operator_expression(
            tree.Multiplication,
            (TokenKind.STAR, TokenKind.SLASH, TokenKind.PERCENT),
            self.parse_logical_not_expression,
        )

    ############################################################################
    # Unary forms
    ############################################################################

    def parse_logical_not_expression(self) -> tree.Node | Token:
        self.trace("parse_logical_not_expression")
        if self.la_kind() != TokenKind.EXCLAMATION:
            return self.parse_at_expression()
        op = self.consume(TokenKind.EXCLAMATION)
        return tree.LogicalNot(op=op, expression=self.parse_logical_not_expression())

    def parse_at_expression(self) -> tree.Node | Token:
        self.trace("parse_at_expression")
        if self.la_kind() != TokenKind.AT:
            return self.parse_lifecycle_expression()
        op = self.consume(TokenKind.AT)
        return tree.ErrorSuppression(op=op, expression=self.parse_at_expression())

    def parse_lifecycle_expression(self) -> tree.Node | Token:
        self.trace("parse_lifecycle_expression")
        if not self.la_is_one_of(TokenKind.KEYWORD_NEW, TokenKind.KEYWORD_CLONE):
            return self.parse_parenthesized_expression()

        op = self.consume()
        if self.la_is(TokenKind.WORD, TokenKind.OPEN_PAREN):
            expression = self.parse_function_call_expression()
        else:
            expression = self.consume(TokenKind.WORD)
        return tree.LifecycleExpression(op=op, expression=expression)

    def is_type_cast(self) -> bool:
        if not self.la_is(TokenKind.OPEN_PAREN, TokenKind.WORD, TokenKind.CLOSE_PAREN):
            return False
        word = self.la(2)
        return word is not None and word.text in CAST_TYPES

    def parse_parenthesized_expression(self) -> tree.Node | Token:
        self.trace("parse_parenthesized_expression")
        if self.la_kind() != TokenKind.OPEN_PAREN or self.is_type_cast():
            return self.parse_unary_expression()

        return tree.ParenthesizedExpression(
            open_paren=self.consume(TokenKind.OPEN_PAREN),
            body=self.parse_expression(),
            close_paren=self.consume(TokenKind.CLOSE_PAREN),
        )

    def parse_unary_expression(self) -> tree.Node | Token:
        self.trace("parse_unary_expression")
        match self.la_kind():
            case TokenKind.TILDE:
                op = self.consume(TokenKind.TILDE)
                return tree.BitwiseComplement(op=op, expression=self.parse_at_expression())

            case TokenKind.MINUS:
                op = self.consume(TokenKind.MINUS)
                return tree.Negation(op=op, expression=self.parse_at_expression())

            case TokenKind.OPEN_PAREN if self.is_type_cast():
                return tree.TypeCast(
                    open_paren=self.consume(TokenKind.OPEN_PAREN),
                    type=self.consume(TokenKind.WORD),
                    close_paren=self.consume(TokenKind.CLOSE_PAREN),
                    expression=self.parse_unary_expression(),
                )

            case _:
                return self.parse_prefix_expression()

    def parse_prefix_expression(self) -> tree.Node | Token:
        self.trace("parse_prefix_expression")
        if not self.la_is_one_of(TokenKind.PLUSPLUS, TokenKind.MINUSMINUS):
            return self.parse_postfix_expression()
        op = self.consume()
        return tree.Prefix(op=op, expression=self.parse_object_expression())

    def parse_postfix_expression(self) -> tree.Node | Token:
        self.trace("parse_postfix_expression")
        expression = self.parse_object_expression()
        if not self.la_is_one_of(TokenKind.PLUSPLUS, TokenKind.MINUSMINUS):
            return expression
        return tree.Postfix(expression=expression, op=self.consume())

    ############################################################################
    # Object chains, calls and atoms
    ############################################################################

    def parse_object_expression(self) -> tree.Node | Token:
        self.trace("parse_object_expression")
        expression = self.parse_function_call_expression()
        if self.la_kind() != TokenKind.SCOPER:
            return expression
        scoper = self.consume(TokenKind.SCOPER)
        return tree.ObjectExpression(
            expression=expression,
            scoper=scoper,
            offset=self.parse_object_expression(),
        )

    def parse_function_call_expression(self) -> tree.Node | Token:
        self.trace("parse_function_call_expression")
        expression = self.parse_simple_expression()
        if self.la_kind() != TokenKind.OPEN_PAREN:
            return expression
        return tree.FunctionCall(
            name=expression,
            open_paren=self.consume(TokenKind.OPEN_PAREN),
            parameters=self.attempt(self.parse_comma_list),
            close_paren=self.consume(TokenKind.CLOSE_PAREN),
        )

    def parse_simple_expression(self) -> tree.Node | Token:
        self.trace("parse_simple_expression")
        match self.la_kind():
            case TokenKind.WORD:
                expression: tree.Node | Token = self.consume(TokenKind.WORD)
                while self.la_kind() == TokenKind.OPEN_BRACKET:
                    open_bracket = self.consume(TokenKind.OPEN_BRACKET)
                    index = None
                    if self.la_kind() != TokenKind.CLOSE_BRACKET:
                        index = self.parse_expression()
                    expression = tree.ArrayExpression(
                        array=expression,
                        open_bracket=open_bracket,
                        index=index,
                        close_bracket=self.consume(TokenKind.CLOSE_BRACKET),
                    )
                return expression

            case TokenKind.STRING:
                return self.consume(TokenKind.STRING)

            case TokenKind.NUMBER:
                return self.consume(TokenKind.NUMBER)

            case _:
                self.fail()

    def parse_comma_list(self) -> tree.Node | Token:
        self.trace("parse_comma_list")
        first = self.parse_expression()
        if self.la_kind() != TokenKind.COMMA:
            return first
        comma = self.consume(TokenKind.COMMA)
        return tree.CommaList(first=first, comma=comma, rest=self.parse_comma_list())


############################################################################
# Assignment targets
############################################################################


def assignment_target(expression: tree.Node | Token) -> tree.Node | Token | None:
    """The left-hand side `expression` stands for, or None if it can't take one.

    Targets are parsed as ordinary operands first. A call to `list` with
    arguments becomes a list receiver once an assigner follows it.
    """
    match expression:
        case tree.FunctionCall(name=Token(kind=TokenKind.WORD, text="list"), parameters=targets) if (
            targets is not None
        ):
            return tree.ListReceiver(
                keyword=expression.name,
                open_paren=expression.open_paren,
                targets=targets,
                close_paren=expression.close_paren,
            )

        case Token() | tree.ArrayExpression() | tree.ObjectExpression() | tree.FunctionCall():
            return expression

        case tree.ErrorSuppression(op=op, expression=inner):
            target = assignment_target(inner)
            if target is None:
                return None
            return tree.ErrorSuppression(op=op, expression=target)

        case _:
            return None


def parse_line(line: str) -> tree.Node | Token | None:
    """Parse one line into an expression tree.

    Returns None for a line with nothing but whitespace on it. Raises
    ParseFailed if the line doesn't parse and TokenizeError if it can't even
    be tokenized.
    """
    result = LineParser(Tokenizer(line)).parse()
    if result is not None and tree_log.isEnabledFor(logging.DEBUG):
        tree_log.debug("\n".join(["", f"   {line.rstrip()}", *tree.format_lines(result, 3), ""]))
    return result
