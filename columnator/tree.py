"""Expression trees for a single parsed line.

Every kind of node is its own frozen dataclass carrying exactly the slots for
that kind, so consumers can `match` on them. Leaves are plain tokens.
"""

import dataclasses
import typing

from .tokenizer import Token


@dataclasses.dataclass(frozen=True)
class Node:
    kind: typing.ClassVar[str] = "node"

    def slots(self) -> tuple["Element", ...]:
        """The slot values, in source order."""
        return tuple(getattr(self, field.name) for field in dataclasses.fields(self))

    def tokens(self) -> typing.Iterator[Token]:
        for element in self.slots():
            if isinstance(element, Token):
                yield element
            elif isinstance(element, Node):
                yield from element.tokens()


Element = Node | Token | None


############################################################################
# Statements
############################################################################


@dataclasses.dataclass(frozen=True)
class StatementSequence(Node):
    kind = "statement_sequence"
    first: Node | Token
    rest: Node | Token


@dataclasses.dataclass(frozen=True)
class Statement(Node):
    kind = "statement"
    body: Node | Token
    terminator: Token


@dataclasses.dataclass(frozen=True)
class IfStatement(Node):
    kind = "if_statement"
    keyword: Token
    open_paren: Token
    condition: Node | Token
    close_paren: Token
    body: Node | Token


@dataclasses.dataclass(frozen=True)
class WhileStatement(Node):
    kind = "while_statement"
    keyword: Token
    open_paren: Token
    condition: Node | Token
    close_paren: Token
    body: Node | Token


@dataclasses.dataclass(frozen=True)
class StatementBlock(Node):
    kind = "statement_block"
    open_brace: Token
    body: Node | Token | None
    close_brace: Token


############################################################################
# Binary operators
############################################################################


@dataclasses.dataclass(frozen=True)
class Binary(Node):
    lhs: Node | Token
    op: Token
    rhs: Node | Token


class SequenceOr(Binary):
    kind = "sequence_or"


class SequenceXor(Binary):
    kind = "sequence_xor"


class SequenceAnd(Binary):
    kind = "sequence_and"


class Assignment(Binary):
    kind = "assignment"


class LogicalOr(Binary):
    kind = "logical_or"


class LogicalAnd(Binary):
    kind = "logical_and"


class BitwiseOr(Binary):
    kind = "bitwise_or"


class BitwiseXor(Binary):
    kind = "bitwise_xor"


class BitwiseAnd(Binary):
    kind = "bitwise_and"


class EqualityTest(Binary):
    kind = "equality_test"


class ComparisonTest(Binary):
    kind = "comparison_test"


class BitwiseShift(Binary):
    kind = "bitwise_shift"


class Addition(Binary):
    kind = "addition"


class Multiplication(Binary):
    kind = "multiplication"


@dataclasses.dataclass(frozen=True)
class TernaryExpression(Node):
    kind = "ternary_expression"
    condition: Node | Token
    question: Token
    true_branch: Node | Token
    colon: Token
    false_branch: Node | Token


############################################################################
# Unary operators
############################################################################


@dataclasses.dataclass(frozen=True)
class Unary(Node):
    op: Token
    expression: Node | Token


class LogicalNot(Unary):
    kind = "logical_not"


class ErrorSuppression(Unary):
    kind = "error_suppression"


class LifecycleExpression(Unary):
    kind = "lifecycle_expression"


class Negation(Unary):
    kind = "negation"


class BitwiseComplement(Unary):
    kind = "bitwise_complement"


class Prefix(Unary):
    kind = "prefix"


@dataclasses.dataclass(frozen=True)
class Postfix(Node):
    kind = "postfix"
    expression: Node | Token
    op: Token


@dataclasses.dataclass(frozen=True)
class TypeCast(Node):
    kind = "type_cast"
    open_paren: Token
    type: Token
    close_paren: Token
    expression: Node | Token


@dataclasses.dataclass(frozen=True)
class ParenthesizedExpression(Node):
    kind = "parenthesized_expression"
    open_paren: Token
    body: Node | Token
    close_paren: Token


############################################################################
# Objects, calls and lists
############################################################################


@dataclasses.dataclass(frozen=True)
class ObjectExpression(Node):
    kind = "object_expression"
    expression: Node | Token
    scoper: Token
    offset: Node | Token


@dataclasses.dataclass(frozen=True)
class FunctionCall(Node):
    kind = "function_call"
    name: Node | Token
    open_paren: Token
    parameters: Node | Token | None
    close_paren: Token


@dataclasses.dataclass(frozen=True)
class ArrayExpression(Node):
    kind = "array_expression"
    array: Node | Token
    open_bracket: Token
    index: Node | Token | None
    close_bracket: Token


@dataclasses.dataclass(frozen=True)
class CommaList(Node):
    kind = "comma_list"
    first: Node | Token
    comma: Token
    rest: Node | Token


@dataclasses.dataclass(frozen=True)
class ListReceiver(Node):
    kind = "list_receiver"
    keyword: Token
    open_paren: Token
    targets: Node | Token
    close_paren: Token


@dataclasses.dataclass(frozen=True)
class ListItem(Node):
    kind = "list_item"
    expression: Node | Token
    comma: Token | None


############################################################################
# Helpers
############################################################################


def render(element: Element) -> str:
    """Reproduce the source text of an element.

    Whitespace between tokens is not kept in the tree, only positions, so each
    gap comes back as the same number of spaces.
    """
    match element:
        case None:
            return ""

        case Token(text=text):
            return text

        case Node():
            parts: list[str] = []
            last_end = None
            for token in element.tokens():
                if last_end is not None and token.position > last_end:
                    parts.append(" " * (token.position - last_end))
                parts.append(token.text)
                last_end = token.end
            return "".join(parts)

        case _:
            typing.assert_never(element)


def flatten_parameters(parameters: Element) -> list[Node | Token]:
    """Flatten a comma list into [item, comma, item, comma, ..., item]."""
    result: list[Node | Token] = []
    while isinstance(parameters, CommaList):
        result.extend((parameters.first, parameters.comma))
        parameters = parameters.rest
    if parameters is not None:
        result.append(parameters)
    return result


def count_parameters(parameters: Element) -> int:
    count = 0
    while isinstance(parameters, CommaList):
        count += 1
        parameters = parameters.rest
    return count if parameters is None else count + 1


def format_lines(element: Element, indent: int = 0) -> list[str]:
    """Dump a tree in a readable, indented form. Used for tracing."""
    lines: list[str] = []
    prefix = " " * indent

    match element:
        case None:
            lines.append(f"{prefix}nil")

        case Token(kind=kind, text=text):
            lines.append(f"{prefix}{kind.value} {text!r}")

        case Node():
            lines.append(f"{prefix}{element.kind}")
            for field in dataclasses.fields(element):
                child = getattr(element, field.name)
                if isinstance(child, Node):
                    lines.append(f"{prefix}  {field.name}:")
                    lines.extend(format_lines(child, indent + 4))
                else:
                    lines.append(f"{prefix}  {field.name}: {format_lines(child)[0].strip()}")

        case _:
            typing.assert_never(element)

    return lines
