"""Columnate a block of parsed lines.

Every line starts out as one cell in a single, top-level column group. The
engine then walks the groups looking for shapes it knows how to lay out (an
assignment, a function call, an object chain, ...). Each cell holding such a
shape is replaced by a row of new cells, one per part of the shape, and each
new cell goes into its own freshly made group. Groups that hold operands are
then searched again, recursively, until only tokens are left.

Lines that don't share a shape at some level simply don't take part in the
groups made for it. Rendering pads every cell to the width of its group, so
the parts of matching lines land in the same columns.
"""

import enum
import functools
import logging
import re
import typing

from . import tree
from .block import block_indent
from .errors import ParseFailed, TokenizeError
from .parser import parse_line
from .tokenizer import Token, TokenKind

engine_log = logging.getLogger("columnator.engine")


class Justification(enum.Enum):
    LEFT = "left"
    RIGHT = "right"


Content = typing.Union[tree.Node, Token, str, None, "Cell", list["Cell"]]

_INTEGER = re.compile(r"[0-9]+")


def is_integer(text: str) -> bool:
    return _INTEGER.fullmatch(text) is not None


def content_text(contents: Content) -> str:
    match contents:
        case None:
            return ""

        case str():
            return contents

        case Cell():
            return contents.text()

        case list():
            return "".join(cell.text() for cell in contents)

        case Token() | tree.Node():
            return tree.render(contents)

        case _:
            typing.assert_never(contents)


class Cell:
    """One line's share of a column group."""

    group: "ColumnGroup"
    contents: Content
    before: str | None
    after: str | None
    variable_width: bool
    justification: Justification | None

    def __init__(
        self,
        group: "ColumnGroup",
        contents: Content,
        *,
        before: str | None = None,
        after: str | None = None,
        variable_width: bool = False,
        justification: Justification | None = None,
    ):
        self.group = group
        self.contents = contents
        self.before = before
        self.after = after
        self.variable_width = variable_width
        self.justification = justification

    def __repr__(self):
        return f"<Cell {self.contents!r}>"

    def matches(
        self,
        *types: type[tree.Node],
        predicate: typing.Callable[[typing.Any], bool] | None = None,
    ) -> bool:
        contents = self.contents
        if not isinstance(contents, types):
            return False
        return predicate is None or predicate(contents)

    def split(
        self,
        catchall: "ColumnGroup | None",
        types: tuple[type[tree.Node], ...],
        splitter: typing.Callable[[typing.Any], list["Cell"]],
    ):
        if self.matches(*types):
            self.contents = splitter(self.contents)
        elif catchall is not None:
            self.contents = catchall.add(self.contents)

    @functools.cached_property
    def unspaced(self) -> str:
        """The text of the contents, before this cell's own padding."""
        return content_text(self.contents)

    @property
    def min_width(self) -> int:
        return len(self.unspaced)

    def is_integer(self) -> bool:
        return is_integer(self.unspaced)

    def text(self) -> str:
        return self.group.format(self)


############################################################################
# Shapes, in the order they are looked for at each level
############################################################################

SEQUENCES = (tree.SequenceOr, tree.SequenceAnd, tree.SequenceXor)
OPERATIONS = (
    tree.LogicalOr,
    tree.LogicalAnd,
    tree.BitwiseOr,
    tree.BitwiseXor,
    tree.BitwiseAnd,
    tree.BitwiseShift,
    tree.Addition,
    tree.Multiplication,
)
OBJECTS = (tree.ObjectExpression,)
COMPARISONS = (tree.Assignment, tree.EqualityTest, tree.ComparisonTest)
TERNARIES = (tree.TernaryExpression,)
PREFIXES = (tree.ErrorSuppression, tree.Prefix, tree.LogicalNot)
LIFECYCLES = (tree.LifecycleExpression,)
PARENTHESES = (tree.ParenthesizedExpression,)
CALLS = (tree.FunctionCall, tree.ListReceiver)
ARRAYS = (tree.ArrayExpression,)


def call_name(call: tree.FunctionCall | tree.ListReceiver) -> str:
    match call:
        case tree.FunctionCall(name=name):
            return tree.render(name)
        case tree.ListReceiver(keyword=keyword):
            return keyword.text
        case _:
            typing.assert_never(call)


def call_parameters(call: tree.FunctionCall | tree.ListReceiver) -> tree.Element:
    match call:
        case tree.FunctionCall(parameters=parameters):
            return parameters
        case tree.ListReceiver(targets=targets):
            return targets
        case _:
            typing.assert_never(call)


class ColumnGroup:
    """A column: an ordered set of cells that share width and padding."""

    cells: list[Cell]
    before: str
    after: str
    justification: Justification
    variable_width: bool
    align_semicolons: bool

    def __init__(
        self,
        *,
        before: str = "",
        after: str = "",
        justification: Justification = Justification.LEFT,
        variable_width: bool = False,
        align_semicolons: bool = False,
    ):
        self.cells = []
        self.before = before
        self.after = after
        self.justification = justification
        self.variable_width = variable_width
        self.align_semicolons = align_semicolons

    def __len__(self) -> int:
        return len(self.cells)

    def __iter__(self) -> typing.Iterator[Cell]:
        return iter(self.cells)

    def __repr__(self):
        return f"<ColumnGroup {len(self.cells)} cells>"

    def add(self, contents: Content, **flags) -> Cell:
        cell = Cell(self, contents, **flags)
        self.cells.append(cell)
        return cell

    def derive(self, column: int, of: int, **properties) -> "ColumnGroup":
        """Make the group for column `column` of an `of`-column shape.

        The last column of a variable-width group is variable width too, so
        ragged line ends never get padded.
        """
        if column == of and self.variable_width:
            properties["variable_width"] = True
        properties.setdefault("align_semicolons", self.align_semicolons)
        return ColumnGroup(**properties)

    def any_matches(self, *types: type[tree.Node]) -> bool:
        return any(cell.matches(*types) for cell in self.cells)

    def split(
        self,
        catchall: "ColumnGroup | None",
        types: tuple[type[tree.Node], ...],
        splitter: typing.Callable[[typing.Any], list[Cell]],
    ):
        for cell in self.cells:
            cell.split(catchall, types, splitter)

    ############################################################################
    # Measuring and rendering
    ############################################################################

    @functools.cached_property
    def max_width(self) -> int:
        return max((cell.min_width for cell in self.cells), default=0)

    @functools.cached_property
    def several_integers(self) -> bool:
        # Numbers line up on their last digit once there's more than one.
        return sum(1 for cell in self.cells if cell.is_integer()) > 1

    def format(self, cell: Cell) -> str:
        text = cell.unspaced
        before = self.before if cell.before is None else cell.before
        after = self.after if cell.after is None else cell.after
        justification = cell.justification or self.justification
        right = justification == Justification.RIGHT or (
            self.several_integers and is_integer(text)
        )

        if cell.variable_width or (self.variable_width and not right):
            width = 0
        else:
            width = self.max_width

        padded = text.rjust(width) if right else text.ljust(width)
        return before + padded + after

    def render(self) -> list[str]:
        return [cell.text() for cell in self.cells]

    ############################################################################
    # Columnation
    ############################################################################

    def columnate(self) -> "ColumnGroup":
        first = next((cell.contents for cell in self.cells if cell.contents is not None), None)
        if isinstance(first, tree.ListItem):
            self.columnate_over_list_items()
        else:
            self.columnate_over_statements()
        return self

    def columnate_over_statements(self):
        first_group = self.derive(1, 2)
        rest_group = self.derive(2, 2, before=" ")
        self.split(
            first_group,
            (tree.StatementSequence,),
            lambda sequence: [first_group.add(sequence.first), rest_group.add(sequence.rest)],
        )

        first_group.columnate_over_statement(align_semicolons=len(rest_group) > 0)
        if len(rest_group) > 0:
            rest_group.columnate_over_statements()

    def columnate_over_statement(self, align_semicolons: bool = False):
        fixed = align_semicolons or self.align_semicolons
        body_group = self.derive(1, 2, variable_width=not fixed)
        semi_group = self.derive(2, 2)
        self.split(
            None,
            (tree.Statement,),
            lambda statement: [
                body_group.add(statement.body),
                semi_group.add(statement.terminator),
            ],
        )

        body_group.columnate_by_pattern()

    def columnate_over_list_items(self):
        expression_group = self.derive(1, 2)
        comma_group = self.derive(2, 2)

        for cell in self.cells:
            item = cell.contents
            if isinstance(item, tree.ListItem):
                cell.contents = [expression_group.add(item.expression), comma_group.add(item.comma)]

        self.columnate_by_pattern()
        expression_group.columnate_by_pattern()

    def columnate_by_pattern(self):
        if len(self.cells) == 0:
            return

        if self.any_matches(*SEQUENCES):
            self.columnate_sequences(SEQUENCES)
        if self.any_matches(*OPERATIONS):
            self.columnate_binary_expressions(OPERATIONS)
        if self.any_matches(*OBJECTS):
            self.columnate_object_expressions(OBJECTS)
        if self.any_matches(*COMPARISONS):
            self.columnate_binary_expressions(COMPARISONS)
        if self.any_matches(*TERNARIES):
            self.columnate_ternary_expressions(TERNARIES)
        if self.any_matches(*PREFIXES):
            self.columnate_prefix_expressions(PREFIXES)
        if self.any_matches(*LIFECYCLES):
            self.columnate_lifecycle_expressions(LIFECYCLES)
        if self.any_matches(*PARENTHESES):
            self.columnate_parenthesized_expressions(PARENTHESES)
        if self.any_matches(*CALLS):
            self.columnate_function_calls()
        if self.any_matches(*ARRAYS):
            self.columnate_array_indices()

    def columnate_sequences(self, types):
        lhs_group = self.derive(1, 3)
        op_group = self.derive(2, 3, before=" ", after=" ")
        rhs_group = self.derive(3, 3)

        # Lines without a sequence still line up with the left-hand sides.
        self.split(
            lhs_group,
            types,
            lambda e: [lhs_group.add(e.lhs), op_group.add(e.op), rhs_group.add(e.rhs)],
        )

        lhs_group.columnate_by_pattern()
        rhs_group.columnate_by_pattern()

    def columnate_binary_expressions(self, types):
        lhs_group = self.derive(1, 3)
        op_group = self.derive(2, 3, before=" ", after=" ", justification=Justification.RIGHT)
        rhs_group = self.derive(3, 3)

        self.split(
            None,
            types,
            lambda e: [lhs_group.add(e.lhs), op_group.add(e.op), rhs_group.add(e.rhs)],
        )

        lhs_group.columnate_by_pattern()
        rhs_group.columnate_by_pattern()

    def columnate_object_expressions(self, types):
        expression_group = self.derive(1, 3, variable_width=True)
        op_group = self.derive(2, 3)
        offset_group = self.derive(3, 3)

        for cell in self.cells:
            e = cell.contents
            if cell.matches(*types):
                cell.contents = [
                    expression_group.add(e.expression),
                    op_group.add(e.scoper),
                    offset_group.add(e.offset),
                ]
            else:
                cell.contents = expression_group.add(e)

        expression_group.columnate_by_pattern()
        offset_group.columnate_by_pattern()

    def columnate_ternary_expressions(self, types):
        condition_group = self.derive(1, 5)
        question_group = self.derive(2, 5, before=" ", after=" ")
        true_group = self.derive(3, 5)
        colon_group = self.derive(4, 5, before=" ", after=" ")
        false_group = self.derive(5, 5)

        self.split(
            None,
            types,
            lambda e: [
                condition_group.add(e.condition),
                question_group.add(e.question),
                true_group.add(e.true_branch),
                colon_group.add(e.colon),
                false_group.add(e.false_branch),
            ],
        )

        condition_group.columnate_by_pattern()
        true_group.columnate_by_pattern()
        false_group.columnate_by_pattern()

    def columnate_prefix_expressions(self, types):
        op_group = self.derive(1, 2, justification=Justification.RIGHT)
        body_group = self.derive(2, 2)

        # Lines without the operator get an empty one so their bodies still
        # line up with the lines that have it.
        for cell in self.cells:
            e = cell.contents
            if cell.matches(*types):
                cell.contents = [op_group.add(e.op), body_group.add(e.expression)]
            else:
                cell.contents = [op_group.add(""), body_group.add(e)]

        body_group.columnate_by_pattern()

    def columnate_lifecycle_expressions(self, types):
        op_group = self.derive(1, 2, after=" ", justification=Justification.RIGHT)
        body_group = self.derive(2, 2)

        self.split(
            None,
            types,
            lambda e: [op_group.add(e.op), body_group.add(e.expression)],
        )

        body_group.columnate_by_pattern()

    def columnate_parenthesized_expressions(self, types):
        open_group = self.derive(1, 3)
        body_group = self.derive(2, 3)
        close_group = self.derive(3, 3)

        self.split(
            None,
            types,
            lambda e: [
                open_group.add(e.open_paren),
                body_group.add(e.body),
                close_group.add(e.close_paren),
            ],
        )

        body_group.columnate_by_pattern()

    def columnate_function_calls(self):
        # Only calls to the same function share columns, sized for the call
        # with the most arguments.
        arities: dict[str, int] = {}
        for cell in self.cells:
            if cell.matches(*CALLS):
                name = call_name(cell.contents)
                count = tree.count_parameters(call_parameters(cell.contents))
                arities[name] = max(arities.get(name, 0), count)

        for name, count in arities.items():
            columns = 3 + (count * 2 - 1 if count > 0 else 0)
            name_group = self.derive(1, columns)
            open_group = self.derive(2, columns)
            tail_groups = [self.derive(3 + i, columns) for i in range(columns - 2)]

            for cell in self.cells:
                if not cell.matches(*CALLS, predicate=lambda call: call_name(call) == name):
                    continue

                call = cell.contents
                contents = [name_group.add(call.keyword if isinstance(call, tree.ListReceiver) else call.name)]
                contents.append(open_group.add(call.open_paren))

                index = 0
                for parameter in tree.flatten_parameters(call_parameters(call)):
                    if isinstance(parameter, Token) and parameter.kind == TokenKind.COMMA:
                        contents.append(tail_groups[index].add(parameter, after=" "))
                    else:
                        contents.append(tail_groups[index].add(parameter))
                    index += 1

                contents.append(tail_groups[index].add(call.close_paren, variable_width=True))
                cell.contents = contents

            for tail_group in tail_groups:
                tail_group.columnate_by_pattern()

    def columnate_array_indices(self):
        array_group = self.derive(1, 4)
        open_group = self.derive(2, 4)
        index_group = self.derive(3, 4)
        close_group = self.derive(4, 4)

        self.split(
            None,
            ARRAYS,
            lambda e: [
                array_group.add(e.array),
                open_group.add(e.open_bracket),
                index_group.add(e.index),
                close_group.add(e.close_bracket),
            ],
        )

        index_group.columnate_by_pattern()


############################################################################
# Entry points
############################################################################


def columnate(
    trees: typing.Iterable[tree.Element],
    indent: str = "",
    align_semicolons: bool = False,
) -> list[str]:
    """Columnate one parsed tree per line, returning the rendered lines.

    Every line is re-indented with `indent`, and has its trailing whitespace
    removed. A None tree is a blank line.
    """
    top = ColumnGroup(variable_width=True, before=indent, align_semicolons=align_semicolons)
    for element in trees:
        top.add(element)

    top.columnate()
    return [line.rstrip() for line in top.render()]


def columnate_lines(
    lines: typing.Sequence[str],
    indent: str | None = None,
    align_semicolons: bool = False,
) -> list[str]:
    """Parse and columnate a block of lines, all or nothing.

    `lines` should not carry line terminators. If any line fails to tokenize
    or parse, the lines come back exactly as they went in.
    """
    if indent is None:
        indent = block_indent(lines)

    trees = []
    for number, line in enumerate(lines, start=1):
        try:
            trees.append(parse_line(line))
        except (TokenizeError, ParseFailed) as e:
            engine_log.info(f"Leaving block unchanged: line {number}: {e}")
            return list(lines)

    return columnate(trees, indent, align_semicolons)
