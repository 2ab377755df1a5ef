"""Find the block of lines to columnate.

With an explicit selection the whole input is the block. Given just a cursor
line, the block is the run of non-blank lines around it that all start at the
same indentation. A cursor sitting on a blank line, or on a line holding
nothing but a closing brace, belongs to the block above it.
"""

import re
import typing
from dataclasses import dataclass

_LEADING_WHITESPACE = re.compile(r"[ \t]*")


def leading_whitespace(line: str) -> str:
    match = _LEADING_WHITESPACE.match(line)
    assert match is not None
    return match.group(0)


def indentation_width(line: str, tab_width: int = 2) -> int:
    return len(leading_whitespace(line).replace("\t", " " * tab_width))


def block_indent(lines: typing.Iterable[str]) -> str:
    """The leading whitespace of the least indented non-blank line."""
    return min((leading_whitespace(line) for line in lines if line.strip()), key=len, default="")


@dataclass(frozen=True)
class Block:
    """Lines [top, bottom] (0-based, inclusive) of the input, and their indent."""

    top: int
    bottom: int
    indent: str

    def __len__(self) -> int:
        return self.bottom - self.top + 1


def locate_block(
    lines: typing.Sequence[str],
    line_number: int | None = None,
    tab_width: int = 2,
) -> Block | None:
    """Work out which lines to columnate.

    `line_number` is the 1-based cursor line; None means the whole input.
    Returns None when there is nothing to work on (an empty input, or a
    cursor with nothing but blank lines above it).
    """
    if len(lines) == 0:
        return None

    if line_number is None:
        return Block(top=0, bottom=len(lines) - 1, indent=block_indent(lines))

    start = min(max(line_number - 1, 0), len(lines) - 1)
    while start >= 0 and (lines[start].strip() == "" or lines[start].strip() == "}"):
        start -= 1
    if start < 0:
        return None

    width = indentation_width(lines[start], tab_width)

    def belongs(line: str) -> bool:
        return line.strip() != "" and indentation_width(line, tab_width) == width

    top = start
    while top > 0 and belongs(lines[top - 1]):
        top -= 1

    bottom = start
    while bottom + 1 < len(lines) and belongs(lines[bottom + 1]):
        bottom += 1

    return Block(top=top, bottom=bottom, indent=leading_whitespace(lines[start]))


def split_block(
    lines: typing.Sequence[str], block: Block
) -> typing.Tuple[list[str], list[str], list[str]]:
    """Cut the input into the lines before, inside and after the block."""
    return (
        list(lines[: block.top]),
        list(lines[block.top : block.bottom + 1]),
        list(lines[block.bottom + 1 :]),
    )
