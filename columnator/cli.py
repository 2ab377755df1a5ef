import argparse
import dataclasses
import io
import logging
import os
import re
import sys
import typing

from .block import locate_block, split_block
from .config import Features, configure_tracing
from .engine import columnate_lines
from .errors import ConfigError

log = logging.getLogger("columnator.cli")


# A line is everything up to and including "\n". Form feeds and the other
# characters str.splitlines() also breaks on stay inside their line.
_LINE = re.compile(r"[^\n]*\n|[^\n]+")
_TERMINATOR = re.compile(r"\r?\n\Z")


def split_lines(text: str) -> list[tuple[str, str]]:
    """Cut `text` into (line, terminator) pairs, so joining them gives `text` back."""
    result = []
    for chunk in _LINE.findall(text):
        match = _TERMINATOR.search(chunk)
        if match is None:
            result.append((chunk, ""))
        else:
            result.append((chunk[: match.start()], match.group(0)))
    return result


def columnate_text(text: str, features: Features, line_number: int | None = None) -> str:
    """Columnate the block of `text` picked out by `line_number`.

    Lines outside the block are passed through untouched, and every line keeps
    its own terminator. With no line number the whole text is the block.
    """
    pairs = split_lines(text)
    lines = [line for line, _ in pairs]
    block = locate_block(lines, line_number, features.tab_width)
    if block is None:
        return text

    _, subject, _ = split_block(lines, block)
    log.debug(f"Columnating lines {block.top + 1}-{block.bottom + 1}")
    subject = columnate_lines(subject, block.indent, features.align_semicolons)

    for index, line in enumerate(subject, start=block.top):
        pairs[index] = (line, pairs[index][1])
    return "".join(line + terminator for line, terminator in pairs)


def _line_number(value: str | None) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"Not a line number: {value!r}")


def _untranslated(stream: typing.TextIO) -> typing.TextIO:
    # Line endings go through as they are, "\r\n" included.
    if isinstance(stream, io.TextIOWrapper):
        stream.reconfigure(newline="")
    return stream


def main(
    args: list[str],
    environ: typing.Mapping[str, str] | None = None,
    stdin: typing.TextIO | None = None,
    stdout: typing.TextIO | None = None,
) -> int:
    if environ is None:
        environ = os.environ
    if stdin is None:
        stdin = _untranslated(sys.stdin)
    if stdout is None:
        stdout = _untranslated(sys.stdout)

    parser = argparse.ArgumentParser(
        prog="columnator",
        description="Line up the structure of a block of similar PHP statements",
    )
    parser.add_argument(
        "source_path",
        nargs="?",
        default=None,
        help="Path to the file to read. The default is to read standard input.",
    )
    parser.add_argument(
        "--line",
        type=int,
        default=None,
        help="The 1-based line the cursor is on; the block is found around it. "
        "Defaults to $TM_LINE_NUMBER. Without a line the whole input is the block.",
    )
    parser.add_argument(
        "--selection",
        action="store_true",
        default=False,
        help="Treat the whole input as the block, even if a line is given. This is "
        "the default when $TM_SELECTED_TEXT is set.",
    )
    parser.add_argument(
        "--align-semicolons",
        action="store_true",
        default=False,
        help="Put the semicolons of every statement in one column.",
    )
    parser.add_argument(
        "--trace",
        action="append",
        choices=["parse", "tree"],
        default=[],
        help="Write a parser trace or the parsed trees to standard error.",
    )
    parser.add_argument(
        "--tab-width",
        type=int,
        default=None,
        help="Columns a leading tab counts for when comparing indentation.",
    )

    parsed = parser.parse_args(args[1:])

    try:
        features = Features.from_environment(environ)
        if parsed.align_semicolons:
            features = features.enable("align_semicolons")
        if parsed.trace:
            features = features.enable(*(f"trace_{name}" for name in parsed.trace))
        if parsed.tab_width is not None:
            if parsed.tab_width < 1:
                raise ConfigError("--tab-width must be at least 1")
            features = dataclasses.replace(features, tab_width=parsed.tab_width)

        line_number = parsed.line
        if line_number is None:
            line_number = _line_number(environ.get("TM_LINE_NUMBER"))
        if parsed.selection or "TM_SELECTED_TEXT" in environ:
            line_number = None
    except ConfigError as e:
        print(f"columnator: {e}", file=sys.stderr)
        return 2

    configure_tracing(features)

    if parsed.source_path is None:
        text = stdin.read()
    else:
        with open(parsed.source_path, "r", encoding="utf-8", newline="") as f:
            text = f.read()

    stdout.write(columnate_text(text, features, line_number))
    return 0


def run():
    sys.exit(main(sys.argv))


if __name__ == "__main__":
    run()
