from columnator.block import (
    Block,
    block_indent,
    indentation_width,
    leading_whitespace,
    locate_block,
    split_block,
)

SOURCE = [
    "function f() {",
    "    $a = 1;",
    "    $bb = 2;",
    "}",
    "",
    "$x = 1;",
]


def test_leading_whitespace():
    assert leading_whitespace("  \t$a") == "  \t"
    assert leading_whitespace("$a") == ""
    assert indentation_width("\t$a", tab_width=4) == 4
    assert indentation_width("  \t$a") == 4


def test_block_indent():
    assert block_indent(["    $a;", "", "  $b;", "      $c;"]) == "  "
    assert block_indent(["", "   "]) == ""


def test_whole_input():
    assert locate_block(SOURCE) == Block(top=0, bottom=5, indent="")
    assert len(locate_block(SOURCE)) == 6


def test_cursor_in_block():
    assert locate_block(SOURCE, 2) == Block(top=1, bottom=2, indent="    ")
    assert locate_block(SOURCE, 3) == Block(top=1, bottom=2, indent="    ")


def test_cursor_on_closing_brace_or_blank():
    assert locate_block(SOURCE, 4) == Block(top=1, bottom=2, indent="    ")
    assert locate_block(SOURCE, 5) == Block(top=1, bottom=2, indent="    ")


def test_block_stops_at_indentation_change():
    assert locate_block(SOURCE, 1) == Block(top=0, bottom=0, indent="")
    assert locate_block(SOURCE, 6) == Block(top=5, bottom=5, indent="")


def test_cursor_past_the_end():
    assert locate_block(SOURCE, 100) == Block(top=5, bottom=5, indent="")


def test_tabs_count_as_tab_width():
    lines = ["\t$a = 1;", "  $b = 2;", "    $c = 3;"]
    assert locate_block(lines, 1, tab_width=2) == Block(top=0, bottom=1, indent="\t")
    assert locate_block(lines, 1, tab_width=4) == Block(top=0, bottom=0, indent="\t")
    assert locate_block(lines, 3, tab_width=4) == Block(top=2, bottom=2, indent="    ")


def test_nothing_to_do():
    assert locate_block([]) is None
    assert locate_block([], 1) is None
    assert locate_block(["", "}", ""], 3) is None


def test_split_block():
    before, subject, after = split_block(SOURCE, Block(top=1, bottom=2, indent="    "))
    assert before == ["function f() {"]
    assert subject == ["    $a = 1;", "    $bb = 2;"]
    assert after == ["}", "", "$x = 1;"]
