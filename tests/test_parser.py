import time

import pytest

from columnator import tree
from columnator.errors import ParseFailed, TokenizeError
from columnator.parser import LineParser, parse_line
from columnator.tokenizer import Token, TokenKind, Tokenizer


def body(line: str):
    """Parse a single statement and return what's in front of the semicolon."""
    result = parse_line(line)
    assert isinstance(result, tree.Statement)
    return result.body


def test_assignment_tree():
    assert parse_line("$a = 1;") == tree.Statement(
        body=tree.Assignment(
            lhs=Token(TokenKind.WORD, "$a", 0),
            op=Token(TokenKind.ASSIGNER, "=", 3),
            rhs=Token(TokenKind.NUMBER, "1", 5),
        ),
        terminator=Token(TokenKind.SEMICOLON, ";", 6),
    )


def test_blank_line():
    assert parse_line("") is None
    assert parse_line("   \t ") is None


@pytest.mark.parametrize(
    "line",
    [
        "$a = 1;",
        "$this->foo  =  $bar->baz( $x, 'y' );",
        "$a = $b ? $c : $d;",
        "if ($a) { $b++; }",
        "while (!$done) $done = step();",
        "list($a, $b) = $pair;",
        "$x = (int) $y  + 1;",
        "first(),",
    ],
)
def test_render_round_trip(line):
    assert tree.render(parse_line(line)) == line


def test_precedence():
    e = body("$a + $b * $c;")
    assert isinstance(e, tree.Addition)
    assert isinstance(e.rhs, tree.Multiplication)

    e = body("$a || $b && $c;")
    assert isinstance(e, tree.LogicalOr)
    assert isinstance(e.rhs, tree.LogicalAnd)

    e = body("$a & $b | $c ^ $d;")
    assert isinstance(e, tree.BitwiseOr)
    assert isinstance(e.lhs, tree.BitwiseAnd)
    assert isinstance(e.rhs, tree.BitwiseXor)

    e = body("$a == $b < $c;")
    assert isinstance(e, tree.EqualityTest)
    assert isinstance(e.rhs, tree.ComparisonTest)

    e = body("$a << 2 + 1;")
    assert isinstance(e, tree.BitwiseShift)
    assert isinstance(e.rhs, tree.Addition)


def test_binary_operators_fold_left():
    e = body("$a - $b - $c;")
    assert isinstance(e, tree.Addition)
    assert isinstance(e.lhs, tree.Addition)
    assert e.rhs.text == "$c"

    e = body("$s = 'a' . $b . 'c';")
    assert isinstance(e.rhs, tree.Addition)
    assert e.rhs.op.kind == TokenKind.DOT


def test_assignment_is_right_associative():
    e = body("$a = $b .= 1;")
    assert isinstance(e, tree.Assignment)
    assert isinstance(e.rhs, tree.Assignment)
    assert e.rhs.op.text == ".="


def test_ternary_nests_to_the_right():
    e = body("$x = $a ? $b : $c ? $d : $e;")
    assert isinstance(e.rhs, tree.TernaryExpression)
    assert e.rhs.condition.text == "$a"
    assert isinstance(e.rhs.false_branch, tree.TernaryExpression)


def test_sequence_operators():
    e = body("$a = foo() or die();")
    assert isinstance(e, tree.SequenceOr)
    assert isinstance(e.lhs, tree.Assignment)
    assert isinstance(e.rhs, tree.FunctionCall)

    assert isinstance(body("$a xor $b;"), tree.SequenceXor)
    assert isinstance(body("$a and $b;"), tree.SequenceAnd)

    e = body("$a or $b and $c;")
    assert isinstance(e, tree.SequenceOr)
    assert isinstance(e.rhs, tree.SequenceAnd)


def test_statement_sequence():
    result = parse_line("$a = 1; $b = 2;")
    assert isinstance(result, tree.StatementSequence)
    assert isinstance(result.first, tree.Statement)
    assert isinstance(result.rest, tree.Statement)


def test_if_and_while():
    result = parse_line("if ($a) $b = 1;")
    assert isinstance(result, tree.IfStatement)
    assert isinstance(result.body, tree.Statement)

    result = parse_line("if ($a) { $b = 1; $c = 2; }")
    assert isinstance(result, tree.IfStatement)
    assert isinstance(result.body, tree.StatementBlock)
    assert isinstance(result.body.body, tree.StatementSequence)

    result = parse_line("while ($a) {}")
    assert isinstance(result, tree.WhileStatement)
    assert result.body.body is None


def test_object_chain():
    e = body("$this->foo->bar();")
    assert isinstance(e, tree.ObjectExpression)
    assert e.expression.text == "$this"
    assert isinstance(e.offset, tree.ObjectExpression)
    assert isinstance(e.offset.offset, tree.FunctionCall)

    e = body("Foo::bar($x, $y);")
    assert e.scoper.text == "::"
    assert isinstance(e.offset.parameters, tree.CommaList)


def test_function_calls():
    e = body("foo();")
    assert isinstance(e, tree.FunctionCall)
    assert e.parameters is None

    e = body("foo($a, $b + 1, bar($c));")
    assert tree.count_parameters(e.parameters) == 3
    parameters = tree.flatten_parameters(e.parameters)
    assert [tree.render(p) for p in parameters] == ["$a", ",", "$b + 1", ",", "bar($c)"]


def test_array_indices():
    e = body("$a['x'][1] = 2;")
    assert isinstance(e.lhs, tree.ArrayExpression)
    assert isinstance(e.lhs.array, tree.ArrayExpression)
    assert e.lhs.index.text == "1"

    e = body("$a[] = 2;")
    assert e.lhs.index is None


def test_list_receiver():
    e = body("list($a, $b) = $pair;")
    assert isinstance(e.lhs, tree.ListReceiver)
    assert e.lhs.keyword.text == "list"
    assert tree.count_parameters(e.lhs.targets) == 2


def test_unary_forms():
    assert isinstance(body("!$a;"), tree.LogicalNot)
    assert isinstance(body("!!$a;").expression, tree.LogicalNot)
    assert isinstance(body("@foo();"), tree.ErrorSuppression)
    assert isinstance(body("@$a = 1;").lhs, tree.ErrorSuppression)
    assert isinstance(body("$a = -$b;").rhs, tree.Negation)
    assert isinstance(body("$a = ~$b;").rhs, tree.BitwiseComplement)
    assert isinstance(body("++$i;"), tree.Prefix)
    assert isinstance(body("$i--;"), tree.Postfix)

    e = body("$b = new Foo($x);").rhs
    assert isinstance(e, tree.LifecycleExpression)
    assert isinstance(e.expression, tree.FunctionCall)

    e = body("$b = clone $a;").rhs
    assert isinstance(e, tree.LifecycleExpression)
    assert e.expression.text == "$a"


def test_casts_and_parentheses():
    e = body("$a = (int) $b;").rhs
    assert isinstance(e, tree.TypeCast)
    assert e.type.text == "int"

    e = body("$a = ($b + 1) * 2;").rhs
    assert isinstance(e, tree.Multiplication)
    assert isinstance(e.lhs, tree.ParenthesizedExpression)

    e = body("$a = ($b);").rhs
    assert isinstance(e, tree.ParenthesizedExpression)


def test_list_items():
    result = parse_line("$first_argument,")
    assert isinstance(result, tree.ListItem)
    assert result.comma.kind == TokenKind.COMMA

    result = parse_line("foo($x)")
    assert isinstance(result, tree.ListItem)
    assert result.comma is None


@pytest.mark.parametrize("line", ["$a = ;", "}", "$a = {;", "foo(", "$a = 1 $b = 2;", "$a,,"])
def test_parse_failures(line):
    with pytest.raises(ParseFailed):
        parse_line(line)


def test_tokenize_errors_are_not_parse_failures():
    with pytest.raises(TokenizeError):
        parse_line("$a = #;")


def test_failure_message():
    with pytest.raises(ParseFailed) as info:
        parse_line("$a = ;")
    assert info.value.token is not None
    assert info.value.token.kind == TokenKind.SEMICOLON

    with pytest.raises(ParseFailed) as info:
        parse_line("foo(")
    assert "end of line" in str(info.value)


def test_attempt_rolls_back():
    parser = LineParser(Tokenizer("$a $b"))

    def word_then_semicolon():
        parser.consume(TokenKind.WORD)
        return parser.consume(TokenKind.SEMICOLON)

    assert parser.attempt(word_then_semicolon) is None
    assert parser.la().text == "$a"
    assert parser.la(2).text == "$b"
    assert parser.la(3) is None


def test_lookahead_skips_whitespace():
    parser = LineParser(Tokenizer("  foo (  )"))
    assert parser.la_is(TokenKind.WORD, TokenKind.OPEN_PAREN, TokenKind.CLOSE_PAREN)
    assert not parser.la_is(TokenKind.WORD, TokenKind.CLOSE_PAREN)
    assert parser.la_is_one_of(TokenKind.NUMBER, TokenKind.WORD)


def test_consume_checks_text():
    parser = LineParser(Tokenizer("$a"))
    with pytest.raises(ParseFailed):
        parser.consume(TokenKind.WORD, "list")
    assert parser.consume(TokenKind.WORD, "$a").text == "$a"
    with pytest.raises(ParseFailed):
        parser.consume()


def test_pairs_are_assignments():
    result = parse_line("'a' => 1,")
    assert isinstance(result, tree.ListItem)
    assert isinstance(result.expression, tree.Assignment)
    assert result.expression.lhs.kind == TokenKind.STRING
    assert result.expression.op.kind == TokenKind.PAIRER

    e = body("$x = array('k' => 1, 'v' => $y);")
    assert isinstance(e.rhs, tree.FunctionCall)
    pair = e.rhs.parameters.first
    assert isinstance(pair, tree.Assignment)
    assert pair.op.text == "=>"


@pytest.mark.parametrize("line", ["$a + $b = 1;", "!$a = 1;", "$a ? $b : $c = 1;"])
def test_only_targets_take_assignments(line):
    with pytest.raises(ParseFailed):
        parse_line(line)


def test_nested_calls_parse_in_linear_time():
    depth = 16
    line = "$r = " + "f(" * depth + "1" + ")" * depth + ";"

    start = time.perf_counter()
    e = body(line).rhs
    assert time.perf_counter() - start < 2.0

    for _ in range(depth):
        assert isinstance(e, tree.FunctionCall)
        e = e.parameters
    assert e.text == "1"
