"""Split a single line of PHP into classified tokens.

Tokens are produced on demand: the parser pulls them one at a time through a
`Tokenizer`, which is just a line and an integer cursor, so that backtracking
only has to remember that integer.

Each position is matched against every pattern class below and the longest
match wins. When two classes match the same amount of text, the one listed
first wins. Keywords are words, reclassified by their exact text.
"""

import enum
import re
import typing
from dataclasses import dataclass

from .errors import TokenizeError


class TokenKind(enum.Enum):
    WHITESPACE = "whitespace"
    NUMBER = "number"
    WORD = "word"
    KEYWORD_OR = "keyword_or"
    KEYWORD_AND = "keyword_and"
    KEYWORD_XOR = "keyword_xor"
    KEYWORD_NEW = "keyword_new"
    KEYWORD_CLONE = "keyword_clone"
    KEYWORD_IF = "keyword_if"
    KEYWORD_WHILE = "keyword_while"
    STRING = "string"
    IN_EQUALITY = "in_equality"
    COMPARATOR = "comparator"
    ASSIGNER = "assigner"
    SCOPER = "scoper"
    QUESTION = "question"
    COLON = "colon"
    COMMA = "comma"
    AT = "at"
    SEMICOLON = "semicolon"
    PAIRER = "pairer"
    OPEN_PAREN = "open_paren"
    CLOSE_PAREN = "close_paren"
    OPEN_BRACKET = "open_bracket"
    CLOSE_BRACKET = "close_bracket"
    OPEN_BRACE = "open_brace"
    CLOSE_BRACE = "close_brace"
    DOUBLE_PIPE = "double_pipe"
    DOUBLE_AMPERSAND = "double_ampersand"
    DOUBLE_LEFT = "double_left"
    DOUBLE_RIGHT = "double_right"
    PIPE = "pipe"
    CARET = "caret"
    AMPERSAND = "ampersand"
    PLUSPLUS = "plusplus"
    MINUSMINUS = "minusminus"
    PLUS = "plus"
    MINUS = "minus"
    DOT = "dot"
    STAR = "star"
    SLASH = "slash"
    PERCENT = "percent"
    EXCLAMATION = "exclamation"
    TILDE = "tilde"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    position: int

    @property
    def end(self) -> int:
        return self.position + len(self.text)

    def __str__(self) -> str:
        return self.text


KEYWORDS = {
    "or": TokenKind.KEYWORD_OR,
    "and": TokenKind.KEYWORD_AND,
    "xor": TokenKind.KEYWORD_XOR,
    "new": TokenKind.KEYWORD_NEW,
    "clone": TokenKind.KEYWORD_CLONE,
    "if": TokenKind.KEYWORD_IF,
    "while": TokenKind.KEYWORD_WHILE,
}

STRUCTURAL = {
    "?": TokenKind.QUESTION,
    ":": TokenKind.COLON,
    ",": TokenKind.COMMA,
    "@": TokenKind.AT,
    ";": TokenKind.SEMICOLON,
    "(": TokenKind.OPEN_PAREN,
    ")": TokenKind.CLOSE_PAREN,
    "[": TokenKind.OPEN_BRACKET,
    "]": TokenKind.CLOSE_BRACKET,
    "{": TokenKind.OPEN_BRACE,
    "}": TokenKind.CLOSE_BRACE,
}

OPERATORS = {
    "||": TokenKind.DOUBLE_PIPE,
    "&&": TokenKind.DOUBLE_AMPERSAND,
    "<<": TokenKind.DOUBLE_LEFT,
    ">>": TokenKind.DOUBLE_RIGHT,
    "|": TokenKind.PIPE,
    "^": TokenKind.CARET,
    "&": TokenKind.AMPERSAND,
    "++": TokenKind.PLUSPLUS,
    "--": TokenKind.MINUSMINUS,
    "+": TokenKind.PLUS,
    "-": TokenKind.MINUS,
    ".": TokenKind.DOT,
    "*": TokenKind.STAR,
    "/": TokenKind.SLASH,
    "%": TokenKind.PERCENT,
    "!": TokenKind.EXCLAMATION,
    "~": TokenKind.TILDE,
}


def _fixed(kind: TokenKind) -> typing.Callable[[str], TokenKind]:
    return lambda _: kind


def _word(text: str) -> TokenKind:
    return KEYWORDS.get(text, TokenKind.WORD)


def _string_pattern(quote: str) -> re.Pattern:
    # A backslash always takes the next character with it, whatever it is. An
    # unterminated string runs to the end of the line.
    q = re.escape(quote)
    return re.compile(rf"{q}(?:[^{q}\\]|\\.)*(?:{q}|\\)?", re.DOTALL)


# Ordered pattern classes. See the module docstring for how ties break.
PATTERNS: list[tuple[re.Pattern, typing.Callable[[str], TokenKind]]] = [
    (re.compile(r"[ \t\r\n]+"), _fixed(TokenKind.WHITESPACE)),
    (re.compile(r"\d+(?:\.\d*)?|\.\d+"), _fixed(TokenKind.NUMBER)),
    (re.compile(r"\$?[a-zA-Z_][a-zA-Z0-9_]*"), _word),
    (re.compile(r"===|!==|==|!="), _fixed(TokenKind.IN_EQUALITY)),
    (re.compile(r"<>|<=|>=|<|>"), _fixed(TokenKind.COMPARATOR)),
    (re.compile(r"=>"), _fixed(TokenKind.PAIRER)),
    (re.compile(r"(?:<<|>>|[-+*/%.^&|])?="), _fixed(TokenKind.ASSIGNER)),
    (re.compile(r"->|::"), _fixed(TokenKind.SCOPER)),
    (re.compile(r"[(){}\[\]?:,@;]"), STRUCTURAL.__getitem__),
    (re.compile(r"\|\||&&|<<|>>|\+\+|--|[|^&+\-.*/%!~]"), OPERATORS.__getitem__),
    (_string_pattern("'"), _fixed(TokenKind.STRING)),
    (_string_pattern('"'), _fixed(TokenKind.STRING)),
]


def next_token(line: str, position: int) -> typing.Tuple[Token, int] | None:
    """Scan one token from `line` starting at `position`.

    Returns the token and the position just past it, or None at the end of
    the line. Raises TokenizeError if nothing matches.
    """
    if position >= len(line):
        return None

    best: re.Match | None = None
    best_kind = None
    for pattern, classify in PATTERNS:
        match = pattern.match(line, position)
        if match is None or match.end() == position:
            continue
        if best is None or match.end() > best.end():
            best = match
            best_kind = classify

    if best is None or best_kind is None:
        raise TokenizeError(line, position)

    text = best.group(0)
    return Token(kind=best_kind(text), text=text, position=position), best.end()


def tokenize(line: str) -> typing.Iterator[Token]:
    """Generate every token on the line, whitespace included."""
    position = 0
    while True:
        result = next_token(line, position)
        if result is None:
            return
        token, position = result
        yield token


class Tokenizer:
    """A cursor over one line, handing out tokens one at a time."""

    line: str
    pos: int

    def __init__(self, line: str):
        self.line = line
        self.pos = 0

    def next_token(self) -> Token | None:
        result = next_token(self.line, self.pos)
        if result is None:
            return None
        token, self.pos = result
        return token

    def mark(self) -> int:
        return self.pos

    def restore(self, mark: int):
        self.pos = mark

    def reset(self):
        self.pos = 0
