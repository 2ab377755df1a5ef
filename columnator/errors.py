class ColumnatorError(Exception):
    """Base class for everything this package raises on purpose."""


class TokenizeError(ColumnatorError):
    """Raised when the tokenizer finds text that matches no lexical rule.

    This is fatal for the whole block: there is no way to recover a tree for a
    line we cannot even split into tokens.
    """

    line: str
    position: int

    def __init__(self, line: str, position: int):
        super().__init__(f"cannot tokenize {line[position:position + 1]!r} at column {position}")
        self.line = line
        self.position = position


class ParseFailed(ColumnatorError):
    """Raised when a required grammar rule does not match.

    Enclosing calls to `LineParser.attempt` catch this and roll back; if it
    escapes them the line (and therefore the block) cannot be columnated.
    """

    def __init__(self, token=None):
        if token is None:
            message = "unexpected end of line"
        else:
            message = f"unexpected {token.kind.value} {token.text!r} at column {token.position}"
        super().__init__(message)
        self.token = token


class ConfigError(ColumnatorError):
    pass
