"""Line up the structure of a block of similar PHP statements.

Each line is tokenized ([tokenizer]) and parsed into an expression tree
([parser], [tree]) on its own; the [engine] then walks all the trees together
and pads their parts into columns. If any line of the block can't be parsed
the block is left exactly as it was.

    >>> columnate_lines(["$a = 1;", "$longname = 22;"])
    ['$a        =  1;', '$longname = 22;']
"""
from . import block
from . import config
from . import engine
from . import parser
from . import tokenizer
from . import tree

from .engine import columnate, columnate_lines
from .errors import ColumnatorError, ConfigError, ParseFailed, TokenizeError
from .parser import parse_line
from .tokenizer import Token, TokenKind, tokenize
