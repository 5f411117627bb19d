from __future__ import annotations

import dataclasses
import logging
import typing
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from lamb.lib.ast import Apply, Bool, Expr, Function, If, Int, Let, Pattern, PTuple, PVar, Tuple, Var

logger = logging.getLogger(__name__)


class ParseError(SyntaxError):
    pass


class UnexpectedEOFError(ParseError):
    pass


KEYWORDS = frozenset(["let", "in", "fn", "if", "then", "else", "True", "False"])
SYMBOLS = ("->", "(", ")", ",", "=")


def is_identifier_start(c: str) -> bool:
    return c.isalpha() or c == "_"


def is_identifier_char(c: str) -> bool:
    return c.isalnum() or c in ("_", "'")


@dataclass(eq=True)
class Token:
    lineno: int = dataclasses.field(default=-1, init=False, compare=False)


@dataclass(eq=True)
class IntLit(Token):
    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(eq=True)
class Name(Token):
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(eq=True)
class Keyword(Token):
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(eq=True)
class Symbol(Token):
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(eq=True)
class EOF(Token):
    pass


class Lexer:
    def __init__(self, text: str):
        self.text: str = text
        self.idx: int = 0
        self.lineno: int = 1
        self.colno: int = 1
        self.line: str = ""

    def has_input(self) -> bool:
        return self.idx < len(self.text)

    def read_char(self) -> str:
        c = self.peek_char()
        if c == "\n":
            self.lineno += 1
            self.colno = 1
            self.line = ""
        else:
            self.line += c
            self.colno += 1
        self.idx += 1
        return c

    def peek_char(self) -> str:
        if not self.has_input():
            raise UnexpectedEOFError("while reading token")
        return self.text[self.idx]

    def starts_with(self, prefix: str) -> bool:
        return self.text.startswith(prefix, self.idx)

    def make_token(self, cls: type, *args: Any) -> Token:
        result: Token = cls(*args)
        result.lineno = self.lineno
        return result

    def read_one(self) -> Token:
        while self.has_input():
            if self.starts_with("--"):
                self.read_comment()
            elif self.starts_with("{-"):
                self.read_block_comment()
            elif self.peek_char().isspace():
                self.read_char()
            else:
                break
        else:
            return self.make_token(EOF)
        for symbol in SYMBOLS:
            if self.starts_with(symbol):
                for _ in symbol:
                    self.read_char()
                return self.make_token(Symbol, symbol)
        c = self.read_char()
        if c.isdigit():
            return self.read_number(c)
        if is_identifier_start(c):
            return self.read_name(c)
        raise ParseError(f"unexpected character {c!r}", ("<input>", self.lineno, self.colno, self.line))

    def read_comment(self) -> None:
        while self.has_input() and self.read_char() != "\n":
            pass

    def read_block_comment(self) -> None:
        lineno = self.lineno
        self.read_char()
        self.read_char()
        while self.has_input():
            if self.starts_with("-}"):
                self.read_char()
                self.read_char()
                return
            self.read_char()
        raise UnexpectedEOFError(f"unterminated block comment starting on line {lineno}")

    def read_number(self, first_digit: str) -> Token:
        buf = first_digit
        while self.has_input() and (c := self.peek_char()).isdigit():
            self.read_char()
            buf += c
        return self.make_token(IntLit, int(buf))

    def read_name(self, first_char: str) -> Token:
        buf = first_char
        while self.has_input() and is_identifier_char(c := self.peek_char()):
            self.read_char()
            buf += c
        if buf in KEYWORDS:
            return self.make_token(Keyword, buf)
        return self.make_token(Name, buf)


def tokenize(x: str) -> typing.List[Token]:
    lexer = Lexer(x)
    tokens = []
    while (token := lexer.read_one()) and not isinstance(token, EOF):
        tokens.append(token)
    return tokens


# Parsers are plain functions from an immutable token sequence and a position
# to a Success (value and next position) or a Failure. Alternatives are tried
# in order from the same position; nothing is consumed on failure.

Tokens = typing.Sequence[Token]


@dataclass(frozen=True)
class Failure:
    pos: int
    expected: str


@dataclass(frozen=True)
class Success:
    value: Any
    pos: int
    # The furthest failure seen on the way, for error reporting.
    furthest: Optional[Failure] = None


Result = Union[Success, Failure]
Parser = Callable[[Tokens, int], Result]


def further(a: Optional[Failure], b: Optional[Failure]) -> Optional[Failure]:
    if a is None:
        return b
    if b is None or a.pos > b.pos:
        return a
    if b.pos > a.pos:
        return b
    if b.expected in a.expected.split(" or "):
        return a
    return Failure(a.pos, f"{a.expected} or {b.expected}")


def satisfy(pred: Callable[[Token], bool], expected: str) -> Parser:
    def parser(tokens: Tokens, pos: int) -> Result:
        if pos < len(tokens) and pred(tokens[pos]):
            return Success(tokens[pos], pos + 1)
        return Failure(pos, expected)

    return parser


def keyword(word: str) -> Parser:
    return satisfy(lambda token: isinstance(token, Keyword) and token.value == word, f"'{word}'")


def symbol(sym: str) -> Parser:
    return satisfy(lambda token: isinstance(token, Symbol) and token.value == sym, f"'{sym}'")


def succeed(value: Any) -> Parser:
    def parser(tokens: Tokens, pos: int) -> Result:
        return Success(value, pos)

    return parser


def mapped(inner: Parser, func: Callable[[Any], Any]) -> Parser:
    def parser(tokens: Tokens, pos: int) -> Result:
        result = inner(tokens, pos)
        if isinstance(result, Failure):
            return result
        return Success(func(result.value), result.pos, result.furthest)

    return parser


def seq(*parsers: Parser) -> Parser:
    def parser(tokens: Tokens, pos: int) -> Result:
        values = []
        furthest: Optional[Failure] = None
        for inner in parsers:
            result = inner(tokens, pos)
            if isinstance(result, Failure):
                failure = further(furthest, result)
                assert failure is not None
                return failure
            values.append(result.value)
            pos = result.pos
            furthest = further(furthest, result.furthest)
        return Success(tuple(values), pos, furthest)

    return parser


def choice(*parsers: Parser) -> Parser:
    def parser(tokens: Tokens, pos: int) -> Result:
        furthest: Optional[Failure] = None
        for inner in parsers:
            result = inner(tokens, pos)
            if isinstance(result, Success):
                return Success(result.value, result.pos, further(furthest, result.furthest))
            furthest = further(furthest, result)
        assert furthest is not None
        return furthest

    return parser


def many(inner: Parser, min_count: int = 0) -> Parser:
    def parser(tokens: Tokens, pos: int) -> Result:
        values = []
        furthest: Optional[Failure] = None
        while True:
            result = inner(tokens, pos)
            if isinstance(result, Failure):
                furthest = further(furthest, result)
                break
            values.append(result.value)
            pos = result.pos
            furthest = further(furthest, result.furthest)
        if len(values) < min_count:
            assert furthest is not None
            return furthest
        return Success(values, pos, furthest)

    return parser


def sep_by(item: Parser, sep: Parser) -> Parser:
    rest = many(mapped(seq(sep, item), lambda pair: pair[1]))
    return choice(mapped(seq(item, rest), lambda r: [r[0], *r[1]]), succeed([]))


def parenthesized(item: Parser, make_tuple: Callable[[Any], Any]) -> Parser:
    # (x) is just x; () and (x, y, ...) are tuples.
    def build(r: Any) -> Any:
        items = r[1]
        if len(items) == 1:
            return items[0]
        return make_tuple(tuple(items))

    return mapped(seq(symbol("("), sep_by(item, symbol(",")), symbol(")")), build)


def pattern(tokens: Tokens, pos: int) -> Result:
    return PATTERN(tokens, pos)


def expr(tokens: Tokens, pos: int) -> Result:
    return EXPR(tokens, pos)


def curry(params: typing.Sequence[Pattern], body: Expr) -> Expr:
    for param in reversed(params):
        body = Function(param, body)
    return body


def apply_all(exprs: typing.Sequence[Expr]) -> Expr:
    result = exprs[0]
    for arg in exprs[1:]:
        result = Apply(result, arg)
    return result


NAME: Parser = mapped(satisfy(lambda token: isinstance(token, Name), "name"), lambda token: token.value)

PATTERN: Parser = choice(mapped(NAME, PVar), parenthesized(pattern, PTuple))

ATOM: Parser = choice(
    mapped(satisfy(lambda token: isinstance(token, IntLit), "integer"), lambda token: Int(token.value)),
    mapped(keyword("True"), lambda _: Bool(True)),
    mapped(keyword("False"), lambda _: Bool(False)),
    mapped(NAME, Var),
    parenthesized(expr, Tuple),
)

APPLICATION: Parser = mapped(many(ATOM, min_count=1), apply_all)

LAMBDA: Parser = mapped(
    seq(keyword("fn"), pattern, symbol("->"), expr),
    lambda r: Function(r[1], r[3]),
)

LET: Parser = mapped(
    seq(keyword("let"), pattern, symbol("="), expr, keyword("in"), expr),
    lambda r: Let(r[1], r[3], r[5]),
)

# let f x (y, z) = body in rest
LET_FUNCTION: Parser = mapped(
    seq(keyword("let"), NAME, many(pattern, min_count=1), symbol("="), expr, keyword("in"), expr),
    lambda r: Let(PVar(r[1]), curry(r[2], r[4]), r[6]),
)

IF: Parser = mapped(
    seq(keyword("if"), expr, keyword("then"), expr, keyword("else"), expr),
    lambda r: If(r[1], r[3], r[5]),
)

EXPR: Parser = choice(LET, LET_FUNCTION, LAMBDA, IF, APPLICATION)


def error_at(tokens: Tokens, failure: Failure) -> ParseError:
    if failure.pos >= len(tokens):
        return UnexpectedEOFError(f"unexpected end of input, expected {failure.expected}")
    token = tokens[failure.pos]
    return ParseError(f"unexpected token '{token}' on line {token.lineno}, expected {failure.expected}")


def parse_tokens(tokens: Tokens) -> Expr:
    if not tokens:
        raise UnexpectedEOFError("unexpected end of input")
    result = EXPR(tokens, 0)
    if isinstance(result, Success):
        if result.pos == len(tokens):
            return result.value
        failure = result.furthest
        if failure is None or failure.pos <= result.pos:
            failure = Failure(result.pos, "end of input")
        raise error_at(tokens, failure)
    raise error_at(tokens, result)


def parse(source: str) -> Expr:
    tokens = tokenize(source)
    logger.debug("Tokens: %s", tokens)
    return parse_tokens(tokens)
