"""Parser for OData filter expressions."""

from __future__ import annotations

from collections.abc import Callable, Generator
from typing import cast

from parsy import ParseError, Parser, eof, fail, forward_declaration, generate, regex, seq, string, success

from odata_orm.errors import FilterParseError
from odata_orm.filter_language.ast import (
    And,
    Arithmetic,
    Comparison,
    Expr,
    Group,
    InList,
    Literal,
    LiteralType,
    MemberPath,
    MethodCall,
    Not,
    Or,
)
from odata_orm.filter_language.literals import ARITHMETIC_SYMBOLS


RESERVED_WORDS = frozenset(
    {
        "and",
        "or",
        "not",
        "eq",
        "ne",
        "gt",
        "ge",
        "lt",
        "le",
        "add",
        "sub",
        "mul",
        "div",
        "mod",
        "in",
        "true",
        "false",
        "null",
    }
)

_IDENTIFIER = r"[A-Za-z_][A-Za-z0-9_]*"
_GUID = r"[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}"
_DATE = r"\d{4}-\d{2}-\d{2}(?:T\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:\d{2})?)?"
_NUMBER = r"-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?"


def _parse_line_and_column(line_info: str) -> tuple[int, int]:
    """Parse line and column from parsy line info string."""
    line_text, sep, column_text = line_info.partition(":")
    if sep == "" or not line_text.isdigit() or not column_text.isdigit():
        return (0, 0)
    return (int(line_text), int(column_text))


def _format_parse_error(filter_text: str, exc: ParseError) -> str:
    """Build parse error message with a pointer under the failing position."""
    line_number, column_number = _parse_line_and_column(exc.line_info())
    lines = filter_text.splitlines() or [filter_text]
    error_line = lines[line_number] if 0 <= line_number < len(lines) else filter_text
    pointer = " " * max(column_number, 0) + "^"
    return f"Invalid filter syntax: {exc}\n\n{error_line}\n{pointer}"


def _keyword(name: str) -> Parser:
    """Build a keyword parser with identifier boundary."""
    return regex(rf"{name}(?![A-Za-z0-9_])").desc(name)


def _lexeme(parser: Parser) -> Parser:
    """Consume optional whitespace after parser."""
    return parser << regex(r"\s*")


def _symbol(value: str) -> Parser:
    """Build a symbol token parser."""
    return _lexeme(string(value))


def _literal_token(pattern: str, literal_type: LiteralType) -> Parser:
    """Build a parser producing a typed literal from a token pattern."""
    token = regex(rf"{pattern}(?![A-Za-z0-9_])").desc(str(literal_type))
    return _lexeme(token).map(lambda raw: Literal(raw, literal_type))


def _build_literal_parser() -> Parser:
    """Build parser for every literal form."""
    string_literal = _literal_token(r"'(?:[^']|'')*'", LiteralType.STRING)
    datetime_literal = _literal_token(r"datetime'[^']*'", LiteralType.DATETIME)
    guid_literal = _literal_token(r"guid'[^']*'", LiteralType.GUID)
    bare_guid = _literal_token(_GUID, LiteralType.GUID)
    bare_date = _literal_token(_DATE, LiteralType.DATE)
    number = _literal_token(_NUMBER, LiteralType.NUMBER)
    boolean = _lexeme(_keyword("true") | _keyword("false")).map(
        lambda raw: Literal(raw, LiteralType.BOOLEAN)
    )
    null = _lexeme(_keyword("null")).map(lambda raw: Literal(raw, LiteralType.NULL))
    return (
        datetime_literal
        | guid_literal
        | string_literal
        | bare_guid
        | bare_date
        | number
        | boolean
        | null
    )


def _member_path_or_fail(text: str) -> Parser:
    """Accept a slash-separated path unless it is a reserved word."""
    if text in RESERVED_WORDS:
        return fail("member path")
    return success(MemberPath(tuple(text.split("/"))))


def _build_method_call_parser(expr: Parser) -> Parser:
    """Build parser for `name(arg, ...)` calls."""
    name_token = _lexeme(regex(rf"{_IDENTIFIER}(?=\s*\()")).desc("method name")

    @generate
    def method_call() -> Generator[Parser, object, MethodCall]:
        name_result = yield name_token
        if not isinstance(name_result, str):
            raise FilterParseError("Invalid method name")
        if name_result in RESERVED_WORDS:
            yield fail("method name")
        yield _symbol("(")
        arguments_result = yield expr.sep_by(_symbol(","))
        if not isinstance(arguments_result, list):
            raise FilterParseError("Invalid method arguments")
        yield _symbol(")")
        return MethodCall(name_result, tuple(cast(list[Expr], arguments_result)))

    return method_call


def _build_comparison_parser(operand: Parser, literal: Parser) -> Parser:
    """Build parser for a single comparison or `in` list test."""
    compare_op = _lexeme(
        _keyword("eq")
        | _keyword("ne")
        | _keyword("gt")
        | _keyword("ge")
        | _keyword("lt")
        | _keyword("le")
    )
    in_items = (
        _lexeme(_keyword("in")) >> _symbol("(") >> literal.sep_by(_symbol(","), min=1) << _symbol(")")
    )

    @generate
    def comparison() -> Generator[Parser, object, Expr]:
        left_result = yield operand
        if not isinstance(left_result, Expr):
            raise FilterParseError("Invalid comparison operand")

        items_result = yield in_items.optional()
        if items_result is not None:
            return InList(left_result, tuple(cast(list[Literal], items_result)))

        rest_result = yield seq(compare_op, operand).optional()
        if rest_result is None:
            return left_result
        operator, right = cast(tuple[str, Expr], rest_result)
        return Comparison(operator, left_result, right)

    return comparison


def _arithmetic_builder(operator: str, left: Expr, right: Expr) -> Expr:
    """Construct arithmetic expression with a canonical operator name."""
    return Arithmetic(ARITHMETIC_SYMBOLS.get(operator, operator), left, right)


def _and_builder(_operator: str, left: Expr, right: Expr) -> Expr:
    """Construct conjunction."""
    return And(left, right)


def _or_builder(_operator: str, left: Expr, right: Expr) -> Expr:
    """Construct disjunction."""
    return Or(left, right)


def _chain_left(
    term: Parser,
    op: Parser,
    builder: Callable[[str, Expr, Expr], Expr],
) -> Parser:
    """Build a left-associative parser from term and operator parsers."""

    @generate
    def parser() -> Generator[Parser, object, Expr]:
        left_result = yield term
        if not isinstance(left_result, Expr):
            raise FilterParseError("Invalid left expression")

        rest_result = yield seq(op, term).many()
        if not isinstance(rest_result, list):
            raise FilterParseError("Invalid operator chain")

        current: Expr = left_result
        for operator, right in cast(list[tuple[object, object]], rest_result):
            if not isinstance(operator, str):
                raise FilterParseError("Invalid operator")
            if not isinstance(right, Expr):
                raise FilterParseError("Invalid right expression")
            current = builder(operator, current, right)
        return current

    return parser


def _make_parser() -> Parser:
    """Create the full filter expression parser."""
    ws = regex(r"\s*")
    expr = forward_declaration()

    literal = _build_literal_parser()
    member_path = _lexeme(regex(rf"{_IDENTIFIER}(?:/{_IDENTIFIER})*")).bind(_member_path_or_fail)
    method_call = _build_method_call_parser(expr)
    grouped = (_symbol("(") >> expr << _symbol(")")).map(Group)

    primary = grouped | literal | method_call | member_path

    multiplicative_op = _lexeme(
        _keyword("mul") | _keyword("div") | _keyword("mod") | string("*") | string("/")
    )
    additive_op = _lexeme(_keyword("add") | _keyword("sub") | string("+") | string("-"))
    multiplicative = _chain_left(primary, multiplicative_op, _arithmetic_builder)
    additive = _chain_left(multiplicative, additive_op, _arithmetic_builder)

    comparison = _build_comparison_parser(additive, literal)

    negation = forward_declaration()
    negation.become((_lexeme(_keyword("not")) >> negation).map(Not) | comparison)

    conjunction = _chain_left(negation, _lexeme(_keyword("and")), _and_builder)
    disjunction = _chain_left(conjunction, _lexeme(_keyword("or")), _or_builder)

    expr.become(disjunction)
    return ws >> expr << ws << eof


FILTER_PARSER = _make_parser()


def parse_filter(filter_text: str) -> Expr:
    """Parse filter text into an AST expression."""
    try:
        result = FILTER_PARSER.parse(filter_text)
    except ParseError as exc:
        raise FilterParseError(_format_parse_error(filter_text, exc)) from exc
    if isinstance(result, Expr):
        return result
    raise FilterParseError("Parser did not produce an expression")
