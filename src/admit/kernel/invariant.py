"""Invariant rule language: tokenizer, parser, and evaluator.

Grammar (single level, no nesting, no AND/OR):

    invariant  := comparison | comparison "=>" comparison
    comparison := operand ("==" | "!=") operand
    operand    := reference | string
    reference  := "execution." field | config_path

``⇒`` is accepted as a synonym for ``=>``. Rules are parsed once at schema
load time; evaluation never fails, it only passes or reports a violation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Literal, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RuleSyntaxError(ValueError):
    """Raised when a rule expression cannot be tokenized or parsed."""

    def __init__(self, message: str, position: Optional[int] = None):
        super().__init__(message)
        self.position = position


# ---------------------------------------------------------------------------
# AST
# ---------------------------------------------------------------------------

EXECUTION_FIELDS = frozenset({"env"})

CompOp = Literal["==", "!="]


@dataclass(frozen=True)
class ConfigRef:
    """Reference to a schema config path, e.g. ``db.url.env``."""
    path: str


@dataclass(frozen=True)
class ExecutionRef:
    """Reference to the execution context, e.g. ``execution.env``."""
    field: str


@dataclass(frozen=True)
class StringLiteral:
    value: str


Operand = Union[ConfigRef, ExecutionRef, StringLiteral]


@dataclass(frozen=True)
class Comparison:
    left: Operand
    op: CompOp
    right: Operand


@dataclass(frozen=True)
class Implication:
    """``antecedent => consequent``: false only when antecedent holds and consequent does not."""
    antecedent: Comparison
    consequent: Comparison


RuleExpr = Union[Comparison, Implication]


@dataclass(frozen=True)
class Invariant:
    """A named, parsed invariant rule."""
    name: str
    rule: str
    expr: RuleExpr


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------

TokenKind = Literal["ident", "string", "dot", "imply", "eq", "neq", "eof"]


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    position: int


_OPERATORS: Tuple[Tuple[str, TokenKind], ...] = (
    ("=>", "imply"),
    ("⇒", "imply"),
    ("==", "eq"),
    ("!=", "neq"),
)


def _is_ident_start(ch: str) -> bool:
    return ("a" <= ch <= "z") or ("A" <= ch <= "Z") or ch == "_"


def _is_ident_char(ch: str) -> bool:
    return _is_ident_start(ch) or ("0" <= ch <= "9") or ch == "-"


def tokenize(source: str) -> List[Token]:
    """Split a rule into tokens. The last token is always ``eof``."""
    tokens: List[Token] = []
    pos = 0
    length = len(source)

    while True:
        while pos < length and source[pos].isspace():
            pos += 1
        if pos >= length:
            tokens.append(Token("eof", "", pos))
            return tokens

        for text, kind in _OPERATORS:
            if source.startswith(text, pos):
                tokens.append(Token(kind, text, pos))
                pos += len(text)
                break
        else:
            ch = source[pos]
            if ch == ".":
                tokens.append(Token("dot", ".", pos))
                pos += 1
            elif ch == '"':
                end = source.find('"', pos + 1)
                if end == -1:
                    raise RuleSyntaxError("unterminated string literal", pos)
                tokens.append(Token("string", source[pos + 1:end], pos))
                pos = end + 1
            elif _is_ident_start(ch):
                start = pos
                while pos < length and _is_ident_char(source[pos]):
                    pos += 1
                tokens.append(Token("ident", source[start:pos], start))
            else:
                raise RuleSyntaxError(f"unexpected character '{ch}' at position {pos}", pos)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class _Parser:
    def __init__(self, tokens: Sequence[Token]):
        self._tokens = tokens
        self._index = 0

    @property
    def current(self) -> Token:
        return self._tokens[self._index]

    def _advance(self) -> Token:
        tok = self._tokens[self._index]
        if tok.kind != "eof":
            self._index += 1
        return tok

    def parse_rule(self) -> RuleExpr:
        left = self.parse_comparison()
        if self.current.kind == "imply":
            self._advance()
            right = self.parse_comparison()
            expr: RuleExpr = Implication(antecedent=left, consequent=right)
        else:
            expr = left
        if self.current.kind != "eof":
            raise RuleSyntaxError(
                f"unexpected token '{self.current.value}' after expression",
                self.current.position,
            )
        return expr

    def parse_comparison(self) -> Comparison:
        left = self.parse_operand()
        tok = self.current
        if tok.kind not in ("eq", "neq"):
            found = tok.value if tok.kind != "eof" else "end of rule"
            raise RuleSyntaxError(
                f"expected '==' or '!=', got '{found}'", tok.position
            )
        self._advance()
        right = self.parse_operand()
        op: CompOp = "==" if tok.kind == "eq" else "!="
        return Comparison(left=left, op=op, right=right)

    def parse_operand(self) -> Operand:
        tok = self.current
        if tok.kind == "string":
            self._advance()
            return StringLiteral(tok.value)
        if tok.kind == "ident":
            return self.parse_reference()
        found = tok.value if tok.kind != "eof" else "end of rule"
        raise RuleSyntaxError(f"expected operand, got '{found}'", tok.position)

    def parse_reference(self) -> Operand:
        start = self.current.position
        parts = [self._advance().value]
        while self.current.kind == "dot":
            self._advance()
            if self.current.kind != "ident":
                raise RuleSyntaxError(
                    f"expected identifier after '.', got '{self.current.value}'",
                    self.current.position,
                )
            parts.append(self._advance().value)

        if parts[0] == "execution" and len(parts) > 1:
            field = ".".join(parts[1:])
            if field not in EXECUTION_FIELDS:
                raise RuleSyntaxError(f"unknown execution field '{field}'", start)
            return ExecutionRef(field)
        return ConfigRef(".".join(parts))


def parse_rule(rule: str, config_keys: Optional[Iterable[str]] = None) -> RuleExpr:
    """Parse rule text into an AST.

    Args:
        rule: Rule source text
        config_keys: When given, every config reference must name one of these keys

    Raises:
        RuleSyntaxError: On malformed rules or undefined config references
    """
    text = rule.strip()
    if not text:
        raise RuleSyntaxError("empty rule expression")

    expr = _Parser(tokenize(text)).parse_rule()

    if config_keys is not None:
        known = set(config_keys)
        undefined = [ref for ref in collect_config_refs(expr) if ref not in known]
        if undefined:
            raise RuleSyntaxError(f"undefined config key(s): {', '.join(undefined)}")

    return expr


def collect_config_refs(expr: RuleExpr) -> List[str]:
    """Config paths referenced by an expression, in source order."""
    match expr:
        case Implication(antecedent=a, consequent=c):
            return collect_config_refs(a) + collect_config_refs(c)
        case Comparison(left=left, right=right):
            return [o.path for o in (left, right) if isinstance(o, ConfigRef)]
    return []


def format_rule(expr: Union[RuleExpr, Operand]) -> str:
    """Render an AST back to canonical rule text."""
    match expr:
        case Implication(antecedent=a, consequent=c):
            return f"{format_rule(a)} => {format_rule(c)}"
        case Comparison(left=left, op=op, right=right):
            return f"{format_rule(left)} {op} {format_rule(right)}"
        case ConfigRef(path=path):
            return path
        case ExecutionRef(field=field):
            return f"execution.{field}"
        case StringLiteral(value=value):
            return f'"{value}"'
    raise TypeError(f"not a rule expression: {expr!r}")


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

class EvalContext(BaseModel):
    """Inputs for evaluating invariants."""
    config_values: Mapping[str, str] = Field(default_factory=dict)  # present keys only
    execution_env: str = ""

    model_config = ConfigDict(frozen=True)


class InvariantResult(BaseModel):
    """Outcome of evaluating one invariant."""
    name: str
    rule: str
    passed: bool
    left_value: str = ""
    right_value: str = ""
    message: Optional[str] = None  # set only when the invariant failed

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


def _resolve(operand: Operand, ctx: EvalContext) -> str:
    match operand:
        case StringLiteral(value=value):
            return value
        case ExecutionRef(field="env"):
            return ctx.execution_env
        case ConfigRef(path=path):
            return ctx.config_values.get(path, "")
    return ""


def _eval_comparison(comp: Comparison, ctx: EvalContext) -> Tuple[bool, str, str, Optional[str]]:
    left = _resolve(comp.left, ctx)
    right = _resolve(comp.right, ctx)
    if comp.op == "==":
        passed = left == right
        message = None if passed else f"'{left}' != '{right}'"
    else:
        passed = left != right
        message = None if passed else f"'{left}' == '{right}'"
    return passed, left, right, message


def evaluate(invariant: Invariant, ctx: EvalContext) -> InvariantResult:
    """Evaluate a single invariant."""
    match invariant.expr:
        case Implication(antecedent=antecedent, consequent=consequent):
            ant_passed, ant_left, _, _ = _eval_comparison(antecedent, ctx)
            con_passed, con_left, _, _ = _eval_comparison(consequent, ctx)
            passed = (not ant_passed) or con_passed
            left, right = ant_left, con_left
            message = None
            if not passed:
                message = (
                    f"condition '{format_rule(antecedent)}' is true "
                    f"but '{format_rule(consequent)}' is false"
                )
        case Comparison() as comp:
            passed, left, right, message = _eval_comparison(comp, ctx)
        case _:
            raise TypeError(f"not a rule expression: {invariant.expr!r}")

    return InvariantResult(
        name=invariant.name,
        rule=invariant.rule,
        passed=passed,
        left_value=left,
        right_value=right,
        message=message,
    )


def evaluate_all(invariants: Iterable[Invariant], ctx: EvalContext) -> List[InvariantResult]:
    """Evaluate every invariant independently; results keep declaration order."""
    return [evaluate(inv, ctx) for inv in invariants]


def all_passed(results: Iterable[InvariantResult]) -> bool:
    return all(r.passed for r in results)


def violations(results: Iterable[InvariantResult]) -> List[InvariantResult]:
    return [r for r in results if not r.passed]
