from __future__ import annotations

import io
import logging
from typing import Optional, Set

from lamb.lib.ast import Apply, Bool, Expr, Function, If, Int, Let, Pattern, PTuple, PVar, Tuple, Var
from lamb.lib.parser import parse
from lamb.lib.typechecker import infer_type

logger = logging.getLogger(__name__)


JS_RESERVED = frozenset(
    [
        "arguments",
        "await",
        "break",
        "case",
        "catch",
        "class",
        "const",
        "continue",
        "debugger",
        "default",
        "delete",
        "do",
        "else",
        "enum",
        "eval",
        "export",
        "extends",
        "false",
        "finally",
        "for",
        "function",
        "if",
        "implements",
        "import",
        "in",
        "instanceof",
        "interface",
        "let",
        "new",
        "null",
        "package",
        "private",
        "protected",
        "public",
        "return",
        "static",
        "super",
        "switch",
        "this",
        "throw",
        "true",
        "try",
        "typeof",
        "undefined",
        "var",
        "void",
        "while",
        "with",
        "yield",
        "console",
        "NaN",
        "Infinity",
    ]
)


PRELUDE = """\
const eq = (l) => (r) => {
  if (Array.isArray(l)) return l.length === r.length && l.every((item, i) => eq(item)(r[i]));
  return l === r;
};
const add = (l) => (r) => l + r;
const sub = (l) => (r) => l - r;
const mul = (l) => (r) => l * r;
const lamb_show = (v) => {
  if (Array.isArray(v)) return "(" + v.map(lamb_show).join(", ") + ")";
  if (typeof v === "boolean") return v ? "True" : "False";
  if (typeof v === "function") return "<function>";
  return String(v);
};"""


def js_name(name: str) -> str:
    # $ never appears in source identifiers, so mangled names cannot collide.
    result = name.replace("'", "$prime")
    if result in JS_RESERVED or result.startswith("lamb_"):
        result += "$"
    return result


def compile_pattern(pattern: Pattern, later: Optional[Set[str]] = None) -> str:
    # A repeated name binds only at its last occurrence; earlier ones become holes.
    if later is None:
        later = set()
    if isinstance(pattern, PVar):
        if pattern.name in later:
            return ""
        later.add(pattern.name)
        return js_name(pattern.name)
    if isinstance(pattern, PTuple):
        items = [compile_pattern(item, later) for item in reversed(pattern.items)]
        return f"[{', '.join(reversed(items))}]"
    raise NotImplementedError(f"pattern {type(pattern)}")


def compile_exp(exp: Expr) -> str:
    if isinstance(exp, Int):
        return f"{exp.value}n"
    if isinstance(exp, Bool):
        return "true" if exp.value else "false"
    if isinstance(exp, Var):
        return js_name(exp.name)
    if isinstance(exp, Tuple):
        return f"[{', '.join(compile_exp(item) for item in exp.items)}]"
    if isinstance(exp, If):
        return f"({compile_exp(exp.cond)} ? {compile_exp(exp.then)} : {compile_exp(exp.else_)})"
    if isinstance(exp, Apply):
        return f"{compile_exp(exp.func)}({compile_exp(exp.arg)})"
    if isinstance(exp, Function):
        return f"(({compile_pattern(exp.arg)}) => {compile_exp(exp.body)})"
    if isinstance(exp, Let):
        # const rather than a parameter so the definition can refer to itself.
        binding = f"const {compile_pattern(exp.pattern)} = {compile_exp(exp.value)};"
        return f"(() => {{ {binding} return {compile_exp(exp.body)}; }})()"
    raise NotImplementedError(f"exp {type(exp)} {exp}")


def compile_program(program: Expr) -> str:
    f = io.StringIO()
    print(PRELUDE, file=f)
    print(f"const lamb_main = () => {compile_exp(program)};", file=f)
    print("console.log(lamb_show(lamb_main()));", file=f)
    return f.getvalue()


def compile_to_string(source: str) -> str:
    program = parse(source)
    ty = infer_type(program)
    logger.debug("Compiling program of type %s", ty)
    return compile_program(program)
