from __future__ import annotations

import string
import typing
from dataclasses import dataclass


class Expr:
    def __str__(self) -> str:
        return pretty(self)


@dataclass(eq=True, frozen=True, unsafe_hash=True)
class Int(Expr):
    value: int


@dataclass(eq=True, frozen=True, unsafe_hash=True)
class Bool(Expr):
    value: bool


@dataclass(eq=True, frozen=True, unsafe_hash=True)
class Var(Expr):
    name: str


@dataclass(eq=True, frozen=True, unsafe_hash=True)
class Apply(Expr):
    func: Expr
    arg: Expr


@dataclass(eq=True, frozen=True, unsafe_hash=True)
class Function(Expr):
    arg: Pattern
    body: Expr


@dataclass(eq=True, frozen=True, unsafe_hash=True)
class Let(Expr):
    pattern: Pattern
    value: Expr
    body: Expr


@dataclass(eq=True, frozen=True, unsafe_hash=True)
class If(Expr):
    cond: Expr
    then: Expr
    else_: Expr


@dataclass(eq=True, frozen=True, unsafe_hash=True)
class Tuple(Expr):
    items: typing.Tuple[Expr, ...]


class Pattern:
    def __str__(self) -> str:
        return pretty_pattern(self)


@dataclass(eq=True, frozen=True, unsafe_hash=True)
class PVar(Pattern):
    name: str


@dataclass(eq=True, frozen=True, unsafe_hash=True)
class PTuple(Pattern):
    items: typing.Tuple[Pattern, ...]


class MonoType:
    def __str__(self) -> str:
        return pretty_type(self)


@dataclass(eq=True, frozen=True, unsafe_hash=True)
class TInt(MonoType):
    pass


@dataclass(eq=True, frozen=True, unsafe_hash=True)
class TBool(MonoType):
    pass


@dataclass(eq=True, frozen=True, unsafe_hash=True)
class TyVar(MonoType):
    name: str


@dataclass(eq=True, frozen=True, unsafe_hash=True)
class TFunc(MonoType):
    param: MonoType
    result: MonoType


@dataclass(eq=True, frozen=True, unsafe_hash=True)
class TTuple(MonoType):
    items: typing.Tuple[MonoType, ...]


@dataclass(eq=True, frozen=True, unsafe_hash=True)
class Scheme:
    tyvars: typing.FrozenSet[str]
    ty: MonoType

    def __str__(self) -> str:
        return pretty_scheme(self)


IntType = TInt()
BoolType = TBool()


def func_type(*args: MonoType) -> TFunc:
    assert len(args) >= 2
    if len(args) == 2:
        return TFunc(args[0], args[1])
    return TFunc(args[0], func_type(*args[1:]))


def mono(ty: MonoType) -> Scheme:
    return Scheme(frozenset(), ty)


def forall(names: typing.Iterable[str], ty: MonoType) -> Scheme:
    return Scheme(frozenset(names), ty)


def pretty_type(ty: MonoType) -> str:
    if isinstance(ty, TInt):
        return "Int"
    if isinstance(ty, TBool):
        return "Bool"
    if isinstance(ty, TyVar):
        return ty.name
    if isinstance(ty, TFunc):
        param = pretty_type(ty.param)
        if isinstance(ty.param, TFunc):
            param = f"({param})"
        return f"{param} -> {pretty_type(ty.result)}"
    if isinstance(ty, TTuple):
        return f"({', '.join(pretty_type(item) for item in ty.items)})"
    raise TypeError(f"Unexpected type {type(ty)}")


def rename(ty: MonoType, names: typing.Mapping[str, str]) -> MonoType:
    if isinstance(ty, TyVar):
        return TyVar(names.get(ty.name, ty.name))
    if isinstance(ty, TFunc):
        return TFunc(rename(ty.param, names), rename(ty.result, names))
    if isinstance(ty, TTuple):
        return TTuple(tuple(rename(item, names) for item in ty.items))
    return ty


def type_vars_in_order(ty: MonoType) -> typing.List[str]:
    if isinstance(ty, TyVar):
        return [ty.name]
    result: typing.List[str] = []
    if isinstance(ty, TFunc):
        children: typing.Sequence[MonoType] = (ty.param, ty.result)
    elif isinstance(ty, TTuple):
        children = ty.items
    else:
        children = ()
    for child in children:
        for name in type_vars_in_order(child):
            if name not in result:
                result.append(name)
    return result


def letters(avoid: typing.Collection[str] = ()) -> typing.Iterator[str]:
    for letter in string.ascii_lowercase:
        if letter not in avoid:
            yield letter
    n = 1
    while True:
        for letter in string.ascii_lowercase:
            if f"{letter}{n}" not in avoid:
                yield f"{letter}{n}"
        n += 1


def pretty_scheme(scheme: Scheme) -> str:
    if not scheme.tyvars:
        return pretty_type(scheme.ty)
    free = set(type_vars_in_order(scheme.ty)) - scheme.tyvars
    names = dict(zip(sorted(scheme.tyvars), letters(free)))
    return f"forall {', '.join(names.values())}. {pretty_type(rename(scheme.ty, names))}"


def minimize(ty: MonoType) -> MonoType:
    """Rename the variables of a type to a, b, c, ... by first appearance."""
    return rename(ty, dict(zip(type_vars_in_order(ty), letters())))


def pretty_pattern(pattern: Pattern) -> str:
    if isinstance(pattern, PVar):
        return pattern.name
    if isinstance(pattern, PTuple):
        return f"({', '.join(pretty_pattern(item) for item in pattern.items)})"
    raise TypeError(f"Unexpected pattern {type(pattern)}")


# Binding strength, loosest first: let/fn/if extend as far right as possible,
# then application, then atoms.
PREC_OPEN = 0
PREC_APPLY = 1
PREC_ATOM = 2


def pretty(expr: Expr, prec: int = PREC_OPEN) -> str:
    if isinstance(expr, Int):
        return str(expr.value)
    if isinstance(expr, Bool):
        return "True" if expr.value else "False"
    if isinstance(expr, Var):
        return expr.name
    if isinstance(expr, Tuple):
        return f"({', '.join(pretty(item) for item in expr.items)})"
    if isinstance(expr, Apply):
        result = f"{pretty(expr.func, PREC_APPLY)} {pretty(expr.arg, PREC_ATOM)}"
        return f"({result})" if prec >= PREC_ATOM else result
    if isinstance(expr, Function):
        result = f"fn {pretty_pattern(expr.arg)} -> {pretty(expr.body)}"
    elif isinstance(expr, Let):
        result = f"let {pretty_pattern(expr.pattern)} = {pretty(expr.value)} in {pretty(expr.body)}"
    elif isinstance(expr, If):
        result = f"if {pretty(expr.cond)} then {pretty(expr.then)} else {pretty(expr.else_)}"
    else:
        raise TypeError(f"Unexpected expression {type(expr)}")
    if prec > PREC_OPEN:
        return f"({result})"
    return result
