from __future__ import annotations

import itertools
import logging
import typing
from typing import Optional

from lamb.lib.ast import (
    Apply,
    Bool,
    BoolType,
    Expr,
    Function,
    If,
    Int,
    IntType,
    Let,
    MonoType,
    Pattern,
    PTuple,
    PVar,
    Scheme,
    TFunc,
    TTuple,
    Tuple,
    TyVar,
    Var,
    forall,
    func_type,
    mono,
)
from lamb.lib.subst import (
    EMPTY_SUBST,
    Context,
    Subst,
    apply_ctx,
    apply_ty,
    compose,
    ftv_ctx,
    ftv_ty,
)

logger = logging.getLogger(__name__)


class InferenceError(TypeError):
    pass


class UnboundVariable(InferenceError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unbound variable {name}")
        self.name = name


class TypeMismatch(InferenceError):
    def __init__(self, left: MonoType, right: MonoType) -> None:
        super().__init__(f"Type mismatch between {left} and {right}")
        self.left = left
        self.right = right


class OccursCheckFailed(InferenceError):
    def __init__(self, var: str, ty: MonoType) -> None:
        super().__init__(f"Occurs check failed: {var} occurs in {ty}")
        self.var = var
        self.ty = ty


class PatternArityMismatch(InferenceError):
    def __init__(self, pattern: PTuple, ty: TTuple) -> None:
        super().__init__(
            f"Pattern {pattern} has {len(pattern.items)} elements but {ty} has {len(ty.items)} components"
        )
        self.pattern = pattern
        self.ty = ty


class PatternTypeMismatch(InferenceError):
    def __init__(self, pattern: Pattern, ty: MonoType, message: Optional[str] = None) -> None:
        super().__init__(message or f"Cannot match tuple pattern {pattern} against {ty}")
        self.pattern = pattern
        self.ty = ty


class AmbiguousPattern(PatternTypeMismatch):
    def __init__(self, pattern: Pattern, ty: TyVar) -> None:
        super().__init__(pattern, ty, f"Cannot destructure {pattern}: {ty} is not known to be a tuple")


class VarSupply:
    """Source of type variable names for a single inference run."""

    def __init__(self, prefix: str = "t") -> None:
        self.prefix = prefix
        self.counter = itertools.count()

    def fresh(self) -> TyVar:
        return TyVar(f"{self.prefix}{next(self.counter)}")


def fresh_tyvar(supply: VarSupply) -> TyVar:
    return supply.fresh()


def fresh_for_pattern(pattern: Pattern, supply: VarSupply) -> MonoType:
    if isinstance(pattern, PVar):
        return supply.fresh()
    if isinstance(pattern, PTuple):
        return TTuple(tuple(fresh_for_pattern(item, supply) for item in pattern.items))
    raise TypeError(f"Unexpected pattern {type(pattern)}")


def bind_tyvar(name: str, ty: MonoType) -> Subst:
    if name in ftv_ty(ty):
        raise OccursCheckFailed(name, ty)
    return {name: ty}


def unify(ty1: MonoType, ty2: MonoType) -> Subst:
    if ty1 == ty2:
        return EMPTY_SUBST
    logger.debug("unifying %s with %s", ty1, ty2)
    if isinstance(ty1, TyVar):
        return bind_tyvar(ty1.name, ty2)
    if isinstance(ty2, TyVar):
        return bind_tyvar(ty2.name, ty1)
    if isinstance(ty1, TFunc) and isinstance(ty2, TFunc):
        # The parameter may share variables with the result.
        param = unify(ty1.param, ty2.param)
        result = unify(apply_ty(param, ty1.result), apply_ty(param, ty2.result))
        return compose(param, result)
    if isinstance(ty1, TTuple) and isinstance(ty2, TTuple) and len(ty1.items) == len(ty2.items):
        subst = EMPTY_SUBST
        for l, r in zip(ty1.items, ty2.items):
            subst = compose(subst, unify(apply_ty(subst, l), apply_ty(subst, r)))
        return subst
    raise TypeMismatch(ty1, ty2)


def generalize(ctx: Context, ty: MonoType) -> Scheme:
    return Scheme(frozenset(ftv_ty(ty) - ftv_ctx(ctx)), ty)


def instantiate(scheme: Scheme, supply: VarSupply) -> MonoType:
    fresh = {name: supply.fresh() for name in sorted(scheme.tyvars)}
    return apply_ty(fresh, scheme.ty)


def bind(ctx: Context, pattern: Pattern, scheme: Scheme) -> Context:
    logger.debug("binding %s to %s", pattern, scheme)
    if isinstance(pattern, PVar):
        return {**ctx, pattern.name: scheme}
    if isinstance(pattern, PTuple):
        ty = scheme.ty
        if isinstance(ty, TTuple):
            if len(pattern.items) != len(ty.items):
                raise PatternArityMismatch(pattern, ty)
            for item, item_ty in zip(pattern.items, ty.items):
                # Only quantify what the component actually mentions.
                ctx = bind(ctx, item, Scheme(scheme.tyvars & ftv_ty(item_ty), item_ty))
            return ctx
        if isinstance(ty, TyVar):
            raise AmbiguousPattern(pattern, ty)
        raise PatternTypeMismatch(pattern, ty)
    raise TypeError(f"Unexpected pattern {type(pattern)}")


def infer(ctx: Context, expr: Expr, supply: VarSupply) -> typing.Tuple[Subst, MonoType]:
    if isinstance(expr, Int):
        return EMPTY_SUBST, IntType
    if isinstance(expr, Bool):
        return EMPTY_SUBST, BoolType
    if isinstance(expr, Var):
        scheme = ctx.get(expr.name)
        if scheme is None:
            raise UnboundVariable(expr.name)
        return EMPTY_SUBST, instantiate(scheme, supply)
    if isinstance(expr, Apply):
        s1, func_ty = infer(ctx, expr.func, supply)
        s2, arg_ty = infer(apply_ctx(s1, ctx), expr.arg, supply)
        result = fresh_tyvar(supply)
        s3 = unify(apply_ty(s2, func_ty), TFunc(arg_ty, result))
        return compose(compose(s1, s2), s3), apply_ty(s3, result)
    if isinstance(expr, Function):
        arg_ty = fresh_for_pattern(expr.arg, supply)
        body_ctx = bind(ctx, expr.arg, mono(arg_ty))
        s1, body_ty = infer(body_ctx, expr.body, supply)
        return s1, TFunc(apply_ty(s1, arg_ty), body_ty)
    if isinstance(expr, Let):
        # The names being defined are visible in their own definition.
        rec_ctx = bind(ctx, expr.pattern, generalize(ctx, fresh_for_pattern(expr.pattern, supply)))
        s1, value_ty = infer(rec_ctx, expr.value, supply)
        value_scheme = generalize(apply_ctx(s1, rec_ctx), apply_ty(s1, value_ty))
        body_ctx = bind(rec_ctx, expr.pattern, value_scheme)
        s2, body_ty = infer(apply_ctx(s1, body_ctx), expr.body, supply)
        return compose(s1, s2), body_ty
    if isinstance(expr, If):
        s1, cond_ty = infer(ctx, expr.cond, supply)
        s1 = compose(s1, unify(cond_ty, BoolType))
        branch_ctx = apply_ctx(s1, ctx)
        s3, then_ty = infer(branch_ctx, expr.then, supply)
        s4, else_ty = infer(branch_ctx, expr.else_, supply)
        s5 = unify(then_ty, else_ty)
        subst = compose(compose(compose(s1, s3), s4), s5)
        return subst, apply_ty(subst, then_ty)
    if isinstance(expr, Tuple):
        # Items cannot bind names for their siblings, so each one is inferred
        # against the enclosing context.
        results = [infer(ctx, item, supply) for item in expr.items]
        subst = EMPTY_SUBST
        for item_subst, _ in results:
            subst = compose(subst, item_subst)
        return subst, apply_ty(subst, TTuple(tuple(item_ty for _, item_ty in results)))
    raise TypeError(f"Unexpected expression {type(expr)}")


def prelude_context() -> Context:
    a = TyVar("a")
    int_binop = mono(func_type(IntType, IntType, IntType))
    return {
        "eq": forall(["a"], func_type(a, a, BoolType)),
        "add": int_binop,
        "sub": int_binop,
        "mul": int_binop,
    }


def infer_type(expr: Expr, ctx: Optional[Context] = None) -> MonoType:
    if ctx is None:
        ctx = prelude_context()
    subst, ty = infer(ctx, expr, VarSupply())
    result = apply_ty(subst, ty)
    logger.debug("inferred %s : %s", expr, result)
    return result
