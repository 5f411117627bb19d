from __future__ import annotations

import typing

from lamb.lib.ast import MonoType, Scheme, TBool, TFunc, TInt, TTuple, TyVar

Subst = typing.Mapping[str, MonoType]
Context = typing.Mapping[str, Scheme]


EMPTY_SUBST: Subst = {}


def apply_ty(subst: Subst, ty: MonoType) -> MonoType:
    # Not re-applied to the replacement: compose() resolves chains up front.
    if isinstance(ty, TyVar):
        return subst.get(ty.name, ty)
    if isinstance(ty, (TInt, TBool)):
        return ty
    if isinstance(ty, TFunc):
        return TFunc(apply_ty(subst, ty.param), apply_ty(subst, ty.result))
    if isinstance(ty, TTuple):
        return TTuple(tuple(apply_ty(subst, item) for item in ty.items))
    raise TypeError(f"Unknown type: {ty}")


def apply_scheme(subst: Subst, scheme: Scheme) -> Scheme:
    # Quantified variables are never captured by an outer substitution.
    inner = {name: ty for name, ty in subst.items() if name not in scheme.tyvars}
    return Scheme(scheme.tyvars, apply_ty(inner, scheme.ty))


def apply_ctx(subst: Subst, ctx: Context) -> Context:
    if not subst:
        return ctx
    return {name: apply_scheme(subst, scheme) for name, scheme in ctx.items()}


def compose(s1: Subst, s2: Subst) -> Subst:
    """Return a substitution equivalent to applying s1 and then s2.

    s2 is the more recent of the two: it is applied to every target of s1 and
    wins when both map the same variable.
    """
    if not s1:
        return s2
    return {**{name: apply_ty(s2, ty) for name, ty in s1.items()}, **s2}


def ftv_ty(ty: MonoType) -> set[str]:
    if isinstance(ty, TyVar):
        return {ty.name}
    if isinstance(ty, (TInt, TBool)):
        return set()
    if isinstance(ty, TFunc):
        return ftv_ty(ty.param) | ftv_ty(ty.result)
    if isinstance(ty, TTuple):
        return set().union(*map(ftv_ty, ty.items))
    raise TypeError(f"Unknown type: {ty}")


def ftv_scheme(scheme: Scheme) -> set[str]:
    return ftv_ty(scheme.ty) - scheme.tyvars


def ftv_ctx(ctx: Context) -> set[str]:
    return set().union(*(ftv_scheme(scheme) for scheme in ctx.values()))
