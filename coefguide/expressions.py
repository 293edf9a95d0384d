"""
Symbolic expressions in regression coefficients and covariate values.

An Expression is a sum of monomials

    factor * b_j * x^p * z^q * ... * log(w) * ...

which is all the algebra needed to differentiate a regression equation
built from linear, log, polynomial and interaction terms, and to
integrate the resulting marginal effect across a discrete change.
Factors are kept as exact fractions so that e.g. 100 * (1/100) renders
as 1 rather than 1.0000000000000002.
"""

import math
from dataclasses import dataclass
from fractions import Fraction
from typing import Optional, Tuple

from .errors import ValidationError


def as_fraction(value):
    """Exact Fraction for ints/Fractions, decimal-string Fraction for floats."""
    if isinstance(value, Fraction):
        return value
    if isinstance(value, int):
        return Fraction(value)
    return Fraction(repr(float(value)))


def _format_factor(f):
    if f.denominator == 1:
        return str(f.numerator)
    return f"{float(f):g}"


@dataclass(frozen=True)
class Monomial:
    """
    One product term of an Expression.

    Attributes
    ----------
    factor : Fraction
        Constant multiplier.
    coefficient : str or None
        Name of the regression coefficient (None for a pure number).
    powers : tuple of (str, int)
        Variable exponents, sorted by variable name, no zero exponents.
    logs : tuple of str
        Variables entering through log(variable), sorted.
    """

    factor: Fraction
    coefficient: Optional[str] = None
    powers: Tuple[Tuple[str, int], ...] = ()
    logs: Tuple[str, ...] = ()

    @property
    def key(self):
        return (self.coefficient, self.powers, self.logs)

    def power_of(self, var):
        return dict(self.powers).get(var, 0)

    def with_power(self, var, delta):
        """Return the monomial multiplied by var**delta."""
        powers = dict(self.powers)
        powers[var] = powers.get(var, 0) + delta
        if powers[var] == 0:
            del powers[var]
        return Monomial(self.factor, self.coefficient,
                        tuple(sorted(powers.items())), self.logs)

    def variables(self):
        return {v for v, _ in self.powers} | set(self.logs)

    def __str__(self):
        num, den = [], []
        if self.coefficient is not None:
            num.append(self.coefficient)
        for var, p in self.powers:
            target = num if p > 0 else den
            target.append(var if abs(p) == 1 else f"{var}^{abs(p)}")
        num.extend(f"log({v})" for v in self.logs)

        f = abs(self.factor)
        if f != 1 or not num:
            num.insert(0, _format_factor(f))
        text = "*".join(num)
        if den:
            text += "/" + "/".join(den)
        return text


class Expression:
    """
    Immutable sum of Monomials with like terms merged.

    Build with ``Expression.term(...)`` and combine with ``+``,
    ``scale`` and ``times_variable``.
    """

    __slots__ = ("_monomials",)

    def __init__(self, monomials=()):
        merged = {}
        order = []
        for m in monomials:
            if m.key not in merged:
                merged[m.key] = Fraction(0)
                order.append(m.key)
            merged[m.key] += as_fraction(m.factor)
        self._monomials = tuple(
            Monomial(merged[k], *k) for k in order if merged[k] != 0
        )

    @classmethod
    def term(cls, coefficient, factor=1, powers=None, logs=()):
        """Single-monomial expression, e.g. term("b2", 2, {"x": 1})."""
        powers = tuple(sorted((v, p) for v, p in (powers or {}).items() if p))
        return cls([Monomial(as_fraction(factor), coefficient, powers,
                             tuple(sorted(logs)))])

    @property
    def monomials(self):
        return self._monomials

    def __iter__(self):
        return iter(self._monomials)

    def __len__(self):
        return len(self._monomials)

    def __eq__(self, other):
        if not isinstance(other, Expression):
            return NotImplemented
        return set((m.key, m.factor) for m in self) == \
            set((m.key, m.factor) for m in other)

    def __hash__(self):
        return hash(frozenset((m.key, m.factor) for m in self))

    def __add__(self, other):
        return Expression(self._monomials + other.monomials)

    def __repr__(self):
        return f"Expression({str(self)!r})"

    def __str__(self):
        if not self._monomials:
            return "0"
        parts = []
        for i, m in enumerate(self._monomials):
            body = str(m)
            if i == 0:
                parts.append(("-" if m.factor < 0 else "") + body)
            else:
                parts.append((" - " if m.factor < 0 else " + ") + body)
        return "".join(parts)

    def is_zero(self):
        return not self._monomials

    def scale(self, c):
        c = as_fraction(c)
        return Expression(
            Monomial(m.factor * c, m.coefficient, m.powers, m.logs)
            for m in self
        )

    def times_variable(self, var, power=1):
        return Expression(m.with_power(var, power) for m in self)

    def variables(self):
        """Covariate names the expression depends on, sorted."""
        out = set()
        for m in self:
            out |= m.variables()
        return sorted(out)

    def coefficients(self):
        """Coefficient names the expression depends on, in first-seen order."""
        seen = []
        for m in self:
            if m.coefficient is not None and m.coefficient not in seen:
                seen.append(m.coefficient)
        return seen

    # -- calculus ------------------------------------------------------------

    def derivative(self, var):
        """Partial derivative with respect to var (product rule per monomial)."""
        out = []
        for m in self:
            p = m.power_of(var)
            if var in m.logs:
                # d/dx log(x) = 1/x
                logs = tuple(v for v in m.logs if v != var)
                base = Monomial(m.factor, m.coefficient, m.powers, logs)
                out.append(base.with_power(var, -1))
            if p:
                out.append(Monomial(m.factor * p, m.coefficient, m.powers,
                                    m.logs).with_power(var, -1))
        return Expression(out)

    def integrate(self, var, start, coefficients, point, step=None, ratio=None):
        """
        Definite integral of the expression in var.

        The interval is [start, start + step] or [start, start * ratio].
        x^-1 monomials over a ratio interval integrate to log(ratio) and
        need no value for start; every other monomial does.

        Parameters
        ----------
        var : str
            Variable of integration.
        start : float or None
            Lower limit.
        coefficients : mapping
            Coefficient values.
        point : mapping
            Values of the other variables, held fixed.
        step, ratio : float
            Exactly one must be given.
        """
        if (step is None) == (ratio is None):
            raise ValueError("give exactly one of step or ratio")
        total = 0.0
        for m in self:
            if var in m.logs:
                raise NotImplementedError(
                    f"cannot integrate log({var}) terms in closed form")
            p = m.power_of(var)
            rest = Monomial(m.factor, m.coefficient, m.powers, m.logs)
            rest = rest.with_power(var, -p) if p else rest
            scale = _evaluate_monomial(rest, coefficients, point)
            if p == -1 and ratio is not None:
                total += scale * math.log(ratio)
                continue
            if p == 0 and step is not None:
                total += scale * step
                continue
            if start is None:
                raise ValidationError(
                    f"evaluation point must supply {var!r} to integrate "
                    f"the term {m}")
            lo = float(start)
            hi = lo * ratio if ratio is not None else lo + step
            if p == -1:
                if lo <= 0 or hi <= 0:
                    raise ValidationError(
                        f"{var} must stay positive to integrate {m}")
                total += scale * math.log(hi / lo)
            else:
                total += scale * (hi ** (p + 1) - lo ** (p + 1)) / (p + 1)
        return total

    def evaluate(self, coefficients, point=None):
        """Numeric value given coefficient values and covariate values."""
        return sum(_evaluate_monomial(m, coefficients, point or {})
                   for m in self)


def _evaluate_monomial(m, coefficients, point):
    missing_vars = [v for v in sorted(m.variables()) if v not in point]
    if missing_vars:
        raise ValidationError(
            f"evaluation point is missing {missing_vars} needed by {m}")
    value = float(m.factor)
    if m.coefficient is not None:
        if m.coefficient not in coefficients:
            raise ValidationError(
                f"no value supplied for coefficient {m.coefficient!r}")
        value *= float(coefficients[m.coefficient])
    for var, p in m.powers:
        value *= float(point[var]) ** p
    for var in m.logs:
        x = float(point[var])
        if x <= 0:
            raise ValidationError(f"log({var}) needs {var} > 0, got {x}")
        value *= math.log(x)
    return value
