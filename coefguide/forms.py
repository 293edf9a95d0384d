"""
Declarative regression functional forms.

A RegressionForm says which transform the outcome carries (identity or
log) and how each covariate enters the linear predictor (linear, log,
polynomial of some degree, or an interaction of two declared
variables).  The rule engine differentiates the linear predictor that a
form describes; it never looks the answer up in a table.

Coefficient naming
------------------
b0 is the intercept.  Slopes are b1, b2, ... in term order, a
polynomial of degree d taking d consecutive names for x, x^2, ..., x^d:

    log(y) ~ x + I(x^2) + z + x:z
             b1  b2       b3  b4
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .errors import ValidationError
from .expressions import Expression

OUTCOME_TRANSFORMS = ("identity", "log")
TRANSFORMS = ("linear", "log", "polynomial", "interaction")


@dataclass(frozen=True)
class Term:
    """
    One covariate term of a regression form.

    Attributes
    ----------
    variable : str
        Covariate name (the first variable for an interaction).
    transform : str
        One of "linear", "log", "polynomial", "interaction".
    degree : int
        Polynomial degree (ignored otherwise).
    interaction_with : str or None
        Second variable of an interaction term.
    """

    variable: str
    transform: str = "linear"
    degree: int = 1
    interaction_with: Optional[str] = None

    @classmethod
    def linear(cls, variable):
        return cls(variable)

    @classmethod
    def log(cls, variable):
        return cls(variable, "log")

    @classmethod
    def polynomial(cls, variable, degree):
        return cls(variable, "polynomial", degree)

    @classmethod
    def interaction(cls, a, b):
        return cls(a, "interaction", interaction_with=b)

    @property
    def is_main_effect(self):
        return self.transform != "interaction"

    @property
    def n_coefficients(self):
        return self.degree if self.transform == "polynomial" else 1

    def labels(self):
        """Regressor labels, one per coefficient this term consumes."""
        x = self.variable
        if self.transform == "log":
            return [f"log({x})"]
        if self.transform == "polynomial":
            return [x if k == 1 else f"{x}^{k}"
                    for k in range(1, self.degree + 1)]
        if self.transform == "interaction":
            return [f"{x}:{self.interaction_with}"]
        return [x]

    def predictor(self, names):
        """Linear-predictor contribution given this term's coefficient names."""
        x = self.variable
        if self.transform == "log":
            return Expression.term(names[0], logs=[x])
        if self.transform == "polynomial":
            out = Expression()
            for k, b in enumerate(names, start=1):
                out = out + Expression.term(b, powers={x: k})
            return out
        if self.transform == "interaction":
            return Expression.term(names[0],
                                   powers={x: 1, self.interaction_with: 1})
        return Expression.term(names[0], powers={x: 1})


@dataclass(frozen=True)
class RegressionForm:
    """
    Functional form of a regression: outcome transform plus ordered terms.

    Constructing a form validates it; an invalid form raises
    ValidationError.
    """

    terms: Tuple[Term, ...]
    outcome_transform: str = "identity"
    outcome: str = "y"
    _names: Tuple[Tuple[str, ...], ...] = field(init=False, repr=False,
                                                compare=False)

    def __post_init__(self):
        object.__setattr__(self, "terms", tuple(self.terms))
        self.validate()
        names, j = [], 1
        for t in self.terms:
            names.append(tuple(f"b{j + i}" for i in range(t.n_coefficients)))
            j += t.n_coefficients
        object.__setattr__(self, "_names", tuple(names))

    def validate(self):
        if self.outcome_transform not in OUTCOME_TRANSFORMS:
            raise ValidationError(
                f"outcome_transform must be one of {OUTCOME_TRANSFORMS}, "
                f"got {self.outcome_transform!r}")
        if not self.terms:
            raise ValidationError("a regression form needs at least one term")

        declared = []
        pairs = set()
        for t in self.terms:
            if not isinstance(t, Term):
                raise ValidationError(f"expected a Term, got {t!r}")
            if t.transform not in TRANSFORMS:
                raise ValidationError(
                    f"unknown transform {t.transform!r} for {t.variable!r}")
            if not t.variable or not isinstance(t.variable, str):
                raise ValidationError("term variable must be a non-empty string")
            if self.outcome in (t.variable, t.interaction_with):
                raise ValidationError(
                    f"outcome {self.outcome!r} cannot also be a covariate")

            if t.is_main_effect:
                if t.variable in declared:
                    raise ValidationError(
                        f"variable {t.variable!r} is declared twice; use a "
                        f"single term per variable")
                if t.transform == "polynomial" and (
                        not isinstance(t.degree, int) or isinstance(t.degree, bool)
                        or t.degree < 1):
                    raise ValidationError(
                        f"polynomial degree must be an integer >= 1, "
                        f"got {t.degree!r}")
                declared.append(t.variable)
                continue

            a, b = t.variable, t.interaction_with
            if b is None or a == b:
                raise ValidationError(
                    f"interaction on {a!r} needs a second, different variable")
            undeclared = [v for v in (a, b) if v not in declared]
            if undeclared:
                raise ValidationError(
                    f"interaction {a}:{b} references {undeclared} before "
                    f"they are declared")
            pair = frozenset((a, b))
            if pair in pairs:
                raise ValidationError(f"interaction {a}:{b} declared twice")
            pairs.add(pair)

    # -- introspection -------------------------------------------------------

    def variables(self):
        """Declared covariate names, in declaration order."""
        return [t.variable for t in self.terms if t.is_main_effect]

    def main_term(self, variable):
        for t in self.terms:
            if t.is_main_effect and t.variable == variable:
                return t
        return None

    def coefficient_names(self):
        """Intercept plus slope names, in order."""
        return ["b0"] + [b for names in self._names for b in names]

    def regressor_labels(self):
        """Mapping coefficient name -> regressor label (b0 -> 'Intercept')."""
        out = {"b0": "Intercept"}
        for t, names in zip(self.terms, self._names):
            out.update(zip(names, t.labels()))
        return out

    def regressor_label(self, name):
        return self.regressor_labels()[name]

    def linear_predictor(self):
        """Right-hand side as an Expression (on the outcome's transformed scale)."""
        out = Expression.term("b0")
        for t, names in zip(self.terms, self._names):
            out = out + t.predictor(names)
        return out

    def predict(self, coefficients, point):
        """Value of the linear predictor, i.e. E[y] or E[log y]."""
        return self.linear_predictor().evaluate(coefficients, point)

    def __str__(self):
        lhs = self.outcome if self.outcome_transform == "identity" \
            else f"log({self.outcome})"
        rhs = []
        for t in self.terms:
            if t.transform == "polynomial":
                rhs.append(t.variable)
                rhs.extend(f"I({t.variable}^{k})"
                           for k in range(2, t.degree + 1))
            else:
                rhs.extend(t.labels())
        return f"{lhs} ~ " + " + ".join(rhs)


# ---------------------------------------------------------------------------
# Formula strings
# ---------------------------------------------------------------------------

_NAME = r"[A-Za-z_][A-Za-z0-9_.]*"
_LOG = re.compile(rf"^log\(\s*({_NAME})\s*\)$")
_POLY = re.compile(rf"^poly\(\s*({_NAME})\s*,\s*(\d+)\s*\)$")
_POWER = re.compile(rf"^I\(\s*({_NAME})\s*(?:\^|\*\*)\s*(\d+)\s*\)$")
_PLAIN = re.compile(rf"^{_NAME}$")


def parse_form(formula):
    """
    Build a RegressionForm from a compact formula string.

    Supported right-hand-side pieces: ``x``, ``log(x)``, ``I(x^k)``,
    ``poly(x, d)``, ``a:b`` and ``a*b`` (shorthand for ``a + b + a:b``).
    Powers of one variable must be contiguous from 1.

    >>> str(parse_form("log(wage) ~ educ + I(educ^2)"))
    'log(wage) ~ educ + I(educ^2)'
    """
    if formula.count("~") != 1:
        raise ValidationError(f"formula needs exactly one '~': {formula!r}")
    lhs, rhs = (s.strip() for s in formula.split("~"))
    m = _LOG.match(lhs)
    if m:
        outcome, outcome_transform = m.group(1), "log"
    elif _PLAIN.match(lhs):
        outcome, outcome_transform = lhs, "identity"
    else:
        raise ValidationError(f"cannot parse outcome {lhs!r}")

    pieces = []       # (piece, implied by a*b)
    for raw in rhs.split("+"):
        piece = raw.replace(" ", "")
        if "*" in piece and not piece.startswith("I("):
            a, _, b = piece.partition("*")
            pieces.extend([(a, True), (b, True), (f"{a}:{b}", True)])
        else:
            pieces.append((piece, False))

    order = []        # (kind, key) in first-seen order
    kinds = {}        # variable -> "linear" | "log" | "polynomial"
    powers = {}       # variable -> set of powers
    seen = {}         # piece -> implied
    for piece, implied in pieces:
        if not piece:
            raise ValidationError(f"empty term in {formula!r}")
        # a*b re-adds a, b and a:b; identical copies of those collapse
        if piece in seen and (implied or seen[piece]):
            continue
        seen[piece] = seen.get(piece, False) or implied
        if ":" in piece:
            a, _, b = piece.partition(":")
            if not (_PLAIN.match(a) and _PLAIN.match(b)):
                raise ValidationError(f"cannot parse interaction {piece!r}")
            order.append(("interaction", (a, b)))
            continue
        m_log, m_poly, m_pow = _LOG.match(piece), _POLY.match(piece), \
            _POWER.match(piece)
        if m_log:
            var, kind, ps = m_log.group(1), "log", {1}
        elif m_poly:
            var, kind = m_poly.group(1), "polynomial"
            ps = set(range(1, int(m_poly.group(2)) + 1))
        elif m_pow:
            var, kind, ps = m_pow.group(1), "polynomial", {int(m_pow.group(2))}
        elif _PLAIN.match(piece):
            var, kind, ps = piece, "linear", {1}
        else:
            raise ValidationError(f"cannot parse term {piece!r}")

        if var not in kinds:
            order.append(("main", var))
            kinds[var] = kind
            powers[var] = set()
        elif "log" in (kinds[var], kind) and kinds[var] != kind:
            raise ValidationError(f"{var!r} cannot enter both in logs and levels")
        elif kind == "polynomial":
            kinds[var] = "polynomial"
        if ps & powers[var] and kind != "log":
            raise ValidationError(f"term {piece!r} repeats a power of {var!r}")
        if kind == "log" and kinds[var] == "log" and powers[var]:
            raise ValidationError(f"log({var}) declared twice")
        powers[var] |= ps

    terms = []
    for kind, key in order:
        if kind == "interaction":
            terms.append(Term.interaction(*key))
            continue
        var = key
        degree = max(powers[var])
        if powers[var] != set(range(1, degree + 1)):
            raise ValidationError(
                f"powers of {var!r} must run 1..{degree}, got "
                f"{sorted(powers[var])}")
        if kinds[var] == "log":
            terms.append(Term.log(var))
        elif degree > 1:
            terms.append(Term.polynomial(var, degree))
        else:
            terms.append(Term.linear(var))
    return RegressionForm(terms, outcome_transform, outcome)
