"""Reference rank-1 constraint system.

Every constraint has the form ``<a, w> * <b, w> = <c, w>`` over the
assignment vector ``w``. Index 0 of ``w`` is the constant one; public inputs
and private witnesses follow in allocation order. Variables are handled as
linear combinations (index -> coefficient), so additions and scalings are
free and only multiplications allocate a witness and a constraint.

The system is built in proving mode: every allocation carries its value, so
``is_satisfied()`` reports whether the recorded relation holds for the
assignment. A proving backend consumes the constraints and the assignment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from .config import FIELD_MODULUS
from .exceptions import ConstraintSystemError
from .field import require_field_element

logger = logging.getLogger(__name__)

ONE_INDEX = 0


class LinearCombination:
    """Sparse linear combination of assignment-vector entries."""

    __slots__ = ("terms",)

    def __init__(self, terms: Optional[Dict[int, int]] = None):
        self.terms: Dict[int, int] = {}
        if terms:
            for index, coefficient in terms.items():
                coefficient %= FIELD_MODULUS
                if coefficient:
                    self.terms[index] = coefficient

    @classmethod
    def constant(cls, value: int) -> "LinearCombination":
        return cls({ONE_INDEX: value})

    @classmethod
    def variable(cls, index: int) -> "LinearCombination":
        return cls({index: 1})

    def is_constant(self) -> bool:
        return self.terms.keys() <= {ONE_INDEX}

    def constant_value(self) -> int:
        return self.terms.get(ONE_INDEX, 0)

    def evaluate(self, assignment: List[int]) -> int:
        total = 0
        for index, coefficient in self.terms.items():
            total += coefficient * assignment[index]
        return total % FIELD_MODULUS

    def _combine(self, other, sign: int):
        if isinstance(other, LinearCombination):
            items = other.terms.items()
        elif isinstance(other, int) and not isinstance(other, bool):
            items = ((ONE_INDEX, other),)
        else:
            return NotImplemented
        terms = dict(self.terms)
        for index, coefficient in items:
            terms[index] = terms.get(index, 0) + sign * coefficient
        return LinearCombination(terms)

    def __add__(self, other):
        return self._combine(other, 1)

    __radd__ = __add__

    def __sub__(self, other):
        return self._combine(other, -1)

    def __rsub__(self, other):
        return (-self)._combine(other, 1)

    def __neg__(self):
        return LinearCombination({k: -v for k, v in self.terms.items()})

    def __mul__(self, other):
        # Products of two variables need ConstraintSystem.multiply
        if isinstance(other, bool) or not isinstance(other, int):
            return NotImplemented
        return LinearCombination({k: v * other for k, v in self.terms.items()})

    __rmul__ = __mul__

    def __repr__(self) -> str:
        body = " + ".join(f"{v}*w{k}" for k, v in sorted(self.terms.items()))
        return f"LinearCombination({body or '0'})"


Operand = Union[LinearCombination, int]


def as_linear_combination(value: Operand) -> LinearCombination:
    if isinstance(value, LinearCombination):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return LinearCombination.constant(value)
    raise TypeError(f"Expected LinearCombination or int, got {type(value)}")


@dataclass(frozen=True)
class Boolean:
    """A witness constrained to 0 or 1, with its assigned value."""

    lc: LinearCombination
    value: bool


@dataclass(frozen=True)
class Constraint:
    a: LinearCombination
    b: LinearCombination
    c: LinearCombination
    label: Optional[str] = None


class ConstraintSystem:
    """
    Records variables and constraints for one relation instance.

    Args:
        max_constraints: Optional capacity; exceeding it raises
            ConstraintSystemError.
        max_variables: Optional capacity on allocated variables (the
            constant one is not counted).

    Example:
        >>> cs = ConstraintSystem()
        >>> x = cs.new_witness(3)
        >>> y = cs.multiply(x, x)
        >>> cs.enforce_equal(y, 9)
        >>> cs.is_satisfied()
        True
    """

    def __init__(
        self,
        max_constraints: Optional[int] = None,
        max_variables: Optional[int] = None,
    ):
        self.max_constraints = max_constraints
        self.max_variables = max_variables
        self.constraints: List[Constraint] = []
        self._assignment: List[int] = [1]
        self._input_indices: List[int] = []

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    def _allocate(self, value: int, label: Optional[str]) -> LinearCombination:
        if (
            self.max_variables is not None
            and len(self._assignment) - 1 >= self.max_variables
        ):
            logger.warning(
                "Variable capacity exhausted (max_variables=%d)", self.max_variables
            )
            raise ConstraintSystemError(
                f"Cannot allocate {label or 'variable'}: "
                f"capacity of {self.max_variables} variables reached"
            )
        index = len(self._assignment)
        self._assignment.append(require_field_element(value, label or "value"))
        return LinearCombination.variable(index)

    def new_input(self, value: int, label: Optional[str] = None) -> LinearCombination:
        """Allocate a public input."""
        lc = self._allocate(value, label)
        self._input_indices.append(len(self._assignment) - 1)
        return lc

    def new_witness(
        self, value: int, label: Optional[str] = None
    ) -> LinearCombination:
        """Allocate a private witness."""
        return self._allocate(value, label)

    def new_boolean_witness(self, value: bool, label: Optional[str] = None) -> Boolean:
        """Allocate a private bit and enforce b * (1 - b) = 0."""
        if not isinstance(value, bool):
            raise TypeError(f"{label or 'value'} must be bool, got {type(value)}")
        bit = self.new_witness(int(value), label)
        self.enforce(bit, 1 - bit, 0, label=f"{label or 'bit'} is boolean")
        return Boolean(lc=bit, value=value)

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------

    def enforce(
        self, a: Operand, b: Operand, c: Operand, label: Optional[str] = None
    ) -> None:
        """Record the constraint a * b = c."""
        if (
            self.max_constraints is not None
            and len(self.constraints) >= self.max_constraints
        ):
            logger.warning(
                "Constraint capacity exhausted (max_constraints=%d)",
                self.max_constraints,
            )
            raise ConstraintSystemError(
                f"Cannot add {label or 'constraint'}: "
                f"capacity of {self.max_constraints} constraints reached"
            )
        self.constraints.append(
            Constraint(
                a=as_linear_combination(a),
                b=as_linear_combination(b),
                c=as_linear_combination(c),
                label=label,
            )
        )

    def enforce_equal(
        self, a: Operand, b: Operand, label: Optional[str] = None
    ) -> None:
        """Record the constraint (a - b) * 1 = 0."""
        self.enforce(as_linear_combination(a) - b, 1, 0, label=label)

    def multiply(
        self, a: Operand, b: Operand, label: Optional[str] = None
    ) -> LinearCombination:
        """Return a * b, allocating a witness unless one side is constant."""
        a = as_linear_combination(a)
        b = as_linear_combination(b)
        if a.is_constant():
            return b * a.constant_value()
        if b.is_constant():
            return a * b.constant_value()
        product = self.new_witness(self.value(a) * self.value(b) % FIELD_MODULUS, label)
        self.enforce(a, b, product, label=label)
        return product

    def conditionally_select(
        self,
        condition: Boolean,
        true_value: Operand,
        false_value: Operand,
        label: Optional[str] = None,
    ) -> LinearCombination:
        """
        Return ``condition ? true_value : false_value`` as a relation value.

        Computed as ``false + condition * (true - false)``, one constraint
        regardless of the condition's value.
        """
        if not isinstance(condition, Boolean):
            raise TypeError("condition must be a Boolean allocated in this system")
        t = as_linear_combination(true_value)
        f = as_linear_combination(false_value)
        return self.multiply(condition.lc, t - f, label=label) + f

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def value(self, lc: Operand) -> int:
        """Evaluate a linear combination under the current assignment."""
        return as_linear_combination(lc).evaluate(self._assignment)

    def which_is_unsatisfied(self) -> Optional[str]:
        """Return the label of the first unsatisfied constraint, if any."""
        for position, constraint in enumerate(self.constraints):
            lhs = self.value(constraint.a) * self.value(constraint.b) % FIELD_MODULUS
            if lhs != self.value(constraint.c):
                return constraint.label or f"constraint #{position}"
        return None

    def is_satisfied(self) -> bool:
        return self.which_is_unsatisfied() is None

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    @property
    def num_instance_variables(self) -> int:
        # Includes the constant one
        return 1 + len(self._input_indices)

    @property
    def num_witness_variables(self) -> int:
        return len(self._assignment) - self.num_instance_variables

    @property
    def public_inputs(self) -> List[int]:
        return [self._assignment[index] for index in self._input_indices]


class ConstraintField:
    """Field operations that record constraints in a ConstraintSystem."""

    def __init__(self, cs: ConstraintSystem):
        self.cs = cs

    def constant(self, value: int) -> LinearCombination:
        return LinearCombination.constant(value)

    def add(self, a: Operand, b: Operand) -> LinearCombination:
        return as_linear_combination(a) + b

    def scale(self, a: Operand, coefficient: int) -> LinearCombination:
        return as_linear_combination(a) * coefficient

    def mul(self, a: Operand, b: Operand) -> LinearCombination:
        return self.cs.multiply(a, b)
