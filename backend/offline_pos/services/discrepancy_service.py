"""Stock discrepancy engine: compare physical counts against system counts.

Pure computation, no I/O. Discrepancy is physical - system, so a positive
value is an overage and a negative value a shortage.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional, Union

from offline_pos.core.exceptions import DiscrepancyValidationError, ReconciliationNotVerifiedError

Number = Union[int, float, Decimal, str]

ZERO = Decimal("0")


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so 0.1 becomes Decimal("0.1"), not its binary expansion
    return Decimal(str(value))


def _validate_count(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise DiscrepancyValidationError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise DiscrepancyValidationError(f"{name} must not be negative, got {value}")


def compute_discrepancy(system_count: int, physical_count: int) -> int:
    """Signed unit difference between the physical and the system count."""
    _validate_count("system_count", system_count)
    _validate_count("physical_count", physical_count)
    return physical_count - system_count


def compute_impact(discrepancy: int, unit_cost: Number) -> Decimal:
    """Monetary impact of a discrepancy at the given unit cost."""
    return discrepancy * _to_decimal(unit_cost)


@dataclass
class ReconciliationLine:
    """One counted product in a reconciliation."""

    product_id: int
    system_count: int
    physical_count: int
    unit_cost: Number = ZERO
    discrepancy_reason: Optional[str] = None
    notes: Optional[str] = None
    # None means "not decided by the user"; the default policy applies
    verified: Optional[bool] = field(default=None)

    def validate(self) -> None:
        _validate_count("system_count", self.system_count)
        _validate_count("physical_count", self.physical_count)
        if _to_decimal(self.unit_cost) < 0:
            raise DiscrepancyValidationError(
                f"unit_cost must not be negative for product {self.product_id}"
            )

    @property
    def discrepancy(self) -> int:
        return compute_discrepancy(self.system_count, self.physical_count)

    @property
    def estimated_impact(self) -> Decimal:
        return compute_impact(self.discrepancy, self.unit_cost)

    @property
    def is_verified(self) -> bool:
        """A count that disagrees with the system is verified automatically."""
        if self.verified is not None:
            return self.verified
        return self.discrepancy != 0


@dataclass(frozen=True)
class DiscrepancySummary:
    """Totals split by sign. Shortage figures are non-negative magnitudes."""

    overage_units: int = 0
    overage_impact: Decimal = ZERO
    shortage_units: int = 0
    shortage_impact: Decimal = ZERO

    @property
    def net_units(self) -> int:
        return self.overage_units - self.shortage_units

    @property
    def net_impact(self) -> Decimal:
        return self.overage_impact - self.shortage_impact

    def __add__(self, other: "DiscrepancySummary") -> "DiscrepancySummary":
        if not isinstance(other, DiscrepancySummary):
            return NotImplemented
        return DiscrepancySummary(
            overage_units=self.overage_units + other.overage_units,
            overage_impact=self.overage_impact + other.overage_impact,
            shortage_units=self.shortage_units + other.shortage_units,
            shortage_impact=self.shortage_impact + other.shortage_impact,
        )

    def as_dict(self) -> dict:
        return {
            "net_units": self.net_units,
            "net_impact": self.net_impact,
            "overage_units": self.overage_units,
            "overage_impact": self.overage_impact,
            "shortage_units": self.shortage_units,
            "shortage_impact": self.shortage_impact,
        }


def aggregate(lines: Iterable[ReconciliationLine]) -> DiscrepancySummary:
    """Sum discrepancies by sign.

    Every line is validated before anything is summed, so invalid input can
    never produce a partial aggregate.
    """
    lines = list(lines)
    for line in lines:
        line.validate()

    overage_units = 0
    overage_impact = ZERO
    shortage_units = 0
    shortage_impact = ZERO

    for line in lines:
        discrepancy = line.discrepancy
        if discrepancy > 0:
            overage_units += discrepancy
            overage_impact += line.estimated_impact
        elif discrepancy < 0:
            shortage_units += -discrepancy
            shortage_impact += -line.estimated_impact

    return DiscrepancySummary(
        overage_units=overage_units,
        overage_impact=overage_impact,
        shortage_units=shortage_units,
        shortage_impact=shortage_impact,
    )


def unverified_lines(lines: Iterable[ReconciliationLine]) -> List[ReconciliationLine]:
    return [line for line in lines if not line.is_verified]


def ensure_verified(lines: Iterable[ReconciliationLine]) -> None:
    """Raise unless every line has been verified, explicitly or by policy."""
    pending = unverified_lines(lines)
    if pending:
        raise ReconciliationNotVerifiedError(line.product_id for line in pending)
