"""
Breakdown line items and the computed salary structure.

Line items copy the component's id and name at computation time, so a stored
structure does not change when the component master is edited later.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple, Union

from paydesk.core.utils import round_half_up, to_decimal

@dataclass(frozen=True)
class EarningLine:
    component_id: Any
    name: str
    amount: int
    kind: str = field(default="earning", init=False)

@dataclass(frozen=True)
class DeductionLine:
    component_id: Any
    name: str
    amount: int
    kind: str = field(default="deduction", init=False)

@dataclass(frozen=True)
class EmployerLine:
    component_id: Any
    name: str
    amount: int
    kind: str = field(default="employer", init=False)

LineItem = Union[EarningLine, DeductionLine, EmployerLine]

def line_to_dict(line: LineItem) -> Dict[str, Any]:
    """Stored breakdown shape: {id, name, amount}."""
    return {"id": line.component_id, "name": line.name, "amount": line.amount}

@dataclass(frozen=True)
class StructureResult:
    monthly_gross: Any
    basic_salary: int
    earnings: Tuple[EarningLine, ...] = ()
    deductions: Tuple[DeductionLine, ...] = ()
    employer_additional: Tuple[EmployerLine, ...] = ()

    @property
    def total_earnings(self) -> int:
        return sum(line.amount for line in self.earnings)

    @property
    def total_deductions(self) -> int:
        return sum(line.amount for line in self.deductions)

    @property
    def total_employer_contributions(self) -> int:
        return sum(line.amount for line in self.employer_additional)

    @property
    def net_salary(self) -> int:
        return self.total_earnings - self.total_deductions

    @property
    def ctc(self) -> int:
        """Gross plus employer contributions, in whole units."""
        return round_half_up(to_decimal(self.monthly_gross) + self.total_employer_contributions)

    def to_record(self, employee_code: str) -> Dict[str, Any]:
        """Row shape for the salary structure collection."""
        return {
            "employee_code": employee_code,
            "monthly_gross": float(self.monthly_gross),
            "basic_salary": self.basic_salary,
            "earnings_breakdown": [line_to_dict(l) for l in self.earnings],
            "deductions_breakdown": [line_to_dict(l) for l in self.deductions],
            "employer_additional_breakdown": [line_to_dict(l) for l in self.employer_additional],
            "total_earnings": self.total_earnings,
            "total_deductions": self.total_deductions,
            "net_salary": self.net_salary,
            "ctc": self.ctc,
        }

