"""
Component Master Registry: the configurable earnings, deduction and
employer-contribution rules a salary structure is computed from.

Rows come from three stored collections and are parsed leniently: a row
that cannot be understood contributes nothing instead of failing the
whole computation. Statutory rule kinds (provident fund, state insurance)
are resolved once here, from an explicit ``special_rule`` field or from
the component name, so the calculator never scans names.
"""
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from paydesk.core.repositories import ComponentsRepository
from paydesk.core.utils import fold_name, to_decimal

class ComponentKind(str, Enum):
    EARNING = "earnings"
    DEDUCTION = "deductions"
    EMPLOYER = "employer_additional"

class CalculationBasis(str, Enum):
    BASIC = "Basic"
    GROSS = "Gross"
    FIXED = "Fixed"

    @classmethod
    def parse(cls, value: Any) -> Optional["CalculationBasis"]:
        key = fold_name(value)
        for basis in cls:
            if basis.value.casefold() == key:
                return basis
        return None

class SpecialRuleKind(str, Enum):
    NONE = "None"
    RETIREMENT_CONTRIBUTION = "RetirementContribution"
    HEALTH_INSURANCE = "HealthInsurance"

    @classmethod
    def parse(cls, value: Any) -> Optional["SpecialRuleKind"]:
        key = fold_name(value)
        for kind in cls:
            if kind.value.casefold() == key:
                return kind
        return None

def classify_special_rule(name: str, kind: ComponentKind) -> SpecialRuleKind:
    """Name-based rule detection for rows that carry no explicit special_rule."""
    if kind is ComponentKind.EARNING:
        return SpecialRuleKind.NONE
    n = fold_name(name)
    is_pf = "pf" in n or "provident" in n
    # voluntary PF is an ordinary deduction on the employee side
    if kind is ComponentKind.DEDUCTION and "vol" in n:
        is_pf = False
    if is_pf:
        return SpecialRuleKind.RETIREMENT_CONTRIBUTION
    if "esi" in n:
        return SpecialRuleKind.HEALTH_INSURANCE
    return SpecialRuleKind.NONE

def _first(row: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if row.get(key) is not None:
            return row[key]
    return None

@dataclass(frozen=True)
class ComponentDefinition:
    id: Any
    name: str
    kind: ComponentKind
    basis: Optional[CalculationBasis]
    percentage: Decimal
    max_value: Decimal = Decimal("0")
    special_rule: SpecialRuleKind = SpecialRuleKind.NONE

    @property
    def is_basic(self) -> bool:
        return self.kind is ComponentKind.EARNING and "basic" in fold_name(self.name)

    def cap(self, amount: Decimal) -> Decimal:
        """Clamp to max_value; zero means uncapped."""
        if self.max_value > 0 and amount > self.max_value:
            return self.max_value
        return amount

    @classmethod
    def from_row(cls, row: Any, kind: ComponentKind) -> Optional["ComponentDefinition"]:
        """Parse a stored row. Returns None for rows without a usable name."""
        if not isinstance(row, dict):
            return None
        name = row.get('name')
        if not isinstance(name, str) or not name.strip():
            return None
        name = name.strip()

        percentage = to_decimal(_first(row, 'calculation_percentage', 'calculationPercentage'))
        max_value = to_decimal(_first(row, 'max_calculated_value', 'maxCalculatedValue'))
        basis = CalculationBasis.parse(_first(row, 'based_on', 'calculation_basis', 'calculationBasis'))

        special = SpecialRuleKind.parse(row.get('special_rule'))
        if special is None:
            special = classify_special_rule(name, kind)

        return cls(
            id=row.get('id'),
            name=name,
            kind=kind,
            basis=basis,
            percentage=max(percentage, Decimal("0")),
            max_value=max(max_value, Decimal("0")),
            special_rule=special,
        )

def _parse_rows(rows: Iterable[Any], kind: ComponentKind) -> Tuple[ComponentDefinition, ...]:
    parsed = (ComponentDefinition.from_row(row, kind) for row in rows or [])
    return tuple(c for c in parsed if c is not None)

@dataclass(frozen=True)
class ComponentRegistry:
    earnings: Tuple[ComponentDefinition, ...] = ()
    deductions: Tuple[ComponentDefinition, ...] = ()
    employer_additional: Tuple[ComponentDefinition, ...] = ()

    @property
    def basic(self) -> Optional[ComponentDefinition]:
        """First earnings component whose name contains 'basic'."""
        return next((c for c in self.earnings if c.is_basic), None)

    def components(self, kind: ComponentKind) -> Tuple[ComponentDefinition, ...]:
        return {
            ComponentKind.EARNING: self.earnings,
            ComponentKind.DEDUCTION: self.deductions,
            ComponentKind.EMPLOYER: self.employer_additional,
        }[kind]

    @classmethod
    def from_rows(
        cls,
        earnings: Iterable[Any] = (),
        deductions: Iterable[Any] = (),
        employer_additional: Iterable[Any] = (),
    ) -> "ComponentRegistry":
        return cls(
            earnings=_parse_rows(earnings, ComponentKind.EARNING),
            deductions=_parse_rows(deductions, ComponentKind.DEDUCTION),
            employer_additional=_parse_rows(employer_additional, ComponentKind.EMPLOYER),
        )

    @classmethod
    def load(cls, tenant_id: str, data_dir: Optional[Union[str, Path]] = None) -> "ComponentRegistry":
        """Read all three collections from storage. Nothing is cached between calls."""
        rows: List[List[Dict[str, Any]]] = [
            ComponentsRepository(tenant_id, kind.value, data_dir).load_data()
            for kind in (ComponentKind.EARNING, ComponentKind.DEDUCTION, ComponentKind.EMPLOYER)
        ]
        return cls.from_rows(*rows)
