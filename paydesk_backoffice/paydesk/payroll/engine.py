"""
Salary structure calculator.

Turns a monthly gross and the component registry into an itemized breakdown.
Order matters: basic is computed first and every basic-relative rule reads
the unrounded basic.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Tuple

from paydesk.core.config import settings
from paydesk.core.utils import round_half_up, to_decimal
from paydesk.registry.components import (
    CalculationBasis, ComponentDefinition, ComponentRegistry, SpecialRuleKind
)
from paydesk.payroll.lines import DeductionLine, EarningLine, EmployerLine, StructureResult

HUNDRED = Decimal("100")

@dataclass(frozen=True)
class StatutoryRates:
    """Default percentages for statutory components with no configured percentage."""
    pf_employee: Decimal
    pf_employer: Decimal
    esi_employee: Decimal
    esi_employer: Decimal
    esi_gross_threshold: Decimal

    @classmethod
    def from_settings(cls, s=None) -> "StatutoryRates":
        s = s or settings
        return cls(
            pf_employee=to_decimal(s.PF_EMPLOYEE_RATE),
            pf_employer=to_decimal(s.PF_EMPLOYER_RATE),
            esi_employee=to_decimal(s.ESI_EMPLOYEE_RATE),
            esi_employer=to_decimal(s.ESI_EMPLOYER_RATE),
            esi_gross_threshold=to_decimal(s.ESI_GROSS_THRESHOLD),
        )

def _percent(base: Decimal, rate: Decimal) -> Decimal:
    return base * rate / HUNDRED

def _generic_amount(component: ComponentDefinition, basic: Decimal, gross: Decimal, allow_fixed: bool) -> Decimal:
    if component.percentage <= 0:
        return Decimal("0")
    if component.basis is CalculationBasis.BASIC:
        return _percent(basic, component.percentage)
    if component.basis is CalculationBasis.GROSS:
        return _percent(gross, component.percentage)
    if component.basis is CalculationBasis.FIXED and allow_fixed:
        return component.percentage
    return Decimal("0")

def _statutory_amount(
    component: ComponentDefinition,
    basic: Decimal,
    gross: Decimal,
    pf_default: Decimal,
    esi_default: Decimal,
    rates: StatutoryRates,
) -> Decimal:
    rule = component.special_rule
    if rule is SpecialRuleKind.RETIREMENT_CONTRIBUTION:
        rate = component.percentage if component.percentage > 0 else pf_default
        return _percent(basic, rate)
    if rule is SpecialRuleKind.HEALTH_INSURANCE:
        if gross > rates.esi_gross_threshold:
            return Decimal("0")
        rate = component.percentage if component.percentage > 0 else esi_default
        return _percent(gross, rate)
    return _generic_amount(component, basic, gross, allow_fixed=False)

def compute_basic(gross: Decimal, registry: ComponentRegistry) -> Tuple[Optional[ComponentDefinition], Decimal]:
    """Return (basic component, unrounded basic amount)."""
    component = registry.basic
    if component is None or component.percentage <= 0:
        return component, Decimal("0")
    return component, component.cap(_percent(gross, component.percentage))

def compute_structure(gross: Any, registry: ComponentRegistry, rates: Optional[StatutoryRates] = None) -> StructureResult:
    """
    Compute the full breakdown for one monthly gross.
    Pure and deterministic; malformed components contribute nothing.
    """
    rates = rates or StatutoryRates.from_settings()
    gross = to_decimal(gross)

    basic_component, basic = compute_basic(gross, registry)

    earnings = []
    if basic_component is not None:
        earnings.append(EarningLine(basic_component.id, basic_component.name, round_half_up(basic)))

    for component in registry.earnings:
        if component is basic_component:
            continue
        amount = round_half_up(component.cap(_generic_amount(component, basic, gross, allow_fixed=True)))
        if amount > 0:
            earnings.append(EarningLine(component.id, component.name, amount))

    deductions = []
    for component in registry.deductions:
        raw = _statutory_amount(component, basic, gross, rates.pf_employee, rates.esi_employee, rates)
        amount = round_half_up(component.cap(raw))
        if amount > 0:
            deductions.append(DeductionLine(component.id, component.name, amount))

    employer = []
    for component in registry.employer_additional:
        raw = _statutory_amount(component, basic, gross, rates.pf_employer, rates.esi_employer, rates)
        amount = round_half_up(component.cap(raw))
        if amount > 0:
            employer.append(EmployerLine(component.id, component.name, amount))

    return StructureResult(
        monthly_gross=gross,
        basic_salary=round_half_up(basic),
        earnings=tuple(earnings),
        deductions=tuple(deductions),
        employer_additional=tuple(employer),
    )

class StructureCalculator:
    """Calculator bound to a tenant's registry and the configured statutory rates."""

    def __init__(self, tenant_id: str, data_dir=None, rates: Optional[StatutoryRates] = None):
        self.tenant_id = tenant_id
        self.data_dir = data_dir
        self.rates = rates or StatutoryRates.from_settings()

    def load_registry(self) -> ComponentRegistry:
        # Re-read every time so master edits apply on the next run
        return ComponentRegistry.load(self.tenant_id, self.data_dir)

    def compute(self, gross: Any, registry: Optional[ComponentRegistry] = None) -> StructureResult:
        return compute_structure(gross, registry or self.load_registry(), self.rates)
