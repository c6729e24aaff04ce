"""
Payroll dashboard totals, statutory rollups and the salary report export.
"""
import pandas as pd
from pathlib import Path
from typing import Dict, List, Any, Iterable, Optional, Union

from ..core.config import settings
from ..core.schemas import SchemaRegistry
from ..core.utils import fold_name, round_half_up, to_decimal
from ..payslips.assembler import PayslipRecord
from ..registry.components import ComponentKind, SpecialRuleKind, classify_special_rule

def sum_lines(lines: Iterable[Any], names: Iterable[str]) -> float:
    """Sum of line amounts whose name equals one of `names` (case-insensitive)."""
    wanted = {fold_name(n) for n in names}
    return sum(line.amount for line in lines if fold_name(line.name) in wanted)

def statutory_total(lines: Iterable[Any], rule: SpecialRuleKind) -> float:
    """
    Sum of deduction lines the calculator would treat as `rule`, matched by the
    same name rules (pf/provident, esi). Arrear lines are left out.
    """
    return sum(
        line.amount for line in lines
        if "arrear" not in fold_name(line.name)
        and classify_special_rule(line.name, ComponentKind.DEDUCTION) is rule
    )

def derived_employer_esi(employee_esi: Any) -> int:
    """
    Employer ESI estimated from the employee share by the configured rate ratio.
    Approximation: components with custom ESI percentages are not reflected.
    """
    ratio = to_decimal(settings.ESI_EMPLOYER_ROLLUP_RATE) / to_decimal(settings.ESI_EMPLOYEE_RATE)
    return round_half_up(to_decimal(employee_esi) * ratio)

def payroll_summary(payslips: List[PayslipRecord]) -> Dict[str, Any]:
    """Dashboard totals and component rollups for a set of payslips."""
    totals = {
        'count': len(payslips),
        'total_earnings': 0,
        'total_deductions': 0,
        'net_pay': 0,
        'employee_pf': 0,
        'employer_pf': 0,
        'employee_esi': 0,
        'employer_esi': 0,
        'advances': 0,
    }
    for slip in payslips:
        totals['total_earnings'] += slip.total_earnings
        totals['total_deductions'] += slip.total_deductions
        totals['net_pay'] += slip.net_pay

        pf = statutory_total(slip.deductions, SpecialRuleKind.RETIREMENT_CONTRIBUTION)
        esi = statutory_total(slip.deductions, SpecialRuleKind.HEALTH_INSURANCE)
        totals['employee_pf'] += pf
        # employer PF mirrors the employee share
        totals['employer_pf'] += pf
        totals['employee_esi'] += esi
        totals['employer_esi'] += derived_employer_esi(esi)
        totals['advances'] += sum_lines(slip.deductions, settings.ADVANCE_ROLLUP_NAMES)
    return totals

def component_breakdown(payslips: List[PayslipRecord]) -> pd.DataFrame:
    """Per-component totals across payslips: component, type, amount, employees."""
    rows: Dict[tuple, Dict[str, Any]] = {}
    for slip in payslips:
        for kind, lines in (('Earning', slip.earnings), ('Deduction', slip.deductions)):
            for line in lines:
                key = (line.name, kind)
                entry = rows.setdefault(key, {'component': line.name, 'type': kind, 'amount': 0, 'employees': 0})
                entry['amount'] += line.amount
                entry['employees'] += 1
    return pd.DataFrame(list(rows.values()), columns=['component', 'type', 'amount', 'employees'])

def salary_report(payslips: List[PayslipRecord]) -> pd.DataFrame:
    """Flat row-per-employee report using the export schema headers."""
    columns = SchemaRegistry().get_schema('salary_report')['columns']
    records = []
    for slip in payslips:
        data = slip.to_dict()
        records.append({
            'employee_id': data['employee_id'],
            'employee_name': data['employee_name'],
            'department': data['department'],
            'designation': data['designation'],
            'paid_days': data['paid_days'],
            'total_earnings': data['total_earnings'],
            'total_deductions': data['total_deductions'],
            'net_pay': data['net_pay'],
            'ctc': data['ctc'],
            'bank_name': data['bank_name'],
            'bank_account': data['bank_account'],
            'ifsc_code': data['ifsc_code'],
        })
    df = pd.DataFrame(records, columns=list(columns.keys()))
    return df.rename(columns={f: col['header'] for f, col in columns.items()})

def export_salary_report(payslips: List[PayslipRecord], file_path: Union[str, Path], sheet_name: Optional[str] = None) -> Path:
    """Write the salary report to .xlsx or .csv by file extension."""
    file_path = Path(file_path)
    df = salary_report(payslips)
    if file_path.suffix.lower() == '.csv':
        df.to_csv(file_path, index=False)
    else:
        df.to_excel(file_path, index=False, sheet_name=sheet_name or 'Salary Report')
    return file_path
