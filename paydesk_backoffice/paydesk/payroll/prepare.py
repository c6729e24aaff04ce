"""
Monthly salary preparation.

Prorates an employee's salary structure by paid days, adds arrears and manual
adjustments, and stores one monthly record per (employee, month, year).
Records start Open; locking marks them final and ready for payslips.
"""
import calendar
from pathlib import Path
from typing import Dict, List, Any, Iterable, Optional, Union

from ..core.audit import AuditLogger
from ..core.config import settings
from ..core.exceptions import RecordNotFoundError, ValidationError
from ..core.repositories import EmployeesRepository, MonthlyRecordsRepository, SalaryStructuresRepository
from ..core.utils import MONTH_NAMES, fold_name, month_number, normalize_code, round_half_up, setup_logging, to_decimal

ADJUSTMENT_FIELDS = ("arrear_amount", "other_deduction", "tds", "advance")

def days_in_month(month: Any, year: int) -> int:
    return calendar.monthrange(int(year), month_number(month))[1]

def _earned_lines(lines: Iterable[Dict[str, Any]], factor) -> List[Dict[str, Any]]:
    out = []
    for line in lines or []:
        if not isinstance(line, dict):
            continue
        amount = to_decimal(line.get('amount'))
        out.append({**line, 'earned': round_half_up(amount * factor)})
    return out

def _pick(lines: List[Dict[str, Any]], *needles: str) -> int:
    for line in lines:
        name = fold_name(line.get('name'))
        if any(n in name for n in needles):
            return line['earned']
    return 0

def calculate_monthly_salary(
    structure: Dict[str, Any],
    month: Any,
    year: int,
    paid_days: Any,
    arrear_days: Any = 0,
    adjustments: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Salary data for one employee and month. Pure; amounts are whole units."""
    adjustments = adjustments or {}
    month_days = days_in_month(month, year)
    paid = to_decimal(paid_days)
    arrear_days = to_decimal(arrear_days)
    factor = paid / month_days

    earnings = _earned_lines(structure.get('earnings_breakdown'), factor)
    deductions = _earned_lines(structure.get('deductions_breakdown'), factor)
    employer = _earned_lines(structure.get('employer_additional_breakdown'), factor)

    gross_earned = sum(e['earned'] for e in earnings)
    earned_deductions = sum(d['earned'] for d in deductions)
    employer_total = sum(e['earned'] for e in employer)

    calculated_arrears = round_half_up(to_decimal(structure.get('monthly_gross')) / month_days * arrear_days)
    manual_arrears = round_half_up(adjustments.get('arrear_amount'))
    other_deduction = round_half_up(adjustments.get('other_deduction'))
    tds = round_half_up(adjustments.get('tds'))
    advance = round_half_up(adjustments.get('advance'))

    total_arrears = calculated_arrears + manual_arrears
    gross_with_arrears = gross_earned + total_arrears
    total_deduction = earned_deductions + other_deduction + tds + advance

    return {
        # flat fields kept for older payslip layouts
        'basic': _pick(earnings, 'basic'),
        'hra': _pick(earnings, 'hra'),
        'special': _pick(earnings, 'special'),
        'epf': _pick(deductions, 'pf', 'provident'),
        'esic': _pick(deductions, 'esi'),

        'gross_earned': gross_earned,
        'total_deduction': total_deduction,
        'net_in_hand': gross_with_arrears - total_deduction,
        'gross_with_arrears': gross_with_arrears,
        'earned_ctc': gross_with_arrears + employer_total,
        'total_employer_contribution': employer_total,

        'arrear_days': float(arrear_days),
        'calculated_arrears': calculated_arrears,
        'manual_arrears': manual_arrears,
        'arrear_amount': total_arrears,
        'other_deduction': other_deduction,
        'tds': tds,
        'advance': advance,

        'earnings_breakdown': earnings,
        'deductions_breakdown': deductions,
        'employer_additional_breakdown': employer,

        'monthly_gross': structure.get('monthly_gross'),
        'paid_days': float(paid),
        'days_in_month': month_days,
    }

class MonthlySalaryPreparer:
    """Prepares, locks and unlocks monthly salary records for a tenant."""

    def __init__(self, tenant_id: str, data_dir: Optional[Union[str, Path]] = None):
        self.tenant_id = tenant_id
        self.repository = MonthlyRecordsRepository(tenant_id, data_dir)
        self.structures = SalaryStructuresRepository(tenant_id, data_dir)
        self.employees = EmployeesRepository(tenant_id, data_dir)
        self.audit_logger = AuditLogger(tenant_id, data_dir)
        self.logger = setup_logging(tenant_id)

    def _is_locked(self, record: Optional[Dict[str, Any]]) -> bool:
        return bool(record) and record.get('status') == settings.LOCKED_STATUS

    def prepare_month(self, month: Any, year: int, attendance: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Prepare records for a batch of attendance rows
        ({employee_code, paid_days, arrear_days?, arrear_amount?, other_deduction?, tds?, advance?}).

        Locked records are skipped; employees without a structure are rejected.
        All prepared records are written in one upsert.
        """
        month_name = MONTH_NAMES[month_number(month) - 1]
        year = int(year)
        structures = {normalize_code(s.get('employee_code')): s for s in self.structures.load_data()}
        directory = {normalize_code(e.get('employee_code')): e for e in self.employees.load_data()}
        existing = {
            normalize_code(r.get('employee_code')): r for r in self.repository.get_month(month_name, year)
        }

        records, skipped, rejected = [], [], []
        for row in attendance:
            code = normalize_code(row.get('employee_code'))
            structure = structures.get(code)
            if structure is None:
                rejected.append({'code': code, 'reason': 'no salary structure'})
                self.logger.warning("Prepare %s %s: no salary structure for %s", month_name, year, code or '-')
                continue
            if self._is_locked(existing.get(code)):
                skipped.append({'code': code, 'reason': 'locked'})
                continue

            salary = calculate_monthly_salary(
                structure, month_name, year,
                row.get('paid_days'), row.get('arrear_days', 0),
                {f: row.get(f) for f in ADJUSTMENT_FIELDS},
            )
            employee = directory.get(code, {})
            records.append({
                'employee_code': code,
                'employee_name': f"{employee.get('first_name', '')} {employee.get('last_name', '')}".strip(),
                'month': month_name,
                'year': year,
                'status': settings.OPEN_STATUS,
                'salary_data': salary,
                'net_pay': salary['net_in_hand'],
            })

        repo_result = self.repository.bulk_upsert(records) if records else {"created": 0, "updated": 0, "total": self.repository.get_count()}
        self.logger.info(
            "Prepared %s %s: %d prepared, %d skipped, %d rejected",
            month_name, year, len(records), len(skipped), len(rejected)
        )
        return {
            'prepared': len(records),
            'skipped': skipped,
            'rejected': rejected,
            'repository_result': repo_result,
        }

    def prepare(self, employee_code: Any, month: Any, year: int, paid_days: Any, **adjustments) -> Dict[str, Any]:
        """Prepare a single record. Raises when the record is locked or has no structure."""
        code = normalize_code(employee_code)
        if self.structures.get_by_code(code) is None:
            raise RecordNotFoundError('salary_structures', code)
        existing = self.repository.find_record(code, MONTH_NAMES[month_number(month) - 1], int(year))
        if self._is_locked(existing):
            raise ValidationError(
                f"Salary for {code} is locked for {month} {year}",
                [{'field': 'status', 'value': existing.get('status'), 'reason': 'locked'}]
            )
        row = {'employee_code': code, 'paid_days': paid_days, **adjustments}
        self.prepare_month(month, year, [row])
        return self.repository.find_record(code, MONTH_NAMES[month_number(month) - 1], int(year))

    def _set_status(self, codes: Iterable[Any], month: Any, year: int, status: str, user_id: Optional[str]) -> Dict[str, Any]:
        month_name = MONTH_NAMES[month_number(month) - 1]
        wanted = {normalize_code(c) for c in codes}
        updates, found = [], set()
        for record in self.repository.get_month(month_name, int(year)):
            code = normalize_code(record.get('employee_code'))
            if code in wanted:
                found.add(code)
                if record.get('status') != status:
                    updates.append({**record, 'status': status})

        if updates:
            self.repository.bulk_upsert(updates)
        for record in updates:
            self.audit_logger.log_data_change(
                'monthly_salary', 'lock' if status == settings.LOCKED_STATUS else 'unlock',
                f"{record['employee_code']}:{month_name}:{year}", {'status': status}, user_id
            )
        missing = sorted(wanted - found)
        self.logger.info("%s %d records for %s %s (%d not prepared)", status, len(updates), month_name, year, len(missing))
        return {'updated': len(updates), 'not_prepared': missing}

    def lock(self, codes: Iterable[Any], month: Any, year: int, user_id: Optional[str] = None) -> Dict[str, Any]:
        return self._set_status(codes, month, year, settings.LOCKED_STATUS, user_id)

    def unlock(self, codes: Iterable[Any], month: Any, year: int, user_id: Optional[str] = None) -> Dict[str, Any]:
        return self._set_status(codes, month, year, settings.OPEN_STATUS, user_id)
