"""
Payslip assembly from locked monthly salary records.

A payslip is rebuilt on every request from the monthly record and the
employee directory; nothing here is persisted.
"""
import calendar
from dataclasses import dataclass, field, asdict
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..core.config import settings
from ..core.repositories import EmployeesRepository, MonthlyRecordsRepository
from ..core.utils import MONTH_NAMES, month_number, normalize_code, setup_logging, to_decimal
from .words import amount_in_words

@dataclass(frozen=True)
class PayslipLine:
    name: str
    amount: float

@dataclass
class PayslipRecord:
    employee_id: str
    employee_name: str
    designation: str
    department: str
    pay_period_start: date
    pay_period_end: date
    earnings: List[PayslipLine] = field(default_factory=list)
    deductions: List[PayslipLine] = field(default_factory=list)
    total_earnings: float = 0
    total_deductions: float = 0
    net_pay: float = 0
    paid_days: float = 0
    working_days: int = 0
    lop_days: float = 0
    ctc: float = 0
    employer_contribution: float = 0
    date_of_joining: Optional[str] = None
    uan_no: Optional[str] = None
    esic_no: Optional[str] = None
    bank_name: Optional[str] = None
    bank_account: Optional[str] = None
    ifsc_code: Optional[str] = None

    @property
    def net_pay_in_words(self) -> str:
        return amount_in_words(max(self.net_pay, 0))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['pay_period_start'] = self.pay_period_start.isoformat()
        data['pay_period_end'] = self.pay_period_end.isoformat()
        data['net_pay_in_words'] = self.net_pay_in_words
        return data

def _number(value: Any) -> float:
    amount = to_decimal(value)
    return int(amount) if amount == amount.to_integral_value() else float(amount)

def pay_period(month: Any, year: int) -> tuple:
    """First and last calendar day of the month."""
    m = month_number(month)
    return date(int(year), m, 1), date(int(year), m, calendar.monthrange(int(year), m)[1])

def _breakdown(lines: Any) -> List[PayslipLine]:
    out = []
    for line in lines or []:
        if not isinstance(line, dict) or not line.get('name'):
            continue
        earned = line.get('earned', line.get('amount'))
        out.append(PayslipLine(str(line['name']), _number(earned)))
    return out

def _earnings(salary: Dict[str, Any]) -> List[PayslipLine]:
    if salary.get('earnings_breakdown') is not None:
        lines = _breakdown(salary['earnings_breakdown'])
    else:
        lines = [
            PayslipLine('Basic Salary', _number(salary.get('basic'))),
            PayslipLine('HRA', _number(salary.get('hra'))),
            PayslipLine('Special Allowance', _number(salary.get('special'))),
        ]
    arrears = _number(salary.get('arrear_amount'))
    if arrears > 0 and not any(line.name == 'Arrears' for line in lines):
        lines.append(PayslipLine('Arrears', arrears))
    return lines

def _deductions(salary: Dict[str, Any]) -> List[PayslipLine]:
    if salary.get('deductions_breakdown') is not None:
        lines = _breakdown(salary['deductions_breakdown'])
    else:
        lines = [
            line for line in (
                PayslipLine('PF', _number(salary.get('epf'))),
                PayslipLine('ESIC', _number(salary.get('esic'))),
            ) if line.amount > 0
        ]
    for label, key in (('Other Deductions', 'other_deduction'), ('TDS', 'tds'), ('Advance', 'advance')):
        amount = _number(salary.get(key))
        if amount > 0:
            lines.append(PayslipLine(label, amount))
    return lines

def is_locked(record: Dict[str, Any]) -> bool:
    return isinstance(record, dict) and record.get('status') == settings.LOCKED_STATUS

def assemble(record: Dict[str, Any], employee: Optional[Dict[str, Any]] = None) -> Optional[PayslipRecord]:
    """
    Build a payslip from a locked monthly record and the employee's directory row.
    Returns None when the record is not locked or its month/year is unusable.
    """
    if not is_locked(record):
        return None
    try:
        start, end = pay_period(record.get('month'), record.get('year'))
    except (TypeError, ValueError):
        setup_logging().warning(
            "Payslip skipped for %s: bad pay period %r/%r",
            record.get('employee_code'), record.get('month'), record.get('year')
        )
        return None
    employee = employee or {}
    salary = record.get('salary_data') or {}

    earnings = _earnings(salary)
    deductions = _deductions(salary)

    working_days = int(to_decimal(salary.get('days_in_month'))) or (end.day)
    paid_days = _number(salary.get('paid_days'))

    total_earnings = salary.get('gross_with_arrears')
    total_deductions = salary.get('total_deduction')
    net_pay = salary.get('net_in_hand')

    return PayslipRecord(
        employee_id=normalize_code(record.get('employee_code')),
        employee_name=record.get('employee_name') or
            f"{employee.get('first_name', '')} {employee.get('last_name', '')}".strip(),
        designation=employee.get('designation') or 'N/A',
        department=employee.get('department') or '',
        pay_period_start=start,
        pay_period_end=end,
        earnings=earnings,
        deductions=deductions,
        total_earnings=_number(total_earnings) if total_earnings is not None else sum(l.amount for l in earnings),
        total_deductions=_number(total_deductions) if total_deductions is not None else sum(l.amount for l in deductions),
        net_pay=_number(net_pay) if net_pay is not None else
            sum(l.amount for l in earnings) - sum(l.amount for l in deductions),
        paid_days=paid_days,
        working_days=working_days,
        lop_days=working_days - paid_days,
        ctc=_number(salary.get('earned_ctc')),
        employer_contribution=_number(salary.get('total_employer_contribution')),
        date_of_joining=employee.get('date_of_joining'),
        uan_no=employee.get('uan_no'),
        esic_no=employee.get('esic_no'),
        bank_name=employee.get('bank_name'),
        bank_account=employee.get('account_no'),
        ifsc_code=employee.get('ifsc_code'),
    )

class PayslipGenerator:
    """Assembles payslips for every locked record of a month."""

    def __init__(self, tenant_id: str, data_dir: Optional[Union[str, Path]] = None):
        self.tenant_id = tenant_id
        self.records = MonthlyRecordsRepository(tenant_id, data_dir)
        self.employees = EmployeesRepository(tenant_id, data_dir)
        self.logger = setup_logging(tenant_id)

    def generate_month(self, month: Any, year: int, department: Optional[str] = None) -> List[PayslipRecord]:
        month_name = MONTH_NAMES[month_number(month) - 1]
        directory = {normalize_code(e.get('employee_code')): e for e in self.employees.load_data()}
        records = self.records.get_month(month_name, int(year))

        payslips = []
        for record in records:
            payslip = assemble(record, directory.get(normalize_code(record.get('employee_code'))))
            if payslip is None:
                continue
            if department and payslip.department != department:
                continue
            payslips.append(payslip)

        self.logger.info(
            "Generated %d payslips for %s %s (%d records, department=%s)",
            len(payslips), month_name, year, len(records), department or 'all'
        )
        return payslips

    def generate_one(self, employee_code: Any, month: Any, year: int) -> Optional[PayslipRecord]:
        code = normalize_code(employee_code)
        record = self.records.find_record(code, MONTH_NAMES[month_number(month) - 1], int(year))
        if record is None:
            return None
        return assemble(record, self.employees.find_by_key('employee_code', code))
