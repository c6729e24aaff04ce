from datetime import date

import pandas as pd

from paydesk.core.repositories import ComponentsRepository, EmployeesRepository
from paydesk.payroll.bulk_processor import SalaryStructureBulkProcessor
from paydesk.payroll.prepare import MonthlySalaryPreparer
from paydesk.payslips.assembler import PayslipGenerator, PayslipLine, PayslipRecord
from paydesk.reports.payroll_reports import (
    component_breakdown, derived_employer_esi, export_salary_report, payroll_summary, salary_report
)

def slip(code, earnings, deductions, **extra):
    total_e = sum(a for _, a in earnings)
    total_d = sum(a for _, a in deductions)
    return PayslipRecord(
        employee_id=code, employee_name=f"Emp {code}", designation="Analyst", department="Ops",
        pay_period_start=date(2024, 4, 1), pay_period_end=date(2024, 4, 30),
        earnings=[PayslipLine(n, a) for n, a in earnings],
        deductions=[PayslipLine(n, a) for n, a in deductions],
        total_earnings=total_e, total_deductions=total_d, net_pay=total_e - total_d,
        paid_days=30, working_days=30, lop_days=0, **extra
    )

def test_summary_totals_and_rollups():
    slips = [
        slip("E1", [("Basic", 10000), ("Special", 10000)], [("PF", 1200), ("ESIC", 150), ("Advance", 500)]),
        slip("E2", [("Basic", 20000), ("Special", 20000)], [("EPF", 2400)]),
        slip("E3", [("Basic", 5000)], [("PF Arrear", 99), ("esi", 38)]),
    ]
    summary = payroll_summary(slips)
    assert summary["count"] == 3
    assert summary["total_earnings"] == 65000
    assert summary["total_deductions"] == 1850 + 2400 + 137
    assert summary["net_pay"] == 65000 - 4387
    assert summary["employee_pf"] == 3600
    assert summary["employer_pf"] == 3600
    assert summary["employee_esi"] == 188
    assert summary["employer_esi"] == 950 + 241
    assert summary["advances"] == 500

def test_esi_rollups_zero_above_threshold():
    summary = payroll_summary([slip("E2", [("Basic", 20000), ("Special", 20000)], [("PF", 2400)])])
    assert summary["employee_esi"] == 0
    assert summary["employer_esi"] == 0

def test_derived_employer_esi_ratio():
    assert derived_employer_esi(150) == 950
    assert derived_employer_esi(0) == 0

def test_empty_summary():
    assert payroll_summary([])["count"] == 0

def test_component_breakdown():
    df = component_breakdown([
        slip("E1", [("Basic", 10000)], [("PF", 1200)]),
        slip("E2", [("Basic", 20000)], []),
    ])
    basic = df[(df["component"] == "Basic") & (df["type"] == "Earning")].iloc[0]
    assert basic["amount"] == 30000
    assert basic["employees"] == 2
    assert len(df) == 2

def test_salary_report_export(tmp_path):
    slips = [slip("E1", [("Basic", 10000)], [("PF", 1200)], ctc=11300, bank_name="SBI", bank_account="0001", ifsc_code="SBIN0000001")]
    df = salary_report(slips)
    assert list(df.columns) == [
        "Employee ID", "Name", "Department", "Designation", "Paid Days", "Total Earnings",
        "Total Deductions", "Net Pay", "CTC", "Bank Name", "Account No", "IFSC",
    ]
    path = export_salary_report(slips, tmp_path / "salary.xlsx")
    back = pd.read_excel(path)
    assert back.loc[0, "Net Pay"] == 8800
    assert back.loc[0, "Employee ID"] == "E1"

def test_rollups_follow_calculator_name_rules():
    summary = payroll_summary([
        slip("E1", [("Basic", 10000), ("Special", 10000)],
             [("Provident Fund", 1200), ("Employee ESI", 150), ("Vol PF", 300)]),
    ])
    assert summary["employee_pf"] == 1200
    assert summary["employer_pf"] == 1200
    assert summary["employee_esi"] == 150
    assert summary["employer_esi"] == 950

def test_summary_of_generated_month(tmp_path):
    ComponentsRepository("acme", "earnings", tmp_path).bulk_upsert([
        {"name": "Basic Salary", "based_on": "Gross", "calculation_percentage": 50},
        {"name": "Special Allowance", "based_on": "Gross", "calculation_percentage": 50},
    ])
    ComponentsRepository("acme", "deductions", tmp_path).bulk_upsert([
        {"name": "Provident Fund", "based_on": "Basic", "calculation_percentage": 0},
        {"name": "Employee ESI", "based_on": "Gross", "calculation_percentage": 0},
    ])
    EmployeesRepository("acme", tmp_path).bulk_upsert([
        {"employee_code": "E1", "first_name": "Asha", "last_name": "Rao", "department": "Ops"},
    ])

    SalaryStructureBulkProcessor("acme", data_dir=tmp_path).assign_structure("E1", 20000)
    preparer = MonthlySalaryPreparer("acme", data_dir=tmp_path)
    preparer.prepare("E1", "April", 2024, 30)
    preparer.lock(["E1"], "April", 2024)

    slips = PayslipGenerator("acme", data_dir=tmp_path).generate_month("April", 2024)
    assert slips[0].deductions == [PayslipLine("Provident Fund", 1200), PayslipLine("Employee ESI", 150)]

    summary = payroll_summary(slips)
    assert summary["count"] == 1
    assert summary["net_pay"] == 18650
    assert summary["employee_pf"] == 1200
    assert summary["employee_esi"] == 150
    assert summary["employer_esi"] == 950
