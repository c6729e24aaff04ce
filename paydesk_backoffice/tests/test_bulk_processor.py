import pandas as pd
import pytest

from paydesk.core.exceptions import ValidationError
from paydesk.core.repositories import ComponentsRepository, EmployeesRepository, SalaryStructuresRepository
from paydesk.core.audit import AuditLogger
from paydesk.payroll.bulk_processor import SalaryStructureBulkProcessor

TENANT = "acme"

def seed(data_dir):
    ComponentsRepository(TENANT, "earnings", data_dir).bulk_upsert([
        {"name": "Basic Salary", "based_on": "Gross", "calculation_percentage": 50, "max_calculated_value": 20000},
        {"name": "Special Allowance", "based_on": "Gross", "calculation_percentage": 50},
    ])
    ComponentsRepository(TENANT, "deductions", data_dir).bulk_upsert([
        {"name": "PF", "based_on": "Basic", "calculation_percentage": 0},
        {"name": "ESIC", "based_on": "Gross", "calculation_percentage": 0},
    ])
    EmployeesRepository(TENANT, data_dir).bulk_upsert([
        {"employee_code": "E1", "first_name": "Asha", "last_name": "Rao"},
        {"employee_code": "E2", "first_name": "Ravi", "last_name": "K"},
    ])

def write_csv(path, rows):
    pd.DataFrame(rows).to_csv(path, index=False)
    return path

def test_import_file_upserts_once_per_employee(tmp_path):
    seed(tmp_path)
    processor = SalaryStructureBulkProcessor(TENANT, data_dir=tmp_path)
    f = write_csv(tmp_path / "gross.csv", [
        {"Employee Code": "E1", "Monthly Gross Salary": 40000, "Remarks": "x"},
        {"Employee Code": "E2", "Monthly Gross Salary": 18000, "Remarks": ""},
        {"Employee Code": "E7", "Monthly Gross Salary": 18000, "Remarks": ""},
        {"Employee Code": "E1", "Monthly Gross Salary": 42000, "Remarks": "revised"},
    ])
    result = processor.import_file(f)
    assert result["success"] is True
    assert (result["accepted"], result["skipped"], result["rejected"]) == (2, 1, 1)
    assert result["rejections"][0]["reason"] == "not found"
    assert result["ignored_columns"] == ["Remarks"]
    assert result["duplicate_upload"] is False

    structures = SalaryStructuresRepository(TENANT, tmp_path).load_data()
    assert len(structures) == 2
    e1 = processor.get_structure("E1")
    assert e1["monthly_gross"] == 42000.0
    assert e1["basic_salary"] == 20000

    # re-importing replaces rows instead of adding new ones
    again = processor.import_file(f)
    assert again["duplicate_upload"] is True
    assert again["repository_result"] == {"created": 0, "updated": 2, "total": 2}
    assert processor.get_structure("E1")["id"] == e1["id"]

def test_import_file_missing_required_column(tmp_path):
    seed(tmp_path)
    processor = SalaryStructureBulkProcessor(TENANT, data_dir=tmp_path)
    f = write_csv(tmp_path / "bad.csv", [{"Employee Code": "E1", "Gross": 40000}])
    result = processor.import_file(f)
    assert result["success"] is False
    assert result["errors"] == [{"column": "Monthly Gross Salary", "reason": "missing column"}]
    assert SalaryStructuresRepository(TENANT, tmp_path).get_count() == 0
    history = AuditLogger(TENANT, tmp_path).get_upload_history(entity_type="salary_structures")
    assert history[0]["success"] is False

def test_import_excel_file(tmp_path):
    seed(tmp_path)
    path = tmp_path / "gross.xlsx"
    pd.DataFrame([{"employee code": "E2", "Monthly Gross Salary ": 20000}]).to_excel(path, index=False)
    result = SalaryStructureBulkProcessor(TENANT, data_dir=tmp_path).import_file(path)
    assert result["accepted"] == 1
    stats = AuditLogger(TENANT, tmp_path).get_upload_stats("salary_structures")
    assert stats["total_rows_accepted"] == 1

def test_assign_structure_updates_in_place(tmp_path):
    seed(tmp_path)
    processor = SalaryStructureBulkProcessor(TENANT, data_dir=tmp_path)
    first = processor.assign_structure("E1", 30000, user_id="u1")
    second = processor.assign_structure("E1", "35000")
    assert first["id"] == second["id"]
    assert second["monthly_gross"] == 35000.0
    assert len(processor.list_structures()) == 1
    changes = AuditLogger(TENANT, tmp_path).get_change_history("salary_structures", "E1")
    assert {c["operation"] for c in changes} == {"create", "update"}

@pytest.mark.parametrize("code,gross,field", [
    ("E9", 30000, "employee_code"),
    ("", 30000, "employee_code"),
    ("E1", 0, "gross"),
    ("E1", "n/a", "gross"),
])
def test_assign_structure_validation(tmp_path, code, gross, field):
    seed(tmp_path)
    with pytest.raises(ValidationError) as exc:
        SalaryStructureBulkProcessor(TENANT, data_dir=tmp_path).assign_structure(code, gross)
    assert exc.value.issues[0]["field"] == field
    assert exc.value.code == "VALIDATION_ERROR"

def test_template_headers(tmp_path):
    template = SalaryStructureBulkProcessor(TENANT, data_dir=tmp_path).get_template()
    assert list(template.columns) == ["Employee Code", "Monthly Gross Salary"]
    assert template.empty

@pytest.mark.parametrize("suffix", ["csv", "xlsx"])
def test_import_keeps_leading_zeros_in_codes(tmp_path, suffix):
    seed(tmp_path)
    EmployeesRepository(TENANT, tmp_path).bulk_upsert([{"employee_code": "00123", "first_name": "Meera"}])
    path = tmp_path / f"gross.{suffix}"
    frame = pd.DataFrame([{"Employee Code": "00123", "Monthly Gross Salary": 30000}])
    if suffix == "csv":
        frame.to_csv(path, index=False)
    else:
        frame.to_excel(path, index=False)
    result = SalaryStructureBulkProcessor(TENANT, data_dir=tmp_path).import_file(path)
    assert (result["accepted"], result["rejected"]) == (1, 0)
    assert SalaryStructuresRepository(TENANT, tmp_path).get_by_code("00123")["basic_salary"] == 15000
