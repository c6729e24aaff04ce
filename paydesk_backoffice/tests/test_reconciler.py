from paydesk.core.config import settings
from paydesk.registry.components import ComponentRegistry
from paydesk.payroll.reconciler import reconcile

REGISTRY = ComponentRegistry.from_rows(
    [{"id": 1, "name": "Basic", "based_on": "Gross", "calculation_percentage": 50}],
    [{"id": 10, "name": "EPF", "based_on": "Basic"}],
    [],
)

def test_reconcile_reports_every_problem_without_stopping():
    rows = [
        {"employee_code": "E1", "gross": 30000},
        {"employee_code": "E2", "gross": 0},
        {"employee_code": "E9", "gross": 1000},
        {"employee_code": None, "gross": 5000},
        {"employee_code": "E3", "gross": "abc"},
        {"employee_code": "E4", "gross": -10},
        {"employee_code": "E5", "gross": 25000},
    ]
    result = reconcile(rows, {"E1", "E2", "E3", "E4", "E5"}, REGISTRY)
    assert [u.employee_code for u in result.accepted] == ["E1", "E5"]
    reasons = {(r.code, r.reason) for r in result.rejected}
    assert reasons == {
        ("E2", "invalid amount"),
        ("E9", "not found"),
        ("", "not found"),
        ("E3", "invalid amount"),
        ("E4", "invalid amount"),
    }
    assert result.summary()["rejected"] == 5

def test_duplicate_code_last_row_wins():
    rows = [
        {"employee_code": "E1", "gross": 30000},
        {"employee_code": "E2", "gross": 20000},
        {"employee_code": " E1 ", "gross": 40000},
    ]
    result = reconcile(rows, {"E1", "E2"}, REGISTRY)
    assert result.accepted_count == 2
    e1 = next(u for u in result.accepted if u.employee_code == "E1")
    assert e1.structure.basic_salary == 20000
    assert e1.row_number == 3
    assert result.skipped_count == 1
    assert result.skipped[0].row_number == 1
    assert len({r["employee_code"] for r in result.records()}) == 2

def test_spreadsheet_numeric_codes_match_directory():
    result = reconcile([{"employee_code": 1001.0, "gross": "25,000"}], {"1001"}, REGISTRY)
    assert result.accepted[0].employee_code == "1001"
    assert result.accepted[0].structure.deductions[0].amount == 1500

def test_empty_batch():
    result = reconcile([], {"E1"}, REGISTRY)
    assert result.summary()["accepted"] == 0

def test_reconcile_uses_configured_pf_rate(monkeypatch):
    monkeypatch.setattr(settings, "PF_EMPLOYEE_RATE", 10.0)
    result = reconcile([{"employee_code": "E1", "gross": 20000}], {"E1"}, REGISTRY)
    structure = result.accepted[0].structure
    assert [(l.name, l.amount) for l in structure.deductions] == [("EPF", 1000)]
