import pytest

from paydesk.core.exceptions import SetupRequiredError
from paydesk.core.repositories import ComponentsRepository, EmployeesRepository
from paydesk.payroll.bulk_processor import SalaryStructureBulkProcessor
from paydesk.db.session import init_db, make_engine
from paydesk.payroll.engine import compute_structure
from paydesk.payroll.store import SqlSalaryStructureStore
from paydesk.registry.components import ComponentRegistry

REGISTRY = ComponentRegistry.from_rows(
    [{"id": 1, "name": "Basic", "based_on": "Gross", "calculation_percentage": 50}],
    [{"id": 10, "name": "PF", "based_on": "Basic"}],
    [{"id": 20, "name": "Employer PF", "based_on": "Basic"}],
)

@pytest.fixture
def store():
    engine = make_engine("sqlite://")
    init_db(engine)
    return SqlSalaryStructureStore(engine)

def test_upsert_keeps_one_row_per_employee(store):
    first = compute_structure(30000, REGISTRY).to_record("E1")
    second = compute_structure(36000, REGISTRY).to_record("E1")
    other = compute_structure(20000, REGISTRY).to_record("E2")

    assert store.upsert_many([first, other]) == 2
    assert store.upsert_many([second]) == 1

    rows = store.all()
    assert [r["employee_code"] for r in rows] == ["E1", "E2"]
    e1 = store.get("E1")
    assert e1["monthly_gross"] == 36000.0
    assert e1["basic_salary"] == 18000
    assert e1["deductions_breakdown"] == [{"id": 10, "name": "PF", "amount": 2160}]

def test_repeated_codes_in_one_call_last_wins(store):
    records = [
        compute_structure(30000, REGISTRY).to_record("E1"),
        compute_structure(50000, REGISTRY).to_record("E1"),
    ]
    assert store.upsert_many(records) == 1
    assert store.get("E1")["monthly_gross"] == 50000.0
    assert store.get("E404") is None

def test_missing_table_is_setup_required():
    bare = SqlSalaryStructureStore(make_engine("sqlite://"))
    with pytest.raises(SetupRequiredError) as exc:
        bare.upsert_many([compute_structure(30000, REGISTRY).to_record("E1")])
    assert exc.value.resource == "salary_structures"
    assert exc.value.to_dict()["code"] == "SETUP_REQUIRED"

def test_bulk_processor_writes_through_to_sql_store(tmp_path, store):
    ComponentsRepository("acme", "earnings", tmp_path).bulk_upsert([
        {"name": "Basic", "based_on": "Gross", "calculation_percentage": 50},
    ])
    EmployeesRepository("acme", tmp_path).bulk_upsert([{"employee_code": "E1"}, {"employee_code": "E2"}])
    processor = SalaryStructureBulkProcessor("acme", data_dir=tmp_path, sql_store=store)

    path = tmp_path / "gross.csv"
    path.write_text("Employee Code,Monthly Gross Salary\nE1,30000\nE2,20000\n")
    assert processor.import_file(path)["accepted"] == 2
    processor.assign_structure("E1", 36000)

    rows = store.all()
    assert [r["employee_code"] for r in rows] == ["E1", "E2"]
    assert rows[0]["monthly_gross"] == 36000
    assert rows[0]["basic_salary"] == 18000
