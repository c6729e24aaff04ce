from paydesk.employees.manager import EmployeeDirectory, full_name

EMPLOYEES = [
    {"employee_code": 1001.0, "first_name": "Asha", "last_name": "Rao", "department": "Ops", "designation": "Analyst"},
    {"employee_code": "E2", "first_name": "Ravi", "last_name": "Kumar", "department": "Sales", "designation": "Lead"},
    {"employee_code": "E3", "first_name": "Mei", "last_name": "Lin", "department": "Ops", "status": "Inactive"},
    {"employee_code": "", "first_name": "Nobody"},
]

def test_sync_and_lookup(tmp_path):
    directory = EmployeeDirectory("acme", data_dir=tmp_path)
    assert directory.sync([dict(e) for e in EMPLOYEES]) == {"created": 3, "updated": 0, "total": 3}
    assert directory.known_codes() == {"1001", "E2", "E3"}
    assert full_name(directory.get(1001)) == "Asha Rao"
    assert directory.get("E404") is None
    assert set(directory.by_code()) == {"1001", "E2", "E3"}

def test_search_and_departments(tmp_path):
    directory = EmployeeDirectory("acme", data_dir=tmp_path)
    directory.sync([dict(e) for e in EMPLOYEES])
    assert [e["employee_code"] for e in directory.search_employees("ops")] == ["1001"]
    assert [e["employee_code"] for e in directory.search_employees("ops", active_only=False)] == ["1001", "E3"]
    assert [e["employee_code"] for e in directory.search_employees("lead")] == ["E2"]
    assert directory.departments() == ["Ops", "Sales"]
    assert directory.get_department_breakdown() == {"Ops": 2, "Sales": 1}
