"""
Employee directory access for payroll.

The directory is owned by an external service; payroll keeps a snapshot keyed
by employee_code with fields employee_code, first_name, last_name, department,
designation, date_of_joining, bank_name, account_no, ifsc_code, uan_no, esic_no.
"""
from pathlib import Path
from typing import Dict, List, Any, Optional, Set, Union

from ..core.repositories import EmployeesRepository
from ..core.utils import normalize_code

def full_name(employee: Dict[str, Any]) -> str:
    return f"{employee.get('first_name') or ''} {employee.get('last_name') or ''}".strip()

class EmployeeDirectory:
    """Read access to the employee snapshot."""

    def __init__(self, tenant_id: str, data_dir: Optional[Union[str, Path]] = None):
        self.tenant_id = tenant_id
        self.repository = EmployeesRepository(tenant_id, data_dir)

    def sync(self, employees: List[Dict[str, Any]]) -> Dict[str, int]:
        """Refresh the snapshot from the directory service."""
        return self.repository.bulk_upsert(employees)

    def known_codes(self) -> Set[str]:
        return self.repository.known_codes()

    def get(self, employee_code: Any) -> Optional[Dict[str, Any]]:
        return self.repository.find_by_key('employee_code', normalize_code(employee_code))

    def by_code(self) -> Dict[str, Dict[str, Any]]:
        return {normalize_code(e.get('employee_code')): e for e in self.repository.load_data()}

    def search_employees(self, query: str, active_only: bool = True, limit: int = 50) -> List[Dict[str, Any]]:
        """Search employees by name, code, department or designation."""
        employees = self.repository.get_active_employees() if active_only else self.repository.load_data()

        if not query:
            return employees[:limit]

        query_lower = query.lower().strip()
        matches = []

        for emp in employees:
            fields = (
                full_name(emp).lower(),
                normalize_code(emp.get('employee_code')).lower(),
                str(emp.get('department') or '').lower(),
                str(emp.get('designation') or '').lower(),
            )
            if any(query_lower in f for f in fields):
                matches.append(emp)

        return matches[:limit]

    def departments(self) -> List[str]:
        return sorted({e['department'] for e in self.repository.load_data() if e.get('department')})

    def get_department_breakdown(self) -> Dict[str, int]:
        """Headcount per department."""
        dept_counts: Dict[str, int] = {}
        for emp in self.repository.load_data():
            dept = emp.get('department') or 'Unknown'
            dept_counts[dept] = dept_counts.get(dept, 0) + 1
        return dept_counts
