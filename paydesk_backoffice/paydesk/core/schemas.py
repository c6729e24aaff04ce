"""
Schema Registry for spreadsheet imports and exports.
Each schema lists the required and optional headers, the field each header
maps to, and accepted header aliases.
"""
from typing import Dict, Any

class SchemaRegistry:
    """Registry of spreadsheet schemas for all uploadable entity types."""

    def __init__(self):
        self.schemas = self._initialize_schemas()

    def get_schema(self, entity_type: str) -> Dict[str, Any]:
        """Get schema for entity type."""
        if entity_type not in self.schemas:
            raise ValueError(f"Schema not found for entity type: {entity_type}")
        return self.schemas[entity_type]

    def _initialize_schemas(self) -> Dict[str, Dict[str, Any]]:
        """Initialize all schema definitions."""
        return {
            'salary_structures': self._salary_structure_schema(),
            'shifts': self._shift_schema(),
            'salary_report': self._salary_report_schema(),
        }

    def _salary_structure_schema(self) -> Dict[str, Any]:
        """Employee-gross bulk upload. Extra columns are ignored."""
        return {
            "required": ["employee_code", "gross"],
            "columns": {
                "employee_code": {
                    "header": "Employee Code",
                    "aliases": ["Employee Code"],
                    "example": "EMP001"
                },
                "gross": {
                    "header": "Monthly Gross Salary",
                    "aliases": ["Monthly Gross Salary"],
                    "example": 25000
                }
            }
        }

    def _shift_schema(self) -> Dict[str, Any]:
        """Shift bulk upload."""
        return {
            "required": ["name", "start_time", "end_time"],
            "columns": {
                "name": {
                    "header": "Shift Name",
                    "aliases": ["Shift Name", "Name"],
                    "example": "General"
                },
                "start_time": {
                    "header": "Start Time",
                    "aliases": ["Start Time"],
                    "example": "09:00"
                },
                "end_time": {
                    "header": "End Time",
                    "aliases": ["End Time"],
                    "example": "18:00"
                },
                "status": {
                    "header": "Status",
                    "aliases": ["Status"],
                    "example": "active"
                },
                "in_grace_period": {
                    "header": "In Grace",
                    "aliases": ["In Grace"],
                    "example": 10
                },
                "out_grace_period": {
                    "header": "Out Grace",
                    "aliases": ["Out Grace"],
                    "example": 10
                },
                "start_reminder": {
                    "header": "Start Reminder",
                    "aliases": ["Start Reminder"],
                    "example": 15
                },
                "end_reminder": {
                    "header": "End Reminder",
                    "aliases": ["End Reminder"],
                    "example": 15
                }
            }
        }

    def _salary_report_schema(self) -> Dict[str, Any]:
        """Flat row-per-employee salary report (export only)."""
        return {
            "required": [],
            "columns": {
                "employee_id": {"header": "Employee ID"},
                "employee_name": {"header": "Name"},
                "department": {"header": "Department"},
                "designation": {"header": "Designation"},
                "paid_days": {"header": "Paid Days"},
                "total_earnings": {"header": "Total Earnings"},
                "total_deductions": {"header": "Total Deductions"},
                "net_pay": {"header": "Net Pay"},
                "ctc": {"header": "CTC"},
                "bank_name": {"header": "Bank Name"},
                "bank_account": {"header": "Account No"},
                "ifsc_code": {"header": "IFSC"}
            }
        }
