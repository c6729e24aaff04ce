"""
Typed exceptions for payroll operations.

Every exception carries a machine-readable ``code`` so callers (UI pages,
scripts) can branch on the type instead of parsing messages:

    PaydeskError
    +-- ValidationError      bad input on a single-item operation
    +-- SetupRequiredError   storage/table missing, needs admin action
    +-- RecordNotFoundError
    +-- UploadError          unreadable or unsupported import file

Bulk imports do not raise for per-row problems; they return outcomes
listing accepted, skipped and rejected rows.
"""
from typing import Any, Dict, List, Optional

class PaydeskError(Exception):
    code: str = "PAYDESK_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}

class ValidationError(PaydeskError):
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, issues: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.issues = issues or []

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["issues"] = self.issues
        return data

class SetupRequiredError(PaydeskError):
    """Backing storage is missing or unreachable. Present `hint` to the user."""
    code = "SETUP_REQUIRED"

    def __init__(self, resource: str, hint: str = ""):
        self.resource = resource
        self.hint = hint or f"Create the '{resource}' storage before using this feature."
        super().__init__(f"Setup required for {resource}: {self.hint}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"resource": self.resource, "hint": self.hint})
        return data

class RecordNotFoundError(PaydeskError):
    code = "NOT_FOUND"

    def __init__(self, entity_type: str, key: Any):
        self.entity_type = entity_type
        self.key = key
        super().__init__(f"{entity_type} not found: {key}")

class UploadError(PaydeskError):
    code = "UPLOAD_ERROR"
