"""
Bulk reconciler: validates (employee code, gross) rows against the employee
directory and stages one structure upsert per employee code.

The whole batch is always processed. Rejections are collected, never raised.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set

from paydesk.core.utils import normalize_code, to_decimal
from paydesk.payroll.engine import StatutoryRates, compute_structure
from paydesk.payroll.lines import StructureResult
from paydesk.registry.components import ComponentRegistry

REASON_NOT_FOUND = "not found"
REASON_INVALID_AMOUNT = "invalid amount"
REASON_DUPLICATE = "duplicate in batch"

@dataclass(frozen=True)
class StructureUpsert:
    employee_code: str
    structure: StructureResult
    row_number: int

    def to_record(self) -> Dict[str, Any]:
        return self.structure.to_record(self.employee_code)

@dataclass(frozen=True)
class Rejection:
    code: str
    reason: str
    row_number: int
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "reason": self.reason, "row": self.row_number, "value": self.value}

@dataclass
class ReconcileResult:
    accepted: List[StructureUpsert] = field(default_factory=list)
    skipped: List[Rejection] = field(default_factory=list)
    rejected: List[Rejection] = field(default_factory=list)

    @property
    def accepted_count(self) -> int:
        return len(self.accepted)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)

    def records(self) -> List[Dict[str, Any]]:
        return [u.to_record() for u in self.accepted]

    def summary(self) -> Dict[str, Any]:
        return {
            "accepted": self.accepted_count,
            "skipped": self.skipped_count,
            "rejected": self.rejected_count,
            "rejections": [r.to_dict() for r in self.rejected],
            "duplicates": [r.to_dict() for r in self.skipped],
        }

def reconcile(
    rows: Iterable[Dict[str, Any]],
    known_employees: Set[str],
    registry: ComponentRegistry,
    rates: Optional[StatutoryRates] = None,
) -> ReconcileResult:
    """
    Rows carry ``employee_code`` and ``gross``. Row numbers are 1-based.
    A code repeated in the batch keeps its last row; earlier rows go to skipped.
    """
    known = {normalize_code(c) for c in known_employees}
    result = ReconcileResult()
    staged: Dict[str, StructureUpsert] = {}

    for row_number, row in enumerate(rows, start=1):
        code = normalize_code(row.get("employee_code"))
        raw_gross = row.get("gross")

        if not code or code not in known:
            result.rejected.append(Rejection(code, REASON_NOT_FOUND, row_number, raw_gross))
            continue

        gross = to_decimal(raw_gross, default=None)
        if gross is None or gross <= 0:
            result.rejected.append(Rejection(code, REASON_INVALID_AMOUNT, row_number, raw_gross))
            continue

        previous = staged.get(code)
        if previous is not None:
            result.skipped.append(Rejection(code, REASON_DUPLICATE, previous.row_number))

        staged[code] = StructureUpsert(code, compute_structure(gross, registry, rates), row_number)

    result.accepted = sorted(staged.values(), key=lambda u: u.row_number)
    return result
