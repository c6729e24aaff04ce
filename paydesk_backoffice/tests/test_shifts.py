from datetime import time

import pandas as pd
import pytest

from paydesk.core.exceptions import ValidationError
from paydesk.core.repositories import ShiftsRepository
from paydesk.shifts.manager import ShiftManager, reconcile_shifts

def test_reconcile_skips_existing_and_batch_duplicates():
    rows = [
        {"name": " general ", "start_time": "09:00", "end_time": "18:00"},
        {"name": "Night", "start_time": "22:00", "end_time": "06:00", "status": "ACTIVE", "in_grace_period": 10},
        {"name": "NIGHT", "start_time": "21:00", "end_time": "05:00"},
        {"name": "Split", "start_time": "09:00", "end_time": None},
        {"name": None, "start_time": "09:00", "end_time": "13:00"},
    ]
    result = reconcile_shifts(rows, {"General"})
    assert [s["name"] for s in result.accepted] == ["Night"]
    assert result.skipped == ["general", "NIGHT"]
    assert [r["row"] for r in result.rejected] == [4, 5]
    night = result.accepted[0]
    assert night["status"] == "active"
    assert night["in_grace_period"] == 10
    assert night["end_reminder"] == 0
    assert night["is_night_shift"] is False

def test_time_objects_are_normalized():
    result = reconcile_shifts([{"name": "Early", "start_time": time(6, 0), "end_time": time(14, 30)}], set())
    assert (result.accepted[0]["start_time"], result.accepted[0]["end_time"]) == ("06:00", "14:30")

def test_import_file_inserts_once_and_keeps_existing(tmp_path):
    manager = ShiftManager("acme", data_dir=tmp_path)
    existing = manager.create_shift({"name": "General", "start_time": "09:00", "end_time": "18:00", "in_grace_period": 5})

    path = tmp_path / "shifts.csv"
    pd.DataFrame([
        {"Name": "GENERAL", "Start Time": "10:00", "End Time": "19:00", "In Grace": 15},
        {"Name": "Evening", "Start Time": "14:00", "End Time": "22:00", "In Grace": 10},
        {"Name": "Late", "Start Time": "16:00", "End Time": None, "In Grace": 0},
    ]).to_csv(path, index=False)

    result = manager.import_file(path)
    assert (result["inserted"], result["skipped"], result["rejected"]) == (1, 1, 1)
    assert result["skipped_names"] == ["GENERAL"]

    shifts = ShiftsRepository("acme", tmp_path).load_data()
    assert len(shifts) == 2
    general = ShiftsRepository("acme", tmp_path).find_by_key("id", existing["id"])
    assert general["start_time"] == "09:00"
    assert general["in_grace_period"] == 5

def test_import_file_missing_columns(tmp_path):
    path = tmp_path / "shifts.csv"
    pd.DataFrame([{"Shift Name": "A", "Start Time": "09:00"}]).to_csv(path, index=False)
    result = ShiftManager("acme", data_dir=tmp_path).import_file(path)
    assert result["success"] is False
    assert result["errors"] == [{"column": "End Time", "reason": "missing column"}]

def test_create_shift_duplicate_name(tmp_path):
    manager = ShiftManager("acme", data_dir=tmp_path)
    manager.create_shift({"name": "General", "start_time": "09:00", "end_time": "18:00"})
    with pytest.raises(ValidationError) as exc:
        manager.create_shift({"name": " general", "start_time": "08:00", "end_time": "17:00"})
    assert exc.value.issues[0]["reason"] == "duplicate"
    with pytest.raises(ValidationError):
        manager.create_shift({"name": "Morning", "start_time": "06:00"})

def test_toggle_status(tmp_path):
    manager = ShiftManager("acme", data_dir=tmp_path)
    shift = manager.create_shift({"name": "General", "start_time": "09:00", "end_time": "18:00"})
    assert manager.toggle_status(shift["id"])["status"] == "inactive"
    assert manager.toggle_status(shift["id"])["status"] == "active"
    assert len(manager.list_shifts()) == 1

def test_shift_template(tmp_path):
    template = ShiftManager("acme", data_dir=tmp_path).get_template()
    assert list(template.columns)[:3] == ["Shift Name", "Start Time", "End Time"]
    assert template.loc[0, "Shift Name"] == "General"
