"""
Tests for recording monthly attendance against the leave ledger
"""
import pytest
from sqlalchemy.orm import Session

from app.core.errors import InvalidInput, NotFound
from app.models.attendance import AttendanceRecord, LeaveMode
from app.models.audit_log import AuditLog
from app.models.leave import LeaveType
from app.services import attendance_service, leave_ledger_service as ledger

MONTH = "2024-04"  # 30 days
YEAR = 2024


def casual_sick_remaining(db, employee_id):
    return (
        ledger.remaining(db, employee_id, YEAR, LeaveType.CASUAL),
        ledger.remaining(db, employee_id, YEAR, LeaveType.SICK),
    )


def test_save_auto_debits_ledger(db: Session, employee, hr_user):
    record = attendance_service.save_attendance(db, employee.id, MONTH, 5, LeaveMode.AUTO, actor_id=hr_user.id)

    assert record.days_in_month == 30
    assert (record.casual_leaves_consumed, record.sick_leaves_consumed, record.lop_days) == (4, 1, 0)
    assert casual_sick_remaining(db, employee.id) == (0, 1)
    audit = db.query(AuditLog).filter(AuditLog.action == "ATTENDANCE_SAVE").one()
    assert audit.actor_id == hr_user.id
    assert audit.meta_json["consumption"]["casual_leaves_consumed"] == 4


def test_save_lop_leaves_ledger_untouched(db: Session, employee):
    record = attendance_service.save_attendance(db, employee.id, MONTH, 5, LeaveMode.LOP)
    assert record.lop_days == 5
    assert casual_sick_remaining(db, employee.id) == (4, 2)


def test_save_paid_books_pool_casual_first(db: Session, employee):
    record = attendance_service.save_attendance(db, employee.id, MONTH, 5, LeaveMode.PAID)
    assert record.paid_leave_used == 5
    assert (record.casual_debited, record.sick_debited) == (4, 1)
    assert casual_sick_remaining(db, employee.id) == (0, 1)


def test_resave_replaces_prior_debits(db: Session, employee):
    attendance_service.save_attendance(db, employee.id, MONTH, 5, LeaveMode.AUTO)
    record = attendance_service.save_attendance(db, employee.id, MONTH, 2, LeaveMode.AUTO)

    assert (record.casual_leaves_consumed, record.sick_leaves_consumed, record.lop_days) == (2, 0, 0)
    assert casual_sick_remaining(db, employee.id) == (2, 2)
    assert db.query(AttendanceRecord).filter(AttendanceRecord.employee_id == employee.id).count() == 1


def test_resave_same_values_is_stable(db: Session, employee):
    first = attendance_service.save_attendance(db, employee.id, MONTH, 3, LeaveMode.AUTO)
    first_figures = (first.casual_leaves_consumed, first.sick_leaves_consumed, first.lop_days)
    second = attendance_service.save_attendance(db, employee.id, MONTH, 3, LeaveMode.AUTO)
    assert (second.casual_leaves_consumed, second.sick_leaves_consumed, second.lop_days) == first_figures
    assert casual_sick_remaining(db, employee.id) == (1, 2)


def test_months_share_yearly_balance(db: Session, employee):
    attendance_service.save_attendance(db, employee.id, "2024-03", 3, LeaveMode.AUTO)
    record = attendance_service.save_attendance(db, employee.id, MONTH, 4, LeaveMode.AUTO)
    assert (record.casual_leaves_consumed, record.sick_leaves_consumed, record.lop_days) == (1, 2, 1)
    assert casual_sick_remaining(db, employee.id) == (0, 0)


def test_preview_does_not_debit(db: Session, employee):
    preview = attendance_service.preview_attendance(db, employee.id, MONTH, 5, LeaveMode.AUTO)
    assert preview.consumption.casual_leaves_consumed == 4
    assert preview.consumption.sick_leaves_consumed == 1
    assert casual_sick_remaining(db, employee.id) == (4, 2)
    assert db.query(AttendanceRecord).count() == 0


def test_preview_counts_existing_record_as_available(db: Session, employee):
    attendance_service.save_attendance(db, employee.id, MONTH, 5, LeaveMode.AUTO)
    preview = attendance_service.preview_attendance(db, employee.id, MONTH, 5, LeaveMode.AUTO)
    assert (preview.casual_remaining, preview.sick_remaining) == (4, 2)
    assert preview.consumption.lop_days == 0


def test_absent_days_beyond_month_rejected(db: Session, employee):
    with pytest.raises(InvalidInput):
        attendance_service.save_attendance(db, employee.id, "2024-02", 30, LeaveMode.AUTO)
    assert db.query(AttendanceRecord).count() == 0


def test_full_month_absent_allowed(db: Session, employee):
    record = attendance_service.save_attendance(db, employee.id, "2024-02", 29, LeaveMode.AUTO)
    assert record.days_in_month == 29
    assert record.lop_days == 23


@pytest.mark.parametrize("year_month", ["2024-4", "2024-13", "04-2024", "", "2024/04"])
def test_malformed_month_rejected(db: Session, employee, year_month):
    with pytest.raises(InvalidInput):
        attendance_service.save_attendance(db, employee.id, year_month, 1, LeaveMode.AUTO)


def test_negative_absent_days_rejected(db: Session, employee):
    with pytest.raises(InvalidInput):
        attendance_service.save_attendance(db, employee.id, MONTH, -1, LeaveMode.AUTO)


def test_unknown_employee(db: Session):
    with pytest.raises(NotFound):
        attendance_service.save_attendance(db, 404, MONTH, 1, LeaveMode.AUTO)


def test_get_attendance(db: Session, employee):
    with pytest.raises(NotFound):
        attendance_service.get_attendance(db, employee.id, MONTH)
    attendance_service.save_attendance(db, employee.id, MONTH, 1, LeaveMode.LOP)
    record = attendance_service.get_attendance(db, employee.id, MONTH)
    assert record.leave_mode == LeaveMode.LOP


def test_save_accepts_lowercase_mode(db: Session, employee):
    record = attendance_service.save_attendance(db, employee.id, MONTH, 2, "auto")
    assert record.leave_mode == LeaveMode.AUTO
    assert casual_sick_remaining(db, employee.id) == (2, 2)
