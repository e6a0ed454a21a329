"""
Month-end payroll run: get or create the salary slip of every active employee.

Existing slips are returned as stored unless --force is given.

Usage:
  python scripts/generate_slips.py --month 2026-03
  python scripts/generate_slips.py --month 2026-03 --force
"""
import argparse
import json

from sqlalchemy.orm import Session
from app.core.errors import PayrollEngineError, error_payload
from app.core.logging import setup_logging
from app.db import session as db_session
from app.models.employee import Employee
from app.services import slip_service


def main():
    parser = argparse.ArgumentParser(description="Generate salary slips for a month")
    parser.add_argument("--month", required=True, help="Month (YYYY-MM)")
    parser.add_argument("--force", action="store_true", help="Regenerate slips that already exist")
    args = parser.parse_args()

    setup_logging()
    db: Session = db_session.SessionLocal()
    counts = {}
    try:
        employees = db.query(Employee).filter(Employee.active.is_(True)).order_by(Employee.emp_code).all()
        for emp in employees:
            try:
                result = slip_service.get_or_create(db, emp.id, args.month, force_regenerate=args.force)
            except PayrollEngineError as e:
                print(f"  {emp.emp_code}: {json.dumps(error_payload(e), default=str)}")
                counts["failed"] = counts.get("failed", 0) + 1
                continue
            counts[result.source.value] = counts.get(result.source.value, 0) + 1
            print(f"  {emp.emp_code}: net {result.slip.net_salary} ({result.source.value})")
        print(f"Done: {counts}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
