"""
Create leave ledger rows (casual, sick, earned) for all active employees for a given year.

Usage:
  python scripts/backfill_leave_balances.py --year 2026
"""
import argparse

from sqlalchemy.orm import Session
from app.core.errors import PayrollEngineError
from app.core.logging import setup_logging
from app.db import session as db_session
from app.models.employee import Employee
from app.services import leave_ledger_service as ledger


def main():
    parser = argparse.ArgumentParser(description="Create leave balances for a year")
    parser.add_argument("--year", type=int, required=True, help="Calendar year (e.g. 2026)")
    args = parser.parse_args()

    setup_logging()
    db: Session = db_session.SessionLocal()
    try:
        employees = db.query(Employee).filter(Employee.active.is_(True)).all()
        print(f"Year {args.year}: ensuring balances for {len(employees)} active employees...")
        for i, emp in enumerate(employees):
            try:
                ledger.ensure_balances(db, emp.id, args.year)
            except PayrollEngineError as e:
                print(f"  Skip employee {emp.id} ({emp.emp_code}): {e.detail}")
            if (i + 1) % 50 == 0:
                print(f"  {i + 1}/{len(employees)}")
        print("Done.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
