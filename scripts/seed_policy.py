"""
Create tables and seed policy settings for given year(s) from configured defaults
(casual=4, sick=2, earned=0, basic 30%, HRA 70% of basic, PF 1800, PT 200).
If policy already exists, it is left unchanged. Run with .env loaded.

Usage:
  python scripts/seed_policy.py              # seeds the current year
  python scripts/seed_policy.py 2025 2026    # seeds 2025 and 2026
"""
import sys
from datetime import date

from app.core.logging import setup_logging
from app.db.session import SessionLocal, init_db
from app.services.policy_service import get_or_create_policy_settings


def main():
    setup_logging()
    years = [int(y) for y in sys.argv[1:]] or [date.today().year]

    init_db()
    db = SessionLocal()
    try:
        for year in sorted(years):
            policy = get_or_create_policy_settings(db, year)
            print(
                f"Policy for {year}: casual={policy.annual_casual}, sick={policy.annual_sick}, "
                f"earned={policy.annual_earned}, pf={policy.pf_mode}/{policy.pf_amount}, "
                f"professional_tax={policy.professional_tax}"
            )
    finally:
        db.close()


if __name__ == "__main__":
    main()
