"""
Policy settings service - per-year leave entitlements and payroll constants
"""
import logging
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InvalidInput, NotFound
from app.models.leave import LeaveType
from app.models.policy import PolicySetting
from app.schemas.payroll import PayrollPolicy, PFMode
from app.services.audit_service import log_audit

logger = logging.getLogger(__name__)


def _defaults_from_settings(year: int) -> PolicySetting:
    return PolicySetting(
        year=year,
        # Annual entitlements
        annual_casual=settings.CASUAL_LEAVE_TOTAL,
        annual_sick=settings.SICK_LEAVE_TOTAL,
        annual_earned=settings.EARNED_LEAVE_TOTAL,
        # Salary structure
        basic_ratio=settings.BASIC_RATIO,
        hra_ratio=settings.HRA_RATIO,
        fuel_allowance=settings.FUEL_ALLOWANCE,
        # Statutory deductions
        pf_mode=settings.PF_MODE,
        pf_amount=settings.PF_AMOUNT,
        pf_rate=settings.PF_RATE,
        professional_tax=settings.PROFESSIONAL_TAX,
    )


def get_or_create_policy_settings(db: Session, year: int) -> PolicySetting:
    """
    Get policy settings for a year, creating them from configured defaults if missing.

    Defaults come from Settings (CASUAL_LEAVE_TOTAL, BASIC_RATIO, PF_AMOUNT, ...).
    A concurrent creator wins the unique year key; the loser re-reads.

    Args:
        db: Database session
        year: Calendar year

    Returns:
        PolicySetting instance
    """
    policy = db.query(PolicySetting).filter(PolicySetting.year == year).first()
    if policy:
        return policy

    policy = _defaults_from_settings(year)
    db.add(policy)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        policy = db.query(PolicySetting).filter(PolicySetting.year == year).first()
        if policy is None:
            raise
        return policy

    db.refresh(policy)
    logger.info("Seeded policy settings for year %s from configuration", year)
    return policy


def get_policy_settings(db: Session, year: int) -> PolicySetting:
    """
    Get policy settings for a year without creating them

    Raises:
        NotFound: If policy settings for the year do not exist
    """
    policy = db.query(PolicySetting).filter(PolicySetting.year == year).first()
    if not policy:
        raise NotFound("Policy settings", year)
    return policy


def update_policy_settings(
    db: Session,
    year: int,
    annual_casual: Optional[int] = None,
    annual_sick: Optional[int] = None,
    annual_earned: Optional[int] = None,
    basic_ratio: Optional[Decimal] = None,
    hra_ratio: Optional[Decimal] = None,
    fuel_allowance: Optional[Decimal] = None,
    pf_mode: Optional[str] = None,
    pf_amount: Optional[Decimal] = None,
    pf_rate: Optional[Decimal] = None,
    professional_tax: Optional[Decimal] = None,
    actor_id: Optional[int] = None,
) -> PolicySetting:
    """
    Update policy settings for a year (creates if not exists)

    Entitlement changes apply to ledger rows created afterwards; existing
    balance rows keep the total they were seeded with.

    Raises:
        InvalidInput: If a value is out of range
    """
    policy = get_or_create_policy_settings(db, year)

    for name, value in (
        ("annual_casual", annual_casual),
        ("annual_sick", annual_sick),
        ("annual_earned", annual_earned),
    ):
        if value is not None and value < 0:
            raise InvalidInput(f"{name} must be >= 0", field=name, value=value)
    for name, value in (("basic_ratio", basic_ratio), ("hra_ratio", hra_ratio), ("pf_rate", pf_rate)):
        if value is not None and (value <= 0 or value > 1):
            raise InvalidInput(f"{name} must be greater than 0 and at most 1", field=name, value=value)
    for name, value in (
        ("fuel_allowance", fuel_allowance),
        ("pf_amount", pf_amount),
        ("professional_tax", professional_tax),
    ):
        if value is not None and value < 0:
            raise InvalidInput(f"{name} must be >= 0", field=name, value=value)
    if pf_mode is not None:
        try:
            pf_mode = PFMode(pf_mode.upper()).value
        except ValueError:
            raise InvalidInput(f"Unknown PF mode {pf_mode!r}", field="pf_mode")

    changes = {}
    for name, value in (
        ("annual_casual", annual_casual),
        ("annual_sick", annual_sick),
        ("annual_earned", annual_earned),
        ("basic_ratio", basic_ratio),
        ("hra_ratio", hra_ratio),
        ("fuel_allowance", fuel_allowance),
        ("pf_mode", pf_mode),
        ("pf_amount", pf_amount),
        ("pf_rate", pf_rate),
        ("professional_tax", professional_tax),
    ):
        if value is not None:
            changes[name] = {"old": getattr(policy, name), "new": value}
            setattr(policy, name, value)

    if changes:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="POLICY_UPDATE",
            entity_type="policy_settings",
            entity_id=policy.id,
            meta={"year": year, "changes": changes},
        )
    db.commit()
    db.refresh(policy)
    return policy


def entitlement_totals(db: Session, year: int) -> Dict[LeaveType, int]:
    """Annual entitlement per ledger leave type for the year."""
    policy = get_or_create_policy_settings(db, year)
    return {
        LeaveType.CASUAL: int(policy.annual_casual),
        LeaveType.SICK: int(policy.annual_sick),
        LeaveType.EARNED: int(policy.annual_earned),
    }


def payroll_policy_for(db: Session, year: int) -> PayrollPolicy:
    """Salary structure and statutory constants in force for the year."""
    policy = get_or_create_policy_settings(db, year)
    return PayrollPolicy(
        basic_ratio=Decimal(str(policy.basic_ratio)),
        hra_ratio=Decimal(str(policy.hra_ratio)),
        fuel_allowance=Decimal(str(policy.fuel_allowance)),
        pf_mode=PFMode(policy.pf_mode),
        pf_amount=Decimal(str(policy.pf_amount)),
        pf_rate=Decimal(str(policy.pf_rate)),
        professional_tax=Decimal(str(policy.professional_tax)),
    )
