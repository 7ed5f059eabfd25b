"""
lifecycle.py
Expiry computation, automatic status sync and the renewal rules.

Renewal rules:
- active and not lapsed: only the same plan may be renewed; its base
  duration is added to bonus_days, plan_type keeps its meaning.
- inactive or lapsed: any plan, re-purchased from today
  (join_date reset, bonus_days cleared).
"""

from __future__ import annotations

import logging
from typing import Iterable

from errors import PlanChangeError, ValidationError
from models import NEAR_EXPIRY_DAYS, PLAN_DAYS, Member, MembershipStats
import utils

log = logging.getLogger(__name__)

FRESH = "fresh"
EXTENDED = "extended"


def duration_days(plan_type: str) -> int:
    return PLAN_DAYS.get(plan_type, 0)


def expiry_days(member: Member) -> int:
    """Ordinal day the membership runs until (join date + plan + bonus)."""
    return utils.date_to_days(member.join_date) + duration_days(member.plan_type) + member.bonus_days


def expiry_date(member: Member) -> str:
    return utils.days_to_date(expiry_days(member))


def days_left(member: Member, today: str | None = None) -> int | None:
    """Remaining days for an active member; None when inactive."""
    if not member.active:
        return None
    return expiry_days(member) - utils.date_to_days(today or utils.today_iso())


def sync_auto_expire(members: Iterable[Member], today: str | None = None) -> int:
    """
    Mark active members whose expiry has passed as inactive.
    A membership expiring today is still active. Returns how many flipped.
    """
    current = utils.date_to_days(today or utils.today_iso())
    expired = 0
    for m in members:
        if m.active and expiry_days(m) - current < 0:
            m.active = False
            expired += 1
    if expired:
        log.info("Auto-expired %d member(s)", expired)
    return expired


def renew(member: Member, plan_type: str, today: str | None = None) -> str:
    """
    Apply a renewal with plan_type. Returns FRESH or EXTENDED.
    Raises PlanChangeError (member untouched) when an active member asks
    for a different plan.
    """
    new_duration = duration_days(plan_type)
    if not new_duration:
        raise ValidationError(f"Unknown plan type: {plan_type!r}.")

    today = today or utils.today_iso()
    current = utils.date_to_days(today)

    if not member.active or expiry_days(member) < current:
        member.join_date = today
        member.bonus_days = 0
        member.plan_type = plan_type
        member.active = True
        log.info("Member %s re-purchased %s from %s", member.id, plan_type, today)
        return FRESH

    if plan_type != member.plan_type:
        raise PlanChangeError(member.id, member.plan_type, plan_type)

    member.bonus_days += new_duration
    member.active = True
    log.info("Member %s extended by %d days (%s)", member.id, new_duration, plan_type)
    return EXTENDED


def deactivate(member: Member) -> bool:
    """One-way switch to inactive. Returns False if it already was."""
    if not member.active:
        return False
    member.active = False
    log.info("Member %s deactivated", member.id)
    return True


def near_expiry(
    members: Iterable[Member], today: str | None = None, window: int = NEAR_EXPIRY_DAYS
) -> list[tuple[Member, int]]:
    today = today or utils.today_iso()
    result = []
    for m in members:
        left = days_left(m, today)
        if left is not None and 0 <= left <= window:
            result.append((m, left))
    return result


def statistics(members: Iterable[Member], today: str | None = None) -> MembershipStats:
    today = today or utils.today_iso()
    members = list(members)
    active = [m for m in members if m.active]
    plan_counts = {plan: 0 for plan in PLAN_DAYS}
    for m in active:
        plan_counts[m.plan_type] = plan_counts.get(m.plan_type, 0) + 1
    return MembershipStats(
        today=today,
        total=len(members),
        active_count=len(active),
        plan_counts=plan_counts,
        near_expiry=near_expiry(active, today),
    )
