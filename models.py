"""
models.py
Lightweight domain helpers (plans, limits, dataclasses).
"""

from __future__ import annotations
from dataclasses import dataclass, field

# Plan base durations in days (used for expiry calculation)
PLAN_DAYS = {
    "monthly": 30,
    "quarterly": 90,
    "yearly": 365,
}

GENDERS = ("male", "female")

MAX_MEMBERS = 100
FIRST_MEMBER_ID = 1001
NEAR_EXPIRY_DAYS = 30

MIN_AGE = 18
MAX_AGE = 80
PHONE_LENGTH = 11
NAME_MAX_LENGTH = 29


@dataclass
class Member:
    id: int | None
    name: str
    gender: str  # 'male' or 'female'
    age: int
    phone: str
    join_date: str
    plan_type: str  # key of PLAN_DAYS
    active: bool = True  # cached; recomputed by lifecycle.sync_auto_expire
    bonus_days: int = 0  # accumulated same-plan extensions


@dataclass
class MembershipStats:
    today: str
    total: int
    active_count: int
    plan_counts: dict[str, int] = field(default_factory=dict)
    near_expiry: list[tuple[Member, int]] = field(default_factory=list)

    def plan_share(self, plan_type: str) -> float:
        """Percentage of active members holding plan_type (0.0 when nobody is active)."""
        if not self.active_count:
            return 0.0
        return self.plan_counts.get(plan_type, 0) / self.active_count * 100


@dataclass
class AdminUser:
    username: str
    password_hash: str
    force_password_change: bool = False
