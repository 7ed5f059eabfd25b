"""
utils.py
Calendar arithmetic, validation, exports, sample data.
"""

from __future__ import annotations

import re
from datetime import date, timedelta
import pandas as pd

from models import (
    GENDERS,
    MAX_AGE,
    MIN_AGE,
    NAME_MAX_LENGTH,
    PHONE_LENGTH,
    PLAN_DAYS,
    Member,
    MembershipStats,
)

INVALID_DATE = 0

_ISO_DATE = re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2})")
_MONTH_DAYS = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


def today_iso() -> str:
    return date.today().isoformat()


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def is_leap_year(year: int) -> bool:
    return (year % 4 == 0 and year % 100 != 0) or year % 400 == 0


def days_in_month(year: int, month: int) -> int:
    if month == 2 and is_leap_year(year):
        return 29
    return _MONTH_DAYS[month - 1]


def date_to_days(d: str) -> int:
    """
    Map a YYYY-MM-DD string onto a day axis where the difference of two
    dates is exactly the number of days between them.
    Returns INVALID_DATE (0) for malformed input or impossible dates
    (month 13, Feb 29 in a common year, ...).
    """
    if not isinstance(d, str):
        return INVALID_DATE
    m = _ISO_DATE.fullmatch(d)
    if not m:
        return INVALID_DATE
    year, month, day = (int(part) for part in m.groups())
    if year < 1 or not 1 <= month <= 12:
        return INVALID_DATE
    if not 1 <= day <= days_in_month(year, month):
        return INVALID_DATE
    return date(year, month, day).toordinal()


def days_to_date(days: int) -> str:
    """Inverse of date_to_days. Raises ValueError for days < 1."""
    return date.fromordinal(days).isoformat()


def is_valid_date(d: str) -> bool:
    return date_to_days(d) != INVALID_DATE


def is_valid_age(age) -> bool:
    try:
        value = int(age)
    except (TypeError, ValueError):
        return False
    return MIN_AGE <= value <= MAX_AGE


def is_valid_phone(phone: str) -> bool:
    """11 ASCII digits, nothing else."""
    return (
        isinstance(phone, str)
        and len(phone) == PHONE_LENGTH
        and all("0" <= ch <= "9" for ch in phone)
    )


def is_valid_name(name: str) -> bool:
    if not isinstance(name, str) or not name:
        return False
    if len(name) > NAME_MAX_LENGTH or "|" in name:
        return False
    return not any(ch.isspace() for ch in name)


def validate_member_inputs(name: str, gender: str, age, phone: str, plan_type: str) -> list[str]:
    errors: list[str] = []
    if not is_valid_name(name):
        errors.append(f"Name is required (no spaces or '|', max {NAME_MAX_LENGTH} characters).")
    if gender not in GENDERS:
        errors.append("Gender must be 'male' or 'female'.")
    if not is_valid_age(age):
        errors.append(f"Age must be between {MIN_AGE} and {MAX_AGE}.")
    if not is_valid_phone(phone):
        errors.append(f"Phone must be exactly {PHONE_LENGTH} digits.")
    if plan_type not in PLAN_DAYS:
        errors.append("Plan type must be monthly, quarterly or yearly.")
    return errors


def format_days_left(days_left: int | None) -> str:
    return "---" if days_left is None else f"{days_left} days"


def members_to_frame(rows: list[dict]) -> pd.DataFrame:
    columns = ["id", "name", "gender", "age", "phone", "join_date", "plan_type",
               "active", "bonus_days", "days_left"]
    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows, columns=columns)


def members_to_csv_bytes(rows: list[dict]) -> bytes:
    df = members_to_frame(rows)
    return df.to_csv(index=False).encode("utf-8")


def plan_mix_frame(stats: MembershipStats) -> pd.DataFrame:
    """Active members per plan with their share of all active members."""
    df = pd.DataFrame(
        {
            "plan_type": list(PLAN_DAYS),
            "members": [stats.plan_counts.get(p, 0) for p in PLAN_DAYS],
        }
    )
    df["share_pct"] = [round(stats.plan_share(p), 1) for p in PLAN_DAYS]
    return df


def near_expiry_frame(stats: MembershipStats) -> pd.DataFrame:
    rows = [
        {"id": m.id, "name": m.name, "phone": m.phone, "plan_type": m.plan_type, "days_left": left}
        for m, left in stats.near_expiry
    ]
    if not rows:
        return pd.DataFrame(columns=["id", "name", "phone", "plan_type", "days_left"])
    return pd.DataFrame(rows).sort_values("days_left", kind="stable").reset_index(drop=True)


def sample_members(today: str | None = None) -> list[Member]:
    """
    Four demo members relative to today:
    a yearly member mid-plan, a lapsed monthly member, a monthly member
    about to expire and a quarterly member who joined today.
    """
    base = parse_iso(today or today_iso())
    return [
        Member(None, "Zhang_San", "male", 25, "13800138000",
               (base - timedelta(days=40)).isoformat(), "yearly"),
        Member(None, "Li_Si", "female", 30, "13912345678",
               (base - timedelta(days=200)).isoformat(), "monthly"),
        Member(None, "Wang_Wu", "male", 45, "13666666666",
               (base - timedelta(days=25)).isoformat(), "monthly"),
        Member(None, "Zhao_Liu", "female", 22, "13777777777",
               base.isoformat(), "quarterly"),
    ]


def insert_sample_data(service) -> list[Member]:
    """
    Add the demo members through the service (saved immediately).
    All four are added or none are; the console only offers this on an empty store.
    """
    return service.add_records(sample_members(service.today()))
