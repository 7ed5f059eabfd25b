"""
db.py
Text-file persistence: members.txt (one member per line) and admin.txt.

Line format (UTF-8, '|' separated, no header):
    id|name|gender|age|phone|join_date|plan_type|active|bonus_days

Saving writes a staging file first and only replaces the live file once the
staging file is complete, so an interrupted save never truncates data.
"""

from __future__ import annotations

import logging
import os
import re
from contextlib import contextmanager
from pathlib import Path

from models import GENDERS, PLAN_DAYS, AdminUser, Member
import utils

log = logging.getLogger(__name__)

DATA_FILE = Path(os.environ.get("GYM_DATA_FILE") or Path(__file__).with_name("members.txt"))
ADMIN_FILE = Path(os.environ.get("GYM_ADMIN_FILE") or Path(__file__).with_name("admin.txt"))

FIELD_COUNT = 9
SEPARATOR = "|"

_INT = re.compile(r"-?[0-9]+")


def _to_int(text: str) -> int | None:
    return int(text) if _INT.fullmatch(text) else None


@contextmanager
def staged_write(path: Path):
    """
    Yield a text file opened on the staging path; replace `path` with it
    only if the block finishes without error. The staging file is removed
    on failure and the live file is left as it was.
    """
    path = Path(path)
    tmp = path.with_name(path.name + ".tmp")
    try:
        with open(tmp, "w", encoding="utf-8", newline="\n") as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def format_line(m: Member) -> str:
    return SEPARATOR.join(
        [
            str(m.id),
            m.name,
            m.gender,
            str(m.age),
            m.phone,
            m.join_date,
            m.plan_type,
            "1" if m.active else "0",
            str(m.bonus_days),
        ]
    )


def parse_line(line: str) -> Member | None:
    """Parse one stored line; None if any field fails validation."""
    parts = line.rstrip("\r\n").split(SEPARATOR)
    if len(parts) < FIELD_COUNT:
        return None
    raw_id, name, gender, raw_age, phone, join_date, plan_type, raw_active, raw_bonus = parts[:FIELD_COUNT]

    member_id = _to_int(raw_id)
    age = _to_int(raw_age)
    bonus_days = _to_int(raw_bonus)

    if member_id is None or member_id <= 0:
        return None
    if not utils.is_valid_name(name):
        return None
    if gender not in GENDERS:
        return None
    if age is None or not utils.is_valid_age(age):
        return None
    if not utils.is_valid_phone(phone):
        return None
    if not utils.is_valid_date(join_date):
        return None
    if plan_type not in PLAN_DAYS:
        return None
    if raw_active not in ("0", "1"):
        return None
    if bonus_days is None or bonus_days < 0:
        return None

    return Member(
        id=member_id,
        name=name,
        gender=gender,
        age=age,
        phone=phone,
        join_date=join_date,
        plan_type=plan_type,
        active=raw_active == "1",
        bonus_days=bonus_days,
    )


def load_members(path: Path = DATA_FILE) -> list[Member]:
    """
    Read every valid member from path, in file order.
    Missing or unreadable files yield an empty list; bad lines are skipped.
    """
    path = Path(path)
    if not path.exists():
        log.info("No data file at %s, starting empty", path)
        return []

    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except (OSError, UnicodeDecodeError) as e:
        log.error("Failed to read members from %s: %s", path, e)
        return []

    members: list[Member] = []
    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        member = parse_line(line)
        if member is None:
            log.warning("Skipping invalid line %d in %s", lineno, path)
            continue
        members.append(member)

    log.info("Loaded %d member(s) from %s", len(members), path)
    return members


def save_members(members, path: Path = DATA_FILE) -> bool:
    """Write all members to path via the staging file. Returns success."""
    path = Path(path)
    try:
        with staged_write(path) as f:
            for m in members:
                f.write(format_line(m) + "\n")
    except OSError as e:
        log.error("Failed to save members to %s: %s", path, e)
        return False
    return True


def load_admin(path: Path = ADMIN_FILE) -> AdminUser | None:
    path = Path(path)
    if not path.exists():
        return None
    try:
        line = path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        log.error("Failed to read admin credentials from %s: %s", path, e)
        return None

    parts = line.split(SEPARATOR)
    if len(parts) != 3 or not parts[0] or not parts[1] or parts[2] not in ("0", "1"):
        log.warning("Ignoring malformed admin file %s", path)
        return None
    return AdminUser(parts[0], parts[1], parts[2] == "1")


def save_admin(admin: AdminUser, path: Path = ADMIN_FILE) -> bool:
    path = Path(path)
    try:
        with staged_write(path) as f:
            flag = "1" if admin.force_password_change else "0"
            f.write(SEPARATOR.join([admin.username, admin.password_hash, flag]) + "\n")
    except OSError as e:
        log.error("Failed to save admin credentials to %s: %s", path, e)
        return False
    return True
