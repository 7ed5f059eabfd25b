"""
service.py
Operations the console calls. Every entry point syncs expiry status first;
every mutation writes the whole store back to disk immediately.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Callable, Iterable

import db
import lifecycle
import utils
from errors import (
    DuplicateMemberError,
    MemberNotFoundError,
    PersistenceError,
    StoreFullError,
    ValidationError,
)
from models import Member, MembershipStats
from store import MemberStore

log = logging.getLogger(__name__)


class MembershipService:
    def __init__(
        self,
        store: MemberStore | None = None,
        path: Path | str = db.DATA_FILE,
        clock: Callable[[], str] = utils.today_iso,
    ):
        self.store = store if store is not None else MemberStore()
        self.path = Path(path)
        self.clock = clock
        self.first_run = False

    @classmethod
    def open(
        cls,
        path: Path | str | None = None,
        clock: Callable[[], str] = utils.today_iso,
    ) -> "MembershipService":
        """Hydrate a store from disk and bring statuses up to date."""
        service = cls(path=path or db.DATA_FILE, clock=clock)
        service.first_run = not service.path.exists()

        for member in db.load_members(service.path):
            try:
                service.store.insert(member)
            except DuplicateMemberError:
                log.warning("Skipping duplicate member ID %s in %s", member.id, service.path)
            except StoreFullError:
                log.warning("Store full, ignoring remaining records in %s", service.path)
                break

        service.sync()
        return service

    def today(self) -> str:
        return self.clock()

    def sync(self) -> int:
        return lifecycle.sync_auto_expire(self.store, self.today())

    def save(self) -> None:
        if not db.save_members(self.store, self.path):
            raise PersistenceError(
                f"Could not save to {self.path}; changes are kept in memory, try saving again."
            )

    def _get(self, member_id: int) -> Member:
        member = self.store.get(member_id)
        if member is None:
            raise MemberNotFoundError(member_id)
        return member

    # ---------- queries ----------

    def list_members(self) -> list[Member]:
        self.sync()
        return self.store.all()

    def get_member(self, member_id: int) -> Member:
        self.sync()
        return self._get(member_id)

    def search(self, keyword: str) -> list[Member]:
        self.sync()
        return self.store.search_by_name(keyword)

    def days_left(self, member: Member) -> int | None:
        self.sync()
        return lifecycle.days_left(member, self.today())

    def member_rows(self, members: Iterable[Member] | None = None) -> list[dict]:
        """Plain dict rows (with days_left) for tables and CSV export."""
        if members is None:
            members = self.list_members()
        today = self.today()
        rows = []
        for m in members:
            rows.append(
                {
                    "id": m.id,
                    "name": m.name,
                    "gender": m.gender,
                    "age": m.age,
                    "phone": m.phone,
                    "join_date": m.join_date,
                    "plan_type": m.plan_type,
                    "active": m.active,
                    "bonus_days": m.bonus_days,
                    "days_left": lifecycle.days_left(m, today),
                }
            )
        return rows

    def statistics(self) -> MembershipStats:
        self.sync()
        return lifecycle.statistics(self.store, self.today())

    def near_expiry(self) -> list[tuple[Member, int]]:
        self.sync()
        return lifecycle.near_expiry(self.store, self.today())

    # ---------- mutations ----------

    def add_member(self, name: str, gender: str, age, phone: str, plan_type: str) -> Member:
        errors = utils.validate_member_inputs(name, gender, age, phone, plan_type)
        if errors:
            raise ValidationError(errors)

        member = Member(
            id=None,
            name=name,
            gender=gender,
            age=int(age),
            phone=phone,
            join_date=self.today(),
            plan_type=plan_type,
        )
        self.store.insert(member)
        log.info("Added member %s (%s, %s)", member.id, member.name, member.plan_type)
        self.save()
        return member

    def add_records(self, members: Iterable[Member]) -> list[Member]:
        """
        Insert copies of prepared records (new ids assigned), then sync and
        save once. Nothing is inserted unless the whole batch is valid and fits.
        """
        batch = [replace(m, id=None) for m in members]
        for m in batch:
            errors = utils.validate_member_inputs(m.name, m.gender, m.age, m.phone, m.plan_type)
            if errors or not utils.is_valid_date(m.join_date):
                raise ValidationError(errors or [f"Invalid join date: {m.join_date!r}."])
        if len(self.store) + len(batch) > self.store.capacity:
            raise StoreFullError(self.store.capacity)

        added = [self.store.insert(m) for m in batch]
        self.sync()
        self.save()
        return added

    def update_phone(self, member_id: int, phone: str) -> Member:
        if not utils.is_valid_phone(phone):
            raise ValidationError("Phone must be exactly 11 digits.")
        self.sync()
        member = self._get(member_id)
        member.phone = phone
        self.save()
        return member

    def deactivate(self, member_id: int) -> bool:
        self.sync()
        changed = lifecycle.deactivate(self._get(member_id))
        if changed:
            self.save()
        return changed

    def delete(self, member_id: int) -> Member:
        self.sync()
        member = self.store.remove(member_id)
        log.info("Deleted member %s", member_id)
        self.save()
        return member

    def renew(self, member_id: int, plan_type: str) -> str:
        self.sync()
        outcome = lifecycle.renew(self._get(member_id), plan_type, self.today())
        self.save()
        return outcome
