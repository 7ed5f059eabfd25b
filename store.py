"""
store.py
In-memory member collection: keyed by id, enumerated in insertion order.
Knows nothing about dates; status is maintained by lifecycle.py.
"""

from __future__ import annotations

import logging
from typing import Iterator

from errors import DuplicateMemberError, MemberNotFoundError, MemberStillActiveError, StoreFullError
from models import FIRST_MEMBER_ID, MAX_MEMBERS, Member

log = logging.getLogger(__name__)


class MemberStore:
    def __init__(self, capacity: int = MAX_MEMBERS):
        self.capacity = capacity
        self.next_id = FIRST_MEMBER_ID
        # dicts keep insertion order, which is the enumeration order
        self._members: dict[int, Member] = {}

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[Member]:
        return iter(list(self._members.values()))

    def __contains__(self, member_id: object) -> bool:
        return member_id in self._members

    @property
    def is_full(self) -> bool:
        return len(self._members) >= self.capacity

    def all(self) -> list[Member]:
        return list(self._members.values())

    def insert(self, member: Member) -> Member:
        """
        Append a member. A member without an id gets the next one;
        an explicit id (records read from disk) is kept as is.
        """
        if self.is_full:
            raise StoreFullError(self.capacity)
        if member.id is None:
            member.id = self.next_id
        elif member.id <= 0:
            raise ValueError(f"Member id must be positive, got {member.id}")
        elif member.id in self._members:
            raise DuplicateMemberError(member.id)

        self._members[member.id] = member
        self.next_id = max(self.next_id, member.id + 1)
        return member

    def get(self, member_id: int) -> Member | None:
        return self._members.get(member_id)

    def remove(self, member_id: int) -> Member:
        member = self._members.get(member_id)
        if member is None:
            raise MemberNotFoundError(member_id)
        if member.active:
            log.warning("Refused to delete active member %s", member_id)
            raise MemberStillActiveError(member_id)
        del self._members[member_id]
        return member

    def search_by_name(self, keyword: str) -> list[Member]:
        return [m for m in self._members.values() if keyword in m.name]

    def clear(self) -> None:
        self._members.clear()
        self.next_id = FIRST_MEMBER_ID
