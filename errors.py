"""
errors.py
Exceptions raised by the store, lifecycle and service layers.
"""

from __future__ import annotations


class MembershipError(Exception):
    """Base class for every refusal the console reports to the operator."""


class ValidationError(MembershipError):
    def __init__(self, messages: list[str] | str):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__(" ".join(self.messages))


class PolicyError(MembershipError):
    """Operation refused by a membership rule; the record is left unmodified."""


class PlanChangeError(PolicyError):
    def __init__(self, member_id: int, current_plan: str, requested_plan: str):
        self.member_id = member_id
        self.current_plan = current_plan
        self.requested_plan = requested_plan
        super().__init__(
            f"Member {member_id} is still active on the {current_plan} plan; "
            f"cannot renew as {requested_plan}. Wait for expiry or deactivate first."
        )


class MemberStillActiveError(PolicyError):
    def __init__(self, member_id: int):
        self.member_id = member_id
        super().__init__(f"Member {member_id} is still active and cannot be deleted.")


class MemberNotFoundError(MembershipError):
    def __init__(self, member_id: int):
        self.member_id = member_id
        super().__init__(f"No member with ID {member_id}.")


class DuplicateMemberError(MembershipError):
    def __init__(self, member_id: int):
        self.member_id = member_id
        super().__init__(f"Member ID {member_id} already exists.")


class StoreFullError(MembershipError):
    def __init__(self, capacity: int):
        self.capacity = capacity
        super().__init__(f"Member store is full ({capacity} members).")


class PersistenceError(MembershipError):
    """Saving failed; the previously committed file is untouched."""
