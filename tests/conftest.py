import pytest

from models import Member
from service import MembershipService


def make_member(**overrides) -> Member:
    fields = dict(
        id=None,
        name="Alice",
        gender="female",
        age=30,
        phone="13800138000",
        join_date="2024-01-01",
        plan_type="monthly",
        active=True,
        bonus_days=0,
    )
    fields.update(overrides)
    return Member(**fields)


class FixedClock:
    """Callable clock whose date tests can move."""

    def __init__(self, today: str):
        self.today = today

    def __call__(self) -> str:
        return self.today


@pytest.fixture
def clock():
    return FixedClock("2024-01-20")


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "members.txt"


@pytest.fixture
def service(data_file, clock):
    return MembershipService(path=data_file, clock=clock)
