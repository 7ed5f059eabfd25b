import pytest

import db
import utils
from errors import (
    MemberNotFoundError,
    MemberStillActiveError,
    PersistenceError,
    PlanChangeError,
    StoreFullError,
    ValidationError,
)
from service import MembershipService
from store import MemberStore
from conftest import FixedClock, make_member


def add_alice(service, plan="monthly"):
    return service.add_member("Alice", "female", 30, "13800138000", plan)


def test_add_member_defaults_and_saves(service, data_file):
    m = add_alice(service)
    assert (m.id, m.join_date, m.active, m.bonus_days) == (1001, "2024-01-20", True, 0)
    assert db.load_members(data_file) == [m]


def test_add_member_validation_error_lists_messages(service, data_file):
    with pytest.raises(ValidationError) as exc:
        service.add_member("Bad Name", "female", 99, "123", "monthly")
    assert len(exc.value.messages) == 3
    assert len(service.store) == 0
    assert not data_file.exists()


def test_add_member_refused_when_full(data_file, clock):
    service = MembershipService(MemberStore(capacity=1), path=data_file, clock=clock)
    add_alice(service)
    with pytest.raises(StoreFullError):
        add_alice(service)


def test_open_hydrates_and_syncs(data_file):
    data_file.write_text(
        "\n".join(
            [
                "2001|Alice|female|30|13800138000|2024-01-01|monthly|1|0",
                "2002|Bob|male|40|13912345678|2024-01-30|monthly|1|0",
                "broken|line",
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    service = MembershipService.open(data_file, clock=FixedClock("2024-02-05"))
    assert service.first_run is False
    assert [m.id for m in service.store] == [2001, 2002]
    assert service.store.get(2001).active is False
    assert service.store.get(2002).active is True
    assert service.store.next_id == 2003


def test_open_without_file_is_first_run(data_file, clock):
    service = MembershipService.open(data_file, clock=clock)
    assert service.first_run is True
    assert service.list_members() == []


def test_open_drops_duplicate_ids(data_file, clock):
    line = "2001|Alice|female|30|13800138000|2024-01-10|monthly|1|0"
    data_file.write_text(line + "\n" + line.replace("Alice", "Eve") + "\n", encoding="utf-8")
    service = MembershipService.open(data_file, clock=clock)
    assert [m.name for m in service.store] == ["Alice"]


def test_reads_sync_before_returning(service, clock):
    m = add_alice(service)
    clock.today = "2024-03-01"
    assert service.get_member(m.id).active is False
    assert service.days_left(m) is None


def test_get_unknown_member(service):
    with pytest.raises(MemberNotFoundError):
        service.get_member(1)


def test_search_by_substring(service):
    a = add_alice(service)
    service.add_member("Bob", "male", 40, "13912345678", "yearly")
    assert service.search("lic") == [a]


def test_update_phone_only(service, data_file):
    m = add_alice(service)
    service.update_phone(m.id, "13999999999")
    assert m.phone == "13999999999"
    assert (m.name, m.plan_type, m.join_date) == ("Alice", "monthly", "2024-01-20")
    assert db.load_members(data_file)[0].phone == "13999999999"
    with pytest.raises(ValidationError):
        service.update_phone(m.id, "12")
    with pytest.raises(MemberNotFoundError):
        service.update_phone(9999, "13999999999")


def test_deactivate_then_delete(service, data_file):
    m = add_alice(service)
    with pytest.raises(MemberStillActiveError):
        service.delete(m.id)
    assert len(service.store) == 1

    assert service.deactivate(m.id) is True
    assert service.deactivate(m.id) is False
    assert service.delete(m.id) is m
    assert len(service.store) == 0
    assert db.load_members(data_file) == []


def test_delete_unknown(service):
    with pytest.raises(MemberNotFoundError):
        service.delete(4242)


def test_renew_extension_and_policy(service, clock, data_file):
    m = add_alice(service)
    clock.today = "2024-02-01"
    assert service.renew(m.id, "monthly") == "extended"
    assert service.renew(m.id, "monthly") == "extended"
    assert (m.bonus_days, m.plan_type, m.join_date) == (60, "monthly", "2024-01-20")

    with pytest.raises(PlanChangeError):
        service.renew(m.id, "yearly")
    assert db.load_members(data_file)[0].bonus_days == 60


def test_renew_after_expiry_is_fresh(service, clock):
    m = add_alice(service, plan="quarterly")
    clock.today = "2024-12-01"
    assert service.renew(m.id, "monthly") == "fresh"
    assert (m.join_date, m.plan_type, m.bonus_days, m.active) == ("2024-12-01", "monthly", 0, True)


def test_renew_unknown_member(service):
    with pytest.raises(MemberNotFoundError):
        service.renew(77, "monthly")


def test_failed_save_keeps_memory_state(service, data_file, monkeypatch):
    m = add_alice(service)
    before = data_file.read_bytes()
    monkeypatch.setattr(db, "save_members", lambda members, path: False)

    with pytest.raises(PersistenceError):
        service.update_phone(m.id, "13911111111")
    assert m.phone == "13911111111"
    assert data_file.read_bytes() == before

    monkeypatch.undo()
    service.save()
    assert db.load_members(data_file)[0].phone == "13911111111"


def test_statistics_and_rows(service, clock):
    add_alice(service)
    service.add_member("Bob", "male", 40, "13912345678", "yearly")
    stats = service.statistics()
    assert stats.active_count == 2
    assert [m.name for m, left in service.near_expiry()] == ["Alice"]

    clock.today = "2024-02-25"
    rows = service.member_rows()
    assert [r["days_left"] for r in rows] == [None, 329]
    assert [r["active"] for r in rows] == [False, True]


def test_sample_data(service):
    added = utils.insert_sample_data(service)
    assert [m.id for m in added] == [1001, 1002, 1003, 1004]
    by_name = {m.name: m for m in service.list_members()}
    assert by_name["Li_Si"].active is False
    assert by_name["Zhang_San"].active is True
    assert [m.name for m, _ in service.near_expiry()] == ["Wang_Wu"]


def test_sample_data_all_or_nothing_when_full(data_file, clock):
    service = MembershipService(MemberStore(capacity=3), path=data_file, clock=clock)
    add_alice(service)
    with pytest.raises(StoreFullError):
        utils.insert_sample_data(service)
    assert [m.name for m in service.store] == ["Alice"]
    assert [m.name for m in db.load_members(data_file)] == ["Alice"]


def test_add_records_rejects_whole_batch_on_invalid_record(service, data_file):
    add_alice(service)
    batch = [make_member(name="Bob"), make_member(name="Bad Name")]
    with pytest.raises(ValidationError):
        service.add_records(batch)
    assert len(service.store) == 1
    assert len(db.load_members(data_file)) == 1
    assert [m.id for m in batch] == [None, None]


def test_add_records_leaves_inputs_untouched(service):
    batch = [make_member(name="Bob")]
    added = service.add_records(batch)
    assert added[0].id == 1001
    assert batch[0].id is None


def test_update_phone_saves_synced_status(service, clock, data_file):
    m = add_alice(service)
    clock.today = "2024-03-01"
    service.update_phone(m.id, "13999999999")
    saved = db.load_members(data_file)[0]
    assert (saved.phone, saved.active) == ("13999999999", False)


def test_days_left_syncs_stale_member(service):
    stale = service.store.insert(make_member(join_date="2023-11-01"))
    assert stale.active is True
    assert service.days_left(stale) is None
    assert stale.active is False
