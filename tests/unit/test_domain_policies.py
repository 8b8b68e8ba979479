import pytest

from src.domain.policy.enforcement_policy import EnforcementPolicy
from src.domain.policy.intake_policy import IntakePolicy


def test_intake_policy_defaults():
    p = IntakePolicy()
    assert p.pool_limit == 2
    assert p.min_size == 50
    assert p.normalize_max_bytes == 10 << 20
    assert p.allow_list == frozenset()


def test_intake_policy_size_threshold_is_inclusive():
    p = IntakePolicy(min_size=50)
    assert p.is_too_small(0)
    assert p.is_too_small(50)
    assert not p.is_too_small(51)


def test_intake_policy_allow_list():
    p = IntakePolicy(allow_list=frozenset({b"abc"}))
    assert p.is_allow_listed(b"abc")
    assert not p.is_allow_listed(b"abd")


@pytest.mark.parametrize(
    "kwargs",
    [{"pool_limit": 0}, {"min_size": -1}, {"normalize_max_bytes": -1}],
)
def test_intake_policy_rejects_invalid_values(kwargs):
    with pytest.raises(ValueError):
        IntakePolicy(**kwargs)


def test_owner_room_times_out_uploader():
    d = EnforcementPolicy().decide(
        room_owner=True, room_privileged=True, uploader="bob", upload_id="b", upload_ip="10.0.0.1"
    )
    assert d.timeout_minutes == 5
    assert d.ban_address is None
    assert d.delete is True
    assert d.notice == "bob: pls, no dupes, not even @b"


def test_privileged_room_bans_address():
    d = EnforcementPolicy().decide(
        room_owner=False, room_privileged=True, uploader="bob", upload_id="b", upload_ip="10.0.0.1"
    )
    assert d.timeout_minutes is None
    assert d.ban_address == "10.0.0.1"
    assert d.ban_hours == 0.1
    assert d.ban_reason == "Dupe"
    assert d.delete is True


def test_privileged_room_without_address_only_notices_and_deletes():
    d = EnforcementPolicy().decide(
        room_owner=False, room_privileged=True, uploader="bob", upload_id="b", upload_ip=None
    )
    assert d.timeout_minutes is None
    assert d.ban_address is None
    assert d.delete is True
    assert "@b" in d.notice


def test_plain_room_only_notices_and_deletes():
    d = EnforcementPolicy().decide(
        room_owner=False, room_privileged=False, uploader="bob", upload_id="b", upload_ip="10.0.0.1"
    )
    assert d.timeout_minutes is None
    assert d.ban_address is None
    assert d.delete is True


def test_custom_notice_template():
    p = EnforcementPolicy(notice_template="{upload_id} is a repost by {uploader}")
    d = p.decide(room_owner=False, room_privileged=False, uploader="bob", upload_id="b")
    assert d.notice == "b is a repost by bob"


def test_enforcement_policy_rejects_unknown_placeholder():
    with pytest.raises(ValueError):
        EnforcementPolicy(notice_template="{room}: no dupes")
