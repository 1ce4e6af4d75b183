from datetime import datetime, timezone

import pytest
from lxml import etree

from tvadelta.fragments import (
    InvalidExpirationError,
    expiration,
    fragment_id,
    identity,
    is_expired,
    is_fragment,
    parse_datetime,
)

TVA = "urn:tva:metadata:2010"


def element(xml: str) -> etree._Element:
    return etree.fromstring(xml)


@pytest.mark.parametrize(
    "xml, expected",
    [
        (f'<ProgramInformation xmlns="{TVA}" programId="crid://p/1"/>', "crid://p/1"),
        (f'<GroupInformation xmlns="{TVA}" groupId="crid://g/1"/>', "crid://g/1"),
        (f'<ServiceInformation xmlns="{TVA}" serviceId="svc1"/>', "svc1"),
        (f'<Schedule xmlns="{TVA}" serviceId="svc2"/>', "svc2"),
        (
            f'<BroadcastEvent xmlns="{TVA}"><InstanceMetadataId>imi:1</InstanceMetadataId></BroadcastEvent>',
            "imi:1",
        ),
        (
            f'<OnDemandProgram xmlns="{TVA}"><InstanceMetadataId>imi:2</InstanceMetadataId></OnDemandProgram>',
            "imi:2",
        ),
    ],
)
def test_identity_table(xml, expected):
    assert identity(element(xml)) == expected
    assert fragment_id(element(xml)) == expected


def test_identity_uses_local_name_regardless_of_prefix():
    el = element(f'<t:ProgramInformation xmlns:t="{TVA}" programId="p"/>')
    assert identity(el) == "p"


def test_explicit_fragment_id_wins():
    el = element(f'<ProgramInformation xmlns="{TVA}" fragmentId="f1" programId="p1"/>')
    assert fragment_id(el) == "f1"
    assert identity(el) == "p1"


def test_fragment_id_on_unknown_element():
    el = element('<Anything fragmentId="f9"/>')
    assert fragment_id(el) == "f9"
    assert identity(el) is None


@pytest.mark.parametrize(
    "xml",
    [
        f'<ProgramInformation xmlns="{TVA}"/>',
        f'<Schedule xmlns="{TVA}" start="x"/>',
        f'<BroadcastEvent xmlns="{TVA}"/>',
        f'<BroadcastEvent xmlns="{TVA}"><InstanceMetadataId>a</InstanceMetadataId>'
        "<InstanceMetadataId>b</InstanceMetadataId></BroadcastEvent>",
        # InstanceMetadataId outside the TVA namespace does not count
        f'<BroadcastEvent xmlns="{TVA}"><InstanceMetadataId xmlns="urn:other">a</InstanceMetadataId></BroadcastEvent>',
        '<Title programId="p1"/>',
    ],
)
def test_no_identity(xml):
    el = element(xml)
    assert fragment_id(el) is None
    assert not is_fragment(el)


def test_comment_is_not_a_fragment():
    root = element("<root><!-- note --></root>")
    assert not is_fragment(root[0])


def test_expiration_parsing():
    el = element('<P fragmentExpirationDate="2024-03-01T12:00:00Z"/>')
    assert expiration(el) == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)
    assert expiration(element("<P/>")) is None


def test_naive_expiration_is_utc():
    assert parse_datetime("2024-03-01T12:00:00") == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)


def test_invalid_expiration():
    with pytest.raises(InvalidExpirationError):
        expiration(element('<P fragmentExpirationDate="tomorrow"/>'))


def test_is_expired_boundary():
    t = datetime(2024, 3, 1, tzinfo=timezone.utc)
    assert is_expired(t, t)
    assert not is_expired(t, datetime(2024, 2, 29, tzinfo=timezone.utc))
    assert not is_expired(None, t)


@pytest.mark.parametrize(
    "value, microsecond",
    [
        ("2024-01-01T00:00:00.5Z", 500000),
        ("2024-01-01T00:00:00.1234567Z", 123456),
        ("2024-01-01T00:00:00.250+00:00", 250000),
    ],
)
def test_fractional_seconds(value, microsecond):
    parsed = parse_datetime(value)
    assert parsed == datetime(2024, 1, 1, 0, 0, 0, microsecond, tzinfo=timezone.utc)


def test_offset_expiration_compared_in_utc():
    parsed = parse_datetime("2024-01-01T02:00:00+02:00")
    assert parsed == datetime(2024, 1, 1, tzinfo=timezone.utc)
