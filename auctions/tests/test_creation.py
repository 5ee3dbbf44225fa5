from datetime import timedelta

import pytest

from audit.models import AuditAction
from auctions.exceptions import InvalidAuction
from auctions.models import AuctionStatus, VehicleType
from auctions.services import create_auction

pytestmark = pytest.mark.django_db


def test_new_auction_is_active_and_audited(consignor, now):
    auction = create_auction(
        consignor,
        title='Furniture to Nashik',
        vehicle_type=VehicleType.LARGE_TRUCK,
        end_time=now + timedelta(hours=6),
        now=now,
    )

    assert auction.status == AuctionStatus.ACTIVE
    assert auction.start_time == now
    assert auction.winner_id is None
    assert auction.is_open_for_bids(now)
    entry = auction.audit_entries.get()
    assert entry.action == AuditAction.AUCTION_CREATED
    assert entry.actor == consignor


@pytest.mark.parametrize('duration', [timedelta(minutes=4), timedelta(days=7, seconds=1)])
def test_duration_outside_bounds_is_rejected(make_auction, duration):
    with pytest.raises(InvalidAuction):
        make_auction(duration=duration)


def test_duration_bounds_come_from_settings(settings, make_auction):
    settings.AUCTION_MIN_DURATION_SECONDS = 3600
    with pytest.raises(InvalidAuction):
        make_auction(duration=timedelta(minutes=30))


def test_end_time_in_the_past_is_rejected(consignor, now):
    with pytest.raises(InvalidAuction):
        create_auction(
            consignor, title='Late', vehicle_type=VehicleType.MINI_TRUCK,
            start_time=now - timedelta(hours=2), end_time=now - timedelta(minutes=1), now=now,
        )


def test_end_before_start_is_rejected(consignor, now):
    with pytest.raises(InvalidAuction):
        create_auction(
            consignor, title='Backwards', vehicle_type=VehicleType.MINI_TRUCK,
            start_time=now + timedelta(hours=2), end_time=now + timedelta(hours=1), now=now,
        )


def test_unknown_vehicle_type(make_auction):
    with pytest.raises(InvalidAuction):
        make_auction(vehicle_type='hovercraft')


def test_expiry_uses_the_injected_clock(auction):
    assert not auction.is_expired(auction.end_time - timedelta(seconds=1))
    assert auction.is_expired(auction.end_time)
