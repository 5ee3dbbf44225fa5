import threading
import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import connection

from audit.models import AuditAction, AuditEntry
from auctions import services
from auctions.models import Auction, AuctionStatus, Bid
from auctions.resolver import resolve_winner
from auctions.services import ClosureOutcome, close_auction, place_bid
from notifications.intents import NotificationType
from notifications.models import Notification

pytestmark = pytest.mark.django_db


@pytest.fixture
def after_deadline(auction):
    return auction.end_time + timedelta(seconds=1)


def test_lowest_bid_wins_example(auction, consignor, driver_x, driver_y, now, after_deadline):
    place_bid(auction.id, driver_x, '500', now=now + timedelta(minutes=1))
    y_bid = place_bid(auction.id, driver_y, '300', now=now + timedelta(minutes=2))

    assert [i.recipient_id for i in y_bid.intents if i.type == NotificationType.OUTBID] == [driver_x.id]

    result = close_auction(auction.id, now=after_deadline)

    assert result.outcome == ClosureOutcome.COMPLETED
    assert result.winner_id == driver_y.id
    assert result.winning_amount == Decimal('300.00')

    auction.refresh_from_db()
    assert auction.status == AuctionStatus.COMPLETED
    assert auction.winner_id == driver_y.id
    assert auction.winning_bid_id == y_bid.bid_id
    assert Bid.objects.get(auction=auction, bidder=driver_y).is_winning_bid is True
    assert Bid.objects.get(auction=auction, bidder=driver_x).is_winning_bid is False

    sent = {(i.recipient_id, i.type) for i in result.intents}
    assert (driver_y.id, NotificationType.WINNER_DETERMINED) in sent
    assert (consignor.id, NotificationType.AUCTION_COMPLETED) in sent
    assert (driver_x.id, NotificationType.AUCTION_ENDED_NOT_WON) in sent


def test_no_bids_completes_without_winner(auction, consignor, after_deadline):
    result = close_auction(auction.id, now=after_deadline)

    assert result.outcome == ClosureOutcome.COMPLETED
    assert not result.has_winner
    assert [(i.recipient_id, i.type) for i in result.intents] == [
        (consignor.id, NotificationType.AUCTION_ENDED_NO_WINNER),
    ]
    auction.refresh_from_db()
    assert auction.status == AuctionStatus.COMPLETED
    assert auction.winner_id is None
    assert auction.winning_bid_id is None


def test_tie_goes_to_earliest_bid(auction, driver_x, driver_y, now, after_deadline):
    place_bid(auction.id, driver_x, '400', now=now + timedelta(minutes=5))
    place_bid(auction.id, driver_y, '400', now=now + timedelta(minutes=1))

    result = close_auction(auction.id, now=after_deadline)

    assert result.winner_id == driver_y.id


def test_closing_twice_is_a_no_op(auction, driver_x, now, after_deadline):
    place_bid(auction.id, driver_x, '500', now=now)

    first = close_auction(auction.id, now=after_deadline)
    second = close_auction(auction.id, now=after_deadline + timedelta(minutes=1))

    assert first.outcome == ClosureOutcome.COMPLETED
    assert second.outcome == ClosureOutcome.ALREADY_CLOSED
    assert second.intents == []
    assert AuditEntry.objects.filter(auction=auction, action=AuditAction.AUCTION_COMPLETED).count() == 1


def test_repeated_closers_produce_one_winner(auction, driver_x, driver_y, now, after_deadline):
    place_bid(auction.id, driver_x, '500', now=now)
    place_bid(auction.id, driver_y, '450', now=now)

    outcomes = [close_auction(auction.id, now=after_deadline).outcome for _ in range(5)]

    assert outcomes.count(ClosureOutcome.COMPLETED) == 1
    assert outcomes.count(ClosureOutcome.ALREADY_CLOSED) == 4
    assert Bid.objects.filter(auction=auction, is_winning_bid=True).count() == 1


def test_losing_the_status_swap_reports_already_closed(monkeypatch, auction, driver_x, now, after_deadline):
    place_bid(auction.id, driver_x, '500', now=now)

    def closed_underneath(bids, policy):
        # another closer commits between our read and our write
        Auction.objects.filter(pk=auction.pk).update(status=AuctionStatus.COMPLETED)
        return resolve_winner(bids, policy=policy)

    monkeypatch.setattr(services, 'resolve_winner', closed_underneath)

    result = close_auction(auction.id, now=after_deadline)

    assert result.outcome == ClosureOutcome.ALREADY_CLOSED
    assert result.intents == []
    assert not Bid.objects.filter(auction=auction, is_winning_bid=True).exists()
    assert not AuditEntry.objects.filter(auction=auction, action=AuditAction.AUCTION_COMPLETED).exists()


def test_lowest_unique_policy(settings, auction, driver_x, driver_y, driver_z, now, after_deadline):
    settings.AUCTION_WINNER_POLICY = 'lowest_unique'
    place_bid(auction.id, driver_x, '300', now=now)
    place_bid(auction.id, driver_y, '300', now=now + timedelta(minutes=1))
    place_bid(auction.id, driver_z, '350', now=now + timedelta(minutes=2))

    result = close_auction(auction.id, now=after_deadline)

    assert result.winner_id == driver_z.id


def test_closure_is_audited_as_system_action(auction, driver_x, now, after_deadline):
    place_bid(auction.id, driver_x, '500', now=now)
    close_auction(auction.id, now=after_deadline)

    entry = AuditEntry.objects.get(auction=auction, action=AuditAction.AUCTION_COMPLETED)
    assert entry.actor is None
    assert entry.details['winner_id'] == driver_x.id
    assert entry.details['winning_amount'] == '500.00'
    assert entry.details['bid_count'] == 1


def test_notifications_are_stored_after_commit(
        django_capture_on_commit_callbacks, auction, consignor, driver_x, now, after_deadline):
    place_bid(auction.id, driver_x, '500', now=now)

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        close_auction(auction.id, now=after_deadline)

    assert len(callbacks) == 1
    assert Notification.objects.filter(
        user=driver_x, notification_type=NotificationType.WINNER_DETERMINED,
    ).count() == 1
    assert Notification.objects.filter(
        user=consignor, notification_type=NotificationType.AUCTION_COMPLETED,
    ).count() == 1


def test_nothing_is_dispatched_before_commit(auction, driver_x, now, after_deadline):
    place_bid(auction.id, driver_x, '500', now=now)
    close_auction(auction.id, now=after_deadline)

    # the test transaction never commits
    assert not Notification.objects.exists()


def test_unknown_auction_is_already_closed(now):
    result = close_auction(uuid.uuid4(), now=now)

    assert result.outcome == ClosureOutcome.ALREADY_CLOSED
    assert result.intents == []


@pytest.mark.postgres
@pytest.mark.django_db(transaction=True)
def test_concurrent_closers_serialize_on_the_row_lock(auction, driver_x, driver_y, now, after_deadline):
    if connection.vendor != 'postgresql':
        pytest.skip("needs real row locks")
    place_bid(auction.id, driver_x, '500', now=now)
    place_bid(auction.id, driver_y, '450', now=now)

    closers = 6
    barrier = threading.Barrier(closers)
    outcomes = []

    def close():
        barrier.wait()
        try:
            outcomes.append(close_auction(auction.id, now=after_deadline).outcome)
        finally:
            connection.close()

    threads = [threading.Thread(target=close) for _ in range(closers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count(ClosureOutcome.COMPLETED) == 1
    assert outcomes.count(ClosureOutcome.ALREADY_CLOSED) == closers - 1
    auction.refresh_from_db()
    assert auction.winner_id == driver_y.id
    assert Bid.objects.filter(auction=auction, is_winning_bid=True).count() == 1
    assert AuditEntry.objects.filter(auction=auction, action=AuditAction.AUCTION_COMPLETED).count() == 1
