# auctions/services.py
"""Auction lifecycle: bid ledger, closure, cancellation cascade and expiry sweep.

Every transition is an explicit function. Each one runs in its own
transaction, takes the auction row lock and applies the status change
as a compare-and-swap (``filter(status=expected).update(...)``), so
concurrent callers for the same auction serialize and at most one wins.
Notification intents are returned to the caller and handed to the
dispatcher only after the transaction commits.
"""
import enum
import logging
import time
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from functools import partial
from typing import Dict, List, Optional

from django.conf import settings
from django.db import transaction, OperationalError, InterfaceError

from audit.models import AuditAction
from audit.utils import log_auction_activity
from notifications.intents import NotificationIntent, NotificationType
from notifications.utils import dispatch_intents

from .clock import is_expired, resolve_now
from .exceptions import (
    AuctionNotActive,
    AuctionNotCompleted,
    CannotCancelWinningBid,
    InvalidAmount,
    InvalidAuction,
    NotAuthorized,
    NotFound,
)
from .models import Auction, AuctionStatus, Bid, VehicleType
from .resolver import LOWEST, resolve_winner

logger = logging.getLogger(__name__)

TRANSIENT_DB_ERRORS = (OperationalError, InterfaceError)


class ClosureOutcome(str, enum.Enum):
    COMPLETED = 'completed'
    ALREADY_CLOSED = 'already_closed'


@dataclass
class BidPlacement:
    bid: Bid
    replaced: bool
    intents: List[NotificationIntent] = field(default_factory=list)

    @property
    def bid_id(self):
        return self.bid.id


@dataclass
class ClosureResult:
    auction_id: str
    outcome: ClosureOutcome
    winner_id: Optional[int] = None
    winning_bid_id: Optional[str] = None
    winning_amount: Optional[Decimal] = None
    bid_count: int = 0
    intents: List[NotificationIntent] = field(default_factory=list)

    @property
    def has_winner(self):
        return self.winner_id is not None


@dataclass
class WinnerCancellation:
    auction_id: str
    reopened: bool
    new_winner_id: Optional[int] = None
    new_winning_bid_id: Optional[str] = None
    new_end_time: Optional[object] = None
    intents: List[NotificationIntent] = field(default_factory=list)


@dataclass
class SweepResult:
    closed: List[str] = field(default_factory=list)
    already_closed: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def processed(self):
        return len(self.closed) + len(self.already_closed) + len(self.failed)


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------

def _winner_policy():
    return getattr(settings, 'AUCTION_WINNER_POLICY', LOWEST)


def _money(amount) -> str:
    return str(amount) if amount is not None else None


def _coerce_amount(amount) -> Decimal:
    try:
        value = Decimal(str(amount)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount()
    if not value.is_finite() or value <= 0:
        raise InvalidAmount()
    amount_field = Bid._meta.get_field('amount')
    if value.adjusted() >= amount_field.max_digits - amount_field.decimal_places:
        raise InvalidAmount("Bid amount is too large.")
    return value


def _lock_auction(auction_id) -> Auction:
    try:
        return Auction.objects.select_for_update().get(pk=auction_id)
    except Auction.DoesNotExist:
        raise NotFound()


def _intent(recipient_id, auction, type_, **payload):
    payload.setdefault('title', auction.title)
    return NotificationIntent(
        recipient_id=recipient_id,
        auction_id=str(auction.id),
        type=type_,
        payload=payload,
    )


def _hand_off(intents):
    if intents:
        transaction.on_commit(partial(dispatch_intents, list(intents)))


def _live_bidder_ids(auction):
    return sorted(set(auction.bids.live().values_list('bidder_id', flat=True)))


# ---------------------------------------------------------------------------
# creation
# ---------------------------------------------------------------------------

def create_auction(created_by, *, title, vehicle_type, end_time, description='',
                   consignment_date=None, start_time=None, now=None) -> Auction:
    """Open a new auction for *created_by*."""
    now = resolve_now(now)
    start_time = start_time or now

    if vehicle_type not in VehicleType.values:
        raise InvalidAuction(f"Unknown vehicle type: {vehicle_type}.")
    if end_time <= start_time:
        raise InvalidAuction("End time must be after start time.")
    if end_time <= now:
        raise InvalidAuction("End time must be in the future.")

    duration = (end_time - start_time).total_seconds()
    min_seconds = getattr(settings, 'AUCTION_MIN_DURATION_SECONDS', 5 * 60)
    max_seconds = getattr(settings, 'AUCTION_MAX_DURATION_SECONDS', 7 * 24 * 3600)
    if duration < min_seconds:
        raise InvalidAuction(f"Minimum auction duration is {min_seconds // 60} minutes.")
    if duration > max_seconds:
        raise InvalidAuction(f"Maximum auction duration is {max_seconds // 3600} hours.")

    with transaction.atomic():
        auction = Auction.objects.create(
            created_by=created_by,
            title=title,
            description=description,
            vehicle_type=vehicle_type,
            consignment_date=consignment_date,
            start_time=start_time,
            end_time=end_time,
            status=AuctionStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )
        log_auction_activity(
            auction, AuditAction.AUCTION_CREATED, actor=created_by, at=now,
            details={
                'title': title,
                'vehicle_type': vehicle_type,
                'end_time': end_time.isoformat(),
            },
        )

    logger.info("Auction %s created by user %s", auction.id, created_by.id)
    return auction


# ---------------------------------------------------------------------------
# bid ledger
# ---------------------------------------------------------------------------

def place_bid(auction_id, bidder, amount, now=None) -> BidPlacement:
    """Insert or replace *bidder*'s live bid on an active auction."""
    now = resolve_now(now)
    amount = _coerce_amount(amount)

    with transaction.atomic():
        auction = _lock_auction(auction_id)

        if auction.status != AuctionStatus.ACTIVE or is_expired(auction, now):
            raise AuctionNotActive()
        if auction.created_by_id == bidder.id:
            raise NotAuthorized("You cannot bid on your own job.")

        bid = auction.bids.live().select_for_update().filter(bidder=bidder).first()
        replaced = bid is not None
        if replaced:
            previous_amount = bid.amount
            bid.amount = amount
            bid.created_at = now
            bid.save(update_fields=['amount', 'created_at'])
        else:
            previous_amount = None
            bid = Bid.objects.create(auction=auction, bidder=bidder, amount=amount, created_at=now)

        # lowest wins, so anyone now sitting above the new amount is outbid
        outbid_ids = sorted(set(
            auction.bids.live()
            .filter(amount__gt=amount)
            .exclude(bidder_id=bidder.id)
            .values_list('bidder_id', flat=True)
        ))
        intents = [
            _intent(user_id, auction, NotificationType.OUTBID, amount=_money(amount))
            for user_id in outbid_ids
        ]
        intents.append(_intent(
            auction.created_by_id, auction, NotificationType.NEW_BID,
            amount=_money(amount), bid_id=str(bid.id),
        ))

        log_auction_activity(
            auction,
            AuditAction.BID_UPDATED if replaced else AuditAction.BID_PLACED,
            actor=bidder, at=now,
            details={
                'bid_id': str(bid.id),
                'amount': _money(amount),
                'previous_amount': _money(previous_amount),
            },
        )
        _hand_off(intents)

    logger.info(
        "Bid %s %s on auction %s by user %s for %s",
        bid.id, "updated" if replaced else "placed", auction.id, bidder.id, amount,
    )
    return BidPlacement(bid=bid, replaced=replaced, intents=intents)


def cancel_bid(bid_id, requester, now=None) -> List[NotificationIntent]:
    """Withdraw a non-winning bid while its auction is still open."""
    now = resolve_now(now)

    with transaction.atomic():
        try:
            bid = Bid.objects.live().get(pk=bid_id)
        except Bid.DoesNotExist:
            raise NotFound("This bid could not be found.")

        if bid.bidder_id != requester.id:
            raise NotAuthorized("You can only cancel your own bids.")

        auction = _lock_auction(bid.auction_id)
        if auction.status != AuctionStatus.ACTIVE or is_expired(auction, now):
            raise AuctionNotActive()

        try:
            bid = Bid.objects.live().select_for_update().get(pk=bid.pk)
        except Bid.DoesNotExist:
            # cancelled by a concurrent request after our first read
            raise NotFound("This bid could not be found.")
        if bid.is_winning_bid:
            raise CannotCancelWinningBid()

        amount = bid.amount
        bid.delete()

        intents = [_intent(
            auction.created_by_id, auction, NotificationType.BID_CANCELLED,
            amount=_money(amount),
        )]
        log_auction_activity(
            auction, AuditAction.BID_CANCELLED, actor=requester, at=now,
            details={'bid_id': str(bid_id), 'amount': _money(amount)},
        )
        _hand_off(intents)

    logger.info("Bid %s cancelled on auction %s by user %s", bid_id, auction.id, requester.id)
    return intents


# ---------------------------------------------------------------------------
# closure
# ---------------------------------------------------------------------------

def close_auction(auction_id, now=None) -> ClosureResult:
    """Resolve the winner of an active auction and complete it.

    Safe to call repeatedly: an auction that is no longer active (or no
    longer exists) yields ``ALREADY_CLOSED`` with no intents and no audit entry.
    """
    now = resolve_now(now)

    with transaction.atomic():
        auction = Auction.objects.select_for_update().filter(pk=auction_id).first()
        if auction is None:
            logger.warning("Auction %s not found, nothing to close", auction_id)
            return ClosureResult(auction_id=str(auction_id), outcome=ClosureOutcome.ALREADY_CLOSED)
        if auction.status != AuctionStatus.ACTIVE:
            logger.info("Auction %s already closed (%s)", auction_id, auction.status)
            return ClosureResult(auction_id=str(auction_id), outcome=ClosureOutcome.ALREADY_CLOSED)

        bids = list(auction.bids.live())
        winner = resolve_winner(bids, policy=_winner_policy())

        swapped = Auction.objects.filter(pk=auction.pk, status=AuctionStatus.ACTIVE).update(
            status=AuctionStatus.COMPLETED,
            winner_id=winner.bidder_id if winner else None,
            winning_bid_id=winner.id if winner else None,
            updated_at=now,
        )
        if not swapped:
            logger.info("Auction %s closed concurrently, skipping", auction_id)
            return ClosureResult(auction_id=str(auction_id), outcome=ClosureOutcome.ALREADY_CLOSED)

        auction.bids.update(is_winning_bid=False)
        if winner:
            Bid.objects.filter(pk=winner.pk).update(is_winning_bid=True)

        intents = []
        if winner:
            amount = _money(winner.amount)
            intents.append(_intent(
                winner.bidder_id, auction, NotificationType.WINNER_DETERMINED, amount=amount,
            ))
            intents.append(_intent(
                auction.created_by_id, auction, NotificationType.AUCTION_COMPLETED,
                amount=amount, winner_id=winner.bidder_id,
            ))
        else:
            intents.append(_intent(
                auction.created_by_id, auction, NotificationType.AUCTION_ENDED_NO_WINNER,
            ))
        losers = sorted({b.bidder_id for b in bids if winner is None or b.bidder_id != winner.bidder_id})
        intents.extend(
            _intent(user_id, auction, NotificationType.AUCTION_ENDED_NOT_WON)
            for user_id in losers
        )

        log_auction_activity(
            auction, AuditAction.AUCTION_COMPLETED, actor=None, at=now,
            details={
                'winner_id': winner.bidder_id if winner else None,
                'winning_bid_id': str(winner.id) if winner else None,
                'winning_amount': _money(winner.amount) if winner else None,
                'bid_count': len(bids),
            },
        )
        _hand_off(intents)

    logger.info(
        "Auction %s completed with %s (%d bids)",
        auction_id, f"winner {winner.bidder_id}" if winner else "no winner", len(bids),
    )
    return ClosureResult(
        auction_id=str(auction_id),
        outcome=ClosureOutcome.COMPLETED,
        winner_id=winner.bidder_id if winner else None,
        winning_bid_id=str(winner.id) if winner else None,
        winning_amount=winner.amount if winner else None,
        bid_count=len(bids),
        intents=intents,
    )


def close_auction_with_retry(auction_id, now=None, max_retries=None, backoff_ms=None) -> ClosureResult:
    """:func:`close_auction` with bounded exponential backoff on transient DB errors."""
    if max_retries is None:
        max_retries = getattr(settings, 'AUCTION_CLOSE_MAX_RETRIES', 3)
    if backoff_ms is None:
        backoff_ms = getattr(settings, 'AUCTION_CLOSE_RETRY_BACKOFF_MS', 50)

    for attempt in range(max_retries + 1):
        try:
            return close_auction(auction_id, now=now)
        except TRANSIENT_DB_ERRORS as exc:
            if attempt == max_retries:
                raise
            logger.warning(
                "Transient error closing auction %s (attempt %d/%d): %s",
                auction_id, attempt + 1, max_retries + 1, exc,
            )
            time.sleep(backoff_ms / 1000)
            backoff_ms *= 2


# ---------------------------------------------------------------------------
# cancellation
# ---------------------------------------------------------------------------

def cancel_by_consignor(auction_id, requester, now=None) -> List[NotificationIntent]:
    """Cancel an active auction on behalf of the consignor who created it."""
    now = resolve_now(now)

    with transaction.atomic():
        auction = _lock_auction(auction_id)
        if auction.created_by_id != requester.id:
            raise NotAuthorized("Only the consignor can cancel this job.")
        if auction.status != AuctionStatus.ACTIVE:
            raise AuctionNotActive()

        swapped = Auction.objects.filter(pk=auction.pk, status=AuctionStatus.ACTIVE).update(
            status=AuctionStatus.CANCELLED,
            updated_at=now,
        )
        if not swapped:
            raise AuctionNotActive()

        intents = [
            _intent(user_id, auction, NotificationType.AUCTION_CANCELLED)
            for user_id in _live_bidder_ids(auction)
        ]
        log_auction_activity(
            auction, AuditAction.AUCTION_CANCELLED, actor=requester, at=now,
            details={'cancelled_by': 'consignor', 'notified_bidders': len(intents)},
        )
        _hand_off(intents)

    logger.info("Auction %s cancelled by consignor %s", auction_id, requester.id)
    return intents


def cancel_by_winner(auction_id, requester, now=None) -> WinnerCancellation:
    """The winner backs out: hand the job to the next best bid or reopen it."""
    now = resolve_now(now)

    with transaction.atomic():
        auction = _lock_auction(auction_id)
        # winner fields only exist on completed auctions, so check status first
        if auction.status != AuctionStatus.COMPLETED:
            raise AuctionNotCompleted()
        if auction.winner_id is None or auction.winner_id != requester.id:
            raise NotAuthorized("Only the winner can cancel their participation.")

        previous_bid_id = auction.winning_bid_id
        Bid.objects.filter(pk=previous_bid_id).update(is_winning_bid=False, withdrawn_at=now)

        remaining = list(auction.bids.live())
        successor = resolve_winner(remaining, policy=_winner_policy())
        expected = Auction.objects.filter(
            pk=auction.pk, status=AuctionStatus.COMPLETED, winner_id=requester.id,
        )

        if successor:
            swapped = expected.update(
                winner_id=successor.bidder_id,
                winning_bid_id=successor.id,
                updated_at=now,
            )
            if not swapped:
                raise AuctionNotCompleted()
            Bid.objects.filter(pk=successor.pk).update(is_winning_bid=True)

            amount = _money(successor.amount)
            intents = [
                _intent(successor.bidder_id, auction, NotificationType.WINNER_DETERMINED, amount=amount),
                _intent(
                    auction.created_by_id, auction, NotificationType.WINNER_CHANGED,
                    amount=amount, winner_id=successor.bidder_id,
                ),
            ]
            log_auction_activity(
                auction, AuditAction.WINNER_REASSIGNED, actor=requester, at=now,
                details={
                    'reason': 'cancelled_by_winner',
                    'previous_winner_id': requester.id,
                    'previous_bid_id': str(previous_bid_id),
                    'new_winner_id': successor.bidder_id,
                    'new_bid_id': str(successor.id),
                    'winning_amount': amount,
                },
            )
            result = WinnerCancellation(
                auction_id=str(auction.id),
                reopened=False,
                new_winner_id=successor.bidder_id,
                new_winning_bid_id=str(successor.id),
                intents=intents,
            )
        else:
            grace = timedelta(seconds=getattr(settings, 'AUCTION_REOPEN_GRACE_SECONDS', 24 * 3600))
            new_end_time = now + grace
            swapped = expected.update(
                status=AuctionStatus.ACTIVE,
                winner_id=None,
                winning_bid_id=None,
                end_time=new_end_time,
                ending_soon_notified_at=None,
                updated_at=now,
            )
            if not swapped:
                raise AuctionNotCompleted()

            intents = [_intent(
                auction.created_by_id, auction, NotificationType.AUCTION_REOPENED,
                end_time=new_end_time.isoformat(),
            )]
            log_auction_activity(
                auction, AuditAction.AUCTION_REOPENED, actor=requester, at=now,
                details={
                    'reason': 'cancelled_by_winner',
                    'previous_winner_id': requester.id,
                    'previous_bid_id': str(previous_bid_id),
                    'end_time': new_end_time.isoformat(),
                },
            )
            result = WinnerCancellation(
                auction_id=str(auction.id),
                reopened=True,
                new_end_time=new_end_time,
                intents=intents,
            )
        _hand_off(intents)

    logger.info(
        "Winner %s cancelled auction %s: %s",
        requester.id, auction_id,
        "reopened" if result.reopened else f"reassigned to {result.new_winner_id}",
    )
    return result


# ---------------------------------------------------------------------------
# scheduled work
# ---------------------------------------------------------------------------

def sweep_expired_auctions(now=None, batch_size=None) -> SweepResult:
    """Close up to *batch_size* expired active auctions, each independently.

    A failure on one auction is logged and left for the next sweep; it
    never stops the rest of the batch.
    """
    now = resolve_now(now)
    if batch_size is None:
        batch_size = getattr(settings, 'AUCTION_SWEEP_BATCH_SIZE', 50)

    due_ids = list(
        Auction.objects.due(now)
        .order_by('end_time')
        .values_list('pk', flat=True)[:batch_size]
    )

    result = SweepResult()
    for auction_id in due_ids:
        try:
            closure = close_auction_with_retry(auction_id, now=now)
        except Exception as exc:
            logger.exception("Failed to close auction %s; will retry next sweep", auction_id)
            result.failed[str(auction_id)] = str(exc)
            continue

        if closure.outcome == ClosureOutcome.COMPLETED:
            result.closed.append(str(auction_id))
        else:
            result.already_closed.append(str(auction_id))

    if due_ids:
        logger.info(
            "Sweep closed %d, skipped %d, failed %d of %d due auction(s)",
            len(result.closed), len(result.already_closed), len(result.failed), len(due_ids),
        )
    return result


def notify_ending_soon(now=None) -> List[NotificationIntent]:
    """Remind the consignor and live bidders once per epoch that a job ends soon."""
    now = resolve_now(now)
    window = timedelta(seconds=getattr(settings, 'AUCTION_ENDING_SOON_WINDOW_SECONDS', 30 * 60))

    candidates = list(
        Auction.objects.active()
        .filter(end_time__gt=now, end_time__lte=now + window, ending_soon_notified_at__isnull=True)
        .values_list('pk', flat=True)
    )

    all_intents = []
    for auction_id in candidates:
        with transaction.atomic():
            auction = Auction.objects.select_for_update().get(pk=auction_id)
            claimed = Auction.objects.filter(
                pk=auction.pk, status=AuctionStatus.ACTIVE, ending_soon_notified_at__isnull=True,
            ).update(ending_soon_notified_at=now)
            if not claimed:
                continue

            recipients = [auction.created_by_id] + _live_bidder_ids(auction)
            intents = [
                _intent(user_id, auction, NotificationType.AUCTION_ENDING_SOON,
                        end_time=auction.end_time.isoformat())
                for user_id in recipients
            ]
            log_auction_activity(
                auction, AuditAction.ENDING_SOON_NOTIFIED, actor=None, at=now,
                details={'recipients': len(intents)},
            )
            _hand_off(intents)
        all_intents.extend(intents)

    if all_intents:
        logger.info("Sent %d ending-soon reminder(s) for %d auction(s)", len(all_intents), len(candidates))
    return all_intents
