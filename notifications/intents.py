# notifications/intents.py
from dataclasses import dataclass, field
from django.db import models


class NotificationType(models.TextChoices):
    NEW_BID = 'new_bid', 'New Bid'
    OUTBID = 'outbid', 'Outbid'
    BID_CANCELLED = 'bid_cancelled', 'Bid Cancelled'
    WINNER_DETERMINED = 'winner_determined', 'Winner Determined'
    AUCTION_COMPLETED = 'auction_completed', 'Auction Completed'
    AUCTION_ENDED_NO_WINNER = 'auction_ended_no_winner', 'Auction Ended No Winner'
    AUCTION_ENDED_NOT_WON = 'auction_ended_not_won', 'Auction Ended Not Won'
    AUCTION_CANCELLED = 'auction_cancelled', 'Auction Cancelled'
    WINNER_CHANGED = 'winner_changed', 'Winner Changed'
    AUCTION_REOPENED = 'auction_reopened', 'Auction Reopened'
    AUCTION_ENDING_SOON = 'auction_ending_soon', 'Auction Ending Soon'


@dataclass(frozen=True)
class NotificationIntent:
    """Who should be told what about an auction.

    Produced by the auction services and handed to the configured
    dispatcher; the services never see whether delivery succeeded.
    ``payload`` holds JSON-ready values only (strings, numbers, None).
    """
    recipient_id: int
    auction_id: str
    type: str
    payload: dict = field(default_factory=dict)
