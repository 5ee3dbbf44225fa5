import logging
from typing import Iterable, List

from django.conf import settings
from django.utils.module_loading import import_string

from .intents import NotificationIntent, NotificationType
from .models import Notification

logger = logging.getLogger(__name__)

MESSAGES = {
    NotificationType.NEW_BID: "New bid of {amount} on your job \"{title}\".",
    NotificationType.OUTBID: "You've been outbid on \"{title}\". The lowest bid is now {amount}.",
    NotificationType.BID_CANCELLED: "A bid of {amount} was cancelled on your job \"{title}\".",
    NotificationType.WINNER_DETERMINED: "Congratulations! You won \"{title}\" with a bid of {amount}.",
    NotificationType.AUCTION_COMPLETED: "Your job \"{title}\" has been awarded for {amount}.",
    NotificationType.AUCTION_ENDED_NO_WINNER: "Your job \"{title}\" ended with no bids.",
    NotificationType.AUCTION_ENDED_NOT_WON: "The job \"{title}\" has ended and you did not win.",
    NotificationType.AUCTION_CANCELLED: "The job \"{title}\" has been cancelled by the consignor.",
    NotificationType.WINNER_CHANGED: "The winner of your job \"{title}\" has changed due to cancellation.",
    NotificationType.AUCTION_REOPENED: "Your job \"{title}\" has been reopened due to winner cancellation.",
    NotificationType.AUCTION_ENDING_SOON: "The job \"{title}\" ends soon.",
}


def render_message(intent: NotificationIntent) -> str:
    template = MESSAGES.get(intent.type, "Update on \"{title}\".")
    values = {'title': '', 'amount': ''}
    values.update({k: v for k, v in intent.payload.items() if v is not None})
    return template.format(**values)


def store_in_app(intents: List[NotificationIntent]) -> None:
    """Default dispatcher: keep an in-app copy of every intent."""
    Notification.objects.bulk_create([
        Notification(
            user_id=intent.recipient_id,
            auction_id=intent.auction_id,
            notification_type=intent.type,
            message=render_message(intent),
            extra_data=intent.payload or None,
        )
        for intent in intents
    ])


def get_dispatcher():
    return import_string(settings.AUCTION_NOTIFICATION_DISPATCHER)


def dispatch_intents(intents: Iterable[NotificationIntent]) -> None:
    """Hand intents to the dispatcher. Delivery failures stay on this side."""
    intents = list(intents)
    if not intents:
        return
    try:
        get_dispatcher()(intents)
    except Exception:
        logger.exception("Notification dispatch failed for %d intent(s)", len(intents))
