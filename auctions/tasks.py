# auctions/tasks.py
from celery import shared_task
from django.db import OperationalError, InterfaceError
from auctions.services import sweep_expired_auctions, notify_ending_soon


@shared_task(
    autoretry_for=(OperationalError, InterfaceError),
    retry_backoff=True,
    retry_backoff_max=60,
    retry_kwargs={'max_retries': 3},
)
def close_due_auctions_task(batch_size=None):
    result = sweep_expired_auctions(batch_size=batch_size)
    return {
        'closed': result.closed,
        'already_closed': result.already_closed,
        'failed': result.failed,
    }


@shared_task(
    autoretry_for=(OperationalError, InterfaceError),
    retry_backoff=True,
    retry_kwargs={'max_retries': 3},
)
def notify_ending_soon_task():
    return len(notify_ending_soon())
