from datetime import datetime, timedelta, timezone as dt_timezone

import pytest
from rest_framework.test import APIClient

from accounts.models import Role, User
from auctions.models import VehicleType
from auctions.services import create_auction


@pytest.fixture
def now():
    return datetime(2025, 6, 1, 12, 0, tzinfo=dt_timezone.utc)


def _user(email, role):
    return User.objects.create_user(email=email, password='pass1234', role=role)


@pytest.fixture
def consignor(db):
    return _user('consignor@example.com', Role.CONSIGNOR)


@pytest.fixture
def other_consignor(db):
    return _user('other-consignor@example.com', Role.CONSIGNOR)


@pytest.fixture
def driver_x(db):
    return _user('driver-x@example.com', Role.DRIVER)


@pytest.fixture
def driver_y(db):
    return _user('driver-y@example.com', Role.DRIVER)


@pytest.fixture
def driver_z(db):
    return _user('driver-z@example.com', Role.DRIVER)


@pytest.fixture
def make_auction(consignor, now):
    def _make(created_by=None, duration=timedelta(hours=2), **kwargs):
        kwargs.setdefault('title', 'Move 20 crates to Pune')
        kwargs.setdefault('vehicle_type', VehicleType.MINI_TRUCK)
        return create_auction(
            created_by or consignor,
            start_time=now,
            end_time=now + duration,
            now=now,
            **kwargs,
        )
    return _make


@pytest.fixture
def auction(make_auction):
    return make_auction()


@pytest.fixture
def api_client():
    return APIClient()
