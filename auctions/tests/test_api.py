from datetime import timedelta

import pytest
from django.utils import timezone

from auctions.models import AuctionStatus, Bid, VehicleType
from auctions.services import close_auction, create_auction, place_bid

pytestmark = pytest.mark.django_db


@pytest.fixture
def open_auction(consignor):
    started = timezone.now() - timedelta(minutes=5)
    return create_auction(
        consignor, title='Steel coils to Nagpur', vehicle_type=VehicleType.MEDIUM_TRUCK,
        start_time=started, end_time=started + timedelta(hours=3), now=started,
    )


def as_user(client, user):
    client.force_authenticate(user=user)
    return client


def test_public_list_shows_active_auctions(api_client, open_auction, driver_x):
    place_bid(open_auction.id, driver_x, '900')

    resp = api_client.get('/api/auctions/', {'vehicle_type': VehicleType.MEDIUM_TRUCK})

    assert resp.status_code == 200
    [row] = resp.data
    assert row['id'] == str(open_auction.id)
    assert row['lowest_bid'] == '900.00'
    assert row['bid_count'] == 1


def test_consignor_creates_auction(api_client, consignor):
    end_time = timezone.now() + timedelta(hours=2)

    resp = as_user(api_client, consignor).post('/api/auctions/create/', {
        'title': 'Tiles to Surat',
        'vehicle_type': VehicleType.PICKUP_TRUCK,
        'end_time': end_time.isoformat(),
    }, format='json')

    assert resp.status_code == 201
    assert resp.data['status'] == AuctionStatus.ACTIVE


def test_driver_cannot_create_auction(api_client, driver_x):
    resp = as_user(api_client, driver_x).post('/api/auctions/create/', {}, format='json')
    assert resp.status_code == 403


def test_create_rejects_too_short_auction(api_client, consignor):
    resp = as_user(api_client, consignor).post('/api/auctions/create/', {
        'title': 'Quick',
        'vehicle_type': VehicleType.PICKUP_TRUCK,
        'end_time': (timezone.now() + timedelta(minutes=2)).isoformat(),
    }, format='json')

    assert resp.status_code == 400
    assert resp.data['code'] == 'invalid_auction'


def test_place_then_replace_bid(api_client, open_auction, driver_x):
    client = as_user(api_client, driver_x)
    url = f'/api/auctions/{open_auction.id}/bid/'

    first = client.post(url, {'amount': '750.00'}, format='json')
    second = client.post(url, {'amount': '700.00'}, format='json')

    assert first.status_code == 201
    assert second.status_code == 200
    assert second.data['id'] == first.data['id']
    assert Bid.objects.live().filter(auction=open_auction).count() == 1


def test_bid_on_closed_auction_gives_clear_message(api_client, open_auction, driver_x):
    close_auction(open_auction.id)

    resp = as_user(api_client, driver_x).post(
        f'/api/auctions/{open_auction.id}/bid/', {'amount': '500'}, format='json')

    assert resp.status_code == 409
    assert resp.data == {'error': 'This job has already ended.', 'code': 'auction_not_active'}


def test_consignor_cannot_bid(api_client, open_auction, consignor):
    resp = as_user(api_client, consignor).post(
        f'/api/auctions/{open_auction.id}/bid/', {'amount': '500'}, format='json')
    assert resp.status_code == 403


def test_anonymous_cannot_bid(api_client, open_auction):
    resp = api_client.post(f'/api/auctions/{open_auction.id}/bid/', {'amount': '500'}, format='json')
    assert resp.status_code == 401


def test_cancel_bid(api_client, open_auction, driver_x):
    placement = place_bid(open_auction.id, driver_x, '500')

    resp = as_user(api_client, driver_x).delete(f'/api/auctions/bids/{placement.bid_id}/')

    assert resp.status_code == 204
    assert not Bid.objects.filter(pk=placement.bid_id).exists()


def test_cancel_someone_elses_bid(api_client, open_auction, driver_x, driver_y):
    placement = place_bid(open_auction.id, driver_x, '500')

    resp = as_user(api_client, driver_y).delete(f'/api/auctions/bids/{placement.bid_id}/')

    assert resp.status_code == 403
    assert resp.data['code'] == 'not_authorized'


def test_my_bids(api_client, open_auction, driver_x):
    place_bid(open_auction.id, driver_x, '500')

    resp = as_user(api_client, driver_x).get('/api/auctions/bids/mine/')

    assert resp.status_code == 200
    assert [row['auction_title'] for row in resp.data] == ['Steel coils to Nagpur']


def test_consignor_cancels_auction(api_client, open_auction, consignor, driver_x):
    place_bid(open_auction.id, driver_x, '500')

    resp = as_user(api_client, consignor).post(f'/api/auctions/{open_auction.id}/cancel/')

    assert resp.status_code == 200
    assert resp.data['notified'] == 1
    open_auction.refresh_from_db()
    assert open_auction.status == AuctionStatus.CANCELLED


def test_winner_withdraw_reassigns(api_client, open_auction, driver_x, driver_y):
    place_bid(open_auction.id, driver_x, '500')
    place_bid(open_auction.id, driver_y, '400')
    close_auction(open_auction.id)

    resp = as_user(api_client, driver_y).post(f'/api/auctions/{open_auction.id}/withdraw/')

    assert resp.status_code == 200
    assert resp.data['status'] == 'reassigned'
    assert resp.data['winner'] == driver_x.id


def test_winner_withdraw_on_active_auction(api_client, open_auction, driver_x):
    resp = as_user(api_client, driver_x).post(f'/api/auctions/{open_auction.id}/withdraw/')

    assert resp.status_code == 409
    assert resp.data['code'] == 'auction_not_completed'


def test_audit_trail_is_for_the_consignor_only(api_client, open_auction, consignor, driver_x):
    place_bid(open_auction.id, driver_x, '500')

    denied = as_user(api_client, driver_x).get(f'/api/auctions/{open_auction.id}/audit/')
    allowed = as_user(api_client, consignor).get(f'/api/auctions/{open_auction.id}/audit/')

    assert denied.status_code == 403
    assert allowed.status_code == 200
    assert [row['action'] for row in allowed.data] == ['auction_created', 'bid_placed']


def test_detail_lists_live_bids_lowest_first(api_client, open_auction, driver_x, driver_y):
    place_bid(open_auction.id, driver_x, '500')
    place_bid(open_auction.id, driver_y, '450')

    resp = api_client.get(f'/api/auctions/{open_auction.id}/')

    assert resp.status_code == 200
    assert [b['amount'] for b in resp.data['bids']] == ['450.00', '500.00']


def test_my_auctions_filtered_by_status(api_client, open_auction, consignor, other_consignor):
    create_auction(
        other_consignor, title='Not mine', vehicle_type=VehicleType.MINI_TRUCK,
        end_time=timezone.now() + timedelta(hours=1),
    )
    close_auction(open_auction.id)

    client = as_user(api_client, consignor)
    completed = client.get('/api/auctions/mine/', {'status': AuctionStatus.COMPLETED})
    active = client.get('/api/auctions/mine/', {'status': AuctionStatus.ACTIVE})

    assert [row['id'] for row in completed.data] == [str(open_auction.id)]
    assert active.data == []
