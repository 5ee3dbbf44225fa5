# auctions/urls.py
from django.urls import path
from .views import (
    PublicAuctionListView, AuctionDetailView, AuctionCreateView, MyAuctionsView,
    PlaceBidView, CancelBidView, MyBidsView,
    ConsignorCancelAuctionView, WinnerWithdrawView, AuctionAuditTrailView,
)

urlpatterns = [
    # public
    path('', PublicAuctionListView.as_view(), name='auction-list'),
    path('<uuid:pk>/', AuctionDetailView.as_view(), name='auction-detail'),

    # consignor
    path('create/', AuctionCreateView.as_view(), name='auction-create'),
    path('mine/', MyAuctionsView.as_view(), name='my-auctions'),
    path('<uuid:pk>/cancel/', ConsignorCancelAuctionView.as_view(), name='auction-cancel'),
    path('<uuid:pk>/audit/', AuctionAuditTrailView.as_view(), name='auction-audit'),

    # driver
    path('<uuid:pk>/bid/', PlaceBidView.as_view(), name='auction-bid'),
    path('<uuid:pk>/withdraw/', WinnerWithdrawView.as_view(), name='auction-withdraw'),
    path('bids/mine/', MyBidsView.as_view(), name='my-bids'),
    path('bids/<uuid:bid_id>/', CancelBidView.as_view(), name='bid-cancel'),
]
