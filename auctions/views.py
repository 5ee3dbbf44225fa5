# auctions/views.py
import logging

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import permissions, status, generics
from django.db import OperationalError, InterfaceError
from django.shortcuts import get_object_or_404

from accounts.permissionsUsers import IsConsignor, IsDriver
from .exceptions import AuctionError
from .models import Auction, Bid
from .serializers import (
    AuctionCreateSerializer, AuctionDetailSerializer, AuctionListSerializer,
    AuditEntrySerializer, BidSerializer, MyBidSerializer, PlaceBidSerializer,
)
from .services import (
    create_auction,
    place_bid,
    cancel_bid,
    cancel_by_consignor,
    cancel_by_winner,
)

logger = logging.getLogger(__name__)

RETRY_MESSAGE = "Something went wrong. Please try again."


def _error_response(exc):
    if isinstance(exc, AuctionError):
        return Response({'error': str(exc.detail), 'code': exc.get_codes()}, status=exc.status_code)
    logger.warning("Transient database error: %s", exc)
    return Response(
        {'error': RETRY_MESSAGE, 'code': 'temporarily_unavailable'},
        status=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


class PublicAuctionListView(generics.ListAPIView):
    """
    GET /api/auctions/?vehicle_type=
    """
    permission_classes = []  # public
    serializer_class = AuctionListSerializer

    def get_queryset(self):
        qs = Auction.objects.active().order_by('end_time')
        vehicle_type = self.request.query_params.get('vehicle_type')
        if vehicle_type:
            qs = qs.filter(vehicle_type=vehicle_type)
        return qs


class AuctionDetailView(APIView):
    permission_classes = []  # public

    def get(self, request, pk):
        auction = get_object_or_404(Auction, pk=pk)
        return Response(AuctionDetailSerializer(auction).data)


class AuctionCreateView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsConsignor]

    def post(self, request):
        ser = AuctionCreateSerializer(data=request.data)
        if not ser.is_valid():
            return Response(ser.errors, status=400)

        try:
            auction = create_auction(request.user, **ser.validated_data)
        except AuctionError as e:
            return _error_response(e)
        return Response(AuctionDetailSerializer(auction).data, status=201)


class MyAuctionsView(generics.ListAPIView):
    """
    GET /api/auctions/mine/?status=
    """
    permission_classes = [permissions.IsAuthenticated, IsConsignor]
    serializer_class = AuctionListSerializer

    def get_queryset(self):
        qs = Auction.objects.filter(created_by=self.request.user).order_by('-created_at')
        status_ = self.request.query_params.get('status')
        if status_:
            qs = qs.filter(status=status_)
        return qs


class PlaceBidView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsDriver]

    def post(self, request, pk):
        ser = PlaceBidSerializer(data=request.data)
        if not ser.is_valid():
            return Response(ser.errors, status=400)

        try:
            placement = place_bid(pk, request.user, ser.validated_data['amount'])
        except (AuctionError, OperationalError, InterfaceError) as e:
            return _error_response(e)
        return Response(
            BidSerializer(placement.bid).data,
            status=200 if placement.replaced else 201,
        )


class CancelBidView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsDriver]

    def delete(self, request, bid_id):
        try:
            cancel_bid(bid_id, request.user)
        except (AuctionError, OperationalError, InterfaceError) as e:
            return _error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


class MyBidsView(generics.ListAPIView):
    permission_classes = [permissions.IsAuthenticated, IsDriver]
    serializer_class = MyBidSerializer

    def get_queryset(self):
        return (Bid.objects
                .filter(bidder=self.request.user)
                .select_related('auction')
                .order_by('-created_at'))


class ConsignorCancelAuctionView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        try:
            intents = cancel_by_consignor(pk, request.user)
        except (AuctionError, OperationalError, InterfaceError) as e:
            return _error_response(e)
        return Response({'status': 'cancelled', 'auction_id': str(pk), 'notified': len(intents)})


class WinnerWithdrawView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        try:
            result = cancel_by_winner(pk, request.user)
        except (AuctionError, OperationalError, InterfaceError) as e:
            return _error_response(e)

        if result.reopened:
            return Response({
                'status': 'reopened',
                'auction_id': result.auction_id,
                'end_time': result.new_end_time,
            })
        return Response({
            'status': 'reassigned',
            'auction_id': result.auction_id,
            'winner': result.new_winner_id,
            'winning_bid': result.new_winning_bid_id,
        })


class AuctionAuditTrailView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):
        auction = get_object_or_404(Auction, pk=pk)
        if auction.created_by_id != request.user.id:
            return Response({'error': "You are not allowed to do this.", 'code': 'not_authorized'}, status=403)
        entries = auction.audit_entries.order_by('created_at', 'id')
        return Response(AuditEntrySerializer(entries, many=True).data)
