from rest_framework import serializers
from audit.models import AuditEntry
from .models import Auction, Bid, VehicleType


class AuctionCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    vehicle_type = serializers.ChoiceField(choices=VehicleType.choices)
    consignment_date = serializers.DateTimeField(required=False, allow_null=True, default=None)
    start_time = serializers.DateTimeField(required=False, allow_null=True, default=None)
    end_time = serializers.DateTimeField()

    def validate(self, data):
        start_time = data.get('start_time')
        end_time = data.get('end_time')
        if start_time and end_time and end_time <= start_time:
            raise serializers.ValidationError("end_time must be after start_time.")
        return data


class PlaceBidSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)


class BidSerializer(serializers.ModelSerializer):
    class Meta:
        model = Bid
        fields = ['id', 'auction', 'bidder', 'amount', 'is_winning_bid', 'created_at']


class MyBidSerializer(serializers.ModelSerializer):
    auction_title = serializers.CharField(source='auction.title', read_only=True)
    auction_status = serializers.CharField(source='auction.status', read_only=True)
    auction_end_time = serializers.DateTimeField(source='auction.end_time', read_only=True)

    class Meta:
        model = Bid
        fields = [
            'id', 'auction', 'auction_title', 'auction_status', 'auction_end_time',
            'amount', 'is_winning_bid', 'created_at', 'withdrawn_at',
        ]


class AuctionListSerializer(serializers.ModelSerializer):
    lowest_bid = serializers.SerializerMethodField()
    bid_count = serializers.SerializerMethodField()

    class Meta:
        model = Auction
        fields = [
            'id', 'title', 'vehicle_type', 'status',
            'start_time', 'end_time', 'consignment_date',
            'created_by', 'created_at',
            'lowest_bid', 'bid_count',
        ]

    def get_lowest_bid(self, obj):
        top = obj.bids.live().order_by('amount', 'created_at').first()
        return str(top.amount) if top else None

    def get_bid_count(self, obj):
        return obj.bids.live().count()


class AuctionDetailSerializer(serializers.ModelSerializer):
    bids = serializers.SerializerMethodField()

    class Meta:
        model = Auction
        fields = [
            'id', 'title', 'description', 'vehicle_type', 'status',
            'start_time', 'end_time', 'consignment_date',
            'created_by', 'winner', 'winning_bid',
            'created_at', 'updated_at',
            'bids',
        ]

    def get_bids(self, obj):
        qs = obj.bids.live().order_by('amount', 'created_at')
        return BidSerializer(qs, many=True).data


class AuditEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditEntry
        fields = ['id', 'action', 'actor', 'details', 'created_at']
