from django.contrib import admin
from .models import Auction, Bid


class BidInline(admin.TabularInline):
    model = Bid
    extra = 0
    readonly_fields = ('bidder', 'amount', 'is_winning_bid', 'created_at', 'withdrawn_at')
    can_delete = False


@admin.register(Auction)
class AuctionAdmin(admin.ModelAdmin):
    list_display = ('title', 'created_by', 'vehicle_type', 'status', 'end_time', 'winner')
    list_filter = ('status', 'vehicle_type')
    search_fields = ('title', 'created_by__email')
    # status and winner only change through the auction services
    readonly_fields = ('status', 'winner', 'winning_bid', 'ending_soon_notified_at', 'created_at', 'updated_at')
    inlines = [BidInline]


@admin.register(Bid)
class BidAdmin(admin.ModelAdmin):
    list_display = ('auction', 'bidder', 'amount', 'is_winning_bid', 'created_at', 'withdrawn_at')
    list_filter = ('is_winning_bid',)
    readonly_fields = ('auction', 'bidder', 'amount', 'is_winning_bid', 'created_at', 'withdrawn_at')
