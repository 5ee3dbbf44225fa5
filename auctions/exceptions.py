# auctions/exceptions.py
from rest_framework import status
from rest_framework.exceptions import APIException


class AuctionError(APIException):
    """Business-rule violation reported back to the caller."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "This request cannot be completed."
    default_code = 'auction_error'


class NotFound(AuctionError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "This job could not be found."
    default_code = 'not_found'


class NotAuthorized(AuctionError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You are not allowed to do this."
    default_code = 'not_authorized'


class AuctionNotActive(AuctionError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "This job has already ended."
    default_code = 'auction_not_active'


class AuctionNotCompleted(AuctionError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "This job has not been awarded yet."
    default_code = 'auction_not_completed'


class InvalidAmount(AuctionError):
    default_detail = "Bid amount must be greater than zero."
    default_code = 'invalid_amount'


class CannotCancelWinningBid(AuctionError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "A winning bid cannot be cancelled here."
    default_code = 'cannot_cancel_winning_bid'


class InvalidAuction(AuctionError):
    default_detail = "The job details are invalid."
    default_code = 'invalid_auction'
