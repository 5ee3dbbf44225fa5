from django.core.management.base import BaseCommand
from auctions.services import sweep_expired_auctions


class Command(BaseCommand):
    help = 'Closes active auctions whose deadline has passed (one sweep pass)'

    def add_arguments(self, parser):
        parser.add_argument('--batch-size', type=int, default=None,
                            help='Maximum number of auctions to close in this pass')

    def handle(self, *args, **options):
        result = sweep_expired_auctions(batch_size=options['batch_size'])

        if not result.processed:
            self.stdout.write("No expired auctions found")
            return

        self.stdout.write(
            self.style.SUCCESS(
                f'Closed {len(result.closed)} auctions '
                f'({len(result.already_closed)} already closed)'
            )
        )
        for auction_id, error in result.failed.items():
            self.stderr.write(self.style.ERROR(f'Failed to close auction {auction_id}: {error}'))
