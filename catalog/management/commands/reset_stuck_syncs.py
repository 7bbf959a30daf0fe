import datetime

from django.conf import settings
from django.core.management.base import BaseCommand

from catalog.services import catalog_sync as catalog_sync_services


class Command(BaseCommand):
    help = 'Mark catalog syncs stuck in progress as failed'

    def add_arguments(self, parser):
        parser.add_argument('--hours', type=int, default=settings.CATALOG_STUCK_SYNC_HOURS)

    def handle(self, *args, **options):
        reset_count = catalog_sync_services.reset_stuck_syncs(older_than=datetime.timedelta(hours=options['hours']))
        self.stdout.write(self.style.SUCCESS('Reset {} stuck syncs.'.format(reset_count)))
