from django.core.management.base import BaseCommand, CommandError

from catalog import enums as catalog_enums
from catalog import messages as catalog_messages
from catalog import models as catalog_models
from catalog.services import catalog_sync as catalog_sync_services
from catalog.services import exceptions as service_exceptions


class Command(BaseCommand):
    help = 'Sync the master catalog from one vendor (or every enabled vendor)'

    def add_arguments(self, parser):
        parser.add_argument('--vendor', type=str, help='Vendor slug, all enabled vendors when omitted')
        parser.add_argument('--mode', type=str, choices=['full', 'incremental'], default='full')
        parser.add_argument('--company', type=int, default=None, help='Company whose vendor credentials are used')
        parser.add_argument(
            '--duplicate-handling',
            type=str,
            choices=[member.name for member in catalog_enums.DuplicateHandling],
            default=catalog_enums.DuplicateHandling.SMART_MERGE.name,
        )

    def handle(self, *args, **options):
        vendors = catalog_models.Vendor.objects.filter(enabled=True).order_by('priority')
        if options['vendor']:
            vendors = vendors.filter(slug=options['vendor'].strip().lower())
            if not vendors.exists():
                raise CommandError('Enabled vendor {} not found'.format(options['vendor']))

        if options['mode'] == 'incremental':
            trigger_sync = catalog_sync_services.trigger_incremental_sync
        else:
            trigger_sync = catalog_sync_services.trigger_full_sync

        sync_settings = catalog_messages.SyncSettings(
            duplicate_handling=catalog_enums.DuplicateHandling[options['duplicate_handling']],
        )

        failed = 0
        for vendor in vendors:
            self.stdout.write('Starting {} sync for {}...'.format(options['mode'], vendor.slug))
            try:
                result = trigger_sync(vendor_id=vendor.id, company_id=options['company'], sync_settings=sync_settings)
            except service_exceptions.CatalogServiceException as e:
                failed += 1
                self.stdout.write(self.style.ERROR('{}: {}'.format(vendor.slug, e.message)))
                continue

            if result.success:
                self.stdout.write(self.style.SUCCESS('{}: {}'.format(vendor.slug, result.message)))
            else:
                failed += 1
                self.stdout.write(self.style.ERROR('{}: {}'.format(vendor.slug, result.message)))

        if failed:
            raise CommandError('{} vendor syncs failed'.format(failed))
