from django.core.management.base import BaseCommand

from catalog import models as catalog_models
from catalog.services import images as image_services


class Command(BaseCommand):
    help = 'Re-resolve product images from the highest priority vendor offering one'

    def add_arguments(self, parser):
        parser.add_argument('--upc', action='append', dest='upcs', help='Limit to these UPCs, may be repeated')

    def handle(self, *args, **options):
        upcs = options['upcs']
        if not upcs:
            upcs = list(catalog_models.Product.objects.filter(upc__isnull=False).values_list('upc', flat=True))

        self.stdout.write('Updating product images...')
        stats = image_services.batch_update_images(upcs=upcs)
        self.stdout.write(self.style.SUCCESS(
            'Processed {}: {} updated, {} unchanged, {} without image, {} failed.'.format(
                stats.processed, stats.updated, stats.unchanged, stats.no_image_available, stats.failed
            )
        ))
