from django.core.management.base import BaseCommand

from catalog.services import priority as priority_services


class Command(BaseCommand):
    help = 'Check that vendor priorities form a continuous 1-N sequence'

    def add_arguments(self, parser):
        parser.add_argument('--fix', action='store_true', help='Re-sequence priorities keeping the current order')

    def handle(self, *args, **options):
        report = priority_services.validate_vendor_priority_consistency()
        if report.is_valid:
            self.stdout.write(self.style.SUCCESS(
                'Vendor priorities are consistent ({} vendors).'.format(report.total_vendors)
            ))
            return

        for issue in report.issues:
            self.stdout.write(self.style.WARNING(issue))

        if not options['fix']:
            for recommendation in report.recommendations:
                self.stdout.write(recommendation)
            return

        changed = priority_services.fix_vendor_priority_consistency()
        self.stdout.write(self.style.SUCCESS('Re-sequenced {} vendors.'.format(changed)))
