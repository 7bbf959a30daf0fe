"""
Vendor priority registry.

Priorities form a dense 1..N sequence over every vendor row, 1 being the
highest authority over master catalog fields. Lookups go through a
process-wide cache without expiry: every code path that changes a vendor's
priority, name or enabled flag must invalidate the affected entries.
"""
import contextlib
import logging
import threading
import typing

from django.db import DatabaseError, transaction
from django.db.models.functions import Lower, Trim
from django.utils import timezone

from catalog import constants as catalog_constants
from catalog import messages as catalog_messages
from catalog import models as catalog_models
from catalog.services import exceptions as service_exceptions
from common import utils as common_utils

logger = logging.getLogger(__name__)

_LOG_PREFIX = '[VENDOR-PRIORITY-SERVICES]'

_priority_cache: typing.Dict[str, int] = {}
_cache_write_lock = threading.Lock()
_priority_mutation_lock = threading.RLock()


def get_vendor_priority(identifier: typing.Optional[str]) -> int:
    """
    Resolve the priority of a vendor by slug or display name.

    Unknown and disabled vendors resolve to DEFAULT_VENDOR_PRIORITY so merges
    degrade gracefully instead of failing.
    """
    key = common_utils.normalize_identifier(identifier)
    if not key:
        return catalog_constants.DEFAULT_VENDOR_PRIORITY

    cached = _priority_cache.get(key)
    if cached is not None:
        return cached

    try:
        priority = _load_vendor_priority(key)
    except DatabaseError as e:
        logger.error('{} Database error looking up priority for vendor "{}". Error: {}.'.format(
            _LOG_PREFIX, identifier, common_utils.get_exception_message(exception=e)
        ))
        return catalog_constants.DEFAULT_VENDOR_PRIORITY

    with _cache_write_lock:
        _priority_cache[key] = priority

    return priority


def _load_vendor_priority(key: str) -> int:
    vendors = catalog_models.Vendor.objects.annotate(
        slug_key=Lower(Trim('slug')),
        name_key=Lower(Trim('name')),
    )
    vendor = vendors.filter(slug_key=key).first() or vendors.filter(name_key=key).order_by('id').first()

    if not vendor:
        logger.info('{} Vendor "{}" not found, using default priority {}.'.format(
            _LOG_PREFIX, key, catalog_constants.DEFAULT_VENDOR_PRIORITY
        ))
        return catalog_constants.DEFAULT_VENDOR_PRIORITY

    if not vendor.enabled:
        logger.info('{} Vendor "{}" is disabled, using default priority {}.'.format(
            _LOG_PREFIX, vendor.slug, catalog_constants.DEFAULT_VENDOR_PRIORITY
        ))
        return catalog_constants.DEFAULT_VENDOR_PRIORITY

    if vendor.priority is None or vendor.priority < catalog_constants.MIN_VENDOR_PRIORITY:
        logger.warning('{} Invalid priority {} for vendor "{}", using default priority {}.'.format(
            _LOG_PREFIX, vendor.priority, vendor.slug, catalog_constants.DEFAULT_VENDOR_PRIORITY
        ))
        return catalog_constants.DEFAULT_VENDOR_PRIORITY

    return vendor.priority


def preload_vendor_priorities(identifiers: typing.Iterable[str]) -> None:
    identifiers = list(identifiers)
    logger.info('{} Preloading priorities for {} vendors.'.format(_LOG_PREFIX, len(identifiers)))
    for identifier in identifiers:
        get_vendor_priority(identifier)


def invalidate_vendor_priority(*identifiers: typing.Optional[str]) -> None:
    for identifier in identifiers:
        key = common_utils.normalize_identifier(identifier)
        if not key:
            continue

        try:
            with _cache_write_lock:
                _priority_cache.pop(key, None)
        except Exception as e:
            # Stale reads are possible until the next successful invalidation
            logger.warning('{} Failed to invalidate priority cache for vendor "{}". Error: {}.'.format(
                _LOG_PREFIX, identifier, common_utils.get_exception_message(exception=e)
            ))


def invalidate_vendor(vendor: catalog_models.Vendor, previous_name: typing.Optional[str] = None) -> None:
    identifiers = [vendor.slug, vendor.name, previous_name]
    invalidate_vendor_priority(*identifiers)
    # A lookup racing the open transaction may have cached the old value
    transaction.on_commit(lambda: invalidate_vendor_priority(*identifiers))


def clear_vendor_priority_cache() -> None:
    with _cache_write_lock:
        previous_size = len(_priority_cache)
        _priority_cache.clear()

    logger.info('{} Cache cleared ({} entries removed).'.format(_LOG_PREFIX, previous_size))


def get_vendor_priority_cache_stats() -> typing.Dict:
    entries = dict(_priority_cache)
    return {
        'size': len(entries),
        'entries': [{'vendor': key, 'priority': value} for key, value in sorted(entries.items())],
    }


def validate_requested_priority(
    priority: typing.Any,
    total_vendors: int,
    holder_id: typing.Optional[int],
    vendor_id: typing.Optional[int],
) -> None:
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise service_exceptions.VendorPriorityValidationError(
            'Priority must be an integer, got {!r}'.format(priority)
        )

    if priority < catalog_constants.MIN_VENDOR_PRIORITY or priority > total_vendors:
        raise service_exceptions.VendorPriorityValidationError(
            'Priority {} is out of range, must be between 1 and {}'.format(priority, total_vendors)
        )

    if holder_id is not None and holder_id != vendor_id:
        raise service_exceptions.VendorPriorityValidationError(
            'Priority {} is already assigned to another vendor'.format(priority)
        )


@contextlib.contextmanager
def priority_mutation() -> typing.Iterator[typing.List[catalog_models.Vendor]]:
    """
    Single mutual exclusion point for administrative priority changes.

    Yields every vendor row locked for update, ordered by priority.
    """
    with _priority_mutation_lock:
        with transaction.atomic():
            yield list(catalog_models.Vendor.objects.select_for_update().order_by('priority', 'id'))


def apply_vendor_priorities(
    vendors: typing.List[catalog_models.Vendor],
    targets: typing.Dict[int, int],
) -> typing.List[catalog_models.Vendor]:
    """
    Persist a new priority for each vendor in ``targets`` (vendor id -> priority).

    Changed rows are parked above the current maximum first so the unique
    priority constraint holds after every single statement.
    """
    changed = [vendor for vendor in vendors if vendor.id in targets and targets[vendor.id] != vendor.priority]
    if not changed:
        return []

    parking_offset = max([vendor.priority for vendor in vendors] + list(targets.values())) + 1
    for index, vendor in enumerate(changed):
        catalog_models.Vendor.objects.filter(id=vendor.id).update(priority=parking_offset + index)

    now = timezone.now()
    for vendor in changed:
        logger.info('{} Moving vendor {} from priority {} to {}.'.format(
            _LOG_PREFIX, vendor.slug, vendor.priority, targets[vendor.id]
        ))
        vendor.priority = targets[vendor.id]
        catalog_models.Vendor.objects.filter(id=vendor.id).update(priority=vendor.priority, updated_at=now)
        invalidate_vendor(vendor)

    return changed


def validate_vendor_priority_consistency() -> catalog_messages.PriorityConsistencyReport:
    vendors = list(catalog_models.Vendor.objects.order_by('priority', 'id'))
    report = catalog_messages.PriorityConsistencyReport(is_valid=True, total_vendors=len(vendors))

    if not vendors:
        return report

    holders: typing.Dict[int, typing.List[str]] = {}
    for vendor in vendors:
        holders.setdefault(vendor.priority, []).append(vendor.slug)

    for priority, slugs in sorted(holders.items()):
        if len(slugs) > 1:
            report.issues.append('Priority {} is assigned to multiple vendors: {}'.format(priority, ', '.join(slugs)))

    invalid = [vendor for vendor in vendors if vendor.priority < catalog_constants.MIN_VENDOR_PRIORITY]
    if invalid:
        report.issues.append('Found {} vendors with invalid priority values: {}'.format(
            len(invalid), ', '.join('{}({})'.format(vendor.slug, vendor.priority) for vendor in invalid)
        ))

    expected = set(range(1, len(vendors) + 1))
    missing = sorted(expected - set(holders))
    exceeding = sorted(priority for priority in holders if priority > len(vendors))
    if missing:
        report.issues.append('Missing priorities in 1-N sequence: {}'.format(', '.join(str(p) for p in missing)))
    if exceeding:
        report.issues.append('Priorities exceed vendor count ({}): {}'.format(
            len(vendors), ', '.join(str(p) for p in exceeding)
        ))

    if report.issues:
        report.is_valid = False
        report.recommendations.append('Re-sequence priorities to restore a continuous 1-N order')
        logger.warning('{} Priority consistency issues found: {}.'.format(_LOG_PREFIX, report.issues))

    return report


def fix_vendor_priority_consistency() -> int:
    """Re-sequence every vendor to 1..N keeping the current relative order."""
    with priority_mutation() as vendors:
        targets = {vendor.id: index + 1 for index, vendor in enumerate(vendors)}
        changed = apply_vendor_priorities(vendors, targets)

    logger.info('{} Re-sequenced {} vendors to maintain the 1-N sequence.'.format(_LOG_PREFIX, len(changed)))
    return len(changed)
