import logging
import typing

from catalog import enums as catalog_enums
from catalog import messages as catalog_messages
from catalog import models as catalog_models
from catalog.services import exceptions as service_exceptions
from catalog.services import priority as priority_services

logger = logging.getLogger(__name__)

_LOG_PREFIX = '[VENDOR-SERVICES]'

_UPDATABLE_FIELDS = [
    'name',
    'enabled',
    'priority',
    'kind',
    'api_type',
    'admin_credentials',
    'image_url_template',
]


def get_vendor(vendor_id: int) -> catalog_models.Vendor:
    try:
        return catalog_models.Vendor.objects.get(id=vendor_id)
    except catalog_models.Vendor.DoesNotExist:
        raise service_exceptions.VendorNotFoundError('Vendor {} not found'.format(vendor_id))


def get_vendor_priority_by_id(vendor_id: int) -> int:
    vendor = get_vendor(vendor_id)
    return priority_services.get_vendor_priority(vendor.slug)


def _find_locked_vendor(vendors: typing.List[catalog_models.Vendor], vendor_id: int) -> catalog_models.Vendor:
    for vendor in vendors:
        if vendor.id == vendor_id:
            return vendor

    raise service_exceptions.VendorNotFoundError('Vendor {} not found'.format(vendor_id))


def create_vendor(
    slug: str,
    name: str,
    priority: typing.Optional[int] = None,
    enabled: bool = True,
    kind: catalog_enums.VendorKind = catalog_enums.VendorKind.MANUAL,
    api_type: catalog_enums.VendorApiType = catalog_enums.VendorApiType.REST_API,
    admin_credentials: typing.Optional[typing.Dict] = None,
    image_url_template: typing.Optional[str] = None,
) -> catalog_models.Vendor:
    slug = (slug or '').strip().lower()
    name = (name or '').strip()
    if not slug or not name:
        raise ValueError('Vendor slug and name cannot be empty')

    with priority_services.priority_mutation() as vendors:
        if any(vendor.slug == slug for vendor in vendors):
            raise ValueError('Vendor with slug {} already exists'.format(slug))

        if priority is None:
            priority = max([vendor.priority for vendor in vendors], default=0) + 1

        holders = {vendor.priority: vendor.id for vendor in vendors}
        priority_services.validate_requested_priority(
            priority=priority,
            total_vendors=len(vendors) + 1,
            holder_id=holders.get(priority),
            vendor_id=None,
        )

        vendor = catalog_models.Vendor.objects.create(
            slug=slug,
            name=name,
            priority=priority,
            enabled=enabled,
            kind=kind.value,
            kind_name=kind.name,
            api_type=api_type.value,
            api_type_name=api_type.name,
            admin_credentials=admin_credentials,
            image_url_template=image_url_template,
        )
        priority_services.invalidate_vendor(vendor)

    logger.info('{} Created vendor {} with priority {}.'.format(_LOG_PREFIX, vendor.slug, vendor.priority))
    return vendor


def update_vendor(vendor_id: int, **changes: typing.Any) -> catalog_models.Vendor:
    if 'slug' in changes:
        raise service_exceptions.VendorUpdateNotAllowedError('Vendor slug is immutable')

    unknown_fields = set(changes) - set(_UPDATABLE_FIELDS)
    if unknown_fields:
        raise ValueError('Unknown vendor fields: {}'.format(', '.join(sorted(unknown_fields))))

    with priority_services.priority_mutation() as vendors:
        vendor = _find_locked_vendor(vendors=vendors, vendor_id=vendor_id)
        previous_name = vendor.name

        if 'priority' in changes:
            holders = {other.priority: other.id for other in vendors}
            priority_services.validate_requested_priority(
                priority=changes['priority'],
                total_vendors=len(vendors),
                holder_id=holders.get(changes['priority']),
                vendor_id=vendor.id,
            )

        for field, value in changes.items():
            if field == 'kind':
                vendor.kind = value.value
                vendor.kind_name = value.name
            elif field == 'api_type':
                vendor.api_type = value.value
                vendor.api_type_name = value.name
            elif field == 'name':
                vendor.name = (value or '').strip()
                if not vendor.name:
                    raise ValueError('Vendor name cannot be empty')
            else:
                setattr(vendor, field, value)

        vendor.save()
        priority_services.invalidate_vendor(vendor, previous_name=previous_name)

    logger.info('{} Updated vendor {} ({}).'.format(_LOG_PREFIX, vendor.slug, ', '.join(sorted(changes))))
    return vendor


def set_vendor_priority(vendor_id: int, new_priority: typing.Any) -> catalog_messages.OperationResult:
    try:
        vendor = update_vendor(vendor_id, priority=new_priority)
    except (service_exceptions.VendorNotFoundError, service_exceptions.VendorPriorityValidationError) as e:
        logger.warning('{} Rejected priority {!r} for vendor {}. Error: {}.'.format(
            _LOG_PREFIX, new_priority, vendor_id, e.message
        ))
        return catalog_messages.OperationResult(success=False, message=e.message)

    return catalog_messages.OperationResult(
        success=True,
        message='Vendor {} priority set to {}'.format(vendor.slug, vendor.priority),
        data={'vendor_id': vendor.id, 'priority': vendor.priority},
    )


def move_vendor_priority(vendor_id: int, new_priority: typing.Any) -> catalog_messages.OperationResult:
    """
    Move a vendor to ``new_priority`` and shift every vendor in between by one.

    This is the re-ranking path for admins; set_vendor_priority only accepts
    a free slot.
    """
    try:
        with priority_services.priority_mutation() as vendors:
            vendor = _find_locked_vendor(vendors=vendors, vendor_id=vendor_id)
            priority_services.validate_requested_priority(
                priority=new_priority,
                total_vendors=len(vendors),
                holder_id=None,
                vendor_id=vendor.id,
            )

            ordered = [other for other in vendors if other.id != vendor.id]
            ordered.insert(new_priority - 1, vendor)
            targets = {other.id: index + 1 for index, other in enumerate(ordered)}
            changed = priority_services.apply_vendor_priorities(vendors, targets)
    except (service_exceptions.VendorNotFoundError, service_exceptions.VendorPriorityValidationError) as e:
        return catalog_messages.OperationResult(success=False, message=e.message)

    logger.info('{} Moved vendor {} to priority {}, {} vendors re-sequenced.'.format(
        _LOG_PREFIX, vendor.slug, new_priority, len(changed)
    ))
    return catalog_messages.OperationResult(
        success=True,
        message='Vendor {} moved to priority {}'.format(vendor.slug, new_priority),
        data={'vendor_id': vendor.id, 'priority': new_priority, 'resequenced': len(changed)},
    )


def delete_vendor(vendor_id: int) -> catalog_messages.OperationResult:
    with priority_services.priority_mutation() as vendors:
        try:
            vendor = _find_locked_vendor(vendors=vendors, vendor_id=vendor_id)
        except service_exceptions.VendorNotFoundError as e:
            return catalog_messages.OperationResult(success=False, message=e.message)

        if vendor.catalog_sync_status == catalog_enums.CatalogSyncStatus.IN_PROGRESS.value:
            return catalog_messages.OperationResult(
                success=False,
                message='Vendor {} cannot be deleted while a catalog sync is in progress'.format(vendor.slug),
            )

        deleted_slug = vendor.slug
        deleted_priority = vendor.priority
        vendor.delete()
        priority_services.invalidate_vendor_priority(deleted_slug, vendor.name)

        # Ascending order keeps the unique constraint satisfied after each update
        affected = sorted(
            [other for other in vendors if other.id != vendor_id and other.priority > deleted_priority],
            key=lambda other: other.priority,
        )
        for other in affected:
            other.priority -= 1
            catalog_models.Vendor.objects.filter(id=other.id).update(priority=other.priority)
            priority_services.invalidate_vendor(other)

    logger.info('{} Deleted vendor {} (priority {}), {} vendors re-sequenced.'.format(
        _LOG_PREFIX, deleted_slug, deleted_priority, len(affected)
    ))
    return catalog_messages.OperationResult(
        success=True,
        message='Vendor {} deleted'.format(deleted_slug),
        data={'resequenced': len(affected)},
    )
