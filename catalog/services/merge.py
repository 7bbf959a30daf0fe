"""
Merge engine.

Decides, for one incoming vendor record, whether the master catalog creates
a product, replaces it with the incoming data, merges selected fields into
it, or leaves it untouched. ``reconcile`` only decides; ``apply_candidate``
persists the decision inside a per-record transaction.
"""
import decimal
import logging
import typing

from django.conf import settings as django_settings
from django.db import IntegrityError, transaction

from catalog import constants as catalog_constants
from catalog import enums as catalog_enums
from catalog import messages as catalog_messages
from catalog import models as catalog_models
from catalog.services import exceptions as service_exceptions
from catalog.services import mappings as mapping_services
from catalog.services import priority as priority_services
from common import utils as common_utils

logger = logging.getLogger(__name__)

_LOG_PREFIX = '[MERGE-SERVICES]'

_WEIGHT_QUANTUM = decimal.Decimal('0.01')


def find_existing_product(
    candidate: catalog_messages.CandidateProduct,
    for_update: bool = False,
) -> typing.Optional[catalog_models.Product]:
    """Exact UPC match first, then exact manufacturer part number."""
    products = catalog_models.Product.objects.all()
    if for_update:
        products = products.select_for_update()

    upc = common_utils.clean_string(candidate.upc)
    if upc:
        product = products.filter(upc=upc).first()
        if product:
            return product

    mpn = common_utils.clean_string(candidate.manufacturer_part_number)
    if mpn:
        return products.filter(manufacturer_part_number=mpn).order_by('id').first()

    return None


def reconcile(
    existing: typing.Optional[catalog_models.Product],
    candidate: catalog_messages.CandidateProduct,
    vendor_slug: str,
    settings: catalog_messages.SyncSettings,
    manual_override: bool = False,
    priority_lookup: typing.Callable[[str], int] = priority_services.get_vendor_priority,
) -> catalog_messages.MergeDecision:
    incoming = _candidate_fields(candidate=candidate, settings=settings)

    if existing is None:
        return catalog_messages.MergeDecision(
            action=catalog_enums.MergeAction.CREATE,
            fields=dict(incoming, source=vendor_slug),
            changed_fields=sorted(field for field, value in incoming.items() if not _is_value_empty(value)),
            reason='No existing product matched',
        )

    mode = settings.duplicate_handling
    manual_override = manual_override or settings.manual_override

    if mode == catalog_enums.DuplicateHandling.IGNORE:
        return catalog_messages.MergeDecision(
            action=catalog_enums.MergeAction.SKIP,
            reason='Existing product kept, duplicate handling is IGNORE',
        )

    if mode == catalog_enums.DuplicateHandling.OVERWRITE:
        return _replace_decision(
            existing=existing,
            fields=_overwrite_fields(existing=existing, incoming=incoming),
            vendor_slug=vendor_slug,
            priority_lookup=priority_lookup,
            reason='Duplicate handling is OVERWRITE',
        )

    if manual_override:
        return _replace_decision(
            existing=existing,
            fields=_overwrite_fields(existing=existing, incoming=incoming),
            vendor_slug=vendor_slug,
            priority_lookup=priority_lookup,
            reason='Manual override',
        )

    if existing.source and common_utils.normalize_identifier(existing.source) == common_utils.normalize_identifier(
        vendor_slug
    ):
        return _replace_decision(
            existing=existing,
            fields=_authority_fields(incoming=incoming),
            vendor_slug=vendor_slug,
            priority_lookup=priority_lookup,
            reason='Same vendor refreshing its own data',
        )

    incoming_priority = priority_lookup(vendor_slug)
    existing_priority = (
        priority_lookup(existing.source) if existing.source else catalog_constants.DEFAULT_VENDOR_PRIORITY
    )

    if incoming_priority < existing_priority and not existing.source_locked:
        return _replace_decision(
            existing=existing,
            fields=_authority_fields(incoming=incoming),
            vendor_slug=vendor_slug,
            priority_lookup=priority_lookup,
            reason='Higher priority vendor ({} < {})'.format(incoming_priority, existing_priority),
        )

    if incoming_priority < existing_priority:
        reason = 'Product is source locked, merging missing fields'
    else:
        reason = 'Lower or equal priority vendor ({} >= {}), merging missing fields'.format(
            incoming_priority, existing_priority
        )

    return _merge_decision(existing=existing, incoming=incoming, settings=settings, reason=reason)


def apply_candidate(
    candidate: catalog_messages.CandidateProduct,
    vendor: catalog_models.Vendor,
    settings: typing.Optional[catalog_messages.SyncSettings] = None,
    manual_override: bool = False,
) -> catalog_messages.MergeOutcome:
    settings = settings or catalog_messages.SyncSettings()

    upc = common_utils.clean_string(candidate.upc)
    if not upc and not common_utils.clean_string(candidate.manufacturer_part_number):
        raise service_exceptions.CandidateValidationError(
            'Record {} has neither UPC nor manufacturer part number'.format(candidate.vendor_sku)
        )

    try:
        decision, product = _persist_candidate(
            candidate=candidate, vendor=vendor, settings=settings, manual_override=manual_override
        )
    except IntegrityError as e:
        # Another sync created the same product after our lookup, reconcile against it
        logger.info('{} Product for record {} was created concurrently, reconciling again. Error: {}.'.format(
            _LOG_PREFIX, candidate.vendor_sku, common_utils.get_exception_message(exception=e)
        ))
        decision, product = _persist_candidate(
            candidate=candidate, vendor=vendor, settings=settings, manual_override=manual_override
        )

    logger.debug('{} {} product {} from vendor {}: {}.'.format(
        _LOG_PREFIX, decision.action.name, product.id, vendor.slug, decision.reason
    ))
    return catalog_messages.MergeOutcome(
        action=decision.action,
        product_id=product.id,
        upc=product.upc,
        changed_fields=decision.changed_fields,
    )


def _persist_candidate(
    candidate: catalog_messages.CandidateProduct,
    vendor: catalog_models.Vendor,
    settings: catalog_messages.SyncSettings,
    manual_override: bool,
) -> typing.Tuple[catalog_messages.MergeDecision, catalog_models.Product]:
    with transaction.atomic():
        existing = find_existing_product(candidate=candidate, for_update=True)
        decision = reconcile(
            existing=existing,
            candidate=candidate,
            vendor_slug=vendor.slug,
            settings=settings,
            manual_override=manual_override,
        )

        if decision.action == catalog_enums.MergeAction.CREATE:
            if _is_value_empty(decision.fields.get('name')):
                raise service_exceptions.CandidateValidationError(
                    'Record {} has no product name'.format(candidate.vendor_sku)
                )
            product = catalog_models.Product(**decision.fields)
            product.image_source = vendor.slug if product.image_url else None
            _set_status_name(product)
            product.save()
        elif decision.action in (catalog_enums.MergeAction.REPLACE, catalog_enums.MergeAction.MERGE):
            product = existing
            for field, value in decision.fields.items():
                setattr(product, field, value)
            update_fields = list(decision.fields)
            if 'status' in decision.fields:
                _set_status_name(product)
                update_fields.append('status_name')
            if 'image_url' in decision.fields:
                product.image_source = vendor.slug if product.image_url else None
                update_fields.append('image_source')
            product.save(update_fields=update_fields + ['updated_at'])
        else:
            product = existing

        mapping_services.upsert_vendor_mapping(
            product=product,
            vendor=vendor,
            vendor_sku=candidate.vendor_sku,
            image_url=candidate.image_url,
            image_reference=candidate.image_reference,
        )

    return decision, product


def get_field_policy(settings: catalog_messages.SyncSettings) -> typing.Dict[str, catalog_enums.FieldMergePolicy]:
    policy = dict(catalog_constants.PRODUCT_FIELD_MERGE_POLICY)

    for field, value in getattr(django_settings, 'CATALOG_MERGE_FIELD_POLICY', {}).items():
        policy[field] = value if isinstance(value, catalog_enums.FieldMergePolicy) else (
            catalog_enums.FieldMergePolicy[value]
        )

    policy.update(settings.field_policy)
    if settings.image_handling is not None:
        policy['image_url'] = settings.image_handling
    if settings.description_handling is not None:
        policy['description'] = settings.description_handling

    return policy


def _candidate_fields(
    candidate: catalog_messages.CandidateProduct,
    settings: catalog_messages.SyncSettings,
) -> typing.Dict[str, typing.Any]:
    retail_vertical_id = settings.retail_vertical_id
    if retail_vertical_id is None:
        retail_vertical_id = getattr(django_settings, 'CATALOG_DEFAULT_RETAIL_VERTICAL_ID', None)

    weight = candidate.weight
    if weight is not None:
        weight = decimal.Decimal(str(weight)).quantize(_WEIGHT_QUANTUM)

    return {
        'upc': common_utils.clean_string(candidate.upc),
        'name': common_utils.clean_string(candidate.name),
        'brand': common_utils.clean_string(candidate.brand),
        'model': common_utils.clean_string(candidate.model),
        'manufacturer_part_number': common_utils.clean_string(candidate.manufacturer_part_number),
        'category': common_utils.clean_string(candidate.category),
        'subcategory': common_utils.clean_string(candidate.subcategory),
        'description': common_utils.clean_string(candidate.description),
        'weight': weight,
        'image_url': common_utils.clean_string(candidate.image_url),
        'serialized': bool(candidate.serialized),
        'specifications': candidate.specifications or {},
        'status': candidate.status,
        'retail_vertical_id': retail_vertical_id,
    }


def _overwrite_fields(
    existing: catalog_models.Product,
    incoming: typing.Dict[str, typing.Any],
) -> typing.Dict[str, typing.Any]:
    fields = dict(incoming)
    # The identifier the product was matched on is never cleared
    if _is_value_empty(fields['upc']):
        fields['upc'] = existing.upc
    return fields


def _authority_fields(incoming: typing.Dict[str, typing.Any]) -> typing.Dict[str, typing.Any]:
    return {field: value for field, value in incoming.items() if not _is_value_empty(value)}


def _replace_decision(
    existing: catalog_models.Product,
    fields: typing.Dict[str, typing.Any],
    vendor_slug: str,
    reason: str,
    priority_lookup: typing.Callable[[str], int],
) -> catalog_messages.MergeDecision:
    if _image_owned_by_better_vendor(existing=existing, vendor_slug=vendor_slug, priority_lookup=priority_lookup):
        fields = {field: value for field, value in fields.items() if field != 'image_url'}

    changes = _changed_values(existing=existing, fields=dict(fields, source=vendor_slug))
    if not _has_changes(changes):
        return catalog_messages.MergeDecision(
            action=catalog_enums.MergeAction.SKIP,
            reason='{}, no changes'.format(reason),
        )

    return catalog_messages.MergeDecision(
        action=catalog_enums.MergeAction.REPLACE,
        fields=changes,
        changed_fields=sorted(changes),
        reason=reason,
    )


def _image_owned_by_better_vendor(
    existing: catalog_models.Product,
    vendor_slug: str,
    priority_lookup: typing.Callable[[str], int],
) -> bool:
    """
    True when the stored image is credited to another vendor ranked at least as
    high as the incoming one. The image fallback resolver owns that image, a
    replace must not write over it.
    """
    if not existing.image_url or not existing.image_source:
        return False
    if common_utils.normalize_identifier(existing.image_source) == common_utils.normalize_identifier(vendor_slug):
        return False

    return priority_lookup(existing.image_source) <= priority_lookup(vendor_slug)


def _merge_decision(
    existing: catalog_models.Product,
    incoming: typing.Dict[str, typing.Any],
    settings: catalog_messages.SyncSettings,
    reason: str,
) -> catalog_messages.MergeDecision:
    policy = get_field_policy(settings=settings)
    merged = {}

    for field, incoming_value in incoming.items():
        if _is_value_empty(incoming_value):
            continue

        existing_value = getattr(existing, field)
        field_policy = policy.get(field, catalog_enums.FieldMergePolicy.FILL_IF_MISSING)

        if field_policy == catalog_enums.FieldMergePolicy.AUTHORITY:
            continue

        if _is_value_empty(existing_value):
            merged[field] = incoming_value
        elif field_policy == catalog_enums.FieldMergePolicy.PREFER_HIGHER_QUALITY and _is_more_specific(
            incoming_value, existing_value
        ):
            merged[field] = incoming_value

    changes = _changed_values(existing=existing, fields=merged)
    if not _has_changes(changes):
        return catalog_messages.MergeDecision(
            action=catalog_enums.MergeAction.SKIP,
            reason='{}, nothing to merge'.format(reason),
        )

    return catalog_messages.MergeDecision(
        action=catalog_enums.MergeAction.MERGE,
        fields=changes,
        changed_fields=sorted(changes),
        reason=reason,
    )


def _changed_values(
    existing: catalog_models.Product,
    fields: typing.Dict[str, typing.Any],
) -> typing.Dict[str, typing.Any]:
    return {
        field: value
        for field, value in fields.items()
        if _values_different(getattr(existing, field), value)
    }


def _has_changes(changes: typing.Dict[str, typing.Any]) -> bool:
    return bool(changes)


def _is_more_specific(incoming_value: typing.Any, existing_value: typing.Any) -> bool:
    if isinstance(incoming_value, str) and isinstance(existing_value, str):
        return len(incoming_value.strip()) > len(existing_value.strip())
    return False


def _set_status_name(product: catalog_models.Product) -> None:
    product.status_name = catalog_enums.ProductStatus(product.status).name


def _is_value_empty(value: typing.Any) -> bool:
    """
    None, blank strings and empty collections count as absent.
    0 and False are real values.
    """
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (list, dict)) and len(value) == 0:
        return True
    return False


def _normalize_value(value: typing.Any) -> typing.Any:
    if _is_value_empty(value):
        return None
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, decimal.Decimal)):
        return decimal.Decimal(str(value))
    return value


def _values_different(old_value: typing.Any, new_value: typing.Any) -> bool:
    return _normalize_value(old_value) != _normalize_value(new_value)
