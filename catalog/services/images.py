import logging
import typing
from urllib import parse

from django.db import transaction

from catalog import messages as catalog_messages
from catalog import models as catalog_models
from catalog.services import mappings as mapping_services
from catalog.services import priority as priority_services
from common import utils as common_utils

logger = logging.getLogger(__name__)

_LOG_PREFIX = '[IMAGE-FALLBACK-SERVICES]'

_IMAGE_UPDATED = 'updated'
_IMAGE_UNCHANGED = 'unchanged'
_IMAGE_NOT_AVAILABLE = 'no_image'


def build_vendor_image_url(
    vendor: catalog_models.Vendor,
    vendor_sku: typing.Optional[str],
    image_reference: typing.Optional[str] = None,
) -> typing.Optional[str]:
    """
    Derive an image URL from the vendor's ``image_url_template``.

    The template may use ``{sku}``, ``{sku_plus}`` (spaces encoded as ``+``)
    and ``{reference}``; the reference falls back to the sku when the vendor
    record carried none.
    """
    if not vendor.image_url_template or not vendor_sku:
        return None

    reference = image_reference or vendor_sku
    try:
        return vendor.image_url_template.format(
            sku=parse.quote(vendor_sku, safe=''),
            sku_plus=parse.quote_plus(vendor_sku, safe=''),
            reference=parse.quote(reference, safe=''),
        )
    except (KeyError, IndexError, ValueError) as e:
        logger.warning('{} Invalid image url template for vendor {}. Error: {}.'.format(
            _LOG_PREFIX, vendor.slug, common_utils.get_exception_message(exception=e)
        ))
        return None


def is_valid_image_url(url: typing.Optional[str]) -> bool:
    if not url or not url.strip():
        return False

    parsed = parse.urlparse(url.strip())
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def resolve_best_image(upc: str) -> typing.Optional[catalog_messages.ImageResult]:
    product = catalog_models.Product.objects.filter(upc=upc).first()
    if not product:
        logger.info('{} Product {} not found.'.format(_LOG_PREFIX, upc))
        return None

    return _resolve_for_product(product=product)


def _resolve_for_product(product: catalog_models.Product) -> typing.Optional[catalog_messages.ImageResult]:
    candidates = []
    best_mapped_priority = None

    for mapping in mapping_services.get_product_mappings(product=product):
        vendor = mapping.vendor
        if not vendor.enabled:
            continue

        priority = priority_services.get_vendor_priority(vendor.slug)
        if best_mapped_priority is None or priority < best_mapped_priority:
            best_mapped_priority = priority

        url = mapping.image_url or build_vendor_image_url(
            vendor=vendor,
            vendor_sku=mapping.vendor_sku,
            image_reference=mapping.image_reference,
        )
        if not is_valid_image_url(url):
            continue

        candidates.append(catalog_messages.ImageResult(url=url.strip(), source_vendor=vendor.slug, priority=priority))

    if not candidates:
        return None

    best_priority = min(candidate.priority for candidate in candidates)
    tied = [candidate for candidate in candidates if candidate.priority == best_priority]

    chosen = tied[0]
    for candidate in tied:
        if product.image_url and candidate.source_vendor == product.image_source:
            # Keep the stored image when its vendor is among the tied best
            chosen = catalog_messages.ImageResult(
                url=product.image_url,
                source_vendor=candidate.source_vendor,
                priority=best_priority,
            )
            break

    chosen.fallback_used = best_priority != best_mapped_priority
    return chosen


def _apply_best_image(product: catalog_models.Product) -> str:
    result = _resolve_for_product(product=product)

    if result is None:
        if product.image_url and product.image_source:
            logger.info('{} No vendor offers an image for product {} anymore, clearing image from {}.'.format(
                _LOG_PREFIX, product.id, product.image_source
            ))
            product.image_url = None
            product.image_source = None
            product.save(update_fields=['image_url', 'image_source', 'updated_at'])
            return _IMAGE_UPDATED
        return _IMAGE_NOT_AVAILABLE

    if product.image_url == result.url and product.image_source == result.source_vendor:
        return _IMAGE_UNCHANGED

    logger.info('{} Product {} image set from vendor {} (priority {}, fallback {}).'.format(
        _LOG_PREFIX, product.id, result.source_vendor, result.priority, result.fallback_used
    ))
    product.image_url = result.url
    product.image_source = result.source_vendor
    product.save(update_fields=['image_url', 'image_source', 'updated_at'])
    return _IMAGE_UPDATED


def update_product_image(upc: str, supplying_vendor_slug: typing.Optional[str] = None) -> bool:
    """Apply the best available image to the product, returns True when it changed."""
    with transaction.atomic():
        product = catalog_models.Product.objects.select_for_update().filter(upc=upc).first()
        if not product:
            logger.info('{} Product {} not found (supplied by {}).'.format(_LOG_PREFIX, upc, supplying_vendor_slug))
            return False

        return _apply_best_image(product=product) == _IMAGE_UPDATED


def batch_update_images(upcs: typing.Iterable[str]) -> catalog_messages.ImageBatchStats:
    stats = catalog_messages.ImageBatchStats()

    for upc in upcs:
        stats.processed += 1
        try:
            with transaction.atomic():
                product = catalog_models.Product.objects.select_for_update().filter(upc=upc).first()
                if not product:
                    stats.no_image_available += 1
                    continue
                status = _apply_best_image(product=product)
        except Exception as e:
            stats.failed += 1
            logger.error('{} Failed to update image for product {}. Error: {}.'.format(
                _LOG_PREFIX, upc, common_utils.get_exception_message(exception=e)
            ))
            continue

        if status == _IMAGE_UPDATED:
            stats.updated += 1
        elif status == _IMAGE_UNCHANGED:
            stats.unchanged += 1
        else:
            stats.no_image_available += 1

    logger.info('{} Batch image update finished: {}.'.format(_LOG_PREFIX, stats))
    return stats
