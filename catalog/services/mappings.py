import logging
import typing

from catalog import models as catalog_models

logger = logging.getLogger(__name__)

_LOG_PREFIX = '[VENDOR-MAPPING-SERVICES]'


def upsert_vendor_mapping(
    product: catalog_models.Product,
    vendor: catalog_models.Vendor,
    vendor_sku: str,
    image_url: typing.Optional[str] = None,
    image_reference: typing.Optional[str] = None,
) -> typing.Tuple[catalog_models.VendorProductMapping, bool]:
    """
    Record that ``vendor`` supplies ``product`` under ``vendor_sku``.

    The image fields always mirror what the vendor offered on its latest
    record, so an image the vendor stopped offering is cleared here.
    """
    image_url = image_url.strip() if image_url and image_url.strip() else None
    image_reference = image_reference.strip() if image_reference and image_reference.strip() else None

    mapping, created = catalog_models.VendorProductMapping.objects.get_or_create(
        product=product,
        vendor=vendor,
        defaults={
            'vendor_sku': vendor_sku,
            'image_url': image_url,
            'image_reference': image_reference,
        },
    )
    if created:
        logger.debug('{} Created mapping {} -> {} ({}).'.format(_LOG_PREFIX, vendor.slug, product.id, vendor_sku))
        return mapping, True

    update_fields = []
    for field, value in (('vendor_sku', vendor_sku), ('image_url', image_url), ('image_reference', image_reference)):
        if getattr(mapping, field) != value:
            setattr(mapping, field, value)
            update_fields.append(field)

    if update_fields:
        mapping.save(update_fields=update_fields + ['updated_at'])

    return mapping, False


def get_vendor_mapping(
    product: catalog_models.Product,
    vendor: catalog_models.Vendor,
) -> typing.Optional[catalog_models.VendorProductMapping]:
    return catalog_models.VendorProductMapping.objects.filter(product=product, vendor=vendor).first()


def get_product_mappings(product: catalog_models.Product) -> typing.List[catalog_models.VendorProductMapping]:
    return list(
        catalog_models.VendorProductMapping.objects.filter(product=product).select_related('vendor').order_by('vendor__priority')
    )
