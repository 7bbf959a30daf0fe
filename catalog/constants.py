from catalog import enums as catalog_enums

# Priority returned for unknown, disabled or unranked vendors so they never
# outrank a prioritized vendor.
DEFAULT_VENDOR_PRIORITY = 999
MIN_VENDOR_PRIORITY = 1

# Field merge policy used by SMART_MERGE when the incoming vendor does not
# hold authority over the existing record.
#   AUTHORITY             - only the authoritative vendor may change the field
#   FILL_IF_MISSING       - filled only when the stored value is empty
#   PREFER_HIGHER_QUALITY - filled when empty or when the incoming value is
#                           more specific than the stored one
# Override single entries through settings.CATALOG_MERGE_FIELD_POLICY.
PRODUCT_FIELD_MERGE_POLICY = {
    'name': catalog_enums.FieldMergePolicy.AUTHORITY,
    'brand': catalog_enums.FieldMergePolicy.FILL_IF_MISSING,
    'model': catalog_enums.FieldMergePolicy.FILL_IF_MISSING,
    'manufacturer_part_number': catalog_enums.FieldMergePolicy.FILL_IF_MISSING,
    'category': catalog_enums.FieldMergePolicy.PREFER_HIGHER_QUALITY,
    'subcategory': catalog_enums.FieldMergePolicy.FILL_IF_MISSING,
    'description': catalog_enums.FieldMergePolicy.FILL_IF_MISSING,
    'weight': catalog_enums.FieldMergePolicy.FILL_IF_MISSING,
    'image_url': catalog_enums.FieldMergePolicy.FILL_IF_MISSING,
    'serialized': catalog_enums.FieldMergePolicy.AUTHORITY,
    'specifications': catalog_enums.FieldMergePolicy.AUTHORITY,
    'status': catalog_enums.FieldMergePolicy.AUTHORITY,
}

# Fields compared when deciding whether a write would change anything
PRODUCT_COMPARED_FIELDS = [
    'upc',
    'name',
    'brand',
    'model',
    'manufacturer_part_number',
    'category',
    'subcategory',
    'description',
    'weight',
    'image_url',
    'serialized',
    'specifications',
    'status',
]

# Fields written from a candidate onto a product record
PRODUCT_WRITABLE_FIELDS = PRODUCT_COMPARED_FIELDS + ['retail_vertical_id']

# Image url templates for vendors whose images are derived from the sku
BILL_HICKS_IMAGE_URL_TEMPLATE = 'https://billhicksco.hostedftp.com/files/path/BHC+Digital+Images+ALL/Website/{sku_plus}.jpg'

BILL_HICKS_REQUIRED_COLUMNS = ['product_name', 'universal_product_code']
