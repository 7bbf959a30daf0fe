from django.db import models as django_db_models

from catalog import enums as catalog_enums


class Company(django_db_models.Model):
    name = django_db_models.CharField(max_length=255)
    slug = django_db_models.CharField(max_length=255)
    status = django_db_models.PositiveSmallIntegerField(default=catalog_enums.CompanyStatus.ACTIVE.value)
    status_name = django_db_models.CharField(max_length=255, default=catalog_enums.CompanyStatus.ACTIVE.name)

    created_at = django_db_models.DateTimeField(auto_now_add=True)
    updated_at = django_db_models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "company"
        unique_together = ["slug"]


class Vendor(django_db_models.Model):
    # slug is the immutable identity, name is display only
    slug = django_db_models.CharField(max_length=255)
    name = django_db_models.CharField(max_length=255)
    priority = django_db_models.PositiveIntegerField()
    enabled = django_db_models.BooleanField(default=True)

    api_type = django_db_models.PositiveSmallIntegerField(default=catalog_enums.VendorApiType.REST_API.value)
    api_type_name = django_db_models.CharField(max_length=255, default=catalog_enums.VendorApiType.REST_API.name)
    kind = django_db_models.PositiveSmallIntegerField(default=catalog_enums.VendorKind.MANUAL.value)
    kind_name = django_db_models.CharField(max_length=255, default=catalog_enums.VendorKind.MANUAL.name)

    admin_credentials = django_db_models.JSONField(null=True)
    image_url_template = django_db_models.TextField(null=True)

    last_catalog_sync = django_db_models.DateTimeField(null=True)
    catalog_sync_status = django_db_models.PositiveSmallIntegerField(
        default=catalog_enums.CatalogSyncStatus.NEVER_SYNCED.value
    )
    catalog_sync_status_name = django_db_models.CharField(
        max_length=255, default=catalog_enums.CatalogSyncStatus.NEVER_SYNCED.name
    )
    catalog_sync_started_at = django_db_models.DateTimeField(null=True)
    catalog_sync_error = django_db_models.TextField(null=True)
    last_sync_new_records = django_db_models.IntegerField(default=0)
    last_sync_records_updated = django_db_models.IntegerField(default=0)
    last_sync_records_skipped = django_db_models.IntegerField(default=0)
    last_sync_records_failed = django_db_models.IntegerField(default=0)
    last_sync_images_updated = django_db_models.IntegerField(default=0)

    created_at = django_db_models.DateTimeField(auto_now_add=True)
    updated_at = django_db_models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "vendors"
        unique_together = ["slug"]
        constraints = [
            django_db_models.UniqueConstraint(fields=["priority"], name="vendors_priority_unique"),
        ]

    def __str__(self) -> str:
        return "{} (priority {})".format(self.slug, self.priority)


class CompanyVendorCredentials(django_db_models.Model):
    company = django_db_models.ForeignKey(Company, on_delete=django_db_models.CASCADE, related_name="vendor_credentials")
    vendor = django_db_models.ForeignKey(Vendor, on_delete=django_db_models.CASCADE, related_name="company_credentials")
    credentials = django_db_models.JSONField()

    created_at = django_db_models.DateTimeField(auto_now_add=True)
    updated_at = django_db_models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "company_vendor_credentials"
        unique_together = ["company", "vendor"]


class Product(django_db_models.Model):
    upc = django_db_models.CharField(max_length=64, null=True)
    name = django_db_models.CharField(max_length=512)
    brand = django_db_models.CharField(max_length=255, null=True)
    model = django_db_models.CharField(max_length=255, null=True)
    manufacturer_part_number = django_db_models.CharField(max_length=255, null=True, db_index=True)
    category = django_db_models.CharField(max_length=255, null=True)
    subcategory = django_db_models.CharField(max_length=255, null=True)
    description = django_db_models.TextField(null=True)
    weight = django_db_models.DecimalField(max_digits=10, decimal_places=2, null=True)
    image_url = django_db_models.TextField(null=True)
    image_source = django_db_models.CharField(max_length=255, null=True)
    serialized = django_db_models.BooleanField(default=False)
    specifications = django_db_models.JSONField(null=True)
    status = django_db_models.PositiveSmallIntegerField(default=catalog_enums.ProductStatus.ACTIVE.value)
    status_name = django_db_models.CharField(max_length=255, default=catalog_enums.ProductStatus.ACTIVE.name)
    source = django_db_models.CharField(max_length=255, null=True)
    source_locked = django_db_models.BooleanField(default=False)
    retail_vertical_id = django_db_models.IntegerField(null=True)

    created_at = django_db_models.DateTimeField(auto_now_add=True)
    updated_at = django_db_models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "products"
        unique_together = ["upc"]

    def __str__(self) -> str:
        return "{} ({})".format(self.name, self.upc or self.manufacturer_part_number)


class VendorProductMapping(django_db_models.Model):
    product = django_db_models.ForeignKey(Product, on_delete=django_db_models.CASCADE, related_name="vendor_mappings")
    vendor = django_db_models.ForeignKey(Vendor, on_delete=django_db_models.CASCADE, related_name="product_mappings")
    vendor_sku = django_db_models.CharField(max_length=255)
    # Last image the vendor offered for this sku
    image_url = django_db_models.TextField(null=True)
    image_reference = django_db_models.CharField(max_length=255, null=True)

    created_at = django_db_models.DateTimeField(auto_now_add=True)
    updated_at = django_db_models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "vendor_product_mappings"
        unique_together = ["product", "vendor"]
        indexes = [
            django_db_models.Index(fields=["vendor", "vendor_sku"], name="vendor_sku_idx"),
        ]
