import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Company",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("slug", models.CharField(max_length=255)),
                ("status", models.PositiveSmallIntegerField(default=1)),
                ("status_name", models.CharField(default="ACTIVE", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "company",
                "unique_together": {("slug",)},
            },
        ),
        migrations.CreateModel(
            name="Vendor",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("slug", models.CharField(max_length=255)),
                ("name", models.CharField(max_length=255)),
                ("priority", models.PositiveIntegerField()),
                ("enabled", models.BooleanField(default=True)),
                ("api_type", models.PositiveSmallIntegerField(default=1)),
                ("api_type_name", models.CharField(default="REST_API", max_length=255)),
                ("kind", models.PositiveSmallIntegerField(default=0)),
                ("kind_name", models.CharField(default="MANUAL", max_length=255)),
                ("admin_credentials", models.JSONField(null=True)),
                ("image_url_template", models.TextField(null=True)),
                ("last_catalog_sync", models.DateTimeField(null=True)),
                ("catalog_sync_status", models.PositiveSmallIntegerField(default=1)),
                ("catalog_sync_status_name", models.CharField(default="NEVER_SYNCED", max_length=255)),
                ("catalog_sync_started_at", models.DateTimeField(null=True)),
                ("catalog_sync_error", models.TextField(null=True)),
                ("last_sync_new_records", models.IntegerField(default=0)),
                ("last_sync_records_updated", models.IntegerField(default=0)),
                ("last_sync_records_skipped", models.IntegerField(default=0)),
                ("last_sync_records_failed", models.IntegerField(default=0)),
                ("last_sync_images_updated", models.IntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "vendors",
                "unique_together": {("slug",)},
            },
        ),
        migrations.AddConstraint(
            model_name="vendor",
            constraint=models.UniqueConstraint(fields=("priority",), name="vendors_priority_unique"),
        ),
        migrations.CreateModel(
            name="CompanyVendorCredentials",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("credentials", models.JSONField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="vendor_credentials",
                        to="catalog.company",
                    ),
                ),
                (
                    "vendor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="company_credentials",
                        to="catalog.vendor",
                    ),
                ),
            ],
            options={
                "db_table": "company_vendor_credentials",
                "unique_together": {("company", "vendor")},
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("upc", models.CharField(max_length=64, null=True)),
                ("name", models.CharField(max_length=512)),
                ("brand", models.CharField(max_length=255, null=True)),
                ("model", models.CharField(max_length=255, null=True)),
                ("manufacturer_part_number", models.CharField(db_index=True, max_length=255, null=True)),
                ("category", models.CharField(max_length=255, null=True)),
                ("subcategory", models.CharField(max_length=255, null=True)),
                ("description", models.TextField(null=True)),
                ("weight", models.DecimalField(decimal_places=2, max_digits=10, null=True)),
                ("image_url", models.TextField(null=True)),
                ("image_source", models.CharField(max_length=255, null=True)),
                ("serialized", models.BooleanField(default=False)),
                ("specifications", models.JSONField(null=True)),
                ("status", models.PositiveSmallIntegerField(default=1)),
                ("status_name", models.CharField(default="ACTIVE", max_length=255)),
                ("source", models.CharField(max_length=255, null=True)),
                ("source_locked", models.BooleanField(default=False)),
                ("retail_vertical_id", models.IntegerField(null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "products",
                "unique_together": {("upc",)},
            },
        ),
        migrations.CreateModel(
            name="VendorProductMapping",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("vendor_sku", models.CharField(max_length=255)),
                ("image_url", models.TextField(null=True)),
                ("image_reference", models.CharField(max_length=255, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="vendor_mappings",
                        to="catalog.product",
                    ),
                ),
                (
                    "vendor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="product_mappings",
                        to="catalog.vendor",
                    ),
                ),
            ],
            options={
                "db_table": "vendor_product_mappings",
                "unique_together": {("product", "vendor")},
            },
        ),
        migrations.AddIndex(
            model_name="vendorproductmapping",
            index=models.Index(fields=["vendor", "vendor_sku"], name="vendor_sku_idx"),
        ),
    ]
