import datetime
import threading

import pytest
from django.utils import timezone

from catalog import enums as catalog_enums
from catalog import messages as catalog_messages
from catalog import models as catalog_models
from catalog.integrations.clients.lipseys import exceptions as lipseys_exceptions
from catalog.services import catalog_sync as catalog_sync_services
from catalog.services import exceptions as service_exceptions
from catalog.services import images as image_services
from catalog.services import merge as merge_services

pytestmark = pytest.mark.django_db

UPC = "012345678905"


@pytest.fixture()
def sports_south(make_vendor):
    return make_vendor("sports-south", 1, name="Sports South")


@pytest.fixture()
def gunbroker(make_vendor, sports_south):
    return make_vendor("gunbroker", 4, name="GunBroker")


def _records():
    return [
        {"vendor_sku": "A-1", "upc": "000000000017", "name": "Product one"},
        {"vendor_sku": "A-2", "upc": "000000000024", "name": "Product two", "brand": "Glock"},
        {"vendor_sku": "A-3", "upc": "000000000031", "name": "Product three"},
    ]


def test_full_sync_creates_products_and_records_status(sports_south, static_adapter):
    static_adapter(sports_south, records=_records())

    result = catalog_sync_services.trigger_full_sync(sports_south.id)

    assert result.success is True
    assert (result.products_processed, result.new_products, result.updated_products) == (3, 3, 0)
    assert (result.skipped_products, result.failed_products) == (0, 0)
    assert catalog_models.Product.objects.count() == 3
    assert catalog_models.VendorProductMapping.objects.filter(vendor=sports_south).count() == 3

    sports_south.refresh_from_db()
    assert sports_south.catalog_sync_status == catalog_enums.CatalogSyncStatus.SUCCESS.value
    assert sports_south.catalog_sync_status_name == "SUCCESS"
    assert sports_south.catalog_sync_error is None
    assert sports_south.last_catalog_sync == result.started_at
    assert sports_south.last_sync_new_records == 3


def test_identical_resync_is_all_skips(sports_south, static_adapter):
    static_adapter(sports_south, records=_records())
    catalog_sync_services.trigger_full_sync(sports_south.id)
    before = {product.id: product.updated_at for product in catalog_models.Product.objects.all()}

    result = catalog_sync_services.trigger_full_sync(sports_south.id)

    assert (result.new_products, result.updated_products, result.skipped_products) == (0, 0, 3)
    after = {product.id: product.updated_at for product in catalog_models.Product.objects.all()}
    assert after == before
    sports_south.refresh_from_db()
    assert sports_south.last_sync_records_skipped == 3


def test_sports_south_then_gunbroker_scenario(sports_south, gunbroker, static_adapter):
    static_adapter(sports_south, records=[{"vendor_sku": "SS-1", "upc": UPC, "name": "Glock 19 Gen5"}])
    static_adapter(gunbroker, records=[
        {"vendor_sku": "GB-1", "upc": UPC, "name": "Glock 19 Gen 5 9mm", "model": "G19"},
    ])

    catalog_sync_services.trigger_full_sync(sports_south.id)
    result = catalog_sync_services.trigger_full_sync(gunbroker.id)

    product = catalog_models.Product.objects.get(upc=UPC)
    assert product.name == "Glock 19 Gen5"
    assert product.model == "G19"
    assert product.source == "sports-south"
    assert result.updated_products == 1
    assert result.new_products == 0


def test_sync_rejected_while_in_progress(sports_south, static_adapter):
    adapter = static_adapter(sports_south, records=_records())
    catalog_models.Vendor.objects.filter(id=sports_south.id).update(
        catalog_sync_status=catalog_enums.CatalogSyncStatus.IN_PROGRESS.value,
        catalog_sync_started_at=timezone.now(),
    )

    with pytest.raises(service_exceptions.SyncAlreadyInProgressError):
        catalog_sync_services.trigger_full_sync(sports_south.id)

    assert adapter.fetch_full_calls == 0
    assert not catalog_models.Product.objects.exists()


def test_sync_for_unknown_or_disabled_vendor(make_vendor):
    disabled = make_vendor("lipseys", 1, enabled=False)

    with pytest.raises(service_exceptions.VendorNotFoundError):
        catalog_sync_services.trigger_full_sync(987)
    with pytest.raises(service_exceptions.CatalogServiceException):
        catalog_sync_services.trigger_full_sync(disabled.id)


def test_fetch_failure_marks_error_and_keeps_last_sync(sports_south, static_adapter):
    previous_sync = timezone.now() - datetime.timedelta(days=1)
    catalog_models.Vendor.objects.filter(id=sports_south.id).update(
        last_catalog_sync=previous_sync,
        last_sync_new_records=42,
    )
    static_adapter(sports_south, error=lipseys_exceptions.LipseysAPIException("Request timeout"))

    result = catalog_sync_services.trigger_full_sync(sports_south.id)

    assert result.success is False
    assert "Request timeout" in result.message
    sports_south.refresh_from_db()
    assert sports_south.catalog_sync_status == catalog_enums.CatalogSyncStatus.ERROR.value
    assert "Request timeout" in sports_south.catalog_sync_error
    assert sports_south.last_catalog_sync == previous_sync
    assert sports_south.last_sync_new_records == 42


def test_vendor_without_adapter_fails_the_job(sports_south):
    result = catalog_sync_services.trigger_full_sync(sports_south.id)

    assert result.success is False
    assert "No fetch adapter configured" in result.message
    sports_south.refresh_from_db()
    assert sports_south.catalog_sync_status_name == "ERROR"


def test_record_failures_do_not_stop_the_job(sports_south, static_adapter):
    records = _records() + [
        {"broken": True},
        {"vendor_sku": "A-9", "upc": None, "manufacturer_part_number": None, "name": "No identifiers"},
    ]
    static_adapter(sports_south, records=records)

    result = catalog_sync_services.trigger_full_sync(sports_south.id)

    assert result.success is True
    assert result.products_processed == 5
    assert result.new_products == 3
    assert result.failed_products == 2
    assert len(result.errors) == 2
    sports_south.refresh_from_db()
    assert sports_south.last_sync_records_failed == 2


def test_incremental_without_previous_sync_falls_back_to_full(sports_south, static_adapter):
    adapter = static_adapter(sports_south, records=_records())

    result = catalog_sync_services.trigger_incremental_sync(sports_south.id)

    assert result.mode == catalog_enums.CatalogSyncMode.FULL
    assert result.warnings
    assert adapter.fetch_full_calls == 1
    assert adapter.fetch_since_calls == []


def test_incremental_passes_last_successful_sync(sports_south, static_adapter):
    adapter = static_adapter(sports_south, records=_records(), since_records=_records()[:1])
    first = catalog_sync_services.trigger_full_sync(sports_south.id)

    result = catalog_sync_services.trigger_incremental_sync(sports_south.id)

    assert adapter.fetch_since_calls == [first.started_at]
    assert result.mode == catalog_enums.CatalogSyncMode.INCREMENTAL
    assert result.products_processed == 1
    assert result.skipped_products == 1


def test_records_for_the_same_product_are_applied_in_order(sports_south, static_adapter):
    static_adapter(sports_south, records=[
        {"vendor_sku": "A-1", "upc": UPC, "name": "First"},
        {"vendor_sku": "A-1", "upc": UPC, "name": "Second"},
    ])

    result = catalog_sync_services.trigger_full_sync(sports_south.id)

    assert (result.new_products, result.updated_products) == (1, 1)
    assert catalog_models.Product.objects.get(upc=UPC).name == "Second"


def test_image_fallback_runs_after_product_writes(make_vendor, static_adapter):
    vendor = make_vendor(
        "bill-hicks",
        1,
        image_url_template="https://images.example.com/{sku_plus}.jpg",
    )
    static_adapter(vendor, records=[{"vendor_sku": "BUR 202224", "upc": UPC, "name": "Scope"}])

    result = catalog_sync_services.trigger_full_sync(vendor.id)

    assert result.images_updated == 1
    product = catalog_models.Product.objects.get(upc=UPC)
    assert product.image_url == "https://images.example.com/BUR+202224.jpg"
    assert product.image_source == "bill-hicks"


def test_reset_stuck_syncs(make_vendor):
    stuck = make_vendor("sports-south", 1)
    recent = make_vendor("lipseys", 2)
    catalog_models.Vendor.objects.filter(id=stuck.id).update(
        catalog_sync_status=catalog_enums.CatalogSyncStatus.IN_PROGRESS.value,
        catalog_sync_started_at=timezone.now() - datetime.timedelta(hours=10),
    )
    catalog_models.Vendor.objects.filter(id=recent.id).update(
        catalog_sync_status=catalog_enums.CatalogSyncStatus.IN_PROGRESS.value,
        catalog_sync_started_at=timezone.now(),
    )

    assert catalog_sync_services.reset_stuck_syncs(older_than=datetime.timedelta(hours=6)) == 1

    stuck.refresh_from_db()
    recent.refresh_from_db()
    assert stuck.catalog_sync_status_name == "ERROR"
    assert recent.catalog_sync_status == catalog_enums.CatalogSyncStatus.IN_PROGRESS.value


def test_resync_of_source_locked_product_keeps_better_vendor_image(make_vendor, static_adapter):
    primary = make_vendor("vendor-a", 1)
    secondary = make_vendor("vendor-b", 2)
    static_adapter(secondary, records=[
        {"vendor_sku": "B-1", "upc": UPC, "name": "Scope", "image_url": "https://b.example.com/b-1.jpg"},
    ])
    static_adapter(primary, records=[
        {"vendor_sku": "A-1", "upc": UPC, "name": "Scope 3-9x40", "brand": "Vortex",
         "image_url": "https://a.example.com/a-1.jpg"},
    ])

    catalog_sync_services.trigger_full_sync(secondary.id)
    catalog_models.Product.objects.filter(upc=UPC).update(source_locked=True)
    catalog_sync_services.trigger_full_sync(primary.id)

    product = catalog_models.Product.objects.get(upc=UPC)
    assert (product.name, product.brand, product.source) == ("Scope", "Vortex", "vendor-b")
    assert (product.image_url, product.image_source) == ("https://a.example.com/a-1.jpg", "vendor-a")

    first = catalog_sync_services.trigger_full_sync(secondary.id)
    second = catalog_sync_services.trigger_full_sync(secondary.id)

    assert (first.updated_products, first.skipped_products, first.images_updated) == (0, 1, 0)
    assert (second.updated_products, second.skipped_products, second.images_updated) == (0, 1, 0)
    product.refresh_from_db()
    assert (product.image_url, product.image_source) == ("https://a.example.com/a-1.jpg", "vendor-a")


def test_worker_pool_and_background_images(sports_south, static_adapter, settings, monkeypatch, caplog):
    settings.CATALOG_SYNC_MAX_WORKERS = 4
    settings.CATALOG_IMAGE_FALLBACK_ASYNC = True
    actions = {
        "a-1": catalog_enums.MergeAction.CREATE,
        "a-2": catalog_enums.MergeAction.SKIP,
        "a-3": catalog_enums.MergeAction.REPLACE,
        "b-1": catalog_enums.MergeAction.REPLACE,
        "c-1": catalog_enums.MergeAction.MERGE,
        "d-1": catalog_enums.MergeAction.CREATE,
    }
    static_adapter(sports_south, records=[
        {"vendor_sku": "a-1", "upc": "100"},
        {"vendor_sku": "b-1", "upc": "200"},
        {"vendor_sku": "a-2", "upc": "100"},
        {"vendor_sku": "c-1", "upc": "300"},
        {"vendor_sku": "bad", "upc": "400"},
        {"vendor_sku": "a-3", "upc": "100"},
        {"vendor_sku": "d-1", "upc": "500"},
    ])
    applied = []
    image_threads = []
    applied_lock = threading.Lock()

    def _apply_candidate(candidate, vendor, settings=None, manual_override=False):
        with applied_lock:
            applied.append((candidate.upc, candidate.vendor_sku, threading.current_thread().name))
        if candidate.vendor_sku == "bad":
            raise service_exceptions.CandidateValidationError("Record bad has no product name")
        return catalog_messages.MergeOutcome(action=actions[candidate.vendor_sku], product_id=1, upc=candidate.upc)

    def _update_product_image(upc, supplying_vendor_slug=None):
        with applied_lock:
            image_threads.append(threading.current_thread().name)
        if upc == "200":
            raise RuntimeError("Image host unreachable")
        return upc != "500"

    monkeypatch.setattr(merge_services, "apply_candidate", _apply_candidate)
    monkeypatch.setattr(image_services, "update_product_image", _update_product_image)

    result = catalog_sync_services.trigger_full_sync(sports_south.id)

    assert result.success is True
    assert result.products_processed == 7
    assert (result.new_products, result.updated_products, result.skipped_products) == (2, 3, 1)
    assert result.failed_products == 1
    assert result.errors == ["bad: Record bad has no product name"]
    assert [sku for upc, sku, _ in applied if upc == "100"] == ["a-1", "a-2", "a-3"]
    assert all(name != threading.main_thread().name for _, _, name in applied)

    assert result.images_updated == 3
    assert len(image_threads) == 5
    assert all(name.startswith("image-fallback") for name in image_threads)
    assert "Image fallback failed for product 200" in caplog.text

    sports_south.refresh_from_db()
    assert sports_south.catalog_sync_status == catalog_enums.CatalogSyncStatus.SUCCESS.value
    assert sports_south.last_sync_images_updated == 3


def test_background_sync_claims_before_queueing(sports_south, static_adapter, monkeypatch):
    queued = []

    class _QueueOnlyExecutor:
        def submit(self, fn, *args):
            queued.append((fn, args))

    monkeypatch.setattr(catalog_sync_services, "_get_sync_executor", lambda: _QueueOnlyExecutor())
    static_adapter(sports_south, records=_records())

    catalog_sync_services.start_background_sync(sports_south.id, catalog_enums.CatalogSyncMode.FULL)

    sports_south.refresh_from_db()
    assert sports_south.catalog_sync_status == catalog_enums.CatalogSyncStatus.IN_PROGRESS.value
    with pytest.raises(service_exceptions.SyncAlreadyInProgressError):
        catalog_sync_services.start_background_sync(sports_south.id, catalog_enums.CatalogSyncMode.FULL)
    assert len(queued) == 1

    job, args = queued[0]
    result = job(*args)

    assert result.success is True
    assert result.new_products == 3
    sports_south.refresh_from_db()
    assert sports_south.catalog_sync_status == catalog_enums.CatalogSyncStatus.SUCCESS.value


def test_aborted_background_sync_is_logged(sports_south, static_adapter, inline_sync_executor, monkeypatch, caplog):
    static_adapter(sports_south, records=_records())

    def _abort(**kwargs):
        raise RuntimeError("Worker pool shut down")

    monkeypatch.setattr(catalog_sync_services, "_process_records", _abort)

    future = catalog_sync_services.start_background_sync(sports_south.id, catalog_enums.CatalogSyncMode.FULL)

    assert future.result() is None
    assert "Background FULL sync for vendor sports-south aborted" in caplog.text
    sports_south.refresh_from_db()
    assert sports_south.catalog_sync_status == catalog_enums.CatalogSyncStatus.ERROR.value
    assert sports_south.catalog_sync_error == "Sync aborted: Worker pool shut down"
