import datetime

import pytest
import simplejson
from django.contrib.auth import get_user_model
from django.utils import timezone

from catalog import enums as catalog_enums
from catalog import models as catalog_models
from catalog.services import mappings as mapping_services

pytestmark = pytest.mark.django_db


@pytest.fixture()
def user():
    return get_user_model().objects.create_user(username="catalog-admin", password="secret")


@pytest.fixture()
def auth_client(client, user):
    client.force_login(user)
    return client


def _body(response):
    return simplejson.loads(response.content)


def test_anonymous_requests_are_rejected(client, make_vendor):
    vendor = make_vendor("lipseys", 1)

    assert client.get("/api/vendors/{}/priority/".format(vendor.id)).status_code == 401
    assert client.delete("/api/vendors/{}/".format(vendor.id)).status_code == 401
    assert client.post("/api/vendors/{}/sync/".format(vendor.id)).status_code == 401
    assert client.get("/api/products/012345678905/image/").status_code == 401


def test_get_priority(auth_client, make_vendor):
    vendor = make_vendor("lipseys", 1)

    response = auth_client.get("/api/vendors/{}/priority/".format(vendor.id))

    assert response.status_code == 200
    assert _body(response)["data"] == {"vendor_id": vendor.id, "priority": 1}
    assert auth_client.get("/api/vendors/999/priority/").status_code == 404


def test_put_priority_into_free_slot(auth_client, make_vendor):
    make_vendor("lipseys", 1)
    vendor = make_vendor("bill-hicks", 3)

    response = auth_client.put(
        "/api/vendors/{}/priority/".format(vendor.id),
        data=simplejson.dumps({"priority": 2}),
        content_type="application/json",
    )

    assert response.status_code == 200
    vendor.refresh_from_db()
    assert vendor.priority == 2


def test_put_taken_priority_is_rejected_unless_shifted(auth_client, make_vendor):
    first = make_vendor("lipseys", 1)
    second = make_vendor("bill-hicks", 2)
    url = "/api/vendors/{}/priority/".format(second.id)

    response = auth_client.put(url, data=simplejson.dumps({"priority": 1}), content_type="application/json")
    assert response.status_code == 400

    response = auth_client.put(
        url, data=simplejson.dumps({"priority": 1, "shift": True}), content_type="application/json"
    )
    assert response.status_code == 200
    first.refresh_from_db()
    second.refresh_from_db()
    assert (second.priority, first.priority) == (1, 2)


def test_put_invalid_payload(auth_client, make_vendor):
    vendor = make_vendor("lipseys", 1)
    url = "/api/vendors/{}/priority/".format(vendor.id)

    response = auth_client.put(url, data=simplejson.dumps({"priority": "first"}), content_type="application/json")
    assert response.status_code == 400
    assert _body(response)["message"] == "Invalid payload"

    response = auth_client.put(url, data="not json", content_type="application/json")
    assert response.status_code == 400


def test_delete_vendor_resequences(auth_client, make_vendor):
    first = make_vendor("lipseys", 1)
    second = make_vendor("bill-hicks", 2)

    response = auth_client.delete("/api/vendors/{}/".format(first.id))

    assert response.status_code == 200
    second.refresh_from_db()
    assert second.priority == 1
    assert auth_client.delete("/api/vendors/{}/".format(first.id)).status_code == 400


def test_sync_runs_job(auth_client, make_vendor, static_adapter):
    vendor = make_vendor("lipseys", 1)
    static_adapter(vendor, records=[{"vendor_sku": "A1", "upc": "012345678905", "name": "Widget"}])

    response = auth_client.post(
        "/api/vendors/{}/sync/".format(vendor.id),
        data=simplejson.dumps({"mode": "full", "wait": True}),
        content_type="application/json",
    )

    assert response.status_code == 200
    data = _body(response)["data"]
    assert data["success"] is True
    assert data["new_products"] == 1
    assert data["mode"] == catalog_enums.CatalogSyncMode.FULL.name


def test_sync_error_statuses(auth_client, make_vendor):
    vendor = make_vendor("lipseys", 1)
    url = "/api/vendors/{}/sync/".format(vendor.id)

    response = auth_client.post(url, data=simplejson.dumps({"mode": "delta"}), content_type="application/json")
    assert response.status_code == 400

    response = auth_client.post("/api/vendors/999/sync/", data="{}", content_type="application/json")
    assert response.status_code == 404

    catalog_models.Vendor.objects.filter(id=vendor.id).update(
        catalog_sync_status=catalog_enums.CatalogSyncStatus.IN_PROGRESS.value,
        catalog_sync_status_name=catalog_enums.CatalogSyncStatus.IN_PROGRESS.name,
        catalog_sync_started_at=timezone.now() - datetime.timedelta(minutes=5),
    )
    response = auth_client.post(url, data="{}", content_type="application/json")
    assert response.status_code == 409


def test_sync_fetch_failure_returns_bad_gateway(auth_client, make_vendor, static_adapter):
    vendor = make_vendor("lipseys", 1)
    static_adapter(vendor, error=RuntimeError("Vendor API down"))

    response = auth_client.post(
        "/api/vendors/{}/sync/".format(vendor.id),
        data=simplejson.dumps({"wait": True}),
        content_type="application/json",
    )

    assert response.status_code == 502
    assert "Vendor API down" in _body(response)["message"]


def test_product_image(auth_client, make_vendor, make_product):
    vendor = make_vendor("lipseys", 1)
    product = make_product("012345678905")

    assert auth_client.get("/api/products/000000000000/image/").status_code == 404
    assert auth_client.get("/api/products/012345678905/image/").status_code == 404

    mapping_services.upsert_vendor_mapping(
        product=product, vendor=vendor, vendor_sku="A1", image_url="https://images.example.com/a1.jpg"
    )
    response = auth_client.get("/api/products/012345678905/image/")

    assert response.status_code == 200
    assert _body(response)["data"] == {
        "url": "https://images.example.com/a1.jpg",
        "source_vendor": "lipseys",
        "priority": 1,
        "fallback_used": False,
    }


def test_unknown_endpoint_returns_json_404(client):
    response = client.get("/api/suppliers/")

    assert response.status_code == 404
    assert _body(response)["message"] == "The endpoint /api/suppliers/ you are trying to access does not exist."


def test_sync_is_queued_by_default(auth_client, make_vendor, static_adapter, inline_sync_executor):
    vendor = make_vendor("lipseys", 1)
    static_adapter(vendor, records=[{"vendor_sku": "A1", "upc": "012345678905", "name": "Widget"}])

    response = auth_client.post(
        "/api/vendors/{}/sync/".format(vendor.id),
        data=simplejson.dumps({"mode": "incremental"}),
        content_type="application/json",
    )

    assert response.status_code == 202
    assert _body(response)["data"] == {"vendor_id": vendor.id, "mode": "INCREMENTAL", "status": "IN_PROGRESS"}
    assert len(inline_sync_executor.submitted) == 1

    vendor.refresh_from_db()
    assert vendor.catalog_sync_status == catalog_enums.CatalogSyncStatus.SUCCESS.value
    assert catalog_models.Product.objects.filter(upc="012345678905").exists()
