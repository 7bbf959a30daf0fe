import concurrent.futures
import datetime
import typing

import pytest

from catalog import enums as catalog_enums
from catalog import messages as catalog_messages
from catalog import models as catalog_models
from catalog.integrations import base as integrations_base
from catalog.services import catalog_sync as catalog_sync_services
from catalog.services import priority as priority_services


@pytest.fixture(autouse=True)
def clear_priority_cache():
    priority_services.clear_vendor_priority_cache()
    yield
    priority_services.clear_vendor_priority_cache()


@pytest.fixture()
def make_vendor():
    def _make_vendor(slug: str, priority: int, **kwargs) -> catalog_models.Vendor:
        kwargs.setdefault("name", slug.replace("-", " ").title())
        return catalog_models.Vendor.objects.create(slug=slug, priority=priority, **kwargs)

    return _make_vendor


@pytest.fixture()
def make_product():
    def _make_product(upc: str, **kwargs) -> catalog_models.Product:
        kwargs.setdefault("name", "Product {}".format(upc))
        return catalog_models.Product.objects.create(upc=upc, **kwargs)

    return _make_product


class StaticFetchAdapter(integrations_base.VendorFetchAdapter):
    """Serves in-memory records; each record is a dict of CandidateProduct fields."""

    def __init__(self, vendor, records=None, since_records=None, error=None):
        super().__init__(vendor=vendor, credentials={})
        self.records = records or []
        self.since_records = since_records
        self.error = error
        self.fetch_since_calls: typing.List[datetime.datetime] = []
        self.fetch_full_calls = 0

    def fetch_full(self):
        self.fetch_full_calls += 1
        if self.error:
            raise self.error
        return list(self.records)

    def fetch_since(self, timestamp):
        self.fetch_since_calls.append(timestamp)
        if self.error:
            raise self.error
        return list(self.records if self.since_records is None else self.since_records)

    def to_candidate(self, raw):
        if raw.get("broken"):
            raise ValueError("Malformed record")
        return catalog_messages.CandidateProduct(**raw)


@pytest.fixture()
def static_adapter(monkeypatch):
    """Route every vendor to a StaticFetchAdapter built from ``records``."""
    adapters = {}

    def _install(vendor, records=None, since_records=None, error=None) -> StaticFetchAdapter:
        adapters[vendor.id] = StaticFetchAdapter(
            vendor=vendor, records=records, since_records=since_records, error=error
        )
        return adapters[vendor.id]

    def _get_fetch_adapter(vendor, credentials):
        return adapters[vendor.id]

    monkeypatch.setattr("catalog.integrations.registry.get_fetch_adapter", _get_fetch_adapter)
    return _install


@pytest.fixture()
def smart_merge():
    return catalog_messages.SyncSettings(duplicate_handling=catalog_enums.DuplicateHandling.SMART_MERGE)


class InlineExecutor:
    """Runs submitted work on the calling thread."""

    def __init__(self):
        self.submitted = []

    def submit(self, fn, *args, **kwargs):
        self.submitted.append(fn)
        future = concurrent.futures.Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


@pytest.fixture()
def inline_sync_executor(monkeypatch):
    executor = InlineExecutor()
    monkeypatch.setattr(catalog_sync_services, "_get_sync_executor", lambda: executor)
    return executor
