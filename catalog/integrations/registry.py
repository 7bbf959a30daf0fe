import typing

from catalog import enums as catalog_enums
from catalog import models as catalog_models
from catalog.integrations import base
from catalog.integrations.adapters import bill_hicks as bill_hicks_adapters
from catalog.integrations.adapters import lipseys as lipseys_adapters
from catalog.services import exceptions as service_exceptions

FETCH_ADAPTERS: typing.Dict[int, typing.Type[base.VendorFetchAdapter]] = {
    catalog_enums.VendorKind.LIPSEYS.value: lipseys_adapters.LipseysFetchAdapter,
    catalog_enums.VendorKind.BILL_HICKS.value: bill_hicks_adapters.BillHicksFetchAdapter,
}


def get_fetch_adapter(vendor: catalog_models.Vendor, credentials: typing.Dict) -> base.VendorFetchAdapter:
    adapter_class = FETCH_ADAPTERS.get(vendor.kind)
    if adapter_class is None:
        raise service_exceptions.FetchAdapterNotConfiguredError(
            'No fetch adapter configured for vendor {} ({})'.format(vendor.slug, vendor.kind_name)
        )

    return adapter_class(vendor=vendor, credentials=credentials)
