import logging
import typing

from catalog import models as catalog_models

logger = logging.getLogger(__name__)

_LOG_PREFIX = '[VENDOR-CREDENTIALS-SERVICES]'


def get_vendor_credentials(
    vendor: catalog_models.Vendor,
    company_id: typing.Optional[int] = None,
) -> typing.Dict:
    """
    Company credentials win over the vendor's system credentials.

    The contents are handed to the fetch adapter untouched.
    """
    if company_id is not None:
        company_credentials = catalog_models.CompanyVendorCredentials.objects.filter(
            company_id=company_id,
            vendor=vendor,
        ).first()
        if company_credentials and company_credentials.credentials:
            return company_credentials.credentials

        logger.info('{} No credentials for company {} and vendor {}, using admin credentials.'.format(
            _LOG_PREFIX, company_id, vendor.slug
        ))

    return vendor.admin_credentials or {}
