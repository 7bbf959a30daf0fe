import datetime
import io
import logging
import typing

import pandas as pd

from catalog import constants as catalog_constants
from catalog import messages as catalog_messages
from catalog import models as catalog_models
from catalog.integrations import base
from catalog.integrations.clients.bill_hicks import client as bill_hicks_client
from catalog.integrations.clients.bill_hicks import exceptions as bill_hicks_exceptions
from catalog.services import exceptions as service_exceptions
from common import utils as common_utils

logger = logging.getLogger(__name__)

_LOG_PREFIX = '[BILL-HICKS-FETCH-ADAPTER]'


class BillHicksFetchAdapter(base.VendorFetchAdapter):
    def __init__(self, vendor: catalog_models.Vendor, credentials: typing.Dict) -> None:
        super().__init__(vendor=vendor, credentials=credentials)
        self.client = bill_hicks_client.BillHicksSFTPClient(credentials=credentials)

    def fetch_full(self) -> typing.List[typing.Dict]:
        return self.parse_catalog(content=self.client.get_catalog_file())

    def fetch_since(self, timestamp: datetime.datetime) -> typing.List[typing.Dict]:
        modified_at = self.client.get_catalog_modified_at()
        if modified_at <= timestamp:
            logger.info('{} Catalog file unchanged since {} (modified {}).'.format(_LOG_PREFIX, timestamp, modified_at))
            return []

        return self.fetch_full()

    @staticmethod
    def parse_catalog(content: bytes) -> typing.List[typing.Dict]:
        text = content.decode('utf-8-sig', errors='replace')
        # The daily file ships with an unquoted last header
        text = text.replace(',MFG_product"', ',"MFG_product"')

        try:
            df = pd.read_csv(
                io.StringIO(text),
                sep=',',
                header=0,
                dtype=str,
                keep_default_na=False,
                skipinitialspace=True,
                on_bad_lines='skip',
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise bill_hicks_exceptions.BillHicksException(
                'Failed to parse catalog file. Error: {}'.format(common_utils.get_exception_message(exception=e))
            )

        df.columns = [str(column).strip() for column in df.columns]
        missing_columns = [column for column in catalog_constants.BILL_HICKS_REQUIRED_COLUMNS if column not in df.columns]
        if missing_columns:
            raise bill_hicks_exceptions.BillHicksException(
                'Catalog file is missing columns: {}'.format(', '.join(missing_columns))
            )

        records = df.to_dict(orient='records')
        logger.info('{} Parsed {} catalog records.'.format(_LOG_PREFIX, len(records)))
        return records

    def to_candidate(self, raw: typing.Dict) -> catalog_messages.CandidateProduct:
        product_name = common_utils.clean_string(raw.get('product_name'))
        if not product_name:
            raise service_exceptions.CandidateValidationError('Bill Hicks record without product_name')

        # "BUR 202224" -> brand "BUR", part number "202224"
        parts = product_name.split()
        brand = parts[0]
        part_number = ' '.join(parts[1:]) if len(parts) > 1 else product_name

        upc = common_utils.clean_string(raw.get('universal_product_code'))
        if upc == '0':
            upc = None

        short_description = common_utils.clean_string(raw.get('short_description'))

        return catalog_messages.CandidateProduct(
            vendor_sku=product_name,
            name=short_description or product_name,
            upc=upc,
            brand=brand,
            manufacturer_part_number=part_number,
            category=common_utils.clean_string(raw.get('category_description')),
            description=common_utils.clean_string(raw.get('long_description')) or short_description,
        )
