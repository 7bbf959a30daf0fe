import datetime
import decimal
import logging
import re
import typing

from django.conf import settings

from catalog import enums as catalog_enums
from catalog import messages as catalog_messages
from catalog import models as catalog_models
from catalog.integrations import base
from catalog.integrations.clients.lipseys import client as lipseys_client
from catalog.services import exceptions as service_exceptions
from common import utils as common_utils

logger = logging.getLogger(__name__)

_LOG_PREFIX = '[LIPSEYS-FETCH-ADAPTER]'

_DEFAULT_PRODUCT_PREFIX = "Lipsey's Item"
_WEIGHT_PATTERN = re.compile(r'\d+(?:\.\d+)?')

# specification key -> feed field
_SPECIFICATION_FIELDS = {
    'caliber': 'caliberGauge',
    'action': 'action',
    'barrelLength': 'barrelLength',
    'capacity': 'capacity',
    'finish': 'finish',
    'overallLength': 'overallLength',
    'receiver': 'receiver',
    'safety': 'safety',
    'sights': 'sights',
    'stockFrameGrips': 'stockFrameGrips',
    'magazine': 'magazine',
    'chamber': 'chamber',
    'rateOfTwist': 'rateOfTwist',
    'family': 'family',
}


class LipseysFetchAdapter(base.VendorFetchAdapter):
    def __init__(self, vendor: catalog_models.Vendor, credentials: typing.Dict) -> None:
        super().__init__(vendor=vendor, credentials=credentials)
        self.client = lipseys_client.LipseysApiClient(credentials=credentials)

    def fetch_full(self) -> typing.List[typing.Dict]:
        return self.client.get_catalog_feed()

    def fetch_since(self, timestamp: datetime.datetime) -> typing.List[typing.Dict]:
        # The catalog feed has no delta endpoint, unchanged records end up skipped
        logger.info('{} No delta feed available, fetching full catalog (last sync {}).'.format(_LOG_PREFIX, timestamp))
        return self.fetch_full()

    def to_candidate(self, raw: typing.Dict) -> catalog_messages.CandidateProduct:
        item_no = common_utils.clean_string(raw.get('itemNo'))
        if not item_no:
            raise service_exceptions.CandidateValidationError('Lipseys record without itemNo')

        image_name = common_utils.clean_string(raw.get('imageName'))

        return catalog_messages.CandidateProduct(
            vendor_sku=item_no,
            name=self._product_name(raw=raw, item_no=item_no),
            upc=common_utils.clean_string(raw.get('upc')),
            brand=common_utils.clean_string(raw.get('manufacturer')),
            model=common_utils.clean_string(raw.get('model')),
            manufacturer_part_number=common_utils.clean_string(raw.get('manufacturerModelNo')),
            category=common_utils.clean_string(raw.get('type')),
            subcategory=common_utils.clean_string(raw.get('itemType')),
            description=(
                common_utils.clean_string(raw.get('description2')) or common_utils.clean_string(raw.get('description1'))
            ),
            weight=self._weight(raw=raw),
            image_url=self._image_url(image_name=image_name),
            image_reference=image_name,
            serialized=bool(raw.get('fflRequired')),
            specifications=self._specifications(raw=raw),
            status=catalog_enums.ProductStatus.ACTIVE.value,
        )

    @staticmethod
    def _product_name(raw: typing.Dict, item_no: str) -> str:
        description1 = common_utils.clean_string(raw.get('description1'))
        description2 = common_utils.clean_string(raw.get('description2'))
        manufacturer = common_utils.clean_string(raw.get('manufacturer'))
        model = common_utils.clean_string(raw.get('model'))

        if description1:
            return description1
        if description2:
            return description2
        if manufacturer and model:
            return '{} {}'.format(manufacturer, model)
        if manufacturer:
            return manufacturer
        return '{} {}'.format(_DEFAULT_PRODUCT_PREFIX, item_no)

    @staticmethod
    def _image_url(image_name: typing.Optional[str]) -> typing.Optional[str]:
        if not image_name:
            return None
        if image_name.startswith(('http://', 'https://')):
            return image_name
        return '{}/{}'.format(settings.LIPSEYS_IMAGE_BASE_URL.rstrip('/'), image_name)

    @staticmethod
    def _weight(raw: typing.Dict) -> typing.Optional[decimal.Decimal]:
        for field in ('weight', 'shippingWeight'):
            value = raw.get(field)
            if isinstance(value, (int, float, decimal.Decimal)) and not isinstance(value, bool):
                return decimal.Decimal(str(value))

            match = _WEIGHT_PATTERN.search(str(value or ''))
            if match:
                return decimal.Decimal(match.group(0))

        return None

    @staticmethod
    def _specifications(raw: typing.Dict) -> typing.Dict:
        specifications = {}
        for key, field in _SPECIFICATION_FIELDS.items():
            value = raw.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            specifications[key] = value.strip() if isinstance(value, str) else value

        return specifications
