import abc
import datetime
import typing

from catalog import messages as catalog_messages
from catalog import models as catalog_models


class VendorFetchAdapter(abc.ABC):
    """
    Pulls raw records from one vendor and turns them into candidates.

    Any exception raised by ``fetch_full`` or ``fetch_since`` fails the whole
    sync job; ``to_candidate`` failures only fail the single record.
    """

    def __init__(self, vendor: catalog_models.Vendor, credentials: typing.Dict) -> None:
        self.vendor = vendor
        self.credentials = credentials

    @abc.abstractmethod
    def fetch_full(self) -> typing.List[typing.Dict]:
        pass

    @abc.abstractmethod
    def fetch_since(self, timestamp: datetime.datetime) -> typing.List[typing.Dict]:
        pass

    @abc.abstractmethod
    def to_candidate(self, raw: typing.Dict) -> catalog_messages.CandidateProduct:
        pass
