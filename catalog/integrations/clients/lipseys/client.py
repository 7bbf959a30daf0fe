import decimal
import logging
import typing

import requests
import simplejson
from django.conf import settings
from ratelimit import limits, sleep_and_retry

from catalog.integrations.clients.lipseys import exceptions
from common import enums as common_enums
from common import utils as common_utils

logger = logging.getLogger(__name__)

SECOND_LIMIT = 5
MINUTE_LIMIT = 20


class LipseysApiClient(object):
    API_BASE_URL = settings.LIPSEYS_BASE_URL
    VALID_STATUS_CODES = [200]

    LOG_PREFIX = "[LIPSEYS-API-CLIENT]"

    def __init__(self, credentials: typing.Dict):
        self.email = credentials.get("email", "")
        self.password = credentials.get("password", "")

        if not self.email or not self.password:
            raise ValueError("Invalid credentials parameter.")

        self._token = None

    @sleep_and_retry
    @limits(calls=MINUTE_LIMIT, period=60)
    def authenticate(self) -> str:
        response = self._request(
            endpoint="api/Integration/Authentication/Login",
            method=common_enums.HttpMethod.POST,
            payload={
                "Email": self.email,
                "Password": self.password,
            },
            include_auth=False,
        )
        data = self._get_response_data(response)

        # Login answers either with the token at top level or wrapped in "data"
        token = data.get("token") or (data.get("data") or {}).get("token")
        if not token:
            msg = "Authentication failed. Errors: {}".format(data.get("errors") or "no token returned")
            logger.error("{} {}.".format(self.LOG_PREFIX, msg))
            raise exceptions.LipseysAPIException(msg)

        self._token = token
        return token

    def get_catalog_feed(self) -> typing.List[typing.Dict]:
        data = self._get_response_data(
            self._request(
                endpoint="api/Integration/Items/CatalogFeed",
                method=common_enums.HttpMethod.GET,
            )
        )

        if isinstance(data, list):
            return data

        if not data.get("success", True):
            msg = "Catalog feed request failed. Errors: {}".format(data.get("errors"))
            logger.error("{} {}.".format(self.LOG_PREFIX, msg))
            raise exceptions.LipseysAPIException(msg)

        items = data.get("data") or []
        logger.info("{} Catalog feed returned {} items.".format(self.LOG_PREFIX, len(items)))
        return items

    @sleep_and_retry
    @limits(calls=SECOND_LIMIT, period=1)
    def _request(
            self,
            endpoint: str,
            method: common_enums.HttpMethod,
            params: typing.Optional[dict] = None,
            payload: typing.Optional[dict] = None,
            include_auth: bool = True,
    ) -> requests.Response:
        url = f"{self.API_BASE_URL}/{endpoint}"
        headers = {
            "Content-Type": "application/json",
        }

        if include_auth:
            if not self._token:
                self.authenticate()
            headers["Token"] = self._token

        try:
            response = requests.request(
                url=url,
                method=method.value,
                params=params,
                json=payload,
                headers=headers,
                timeout=settings.CATALOG_HTTP_TIMEOUT,
            )

            if response.status_code not in self.VALID_STATUS_CODES:
                msg = "Invalid API client response (status_code={}, data={})".format(
                    response.status_code,
                    response.content.decode(encoding="utf-8"),
                )
                logger.error(f"{self.LOG_PREFIX} {msg}.")
                raise exceptions.LipseysAPIBadResponseCodeError(message=msg, code=response.status_code)

            logger.debug(
                f"{self.LOG_PREFIX} Successful response (endpoint={endpoint}, status_code={response.status_code}, params={params})."
            )
        except requests.exceptions.Timeout as e:
            msg = f"Request timeout. Error: {common_utils.get_exception_message(exception=e)}"
            logger.exception(f"{self.LOG_PREFIX} {msg}.")
            raise exceptions.LipseysAPIException(msg)
        except requests.RequestException as e:
            msg = f"Request exception. Error: {common_utils.get_exception_message(exception=e)}"
            logger.exception(f"{self.LOG_PREFIX} {msg}.")
            raise exceptions.LipseysAPIException(msg)

        return response

    @staticmethod
    def _get_response_data(response: requests.Response) -> typing.Union[typing.Dict, typing.List]:
        try:
            return simplejson.loads(
                response.content,
                parse_float=decimal.Decimal,
            )
        except simplejson.JSONDecodeError as e:
            raise exceptions.LipseysAPIException(
                "Invalid JSON response. Error: {}".format(common_utils.get_exception_message(exception=e))
            )
