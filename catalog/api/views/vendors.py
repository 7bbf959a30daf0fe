import json
import logging

import simplejson
from django import http, views
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt

from catalog import enums as catalog_enums
from catalog import messages as catalog_messages
from catalog.api.schemas import vendors as vendor_schemas
from catalog.services import catalog_sync as catalog_sync_services
from catalog.services import exceptions as service_exceptions
from catalog.services import vendors as vendor_services
from common import exceptions as common_exceptions
from common import utils as common_utils

logger = logging.getLogger(__name__)

_LOG_PREFIX = "[VENDOR-VIEW]"


def _permission_denied() -> http.HttpResponse:
    return http.HttpResponse(
        content=simplejson.dumps({"message": "Permission denied"}),
        status=401
    )


def _parse_payload(request, schema):
    try:
        payload = json.loads(request.body or b"{}")
    except ValueError:
        raise common_exceptions.ValidationSchemaException("Request body is not valid JSON")

    return common_utils.validate_data_schema(data=payload, schema=schema)


@method_decorator(csrf_exempt, name="dispatch")
class VendorView(views.View):
    def delete(self, request, *args, **kwargs):
        vendor_id = kwargs.get("vendor_id")

        if not request.user or not request.user.is_authenticated:
            return _permission_denied()

        result = vendor_services.delete_vendor(vendor_id=vendor_id)
        return http.HttpResponse(
            content=simplejson.dumps({
                "message": result.message,
                "data": result.data,
            }),
            status=200 if result.success else 400
        )


@method_decorator(csrf_exempt, name="dispatch")
class VendorPriorityView(views.View):
    def get(self, request, *args, **kwargs):
        vendor_id = kwargs.get("vendor_id")

        if not request.user or not request.user.is_authenticated:
            return _permission_denied()

        try:
            priority = vendor_services.get_vendor_priority_by_id(vendor_id=vendor_id)
        except service_exceptions.VendorNotFoundError as e:
            return http.HttpResponse(
                content=simplejson.dumps({"message": e.message}),
                status=404
            )

        return http.HttpResponse(
            content=simplejson.dumps({
                "message": "Vendor priority fetched",
                "data": {
                    "vendor_id": vendor_id,
                    "priority": priority,
                }
            }),
            status=200
        )

    def put(self, request, *args, **kwargs):
        vendor_id = kwargs.get("vendor_id")

        if not request.user or not request.user.is_authenticated:
            return _permission_denied()

        try:
            validated = _parse_payload(request=request, schema=vendor_schemas.UpdateVendorPrioritySchema())
        except common_exceptions.ValidationSchemaException as e:
            return http.HttpResponse(
                content=simplejson.dumps({
                    "message": "Invalid payload",
                    "data": e.message,
                }),
                status=400
            )

        if validated["shift"]:
            result = vendor_services.move_vendor_priority(vendor_id=vendor_id, new_priority=validated["priority"])
        else:
            result = vendor_services.set_vendor_priority(vendor_id=vendor_id, new_priority=validated["priority"])

        return http.HttpResponse(
            content=simplejson.dumps({
                "message": result.message,
                "data": result.data,
            }),
            status=200 if result.success else 400
        )


@method_decorator(csrf_exempt, name="dispatch")
class VendorSyncView(views.View):
    def post(self, request, *args, **kwargs):
        vendor_id = kwargs.get("vendor_id")

        if not request.user or not request.user.is_authenticated:
            return _permission_denied()

        try:
            validated = _parse_payload(request=request, schema=vendor_schemas.TriggerVendorSyncSchema())
        except common_exceptions.ValidationSchemaException as e:
            return http.HttpResponse(
                content=simplejson.dumps({
                    "message": "Invalid payload",
                    "data": e.message,
                }),
                status=400
            )

        sync_settings = catalog_messages.SyncSettings(
            duplicate_handling=catalog_enums.DuplicateHandling[validated["duplicate_handling"]],
            manual_override=validated["manual_override"],
        )
        if validated["mode"] == "incremental":
            mode = catalog_enums.CatalogSyncMode.INCREMENTAL
            trigger_sync = catalog_sync_services.trigger_incremental_sync
        else:
            mode = catalog_enums.CatalogSyncMode.FULL
            trigger_sync = catalog_sync_services.trigger_full_sync

        try:
            if not validated["wait"]:
                catalog_sync_services.start_background_sync(
                    vendor_id=vendor_id,
                    mode=mode,
                    company_id=validated["company_id"],
                    sync_settings=sync_settings,
                )
                logger.info("{} {} sync for vendor {} queued by user {}.".format(
                    _LOG_PREFIX, mode.name, vendor_id, request.user.id
                ))
                return http.HttpResponse(
                    content=simplejson.dumps({
                        "message": "Catalog sync started",
                        "data": {
                            "vendor_id": vendor_id,
                            "mode": mode.name,
                            "status": catalog_enums.CatalogSyncStatus.IN_PROGRESS.name,
                        },
                    }),
                    status=202
                )

            result = trigger_sync(
                vendor_id=vendor_id,
                company_id=validated["company_id"],
                sync_settings=sync_settings,
            )
        except service_exceptions.VendorNotFoundError as e:
            return http.HttpResponse(
                content=simplejson.dumps({"message": e.message}),
                status=404
            )
        except service_exceptions.SyncAlreadyInProgressError as e:
            return http.HttpResponse(
                content=simplejson.dumps({"message": e.message}),
                status=409
            )
        except service_exceptions.CatalogServiceException as e:
            return http.HttpResponse(
                content=simplejson.dumps({"message": e.message}),
                status=400
            )

        logger.info("{} Sync for vendor {} requested by user {}: {}.".format(
            _LOG_PREFIX, vendor_id, request.user.id, result.message
        ))
        return http.HttpResponse(
            content=simplejson.dumps({
                "message": result.message,
                "data": common_utils.dataclass_to_dict(result),
            }),
            status=200 if result.success else 502
        )
