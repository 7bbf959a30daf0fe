"""
Catalog sync orchestrator.

One job per vendor at a time: the IN_PROGRESS status is claimed with a
conditional update before any network call, and released with the final
status write. Records are grouped by product identity; a group is always
processed sequentially, groups may run on a bounded thread pool.
"""
import concurrent.futures
import datetime
import logging
import threading
import typing

from django import db
from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from catalog import enums as catalog_enums
from catalog import messages as catalog_messages
from catalog import models as catalog_models
from catalog.integrations import base as integrations_base
from catalog.integrations import registry as integrations_registry
from catalog.services import credentials as credential_services
from catalog.services import exceptions as service_exceptions
from catalog.services import images as image_services
from catalog.services import merge as merge_services
from common import utils as common_utils

logger = logging.getLogger(__name__)

_LOG_PREFIX = '[CATALOG-SYNC-SERVICES]'

_sync_executor = None
_image_executor = None
_executor_lock = threading.Lock()

GroupResult = typing.List[
    typing.Tuple[catalog_messages.CandidateProduct, typing.Optional[catalog_messages.MergeOutcome], typing.Optional[str]]
]


def trigger_full_sync(
    vendor_id: int,
    company_id: typing.Optional[int] = None,
    sync_settings: typing.Optional[catalog_messages.SyncSettings] = None,
) -> catalog_messages.SyncJobResult:
    return _run_sync(
        vendor_id=vendor_id,
        mode=catalog_enums.CatalogSyncMode.FULL,
        company_id=company_id,
        sync_settings=sync_settings,
    )


def trigger_incremental_sync(
    vendor_id: int,
    company_id: typing.Optional[int] = None,
    sync_settings: typing.Optional[catalog_messages.SyncSettings] = None,
) -> catalog_messages.SyncJobResult:
    return _run_sync(
        vendor_id=vendor_id,
        mode=catalog_enums.CatalogSyncMode.INCREMENTAL,
        company_id=company_id,
        sync_settings=sync_settings,
    )


def start_background_sync(
    vendor_id: int,
    mode: catalog_enums.CatalogSyncMode,
    company_id: typing.Optional[int] = None,
    sync_settings: typing.Optional[catalog_messages.SyncSettings] = None,
) -> concurrent.futures.Future:
    """
    Claim the vendor and run the sync on the background job executor.

    Claim failures (unknown or disabled vendor, sync already in progress) are
    raised to the caller; the returned future resolves to the SyncJobResult.
    """
    vendor = _claim_vendor(vendor_id=vendor_id)
    logger.info('{} Queued {} sync for vendor {}.'.format(_LOG_PREFIX, mode.name, vendor.slug))

    return _get_sync_executor().submit(_run_background_sync, vendor, mode, company_id, sync_settings)


def reset_stuck_syncs(older_than: typing.Optional[datetime.timedelta] = None) -> int:
    """Flip IN_PROGRESS syncs older than ``older_than`` to ERROR so they can run again."""
    if older_than is None:
        older_than = datetime.timedelta(hours=settings.CATALOG_STUCK_SYNC_HOURS)

    cutoff = timezone.now() - older_than
    reset_count = catalog_models.Vendor.objects.filter(
        catalog_sync_status=catalog_enums.CatalogSyncStatus.IN_PROGRESS.value,
    ).filter(
        Q(catalog_sync_started_at__lt=cutoff) | Q(catalog_sync_started_at__isnull=True)
    ).update(
        catalog_sync_status=catalog_enums.CatalogSyncStatus.ERROR.value,
        catalog_sync_status_name=catalog_enums.CatalogSyncStatus.ERROR.name,
        catalog_sync_error='Sync reset after being in progress since before {}'.format(cutoff.isoformat()),
        updated_at=timezone.now(),
    )

    logger.info('{} Reset {} stuck syncs older than {}.'.format(_LOG_PREFIX, reset_count, older_than))
    return reset_count


def _claim_vendor(vendor_id: int) -> catalog_models.Vendor:
    vendor = catalog_models.Vendor.objects.filter(id=vendor_id).first()
    if not vendor:
        raise service_exceptions.VendorNotFoundError('Vendor {} not found'.format(vendor_id))

    if not vendor.enabled:
        raise service_exceptions.CatalogServiceException('Vendor {} is disabled'.format(vendor.slug))

    claimed = catalog_models.Vendor.objects.filter(id=vendor_id).exclude(
        catalog_sync_status=catalog_enums.CatalogSyncStatus.IN_PROGRESS.value,
    ).update(
        catalog_sync_status=catalog_enums.CatalogSyncStatus.IN_PROGRESS.value,
        catalog_sync_status_name=catalog_enums.CatalogSyncStatus.IN_PROGRESS.name,
        catalog_sync_started_at=timezone.now(),
        catalog_sync_error=None,
    )
    if not claimed:
        raise service_exceptions.SyncAlreadyInProgressError(
            'Catalog sync already in progress for vendor {}'.format(vendor.slug)
        )

    vendor.refresh_from_db()
    return vendor


def _run_sync(
    vendor_id: int,
    mode: catalog_enums.CatalogSyncMode,
    company_id: typing.Optional[int],
    sync_settings: typing.Optional[catalog_messages.SyncSettings],
) -> catalog_messages.SyncJobResult:
    vendor = _claim_vendor(vendor_id=vendor_id)
    return _run_claimed_sync(vendor=vendor, mode=mode, company_id=company_id, sync_settings=sync_settings)


def _run_claimed_sync(
    vendor: catalog_models.Vendor,
    mode: catalog_enums.CatalogSyncMode,
    company_id: typing.Optional[int],
    sync_settings: typing.Optional[catalog_messages.SyncSettings],
) -> catalog_messages.SyncJobResult:
    sync_settings = sync_settings or catalog_messages.SyncSettings()
    result =catalog_messages.SyncJobResult(vendor_slug=vendor.slug, mode=mode, started_at=timezone.now())
    logger.info('{} Starting {} sync for vendor {}.'.format(_LOG_PREFIX, mode.name, vendor.slug))

    try:
        adapter = integrations_registry.get_fetch_adapter(
            vendor=vendor,
            credentials=credential_services.get_vendor_credentials(vendor=vendor, company_id=company_id),
        )
        records = _fetch_records(adapter=adapter, vendor=vendor, result=result)
    except Exception as e:
        result.message = 'Fetch failed: {}'.format(common_utils.get_exception_message(exception=e))
        result.errors.append(result.message)
        logger.exception('{} {} sync for vendor {} failed. {}.'.format(
            _LOG_PREFIX, mode.name, vendor.slug, result.message
        ))
        _finish_sync(vendor=vendor, result=result, keep_counters=True)
        return result

    try:
        _process_records(adapter=adapter, vendor=vendor, records=records, sync_settings=sync_settings, result=result)
    except Exception as e:
        result.message = 'Sync aborted: {}'.format(common_utils.get_exception_message(exception=e))
        result.errors.append(result.message)
        _finish_sync(vendor=vendor, result=result)
        raise

    result.success = True
    result.message = 'Processed {} products: {} new, {} updated, {} skipped, {} failed'.format(
        result.products_processed,
        result.new_products,
        result.updated_products,
        result.skipped_products,
        result.failed_products,
    )
    _finish_sync(vendor=vendor, result=result)

    logger.info('{} {} sync for vendor {} finished. {}, {} images updated.'.format(
        _LOG_PREFIX, result.mode.name, vendor.slug, result.message, result.images_updated
    ))
    return result


def _fetch_records(
    adapter: integrations_base.VendorFetchAdapter,
    vendor: catalog_models.Vendor,
    result: catalog_messages.SyncJobResult,
) -> typing.List[typing.Dict]:
    if result.mode == catalog_enums.CatalogSyncMode.INCREMENTAL:
        if vendor.last_catalog_sync is None:
            result.warnings.append('No previous successful sync, running a full sync instead')
            result.mode = catalog_enums.CatalogSyncMode.FULL
            return adapter.fetch_full()

        return adapter.fetch_since(vendor.last_catalog_sync)

    return adapter.fetch_full()


def _process_records(
    adapter: integrations_base.VendorFetchAdapter,
    vendor: catalog_models.Vendor,
    records: typing.List[typing.Dict],
    sync_settings: catalog_messages.SyncSettings,
    result: catalog_messages.SyncJobResult,
) -> None:
    groups: typing.Dict[str, typing.List[catalog_messages.CandidateProduct]] = {}

    for raw in records:
        try:
            candidate = adapter.to_candidate(raw)
        except Exception as e:
            result.products_processed += 1
            _record_failure(result=result, label=str(raw)[:100], error=common_utils.get_exception_message(exception=e))
            continue

        groups.setdefault(candidate.identity_key(), []).append(candidate)

    logger.info('{} Processing {} records in {} product groups for vendor {}.'.format(
        _LOG_PREFIX, len(records), len(groups), vendor.slug
    ))

    image_updates = []
    max_workers = max(1, settings.CATALOG_SYNC_MAX_WORKERS)

    if max_workers == 1:
        for candidates in groups.values():
            group_result = _process_group(candidates=candidates, vendor=vendor, sync_settings=sync_settings)
            _collect_group_result(group_result=group_result, vendor=vendor, result=result, image_updates=image_updates)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(_process_group, candidates, vendor, sync_settings, True)
                for candidates in groups.values()
            ]
            for future in concurrent.futures.as_completed(futures):
                _collect_group_result(
                    group_result=future.result(), vendor=vendor, result=result, image_updates=image_updates
                )

    for image_update in image_updates:
        updated = image_update.result() if isinstance(image_update, concurrent.futures.Future) else image_update
        if updated:
            result.images_updated += 1


def _process_group(
    candidates: typing.List[catalog_messages.CandidateProduct],
    vendor: catalog_models.Vendor,
    sync_settings: catalog_messages.SyncSettings,
    close_connections: bool = False,
) -> GroupResult:
    group_result = []

    try:
        for candidate in candidates:
            try:
                outcome = merge_services.apply_candidate(candidate=candidate, vendor=vendor, settings=sync_settings)
            except Exception as e:
                group_result.append((candidate, None, common_utils.get_exception_message(exception=e)))
                continue

            group_result.append((candidate, outcome, None))
    finally:
        if close_connections:
            db.connection.close()

    return group_result


def _collect_group_result(
    group_result: GroupResult,
    vendor: catalog_models.Vendor,
    result: catalog_messages.SyncJobResult,
    image_updates: typing.List,
) -> None:
    for candidate, outcome, error in group_result:
        result.products_processed += 1

        if error is not None:
            _record_failure(result=result, label=candidate.vendor_sku, error=error)
            continue

        if outcome.action == catalog_enums.MergeAction.CREATE:
            result.new_products += 1
        elif outcome.action in (catalog_enums.MergeAction.REPLACE, catalog_enums.MergeAction.MERGE):
            result.updated_products += 1
        else:
            result.skipped_products += 1

        if outcome.product_written and outcome.upc:
            image_updates.append(_schedule_image_update(upc=outcome.upc, vendor_slug=vendor.slug))


def _record_failure(result: catalog_messages.SyncJobResult, label: str, error: str) -> None:
    result.failed_products += 1
    result.errors.append('{}: {}'.format(label, error))
    logger.warning('{} Record {} failed for vendor {}. Error: {}.'.format(_LOG_PREFIX, label, result.vendor_slug, error))


def _get_sync_executor() -> concurrent.futures.ThreadPoolExecutor:
    global _sync_executor

    with _executor_lock:
        if _sync_executor is None:
            _sync_executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=max(1, settings.CATALOG_SYNC_MAX_JOBS),
                thread_name_prefix='catalog-sync',
            )

    return _sync_executor


def _run_background_sync(
    vendor: catalog_models.Vendor,
    mode: catalog_enums.CatalogSyncMode,
    company_id: typing.Optional[int],
    sync_settings: typing.Optional[catalog_messages.SyncSettings],
) -> typing.Optional[catalog_messages.SyncJobResult]:
    try:
        return _run_claimed_sync(vendor=vendor, mode=mode, company_id=company_id, sync_settings=sync_settings)
    except Exception as e:
        # The aborted job already wrote its ERROR status
        logger.exception('{} Background {} sync for vendor {} aborted. Error: {}.'.format(
            _LOG_PREFIX, mode.name, vendor.slug, common_utils.get_exception_message(exception=e)
        ))
        return None
    finally:
        db.connection.close()


def _get_image_executor() -> concurrent.futures.ThreadPoolExecutor:
    global _image_executor

    with _executor_lock:
        if _image_executor is None:
            _image_executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=max(1, settings.CATALOG_SYNC_MAX_WORKERS),
                thread_name_prefix='image-fallback',
            )

    return _image_executor


def _schedule_image_update(upc: str, vendor_slug: str) -> typing.Union[bool, concurrent.futures.Future]:
    if settings.CATALOG_IMAGE_FALLBACK_ASYNC:
        return _get_image_executor().submit(_update_image, upc, vendor_slug, True)

    return _update_image(upc=upc, vendor_slug=vendor_slug)


def _update_image(upc: str, vendor_slug: str, close_connections: bool = False) -> bool:
    try:
        return image_services.update_product_image(upc=upc, supplying_vendor_slug=vendor_slug)
    except Exception as e:
        logger.error('{} Image fallback failed for product {} (vendor {}). Error: {}.'.format(
            _LOG_PREFIX, upc, vendor_slug, common_utils.get_exception_message(exception=e)
        ))
        return False
    finally:
        if close_connections:
            db.connection.close()


def _finish_sync(
    vendor: catalog_models.Vendor,
    result: catalog_messages.SyncJobResult,
    keep_counters: bool = False,
) -> None:
    result.finished_at = timezone.now()
    status = catalog_enums.CatalogSyncStatus.SUCCESS if result.success else catalog_enums.CatalogSyncStatus.ERROR

    updates = {
        'catalog_sync_status': status.value,
        'catalog_sync_status_name': status.name,
        'catalog_sync_error': None if result.success else result.message,
        'updated_at': result.finished_at,
    }
    if result.success:
        # Records changed while this job ran are picked up by the next incremental sync
        updates['last_catalog_sync'] = result.started_at
    if not keep_counters:
        updates.update({
            'last_sync_new_records': result.new_products,
            'last_sync_records_updated': result.updated_products,
            'last_sync_records_skipped': result.skipped_products,
            'last_sync_records_failed': result.failed_products,
            'last_sync_images_updated': result.images_updated,
        })

    catalog_models.Vendor.objects.filter(id=vendor.id).update(**updates)
