import asyncio
from typing import Any

from geo_gateway.errors import (
    AlreadyDeniedError,
    AppError,
    InvalidInputError,
    IpNotFoundError,
    NotFoundError,
    NotInDenyListError,
    error_code,
)
from geo_gateway.logger import logger
from geo_gateway.models.response_models import (
    BulkDeleteResult,
    BulkDenyAddResult,
    BulkDenyRemoveResult,
    BulkLookupItem,
    BulkLookupResult,
    ItemError,
)
from geo_gateway.services.deny_list import DenyListService
from geo_gateway.services.lookup import LookupService
from geo_gateway.validators import is_valid_ip

DEFAULT_LOOKUP_CONCURRENCY = 5


def _ensure_batch(ips: Any) -> list[Any]:
    if not isinstance(ips, list) or not ips:
        raise InvalidInputError('Field "ips" must be a non-empty array')
    return ips


class BulkService:
    """Applies single-IP operations across a list of IPs.

    A failing item never aborts the batch; it is reported in the result
    instead. Only an empty or non-list batch fails the whole call.
    """

    def __init__(
        self,
        lookup: LookupService,
        deny_list: DenyListService,
        lookup_concurrency: int = DEFAULT_LOOKUP_CONCURRENCY,
    ) -> None:
        self._lookup = lookup
        self._deny_list = deny_list
        self._lookup_concurrency = lookup_concurrency

    async def bulk_lookup(self, ips: Any) -> BulkLookupResult:
        """Resolve every IP; `results` is parallel to the input list.

        Up to `lookup_concurrency` provider calls run at once.
        """
        ips = _ensure_batch(ips)
        semaphore = asyncio.Semaphore(self._lookup_concurrency)

        async def _lookup_one(ip: Any) -> BulkLookupItem:
            if not is_valid_ip(ip):
                return BulkLookupItem(ip=ip, error=ItemError(code="invalid_ip", message="Invalid IP address format"))
            async with semaphore:
                try:
                    record = await self._lookup.resolve(ip)
                except AppError as exc:
                    return BulkLookupItem(ip=ip, error=ItemError(code=error_code(exc), message=str(exc)))
            return BulkLookupItem(ip=ip, record=record)

        # gather keeps input order regardless of completion order.
        results = await asyncio.gather(*(_lookup_one(ip) for ip in ips))

        failed = sum(1 for item in results if item.error is not None)
        logger.info(f"Bulk lookup finished total={len(results)} failed={failed}")
        return BulkLookupResult(results=list(results))

    def bulk_delete(self, ips: Any) -> BulkDeleteResult:
        ips = _ensure_batch(ips)
        result = BulkDeleteResult()

        for ip in ips:
            if not is_valid_ip(ip):
                result.errors.append(f"Invalid IP address format: {ip}")
                continue
            try:
                self._lookup.delete(ip)
            except NotFoundError:
                result.errors.append(f"IP not found in database: {ip}")
                continue
            result.deleted.append(ip)

        logger.info(f"Bulk delete finished deleted={len(result.deleted)} errors={len(result.errors)}")
        return result

    def bulk_deny_add(self, ips: Any) -> BulkDenyAddResult:
        ips = _ensure_batch(ips)
        result = BulkDenyAddResult()

        for ip in ips:
            if not is_valid_ip(ip):
                result.skipped.invalid_format.append(ip)
                continue
            try:
                self._deny_list.add(ip)
            except IpNotFoundError:
                result.skipped.not_found.append(ip)
            except AlreadyDeniedError:
                result.skipped.already_denied.append(ip)
            else:
                result.added.append(ip)

        logger.info(f"Bulk deny-list add finished added={len(result.added)}")
        return result

    def bulk_deny_remove(self, ips: Any) -> BulkDenyRemoveResult:
        """Remove every IP from the deny-list, committing once at the end.

        Each IP is checked on its own; the single commit only batches the
        writes and gives no all-or-nothing guarantee.
        """
        ips = _ensure_batch(ips)
        result = BulkDenyRemoveResult()

        for ip in ips:
            if not is_valid_ip(ip):
                result.skipped.invalid_format.append(ip)
                continue
            try:
                self._deny_list.remove(ip, cascade_flush=False)
            except IpNotFoundError:
                result.skipped.not_found.append(ip)
            except NotInDenyListError:
                result.skipped.not_in_deny_list.append(ip)
            else:
                result.removed.append(ip)

        self._deny_list.commit()
        logger.info(f"Bulk deny-list remove finished removed={len(result.removed)}")
        return result
