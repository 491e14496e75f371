"""
Record store: list, save and delete records kept as per-record blobs.

Each feature is one Pod directory holding one serialized record per blob.
Blobs carry no primary key, so update and delete locate the stored blob of
a record with the matching procedure in ``find_record_blob``:

    1. list the directory and keep blobs with the store suffix
    2. read and parse every candidate (failures are logged and skipped)
    3. a candidate matches when all fields agree and the timestamps share a
       calendar day (or, when both records have one, when the ids agree)
    4. one match wins; several raise AmbiguousMatchError
    5. otherwise a blob whose name is derived from the record timestamp
       (current form, then the older underscore form) is the match

Architecture:
    CLI / CSV services → RecordStoreClient → PodClient → Pod

Dependency Injection:
    RecordStoreClient receives its PodClient via constructor injection.
    Use core.dependencies.get_record_store() for the configured instance.
"""
import asyncio
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple, Union

from pod_records.clients.pod_client import PodCallStatus, PodClient
from pod_records.core.config import settings
from pod_records.core.exceptions import (
    AmbiguousMatchError,
    EncryptionError,
    NoMatchFoundError,
    NotLoggedInError,
    RecordParseError,
    StoreUnavailableError,
)
from pod_records.core.feature_registry import FeatureDefinition, resolve_feature
from pod_records.core.logging_config import operation_context
from pod_records.models.record import Record
from pod_records.services.blob_naming import blob_date, blob_name, has_store_suffix, legacy_blob_name

logger = logging.getLogger(__name__)

FeatureRef = Union[str, FeatureDefinition]


class RecordStoreClient:
    """
    Service layer for record blobs of every feature.

    All calls to the Pod are awaited one after another.
    """

    def __init__(
        self,
        pod_client: PodClient,
        data_root: Optional[str] = None,
        file_suffix: Optional[str] = None,
        read_retries: Optional[int] = None,
        read_retry_delay: Optional[float] = None,
    ):
        """
        Initialize the record store.

        Args:
            pod_client: PodClient used for every remote call.
            data_root: Pod directory holding one subdirectory per feature.
            file_suffix: Only blobs with this suffix are treated as records.
            read_retries: Extra attempts for a blob read that hits a transport error.
            read_retry_delay: Seconds to wait before each retry.
        """
        self._pod = pod_client
        self.data_root = data_root if data_root is not None else settings.pod_data_root
        self.file_suffix = file_suffix or settings.pod_file_suffix
        self.read_retries = read_retries if read_retries is not None else settings.pod_read_retries
        self.read_retry_delay = (
            read_retry_delay if read_retry_delay is not None else settings.pod_read_retry_delay
        )

    # =========================================================================
    # PATHS & LOW-LEVEL READS
    # =========================================================================

    def directory(self, feature: FeatureRef) -> str:
        return resolve_feature(feature).directory(self.data_root)

    def blob_path(self, feature: FeatureRef, name: str) -> str:
        return f"{self.directory(feature)}/{name}"

    async def _require_login(self, operation: str) -> None:
        if not await self._pod.is_logged_in():
            logger.warning("Not logged in", extra={"operation": operation})
            raise NotLoggedInError(operation=operation)

    async def _list_blob_names(self, feature: FeatureDefinition) -> List[str]:
        """
        Names of the record blobs in a feature directory, in listing order.

        Raises:
            StoreUnavailableError: If the directory cannot be listed.
            NotLoggedInError: If the Pod refuses the session.
        """
        listing = await self._pod.list_directory(self.directory(feature))
        names = [name for name in listing.files if has_store_suffix(name, self.file_suffix)]
        skipped = len(listing.files) - len(names)
        if skipped:
            logger.debug(
                "Skipped foreign files",
                extra={"feature": feature.name, "skipped": skipped},
            )
        return names

    async def _read_blob_with_retry(self, path: str) -> Union[str, PodCallStatus]:
        attempt = 0
        while True:
            try:
                return await self._pod.read_blob(path)
            except StoreUnavailableError:
                if attempt >= self.read_retries:
                    raise
                attempt += 1
                logger.info(
                    "Retrying blob read",
                    extra={"path": path, "attempt": attempt, "delay": self.read_retry_delay},
                )
                await asyncio.sleep(self.read_retry_delay)

    async def _read_record(self, feature: FeatureDefinition, name: str) -> Optional[Record]:
        """
        Read and parse one blob. Returns None when the blob is skipped.

        Raises:
            NotLoggedInError: If the Pod answers the read with NOT_LOGGED_IN.
        """
        path = self.blob_path(feature, name)
        try:
            content = await self._read_blob_with_retry(path)
        except StoreUnavailableError as e:
            logger.warning("Skipping unreadable blob", extra={"blob": name, "error": e.detail})
            return None
        except EncryptionError as e:
            logger.warning("Skipping undecryptable blob", extra={"blob": name, "error": e.detail})
            return None

        if content is PodCallStatus.NOT_LOGGED_IN:
            raise NotLoggedInError(operation="read_blob", path=path)
        if isinstance(content, PodCallStatus):
            logger.warning("Skipping blob after failed read", extra={"blob": name, "status": content.value})
            return None

        try:
            return Record.from_json(content, feature=feature, blob_name=name)
        except RecordParseError as e:
            logger.warning("Skipping malformed blob", extra={"blob": name, "error": e.detail})
            return None

    async def _load_candidates(self, feature: FeatureDefinition) -> List[Tuple[str, Record]]:
        candidates = []
        for name in await self._list_blob_names(feature):
            record = await self._read_record(feature, name)
            if record is not None:
                candidates.append((name, record))
        return candidates

    # =========================================================================
    # PUBLIC OPERATIONS
    # =========================================================================

    async def list_records(self, feature: FeatureRef) -> List[Record]:
        """
        Load every parseable record of a feature. Order is not defined.

        Raises:
            StoreUnavailableError: If the directory cannot be listed.
            NotLoggedInError: If the Pod refuses the session.
        """
        feature = resolve_feature(feature)
        with operation_context("list_records"):
            candidates = await self._load_candidates(feature)
            logger.info(
                "Listed records",
                extra={"feature": feature.name, "count": len(candidates)},
            )
            return [record for _, record in candidates]

    async def find_record_blob(self, feature: FeatureRef, record: Record) -> str:
        """
        Locate the blob holding ``record``.

        Returns:
            The blob name (not the full path).

        Raises:
            AmbiguousMatchError: If more than one blob matches.
            NoMatchFoundError: If nothing matches.
            StoreUnavailableError: If the directory cannot be listed.
        """
        feature = resolve_feature(feature)
        names = await self._list_blob_names(feature)

        matches = []
        for name in names:
            candidate = await self._read_record(feature, name)
            if candidate is not None and record.matches(candidate):
                matches.append(name)

        if len(matches) > 1:
            logger.warning(
                "Several blobs match one record",
                extra={"feature": feature.name, "blobs": matches},
            )
            raise AmbiguousMatchError(matches, feature=feature.name)
        if matches:
            return matches[0]

        for fallback in (
            blob_name(feature.file_prefix, record.timestamp),
            legacy_blob_name(feature.file_prefix, record.timestamp),
        ):
            if fallback in names:
                logger.info(
                    "Matched blob by name",
                    extra={"feature": feature.name, "blob": fallback},
                )
                return fallback

        raise NoMatchFoundError(feature=feature.name)

    async def save_record(
        self,
        feature: FeatureRef,
        record: Record,
        *,
        is_update: bool = False,
        previous_record: Optional[Record] = None,
    ) -> bool:
        """
        Write a record as a new blob, removing the old blob first on update.

        Failing to find or delete the old blob is logged and the new blob is
        still written. When the old blob has the same name as the new one the
        write replaces it and no delete is sent.

        Returns:
            True if the Pod accepted the write, False if it rejected it.

        Raises:
            NotLoggedInError: Before any read or write when no session exists.
        """
        feature = resolve_feature(feature)
        with operation_context("save_record"):
            await self._require_login("save_record")

            name = blob_name(feature.file_prefix, record.timestamp)

            if is_update and previous_record is not None:
                await self._remove_previous(feature, previous_record, name)

            content = record.to_json()
            status = await self._pod.write_blob(self.blob_path(feature, name), content, encrypted=True)
            if status is PodCallStatus.NOT_LOGGED_IN:
                raise NotLoggedInError(operation="save_record")
            if status is not PodCallStatus.SUCCESS:
                logger.error("Pod rejected write", extra={"feature": feature.name, "blob": name})
                return False

            logger.info(
                "Saved record",
                extra={"feature": feature.name, "blob": name, "update": is_update},
            )
            return True

    async def _remove_previous(self, feature: FeatureDefinition, previous: Record, new_name: str) -> None:
        try:
            old_name = await self.find_record_blob(feature, previous)
        except NoMatchFoundError:
            logger.warning("Previous record not found, saving anyway", extra={"feature": feature.name})
            return
        except (AmbiguousMatchError, StoreUnavailableError) as e:
            logger.warning(
                "Cannot remove previous record, saving anyway",
                extra={"feature": feature.name, "error": e.detail},
            )
            return

        if old_name == new_name:
            logger.debug("Overwriting previous blob in place", extra={"blob": old_name})
            return

        status = await self._pod.delete_blob(self.blob_path(feature, old_name))
        if status is not PodCallStatus.SUCCESS:
            logger.warning(
                "Failed to delete previous blob, saving anyway",
                extra={"feature": feature.name, "blob": old_name, "status": status.value},
            )

    async def delete_record(self, feature: FeatureRef, record: Record) -> bool:
        """
        Delete the blob holding ``record``.

        Returns:
            True when the blob was deleted or no blob matched, False when the
            Pod rejected the delete.

        Raises:
            NotLoggedInError: Before any call when no session exists.
            AmbiguousMatchError: If several blobs match; nothing is deleted.
            StoreUnavailableError: If the directory cannot be listed.
        """
        feature = resolve_feature(feature)
        with operation_context("delete_record"):
            await self._require_login("delete_record")

            try:
                name = await self.find_record_blob(feature, record)
            except NoMatchFoundError:
                logger.info("Nothing to delete", extra={"feature": feature.name})
                return True

            status = await self._pod.delete_blob(self.blob_path(feature, name))
            if status is PodCallStatus.NOT_LOGGED_IN:
                raise NotLoggedInError(operation="delete_record")
            if status is not PodCallStatus.SUCCESS:
                logger.error("Pod rejected delete", extra={"feature": feature.name, "blob": name})
                return False

            logger.info("Deleted record", extra={"feature": feature.name, "blob": name})
            return True

    async def find_conflicting_blobs(
        self, feature: FeatureRef, timestamps: Iterable[datetime]
    ) -> List[str]:
        """
        Existing blobs whose name date equals the calendar date of any timestamp.

        Raises:
            StoreUnavailableError: If the directory cannot be listed.
        """
        feature = resolve_feature(feature)
        dates = {ts.date().isoformat() for ts in timestamps}
        if not dates:
            return []
        conflicts = []
        for name in await self._list_blob_names(feature):
            if blob_date(name, feature.file_prefix) in dates and name not in conflicts:
                conflicts.append(name)
        return conflicts

    async def delete_blobs(self, feature: FeatureRef, names: Iterable[str]) -> int:
        """
        Delete blobs by name. Failures are logged.

        Returns:
            Number of blobs deleted.
        """
        feature = resolve_feature(feature)
        deleted = 0
        for name in names:
            status = await self._pod.delete_blob(self.blob_path(feature, name))
            if status is PodCallStatus.NOT_LOGGED_IN:
                raise NotLoggedInError(operation="delete_blobs")
            if status is PodCallStatus.SUCCESS:
                deleted += 1
            else:
                logger.warning("Failed to delete blob", extra={"feature": feature.name, "blob": name})
        return deleted
