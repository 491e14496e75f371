"""
Shared pytest fixtures for record store tests.

Key patterns:

1. Pod isolation: every test gets a fresh InMemoryPodClient
2. Constructor injection: RecordStoreClient is built around the fake
3. Failure injection: the fake can refuse listings, reads, writes and deletes

Fixture Hierarchy:
    pod → store
"""
from datetime import datetime
from typing import Dict, List, Set, Tuple, Union

import pytest

from pod_records.clients.pod_client import DirectoryListing, PodCallStatus
from pod_records.core import dependencies as deps
from pod_records.core.exceptions import NotLoggedInError, StoreUnavailableError
from pod_records.core.feature_registry import get_feature
from pod_records.models.record import Record
from pod_records.services.record_store import RecordStoreClient

DATA_ROOT = "healthpod/data"


class InMemoryPodClient:
    """
    PodClient fake keeping blobs in a dict (path -> plaintext).

    Listing order is insertion order, like a server that lists by creation.
    A directory nothing was written to lists as empty, as SolidPodClient
    reports a container the server answers with 404.
    """

    def __init__(self, logged_in: bool = True):
        self.blobs: Dict[str, str] = {}
        self.encrypted: Dict[str, bool] = {}
        self.logged_in = logged_in
        self.calls: List[Tuple[str, str]] = []

        self.unavailable_dirs: Set[str] = set()
        self.failing_reads: Set[str] = set()
        self.transient_read_errors: Dict[str, int] = {}
        self.reject_writes = False
        self.reject_deletes = False

    def put(self, path: str, content: str) -> None:
        self.blobs[path] = content

    def names_in(self, directory: str) -> List[str]:
        prefix = directory.rstrip("/") + "/"
        return [p[len(prefix):] for p in self.blobs if p.startswith(prefix) and "/" not in p[len(prefix):]]

    @property
    def mutating_calls(self) -> List[Tuple[str, str]]:
        return [call for call in self.calls if call[0] in ("write", "delete")]

    async def is_logged_in(self) -> bool:
        return self.logged_in

    async def list_directory(self, path: str) -> DirectoryListing:
        self.calls.append(("list", path))
        if not self.logged_in:
            raise NotLoggedInError(operation="list_directory")
        if path in self.unavailable_dirs:
            raise StoreUnavailableError(path=path, reason="HTTP 500")
        prefix = path.rstrip("/") + "/"
        listing = DirectoryListing()
        for blob_path in self.blobs:
            if not blob_path.startswith(prefix):
                continue
            rest = blob_path[len(prefix):]
            if "/" in rest:
                subdir = rest.split("/", 1)[0]
                if subdir not in listing.subdirs:
                    listing.subdirs.append(subdir)
            else:
                listing.files.append(rest)
        return listing

    async def read_blob(self, path: str) -> Union[str, PodCallStatus]:
        self.calls.append(("read", path))
        if not self.logged_in:
            return PodCallStatus.NOT_LOGGED_IN
        remaining = self.transient_read_errors.get(path, 0)
        if remaining:
            self.transient_read_errors[path] = remaining - 1
            raise StoreUnavailableError(path=path, reason="connection reset")
        if path in self.failing_reads or path not in self.blobs:
            return PodCallStatus.FAIL
        return self.blobs[path]

    async def write_blob(self, path: str, content: str, *, encrypted: bool = True) -> PodCallStatus:
        self.calls.append(("write", path))
        if not self.logged_in:
            return PodCallStatus.NOT_LOGGED_IN
        if self.reject_writes:
            return PodCallStatus.FAIL
        self.blobs[path] = content
        self.encrypted[path] = encrypted
        return PodCallStatus.SUCCESS

    async def delete_blob(self, path: str) -> PodCallStatus:
        self.calls.append(("delete", path))
        if not self.logged_in:
            return PodCallStatus.NOT_LOGGED_IN
        if self.reject_deletes or path not in self.blobs:
            return PodCallStatus.FAIL
        del self.blobs[path]
        return PodCallStatus.SUCCESS


@pytest.fixture
def pod():
    """A fresh, logged-in in-memory Pod."""
    return InMemoryPodClient()


@pytest.fixture
def store(pod):
    """RecordStoreClient over the in-memory Pod, without retry delays."""
    return RecordStoreClient(pod, data_root=DATA_ROOT, read_retries=1, read_retry_delay=0)


@pytest.fixture
def vaccination():
    return get_feature("vaccination")


@pytest.fixture
def blood_pressure():
    return get_feature("blood_pressure")


@pytest.fixture(autouse=True)
def _reset_dependencies():
    """Keep the cached Pod client and store from leaking between tests."""
    deps.reset_dependencies()
    yield
    deps.reset_dependencies()


def vaccination_record(
    timestamp: datetime = datetime(2025, 1, 21, 10, 0, 0),
    vaccine: str = "Flu Shot",
    provider: str = "Community Pharmacy",
    **extra: str,
) -> Record:
    """Vaccination record with every field present, as an import would build it."""
    fields = {
        "vaccine": vaccine,
        "provider": provider,
        "professional": extra.get("professional", ""),
        "cost": extra.get("cost", ""),
        "notes": extra.get("notes", ""),
    }
    return Record(timestamp=timestamp, fields=fields)


@pytest.fixture
def make_vaccination():
    """Factory for vaccination records (see ``vaccination_record``)."""
    return vaccination_record
