"""
Dependency wiring for the record store.

Builds the configured PodClient and RecordStoreClient once per process and
hands out the same instances afterwards.

Architecture Flow:
    CLI / caller
         ↓ get_record_store()
    RecordStoreClient
         ↓ injected
    PodClient (SolidPodClient)
         ↓ httpx
    Pod server

Testing:
    # Inject a fake Pod client
    reset_dependencies()
    set_pod_client(InMemoryPodClient())
"""
import logging
from typing import TYPE_CHECKING, Optional

from pod_records.core.config import settings

if TYPE_CHECKING:
    from pod_records.clients.pod_client import PodClient
    from pod_records.services.record_store import RecordStoreClient

logger = logging.getLogger(__name__)

_pod_client_instance: Optional["PodClient"] = None
_record_store_instance: Optional["RecordStoreClient"] = None


# =============================================================================
# POD CLIENT
# =============================================================================

def get_pod_client() -> "PodClient":
    """
    Get the Pod client (created on first use from settings).

    Raises:
        ValueError: If POD_SERVER_URL is not configured.
    """
    global _pod_client_instance

    if _pod_client_instance is None:
        from pod_records.clients.pod_client import SolidPodClient

        logger.info(f"Initializing Pod client: {settings.pod_server_url}")
        _pod_client_instance = SolidPodClient()

    return _pod_client_instance


def set_pod_client(client: "PodClient") -> None:
    """Use ``client`` for every store built afterwards (for testing)."""
    global _pod_client_instance, _record_store_instance
    _pod_client_instance = client
    _record_store_instance = None


# =============================================================================
# SERVICES
# =============================================================================

def get_record_store() -> "RecordStoreClient":
    """
    Get the RecordStoreClient with the Pod client injected.
    """
    global _record_store_instance

    if _record_store_instance is None:
        from pod_records.services.record_store import RecordStoreClient

        _record_store_instance = RecordStoreClient(pod_client=get_pod_client())

    return _record_store_instance


def reset_dependencies() -> None:
    """
    Forget the cached instances (for testing only).
    """
    global _pod_client_instance, _record_store_instance
    _pod_client_instance = None
    _record_store_instance = None
