"""
Remote record directory protocol and its Solid (LDP) implementation.

The record store only talks to a ``PodClient``: list a directory, read,
write and delete one blob, and ask whether a session is available. Single
calls report their outcome with ``PodCallStatus`` sentinels. Callers must
compare against them before treating a read result as data.

``SolidPodClient`` speaks plain HTTP to an LDP server with httpx:

- A directory is a container URL ending in '/', listed as JSON-LD
  (``ldp:contains``). Entries ending in '/' are subdirectories.
- Blobs are read with GET, written with PUT (text/turtle), deleted with DELETE.
- A bearer access token authenticates. No token means not logged in.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Union, runtime_checkable
from urllib.parse import unquote, urljoin

import httpx

from pod_records.clients.encryption import BlobCipher
from pod_records.core.config import settings
from pod_records.core.exceptions import EncryptionError, NotLoggedInError, StoreUnavailableError

logger = logging.getLogger(__name__)

LDP_CONTAINS = "http://www.w3.org/ns/ldp#contains"


class PodCallStatus(Enum):
    """Outcome of a single Pod call."""
    SUCCESS = "success"
    FAIL = "fail"
    NOT_LOGGED_IN = "not_logged_in"


@dataclass
class DirectoryListing:
    """Names (not paths) of the entries in one Pod directory."""
    files: List[str] = field(default_factory=list)
    subdirs: List[str] = field(default_factory=list)


@runtime_checkable
class PodClient(Protocol):
    """What the record store needs from a Pod."""

    async def list_directory(self, path: str) -> DirectoryListing:
        ...

    async def read_blob(self, path: str) -> Union[str, PodCallStatus]:
        ...

    async def write_blob(self, path: str, content: str, *, encrypted: bool = True) -> PodCallStatus:
        ...

    async def delete_blob(self, path: str) -> PodCallStatus:
        ...

    async def is_logged_in(self) -> bool:
        ...


class SolidPodClient:
    """PodClient backed by an LDP server over HTTP."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        access_token: Optional[str] = None,
        security_key: Optional[str] = None,
        timeout: Optional[float] = None,
        verify_ssl: Optional[bool] = None,
    ):
        self.base_url = base_url if base_url is not None else settings.pod_server_url
        if not self.base_url:
            raise ValueError("POD_SERVER_URL must be set in config")

        # Relative paths resolve against the Pod root
        self.base_url = self.base_url.rstrip("/") + "/"
        self.access_token = access_token if access_token is not None else settings.pod_access_token
        self.timeout = timeout if timeout is not None else settings.pod_request_timeout
        self.verify_ssl = verify_ssl if verify_ssl is not None else settings.pod_verify_ssl

        key = security_key if security_key is not None else settings.pod_security_key
        self._cipher = BlobCipher.from_security_key(key) if key else None

    def _url(self, path: str) -> str:
        return urljoin(self.base_url, path.lstrip("/"))

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self.access_token}"}
        if extra:
            headers.update(extra)
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """
        Make an HTTP request to the Pod.

        Non-2xx responses are returned to the caller for status mapping.

        Raises:
            StoreUnavailableError: For connection/request errors
        """
        url = self._url(path)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, verify=self.verify_ssl) as client:
                return await client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"Request error: {e}", extra={"method": method, "path": path})
            raise StoreUnavailableError(path=path, reason=str(e)) from e

    @staticmethod
    def _status_of(response: httpx.Response) -> PodCallStatus:
        if response.status_code in (401, 403):
            return PodCallStatus.NOT_LOGGED_IN
        if response.is_success:
            return PodCallStatus.SUCCESS
        return PodCallStatus.FAIL

    async def is_logged_in(self) -> bool:
        return bool(self.access_token)

    async def list_directory(self, path: str) -> DirectoryListing:
        """
        List a container. A container that does not exist yet lists as empty.

        Raises:
            NotLoggedInError: No token, or the server refused the credentials
            StoreUnavailableError: The container cannot be listed
        """
        if not await self.is_logged_in():
            raise NotLoggedInError(operation="list_directory")

        container = path.rstrip("/") + "/"
        response = await self._request(
            "GET", container, headers=self._headers({"Accept": "application/ld+json"})
        )
        status = self._status_of(response)
        if status is PodCallStatus.NOT_LOGGED_IN:
            raise NotLoggedInError(operation="list_directory", path=container)
        if response.status_code == 404:
            logger.debug("Container not created yet", extra={"path": container})
            return DirectoryListing()
        if status is PodCallStatus.FAIL:
            raise StoreUnavailableError(path=container, reason=f"HTTP {response.status_code}")

        try:
            document = response.json()
        except ValueError as e:
            raise StoreUnavailableError(path=container, reason="listing is not JSON-LD") from e

        container_url = self._url(container)
        listing = DirectoryListing()
        for entry in self._contained_ids(document):
            resolved = urljoin(container_url, entry)
            if not resolved.startswith(container_url) or resolved == container_url:
                continue
            name = unquote(resolved[len(container_url):])
            if name.endswith("/"):
                listing.subdirs.append(name.rstrip("/"))
            elif "/" not in name:
                listing.files.append(name)
        return listing

    @staticmethod
    def _contained_ids(document: Any) -> List[str]:
        """Collect the @id of every ldp:contains entry of a JSON-LD document."""
        nodes = document if isinstance(document, list) else document.get("@graph", [document])
        ids: List[str] = []
        for node in nodes:
            if not isinstance(node, dict):
                continue
            for key in (LDP_CONTAINS, "ldp:contains", "contains"):
                contained = node.get(key)
                if contained is None:
                    continue
                if not isinstance(contained, list):
                    contained = [contained]
                for item in contained:
                    ref = item.get("@id") if isinstance(item, dict) else item
                    if isinstance(ref, str):
                        ids.append(ref)
        return ids

    async def read_blob(self, path: str) -> Union[str, PodCallStatus]:
        """
        Read one blob, decrypting it when it is an encryption envelope.

        Raises:
            EncryptionError: Envelope present but no key configured or it cannot be opened
            StoreUnavailableError: For connection/request errors
        """
        if not await self.is_logged_in():
            return PodCallStatus.NOT_LOGGED_IN

        response = await self._request("GET", path, headers=self._headers())
        status = self._status_of(response)
        if status is not PodCallStatus.SUCCESS:
            logger.warning("Read failed", extra={"path": path, "status_code": response.status_code})
            return status

        content = response.text
        if BlobCipher.is_envelope(content):
            if self._cipher is None:
                raise EncryptionError("Blob is encrypted but no security key is configured", path=path)
            return self._cipher.decrypt(content)
        return content

    async def write_blob(self, path: str, content: str, *, encrypted: bool = True) -> PodCallStatus:
        """Write one blob, encrypting it first when requested."""
        if not await self.is_logged_in():
            return PodCallStatus.NOT_LOGGED_IN

        if encrypted:
            if self._cipher is None:
                logger.error("Encrypted write requested without a security key", extra={"path": path})
                return PodCallStatus.FAIL
            content = self._cipher.encrypt(content)

        response = await self._request(
            "PUT",
            path,
            content=content.encode("utf-8"),
            headers=self._headers({"Content-Type": "text/turtle"}),
        )
        status = self._status_of(response)
        if status is not PodCallStatus.SUCCESS:
            logger.warning("Write failed", extra={"path": path, "status_code": response.status_code})
        return status

    async def delete_blob(self, path: str) -> PodCallStatus:
        if not await self.is_logged_in():
            return PodCallStatus.NOT_LOGGED_IN

        response = await self._request("DELETE", path, headers=self._headers())
        status = self._status_of(response)
        if status is not PodCallStatus.SUCCESS:
            logger.warning("Delete failed", extra={"path": path, "status_code": response.status_code})
        return status
