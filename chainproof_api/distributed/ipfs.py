"""Distributed (IPFS) storage client."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from pydantic import BaseModel

from chainproof_api.errors import PublishError
from chainproof_api.settings import get_settings

logger = logging.getLogger(__name__)


class PublishReceipt(BaseModel):
    """Where a blob landed on the content-addressed network."""

    network_hash: str
    size_bytes: int
    gateway_url: str


class DistributedStorage(ABC):
    """Content-addressed publish target."""

    @abstractmethod
    def publish(self, data: bytes, file_name: str = "blob") -> PublishReceipt:
        """Publish `data` and return its network hash.

        Raises:
            PublishError: If the network did not accept the blob
        """


class IPFSClient(DistributedStorage):
    """Publish blobs through an IPFS node's HTTP API (``/api/v0/add``)."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        gateway_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        settings = get_settings()
        self.api_url = (api_url or settings.ipfs_api_url).rstrip("/")
        self.gateway = (gateway_url or settings.ipfs_gateway_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.ipfs_timeout_seconds
        self._client = client

    def gateway_url(self, network_hash: str) -> str:
        return f"{self.gateway}/ipfs/{network_hash}"

    def _post_add(self, client: httpx.Client, data: bytes, file_name: str) -> httpx.Response:
        return client.post(
            f"{self.api_url}/api/v0/add",
            params={"pin": "true"},
            files={"file": (file_name, data)},
        )

    def publish(self, data: bytes, file_name: str = "blob") -> PublishReceipt:
        try:
            if self._client is not None:
                response = self._post_add(self._client, data, file_name)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = self._post_add(client, data, file_name)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise PublishError(f"IPFS publish failed: {e}") from e
        except ValueError as e:
            raise PublishError("IPFS node returned a malformed response") from e

        network_hash = body.get("Hash") if isinstance(body, dict) else None
        if not network_hash:
            raise PublishError("IPFS node response did not include a hash")

        size = body.get("Size")
        receipt = PublishReceipt(
            network_hash=network_hash,
            size_bytes=int(size) if str(size).isdigit() else len(data),
            gateway_url=self.gateway_url(network_hash),
        )
        logger.info(f"Published {receipt.size_bytes} bytes to IPFS as {network_hash}")
        return receipt
