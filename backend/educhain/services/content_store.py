from __future__ import annotations

import hashlib
from typing import Any

import httpx
import orjson

from ..errors import ContentStoreError
from ..observability.logging import get_logger
from ..settings import Settings

log = get_logger("content_store")

_B58 = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def mock_cid(payload: bytes) -> str:
    """
    CIDv0-shaped placeholder derived from the content, so the same bytes
    always map to the same id.
    """
    n = int.from_bytes(hashlib.sha256(payload).digest(), "big")
    out = ""
    while n:
        n, rem = divmod(n, 58)
        out = _B58[rem] + out
    return ("Qm" + out.rjust(44, "1"))[:46]


class PinataContentStore:
    """
    Pins files and JSON documents through the Pinata pinning API.

    Outside production a failed or unconfigured pin degrades to `mock_cid`;
    in production it raises ContentStoreError.
    """

    def __init__(self, settings: Settings, *, client: httpx.Client | None = None):
        self._settings = settings
        self._client = client or httpx.Client(timeout=float(settings.content_store_timeout_seconds))

    def close(self) -> None:
        self._client.close()

    def _headers(self) -> dict[str, str]:
        return {
            "pinata_api_key": str(self._settings.pinata_api_key or ""),
            "pinata_secret_api_key": str(self._settings.pinata_api_secret or ""),
        }

    def _url(self, op: str) -> str:
        return f"{str(self._settings.pinata_base_url).rstrip('/')}/{op}"

    def gateway_url(self, cid: str) -> str:
        return f"{str(self._settings.ipfs_gateway_url).rstrip('/')}/{cid}"

    def _fallback(self, payload: bytes, *, kind: str, error: str | None) -> str:
        if self._settings.is_production:
            raise ContentStoreError("Failed to upload to IPFS")
        cid = mock_cid(payload)
        log.warning("content_store_mock_cid", kind=kind, cid=cid, error=error)
        return cid

    @staticmethod
    def _cid_from(resp: httpx.Response) -> str:
        resp.raise_for_status()
        body = resp.json()
        cid = body.get("IpfsHash") if isinstance(body, dict) else None
        if not cid:
            raise ValueError("pin response missing IpfsHash")
        return str(cid)

    def upload_file(self, content: bytes, *, filename: str, content_type: str | None = None) -> str:
        """Pin raw bytes; returns the CID."""
        if not self._settings.pinata_configured:
            return self._fallback(content, kind="file", error="not_configured")
        try:
            resp = self._client.post(
                self._url("pinFileToIPFS"),
                headers=self._headers(),
                files={"file": (filename or "document", content, content_type or "application/octet-stream")},
                data={"pinataMetadata": orjson.dumps({"name": filename or "document"}).decode("utf-8")},
            )
            cid = self._cid_from(resp)
        except (httpx.HTTPError, ValueError) as e:
            return self._fallback(content, kind="file", error=str(e))
        log.info("content_store_file_pinned", cid=cid, size=len(content))
        return cid

    def upload_json(self, data: dict[str, Any], *, name: str = "application-metadata") -> str:
        """Pin a JSON document; returns the CID."""
        payload = orjson.dumps(data, option=orjson.OPT_SORT_KEYS)
        if not self._settings.pinata_configured:
            return self._fallback(payload, kind="json", error="not_configured")
        try:
            resp = self._client.post(
                self._url("pinJSONToIPFS"),
                headers=self._headers(),
                json={"pinataContent": orjson.loads(payload), "pinataMetadata": {"name": name}},
            )
            cid = self._cid_from(resp)
        except (httpx.HTTPError, ValueError) as e:
            return self._fallback(payload, kind="json", error=str(e))
        log.info("content_store_json_pinned", cid=cid)
        return cid
