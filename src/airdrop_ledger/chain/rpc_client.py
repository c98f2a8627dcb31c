# src/airdrop_ledger/chain/rpc_client.py

from __future__ import annotations

import base64
import json
import logging
import time
from typing import Any

import httpx

from ..core.errors import MetadataFetchFailed
from ..core.ports import TokenMetadataPayload

logger = logging.getLogger(__name__)


def _is_connection_error(exc: Exception) -> bool:
    return isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError))


def _decode_call_result(result: Any) -> Any:
    """
    `call_function` returns the method's return value as a list of byte values.
    Older nodes report contract panics as {"error": "..."} inside the result.
    """
    if not isinstance(result, dict):
        raise MetadataFetchFailed("RPC result is not an object")
    if result.get("error"):
        raise MetadataFetchFailed(f"contract call failed: {result['error']}")

    raw = result.get("result")
    if not isinstance(raw, list) or not all(isinstance(b, int) and 0 <= b <= 255 for b in raw):
        raise MetadataFetchFailed("RPC result carries no byte payload")
    try:
        return json.loads(bytes(raw).decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MetadataFetchFailed("contract returned non-JSON data") from exc


class NearRpcClient:
    """
    Read-only access to token contracts over NEAR JSON-RPC (`query` / `call_function`).

    Behavior:
    - Tries endpoints in the configured order.
    - Network errors / 5xx / rate limits -> the endpoint is skipped for a while, try next.
    - A JSON-RPC error or an undecodable result is final: the contract answered.
    """

    def __init__(
        self,
        rpc_urls: list[str],
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        bad_endpoint_cooldown_seconds: float = 60.0,
    ) -> None:
        urls = [u.strip() for u in rpc_urls if u and u.strip()]
        if not urls:
            raise RuntimeError("RPC endpoint list is empty. Set AIRDROP_RPC_URLS in your .env.")
        self._urls = urls
        self._timeout = httpx.Timeout(connect=min(5.0, timeout_seconds), read=timeout_seconds, write=10.0, pool=5.0)
        self._transport = transport
        self._cooldown = max(0.0, float(bad_endpoint_cooldown_seconds))
        self._bad_endpoints: dict[str, float] = {}  # url -> retry_at (monotonic)
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _call(self, url: str, payload: dict[str, Any]) -> Any:
        resp = await self._get_client().post(url, json=payload)
        resp.raise_for_status()
        body = resp.json()
        if not isinstance(body, dict):
            raise MetadataFetchFailed("RPC response is not an object")
        if body.get("error"):
            err = body["error"]
            cause = err.get("cause", {}).get("name") if isinstance(err, dict) else None
            raise MetadataFetchFailed(f"RPC error: {cause or err}")
        return body.get("result")

    async def view_call(self, account_id: str, method_name: str, args: dict[str, Any] | None = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": "airdrop-ledger",
            "method": "query",
            "params": {
                "request_type": "call_function",
                "finality": "final",
                "account_id": account_id,
                "method_name": method_name,
                "args_base64": base64.b64encode(json.dumps(args or {}).encode("utf-8")).decode("ascii"),
            },
        }

        last_error: Exception | None = None
        now = time.monotonic()

        for url in self._urls:
            retry_at = self._bad_endpoints.get(url)
            if retry_at is not None and retry_at > now:
                continue

            logger.debug("RPC: %s.%s via %s", account_id, method_name, url)
            try:
                result = await self._call(url, payload)
            except MetadataFetchFailed:
                raise
            except httpx.HTTPStatusError as e:
                last_error = e
                if e.response.status_code == 429 or e.response.status_code >= 500:
                    self._bad_endpoints[url] = time.monotonic() + self._cooldown
                    logger.info("RPC: endpoint %s answered %s, trying next", url, e.response.status_code)
                    continue
                raise MetadataFetchFailed(f"RPC HTTP {e.response.status_code} from {url}") from e
            except Exception as e:
                last_error = e
                if _is_connection_error(e):
                    self._bad_endpoints[url] = time.monotonic() + self._cooldown
                    logger.info("RPC: network/timeout error on %s, trying next", url)
                    continue
                logger.info("RPC: error on %s (%s), trying next", url, e.__class__.__name__)
                continue

            return _decode_call_result(result)

        if last_error is not None:
            raise MetadataFetchFailed(f"all RPC endpoints failed: {last_error.__class__.__name__}") from last_error
        raise MetadataFetchFailed("no RPC endpoint available")

    async def ft_metadata(self, token: str) -> TokenMetadataPayload:
        data = await self.view_call(token, "ft_metadata")
        if not isinstance(data, dict):
            raise MetadataFetchFailed(f"{token}.ft_metadata returned {type(data).__name__}")
        return data
