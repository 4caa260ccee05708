"""
Transmission RPC Client
Session-id negotiation and typed wrappers around the Transmission JSON-RPC API.

Protocol reference: https://github.com/transmission/transmission/blob/main/docs/rpc-spec.md
"""

import asyncio
import json
import logging
from typing import Callable, Optional

import aiohttp

from .config import Settings, get_runtime_config
from .credentials import extract_credentials
from .exceptions import (
    SessionNegotiationError,
    TransmissionConnectionError,
    TransmissionProtocolError,
    TransmissionRejectedError,
)
from .logging_config import LogContext
from .models import TorrentAddResult, TorrentSummary

logger = logging.getLogger(__name__)

SESSION_ID_HEADER = "X-Transmission-Session-Id"

# "duplicate torrent" is not an error: torrent-add still returns the existing
# torrent's identity under "torrent-duplicate" and callers need it.
SUCCESS_RESULTS = ("success", "duplicate torrent")


class _SessionChallenge(Exception):
    """HTTP 409 from the daemon; carries the session id it wants us to use."""

    def __init__(self, session_id: Optional[str]):
        super().__init__("Transmission session id challenge")
        self.session_id = session_id


class TransmissionRpc:
    """
    Low level Transmission RPC client.

    Owns the session id for its lifetime. Every call opens and closes its
    own HTTP session; connection details are re-read from the runtime
    config on each call.
    """

    def __init__(self, config_provider: Callable[[], Settings] = get_runtime_config):
        self._config_provider = config_provider
        self._session_id: Optional[str] = None
        self._session_lock = asyncio.Lock()

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    def _open_session(self, timeout: float) -> aiohttp.ClientSession:
        """Create the HTTP session for a single exchange."""
        return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout))

    async def _execute(self, method: str, arguments: dict, session_id: Optional[str]) -> dict:
        """
        Perform one HTTP exchange and classify the response.

        Raises:
            InvalidRpcUrlError: the configured url can't be parsed
            _SessionChallenge: the daemon answered 409
            TransmissionConnectionError: network failure or timeout
            TransmissionProtocolError: body is not a JSON RPC envelope
            TransmissionRejectedError: envelope result is an error string
        """
        config = self._config_provider()
        credentials = extract_credentials(config.transmission_rpc_url)

        headers = {"Content-Type": "application/json"}
        if session_id:
            headers[SESSION_ID_HEADER] = session_id

        auth = None
        if credentials.has_auth:
            auth = aiohttp.BasicAuth(credentials.username, credentials.password, encoding="utf-8")

        payload = json.dumps({"method": method, "arguments": arguments})

        try:
            async with self._open_session(config.rpc_timeout) as session:
                async with session.post(
                    credentials.href, data=payload, headers=headers, auth=auth
                ) as response:
                    status = response.status
                    challenge_id = response.headers.get(SESSION_ID_HEADER)
                    body = None if status == 409 else await response.text(errors="replace")
        except asyncio.TimeoutError as e:
            logger.error(f"Transmission request {method} timed out after {config.rpc_timeout}s")
            raise TransmissionConnectionError(
                f"Timed out reaching Transmission at {credentials.href}"
            ) from e
        except aiohttp.ClientError as e:
            logger.error(f"Transmission request {method} failed: {e}")
            raise TransmissionConnectionError(
                f"Failed to connect to Transmission at {credentials.href}", str(e)
            ) from e

        if status == 409:
            raise _SessionChallenge(challenge_id)

        return self._parse_envelope(method, status, body)

    def _parse_envelope(self, method: str, status: int, body: str) -> dict:
        try:
            envelope = json.loads(body)
        except ValueError as e:
            logger.error("Transmission returned non-JSON response")
            logger.debug(f"Transmission {method} response (HTTP {status}): {body!r}")
            raise TransmissionProtocolError(
                "Transmission returned non-JSON response", status=status, body=body
            ) from e

        if not isinstance(envelope, dict) or not isinstance(envelope.get("result"), str):
            logger.error("Transmission returned a response without a result")
            logger.debug(f"Transmission {method} response (HTTP {status}): {body!r}")
            raise TransmissionProtocolError(
                "Transmission returned a response without a result", status=status, body=body
            )

        result = envelope["result"]
        if result in SUCCESS_RESULTS:
            arguments = envelope.get("arguments")
            if arguments is None:
                return {}
            if not isinstance(arguments, dict):
                logger.error(f"Transmission returned malformed arguments for {method}")
                raise TransmissionProtocolError(
                    "Transmission returned malformed arguments", status=status, body=body
                )
            return arguments

        logger.error("Transmission responded with an error")
        logger.debug(f"Transmission {method} result: {result}")
        raise TransmissionRejectedError(result, method=method)

    async def _store_session_id(self, stale: Optional[str], fresh: str) -> None:
        """Replace the session id unless another task already refreshed it."""
        async with self._session_lock:
            if self._session_id == stale:
                self._session_id = fresh
                logger.debug("Transmission session id refreshed")

    async def call(self, method: str, arguments: Optional[dict] = None, retries: int = 1) -> dict:
        """
        Call an RPC method, re-issuing it once if the session id has expired.

        Args:
            method: RPC method name, e.g. "torrent-get"
            arguments: method arguments
            retries: re-issues allowed after a 409

        Returns:
            The envelope's arguments
        """
        arguments = arguments or {}
        with LogContext(rpc_method=method):
            while True:
                sent_id = self._session_id
                try:
                    return await self._execute(method, arguments, sent_id)
                except _SessionChallenge as challenge:
                    if not challenge.session_id:
                        raise SessionNegotiationError(
                            "Transmission answered 409 without a session id"
                        ) from None
                    await self._store_session_id(sent_id, challenge.session_id)
                    if retries <= 0:
                        logger.error(f"Transmission kept rejecting the session id for {method}")
                        raise SessionNegotiationError(
                            "Transmission rejected the refreshed session id"
                        ) from None
                    retries -= 1

    async def session_check(self) -> dict:
        """Probe the daemon with session-get."""
        return await self.call("session-get")

    async def torrent_query(self, fields: list[str], ids: list[str]) -> list[TorrentSummary]:
        """Query torrents by id or info hash. An empty list means none matched."""
        arguments = await self.call("torrent-get", {"fields": fields, "ids": ids})
        try:
            return [TorrentSummary.from_rpc(t) for t in arguments.get("torrents", [])]
        except (TypeError, ValueError, AttributeError) as e:
            logger.error(f"Transmission returned malformed torrent-get rows: {e}")
            raise TransmissionProtocolError("Transmission returned malformed torrent-get rows") from e

    async def torrent_stop(self, ids: list[str]) -> None:
        await self.call("torrent-stop", {"ids": ids})

    async def torrent_verify(self, ids: list[str]) -> None:
        await self.call("torrent-verify", {"ids": ids})

    async def torrent_add(
        self,
        download_dir: str,
        metainfo: str,
        paused: bool,
        labels: list[str],
    ) -> TorrentAddResult:
        """
        Add a torrent from its base64-encoded metainfo.

        Returns:
            TorrentAddResult tagged ADDED or DUPLICATE
        """
        arguments = await self.call(
            "torrent-add",
            {
                "download-dir": download_dir,
                "metainfo": metainfo,
                "paused": paused,
                "labels": labels,
            },
        )
        try:
            result = TorrentAddResult.from_arguments(arguments)
        except (TypeError, ValueError, AttributeError) as e:
            logger.error(f"Transmission returned a malformed torrent-add response: {e}")
            raise TransmissionProtocolError(
                "Transmission returned a malformed torrent-add response"
            ) from e
        if result is None:
            logger.error("Transmission torrent-add response has no torrent")
            raise TransmissionProtocolError("Transmission torrent-add response has no torrent")
        return result
