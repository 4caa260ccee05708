"""
Transmission Injection Client
Decides how to add a cross-seed torrent next to the torrent it was matched
against: resolves the download directory, gates on completion, submits the
torrent and reports an InjectionResult.
"""

import base64
import logging
from typing import Callable, Optional, Union

from .config import Settings, get_runtime_config
from .exceptions import DaemonUnreachableError, InjectorError
from .logging_config import LogContext
from .models import (
    DownloadDirError,
    InjectionResult,
    Metafile,
    Result,
    Searchee,
)
from .policy import Decision, RecheckPolicy, should_recheck
from .rpc import TransmissionRpc

logger = logging.getLogger(__name__)


class TransmissionClient:
    """
    Torrent client adapter for Transmission.

    All daemon failures during inject() are reported as
    InjectionResult.FAILURE; not-found, not-complete and duplicate are
    returned as values rather than raised.
    """

    def __init__(
        self,
        rpc: Optional[TransmissionRpc] = None,
        config_provider: Callable[[], Settings] = get_runtime_config,
        recheck_policy: RecheckPolicy = should_recheck,
    ):
        self._config_provider = config_provider
        self.rpc = rpc or TransmissionRpc(config_provider)
        self._recheck_policy = recheck_policy

    async def validate_config(self) -> None:
        """
        Check that the daemon answers session-get.

        Raises:
            DaemonUnreachableError: on any failure, with the configured url
        """
        url = self._config_provider().transmission_rpc_url
        try:
            await self.rpc.session_check()
        except InjectorError as e:
            logger.debug(f"Transmission session-get failed: {e}")
            raise DaemonUnreachableError(url) from e
        logger.info("Successfully connected to Transmission")

    async def get_download_dir(
        self,
        meta: Union[Metafile, Searchee],
        only_completed: bool = True,
    ) -> Result[str, DownloadDirError]:
        """
        Look up where the daemon keeps the torrent with meta's info hash.

        Args:
            meta: anything with an info_hash
            only_completed: refuse torrents that aren't fully downloaded

        Returns:
            Result with the download directory, or NOT_FOUND,
            TORRENT_NOT_COMPLETE or UNKNOWN_ERROR
        """
        if not meta.info_hash:
            return Result.err(DownloadDirError.NOT_FOUND)

        try:
            torrents = await self.rpc.torrent_query(
                ["downloadDir", "percentDone"], [meta.info_hash]
            )
        except InjectorError as e:
            with LogContext(error=str(e)):
                logger.debug(f"Failed to query {meta.info_hash}")
            return Result.err(DownloadDirError.UNKNOWN_ERROR)

        if not torrents:
            return Result.err(DownloadDirError.NOT_FOUND)

        torrent = torrents[0]
        if only_completed and not torrent.is_complete:
            return Result.err(DownloadDirError.TORRENT_NOT_COMPLETE)

        return Result.ok(torrent.download_dir)

    async def is_torrent_complete(self, info_hash: str) -> Result[bool, DownloadDirError]:
        """Return whether the torrent is fully downloaded, or NOT_FOUND."""
        torrents = await self.rpc.torrent_query(["percentDone"], [info_hash])
        if not torrents:
            return Result.err(DownloadDirError.NOT_FOUND)
        return Result.ok(torrents[0].is_complete)

    async def recheck_torrent(self, info_hash: str) -> None:
        """Stop and verify a torrent; errors from either call propagate."""
        with LogContext(operation="recheck", info_hash=info_hash):
            logger.info(f"Rechecking torrent {info_hash}")
            # Stop first, Transmission may resume the torrent once verify finishes
            await self.rpc.torrent_stop([info_hash])
            await self.rpc.torrent_verify([info_hash])

    async def _resolve_download_dir(
        self, searchee: Searchee, path: Optional[str]
    ) -> Result[str, InjectionResult]:
        if path:
            return Result.ok(path)

        result = await self.get_download_dir(searchee, only_completed=True)
        if result.error is DownloadDirError.TORRENT_NOT_COMPLETE:
            return Result.err(InjectionResult.TORRENT_NOT_COMPLETE)
        if result.is_err:
            logger.debug(f"Could not resolve download dir for {searchee.name}: {result.error.value}")
            return Result.err(InjectionResult.FAILURE)
        return result

    async def inject(
        self,
        new_torrent: Metafile,
        searchee: Searchee,
        decision: Decision,
        path: Optional[str] = None,
    ) -> InjectionResult:
        """
        Add new_torrent to Transmission on top of searchee's data.

        Args:
            new_torrent: the matched torrent to add
            searchee: the local item it matched
            decision: the match decision, feeds the recheck policy
            path: explicit download directory; skips the daemon lookup

        Returns:
            SUCCESS, ALREADY_EXISTS, TORRENT_NOT_COMPLETE or FAILURE
        """
        with LogContext(
            operation="inject", torrent_name=new_torrent.name, info_hash=new_torrent.info_hash
        ):
            result = await self._inject(new_torrent, searchee, decision, path)
            with LogContext(outcome=result.value):
                if result is InjectionResult.FAILURE:
                    logger.warning(f"Failed to inject {new_torrent.name}")
                else:
                    logger.info(f"Injection of {new_torrent.name}: {result.value}")
            return result

    async def _inject(
        self,
        new_torrent: Metafile,
        searchee: Searchee,
        decision: Decision,
        path: Optional[str],
    ) -> InjectionResult:
        download_dir = await self._resolve_download_dir(searchee, path)
        if download_dir.is_err:
            return download_dir.error

        tag = self._config_provider().cross_seed_tag
        try:
            paused = self._recheck_policy(searchee, decision)
            metainfo = base64.b64encode(new_torrent.encode()).decode("ascii")
            added = await self.rpc.torrent_add(
                download_dir.unwrap(), metainfo, paused, [tag]
            )
        except InjectorError as e:
            with LogContext(error=str(e)):
                logger.warning(f"torrent-add failed for {new_torrent.name}")
            return InjectionResult.FAILURE

        if added.is_duplicate:
            return InjectionResult.ALREADY_EXISTS
        return InjectionResult.SUCCESS
