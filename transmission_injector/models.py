"""
Data model for Transmission Injector.
Typed views over the Transmission RPC payloads plus the outcome enums
that the injection flow reports back to callers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, Protocol, TypeVar

T = TypeVar("T")
E = TypeVar("E")


class InjectionResult(Enum):
    """Terminal outcome of a single inject() call."""
    SUCCESS = "SUCCESS"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    FAILURE = "FAILURE"
    TORRENT_NOT_COMPLETE = "TORRENT_NOT_COMPLETE"


class DownloadDirError(Enum):
    """Reasons a download directory could not be resolved."""
    NOT_FOUND = "NOT_FOUND"
    TORRENT_NOT_COMPLETE = "TORRENT_NOT_COMPLETE"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class AddStatus(Enum):
    """Which variant of the torrent-add response the daemon sent."""
    ADDED = "torrent-added"
    DUPLICATE = "torrent-duplicate"


@dataclass(frozen=True)
class Result(Generic[T, E]):
    """Either a value or an error code; domain outcomes, not exceptions."""
    value: Optional[T] = None
    error: Optional[E] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T, E]":
        return cls(value=value)

    @classmethod
    def err(cls, error: E) -> "Result[T, E]":
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @property
    def is_err(self) -> bool:
        return self.error is not None

    def unwrap(self) -> T:
        if self.error is not None:
            raise ValueError(f"Called unwrap on an error result: {self.error}")
        return self.value


@dataclass
class TorrentSummary:
    """A torrent-get row restricted to the fields we query."""
    download_dir: str = ""
    percent_done: float = 0.0

    @property
    def is_complete(self) -> bool:
        return self.percent_done == 1

    @classmethod
    def from_rpc(cls, data: dict) -> "TorrentSummary":
        return cls(
            download_dir=data.get("downloadDir", ""),
            percent_done=float(data.get("percentDone", 0.0)),
        )


@dataclass
class TorrentMetadata:
    """Identity of a torrent as reported by torrent-add."""
    hash_string: str
    id: int
    name: str

    @classmethod
    def from_rpc(cls, data: dict) -> "TorrentMetadata":
        return cls(
            hash_string=data.get("hashString", ""),
            id=int(data.get("id", 0)),
            name=data.get("name", ""),
        )


@dataclass
class TorrentAddResult:
    """
    Tagged result of torrent-add.

    The daemon signals the variant by which key it puts in the arguments
    ("torrent-added" or "torrent-duplicate"); that is decoded once here so
    callers only ever look at status.
    """
    status: AddStatus
    torrent: TorrentMetadata

    @property
    def is_duplicate(self) -> bool:
        return self.status is AddStatus.DUPLICATE

    @classmethod
    def from_arguments(cls, arguments: dict) -> Optional["TorrentAddResult"]:
        """Decode torrent-add arguments; None if neither variant key is present."""
        if AddStatus.DUPLICATE.value in arguments:
            return cls(AddStatus.DUPLICATE, TorrentMetadata.from_rpc(arguments[AddStatus.DUPLICATE.value]))
        if AddStatus.ADDED.value in arguments:
            return cls(AddStatus.ADDED, TorrentMetadata.from_rpc(arguments[AddStatus.ADDED.value]))
        return None


class Metafile(Protocol):
    """Torrent metadata to inject; encoding is done by the caller's codec."""
    info_hash: str
    name: str

    def encode(self) -> bytes:
        ...


@dataclass
class Searchee:
    """Something we already have locally that a new torrent was matched against."""
    name: str
    info_hash: Optional[str] = None  # None for data-based searchees
    path: Optional[str] = None


@dataclass
class TorrentFile:
    """A .torrent read from disk, passed through to the daemon byte-for-byte."""
    name: str
    data: bytes
    info_hash: str = ""

    def encode(self) -> bytes:
        return self.data
