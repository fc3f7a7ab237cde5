from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional
from urllib.parse import quote, urlencode

import httpx

DEFAULT_TIMEOUT_SECONDS = 30.0
DOWNLOAD_CHUNK_SIZE = 64 * 1024
LATEST_REVISION = "latest"


class StoreBrowserError(Exception):
    pass


class FetchFailure(StoreBrowserError):
    """A metadata request failed; ``body`` is the raw response text."""

    def __init__(self, body: str, status_code: Optional[int] = None) -> None:
        super().__init__(body)
        self.body = body
        self.status_code = status_code


class FileType(enum.Enum):
    REGULAR = 1
    SYMLINK = 2


@dataclass(frozen=True)
class BucketSummary:
    name: str
    last_revision_ts: Optional[int]


@dataclass(frozen=True)
class Revision:
    version_timestamp: int

    def __str__(self) -> str:
        return str(self.version_timestamp)


@dataclass(frozen=True)
class Bucket:
    name: str
    revisions: tuple[Revision, ...]


@dataclass(frozen=True)
class DirEntry:
    name: str
    nested_file_count: int


@dataclass(frozen=True)
class FileEntry:
    path: str
    type: FileType = FileType.REGULAR
    dest: Optional[str] = None
    size: Optional[int] = None
    mod_time: Optional[datetime] = None


@dataclass(frozen=True)
class DirListing:
    bucket_name: Optional[str]
    revision_ts: Optional[int]
    dirs: tuple[DirEntry, ...]
    files: tuple[FileEntry, ...]


@dataclass(frozen=True)
class SearchResult:
    relative_path: str
    bucket_name: str
    revision_ts: int


def _malformed(what: str, value: object) -> FetchFailure:
    return FetchFailure(f"malformed {what} in server response: {value!r}")


def _decode_str(value: object, what: str) -> str:
    if not isinstance(value, str):
        raise _malformed(what, value)
    return value


def _decode_int(value: object, what: str) -> int:
    # bool is an int subclass; a flag is never a timestamp or count
    if isinstance(value, bool) or not isinstance(value, int):
        raise _malformed(what, value)
    return value


def _decode_timestamp(value: object, what: str) -> int:
    """Epoch seconds that the local clock can represent."""
    timestamp = _decode_int(value, what)
    try:
        datetime.fromtimestamp(timestamp)
    except (ValueError, OverflowError, OSError):
        raise _malformed(what, value) from None
    return timestamp


def _decode_optional_timestamp(value: object, what: str) -> Optional[int]:
    if value is None:
        return None
    return _decode_timestamp(value, what)


def _decode_file_type(value: object) -> FileType:
    if isinstance(value, str):
        try:
            return FileType[value.strip().upper()]
        except KeyError:
            raise _malformed("file type", value) from None
    try:
        return FileType(_decode_int(value, "file type"))
    except ValueError:
        raise _malformed("file type", value) from None


def _decode_mod_time(value: object) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _decode_list(payload: object, what: str) -> list:
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise _malformed(what, payload)
    return payload


def _decode_object(payload: object, what: str) -> dict:
    if not isinstance(payload, dict):
        raise _malformed(what, payload)
    return payload


def decode_bucket_summaries(payload: object) -> list[BucketSummary]:
    summaries: list[BucketSummary] = []
    for item in _decode_list(payload, "bucket list"):
        item = _decode_object(item, "bucket summary")
        summaries.append(
            BucketSummary(
                name=_decode_str(item.get("name"), "bucket name"),
                last_revision_ts=_decode_optional_timestamp(
                    item.get("lastRevisionTs"), "last revision timestamp"
                ),
            )
        )
    return summaries


def decode_revision(payload: object) -> Revision:
    item = _decode_object(payload, "revision")
    return Revision(
        version_timestamp=_decode_timestamp(
            item.get("versionTimestamp"), "revision timestamp"
        )
    )


def decode_bucket(payload: object, name: str) -> Bucket:
    item = _decode_object(payload, "bucket")
    revisions = tuple(
        decode_revision(rev)
        for rev in _decode_list(item.get("revisions"), "revision list")
    )
    bucket_name = item.get("name")
    return Bucket(
        name=bucket_name if isinstance(bucket_name, str) and bucket_name else name,
        revisions=revisions,
    )


def decode_file_entry(payload: object) -> FileEntry:
    item = _decode_object(payload, "file entry")
    file_type = _decode_file_type(item.get("type", FileType.REGULAR.value))
    dest = None
    if file_type is FileType.SYMLINK:
        dest = _decode_str(item.get("dest"), "symlink destination")
    size = item.get("size")
    return FileEntry(
        path=_decode_str(item.get("path"), "file path"),
        type=file_type,
        dest=dest,
        size=size if isinstance(size, int) and not isinstance(size, bool) else None,
        mod_time=_decode_mod_time(item.get("modTime")),
    )


def decode_dir_listing(payload: object) -> DirListing:
    item = _decode_object(payload, "directory listing")
    dirs: list[DirEntry] = []
    for entry in _decode_list(item.get("dirs"), "directory list"):
        entry = _decode_object(entry, "directory entry")
        count = _decode_int(entry.get("nestedFileCount"), "nested file count")
        if count < 0:
            raise _malformed("nested file count", count)
        dirs.append(
            DirEntry(
                name=_decode_str(entry.get("name"), "directory name"),
                nested_file_count=count,
            )
        )
    files = tuple(
        decode_file_entry(entry)
        for entry in _decode_list(item.get("files"), "file list")
    )
    bucket_name = item.get("bucketName")
    return DirListing(
        bucket_name=bucket_name if isinstance(bucket_name, str) else None,
        revision_ts=_decode_optional_timestamp(item.get("revisionTs"), "revision timestamp"),
        dirs=tuple(dirs),
        files=files,
    )


def decode_search_results(payload: object) -> list[SearchResult]:
    results: list[SearchResult] = []
    for item in _decode_list(payload, "search results"):
        item = _decode_object(item, "search result")
        bucket = _decode_object(item.get("bucket"), "search result bucket")
        revision = decode_revision(item.get("revision"))
        results.append(
            SearchResult(
                relative_path=_decode_str(item.get("relativePath"), "relative path"),
                bucket_name=_decode_str(bucket.get("name"), "bucket name"),
                revision_ts=revision.version_timestamp,
            )
        )
    return results


def bucket_api_path(bucket_name: str) -> str:
    return f"/api/buckets/{quote(bucket_name, safe='')}"


def revision_api_path(bucket_name: str, revision_str: str) -> str:
    return f"{bucket_api_path(bucket_name)}/{quote(revision_str, safe='')}"


def file_api_path(bucket_name: str, revision_str: str, path: str) -> str:
    query = urlencode({"relativePath": path})
    return f"{revision_api_path(bucket_name, revision_str)}/file?{query}"


class StoreClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    def absolute_url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _get_json(self, path: str, params: Optional[dict] = None) -> object:
        try:
            response = await self._get_client().get(path, params=params)
        except httpx.HTTPError as exc:
            raise FetchFailure(f"{type(exc).__name__}: {exc}") from exc
        if not response.is_success:
            raise FetchFailure(response.text, status_code=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise FetchFailure(response.text, status_code=response.status_code) from exc

    async def list_buckets(self) -> list[BucketSummary]:
        return decode_bucket_summaries(await self._get_json("/api/buckets/"))

    async def get_bucket(self, bucket_name: str) -> Bucket:
        payload = await self._get_json(bucket_api_path(bucket_name))
        return decode_bucket(payload, bucket_name)

    async def get_dir_listing(
        self, bucket_name: str, revision_str: str, root_dir: str = ""
    ) -> DirListing:
        # the server matches rootDir as a plain prefix of each file path
        prefix = f"{root_dir.strip('/')}/" if root_dir.strip("/") else ""
        payload = await self._get_json(
            revision_api_path(bucket_name, revision_str),
            params={"rootDir": prefix},
        )
        return decode_dir_listing(payload)

    async def search(self, term: str) -> list[SearchResult]:
        payload = await self._get_json("/api/search", params={"searchTerm": term})
        return decode_search_results(payload)

    async def download_file(
        self, bucket_name: str, revision_str: str, path: str, destination: str
    ) -> Path:
        target = Path(destination).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        url = file_api_path(bucket_name, revision_str, path)
        try:
            async with self._get_client().stream("GET", url) as response:
                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise FetchFailure(body, status_code=response.status_code)
                temp_path = target.with_name(f".{target.name}.part")
                try:
                    with temp_path.open("wb") as handle:
                        async for chunk in response.aiter_bytes(DOWNLOAD_CHUNK_SIZE):
                            handle.write(chunk)
                    temp_path.replace(target)
                except BaseException:
                    temp_path.unlink(missing_ok=True)
                    raise
        except httpx.HTTPError as exc:
            raise FetchFailure(f"{type(exc).__name__}: {exc}") from exc
        return target
