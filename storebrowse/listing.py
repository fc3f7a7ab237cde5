"""Pure shaping of store payloads into render models.

Nothing in here touches the network or the widget tree; views fetch the
records and hand them to the ``build_*`` functions, and the container only
ever sees the resulting models.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Sequence

from .api import (
    Bucket,
    BucketSummary,
    DirEntry,
    DirListing,
    FileEntry,
    FileType,
    Revision,
    SearchResult,
    file_api_path,
)
from .icons import LINK_ICON, icon_for_name
from .routes import bucket_hash, route_hash, split_root_dir


@dataclass(frozen=True)
class RevisionOption:
    label: str
    value: str
    selected: bool


@dataclass(frozen=True)
class Breadcrumb:
    label: str
    target: str


@dataclass(frozen=True)
class DirItem:
    name: str
    nested_file_count: int
    target: str


@dataclass(frozen=True)
class FileItem:
    path: str
    name: str
    url: str
    icon: str
    description: Optional[str] = None
    size_label: str = ""
    modified_label: str = ""


@dataclass(frozen=True)
class BucketModel:
    bucket_name: str
    revision_str: str
    root_dir: str
    revisions: tuple[RevisionOption, ...]
    breadcrumbs: tuple[Breadcrumb, ...]
    dirs: tuple[DirItem, ...]
    files: tuple[FileItem, ...]

    @property
    def selected_revision(self) -> Optional[str]:
        for option in self.revisions:
            if option.selected:
                return option.value
        return None


@dataclass(frozen=True)
class BucketRow:
    name: str
    target: str
    last_revision_label: str


@dataclass(frozen=True)
class BucketListingModel:
    buckets: tuple[BucketRow, ...]


@dataclass(frozen=True)
class SearchItem:
    bucket_name: str
    revision_label: str
    path: str
    target: str


@dataclass(frozen=True)
class SearchModel:
    term: str
    results: tuple[SearchItem, ...]


HOME_LABEL = "Home"


def format_size(size: int) -> str:
    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    value = float(size)
    for unit in units:
        if value < 1024 or unit == units[-1]:
            if unit == "B":
                return f"{int(value)} {unit}"
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} PB"


def format_time(value: Optional[datetime]) -> str:
    if not value:
        return ""
    return value.strftime("%Y-%m-%d %H:%M")


def format_timestamp(epoch_seconds: Optional[int]) -> str:
    """Full locale date-time for an epoch-seconds timestamp."""
    if epoch_seconds is None:
        return ""
    return datetime.fromtimestamp(epoch_seconds).strftime("%c")


def name_key(name: str) -> tuple[str, str]:
    return (name.casefold(), name)


def sort_dirs(dirs: Iterable[DirEntry]) -> list[DirEntry]:
    return sorted(dirs, key=lambda entry: name_key(entry.name))


def sort_files(files: Iterable[FileEntry]) -> list[FileEntry]:
    return sorted(files, key=lambda entry: name_key(entry.path))


def sort_revisions(revisions: Iterable[Revision]) -> list[Revision]:
    return sorted(revisions, key=lambda rev: rev.version_timestamp, reverse=True)


def revision_options(
    revisions: Iterable[Revision], revision_str: str
) -> tuple[RevisionOption, ...]:
    return tuple(
        RevisionOption(
            label=format_timestamp(rev.version_timestamp),
            value=str(rev.version_timestamp),
            selected=str(rev.version_timestamp) == revision_str,
        )
        for rev in sort_revisions(revisions)
    )


def build_breadcrumbs(
    bucket_name: str, revision_str: str, root_dir: str
) -> tuple[Breadcrumb, ...]:
    segments = split_root_dir(root_dir)
    crumbs = [Breadcrumb(HOME_LABEL, route_hash(bucket_name, revision_str))]
    for index, segment in enumerate(segments, start=1):
        crumbs.append(
            Breadcrumb(segment, route_hash(bucket_name, revision_str, segments[:index]))
        )
    return tuple(crumbs)


def dir_target(
    bucket_name: str, revision_str: str, root_dir: str, entry_name: str
) -> str:
    return route_hash(bucket_name, revision_str, (*split_root_dir(root_dir), entry_name))


def revision_target(bucket_name: str, revision_str: str, root_dir: str) -> str:
    return route_hash(bucket_name, revision_str, split_root_dir(root_dir))


def file_url(bucket_name: str, revision_str: str, path: str) -> str:
    return file_api_path(bucket_name, revision_str, path)


def file_display_name(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def file_icon(entry: FileEntry) -> str:
    if entry.type is FileType.SYMLINK:
        return LINK_ICON
    return icon_for_name(file_display_name(entry.path))


def file_description(entry: FileEntry) -> Optional[str]:
    if entry.type is FileType.SYMLINK:
        return f"symlink to {entry.dest}"
    return None


def file_item(bucket_name: str, revision_str: str, entry: FileEntry) -> FileItem:
    return FileItem(
        path=entry.path,
        name=file_display_name(entry.path),
        url=file_url(bucket_name, revision_str, entry.path),
        icon=file_icon(entry),
        description=file_description(entry),
        size_label=format_size(entry.size) if entry.size is not None else "",
        modified_label=format_time(entry.mod_time),
    )


def build_bucket_model(
    bucket_name: str,
    bucket: Bucket,
    listing: DirListing,
    revision_str: str,
    root_dir: str,
) -> BucketModel:
    return BucketModel(
        bucket_name=bucket_name,
        revision_str=revision_str,
        root_dir=root_dir,
        revisions=revision_options(bucket.revisions, revision_str),
        breadcrumbs=build_breadcrumbs(bucket_name, revision_str, root_dir),
        dirs=tuple(
            DirItem(
                name=entry.name,
                nested_file_count=entry.nested_file_count,
                target=dir_target(bucket_name, revision_str, root_dir, entry.name),
            )
            for entry in sort_dirs(listing.dirs)
        ),
        files=tuple(
            file_item(bucket_name, revision_str, entry)
            for entry in sort_files(listing.files)
        ),
    )


def build_bucket_listing_model(buckets: Sequence[BucketSummary]) -> BucketListingModel:
    return BucketListingModel(
        buckets=tuple(
            BucketRow(
                name=bucket.name,
                target=bucket_hash(bucket.name),
                last_revision_label=format_timestamp(bucket.last_revision_ts),
            )
            for bucket in buckets
        )
    )


def build_search_model(term: str, results: Sequence[SearchResult]) -> SearchModel:
    items = []
    for result in results:
        parent = result.relative_path.rsplit("/", 1)[0] if "/" in result.relative_path else ""
        items.append(
            SearchItem(
                bucket_name=result.bucket_name,
                revision_label=format_timestamp(result.revision_ts),
                path=result.relative_path,
                target=revision_target(result.bucket_name, str(result.revision_ts), parent),
            )
        )
    return SearchModel(term=term, results=tuple(items))
