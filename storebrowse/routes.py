from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import quote, unquote

BUCKETS_ROOT = "#/buckets"
SEARCH_ROOT = "#/search"


@dataclass(frozen=True)
class Route:
    bucket_name: Optional[str] = None
    revision_str: Optional[str] = None
    root_dir_segments: tuple[str, ...] = ()
    search_term: Optional[str] = None

    @property
    def root_dir(self) -> str:
        return "/".join(self.root_dir_segments)

    @property
    def is_complete(self) -> bool:
        return self.bucket_name is None or self.revision_str is not None

    def with_revision(self, revision_str: str) -> Route:
        return Route(
            bucket_name=self.bucket_name,
            revision_str=revision_str,
            root_dir_segments=self.root_dir_segments,
        )

    def to_hash(self) -> str:
        if self.search_term is not None:
            return search_hash(self.search_term)
        if self.bucket_name is None:
            return BUCKETS_ROOT
        if self.revision_str is None:
            return bucket_hash(self.bucket_name)
        return route_hash(self.bucket_name, self.revision_str, self.root_dir_segments)


def _encode(segment: str) -> str:
    return quote(segment, safe="")


def split_root_dir(root_dir: str) -> tuple[str, ...]:
    return tuple(segment for segment in root_dir.split("/") if segment)


def parse_hash(value: str) -> Route:
    """Parse a location hash into a Route.

    Each segment is percent-decoded on its own, so an encoded ``%2F`` inside
    a directory name stays part of that name. Anything outside the known
    grammar falls back to the bucket listing.
    """
    raw = (value or "").strip()
    if raw.startswith("#"):
        raw = raw[1:]
    segments = raw.strip("/").split("/") if raw.strip("/") else []
    if not segments:
        return Route()
    head, rest = segments[0], segments[1:]
    if head == "search":
        term = unquote(rest[0]) if rest else ""
        return Route(search_term=term)
    if head != "buckets" or not rest or not rest[0]:
        return Route()
    bucket_name = unquote(rest[0])
    if len(rest) < 2 or not rest[1]:
        return Route(bucket_name=bucket_name)
    return Route(
        bucket_name=bucket_name,
        revision_str=unquote(rest[1]),
        root_dir_segments=tuple(unquote(seg) for seg in rest[2:] if seg),
    )


def bucket_listing_hash() -> str:
    return BUCKETS_ROOT


def bucket_hash(bucket_name: str) -> str:
    return f"{BUCKETS_ROOT}/{_encode(bucket_name)}"


def route_hash(
    bucket_name: str, revision_str: str, root_dir_segments: Iterable[str] = ()
) -> str:
    parts = [BUCKETS_ROOT, _encode(bucket_name), _encode(revision_str)]
    parts.extend(_encode(segment) for segment in root_dir_segments if segment)
    return "/".join(parts)


def search_hash(term: str) -> str:
    return f"{SEARCH_ROOT}/{_encode(term)}"


def location_from_arg(value: str) -> str:
    """Turn a CLI location (``#/buckets/...`` or ``bucket/rev/dir``) into a hash."""
    text = value.strip()
    if not text:
        return BUCKETS_ROOT
    if text.startswith("#"):
        return text
    segments = split_root_dir(text)
    if not segments:
        return BUCKETS_ROOT
    bucket_name = segments[0]
    if len(segments) == 1:
        return bucket_hash(bucket_name)
    return route_hash(bucket_name, segments[1], segments[2:])
