"""Identifier rules, composite keys and index partition names.

Key layout
==========
::
    <KEY_PREFIX>:records:<group>/<slug>    JSON RedirectRecord
    <KEY_PREFIX>:counters:<group>/<slug>   decimal click count
    <KEY_PREFIX>:indexes:ALL               JSON array of composite keys
    <KEY_PREFIX>:indexes:USER:<createdBy>  JSON array of composite keys

The composite key ``<group>/<slug>`` is the only identity a redirect has; the
same string is used in all three namespaces and as the index list element.
"""

import re

from shortlinks.config import get_settings

__all__ = [
    "ALL_PARTITION",
    "USER_PARTITION_PREFIX",
    "make_key",
    "user_partition",
    "is_valid_group",
    "is_valid_slug",
    "is_valid_path_segment",
]

settings = get_settings()

ALL_PARTITION = "ALL"
USER_PARTITION_PREFIX = "USER:"

_GROUP_PATTERN = re.compile(rf"^[A-Za-z0-9_-]{{1,{settings.GROUP_MAX_LENGTH}}}$")
_SLUG_PATTERN = re.compile(rf"^[A-Za-z0-9_-]{{1,{settings.SLUG_MAX_LENGTH}}}$")
# Public lookups only need a single, non-blank path segment.
_PATH_SEGMENT_PATTERN = re.compile(r"^[^/\s]{1,256}$")


def make_key(group: str, slug: str) -> str:
    return f"{group}/{slug}"


def user_partition(created_by: str) -> str:
    return f"{USER_PARTITION_PREFIX}{created_by}"


def is_valid_group(group: str) -> bool:
    return bool(_GROUP_PATTERN.fullmatch(group))


def is_valid_slug(slug: str) -> bool:
    return bool(_SLUG_PATTERN.fullmatch(slug))


def is_valid_path_segment(segment: str) -> bool:
    return bool(_PATH_SEGMENT_PATTERN.fullmatch(segment))
