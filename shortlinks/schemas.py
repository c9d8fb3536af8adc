"""Pydantic schemas for stored records and API input/output.

The same ``RedirectRecord`` model is used for the JSON value stored in the
records namespace and for the ``data`` field of admin responses, so what an
admin reads is exactly what is stored. Field names are camelCase on the wire
(``createdBy``, ``createdAt``) and snake_case in Python.

Schema Hierarchy
=================
::
    RedirectRecord (Stored / Output)
    ├─ group, slug: str
    ├─ target: str (absolute URL)
    ├─ createdBy: str
    ├─ createdAt: datetime
    ├─ updatedAt: datetime | None
    └─ title, notes: str | None

    RedirectCreate (Input)   all record fields except timestamps, validated
    RedirectUpdate (Input)   partial patch of target/title/notes/group/slug

    CreatedResponse / UpdatedResponse / DeletedResponse
    RedirectDetail (record + clicks)
    RedirectPage / UserRedirectPage (pagination over index partitions)
    SlugCheckResponse, HealthResponse

Key Behaviours
===============
- URL validation uses the validators library; only absolute URLs pass.
  Single-label hosts such as localhost are accepted.
- group and slug follow the identifier rules in shortlinks.keys.
- FastAPI reports any of these validation failures as 400 (see main.py).
"""

import datetime

import validators
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from shortlinks.enums import HealthStatus
from shortlinks.keys import is_valid_group, is_valid_slug, make_key

__all__ = [
    "RedirectRecord",
    "RedirectCreate",
    "RedirectUpdate",
    "CreatedResponse",
    "UpdatedResponse",
    "DeletedResponse",
    "RedirectDetail",
    "RedirectEntry",
    "RedirectPage",
    "UserRedirectPage",
    "SlugCheckResponse",
    "HealthResponse",
]


def _check_target(value: str) -> str:
    if not validators.url(value, simple_host=True):
        raise ValueError("Invalid target URL")
    return value


def _check_group(value: str) -> str:
    if not is_valid_group(value):
        raise ValueError("Invalid group (allowed: A-Z a-z 0-9 _ -)")
    return value


def _check_slug(value: str) -> str:
    if not is_valid_slug(value):
        raise ValueError("Invalid slug (allowed: A-Z a-z 0-9 _ -)")
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RedirectRecord(CamelModel):
    group: str
    slug: str
    target: str
    created_by: str
    created_at: datetime.datetime
    updated_at: datetime.datetime | None = None
    title: str | None = None
    notes: str | None = None

    @property
    def key(self) -> str:
        return make_key(self.group, self.slug)


class RedirectCreate(CamelModel):
    group: str
    slug: str
    target: str
    created_by: str = Field(..., min_length=1)
    title: str | None = None
    notes: str | None = None

    @field_validator("group")
    @classmethod
    def validate_group(cls, v: str) -> str:
        return _check_group(v)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str) -> str:
        return _check_slug(v)

    @field_validator("target")
    @classmethod
    def validate_target(cls, v: str) -> str:
        return _check_target(v)

    @property
    def key(self) -> str:
        return make_key(self.group, self.slug)


class RedirectUpdate(CamelModel):
    """Patch for an existing redirect; only fields present in the body apply.

    ``title`` and ``notes`` may be set to null to clear them. ``target``,
    ``group`` and ``slug`` may be omitted but never nulled.
    """

    target: str | None = None
    title: str | None = None
    notes: str | None = None
    group: str | None = None
    slug: str | None = None

    @field_validator("target", "group", "slug")
    @classmethod
    def validate_identity_fields(cls, v: str | None, info: ValidationInfo) -> str | None:
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        if info.field_name == "target":
            return _check_target(v)
        if info.field_name == "group":
            return _check_group(v)
        return _check_slug(v)

    def changes(self) -> dict:
        """Fields the caller actually sent, keyed by Python field name."""
        return self.model_dump(exclude_unset=True)


class CreatedResponse(CamelModel):
    message: str = "Redirect created"
    key: str


class UpdatedResponse(CamelModel):
    message: str
    key: str | None = None
    old_key: str | None = None
    new_key: str | None = None


class DeletedResponse(CamelModel):
    message: str = "Deleted"
    key: str


class RedirectDetail(CamelModel):
    key: str
    data: RedirectRecord
    clicks: int


class RedirectEntry(CamelModel):
    key: str
    data: RedirectRecord | None


class RedirectPage(CamelModel):
    page: int
    page_size: int
    total_items: int
    total_pages: int
    items: list[RedirectEntry]


class UserRedirectPage(RedirectPage):
    user: str


class SlugCheckResponse(CamelModel):
    key: str
    exists: bool


class HealthResponse(BaseModel):
    status: HealthStatus
    cache: HealthStatus
