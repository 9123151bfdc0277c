"""
Landing-page documents and read models.

The ``homePage`` settings row is free-form JSON edited by the dashboard.
``HomePageDocument`` is the schema-on-read for it: every section has a
default and wrong-shaped fields are dropped one by one, inside list items
too.  Unknown keys are ignored.  Keys are camelCase on the wire, snake_case
in Python.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


# ── Stored document ─────────────────────────────────────────────────
_M = TypeVar("_M", bound="_CamelModel")


class HeroBannerConfig(_CamelModel):
    id: str | None = None
    type: str | None = None
    title: str | None = None
    subtitle: str | None = None
    text_style: dict[str, Any] | None = None
    media: str | None = None  # FilesUpload id
    background_color: str | None = None
    gradient_overlay: Any = None
    link: Any = None
    is_active: bool | None = None
    order: int | None = None


class BoardMemberConfig(_CamelModel):
    name: str | None = None
    title: str | None = None
    image: str | None = None  # FilesUpload id


class PartnerConfig(_CamelModel):
    name: str | None = None
    logo: str | None = None  # FilesUpload id


class DigitalProductsConfig(_CamelModel):
    title: str | None = None
    image: str | None = None  # FilesUpload id


def _lenient(model: type[_M], raw: Any) -> _M:
    """Validate ``raw`` into ``model``, dropping only the fields that fail.

    A non-object becomes an all-default instance.  Dropped fields keep
    their defaults so the composer applies its own fallbacks to them.
    """
    if not isinstance(raw, dict):
        return model()
    try:
        return model.model_validate(raw)
    except ValidationError:
        pass

    values: dict[str, Any] = {}
    for name, field in model.model_fields.items():
        key = field.alias or name
        if key in raw:
            value = raw[key]
        elif name in raw:
            value = raw[name]
        else:
            continue
        try:
            values[name] = getattr(model.model_validate({key: value}), name)
        except ValidationError:
            logger.warning("Dropping malformed %s field %r", model.__name__, key)
    return model.model_construct(**values)


class HomePageDocument(_CamelModel):
    version: int = 1
    hero_banners: list[HeroBannerConfig] = []
    stats_numbers: dict[str, Any] = {}
    globe: dict[str, Any] = {}
    board_members: list[BoardMemberConfig] = []
    partners: list[PartnerConfig] = []
    digital_products: DigitalProductsConfig = DigitalProductsConfig()
    events: list[str] = []  # Event ids
    news: list[str] = []  # Post ids

    @field_validator("hero_banners", "board_members", "partners", mode="before")
    @classmethod
    def _object_list(cls, v: Any, info: ValidationInfo) -> list:
        if not isinstance(v, list):
            return []
        # Positions stay stable; each item keeps whatever fields are valid
        item_model = _LIST_ITEMS[info.field_name]
        return [_lenient(item_model, item) for item in v]

    @field_validator("events", "news", mode="before")
    @classmethod
    def _id_list(cls, v: Any) -> list:
        if not isinstance(v, list):
            return []
        return [str(item) for item in v if isinstance(item, (str, int)) and str(item).strip()]

    @field_validator("stats_numbers", "globe", mode="before")
    @classmethod
    def _object(cls, v: Any) -> Any:
        return v if isinstance(v, dict) else {}

    @field_validator("digital_products", mode="before")
    @classmethod
    def _products(cls, v: Any) -> DigitalProductsConfig:
        return _lenient(DigitalProductsConfig, v)

    @classmethod
    def load(cls, raw: Any) -> "HomePageDocument":
        """Parse a stored document, never failing.

        Broken fields fall back to defaults one by one, both at the top
        level and inside each list item.
        """
        return _lenient(cls, raw)


_LIST_ITEMS: dict[str, type[_CamelModel]] = {
    "hero_banners": HeroBannerConfig,
    "board_members": BoardMemberConfig,
    "partners": PartnerConfig,
}


# ── Public read model ───────────────────────────────────────────────
class HeroBanner(_CamelModel):
    id: str
    type: str
    title: str
    subtitle: str
    text_style: dict[str, Any]
    media_url: str | None
    background_color: str | None
    gradient_overlay: Any
    link: Any
    is_active: bool
    order: int


class DigitalEraQuote(_CamelModel):
    id: str
    text: str
    author: str | None
    order: int
    is_active: bool


class BoardMember(_CamelModel):
    name: str
    title: str
    image_url: str | None


class Partner(_CamelModel):
    name: str
    logo_url: str | None


class HomepageEvent(_CamelModel):
    id: str
    title: str
    start_date: datetime | None
    end_date: datetime | None
    location: str | None
    status: str | None
    image_url: str | None


class HomepagePost(_CamelModel):
    id: str
    title: str
    slug: str
    excerpt: str | None
    featured_image_url: str | None
    published_at: datetime | None


class DigitalProducts(_CamelModel):
    title: str
    image_url: str | None


class HomepageResponse(_CamelModel):
    hero_banners: list[HeroBanner] = []
    stats_numbers: dict[str, Any] = {}
    globe: dict[str, Any] = {}
    digital_era_quotes: list[DigitalEraQuote] = []
    board_members: list[BoardMember] = []
    partners: list[Partner] = []
    events: list[HomepageEvent] = []
    posts: list[HomepagePost] = []
    digital_products: DigitalProducts = DigitalProducts(title="", image_url=None)
    updated_at: datetime


class HeaderFooterResponse(BaseModel):
    header: dict[str, Any]
    footer: dict[str, Any]
    success: bool
    message: str
    error: str | None = None
