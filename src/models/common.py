# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared API models: camelCase base, pagination envelope and acks."""

import math
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def page_count(total: int, limit: int) -> int:
    """Number of pages needed to show total items at limit per page."""
    if limit <= 0:
        return 0
    return math.ceil(total / limit)


class PaginatedResponse(CamelModel, Generic[T]):
    """Paginated list envelope.

    Attributes:
        results: Number of items on this page.
        total: Total matching items.
        page: Current page (1-based).
        pages: Total number of pages.
        data: Items on this page.
    """

    results: int
    total: int
    page: int
    pages: int
    data: list[T]

    @classmethod
    def build(cls, items: list[T], total: int, page: int, limit: int) -> "PaginatedResponse[T]":
        """Build the envelope for a page of items."""
        return cls(
            results=len(items),
            total=total,
            page=page,
            pages=page_count(total, limit),
            data=items,
        )


class AckResponse(CamelModel):
    """Generic acknowledgement."""

    status: str = "success"
    message: str | None = None

