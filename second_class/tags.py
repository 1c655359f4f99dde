"""Classification catalogues: modules, departments and labels."""

from __future__ import annotations

import logging
from typing import List, Type, TypeVar

from .api import APIError
from .models import Department, Label, Module

T = TypeVar("T", Module, Department, Label)


def fetch_all(client, tag_type: Type[T]) -> List[T]:
    """Fetch every value of ``tag_type``; one bad record fails the whole fetch."""
    raw = client.fetch_one(tag_type.ENDPOINT)
    if not isinstance(raw, list):
        raise APIError(f"{tag_type.ENDPOINT} did not return a list")
    try:
        tags = [tag_type.from_dict(item) for item in raw]
    except (KeyError, TypeError, AttributeError) as exc:
        raise APIError(f"Failed to decode {tag_type.__name__}: {exc}") from exc
    logging.debug("Fetched %d %s values", len(tags), tag_type.__name__)
    return tags


def root_department(client) -> Department:
    departments = fetch_all(client, Department)
    if not departments:
        raise APIError("No root department found")
    return departments[0]
