"""Retrieval of activity listings, series children and participation history."""

from __future__ import annotations

import logging
from typing import List, Optional

from .api import PAGE_SIZE, UNLIMITED, APIError
from .filters import ActivityFilter
from .models import DETAIL_ENDPOINT, Activity, Status

OPEN_ENDPOINT = "item/scItem/enrolmentList"
ENDED_ENDPOINT = "item/scItem/endList"
CHILDREN_ENDPOINT = "item/scItem/selectSignChirdItem"
PARTICIPATED_ENDPOINT = "item/scParticipateItem/list"


class NotASeriesError(LookupError):
    """Raised when series children are requested for a single activity."""


def _fetch(client, activity_filter: ActivityFilter, endpoint: str) -> List[Activity]:
    raw = client.page_search(
        endpoint, activity_filter.to_query_parameters(), UNLIMITED, PAGE_SIZE
    )
    result = []
    for record in raw:
        activity = Activity.from_dict(record)
        # the server ignores some parameters, so check the time window locally
        if activity_filter.matches(activity, only_strict_phase=True):
            result.append(activity)
    return result


def children(client, activity: Activity) -> List[Activity]:
    if not activity.is_series():
        return []
    raw = client.fetch_one(CHILDREN_ENDPOINT, {"id": activity.id})
    if not isinstance(raw, list):
        raise APIError(f"Children of {activity.id} is not a list")
    return [Activity.from_dict(record) for record in raw]


def _child_qualifies(child: Activity, include_ended: bool) -> bool:
    is_applying = child.status() is Status.APPLYING
    return not is_applying if include_ended else is_applying


def find(
    client,
    activity_filter: Optional[ActivityFilter] = None,
    include_ended: bool = False,
    expand_series: bool = False,
    max_results: int = UNLIMITED,
) -> List[Activity]:
    """Return the activities matching ``activity_filter`` in discovery order.

    With ``expand_series`` a series is replaced by those of its children
    whose status agrees with ``include_ended``. At most ``max_results``
    activities are returned unless it is ``UNLIMITED``.
    """
    if max_results == 0:
        return []
    activity_filter = activity_filter or ActivityFilter()
    endpoint = ENDED_ENDPOINT if include_ended else OPEN_ENDPOINT
    remaining = max_results

    result: List[Activity] = []
    for activity in _fetch(client, activity_filter, endpoint):
        if expand_series and activity.is_series():
            logging.debug("Expanding series %s (%s)", activity.id, activity.name)
            for child in children(client, activity):
                if not activity_filter.matches(child, only_strict_phase=True):
                    continue
                if not _child_qualifies(child, include_ended):
                    continue
                result.append(child)
                remaining -= 1
                if remaining == 0:
                    return result
        else:
            result.append(activity)
            remaining -= 1
            if remaining == 0:
                return result
    return result


def participated(client) -> List[Activity]:
    raw = client.page_search(PARTICIPATED_ENDPOINT, {}, UNLIMITED, PAGE_SIZE)
    return [Activity.from_dict(record) for record in raw]


def _is_registration(activity: Activity) -> bool:
    return activity.status() in (Status.APPLYING, Status.APPLICATION_ENDED)


def registered(client) -> List[Activity]:
    """Participated activities that have not taken place yet."""
    return [a for a in participated(client) if _is_registration(a)]


def finished(client) -> List[Activity]:
    return [a for a in participated(client) if not _is_registration(a)]


def detail(client, activity_id: str) -> Activity:
    return Activity.from_dict(client.fetch_one(DETAIL_ENDPOINT, {"id": activity_id}))


def series_children(client, activity_id: str) -> List[Activity]:
    activity = detail(client, activity_id)
    if not activity.is_series():
        raise NotASeriesError(f"{activity_id} is not a series activity")
    return children(client, activity)
