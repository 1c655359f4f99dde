"""Applying for and cancelling activities."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from . import catalog
from .api import APIError
from .models import Activity, SignInfo, User

CONFLICT_PHRASE = "时间冲突"
VERIFICATION_FAILED_PHRASE = "验证失败"

MY_INFO_ENDPOINT = "paramdesign/scMyInfo/info"
USER_SEARCH_ENDPOINT = "sys/user/getPersonInChargeUser"
USER_PHONE_ENDPOINT = "sys/user/querySysUser"


def _apply_endpoint(activity: Activity) -> str:
    return f"mobile/item/enter/{activity.id}"


def _cancel_endpoint(activity: Activity) -> str:
    return f"mobile/item/cancellRegistration/{activity.id}"


def current_user(client) -> User:
    info = client.fetch_one(MY_INFO_ENDPOINT)
    username = info.get("username") if isinstance(info, dict) else None
    if not username:
        raise APIError("Profile response is missing username")
    matches = client.page_search(USER_SEARCH_ENDPOINT, {"realname": username}, 2, 2)
    if not matches:
        raise APIError(f"Failed to find user {username}")
    user = User.from_dict(matches[0])
    if info.get("phone"):
        user.phone = info["phone"]
    return user


def user_phone(client, user: User) -> Optional[str]:
    if user.phone:
        return user.phone
    try:
        info = client.fetch_one(USER_PHONE_ENDPOINT, {"username": user.id})
    except APIError as exc:
        # the portal refuses this lookup for some accounts
        if VERIFICATION_FAILED_PHRASE in exc.message:
            return None
        raise
    phone = info.get("phone") if isinstance(info, dict) else None
    user.phone = phone
    return phone


def own_sign_info(client) -> SignInfo:
    user = current_user(client)
    return SignInfo(
        name=user.name,
        college=user.college or "",
        classes=user.classes,
        phone=user_phone(client, user) or "",
    )


def _payload(client, activity: Activity, sign_info: Optional[SignInfo]) -> Dict[str, Any]:
    if not activity.needs_sign_info():
        return {}
    return (sign_info or own_sign_info(client)).to_dict()


def _submit_application(client, activity: Activity, payload: Dict[str, Any]) -> bool:
    response = client.submit(_apply_endpoint(activity), "post", None, payload)
    return bool(response.get("success"))


def _cancel_overlapping(client, activity: Activity) -> None:
    hold_time = activity.hold_time()
    for other in catalog.participated(client):
        try:
            other_time = other.hold_time()
        except ValueError:
            continue
        if other_time.overlaps(hold_time):
            logging.info("Cancelling conflicting registration %s (%s)", other.id, other.name)
            if not cancel(client, other):
                logging.warning("Cancellation of %s was not confirmed", other.id)


def apply(
    client,
    activity: Activity,
    force: bool = False,
    auto_resolve_conflicts: bool = True,
    sign_info: Optional[SignInfo] = None,
) -> bool:
    """Apply for ``activity``.

    Returns False without contacting the portal when the activity is not
    applyable and ``force`` is not set. When the portal reports a time
    conflict and ``auto_resolve_conflicts`` is set, every participated
    activity overlapping this one is cancelled and the application is
    submitted exactly once more.
    """
    if not force and not activity.applyable():
        return False

    payload = _payload(client, activity, sign_info)
    try:
        return _submit_application(client, activity, payload)
    except APIError as exc:
        if not (auto_resolve_conflicts and CONFLICT_PHRASE in exc.message):
            raise
        logging.info("Time conflict applying for %s, resolving", activity.id)

    _cancel_overlapping(client, activity)
    return _submit_application(client, activity, payload)


def cancel(client, activity: Activity) -> bool:
    response = client.submit(_cancel_endpoint(activity), "post")
    return bool(response.get("success"))
