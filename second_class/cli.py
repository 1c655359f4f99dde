"""Command line interface for the second-class activity portal."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Iterable, List

from . import api, auth, catalog, registration, tags, util
from .filters import ActivityFilter
from .models import Activity, Department, Label, Module, TimeInterval
from .recommend import DEFAULT_LIMIT, STRATEGIES, Recommender


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Second-class activity helper")
    parser.add_argument("--dump-json", action="store_true")
    parser.add_argument(
        "--offline", action="store_true", help="Use saved JSON fixtures"
    )
    parser.add_argument("--json", action="store_true", help="Print raw records")
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    find = sub.add_parser("list", help="List activities")
    find.add_argument("--ended", action="store_true", help="Ended applications")
    find.add_argument("--expand", action="store_true", help="Expand series")
    find.add_argument("--max", type=int, default=api.UNLIMITED)
    find.add_argument("--name", default="")
    find.add_argument("--fuzzy", action="store_true")
    find.add_argument("--module")
    find.add_argument("--department")
    find.add_argument("--label", action="append", default=[])
    find.add_argument("--start", help="YYYY-MM-DD HH:MM:SS")
    find.add_argument("--end", help="YYYY-MM-DD HH:MM:SS")
    find.add_argument("--strict-time", action="store_true")

    sub.add_parser("registered", help="Activities registered but not held yet")
    sub.add_parser("participated", help="Finished activities")

    for name in ("detail", "children", "cancel"):
        sub.add_parser(name).add_argument("id")

    apply = sub.add_parser("apply")
    apply.add_argument("id")
    apply.add_argument("--force", action="store_true")
    apply.add_argument(
        "--no-auto-cancel",
        dest="auto_cancel",
        action="store_false",
        help="Do not cancel conflicting registrations",
    )

    rec = sub.add_parser("recommend")
    rec.add_argument("--limit", type=int, default=DEFAULT_LIMIT)
    rec.add_argument("--strategy", choices=sorted(STRATEGIES), default="content")

    tag = sub.add_parser("tags")
    tag.add_argument("kind", choices=["modules", "departments", "labels"])
    tag.add_argument("--search")
    tag.add_argument("--max-depth", type=int, default=-1)

    store = sub.add_parser("token", help="Store the portal access token")
    store.add_argument("token")
    return parser.parse_args(argv)


def build_filter(args: argparse.Namespace) -> ActivityFilter:
    activity_filter = ActivityFilter().with_name(args.name, fuzzy=args.fuzzy)
    if args.module:
        activity_filter = activity_filter.with_module(Module(args.module))
    if args.department:
        activity_filter = activity_filter.with_department(Department(args.department))
    for label_id in args.label:
        activity_filter = activity_filter.add_label(Label(label_id))
    if args.start:
        window = TimeInterval.parse(args.start, args.end)
        activity_filter = activity_filter.with_time_window(window, strict=args.strict_time)
    return activity_filter


def format_activity(activity: Activity) -> str:
    try:
        hold = activity.hold_time()
        when = f"{hold.start:%Y-%m-%d %H:%M} - {hold.end:%Y-%m-%d %H:%M}"
    except ValueError:
        when = "-"
    return f"{activity.id}  {activity.status().text}  {activity.name}  {when}"


def print_activities(activities: Iterable[Activity], as_json: bool) -> None:
    if as_json:
        print(json.dumps([a.to_dict() for a in activities], ensure_ascii=False, indent=2))
        return
    for activity in activities:
        print(format_activity(activity))


def print_departments(departments: Iterable[Department]) -> None:
    for department in departments:
        print(f"{'  ' * max(department.depth, 0)}{department.id}  {department.name}")


def run(args: argparse.Namespace, client: api.APIClient) -> int:
    if args.command == "list":
        activities = catalog.find(
            client,
            build_filter(args),
            include_ended=args.ended,
            expand_series=args.expand,
            max_results=args.max,
        )
        print_activities(activities, args.json)
    elif args.command == "registered":
        print_activities(catalog.registered(client), args.json)
    elif args.command == "participated":
        print_activities(catalog.finished(client), args.json)
    elif args.command == "detail":
        print_activities([catalog.detail(client, args.id)], args.json)
    elif args.command == "children":
        print_activities(catalog.series_children(client, args.id), args.json)
    elif args.command == "apply":
        activity = catalog.detail(client, args.id)
        ok = registration.apply(
            client, activity, force=args.force, auto_resolve_conflicts=args.auto_cancel
        )
        print("applied" if ok else "not applied")
        return 0 if ok else 2
    elif args.command == "cancel":
        ok = registration.cancel(client, catalog.detail(client, args.id))
        print("cancelled" if ok else "not cancelled")
        return 0 if ok else 2
    elif args.command == "recommend":
        recommender = Recommender(args.strategy)
        print_activities(recommender.recommend(client, args.limit), args.json)
    elif args.command == "tags":
        if args.kind == "departments":
            root = tags.root_department(client)
            print_departments(root.search(args.search or "", args.max_depth))
        elif args.kind == "modules":
            for module in tags.fetch_all(client, Module):
                print(f"{module.value}  {module.text}")
        else:
            for label in tags.fetch_all(client, Label):
                print(f"{label.id}  {label.name}")
    return 0


def main(argv: List[str] | None = None) -> int:
    args = parse_args(argv)
    util.configure_logging(args.verbose)

    if args.command == "token":
        auth.save_token(args.token)
        print(f"token saved to {auth.CACHE_PATH}")
        return 0

    token = None if args.offline else auth.acquire_token()
    client = api.APIClient(token, dump_json=args.dump_json, offline=args.offline)
    try:
        return run(args, client)
    except (api.APIError, catalog.NotASeriesError, ValueError) as exc:
        logging.error("%s", exc)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
