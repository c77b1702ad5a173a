# tracker/cli.py
"""Operator CLI: seed credentials, run searches and applies against the DB.

    job-tracker init-db
    job-tracker set-credentials --user 1 --platform linkedin --file creds.yaml
    job-tracker search --user 1 --platform linkedin --keywords React,TypeScript
    job-tracker apply --user 1 --platform linkedin --job-id 42
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from typing import Any, Sequence

from tracker import config
from tracker.core.query import SearchQuery
from tracker.db import crud
from tracker.db.session import current_engine_url, get_session, init_db
from tracker.errors import TrackerError
from tracker.platforms import REGISTRY, supports_apply
from tracker.services.apply import ApplyRequest, apply_to_listing
from tracker.services.search import (
    fetch_platform_job,
    save_platform_credentials,
    search_platform_jobs,
)

LOGGER = logging.getLogger("tracker.cli")


# --- JSON helpers ---
def _json_default(o):
    if isinstance(o, datetime):
        return o.isoformat()
    return str(o)


def _listing_dict(row) -> dict[str, Any]:
    return {
        "id": row.id,
        "source": row.source,
        "externalId": row.external_id,
        "title": row.title,
        "company": row.company,
        "location": row.location,
        "url": row.url,
        "isRemote": row.is_remote,
        "postedAt": row.posted_at,
        "applied": row.applied,
        "hidden": row.hidden,
    }


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=_json_default))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="job-tracker", description="Multi-platform job search and apply")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="logging level (default from TRACKER_LOG_LEVEL)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="create database tables")
    sub.add_parser("platforms", help="list registered platforms")

    p = sub.add_parser("add-user", help="create a user row")
    p.add_argument("--username", required=True)
    p.add_argument("--name", default="")
    p.add_argument("--email")

    p = sub.add_parser("set-credentials", help="store platform credentials for a user")
    p.add_argument("--user", type=int, required=True)
    p.add_argument("--platform", help="only load this platform from the file")
    p.add_argument("--file", required=True, help="JSON or YAML mapping of platform -> credentials")

    p = sub.add_parser("search", help="search a platform and save new listings")
    p.add_argument("--user", type=int, required=True)
    p.add_argument("--platform", required=True)
    p.add_argument("--keywords", default="")
    p.add_argument("--locations", default="")
    p.add_argument("--exclude", default="", help="comma-separated keywords to drop")
    p.add_argument("--remote", action="store_true")
    p.add_argument("--experience")
    p.add_argument("--page", type=int, default=0)
    p.add_argument("--limit", type=int, default=config.DEFAULT_PAGE_SIZE)

    p = sub.add_parser("details", help="fetch (and save) one job by its platform id")
    p.add_argument("--user", type=int, required=True)
    p.add_argument("--platform", required=True)
    p.add_argument("--external-id", required=True)

    p = sub.add_parser("apply", help="apply to a saved listing through its platform")
    p.add_argument("--user", type=int, required=True)
    p.add_argument("--platform", required=True)
    p.add_argument("--job-id", type=int, required=True)
    p.add_argument("--resume-id", type=int)
    p.add_argument("--cover-id", type=int)
    p.add_argument("--message")

    return parser


def _run(args: argparse.Namespace) -> int:
    if args.command == "init-db":
        init_db()
        LOGGER.info("schema initialized url=%s", current_engine_url())
        return 0

    if args.command == "platforms":
        _emit([
            {"platform": a.name, "name": a.display_name, "supportsApply": supports_apply(a)}
            for a in REGISTRY.all()
        ])
        return 0

    with get_session() as session:
        if args.command == "add-user":
            user = crud.create_user(session, username=args.username, name=args.name, email=args.email)
            _emit({"id": user.id, "username": user.username})
            return 0

        if args.command == "set-credentials":
            entries = config.load_credentials_file(args.file)
            if args.platform:
                entries = {k: v for k, v in entries.items() if k == args.platform.lower()}
            if not entries:
                LOGGER.error("no credentials found in %s", args.file)
                return 2
            messages = [
                save_platform_credentials(session, args.user, platform, payload)
                for platform, payload in entries.items()
            ]
            _emit({"messages": messages})
            return 0

        if args.command == "search":
            query = SearchQuery.from_flat(
                user_id=args.user,
                keywords=args.keywords,
                locations=args.locations,
                remote=args.remote,
                exclude_keywords=args.exclude,
                experience=args.experience,
                page=args.page,
                limit=args.limit,
            )
            result = search_platform_jobs(session, args.platform, query)
            _emit({
                "jobs": [_listing_dict(row) for row in result.jobs],
                "hasMore": result.has_more,
                "total": result.total,
            })
            return 0

        if args.command == "details":
            row = fetch_platform_job(session, args.user, args.platform, args.external_id)
            _emit(_listing_dict(row))
            return 0

        if args.command == "apply":
            outcome = apply_to_listing(
                session,
                ApplyRequest(
                    user_id=args.user,
                    platform=args.platform,
                    job_id=args.job_id,
                    resume_id=args.resume_id,
                    cover_id=args.cover_id,
                    custom_message=args.message,
                ),
            )
            _emit({
                "success": outcome.success,
                "state": outcome.state.value,
                "message": outcome.message,
                "reason": outcome.reason.value if outcome.reason else None,
                "applicationId": outcome.application.id if outcome.application is not None else None,
                "degraded": outcome.recording_errors,
            })
            return 0 if outcome.success else 1

    return 2


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return _run(args)
    except TrackerError as exc:
        LOGGER.error("%s (%s)", exc.message, exc.reason)
        return 1


if __name__ == "__main__":
    # When executed as `python -m tracker.cli ...`
    sys.exit(main())
