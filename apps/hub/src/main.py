"""Run one care pass over a stored user document and print the result as JSON."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, Optional

from config import settings
from services.care_service import care_service, reference_date_for
from services.documents import DocumentError, decode_user, encode_archived_entry, encode_user

logger = logging.getLogger("healthyplant.hub")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=f"{settings.app_name} care pass")
    parser.add_argument("document", type=Path, help="Path to a stored user document (JSON)")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Reference date (YYYY-MM-DD); defaults to today at the given UTC offset",
    )
    parser.add_argument(
        "--utc-offset-minutes",
        type=int,
        default=0,
        help="User clock offset from UTC in minutes",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=settings.periodicity_strict_decoding,
        help="Reject unknown periodicity codes instead of substituting the fallback",
    )
    parser.add_argument("--log-level", default="DEBUG" if settings.debug else settings.log_level)
    return parser


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    reference = args.date or reference_date_for(
        datetime.now(timezone.utc),
        timedelta(minutes=args.utc_offset_minutes),
    )
    try:
        raw = json.loads(args.document.read_text(encoding="utf-8"))
        user = decode_user(raw, reference, strict=args.strict)
    except (OSError, json.JSONDecodeError, DocumentError) as exc:
        logger.error("Unable to load %s: %s", args.document, exc)
        return 1

    result = care_service.run(user)
    extra = {key: value for key, value in raw.items() if key not in ("_id", "plants")}
    output = {
        "changed": result.changed,
        "hasDueToday": result.has_due_today,
        "user": encode_user(result.user, extra),
        "agenda": result.agenda.to_payload(),
        "archived": [encode_archived_entry(entry) for entry in result.archived],
    }
    json.dump(output, sys.stdout, indent=2, ensure_ascii=True)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
