"""Turns raw get_cost_and_usage tool arguments into a CostQuery.

Every check here runs before any network call is made.
"""

import re
from datetime import datetime
from typing import Any

import structlog

from cost_explorer_mcp.billing.errors import (
    InvalidArgument,
    InvalidDateFormat,
    InvalidGroupType,
    MissingParameter,
)
from cost_explorer_mcp.models.billing_models import (
    DEFAULT_METRICS,
    CostQuery,
    Granularity,
    GroupDefinition,
    GroupType,
)

log = structlog.get_logger()

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

ALLOWED_GROUP_TYPES = [t.value for t in GroupType]


def validate_date(value: str) -> str:
    """Require YYYY-MM-DD and a real calendar date ("2024-13-01" and "2024-02-30" both fail)."""
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise InvalidDateFormat(f"Invalid date format: {value}. Expected YYYY-MM-DD format.")
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise InvalidDateFormat(f"Invalid date: {value}. Expected a real calendar date in YYYY-MM-DD format.")
    return value


def normalize_group_by(group_by: Any) -> list[GroupDefinition] | None:
    """
    Keep entries whose type and key are non-empty strings after trimming, drop
    the rest silently. A non-empty type outside DIMENSION / TAG / COST_CATEGORY
    fails the whole call. Returns None when nothing survives, so the request
    carries no GroupBy at all.
    """
    if not isinstance(group_by, list):
        return None

    groups: list[GroupDefinition] = []
    for entry in group_by:
        log.debug("group_by_entry", entry=entry)
        if not isinstance(entry, dict):
            continue

        raw_type = entry.get("type")
        raw_key = entry.get("key")
        if not isinstance(raw_type, str) or not isinstance(raw_key, str):
            continue

        group_type = raw_type.strip()
        key = raw_key.strip()
        if not group_type or not key:
            continue

        normalized_type = group_type.upper()
        if normalized_type not in ALLOWED_GROUP_TYPES:
            raise InvalidGroupType(
                f"Invalid groupBy type: {raw_type}. Expected one of {', '.join(ALLOWED_GROUP_TYPES)}"
            )

        groups.append(GroupDefinition(kind=GroupType(normalized_type), key=key))

    log.debug("group_by_normalized", groups=[g.to_request() for g in groups])
    return groups or None


def parse_granularity(value: Any) -> Granularity:
    if not value:
        return Granularity.DAILY
    try:
        return Granularity(value)
    except ValueError:
        raise InvalidArgument(
            f"Invalid granularity: {value}. Expected one of {', '.join(g.value for g in Granularity)}"
        )


def parse_cost_query(arguments: dict[str, Any] | None) -> CostQuery:
    arguments = arguments or {}

    for name in ("startDate", "endDate"):
        if not arguments.get(name):
            raise MissingParameter(f"Missing required parameter: {name}. startDate and endDate are required")

    start_date = validate_date(arguments["startDate"])
    end_date = validate_date(arguments["endDate"])

    return CostQuery(
        start_date=start_date,
        end_date=end_date,
        granularity=parse_granularity(arguments.get("granularity")),
        metrics=arguments.get("metrics") or list(DEFAULT_METRICS),
        group_by=normalize_group_by(arguments.get("groupBy")),
        filter=arguments.get("filter"),
        next_page_token=arguments.get("nextPageToken") or None,
    )
