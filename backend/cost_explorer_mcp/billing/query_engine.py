from typing import Any

import structlog
from botocore.exceptions import ClientError

from .errors import RateLimited, UpstreamError
from .query_parser import parse_cost_query
from cost_explorer_mcp.models.billing_models import (
    NO_DATA_MESSAGE,
    CostBucket,
    CostGroup,
    CostPeriod,
    CostResult,
)

log = structlog.get_logger()

THROTTLING_ERRORS = [
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
    "LimitExceededException",
]

RATE_LIMIT_MESSAGE = "AWS Cost Explorer API rate limit exceeded. Please wait a moment and try again."


def _error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", type(e).__name__)


def classify_client_error(e: ClientError) -> RateLimited | UpstreamError:
    """Map a botocore ClientError onto RateLimited or UpstreamError. Never retries."""
    code = _error_code(e)
    if code in THROTTLING_ERRORS:
        return RateLimited(RATE_LIMIT_MESSAGE)

    message = e.response.get("Error", {}).get("Message") or str(e)
    return UpstreamError(f"AWS Cost Explorer error: {message}", code=code)


def format_cost_data(response: dict[str, Any]) -> dict[str, Any]:
    """
    Reshape a GetCostAndUsage response for display.

    period.start comes from the first time bucket and period.end from the last;
    each bucket's Total and Groups are carried through unchanged. A response
    with no time buckets yields the no-data message instead of an empty result.
    """
    buckets = response.get("ResultsByTime") or []
    if not buckets:
        return {"message": NO_DATA_MESSAGE}

    results = []
    for bucket in buckets:
        groups = bucket.get("Groups")
        results.append(
            CostBucket(
                period=bucket.get("TimePeriod"),
                total=bucket.get("Total"),
                groups=[
                    CostGroup(keys=g.get("Keys", []), metrics=g.get("Metrics", {}))
                    for g in groups
                ] if groups is not None else None,
            )
        )

    result = CostResult(
        period=CostPeriod(
            start=(buckets[0].get("TimePeriod") or {}).get("Start"),
            end=(buckets[-1].get("TimePeriod") or {}).get("End"),
        ),
        results=results,
        next_page_token=response.get("NextPageToken") or None,
    )
    return result.to_payload()


class CostQueryEngine:
    """Runs one get_cost_and_usage tool call against an injected boto3 ``ce`` client."""

    def __init__(self, ce_client):
        self.ce_client = ce_client

    def execute(self, arguments: dict[str, Any]) -> dict[str, Any]:
        query = parse_cost_query(arguments)
        request = query.to_request()

        log.info(
            "cost_query_started",
            start=query.start_date,
            end=query.end_date,
            granularity=query.granularity.value,
            metrics=query.metrics,
            group_by_present=query.group_by is not None,
            filter_present=query.filter is not None,
        )

        try:
            response = self.ce_client.get_cost_and_usage(**request)
        except ClientError as e:
            # Log only the error code; CE error strings can carry account IDs
            log.warning("cost_query_failed", error_code=_error_code(e))
            raise classify_client_error(e) from e

        log.info(
            "cost_query_completed",
            result_count=len(response.get("ResultsByTime") or []),
            has_next_page=bool(response.get("NextPageToken")),
        )
        return format_cost_data(response)
