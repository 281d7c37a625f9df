from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Granularity(str, Enum):
    DAILY = "DAILY"
    MONTHLY = "MONTHLY"
    HOURLY = "HOURLY"


class GroupType(str, Enum):
    DIMENSION = "DIMENSION"
    TAG = "TAG"
    COST_CATEGORY = "COST_CATEGORY"


DEFAULT_METRICS: list[str] = ["BlendedCost", "UnblendedCost"]

# Advertised to callers; requested metrics are not checked against this list.
AVAILABLE_METRICS: list[str] = [
    "BlendedCost",
    "UnblendedCost",
    "AmortizedCost",
    "NetAmortizedCost",
    "NetUnblendedCost",
    "UsageQuantity",
    "NormalizedUsageAmount",
]


class GroupDefinition(BaseModel):
    kind: GroupType
    key: str

    def to_request(self) -> dict[str, str]:
        return {"Type": self.kind.value, "Key": self.key}


class CostQuery(BaseModel):
    start_date: str
    end_date: str
    granularity: Granularity = Granularity.DAILY
    metrics: list[str] = Field(default_factory=lambda: list(DEFAULT_METRICS))
    group_by: list[GroupDefinition] | None = None
    filter: dict[str, Any] | None = None
    next_page_token: str | None = None

    def to_request(self) -> dict[str, Any]:
        """Keyword arguments for the boto3 ``ce`` client's get_cost_and_usage."""
        request: dict[str, Any] = {
            "TimePeriod": {"Start": self.start_date, "End": self.end_date},
            "Granularity": self.granularity.value,
            "Metrics": list(self.metrics),
        }
        if self.group_by:
            request["GroupBy"] = [g.to_request() for g in self.group_by]
        if self.filter is not None:
            request["Filter"] = self.filter
        if self.next_page_token:
            request["NextPageToken"] = self.next_page_token
        return request


class CostPeriod(BaseModel):
    start: str | None = None
    end: str | None = None


class CostGroup(BaseModel):
    keys: list[str] = Field(default_factory=list)
    metrics: dict[str, Any] = Field(default_factory=dict)


class CostBucket(BaseModel):
    period: dict[str, Any] | None = None
    total: dict[str, Any] | None = None
    groups: list[CostGroup] | None = None


class CostResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    period: CostPeriod
    results: list[CostBucket]
    next_page_token: str | None = Field(default=None, alias="nextPageToken")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


NO_DATA_MESSAGE = "No cost data found for the specified period"
