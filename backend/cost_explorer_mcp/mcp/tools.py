# MCP tool definitions with complete inputSchema per tool.

from cost_explorer_mcp.models.billing_models import AVAILABLE_METRICS, DEFAULT_METRICS, Granularity, GroupType

COST_EXPLORER_TOOLS: list[dict] = [
    {
        "name": "get_cost_and_usage",
        "description": (
            "Query AWS Cost Explorer to retrieve cost and usage data for a specified time period. "
            "Returns cost metrics (BlendedCost, UnblendedCost) broken down by time period and optionally "
            "grouped by dimensions like SERVICE, USAGE_TYPE, etc. "
            "Date format: YYYY-MM-DD. Respects AWS API rate limits."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "startDate": {
                    "type": "string",
                    "description": "Start date in YYYY-MM-DD format (e.g., 2024-01-01)"
                },
                "endDate": {
                    "type": "string",
                    "description": "End date in YYYY-MM-DD format (e.g., 2024-01-31)"
                },
                "granularity": {
                    "type": "string",
                    "enum": [g.value for g in Granularity],
                    "description": "Time granularity for the data (default: DAILY)"
                },
                "metrics": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": (
                        f"Cost metrics to retrieve (default: {DEFAULT_METRICS}). "
                        f"Available: {', '.join(AVAILABLE_METRICS)}"
                    )
                },
                "groupBy": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "type": {
                                "type": "string",
                                "description": f"Group type ({', '.join(t.value for t in GroupType)})"
                            },
                            "key": {
                                "type": "string",
                                "description": (
                                    "Dimension key (e.g., SERVICE, USAGE_TYPE, REGION, LINKED_ACCOUNT), "
                                    "tag key or cost category name"
                                )
                            }
                        },
                        "required": ["type", "key"]
                    },
                    "description": "Group results by dimensions or tags (e.g., by SERVICE to see per-service costs)"
                },
                "filter": {
                    "type": "object",
                    "description": "Optional Cost Explorer filter expression, passed through as-is"
                },
                "nextPageToken": {
                    "type": "string",
                    "description": "Token from a previous result's nextPageToken to fetch the next page"
                }
            },
            "required": ["startDate", "endDate"]
        }
    },
]

# Quick lookup by name
TOOLS_BY_NAME: dict[str, dict] = {t["name"]: t for t in COST_EXPLORER_TOOLS}
