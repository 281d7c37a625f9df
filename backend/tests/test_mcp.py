import json
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from mcp import types
from structlog.testing import capture_logs

from cost_explorer_mcp.billing.query_engine import CostQueryEngine
from cost_explorer_mcp.mcp.server import MCPProtocolHandler, build_server
from cost_explorer_mcp.models.billing_models import NO_DATA_MESSAGE

TWO_BUCKETS = {
    "ResultsByTime": [
        {
            "TimePeriod": {"Start": "2024-01-01", "End": "2024-01-16"},
            "Total": {},
            "Groups": [
                {"Keys": ["Amazon EC2"], "Metrics": {"UnblendedCost": {"Amount": "10", "Unit": "USD"}}},
            ],
        },
        {
            "TimePeriod": {"Start": "2024-01-16", "End": "2024-01-31"},
            "Total": {},
            "Groups": [
                {"Keys": ["Amazon EC2"], "Metrics": {"UnblendedCost": {"Amount": "12", "Unit": "USD"}}},
            ],
        },
    ]
}


def _handler(response=None, side_effect=None):
    ce_client = MagicMock()
    ce_client.get_cost_and_usage.return_value = response
    ce_client.get_cost_and_usage.side_effect = side_effect
    return MCPProtocolHandler(CostQueryEngine(ce_client)), ce_client


def _text(result):
    assert len(result.content) == 1
    return result.content[0].text


def test_tools_list_returns_get_cost_and_usage():
    handler, _ = _handler()
    tools = handler.get_tools_list()
    assert [t.name for t in tools] == ["get_cost_and_usage"]
    assert tools[0].inputSchema["required"] == ["startDate", "endDate"]


def test_build_server_uses_configured_identity():
    handler, _ = _handler()
    server = build_server(handler, "aws-cost-explorer", "1.0.0")
    assert server.name == "aws-cost-explorer"
    assert server.version == "1.0.0"


@pytest.mark.asyncio
async def test_call_success_returns_json_payload():
    handler, ce_client = _handler(response=TWO_BUCKETS)

    result = await handler.call_tool(
        "get_cost_and_usage",
        {
            "startDate": "2024-01-01",
            "endDate": "2024-01-31",
            "groupBy": [{"type": "DIMENSION", "key": "SERVICE"}],
        },
    )

    assert result.isError is False
    data = json.loads(_text(result))
    assert data["period"] == {"start": "2024-01-01", "end": "2024-01-31"}
    assert data["results"][1]["groups"] == [
        {"keys": ["Amazon EC2"], "metrics": {"UnblendedCost": {"Amount": "12", "Unit": "USD"}}}
    ]
    ce_client.get_cost_and_usage.assert_called_once()


@pytest.mark.asyncio
async def test_call_no_data_returns_message():
    handler, _ = _handler(response={"ResultsByTime": []})
    result = await handler.call_tool("get_cost_and_usage", {"startDate": "2024-01-01", "endDate": "2024-01-31"})
    assert result.isError is False
    assert json.loads(_text(result)) == {"message": NO_DATA_MESSAGE}


@pytest.mark.asyncio
async def test_call_unknown_tool_returns_error_envelope():
    handler, ce_client = _handler()
    result = await handler.call_tool("nonexistent_tool", {})
    assert result.isError is True
    assert _text(result) == "Error: Unknown tool: nonexistent_tool"
    ce_client.get_cost_and_usage.assert_not_called()


@pytest.mark.asyncio
async def test_call_missing_dates_returns_error_envelope():
    handler, ce_client = _handler()
    result = await handler.call_tool("get_cost_and_usage", {"startDate": "2024-01-01"})
    assert result.isError is True
    assert "endDate" in _text(result)
    ce_client.get_cost_and_usage.assert_not_called()


@pytest.mark.asyncio
async def test_call_wrong_argument_type_returns_error_envelope():
    handler, _ = _handler()
    result = await handler.call_tool(
        "get_cost_and_usage",
        {"startDate": "2024-01-01", "endDate": "2024-01-31", "metrics": "BlendedCost"},
    )
    assert result.isError is True
    assert "metrics" in _text(result)


@pytest.mark.asyncio
async def test_call_invalid_date_returns_error_envelope():
    handler, _ = _handler()
    result = await handler.call_tool("get_cost_and_usage", {"startDate": "2024-13-01", "endDate": "2024-12-31"})
    assert result.isError is True
    assert "2024-13-01" in _text(result)


@pytest.mark.asyncio
async def test_call_bogus_group_type_returns_error_envelope():
    handler, ce_client = _handler()
    result = await handler.call_tool(
        "get_cost_and_usage",
        {"startDate": "2024-01-01", "endDate": "2024-01-31", "groupBy": [{"type": "BOGUS", "key": "SERVICE"}]},
    )
    assert result.isError is True
    assert "BOGUS" in _text(result)
    ce_client.get_cost_and_usage.assert_not_called()


@pytest.mark.asyncio
async def test_call_blank_group_entry_is_not_rejected_by_schema():
    handler, ce_client = _handler(response=TWO_BUCKETS)
    result = await handler.call_tool(
        "get_cost_and_usage",
        {"startDate": "2024-01-01", "endDate": "2024-01-31", "groupBy": [{"type": "", "key": "SERVICE"}]},
    )
    assert result.isError is False
    assert "GroupBy" not in ce_client.get_cost_and_usage.call_args.kwargs


@pytest.mark.asyncio
async def test_call_throttled_returns_retry_message_once():
    throttled = ClientError(
        {"Error": {"Code": "ThrottlingException", "Message": "Rate exceeded"}, "ResponseMetadata": {}},
        "GetCostAndUsage",
    )
    handler, ce_client = _handler(side_effect=throttled)

    result = await handler.call_tool("get_cost_and_usage", {"startDate": "2024-01-01", "endDate": "2024-01-31"})

    assert result.isError is True
    assert _text(result) == (
        "Error: AWS Cost Explorer API rate limit exceeded. Please wait a moment and try again."
    )
    assert ce_client.get_cost_and_usage.call_count == 1


@pytest.mark.asyncio
async def test_call_unexpected_error_keeps_original_message():
    handler, _ = _handler(side_effect=EndpointConnectionError(endpoint_url="https://ce.us-east-1.amazonaws.com"))
    result = await handler.call_tool("get_cost_and_usage", {"startDate": "2024-01-01", "endDate": "2024-01-31"})
    assert result.isError is True
    assert "ce.us-east-1.amazonaws.com" in _text(result)


@pytest.mark.asyncio
async def test_failure_log_omits_upstream_message():
    denied = ClientError(
        {
            "Error": {
                "Code": "AccessDeniedException",
                "Message": "User arn:aws:iam::123456789012:user/bob not authorized",
            },
            "ResponseMetadata": {"RequestId": "req-1", "HTTPStatusCode": 400},
        },
        "GetCostAndUsage",
    )
    handler, _ = _handler(side_effect=denied)

    with capture_logs() as logs:
        result = await handler.call_tool(
            "get_cost_and_usage", {"startDate": "2024-01-01", "endDate": "2024-01-31"}
        )

    assert result.isError is True
    failed = [entry for entry in logs if entry["event"] == "mcp_tool_call_failed"]
    assert failed == [
        {
            "event": "mcp_tool_call_failed",
            "log_level": "error",
            "tool": "get_cost_and_usage",
            "kind": "UpstreamError",
            "error_code": "AccessDeniedException",
        }
    ]
    assert all("123456789012" not in str(entry) for entry in logs)


async def _dispatch(server, arguments):
    request = types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name="get_cost_and_usage", arguments=arguments),
    )
    response = await server.request_handlers[types.CallToolRequest](request)
    return response.root


@pytest.mark.asyncio
async def test_server_dispatch_success_without_blank_groups():
    handler, ce_client = _handler(response=TWO_BUCKETS)
    server = build_server(handler, "aws-cost-explorer", "1.0.0")

    result = await _dispatch(
        server,
        {"startDate": "2024-01-01", "endDate": "2024-01-31", "groupBy": [{"type": "", "key": "SERVICE"}]},
    )

    assert result.isError is False
    assert json.loads(_text(result))["period"] == {"start": "2024-01-01", "end": "2024-01-31"}
    assert "GroupBy" not in ce_client.get_cost_and_usage.call_args.kwargs


@pytest.mark.asyncio
async def test_server_dispatch_invalid_date_is_error_envelope():
    handler, ce_client = _handler()
    server = build_server(handler, "aws-cost-explorer", "1.0.0")

    result = await _dispatch(server, {"startDate": "2024-13-01", "endDate": "2024-12-31"})

    assert result.isError is True
    assert _text(result).startswith("Error: Invalid date: 2024-13-01")
    ce_client.get_cost_and_usage.assert_not_called()


@pytest.mark.asyncio
async def test_server_dispatch_throttle_is_error_envelope():
    throttled = ClientError(
        {"Error": {"Code": "ThrottlingException", "Message": "Rate exceeded"}, "ResponseMetadata": {}},
        "GetCostAndUsage",
    )
    handler, ce_client = _handler(side_effect=throttled)
    server = build_server(handler, "aws-cost-explorer", "1.0.0")

    result = await _dispatch(server, {"startDate": "2024-01-01", "endDate": "2024-01-31"})

    assert result.isError is True
    assert "Please wait a moment and try again" in _text(result)
    assert ce_client.get_cost_and_usage.call_count == 1
