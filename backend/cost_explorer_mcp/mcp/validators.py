import copy

from jsonschema import Draft7Validator, FormatChecker

from cost_explorer_mcp.billing.errors import InvalidArgument, MissingParameter
from .tools import TOOLS_BY_NAME

_FORMAT_CHECKER = FormatChecker()


def _validation_schema(input_schema: dict) -> dict:
    # groupBy entries are filtered by the query parser (blank or malformed ones
    # are dropped), so the schema must not reject them first.
    schema = copy.deepcopy(input_schema)
    group_by = schema.get("properties", {}).get("groupBy")
    if group_by is not None:
        group_by["items"] = {}
    return schema


_VALIDATORS: dict[str, Draft7Validator] = {
    name: Draft7Validator(_validation_schema(tool["inputSchema"]), format_checker=_FORMAT_CHECKER)
    for name, tool in TOOLS_BY_NAME.items()
}


def validate_tool_arguments(tool_name: str, arguments: dict | None) -> None:
    """Validate arguments against the tool's JSON schema. Raises MissingParameter or InvalidArgument."""
    validator = _VALIDATORS[tool_name]

    errors = sorted(validator.iter_errors(arguments or {}), key=lambda e: list(e.path))
    if not errors:
        return

    # A missing required field is reported ahead of any other violation
    for e in errors:
        if e.validator == "required":
            raise MissingParameter(f"Missing required parameter for '{tool_name}': {e.message}")

    e = errors[0]
    location = ".".join(str(p) for p in e.path) or "arguments"
    raise InvalidArgument(f"Invalid arguments for '{tool_name}' at {location}: {e.message}")
