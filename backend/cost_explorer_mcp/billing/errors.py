class CostQueryError(Exception):
    """Base for every error the get_cost_and_usage tool reports to its caller."""

    kind = "CostQueryError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingParameter(CostQueryError):
    kind = "MissingParameter"


class InvalidArgument(CostQueryError):
    kind = "InvalidArgument"


class InvalidDateFormat(CostQueryError):
    kind = "InvalidDateFormat"


class InvalidGroupType(CostQueryError):
    kind = "InvalidGroupType"


class RateLimited(CostQueryError):
    kind = "RateLimited"


class UpstreamError(CostQueryError):
    kind = "UpstreamError"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.code = code


UNKNOWN_ERROR_KIND = "UnknownError"


def error_kind(exc: Exception) -> str:
    return exc.kind if isinstance(exc, CostQueryError) else UNKNOWN_ERROR_KIND
