import boto3
from botocore.config import Config

from cost_explorer_mcp.config import Settings

USER_AGENT_EXTRA = "aws-cost-explorer-mcp/1.0.0"

# Exactly one attempt per tool invocation; throttling surfaces to the caller.
CLIENT_CONFIG = Config(
    retries={"mode": "standard", "total_max_attempts": 1},
    user_agent_extra=USER_AGENT_EXTRA,
)


def create_cost_explorer_client(settings: Settings):
    """
    Build the boto3 Cost Explorer client.

    Credentials are resolved by boto3's default chain (env vars, shared
    profile, SSO, instance role). AWS_PROFILE selects a named profile.
    """
    session = boto3.Session(
        profile_name=settings.aws_profile or None,
        region_name=settings.aws_region,
    )
    return session.client("ce", config=CLIENT_CONFIG)
