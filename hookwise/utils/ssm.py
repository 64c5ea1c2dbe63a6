# hookwise/utils/ssm.py
import boto3
import os

# Default region fallback (so code doesn't raise NoRegionError)
_REGION = os.getenv("AWS_DEFAULT_REGION", os.getenv("AWS_REGION", "us-east-1"))


def _ssm_client():
    return boto3.client("ssm", region_name=_REGION)


def parameter_name(name: str) -> str:
    """Prefix a setting name with SSM_PARAMETER_PREFIX, e.g. /hookwise/prod/DATABASE_URL."""
    prefix = os.getenv("SSM_PARAMETER_PREFIX", "").rstrip("/")
    return f"{prefix}/{name}" if prefix else name


def get_param(name: str, decrypt: bool = True) -> str:
    """Fetch a parameter from AWS SSM Parameter Store (raises on AWS errors)."""
    client = _ssm_client()
    resp = client.get_parameter(Name=parameter_name(name), WithDecryption=decrypt)
    return resp["Parameter"]["Value"]
