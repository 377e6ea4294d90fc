from __future__ import annotations

from functools import lru_cache

import boto3
from botocore.config import Config

from ...settings import settings


@lru_cache(maxsize=1)
def botocore_config() -> Config:
    # botocore retries stay on; ddb_call adds an app-layer retry for a narrow
    # set of transient failures.
    return Config(
        retries={"max_attempts": 10, "mode": "adaptive"},
        connect_timeout=2,
        read_timeout=10,
    )


@lru_cache(maxsize=1)
def dynamodb_resource():
    kwargs = {
        "region_name": settings.aws_region,
        "config": botocore_config(),
    }
    if settings.ddb_endpoint_url:
        kwargs["endpoint_url"] = settings.ddb_endpoint_url
    return boto3.resource("dynamodb", **kwargs)


def table_resource(table_name: str):
    return dynamodb_resource().Table(table_name)


def dynamodb_client():
    # Shares the resource's credentials and botocore config.
    return dynamodb_resource().meta.client
