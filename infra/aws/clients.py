# -*- coding: utf-8 -*-
import os

import boto3
from mypy_boto3_ecs import ECSClient


def ecs_client_from_env(region: str) -> ECSClient:
    return boto3.client(
        "ecs",
        region_name=region,
        endpoint_url=os.getenv("ECS_ENDPOINT_URL"),
    )
