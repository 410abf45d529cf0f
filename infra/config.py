# -*- coding: utf-8 -*-
from dataclasses import dataclass
from typing import Optional

import pulumi
import pulumi_aws

from .migrations.models import (
    DEFAULT_RUNNING_POLICY,
    DEFAULT_STOPPED_POLICY,
    WaiterPolicy,
)


@dataclass(frozen=True)
class DatabaseConfig:
    cluster_endpoint: str
    port: int
    security_group_id: str
    username: str
    password: pulumi.Output[str]


@dataclass(frozen=True)
class AppConfig:
    region: str
    account_id: str
    vpc_id: str
    private_subnet_ids: list[str]
    kms_service_key_id: str
    ecr_repo_account_id: Optional[str]
    image_tag: str
    secrets_prefix: str
    database: DatabaseConfig
    migration_running_policy: WaiterPolicy
    migration_stopped_policy: WaiterPolicy


def hydrate_config() -> AppConfig:
    """
    Read the application stack configuration.

    Networking and database values are expected to be already provisioned by
    the infrastructure stacks and copied into this stack's configuration.
    Missing required keys fail the deployment.
    """
    aws_config = pulumi.Config("aws")
    config = pulumi.Config()

    database = DatabaseConfig(
        cluster_endpoint=config.require("dbClusterEndpoint"),
        port=config.require_int("dbPort"),
        security_group_id=config.require("dbSecurityGroupId"),
        username=config.require("dbUsername"),
        password=config.require_secret("dbPassword"),
    )

    return AppConfig(
        region=aws_config.require("region"),
        account_id=pulumi_aws.get_caller_identity().account_id,
        vpc_id=config.require("vpcId"),
        private_subnet_ids=config.require_object("privateSubnetIds"),
        kms_service_key_id=config.require("kmsServiceKeyId"),
        ecr_repo_account_id=config.get("ecrRepoAccountId"),
        image_tag=config.require("imageTag"),
        secrets_prefix=f"{pulumi.get_project()}/{pulumi.get_stack()}",
        database=database,
        migration_running_policy=WaiterPolicy(
            delay_secs=config.get_int("migrationRunningPollSecs")
            or DEFAULT_RUNNING_POLICY.delay_secs,
            max_attempts=config.get_int("migrationRunningMaxAttempts")
            or DEFAULT_RUNNING_POLICY.max_attempts,
        ),
        migration_stopped_policy=WaiterPolicy(
            delay_secs=config.get_int("migrationStoppedPollSecs")
            or DEFAULT_STOPPED_POLICY.delay_secs,
            max_attempts=config.get_int("migrationStoppedMaxAttempts")
            or DEFAULT_STOPPED_POLICY.max_attempts,
        ),
    )
