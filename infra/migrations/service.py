# -*- coding: utf-8 -*-
import json
from dataclasses import dataclass
from typing import Any, Callable, Optional

import pulumi
import pulumi_aws
from loguru import logger
from mypy_boto3_ecs import ECSClient

from ..aws import iam
from ..aws.clients import ecs_client_from_env
from ..aws.secrets import Secret, Secrets
from ..common import build_ecr_image_tag, resolve_ecr_account_id
from ..config import DatabaseConfig
from .models import DEFAULT_RUNNING_POLICY, DEFAULT_STOPPED_POLICY, WaiterPolicy
from .task import LAUNCH_TYPE, DatabaseMigrationTask

TASK_FAMILY = "pulumi-migration-task"
CONTAINER_NAME = "pulumi-migration"
LOG_GROUP_NAME = "pulumi-migration-logs"
NETWORK_MODE = "awsvpc"
CPU = 256
MEMORY_RESERVATION = 512
MYSQL_PORT = 3306


@dataclass
class MigrationServiceArgs:
    region: str
    account_id: str
    vpc_id: str
    private_subnet_ids: list[str]
    kms_service_key_id: str
    secrets_prefix: str
    image_tag: str
    database: DatabaseConfig
    ecr_repo_account_id: Optional[str] = None
    running_policy: WaiterPolicy = DEFAULT_RUNNING_POLICY
    stopped_policy: WaiterPolicy = DEFAULT_STOPPED_POLICY


def migration_container_definitions(
    image: str,
    region: str,
    log_group: str,
    db_endpoint: str,
    db_port: int,
    secrets: list[dict[str, str]],
) -> list[dict[str, Any]]:
    return [
        {
            "name": CONTAINER_NAME,
            "image": image,
            "cpu": CPU,
            "memoryReservation": MEMORY_RESERVATION,
            "logConfiguration": {
                "logDriver": "awslogs",
                # http://docs.aws.amazon.com/AmazonECS/latest/developerguide/using_awslogs.html
                "options": {
                    "awslogs-region": region,
                    "awslogs-group": log_group,
                    "awslogs-stream-prefix": "awslogs-pulumi-migration",
                },
            },
            "environment": [
                {"name": "SKIP_CREATE_DB_USER", "value": "true"},
                {
                    "name": "PULUMI_DATABASE_ENDPOINT",
                    "value": f"{db_endpoint}:{db_port}",
                },
                {"name": "PULUMI_DATABASE_PING_ENDPOINT", "value": db_endpoint},
            ],
            "secrets": secrets,
        }
    ]


class MigrationService(pulumi.ComponentResource):
    """
    Everything needed to run the database migrations as a one-off ECS Fargate
    task, and the trigger that runs them on every `pulumi up`.

    The API service must depend on this component so it only starts once the
    migrations have completed successfully.
    """

    role: pulumi_aws.iam.Role
    secrets_policy: pulumi_aws.iam.RolePolicy
    security_group: pulumi_aws.ec2.SecurityGroup
    cluster: pulumi_aws.ecs.Cluster
    log_group: pulumi_aws.cloudwatch.LogGroup
    secrets: Secrets
    task_definition: pulumi_aws.ecs.TaskDefinition
    migration_task_arn: Optional[pulumi.Output[str]]

    def __init__(
        self,
        name: str,
        args: MigrationServiceArgs,
        opts: Optional[pulumi.ResourceOptions] = None,
        ecs_client_factory: Callable[[str], ECSClient] = ecs_client_from_env,
    ):
        super().__init__("selfhosted:dbMigrations", name, None, opts)

        self._name = name
        self._args = args
        self._opts = pulumi.ResourceOptions.merge(
            opts,
            pulumi.ResourceOptions(parent=self),
        )

        image = f"pulumi/migrations:{args.image_tag}"

        self.role = pulumi_aws.iam.Role(
            f"{name}-role",
            assume_role_policy=json.dumps(iam.ecs_tasks_assume_role_policy()),
            opts=self._opts,
        )

        ecs_policy_arn = iam.get_iam_policy_arn(
            args.region,
            iam.ECS_TASK_EXECUTION_ROLE_POLICY_ARN,
        )
        logger.debug(f"ECS task execution role policy arn: {ecs_policy_arn}")

        pulumi_aws.iam.RolePolicyAttachment(
            f"{name}-task-role-attachment",
            role=self.role.name,
            policy_arn=ecs_policy_arn,
            opts=pulumi.ResourceOptions(parent=self.role),
        )

        kms_key = pulumi_aws.kms.get_key_output(key_id=args.kms_service_key_id)
        secrets_policy: pulumi.Output[str] = kms_key.arn.apply(
            lambda key_arn: json.dumps(
                {
                    "Version": "2012-10-17",
                    "Statement": [
                        iam.read_secrets_statement(
                            region=args.region,
                            account_id=args.account_id,
                            secrets_prefix=args.secrets_prefix,
                            kms_key_arn=key_arn,
                        )
                    ],
                }
            )
        )
        self.secrets_policy = pulumi_aws.iam.RolePolicy(
            f"{name}-migration-secrets-pol",
            role=self.role.name,
            policy=secrets_policy,
            opts=pulumi.ResourceOptions(parent=self.role),
        )

        self.security_group = pulumi_aws.ec2.SecurityGroup(
            f"{name}-sg",
            vpc_id=args.vpc_id,
            egress=[
                pulumi_aws.ec2.SecurityGroupEgressArgs(
                    from_port=0,
                    to_port=0,
                    protocol="-1",
                    cidr_blocks=["0.0.0.0/0"],
                )
            ],
            opts=self._opts,
        )

        # migrations need to reach the database cluster
        db_ingress = pulumi_aws.ec2.SecurityGroupRule(
            f"{name}-migrations-to-db-rule",
            type="ingress",
            security_group_id=args.database.security_group_id,
            source_security_group_id=self.security_group.id,
            from_port=MYSQL_PORT,
            to_port=MYSQL_PORT,
            protocol="tcp",
            opts=self._opts,
        )

        self.cluster = pulumi_aws.ecs.Cluster(f"{name}-cluster", opts=self._opts)

        self.log_group = pulumi_aws.cloudwatch.LogGroup(
            f"{name}-log-group",
            name=LOG_GROUP_NAME,
            retention_in_days=1,
            opts=self._opts,
        )

        self.secrets = Secrets(
            "migration-secrets",
            secrets=[
                Secret("MYSQL_ROOT_USERNAME", pulumi.Output.secret(args.database.username)),
                Secret("MYSQL_ROOT_PASSWORD", args.database.password),
            ],
            prefix=args.secrets_prefix,
            kms_key_id=args.kms_service_key_id,
            opts=self._opts,
        )

        self.task_definition = pulumi_aws.ecs.TaskDefinition(
            f"{name}-task-def",
            family=TASK_FAMILY,
            network_mode=NETWORK_MODE,
            cpu=str(CPU),
            memory=str(MEMORY_RESERVATION),
            requires_compatibilities=[LAUNCH_TYPE],
            execution_role_arn=self.role.arn,
            container_definitions=self._container_definitions_json(image),
            opts=self._opts,
        )

        self.migration_task_arn = None
        if pulumi.runtime.is_dry_run():
            logger.info("Skipping database migration task on Pulumi Preview")
        else:
            self.migration_task_arn = self._trigger_migration(
                DatabaseMigrationTask(
                    ecs_client_factory(args.region),
                    running_policy=args.running_policy,
                    stopped_policy=args.stopped_policy,
                ),
                db_ingress,
            )

        self.register_outputs(
            {
                "cluster_name": self.cluster.name,
                "security_group_id": self.security_group.id,
                "task_definition_arn": self.task_definition.arn,
                "migration_task_arn": self.migration_task_arn,
            }
        )

    def _container_definitions_json(self, image: str) -> pulumi.Output[str]:
        args = self._args
        ecr_account_id = resolve_ecr_account_id(
            args.account_id,
            args.ecr_repo_account_id,
        )

        return pulumi.Output.all(
            log_group=self.log_group.name,
            secrets=pulumi.Output.from_input(self.secrets.outputs),
        ).apply(
            lambda resolved: json.dumps(
                migration_container_definitions(
                    image=build_ecr_image_tag(ecr_account_id, args.region, image),
                    region=args.region,
                    log_group=resolved["log_group"],
                    db_endpoint=args.database.cluster_endpoint,
                    db_port=args.database.port,
                    secrets=resolved["secrets"],
                )
            )
        )

    def _trigger_migration(
        self,
        migration: DatabaseMigrationTask,
        db_ingress: pulumi_aws.ec2.SecurityGroupRule,
    ) -> pulumi.Output[str]:
        # A failed migration raises inside the apply, which fails the
        # deployment before anything depending on this component is created.
        return pulumi.Output.all(
            self.cluster.id,
            self.security_group.id,
            self._args.private_subnet_ids[0],
            self.task_definition.arn,
            self.task_definition.family,
            db_ingress.id,
        ).apply(
            lambda resolved: migration.run_migration_task(
                cluster_id=resolved[0],
                security_group_id=resolved[1],
                subnet_id=resolved[2],
                task_definition_arn=resolved[3],
                task_family=resolved[4],
            ).task_arn
        )
