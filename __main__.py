# -*- coding: utf-8 -*-
import pulumi

from infra.config import hydrate_config
from infra.migrations.service import MigrationService, MigrationServiceArgs
from infra.pulumi_log import configure_logging

configure_logging()

# Networking, database and KMS key come from the infrastructure stacks; see
# infra/config.py for the expected keys in Pulumi.<stack>.yaml
config = hydrate_config()

# Database migrations run as a one-off Fargate task on every `pulumi up`, and
# must complete before the API service is allowed to start. The API service
# should be declared with `depends_on=[migrations]`.
migrations = MigrationService(
    "pulumi-service-migrations",
    MigrationServiceArgs(
        region=config.region,
        account_id=config.account_id,
        vpc_id=config.vpc_id,
        private_subnet_ids=config.private_subnet_ids,
        kms_service_key_id=config.kms_service_key_id,
        secrets_prefix=config.secrets_prefix,
        image_tag=config.image_tag,
        database=config.database,
        ecr_repo_account_id=config.ecr_repo_account_id,
        running_policy=config.migration_running_policy,
        stopped_policy=config.migration_stopped_policy,
    ),
)

pulumi.export("migrationsClusterName", migrations.cluster.name)
pulumi.export("migrationsTaskDefinitionArn", migrations.task_definition.arn)
pulumi.export("migrationsSecurityGroupId", migrations.security_group.id)
pulumi.export("migrationsLogGroupName", migrations.log_group.name)
if migrations.migration_task_arn is not None:
    pulumi.export("migrationsLastTaskArn", migrations.migration_task_arn)
