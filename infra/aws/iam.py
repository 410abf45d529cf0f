# -*- coding: utf-8 -*-
from typing import Any

PolicyStatement = dict[str, Any]

GOVCLOUD_REGIONS = ("us-gov-west-1", "us-gov-east-1")

ECS_TASK_EXECUTION_ROLE_POLICY_ARN = (
    "arn:aws:iam::aws:policy/service-role/AmazonECSTaskExecutionRolePolicy"
)


def get_iam_policy_arn(region: str, policy_arn: str) -> str:
    """
    Rewrite the partition of an ARN for GovCloud regions.

    ARNs are written against the `aws` partition throughout; in GovCloud the
    same resources live in the `aws-us-gov` partition.
    """
    if region.lower() not in GOVCLOUD_REGIONS:
        return policy_arn

    parts = policy_arn.split(":")
    parts[1] = "aws-us-gov"
    return ":".join(parts)


def ecs_tasks_assume_role_policy() -> dict[str, Any]:
    """
    Returns a dictionary representing an AWS IAM policy that allows ECS tasks
    to assume an AWS IAM role.
    """
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {
                    "Service": "ecs-tasks.amazonaws.com",
                },
                "Action": "sts:AssumeRole",
            },
        ],
    }


def read_secrets_statement(
    region: str,
    account_id: str,
    secrets_prefix: str,
    kms_key_arn: str,
) -> PolicyStatement:
    """
    Statement allowing a task to read the secrets under `secrets_prefix` and
    decrypt them with the given KMS key.
    """
    secrets_arn = get_iam_policy_arn(
        region,
        f"arn:aws:secretsmanager:{region}:{account_id}:secret:{secrets_prefix}/*",
    )
    return {
        "Effect": "Allow",
        "Action": [
            "secretsmanager:GetSecretValue",
            "kms:Decrypt",
        ],
        "Resource": [
            secrets_arn,
            kms_key_arn,
        ],
    }

