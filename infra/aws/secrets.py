# -*- coding: utf-8 -*-
from dataclasses import dataclass
from typing import Optional

import pulumi
import pulumi_aws

from ..common import to_resource_name


@dataclass
class Secret:
    name: str
    value: Optional[pulumi.Input[str]]


def to_secret_name(name: str) -> str:
    """`MYSQL_ROOT_PASSWORD` -> `mysql-root-password`"""
    return to_resource_name(name)


class Secrets(pulumi.ComponentResource):
    """
    A group of Secrets Manager secrets to be injected into ECS containers.

    One secret (and its version) is created per entry with a value; entries
    without a value are skipped. `outputs` holds the `{name, valueFrom}` pairs
    expected by the `secrets` field of an ECS container definition.
    """

    outputs: list[dict[str, pulumi.Output[str] | str]]

    def __init__(
        self,
        name: str,
        secrets: list[Secret],
        prefix: str,
        kms_key_id: Optional[pulumi.Input[str]] = None,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__("selfhosted:SecretsManager", name, None, opts)

        child_opts = pulumi.ResourceOptions.merge(
            opts,
            pulumi.ResourceOptions(parent=self),
        )

        self.outputs = []
        for secret in secrets:
            if secret.value is None:
                continue

            secret_name = to_secret_name(secret.name)
            aws_secret = pulumi_aws.secretsmanager.Secret(
                f"{name}-{secret_name}",
                name_prefix=f"{prefix}/{secret_name}",
                kms_key_id=kms_key_id,
                opts=child_opts,
            )

            pulumi_aws.secretsmanager.SecretVersion(
                f"{name}-{secret_name}-version",
                secret_id=aws_secret.id,
                secret_string=secret.value,
                opts=pulumi.ResourceOptions(
                    parent=aws_secret,  # version makes no sense without secret
                ),
            )

            self.outputs.append(
                {
                    "name": secret.name,
                    "valueFrom": aws_secret.arn,
                }
            )

        self.register_outputs({"secrets": self.outputs})
