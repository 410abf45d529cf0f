# -*- coding: utf-8 -*-
from typing import Any, Optional
from unittest.mock import Mock


CLUSTER_ID = "arn:aws:ecs:us-west-2:123456789012:cluster/migrations"
TASK_FAMILY = "pulumi-migration-task"
TASK_DEFINITION_ARN = (
    "arn:aws:ecs:us-west-2:123456789012:task-definition/pulumi-migration-task:7"
)
TASK_ARN = "arn:aws:ecs:us-west-2:123456789012:task/migrations/0123456789abcdef"
SECURITY_GROUP_ID = "sg-0123456789abcdef0"
SUBNET_ID = "subnet-0123456789abcdef0"


class FakeECS:
    """
    Builds a `Mock` standing in for a boto3 ECS client, with canned responses
    for the calls made by the migration task.
    """

    def __init__(self) -> None:
        self.client = Mock()
        self.waiters: dict[str, Mock] = {
            "tasks_running": Mock(),
            "tasks_stopped": Mock(),
        }
        self.client.get_waiter.side_effect = lambda name: self.waiters[name]
        self.with_running_tasks([])
        self.with_launched_task(TASK_ARN)
        self.with_stopped_task(exit_code=0)

    def with_running_tasks(self, task_arns: list[str]) -> "FakeECS":
        self.client.list_tasks.return_value = {"taskArns": task_arns}
        return self

    def with_launched_task(
        self,
        task_arn: Optional[str],
        failures: Optional[list[dict[str, Any]]] = None,
    ) -> "FakeECS":
        tasks = [{"taskArn": task_arn}] if task_arn else []
        self.client.run_task.return_value = {
            "tasks": tasks,
            "failures": failures or [],
        }
        return self

    def with_stopped_task(
        self,
        exit_code: Optional[int],
        stopped_reason: str = "Essential container in task exited",
        containers: Optional[list[dict[str, Any]]] = None,
    ) -> "FakeECS":
        if containers is None:
            container: dict[str, Any] = {"name": "pulumi-migration"}
            if exit_code is not None:
                container["exitCode"] = exit_code
            containers = [container]

        self.client.describe_tasks.return_value = {
            "tasks": [
                {
                    "taskArn": TASK_ARN,
                    "lastStatus": "STOPPED",
                    "stoppedReason": stopped_reason,
                    "containers": containers,
                }
            ],
            "failures": [],
        }
        return self


