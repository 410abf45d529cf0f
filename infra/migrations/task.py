# -*- coding: utf-8 -*-
import time
from typing import Any, Optional

from botocore.exceptions import WaiterError
from loguru import logger
from mypy_boto3_ecs import ECSClient

from .errors import (
    ConcurrentMigrationError,
    LaunchFailedError,
    MigrationError,
    MigrationFailedError,
    MigrationTimeoutError,
    TaskNotFoundError,
)
from .models import (
    DEFAULT_RUNNING_POLICY,
    DEFAULT_STOPPED_POLICY,
    MigrationRun,
    MigrationStage,
    TaskStatus,
    WaiterPolicy,
)

LAUNCH_TYPE = "FARGATE"


class DatabaseMigrationTask:
    """
    Runs the database migrations container as a one-off ECS Fargate task.

    The migrations must run as a singleton: one and only one task of the
    family may be running at a time. This is checked right before launching,
    which leaves a window for a race between two concurrent deployments; the
    deployment pipeline is expected to not run those.

    An ECS service is not used on purpose, since it would restart exited
    containers. We want exactly one execution per deployment.

    Args:
        ecs_client (ECSClient): boto3 ECS client for the target region.
        running_policy (WaiterPolicy): Polling used while waiting for the task
            to start running.
        stopped_policy (WaiterPolicy): Polling used while waiting for the task
            to stop.
    """

    def __init__(
        self,
        ecs_client: ECSClient,
        running_policy: WaiterPolicy = DEFAULT_RUNNING_POLICY,
        stopped_policy: WaiterPolicy = DEFAULT_STOPPED_POLICY,
    ):
        self._ecs = ecs_client
        self._running_policy = running_policy
        self._stopped_policy = stopped_policy

    def run_migration_task(
        self,
        cluster_id: str,
        security_group_id: str,
        subnet_id: str,
        task_definition_arn: str,
        task_family: str,
    ) -> MigrationRun:
        """
        Check, launch, wait for, and verify a migration task.

        Returns the finished `MigrationRun` on success. Raises a
        `MigrationError` subclass on any failure, with the failed run attached
        as `run`; the stopped task is left in place for inspection and nothing
        is retried.
        """
        run = MigrationRun(
            cluster_id=cluster_id,
            task_family=task_family,
            task_definition_arn=task_definition_arn,
            security_group_id=security_group_id,
            subnet_id=subnet_id,
        )

        try:
            self.assert_no_tasks_running(cluster_id, task_family)
            run.advance(MigrationStage.GUARD_CHECKED)

            run.task_arn = self.start_migration_task(
                cluster_id,
                task_definition_arn,
                security_group_id,
                subnet_id,
            )
            run.advance(MigrationStage.LAUNCHED)

            self.wait_for_task_completion(cluster_id, run.task_arn, run=run)

            # if needed, check the migrations log group for details
            self.assert_migration_successful(cluster_id, run.task_arn)
            run.advance(MigrationStage.SUCCEEDED)
        except MigrationError as e:
            run.advance(MigrationStage.FAILED)
            e.run = run
            raise
        except Exception:
            run.advance(MigrationStage.FAILED)
            raise

        logger.info(f"DB migration task {run.task_arn} succeeded")
        return run

    def assert_no_tasks_running(self, cluster_id: str, task_family: str) -> None:
        logger.info(f"Checking for executing ECS tasks for family {task_family}")

        response = self._ecs.list_tasks(
            cluster=cluster_id,
            family=task_family,
            desiredStatus="RUNNING",
        )
        task_arns = response.get("taskArns", [])
        if len(task_arns) == 0:
            logger.info("No executing tasks found in the running state")
            return

        error = ConcurrentMigrationError(task_arns)
        logger.error(error.message)
        raise error

    def start_migration_task(
        self,
        cluster_id: str,
        task_definition_arn: str,
        security_group_id: str,
        subnet_id: str,
    ) -> str:
        task_name = f"DbMigration-{int(time.time() * 1000)}"
        logger.info(f"Attempting to start {task_name} for DB migration")

        response = self._ecs.run_task(
            cluster=cluster_id,
            count=1,
            group=task_name,
            taskDefinition=task_definition_arn,
            launchType=LAUNCH_TYPE,
            networkConfiguration={
                "awsvpcConfiguration": {
                    "assignPublicIp": "DISABLED",
                    "securityGroups": [security_group_id],
                    "subnets": [subnet_id],
                },
            },
        )

        tasks = response.get("tasks", [])
        task_arn = tasks[0].get("taskArn") if tasks else None
        if not task_arn:
            error = LaunchFailedError(failures=list(response.get("failures", [])))
            logger.error(f"{error.message}: {error.failures}")
            raise error

        logger.info(f"Started {task_name} as task {task_arn}")
        return task_arn

    def wait_for_task_completion(
        self,
        cluster_id: str,
        task_arn: str,
        run: Optional[MigrationRun] = None,
    ) -> None:
        """
        Block until the task has started and then stopped, regardless of the
        outcome of the migrations.
        """
        logger.info(f"Waiting for task {task_arn} to start")

        try:
            self._wait("tasks_running", cluster_id, task_arn, self._running_policy)
            logger.info(
                f"Task {task_arn} successfully started. "
                "Now waiting for task completion"
            )
            if run is not None:
                run.advance(MigrationStage.RUNNING)
        except WaiterError as e:
            # The running waiter treats STOPPED as a failure state. A task
            # that exits quickly is still verified below, and never reaches
            # the RUNNING stage.
            if not _last_response_is_stopped(e.last_response):
                self._raise_waiter_error(e, task_arn, "running", self._running_policy)
            logger.info(f"Task {task_arn} stopped before it was seen running")

        try:
            self._wait("tasks_stopped", cluster_id, task_arn, self._stopped_policy)
        except WaiterError as e:
            self._raise_waiter_error(e, task_arn, "stopped", self._stopped_policy)

        if run is not None:
            run.advance(MigrationStage.STOPPED)
        logger.info("DB migration task completed")

    def assert_migration_successful(self, cluster_id: str, task_arn: str) -> None:
        response = self._ecs.describe_tasks(cluster=cluster_id, tasks=[task_arn])

        tasks = response.get("tasks", [])
        status = TaskStatus.from_response(tasks[0]) if tasks else None
        if status is None or len(status.containers) == 0:
            error = TaskNotFoundError(task_arn)
            logger.error(error.message)
            raise error

        exit_code = status.containers[0].exit_code
        if exit_code != 0:
            error = MigrationFailedError(
                task_arn=task_arn,
                exit_code=exit_code,
                stopped_reason=status.stopped_reason,
            )
            logger.error(error.message)
            raise error

    def _wait(
        self,
        waiter_name: str,
        cluster_id: str,
        task_arn: str,
        policy: WaiterPolicy,
    ) -> None:
        waiter = self._ecs.get_waiter(waiter_name)  # type: ignore[call-overload]
        waiter.wait(
            cluster=cluster_id,
            tasks=[task_arn],
            WaiterConfig=policy.as_waiter_config(),
        )

    def _raise_waiter_error(
        self,
        e: WaiterError,
        task_arn: str,
        waiting_for: str,
        policy: WaiterPolicy,
    ) -> None:
        if "Max attempts exceeded" in str(e.kwargs.get("reason", "")):
            error = MigrationTimeoutError(task_arn, waiting_for, policy.max_wait_secs)
            logger.error(error.message)
            raise error from e

        logger.error(f"Failed waiting for task {task_arn} to be {waiting_for}: {e}")
        raise e


def _last_response_is_stopped(last_response: Optional[dict[str, Any]]) -> bool:
    tasks = (last_response or {}).get("tasks", [])
    return len(tasks) > 0 and all(t.get("lastStatus") == "STOPPED" for t in tasks)
