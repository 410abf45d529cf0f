# -*- coding: utf-8 -*-
from typing import Any, Optional

from .models import MigrationRun


class MigrationError(Exception):
    """
    Base class for every failure of a database migration run.

    `run` is set by `DatabaseMigrationTask.run_migration_task` to the failed
    `MigrationRun`, so callers can see which stage the run reached.
    """

    run: Optional[MigrationRun] = None


class ConcurrentMigrationError(MigrationError):
    def __init__(self, task_arns: list[str]):
        self.task_arns = task_arns
        self.message = (
            "At least one existing migration task already running: "
            f"{task_arns}"
        )
        super().__init__(self.message)


class LaunchFailedError(MigrationError):
    def __init__(
        self,
        failures: Optional[list[dict[str, Any]]] = None,
        message: str = "Unable to successfully start DB Migration task",
    ):
        self.failures = failures or []
        self.message = message
        super().__init__(self.message)


class TaskNotFoundError(MigrationError):
    def __init__(self, task_arn: str):
        self.task_arn = task_arn
        self.message = f"Unable to locate task {task_arn}"
        super().__init__(self.message)


class MigrationFailedError(MigrationError):
    def __init__(
        self,
        task_arn: str,
        exit_code: Optional[int],
        stopped_reason: Optional[str],
    ):
        self.task_arn = task_arn
        self.exit_code = exit_code
        self.stopped_reason = stopped_reason
        self.message = (
            "DB migrations task exited with a non-zero code: "
            f"{exit_code} and reason: {stopped_reason}. "
            "Check Cloudwatch Migrations LogGroup for details"
        )
        super().__init__(self.message)


class MigrationTimeoutError(MigrationError):
    def __init__(self, task_arn: str, waiting_for: str, waited_secs: int):
        self.task_arn = task_arn
        self.waiting_for = waiting_for
        self.waited_secs = waited_secs
        self.message = (
            f"Gave up waiting for task {task_arn} to be {waiting_for} "
            f"after ~{waited_secs}s"
        )
        super().__init__(self.message)
