# -*- coding: utf-8 -*-
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class MigrationOutcome(Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class MigrationStage(Enum):
    """
    Stages of a migration run, in the only order they can be reached.

    `SUCCEEDED` and `FAILED` are both terminal. A run may fail from any
    non-terminal stage.
    """

    IDLE = "idle"
    GUARD_CHECKED = "guard_checked"
    LAUNCHED = "launched"
    RUNNING = "running"
    STOPPED = "stopped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (MigrationStage.SUCCEEDED, MigrationStage.FAILED)


_STAGE_ORDER = [
    MigrationStage.IDLE,
    MigrationStage.GUARD_CHECKED,
    MigrationStage.LAUNCHED,
    MigrationStage.RUNNING,
    MigrationStage.STOPPED,
]

_STAGE_OUTCOMES = {
    MigrationStage.IDLE: MigrationOutcome.PENDING,
    MigrationStage.GUARD_CHECKED: MigrationOutcome.PENDING,
    MigrationStage.LAUNCHED: MigrationOutcome.RUNNING,
    MigrationStage.RUNNING: MigrationOutcome.RUNNING,
    MigrationStage.STOPPED: MigrationOutcome.RUNNING,
    MigrationStage.SUCCEEDED: MigrationOutcome.SUCCEEDED,
    MigrationStage.FAILED: MigrationOutcome.FAILED,
}


@dataclass
class MigrationRun:
    """
    One attempt at running the migration task for a deployment.

    Attributes:
        cluster_id (str): ECS cluster the task runs in.
        task_family (str): Task definition family, used by the singleton guard.
        task_definition_arn (str): Task definition revision to launch.
        security_group_id (str): Security group attached to the task ENI.
        subnet_id (str): Subnet the task ENI is placed in.
        task_arn (str, optional): Set once the task has been launched.
        stage (MigrationStage): Current position in the state machine.
        history (list[MigrationStage]): Every stage reached, in order. A stage
            that was never observed is absent, e.g. RUNNING for a task that
            exited before the running waiter saw it.
    """

    cluster_id: str
    task_family: str
    task_definition_arn: str
    security_group_id: str
    subnet_id: str
    task_arn: Optional[str] = None
    stage: MigrationStage = field(default=MigrationStage.IDLE)
    history: list[MigrationStage] = field(
        default_factory=lambda: [MigrationStage.IDLE]
    )

    @property
    def outcome(self) -> MigrationOutcome:
        return _STAGE_OUTCOMES[self.stage]

    @property
    def failed_at(self) -> Optional[MigrationStage]:
        """Last stage reached before the run failed, None unless it failed."""
        if self.stage != MigrationStage.FAILED:
            return None
        return self.history[-2]

    def advance(self, stage: MigrationStage) -> None:
        if self.stage.is_terminal:
            raise ValueError(
                f"Migration run already finished as {self.stage.value}, "
                f"cannot move to {stage.value}"
            )
        if stage == MigrationStage.FAILED:
            self._move_to(stage)
            return

        current = _STAGE_ORDER.index(self.stage)
        target = (
            len(_STAGE_ORDER)
            if stage == MigrationStage.SUCCEEDED
            else _STAGE_ORDER.index(stage)
        )
        if target <= current:
            raise ValueError(
                f"Migration run cannot move back from {self.stage.value} "
                f"to {stage.value}"
            )
        self._move_to(stage)

    def _move_to(self, stage: MigrationStage) -> None:
        self.stage = stage
        self.history.append(stage)


class ContainerStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = ""
    last_status: Optional[str] = Field(default=None, alias="lastStatus")
    exit_code: Optional[int] = Field(default=None, alias="exitCode")
    reason: Optional[str] = None


class TaskStatus(BaseModel):
    """Read-only view of a task as reported by ECS `DescribeTasks`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    task_arn: str = Field(alias="taskArn")
    last_status: Optional[str] = Field(default=None, alias="lastStatus")
    stopped_reason: Optional[str] = Field(default=None, alias="stoppedReason")
    containers: list[ContainerStatus] = []

    @classmethod
    def from_response(cls, task: dict[str, Any]) -> "TaskStatus":
        return cls.model_validate(task)


@dataclass(frozen=True)
class WaiterPolicy:
    """Fixed-interval polling with a bounded number of attempts."""

    delay_secs: int
    max_attempts: int

    def __post_init__(self):
        if self.delay_secs < 1:
            raise ValueError("delay_secs must be >= 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @property
    def max_wait_secs(self) -> int:
        return self.delay_secs * self.max_attempts

    def as_waiter_config(self) -> dict[str, int]:
        return {"Delay": self.delay_secs, "MaxAttempts": self.max_attempts}


# ~10 minutes for Fargate to pull and start the container.
DEFAULT_RUNNING_POLICY = WaiterPolicy(delay_secs=10, max_attempts=60)
# ~1 hour for the migrations themselves.
DEFAULT_STOPPED_POLICY = WaiterPolicy(delay_secs=30, max_attempts=120)
