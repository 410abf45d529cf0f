# -*- coding: utf-8 -*-
import pytest
from hamcrest import assert_that, equal_to, is_

from infra.migrations.models import (
    MigrationOutcome,
    MigrationRun,
    MigrationStage,
    TaskStatus,
    WaiterPolicy,
)

from ...test_lib.fake_ecs import (
    CLUSTER_ID,
    SECURITY_GROUP_ID,
    SUBNET_ID,
    TASK_ARN,
    TASK_DEFINITION_ARN,
    TASK_FAMILY,
)


@pytest.fixture
def migration_run() -> MigrationRun:
    return MigrationRun(
        cluster_id=CLUSTER_ID,
        task_family=TASK_FAMILY,
        task_definition_arn=TASK_DEFINITION_ARN,
        security_group_id=SECURITY_GROUP_ID,
        subnet_id=SUBNET_ID,
    )


def test_run_moves_through_every_stage(migration_run: MigrationRun):
    assert_that(migration_run.outcome, is_(MigrationOutcome.PENDING))

    migration_run.advance(MigrationStage.GUARD_CHECKED)
    assert_that(migration_run.outcome, is_(MigrationOutcome.PENDING))

    for stage in (
        MigrationStage.LAUNCHED,
        MigrationStage.RUNNING,
        MigrationStage.STOPPED,
    ):
        migration_run.advance(stage)
        assert_that(migration_run.outcome, is_(MigrationOutcome.RUNNING))

    migration_run.advance(MigrationStage.SUCCEEDED)
    assert_that(migration_run.outcome, is_(MigrationOutcome.SUCCEEDED))
    assert_that(migration_run.stage.is_terminal, is_(True))


def test_run_can_fail_from_any_non_terminal_stage(migration_run: MigrationRun):
    migration_run.advance(MigrationStage.GUARD_CHECKED)
    migration_run.advance(MigrationStage.LAUNCHED)

    migration_run.advance(MigrationStage.FAILED)

    assert_that(migration_run.outcome, is_(MigrationOutcome.FAILED))
    assert_that(migration_run.failed_at, is_(MigrationStage.LAUNCHED))


def test_run_records_skipped_stages(migration_run: MigrationRun):
    migration_run.advance(MigrationStage.GUARD_CHECKED)
    migration_run.advance(MigrationStage.LAUNCHED)
    migration_run.advance(MigrationStage.STOPPED)
    migration_run.advance(MigrationStage.SUCCEEDED)

    assert_that(
        migration_run.history,
        equal_to(
            [
                MigrationStage.IDLE,
                MigrationStage.GUARD_CHECKED,
                MigrationStage.LAUNCHED,
                MigrationStage.STOPPED,
                MigrationStage.SUCCEEDED,
            ]
        ),
    )
    assert_that(migration_run.failed_at, is_(None))


def test_run_does_not_move_backwards(migration_run: MigrationRun):
    migration_run.advance(MigrationStage.GUARD_CHECKED)
    migration_run.advance(MigrationStage.LAUNCHED)

    with pytest.raises(ValueError):
        migration_run.advance(MigrationStage.GUARD_CHECKED)
    with pytest.raises(ValueError):
        migration_run.advance(MigrationStage.LAUNCHED)


def test_finished_run_is_final(migration_run: MigrationRun):
    migration_run.advance(MigrationStage.FAILED)

    with pytest.raises(ValueError):
        migration_run.advance(MigrationStage.SUCCEEDED)


def test_task_status_from_describe_tasks_response():
    status = TaskStatus.from_response(
        {
            "taskArn": TASK_ARN,
            "lastStatus": "STOPPED",
            "desiredStatus": "STOPPED",
            "stoppedReason": "OutOfMemory",
            "containers": [
                {
                    "containerArn": "arn:aws:ecs:container/1",
                    "name": "pulumi-migration",
                    "lastStatus": "STOPPED",
                    "exitCode": 137,
                    "reason": "OutOfMemoryError: Container killed due to memory usage",
                }
            ],
        }
    )

    assert_that(status.task_arn, equal_to(TASK_ARN))
    assert_that(status.last_status, equal_to("STOPPED"))
    assert_that(status.stopped_reason, equal_to("OutOfMemory"))
    assert_that(status.containers[0].exit_code, equal_to(137))
    assert_that(status.containers[0].name, equal_to("pulumi-migration"))


def test_task_status_without_optional_fields():
    status = TaskStatus.from_response({"taskArn": TASK_ARN})

    assert_that(status.containers, equal_to([]))
    assert_that(status.stopped_reason, is_(None))


def test_waiter_policy():
    policy = WaiterPolicy(delay_secs=30, max_attempts=120)

    assert_that(policy.max_wait_secs, equal_to(3600))
    assert_that(
        policy.as_waiter_config(),
        equal_to({"Delay": 30, "MaxAttempts": 120}),
    )


@pytest.mark.parametrize("delay_secs,max_attempts", [(0, 10), (10, 0)])
def test_waiter_policy_rejects_non_positive_values(delay_secs: int, max_attempts: int):
    with pytest.raises(ValueError):
        WaiterPolicy(delay_secs=delay_secs, max_attempts=max_attempts)
