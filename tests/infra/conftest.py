# -*- coding: utf-8 -*-
import pulumi
import pytest

from ..test_lib.pulumi_mocks import PROJECT, STACK, PulumiMocks


def _set_mocks(preview: bool) -> PulumiMocks:
    mocks = PulumiMocks()
    pulumi.runtime.set_mocks(mocks, project=PROJECT, stack=STACK, preview=preview)
    return mocks


@pytest.fixture
def mocks() -> PulumiMocks:
    """Pulumi runtime mocked as for `pulumi up`."""
    return _set_mocks(preview=False)


@pytest.fixture
def preview_mocks() -> PulumiMocks:
    """Pulumi runtime mocked as for `pulumi preview`."""
    return _set_mocks(preview=True)
