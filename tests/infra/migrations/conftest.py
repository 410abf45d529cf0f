# -*- coding: utf-8 -*-
import pytest

from ...test_lib.fake_ecs import FakeECS


@pytest.fixture
def fake_ecs() -> FakeECS:
    return FakeECS()
