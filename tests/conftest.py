from __future__ import annotations

from pathlib import Path

import pytest

from specgen.config import AppConfig
from specgen.runtime.registry import StepRegistry, default_registry


SPEC_MODULES = Path(__file__).parent / "spec_modules"


@pytest.fixture
def spec_modules() -> Path:
    return SPEC_MODULES


@pytest.fixture
def registry() -> StepRegistry:
    return StepRegistry()


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(_env_file=None)


@pytest.fixture(autouse=True)
def _clean_default_registry():
    default_registry.clear()
    yield
    default_registry.clear()
