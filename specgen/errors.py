from __future__ import annotations

from typing import Iterable, List, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import GenerationWarning


class SpecgenError(Exception):
    """Base class for all specgen errors."""


class ModuleLoadError(SpecgenError):
    """A test module could not be imported."""

    def __init__(self, target: str, reason: str):
        super().__init__(f"Cannot load {target}: {reason}")
        self.target = target
        self.reason = reason


class StepRegistrationError(SpecgenError):
    """A runtime step was registered outside a usable scenario context."""


class NestedStepError(StepRegistrationError):
    """A step action tried to register further steps while running."""


class GenerationFailed(SpecgenError):
    """Generation produced no usable document."""

    def __init__(self, message: str, warnings: Iterable["GenerationWarning"] = ()):
        super().__init__(message)
        self.warnings: List["GenerationWarning"] = list(warnings)
