from __future__ import annotations

from enum import Enum
from typing import Any, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


Keyword = Literal["Given", "When", "Then", "And", "But"]
KEYWORDS: Tuple[str, ...] = ("Given", "When", "Then", "And", "But")


class Source(str, Enum):
    STATIC = "static"
    RUNTIME = "runtime"


class FeatureRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    narrative: str = ""
    source: Source = Source.STATIC


class ScenarioRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    feature: Optional[str]  # None when no Feature marker could be resolved
    title: str
    source: Source = Source.STATIC

    @property
    def identity(self) -> Tuple[Optional[str], str]:
        return (self.feature, self.title)


class StepRecord(BaseModel):
    """One step as discovered, before any hierarchy is resolved.

    ``sequence`` is the scanner's discovery counter for static steps and the
    registration sequence number for runtime steps. ``declaration`` identifies
    the marker a step came from; rows of one data-driven marker share it.
    """

    model_config = ConfigDict(frozen=True)

    feature: Optional[str]
    scenario: Optional[str]
    keyword: Keyword
    template: str
    args: Tuple[Any, ...] = ()
    priority: Optional[int] = None
    sequence: int = 0
    declaration: Optional[int] = None
    source: Source = Source.STATIC

    @property
    def identity(self) -> Tuple[Optional[str], Optional[str]]:
        return (self.feature, self.scenario)

    @property
    def order_key(self) -> Tuple[int, int]:
        return (self.priority if self.priority is not None else 0, self.sequence)

    @property
    def declaration_key(self) -> int:
        return self.declaration if self.declaration is not None else self.sequence


class WarningKind(str, Enum):
    DISCOVERY = "discovery"
    ORPHAN = "orphan"
    MERGE_CONFLICT = "merge-conflict"
    SINK = "sink"
    AMBIGUOUS_PRIORITY = "ambiguous-priority"
    NAME_COLLISION = "name-collision"
    MISSING_ARGUMENTS = "missing-arguments"


class GenerationWarning(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: WarningKind
    message: str
    feature: Optional[str] = None
    scenario: Optional[str] = None

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


class ScanResult(BaseModel):
    module: str
    features: List[FeatureRecord] = Field(default_factory=list)
    scenarios: List[ScenarioRecord] = Field(default_factory=list)
    steps: List[StepRecord] = Field(default_factory=list)
    warnings: List[GenerationWarning] = Field(default_factory=list)
