from __future__ import annotations

from typing import Any, Tuple

from pydantic import BaseModel, ConfigDict

from ..models import Keyword


class Step(BaseModel):
    model_config = ConfigDict(frozen=True)

    keyword: Keyword  # Given | When | Then | And | But
    template: str
    args: Tuple[Any, ...] = ()


class Scenario(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    steps: Tuple[Step, ...] = ()


class Feature(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    narrative: str = ""
    scenarios: Tuple[Scenario, ...] = ()


class Document(BaseModel):
    """Resolved Feature -> Scenario -> Step tree for one generation run."""

    model_config = ConfigDict(frozen=True)

    features: Tuple[Feature, ...] = ()

    def feature(self, name: str) -> Feature:
        for feat in self.features:
            if feat.name == name:
                return feat
        raise KeyError(name)
