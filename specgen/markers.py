"""Declarative Feature/Scenario/Step markers for test classes and methods.

Markers only attach data; nothing is validated at decoration time so a
malformed marker never breaks the import of a test module. The scanner
reports bad markers as discovery warnings instead.

    @feature("Calculator", "In order to avoid silly mistakes")
    class CalculatorFeature:
        pass

    @scenario("Add two numbers")
    class AddTwoNumbers(CalculatorFeature):
        @given("I have entered {0} into the calculator", 1, priority=1)
        def test_first(self): ...
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Tuple, TypeVar

from pydantic import BaseModel


FEATURE_ATTR = "__specgen_feature__"
SCENARIO_ATTR = "__specgen_scenario__"
STEPS_ATTR = "__specgen_steps__"
ROWS_ATTR = "__specgen_rows__"

T = TypeVar("T")


class FeatureMarker(BaseModel):
    name: Any = None
    narrative: Any = ""


class ScenarioMarker(BaseModel):
    title: Any = None


class StepMarker(BaseModel):
    keyword: Any
    template: Any = None
    args: Tuple[Any, ...] = ()
    priority: Any = None
    data_driven: bool = False


def feature(name: str, narrative: str = "") -> Callable[[T], T]:
    def decorate(cls: T) -> T:
        setattr(cls, FEATURE_ATTR, FeatureMarker(name=name, narrative=narrative))
        return cls

    return decorate


def scenario(title: str) -> Callable[[T], T]:
    def decorate(cls: T) -> T:
        setattr(cls, SCENARIO_ATTR, ScenarioMarker(title=title))
        return cls

    return decorate


def _attach_step(marker: StepMarker) -> Callable[[T], T]:
    def decorate(func: T) -> T:
        # decorators apply bottom-up; prepend to keep source order
        markers: List[StepMarker] = [marker, *getattr(func, STEPS_ATTR, ())]
        setattr(func, STEPS_ATTR, markers)
        return func

    return decorate


def given(template: str, *args: Any, priority: Optional[int] = None):
    return _attach_step(StepMarker(keyword="Given", template=template, args=args, priority=priority))


def when(template: str, *args: Any, priority: Optional[int] = None):
    return _attach_step(StepMarker(keyword="When", template=template, args=args, priority=priority))


def then(template: str, *args: Any, priority: Optional[int] = None):
    return _attach_step(StepMarker(keyword="Then", template=template, args=args, priority=priority))


def and_(template: str, *args: Any, priority: Optional[int] = None):
    return _attach_step(StepMarker(keyword="And", template=template, args=args, priority=priority))


def but(template: str, *args: Any, priority: Optional[int] = None):
    return _attach_step(StepMarker(keyword="But", template=template, args=args, priority=priority))


def data_driven(template: str, keyword: str = "Then", priority: Optional[int] = None):
    """Mark a step whose arguments come from stacked ``inline_data`` rows."""
    return _attach_step(StepMarker(keyword=keyword, template=template, priority=priority, data_driven=True))


def inline_data(*row: Any) -> Callable[[T], T]:
    def decorate(func: T) -> T:
        rows: List[Tuple[Any, ...]] = [tuple(row), *getattr(func, ROWS_ATTR, ())]
        setattr(func, ROWS_ATTR, rows)
        return func

    return decorate


# Capability queries


def own_feature(cls: type) -> Optional[FeatureMarker]:
    marker = vars(cls).get(FEATURE_ATTR)
    return marker if isinstance(marker, FeatureMarker) else None


def feature_of(cls: type) -> Optional[FeatureMarker]:
    """Nearest Feature marker along the MRO."""
    for klass in getattr(cls, "__mro__", (cls,)):
        marker = own_feature(klass)
        if marker is not None:
            return marker
    return None


def scenario_of(cls: type) -> Optional[ScenarioMarker]:
    marker = vars(cls).get(SCENARIO_ATTR)
    return marker if isinstance(marker, ScenarioMarker) else None


def _marker_attr(func: Any, attr: str) -> Any:
    found = getattr(func, attr, None)
    if found is None:
        # staticmethod/classmethod wrapping a marked function
        found = getattr(getattr(func, "__func__", None), attr, None)
    return found or ()


def steps_of(func: Any) -> List[StepMarker]:
    return [m for m in _marker_attr(func, STEPS_ATTR) if isinstance(m, StepMarker)]


def rows_of(func: Any) -> List[Tuple[Any, ...]]:
    return list(_marker_attr(func, ROWS_ATTR))
