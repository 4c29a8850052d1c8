"""Static scanning of test modules for declarative markers.

The scanner walks module and class members in definition order and numbers
every step it finds. That number is the tie-break for equal priorities, so
the order is fixed at discovery time and never re-queried from the module.
"""

from __future__ import annotations

import inspect
import itertools
import logging
from types import ModuleType
from typing import Any, Iterator, List, Optional

from ..markers import StepMarker, feature_of, own_feature, rows_of, scenario_of, steps_of
from ..models import (
    KEYWORDS,
    FeatureRecord,
    GenerationWarning,
    ScanResult,
    ScenarioRecord,
    Source,
    StepRecord,
    WarningKind,
)


logger = logging.getLogger(__name__)


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _module_classes(module: ModuleType) -> Iterator[type]:
    for obj in list(vars(module).values()):
        if inspect.isclass(obj) and obj.__module__ == module.__name__:
            yield obj


def _discovery_warning(result: ScanResult, message: str, feature: Optional[str] = None, scenario: Optional[str] = None) -> None:
    logger.warning("%s: %s", result.module, message)
    result.warnings.append(
        GenerationWarning(kind=WarningKind.DISCOVERY, message=f"{result.module}: {message}", feature=feature, scenario=scenario)
    )


def _step_records(
    result: ScanResult,
    owner: str,
    marker: StepMarker,
    rows: List[tuple],
    feature: Optional[str],
    scenario: Optional[str],
    counter: Iterator[int],
    declaration: int,
) -> List[StepRecord]:
    if marker.keyword not in KEYWORDS:
        _discovery_warning(result, f"{owner}: unknown step keyword {marker.keyword!r}", feature, scenario)
        return []
    if not _is_text(marker.template):
        _discovery_warning(result, f"{owner}: {marker.keyword} marker has no step text", feature, scenario)
        return []
    if marker.priority is not None and (isinstance(marker.priority, bool) or not isinstance(marker.priority, int)):
        _discovery_warning(result, f"{owner}: priority must be an integer, got {marker.priority!r}", feature, scenario)
        return []

    arg_sets = (rows or [()]) if marker.data_driven else [marker.args]
    return [
        StepRecord(
            feature=feature,
            scenario=scenario,
            keyword=marker.keyword,
            template=marker.template,
            args=tuple(args),
            priority=marker.priority,
            sequence=next(counter),
            declaration=declaration,
            source=Source.STATIC,
        )
        for args in arg_sets
    ]


def scan_module(module: ModuleType) -> ScanResult:
    """Collect Feature, Scenario and Step records declared in ``module``.

    A module without markers yields an empty result. Malformed markers are
    skipped with a discovery warning.
    """
    result = ScanResult(module=module.__name__)
    counter = itertools.count()
    declarations = itertools.count()

    for cls in _module_classes(module):
        owned = own_feature(cls)
        if owned is not None:
            if _is_text(owned.name):
                narrative = owned.narrative if isinstance(owned.narrative, str) else ""
                result.features.append(FeatureRecord(name=owned.name, narrative=narrative, source=Source.STATIC))
            else:
                _discovery_warning(result, f"{cls.__qualname__}: Feature marker has no name")

        inherited = feature_of(cls)
        feature_name = inherited.name if inherited is not None and _is_text(inherited.name) else None

        scenario_title: Optional[str] = None
        marker = scenario_of(cls)
        if marker is not None:
            if _is_text(marker.title):
                scenario_title = marker.title
                result.scenarios.append(ScenarioRecord(feature=feature_name, title=scenario_title, source=Source.STATIC))
                if feature_name is not None and all(f.name != feature_name for f in result.features):
                    # Feature declared on a base class imported from another module
                    narrative = inherited.narrative if isinstance(inherited.narrative, str) else ""
                    result.features.append(FeatureRecord(name=feature_name, narrative=narrative, source=Source.STATIC))
            else:
                _discovery_warning(result, f"{cls.__qualname__}: Scenario marker has no title", feature_name)
                # steps of a malformed scenario are skipped with it
                continue

        for attr, member in vars(cls).items():
            step_markers = steps_of(member)
            if not step_markers:
                continue
            owner = f"{cls.__qualname__}.{attr}"
            rows = rows_of(member)
            for step_marker in step_markers:
                result.steps.extend(
                    _step_records(
                        result, owner, step_marker, rows, feature_name, scenario_title, counter, next(declarations)
                    )
                )

    logger.debug(
        "Scanned %s: %d features, %d scenarios, %d steps",
        result.module,
        len(result.features),
        len(result.scenarios),
        len(result.steps),
    )
    return result
