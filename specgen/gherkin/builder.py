"""Assembly of raw Feature/Scenario/Step records into a Document.

Both the static scanner and the runtime registry produce the same record
types; this is the single place where they meet. Scenario identity is the
pair (feature name, scenario title).
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..models import (
    FeatureRecord,
    GenerationWarning,
    ScenarioRecord,
    Source,
    StepRecord,
    WarningKind,
)
from .models import Document, Feature, Scenario, Step
from .template import placeholder_count


logger = logging.getLogger(__name__)

Identity = Tuple[Optional[str], Optional[str]]


def _warn(warnings: List[GenerationWarning], kind: WarningKind, message: str, feature=None, scenario=None) -> None:
    logger.warning(message)
    warnings.append(GenerationWarning(kind=kind, message=message, feature=feature, scenario=scenario))


def _ordered_steps(
    identity: Identity, steps: List[StepRecord], warnings: List[GenerationWarning]
) -> Tuple[Step, ...]:
    ordered = sorted(steps, key=lambda s: s.order_key)

    # rows of one data-driven marker share a declaration and never tie with each other
    seen: Dict[int, Set[int]] = {}
    for step in ordered:
        if step.source is Source.STATIC and step.priority is not None:
            seen.setdefault(step.priority, set()).add(step.declaration_key)
    for priority, declarations in seen.items():
        if len(declarations) > 1:
            _warn(
                warnings,
                WarningKind.AMBIGUOUS_PRIORITY,
                f"Scenario {identity[1]!r}: {len(declarations)} steps share priority {priority}; keeping declaration order",
                *identity,
            )

    result = []
    for step in ordered:
        needed = placeholder_count(step.template)
        if needed > len(step.args):
            _warn(
                warnings,
                WarningKind.MISSING_ARGUMENTS,
                f"Step '{step.keyword} {step.template}' has {len(step.args)} of {needed} arguments; "
                "missing placeholders render empty",
                *identity,
            )
        result.append(Step(keyword=step.keyword, template=step.template, args=step.args))
    return tuple(result)


def build_document(
    features: Iterable[FeatureRecord],
    scenarios: Iterable[ScenarioRecord],
    steps: Iterable[StepRecord],
) -> Tuple[Document, List[GenerationWarning]]:
    """Group, validate and order records into an immutable Document.

    Orphans and scenarios declared by both static markers and runtime
    registration are dropped and reported; everything else is kept.
    """
    warnings: List[GenerationWarning] = []

    feature_order: Dict[str, FeatureRecord] = {}
    for record in features:
        known = feature_order.get(record.name)
        if known is None:
            feature_order[record.name] = record
        elif not known.narrative and record.narrative:
            feature_order[record.name] = known.model_copy(update={"narrative": record.narrative})

    scenario_order: List[Identity] = []
    sources: Dict[Identity, Set[Source]] = {}
    for record in scenarios:
        if record.identity not in sources:
            scenario_order.append(record.identity)
            sources[record.identity] = set()
        sources[record.identity].add(record.source)

    dropped: Set[Identity] = set()
    kept: List[Identity] = []
    for identity in scenario_order:
        feature_name, title = identity
        if len(sources[identity]) > 1:
            _warn(
                warnings,
                WarningKind.MERGE_CONFLICT,
                f"Scenario {title!r} of feature {feature_name!r} is declared both by markers and at runtime; skipped",
                feature_name,
                title,
            )
            dropped.add(identity)
        elif feature_name is None or feature_name not in feature_order:
            _warn(
                warnings,
                WarningKind.ORPHAN,
                f"Scenario {title!r} has no Feature" + (f" named {feature_name!r}" if feature_name else ""),
                feature_name,
                title,
            )
            dropped.add(identity)
        else:
            kept.append(identity)

    grouped: Dict[Identity, List[StepRecord]] = {identity: [] for identity in kept}
    for step in steps:
        bucket = grouped.get(step.identity)
        if bucket is not None:
            bucket.append(step)
        elif step.identity not in dropped:
            where = f"scenario {step.scenario!r}" if step.scenario else "no scenario"
            _warn(
                warnings,
                WarningKind.ORPHAN,
                f"Step '{step.keyword} {step.template}' references {where}; dropped",
                step.feature,
                step.scenario,
            )

    by_feature: Dict[str, List[Scenario]] = {name: [] for name in feature_order}
    for identity in kept:
        feature_name, title = identity
        by_feature[feature_name].append(
            Scenario(title=title, steps=_ordered_steps(identity, grouped[identity], warnings))
        )

    document = Document(
        features=tuple(
            Feature(name=name, narrative=record.narrative, scenarios=tuple(by_feature[name]))
            for name, record in feature_order.items()
        )
    )
    return document, warnings
