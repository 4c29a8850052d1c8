"""Runtime capture of imperatively registered steps.

Each scenario run records into its own ``ScenarioRecorder``; the recorder is
bound to the current execution context through a ``ContextVar`` so threads
and tasks running scenarios concurrently never share a step buffer. Only the
final merge into the ``StepRegistry`` is shared, and it happens under one lock.

    with registry.scenario("Add two numbers", feature=CalculatorFeature) as s:
        s.given("I have entered 1 into the calculator", lambda: calc.enter(1))
        s.when("I press add", calc.add)
        s.then("the result should be 3", lambda: check(calc.result == 3))
"""

from __future__ import annotations

import itertools
import logging
import threading
from contextvars import ContextVar, Token
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..errors import NestedStepError, StepRegistrationError
from ..markers import feature_of
from ..models import KEYWORDS, FeatureRecord, ScenarioRecord, Source, StepRecord


logger = logging.getLogger(__name__)

_active: ContextVar[Optional["ScenarioRecorder"]] = ContextVar("specgen_active_scenario", default=None)

Action = Optional[Callable[[], Any]]
FeatureRef = Union[str, type, None]


def _resolve_feature(feature: FeatureRef, narrative: Optional[str]) -> Tuple[Optional[str], str]:
    if feature is None or isinstance(feature, str):
        return feature or None, narrative or ""
    marker = feature_of(feature)
    if marker is None or not isinstance(marker.name, str) or not marker.name.strip():
        raise StepRegistrationError(f"{feature!r} carries no Feature marker")
    text = narrative if narrative is not None else marker.narrative
    return marker.name, text if isinstance(text, str) else ""


class ScenarioRecorder:
    """Private step accumulator for one scenario run."""

    def __init__(self, registry: "StepRegistry", title: str, feature: Optional[str], narrative: str):
        if not isinstance(title, str) or not title.strip():
            raise StepRegistrationError("scenario title must be a non-empty string")
        self.registry = registry
        self.title = title
        self.feature = feature
        self.narrative = narrative
        self.steps: List[StepRecord] = []
        self._sequence = itertools.count(1)
        self._token: Optional[Token] = None
        self._in_step = False
        self._closed = False

    def __enter__(self) -> "ScenarioRecorder":
        if self._closed or self._token is not None:
            raise StepRegistrationError(f"scenario {self.title!r} cannot be entered twice")
        current = _active.get()
        if current is not None:
            raise NestedStepError(
                f"scenario {self.title!r} started inside running scenario {current.title!r}"
            )
        self._token = _active.set(self)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._token is not None:
            _active.reset(self._token)
            self._token = None
        self._closed = True
        if exc_type is not None:
            logger.debug("Scenario %r ended with %s", self.title, exc_type.__name__)
        self.registry.commit(self)
        return False

    def step(self, keyword: str, text: str, action: Action = None, *args: Any) -> Any:
        """Record a step, then run its action synchronously.

        Without ``args`` the text is recorded literally, so braces in it are
        escaped rather than read as placeholders.
        """
        if keyword not in KEYWORDS:
            raise ValueError(f"Unknown step keyword: {keyword!r}")
        if self._closed or _active.get() is not self:
            raise StepRegistrationError(f"scenario {self.title!r} is not active in this context")
        if self._in_step:
            raise NestedStepError(f"{keyword} {text!r} registered from inside another step of {self.title!r}")

        self.steps.append(
            StepRecord(
                feature=self.feature,
                scenario=self.title,
                keyword=keyword,
                template=text if args else text.replace("{", "{{").replace("}", "}}"),
                args=args,
                sequence=next(self._sequence),
                source=Source.RUNTIME,
            )
        )
        if action is None:
            return None
        self._in_step = True
        try:
            return action()
        finally:
            self._in_step = False

    def given(self, text: str, action: Action = None, *args: Any) -> Any:
        return self.step("Given", text, action, *args)

    def when(self, text: str, action: Action = None, *args: Any) -> Any:
        return self.step("When", text, action, *args)

    def then(self, text: str, action: Action = None, *args: Any) -> Any:
        return self.step("Then", text, action, *args)

    def and_(self, text: str, action: Action = None, *args: Any) -> Any:
        return self.step("And", text, action, *args)

    def but(self, text: str, action: Action = None, *args: Any) -> Any:
        return self.step("But", text, action, *args)


class StepRegistry:
    """Shared sink for completed scenario recordings."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._features: Dict[str, FeatureRecord] = {}
        self._scenarios: Dict[Tuple[Optional[str], str], Tuple[ScenarioRecord, List[StepRecord]]] = {}

    def scenario(self, title: str, feature: FeatureRef = None, narrative: Optional[str] = None) -> ScenarioRecorder:
        name, text = _resolve_feature(feature, narrative)
        return ScenarioRecorder(self, title, name, text)

    def commit(self, recorder: ScenarioRecorder) -> None:
        record = ScenarioRecord(feature=recorder.feature, title=recorder.title, source=Source.RUNTIME)
        with self._lock:
            if recorder.feature is not None:
                known = self._features.get(recorder.feature)
                if known is None or (not known.narrative and recorder.narrative):
                    self._features[recorder.feature] = FeatureRecord(
                        name=recorder.feature, narrative=recorder.narrative, source=Source.RUNTIME
                    )
            if record.identity in self._scenarios:
                logger.debug("Replacing earlier recording of scenario %r", recorder.title)
            # re-assigning an existing key keeps its first-seen position
            self._scenarios[record.identity] = (record, list(recorder.steps))

    def records(self) -> Tuple[List[FeatureRecord], List[ScenarioRecord], List[StepRecord]]:
        with self._lock:
            features = list(self._features.values())
            scenarios = [record for record, _ in self._scenarios.values()]
            steps = [step for _, recorded in self._scenarios.values() for step in recorded]
        return features, scenarios, steps

    def clear(self) -> None:
        with self._lock:
            self._features.clear()
            self._scenarios.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._scenarios)


default_registry = StepRegistry()


def scenario(title: str, feature: FeatureRef = None, narrative: Optional[str] = None) -> ScenarioRecorder:
    return default_registry.scenario(title, feature, narrative)


def current_scenario() -> Optional[ScenarioRecorder]:
    return _active.get()
