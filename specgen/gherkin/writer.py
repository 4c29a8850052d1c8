from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Tuple

from pydantic import BaseModel

from ..models import GenerationWarning, WarningKind
from .models import Document, Feature
from .template import render_template


logger = logging.getLogger(__name__)

NARRATIVE_INDENT = "\t"
STEP_INDENT = "\t\t\t"

_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

# (unit name, text) -> location
Sink = Callable[[str, str], object]


class WrittenUnit(BaseModel):
    feature: str
    name: str
    location: str


def narrative_lines(narrative: str) -> List[str]:
    lines = [line.strip() for line in narrative.splitlines()]
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return lines


def to_gherkin(feature: Feature) -> str:
    lines: List[str] = [f"Feature: {feature.name}"]
    for line in narrative_lines(feature.narrative):
        lines.append(NARRATIVE_INDENT + line)
    for scenario in feature.scenarios:
        lines.append("")
        lines.append(f"Scenario: {scenario.title}")
        for step in scenario.steps:
            lines.append(f"{STEP_INDENT}{step.keyword} {render_template(step.template, step.args)}")
    return "\n".join(lines) + "\n"


def sanitize_name(name: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", name).strip().strip(".")
    return cleaned or "feature"


class DirectorySink:
    """Writes each unit to ``<out_dir>/<name><suffix>``."""

    def __init__(self, out_dir: Path, suffix: str = ".spec"):
        self.out_dir = Path(out_dir)
        self.suffix = suffix

    def __call__(self, name: str, content: str) -> Path:
        self.out_dir.mkdir(parents=True, exist_ok=True)
        file_path = self.out_dir / (name + self.suffix)
        file_path.write_text(content, encoding="utf-8")
        return file_path


class MemorySink:
    def __init__(self) -> None:
        self.units: Dict[str, str] = {}

    def __call__(self, name: str, content: str) -> str:
        self.units[name] = content
        return name


def write_document(
    document: Document,
    sink: Sink,
    progress_callback: Optional[Callable[[int, int, Feature], None]] = None,
) -> Tuple[List[WrittenUnit], List[GenerationWarning]]:
    """Render every Feature and hand it to ``sink``, one unit per Feature.

    A failing sink call is reported and the remaining Features are still
    written. Names that collide within the run get a numeric suffix.
    """
    written: List[WrittenUnit] = []
    warnings: List[GenerationWarning] = []
    used: Set[str] = set()  # casefolded, for case-insensitive file systems
    total = len(document.features)

    for idx, feat in enumerate(document.features, start=1):
        base = sanitize_name(feat.name)
        name, n = base, 1
        while name.casefold() in used:
            n += 1
            name = f"{base}_{n}"
        used.add(name.casefold())
        if name != base:
            message = f"Feature {feat.name!r} collides with an earlier feature file; written as {name!r}"
            logger.warning(message)
            warnings.append(GenerationWarning(kind=WarningKind.NAME_COLLISION, message=message, feature=feat.name))

        content = to_gherkin(feat)
        try:
            location = sink(name, content)
        except Exception as e:
            message = f"Could not write feature {feat.name!r}: {type(e).__name__}: {e}"
            logger.warning(message)
            warnings.append(GenerationWarning(kind=WarningKind.SINK, message=message, feature=feat.name))
            continue

        written.append(WrittenUnit(feature=feat.name, name=name, location=str(location)))
        if progress_callback:
            try:
                progress_callback(idx, total, feat)
            except Exception as e:
                logger.warning("Progress callback failed for %r: %s", feat.name, e)

    return written, warnings


def write_features(
    document: Document,
    out_dir: Path,
    suffix: str = ".spec",
    progress_callback: Optional[Callable[[int, int, Feature], None]] = None,
) -> Tuple[List[WrittenUnit], List[GenerationWarning]]:
    return write_document(document, DirectorySink(out_dir, suffix), progress_callback)
