from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from types import ModuleType
from typing import Callable, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from .config import AppConfig
from .discovery.loader import Target, expand_target, load_module
from .discovery.scanner import scan_module
from .errors import GenerationFailed, ModuleLoadError
from .gherkin.builder import build_document
from .gherkin.models import Document, Feature
from .gherkin.writer import DirectorySink, Sink, WrittenUnit, write_document
from .models import FeatureRecord, GenerationWarning, ScanResult, ScenarioRecord, StepRecord, WarningKind
from .runtime.registry import StepRegistry, default_registry


logger = logging.getLogger(__name__)

Targets = Union[Target, Iterable[Target]]


class GenerationResult(BaseModel):
    document: Document
    written: List[WrittenUnit] = Field(default_factory=list)
    warnings: List[GenerationWarning] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.document.features)


def _as_list(targets: Optional[Targets]) -> List[Target]:
    if targets is None:
        return []
    if isinstance(targets, (str, Path, ModuleType)):
        return [targets]
    return list(targets)


def _load_targets(targets: List[Target], config: AppConfig) -> Tuple[List[ModuleType], List[GenerationWarning]]:
    modules: List[ModuleType] = []
    warnings: List[GenerationWarning] = []
    seen = set()

    for target in targets:
        expanded = expand_target(target, config.include_globs, config.ignore_globs)
        from_directory = expanded != [target]
        if from_directory and not expanded:
            message = f"No test modules found under {target}"
            logger.warning(message)
            warnings.append(GenerationWarning(kind=WarningKind.DISCOVERY, message=message))
        for item in expanded:
            try:
                module = load_module(item)
            except ModuleLoadError as e:
                if not from_directory:
                    raise
                logger.warning(str(e))
                warnings.append(GenerationWarning(kind=WarningKind.DISCOVERY, message=str(e)))
                continue
            if id(module) not in seen:
                seen.add(id(module))
                modules.append(module)

    return modules, warnings


def scan_targets(
    targets: Optional[Targets],
    config: Optional[AppConfig] = None,
    progress_callback: Optional[Callable[[int, int, ScanResult], None]] = None,
) -> Tuple[List[ScanResult], List[GenerationWarning]]:
    """Load and scan every target; results keep the order of the targets.

    Raises ``ModuleLoadError`` when an explicitly named module cannot be loaded.
    """
    config = config or AppConfig()
    modules, warnings = _load_targets(_as_list(targets), config)

    total = len(modules)
    results: List[ScanResult] = [None] * total  # type: ignore
    completed = 0

    with ThreadPoolExecutor(max_workers=max(1, config.scan_concurrency)) as executor:
        future_to_idx = {executor.submit(scan_module, module): idx for idx, module in enumerate(modules)}
        for future in as_completed(future_to_idx):
            idx = future_to_idx[future]
            results[idx] = future.result()
            completed += 1
            if progress_callback:
                try:
                    progress_callback(completed, total, results[idx])
                except Exception as e:
                    logger.warning("Progress callback failed for %s: %s", results[idx].module, e)

    return results, warnings


def build_from_targets(
    targets: Optional[Targets],
    registry: Optional[StepRegistry] = None,
    config: Optional[AppConfig] = None,
) -> Tuple[Document, List[GenerationWarning]]:
    """Scan, merge runtime recordings and build the Document without writing it."""
    registry = registry if registry is not None else default_registry
    try:
        scans, warnings = scan_targets(targets, config)
    except ModuleLoadError as e:
        raise GenerationFailed(str(e)) from e

    features: List[FeatureRecord] = []
    scenarios: List[ScenarioRecord] = []
    steps: List[StepRecord] = []
    for scan in scans:
        features.extend(scan.features)
        scenarios.extend(scan.scenarios)
        steps.extend(scan.steps)
        warnings.extend(scan.warnings)

    runtime_features, runtime_scenarios, runtime_steps = registry.records()
    features.extend(runtime_features)
    scenarios.extend(runtime_scenarios)
    steps.extend(runtime_steps)

    document, build_warnings = build_document(features, scenarios, steps)
    warnings.extend(build_warnings)

    if not document.features:
        raise GenerationFailed("No features found in markers or runtime registrations", warnings)
    return document, warnings


def generate(
    targets: Optional[Targets],
    out_dir: Union[str, Path, None] = None,
    *,
    sink: Optional[Sink] = None,
    registry: Optional[StepRegistry] = None,
    config: Optional[AppConfig] = None,
    progress_callback: Optional[Callable[[int, int, Feature], None]] = None,
) -> GenerationResult:
    """Generate one specification document per Feature.

    Recoverable problems are returned as warnings on the result; only a run
    that produces no Document raises ``GenerationFailed``.
    """
    config = config or AppConfig()
    if sink is None:
        if out_dir is None:
            raise ValueError("Either out_dir or sink is required")
        sink = DirectorySink(Path(out_dir), config.output_suffix)

    document, warnings = build_from_targets(targets, registry, config)
    written, write_warnings = write_document(document, sink, progress_callback)
    warnings.extend(write_warnings)

    logger.info("Wrote %d of %d features", len(written), len(document.features))
    return GenerationResult(document=document, written=written, warnings=warnings)
