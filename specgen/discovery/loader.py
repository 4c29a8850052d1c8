from __future__ import annotations

import hashlib
import importlib
import importlib.util
import logging
import sys
import threading
from pathlib import Path
from types import ModuleType
from typing import Dict, List, Tuple, Union

from pathspec import PathSpec

from ..errors import ModuleLoadError


logger = logging.getLogger(__name__)

Target = Union[ModuleType, str, Path]

# module name -> (mtime_ns, size) of the file it was executed from
_stamps: Dict[str, Tuple[int, int]] = {}
_load_lock = threading.RLock()


def _build_spec(globs: List[str]) -> PathSpec:
    return PathSpec.from_lines("gitwildmatch", globs)


def discover_module_files(root: Path, include_globs: List[str], ignore_globs: List[str]) -> List[Path]:
    include_spec = _build_spec(include_globs)
    ignore_spec = _build_spec(ignore_globs)
    files: List[Path] = []

    for path in root.rglob("*.py"):
        rel = path.relative_to(root)
        if ignore_spec.match_file(str(rel)):
            continue
        if path.is_dir():
            continue
        if include_spec.match_file(str(rel)):
            files.append(path)

    return sorted(files)


def expand_target(target: Target, include_globs: List[str], ignore_globs: List[str]) -> List[Target]:
    """Directories expand to the module files inside them; anything else stays as-is."""
    if isinstance(target, (str, Path)):
        path = Path(target)
        if path.is_dir():
            return list(discover_module_files(path.resolve(), include_globs, ignore_globs))
    return [target]


def _module_name_for(path: Path) -> str:
    digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:8]
    return f"{path.stem}_{digest}"


def _stamp(path: Path) -> Tuple[int, int]:
    stat = path.stat()
    return stat.st_mtime_ns, stat.st_size


def _load_from_path(path: Path) -> ModuleType:
    """Load a module from a file, executing it again when the file has changed."""
    path = path.resolve()
    if not path.is_file():
        raise ModuleLoadError(str(path), "file not found")

    name = _module_name_for(path)
    stamp = _stamp(path)
    with _load_lock:
        cached = sys.modules.get(name)
        if cached is not None and _stamps.get(name) == stamp:
            return cached
        if cached is not None:
            logger.debug("%s changed on disk; reloading", path)
            sys.modules.pop(name, None)
        module = _exec_path(path, name)
        _stamps[name] = stamp
        return module


def _exec_path(path: Path, name: str) -> ModuleType:
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise ModuleLoadError(str(path), "not an importable Python file")
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(name, None)
        raise ModuleLoadError(str(path), f"{type(e).__name__}: {e}") from e
    logger.debug("Loaded %s as %s", path, name)
    return module


def load_module(target: Target) -> ModuleType:
    """Resolve a module object, dotted module name or ``.py`` path to a module."""
    if isinstance(target, ModuleType):
        return target

    text = str(target)
    if isinstance(target, Path) or text.endswith(".py") or "/" in text or "\\" in text:
        return _load_from_path(Path(target))

    try:
        return importlib.import_module(text)
    except Exception as e:
        raise ModuleLoadError(text, f"{type(e).__name__}: {e}") from e
