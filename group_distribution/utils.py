import os
import random
from typing import Any, List, Optional, Sequence, TypeVar
from dataclasses import is_dataclass, asdict
from datetime import datetime
from enum import Enum

from pydantic import BaseModel

T = TypeVar("T")


def _ensure_output_dir(output_dir: str) -> str:
    os.makedirs(output_dir, exist_ok=True)
    return output_dir


def _project_root() -> str:
    """Return absolute path to the project root (one level up from this file's directory)."""
    return os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))


def _resolve_path(path: str) -> str:
    """Resolve relative input paths to the project root if they don't exist as given."""
    if not path:
        return path
    if os.path.isabs(path) and os.path.exists(path):
        return path
    if os.path.exists(path):
        return path
    candidate = os.path.join(_project_root(), path)
    return candidate


def _output_path(path: str) -> str:
    """Absolute output location; relative paths are taken from the current working directory."""
    return os.path.abspath(os.path.expanduser(path))


def _to_json_compatible(obj: Any) -> Any:
    """Recursively convert models, dataclasses, Enums, sets and containers to JSON-compatible primitives."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if is_dataclass(obj):
        return {k: _to_json_compatible(v) for k, v in asdict(obj).items()}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, set):
        # Sort for stable output
        return sorted(_to_json_compatible(v) for v in obj)
    if isinstance(obj, (list, tuple)):
        return [_to_json_compatible(v) for v in obj]
    if isinstance(obj, dict):
        return {k: _to_json_compatible(v) for k, v in obj.items()}
    return obj


def _shuffled(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """Return a shuffled copy of `items`, leaving the input untouched."""
    shuffled = list(items)
    (rng or random.Random()).shuffle(shuffled)
    return shuffled
