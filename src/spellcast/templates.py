"""Spell template library: named canonical strokes.

Templates are keyed by name; adding a template with an existing name replaces
it wholesale. The library is guarded by a lock and readers get snapshots, so a
match running on another thread never sees a half-written template.
"""

from __future__ import annotations

import json
import logging
import math
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Mapping, Optional

import numpy as np

from spellcast.normalizer import NormalizedPath, PathLike, as_points, normalize

logger = logging.getLogger("spellcast.templates")

LIBRARY_VERSION = 1


@dataclass(eq=False)
class GestureTemplate:
    """A named canonical stroke.

    ``raw`` keeps the stroke as it was drawn so orientation-sensitive matching
    remains possible; imported presets may not have one.
    """
    name: str
    path: NormalizedPath
    raw: Optional[np.ndarray] = None
    created_at: float = field(default_factory=time.time)

    @classmethod
    def from_stroke(cls, name: str, stroke: PathLike) -> GestureTemplate:
        """Normalize ``stroke`` and build a template. Raises ValueError if degenerate."""
        normalized = normalize(stroke)
        if normalized is None:
            raise ValueError(f"cannot build template {name!r} from a degenerate stroke")
        return cls(name=name, path=normalized, raw=as_points(stroke).copy())

    def to_dict(self) -> dict:
        data = {
            "name": self.name,
            "path": self.path.tolist(),
            "created_at": self.created_at,
        }
        if self.raw is not None:
            data["raw"] = [[float(x), float(y)] for x, y in self.raw]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> GestureTemplate:
        raw = data.get("raw")
        return cls(
            name=data["name"],
            path=NormalizedPath(data["path"]),
            raw=as_points(raw) if raw else None,
            created_at=data.get("created_at", 0.0),
        )


class TemplateLibrary:
    """Name → GestureTemplate mapping with unique keys."""

    def __init__(self, templates: Optional[Mapping[str, GestureTemplate]] = None):
        self._templates: dict[str, GestureTemplate] = {}
        self._lock = threading.Lock()
        if templates:
            self.import_templates(templates)

    def add(self, template: GestureTemplate):
        """Insert a template, replacing any template with the same name."""
        with self._lock:
            replaced = template.name in self._templates
            self._templates[template.name] = template
        if replaced:
            logger.warning("Template '%s' already existed, replacing", template.name)
        else:
            logger.info("Added template: %s", template.name)

    def remove(self, name: str) -> bool:
        """Delete a template. Returns False if the name was unknown."""
        with self._lock:
            removed = self._templates.pop(name, None) is not None
        if removed:
            logger.info("Deleted template: %s", name)
        return removed

    def get(self, name: str) -> Optional[GestureTemplate]:
        with self._lock:
            return self._templates.get(name)

    def snapshot(self) -> dict[str, GestureTemplate]:
        """Consistent copy of the mapping for readers."""
        with self._lock:
            return dict(self._templates)

    def import_templates(self, templates: Mapping[str, GestureTemplate]) -> int:
        """Bulk-load templates keyed by name. Returns the number imported."""
        with self._lock:
            for name, template in templates.items():
                if template.name != name:
                    template = GestureTemplate(
                        name=name, path=template.path,
                        raw=template.raw, created_at=template.created_at,
                    )
                self._templates[name] = template
        logger.info("Imported %d templates", len(templates))
        return len(templates)

    def clear(self):
        with self._lock:
            self._templates.clear()

    @property
    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._templates)

    def to_dict(self) -> dict:
        snap = self.snapshot()
        return {
            "version": LIBRARY_VERSION,
            "templates": [snap[name].to_dict() for name in sorted(snap)],
        }

    @classmethod
    def from_dict(cls, data: dict) -> TemplateLibrary:
        library = cls()
        entries = [GestureTemplate.from_dict(e) for e in data.get("templates", [])]
        library.import_templates({t.name: t for t in entries})
        return library

    def save_to_file(self, path: str | Path):
        """Save all templates to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def load_from_file(self, path: str | Path) -> int:
        """Merge templates from a JSON file into this library."""
        with open(path) as f:
            data = json.load(f)
        entries = [GestureTemplate.from_dict(e) for e in data.get("templates", [])]
        return self.import_templates({t.name: t for t in entries})

    @classmethod
    def with_defaults(cls) -> TemplateLibrary:
        """Create a library with built-in geometric spells."""
        library = cls()
        for name, stroke in _preset_strokes().items():
            library.add(GestureTemplate.from_stroke(name, stroke))
        return library

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._templates

    def __len__(self) -> int:
        with self._lock:
            return len(self._templates)

    def __iter__(self) -> Iterator[GestureTemplate]:
        return iter(self.snapshot().values())


def _preset_strokes() -> dict[str, np.ndarray]:
    """Geometric primitives in screen coordinates (y grows downward)."""
    # Circle, drawn clockwise on screen starting at the top
    angles = np.linspace(-math.pi / 2, 1.5 * math.pi, 33)
    circle = np.column_stack([np.cos(angles), np.sin(angles)]) * 100 + 150

    triangle = np.array([
        [150, 50], [250, 230], [50, 230], [150, 50],
    ], dtype=np.float64)

    square = np.array([
        [50, 50], [250, 50], [250, 250], [50, 250], [50, 50],
    ], dtype=np.float64)

    zigzag = np.array([
        [50, 200], [100, 100], [150, 200], [200, 100], [250, 200],
    ], dtype=np.float64)

    # Horizontal flick, left to right
    line = np.array([[50 + i * 10.0, 150.0] for i in range(21)], dtype=np.float64)

    return {
        "circle": circle,
        "triangle": triangle,
        "square": square,
        "zigzag": zigzag,
        "line": line,
    }
