"""Single-stroke shape normalization ($1 style).

Turns a variable-length, arbitrarily placed, sized and oriented stroke into a
canonical 64-point path so two strokes can be compared point by point:

1. resample to 64 points evenly spaced by arc length
2. rotate so the first point → centroid vector has angle 0
3. scale so the larger bounding-box side is REFERENCE_SIZE
4. translate the centroid to the origin

Degenerate strokes (fewer than 2 points, zero length) are an expected steady
state while a gesture is starting, so they return None instead of raising.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Union

import numpy as np

NUM_POINTS = 64
REFERENCE_SIZE = 250.0
BOX_SIZE = 100.0

PathLike = Union[np.ndarray, Sequence[Sequence[float]]]


class NormalizedPath:
    """A canonical stroke: exactly NUM_POINTS (x, y) pairs, read-only.

    Equality compares point values, so templates survive a save/load round trip.
    """

    __slots__ = ("_points",)

    def __init__(self, points: PathLike):
        arr = np.array(points, dtype=np.float64)
        if arr.shape != (NUM_POINTS, 2):
            raise ValueError(
                f"NormalizedPath needs shape ({NUM_POINTS}, 2), got {arr.shape}"
            )
        arr.setflags(write=False)
        self._points = arr

    @property
    def points(self) -> np.ndarray:
        return self._points

    def tolist(self) -> list[list[float]]:
        return [[round(float(x), 4), round(float(y), 4)] for x, y in self._points]

    def __len__(self) -> int:
        return NUM_POINTS

    def __iter__(self):
        return iter(self._points)

    def __eq__(self, other) -> bool:
        if not isinstance(other, NormalizedPath):
            return NotImplemented
        return bool(np.allclose(self._points, other._points, atol=1e-3))

    def __repr__(self) -> str:
        c = self._points.mean(axis=0)
        return f"NormalizedPath(n={NUM_POINTS}, centroid=({c[0]:.2f}, {c[1]:.2f}))"


def as_points(path: PathLike) -> np.ndarray:
    """Coerce a path into an (N, 2) float array (empty paths become shape (0, 2))."""
    arr = np.asarray(path, dtype=np.float64)
    if arr.size == 0:
        return np.zeros((0, 2), dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] < 2:
        raise ValueError(f"path must be a sequence of (x, y) pairs, got shape {arr.shape}")
    return arr[:, :2]


def path_length(points: np.ndarray) -> float:
    """Total arc length of a polyline."""
    if len(points) < 2:
        return 0.0
    return float(np.sum(np.linalg.norm(np.diff(points, axis=0), axis=1)))


def centroid(points: np.ndarray) -> np.ndarray:
    return points.mean(axis=0)


def resample(path: PathLike, n: int = NUM_POINTS) -> Optional[np.ndarray]:
    """Resample to ``n`` points evenly spaced along the polyline.

    Walks the segments accumulating distance; whenever the distance since the
    last emitted point reaches ``total / (n - 1)`` a point is interpolated on
    the current segment and the walk continues from it.

    Returns None for fewer than 2 points or zero total length.
    """
    pts = as_points(path)
    if len(pts) < 2 or not np.all(np.isfinite(pts)):
        return None

    total = path_length(pts)
    if total <= 0.0:
        return None

    interval = total / (n - 1)
    out = [pts[0].copy()]
    acc = 0.0
    prev = pts[0]
    i = 1

    while i < len(pts) and len(out) < n:
        cur = pts[i]
        d = float(math.hypot(cur[0] - prev[0], cur[1] - prev[1]))
        if d > 0.0 and acc + d >= interval:
            t = (interval - acc) / d
            q = prev + t * (cur - prev)
            out.append(q)
            # q becomes the start of the remaining part of this segment
            prev = q
            acc = 0.0
        else:
            acc += d
            prev = cur
            i += 1

    # Rounding can leave the last point unemitted
    while len(out) < n:
        out.append(pts[-1].copy())

    return np.array(out, dtype=np.float64)


def indicative_angle(points: np.ndarray) -> float:
    """Angle of the vector from the first point to the centroid."""
    c = centroid(points)
    return math.atan2(c[1] - points[0][1], c[0] - points[0][0])


def rotate_by(points: np.ndarray, theta: float) -> np.ndarray:
    """Rotate every point by ``theta`` radians about the centroid."""
    c = centroid(points)
    cos_t, sin_t = math.cos(theta), math.sin(theta)
    rel = points - c
    rotated = np.empty_like(points)
    rotated[:, 0] = rel[:, 0] * cos_t - rel[:, 1] * sin_t + c[0]
    rotated[:, 1] = rel[:, 0] * sin_t + rel[:, 1] * cos_t + c[1]
    return rotated


def rotate_to_zero(points: np.ndarray) -> np.ndarray:
    return rotate_by(points, -indicative_angle(points))


def scale_to_reference(points: np.ndarray, size: float = REFERENCE_SIZE) -> np.ndarray:
    """Scale uniformly so the larger bounding-box side equals ``size``.

    A zero-size box is passed through unchanged.
    """
    span = points.max(axis=0) - points.min(axis=0)
    extent = float(span.max())
    if extent <= 1e-12:
        return points.copy()
    return points * (size / extent)


def translate_to_origin(points: np.ndarray) -> np.ndarray:
    return points - centroid(points)


def normalize(path: PathLike) -> Optional[NormalizedPath]:
    """Full resample → rotate → scale → translate pipeline.

    Returns None when the stroke is degenerate.
    """
    resampled = resample(path)
    if resampled is None:
        return None
    pts = rotate_to_zero(resampled)
    pts = scale_to_reference(pts)
    pts = translate_to_origin(pts)
    return NormalizedPath(pts)


def normalize_box(path: PathLike, box_size: float = BOX_SIZE) -> Optional[NormalizedPath]:
    """Cheap orientation-sensitive variant: resample, then fit into a [0, box_size] square.

    No rotation is applied, so strokes drawn in different directions stay different.
    """
    resampled = resample(path)
    if resampled is None:
        return None
    pts = resampled - resampled.min(axis=0)
    return NormalizedPath(scale_to_reference(pts, box_size))


def path_distance(a: PathLike, b: PathLike) -> float:
    """Mean Euclidean distance between corresponding points of two equal-length paths."""
    pa = a.points if isinstance(a, NormalizedPath) else as_points(a)
    pb = b.points if isinstance(b, NormalizedPath) else as_points(b)
    if pa.shape != pb.shape:
        raise ValueError(f"paths differ in shape: {pa.shape} vs {pb.shape}")
    return float(np.mean(np.linalg.norm(pa - pb, axis=1)))


def similarity(a: PathLike, b: PathLike, reference_size: float = REFERENCE_SIZE) -> float:
    """Score in [0, 1]; 1.0 means identical paths.

    ``1 - distance / (half the diagonal of the reference square)``, clamped at 0.
    """
    half_diagonal = 0.5 * math.sqrt(2.0) * reference_size
    return max(0.0, 1.0 - path_distance(a, b) / half_diagonal)
