from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Iterable, Union

from .errors import FormatError
from .trace_types import ModelPoint, ModelPointSet


logger = logging.getLogger(__name__)

PointsSource = Union[str, Path, Iterable[str]]


def _parse_line(line: str, delimiter: str, line_no: int) -> ModelPoint:
    fields = line.split(delimiter)
    if len(fields) != 3:
        raise FormatError(
            f"line {line_no}: expected 3 fields separated by {delimiter!r}, got {len(fields)}",
            line_no,
        )
    coords = []
    for raw in fields:
        try:
            value = float(raw.strip())
        except ValueError:
            raise FormatError(f"line {line_no}: {raw.strip()!r} is not a number", line_no) from None
        if not math.isfinite(value):
            raise FormatError(f"line {line_no}: {raw.strip()!r} is not finite", line_no)
        coords.append(value)
    return (coords[0], coords[1], coords[2])


def _parse_lines(lines: Iterable[str], delimiter: str) -> ModelPointSet:
    points = []
    for line_no, line in enumerate(lines, 1):
        line = line.rstrip("\r\n")
        if not line.strip():
            continue
        points.append(_parse_line(line, delimiter, line_no))
    return tuple(points)


def parse_points(source: PointsSource, delimiter: str = ",") -> ModelPointSet:
    """
    Read an ordered sequence of 3D points, one ``x<d>y<d>z`` record per line.

    Args:
        source: Path to a text file, or an iterable of lines
        delimiter: Single field separator character

    Raises:
        FormatError: on a record without exactly 3 numeric fields, an
            unreadable file or an invalid delimiter
    """
    if not isinstance(delimiter, str) or len(delimiter) != 1:
        raise FormatError(f"delimiter must be a single character, got {delimiter!r}")

    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            with path.open("r", encoding="utf-8-sig") as fp:
                return _parse_lines(fp, delimiter)
        except OSError as exc:
            raise FormatError(f"cannot read points file {path}: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise FormatError(f"points file {path} is not UTF-8 text: {exc.reason} at byte {exc.start}") from exc
        except FormatError as exc:
            raise FormatError(f"{path}: {exc}", exc.line_no) from None

    return _parse_lines(source, delimiter)


class PointStore:
    """Holds the current point set; a reload either replaces it whole or not at all."""

    def __init__(self, points: ModelPointSet = ()):
        self._points: ModelPointSet = tuple(points)

    @property
    def current(self) -> ModelPointSet:
        return self._points

    def __len__(self) -> int:
        return len(self._points)

    def load(self, source: PointsSource, delimiter: str = ",") -> ModelPointSet:
        points = parse_points(source, delimiter)
        self._points = points
        if points:
            logger.info("loaded %d points", len(points))
        else:
            logger.warning("points source is empty; overlay disabled")
        return points
