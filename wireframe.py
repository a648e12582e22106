"""Wireframe assembly for detected steps and staircases.

Produces LINE_LIST markers: flat point lists consumed pairwise, one marker per
published entity. Every marker uses id 0, so each publish overwrites the
previous one, and has no lifetime limit.
"""
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from frames import to_display
from stair_model import Point, Slab, Staircase
from step_geometry import corners_of, outline_edges, riser_edges

LINE_WIDTH = 0.05

# Channel rendering info
CHANNEL_ORDER = ["steps", "stairs"]
CHANNEL_STYLE = {
    "steps":  {"color": (0.0, 0.0, 1.0, 1.0), "layer": "STEPS"},
    "stairs": {"color": (0.0, 1.0, 0.0, 1.0), "layer": "STAIRS"},
}


@dataclass
class LineListMarker:
    frame_id: str
    namespace: str
    color: Tuple[float, float, float, float]
    points: List[Point] = field(default_factory=list)
    id: int = 0
    scale: float = LINE_WIDTH
    lifetime: Optional[float] = None
    stamp: float = field(default_factory=time.time)

    @property
    def segments(self):
        """Yield (start, end) pairs."""
        for i in range(0, len(self.points) - 1, 2):
            yield self.points[i], self.points[i + 1]

    def to_dict(self):
        return {
            "type": "LINE_LIST",
            "frame_id": self.frame_id,
            "namespace": self.namespace,
            "id": self.id,
            "points": [list(p) for p in self.points],
            "color": list(self.color),
            "scale": self.scale,
            "lifetime": self.lifetime,
            "stamp": self.stamp,
        }


def _output_corners(slab: Slab, to_output: Callable) -> List[Point]:
    return [to_output(p) for p in corners_of(slab)]


def build_step_outlines(slabs, frame_id, namespace, to_output=to_display,
                        color=CHANNEL_STYLE["steps"]["color"]) -> LineListMarker:
    """Outline every slab's front face, in input order.

    ``to_output`` maps each sensor-convention corner into the marker's frame.
    """
    marker = LineListMarker(frame_id=frame_id, namespace=namespace, color=tuple(color))
    for slab in slabs:
        marker.points.extend(outline_edges(_output_corners(slab, to_output)))
    return marker


def build_staircase_wireframe(staircase: Staircase, frame_id, namespace, to_output=to_display,
                              color=CHANNEL_STYLE["stairs"]["color"]) -> LineListMarker:
    """Front faces of all steps followed by the risers between neighbours.

    A staircase of N slabs yields 8N + 4(N-1) points.
    """
    corner_sets = [_output_corners(slab, to_output) for slab in staircase.steps]

    marker = LineListMarker(frame_id=frame_id, namespace=namespace, color=tuple(color))
    # 1. Front faces
    for corners in corner_sets:
        marker.points.extend(outline_edges(corners))
    # 2. Risers
    for i in range(1, len(corner_sets)):
        marker.points.extend(riser_edges(corner_sets[i - 1], corner_sets[i]))
    return marker
