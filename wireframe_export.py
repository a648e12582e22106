"""File export for assembled wireframes.
DXF via ezdxf (one LINE per segment, one layer per channel) and STEP via
build123d (one Edge per segment in a single Compound).
"""
import io
import logging
import math
import os
import tempfile

import ezdxf
from build123d import Compound, Edge, export_step

from wireframe import CHANNEL_ORDER, CHANNEL_STYLE

LOG = logging.getLogger(__name__)

# AutoCAD colour index per channel
ACAD_COLORS = {"steps": 5, "stairs": 3}

# OCCT refuses to build edges between coincident points
MIN_SEGMENT_LENGTH = 1e-9


def _layer_for(channel):
    return CHANNEL_STYLE.get(channel, {}).get("layer", "0")


def wireframe_to_dxf(markers_by_channel) -> str:
    """Render {channel: [LineListMarker, ...]} as DXF text."""
    doc = ezdxf.new()
    for channel in CHANNEL_ORDER:
        doc.layers.add(_layer_for(channel), color=ACAD_COLORS[channel])
    msp = doc.modelspace()

    count = 0
    for channel, markers in markers_by_channel.items():
        layer = _layer_for(channel)
        for marker in markers:
            for start, end in marker.segments:
                msp.add_line(start, end, dxfattribs={"layer": layer})
                count += 1

    LOG.info(f"DXF export: {count} line segments")
    dxf_buffer = io.StringIO()
    doc.write(dxf_buffer)
    return dxf_buffer.getvalue()


def wireframe_to_step(markers_by_channel) -> bytes:
    """Render {channel: [LineListMarker, ...]} as a STEP file of edges.

    Zero-length segments are dropped. Raises ValueError when nothing is left.
    """
    edges = []
    skipped = 0
    for markers in markers_by_channel.values():
        for marker in markers:
            for start, end in marker.segments:
                if math.dist(start, end) < MIN_SEGMENT_LENGTH:
                    skipped += 1
                    continue
                edges.append(Edge.make_line(start, end))

    if not edges:
        raise ValueError("Wireframe has no drawable segments")
    if skipped:
        LOG.info(f"STEP export: skipped {skipped} zero-length segments")

    with tempfile.NamedTemporaryFile(suffix=".step", delete=False) as tmp:
        tmp_path = tmp.name
    try:
        export_step(Compound(edges), tmp_path)
        with open(tmp_path, "rb") as f:
            return f.read()
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
