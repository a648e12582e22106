"""FastAPI backend for Stairs Wireframe Studio.
Hosts a StairsNode and exposes its services over HTTP: point-cluster
ingestion, stairs export/import/clear, publish ticks, static transforms and
DXF/STEP wireframe downloads.

Usage:
    python api.py [--config stairs.yaml] [--port 8000] [--use_sample_data]
"""
import os
import logging
import argparse
from fastapi import FastAPI, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, Field, model_validator
from scipy.spatial.transform import Rotation
from frames import FrameTransform
from stairs_node import StairsNode, load_config, make_static_buffer
from wireframe_export import wireframe_to_dxf, wireframe_to_step

LOG = logging.getLogger(__name__)

app = FastAPI()

CONFIG = None
transform_buffer = None
node = None


def init_node(config):
    """(Re)build the hosted node and its static frame tree from ``config``."""
    global CONFIG, transform_buffer, node
    CONFIG = config
    transform_buffer = make_static_buffer(config)
    node = StairsNode(config, frame_lookup=transform_buffer)
    return node


init_node(load_config(os.environ.get("STAIRS_CONFIG")))


class SlabModel(BaseModel):
    min: list[float] = Field(min_length=3, max_length=3)
    max: list[float] = Field(min_length=3, max_length=3)

    @model_validator(mode="after")
    def check_extent(self):
        if any(lo > hi for lo, hi in zip(self.min, self.max)):
            raise ValueError(f"min {self.min} exceeds max {self.max}")
        return self


class StaircaseModel(BaseModel):
    steps: list[SlabModel]


class ImportRequest(BaseModel):
    stairs: list[StaircaseModel]


class FrameRequest(BaseModel):
    clusters: list[list[list[float]]]
    staircases: list[list[int]] = []


class TransformRequest(BaseModel):
    parent: str
    child: str
    translation: list[float] = Field(default=[0.0, 0.0, 0.0], min_length=3, max_length=3)
    rotation: list[float] = Field(default=[0.0, 0.0, 0.0, 1.0], min_length=4, max_length=4)


def _channel_topic(channel):
    if channel not in ("steps", "stairs"):
        raise HTTPException(status_code=404, detail=f"Unknown channel '{channel}'")
    return CONFIG[channel]


def _stairs_wireframe():
    return {"stairs": node.build_stairs_markers()}


@app.get("/defaults")
async def get_defaults():
    return CONFIG


# ===========================================================================
# SERVICES
# ===========================================================================

@app.get("/stairs")
async def export_stairs():
    return {"stairs": node.export_stairs()}


@app.post("/stairs/import")
async def import_stairs(req: ImportRequest):
    data = req.model_dump()["stairs"]
    if not node.import_stairs(data):
        raise HTTPException(status_code=400, detail="Malformed stairs data")
    return {"success": True, "count": len(data)}


@app.post("/stairs/clear")
async def clear_stairs():
    return {"success": node.clear_stairs()}


# ===========================================================================
# INGESTION & PUBLISHING
# ===========================================================================

@app.post("/frames")
async def consume_frame(req: FrameRequest):
    before = len(node.registry)
    try:
        slabs = node.consume_frame(req.clusters, req.staircases)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "steps": [s.to_dict() for s in slabs],
        "registered": len(node.registry) - before,
    }


@app.post("/publish")
async def publish():
    markers = node.publish()
    return {
        "published": markers is not None,
        "markers": [m.to_dict() for m in markers or []],
    }


@app.get("/markers/{channel}")
async def get_markers(channel: str):
    topic = _channel_topic(channel)
    return {"topic": topic, "markers": [m.to_dict() for m in node.sink.latest(topic)]}


@app.post("/transforms")
async def set_transform(req: TransformRequest):
    try:
        tf = FrameTransform.from_rotation(req.translation, Rotation.from_quat(req.rotation))
        transform_buffer.set_transform(req.parent, req.child, tf)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    LOG.info(f"Static transform set: '{req.parent}' -> '{req.child}'")
    return {"parent": req.parent, "child": req.child,
            "translation": list(tf.translation), "rotation": list(tf.rotation)}


# ===========================================================================
# EXPORTS
# ===========================================================================

@app.get("/export/dxf")
def export_dxf_file():
    """DXF with one LINE per wireframe segment of every registered staircase."""
    content = wireframe_to_dxf(_stairs_wireframe())
    return Response(
        content=content,
        media_type="application/dxf",
        headers={"Content-Disposition": "attachment; filename=stairs_wireframe.dxf"},
    )


@app.get("/export/step")
def export_step_file():
    try:
        content = wireframe_to_step(_stairs_wireframe())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return Response(
        content=content,
        media_type="application/step",
        headers={"Content-Disposition": "attachment; filename=stairs_wireframe.step"},
    )


if __name__ == "__main__":
    import uvicorn

    parser = argparse.ArgumentParser(description="Stairs Wireframe Studio server")
    parser.add_argument("--config", default=os.environ.get("STAIRS_CONFIG"),
                        help="YAML file overriding DEFAULT_CONFIG")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--use_sample_data", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s | %(levelname)s | %(name)s | %(message)s'
    )

    overrides = {"use_sample_data": True} if args.use_sample_data else {}
    init_node(load_config(args.config, **overrides))
    uvicorn.run(app, host=args.host, port=args.port)
