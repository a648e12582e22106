"""Offline wireframe generator.
Reads a stairs export (the JSON returned by GET /stairs, or a bare list of
staircases) and writes the wireframe as DXF and/or STEP. Points are remapped
to display convention; no frame transform is applied.

Usage:
    python generate_wireframe.py stairs.json [--dxf out.dxf] [--step out.step]
    python generate_wireframe.py --sample --dxf sample.dxf
"""
import sys
import json
import logging
import argparse

from stair_model import Staircase, make_sample_stairs
from stairs_node import DEFAULT_CONFIG
from wireframe import build_staircase_wireframe
from wireframe_export import wireframe_to_dxf, wireframe_to_step

LOG = logging.getLogger(__name__)


def load_stairs(path):
    with open(path, "r") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("stairs", [])
    return [Staircase.from_dict(item) for item in data]


def build_wireframes(stairs, frame_id=DEFAULT_CONFIG["camera_frame"],
                     namespace=DEFAULT_CONFIG["namespace"]):
    return {"stairs": [build_staircase_wireframe(s, frame_id, namespace) for s in stairs]}


def main(argv=None):
    parser = argparse.ArgumentParser(description="Stairs wireframe export")
    parser.add_argument("input", nargs="?", help="Stairs JSON export")
    parser.add_argument("--sample", action="store_true", help="Use synthetic sample stairs")
    parser.add_argument("--dxf", help="Write DXF to this path")
    parser.add_argument("--step", help="Write STEP to this path")
    args = parser.parse_args(argv)

    if not args.input and not args.sample:
        parser.error("either an input file or --sample is required")
    if not args.dxf and not args.step:
        parser.error("nothing to do: pass --dxf and/or --step")

    stairs = make_sample_stairs() if args.sample else load_stairs(args.input)
    LOG.info(f"Loaded {len(stairs)} staircase(s)")
    wireframes = build_wireframes(stairs)

    if args.dxf:
        with open(args.dxf, "w") as f:
            f.write(wireframe_to_dxf(wireframes))
        LOG.info(f"Exported: {args.dxf}")
    if args.step:
        with open(args.step, "wb") as f:
            f.write(wireframe_to_step(wireframes))
        LOG.info(f"Exported: {args.step}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s | %(levelname)s | %(message)s')
    try:
        sys.exit(main())
    except (OSError, ValueError) as e:
        LOG.error(f"Error: {e}")
        sys.exit(1)
