"""Stairs detection node.

Owns the configuration, the staircase registry, the frame transformer and the
marker sink, and exposes the operations a host transport dispatches to:
  - consume_frame: fit slabs to point clusters and register staircases
  - export_stairs / import_stairs / clear_stairs: registry services
  - publish: render the registry (already in the world frame) as wireframes

The host is expected to call one operation at a time.
"""
import logging
from typing import Optional, Protocol, runtime_checkable

import yaml

from frames import (
    FrameTransform,
    RigidTransformer,
    StaticTransformBuffer,
    TransformError,
    TransformUnavailable,
    to_sensor,
)
from stair_model import Slab, Staircase, make_sample_stairs
from stair_registry import StaircaseRegistry
from validators.step_dimensions import StepDimensionValidator
from wireframe import build_staircase_wireframe, build_step_outlines

LOG = logging.getLogger(__name__)

# Default Configuration
DEFAULT_CONFIG = {
    "input": "/camera/depth/points",
    "steps": "/stairsdetection/steps",
    "stairs": "/stairsdetection/stairs",
    "publish_steps": True,
    "publish_stairs": True,
    "camera_height_above_ground": 0.5,
    "max_step_width": 2.0,
    "min_step_height": 0.1,
    "max_step_height": 0.25,
    "segmentation_iterations": 1000,
    "segmentation_threshold": 0.01,
    "camera_frame": "camera",
    "robot_frame": "base_link",
    "world_frame": "world",
    "namespace": "stairsdetection",
    "use_sample_data": False,
}


def load_config(path=None, **overrides):
    """Merge an optional YAML file and keyword overrides over DEFAULT_CONFIG."""
    updates = {}
    if path is not None:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        updates.update(data)
    updates.update(overrides)

    unknown = set(updates) - set(DEFAULT_CONFIG)
    if unknown:
        raise ValueError(f"Unknown config keys: {sorted(unknown)}")

    config = DEFAULT_CONFIG.copy()
    config.update(updates)
    return config


def make_static_buffer(config) -> StaticTransformBuffer:
    """Static frame tree: world -> robot (identity) -> camera (camera height)."""
    buffer = StaticTransformBuffer()
    world, robot, camera = config["world_frame"], config["robot_frame"], config["camera_frame"]
    if robot != world:
        buffer.set_transform(world, robot, FrameTransform.identity())
    if camera != robot:
        height = float(config["camera_height_above_ground"])
        buffer.set_transform(robot, camera, FrameTransform(translation=(0.0, 0.0, height)))
    return buffer


# ===========================================================================
# CAPABILITIES
# ===========================================================================

@runtime_checkable
class FrameConsumer(Protocol):
    def consume_frame(self, clusters, staircases=None) -> list: ...


@runtime_checkable
class StairExporter(Protocol):
    def export_stairs(self) -> list: ...


@runtime_checkable
class StairImporter(Protocol):
    def import_stairs(self, data) -> bool: ...


@runtime_checkable
class StairClearer(Protocol):
    def clear_stairs(self) -> bool: ...


class MarkerSink(Protocol):
    def publish(self, channel: str, markers: list) -> None: ...


class MarkerBuffer:
    """Sink that keeps the most recent markers published on each channel."""

    def __init__(self):
        self._latest = {}

    def publish(self, channel, markers):
        self._latest[channel] = list(markers)

    def latest(self, channel):
        return self._latest.get(channel, [])


# ===========================================================================
# NODE
# ===========================================================================

class StairsNode:
    def __init__(self, config=None, registry: Optional[StaircaseRegistry] = None,
                 frame_lookup=None, sink: Optional[MarkerSink] = None):
        self.config = config if config is not None else load_config()
        if frame_lookup is None:
            raise TransformUnavailable("StairsNode needs a frame lookup collaborator")

        self.registry = registry if registry is not None else StaircaseRegistry()
        self.transformer = RigidTransformer(frame_lookup)
        self.sink = sink if sink is not None else MarkerBuffer()

        if self.config["use_sample_data"]:
            for staircase in make_sample_stairs():
                self.registry.append(staircase)

        LOG.info(
            f"Stairs node ready: input={self.config['input']}, "
            f"camera='{self.config['camera_frame']}', world='{self.config['world_frame']}', "
            f"{len(self.registry)} staircase(s) loaded"
        )

    # --- Ingestion --------------------------------------------------------

    def consume_frame(self, clusters, staircases=None):
        """Fit one slab per cluster and register the given staircase groups.

        Args:
            clusters: point clusters (each N x 3, sensor convention, camera frame)
            staircases: optional lists of cluster indices, bottom step first

        Returns the fitted slabs in cluster order. A group referring to a
        missing or empty cluster rejects the whole frame before anything is
        published or registered. Staircases are placed in the world frame
        once, here; if the camera cannot be placed this frame's staircases
        are dropped and the steps channel is still published.
        """
        slabs_by_index = {}
        for i, cluster in enumerate(clusters):
            try:
                slabs_by_index[i] = Slab.from_points(cluster)
            except ValueError as e:
                LOG.warning(f"Skipping cluster {i}: {e}")

        new_stairs = []
        for group in staircases or []:
            if not group:
                raise ValueError("Staircase group is empty")
            missing = [i for i in group if i not in slabs_by_index]
            if missing:
                raise ValueError(f"Staircase refers to unknown or empty clusters {missing}")
            new_stairs.append(Staircase.from_slabs(slabs_by_index[i] for i in group))

        slabs = list(slabs_by_index.values())
        self._report_dimension_issues(slabs, new_stairs)

        if self.config["publish_steps"]:
            self.publish_steps(slabs)
        if new_stairs:
            self._register_in_world(new_stairs)
        return slabs

    def _register_in_world(self, stairs):
        """Shift camera-frame staircases into the world frame and store them.

        Slabs keep sensor axis order; only their position changes.
        """
        world, camera = self.config["world_frame"], self.config["camera_frame"]
        try:
            tf = self.transformer.lookup_transform(world, camera)
        except TransformError as e:
            LOG.warning(f"Dropping {len(stairs)} staircase(s) from this frame: {e}")
            return 0
        offset = to_sensor(tf.translation)
        for staircase in stairs:
            self.registry.append(Staircase.from_slabs(s.translated(offset) for s in staircase.steps))
        return len(stairs)

    def _report_dimension_issues(self, slabs, stairs):
        issues = []
        for slab in slabs:
            issues.extend(StepDimensionValidator.check_slab(slab, self.config["max_step_width"]))
        for staircase in stairs:
            issues.extend(StepDimensionValidator.check_staircase(
                staircase, self.config["min_step_height"], self.config["max_step_height"]))
        for issue in issues:
            LOG.warning(issue)
        return issues

    # --- Registry services ------------------------------------------------

    def export_stairs(self):
        return [staircase.to_dict() for staircase in self.registry.snapshot()]

    def import_stairs(self, data) -> bool:
        try:
            staircases = [Staircase.from_dict(item) for item in data]
        except (TypeError, ValueError) as e:
            LOG.warning(f"Rejected stairs import: {e}")
            return False
        self.registry.replace_all(staircases)
        return True

    def clear_stairs(self) -> bool:
        self.registry.clear()
        return True

    # --- Publishing -------------------------------------------------------

    def publish_steps(self, slabs):
        """Outline the currently visible steps in the camera frame."""
        marker = build_step_outlines(slabs, self.config["camera_frame"], self.config["namespace"])
        self.sink.publish(self.config["steps"], [marker])
        return marker

    def build_stairs_markers(self):
        """One wireframe per registered staircase, in the world frame."""
        return [
            build_staircase_wireframe(staircase, self.config["world_frame"], self.config["namespace"])
            for staircase in self.registry.snapshot()
        ]

    def publish(self):
        """Publish tick for the stairs channel.

        Returns the published markers, or None when publishing is disabled.
        """
        if not self.config["publish_stairs"]:
            return None
        markers = self.build_stairs_markers()
        self.sink.publish(self.config["stairs"], markers)
        LOG.debug(f"Published {len(markers)} staircase wireframe(s)")
        return markers
