"""Shared fixtures for the Stairs Wireframe Studio test suite."""
import sys
import os
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from frames import FrameLookupError
from stair_model import Slab, Staircase
from stair_registry import StaircaseRegistry
from stairs_node import StairsNode, load_config, make_static_buffer


class FailingLookup:
    """Lookup collaborator that can never resolve a frame pair."""

    def __init__(self):
        self.calls = []

    def lookup(self, target_frame, source_frame, at_time=None):
        self.calls.append((target_frame, source_frame))
        raise FrameLookupError(f"No transform from '{source_frame}' to '{target_frame}'")


@pytest.fixture
def two_step_staircase():
    """The two-slab staircase used by the end-to-end scenario."""
    return Staircase.from_slabs([
        Slab(min=(0.0, 0.0, 0.0), max=(1.0, 1.0, 1.0)),
        Slab(min=(0.0, 0.0, 1.0), max=(1.0, 1.0, 2.0)),
    ])


@pytest.fixture
def config():
    """Default config with the frame names used by the scenarios."""
    return load_config(camera_frame="camera", world_frame="world", robot_frame="base_link")


@pytest.fixture
def registry():
    return StaircaseRegistry()


@pytest.fixture
def node(config, registry):
    """Node wired to the static frame tree built from ``config``."""
    return StairsNode(config, registry=registry, frame_lookup=make_static_buffer(config))


@pytest.fixture
def failing_node(config, registry):
    """Node whose frame lookup always fails."""
    return StairsNode(config, registry=registry, frame_lookup=FailingLookup())
