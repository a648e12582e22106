"""Coordinate frames for Stairs Wireframe Studio.

Two concerns live here:
  - Axis conventions. The depth sensor reports points as x=right, y=down,
    z=forward. Rendering and the world frame use x=forward, y=left, z=up.
    ``to_display`` / ``to_sensor`` remap between the two.
  - Named frames. A ``RigidTransformer`` asks a frame-lookup collaborator for
    the transform between two named frames and applies it to a point.
    ``StaticTransformBuffer`` is the in-process collaborator: a tree of fixed
    parent -> child transforms.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

from scipy.spatial.transform import Rotation

from stair_model import Point

LOG = logging.getLogger(__name__)

IDENTITY_QUAT = (0.0, 0.0, 0.0, 1.0)


# ===========================================================================
# ERRORS
# ===========================================================================

class FrameLookupError(LookupError):
    """Raised by a lookup collaborator that cannot resolve a frame pair."""


class TransformError(RuntimeError):
    """Base class for failures while moving a point between frames."""


class TransformUnavailable(TransformError):
    """No frame-lookup collaborator is attached."""


class FrameLookupFailed(TransformError):
    """The collaborator could not resolve ``target_frame <- source_frame``."""

    def __init__(self, target_frame, source_frame, cause=None):
        self.target_frame = target_frame
        self.source_frame = source_frame
        self.cause = cause
        msg = f"Failed to transform '{target_frame}' -> '{source_frame}'"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)


# ===========================================================================
# AXIS CONVENTIONS
# ===========================================================================

def to_display(p) -> Point:
    """Sensor (right, down, forward) -> display (forward, left, up)."""
    x, y, z = p
    return (z, -x, -y)


def to_sensor(p) -> Point:
    """Display (forward, left, up) -> sensor (right, down, forward)."""
    x, y, z = p
    return (-y, -z, x)


# ===========================================================================
# RIGID TRANSFORMS
# ===========================================================================

@dataclass(frozen=True)
class FrameTransform:
    """Maps points from a source frame into a target frame: p' = R p + t.

    ``rotation`` is a unit quaternion in (x, y, z, w) order.
    """

    translation: Point = (0.0, 0.0, 0.0)
    rotation: Tuple[float, float, float, float] = IDENTITY_QUAT

    @classmethod
    def identity(cls) -> "FrameTransform":
        return cls()

    @classmethod
    def from_rotation(cls, translation, rotation: Rotation) -> "FrameTransform":
        return cls(
            translation=tuple(float(v) for v in translation),
            rotation=tuple(float(q) for q in rotation.as_quat()),
        )

    def _rot(self) -> Rotation:
        return Rotation.from_quat(self.rotation)

    def apply(self, point, rotate: bool = True) -> Point:
        tx, ty, tz = self.translation
        if rotate:
            point = self._rot().apply(point)
        x, y, z = (float(c) for c in point)
        return (x + tx, y + ty, z + tz)

    def compose(self, other: "FrameTransform") -> "FrameTransform":
        """Transform equivalent to applying ``other`` first, then ``self``."""
        rot = self._rot()
        t = rot.apply(other.translation)
        translation = [t[i] + self.translation[i] for i in range(3)]
        return FrameTransform.from_rotation(translation, rot * other._rot())

    def inverse(self) -> "FrameTransform":
        inv = self._rot().inv()
        return FrameTransform.from_rotation(-inv.apply(self.translation), inv)


class FrameLookup(Protocol):
    """Frame lookup collaborator.

    Failures are reported as ``LookupError`` (e.g. ``FrameLookupError``) or
    ``RuntimeError`` subclasses, as tf-style extrapolation errors are.
    """

    def lookup(self, target_frame: str, source_frame: str,
               at_time: Optional[float] = None) -> FrameTransform:
        ...


class StaticTransformBuffer:
    """Tree of static transforms between named frames.

    Each edge maps child coordinates into its parent. A lookup walks both
    frames up to their common root and combines the two chains.
    Time is ignored: every edge is valid at all times.
    """

    def __init__(self):
        self._parents = {}

    def set_transform(self, parent: str, child: str, transform: FrameTransform):
        if parent == child:
            raise ValueError(f"Frame '{child}' cannot be its own parent")
        frame = parent
        while frame in self._parents:
            frame = self._parents[frame][0]
            if frame == child:
                raise ValueError(f"Setting '{parent}' -> '{child}' would create a cycle")
        self._parents[child] = (parent, transform)
        LOG.debug(f"Static transform '{parent}' -> '{child}': {transform.translation}")

    def frames(self):
        known = set(self._parents)
        known.update(parent for parent, _ in self._parents.values())
        return known

    def _chain_to_root(self, frame):
        if frame not in self.frames():
            raise FrameLookupError(f"Frame '{frame}' does not exist")
        tf = FrameTransform.identity()
        while frame in self._parents:
            parent, edge = self._parents[frame]
            tf = edge.compose(tf)
            frame = parent
        return frame, tf

    def lookup(self, target_frame, source_frame, at_time=None) -> FrameTransform:
        source_root, root_from_source = self._chain_to_root(source_frame)
        target_root, root_from_target = self._chain_to_root(target_frame)
        if source_root != target_root:
            raise FrameLookupError(
                f"'{target_frame}' and '{source_frame}' are not part of the same tree"
            )
        return root_from_target.inverse().compose(root_from_source)


class RigidTransformer:
    """Moves points between named frames using a lookup collaborator.

    Only the translation is applied unless ``apply_rotation`` is requested.
    Failures are raised to the caller; nothing is retried here.
    """

    def __init__(self, lookup: Optional[FrameLookup] = None):
        self.lookup = lookup

    @property
    def available(self) -> bool:
        return self.lookup is not None

    def lookup_transform(self, target_frame, source_frame, at_time=None) -> FrameTransform:
        if self.lookup is None:
            LOG.error("Frame lookup is not initialized")
            raise TransformUnavailable("Frame lookup is not initialized")
        try:
            return self.lookup.lookup(target_frame, source_frame, at_time)
        except (LookupError, RuntimeError) as e:
            LOG.warning(f"Failed to transform '{target_frame}' -> '{source_frame}'")
            LOG.warning(str(e))
            raise FrameLookupFailed(target_frame, source_frame, e) from e

    def transform(self, point, target_frame, source_frame, at_time=None,
                  apply_rotation=False) -> Point:
        tf = self.lookup_transform(target_frame, source_frame, at_time)
        return tf.apply(point, rotate=apply_rotation)
