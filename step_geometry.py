"""Step geometry helpers.
Derive the front-face rectangle of a slab and the riser edges between two
consecutive slabs, as flat line lists (points consumed pairwise).
"""
from stair_model import Slab


def corners_of(slab: Slab):
    """Return the four front-face corners [p1, p2, p3, p4] of a slab.

    p1 and p3 are the box's own min and max corners. p2 and p4 are the other
    two rectangle corners, obtained by swapping only the y component.
    """
    lo, hi = slab.min, slab.max
    return [
        lo,
        (lo[0], hi[1], lo[2]),
        hi,
        (hi[0], lo[1], hi[2]),
    ]


def outline_edges(corners):
    """Trace the rectangle as four independent segments (8 points)."""
    p1, p2, p3, p4 = corners
    return [p1, p2, p2, p3, p3, p4, p4, p1]


def riser_edges(lower, upper):
    """Two segments joining the corner sets of adjacent slabs (4 points).

    ``lower`` is the earlier slab in the staircase, ``upper`` the next one.
    Pairs upper corner 1 with lower corner 2 and upper 4 with lower 3.
    """
    return [upper[0], lower[1], upper[3], lower[2]]
