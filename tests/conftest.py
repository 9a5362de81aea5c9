import struct
import sys
from pathlib import Path

import pytest

# Add the project root to sys.path so pyroo can be imported without installing
ROOT_PATH = Path(__file__).resolve().parent.parent
if ROOT_PATH.as_posix() not in sys.path:
    sys.path.insert(0, ROOT_PATH.as_posix())

from pyroo import bsp, geom


@pytest.fixture
def leaf():
    """The sub-sector with box (0, 0)-(10, 10) and sector 3."""
    return bsp.SubSector(geom.BoundingBox2D.from_bounds(0, 0, 10, 10), sector_index=3)


@pytest.fixture
def leaf_bytes():
    return bytes([0x02, 0, 0, 0, 0, 0, 0, 0, 0, 10, 0, 0, 0, 10, 0, 0, 0, 3, 0, 0, 0])


@pytest.fixture
def small_tree():
    """A vertical splitter at x = 5 with a sub-sector on either side."""
    right = bsp.SubSector(geom.BoundingBox2D.from_bounds(5, 0, 10, 10), sector_index=0)
    left = bsp.SubSector(geom.BoundingBox2D.from_bounds(0, 0, 5, 10), sector_index=1)
    return bsp.PartitionLine(geom.BoundingBox2D.from_bounds(0, 0, 10, 10),
                             a=1, b=0, c=-5, wall_index=2, right=right, left=left)


@pytest.fixture
def deep_tree():
    """Three levels, including negative coordinates and single-child splitters."""
    return bsp.PartitionLine(
        geom.BoundingBox2D.from_bounds(-64, -32, 64, 32),
        a=0, b=1, c=0, wall_index=0,
        right=bsp.PartitionLine(
            geom.BoundingBox2D.from_bounds(-64, 0, 64, 32),
            a=-1, b=0, c=0, wall_index=1,
            right=bsp.SubSector(geom.BoundingBox2D.from_bounds(-64, 0, 0, 32), sector_index=2),
            left=bsp.SubSector(geom.BoundingBox2D.from_bounds(0, 0, 64, 32), sector_index=1),
        ),
        left=bsp.PartitionLine(
            geom.BoundingBox2D.from_bounds(-64, -32, 64, 0),
            a=1, b=1, c=0, wall_index=2,
            left=bsp.SubSector(geom.BoundingBox2D.from_bounds(-64, -32, 64, 0), sector_index=0),
        ),
    )


@pytest.fixture
def chain_depth():
    return 2000


@pytest.fixture
def chain_bytes(chain_depth):
    """Encoded chain of splitters that each have only a right child, ending in a sub-sector.

    Every splitter has `a = 1, b = 0, c = depth`, so any point with x >= 0 is on
    the right all the way down.
    """
    data = bytearray()
    for i in range(chain_depth):
        data += struct.pack("<Biiii", 0x01, -i, -i, i + 1, i + 1)
        data += struct.pack("<iiiiB", 1, 0, i, i % 3, 0x1)
    data += struct.pack("<Biiii", 0x02, 0, 0, 1, 1)
    data += struct.pack("<i", 1)
    return bytes(data)
