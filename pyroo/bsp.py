# Copyright (c) 2019 Matthew Earl
# 
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
# 
#     The above copyright notice and this permission notice shall be included
#     in all copies or substantial portions of the Software.
# 
#     THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS
#     OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF
#     MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN
#     NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM,
#     DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR
#     OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE
#     USE OR OTHER DEALINGS IN THE SOFTWARE.

"""Codec for the BSP tree stored in Meridian 59 room (.roo) files.

The tree is a recursive structure of two item types, distinguished by a one
byte tag:

    NODE (0x01)  `PartitionLine`, a splitter with one or two child subtrees.
    LEAF (0x02)  `SubSector`, a convex region belonging to a sector.

Every item starts with the same 17 byte header:

    uint8   tag
    int32   x1, y1, x2, y2      bounding box, little endian

A partition line follows this with its splitter line `a*x + b*y + c = 0`, the
index of the first wall lying on it, a child mask and then the child subtrees
themselves (right first).  A sub-sector follows it with the index of its
sector.

Items can be read and written two ways.  `read_from` / `write_to` take a
buffer and a start index, check the buffer bounds, and return the number of
bytes processed.  `read_from_ptr` / `write_to_ptr` take a `rawbuf.RawCursor`
which they advance in place, without bounds checking.  Both produce exactly
the same bytes and the same objects.

Indices decoded from the buffer are only turned into references to the
containing file's sectors and walls once the whole file has been read, by
`resolve_indices`.
"""


__all__ = (
    'BSPItem',
    'BufferTooSmall',
    'MalformedBspData',
    'NodeType',
    'PartitionLine',
    'SubSector',
    'TruncatedBspData',
    'UnsupportedBspItemType',
    'extract_bsp_item',
    'extract_bsp_item_ptr',
    'read_bsp_tree',
)


import dataclasses
import enum
import itertools
import logging
import struct
from typing import Any, Iterator, Optional, Tuple

from . import geom
from . import rawbuf


logger = logging.getLogger(__name__)


_BASE_FMT = "<Biiii"
_PARTITION_FMT = "<iiiiB"
_SUB_SECTOR_FMT = "<i"


class MalformedBspData(Exception):
    pass


class TruncatedBspData(MalformedBspData):
    pass


class UnsupportedBspItemType(MalformedBspData):
    def __init__(self, tag):
        super().__init__(f"Unsupported BSP item type: {tag}")
        self.tag = tag


class BufferTooSmall(Exception):
    pass


class NodeType(enum.IntEnum):
    NODE = 0x01
    LEAF = 0x02


class _ChildMask(enum.IntFlag):
    RIGHT = 0x1
    LEFT = 0x2


def _unpack_from(struct_fmt, buffer, offset):
    size = struct.calcsize(struct_fmt)
    if offset < 0 or offset + size > len(buffer):
        raise TruncatedBspData(f"Buffer ended unexpectedly: {size} bytes needed at offset {offset}, "
                               f"buffer is {len(buffer)} bytes")
    return struct.unpack_from(struct_fmt, buffer, offset)


def _pack_into(struct_fmt, buffer, offset, *values):
    size = struct.calcsize(struct_fmt)
    if offset < 0 or offset + size > len(buffer):
        raise BufferTooSmall(f"{size} bytes needed at offset {offset}, buffer is {len(buffer)} bytes")
    struct.pack_into(struct_fmt, buffer, offset, *values)
    return size


_INT32_MIN = -2 ** 31
_INT32_MAX = 2 ** 31 - 1


def _check_int32(item, values):
    for v in values:
        if not _INT32_MIN <= v <= _INT32_MAX:
            raise ValueError(f"{type(item).__name__} field value {v} does not fit in a 32-bit integer")


@dataclasses.dataclass(eq=False)
class BSPItem:
    """Fields and codec shared by both kinds of BSP tree item.

    Subclasses set `type_` and implement the `_read_payload*` /
    `_write_payload*` hooks, which deal with the item's own fields only.
    Subtrees are read and written here, driven by an explicit stack so that
    arbitrarily deep trees do not exhaust the interpreter's recursion limit.
    """
    type_ = None

    bounding_box: geom.BoundingBox2D = dataclasses.field(default_factory=geom.BoundingBox2D)

    _resolved: bool = dataclasses.field(default=False, init=False, repr=False)

    @property
    def x1(self) -> int:
        return int(self.bounding_box.min.x)

    @x1.setter
    def x1(self, value: int):
        self.bounding_box.min.x = value

    @property
    def y1(self) -> int:
        return int(self.bounding_box.min.y)

    @y1.setter
    def y1(self, value: int):
        self.bounding_box.min.y = value

    @property
    def x2(self) -> int:
        return int(self.bounding_box.max.x)

    @x2.setter
    def x2(self, value: int):
        self.bounding_box.max.x = value

    @property
    def y2(self) -> int:
        return int(self.bounding_box.max.y)

    @y2.setter
    def y2(self, value: int):
        self.bounding_box.max.y = value

    @property
    def _own_length(self) -> int:
        return struct.calcsize(_BASE_FMT)

    @property
    def byte_length(self) -> int:
        """Encoded size of this item and all of its descendants."""
        return sum(item._own_length for item in self.walk())

    @property
    def children(self) -> Tuple["BSPItem", ...]:
        return ()

    @property
    def is_resolved(self) -> bool:
        return self._resolved

    def _int32_fields(self):
        return (self.x1, self.y1, self.x2, self.y2)

    def _own_key(self):
        return (type(self), self.bounding_box)

    def __eq__(self, other):
        if not isinstance(other, BSPItem):
            return NotImplemented
        for a, b in itertools.zip_longest(self.walk(), other.walk()):
            if a is None or b is None or a._own_key() != b._own_key():
                return False
        return True

    def _write_own(self, buffer, offset):
        _check_int32(self, self._int32_fields())
        n = _pack_into(_BASE_FMT, buffer, offset, self.type_, self.x1, self.y1, self.x2, self.y2)
        return n + self._write_payload(buffer, offset + n)

    def _write_own_ptr(self, ptr):
        _check_int32(self, self._int32_fields())
        ptr.write_u8(self.type_)
        ptr.write_i32s([self.x1, self.y1, self.x2, self.y2])
        self._write_payload_ptr(ptr)

    def write_to(self, buffer, start_index: int = 0) -> int:
        cursor = start_index
        for item in self.walk():
            cursor += item._write_own(buffer, cursor)
        return cursor - start_index

    def write_to_ptr(self, ptr: rawbuf.RawCursor):
        for item in self.walk():
            item._write_own_ptr(ptr)

    def _read_own(self, buffer, offset):
        # The tag has already been used to pick the class.
        _, self.x1, self.y1, self.x2, self.y2 = _unpack_from(_BASE_FMT, buffer, offset)
        self._resolved = False
        n = struct.calcsize(_BASE_FMT)
        payload_size, slots = self._read_payload(buffer, offset + n)
        return n + payload_size, slots

    def _read_own_ptr(self, ptr):
        ptr.skip(1)
        self.x1, self.y1, self.x2, self.y2 = ptr.read_i32s(4)
        self._resolved = False
        return self._read_payload_ptr(ptr)

    def read_from(self, buffer, start_index: int = 0) -> int:
        n, slots = self._read_own(buffer, start_index)
        cursor = start_index + n

        # Each entry is an item and the names of its children still to be read.
        pending = [(self, list(slots))]
        while pending:
            parent, slots = pending[-1]
            if not slots:
                pending.pop()
                continue
            child = _new_item(buffer, cursor)
            n, child_slots = child._read_own(buffer, cursor)
            cursor += n
            setattr(parent, slots.pop(0), child)
            pending.append((child, list(child_slots)))

        return cursor - start_index

    def read_from_ptr(self, ptr: rawbuf.RawCursor):
        pending = [(self, list(self._read_own_ptr(ptr)))]
        while pending:
            parent, slots = pending[-1]
            if not slots:
                pending.pop()
                continue
            child = _item_class(ptr.peek_u8())()
            child_slots = child._read_own_ptr(ptr)
            setattr(parent, slots.pop(0), child)
            pending.append((child, list(child_slots)))

    def _write_payload(self, buffer, offset) -> int:
        raise NotImplementedError

    def _write_payload_ptr(self, ptr):
        raise NotImplementedError

    def _read_payload(self, buffer, offset):
        """Read this item's own fields, returning the size read and child slot names."""
        raise NotImplementedError

    def _read_payload_ptr(self, ptr):
        raise NotImplementedError

    def resolve_indices(self, roo_file):
        """Turn the raw indices of this item into references into `roo_file`.

        Only this item is resolved, not its children.  Must be called once the
        whole of `roo_file` has been read, since items may refer to table
        entries stored after the BSP tree.
        """
        raise NotImplementedError

    @classmethod
    def from_buffer(cls, buffer, start_index: int = 0):
        item = cls()
        item.read_from(buffer, start_index)
        return item

    @classmethod
    def from_ptr(cls, ptr: rawbuf.RawCursor):
        item = cls()
        item.read_from_ptr(ptr)
        return item

    def to_bytes(self, fast: bool = False) -> bytes:
        if fast:
            ptr = rawbuf.RawCursor.allocate(self.byte_length)
            self.write_to_ptr(ptr)
            return ptr.tobytes()
        buffer = bytearray(self.byte_length)
        self.write_to(buffer)
        return bytes(buffer)

    @property
    def bytes(self) -> bytes:
        return self.to_bytes()

    @bytes.setter
    def bytes(self, value):
        self.read_from(value)

    def walk(self) -> Iterator["BSPItem"]:
        """Pre-order iteration over this item and all of its descendants."""
        stack = [self]
        while stack:
            item = stack.pop()
            yield item
            stack.extend(reversed(item.children))

    def sub_sectors(self) -> Iterator["SubSector"]:
        return (item for item in self.walk() if item.type_ == NodeType.LEAF)


@dataclasses.dataclass(eq=False)
class PartitionLine(BSPItem):
    type_ = NodeType.NODE

    a: int = 0
    b: int = 0
    c: int = 0
    wall_index: int = 0
    right: Optional[BSPItem] = dataclasses.field(default=None, repr=False)
    left: Optional[BSPItem] = dataclasses.field(default=None, repr=False)

    wall: Any = dataclasses.field(default=None, repr=False)

    @property
    def _own_length(self):
        return super()._own_length + struct.calcsize(_PARTITION_FMT)

    @property
    def children(self):
        return tuple(child for child in (self.right, self.left) if child is not None)

    @property
    def _child_mask(self):
        mask = _ChildMask(0)
        if self.right is not None:
            mask |= _ChildMask.RIGHT
        if self.left is not None:
            mask |= _ChildMask.LEFT
        if not mask:
            raise ValueError('Partition line must have at least one child')
        return mask

    @staticmethod
    def _child_slots(mask):
        if not 0 < mask <= _ChildMask.RIGHT | _ChildMask.LEFT:
            raise MalformedBspData(f'Invalid partition line child mask {mask:#04x}')
        mask = _ChildMask(mask)
        return tuple(name for flag, name in ((_ChildMask.RIGHT, 'right'), (_ChildMask.LEFT, 'left'))
                     if mask & flag)

    def _int32_fields(self):
        return super()._int32_fields() + (self.a, self.b, self.c, self.wall_index)

    def _own_key(self):
        return super()._own_key() + (self.a, self.b, self.c, self.wall_index,
                                     self.right is not None, self.left is not None)

    def side_of(self, x, y):
        """Signed distance-like value of a point relative to the splitter.

        Non-negative values are on the right hand side.
        """
        return self.a * x + self.b * y + self.c

    def _write_payload(self, buffer, offset):
        return _pack_into(_PARTITION_FMT, buffer, offset,
                          self.a, self.b, self.c, self.wall_index, self._child_mask)

    def _write_payload_ptr(self, ptr):
        mask = self._child_mask
        ptr.write_i32s([self.a, self.b, self.c, self.wall_index])
        ptr.write_u8(mask)

    def _read_payload(self, buffer, offset):
        self.a, self.b, self.c, self.wall_index, mask = _unpack_from(_PARTITION_FMT, buffer, offset)
        slots = self._child_slots(mask)
        self.right = self.left = None
        self.wall = None
        return struct.calcsize(_PARTITION_FMT), slots

    def _read_payload_ptr(self, ptr):
        self.a, self.b, self.c, self.wall_index = ptr.read_i32s(4)
        slots = self._child_slots(ptr.read_u8())
        self.right = self.left = None
        self.wall = None
        return slots

    def resolve_indices(self, roo_file):
        self.wall = roo_file.get_wall(self.wall_index)
        self._resolved = True


@dataclasses.dataclass(eq=False)
class SubSector(BSPItem):
    type_ = NodeType.LEAF

    sector_index: int = 0

    sector: Any = dataclasses.field(default=None, repr=False)

    @property
    def _own_length(self):
        return super()._own_length + struct.calcsize(_SUB_SECTOR_FMT)

    def _int32_fields(self):
        return super()._int32_fields() + (self.sector_index,)

    def _own_key(self):
        return super()._own_key() + (self.sector_index,)

    def _write_payload(self, buffer, offset):
        return _pack_into(_SUB_SECTOR_FMT, buffer, offset, self.sector_index)

    def _write_payload_ptr(self, ptr):
        ptr.write_i32s([self.sector_index])

    def _read_payload(self, buffer, offset):
        self.sector_index, = _unpack_from(_SUB_SECTOR_FMT, buffer, offset)
        self.sector = None
        return struct.calcsize(_SUB_SECTOR_FMT), ()

    def _read_payload_ptr(self, ptr):
        self.sector_index, = ptr.read_i32s(1)
        self.sector = None
        return ()

    def resolve_indices(self, roo_file):
        self.sector = roo_file.get_sector(self.sector_index)
        self._resolved = True


_ITEM_CLASSES = {
    NodeType.NODE: PartitionLine,
    NodeType.LEAF: SubSector,
}


def _item_class(tag):
    try:
        return _ITEM_CLASSES[NodeType(tag)]
    except ValueError:
        raise UnsupportedBspItemType(tag) from None


def _new_item(buffer, start_index):
    if start_index < 0 or start_index >= len(buffer):
        raise TruncatedBspData(f"Buffer ended unexpectedly: no BSP item at offset {start_index}")
    return _item_class(buffer[start_index])()


def _extract(buffer, start_index):
    item = _new_item(buffer, start_index)
    n = item.read_from(buffer, start_index)
    return item, n


def extract_bsp_item(buffer, start_index: int = 0) -> BSPItem:
    """Decode the item, and any subtree below it, found at `start_index`."""
    item, _ = _extract(buffer, start_index)
    return item


def extract_bsp_item_ptr(ptr: rawbuf.RawCursor) -> BSPItem:
    """Decode the item at the cursor, leaving the cursor after its subtree."""
    return _item_class(ptr.peek_u8()).from_ptr(ptr)


def read_bsp_tree(buffer, start_index: int = 0, fast: bool = False) -> Tuple[BSPItem, int]:
    """Decode a whole tree, returning its root and the number of bytes read."""
    if fast:
        ptr = rawbuf.RawCursor(buffer, start_index)
        root = extract_bsp_item_ptr(ptr)
        return root, ptr.offset - start_index
    return _extract(buffer, start_index)


if __name__ == "__main__":
    import sys

    root_logger = logging.getLogger()
    root_logger.addHandler(logging.StreamHandler())
    root_logger.setLevel(logging.DEBUG)

    with open(sys.argv[1], "rb") as f:
        data = f.read()
    start_index = int(sys.argv[2]) if len(sys.argv) > 2 else 0

    logger.debug("Reading BSP tree at offset %d", start_index)
    root, size = read_bsp_tree(data, start_index)
    logger.debug("Read %d BSP items (%d bytes)", sum(1 for _ in root.walk()), size)
    for item in root.walk():
        print(item.type_.name, item.x1, item.y1, item.x2, item.y2)
