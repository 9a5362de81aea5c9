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

__all__ = (
    'InvalidRooIndex',
    'RooFile',
)


import logging
from typing import Any, Optional, Sequence

from . import bsp


logger = logging.getLogger(__name__)


class InvalidRooIndex(Exception):
    def __init__(self, table, index, size):
        super().__init__(f"{table} index {index} out of range (table has {size} entries)")
        self.table = table
        self.index = index


class RooFile:
    """The parts of a room file that the BSP tree refers to.

    Sectors and walls are held as plain lists which may be filled in any order,
    before or after the BSP tree is loaded.  Once everything is in place call
    `resolve_indices` to link the tree's sub-sectors and partition lines to
    their sectors and walls.
    """

    def __init__(self, sectors: Sequence[Any] = (), walls: Sequence[Any] = (),
                 bsp_tree: Optional[bsp.BSPItem] = None):
        self.sectors = list(sectors)
        self.walls = list(walls)
        self.bsp_tree = bsp_tree
        self._indices_resolved = False

    def _lookup(self, table_name, table, index):
        if not 0 <= index < len(table):
            raise InvalidRooIndex(table_name, index, len(table))
        return table[index]

    def get_sector(self, index: int):
        return self._lookup('sector', self.sectors, index)

    def get_wall(self, index: int):
        return self._lookup('wall', self.walls, index)

    def load_bsp_tree(self, buffer, start_index: int = 0, fast: bool = False) -> int:
        logger.debug("Reading BSP tree")
        self.bsp_tree, size = bsp.read_bsp_tree(buffer, start_index, fast=fast)
        self._indices_resolved = False
        logger.debug("Read %d BSP items (%d bytes)", sum(1 for _ in self.bsp_tree.walk()), size)
        return size

    @property
    def indices_resolved(self):
        return self._indices_resolved

    def resolve_indices(self):
        if self._indices_resolved:
            logger.debug("BSP tree indices already resolved")
            return
        if self.bsp_tree is not None:
            items = list(self.bsp_tree.walk())
            logger.debug("Resolving indices for %d BSP items", len(items))
            for item in items:
                item.resolve_indices(self)
        self._indices_resolved = True

    def find_sub_sector(self, x, y) -> Optional[bsp.SubSector]:
        """Return the sub-sector containing the given point, by descending the tree."""
        item = self.bsp_tree
        while isinstance(item, bsp.PartitionLine):
            item = item.right if item.side_of(x, y) >= 0 else item.left
        return item
