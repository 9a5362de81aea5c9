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
    'BoundingBox2D',
    'Vector2',
)


import dataclasses
from typing import Iterable, Tuple

import numpy as np


@dataclasses.dataclass
class Vector2:
    x: float = 0.
    y: float = 0.

    def __iter__(self):
        yield self.x
        yield self.y


@dataclasses.dataclass
class BoundingBox2D:
    """Axis aligned 2D box.

    `min` is expected to be no greater than `max` on either axis, but this is
    not enforced.
    """
    min: Vector2 = dataclasses.field(default_factory=Vector2)
    max: Vector2 = dataclasses.field(default_factory=Vector2)

    @classmethod
    def from_bounds(cls, x1, y1, x2, y2):
        return cls(Vector2(x1, y1), Vector2(x2, y2))

    @classmethod
    def from_points(cls, points: Iterable[Tuple[float, float]]):
        a = np.array(list(points), dtype=np.float64).reshape((-1, 2))
        if len(a) == 0:
            raise ValueError('Cannot make a bounding box from no points')
        mins, maxs = a.min(axis=0), a.max(axis=0)
        return cls(Vector2(float(mins[0]), float(mins[1])),
                   Vector2(float(maxs[0]), float(maxs[1])))

    @property
    def width(self):
        return self.max.x - self.min.x

    @property
    def height(self):
        return self.max.y - self.min.y

    def contains(self, x, y):
        return self.min.x <= x <= self.max.x and self.min.y <= y <= self.max.y

    def copy(self) -> "BoundingBox2D":
        return BoundingBox2D(Vector2(*self.min), Vector2(*self.max))
