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

"""In-place advancing cursor over a byte array.

This is the fast path counterpart of the `(buffer, start_index)` pairs used
elsewhere.  Reads and writes go straight through numpy views of the underlying
memory and the cursor does *no* length checking of its own: callers are
responsible for making sure the buffer is large enough, and that it outlives
the cursor.
"""


__all__ = (
    'RawCursor',
)


from typing import Sequence

import numpy as np


_INT32 = np.dtype(np.int32).newbyteorder('<')


class RawCursor:
    def __init__(self, buf, offset: int = 0):
        if isinstance(buf, np.ndarray):
            self.array = buf.reshape(-1).view(np.uint8)
        else:
            self.array = np.frombuffer(buf, dtype=np.uint8)
        self.offset = offset

    @classmethod
    def allocate(cls, size: int) -> "RawCursor":
        return cls(np.zeros(size, dtype=np.uint8))

    def peek_u8(self) -> int:
        return int(self.array[self.offset])

    def read_u8(self) -> int:
        v = int(self.array[self.offset])
        self.offset += 1
        return v

    def read_i32s(self, n: int):
        a = self.array[self.offset:self.offset + 4 * n].view(_INT32)
        self.offset += 4 * n
        return [int(x) for x in a]

    def skip(self, n: int):
        self.offset += n

    def write_u8(self, v: int):
        self.array[self.offset] = int(v)
        self.offset += 1

    def write_i32s(self, values: Sequence[int]):
        n = len(values)
        self.array[self.offset:self.offset + 4 * n].view(_INT32)[:] = values
        self.offset += 4 * n

    def tobytes(self) -> bytes:
        return self.array.tobytes()
