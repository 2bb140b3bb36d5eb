# braincell/braincell_matrix.py

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

import numpy as np

from braincell.braincell_errors import (
    DimensionMismatchError,
    IndexOutOfBoundsError,
    InvalidDimensionError,
)

FLOAT_SIZE = 4  # bytes per float32 entry


class SeedMode(str, Enum):
    """
    How a freshly allocated matrix is filled.

    - NONE      => zeros
    - UNIT      => uniform in [0, 1)
    - SYMMETRIC => uniform in [-1, 1)
    """

    NONE = "none"
    UNIT = "unit"
    SYMMETRIC = "symmetric"

    @staticmethod
    def from_value(val: str | bool | SeedMode) -> SeedMode:
        """
        Accepts a SeedMode, one of its string values, or a bool
        (True => SYMMETRIC, False => NONE).
        """
        if isinstance(val, SeedMode):
            return val

        if isinstance(val, bool):
            return SeedMode.SYMMETRIC if val else SeedMode.NONE

        if isinstance(val, str):
            val_lower = val.lower()
            for mode in SeedMode:
                if mode.value == val_lower:
                    return mode

        raise ValueError(
            f"Invalid seed mode: {val!r}. "
            f"Expected one of: {[m.value for m in SeedMode]}"
        )


def fill_random(data: np.ndarray, seed: SeedMode, rng: np.random.Generator) -> None:
    """
    Fill an array in place according to a SeedMode.
    """
    if seed == SeedMode.NONE:
        data[...] = 0.0
    elif seed == SeedMode.UNIT:
        data[...] = rng.random(data.shape, dtype=np.float32)
    else:
        # 2r - 1 stays strictly below 1.0 in float32
        data[...] = rng.random(data.shape, dtype=np.float32) * 2.0 - 1.0


@dataclass(eq=False)
class Matrix:
    """
    Dense 2-D float32 table, row-major.

    Element (r, c) lives at flat index r * cols + c.

    A Matrix either owns its array or is a view into an external buffer
    (see Matrix.view). Views keep a reference to that buffer in `owner`
    and are never reallocated; every operation below writes in place.
    """

    data: np.ndarray                  # float32, shape (rows, cols)
    name: Optional[str] = None
    owner: Any = field(default=None, repr=False)

    def __post_init__(self) -> None:
        # no copy for float32 C-contiguous input, so buffer views stay views
        arr = np.ascontiguousarray(self.data, dtype=np.float32)

        if arr.ndim != 2:
            raise InvalidDimensionError(f"Matrix must be 2D (rows, cols), got shape {arr.shape}")

        if arr.shape[0] < 1 or arr.shape[1] < 1:
            raise InvalidDimensionError(f"Matrix dimensions must be positive, got {arr.shape}")

        self.data = arr

    # ===============================================================
    # Construction
    # ===============================================================
    @classmethod
    def alloc(
        cls,
        rows: int,
        cols: int,
        seed: SeedMode | str | bool = SeedMode.NONE,
        rng: Optional[np.random.Generator] = None,
        name: Optional[str] = None,
    ) -> "Matrix":
        """
        New owned matrix of the given size, zeroed or randomly seeded.
        """
        rows, cols = int(rows), int(cols)
        if rows <= 0 or cols <= 0:
            raise InvalidDimensionError(f"alloc: dimensions must be positive, got [{rows}×{cols}]")

        data = np.zeros((rows, cols), dtype=np.float32)
        mode = SeedMode.from_value(seed)
        if mode != SeedMode.NONE:
            fill_random(data, mode, rng if rng is not None else np.random.default_rng())

        return cls(data, name=name)

    @classmethod
    def view(
        cls,
        buffer: Any,
        byte_offset: int,
        rows: int,
        cols: int,
        name: Optional[str] = None,
    ) -> "Matrix":
        """
        Matrix aliasing external storage (a bytearray or any writable buffer).

        Writes through the returned matrix land in `buffer`.
        """
        rows, cols = int(rows), int(cols)
        if rows <= 0 or cols <= 0:
            raise InvalidDimensionError(f"view: dimensions must be positive, got [{rows}×{cols}]")

        size = memoryview(buffer).nbytes
        if byte_offset < 0 or byte_offset + rows * cols * FLOAT_SIZE > size:
            raise IndexOutOfBoundsError(
                f"view: [{rows}×{cols}] at byte {byte_offset} exceeds buffer of {size} bytes"
            )

        flat = np.frombuffer(buffer, dtype=np.float32, count=rows * cols, offset=byte_offset)
        return cls(flat.reshape(rows, cols), name=name, owner=buffer)

    @classmethod
    def from_values(cls, rows: int, cols: int, values: Sequence[float], name: Optional[str] = None) -> "Matrix":
        """
        New owned matrix filled row by row from a flat sequence.
        """
        m = cls.alloc(rows, cols, name=name)
        if len(values) != m.size:
            raise DimensionMismatchError(
                f"from_values: expected {m.size} values for {m.dim()}, got {len(values)}"
            )
        m.set(values)
        return m

    @classmethod
    def hstack(cls, parts: Sequence["Matrix"]) -> "Matrix":
        """
        Concatenate matrices column-wise. Inverse of split_columns().
        """
        if len(parts) == 0:
            raise InvalidDimensionError("hstack: nothing to stack")

        rows = parts[0].rows
        for p in parts:
            if p.rows != rows:
                raise DimensionMismatchError(f"hstack: row counts differ ({rows} vs {p.rows})")

        return cls(np.concatenate([p.data for p in parts], axis=1))

    # ===============================================================
    # Introspection
    # ===============================================================
    @property
    def rows(self) -> int:
        return self.data.shape[0]

    @property
    def cols(self) -> int:
        return self.data.shape[1]

    @property
    def shape(self):
        return self.data.shape

    @property
    def size(self) -> int:
        return self.data.size

    @property
    def is_view(self) -> bool:
        return self.owner is not None

    def dim(self) -> str:
        return f"[{self.rows}×{self.cols}]"

    def clone(self) -> "Matrix":
        return Matrix(self.data.copy(), name=self.name)

    def __repr__(self) -> str:
        label = self.name or "Matrix"
        return f"{label}{self.dim()}"

    # ===============================================================
    # Access
    # ===============================================================
    def _check_index(self, row: int, col: int) -> None:
        if not (0 <= row < self.rows and 0 <= col < self.cols):
            raise IndexOutOfBoundsError(f"({row}, {col}) is outside {self.dim()}")

    def at(self, row: int, col: int) -> float:
        self._check_index(row, col)
        return float(self.data[row, col])

    def put(self, row: int, col: int, value: float) -> None:
        self._check_index(row, col)
        self.data[row, col] = value

    def fill(self, value: float) -> None:
        self.data.fill(value)

    def set(self, values: Sequence[float], start: int = 0) -> None:
        """
        Write a flat run of values starting at flat index `start`.
        """
        n = len(values)
        if start < 0 or start + n > self.size:
            raise IndexOutOfBoundsError(f"set: {n} values at {start} overflow {self.dim()}")

        flat = self.data.reshape(-1)
        flat[start:start + n] = np.asarray(values, dtype=np.float32)

    def copy_from(self, src: "Matrix") -> None:
        """
        Replace every entry with the matching entry of `src`.
        """
        if self.shape != src.shape:
            raise DimensionMismatchError(f"copy: incompatible dimensions {self.dim()} <- {src.dim()}")
        np.copyto(self.data, src.data)

    def row(self, n: int) -> "Matrix":
        """
        New (1, cols) matrix duplicating row n. Not a view.
        """
        if not 0 <= n < self.rows:
            raise IndexOutOfBoundsError(f"row: index {n} out of bounds for {self.dim()}")
        return Matrix(self.data[n:n + 1, :].copy())

    def sub(self, row_offset: int, col_offset: int, rows: int, cols: int) -> "Matrix":
        """
        New matrix copying the rectangular selection. Not a view.
        """
        if rows <= 0 or cols <= 0:
            raise InvalidDimensionError(f"sub: dimensions must be positive, got [{rows}×{cols}]")
        if (row_offset < 0 or col_offset < 0
                or row_offset + rows > self.rows or col_offset + cols > self.cols):
            raise IndexOutOfBoundsError(
                f"sub: [{rows}×{cols}] at ({row_offset}, {col_offset}) leaves {self.dim()}"
            )
        return Matrix(self.data[row_offset:row_offset + rows, col_offset:col_offset + cols].copy())

    def smush(self, row: int = 0) -> int:
        """
        Read one row of (roughly) binary values as a little-endian integer:
        column j contributes bit j after rounding to 0 or 1.
        """
        if not 0 <= row < self.rows:
            raise IndexOutOfBoundsError(f"smush: index {row} out of bounds for {self.dim()}")

        bits = np.clip(np.rint(self.data[row]), 0, 1).astype(np.int64)
        return int(sum(int(b) << j for j, b in enumerate(bits)))

    # ===============================================================
    # Arithmetic (all in place)
    # ===============================================================
    def dot(self, a: "Matrix", b: "Matrix") -> "Matrix":
        """
        self = a · b

        a: (n, k), b: (k, m), self: (n, m)
        """
        if a.cols != b.rows:
            raise DimensionMismatchError(f"dot: incompatible dimensions {a.dim()} · {b.dim()}")
        if self.rows != a.rows or self.cols != b.cols:
            raise DimensionMismatchError(
                f"dot: incompatible dest matrix {self.dim()} for {a.dim()} · {b.dim()}"
            )

        self.data[...] = a.data @ b.data
        return self

    def add(self, b: "Matrix") -> "Matrix":
        """
        self += b, element-wise.
        """
        if self.shape != b.shape:
            raise DimensionMismatchError(f"sum: incompatible dimensions {self.dim()} + {b.dim()}")
        self.data += b.data
        return self

    def apply(self, fn: Callable[[float], float]) -> "Matrix":
        """
        Map a scalar function over every entry in place.

        numpy ufuncs (np.tanh, np.abs, ...) run over the whole array at once;
        any other callable is vectorized and called once per entry.
        """
        if isinstance(fn, np.ufunc):
            fn(self.data, out=self.data)
        else:
            self.data[...] = np.vectorize(fn, otypes=[np.float32])(self.data)
        return self

    # ===============================================================
    # Row / column reshuffling
    # ===============================================================
    def shuffle_rows(self, rng: Optional[np.random.Generator] = None) -> None:
        """
        Fisher-Yates shuffle over whole rows.
        """
        rng = rng if rng is not None else np.random.default_rng()

        for i in range(self.rows - 1, 0, -1):
            j = int(rng.integers(0, i + 1))
            if i != j:
                self.data[[i, j], :] = self.data[[j, i], :]

    def split_columns(self, widths: Sequence[int]) -> List["Matrix"]:
        """
        Partition columns, left to right, into new matrices of the given widths.
        """
        if any(int(w) <= 0 for w in widths) or sum(int(w) for w in widths) != self.cols:
            raise DimensionMismatchError(
                f"split_columns: widths {list(widths)} do not partition {self.cols} columns"
            )

        parts = []
        start = 0
        for w in widths:
            parts.append(Matrix(self.data[:, start:start + int(w)].copy()))
            start += int(w)
        return parts
