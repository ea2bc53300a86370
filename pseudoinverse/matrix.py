"""Manage dense column-major matrix buffers reused across dataset pages."""

from dataclasses import dataclass, field
import logging

import numpy as np
import numpy.typing as npt

from pseudoinverse.error import OutOfMemory

logger = logging.getLogger(__name__)


@dataclass
class MatrixBuffer:
    """
    Own a dense m-by-n block of real or complex doubles.

    Elements are stored in column-major (Fortran) order for LAPACK
    compatibility. Row-wise access is provided by get and set.

    Parameters
    ----------
    shape: tuple[int, int]
        Matrix shape (rows, columns).
    dtype: type, optional
        Element type, float or complex. The default is float.

    Examples
    --------
    >>> buffer = MatrixBuffer((2, 3))
    >>> buffer.set(1, 2, 5.0)
    >>> buffer.get(1, 2)
    5.0
    >>> buffer.data.flags.f_contiguous
    True
    """

    shape: tuple[int, int]
    dtype: type = float
    data: np.ndarray | None = field(init=False, repr=False, default=None)

    def __post_init__(self):
        """Allocate buffer."""
        self.shape = tuple(int(dim) for dim in self.shape)
        self.dtype = np.dtype(self.dtype).type
        if self.dtype not in (np.float64, np.complex128):
            raise TypeError(f"dtype {self.dtype} is not float64 or complex128")
        self.allocate()

    def allocate(self):
        """Allocate zeroed column-major storage."""
        try:
            self.data = np.zeros(self.shape, dtype=self.dtype, order="F")
        except MemoryError as error:
            raise OutOfMemory(self.shape, self.dtype) from error

    def release(self):
        """Release storage, repeated calls are ignored."""
        self.data = None

    @property
    def released(self) -> bool:
        """Return release status."""
        return self.data is None

    @property
    def complex(self) -> bool:
        """Return True if buffer holds complex elements."""
        return self.dtype is np.complex128

    def _check(self):
        if self.released:
            raise ValueError("buffer has been released")

    def view_column(self, column: int) -> np.ndarray:
        """Return contiguous view of a single column."""
        self._check()
        return self.data[:, column]

    def get(self, row: int, column: int):
        """Return element at row, column."""
        self._check()
        return self.data[row, column].item()

    def set(self, row: int, column: int, value):
        """Set element at row, column."""
        self._check()
        self.data[row, column] = value

    def fill(self, matrix: npt.ArrayLike):
        """Copy matrix into buffer."""
        self._check()
        self.data[...] = matrix
        return self.data

    def match(self, shape: tuple[int, int], dtype: type) -> bool:
        """Return True if buffer may be reused for shape and dtype."""
        return (not self.released and self.shape == tuple(shape)
                and self.dtype is np.dtype(dtype).type)


@dataclass
class Workspace:
    """Pool of named buffers, reallocated only when shapes change."""

    buffers: dict[str, MatrixBuffer] = field(init=False, default_factory=dict)
    allocations: int = field(init=False, default=0)

    def __getitem__(self, name: str) -> MatrixBuffer:
        """Return named buffer."""
        return self.buffers[name]

    def __contains__(self, name: str) -> bool:
        """Return True if named buffer is allocated."""
        return name in self.buffers and not self.buffers[name].released

    def get(self, name: str, shape: tuple[int, int],
            dtype: type = float) -> np.ndarray:
        """Return storage for name, reusing the existing buffer if possible."""
        buffer = self.buffers.get(name)
        if buffer is not None and buffer.match(shape, dtype):
            return buffer.data
        if buffer is not None:
            buffer.release()
            logger.debug("reallocate %s buffer %s -> %s",
                         name, buffer.shape, tuple(shape))
        self.buffers[name] = MatrixBuffer(shape, dtype)
        self.allocations += 1
        return self.buffers[name].data

    def load(self, name: str, matrix: npt.ArrayLike) -> np.ndarray:
        """Copy matrix into named buffer and return storage."""
        matrix = np.asarray(matrix)
        dtype = complex if np.iscomplexobj(matrix) else float
        data = self.get(name, matrix.shape, dtype)
        data[...] = matrix
        return data

    def release(self, *names: str):
        """Release named buffers, all buffers if names are not given."""
        for name in names or tuple(self.buffers):
            if name in self.buffers:
                self.buffers.pop(name).release()
