"""Assemble regularized Moore-Penrose pseudo-inverses from thin svd triplets."""

from dataclasses import dataclass, field
import logging

import numpy as np
import numpy.typing as npt
from threadpoolctl import threadpool_limits

from pseudoinverse.decompose import LAPACK_DRIVERS, Decompose
from pseudoinverse.error import ConfigConflict, EmptyPage, ShapeMismatch
from pseudoinverse.matrix import Workspace
from pseudoinverse.regularize import Filter, Regularization
from pseudoinverse.weight import Weight

logger = logging.getLogger(__name__)

MULTIPLY_MODES = ("none", "post", "pre")


def assemble(U: np.ndarray, inverse: np.ndarray, V: np.ndarray,
             out: np.ndarray | None = None) -> np.ndarray:
    """Return pseudo-inverse (V * inverse) @ U^H with shape (n, m)."""
    return np.matmul(V * inverse, U.conj().T, out=out)


def reconstruct(U: np.ndarray, used: np.ndarray, V: np.ndarray,
                out: np.ndarray | None = None) -> np.ndarray:
    """Return truncated matrix (U * used) @ V^H with shape (m, n)."""
    return np.matmul(U * used, V.conj().T, out=out)


def multiply(inverse: np.ndarray, companion: npt.ArrayLike, mode: str,
             out: np.ndarray | None = None) -> np.ndarray:
    """
    Return product of pseudo-inverse and companion matrix.

    Parameters
    ----------
    inverse: np.ndarray
        Pseudo-inverse, shape (n, m).
    companion: array-like
        Companion matrix B.
    mode: str
        none: return inverse, post: inverse @ B, pre: B @ inverse.

    Raises
    ------
    ShapeMismatch
        Companion dimensions incompatible with multiply mode.
    """
    companion = np.asarray(companion)
    match mode:
        case "none":
            return inverse
        case "post" if companion.shape[0] != inverse.shape[1]:
            raise ShapeMismatch(
                f"unable to multiply inverse {inverse.shape} by "
                f"companion {companion.shape}, rows != {inverse.shape[1]}")
        case "post":
            return np.matmul(inverse, companion, out=out)
        case "pre" if companion.shape[-1] != inverse.shape[0]:
            raise ShapeMismatch(
                f"unable to multiply companion {companion.shape} by "
                f"inverse {inverse.shape}, columns != {inverse.shape[0]}")
        case "pre":
            return np.matmul(companion, inverse, out=out)
        case _:
            raise ConfigConflict(f"multiply mode {mode} not in "
                                 f"{MULTIPLY_MODES}")


@dataclass
class Solution:
    """
    Per-page pseudo-inverse results.

    Array attributes reference workspace buffers that are overwritten by
    the next solve, use copy to retain them.
    """

    inverse: np.ndarray
    filter: Filter
    U: np.ndarray = field(repr=False)
    s: np.ndarray = field(repr=False)
    V: np.ndarray = field(repr=False)
    product: np.ndarray | None = field(default=None, repr=False)
    reconstruct: np.ndarray | None = field(default=None, repr=False)

    @property
    def shape(self):
        """Return shape of the factorized matrix."""
        return self.U.shape[0], self.V.shape[0]

    @property
    def output(self) -> np.ndarray:
        """Return product if available, else pseudo-inverse."""
        if self.product is not None:
            return self.product
        return self.inverse

    def copy(self):
        """Return solution detached from workspace buffers."""
        return Solution(*(np.copy(getattr(self, attr))
                          if isinstance(getattr(self, attr), np.ndarray)
                          else getattr(self, attr)
                          for attr in ("inverse", "filter", "U", "s", "V",
                                       "product", "reconstruct")))


@dataclass
class PseudoInverse:
    """
    Regularized pseudo-inverse pipeline for a single matrix.

    Weights are applied to a column-major copy of the matrix which is
    consumed by the factorization. Buffers are held in a workspace and
    reused while shapes repeat.

    Parameters
    ----------
    regularization: Regularization
        Singular value filter.
    weight: Weight
        Row and column weights.
    multiply: str
        Companion multiply mode, none, post or pre.
    reconstruct: bool
        Reconstruct the matrix from retained singular triplets.
    lapack_driver: str
        Scipy svd driver, gesdd or gesvd.
    threads: int, optional
        Thread limit forwarded to BLAS and LAPACK. None leaves pools as is.

    Examples
    --------
    >>> pinv = PseudoInverse()
    >>> pinv([[1.0, 0.0], [0.0, 2.0]]).inverse
    array([[1. , 0. ],
           [0. , 0.5]])
    """

    regularization: Regularization = field(default_factory=Regularization)
    weight: Weight = field(default_factory=Weight)
    multiply: str = "none"
    reconstruct: bool = False
    lapack_driver: str = "gesdd"
    threads: int | None = None
    workspace: Workspace = field(init=False, repr=False,
                                 default_factory=Workspace)

    def __post_init__(self):
        """Check options."""
        if self.multiply not in MULTIPLY_MODES:
            raise ConfigConflict(f"multiply mode {self.multiply} not in "
                                 f"{MULTIPLY_MODES}")
        if self.lapack_driver not in LAPACK_DRIVERS:
            raise ConfigConflict(f"lapack driver {self.lapack_driver} "
                                 f"not in {LAPACK_DRIVERS}")
        if self.threads is not None and self.threads < 1:
            raise ConfigConflict(f"threads {self.threads} < 1")

    def __call__(self, matrix: npt.ArrayLike,
                 companion: npt.ArrayLike | None = None) -> Solution:
        """Return solution evaluated within thread limits."""
        with threadpool_limits(limits=self.threads, user_api="blas"):
            return self.solve(matrix, companion)

    def solve(self, matrix: npt.ArrayLike,
              companion: npt.ArrayLike | None = None) -> Solution:
        """Return regularized pseudo-inverse solution."""
        matrix = np.asarray(matrix)
        if matrix.ndim != 2:
            raise ShapeMismatch(f"matrix dimension {matrix.ndim} != 2")
        if matrix.shape[0] == 0:
            raise EmptyPage()
        if matrix.shape[1] == 0:
            raise ShapeMismatch("matrix has no columns")
        if self.multiply != "none" and companion is None:
            raise ShapeMismatch(f"companion matrix required for "
                                f"{self.multiply} multiply")
        self.weight.check(matrix.shape)
        dtype = complex if np.iscomplexobj(matrix) else float
        weighted = self.weight.apply(self.workspace.load("matrix", matrix))
        svd = Decompose(weighted, self.lapack_driver, overwrite=True)
        filter = self.regularization(svd["s"], svd["V"])
        logger.debug("inverse singular values %s", filter.inverse)

        shape = matrix.shape[::-1]
        inverse = assemble(svd["U"], filter.inverse, svd["V"],
                           out=self.workspace.get("inverse", shape, dtype))
        self.weight.rescale(inverse)
        solution = Solution(inverse, filter, svd["U"], svd["s"], svd["V"])
        if self.multiply != "none":
            solution.product = self._multiply(inverse, companion)
        if self.reconstruct:
            solution.reconstruct = reconstruct(
                svd["U"], filter.used, svd["V"],
                out=self.workspace.get("reconstruct", matrix.shape, dtype))
        return solution

    def _multiply(self, inverse: np.ndarray,
                  companion: npt.ArrayLike) -> np.ndarray:
        """Return companion product evaluated into workspace buffer."""
        companion = np.asarray(companion)
        if companion.ndim != 2:
            raise ShapeMismatch(f"companion dimension {companion.ndim} != 2")
        match self.multiply:
            case "post":
                shape = inverse.shape[0], companion.shape[1]
            case "pre":
                shape = companion.shape[0], inverse.shape[1]
        dtype = complex if np.iscomplexobj(inverse) or \
            np.iscomplexobj(companion) else float
        out = self.workspace.get("product", shape, dtype)
        return multiply(inverse, companion, self.multiply, out=out)
