"""Manage singular value decomposition."""

from dataclasses import dataclass, field

import numpy as np
import scipy.linalg

from pseudoinverse.error import NonConvergent

LAPACK_DRIVERS = ("gesdd", "gesvd")


@dataclass
class Decompose:
    """
    Provide access to thin svd matrices.

    Factorizes matrix = U @ diag(s) @ Vh with U (m, k), s (k,), Vh (k, n)
    and k = min(m, n). Vh is the conjugate transpose of V for complex input.

    The input matrix is consumed when overwrite is True, its contents are
    undefined after the factorization.
    """

    matrix: np.ndarray = field(repr=False)
    lapack_driver: str = "gesdd"
    overwrite: bool = False
    matrices: dict = field(init=False, repr=False, default_factory=dict)

    def __post_init__(self):
        """Calculate svd decomposition."""
        self.shape = self.matrix.shape
        self.decompose()

    def __getitem__(self, key: str):
        """Return array from matrices dict."""
        return self.matrices[key]

    @property
    def rank(self):
        """Return thin decomposition order k = min(m, n)."""
        return min(self.shape)

    @property
    def complex(self) -> bool:
        """Return True if decomposition is complex."""
        return np.iscomplexobj(self.matrices["U"])

    def decompose(self):
        """Perform thin SVD."""
        if self.lapack_driver not in LAPACK_DRIVERS:
            raise ValueError(f"lapack driver {self.lapack_driver} "
                             f"not in {LAPACK_DRIVERS}")
        if not np.isfinite(self.matrix).all():
            raise NonConvergent("matrix contains non-finite elements")
        try:
            U, s, Vh = scipy.linalg.svd(
                self.matrix, full_matrices=False, overwrite_a=self.overwrite,
                check_finite=False, lapack_driver=self.lapack_driver)
        except np.linalg.LinAlgError as error:
            raise NonConvergent(f"svd did not converge: {error}") from error
        self.matrices = dict(U=U, s=s, Vh=Vh)
        if self.overwrite:
            self.matrix = None
        self.transpose()

    def transpose(self):
        """Conjugate transpose derived svd arrays."""
        self.matrices |= dict(
            Uh=self.matrices["U"].conj().T,
            V=self.matrices["Vh"].conj().T,
        )
