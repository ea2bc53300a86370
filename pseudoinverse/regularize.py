"""Filter singular values prior to pseudo-inverse assembly."""

from dataclasses import dataclass, field
import logging
import warnings

import numpy as np
import numpy.typing as npt

from pseudoinverse.error import (ConfigConflict, DegenerateMatrix,
                                 TikhonovWarning)

logger = logging.getLogger(__name__)

DEFAULT_ALPHA = 0.01


@dataclass(frozen=True)
class Tikhonov:
    """
    Tikhonov filter parameters.

    Retained inverse singular values are replaced by s / (s**2 + alpha**2).
    At most one of alpha, svn, and beta may be given.

    Parameters
    ----------
    alpha: float, optional
        Regularization scalar. The default is 0.01 when no parameter is set.
    svn: int, optional
        One-based singular value number, alpha = s[svn-1].
    beta: float, optional
        Relative regularization, alpha = beta * max(s).
    """

    alpha: float | None = None
    svn: int | None = None
    beta: float | None = None

    def __post_init__(self):
        """Check parameters."""
        given = [attr for attr in ("alpha", "svn", "beta")
                 if getattr(self, attr) is not None]
        if len(given) > 1:
            raise ConfigConflict(
                f"only one of tikhonov alpha, svn, beta may be given {given}")
        if self.alpha is not None and self.alpha < 0:
            raise ConfigConflict(f"tikhonov alpha {self.alpha} < 0")
        if self.beta is not None and self.beta < 0:
            raise ConfigConflict(f"tikhonov beta {self.beta} < 0")
        if self.svn is not None and self.svn < 1:
            raise ConfigConflict(f"tikhonov svn {self.svn} < 1")

    @property
    def mode(self) -> str:
        """Return active parameter name."""
        for attr in ("svn", "beta"):
            if getattr(self, attr) is not None:
                return attr
        return "alpha"

    def regularizer(self, singular_values: np.ndarray) -> float:
        """Return effective alpha for singular value vector."""
        alpha = DEFAULT_ALPHA if self.alpha is None else self.alpha
        match self.mode:
            case "svn" if self.svn <= len(singular_values):
                return float(singular_values[self.svn - 1])
            case "svn":
                warnings.warn(f"tikhonov svn {self.svn} exceeds singular "
                              f"value number {len(singular_values)}, "
                              f"using alpha={alpha}", TikhonovWarning,
                              stacklevel=2)
                return alpha
            case "beta":
                return float(self.beta * np.max(singular_values))
            case _:
                return alpha

    @property
    def parameters(self) -> dict:
        """Return configured parameters for output datasets."""
        return dict(TikhonovSVNNumber=self.svn or 0,
                    TikhonovBeta=self.beta or 0.0)


def dc_mask(V: npt.ArrayLike) -> np.ndarray:
    """
    Return mask of near-constant right singular vectors.

    A column v of V (n, k) is flagged when abs(sum(v)) > 0.1 * sqrt(n).
    """
    V = np.asarray(V)
    return np.abs(V.sum(axis=0)) > 0.1 * np.sqrt(V.shape[0])


@dataclass
class Filter:
    """Regularized singular values and per-page diagnostics."""

    inverse: np.ndarray
    used: np.ndarray
    retain: np.ndarray
    deleted: tuple[int, ...] = ()
    alpha: float = 0.0
    tikhonov: bool = False

    @property
    def retained(self) -> int:
        """Return number of singular values used."""
        return int(np.count_nonzero(self.retain))

    @property
    def condition_number(self) -> float:
        """Return ratio of largest to smallest retained singular value."""
        if not self.retain.any():
            return float("nan")
        used = self.used[self.retain]
        return float(used.max() / used.min())

    @property
    def deleted_vectors(self) -> str:
        """Return space separated list of explicitly deleted indices."""
        return " ".join(str(index) for index in self.deleted)


@dataclass(frozen=True)
class Regularization:
    """
    Singular value suppression policy.

    Suppression is applied in order: zeros, remove_dc, min_ratio,
    keep_largest / drop_smallest, then delete. Retained values are
    inverted directly or with the Tikhonov filter, whose svn and beta
    modes see singular values after DC removal.

    Parameters
    ----------
    min_ratio: float
        Suppress s[i] / s_max < min_ratio, where s_max is the largest
        non-zero singular value.
    keep_largest: int
        Keep only the keep_largest leading singular values, 0 disables.
    drop_smallest: int
        Drop the drop_smallest trailing singular values, 0 disables.
    delete: tuple[int, ...]
        Explicit zero-based indices to suppress, out-of-range entries
        are ignored.
    tikhonov: Tikhonov, optional
        Tikhonov filter, None disables.
    remove_dc: bool
        Suppress near-constant right singular vectors.

    Examples
    --------
    >>> Regularization(keep_largest=1)([2.0, 1.0]).inverse
    array([0.5, 0. ])
    """

    min_ratio: float = 0.0
    keep_largest: int = 0
    drop_smallest: int = 0
    delete: tuple[int, ...] = field(default=())
    tikhonov: Tikhonov | None = None
    remove_dc: bool = False

    def __post_init__(self):
        """Validate configuration, raise ConfigConflict."""
        object.__setattr__(self, "delete", tuple(int(i) for i in self.delete))
        selectors = [attr for attr in ("min_ratio", "keep_largest",
                                       "drop_smallest") if getattr(self, attr)]
        if len(selectors) > 1:
            raise ConfigConflict("only one of min_ratio, keep_largest, "
                                 "drop_smallest may be given")
        if not 0 <= self.min_ratio <= 1:
            raise ConfigConflict(f"min_ratio {self.min_ratio} not in [0, 1]")
        for attr in ("keep_largest", "drop_smallest"):
            if getattr(self, attr) < 0:
                raise ConfigConflict(f"{attr} {getattr(self, attr)} < 0")

    @property
    def parameters(self) -> dict:
        """Return configured parameters for output datasets."""
        tikhonov = self.tikhonov or Tikhonov()
        return dict(MinimumSingularValueRatio=float(self.min_ratio),
                    TikhonovFilterUsed=int(self.tikhonov is not None)
                    ) | tikhonov.parameters

    def __call__(self, singular_values: npt.ArrayLike,
                 V: npt.ArrayLike | None = None) -> Filter:
        """Return filtered singular values."""
        singular_values = np.asarray(singular_values, dtype=float)
        size = len(singular_values)
        if not (singular_values > 0).any():
            raise DegenerateMatrix()
        sigma = singular_values.copy()
        if self.remove_dc:
            if V is None:
                raise ValueError("right singular vectors required "
                                 "for remove_dc")
            mask = dc_mask(V)
            logger.info("remove dc vectors %s", np.flatnonzero(mask).tolist())
            sigma[mask] = 0
        nonzero = np.flatnonzero(sigma)
        if len(nonzero) == 0:
            raise DegenerateMatrix()
        retain = sigma > 0
        retain &= sigma / sigma[nonzero[0]] >= self.min_ratio
        index = np.arange(size)
        if self.keep_largest:
            retain &= index < self.keep_largest
        if self.drop_smallest:
            retain &= index < size - self.drop_smallest
        deleted = tuple(sorted({i for i in self.delete if 0 <= i < size}))
        retain[list(deleted)] = False

        used = np.where(retain, singular_values, 0.0)
        inverse = np.zeros(size)
        alpha = 0.0
        if self.tikhonov is not None:
            alpha = self.tikhonov.regularizer(sigma)
            inverse[retain] = used[retain] / (used[retain]**2 + alpha**2)
        else:
            inverse[retain] = 1 / used[retain]
        return Filter(inverse, used, retain, deleted, alpha,
                      self.tikhonov is not None)
