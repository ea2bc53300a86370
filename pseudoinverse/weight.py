"""Apply row and column weights to weighted least-squares systems."""

from dataclasses import dataclass
import logging
from pathlib import Path
import warnings

import numpy as np
import numpy.typing as npt
import pandas

from pseudoinverse.dataset import Dataset
from pseudoinverse.error import (DuplicateWeightWarning,
                                 NonPositiveWeightWarning, SchemaError,
                                 ShapeMismatch, WeightWarning)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WeightSource:
    """
    Name-value weight table.

    Parameters
    ----------
    dataset: str | Path | Dataset | pandas.DataFrame
        Weight dataset, only the first page is read.
    name: str
        String column holding row or column names.
    value: str
        Numeric column holding weights.
    """

    dataset: str | Path | Dataset | pandas.DataFrame
    name: str = "Name"
    value: str = "Weight"

    @property
    def label(self) -> str:
        """Return source label for diagnostic messages."""
        if isinstance(self.dataset, (str, Path)):
            return str(self.dataset)
        return type(self.dataset).__name__

    @property
    def frame(self) -> pandas.DataFrame:
        """Return weight table."""
        match self.dataset:
            case pandas.DataFrame():
                return self.dataset
            case Dataset():
                return self.dataset.first.frame
            case str() | Path():
                return Dataset.load(self.dataset).first.frame
            case _:
                raise TypeError(f"weight dataset type {type(self.dataset)} "
                                "not supported")

    def table(self) -> dict[str, float]:
        """Return name to weight mapping, last duplicate wins."""
        frame = self.frame
        for column in (self.name, self.value):
            if column not in frame:
                raise SchemaError(f"column {column} not found in weight "
                                  f"dataset {self.label}")
        if not pandas.api.types.is_numeric_dtype(frame[self.value]):
            raise SchemaError(f"weight column {self.value} is not numeric")
        if len(frame) == 0:
            raise SchemaError(f"no rows in weight dataset {self.label}")
        names = frame[self.name].astype(str)
        for name in names[names.duplicated()].unique():
            warnings.warn(f"duplicate weight name {name} in {self.label}, "
                          "last value used", DuplicateWeightWarning,
                          stacklevel=2)
        return dict(zip(names, frame[self.value].astype(float)))

    def __call__(self, names: list[str]) -> np.ndarray:
        """Return weights matched to names, unmatched names default to 1."""
        table = self.table()
        weights = np.ones(len(names))
        for i, name in enumerate(names):
            try:
                weights[i] = table[name]
            except KeyError:
                warnings.warn(f"name {name} doesn't exist in {self.label}",
                              WeightWarning, stacklevel=2)
        if (weights <= 0).any():
            warnings.warn(f"zero or negative weights in {self.label} "
                          "for names "
                          f"{[n for n, w in zip(names, weights) if w <= 0]}",
                          NonPositiveWeightWarning, stacklevel=2)
        return weights


@dataclass
class Weight:
    """
    Row and column weights for the system matrix.

    Rows of A are scaled by row weights and columns by column weights
    prior to factorization. The pseudo-inverse of the weighted system is
    rescaled so that x = inverse @ y solves min ||diag(row) (A x - y)||.

    Examples
    --------
    >>> weight = Weight(row=np.array([1.0, 2.0]))
    >>> weight.apply(np.ones((2, 2)))
    array([[1., 1.],
           [2., 2.]])
    """

    row: npt.ArrayLike | None = None
    column: npt.ArrayLike | None = None

    def __post_init__(self):
        """Convert weights to float arrays."""
        for attr in ("row", "column"):
            if (value := getattr(self, attr)) is not None:
                setattr(self, attr, np.asarray(value, dtype=float))

    def __bool__(self):
        """Return True if any weights are set."""
        return self.row is not None or self.column is not None

    def check(self, shape: tuple[int, int]):
        """Check weight lengths against matrix shape."""
        for attr, length in zip(("row", "column"), shape):
            if (value := getattr(self, attr)) is None:
                continue
            if len(value) != length:
                raise ShapeMismatch(f"{attr} weight length {len(value)} "
                                    f"!= matrix dimension {length}")

    def apply(self, matrix: np.ndarray) -> np.ndarray:
        """Scale matrix rows and columns in place."""
        self.check(matrix.shape)
        if self.row is not None:
            matrix *= self.row[:, np.newaxis]
        if self.column is not None:
            matrix *= self.column[np.newaxis, :]
        return matrix

    def rescale(self, inverse: np.ndarray) -> np.ndarray:
        """Scale pseudo-inverse columns by row and rows by column weights."""
        self.check(inverse.shape[::-1])
        if self.row is not None:
            inverse *= self.row[np.newaxis, :]
        if self.column is not None:
            inverse *= self.column[:, np.newaxis]
        return inverse
