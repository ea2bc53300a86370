"""Manage multi-page tabular datasets and their matrix schema."""

from dataclasses import dataclass, field
import logging
import os
from pathlib import Path

import numpy as np
import numpy.typing as npt
import pandas
import xarray

from pseudoinverse.error import ComplexPairMismatch, SchemaError

logger = logging.getLogger(__name__)


def _scalar(value):
    """Return python scalar from numpy attribute value."""
    if isinstance(value, np.generic):
        return value.item()
    return value


@dataclass
class Page:
    """
    Single table sharing one parameter context.

    Parameters
    ----------
    frame: pandas.DataFrame
        Column data, one row per table row.
    parameters: dict
        Scalar page parameters.
    arrays: dict[str, np.ndarray]
        One dimensional page arrays.
    """

    frame: pandas.DataFrame = field(default_factory=pandas.DataFrame)
    parameters: dict = field(default_factory=dict)
    arrays: dict[str, np.ndarray] = field(default_factory=dict)

    def __len__(self):
        """Return row number."""
        return len(self.frame)

    def copy(self):
        """Return deep copy of page."""
        return Page(self.frame.copy(), dict(self.parameters),
                    {name: np.copy(array)
                     for name, array in self.arrays.items()})

    def to_xarray(self) -> xarray.Dataset:
        """Return page as xarray Dataset."""
        data = xarray.Dataset()
        for name in self.frame:
            values = self.frame[name].to_numpy()
            if values.dtype == object:
                values = values.astype(str)
            data[name] = ("row", values)
        for name, array in self.arrays.items():
            data[name] = (f"{name}_index", np.asarray(array))
        data.attrs = {name: int(value) if isinstance(value, bool) else value
                      for name, value in self.parameters.items()
                      if value is not None}
        data.attrs["arrays"] = " ".join(self.arrays)
        return data

    @classmethod
    def from_xarray(cls, data: xarray.Dataset):
        """Return page built from xarray Dataset."""
        attrs = {name: _scalar(value) for name, value in data.attrs.items()}
        arrays = str(attrs.pop("arrays", "")).split()
        columns = {}
        for name in data.data_vars:
            if name in arrays:
                continue
            values = data[name].values
            if values.dtype.kind in "US":
                values = values.astype(object)
            columns[name] = values
        return cls(pandas.DataFrame(columns),
                   attrs, {name: data[name].values for name in arrays})


@dataclass
class Dataset:
    """Ordered collection of pages stored as netCDF groups."""

    pages: list[Page] = field(default_factory=list)
    description: str = ""

    def __len__(self):
        """Return page number."""
        return len(self.pages)

    def __iter__(self):
        """Iterate over pages."""
        return iter(self.pages)

    def __getitem__(self, index: int) -> Page:
        """Return page."""
        return self.pages[index]

    def append(self, page: Page):
        """Append page."""
        self.pages.append(page)
        return self

    @property
    def first(self) -> Page:
        """Return first page, raise SchemaError if dataset is empty."""
        if len(self.pages) == 0:
            raise SchemaError("dataset has no pages")
        return self.pages[0]

    @staticmethod
    def group(index: int) -> str:
        """Return netCDF group name for page index."""
        return f"page{index:04d}"

    def store(self, filepath: str | Path):
        """Store dataset to netCDF file, one group per page."""
        filepath = Path(filepath)
        if os.path.isfile(filepath):
            os.remove(filepath)
        root = xarray.Dataset(attrs=dict(description=self.description,
                                         pages=len(self.pages)))
        root.to_netcdf(filepath, mode="w")
        for index, page in enumerate(self.pages):
            page.to_xarray().to_netcdf(filepath, mode="a",
                                       group=self.group(index))
        logger.info("stored %d pages to %s", len(self.pages), filepath)
        return self

    @classmethod
    def load(cls, filepath: str | Path):
        """Load dataset from netCDF file."""
        with xarray.open_dataset(filepath) as root:
            attrs = dict(root.attrs)
        dataset = cls(description=str(attrs.get("description", "")))
        for index in range(int(attrs.get("pages", 0))):
            with xarray.open_dataset(filepath, group=cls.group(index),
                                     cache=True) as data:
                data.load()
                dataset.append(Page.from_xarray(data))
        return dataset


def label_names(count: int, root: str = "Column", digits: int = 3) -> list[str]:
    """
    Return generated names root000, root001, ...

    The index width is widened to fit count.

    >>> label_names(2, 'SV')
    ['SV000', 'SV001']
    """
    if count > 0:
        digits = max(digits, int(np.log10(count)) + 1)
    return [f"{root}{index:0{digits}d}" for index in range(count)]


def string_columns(frame: pandas.DataFrame) -> list[str]:
    """Return names of string columns."""
    return [name for name in frame
            if pandas.api.types.is_object_dtype(frame[name])
            or pandas.api.types.is_string_dtype(frame[name])]


def numeric_columns(frame: pandas.DataFrame) -> list[str]:
    """Return names of numeric columns."""
    return [name for name in frame
            if pandas.api.types.is_numeric_dtype(frame[name])
            and not pandas.api.types.is_bool_dtype(frame[name])]


def complex_stems(names: list[str]) -> list[str]:
    """
    Return stems of Real<x>/Imag<x> column pairs.

    >>> complex_stems(['Realx', 'Imagx', 'Other'])
    ['x']
    """
    real = [name[4:] for name in names if name.startswith("Real")]
    imag = [name[4:] for name in names if name.startswith("Imag")]
    for stem in real:
        if stem not in imag:
            raise ComplexPairMismatch(f"Real{stem}")
    for stem in imag:
        if stem not in real:
            raise ComplexPairMismatch(f"Imag{stem}")
    return real


@dataclass
class Schema:
    """
    Map dataset columns onto a real or complex matrix.

    The numeric column layout is fixed by the first page passed to
    discover.

    Parameters
    ----------
    complex: bool
        Read Real<x>/Imag<x> column pairs as complex elements.
    label: str, optional
        String column holding row names. The default is the first
        string column.
    root: str
        Root used to generate row names when no string column exists.
    digits: int
        Minimum digits appended to generated names.
    """

    complex: bool = False
    label: str | None = None
    root: str = "Column"
    digits: int = 3
    columns: list[str] = field(init=False, default_factory=list)
    string_column: str | None = field(init=False, default=None)

    @property
    def discovered(self) -> bool:
        """Return True if numeric columns have been discovered."""
        return len(self.columns) > 0

    def discover(self, page: Page):
        """Discover numeric matrix columns and the row name column."""
        frame = page.frame
        numeric = numeric_columns(frame)
        if self.complex:
            self.columns = complex_stems(numeric)
        else:
            self.columns = numeric
        if not self.columns:
            raise SchemaError("no numeric matrix columns found")
        strings = string_columns(frame)
        if self.label is not None:
            if self.label not in strings:
                raise SchemaError(f"row name column {self.label} "
                                  "does not exist in input")
            self.string_column = self.label
        elif strings:
            self.string_column = strings[0]
        logger.debug("schema columns %s, row names %s",
                     self.columns, self.string_column)
        return self

    @property
    def names(self) -> list[str]:
        """Return frame column names holding matrix data."""
        if self.complex:
            return [f"{part}{stem}" for stem in self.columns
                    for part in ("Real", "Imag")]
        return list(self.columns)

    def matrix(self, page: Page) -> np.ndarray:
        """Return page matrix."""
        if not self.discovered:
            self.discover(page)
        missing = [name for name in self.names if name not in page.frame]
        if missing:
            raise SchemaError(f"columns {missing} not found in page")
        frame = page.frame
        if not all(pandas.api.types.is_numeric_dtype(frame[name])
                   for name in self.names):
            raise SchemaError("non-numeric matrix column")
        if self.complex:
            real = frame[[f"Real{stem}" for stem in self.columns]]
            imag = frame[[f"Imag{stem}" for stem in self.columns]]
            return real.to_numpy(float) + 1j * imag.to_numpy(float)
        return frame[self.columns].to_numpy(float)

    def row_names(self, page: Page) -> list[str]:
        """Return row names from string column or generated from root."""
        if self.string_column is not None and self.string_column in page.frame:
            return [str(name) for name in page.frame[self.string_column]]
        return label_names(len(page), self.root, self.digits)


def check_names(names: list[str], label: str | None = None):
    """Raise SchemaError if output column names repeat or match label."""
    index = pandas.Index(names)
    if index.has_duplicates:
        raise SchemaError(f"repeated column names "
                          f"{index[index.duplicated()].unique().tolist()}")
    if label is not None and label in index:
        raise SchemaError(f"column name {label} clashes with label column")


def to_frame(matrix: npt.ArrayLike, columns: list[str],
             label: str | None = None, labels: list[str] | None = None,
             complex: bool | None = None) -> pandas.DataFrame:
    """
    Return matrix as frame with an optional leading label column.

    Complex matrices are split into Real<name>/Imag<name> column pairs.
    Column names must be unique and differ from label.
    """
    matrix = np.asarray(matrix)
    if complex is None:
        complex = np.iscomplexobj(matrix)
    check_names(columns, None if complex else label)
    if complex:
        check_names([f"{part}{name}" for name in columns
                     for part in ("Real", "Imag")], label)
    data = {}
    if label is not None:
        data[label] = np.array(labels, dtype=object)
    for index, name in enumerate(columns):
        if complex:
            data[f"Real{name}"] = matrix[:, index].real.copy()
            data[f"Imag{name}"] = matrix[:, index].imag.copy()
        else:
            data[name] = matrix[:, index].real.copy()
    return pandas.DataFrame(data)
