"""Process multi-page matrix datasets through the pseudo-inverse pipeline."""

from dataclasses import dataclass, field
import logging
import warnings

import numpy as np
import pandas
from threadpoolctl import threadpool_limits

from pseudoinverse.config import Config
from pseudoinverse.dataset import (Dataset, Page, Schema, check_names,
                                   label_names, to_frame)
from pseudoinverse.error import (DegenerateMatrix, EmptyPage, NonConvergent,
                                 PageCountMismatch, SchemaError,
                                 ShapeMismatch)
from pseudoinverse.inverse import PseudoInverse, Solution
from pseudoinverse.weight import Weight

logger = logging.getLogger(__name__)

PAGE_ERRORS = (EmptyPage, SchemaError, ShapeMismatch, NonConvergent,
               DegenerateMatrix)


@dataclass
class Failure:
    """Page-local failure record."""

    page: int
    component: str
    kind: str
    message: str

    def __str__(self):
        """Return diagnostic message."""
        return (f"page {self.page}: {self.component} failed "
                f"({self.kind}) {self.message}")


@dataclass
class Result:
    """Output datasets of an engine run."""

    inverse: Dataset = field(default_factory=Dataset)
    u: Dataset | None = None
    v: Dataset | None = None
    s: Dataset | None = None
    reconstruct: Dataset | None = None
    failures: list[Failure] = field(default_factory=list)

    def __getitem__(self, name: str) -> Dataset:
        """Return named output dataset."""
        return getattr(self, name)

    @property
    def outputs(self) -> dict[str, Dataset]:
        """Return requested output datasets."""
        return {name: getattr(self, name) for name in
                ("inverse", "u", "v", "s", "reconstruct")
                if getattr(self, name) is not None}


@dataclass
class Engine:
    """
    Pseudo-inverse engine facade.

    Pages are processed independently and in input order. Each page runs
    read, weight, factor, regularize, assemble, multiply and reconstruct
    steps. Page-local failures are logged and recorded, the corresponding
    output page is omitted and processing continues with the next page.

    Parameters
    ----------
    config: Config
        Engine configuration.

    Examples
    --------
    >>> import pandas
    >>> page = Page(pandas.DataFrame(dict(x=[1.0, 0.0], y=[0.0, 2.0])))
    >>> result = Engine().run(Dataset([page]))
    >>> result.inverse[0].parameters['NumberOfSingularValuesUsed']
    2
    """

    config: Config = field(default_factory=Config)
    schema: Schema = field(init=False, repr=False)
    companion_schema: Schema = field(init=False, repr=False)
    pseudoinverse: PseudoInverse = field(init=False, repr=False)

    def __post_init__(self):
        """Build schema and pipeline from config."""
        self.schema = Schema(self.config.complex, self.config.new_column_names,
                             self.config.row_root, self.config.digits)
        self.companion_schema = Schema(self.config.complex)
        self.pseudoinverse = PseudoInverse(
            self.config.regularization, Weight(), self.config.multiply,
            self.config.reconstruct, self.config.lapack_driver,
            self.config.threads)
        self._weights = {}
        self.rows: int | None = None

    def _result(self) -> Result:
        """Return empty result with requested outputs."""
        config = self.config
        return Result(
            Dataset(description="Pseudo-inverse"),
            Dataset(description="U column-orthogonal matrix")
            if config.emit_u else None,
            Dataset(description="V column-orthogonal matrix")
            if config.emit_v else None,
            Dataset(description="Singular values") if config.emit_s else None,
            Dataset(description="Reconstructed matrix")
            if config.reconstruct else None)

    def weights(self, row_names: list[str], column_names: list[str]) -> Weight:
        """Return weights matched to names, cached per name set."""
        key = tuple(row_names), tuple(column_names)
        if key not in self._weights:
            row, column = None, None
            if self.config.row_weights is not None:
                row = self.config.row_weights(row_names)
            if self.config.column_weights is not None:
                column = self.config.column_weights(column_names)
            self._weights[key] = Weight(row, column)
        return self._weights[key]

    def companion_page(self, companion: Dataset, index: int) -> Page | None:
        """Return companion page for one-based page index."""
        if index <= len(companion):
            return companion[index - 1]
        if self.config.reuse_last_companion_page and len(companion) > 0:
            warnings.warn(f"companion dataset has {len(companion)} pages, "
                          f"reusing last page for page {index}",
                          PageCountMismatch, stacklevel=3)
            return companion[-1]
        warnings.warn(f"companion dataset has {len(companion)} pages, "
                      f"processing stopped before page {index}",
                      PageCountMismatch, stacklevel=3)
        return None

    def run(self, dataset: Dataset, companion: Dataset | None = None) -> Result:
        """Process dataset pages in order and return output datasets."""
        if self.config.multiply != "none" and companion is None:
            raise ShapeMismatch(f"companion dataset required for "
                                f"{self.config.multiply} multiply")
        result = self._result()
        with threadpool_limits(limits=self.config.threads, user_api="blas"):
            for index, page in enumerate(dataset, start=1):
                companion_page = None
                if self.config.multiply != "none":
                    companion_page = self.companion_page(companion, index)
                    if companion_page is None:
                        break
                discovered = self.schema.discovered
                try:
                    self.process(index, page, companion_page, result)
                except PAGE_ERRORS as error:
                    if isinstance(error, SchemaError) and not discovered:
                        raise
                    failure = Failure(index, error.component, error.kind,
                                      str(error))
                    if isinstance(error, EmptyPage):
                        logger.warning(str(failure))
                    else:
                        logger.error(str(failure))
                    result.failures.append(failure)
        return result

    def read(self, index: int, page: Page):
        """Return page matrix and row names."""
        if len(page) == 0:
            raise EmptyPage(index)
        if not self.schema.discovered:
            self.schema.discover(page)
        matrix = self.schema.matrix(page)
        if self.config.fixed_rows:
            if self.rows is None:
                self.rows = len(page)
            elif len(page) != self.rows:
                raise ShapeMismatch(f"page {index} has {len(page)} rows, "
                                    f"first page has {self.rows}")
        row_names = self.schema.row_names(page)
        if self.config.multiply == "none":
            check_names(row_names, None if self.config.complex
                        else self.config.old_column_names)
        return matrix, row_names

    def read_companion(self, page: Page):
        """Return companion matrix."""
        if len(page) == 0:
            raise ShapeMismatch("companion page has no rows")
        if not self.companion_schema.discovered:
            self.companion_schema.discover(page)
        return self.companion_schema.matrix(page)

    def process(self, index: int, page: Page, companion_page: Page | None,
                result: Result) -> Solution:
        """Solve single page and append outputs to result."""
        matrix, row_names = self.read(index, page)
        companion = None
        if companion_page is not None:
            companion = self.read_companion(companion_page)
        self.pseudoinverse.weight = self.weights(row_names,
                                                 self.schema.columns)
        solution = self.pseudoinverse.solve(matrix, companion)
        logger.info("page %d: %d of %d singular values used, "
                    "condition number %.6g", index, solution.filter.retained,
                    len(solution.s), solution.filter.condition_number)
        result.inverse.append(self.inverse_page(solution, row_names,
                                                companion_page))
        if result.u is not None:
            result.u.append(self.u_page(solution, row_names))
        if result.v is not None:
            result.v.append(self.v_page(solution))
        if result.s is not None:
            result.s.append(self.s_page(solution))
        if result.reconstruct is not None:
            result.reconstruct.append(self.reconstruct_page(solution, page))
        return solution

    def parameters(self, solution: Solution) -> dict:
        """Return output page parameters."""
        filter = solution.filter
        return self.config.regularization.parameters | dict(
            NumberOfSingularValuesUsed=filter.retained,
            DeletedVectors=filter.deleted_vectors,
            ConditionNumber=filter.condition_number,
            TikhonovAlpha=filter.alpha,
            InputFile=self.config.input_file)

    def inverse_page(self, solution: Solution, row_names: list[str],
                     companion_page: Page | None) -> Page:
        """Return pseudo-inverse or product output page."""
        label = self.config.old_column_names
        match self.config.multiply:
            case "none":
                frame = to_frame(solution.inverse, row_names, label,
                                 self.schema.columns, self.config.complex)
            case "post":
                columns = self.companion_schema.columns
                if self.config.root is not None:
                    columns = label_names(solution.product.shape[1],
                                          self.config.root, self.config.digits)
                frame = to_frame(solution.product, columns, label,
                                 self.schema.columns, self.config.complex)
            case "pre":
                frame = self._pre_frame(solution, row_names, companion_page)
        arrays = dict(SingularValues=np.copy(solution.s),
                      SingularValuesUsed=np.copy(solution.filter.used),
                      InverseSingularValues=np.copy(solution.filter.inverse))
        return Page(frame, self.parameters(solution), arrays)

    def _pre_frame(self, solution: Solution, row_names: list[str],
                   companion_page: Page) -> pandas.DataFrame:
        """Return companion @ inverse frame labeled by companion rows."""
        label = self.companion_schema.string_column
        labels = None
        if label is not None:
            labels = self.companion_schema.row_names(companion_page)
        return to_frame(solution.product, row_names, label, labels,
                        self.config.complex)

    def _singular_names(self, solution: Solution) -> list[str]:
        return label_names(len(solution.s), "SV", self.config.digits)

    def u_page(self, solution: Solution, row_names: list[str]) -> Page:
        """Return left singular vector page."""
        label = self.config.new_column_names or "OriginalRows"
        return Page(to_frame(solution.U, self._singular_names(solution),
                             label, row_names, self.config.complex))

    def v_page(self, solution: Solution) -> Page:
        """Return right singular vector page."""
        return Page(to_frame(solution.V, self._singular_names(solution),
                             self.config.old_column_names,
                             self.schema.columns, self.config.complex))

    def s_page(self, solution: Solution) -> Page:
        """Return singular value page, tabular or diagonal matrix."""
        if self.config.s_matrix:
            return Page(to_frame(np.diag(solution.s),
                                 self._singular_names(solution),
                                 complex=False))
        return Page(pandas.DataFrame(dict(
            Index=np.arange(len(solution.s)),
            SingularValues=np.copy(solution.s))))

    def reconstruct_page(self, solution: Solution, page: Page) -> Page:
        """Return copy of input page with matrix columns reconstructed."""
        output = page.copy()
        frame = output.frame
        for index, name in enumerate(self.schema.columns):
            column = solution.reconstruct[:, index]
            if self.config.complex:
                frame[f"Real{name}"] = column.real
                frame[f"Imag{name}"] = column.imag
            else:
                frame[name] = column.real
        output.parameters |= dict(
            NumberOfSingularValuesUsed=solution.filter.retained,
            DeletedVectors=solution.filter.deleted_vectors)
        return output
