"""Immutable pseudo-inverse engine configuration."""

from dataclasses import dataclass, field, fields

from pseudoinverse.decompose import LAPACK_DRIVERS
from pseudoinverse.error import ConfigConflict
from pseudoinverse.inverse import MULTIPLY_MODES
from pseudoinverse.regularize import Regularization, Tikhonov
from pseudoinverse.weight import WeightSource


@dataclass(frozen=True)
class Config:
    """
    Engine configuration, built once and never mutated.

    Parameters
    ----------
    regularization: Regularization
        Singular value suppression policy.
    row_weights, column_weights: WeightSource, optional
        Weight tables matched by row and column name.
    multiply: str
        Companion multiply mode, none, post (inverse @ B) or pre (B @ inverse).
    reconstruct: bool
        Emit the matrix reconstructed from retained singular triplets.
    emit_u, emit_v, emit_s: bool
        Emit left singular vectors, right singular vectors, singular values.
    s_matrix: bool
        Emit singular values as a diagonal matrix.
    complex: bool
        Read Real<x>/Imag<x> column pairs.
    threads: int, optional
        Thread limit forwarded to linear algebra kernels.
    lapack_driver: str
        Scipy svd driver, gesdd (divide and conquer) or gesvd (simple).
    economy: bool
        Thin svd flag, full svd is not supported.
    fixed_rows: bool
        Require every page to share the row number of the first page.
    reuse_last_companion_page: bool
        Reuse the last companion page when the companion dataset runs out
        of pages, otherwise stop.
    root: str, optional
        Root for generated row names and post-multiply column names. The
        default is Column for row names and companion names otherwise.
    digits: int
        Minimum digits in generated names.
    new_column_names: str, optional
        String column supplying row names.
    old_column_names: str
        Label column of the pseudo-inverse holding input column names.
    input_file: str
        Input label written to the InputFile parameter.
    """

    regularization: Regularization = field(default_factory=Regularization)
    row_weights: WeightSource | None = None
    column_weights: WeightSource | None = None
    multiply: str = "none"
    reconstruct: bool = False
    emit_u: bool = False
    emit_v: bool = False
    emit_s: bool = False
    s_matrix: bool = False
    complex: bool = False
    threads: int | None = None
    lapack_driver: str = "gesdd"
    economy: bool = True
    fixed_rows: bool = True
    reuse_last_companion_page: bool = False
    root: str | None = None
    digits: int = 3
    new_column_names: str | None = None
    old_column_names: str = "OldColumnNames"
    input_file: str = "pipe"

    def __post_init__(self):
        """Validate configuration, raise ConfigConflict."""
        if self.multiply not in MULTIPLY_MODES:
            raise ConfigConflict(f"multiply mode {self.multiply} "
                                 f"not in {MULTIPLY_MODES}")
        if self.lapack_driver not in LAPACK_DRIVERS:
            raise ConfigConflict(f"lapack driver {self.lapack_driver} "
                                 f"not in {LAPACK_DRIVERS}")
        if self.threads is not None and self.threads < 1:
            raise ConfigConflict(f"threads {self.threads} < 1")
        if self.digits < 1:
            raise ConfigConflict(f"digits {self.digits} < 1")
        if not self.economy:
            raise ConfigConflict("full svd is not supported, "
                                 "economy is always on")
        if self.root is not None and self.new_column_names is not None:
            raise ConfigConflict("root and new_column_names are incompatible")
        if self.s_matrix and not self.emit_s:
            raise ConfigConflict("s_matrix requires emit_s")

    @classmethod
    def from_options(cls, **options):
        """
        Return config from flat options.

        Regularization options (min_ratio, keep_largest, drop_smallest,
        delete, tikhonov, remove_dc) are collected into a Regularization
        instance. tikhonov may be a Tikhonov instance, a dict of Tikhonov
        parameters, or True for the default filter.

        >>> Config.from_options(keep_largest=2).regularization.keep_largest
        2
        """
        regularization = {name: options.pop(name) for name in
                          (attr.name for attr in fields(Regularization))
                          if name in options}
        match regularization.get("tikhonov"):
            case True:
                regularization["tikhonov"] = Tikhonov()
            case False:
                regularization["tikhonov"] = None
            case dict() as tikhonov:
                regularization["tikhonov"] = Tikhonov(**tikhonov)
        return cls(Regularization(**regularization), **options)

    @property
    def row_root(self) -> str:
        """Return root for generated row names."""
        return "Column" if self.root is None else self.root
