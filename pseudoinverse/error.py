"""Collection of pseudo-inverse error and warning classes."""


class PseudoInverseError(Exception):
    """Base class for pseudo-inverse failures."""

    component: str = "engine"

    @property
    def kind(self) -> str:
        """Return error kind."""
        return type(self).__name__


class ConfigConflict(PseudoInverseError, ValueError):
    """Reject incompatible or invalid configuration options."""

    component = "config"


class SchemaError(PseudoInverseError, KeyError):
    """Report missing or malformed dataset columns."""

    component = "read"

    def __str__(self):
        """Return message without KeyError quoting."""
        return str(self.args[0]) if self.args else ""


class ComplexPairMismatch(SchemaError):
    """Report a Real* column without an Imag* partner or vice versa."""

    def __init__(self, name):
        super().__init__(
            f"complex column {name} has no matching "
            f"{'Imag' if name.startswith('Real') else 'Real'} partner"
        )


class EmptyPage(PseudoInverseError, IndexError):
    """Skip pages without rows."""

    component = "read"

    def __init__(self, page: int | None = None):
        if page is None:
            super().__init__("matrix has no rows")
            return
        super().__init__(f"page {page} has no rows")


class ShapeMismatch(PseudoInverseError, IndexError):
    """Prevent products of incompatible matrices."""

    component = "multiply"


class NonConvergent(PseudoInverseError, ArithmeticError):
    """Report singular value decomposition failure."""

    component = "factor"


class DegenerateMatrix(PseudoInverseError, ArithmeticError):
    """Report matrix without a single non-zero singular value."""

    component = "regularize"

    def __init__(self):
        super().__init__(
            "no non-zero singular values found, unable to find the inverse matrix"
        )


class OutOfMemory(PseudoInverseError, MemoryError):
    """Report failed buffer allocation."""

    component = "matrix"

    def __init__(self, shape, dtype):
        super().__init__(f"unable to allocate {shape} buffer of type {dtype}")


class WeightWarning(UserWarning):
    """Warn of weight names not found in the weight dataset."""


class DuplicateWeightWarning(WeightWarning):
    """Warn of names repeated in the weight dataset, last value wins."""


class NonPositiveWeightWarning(WeightWarning):
    """Warn of zero or negative weights."""


class TikhonovWarning(UserWarning):
    """Warn of Tikhonov singular value number beyond matrix rank."""


class PageCountMismatch(UserWarning):
    """Warn of a companion dataset with fewer pages than the input."""
