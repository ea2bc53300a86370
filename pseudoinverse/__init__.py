"""
Pseudoinverse: regularized Moore-Penrose pseudo-inverses of paged matrices.

Subpackages
-----------
Using the command line module requires an explicit import, for example
``import pseudoinverse.scripts``.

::

 scripts         --- Command line interface.


Public API in the main pseudoinverse namespace
----------------------------------------------

::

 Engine            --- Multi-page dataset processing
 Config            --- Immutable engine configuration
 PseudoInverse     --- Single matrix pseudo-inverse pipeline
 Regularization    --- Singular value suppression policy
 Tikhonov          --- Tikhonov filter parameters
 Weight            --- Row and column weights
 WeightSource      --- Name-value weight tables
 Dataset, Page     --- Paged tabular datasets
 Decompose         --- Thin singular value decomposition
 __version__       --- Pseudoinverse version string

"""

__all__ = [
    "Config",
    "Dataset",
    "Decompose",
    "Engine",
    "Page",
    "PseudoInverse",
    "Regularization",
    "Tikhonov",
    "Weight",
    "WeightSource",
]

import importlib
import importlib.metadata
import logging

from .config import Config
from .dataset import Dataset, Page
from .decompose import Decompose
from .engine import Engine
from .inverse import PseudoInverse
from .regularize import Regularization, Tikhonov
from .weight import Weight, WeightSource

try:
    __version__ = importlib.metadata.version(__package__ or __name__)
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0"
__all__.append("__version__")

submodules = [
    "scripts",
]
__all__.extend(submodules)

logging.getLogger(__name__).addHandler(logging.NullHandler())


def __dir__():
    return __all__


def __getattr__(name):
    if name in submodules:
        return importlib.import_module(f"pseudoinverse.{name}")
    try:
        return globals()[name]
    except KeyError:
        raise AttributeError(
            f"Module 'pseudoinverse' has no attribute '{name}'")
