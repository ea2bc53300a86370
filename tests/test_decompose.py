import pytest

import numpy as np

from pseudoinverse.decompose import Decompose
from pseudoinverse.error import NonConvergent


rng = np.random.default_rng(seed=2025)
matricies = [rng.random((200, 110)), rng.random((70, 130)),
             rng.random((100, 100)),
             rng.random((40, 30)) + 1j * rng.random((40, 30))]


@pytest.mark.parametrize('matrix', matricies)
def test_default_rank(matrix):
    decompose = Decompose(matrix)
    assert np.allclose(decompose.matrix,
                       decompose['U'] * decompose['s'] @ decompose['Vh'])


@pytest.mark.parametrize('lapack_driver', ['gesdd', 'gesvd'])
@pytest.mark.parametrize('matrix', matricies)
def test_thin_shapes(matrix, lapack_driver):
    decompose = Decompose(matrix, lapack_driver)
    rank = min(matrix.shape)
    assert decompose.rank == rank
    assert decompose['U'].shape == (matrix.shape[0], rank)
    assert decompose['s'].shape == (rank,)
    assert decompose['V'].shape == (matrix.shape[1], rank)


@pytest.mark.parametrize('matrix', matricies)
def test_singular_values_descending(matrix):
    s = Decompose(matrix)['s']
    assert np.all(np.diff(s) <= 0)
    assert np.all(s >= 0)


def test_svd_matrices():
    svd = Decompose(matricies[-1])
    assert all([attr in svd.matrices for attr in ['U', 's', 'Vh', 'Uh', 'V']])
    assert svd.complex


def test_conjugate_transpose():
    svd = Decompose(matricies[-1])
    assert np.allclose(svd['V'], svd['Vh'].conj().T)
    assert np.allclose(svd['Uh'] @ svd['U'], np.identity(svd.rank))


def test_overwrite_consumes_matrix():
    matrix = np.asfortranarray(matricies[0])
    svd = Decompose(matrix.copy(order='F'), overwrite=True)
    assert svd.matrix is None
    assert np.allclose(matrix, svd['U'] * svd['s'] @ svd['Vh'])


@pytest.mark.parametrize('value', [np.nan, np.inf])
def test_non_finite_nonconvergent(value):
    matrix = np.ones((3, 2))
    matrix[1, 1] = value
    with pytest.raises(NonConvergent):
        Decompose(matrix)


def test_lapack_driver_error():
    with pytest.raises(ValueError):
        Decompose(np.ones((2, 2)), 'gesvdx')


if __name__ == '__main__':

    pytest.main([__file__])
