import pytest

import numpy as np

from pseudoinverse.matrix import MatrixBuffer, Workspace


def test_buffer_column_major():
    buffer = MatrixBuffer((3, 4))
    assert buffer.data.flags.f_contiguous
    assert buffer.data.shape == (3, 4)
    assert not buffer.complex


def test_buffer_zeroed():
    buffer = MatrixBuffer((2, 5), complex)
    assert buffer.complex
    assert np.all(buffer.data == 0)


def test_buffer_set_get():
    buffer = MatrixBuffer((2, 2), complex)
    buffer.set(0, 1, 1 - 2j)
    assert buffer.get(0, 1) == 1 - 2j
    assert buffer.get(1, 0) == 0


def test_buffer_view_column():
    buffer = MatrixBuffer((3, 2))
    buffer.fill([[1, 2], [3, 4], [5, 6]])
    column = buffer.view_column(1)
    assert column.flags.c_contiguous
    assert np.allclose(column, [2, 4, 6])


def test_buffer_dtype_error():
    with pytest.raises(TypeError):
        MatrixBuffer((2, 2), np.float32)


def test_buffer_release_idempotent():
    buffer = MatrixBuffer((2, 2))
    buffer.release()
    buffer.release()
    assert buffer.released
    with pytest.raises(ValueError):
        buffer.get(0, 0)


def test_workspace_reuse():
    workspace = Workspace()
    first = workspace.get('inverse', (4, 3))
    second = workspace.get('inverse', (4, 3))
    assert first is second
    assert workspace.allocations == 1


@pytest.mark.parametrize('shape,dtype', [((3, 4), float), ((4, 3), complex)])
def test_workspace_reallocate(shape, dtype):
    workspace = Workspace()
    workspace.get('inverse', (4, 3))
    data = workspace.get('inverse', shape, dtype)
    assert data.shape == shape
    assert data.dtype == np.dtype(dtype)
    assert workspace.allocations == 2


def test_workspace_load():
    workspace = Workspace()
    matrix = np.arange(6.0).reshape(2, 3)
    data = workspace.load('matrix', matrix)
    assert data.flags.f_contiguous
    assert np.allclose(data, matrix)
    assert data is not matrix


def test_workspace_load_complex():
    workspace = Workspace()
    data = workspace.load('matrix', [[1j, 2], [3, 4]])
    assert np.iscomplexobj(data)


def test_workspace_release():
    workspace = Workspace()
    workspace.get('inverse', (2, 2))
    workspace.get('product', (2, 2))
    workspace.release('inverse')
    assert 'inverse' not in workspace
    assert 'product' in workspace
    workspace.release()
    assert 'product' not in workspace


if __name__ == '__main__':

    pytest.main([__file__])
