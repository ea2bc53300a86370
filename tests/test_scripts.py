import pytest

from click.testing import CliRunner
import numpy as np
import pandas

from pseudoinverse.dataset import Dataset, Page
from pseudoinverse.scripts import pseudoinverse


@pytest.fixture
def matrix():
    rng = np.random.default_rng(seed=2025)
    return rng.standard_normal((5, 3))


@pytest.fixture
def filename(matrix, tmp_path):
    frame = pandas.DataFrame(dict(BPMName=list('abcde')) |
                             {f'HC{i}': matrix[:, i] for i in range(3)})
    filename = tmp_path / 'response.nc'
    Dataset([Page(frame, dict(Energy=6.0))], 'response').store(filename)
    return str(filename)


@pytest.fixture
def runner():
    return CliRunner()


def inverse(filename):
    frame = Dataset.load(filename).first.frame
    return frame.drop(columns='OldColumnNames').to_numpy(float)


def test_inverse(runner, filename, matrix, tmp_path):
    output = str(tmp_path / 'inverse.nc')
    result = runner.invoke(pseudoinverse, [filename, output])
    assert result.exit_code == 0, result.output
    assert np.allclose(inverse(output), np.linalg.pinv(matrix))
    page = Dataset.load(output).first
    assert page.parameters['InputFile'] == filename
    assert list(page.frame)[1:] == list('abcde')


def test_keep_largest(runner, filename, tmp_path):
    output = str(tmp_path / 'inverse.nc')
    result = runner.invoke(pseudoinverse, [filename, output,
                                           '-keep_largest', '2'])
    assert result.exit_code == 0, result.output
    page = Dataset.load(output).first
    assert page.parameters['NumberOfSingularValuesUsed'] == 2


def test_delete(runner, filename, tmp_path):
    output = str(tmp_path / 'inverse.nc')
    result = runner.invoke(pseudoinverse, [filename, output,
                                           '-delete', '0,2'])
    assert result.exit_code == 0, result.output
    page = Dataset.load(output).first
    assert page.parameters['NumberOfSingularValuesUsed'] == 1
    assert page.parameters['DeletedVectors'] == '0 2'


@pytest.mark.parametrize('option,alpha', [([], 0.01),
                                          (['alpha=0.5'], 0.5)])
def test_tikhonov(runner, filename, tmp_path, option, alpha):
    output = str(tmp_path / 'inverse.nc')
    result = runner.invoke(pseudoinverse, [filename, output, '-tikhonov',
                                           *option])
    assert result.exit_code == 0, result.output
    page = Dataset.load(output).first
    assert page.parameters['TikhonovFilterUsed'] == 1
    assert page.parameters['TikhonovAlpha'] == pytest.approx(alpha)


def test_tikhonov_svn(runner, filename, matrix, tmp_path):
    output = str(tmp_path / 'inverse.nc')
    result = runner.invoke(pseudoinverse, [filename, output, '-tikhonov',
                                           'svn=2'])
    assert result.exit_code == 0, result.output
    page = Dataset.load(output).first
    assert page.parameters['TikhonovSVNNumber'] == 2
    assert page.parameters['TikhonovAlpha'] == pytest.approx(
        np.linalg.svd(matrix, compute_uv=False)[1])


def test_tikhonov_bad_parameter(runner, filename, tmp_path):
    output = str(tmp_path / 'inverse.nc')
    result = runner.invoke(pseudoinverse, [filename, output, '-tikhonov',
                                           'gamma=1'])
    assert result.exit_code == 2


def test_config_conflict(runner, filename, tmp_path):
    output = str(tmp_path / 'inverse.nc')
    result = runner.invoke(pseudoinverse, [filename, output,
                                           '-keep_largest', '1',
                                           '-drop_smallest', '1'])
    assert result.exit_code == 1
    assert 'ConfigConflict' in result.output


def test_missing_input(runner, tmp_path):
    result = runner.invoke(pseudoinverse, [str(tmp_path / 'missing.nc'),
                                           str(tmp_path / 'inverse.nc')])
    assert result.exit_code == 2


def test_outputs(runner, filename, matrix, tmp_path):
    files = {name: str(tmp_path / f'{name}.nc')
             for name in ['inverse', 'u', 'v', 's', 'reconstruct']}
    result = runner.invoke(pseudoinverse, [
        filename, files['inverse'], '-emit_u', files['u'],
        '-emit_v', files['v'], '-emit_s', f"{files['s']},matrix",
        '-reconstruct', files['reconstruct'], '-lapack_method', 'simple'])
    assert result.exit_code == 0, result.output
    s = np.linalg.svd(matrix, compute_uv=False)
    s_frame = Dataset.load(files['s']).first.frame
    assert np.allclose(s_frame.to_numpy(), np.diag(s))
    assert list(Dataset.load(files['u']).first.frame)[0] == 'OriginalRows'
    assert len(Dataset.load(files['v']).first.frame) == 3
    frame = Dataset.load(files['reconstruct']).first.frame
    assert frame['BPMName'].tolist() == list('abcde')
    assert np.allclose(frame[['HC0', 'HC1', 'HC2']].to_numpy(), matrix)


def test_row_weights(runner, filename, tmp_path):
    weights = str(tmp_path / 'weight.nc')
    frame = pandas.DataFrame(dict(BPM=list('abcde'),
                                  Sigma=[1.0, 2.0, 1.0, 0.5, 1.0]))
    Dataset([Page(frame)]).store(weights)
    output = str(tmp_path / 'inverse.nc')
    result = runner.invoke(pseudoinverse, [
        filename, output, '-row_weights', f'{weights},name=BPM,value=Sigma'])
    assert result.exit_code == 0, result.output
    assert Dataset.load(output).first.frame.shape == (3, 6)


def test_row_weights_bad_format(runner, filename, tmp_path):
    output = str(tmp_path / 'inverse.nc')
    result = runner.invoke(pseudoinverse, [
        filename, output, '-row_weights', 'weight.nc,value=Sigma'])
    assert result.exit_code == 2


@pytest.mark.parametrize('invert', [False, True])
def test_multiply(runner, filename, matrix, tmp_path, invert):
    rng = np.random.default_rng(seed=2025)
    shape = (2, 3) if invert else (5, 2)
    companion = rng.standard_normal(shape)
    companion_file = str(tmp_path / 'companion.nc')
    Dataset([Page(pandas.DataFrame(dict(p=companion[:, 0],
                                        q=companion[:, 1]) |
                                   ({'r': companion[:, 2]} if invert else {})
                                   ))]).store(companion_file)
    output = str(tmp_path / 'product.nc')
    option = f'{companion_file},invert' if invert else companion_file
    result = runner.invoke(pseudoinverse, [filename, output,
                                           '-multiply', option])
    assert result.exit_code == 0, result.output
    frame = Dataset.load(output).first.frame
    if invert:
        assert np.allclose(frame.to_numpy(float),
                           companion @ np.linalg.pinv(matrix))
    else:
        assert np.allclose(frame.drop(columns='OldColumnNames').to_numpy(
            float), np.linalg.pinv(matrix) @ companion)


def test_multiply_bad_flag(runner, filename, tmp_path):
    output = str(tmp_path / 'product.nc')
    result = runner.invoke(pseudoinverse, [filename, output,
                                           '-multiply', f'{filename},twice'])
    assert result.exit_code == 2


def test_complex(runner, tmp_path):
    matrix = np.array([[1, 1j], [1j, 1]])
    frame = pandas.DataFrame(
        {f'{part}{name}': getattr(matrix[:, i], part.lower())
         for i, name in enumerate('xy') for part in ['Real', 'Imag']})
    filename = str(tmp_path / 'complex.nc')
    Dataset([Page(frame)]).store(filename)
    output = str(tmp_path / 'inverse.nc')
    result = runner.invoke(pseudoinverse, [filename, output, '-complex'])
    assert result.exit_code == 0, result.output
    frame = Dataset.load(output).first.frame
    assert np.allclose(frame['ImagColumn001'], [-0.5, 0])


def test_page_failure_reported(runner, matrix, tmp_path):
    filename = str(tmp_path / 'pages.nc')
    Dataset([Page(pandas.DataFrame(dict(x=[0.0, 0.0], y=[0.0, 0.0]))),
             Page(pandas.DataFrame(dict(x=[1.0, 0.0], y=[0.0, 2.0])))]
            ).store(filename)
    output = str(tmp_path / 'inverse.nc')
    result = runner.invoke(pseudoinverse, [filename, output])
    assert result.exit_code == 0
    assert 'DegenerateMatrix' in result.output
    assert len(Dataset.load(output)) == 1


if __name__ == '__main__':

    pytest.main([__file__])
