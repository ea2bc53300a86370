"""Manage command line access to the pseudo-inverse engine."""
import logging
import warnings

import click

from pseudoinverse.config import Config
from pseudoinverse.dataset import Dataset
from pseudoinverse.engine import Engine
from pseudoinverse.error import ConfigConflict, OutOfMemory, SchemaError
from pseudoinverse.regularize import Tikhonov
from pseudoinverse.weight import WeightSource


class IndexListType(click.ParamType):
    """
    Define comma separated index list.

    indices: tuple[int, ...]

    """

    name: str = 'INDICES'

    def convert(self, value, param, ctx):
        """Return value with converted type."""
        if isinstance(value, tuple):
            return value
        try:
            return tuple(int(item) for item in value.split(',') if item)
        except ValueError:
            self.fail(f'{value!r} is not a comma separated list of integers',
                      param, ctx)


class WeightType(click.ParamType):
    """
    Define weight source.

    file,name=<column>,value=<column>

    """

    name: str = 'FILE,name=COL,value=COL'

    def convert(self, value, param, ctx):
        """Return value with converted type."""
        if isinstance(value, WeightSource):
            return value
        filename, *items = value.split(',')
        try:
            columns = dict(item.split('=', 1) for item in items)
        except ValueError:
            self.fail(f'{value!r} items must be key=value pairs', param, ctx)
        if set(columns) != {'name', 'value'}:
            self.fail(f'{value!r} requires name= and value= columns',
                      param, ctx)
        return WeightSource(filename, columns['name'], columns['value'])


class FileFlagType(click.ParamType):
    """
    Define filename with an optional trailing flag.

    file[,flag]

    """

    name: str = 'FILE[,FLAG]'

    def __init__(self, flag: str):
        self.flag = flag

    def convert(self, value, param, ctx):
        """Return (filename, flag) tuple."""
        if isinstance(value, tuple):
            return value
        match value.split(','):
            case [str(filename)]:
                return filename, False
            case [str(filename), str(flag)] if self.flag.startswith(
                    flag.lower()) and flag:
                return filename, True
            case _:
                self.fail(f'{value!r} is not FILE or FILE,{self.flag}',
                          param, ctx)


def parse_tikhonov(value: str | None) -> Tikhonov | None:
    """Return Tikhonov filter from [alpha=|svn=|beta=] option value."""
    if value is None:
        return None
    if value in ('', 'default'):
        return Tikhonov()
    try:
        key, number = value.split('=')
        match key:
            case 'svn':
                return Tikhonov(svn=int(number))
            case 'alpha' | 'beta':
                return Tikhonov(**{key: float(number)})
    except ValueError as error:
        raise click.BadParameter(f'{value!r} is not svn=<int>, alpha=<float>'
                                 ' or beta=<float>') from error
    raise click.BadParameter(f'{value!r} is not svn=<int>, alpha=<float>'
                             ' or beta=<float>')


@click.command(context_settings={'show_default': True,
                                 'max_content_width': 160})
@click.argument('input_file', metavar='INPUT',
                type=click.Path(exists=True, dir_okay=False))
@click.argument('output_file', metavar='OUTPUT',
                type=click.Path(dir_okay=False))
@click.option('-min_ratio', 'min_ratio', type=click.FloatRange(0, 1),
              default=0.0,
              help='reject singular values below ratio * largest value')
@click.option('-keep_largest', 'keep_largest', type=click.IntRange(min=0),
              default=0, help='retain only the n largest singular values')
@click.option('-drop_smallest', 'drop_smallest', type=click.IntRange(min=0),
              default=0, help='remove the n smallest singular values')
@click.option('-delete', 'delete', type=IndexListType(), default='',
              help='comma separated singular vector indices to delete')
@click.option('-tikhonov', 'tikhonov', is_flag=False, flag_value='default',
              default=None, metavar='[svn=N|alpha=X|beta=X]',
              help="""\b
                      Tikhonov filter s / (s**2 + alpha**2)
                          alpha: regularization value (default 0.01)
                          svn: alpha is the svn-th singular value
                          beta: alpha is beta * largest singular value
                      """)
@click.option('-remove_dc', 'remove_dc', is_flag=True,
              help='remove near-constant right singular vectors')
@click.option('-row_weights', 'row_weights', type=WeightType(), default=None,
              help='row weights matched by row name')
@click.option('-col_weights', 'column_weights', type=WeightType(),
              default=None, help='column weights matched by column name')
@click.option('-multiply', 'multiply', type=FileFlagType('invert'),
              default=None,
              help='multiply inverse by matrix, invert: matrix @ inverse')
@click.option('-reconstruct', 'reconstruct', type=click.Path(dir_okay=False),
              default=None, help='reconstructed matrix output file')
@click.option('-emit_u', 'emit_u', type=click.Path(dir_okay=False),
              default=None, help='left singular vector output file')
@click.option('-emit_v', 'emit_v', type=click.Path(dir_okay=False),
              default=None, help='right singular vector output file')
@click.option('-emit_s', 'emit_s', type=FileFlagType('matrix'), default=None,
              help='singular value output file, matrix: diagonal matrix')
@click.option('-economy', 'economy', is_flag=True,
              help='thin svd, always on')
@click.option('-threads', 'threads', type=click.IntRange(min=1), default=None,
              help='thread limit for linear algebra kernels')
@click.option('-complex', 'complex', is_flag=True,
              help='read Real<x>/Imag<x> column pairs')
@click.option('-lapack_method', 'lapack_method',
              type=click.Choice(['divideAndConquer', 'simple']),
              default='divideAndConquer', help='svd driver, gesdd or gesvd')
@click.option('-root', 'root', default=None,
              help='root for generated row names (Column)')
@click.option('-digits', 'digits', type=click.IntRange(min=1), default=3,
              help='minimum digits in generated names')
@click.option('-new_column_names', 'new_column_names', default=None,
              help='string column supplying row names')
@click.option('-old_column_names', 'old_column_names',
              default='OldColumnNames',
              help='label column holding input column names')
@click.option('-reuse_last_companion_page', 'reuse_last_companion_page',
              is_flag=True,
              help='reuse last multiply page when it runs out of pages')
@click.option('-no_warnings', 'no_warnings', is_flag=True,
              help='suppress warning messages')
@click.option('-verbose', 'verbose', count=True,
              help='report progress, repeat for debug output')
@click.version_option(package_name='pseudoinverse',
                      message='%(package)s %(version)s')
def pseudoinverse(input_file, output_file, min_ratio, keep_largest,
                  drop_smallest, delete, tikhonov, remove_dc, row_weights,
                  column_weights, multiply, reconstruct, emit_u, emit_v,
                  emit_s, economy, threads, complex, lapack_method, root,
                  digits, new_column_names, old_column_names,
                  reuse_last_companion_page, no_warnings, verbose):
    """
    Take the regularized pseudo-inverse of each page of a matrix dataset.

    The svd convention is A = U diag(s) V^H. With row weights w the
    weighted system diag(w) A x = diag(w) y is solved and the returned
    matrix is pinv(diag(w) A) diag(w).

    \b
    Examples
    --------
    Invert a response matrix keeping the ten largest singular values.

    >>> pseudoinverse response.nc inverse.nc -keep_largest 10
    """
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)
    logging.basicConfig(level=level)
    logging.getLogger('pseudoinverse').setLevel(level)
    options = dict(
        min_ratio=min_ratio, keep_largest=keep_largest,
        drop_smallest=drop_smallest, delete=delete,
        tikhonov=parse_tikhonov(tikhonov), remove_dc=remove_dc,
        row_weights=row_weights, column_weights=column_weights,
        multiply='none' if multiply is None else
        ('pre' if multiply[1] else 'post'),
        reconstruct=reconstruct is not None, emit_u=emit_u is not None,
        emit_v=emit_v is not None, emit_s=emit_s is not None,
        s_matrix=emit_s is not None and emit_s[1], complex=complex,
        threads=threads, lapack_driver=dict(divideAndConquer='gesdd',
                                            simple='gesvd')[lapack_method],
        reuse_last_companion_page=reuse_last_companion_page, root=root,
        digits=digits, new_column_names=new_column_names,
        old_column_names=old_column_names, input_file=input_file)
    with warnings.catch_warnings():
        if no_warnings:
            warnings.simplefilter('ignore')
        try:
            config = Config.from_options(**options)
            dataset = Dataset.load(input_file)
            companion = None
            if multiply is not None:
                companion = Dataset.load(multiply[0])
            result = Engine(config).run(dataset, companion)
        except (ConfigConflict, SchemaError, OutOfMemory) as error:
            raise click.ClickException(f'{error.kind}: {error}') from error
    result.inverse.store(output_file)
    for name, filename in zip(['u', 'v', 's', 'reconstruct'],
                              [emit_u, emit_v, emit_s, reconstruct]):
        if filename is None:
            continue
        if isinstance(filename, tuple):
            filename = filename[0]
        result[name].store(filename)
    for failure in result.failures:
        click.echo(str(failure), err=True)


if __name__ == '__main__':
    pseudoinverse()
