from setuptools import setup, find_packages

long_description = """Regularized Moore-Penrose pseudo-inverses of paged,
real or complex, matrix datasets with singular value filtering, Tikhonov
regularization, row and column weights and companion matrix products."""

extras_require = dict(
                      develop=['pytest-xdist'],
                      test=['pytest', 'pytest-cov', 'pytest-xdist'],
                      )

extras_require['full'] = [module for mode in extras_require for
                          module in extras_require[mode]]

setup_kwargs = dict(
    name                = 'pseudoinverse',
    version             = '0.1.0',
    description         = 'Regularized pseudo-inverse engine',
    license             = 'BSD',
    keywords            = 'pseudo-inverse svd tikhonov regularization '
                          'least squares response matrix',
    long_description    = long_description,
    packages            = find_packages(include=['pseudoinverse*']),
    include_package_data= True,
    package_data        = {},
    classifiers         = [
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: BSD License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3.10',
        'Topic :: Scientific/Engineering :: Mathematics',
    ],
    python_requires     = '>=3.10',
    install_requires    = [
        'click',
        'netCDF4',
        'numpy',
        'pandas',
        'scipy',
        'threadpoolctl',
        'xarray',
    ],
    extras_require     = extras_require,
    entry_points={'console_scripts': [
                      'pseudoinverse = pseudoinverse.scripts:pseudoinverse']},
)

setup(**setup_kwargs)
