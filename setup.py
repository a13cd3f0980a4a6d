import os
from setuptools import setup, find_packages


def src(pth):
    return os.path.join(os.path.dirname(__file__), pth)


# Project description
descr = 'Python library for MPI reverse-time and least-squares migration'

# Setup
setup(
    name='rtm_mpi',
    description=descr,
    long_description=open(src('README.md')).read(),
    long_description_content_type='text/markdown',
    keywords=['seismic imaging',
              'reverse-time migration',
              'least-squares migration',
              'mpi'],
    classifiers=[
        'Development Status :: 1 - Planning',
        'Intended Audience :: Developers',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: GNU Lesser General Public License v2 or later (LGPLv2+)',
        'Natural Language :: English',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Topic :: Scientific/Engineering :: Physics'
    ],
    install_requires=['numpy >= 1.15.0', 'scipy >= 1.4.0', 'pylops >= 2.1',
                      'mpi4py', 'segyio'],
    extras_require={'test': ['pytest', 'pytest-mpi']},
    packages=find_packages(exclude=['tests']),
    entry_points={
        'console_scripts': [
            'mpirtm=rtm_mpi.cli.mpirtm:go',
            'mpilsrtm=rtm_mpi.cli.mpilsrtm:go',
            'bin2su=rtm_mpi.cli.bin2su:go',
        ],
    },
    use_scm_version=dict(root='.',
                         relative_to=__file__,
                         write_to='rtm_mpi/version.py',
                         fallback_version='0.1.0'),
    setup_requires=['setuptools_scm'],
    test_suite='tests',
    tests_require=['pytest', 'pytest-mpi'],
    zip_safe=True)
