# -*- coding: utf-8 -*-

from setuptools import setup, find_packages


with open('README.md') as f:
    readme = f.read()

setup(
    name='esri2sf',
    version='0.1.0',
    description='Convert ArcGIS map/feature service layers to simple features',
    long_description=readme,
    long_description_content_type='text/markdown',
    license='MIT',
    packages=find_packages(exclude=('tests', 'docs')),
    python_requires='>=3.8',
    install_requires=[
        'requests',
        'jsonschema',
        'shapely>=2.0',
        'pyproj',
        'pandas',
        'geopandas',
    ],
    extras_require={
        'test': [
            'pytest',
            'responses',
            'mock',
        ],
    },
    entry_points={
        'console_scripts': ['esri2sf=esri2sf.cli:main'],
    }
)
