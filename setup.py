#!/usr/bin/env python

from setuptools import setup


setup(name='Pyroo',
      version='1.0',
      description='Meridian 59 room file BSP tree codec',
      install_requires=['numpy'],
      extras_require={
          'test': ['pytest'],
      },
      author='Matt Earl',
      packages=['pyroo'])
