#!/usr/bin/env python

from setuptools import setup, find_packages

with open('requirements.txt') as f:
    requirements = f.read().splitlines()

setup(name='hint_fuzzer',
      version='0.1',
      description='Comparison-hint mutation engine for structured program fuzzing',
      install_requires=requirements,
      extras_require={
          'test': ['pytest'],
          },
      packages=find_packages(include=['hint_fuzzer', 'hint_fuzzer.*']),
      package_data={'hint_fuzzer': ['config_default.yaml']},
      scripts = ['hint_mutate.py'],

	  classifiers=[
		  'Development Status :: 4 - Beta',
		  'Environment :: Console',
		  'Intended Audience :: Developers',
		  'Intended Audience :: Science/Research',
		  'License :: OSI Approved :: GNU Affero General Public License v3',
		  'Operating System :: POSIX :: Linux',
		  'Programming Language :: Python :: 3',
		  'Topic :: Security',
		  ],
     )
