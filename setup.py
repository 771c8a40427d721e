from setuptools import setup

setup(name='bagengine',
      version='0.1',
      description="bagengine: create, update, and verify BagIt bags on local disk",
      scripts=[ ],
      packages=['bagengine', 'bagengine.access', 'bagengine.validate'],
      python_requires='>=3.8',
      install_requires=[
          'bagit>=1.8',
          'fs>=2.4',
          # fs declares its namespace package via pkg_resources
          'setuptools<81',
      ],
      extras_require={
          'test': ['pytest'],
      },
      test_suite="tests.suite",
      test_runner="unittest:TextTestRunner"
)
