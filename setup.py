"""PoorContext setup.py"""
import re
from os import walk

from setuptools import setup  # type: ignore

# package __init__ imports third party modules, state.py is read as text
with open("poorcontext/state.py", "r", encoding="utf-8") as state:
    __version__ = re.search(r'__version__ = "([^"]+)"',
                            state.read()).group(1)


def find_data_files(directory, target_folder=""):
    """Find files in directory, and prepare tuple for setup."""
    retval = []
    for root, _, files in walk(directory):
        if target_folder:
            retval.append((target_folder,
                           list(root + '/' + f for f in files
                                if f[0] != '.' and f[-1] != '~')))
        else:
            retval.append((root,
                           list(root + '/' + f for f in files
                                if f[0] != '.' and f[-1] != '~')))
    return retval


def doc():
    """Return README.rst content."""
    with open('README.rst', 'r', encoding="utf-8") as readme:
        return readme.read().strip()


setup(name="PoorContext",
      version=__version__,
      description="Request and response helper with dataclass binding "
                  "for WSGI handlers",
      author="Ondřej Tůma",
      author_email="mcbig@zeropage.cz",
      maintainer="Ondrej Tuma",
      maintainer_email="mcbig@zeropage.cz",
      packages=['poorcontext'],
      package_data={'': ['py.typed']},
      data_files=[('share/doc/poorcontext', [
          'doc/ChangeLog', 'doc/licence.txt', 'README.rst'
      ])] + find_data_files("examples", "share/poorcontext/examples"),
      license="BSD",
      license_files=['doc/licence.txt'],
      long_description=doc(),
      long_description_content_type="text/x-rst",
      keywords='web wsgi form binding dataclass',
      classifiers=[
          "Development Status :: 4 - Beta",
          "Environment :: Web Environment", "Intended Audience :: Developers",
          "License :: OSI Approved :: BSD License",
          "Natural Language :: English",
          "Operating System :: POSIX",
          "Programming Language :: Python :: 3 :: Only",
          "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
          "Topic :: Internet :: WWW/HTTP :: WSGI",
          "Topic :: Software Development :: Libraries :: Python Modules"
      ],
      python_requires=">=3.10",
      install_requires=['simplejson', 'defusedxml'],
      tests_require=['pytest', 'requests'],
      extras_require={'test': ['pytest', 'requests']})
