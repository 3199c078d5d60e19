# -*- coding: utf-8 -*-
#
"""setuptools-based setup.py for condsig.

Usage as usual with setuptools:
    python3 -m pip install .
    python3 -m pip install -e .[test]
    python3 -m build

For details, see
    http://setuptools.readthedocs.io/en/latest/setuptools.html#command-reference
"""

import ast
import os

from setuptools import setup  # type: ignore[import]


def read(*relpath, **kwargs):  # https://blog.ionelmc.ro/2014/05/25/python-packaging/#the-setup-script
    with open(os.path.join(os.path.dirname(__file__), *relpath),
              encoding=kwargs.get('encoding', 'utf8')) as fh:
        return fh.read()

# Extract __version__ from the package __init__.py
# (since it's not a good idea to actually run __init__.py during the build process).
#
# http://stackoverflow.com/questions/2058802/how-can-i-get-the-version-defined-in-setup-py-setuptools-in-my-package
#
init_py_path = os.path.join("condsig", "__init__.py")
version = None
try:
    with open(init_py_path) as f:
        for line in f:
            if line.startswith("__version__"):
                module = ast.parse(line, filename=init_py_path)
                expr = module.body[0]
                assert isinstance(expr, ast.Assign)
                v = expr.value
                assert isinstance(v, ast.Constant)
                version = v.value
                break
except FileNotFoundError:
    pass
if not version:
    raise RuntimeError(f"Version information not found in {init_py_path}")

#########################################################
# Call setup()
#########################################################

setup(
    name="condsig",
    version=version,
    # the unit tests in `condsig.tests` are NOT deployed.
    packages=["condsig"],
    provides=["condsig"],
    keywords=["conditions", "restarts", "error-handling", "exceptions", "warnings",
              "handler-bind", "handler-case", "trycatch", "dynamic-extent", "lisp", "r"],
    install_requires=[],
    extras_require={"test": ["pytest"]},
    python_requires=">=3.8",
    description="Conditions, handlers and restarts for Python: signal, handle, muffle, resume.",
    long_description=read("README.md"),
    long_description_content_type="text/markdown",
    license="BSD",
    classifiers=["Development Status :: 3 - Alpha",
                 "Intended Audience :: Developers",
                 "License :: OSI Approved :: BSD License",
                 "Operating System :: OS Independent",
                 "Programming Language :: Python",
                 "Programming Language :: Python :: 3",
                 "Programming Language :: Python :: Implementation :: CPython",
                 "Programming Language :: Python :: Implementation :: PyPy",
                 "Topic :: Software Development :: Libraries",
                 "Topic :: Software Development :: Libraries :: Python Modules"
                 ],
    zip_safe=True
)
