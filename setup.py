# -*- coding: utf-8 -*-

import os.path

import setuptools


def readme():
    """Load README contents."""
    path = os.path.join(os.path.dirname(__file__), "README.rst")
    with open(path) as readme:
        return readme.read()


def version():
    """Read the version from the package without importing it."""
    path = os.path.join(os.path.dirname(__file__), "arrcon", "__init__.py")
    with open(path) as init:
        for line in init:
            if line.startswith("__version__"):
                return line.split("=", 1)[1].strip().strip("\"")
    raise RuntimeError("No version in {}".format(path))


setuptools.setup(
    name="python-arrcon",
    version=version(),
    description=("Command line client for the Source RCON protocol, "
                 "for administering game servers remotely."),
    long_description=readme(),
    packages=setuptools.find_packages(exclude=["tests"]),
    python_requires=">=3.6",
    install_requires=[
        "docopt>=0.6.2",
        "monotonic",
    ],
    extras_require={
        "development": [
            "pylint",
        ],
        "test": [
            "mock",
            "pytest>=3.6.0",
            "pytest-cov",
            "pytest-timeout",
        ],
    },
    entry_points={
        "console_scripts": [
            "arrcon = arrcon.cli:main",
        ],
    },
    license="MIT License",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: Implementation :: CPython",
        "Topic :: Games/Entertainment",
    ],
)
