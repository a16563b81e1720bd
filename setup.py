#!/usr/bin/env python3
import setuptools

setuptools.setup(
    name="gorond",
    version="0.1.0",
    packages=["gorond"],
    python_requires=">=3.11",
    install_requires=[
        "click>=8.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "gorond = gorond.cli:main",
        ],
    },
    author="",
    description="Command-line tool to group and sort the imports of Go source files",
    license="MIT",
)
