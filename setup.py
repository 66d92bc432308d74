#!/usr/bin/python3
# Setup file for bitmapcheck
# Copyright (C) 2026 The bitmapcheck Authors
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later

from setuptools import setup

setup(
    name="bitmapcheck",
    version="0.1.0",
    description="Check git reachability bitmaps against regular traversal",
    license="Apache-2.0 OR GPL-2.0-or-later",
    python_requires=">=3.10",
    packages=["bitmapcheck"],
    install_requires=[
        "dulwich>=0.24.0",
        "fastimport",
    ],
    entry_points={"console_scripts": ["bitmapcheck=bitmapcheck.cli:_main"]},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX",
        "Topic :: Software Development :: Testing",
        "Topic :: Software Development :: Version Control",
    ],
)
