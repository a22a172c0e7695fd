"""
Setup shim for snippet-pdf-annotator.
Project metadata lives in pyproject.toml (PEP 621); this file only exists
for tooling that still invokes setup.py directly.
"""

from setuptools import setup

setup()
