# data_manifest/__init__.py
"""
Data Manifest package initializer.
Defines package version; the CLI lives in :mod:`data_manifest.cli`.
"""
__version__ = "1.0.0"
