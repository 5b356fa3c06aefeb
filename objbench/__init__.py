"""
objbench: storage I/O benchmark for local files and S3-compatible object stores.
"""

__version__ = "0.1.0"
