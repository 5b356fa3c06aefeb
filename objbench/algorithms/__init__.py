"""
Benchmark workloads: parallel download, columnar reads and upload planning.
"""
