"""
Persistence of transfer records and benchmark results.
"""
