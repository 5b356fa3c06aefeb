"""
Workload runners invoked by the CLI.
"""
