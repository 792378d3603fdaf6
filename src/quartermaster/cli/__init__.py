"""
Command-line interface for quartermaster.
"""
