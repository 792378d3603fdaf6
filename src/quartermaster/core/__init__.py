"""
Core configuration, connection handling and shared exceptions.
"""
