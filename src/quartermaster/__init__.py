"""
quartermaster: command-line client for an agent application-hosting service.
"""

__version__ = "0.1.0"
