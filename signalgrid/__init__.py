"""
SignalGrid data platform.
"""

__version__ = "1.0.0"
