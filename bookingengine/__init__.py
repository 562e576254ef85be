"""
bookingengine - availability and booking lifecycle engine for provider visits.
"""

__version__ = "0.1.0"
