"""
Metrics package for the star history client.

Provides the injectable metrics sink components report into.
"""

from .collector import MetricsCollector
