"""Concrete strategy implementations.

Subpackages are imported directly (``docfill.strategies.extractors``,
``docfill.strategies.imaging``, ...); interfaces depend on the template
engine models, so nothing is re-exported here.
"""
