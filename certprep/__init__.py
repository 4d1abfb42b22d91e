"""
certprep - session and scoring engine for certification exam practice.

Subpackages:
- content: question bank loading and normalization
- core: domain labels, session modes, data model, errors
- study: selection, session lifecycle, aggregation, analytics
- delivery: persistence backends and export accessors
"""

__version__ = "1.0.0"
