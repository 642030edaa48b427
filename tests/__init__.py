"""
docshape test suite.

This package contains:
- unit/: Unit tests, one module per docshape module
- integration/: The win/loss counter example end to end
"""
