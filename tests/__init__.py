"""Test suite for the Product Matrix validation harness.

This package contains tests for:
- Token parsing and sentinel substitution
- The Product builder and constraint validator
- Matrix reading, the per-matrix state machine and the case runner
- Report rendering, run manifests and the event stream
- End-to-end runs through the runtime and the CLI
"""
