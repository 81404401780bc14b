"""
Test package for detector dispatch.

- unit/: Unit tests for individual components, detectors faked with
  ``httpx.MockTransport``

Run tests with:
    pytest tests/
"""
