"""Test utilities for perch applications.

    from perch.testing import TestClient, assert_error
"""

from perch.testing.assertions import assert_error
from perch.testing.client import TestClient

__all__ = ["TestClient", "assert_error"]
