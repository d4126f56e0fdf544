"""Problem Review Engine test suite (unit tests under tests/unit/)."""
