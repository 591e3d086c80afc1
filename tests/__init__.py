"""optrisk test suite."""
