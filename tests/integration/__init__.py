"""Integration tests: HTTP query layer over a real store and engine."""
