"""
Functional tests for the component registry.

These tests run the change watcher against a real temporary directory with
a live watchdog observer, so they depend on filesystem notification timing.
"""
