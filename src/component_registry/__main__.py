#!/usr/bin/env python3
"""
Component Registry - entry point for python -m component_registry
"""

from component_registry.server import main


if __name__ == "__main__":
    main()
