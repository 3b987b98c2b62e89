#!/usr/bin/env python3
"""Write a synthetic bundle for trying out the report end to end."""

from __future__ import annotations

from metareport.cli import demo_bundle_main

if __name__ == "__main__":
    raise SystemExit(demo_bundle_main())
