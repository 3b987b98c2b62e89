#!/usr/bin/env python3
"""CLI entrypoint for the training/validation figure report."""

from __future__ import annotations

from metareport.cli import run_main

if __name__ == "__main__":
    raise SystemExit(run_main())
