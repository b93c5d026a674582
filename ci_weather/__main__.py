#!/usr/bin/env python3
"""Module entrypoint for `ci_weather`.

Usage:
  - `python3 -m ci_weather --config config.yaml`
  - `python3 -m ci_weather fetch --repo owner/name`
"""

from __future__ import annotations

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
