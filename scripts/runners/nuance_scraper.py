#!/usr/bin/env python3
"""
Nuance scraper: pull the web player's script bundles and refresh nuance.json.

Usage examples:
  python scripts/runners/nuance_scraper.py --once
  python scripts/runners/nuance_scraper.py --interval-hours 6
  NUANCE_FETCH_MODE=http python scripts/runners/nuance_scraper.py --once

Notes:
- Without --once the scraper keeps running and re-scrapes every interval.
- Precedence: CLI args > env vars > config/settings.json.
"""
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from lune_nuance.cli import main  # noqa: E402


if __name__ == "__main__":
    sys.exit(main(["scrape", *sys.argv[1:]]))
