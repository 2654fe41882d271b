#!/usr/bin/env python3
"""Biome Mosaic Pipeline Runner.

Usage:
    python scripts/run_mosaic_pipeline.py 2020 cerrado /data/cerrado/2020
    python scripts/run_mosaic_pipeline.py 2020 cerrado /data/cerrado/2020 --config scripts/user_config.py
    python scripts/run_mosaic_pipeline.py 2020 cerrado /data/cerrado/2020 --crop-timeout 3600 -v

Note: User config in scripts/user_config.py, expert config in src/biomosaic/schemas/param.py
"""

import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from biomosaic.cli.run_mosaic import main


if __name__ == "__main__":
    sys.exit(main())
