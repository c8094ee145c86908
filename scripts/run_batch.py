#!/usr/bin/env python3
"""``microtrack`` batch tracking pipeline runner.

Usage:
    python scripts/run_batch.py scripts/user_config.py
    python scripts/run_batch.py scripts/user_config.py --particle-dir data/run2
    python scripts/run_batch.py scripts/user_config.py --workers 4 --video-timeout 120

Note: User config in scripts/user_config.py, expert config in
src/microtrack/schemas/param.py
"""

import sys
import argparse
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from microtrack.cli.run_batch import run_batch_pipeline


def main():
    parser = argparse.ArgumentParser(description="Run the microtrack batch tracking pipeline")
    parser.add_argument("config", help="Path to user config file")
    parser.add_argument("--particle-dir", help="Directory of particle data CSVs")
    parser.add_argument("--base-dir", help="Output directory")
    parser.add_argument("--workers", type=int, help="Videos processed concurrently")
    parser.add_argument("--video-timeout", type=float,
                        help="Seconds to wait per video; a hung video is reported, not stopped")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    result = run_batch_pipeline(
        args.config,
        cli_args={
            "particle_dir": args.particle_dir,
            "base_dir": args.base_dir,
            "workers": args.workers,
            "video_timeout_s": args.video_timeout,
        },
        verbose=args.verbose,
    )

    print(f"Trajectories: {len(result.summary)}  Failed videos: {result.n_failed}")
    return 1 if result.n_failed else 0


if __name__ == "__main__":
    sys.exit(main())
