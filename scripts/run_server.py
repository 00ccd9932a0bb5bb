"""
Launch the Gem Garden match-3 server.

Usage:
    python scripts/run_server.py [--port 8000] [--snapshot data/match3.json]
"""
import argparse
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from gemgarden.api.app import main


def parse_args():
    parser = argparse.ArgumentParser(description="Run the match-3 game server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--snapshot", type=Path, default=None,
                        help="JSON file for player state (in-memory only if omitted)")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    print("=" * 60)
    print("  Gem Garden Match-3 server")
    print("=" * 60)
    print(f"\nListening on http://{args.host}:{args.port}")
    if args.snapshot:
        print(f"Snapshots: {args.snapshot}")
    print()
    main(host=args.host, port=args.port, snapshot_path=args.snapshot, seed=args.seed)
