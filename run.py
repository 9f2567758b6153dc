#!/usr/bin/env python3
"""
MyBank Entry Point

    python run.py primary   # ledger API (default port 3000)
    python run.py sync      # snapshot sync server (default port 4000)
    python run.py mirror    # mirror push/pull loop
"""

import argparse
import sys

from mybank.server import run_server, run_sync_server, run_mirror


def main(argv=None):
    parser = argparse.ArgumentParser(description="MyBank ledger processes")
    parser.add_argument("role", choices=["primary", "sync", "mirror"], nargs="?", default="primary")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--primary-url", default=None, help="Remote snapshot endpoint for the mirror")
    args = parser.parse_args(argv)
    
    try:
        if args.role == "primary":
            run_server(host=args.host, port=args.port)
        elif args.role == "sync":
            run_sync_server(host=args.host, port=args.port)
        else:
            run_mirror(primary_url=args.primary_url)
    except KeyboardInterrupt:
        print("\n👋 Shutting down MyBank...")
    except Exception as e:
        print(f"❌ Error starting {args.role}: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
