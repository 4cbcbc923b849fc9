#!/usr/bin/env python3
"""scaffold-mcp entry point.

Run:
  python -m scaffold_mcp                          # MCP server over stdio
  python -m scaffold_mcp --http [--host H --port P]  # POST/GET /api/mcp
  python -m scaffold_mcp --test                   # self-test then exit

Without --host/--port the HTTP server binds to SCAFFOLD_MCP_HOST/SCAFFOLD_MCP_PORT.
"""

import argparse
import asyncio
import sys

from scaffold_mcp.server import run_http_server, run_server, test_server


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="scaffold_mcp", add_help=True)
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--http", action="store_true", help="Serve the JSON-over-HTTP tool endpoint instead of stdio.")
    mode.add_argument("--test", action="store_true", help="Run the built-in self-test then exit.")
    parser.add_argument("--host", default=None, help="HTTP bind host (with --http).")
    parser.add_argument("--port", type=int, default=None, help="HTTP bind port (with --http).")
    args = parser.parse_args(argv)
    if (args.host is not None or args.port is not None) and not args.http:
        parser.error("--host/--port require --http")
    return args


def main() -> None:
    """Pick a transport and run until interrupted."""
    args = parse_args(sys.argv[1:])
    try:
        if args.test:
            asyncio.run(test_server())
        elif args.http:
            run_http_server(host=args.host, port=args.port)
        else:
            asyncio.run(run_server())
    except KeyboardInterrupt:
        print("\nServer stopped by user", file=sys.stderr)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        print(f"Server error: {exc}", file=sys.stderr)
        raise


if __name__ == "__main__":
    main()
