"""CLI entry point for the Alloy connector server."""

import argparse
import os


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="alloy-server",
        description="Alloy connector: KYC/KYB actions and signed webhook trigger",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    parser.add_argument(
        "--environment",
        choices=["production", "sandbox", "custom"],
        help="Alloy environment (overrides ALLOY_ENVIRONMENT)",
    )
    parser.add_argument(
        "--local",
        action="store_true",
        help="Local dev mode: human-readable console logs instead of JSON",
    )
    args = parser.parse_args(argv)

    if args.local:
        os.environ["ALLOY_LOCAL"] = "1"
    if args.environment:
        os.environ["ALLOY_ENVIRONMENT"] = args.environment

    import uvicorn

    uvicorn.run("alloy_connector.main:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
