"""Entry point for the PDF layout server."""

import argparse
import os

import uvicorn


def main():
    parser = argparse.ArgumentParser(description="PDF layout server")
    parser.add_argument(
        "--storage-dir",
        default=None,
        help="Directory documents are served from. Overrides PDF_STORAGE_DIR env var.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level. Overrides LOG_LEVEL env var.",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    args = parser.parse_args()

    if args.storage_dir:
        os.environ["PDF_STORAGE_DIR"] = args.storage_dir

    from pdf_layout_server.logger import logger
    from pdf_layout_server.server import app

    if args.log_level:
        logger.set_level(args.log_level)

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
