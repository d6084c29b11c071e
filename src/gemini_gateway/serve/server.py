"""Launch the gateway with uvicorn."""
from __future__ import annotations
import argparse
import logging
from dataclasses import replace

import uvicorn
from dotenv import load_dotenv

from gemini_gateway.common.logging_setup import setup_logging
from gemini_gateway.common.settings import load_settings
from gemini_gateway.serve.fastapi_app import create_app

LOGGER = logging.getLogger("gemini_gateway.serve.server")

def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    ap = argparse.ArgumentParser(description="Serve the Gemini gateway")
    ap.add_argument("--host", default=None, help="Bind address (overrides HOST)")
    ap.add_argument("--port", type=int, default=None, help="Port (overrides PORT)")
    ap.add_argument("--cfg", default=None, help="Optional YAML settings file")
    args = ap.parse_args(argv)

    settings = load_settings(cfg_path=args.cfg)
    if args.host:
        settings = replace(settings, host=args.host)
    if args.port:
        settings = replace(settings, port=args.port)

    setup_logging(settings.log_level)
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)

if __name__ == "__main__":
    main()
