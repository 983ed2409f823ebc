"""
Standalone server launcher.

    inventory-intel-server --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import argparse
import logging

from inventory_intel.api import create_app
from inventory_intel.config import PolicyConfig

logger = logging.getLogger(__name__)


def main(argv=None) -> None:
    import uvicorn

    parser = argparse.ArgumentParser(description="Inventory Intelligence API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--log-level", default="info")
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    config = PolicyConfig.from_env()
    logger.info(f"Starting Inventory Intelligence API with {config.to_dict()}")
    uvicorn.run(create_app(config), host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
