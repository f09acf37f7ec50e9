"""Run one server activation and exit: 0 when the server is online, 1 otherwise."""

import asyncio
import logging
import sys

from ..config import ensure_dirs
from .workflow import ActivationWorkflow

logger = logging.getLogger("afkbot.activation")


def main():
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    ensure_dirs()
    try:
        result = asyncio.run(ActivationWorkflow().run())
    except KeyboardInterrupt:
        logger.info("Interrupted, browser closed")
        sys.exit(1)
    logger.info(f"Script completed with result: {result.model_dump_json()}")
    sys.exit(0 if result.success else 1)


if __name__ == "__main__":
    main()
