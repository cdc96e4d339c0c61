"""Entry point for running TaskLedger via `python -m taskledger` or the `taskledger` console script."""

import sys

from taskledger.config import get_taskledger_config
from taskledger.core.logging import get_logger
from taskledger.service import TaskLedgerService


def main() -> None:
    config = get_taskledger_config()
    url = config.TASKLEDGER.URL
    logger = get_logger("launcher", add_file_handler=False, propagate=False, stream_level="INFO")

    logger.info(f"Starting TaskLedger service at {url}...")
    try:
        TaskLedgerService.launch(url=url, block=True)
    except RuntimeError as e:
        logger.critical(f"TaskLedger service failed to start: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
