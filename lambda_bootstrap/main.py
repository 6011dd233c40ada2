"""
Bootstrap entrypoint.

Executed by the `bootstrap` script of the custom runtime:
configure logging, read the environment, and serve invocations.
"""

import logging
import sys

from lambda_bootstrap.client import RuntimeApiClient
from lambda_bootstrap.config import RuntimeConfig
from lambda_bootstrap.core.exceptions import HandlerLoadError
from lambda_bootstrap.core.http_client import HttpClientFactory
from lambda_bootstrap.core.logging_config import setup_logging
from lambda_bootstrap.services.runtime_loop import RuntimeLoop

logger = logging.getLogger("bootstrap.main")

EXIT_INIT_FAILURE = 1


def main() -> int:
    config = RuntimeConfig()
    setup_logging(config.LOG_CONFIG_PATH, config.LOG_LEVEL)
    logger.info(
        "Starting runtime bootstrap",
        extra={"handler": config.HANDLER, "task_root": config.LAMBDA_TASK_ROOT},
    )

    client = RuntimeApiClient(HttpClientFactory(config).create_sync_client())
    runtime = RuntimeLoop(client, config)
    try:
        runtime.run()
    except HandlerLoadError:
        return EXIT_INIT_FAILURE
    finally:
        client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
