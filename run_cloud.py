import logging
import sys

from cloud_server.core.config import Configuration
from cloud_server.core.server import StartupError, create_server

logger = logging.getLogger("cloud_server")


def main(environ=None) -> int:
    config = Configuration.from_env(environ)
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    try:
        server = create_server(config.handler, host=config.host, log_level=config.log_level)
        server.listen(config.port)
    except StartupError as exc:
        logger.error("Cloud server failed to start: %s", exc)
        return 1

    logger.info("Cloud server listening on http://%s:%d", config.host, server.port)
    try:
        server.wait()
    except KeyboardInterrupt:
        logger.info("Cloud server stopped")
        return 0
    finally:
        server.stop()

    # serving thread ended on its own
    logger.error("Cloud server exited unexpectedly")
    return 1


if __name__ == "__main__":
    sys.exit(main())
