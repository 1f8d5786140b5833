import sys

from waterlevel.app import run
from waterlevel.exceptions.custom import ConfigurationException, InvalidArgumentException
from waterlevel.logger import logger


def main() -> int:
    logger.info("Starting water level harness from __main__...")
    try:
        run()
    except KeyboardInterrupt:
        logger.info("Harness stopped by user (KeyboardInterrupt).")
    except (ConfigurationException, InvalidArgumentException, FileNotFoundError) as e:
        logger.error(str(e))
        return 2
    except Exception:
        logger.exception("Harness crashed with an unexpected error")
        raise
    return 0


if __name__ == "__main__":
    sys.exit(main())
