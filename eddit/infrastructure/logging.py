import logging
from pathlib import Path

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'
LOG_FILENAME = "eddit.log"

def setup_logging(output_dir: Path, debug: bool = False) -> logging.Logger:
    """Routes all package logging into <output_dir>/eddit.log and returns the package logger."""
    output_dir.mkdir(parents=True, exist_ok=True)
    log_file = output_dir / LOG_FILENAME

    logger = logging.getLogger("eddit")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # Re-running in the same process (tests, repeated CLI calls) must not stack handlers
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            logger.removeHandler(handler)
            handler.close()

    handler = logging.FileHandler(log_file)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
