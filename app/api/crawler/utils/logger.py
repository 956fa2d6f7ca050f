import logging

from .config import LOG_FILE, LOG_LEVEL


def setup_logger(name="crawler", log_file=LOG_FILE, level=LOG_LEVEL):
    """
    Configure the crawler logger once with a console handler and an optional file handler
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


logger = setup_logger()
