# utils/logger.py
import os
import logging

LOG_FORMAT = '[%(asctime)s] %(levelname)s: %(message)s'


def get_logger(name):
    """
    Named logger with console output, plus a file handler when LOG_FILE is set.
    Handlers are attached once per name.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(os.getenv('LOG_LEVEL', 'INFO').upper())
    formatter = logging.Formatter(LOG_FORMAT)

    # 控制台输出
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # 文件输出
    log_file = os.getenv('LOG_FILE')
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
