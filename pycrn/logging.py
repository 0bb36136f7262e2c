"""
Logging for pycrn.

All pycrn loggers live below the ``pycrn`` logger. Its level defaults to
WARNING and can be set with the ``PYCRN_LOG`` environment variable, either
to an integer or to one of the names in :data:`NAMED_LOG_LEVELS`.
"""

import logging
import os
import warnings

LOG_LEVEL_ENV_VAR = 'PYCRN_LOG'
BASE_LOGGER_NAME = 'pycrn'
EXTENDED_DEBUG = 5
NAMED_LOG_LEVELS = {'NOTSET': logging.NOTSET,
                    'EXTENDED_DEBUG': EXTENDED_DEBUG,
                    'DEBUG': logging.DEBUG,
                    'INFO': logging.INFO,
                    'WARNING': logging.WARNING,
                    'ERROR': logging.ERROR,
                    'CRITICAL': logging.CRITICAL}
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _level_from_env(level):
    if LOG_LEVEL_ENV_VAR not in os.environ:
        return level
    level_name = os.environ[LOG_LEVEL_ENV_VAR]
    try:
        return int(level_name)
    except ValueError:
        if level_name in NAMED_LOG_LEVELS:
            return NAMED_LOG_LEVELS[level_name]
    raise ValueError('Environment variable {} contains an invalid value '
                     '"{}". If set, its value must be one of {} '
                     '(case-sensitive) or an integer log level.'.format(
                         LOG_LEVEL_ENV_VAR, level_name,
                         ", ".join(NAMED_LOG_LEVELS)))


def setup_logger(level=logging.WARNING, console_output=True):
    """
    Set up the base pycrn logger, replacing any handlers already attached

    Parameters
    ----------
    level : int
        Logging level. ``PYCRN_LOG``, if set, takes precedence.
    console_output : bool
        Attach a console handler if True (default)

    Returns
    -------
    The ``pycrn`` logging.Logger
    """
    log = logging.getLogger(BASE_LOGGER_NAME)
    log.setLevel(_level_from_env(level))
    log.handlers = []
    if console_output:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(stream_handler)
    return log


def get_logger(logger_name=BASE_LOGGER_NAME, network=None, log_level=None,
               **kwargs):
    """
    Returns (if extant) or creates a pycrn logger

    Parameters
    ----------
    logger_name : string
        Logger namespace, typically __name__
    network : pycrn.core.Network or pycrn.builder.NetworkBuilder
        If given, the network's name is prepended to log entries
    log_level : bool or int
        Override the log level for the requested logger. None or False keeps
        the preset value, True means logging.DEBUG.
    **kwargs : kwargs
        Passed to :func:`setup_logger` when the base logger hasn't been set
        up yet, otherwise ignored with a warning.

    Returns
    -------
    A logging.Logger, or a :class:`NetworkLoggerAdapter` when `network` is
    given
    """
    if BASE_LOGGER_NAME not in logging.Logger.manager.loggerDict:
        setup_logger(**kwargs)
    elif kwargs:
        warnings.warn('pycrn logger already exists, ignoring keyword '
                      'arguments to setup_logger')

    logger = logging.getLogger(logger_name)

    if log_level is not None and log_level is not False:
        if isinstance(log_level, bool):
            log_level = logging.DEBUG
        elif not isinstance(log_level, int):
            raise ValueError('log_level must be a boolean, integer or None')
        if logger.getEffectiveLevel() != log_level:
            logger.setLevel(log_level)

    if network is None:
        return logger
    return NetworkLoggerAdapter(logger, {'network': network})


class NetworkLoggerAdapter(logging.LoggerAdapter):
    """Prepend a network's name to log entries"""
    def process(self, msg, kwargs):
        return '[%s] %s' % (self.extra['network'].name, msg), kwargs
