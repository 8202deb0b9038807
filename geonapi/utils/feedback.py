import logging

#: Name of the package logger
LOGGER_NAME = "geonapi"

#: Supported logger types (constructor option of the manager)
LOGGER_TYPES = ("INFO", "DEBUG")

#: Logger of the HTTP library (connection and request lines)
WIRE_LOGGER_NAME = "urllib3"

_LOGGER = logging.getLogger(LOGGER_NAME)
_LOGGER.addHandler(logging.NullHandler())

_CONSOLE = logging.StreamHandler()
_CONSOLE.setFormatter(logging.Formatter("[geonapi][%(levelname)s] %(message)s"))


def _addConsoleHandler(logger: logging.Logger):
    if _CONSOLE not in logger.handlers:
        logger.addHandler(_CONSOLE)


def _log(message, level):
    """ Simple log wrapper function. """
    if isinstance(message, Exception):
        message = str(message)
    _LOGGER.log(level, message)


def logDebug(message):
    """ Logs a debug message. """
    _log(message, logging.DEBUG)


def logInfo(message):
    """ Logs a basic information message. """
    _log(message, logging.INFO)


def logWarning(message):
    """ Logs a basic warning message. """
    _log(message, logging.WARNING)


def logError(message):
    """ Logs a basic error message. """
    _log(message, logging.ERROR)


def setLoggerType(logger_type: str):
    """
    Enables console output for the package logger.

    :param logger_type: "INFO" prints the geonapi logs only.
                        "DEBUG" also prints the HTTP wire logs (urllib3).
    :raises ValueError: If the logger type is not supported.
    """
    level_name = str(logger_type).upper()
    if level_name not in LOGGER_TYPES:
        raise ValueError(f"Unknown logger type '{logger_type}'")
    _addConsoleHandler(_LOGGER)
    _LOGGER.setLevel(getattr(logging, level_name))
    if level_name == "DEBUG":
        wire_logger = logging.getLogger(WIRE_LOGGER_NAME)
        _addConsoleHandler(wire_logger)
        wire_logger.setLevel(logging.DEBUG)


class FeedbackMixin:
    """ Mixin that adds logging methods and keeps track of the logged warnings and errors. """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._errors = []
        self._warnings = []

    def _log(self, message, level):
        if isinstance(message, Exception):
            message = str(message)
        _log(message, level)
        if level == logging.WARNING:
            self._warnings.append(message)
        elif level == logging.ERROR:
            self._errors.append(message)

    def logDebug(self, message):
        """ Logs a debug message. """
        self._log(message, logging.DEBUG)

    def logInfo(self, message):
        """ Logs an information message. """
        self._log(message, logging.INFO)

    def logWarning(self, message):
        """ Logs a warning message. """
        self._log(message, logging.WARNING)

    def logError(self, message):
        """ Logs an error message. """
        self._log(message, logging.ERROR)

    def getLogIssues(self):
        """ Returns a tuple of all logged (warnings, errors). """
        return self._warnings, self._errors

    def resetLogIssues(self):
        """ Reset the logged warnings and errors lists. """
        self._errors = []
        self._warnings = []
