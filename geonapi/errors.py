class GeonetworkError(Exception):
    """ Base class for all errors raised by the GeoNetwork manager. """
    pass


class ConstructionError(GeonetworkError, ValueError):
    """ Error raised when the input for an operation is invalid. Always raised before any HTTP request is made. """
    pass


class MalformedVersionError(ConstructionError):
    pass


class PayloadSourceError(ConstructionError):
    """ Error raised when not exactly one of the 'xml', 'file' or 'geometa' metadata sources was given. """
    pass


class MissingGroupError(ConstructionError):
    pass


class InvalidOptionError(ConstructionError):
    pass


class GeonetworkAuthError(GeonetworkError):
    """ Error raised when the sign in process for GeoNetwork failed. """

    def __init__(self, message, status: int = None):
        super().__init__(message)
        self.status = status


class GeonetworkApiError(GeonetworkError):
    """ Error raised when the API returns a HTTP 200, but the response object does not contain
    the expected elements. This usually means that the wrong endpoint was selected for the server version. """
    pass


class RemoteOperationError(GeonetworkError):
    """ Error raised when the API returns anything else than a HTTP 200 for a data operation. """

    def __init__(self, message, status: int, reason: str = '', body: bytes = b''):
        super().__init__(message)
        self.status = status
        self.reason = reason
        self.body = body

    def __str__(self):
        status = f"{self.status} {self.reason}".strip()
        return f"{self.args[0]} ({status})"


class UnsupportedVersionError(GeonetworkError):
    """ Error raised when a method requires a more recent GeoNetwork version. """
    pass


class NotImplementedYetError(GeonetworkError, NotImplementedError):
    pass
