from requests import Session, Response
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from geonapi.utils import feedback

DEFAULT_RETRIES = 2
DEFAULT_TIMEOUT = 10  # timeout in seconds for regular requests
UPLOAD_TIMEOUT = 60   # timeout in seconds for requests that send metadata
DETECT_TIMEOUT = 5    # timeout in seconds for version detection requests

# Only connection errors are retried: requests that reached the server are never replayed
RETRY_STRATEGY = Retry(
    total=DEFAULT_RETRIES,
    read=0,
    status_forcelist=[],
    respect_retry_after_header=False
)


class TimeoutHTTPAdapter(HTTPAdapter):
    def __init__(self, *args, **kwargs):
        self.timeout = DEFAULT_TIMEOUT
        if "timeout" in kwargs:
            self.timeout = kwargs["timeout"]
            del kwargs["timeout"]
        super().__init__(*args, **kwargs)

    def send(self, request, **kwargs):
        timeout = kwargs.get("timeout")
        if timeout is None:
            kwargs["timeout"] = self.timeout
        return super().send(request, **kwargs)


class GeonapiSession(Session):
    def __init__(self, timeout: int = DEFAULT_TIMEOUT):
        super().__init__()
        adapter = TimeoutHTTPAdapter(max_retries=RETRY_STRATEGY, timeout=timeout)
        self.mount('https://', adapter)
        self.mount('http://', adapter)


class HttpTransport:
    """ Sends HTTP requests on a short-lived session.

    Cookies are not kept between requests: the GeoNetwork session context
    (cookie header, token header and basic auth) is passed in explicitly on every call.
    """

    def __init__(self, timeout: int = DEFAULT_TIMEOUT):
        self.timeout = timeout

    def send(self, method: str, url: str, **kwargs) -> Response:
        """
        Performs a single HTTP request and returns the response (regardless of its status code).

        :param method:  HTTP method name (e.g. "get" or "post").
        :param url:     Full request URL.
        :param kwargs:  Any keyword arguments supported by `requests.Session.request()`
                        (e.g. headers, params, data, auth, timeout).
        """
        feedback.logInfo(f"{method.upper()} {url}")
        with GeonapiSession(self.timeout) as session:
            return session.request(method.upper(), url, **kwargs)
