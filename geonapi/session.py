from collections import OrderedDict
from enum import Enum

from lxml import etree as ET
from requests import Response, RequestException

from geonapi.credentials import SecretStore
from geonapi.errors import GeonetworkAuthError
from geonapi.protocols import BaseProtocol
from geonapi.utils import feedback


class SessionState(Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


def parseMe(response: Response) -> bool:
    """ Parses the response from a 'me' request to a GeoNetwork API.
    Returns False only if the response explicitly reports an unauthenticated user. """
    try:
        xml = ET.fromstring(response.content)
    except (ET.XMLSyntaxError, ValueError):
        return True
    me = xml if ET.QName(xml).localname == 'me' else xml.find('me')
    if me is None or me.get('authenticated') is None:
        return True
    return me.get('authenticated').lower() == 'true'


class Session:
    """ Authentication state of a GeoNetwork manager. Never holds the password. """

    def __init__(self):
        self.token = None
        self.cookies = OrderedDict()
        self.username = None
        self.state = SessionState.ANONYMOUS

    @property
    def authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED

    @property
    def cookieString(self) -> str:
        """ Returns all session cookies (except the token) as a 'name=value;name=value' string. """
        return ";".join(f"{name}={value}" for name, value in self.cookies.items())

    def clear(self):
        self.token = None
        self.cookies.clear()
        self.username = None
        self.state = SessionState.ANONYMOUS

    def __repr__(self):
        return f"<{self.__class__.__name__}: {self.state.value} user={self.username}>"


class SessionManager:
    """
    Runs the GeoNetwork login handshake and provides the credential context for subsequent requests.

    The session is shared mutable state: a manager must not be used from multiple threads at the same time.
    """

    COOKIE_TOKEN = 'XSRF-TOKEN'
    HEADER_TOKEN = 'X-XSRF-TOKEN'

    def __init__(self, service_url: str, protocol: BaseProtocol, transport, store: SecretStore, service: str):
        """
        :param service_url: The GeoNetwork service URL (<base>/<node>/<lang>).
        :param protocol:    The protocol for the GeoNetwork version.
        :param transport:   HTTP transport (see `geonapi.utils.network.HttpTransport`).
        :param store:       Secret store in which the password is kept.
        :param service:     Service identity under which the password is stored.
        """
        self._url = service_url
        self._protocol = protocol
        self._transport = transport
        self._store = store
        self._service = service
        self._session = Session()

    @property
    def session(self) -> Session:
        return self._session

    def endpoint(self, name: str) -> str:
        """ Returns the full URL for the given endpoint name. """
        return f"{self._url}/{self._protocol.path(name)}"

    def _readCookies(self, response: Response):
        """ Reads the token and other cookies from the response. Existing cookies with the same name are replaced. """
        for cookie in response.cookies:
            if cookie.name == self.COOKIE_TOKEN:
                self._session.token = cookie.value
            else:
                self._session.cookies[cookie.name] = cookie.value

    def sessionHeaders(self) -> dict:
        """ Returns the cookie and token headers for the current session. """
        headers = {}
        cookies = self._session.cookieString
        if self._session.token:
            token_cookie = f"{self.COOKIE_TOKEN}={self._session.token}"
            cookies = f"{cookies};{token_cookie}" if cookies else token_cookie
            headers[self.HEADER_TOKEN] = self._session.token
        if cookies:
            headers['Cookie'] = cookies
        return headers

    def getPassword(self):
        """ Fetches the password of the session user from the secret store. """
        if not self._session.username:
            return None
        return self._store.get(self._service, self._session.username)

    def requestContext(self, with_auth: bool = True) -> dict:
        """
        Returns the request keyword arguments (headers and basic auth) for the current session.
        The password is looked up in the secret store on every call.

        :param with_auth:   If True (default), basic auth is added for an authenticated user.
        """
        context = {'headers': self.sessionHeaders()}
        if with_auth and self._session.authenticated:
            pwd = self.getPassword()
            if pwd is None:
                feedback.logWarning(f"No password found for user '{self._session.username}'")
            else:
                context['auth'] = (self._session.username, pwd)
        return context

    def _fail(self, message: str, status: int = None):
        self._session.clear()
        self._session.state = SessionState.FAILED
        feedback.logError(message)
        raise GeonetworkAuthError(message, status)

    def login(self, user: str, pwd: str) -> bool:
        """
        Signs in to GeoNetwork: performs the version specific login call,
        reads the session cookies and verifies the session with a 'me' request.

        :param user:    The GeoNetwork user name.
        :param pwd:     The password. It is stored in the secret store on success.
        :returns:       True if the user has been authenticated.
        :raises GeonetworkAuthError:    If authentication failed.
        """
        prefix = "Impossible to login to GeoNetwork"
        self._session.clear()
        self._session.state = SessionState.AUTHENTICATING

        method, name, kwargs = self._protocol.loginRequest(user, pwd)
        try:
            response = self._transport.send(method, self.endpoint(name), **kwargs)
            self._readCookies(response)
            # Verify with the session cookies only (no basic auth)
            headers = self.sessionHeaders()
            headers['Accept'] = 'application/xml'
            verification = self._transport.send('get', self.endpoint('me'), headers=headers)
        except RequestException as err:
            return self._fail(f"{prefix}: {err}")

        self._readCookies(verification)
        status = verification.status_code
        if status == 401:
            return self._fail(f"{prefix}: wrong credentials", status)
        if status == 404:
            return self._fail(f"{prefix}: bad URL or GeoNetwork service unavailable", status)
        if status != 200:
            return self._fail(f"{prefix}: unexpected error ({status})", status)
        if not parseMe(verification):
            return self._fail(f"{prefix}: wrong credentials", status)

        self._store.set(self._service, user, pwd)
        self._session.username = user
        self._session.state = SessionState.AUTHENTICATED
        feedback.logInfo(f"Successfully authenticated to GeoNetwork as user '{user}'")
        return True

    def close(self):
        """ Clears the session. """
        self._session.clear()
