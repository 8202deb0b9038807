"""
GeoNetwork protocol generations.

Each protocol class holds the endpoint table and the wire details that differ between
GeoNetwork versions. The manager selects a protocol once (see `getProtocol()`),
so that the public operations do not need to check the version themselves.
"""

from abc import ABC, abstractmethod
from typing import List, Tuple

from geonapi.privileges import GNPrivConfiguration
from geonapi.request import GNRequest, LOGIN
from geonapi.version import ServiceVersion

XML_HEADERS = {'Content-Type': 'text/xml'}


class BaseProtocol(ABC):

    #: Endpoint paths relative to the service URL (<base>/<node>/<lang>)
    PATHS = {
        'me': 'info?type=me',
        'insert': 'xml.metadata.insert',
        'get': 'xml.metadata.get',
        'update': 'metadata.update.finish',
        'delete': 'xml.metadata.delete',
        'select': 'xml.metadata.select',
        'batch_delete': 'xml.metadata.batch.delete',
        'groups': 'xml.info?type=groups',
        'site': 'xml.info?type=site',
    }

    def __init__(self, version: ServiceVersion):
        self._version = version

    @property
    def version(self) -> ServiceVersion:
        return self._version

    @property
    def lang(self) -> str:
        """ Returns the service language code used in the service URL. GeoNetwork 2.6 expects "en". """
        if self._version.major == 2 and self._version.minor == 6:
            return "en"
        return "eng"

    @property
    def requiresEditingVersion(self) -> bool:
        """ Returns True if metadata updates must include the editing version counter. """
        return False

    def path(self, name: str) -> str:
        """ Returns the endpoint path for the given endpoint name. """
        return self.PATHS[name]

    @abstractmethod
    def loginRequest(self, user: str, pwd: str) -> Tuple[str, str, dict]:
        """ This abstract method must be implemented on all protocol classes.
        It should return the (method, endpoint name, request keyword arguments) for the first login call.
        """
        raise NotImplementedError(f"{self.__class__.__name__} must implement loginRequest()")

    @abstractmethod
    def privilegeParams(self, id, config: GNPrivConfiguration) -> List[Tuple[str, str]]:  # noqa
        """ This abstract method must be implemented on all protocol classes.
        It should return the ordered query parameters for the privileges endpoint.
        """
        raise NotImplementedError(f"{self.__class__.__name__} must implement privilegeParams()")

    def __repr__(self):
        return f"<{self.__class__.__name__}: {self._version}>"


class LegacyProtocol(BaseProtocol):
    """ GeoNetwork 2.x: XML services with a session cookie obtained from 'xml.user.login'. """

    PATHS = dict(BaseProtocol.PATHS, **{
        'login': 'xml.user.login',
        'edit': 'metadata.edit!',
        'privileges': 'metadata.admin',
    })

    @property
    def requiresEditingVersion(self) -> bool:
        return True

    def loginRequest(self, user, pwd):
        body = GNRequest(LOGIN, username=user, password=pwd).encode()
        return 'post', 'login', {'data': body, 'headers': dict(XML_HEADERS)}

    def privilegeParams(self, id, config):  # noqa
        return [('id', str(id))] + config.toParams()


class RestProtocol(BaseProtocol):
    """ GeoNetwork 3+: basic authentication and an XSRF token cookie. """

    PATHS = dict(BaseProtocol.PATHS, **{
        'privileges': 'md.privileges.update',
    })

    def loginRequest(self, user, pwd):
        return 'get', 'me', {'auth': (user, pwd), 'headers': {'Accept': 'application/xml'}}

    def privilegeParams(self, id, config):  # noqa
        if self._version.major == 3:
            return [('_content_type', 'xml')] + config.toParams() + [('id', str(id))]
        return [('id', str(id))] + config.toParams()


def getProtocol(version) -> BaseProtocol:
    """ Returns the protocol instance for the given GeoNetwork version (string or ServiceVersion). """
    version = version if isinstance(version, ServiceVersion) else ServiceVersion(version)
    if version.isMajor3OrAbove:
        return RestProtocol(version)
    return LegacyProtocol(version)
