from typing import List, Dict
from urllib.parse import urlparse

from requests import Response, RequestException

from geonapi.credentials import SecretStore, KeyringStore, serviceIdentity
from geonapi.errors import (
    ConstructionError,
    MissingGroupError,
    InvalidOptionError,
    GeonetworkApiError,
    RemoteOperationError,
    UnsupportedVersionError,
    NotImplementedYetError,
)
from geonapi.metadata import MetadataCodec, MetadataRecord
from geonapi.privileges import GNPrivConfiguration
from geonapi.protocols import BaseProtocol, getProtocol
from geonapi.request import GNRequest, GET, INSERT, UPDATE, DELETE, SELECT, BATCH_DELETE
from geonapi.response import GNResponse
from geonapi.session import Session, SessionManager
from geonapi.utils import feedback
from geonapi.utils.feedback import FeedbackMixin
from geonapi.utils.network import HttpTransport, DEFAULT_TIMEOUT, UPLOAD_TIMEOUT, DETECT_TIMEOUT
from geonapi.version import ServiceVersion

#: Minimum GeoNetwork version that supports deleting all owned metadata
BATCH_DELETE_VERSION = "2.10.x"


class GeonetworkManager(FeedbackMixin):
    """
    Client for the GeoNetwork XML services.

    The GeoNetwork version determines the login handshake, the endpoint paths and some request parameters.
    It is resolved once on initialization (and detected if not given).

    A manager keeps a single session and is meant to be used from one thread at a time.
    """

    node: str = "srv"
    timeout: int = DEFAULT_TIMEOUT

    BY_VALUES = ("id", "uuid")
    OUTPUT_VALUES = ("id", "metadata", "info")

    def __init__(self, url: str, user: str = None, pwd: str = None, version=None, logger: str = None,
                 transport=None, store: SecretStore = None, codec: MetadataCodec = None, **options):
        """
        Creates a new GeoNetwork manager and signs in if credentials were given.

        :param url:         GeoNetwork base URL (e.g. "http://localhost:8080/geonetwork").
        :param user:        GeoNetwork user name (optional).
        :param pwd:         GeoNetwork password (optional).
        :param version:     GeoNetwork version string (e.g. "3.10.2"). Detected if not set.
        :param logger:      Logger type: None (default, no console output), "INFO" or "DEBUG".
        :param transport:   HTTP transport (defaults to an `HttpTransport`).
        :param store:       Secret store for the password (defaults to the system keyring).
        :param codec:       Metadata codec (defaults to a `MetadataCodec` based on OWSLib).
        :keyword node:      GeoNetwork node name (default = srv).
        :keyword timeout:   Default request timeout in seconds.
        """
        super().__init__()
        if logger is not None:
            try:
                feedback.setLoggerType(logger)
            except ValueError as err:
                raise ConstructionError(str(err))
        self._applyOptions(**options)

        self._baseurl = urlparse(str(url).rstrip('/')).geturl()
        self._transport = transport or HttpTransport(self.timeout)
        self._store = store or KeyringStore()
        self._codec = codec or MetadataCodec()

        self.version = ServiceVersion(version) if version else self.detectVersion()
        self._protocol = getProtocol(self.version)
        self._url = f"{self._baseurl}/{self.node}/{self._protocol.lang}"
        self._sessions = SessionManager(self._url, self._protocol, self._transport,
                                        self._store, serviceIdentity(self._baseurl))

        if user and pwd:
            self.logInfo(f"Connecting to GeoNetwork services as authenticated user '{user}'")
            self.login(user, pwd)
        else:
            self.logInfo("Connected to GeoNetwork services as anonymous user")

    def _applyOptions(self, **kwargs):
        """ Processes class initialization options (kwargs) and adds them as first-class attribute values
        if the option names and types match the annotations defined at the top of the class.
        """
        annotations = self.__class__.__annotations__
        for keyword, value in kwargs.items():
            if keyword not in annotations:
                self.logWarning(f"'{keyword}' is an unsupported {self.__class__.__name__} keyword argument")
                continue
            try:
                value_copy = annotations[keyword](value)
            except (ValueError, TypeError):
                self.logError(f"Keyword argument '{keyword}' of {self.__class__.__name__} has invalid value '{value}'")
                continue
            setattr(self, keyword, value_copy)

    @property
    def protocol(self) -> BaseProtocol:
        return self._protocol

    @property
    def session(self) -> Session:
        return self._sessions.session

    @property
    def baseUrl(self) -> str:
        """ Returns the base part of the GeoNetwork URL. """
        return self._baseurl

    def getUrl(self) -> str:
        """ Returns the GeoNetwork service URL (<base>/<node>/<lang>). """
        return self._url

    def getLang(self) -> str:
        return self._protocol.lang

    def getToken(self):
        return self.session.token

    def getCookies(self) -> str:
        return self.session.cookieString

    def detectVersion(self) -> ServiceVersion:
        """ Retrieves the GeoNetwork version from the REST API (3+) or the legacy site info service.
        These requests do not use (nor require) a session.

        :raises GeonetworkApiError: If the version could not be determined.
        """
        url = f"{self._baseurl}/{self.node}/api/site/info/build"
        try:
            result = self._transport.send('get', url, headers={'Accept': 'application/json'}, timeout=DETECT_TIMEOUT)
            if result.status_code == 200:
                return ServiceVersion(result.json().get('version'))
        except (RequestException, ValueError, AttributeError) as err:
            self.logWarning(f"Failed to retrieve GeoNetwork version from {url}: {err}")

        url = f"{self._baseurl}/{self.node}/eng/{BaseProtocol.PATHS['site']}"
        try:
            result = self._transport.send('get', url, timeout=DETECT_TIMEOUT)
        except RequestException as err:
            raise GeonetworkApiError(f"Could not detect GeoNetwork version at {self._baseurl}: {err}")
        if result.status_code != 200:
            raise GeonetworkApiError(f"Could not detect GeoNetwork version at {self._baseurl}: "
                                     f"server returned {result.status_code}")
        return ServiceVersion(GNResponse(result.content).getSiteVersion())

    def login(self, user: str, pwd: str) -> bool:
        """ Signs in to GeoNetwork. See `SessionManager.login()`. """
        return self._sessions.login(user, pwd)

    def close(self):
        """ Clears the session. The manager should not be used for authenticated calls afterwards. """
        self._sessions.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def _request(self, name: str, method: str = 'post', envelope: GNRequest = None, params=None) -> Response:
        """ Sends a request to the given endpoint with the current session context. """
        kwargs = self._sessions.requestContext()
        if envelope is not None:
            kwargs['headers']['Content-Type'] = 'text/xml'
            kwargs['data'] = envelope.encode()
            if envelope.operation in (INSERT, UPDATE):
                kwargs['timeout'] = UPLOAD_TIMEOUT
        if params is not None:
            kwargs['params'] = params
        return self._transport.send(method, self._sessions.endpoint(name), **kwargs)

    def _checkStatus(self, response: Response, action: str):
        """ Raises a RemoteOperationError if the response status is not 200 (OK). """
        if response.status_code == 200:
            return
        message = f"Error while {action}"
        self.logError(f"{message} - {response.status_code} {response.reason or ''}".rstrip())
        self.logError(response.text)
        raise RemoteOperationError(message, response.status_code, response.reason or '', response.content)

    def getGroups(self) -> List[Dict[str, str]]:
        """ Returns the user groups available in GeoNetwork as a list of {'id', 'name'} dictionaries. """
        self.logInfo("Getting user groups...")
        response = self._request('groups', 'get')
        self._checkStatus(response, "fetching user groups")
        self.logInfo("Successfully fetched user groups!")
        return GNResponse(response.content).getGroups()

    def insertMetadata(self, xml=None, file=None, geometa=None, group=None, category: str = None,
                       stylesheet: str = None, validate: bool = False,
                       geometa_validate: bool = True, geometa_inspire: bool = False) -> int:
        """
        Inserts a metadata record from exactly one of the given sources.

        :param xml:                 Serialized XML (str or bytes) or an XML element.
        :param file:                Path to an ISO 19139 XML file.
        :param geometa:             Metadata object (e.g. OWSLib MD_Metadata or FC_FeatureCatalogue).
        :param group:               ID of the group that will own the record (required).
        :param category:            Category name (defaults to '_none_').
        :param stylesheet:          Import stylesheet (defaults to '_none_').
        :param validate:            If True, GeoNetwork validates the record.
        :param geometa_validate:    ISO validation when encoding `geometa` (default = True).
        :param geometa_inspire:     INSPIRE validation when encoding `geometa` (default = False).
        :returns:                   The GeoNetwork internal record ID.
        """
        if group is None:
            raise MissingGroupError("The 'group' argument is required to insert metadata")
        record = MetadataRecord(xml, file, geometa, self._codec, geometa_validate, geometa_inspire)
        self.logInfo("Inserting metadata ...")
        envelope = GNRequest.forInsert(record.text, group, category, stylesheet, validate)
        response = self._request('insert', envelope=envelope)
        self._checkStatus(response, "inserting metadata")
        record.id = GNResponse(response.content).getId()
        self.logInfo(f"Successfully inserted metadata with id = {record.id}!")
        return record.id

    def _getEditingMetadataVersion(self, id) -> int:  # noqa
        """ Returns the editing version counter of a record (GeoNetwork 2.x only). """
        self.logInfo(f"Fetching metadata version for id = {id}")
        response = self._request('edit', 'get', params={'id': id})
        self._checkStatus(response, "fetching metadata version")
        version = GNResponse(response.content).getVersion()
        self.logInfo("Successfully fetched editing metadata!")
        return version

    def updateMetadata(self, id, xml=None, file=None, geometa=None,  # noqa
                       geometa_validate: bool = True, geometa_inspire: bool = False) -> int:
        """
        Updates a metadata record from exactly one of the given sources.
        GeoNetwork 2.x servers also require the current editing version, which is fetched first.

        :param id:  The GeoNetwork internal record ID.
        :returns:   The GeoNetwork internal record ID.
        """
        record = MetadataRecord(xml, file, geometa, self._codec, geometa_validate, geometa_inspire, id=id)
        self.logInfo(f"Updating metadata id = {id} ...")
        version = None
        if self._protocol.requiresEditingVersion:
            version = self._getEditingMetadataVersion(id)
        envelope = GNRequest(UPDATE, id=id, version=version, data=record.text)
        response = self._request('update', envelope=envelope)
        self._checkStatus(response, "updating metadata")
        self.logInfo("Successfully updated metadata!")
        return GNResponse(response.content).getId()

    def deleteMetadata(self, id) -> int:  # noqa
        """ Deletes a metadata record and returns the ID that was echoed by GeoNetwork. """
        self.logInfo(f"Deleting metadata id = {id} ...")
        response = self._request('delete', envelope=GNRequest(DELETE, id=id))
        self._checkStatus(response, "deleting metadata")
        self.logInfo("Successfully deleted metadata!")
        return GNResponse(response.content).getId()

    def deleteMetadataAll(self):
        """
        Deletes all metadata records owned by the authenticated user (GeoNetwork 2.10+).
        This selects all records and then deletes the selection: if the delete call fails,
        the records remain selected on the server.

        :returns:   The parsed batch delete response (lxml element).
        """
        self.logInfo("Deleting all owned metadata...")
        if self.version.lowerThan(BATCH_DELETE_VERSION):
            raise UnsupportedVersionError(f"Method unsupported for GeoNetwork < {BATCH_DELETE_VERSION} "
                                          f"(server version is {self.version})")

        select = GNRequest(SELECT)
        select.setChild("selected", "add-all")
        response = self._request('select', envelope=select)
        self._checkStatus(response, "selecting all metadata")

        response = self._request('batch_delete', envelope=GNRequest(BATCH_DELETE))
        self._checkStatus(response, "deleting all metadata")
        self.logInfo("Successfully deleted all owned metadata!")
        return GNResponse(response.content).root

    def get(self, id, by: str = "id", output: str = "metadata"):  # noqa
        """
        Generic metadata getter.

        :param id:      The record ID or UUID.
        :param by:      "id" or "uuid".
        :param output:  "id" (returns the internal record ID), "metadata" (returns an OWSLib
                        MD_Metadata or FC_FeatureCatalogue) or "info" (not implemented).
        """
        if by not in self.BY_VALUES:
            raise InvalidOptionError(f"Unsupported 'by' parameter value '{by}'. "
                                     f"Possible values are [{','.join(self.BY_VALUES)}]")
        if output not in self.OUTPUT_VALUES:
            raise InvalidOptionError(f"Unsupported 'output' type '{output}'. "
                                     f"Possible values are [{','.join(self.OUTPUT_VALUES)}]")
        if output == "info":
            raise NotImplementedYetError("Metadata info output is not yet implemented")

        self.logInfo(f"Fetching metadata for {by} = {id}")
        response = self._request('get', envelope=GNRequest(GET, **{by: id}))
        self._checkStatus(response, "fetching metadata")
        self.logInfo("Successfully fetched metadata!")
        result = GNResponse(response.content)
        if output == "id":
            return result.getInfoId()
        return self._codec.fromElement(result.root)

    def getMetadataByID(self, id):  # noqa
        return self.get(id, by="id", output="metadata")

    def getMetadataByUUID(self, uuid):
        return self.get(uuid, by="uuid", output="metadata")

    def getInfoByID(self, id):  # noqa
        return self.get(id, by="id", output="info")

    def getInfoByUUID(self, uuid):
        return self.get(uuid, by="uuid", output="info")

    def setPrivConfiguration(self, id, config: GNPrivConfiguration) -> bool:  # noqa
        """
        Sets the privileges for a metadata record.

        :param id:      The GeoNetwork internal record ID.
        :param config:  A GNPrivConfiguration instance.
        :returns:       True if the privileges were set.
        """
        if not isinstance(config, GNPrivConfiguration):
            raise ConstructionError(f"The 'config' value should be an object of class {GNPrivConfiguration.__name__}")
        self.logInfo(f"Setting privileges for metadata id = {id}")
        params = self._protocol.privilegeParams(id, config)
        response = self._request('privileges', 'get', params=params)
        self._checkStatus(response, "setting privileges")
        self.logInfo(f"Successfully set privileges for metadata id = {id}!")
        return True

    def __repr__(self):
        return f"<{self.__class__.__name__}: {self._url} ({self.version})>"
