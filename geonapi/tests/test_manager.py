import unittest
from unittest import mock

from owslib.iso import MD_Metadata
from requests import ConnectionError as RequestsConnectionError

from geonapi.credentials import MemoryStore
from geonapi.errors import (
    ConstructionError,
    MissingGroupError,
    PayloadSourceError,
    InvalidOptionError,
    GeonetworkApiError,
    RemoteOperationError,
    UnsupportedVersionError,
    NotImplementedYetError,
)
from geonapi.manager import GeonetworkManager
from geonapi.privileges import GNPrivConfiguration
from geonapi.tests.stubs import StubTransport, makeResponse, GN_URL, MD_XML
from geonapi.tests.test_response import GET_RESPONSE, GROUPS_RESPONSE

SERVICE_URL = f"{GN_URL}/srv/eng"


def _manager(version, *responses, user=None, pwd=None, **options):
    transport = StubTransport(*responses)
    manager = GeonetworkManager(GN_URL, user, pwd, version=version,
                                transport=transport, store=MemoryStore(), **options)
    return manager, transport


def _loggedIn(version):
    """ Returns an authenticated manager and its transport (with the login calls cleared). """
    manager, transport = _manager(version,
                                  makeResponse(200, b"<ok/>", {"JSESSIONID": "s1", "XSRF-TOKEN": "t1"}),
                                  makeResponse(200),
                                  user="admin", pwd="geonetwork")
    transport.calls.clear()
    return manager, transport


class TestManagerSetup(unittest.TestCase):

    def testUrls(self):
        manager, transport = _manager("3.10.2")
        self.assertEqual(manager.getUrl(), SERVICE_URL)
        self.assertEqual(manager.getLang(), "eng")
        self.assertEqual(transport.calls, [])
        self.assertFalse(manager.session.authenticated)

    def testGeonetwork26Lang(self):
        manager, _ = _manager("2.6.4")
        self.assertEqual(manager.getUrl(), f"{GN_URL}/srv/en")

    def testNodeOption(self):
        manager, _ = _manager("3.10.2", node="catalog")
        self.assertEqual(manager.getUrl(), f"{GN_URL}/catalog/eng")

    def testUnsupportedOptionIgnored(self):
        manager, _ = _manager("3.10.2", colour="blue")
        warnings, _ = manager.getLogIssues()
        self.assertEqual(len(warnings), 1)

    def testInvalidLogger(self):
        with self.assertRaises(ConstructionError):
            _manager("3.10.2", logger="VERBOSE")

    def testLoginOnInit(self):
        manager, _ = _loggedIn("3.10.2")
        self.assertTrue(manager.session.authenticated)
        self.assertEqual(manager.getToken(), "t1")
        self.assertEqual(manager.getCookies(), "JSESSIONID=s1")

    def testContextManagerClearsSession(self):
        manager, _ = _loggedIn("3.10.2")
        with manager:
            self.assertTrue(manager.session.authenticated)
        self.assertFalse(manager.session.authenticated)
        self.assertIsNone(manager.getToken())

    def testDetectRestVersion(self):
        manager, transport = _manager(None, makeResponse(200, b'{"version": "3.12.1-0"}'))
        self.assertEqual(str(manager.version), "3.12.1-0")
        self.assertEqual(transport.urls, [f"{GN_URL}/srv/api/site/info/build"])

    def testDetectLegacyVersion(self):
        site = b"<info><platform><name>geonetwork</name><version>2.10.4</version></platform></info>"
        manager, transport = _manager(None, makeResponse(404), makeResponse(200, site))
        self.assertEqual(manager.version, "2.10.4")
        self.assertEqual(transport.urls[1], f"{SERVICE_URL}/xml.info?type=site")

    def testDetectVersionFailure(self):
        with self.assertRaises(GeonetworkApiError):
            _manager(None, makeResponse(404), makeResponse(404))

    def testDetectVersionConnectionError(self):
        transport = mock.Mock()
        transport.send.side_effect = RequestsConnectionError("connection refused")
        with self.assertRaises(GeonetworkApiError):
            GeonetworkManager(GN_URL, transport=transport, store=MemoryStore())
        self.assertEqual(transport.send.call_count, 2)


class TestInsertMetadata(unittest.TestCase):

    def testInsert(self):
        manager, transport = _loggedIn("3.10.2")
        transport.queue(makeResponse(200, b"<response><id>15</id><uuid>abc</uuid></response>"))
        self.assertEqual(manager.insertMetadata(xml=MD_XML, group="2"), 15)

        method, url, kwargs = transport.calls[0]
        self.assertEqual((method, url), ('post', f"{SERVICE_URL}/xml.metadata.insert"))
        self.assertIn(b"<category>_none_</category>", kwargs['data'])
        self.assertIn(b"<group>2</group>", kwargs['data'])
        self.assertEqual(kwargs['headers']['Content-Type'], 'text/xml')
        self.assertEqual(kwargs['headers']['X-XSRF-TOKEN'], 't1')
        self.assertEqual(kwargs['auth'], ('admin', 'geonetwork'))

    def testMissingGroup(self):
        manager, transport = _loggedIn("3.10.2")
        with self.assertRaises(MissingGroupError):
            manager.insertMetadata(xml=MD_XML)
        self.assertEqual(transport.calls, [])

    def testPayloadSources(self):
        manager, transport = _loggedIn("3.10.2")
        with self.assertRaises(PayloadSourceError):
            manager.insertMetadata(group="2")
        with self.assertRaises(ConstructionError):
            manager.insertMetadata(xml=MD_XML, file="metadata.xml", group="2")
        self.assertEqual(transport.calls, [])

    def testServerError(self):
        manager, transport = _loggedIn("3.10.2")
        transport.queue(makeResponse(500, b"<error>boom</error>"))
        with self.assertRaises(RemoteOperationError) as ctx:
            manager.insertMetadata(xml=MD_XML, group="2")
        self.assertEqual(ctx.exception.status, 500)
        self.assertEqual(ctx.exception.body, b"<error>boom</error>")
        self.assertEqual(len(transport.calls), 1)
        _, errors = manager.getLogIssues()
        self.assertTrue(errors)

    def testMissingIdInResponse(self):
        manager, transport = _loggedIn("3.10.2")
        transport.queue(makeResponse(200, b"<response/>"))
        with self.assertRaises(GeonetworkApiError):
            manager.insertMetadata(xml=MD_XML, group="2")


class TestUpdateMetadata(unittest.TestCase):

    def testLegacyUpdateFetchesVersion(self):
        manager, transport = _loggedIn("2.10.4")
        transport.queue(makeResponse(200, GET_RESPONSE), makeResponse(200, b"<response><id>42</id></response>"))
        self.assertEqual(manager.updateMetadata(42, xml=MD_XML), 42)

        (method, url, kwargs), (u_method, u_url, u_kwargs) = transport.calls
        self.assertEqual((method, url), ('get', f"{SERVICE_URL}/metadata.edit!"))
        self.assertEqual(kwargs['params'], {'id': 42})
        self.assertEqual((u_method, u_url), ('post', f"{SERVICE_URL}/metadata.update.finish"))
        self.assertIn(b"<id>42</id><version>7</version><data>", u_kwargs['data'])

    def testRestUpdateSkipsVersion(self):
        manager, transport = _loggedIn("3.10.2")
        transport.queue(makeResponse(200, b"<response><id>42</id></response>"))
        self.assertEqual(manager.updateMetadata(42, xml=MD_XML), 42)
        self.assertEqual(transport.urls, [f"{SERVICE_URL}/metadata.update.finish"])
        self.assertNotIn(b"<version>", transport.calls[0][2]['data'])

    def testLegacyUpdateMissingVersion(self):
        manager, transport = _loggedIn("2.10.4")
        transport.queue(makeResponse(200, b"<gmd:MD_Metadata xmlns:gmd='http://www.isotc211.org/2005/gmd'/>"))
        with self.assertRaises(GeonetworkApiError):
            manager.updateMetadata(42, xml=MD_XML)
        self.assertEqual(len(transport.calls), 1)

    def testUpdateWithoutPayload(self):
        manager, transport = _loggedIn("2.10.4")
        with self.assertRaises(PayloadSourceError):
            manager.updateMetadata(42)
        self.assertEqual(transport.calls, [])


class TestDeleteMetadata(unittest.TestCase):

    def testDelete(self):
        manager, transport = _loggedIn("3.10.2")
        transport.queue(makeResponse(200, b"<response><id>42</id></response>"))
        self.assertEqual(manager.deleteMetadata(42), 42)
        self.assertEqual(transport.urls, [f"{SERVICE_URL}/xml.metadata.delete"])
        self.assertIn(b"<id>42</id>", transport.calls[0][2]['data'])

    def testDeleteAllUnsupported(self):
        manager, transport = _loggedIn("2.4.3")
        with self.assertRaises(UnsupportedVersionError):
            manager.deleteMetadataAll()
        self.assertEqual(transport.calls, [])

    def testDeleteAll(self):
        manager, transport = _loggedIn("2.10.4")
        transport.queue(makeResponse(200, b"<request><Selected>3</Selected></request>"),
                        makeResponse(200, b"<response><done>3</done></response>"))
        result = manager.deleteMetadataAll()
        self.assertEqual(result.tag, "response")
        self.assertEqual(transport.urls, [f"{SERVICE_URL}/xml.metadata.select",
                                          f"{SERVICE_URL}/xml.metadata.batch.delete"])
        self.assertIn(b"<selected>add-all</selected>", transport.calls[0][2]['data'])

    def testDeleteAllSecondCallFails(self):
        manager, transport = _loggedIn("3.10.2")
        transport.queue(makeResponse(200, b"<request/>"), makeResponse(500))
        with self.assertRaises(RemoteOperationError):
            manager.deleteMetadataAll()
        self.assertEqual(len(transport.calls), 2)


class TestGetMetadata(unittest.TestCase):

    def testGetId(self):
        manager, transport = _manager("3.10.2", makeResponse(200, GET_RESPONSE))
        self.assertEqual(manager.get(42, by="id", output="id"), 42)
        self.assertEqual(transport.urls, [f"{SERVICE_URL}/xml.metadata.get"])
        self.assertIn(b"<id>42</id>", transport.calls[0][2]['data'])

    def testGetIdMissingInfo(self):
        manager, _ = _manager("3.10.2", makeResponse(200, b"<gmd:MD_Metadata xmlns:gmd='http://www.isotc211.org/2005/gmd'/>"))
        with self.assertRaises(GeonetworkApiError):
            manager.get(42, by="id", output="id")

    def testGetByUuid(self):
        manager, transport = _manager("3.10.2", makeResponse(200, GET_RESPONSE))
        manager.get("0a2a8e2c", by="uuid", output="id")
        self.assertIn(b"<uuid>0a2a8e2c</uuid>", transport.calls[0][2]['data'])

    def testGetMetadata(self):
        manager, _ = _manager("3.10.2", makeResponse(200, GET_RESPONSE))
        with mock.patch("geonapi.metadata.MD_Metadata") as md_class:
            result = manager.getMetadataByID(42)
        self.assertIs(result, md_class.return_value)

    def testGetMetadataDecoded(self):
        manager, transport = _manager("3.10.2", makeResponse(200, MD_XML))
        md = manager.getMetadataByUUID("0a2a8e2c-5f86-4d6b-9d1b-6bc1a8f6a6b1")
        self.assertIsInstance(md, MD_Metadata)
        self.assertEqual(md.identifier, "0a2a8e2c-5f86-4d6b-9d1b-6bc1a8f6a6b1")

        transport.queue(makeResponse(200, b"<response><id>42</id></response>"))
        self.assertEqual(manager.updateMetadata(42, geometa=md), 42)
        self.assertIn(b"0a2a8e2c-5f86-4d6b-9d1b-6bc1a8f6a6b1", transport.calls[1][2]['data'])

    def testGetUnreadableFeatureCatalogue(self):
        content = b"<gfc:FC_FeatureCatalogue xmlns:gfc='http://www.isotc211.org/2005/gfc'/>"
        manager, _ = _manager("3.10.2", makeResponse(200, content))
        with self.assertRaises(GeonetworkApiError):
            manager.getMetadataByID(42)

    def testInvalidOptions(self):
        manager, transport = _manager("3.10.2")
        with self.assertRaises(InvalidOptionError):
            manager.get(42, by="name", output="id")
        with self.assertRaises(InvalidOptionError):
            manager.get(42, by="id", output="json")
        self.assertEqual(transport.calls, [])

    def testInfoNotImplemented(self):
        manager, transport = _manager("3.10.2")
        with self.assertRaises(NotImplementedYetError):
            manager.getInfoByUUID("0a2a8e2c")
        with self.assertRaises(NotImplementedError):
            manager.getInfoByID(42)
        self.assertEqual(transport.calls, [])

    def testNotFound(self):
        manager, _ = _manager("3.10.2", makeResponse(404, b"Not found"))
        with self.assertRaises(RemoteOperationError) as ctx:
            manager.getMetadataByUUID("unknown")
        self.assertEqual(ctx.exception.status, 404)


class TestPrivilegesAndGroups(unittest.TestCase):

    def _config(self):
        config = GNPrivConfiguration()
        config.setPrivileges("5", ["view", "download"])
        return config

    def testPrivilegesMajor3(self):
        manager, transport = _loggedIn("3.10.2")
        transport.queue(makeResponse(200))
        self.assertTrue(manager.setPrivConfiguration(10, self._config()))
        method, url, kwargs = transport.calls[0]
        self.assertEqual((method, url), ('get', f"{SERVICE_URL}/md.privileges.update"))
        self.assertEqual(kwargs['params'], [("_content_type", "xml"), ("_5_view", "on"),
                                            ("_5_download", "on"), ("id", "10")])

    def testPrivilegesMajor2(self):
        manager, transport = _loggedIn("2.10.4")
        transport.queue(makeResponse(200))
        manager.setPrivConfiguration(10, self._config())
        method, url, kwargs = transport.calls[0]
        self.assertEqual(url, f"{SERVICE_URL}/metadata.admin")
        self.assertEqual(kwargs['params'][0], ("id", "10"))
        self.assertNotIn("_content_type", dict(kwargs['params']))

    def testPrivilegesInvalidConfig(self):
        manager, transport = _loggedIn("3.10.2")
        with self.assertRaises(ConstructionError):
            manager.setPrivConfiguration(10, {"5": ["view"]})
        self.assertEqual(transport.calls, [])

    def testPrivilegesFailure(self):
        manager, transport = _loggedIn("3.10.2")
        transport.queue(makeResponse(403))
        with self.assertRaises(RemoteOperationError):
            manager.setPrivConfiguration(10, self._config())

    def testGroups(self):
        manager, transport = _loggedIn("3.10.2")
        transport.queue(makeResponse(200, GROUPS_RESPONSE))
        groups = manager.getGroups()
        self.assertEqual([g['name'] for g in groups], ['all', 'sample'])
        self.assertEqual(transport.calls[0][:2], ('get', f"{SERVICE_URL}/xml.info?type=groups"))


if __name__ == '__main__':
    unittest.main()
