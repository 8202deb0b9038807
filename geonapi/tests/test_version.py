import unittest

from geonapi.errors import MalformedVersionError, ConstructionError
from geonapi.protocols import getProtocol, LegacyProtocol, RestProtocol
from geonapi.version import ServiceVersion


class TestServiceVersion(unittest.TestCase):

    def testParseMajorMinor(self):
        v = ServiceVersion("2.10")
        self.assertEqual((v.major, v.minor, v.patch), (2, 10, None))

    def testParseMajorMinorPatch(self):
        v = ServiceVersion("3.12.7")
        self.assertEqual((v.major, v.minor, v.patch), (3, 12, 7))
        self.assertEqual(str(v), "3.12.7")

    def testParseQualifiedVersion(self):
        v = ServiceVersion("4.2.5-SNAPSHOT")
        self.assertEqual((v.major, v.minor, v.patch), (4, 2, 5))
        self.assertEqual(str(v), "4.2.5-SNAPSHOT")

    def testWildcardPatch(self):
        self.assertIsNone(ServiceVersion("2.10.x").patch)

    def testMalformed(self):
        for value in ("", "abc", "3", "v3.1", None):
            with self.assertRaises(MalformedVersionError):
                ServiceVersion(value)

    def testMalformedIsConstructionError(self):
        with self.assertRaises(ConstructionError):
            ServiceVersion("three.one")

    def testLowerThan(self):
        self.assertTrue(ServiceVersion("2.4").lowerThan("2.10.0"))
        self.assertTrue(ServiceVersion("2.9.9").lowerThan("2.10"))
        self.assertTrue(ServiceVersion("3.10.1").lowerThan("3.10.2"))
        self.assertFalse(ServiceVersion("2.10.0").lowerThan("2.10.0"))
        self.assertFalse(ServiceVersion("3.0").lowerThan("2.10.4"))

    def testPatchWildcardComparison(self):
        self.assertEqual(ServiceVersion("2.10"), ServiceVersion("2.10.4"))
        self.assertFalse(ServiceVersion("2.10.4").lowerThan("2.10.x"))
        self.assertFalse(ServiceVersion("2.10.0").lowerThan("2.10"))

    def testOrdering(self):
        versions = [ServiceVersion(v) for v in ("3.10.2", "2.6.4", "4.0.0", "2.10.1", "3.4.0")]
        self.assertEqual([str(v) for v in sorted(versions)], ["2.6.4", "2.10.1", "3.4.0", "3.10.2", "4.0.0"])

    def testEqualityWithStrings(self):
        self.assertTrue(ServiceVersion("3.4.0") == "3.4.0")
        self.assertFalse(ServiceVersion("3.4.0") == "not a version")

    def testMajor3OrAbove(self):
        self.assertFalse(ServiceVersion("2.10.4").isMajor3OrAbove)
        self.assertTrue(ServiceVersion("3.0").isMajor3OrAbove)
        self.assertTrue(ServiceVersion("4.2.1").isMajor3OrAbove)


class TestProtocolSelection(unittest.TestCase):

    def testLegacy(self):
        protocol = getProtocol("2.10.4")
        self.assertIsInstance(protocol, LegacyProtocol)
        self.assertTrue(protocol.requiresEditingVersion)
        self.assertEqual(protocol.path('privileges'), 'metadata.admin')

    def testRest(self):
        protocol = getProtocol(ServiceVersion("3.10.2"))
        self.assertIsInstance(protocol, RestProtocol)
        self.assertFalse(protocol.requiresEditingVersion)
        self.assertEqual(protocol.path('privileges'), 'md.privileges.update')

    def testLang(self):
        self.assertEqual(getProtocol("2.6.4").lang, "en")
        self.assertEqual(getProtocol("2.10.4").lang, "eng")
        self.assertEqual(getProtocol("3.10.2").lang, "eng")

    def testLoginRequest(self):
        method, name, kwargs = getProtocol("3.10.2").loginRequest("admin", "secret")
        self.assertEqual((method, name), ('get', 'me'))
        self.assertEqual(kwargs['auth'], ("admin", "secret"))

        method, name, kwargs = getProtocol("2.10.4").loginRequest("admin", "secret")
        self.assertEqual((method, name), ('post', 'login'))
        self.assertNotIn('auth', kwargs)
        self.assertIn(b"<username>admin</username>", kwargs['data'])


if __name__ == '__main__':
    unittest.main()
