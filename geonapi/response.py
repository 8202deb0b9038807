from typing import List, Dict

from lxml import etree as ET

from geonapi.errors import GeonetworkApiError

#: GeoNetwork namespace (used for the geonet:info element in metadata responses)
GEONET_NS = "http://www.fao.org/geonetwork"
NAMESPACES = {"geonet": GEONET_NS}


def parseXml(content: bytes):
    """ Parses the given XML bytes and returns the root element.

    :raises GeonetworkApiError: If the content is not valid XML.
    """
    parser = ET.XMLParser(resolve_entities=False, no_network=True)
    try:
        return ET.fromstring(content, parser)
    except (ET.XMLSyntaxError, ValueError) as err:
        raise GeonetworkApiError(f"Received invalid XML response: {err}")


class GNResponse:
    """ Read-only wrapper around a parsed GeoNetwork XML response. """

    def __init__(self, content: bytes):
        self._root = parseXml(content)

    @property
    def root(self):
        """ Returns the lxml root element. """
        return self._root

    @property
    def rootName(self) -> str:
        """ Returns the local name of the root element (without namespace). """
        return ET.QName(self._root).localname

    def _first(self, xpath: str, description: str):
        nodes = self._root.xpath(xpath, namespaces=NAMESPACES)
        if not nodes:
            raise GeonetworkApiError(f"No {description} XML element found in response")
        return nodes[0]

    def _int(self, xpath: str, description: str) -> int:
        text = (self._first(xpath, description).text or '').strip()
        try:
            return int(text)
        except ValueError:
            raise GeonetworkApiError(f"Expected an integer value for {description} element, got '{text}'")

    def getId(self) -> int:
        """ Returns the value of the first <id> element (insert, update and delete responses). """
        return self._int("//id", "id")

    def getInfoId(self) -> int:
        """ Returns the internal record ID from the <geonet:info><id> element (metadata get responses). """
        return self._int("//geonet:info/id", "geonet:info/id")

    def getVersion(self) -> int:
        """ Returns the editing version counter from the <geonet:info><version> element. """
        return self._int("//geonet:info/version", "geonet:info/version")

    def getGroups(self) -> List[Dict[str, str]]:
        """ Returns a list of {'id', 'name'} dictionaries for all <group> elements that have an 'id' attribute. """
        groups = []
        for node in self._root.xpath("//group[@id]"):
            name = node.find("name")
            groups.append({
                'id': node.get("id"),
                'name': (name.text or '') if name is not None else ''
            })
        return groups

    def getSiteVersion(self) -> str:
        """ Returns the platform version from a legacy 'xml.info?type=site' response. """
        node = self._first("//platform/version", "platform/version")
        return (node.text or '').strip()

    def encode(self) -> bytes:
        return ET.tostring(self._root, encoding="UTF-8")
