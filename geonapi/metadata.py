from io import BytesIO
from re import compile
from xml.etree import ElementTree

from lxml import etree as ET
from owslib.iso import MD_Metadata, FC_FeatureCatalogue

from geonapi.errors import PayloadSourceError, GeonetworkApiError
from geonapi.utils import feedback

#: Root element names of the supported ISO metadata documents
ISO_METADATA = "MD_Metadata"
ISO_FEATURE_CATALOGUE = "FC_FeatureCatalogue"

XML_DECLARATION = compile(r'^\s*<\?xml[^>]*\?>')


class MetadataCodec:
    """ Bridge to the ISO 19115/19110 metadata library (OWSLib).

    A different codec can be passed to the GeoNetwork manager if another metadata library is used.
    """

    @staticmethod
    def _parser():
        return ET.XMLParser(remove_blank_text=True, resolve_entities=False, no_network=True)

    def decodeRaw(self, source) -> bytes:
        """
        Reads an ISO 19139 XML document and returns it in the canonical encoded form
        (UTF-8, no XML declaration) that GeoNetwork expects in a request envelope.

        :param source:  A file path or a binary file-like object.
        """
        tree = ET.parse(source, self._parser())
        return ET.tostring(tree.getroot(), encoding="UTF-8")

    def encode(self, geometa, validate: bool = True, inspire: bool = False) -> bytes:
        """
        Encodes a metadata object to XML bytes.

        Objects that have an `encode(validate, inspire)` method are encoded by that method,
        the validation flags are passed through as-is. OWSLib records are encoded from their source XML.

        :param geometa:     A metadata object (e.g. an OWSLib MD_Metadata or FC_FeatureCatalogue instance).
        :param validate:    Passed to the object encoder: perform ISO schema validation.
        :param inspire:     Passed to the object encoder: perform INSPIRE validation.
        :raises PayloadSourceError: If the object cannot be encoded.
        """
        encoder = getattr(geometa, 'encode', None)
        if isinstance(geometa, (str, bytes)):
            raise PayloadSourceError("Serialized XML must be passed as 'xml' argument, not as 'geometa'")
        if callable(encoder):
            out = encoder(validate=validate, inspire=inspire)
        elif isinstance(geometa, (MD_Metadata, FC_FeatureCatalogue)):
            out = geometa.xml
        else:
            raise PayloadSourceError(f"Object 'geometa' should be of class {ISO_METADATA} or "
                                     f"{ISO_FEATURE_CATALOGUE}, got {type(geometa).__name__}")
        if ET.iselement(out):
            out = ET.tostring(out, encoding="UTF-8")
        elif isinstance(out, str):
            out = out.encode("utf-8")
        return out or b''

    def fromElement(self, element):
        """
        Builds a metadata object from a parsed XML element,
        based on the local name of the root element.

        :raises GeonetworkApiError: If the root element is not a supported ISO metadata document.
        """
        name = ET.QName(element).localname
        if name == ISO_METADATA:
            document_class = MD_Metadata
        elif name == ISO_FEATURE_CATALOGUE:
            document_class = FC_FeatureCatalogue
        else:
            raise GeonetworkApiError(f"Unsupported metadata document type '{name}'")
        try:
            return document_class(element)
        except (KeyError, AttributeError, ValueError) as err:
            raise GeonetworkApiError(f"Failed to read {name} document: {err!r}")


def _serialize(xml) -> bytes:
    """ Converts an XML string or element (lxml or ElementTree) to bytes. """
    if isinstance(xml, bytes):
        return xml
    if isinstance(xml, str):
        # A decoded string is re-encoded as UTF-8, so any declared encoding no longer applies
        return XML_DECLARATION.sub('', xml, count=1).encode("utf-8")
    if hasattr(xml, 'getroot'):
        xml = xml.getroot()
    if ET.iselement(xml):
        return ET.tostring(xml, encoding="UTF-8")
    if ElementTree.iselement(xml):
        return ElementTree.tostring(xml, encoding="utf-8")
    raise PayloadSourceError(f"Unsupported 'xml' argument type {type(xml).__name__}")


class MetadataRecord:
    """ Metadata record as it is sent to GeoNetwork.

    Exactly one of the `xml`, `file` or `geometa` sources must be given.
    The source is normalized to the raw payload on initialization.
    The record ID and UUID are assigned by GeoNetwork.
    """

    def __init__(self, xml=None, file=None, geometa=None, codec: MetadataCodec = None,
                 geometa_validate: bool = True, geometa_inspire: bool = False, id=None, uuid=None):  # noqa
        """
        :param xml:                 Already serialized XML (str or bytes) or an XML element (lxml or ElementTree).
        :param file:                Path to an ISO 19139 XML file.
        :param geometa:             A metadata object (see `MetadataCodec.encode()`).
        :param codec:               Optional metadata codec (defaults to a `MetadataCodec`).
        :param geometa_validate:    Perform ISO validation when encoding `geometa` (default = True).
        :param geometa_inspire:     Perform INSPIRE validation when encoding `geometa` (default = False).
        :raises PayloadSourceError: If not exactly one source was given or the source could not be read.
        """
        sources = [name for name, value in (('xml', xml), ('file', file), ('geometa', geometa)) if value is not None]
        if not sources:
            raise PayloadSourceError("At least one of 'file', 'xml', or 'geometa' argument is required!")
        if len(sources) > 1:
            raise PayloadSourceError(f"Only one of 'file', 'xml', or 'geometa' arguments can be set "
                                     f"(got {', '.join(sources)})")
        self.id = id
        self.uuid = uuid
        self.document = geometa
        self._codec = codec or MetadataCodec()
        self.raw = self._normalize(xml, file, geometa, geometa_validate, geometa_inspire)
        if not self.raw:
            raise PayloadSourceError("Metadata source produced an empty payload")

    def _normalize(self, xml, file, geometa, validate, inspire) -> bytes:
        try:
            if xml is not None:
                feedback.logDebug("Decoding metadata from XML")
                with BytesIO(_serialize(xml)) as buffer:
                    return self._codec.decodeRaw(buffer)
            if file is not None:
                feedback.logDebug(f"Decoding metadata from file {file}")
                return self._codec.decodeRaw(str(file))
        except ET.XMLSyntaxError as err:
            raise PayloadSourceError(f"Invalid metadata XML: {err}")
        return self._codec.encode(geometa, validate=validate, inspire=inspire)

    @property
    def text(self) -> str:
        """ Returns the raw payload as a string. """
        return self.raw.decode("utf-8")

    def __repr__(self):
        return f"<{self.__class__.__name__}: id={self.id} uuid={self.uuid}>"
