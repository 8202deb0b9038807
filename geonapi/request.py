from lxml import etree as ET

#: Root element name of all GeoNetwork XML service requests
ROOT_ELEMENT = "request"

#: Literal value that GeoNetwork expects for an unset category or stylesheet
NONE_VALUE = "_none_"

LOGIN = "login"
INSERT = "insert"
GET = "get"
UPDATE = "update"
DELETE = "delete"
SELECT = "select"
BATCH_DELETE = "batch-delete"

#: Child elements per operation, in the order in which they must be written
OPERATION_FIELDS = {
    LOGIN: ("username", "password"),
    INSERT: ("data", "group", "category", "stylesheet", "validate"),
    GET: ("id", "uuid"),
    UPDATE: ("id", "version", "data"),
    DELETE: ("id",),
    SELECT: (),
    BATCH_DELETE: (),
}

#: Fields that are written as a CDATA section
CDATA_FIELDS = frozenset(("data",))


def _addSubElement(parent, tag, value=None):
    sub = ET.SubElement(parent, tag)
    if value is not None:
        sub.text = ET.CDATA(value) if tag in CDATA_FIELDS else value
    return sub


def _toText(value) -> str:
    if isinstance(value, bool):
        return "on" if value else "off"
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class GNRequest:
    """ XML request envelope for a single GeoNetwork XML service operation. """

    def __init__(self, operation: str, **fields):
        """
        Creates a new request envelope.

        :param operation:   One of the operation names in OPERATION_FIELDS (e.g. "insert").
        :param fields:      Field values by name. Fields that are None are omitted.
                            Booleans are written as "on"/"off" and bytes are decoded as UTF-8.
        :raises ValueError: If the operation is unknown or a field is not supported by the operation.
        """
        if operation not in OPERATION_FIELDS:
            raise ValueError(f"Unsupported request operation '{operation}'")
        unknown = set(fields).difference(OPERATION_FIELDS[operation])
        if unknown:
            raise ValueError(f"Unsupported field(s) for '{operation}' request: {', '.join(sorted(unknown))}")
        self._operation = operation
        self._fields = fields
        self._children = []

    @classmethod
    def forInsert(cls, data, group, category=None, stylesheet=None, validate: bool = False):
        """ Returns an insert request, where an unset category or stylesheet is sent as '_none_'. """
        return cls(INSERT, data=data, group=group,
                   category=NONE_VALUE if category is None else category,
                   stylesheet=NONE_VALUE if stylesheet is None else stylesheet,
                   validate=bool(validate))

    @property
    def operation(self) -> str:
        return self._operation

    def setChild(self, name: str, text: str):
        """ Appends an extra child element with the given text (written after the regular fields). """
        self._children.append((name, text))

    def toElement(self):
        """ Builds the request as an lxml element tree. """
        root = ET.Element(ROOT_ELEMENT)
        for name in OPERATION_FIELDS[self._operation]:
            value = self._fields.get(name)
            if value is None:
                continue
            _addSubElement(root, name, _toText(value))
        for name, text in self._children:
            _addSubElement(root, name, text)
        return root

    def encode(self) -> bytes:
        """ Serializes the request to UTF-8 encoded XML bytes (including the XML declaration). """
        return ET.tostring(self.toElement(), encoding="UTF-8", xml_declaration=True)

    def __repr__(self):
        return f"<{self.__class__.__name__}: {self._operation}>"
