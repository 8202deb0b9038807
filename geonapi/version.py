from re import compile, IGNORECASE

from geonapi.errors import MalformedVersionError

#: Version regex: major and minor are required, patch may be a number or a wildcard ("x")
VERSION_REGEX = compile(r'^(\d+)\.(\d+)(?:\.(\d+|x))?', IGNORECASE)


class ServiceVersion:
    """ GeoNetwork service version (e.g. "2.10.4" or "3.12").

    A missing patch number (or "x") acts as a wildcard that matches any patch number,
    so that "2.10" equals "2.10.4" and "2.10.4" is not lower than "2.10.x".
    """

    def __init__(self, version):
        self._major, self._minor, self._patch = self._parse(version)
        self._actual = str(version).strip()

    @staticmethod
    def _parse(version) -> tuple:
        """ Converts a version string to a (major, minor, patch) version tuple. Patch is None if not set. """
        if isinstance(version, ServiceVersion):
            return version._major, version._minor, version._patch  # noqa
        m = VERSION_REGEX.match(str(version or '').strip())
        if m is None:
            raise MalformedVersionError(f"'{version}' is not a valid GeoNetwork version")
        major, minor, patch = m.groups()
        patch = int(patch) if patch and patch.isdigit() else None
        return int(major), int(minor), patch

    @property
    def major(self) -> int:
        """ The major version number (first number). """
        return self._major

    @property
    def minor(self) -> int:
        """ The minor version number (second number). """
        return self._minor

    @property
    def patch(self):
        """ The patch version number (third number). None if not set. """
        return self._patch

    @property
    def isMajor3OrAbove(self) -> bool:
        """ Returns True for GeoNetwork 3+ (cookie/token REST interface). """
        return self._major >= 3

    def lowerThan(self, other) -> bool:
        """ Returns True if this version is lower than the given version (string or ServiceVersion). """
        return self < other

    def _keys(self, other):
        other = other if isinstance(other, ServiceVersion) else ServiceVersion(other)
        this_key = (self._major, self._minor)
        that_key = (other._major, other._minor)  # noqa
        if self._patch is not None and other._patch is not None:  # noqa
            this_key += (self._patch,)
            that_key += (other._patch,)  # noqa
        return this_key, that_key

    def __str__(self):
        """ Returns the actual version string as it was passed in. """
        return self._actual

    def __repr__(self):
        return f"{self.__class__.__name__}('{self._actual}')"

    def __hash__(self):
        return hash((self._major, self._minor))

    def __eq__(self, other):
        try:
            this, that = self._keys(other)
        except MalformedVersionError:
            return NotImplemented
        return this == that

    def __lt__(self, other):
        this, that = self._keys(other)
        return this < that

    def __le__(self, other):
        this, that = self._keys(other)
        return this <= that

    def __gt__(self, other):
        this, that = self._keys(other)
        return this > that

    def __ge__(self, other):
        this, that = self._keys(other)
        return this >= that
