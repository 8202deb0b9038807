from typing import Iterable, List, Tuple

from geonapi.errors import ConstructionError

#: Privileges (operations) that can be granted to a group
ALLOWED_PRIVILEGES = ("view", "download", "editing", "notify", "dynamic", "featured")


class GNPrivConfiguration:
    """ Privilege configuration for a metadata record: an ordered list of group grants.

    Each group can only be granted once. Privileges within a grant keep the order in which they were given.
    """

    def __init__(self):
        self._grants = []

    @property
    def privileges(self) -> List[dict]:
        """ Returns the grants as a list of {'group', 'privileges'} dictionaries. """
        return [{'group': group, 'privileges': list(privs)} for group, privs in self._grants]

    @property
    def groups(self) -> List[str]:
        return [group for group, _ in self._grants]

    def setPrivileges(self, group, privileges: Iterable[str]):
        """
        Grants the given privileges to a group.

        :param group:       The GeoNetwork group identifier (e.g. "1" or "all").
        :param privileges:  The privilege names, see ALLOWED_PRIVILEGES.
        :raises ConstructionError: If the group was already granted or a privilege is not supported.
        """
        group = str(group)
        if group in self.groups:
            raise ConstructionError(f"Privileges for group '{group}' have already been set")
        if isinstance(privileges, str):
            privileges = [privileges]
        privs = []
        for priv in privileges:
            if priv not in ALLOWED_PRIVILEGES:
                raise ConstructionError(f"Privilege '{priv}' is not supported. "
                                        f"Possible values are [{','.join(ALLOWED_PRIVILEGES)}]")
            if priv not in privs:
                privs.append(priv)
        self._grants.append((group, tuple(privs)))

    def toParams(self) -> List[Tuple[str, str]]:
        """ Flattens the configuration into ('_{group}_{privilege}', 'on') query parameters. """
        return [(f"_{group}_{priv}", "on") for group, privs in self._grants for priv in privs]

    def __len__(self):
        return len(self._grants)

    def __repr__(self):
        return f"<{self.__class__.__name__}: {self.privileges}>"
