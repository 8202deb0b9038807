from abc import ABC, abstractmethod

import keyring

#: Prefix of the service identity under which passwords are stored
SERVICE_PREFIX = "geonapi"


def serviceIdentity(url: str) -> str:
    """ Returns the secret store service name for the given GeoNetwork base URL. """
    return f"{SERVICE_PREFIX}@{url}"


class SecretStore(ABC):
    """ Keyed password storage. The GeoNetwork session only keeps the user name. """

    @abstractmethod
    def set(self, service: str, username: str, password: str):
        raise NotImplementedError(f"{self.__class__.__name__} must implement set()")

    @abstractmethod
    def get(self, service: str, username: str) -> str:
        """ Returns the stored password, or None if it was not found. """
        raise NotImplementedError(f"{self.__class__.__name__} must implement get()")


class KeyringStore(SecretStore):
    """ Stores passwords in the system keyring. """

    def set(self, service: str, username: str, password: str):
        keyring.set_password(service, username, password)

    def get(self, service: str, username: str) -> str:
        return keyring.get_password(service, username)


class MemoryStore(SecretStore):
    """ Keeps passwords in a dictionary. Meant for tests and short-lived scripts. """

    def __init__(self):
        self._secrets = {}

    def set(self, service: str, username: str, password: str):
        self._secrets[(service, username)] = password

    def get(self, service: str, username: str) -> str:
        return self._secrets.get((service, username))
