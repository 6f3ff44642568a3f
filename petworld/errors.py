# petworld/errors.py


class PetWorldError(Exception):
    pass


class BackendError(PetWorldError):
    """Network/auth/timeout failure talking to the completion backend."""


class VerdictMalformedError(PetWorldError):
    """Critic output could not be turned into a Verdict."""


class CatalogUnavailableError(PetWorldError):
    """The product catalog could not be read."""


class PersistenceError(PetWorldError):
    """A finished session could not be written to the audit store."""
