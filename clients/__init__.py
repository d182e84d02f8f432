# Infrastructure clients
from clients.service_client import (
    ServiceClient,
    ServiceError,
    MissingCredentialError,
    RequestFailedError,
    CredentialClass,
    DEFAULT_BASE_URL,
)
from clients.valkey_client import ValkeyClient
