"""
Authentication handling for Azure DevOps
Resolves a token from a named credential target, a Service Principal or
DefaultAzureCredential, read once at the start of a run
"""
import asyncio
import logging
import os
from typing import Optional

from azure.devops.connection import Connection
from azure.identity import DefaultAzureCredential, ClientSecretCredential
from msrest.authentication import BasicAuthentication

from .constants import DEFAULT_CREDENTIAL_TARGET
from .errors import CredentialError
from .log_sanitizer import register_secret, safe_log_error
from .models import FailurePolicy

logger = logging.getLogger(__name__)


class AzureDevOpsAuth:
    """
    Handles authentication to Azure DevOps using, in order:
    1. Personal Access Token stored under the named credential target
    2. Service Principal (for automation)
    3. DefaultAzureCredential (managed identity, az login)
    """

    # Azure DevOps resource ID for token acquisition
    AZURE_DEVOPS_RESOURCE_ID = "499b84ac-1321-427f-aa17-267ca6975798"

    ANONYMOUS = "Anonymous (no credential)"

    def __init__(self, organization_url: str, credential_target: str = DEFAULT_CREDENTIAL_TARGET):
        """
        Initialize authentication handler

        Args:
            organization_url: Azure DevOps organization URL
                            (e.g., https://dev.azure.com/yourorg)
            credential_target: Name of the environment variable holding the PAT
        """
        self.organization_url = organization_url
        self.credential_target = credential_target
        self.connection: Optional[Connection] = None
        self.credential_error: Optional[CredentialError] = None
        self._credential = None
        self._auth_method = None

    async def initialize(self, on_failure: FailurePolicy = FailurePolicy.DEGRADE):
        """
        Establish a connection to Azure DevOps.

        Args:
            on_failure: DEGRADE continues with empty credentials, which the
                server later rejects; ABORT raises CredentialError

        Raises:
            CredentialError: If no method succeeds and on_failure is ABORT
        """
        auth_methods = [
            self._try_pat,
            self._try_service_principal,
            self._try_default_credential
        ]

        for auth_method in auth_methods:
            try:
                self.connection = await auth_method()
                if self.connection:
                    logger.info(f"Authenticated using: {self._auth_method}")
                    return
            except Exception as e:
                logger.debug(safe_log_error(e, auth_method.__name__))
                continue

        self.credential_error = CredentialError(
            self.credential_target,
            f"Failed to retrieve a credential for '{self.credential_target}'. Configure one of:\n"
            f"1. Personal Access Token in {self.credential_target}\n"
            "2. Service Principal (AZURE_CLIENT_ID, AZURE_CLIENT_SECRET, AZURE_TENANT_ID)\n"
            "3. Azure CLI login or Managed Identity"
        )
        logger.error(str(self.credential_error))

        if FailurePolicy(on_failure) is FailurePolicy.ABORT:
            raise self.credential_error

        logger.warning("Continuing without credentials; requests will be rejected by the server")
        self._auth_method = self.ANONYMOUS
        self.connection = Connection(
            base_url=self.organization_url,
            creds=BasicAuthentication('', '')
        )

    async def _try_pat(self) -> Optional[Connection]:
        """
        Attempt authentication using the Personal Access Token stored
        under the credential target
        """
        pat = os.getenv(self.credential_target)

        if not pat:
            raise ValueError(f"{self.credential_target} environment variable not set")

        register_secret(pat)
        self._auth_method = f"Personal Access Token ({self.credential_target})"
        return Connection(base_url=self.organization_url, creds=BasicAuthentication('', pat))

    async def _try_service_principal(self) -> Optional[Connection]:
        """
        Attempt authentication using Service Principal
        Requires environment variables:
        - AZURE_CLIENT_ID
        - AZURE_CLIENT_SECRET
        - AZURE_TENANT_ID
        """
        client_id = os.getenv("AZURE_CLIENT_ID")
        client_secret = os.getenv("AZURE_CLIENT_SECRET")
        tenant_id = os.getenv("AZURE_TENANT_ID")

        if not all([client_id, client_secret, tenant_id]):
            raise ValueError("Missing service principal credentials")

        register_secret(client_secret)
        credential = ClientSecretCredential(
            tenant_id=tenant_id,
            client_id=client_id,
            client_secret=client_secret
        )
        return await self._connect_with_token(credential, "Service Principal")

    async def _try_default_credential(self) -> Optional[Connection]:
        """
        Attempt authentication using DefaultAzureCredential
        This works for managed identities and local az login sessions
        """
        return await self._connect_with_token(
            DefaultAzureCredential(),
            "Azure Managed Identity / DefaultAzureCredential"
        )

    async def _connect_with_token(self, credential, method: str) -> Connection:
        token = await asyncio.to_thread(
            credential.get_token,
            f"{self.AZURE_DEVOPS_RESOURCE_ID}/.default"
        )
        register_secret(token.token)

        self._credential = credential
        self._auth_method = method

        # Azure DevOps accepts the access token in the same way as a PAT
        return Connection(
            base_url=self.organization_url,
            creds=BasicAuthentication('', token.token)
        )

    def get_client(self, client_type: str):
        """
        Get a specific Azure DevOps client

        Args:
            client_type: Currently only 'work_item_tracking'

        Returns:
            The requested client instance
        """
        if not self.connection:
            raise RuntimeError("Not authenticated. Call initialize() first.")

        client_map = {
            'work_item_tracking': self.connection.clients.get_work_item_tracking_client,
        }

        if client_type not in client_map:
            raise ValueError(f"Unknown client type: {client_type}")

        return client_map[client_type]()

    async def close(self):
        """Clean up resources"""
        if hasattr(self._credential, 'close'):
            self._credential.close()

        self.connection = None

    def get_auth_info(self) -> dict:
        """Get information about current authentication"""
        return {
            "method": self._auth_method,
            "organization_url": self.organization_url,
            "credential_target": self.credential_target,
            "authenticated": self.connection is not None and self._auth_method != self.ANONYMOUS
        }
