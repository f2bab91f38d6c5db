"""
SSM Parameter Store client: fetches every parameter under a path.

Uses get_parameters_by_path() with Recursive=True and WithDecryption=True,
following NextToken until the backend stops returning one. Each call returns
at most 10 parameters (service hard limit).

Timeouts and retry attempts are explicit botocore settings. A failure on any
page aborts the whole fetch and propagates to the caller.
"""

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config

from switchboard_config.config_loader import ParameterStoreSettings

logger = logging.getLogger(__name__)


class ParameterStoreClient:
    """
    Thin wrapper around a boto3 SSM client.

    Built once at startup and shared by every request; boto3 low-level clients
    are safe to use from multiple threads.

    Usage (main.py):
        client = ParameterStoreClient.from_settings(settings.parameter_store)
        params = client.fetch_all("/switchboard/billing")
    """

    MAX_PAGE_SIZE = 10

    def __init__(self, ssm_client: Any, page_size: int = MAX_PAGE_SIZE) -> None:
        """
        Args:
            ssm_client: boto3 "ssm" client (or any object with get_parameters_by_path)
            page_size: MaxResults per request, 1-10

        Raises:
            ValueError: If page_size is out of range
        """
        if not 1 <= page_size <= self.MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be between 1 and {self.MAX_PAGE_SIZE}, got {page_size}")
        self._ssm = ssm_client
        self._page_size = page_size

    @classmethod
    def from_settings(cls, settings: ParameterStoreSettings) -> "ParameterStoreClient":
        """
        Build the boto3 client from server settings.

        Static credentials are used only when both keys are set; otherwise the
        default boto3 credential chain applies (env, profile, instance role).
        """
        config = Config(
            connect_timeout=settings.connect_timeout,
            read_timeout=settings.read_timeout,
            retries={"max_attempts": settings.max_attempts, "mode": "standard"},
        )
        kwargs: dict[str, Any] = {"region_name": settings.region, "config": config}
        if settings.endpoint_url:
            kwargs["endpoint_url"] = settings.endpoint_url
        if settings.access_key and settings.secret_key:
            kwargs["aws_access_key_id"] = settings.access_key
            kwargs["aws_secret_access_key"] = settings.secret_key

        ssm = boto3.client("ssm", **kwargs)
        logger.info(
            "Parameter Store client initialized | region=%s | static_credentials=%s",
            settings.region,
            "aws_access_key_id" in kwargs,
        )
        return cls(ssm, page_size=settings.page_size)

    def fetch_all(self, path: str) -> dict[str, str]:
        """
        Fetch every parameter at or below path, decrypted.

        Args:
            path: Hierarchical prefix, e.g. "/switchboard/billing"

        Returns:
            Mapping of full parameter name to value, e.g.
                {"/switchboard/billing/db/host": "x"}

        Raises:
            botocore.exceptions.ClientError: On auth failure, throttling, bad path
            botocore.exceptions.BotoCoreError: On network failure
        """
        parameters: dict[str, str] = {}
        next_token: Optional[str] = None
        pages = 0

        while True:
            request: dict[str, Any] = {
                "Path": path,
                "Recursive": True,
                "WithDecryption": True,
                "MaxResults": self._page_size,
            }
            if next_token:
                request["NextToken"] = next_token

            response = self._ssm.get_parameters_by_path(**request)
            pages += 1

            for parameter in response.get("Parameters", []):
                parameters[parameter["Name"]] = parameter["Value"]

            next_token = response.get("NextToken")
            if not next_token:
                break

        logger.debug("Fetched %d parameters in %d pages | path=%s", len(parameters), pages, path)
        return parameters
