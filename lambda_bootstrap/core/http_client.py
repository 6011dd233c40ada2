import logging

import httpx

from lambda_bootstrap.config import RuntimeConfig

logger = logging.getLogger("bootstrap.http_client")


class HttpClientFactory:
    """
    HTTP Client Factory for the Runtime API connection.
    """

    def __init__(self, config: RuntimeConfig):
        self.config = config

    def create_sync_client(self, **kwargs) -> httpx.Client:
        """
        Create an httpx.Client bound to the Runtime API base URL.

        Args:
            **kwargs: Additional arguments for httpx.Client
        """
        kwargs.setdefault("base_url", self.config.runtime_api_base_url)
        # The next-invocation call is held open until an event exists.
        kwargs.setdefault("timeout", httpx.Timeout(None, connect=5.0))
        # Avoid leaking host HTTP(S)_PROXY/NO_PROXY into the local Runtime API calls.
        kwargs.setdefault("trust_env", False)

        logger.debug("Creating Runtime API client for %s", kwargs["base_url"])
        return httpx.Client(**kwargs)
