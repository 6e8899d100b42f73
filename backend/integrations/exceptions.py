"""Errors raised by aggregator clients.

Every AggregatorClient call either returns mapped data or raises one of
these. The sync service reads ``retriable`` to decide whether a failed page
is worth another run, and the Link endpoints turn them into 4xx/502 responses.
"""


class ProviderError(Exception):
    """A call to the aggregator did not produce usable data.

    ``provider_name`` identifies the aggregator ("Plaid") in logs and API errors.
    """

    def __init__(self, message: str, provider_name: str = ""):
        self.provider_name = provider_name
        super().__init__(message)

    @property
    def retriable(self) -> bool:
        return False


class ProviderAuthError(ProviderError):
    """The Item's access token or the API keys were rejected.

    Plaid signals this with 401/403 or error codes such as ITEM_LOGIN_REQUIRED;
    the user has to go back through Link before syncing again.
    """

    pass


class ProviderConnectionError(ProviderError):
    """No response from Plaid: timeout, DNS failure or dropped connection."""

    @property
    def retriable(self) -> bool:
        return True


class ProviderAPIError(ProviderError):
    """Plaid answered with an error status.

    ``error_code`` is Plaid's code from the response body when present, e.g.
    TRANSACTIONS_SYNC_MUTATION_DURING_PAGINATION or INVALID_API_KEYS.
    """

    def __init__(
        self,
        message: str,
        provider_name: str = "",
        status_code: int | None = None,
        error_code: str = "",
    ):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message, provider_name)

    @property
    def retriable(self) -> bool:
        # Rate limits and server-side failures
        if self.status_code is None:
            return False
        return self.status_code == 429 or self.status_code >= 500


class ProviderDataError(ProviderError):
    """A response arrived but lacked fields the mapping needs (ids, amounts, cursors)."""

    pass
