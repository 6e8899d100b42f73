"""Plaid API client.

This module implements the AggregatorClient protocol for Plaid via the
plaid-python SDK: account snapshots through ``/accounts/get`` and
incremental transaction pages through ``/transactions/sync``. It also
carries the Plaid Link helpers used by the API routes.

Unlike a process-wide SDK singleton, each PlaidClient owns its own
configured ``PlaidApi`` and is passed explicitly to the services that
need it.
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

from plaid import ApiException, Environment
from plaid.api.plaid_api import PlaidApi
from plaid.api_client import ApiClient
from plaid.configuration import Configuration
from plaid.model.accounts_get_request import AccountsGetRequest
from plaid.model.country_code import CountryCode
from plaid.model.institutions_get_by_id_request import InstitutionsGetByIdRequest
from plaid.model.item_public_token_exchange_request import ItemPublicTokenExchangeRequest
from plaid.model.item_remove_request import ItemRemoveRequest
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.products import Products
from plaid.model.transactions_sync_request import TransactionsSyncRequest
from urllib3.exceptions import HTTPError as TransportError

from config import settings
from integrations.aggregator_protocol import (
    AccountSnapshot,
    AggregatorAccount,
    AggregatorItem,
    AggregatorTransaction,
    TransactionDelta,
)
from integrations.exceptions import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderDataError,
    ProviderError,
)

logger = logging.getLogger(__name__)

PROVIDER_NAME = "Plaid"

# Map PLAID_ENVIRONMENT setting to SDK host URLs.
# Plaid's Development environment is deprecated; only sandbox and production
# are supported.
_ENVIRONMENT_MAP: dict[str, str] = {
    "sandbox": Environment.Sandbox,
    "production": Environment.Production,
}

_AUTH_ERROR_CODES = frozenset({
    "INVALID_ACCESS_TOKEN",
    "ITEM_LOGIN_REQUIRED",
    "INVALID_API_KEYS",
})

# Plaid returns at most 500 transactions per /transactions/sync page
SYNC_PAGE_SIZE = 500


class PlaidClient:
    """Wrapper around the Plaid API.

    Implements the AggregatorClient protocol and the Link token exchange.
    """

    def __init__(
        self,
        client_id: str | None = None,
        secret: str | None = None,
        environment: str | None = None,
        products: list[str] | None = None,
        country_codes: list[str] | None = None,
    ):
        self._client_id = client_id or settings.PLAID_CLIENT_ID
        self._secret = secret or settings.PLAID_SECRET
        self._environment = environment or settings.PLAID_ENVIRONMENT
        self._products = products or settings.plaid_products
        self._country_codes = country_codes or settings.plaid_country_codes

        # Lazily created on first use
        self._api: PlaidApi | None = None

    def _get_api(self) -> PlaidApi:
        """Return (and cache) a PlaidApi instance."""
        if self._api is None:
            env_key = self._environment.lower()
            host = _ENVIRONMENT_MAP.get(env_key)
            if host is None:
                logger.warning(
                    "Unknown PLAID_ENVIRONMENT=%r, falling back to sandbox. "
                    "Valid values: sandbox, production",
                    self._environment,
                )
                host = Environment.Sandbox
            logger.info(
                "Plaid API client: environment=%s, host=%s, client_id=<configured>",
                env_key,
                host,
            )
            configuration = Configuration(
                host=host,
                api_key={
                    "clientId": self._client_id,
                    "secret": self._secret,
                },
            )
            self._api = PlaidApi(ApiClient(configuration))
        return self._api

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    def is_configured(self) -> bool:
        """Check if Plaid credentials are configured."""
        return bool(self._client_id) and bool(self._secret)

    # ------------------------------------------------------------------
    # Link Token & Token Exchange (used by API routes, not sync)
    # ------------------------------------------------------------------

    def create_link_token(self, client_user_id: str) -> str:
        """Create a Plaid Link token for the browser-based auth flow.

        Args:
            client_user_id: Stable identifier of the user linking accounts.

        Returns:
            The link_token string to be passed to Plaid Link.
        """
        request = LinkTokenCreateRequest(
            user=LinkTokenCreateRequestUser(client_user_id=client_user_id),
            client_name=settings.PLAID_CLIENT_NAME,
            products=[Products(p) for p in self._products],
            country_codes=[CountryCode(c) for c in self._country_codes],
            language="en",
        )
        response = self._call(self._get_api().link_token_create, request)
        return response["link_token"]

    def exchange_public_token(self, public_token: str) -> dict:
        """Exchange a Plaid Link public_token for a permanent access_token.

        Returns:
            Dict with ``access_token`` and ``item_id``.
        """
        request = ItemPublicTokenExchangeRequest(public_token=public_token)
        response = self._call(self._get_api().item_public_token_exchange, request)
        return {
            "access_token": response["access_token"],
            "item_id": response["item_id"],
        }

    def remove_item(self, access_token: str) -> None:
        """Revoke an access token by calling Plaid's /item/remove endpoint."""
        self._call(
            self._get_api().item_remove,
            ItemRemoveRequest(access_token=access_token),
        )

    # ------------------------------------------------------------------
    # AggregatorClient protocol
    # ------------------------------------------------------------------

    def fetch_account_snapshot(self, access_token: str) -> AccountSnapshot:
        """Fetch current account balances for one Item via /accounts/get."""
        response = self._call(
            self._get_api().accounts_get,
            AccountsGetRequest(access_token=access_token),
        ).to_dict()

        raw_item = response.get("item") or {}
        item_id = raw_item.get("item_id")
        if not item_id:
            raise ProviderDataError(
                "accounts/get response is missing item.item_id",
                provider_name=PROVIDER_NAME,
            )

        institution_id = raw_item.get("institution_id")
        institution_name = raw_item.get("institution_name")
        if not institution_name and institution_id:
            institution_name = self._lookup_institution_name(institution_id)

        accounts = [
            self._map_account(acct) for acct in response.get("accounts") or []
        ]
        return AccountSnapshot(
            accounts=accounts,
            item=AggregatorItem(
                item_id=item_id,
                institution_id=institution_id,
                institution_name=institution_name,
            ),
        )

    def fetch_transaction_delta(
        self, access_token: str, cursor: str | None
    ) -> TransactionDelta:
        """Fetch one /transactions/sync page starting at ``cursor``."""
        kwargs = {"access_token": access_token, "count": SYNC_PAGE_SIZE}
        # The SDK rejects an explicit None; omitting the cursor means "from the start"
        if cursor:
            kwargs["cursor"] = cursor
        response = self._call(
            self._get_api().transactions_sync,
            TransactionsSyncRequest(**kwargs),
        ).to_dict()

        next_cursor = response.get("next_cursor")
        if next_cursor is None or "has_more" not in response:
            raise ProviderDataError(
                "transactions/sync response is missing next_cursor or has_more",
                provider_name=PROVIDER_NAME,
            )

        return TransactionDelta(
            next_cursor=next_cursor,
            has_more=bool(response["has_more"]),
            added=[self._map_transaction(t) for t in response.get("added") or []],
            modified=[self._map_transaction(t) for t in response.get("modified") or []],
            removed=[
                r["transaction_id"]
                for r in response.get("removed") or []
                if r.get("transaction_id")
            ],
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _lookup_institution_name(self, institution_id: str) -> str | None:
        """Resolve an institution's display name; None if the lookup fails."""
        request = InstitutionsGetByIdRequest(
            institution_id=institution_id,
            country_codes=[CountryCode(c) for c in self._country_codes],
        )
        try:
            response = self._call(self._get_api().institutions_get_by_id, request)
        except ProviderError as e:
            logger.warning("Institution lookup failed for %s: %s", institution_id, e)
            return None
        return response["institution"]["name"]

    def _call(self, method, request):
        """Invoke an SDK method, translating SDK failures to ProviderErrors."""
        try:
            return method(request)
        except ApiException as e:
            raise self._map_plaid_error(e) from e
        except TransportError as e:
            raise ProviderConnectionError(
                f"Could not reach Plaid: {e}", provider_name=PROVIDER_NAME
            ) from e

    def _map_account(self, acct: dict) -> AggregatorAccount:
        account_id = acct.get("account_id")
        if not account_id:
            raise ProviderDataError(
                "account without account_id", provider_name=PROVIDER_NAME
            )
        balances = acct.get("balances") or {}
        return AggregatorAccount(
            account_id=account_id,
            name=acct.get("name") or acct.get("official_name") or "Plaid Account",
            official_name=acct.get("official_name"),
            type=_as_str(acct.get("type")),
            subtype=_as_str(acct.get("subtype")),
            available_balance=_to_decimal(balances.get("available")),
            current_balance=_to_decimal(balances.get("current")),
            currency=balances.get("iso_currency_code"),
        )

    def _map_transaction(self, txn: dict) -> AggregatorTransaction:
        transaction_id = txn.get("transaction_id")
        amount = _to_decimal(txn.get("amount"))
        if not transaction_id or amount is None:
            raise ProviderDataError(
                f"transaction {transaction_id!r} is missing an id or amount",
                provider_name=PROVIDER_NAME,
            )
        category = txn.get("personal_finance_category") or {}
        return AggregatorTransaction(
            transaction_id=transaction_id,
            account_id=txn.get("account_id", ""),
            amount=amount,
            authorized_datetime=_to_datetime(txn.get("authorized_datetime")),
            posted_datetime=_to_datetime(txn.get("datetime"))
            or _to_datetime(txn.get("date")),
            category_primary=category.get("primary"),
            category_detailed=category.get("detailed"),
            name=txn.get("name"),
            merchant_name=txn.get("merchant_name"),
            payment_channel=_as_str(txn.get("payment_channel")),
            currency=txn.get("iso_currency_code"),
            pending=bool(txn.get("pending", False)),
        )

    @staticmethod
    def _map_plaid_error(exc: ApiException) -> ProviderError:
        """Map a Plaid ApiException to the provider exception hierarchy."""
        status = exc.status or 0
        message = str(exc)

        # Try to extract error_code from the body
        error_code = ""
        try:
            body = json.loads(exc.body) if exc.body else {}
        except (TypeError, ValueError):
            body = {}
        if isinstance(body, dict):
            error_code = body.get("error_code") or ""
            error_message = body.get("error_message") or ""
            if error_message:
                message = f"Plaid error ({error_code}): {error_message}"

        if status in (401, 403) or error_code in _AUTH_ERROR_CODES:
            return ProviderAuthError(message, provider_name=PROVIDER_NAME)
        return ProviderAPIError(
            message,
            provider_name=PROVIDER_NAME,
            status_code=status or None,
            error_code=error_code,
        )


def _as_str(value) -> str | None:
    if value is None:
        return None
    return str(value)


def _to_decimal(value) -> Decimal | None:
    """Convert a value to Decimal, returning None on failure."""
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _to_datetime(value) -> datetime | None:
    """Normalize Plaid date/datetime values to naive UTC datetimes.

    SQLite strips tzinfo on storage, so values are stored naive in UTC.
    """
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            try:
                value = date.fromisoformat(value)
            except ValueError:
                return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return None
