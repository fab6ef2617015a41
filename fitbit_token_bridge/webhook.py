"""
HTTP handling for the Fitbit webhook.

GET with ?code&state completes the OAuth flow for the owner named in the
state; POST with a bearer identity token logs foods for that owner. Every
response carries CORS headers. Errors are mapped to a status through
BaseError.status_code.
"""

import base64
import binascii
import json
import uuid
from typing import Any, Dict, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import azure.functions as func
import requests

from .auth.identity import IdentityVerifier, JWTIdentityVerifier, extract_bearer_token
from .clients.fitbit_client import FitbitFoodLogClient, FitbitOAuthClient
from .config import AppConfig
from .constants import EnvironmentVariable
from .db.db_config import DatabaseManager
from .exceptions import (
    BaseError,
    ConfigurationError,
    ErrorCode,
    MethodNotAllowedError,
    ValidationError,
    clear_correlation_id,
    set_correlation_id,
)
from .schemas.nutrition_schema import food_log_payload, parse_nutrition_request
from .services.token_lifecycle_service import TokenLifecycleService
from .stores.credential_store import CredentialStore
from .utils.logger import get_logger
from .utils.secrets import EnvironmentSecretProvider, SecretProvider, load_fitbit_client_credentials

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

INTERNAL_ERROR_MESSAGE = "An internal server error occurred."


def decode_oauth_state(state: Optional[str]) -> Tuple[str, Optional[str]]:
    """
    Decode the base64 JSON state passed through the Fitbit authorize redirect.

    Returns:
        (owner_id, redirect_uri)

    Raises:
        ValidationError: If the state is missing, undecodable or has no owner id
    """
    if not state:
        raise ValidationError("Invalid request: state parameter is missing.", field="state",
                              error_code=ErrorCode.MISSING_REQUIRED)
    try:
        decoded = json.loads(base64.b64decode(state).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise ValidationError("Invalid state: could not decode state parameter.", field="state",
                              error_code=ErrorCode.INVALID_FORMAT, cause=e)

    if not isinstance(decoded, dict):
        raise ValidationError("Invalid state: could not decode state parameter.", field="state",
                              error_code=ErrorCode.INVALID_FORMAT)

    # firebaseUid is what older clients put in the state
    owner_id = decoded.get("ownerId") or decoded.get("firebaseUid")
    if not owner_id:
        raise ValidationError("Invalid state: owner id is missing.", field="state",
                              error_code=ErrorCode.MISSING_REQUIRED)
    return owner_id, decoded.get("redirectUri")


def encode_oauth_state(owner_id: str, redirect_uri: Optional[str] = None) -> str:
    state: Dict[str, Any] = {"ownerId": owner_id}
    if redirect_uri:
        state["redirectUri"] = redirect_uri
    return base64.b64encode(json.dumps(state).encode("utf-8")).decode("ascii")


def with_query_param(url: str, name: str, value: str) -> str:
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != name]
    query.append((name, value))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


class FitbitWebhookHandler:
    """Routes webhook requests to the token lifecycle and the food log client."""

    def __init__(
        self,
        lifecycle_service: TokenLifecycleService,
        food_log_client: FitbitFoodLogClient,
        identity_verifier: IdentityVerifier,
    ):
        self.lifecycle_service = lifecycle_service
        self.food_log_client = food_log_client
        self.identity_verifier = identity_verifier
        self.logger = get_logger()

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        method = req.method.upper()
        if method == "OPTIONS":
            return self._response("", status_code=204)

        set_correlation_id(req.headers.get("x-correlation-id") or str(uuid.uuid4()))
        try:
            if method == "GET" and req.params.get("code"):
                return self.handle_oauth_callback(req)
            if method == "POST":
                return self.handle_food_log(req)
            raise MethodNotAllowedError(method=method)
        except BaseError as e:
            return self._json(e.to_dict(), status_code=e.status_code)
        except Exception as e:
            # Details such as SQL statements stay in the log
            self.logger.exception("Unhandled error in webhook handler",
                                  extra={"method": method, "error_type": type(e).__name__})
            return self._json({"error": INTERNAL_ERROR_MESSAGE}, status_code=500)
        finally:
            clear_correlation_id()

    def handle_oauth_callback(self, req: func.HttpRequest) -> func.HttpResponse:
        owner_id, redirect_uri = decode_oauth_state(req.params.get("state"))
        self.lifecycle_service.exchange_code(req.params["code"], owner_id)

        if redirect_uri:
            location = with_query_param(redirect_uri, "uid", owner_id)
            return self._response("", status_code=302, headers={"Location": location})
        return self._response(
            f"Authorization successful! User UID: {owner_id}. You can close this page.",
            status_code=200,
            mimetype="text/plain",
        )

    def handle_food_log(self, req: func.HttpRequest) -> func.HttpResponse:
        owner_id = self.identity_verifier.verify(extract_bearer_token(req.headers.get("Authorization")))

        try:
            payload = req.get_json()
        except ValueError as e:
            raise ValidationError("Invalid JSON body.", error_code=ErrorCode.INVALID_FORMAT, cause=e)
        request = parse_nutrition_request(payload)

        access_token, external_id = self.lifecycle_service.get_valid_access_token(owner_id)
        fitbit_responses = self.food_log_client.log_foods(access_token, external_id, request)

        self.logger.info("Logged foods for owner",
                         extra={"owner_id": owner_id, "food_count": len(request.foods)})
        return self._json(
            {
                "message": "All foods logged successfully to Fitbit.",
                "loggedData": food_log_payload(request),
                "fitbitResponses": fitbit_responses,
            },
            status_code=200,
        )

    def _json(self, body: Dict[str, Any], status_code: int) -> func.HttpResponse:
        return self._response(json.dumps(body), status_code=status_code, mimetype="application/json")

    def _response(
        self,
        body: str,
        status_code: int,
        mimetype: str = "text/plain",
        headers: Optional[Dict[str, str]] = None,
    ) -> func.HttpResponse:
        return func.HttpResponse(
            body,
            status_code=status_code,
            mimetype=mimetype,
            headers={**CORS_HEADERS, **(headers or {})},
        )


def create_webhook_handler(
    config: AppConfig,
    db_manager: Optional[DatabaseManager] = None,
    secret_provider: Optional[SecretProvider] = None,
    session: Optional[requests.Session] = None,
) -> FitbitWebhookHandler:
    """
    Wire the handler and its collaborators from configuration.

    Raises:
        ConfigurationError: If no database URL is configured and no db_manager is given
        SecretAccessError: If the Fitbit client credentials are not available
    """
    if db_manager is None:
        if not config.database.url:
            raise ConfigurationError(
                f"No credential store configured; set ${EnvironmentVariable.DATABASE_URL.value}.",
                setting=EnvironmentVariable.DATABASE_URL.value,
            )
        db_manager = DatabaseManager(config.database)
    secret_provider = secret_provider or EnvironmentSecretProvider(prefix=config.secrets.prefix)
    session = session or requests.Session()

    credentials = load_fitbit_client_credentials(
        secret_provider,
        config.fitbit.client_id_secret_name,
        config.fitbit.client_secret_secret_name,
    )
    store = CredentialStore(
        db_manager.session_factory,
        keying_scheme=config.store.keying_scheme,
        strict_owner_lookup=config.store.strict_owner_lookup,
    )
    oauth_client = FitbitOAuthClient(
        client_id=credentials["client_id"],
        client_secret=credentials["client_secret"],
        redirect_uri=config.fitbit.redirect_uri,
        token_url=config.fitbit.token_url,
        session=session,
        timeout=config.fitbit.request_timeout,
    )
    return FitbitWebhookHandler(
        lifecycle_service=TokenLifecycleService(store, oauth_client),
        food_log_client=FitbitFoodLogClient(
            api_base_url=config.fitbit.api_base_url,
            session=session,
            timeout=config.fitbit.request_timeout,
        ),
        identity_verifier=JWTIdentityVerifier.from_config(config.identity),
    )
