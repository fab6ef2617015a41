"""
Azure Functions entry point for the Fitbit webhook.

Run with: func start
OAuth callback: GET  /api/fitbit?code=...&state=...
Food logging:   POST /api/fitbit  (Authorization: Bearer <identity token>)
"""

import json

import azure.functions as func

from fitbit_token_bridge.config import get_config
from fitbit_token_bridge.exceptions import BaseError
from fitbit_token_bridge.utils.logger import configure_logging
from fitbit_token_bridge.webhook import CORS_HEADERS, FitbitWebhookHandler, create_webhook_handler

app = func.FunctionApp()

_handler = None


def get_handler() -> FitbitWebhookHandler:
    """Build the handler on first use; secrets and the engine are created once per worker."""
    global _handler
    if _handler is None:
        _handler = create_webhook_handler(get_config())
    return _handler


@app.function_name(name="fitbit_webhook")
@app.route(route="fitbit", methods=["GET", "POST", "OPTIONS"], auth_level=func.AuthLevel.ANONYMOUS)
def fitbit_webhook(req: func.HttpRequest) -> func.HttpResponse:
    configure_logging("fitbit_webhook")
    try:
        handler = get_handler()
    except BaseError as e:
        return func.HttpResponse(
            json.dumps(e.to_dict()),
            status_code=e.status_code,
            mimetype="application/json",
            headers=CORS_HEADERS,
        )
    return handler.handle(req)
