"""
HTTP clients for the Fitbit Web API.

FitbitOAuthClient talks to the token endpoint (code exchange and refresh).
FitbitFoodLogClient creates custom foods and logs them. Both are single
request/response wrappers: no retries, no state beyond the injected
requests.Session.
"""

import base64
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError as PydanticValidationError

from ..constants import FITBIT_API_BASE_URL, FITBIT_TOKEN_URL, GrantType, Timeouts
from ..exceptions import ExternalApiError
from ..schemas.nutrition_schema import FoodItem, NutritionLogRequest
from ..schemas.token_record_schema import TokenResponse
from ..utils.logger import get_logger

MEAL_TYPE_IDS = {
    "Breakfast": 1,
    "Morning Snack": 2,
    "Lunch": 3,
    "Afternoon Snack": 4,
    "Dinner": 5,
    "Anytime": 7,
}
DEFAULT_MEAL_TYPE_ID = 7

UNIT_IDS = {
    "g": 1,
    "gram": 1,
    "grams": 1,
    "ml": 147,
    "milliliter": 147,
    "milliliters": 147,
    "oz": 13,
    "fl oz": 19,
    "serving": 86,
    "個": 86,
}
DEFAULT_UNIT_ID = 86

# request field -> Fitbit create-food parameter
NUTRIENT_PARAMS = {
    "caloriesFromFat": "caloriesFromFat",
    "totalFat_g": "totalFat",
    "transFat_g": "transFat",
    "saturatedFat_g": "saturatedFat",
    "cholesterol_mg": "cholesterol",
    "sodium_mg": "sodium",
    "potassium_mg": "potassium",
    "totalCarbohydrate_g": "totalCarbohydrate",
    "dietaryFiber_g": "dietaryFiber",
    "sugars_g": "sugars",
    "protein_g": "protein",
    "vitaminA_iu": "vitaminA",
    "vitaminB6": "vitaminB6",
    "vitaminB12": "vitaminB12",
    "vitaminC_mg": "vitaminC",
    "vitaminD_iu": "vitaminD",
    "vitaminE_iu": "vitaminE",
    "biotin_mg": "biotin",
    "folicAcid_mg": "folicAcid",
    "niacin_mg": "niacin",
    "pantothenicAcid_mg": "pantothenicAcid",
    "riboflavin_mg": "riboflavin",
    "thiamin_mg": "thiamin",
    "calcium_g": "calcium",
    "copper_g": "copper",
    "iron_mg": "iron",
    "magnesium_mg": "magnesium",
    "phosphorus_g": "phosphorus",
    "iodine_mcg": "iodine",
    "zinc_mg": "zinc",
}


def provider_error_message(response: requests.Response) -> str:
    """First `errors[].message` of a Fitbit error body, or 'Unknown error'."""
    try:
        body = response.json()
    except ValueError:
        return "Unknown error"
    errors = body.get("errors") if isinstance(body, dict) else None
    if errors and isinstance(errors[0], dict) and errors[0].get("message"):
        return errors[0]["message"]
    return "Unknown error"


def basic_auth_header(client_id: str, client_secret: str) -> str:
    credentials = f"{client_id}:{client_secret}".encode("utf-8")
    return "Basic " + base64.b64encode(credentials).decode("ascii")


def resolve_unit_id(unit: Optional[str]) -> int:
    unit_id = UNIT_IDS.get((unit or "").lower())
    if unit_id is None:
        get_logger().warning(
            "Unknown unit, defaulting to serving",
            extra={"unit": unit, "unit_id": DEFAULT_UNIT_ID},
        )
        return DEFAULT_UNIT_ID
    return unit_id


class FitbitOAuthClient:
    """Authorization-code exchange and token refresh against the Fitbit token endpoint."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        token_url: str = FITBIT_TOKEN_URL,
        session: Optional[requests.Session] = None,
        timeout: int = Timeouts.EXTERNAL_API_CALL,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.token_url = token_url
        self.session = session or requests.Session()
        self.timeout = timeout
        self.logger = get_logger()

    def exchange_code(self, code: str) -> TokenResponse:
        """
        Exchange a one-time authorization code for tokens.

        Raises:
            ExternalApiError: If Fitbit answers with a non-2xx status
        """
        return self._request_tokens(
            {
                "grant_type": GrantType.AUTHORIZATION_CODE.value,
                "code": code,
                "redirect_uri": self.redirect_uri,
                "client_id": self.client_id,
            },
            operation="exchange_code",
        )

    def refresh(self, refresh_token: str) -> TokenResponse:
        """
        Mint a new access token from a refresh token.

        Raises:
            ExternalApiError: If Fitbit answers with a non-2xx status
        """
        return self._request_tokens(
            {
                "grant_type": GrantType.REFRESH_TOKEN.value,
                "refresh_token": refresh_token,
            },
            operation="refresh",
        )

    def _request_tokens(self, form: Dict[str, str], operation: str) -> TokenResponse:
        response = self.session.post(
            self.token_url,
            data=form,
            headers={
                "Authorization": basic_auth_header(self.client_id, self.client_secret),
                "Content-Type": "application/x-www-form-urlencoded",
            },
            timeout=self.timeout,
        )

        if not response.ok:
            message = provider_error_message(response)
            raise ExternalApiError(
                f"Fitbit token {operation} failed: {message}",
                operation=operation,
                http_status=response.status_code,
                provider_message=message,
            )

        try:
            tokens = TokenResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise ExternalApiError(
                f"Fitbit token {operation} returned an unexpected body",
                operation=operation,
                cause=e,
            )

        self.logger.info("Fitbit token request succeeded",
                         extra={"operation": operation, "external_id": tokens.user_id})
        return tokens


class FitbitFoodLogClient:
    """Creates a custom food for each requested item and logs it for the user."""

    def __init__(
        self,
        api_base_url: str = FITBIT_API_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: int = Timeouts.EXTERNAL_API_CALL,
    ):
        self.api_base_url = api_base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.logger = get_logger()

    def log_foods(
        self, access_token: str, external_id: str, request: NutritionLogRequest
    ) -> List[Dict[str, Any]]:
        """
        Create and log every food in the request, in order.

        Returns:
            The log confirmations returned by Fitbit, one per food

        Raises:
            ExternalApiError: On the first create or log call Fitbit rejects
        """
        meal_type_id = MEAL_TYPE_IDS.get(request.meal_type or "", DEFAULT_MEAL_TYPE_ID)
        return [
            self._log_food(access_token, external_id, request, food, meal_type_id)
            for food in request.foods
        ]

    def _log_food(
        self,
        access_token: str,
        external_id: str,
        request: NutritionLogRequest,
        food: FoodItem,
        meal_type_id: int,
    ) -> Dict[str, Any]:
        unit_id = resolve_unit_id(food.unit)

        created = self._post(
            f"/user/{external_id}/foods.json",
            access_token,
            self.create_food_params(food, unit_id),
        )
        if not created.ok:
            message = provider_error_message(created)
            raise ExternalApiError(
                f'Failed to create food "{food.food_name}": {message}',
                operation="create_food",
                external_id=external_id,
                http_status=created.status_code,
            )
        try:
            food_id = created.json()["food"]["foodId"]
        except (ValueError, KeyError, TypeError) as e:
            raise ExternalApiError(
                f'Fitbit create food "{food.food_name}" returned an unexpected body',
                operation="create_food",
                external_id=external_id,
                cause=e,
            )

        log_params = {
            "foodId": food_id,
            "mealTypeId": meal_type_id,
            "unitId": unit_id,
            "amount": food.amount,
            "date": request.log_date,
        }
        if request.log_time:
            log_params["time"] = request.log_time

        logged = self._post(f"/user/{external_id}/foods/log.json", access_token, log_params)
        if not logged.ok:
            message = provider_error_message(logged)
            raise ExternalApiError(
                f'Failed to log food "{food.food_name}": {message}',
                operation="log_food",
                external_id=external_id,
                http_status=logged.status_code,
            )

        self.logger.info("Logged food", extra={"food_name": food.food_name, "external_id": external_id})
        return logged.json()

    @staticmethod
    def create_food_params(food: FoodItem, unit_id: int) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "name": food.food_name,
            "defaultFoodMeasurementUnitId": unit_id,
            "defaultServingSize": food.amount,
            "calories": round(food.calories or 0),
            "formType": food.form_type or "DRY",
            "description": food.description or f"Logged via Gemini: {food.food_name}",
        }
        for field, param in NUTRIENT_PARAMS.items():
            value = food.nutrient(field)
            if value is not None:
                params[param] = value
        return params

    def _post(self, path: str, access_token: str, form: Dict[str, Any]) -> requests.Response:
        return self.session.post(
            f"{self.api_base_url}{path}",
            data=form,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/x-www-form-urlencoded",
            },
            timeout=self.timeout,
        )
