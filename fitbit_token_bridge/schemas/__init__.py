"""Pydantic schemas for credential records and webhook payloads."""

from .nutrition_schema import FoodItem, NutritionLogRequest, food_log_payload, parse_nutrition_request
from .token_record_schema import TokenFields, TokenRecord, TokenResponse

__all__ = [
    "FoodItem",
    "NutritionLogRequest",
    "food_log_payload",
    "parse_nutrition_request",
    "TokenFields",
    "TokenRecord",
    "TokenResponse",
]
