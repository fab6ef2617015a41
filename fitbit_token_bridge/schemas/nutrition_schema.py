"""
Pydantic schemas for food-logging requests posted to the webhook.

Field names follow the JSON the client sends (camelCase food fields,
snake_case request fields with unit suffixes on nutrients).
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ErrorCode, ValidationError


class FoodItem(BaseModel):
    """One food to create and log; unknown keys are kept for the nutrient mapping."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    food_name: str = Field(..., alias="foodName")
    amount: float
    unit: str
    calories: Optional[float] = None
    form_type: Optional[str] = Field(None, alias="formType")
    description: Optional[str] = None

    @field_validator("food_name", "unit")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must be a non-empty string")
        return v

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: float) -> float:
        if not v:
            raise ValueError("must be non-zero")
        return v

    def nutrient(self, name: str) -> Any:
        """Value of an optional nutrient field such as 'protein_g', or None."""
        return (self.model_extra or {}).get(name)


class NutritionLogRequest(BaseModel):
    """Body of a food-logging POST."""

    model_config = ConfigDict(extra="ignore")

    meal_type: Optional[str] = None
    log_date: str
    log_time: Optional[str] = None
    foods: List[FoodItem]

    @field_validator("foods")
    @classmethod
    def validate_foods(cls, v: List[FoodItem]) -> List[FoodItem]:
        if not v:
            raise ValueError('"foods" array is missing or empty')
        return v


def parse_nutrition_request(payload: Any) -> NutritionLogRequest:
    """
    Validate a decoded JSON body.

    Raises:
        ValidationError: If the payload is not a valid food-logging request
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("foods"), list) or not payload["foods"]:
        raise ValidationError(
            'Invalid input: "foods" array is missing or empty.',
            field="foods",
            error_code=ErrorCode.MISSING_REQUIRED,
        )

    for food in payload["foods"]:
        if not isinstance(food, dict) or not all(food.get(k) for k in ("foodName", "amount", "unit")):
            name = food.get("foodName") if isinstance(food, dict) else None
            raise ValidationError(
                f"Missing required field for food log: {name or 'Unknown Food'}.",
                field="foods",
                error_code=ErrorCode.MISSING_REQUIRED,
            )

    try:
        return NutritionLogRequest.model_validate(payload)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationError(
            f"Invalid food log request: {field}: {first.get('msg')}",
            field=field,
            error_code=ErrorCode.INVALID_FORMAT,
            cause=e,
        )


def food_log_payload(request: NutritionLogRequest) -> Dict[str, Any]:
    """The request as the client sent it, for echoing back in responses."""
    return request.model_dump(by_alias=True, exclude_none=True)
