"""
Tests for food-logging request validation.
"""

import pytest

from fitbit_token_bridge.exceptions import ErrorCode, ValidationError
from fitbit_token_bridge.schemas.nutrition_schema import food_log_payload, parse_nutrition_request


def payload(**overrides):
    body = {
        "meal_type": "Dinner",
        "log_date": "2024-05-01",
        "log_time": "19:00",
        "foods": [{"foodName": "Salmon", "amount": 120, "unit": "g", "calories": 250}],
    }
    body.update(overrides)
    return body


class TestParseNutritionRequest:
    """Test payload validation."""

    def test_valid_payload(self):
        request = parse_nutrition_request(payload())

        assert request.meal_type == "Dinner"
        assert request.log_date == "2024-05-01"
        assert request.foods[0].food_name == "Salmon"
        assert request.foods[0].amount == 120

    def test_nutrients_kept_as_extras(self):
        request = parse_nutrition_request(
            payload(foods=[{"foodName": "Egg", "amount": 1, "unit": "serving", "protein_g": 6.3}])
        )
        assert request.foods[0].nutrient("protein_g") == 6.3
        assert request.foods[0].nutrient("zinc_mg") is None

    @pytest.mark.parametrize("foods", [None, [], "rice"])
    def test_foods_missing_or_empty(self, foods):
        body = payload(foods=foods)
        with pytest.raises(ValidationError) as exc_info:
            parse_nutrition_request(body)
        assert exc_info.value.message == 'Invalid input: "foods" array is missing or empty.'
        assert exc_info.value.status_code == 400

    def test_non_object_body(self):
        with pytest.raises(ValidationError):
            parse_nutrition_request(["not", "an", "object"])

    def test_food_missing_field_named(self):
        body = payload(foods=[{"foodName": "Tofu", "unit": "g"}])
        with pytest.raises(ValidationError) as exc_info:
            parse_nutrition_request(body)
        assert exc_info.value.message == "Missing required field for food log: Tofu."

    def test_food_missing_name(self):
        body = payload(foods=[{"amount": 1, "unit": "g"}])
        with pytest.raises(ValidationError) as exc_info:
            parse_nutrition_request(body)
        assert exc_info.value.message == "Missing required field for food log: Unknown Food."

    def test_missing_log_date(self):
        body = payload()
        del body["log_date"]
        with pytest.raises(ValidationError) as exc_info:
            parse_nutrition_request(body)
        assert exc_info.value.error_code == ErrorCode.INVALID_FORMAT
        assert exc_info.value.context["field"] == "log_date"


class TestFoodLogPayload:
    """Test echoing the request back."""

    def test_uses_client_field_names(self):
        echoed = food_log_payload(parse_nutrition_request(payload()))

        assert echoed["log_date"] == "2024-05-01"
        assert echoed["foods"][0]["foodName"] == "Salmon"
        assert "formType" not in echoed["foods"][0]
