"""
Magic Movers Backend — Schema and Configuration Tests
=======================================================

What:  Request model validation, camelCase aliases, the field error
       formatter and runtime settings checks.
"""

import pytest
from pydantic import ValidationError

from app.config import Settings
from app.exceptions import ValidationError as AppValidationError
from app.schemas.common import PaginationParams, field_errors
from app.schemas.item import ItemCreate, ItemUpdate
from app.schemas.mover import LoadItemsRequest, MoverCreate, MoverUpdate


class TestMoverSchemas:

    def test_create_accepts_camel_case(self):
        payload = MoverCreate.model_validate({"name": " Gandalf ", "weightLimit": 10, "energy": 5})

        assert payload.name == "Gandalf"
        assert payload.weight_limit == 10

    @pytest.mark.parametrize("weight_limit", [0, -1, "10", 2.5])
    def test_create_rejects_bad_weight_limit(self, weight_limit):
        with pytest.raises(ValidationError):
            MoverCreate.model_validate({"name": "G", "weightLimit": weight_limit, "energy": 1})

    def test_create_rejects_quest_state(self):
        with pytest.raises(ValidationError):
            MoverCreate.model_validate(
                {"name": "G", "weightLimit": 1, "energy": 1, "questState": "done"}
            )

    def test_update_requires_a_field(self):
        with pytest.raises(ValidationError):
            MoverUpdate.model_validate({})

    def test_update_rejects_missions_completed(self):
        with pytest.raises(ValidationError):
            MoverUpdate.model_validate({"missionsCompleted": 4})

    @pytest.mark.parametrize(
        "item_ids",
        [[], [1, 1], [0], [-3], ["1"], [1.5]],
    )
    def test_load_request_rejects(self, item_ids):
        with pytest.raises(ValidationError):
            LoadItemsRequest.model_validate({"itemIds": item_ids})

    def test_load_request_accepts_unique_positive_ids(self):
        payload = LoadItemsRequest.model_validate({"itemIds": [3, 1, 2]})

        assert payload.item_ids == [3, 1, 2]


class TestItemSchemas:

    def test_create_item(self):
        payload = ItemCreate.model_validate({"name": "Rope", "weight": 2})

        assert payload.weight == 2

    def test_create_item_rejects_zero_weight(self):
        with pytest.raises(ValidationError):
            ItemCreate.model_validate({"name": "Rope", "weight": 0})

    def test_update_item_requires_a_field(self):
        with pytest.raises(ValidationError):
            ItemUpdate.model_validate({})


class TestFieldErrors:

    def test_strips_request_location(self):
        errors = [
            {"loc": ("body", "itemIds", 1), "msg": "Input should be a valid integer"},
            {"loc": ("query", "limit"), "msg": "Input should be greater than or equal to 1"},
        ]

        assert field_errors(errors) == [
            {"field": "itemIds.1", "message": "Input should be a valid integer"},
            {"field": "limit", "message": "Input should be greater than or equal to 1"},
        ]

    def test_whole_body_error(self):
        assert field_errors([{"loc": ("body",), "msg": "Field required"}]) == [
            {"field": "body", "message": "Field required"},
        ]

    def test_pydantic_errors(self):
        with pytest.raises(ValidationError) as exc_info:
            ItemCreate.model_validate({"name": "Rope"})

        assert field_errors(exc_info.value.errors()) == [
            {"field": "weight", "message": "Field required"},
        ]


class TestPaginationParams:

    def test_order_is_case_insensitive(self):
        page = PaginationParams(limit=5, order="ASC")

        assert page.order == "asc"
        assert page.descending is False

    def test_invalid_order(self):
        with pytest.raises(ValidationError):
            PaginationParams(limit=5, order="sideways")


class TestSettings:

    def test_sync_driver_rejected(self):
        settings = Settings(database_url="postgresql://u:p@localhost/db")

        with pytest.raises(ValueError, match="async driver"):
            settings.validate_runtime()

    def test_page_size_consistency(self):
        settings = Settings(
            database_url="sqlite+aiosqlite:///x.db",
            default_page_size=50,
            max_page_size=20,
        )

        with pytest.raises(ValueError, match="DEFAULT_PAGE_SIZE"):
            settings.validate_runtime()

    def test_log_level_normalized(self):
        assert Settings(log_level="debug").log_level == "DEBUG"


class TestValidationErrorDetails:

    def test_field_errors_become_details(self):
        errors = [{"field": "itemIds.0", "message": "Input should be greater than 0"}]

        error = AppValidationError("Request validation failed", errors=errors)

        assert error.status_code == 400
        assert error.code == "ValidationError"
        assert error.context == {"errors": errors}

    def test_no_errors_no_details(self):
        assert AppValidationError("Bad input").context == {}
