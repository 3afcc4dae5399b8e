import math
import sqlite3

import pytest

from errors import NotFoundError, ValidationError
from tests.helpers import make_category, make_transaction


@pytest.fixture
def food(services):
    """Store the Food & Dining category with two subcategories."""
    return services.categories.create(
        make_category(subs=[("Restaurants & Cafes", "🍴"), ("Groceries", "")])
    )


class TestTransactionService:
    """Tests for TransactionService."""

    def test_create_transaction(self, services, food):
        """Test creating a single transaction assigns id and timestamp."""
        created = services.transactions.create(
            make_transaction(amount=120, sub_id="restaurants_cafes", note="Lunch")
        )

        assert created.id
        assert created.created_at
        assert created.amount == 120.0
        assert created.note == "Lunch"

        found = services.transactions.find(created.id)
        assert found == created

    def test_create_transaction_keeps_supplied_id(self, services, food):
        """Test that a caller-supplied id is used."""
        created = services.transactions.create(make_transaction(id="tx-1"))

        assert created.id == "tx-1"
        assert services.transactions.find("tx-1") is not None

    def test_create_duplicate_id_raises(self, services, food):
        """Test that inserting an existing id is rejected."""
        services.transactions.create(make_transaction(id="tx-1"))

        with pytest.raises(ValidationError, match="id") as excinfo:
            services.transactions.create(make_transaction(id="tx-1", amount=5))

        assert isinstance(excinfo.value.__cause__, sqlite3.IntegrityError)

        assert services.transactions.find("tx-1").amount == 120

    def test_create_unknown_category_raises(self, services, food):
        """Test that cat_id must reference an existing category."""
        with pytest.raises(ValidationError, match="cat_id"):
            services.transactions.create(make_transaction(cat_id="nope"))

        assert services.transactions.count() == 0

    def test_create_missing_category_raises(self, services, food):
        """Test that a transaction without cat_id is rejected."""
        with pytest.raises(ValidationError, match="cat_id"):
            services.transactions.create(make_transaction(cat_id=None))

    @pytest.mark.parametrize("amount", [0, -5, math.inf, math.nan, "12", None, True])
    def test_create_invalid_amount_raises(self, services, food, amount):
        """Test that amount must be a finite number greater than zero."""
        with pytest.raises(ValidationError, match="amount"):
            services.transactions.create(make_transaction(amount=amount))

    @pytest.mark.parametrize("value", [None, "", "   ", "yesterday", "2025-13-45"])
    def test_create_invalid_date_raises(self, services, food, value):
        """Test that date must be present and ISO formatted."""
        with pytest.raises(ValidationError, match="date"):
            services.transactions.create(make_transaction(date=value))

    @pytest.mark.parametrize(
        "value,stored",
        [
            ("20251228", "2025-12-28"),
            ("2025-W52-7", "2025-12-28"),
            ("  2025-12-28 ", "2025-12-28"),
            ("2025-12-28T10:30:00+05:30", "2025-12-28T10:30:00+05:30"),
        ],
    )
    def test_create_normalizes_date(self, services, food, value, stored):
        """Test that any accepted ISO form is stored in extended form."""
        created = services.transactions.create(make_transaction(date=value))

        assert created.date == stored
        assert services.transactions.find(created.id).date == stored

    def test_basic_and_week_dates_are_found_by_date_queries(self, services, food):
        """Test that compact ISO forms stay visible to month and range scans."""
        services.transactions.create(make_transaction(date="20251228"))
        services.transactions.create(make_transaction(date="2025-W52"))

        assert len(services.transactions.find_by_month(2025, 12)) == 2
        assert len(services.transactions.find_by_date_range("2025-12-01", "2025-12-31")) == 2

    def test_update_normalizes_date(self, services, food):
        created = services.transactions.create(make_transaction())

        updated = services.transactions.update(created.id, date="20251102")

        assert updated.date == "2025-11-02"
        assert [t.id for t in services.transactions.find_by_month(2025, 11)] == [created.id]

    def test_update_merges_fields(self, services, food):
        """Test that update changes only the given fields."""
        created = services.transactions.create(make_transaction(note="Lunch"))

        updated = services.transactions.update(created.id, amount=150)

        assert updated.amount == 150
        assert updated.note == "Lunch"
        assert updated.date == created.date
        assert services.transactions.find(created.id).amount == 150

    def test_update_revalidates_touched_fields(self, services, food):
        """Test that a touched field is validated and nothing is written on failure."""
        created = services.transactions.create(make_transaction())

        with pytest.raises(ValidationError, match="amount"):
            services.transactions.update(created.id, amount=-1)
        with pytest.raises(ValidationError, match="cat_id"):
            services.transactions.update(created.id, cat_id="missing")

        assert services.transactions.find(created.id) == created

    def test_update_moves_category(self, services, food):
        """Test moving a transaction to another category."""
        services.categories.create(make_category("Shopping", "🛍️"))
        created = services.transactions.create(make_transaction(sub_id="groceries"))

        updated = services.transactions.update(created.id, cat_id="shopping", sub_id=None)

        assert updated.cat_id == "shopping"
        assert updated.sub_id is None

    def test_update_unsupported_field_raises(self, services, food):
        """Test that unknown fields are refused."""
        created = services.transactions.create(make_transaction())

        with pytest.raises(ValueError, match="Unsupported"):
            services.transactions.update(created.id, created_at="x")

    def test_update_nonexistent_raises(self, services, food):
        """Test that updating a missing transaction raises NotFoundError."""
        with pytest.raises(NotFoundError):
            services.transactions.update("missing", amount=5)

    def test_delete_transaction(self, services, food):
        """Test deleting a transaction returns the removed record."""
        created = services.transactions.create(make_transaction())

        removed = services.transactions.delete(created.id)

        assert removed.id == created.id
        assert services.transactions.find(created.id) is None

    def test_delete_nonexistent_raises(self, services, food):
        """Test deleting a missing transaction raises NotFoundError."""
        with pytest.raises(NotFoundError, match="missing"):
            services.transactions.delete("missing")


class TestTransactionQueries:
    """Tests for the read-only query surface."""

    @pytest.fixture(autouse=True)
    def populated(self, services, food):
        services.categories.create(make_category("Shopping", "🛍️"))
        for amount, cat_id, date, note in [
            (120, "food_dining", "2025-12-28", "Lunch"),
            (780, "shopping", "2025-12-25", "New earphones"),
            (90, "food_dining", "2025-11-30", "Starbucks"),
            (45, "food_dining", "2026-01-02", ""),
        ]:
            services.transactions.create(
                make_transaction(amount=amount, cat_id=cat_id, date=date, note=note)
            )

    def test_find_all(self, services):
        assert len(services.transactions.find_all()) == 4

    def test_find_by_month(self, services):
        """Test the YYYY-MM prefix scan, newest first."""
        found = services.transactions.find_by_month(2025, 12)

        assert [t.date for t in found] == ["2025-12-28", "2025-12-25"]

    def test_find_by_month_empty(self, services):
        assert services.transactions.find_by_month(2024, 1) == []

    def test_find_by_date_range_inclusive(self, services):
        """Test that both range bounds are inclusive."""
        found = services.transactions.find_by_date_range("2025-11-30", "2025-12-25")

        assert sorted(t.amount for t in found) == [90, 780]

    def test_find_by_category(self, services):
        found = services.transactions.find_by_category("food_dining")

        assert [t.date for t in found] == ["2026-01-02", "2025-12-28", "2025-11-30"]

    def test_search_note_case_insensitive(self, services):
        found = services.transactions.search("STARBUCKS")

        assert [t.amount for t in found] == [90]

    def test_search_amount(self, services):
        found = services.transactions.search("780")

        assert [t.note for t in found] == ["New earphones"]

    def test_search_date(self, services):
        found = services.transactions.search("2025-11")

        assert [t.note for t in found] == ["Starbucks"]

    def test_search_empty_query(self, services):
        assert services.transactions.search("  ") == []

    def test_search_wildcards_are_literal(self, services):
        assert services.transactions.search("%") == []

    def test_queries_do_not_write(self, services):
        """Test that reads leave the store unchanged."""
        before = services.transactions.find_all()

        services.transactions.search("a")
        services.transactions.find_by_month(2025, 12)
        services.transactions.find_by_date_range("2000-01-01", "2100-01-01")

        assert services.transactions.find_all() == before
