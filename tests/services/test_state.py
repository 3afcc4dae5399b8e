import dataclasses

import pytest

from errors import ConflictError, ValidationError
from events import DATA_IMPORTED, STATE_CHANGED
from models.category import Category, Subcategory
from models.snapshot import Snapshot
from services.base import Services
from services.state import (
    DEFAULT_ICON,
    UNCATEGORIZED,
    build_lookup,
    compute_mini_chart,
    compute_top_category,
    enrich,
    group_by_date,
    hash_pin,
)
from tests.helpers import make_category, make_transaction


@pytest.fixture
def food(services):
    return services.state.add_category(
        make_category(subs=[("Restaurants & Cafes", "🍴"), ("Groceries", "")])
    )


@pytest.fixture
def published(services):
    """Collect every snapshot announced on state-changed."""
    received = []
    services.events.on(STATE_CHANGED, received.append)
    return received


class TestEnrich:
    """Tests for the icon and name fallbacks used when enriching."""

    @pytest.fixture
    def lookup(self):
        return build_lookup(
            [
                Category(
                    id="food_dining",
                    name="Food & Dining",
                    emoji="🍽️",
                    subcategories=[
                        Subcategory(id="restaurants_cafes", name="Restaurants & Cafes", emoji="🍴"),
                        Subcategory(id="groceries", name="Groceries"),
                        Subcategory(id="bakery", name="Bakery", emoji="🥐", image="bakery.png"),
                    ],
                ),
                Category(id="travel", name="Travel", image="plane.png", emoji="✈️"),
                Category(id="misc", name="Misc"),
            ]
        )

    def test_subcategory_image_wins(self, lookup):
        enriched = enrich(make_transaction(sub_id="bakery"), lookup)

        assert enriched.icon == "bakery.png"

    def test_subcategory_emoji(self, lookup):
        enriched = enrich(make_transaction(sub_id="restaurants_cafes"), lookup)

        assert enriched.icon == "🍴"
        assert enriched.cat_name == "Food & Dining"
        assert enriched.sub_name == "Restaurants & Cafes"

    def test_falls_back_to_category_emoji(self, lookup):
        """Test that a subcategory without icons uses the category emoji."""
        enriched = enrich(make_transaction(sub_id="groceries"), lookup)

        assert enriched.icon == "🍽️"

    def test_category_image_before_emoji(self, lookup):
        enriched = enrich(make_transaction(cat_id="travel"), lookup)

        assert enriched.icon == "plane.png"

    def test_unknown_subcategory_uses_category(self, lookup):
        enriched = enrich(make_transaction(sub_id="deleted"), lookup)

        assert enriched.icon == "🍽️"
        assert enriched.sub_name == ""

    def test_category_without_icons_uses_default(self, lookup):
        enriched = enrich(make_transaction(cat_id="misc"), lookup)

        assert enriched.icon == DEFAULT_ICON

    def test_missing_category_is_uncategorized(self, lookup):
        enriched = enrich(make_transaction(cat_id="gone"), lookup)

        assert enriched.cat_name == UNCATEGORIZED
        assert enriched.icon == DEFAULT_ICON

    def test_enriched_keeps_raw_fields(self, lookup):
        raw = make_transaction(id="t1", note="Lunch", sub_id="restaurants_cafes")

        enriched = enrich(raw, lookup)

        assert enriched.to_transaction() == raw
        assert enriched.to_dict()["catName"] == "Food & Dining"


class TestStateCache:
    """Tests for StateCache."""

    def test_initial_snapshot_is_empty(self, services):
        snapshot = services.state.get_snapshot()

        assert snapshot.transactions == []
        assert snapshot.categories == []
        assert snapshot.pin_hash is None

    def test_snapshot_is_immutable(self, services):
        with pytest.raises(dataclasses.FrozenInstanceError):
            services.state.snapshot.pin_hash = "x"

    def test_add_transaction_publishes_enriched_view(self, services, food, published):
        created = services.state.add_transaction(
            make_transaction(sub_id="restaurants_cafes", note="Lunch")
        )

        assert created.icon == "🍴"
        assert len(published) == 1
        snapshot = published[0]
        assert isinstance(snapshot, Snapshot)
        assert [t.id for t in snapshot.transactions] == [created.id]
        assert snapshot.transactions[0].cat_name == "Food & Dining"

    def test_published_snapshot_is_a_copy(self, services, food, published):
        services.state.add_transaction(make_transaction())

        published[0].transactions.clear()

        assert len(services.state.snapshot.transactions) == 1

    def test_failed_mutation_keeps_snapshot(self, services, food, published):
        before = services.state.snapshot

        with pytest.raises(ValidationError):
            services.state.add_transaction(make_transaction(amount=-1))

        assert services.state.snapshot is before
        assert published == []

    def test_update_and_delete_transaction(self, services, food):
        created = services.state.add_transaction(make_transaction(amount=120))

        updated = services.state.update_transaction(created.id, amount=150)
        assert updated.amount == 150
        assert services.state.snapshot.transactions[0].amount == 150

        removed = services.state.delete_transaction(created.id)
        assert removed.id == created.id
        assert services.state.snapshot.transactions == []

    def test_refresh_transactions_sees_direct_writes(self, services, food):
        """Test that a store write becomes visible after a refresh."""
        services.transactions.create(make_transaction())
        assert services.state.snapshot.transactions == []

        services.state.refresh_transactions()

        assert len(services.state.snapshot.transactions) == 1

    def test_category_edit_re_enriches_transactions(self, services, food):
        """Test that renaming a category updates cached display fields."""
        services.state.add_transaction(make_transaction(sub_id="groceries"))

        services.state.update_category("food_dining", name="Meals", emoji="🍲")

        enriched = services.state.snapshot.transactions[0]
        assert enriched.cat_name == "Meals"
        assert enriched.icon == "🍲"

    def test_delete_category_conflict_keeps_state(self, services, food, published):
        services.state.add_transaction(make_transaction())
        published.clear()

        with pytest.raises(ConflictError):
            services.state.delete_category("food_dining")

        assert len(services.state.snapshot.categories) == 1
        assert published == []

    def test_delete_category_force_cascades(self, services, food, published):
        services.state.add_category(make_category("Shopping", "🛍️"))
        for amount in (120, 45, 780):
            services.state.add_transaction(make_transaction(amount=amount))
        services.state.add_transaction(make_transaction(amount=99, cat_id="shopping"))
        published.clear()

        removed = services.state.delete_category("food_dining", force=True)

        assert removed == 3
        snapshot = services.state.snapshot
        assert [c.id for c in snapshot.categories] == ["shopping"]
        assert [t.amount for t in snapshot.transactions] == [99]
        assert len(published) == 1

    def test_set_pin_hash(self, services, published):
        services.state.set_pin_hash("abc123")

        assert services.state.snapshot.pin_hash == "abc123"
        assert services.state.snapshot.settings["pinHash"] == "abc123"
        assert published[0].pin_hash == "abc123"

    def test_set_pin_stores_hash(self, services):
        services.state.set_pin("1234")

        assert services.state.snapshot.pin_hash == hash_pin("1234")
        assert services.settings.get("pinHash") != "1234"

    @pytest.mark.parametrize("pin", ["123", "12345", "abcd", "", None])
    def test_set_pin_rejects_malformed(self, services, pin):
        with pytest.raises(ValidationError, match="pin"):
            services.state.set_pin(pin)

        assert services.state.snapshot.pin_hash is None

    def test_verify_pin(self, services):
        assert services.state.verify_pin("1234") is False

        services.state.set_pin("1234")

        assert services.state.verify_pin("1234") is True
        assert services.state.verify_pin("4321") is False
        assert services.state.verify_pin(None) is False

    def test_import_backup_reloads_and_announces(self, services, food):
        imported = []
        services.events.on(DATA_IMPORTED, imported.append)
        payload = {
            "data": {
                "transactions": [
                    {"id": "t1", "date": "2025-12-01", "amount": 10, "catId": "food_dining"}
                ],
                "settings": [{"key": "theme", "value": "aqua"}],
            }
        }

        summary = services.state.import_backup(payload)

        assert summary.transactions == 1
        assert imported[0].transactions == 1
        assert [t.id for t in services.state.snapshot.transactions] == ["t1"]
        assert services.state.snapshot.settings["theme"] == "aqua"

    def test_transactions_for_month_newest_first(self, services, food):
        for day in ("2025-12-03", "2025-12-28", "2025-11-30", "2025-12-15"):
            services.state.add_transaction(make_transaction(date=day))

        found = services.state.transactions_for_month(2025, 12)

        assert [t.date for t in found] == ["2025-12-28", "2025-12-15", "2025-12-03"]

    def test_independent_stores(self, services, food, test_config, tmp_path):
        """Test that two containers in one process do not share state."""
        other_config = dataclasses.replace(test_config, db_data_dir=tmp_path / "second")
        other = Services(other_config)
        try:
            other.open()
            other_events = []
            other.events.on(STATE_CHANGED, other_events.append)

            services.state.add_transaction(make_transaction())

            assert other.state.snapshot.transactions == []
            assert other_events == []
        finally:
            other.close()


class TestGroupByDate:
    """Tests for group_by_date."""

    def test_groups_newest_day_first(self):
        lookup = build_lookup([Category(id="food_dining", name="Food & Dining")])
        transactions = [
            enrich(make_transaction(amount=amount, date=day), lookup)
            for amount, day in [(120, "2025-12-27"), (45, "2025-12-28"), (5, "2025-12-27")]
        ]

        groups = group_by_date(transactions)

        assert [g["date"] for g in groups] == ["2025-12-28", "2025-12-27"]
        assert groups[1]["total"] == 125
        assert len(groups[1]["items"]) == 2

    def test_empty(self):
        assert group_by_date([]) == []


class TestHashPin:
    """Tests for hash_pin."""

    def test_hex_sha256(self):
        assert hash_pin("1234") == (
            "03ac674216f3e15c761ee1a5e255f067953623c8b388b4459e13f978d7c846f4"
        )


class TestHomeSelectors:
    """Tests for compute_top_category and compute_mini_chart."""

    @pytest.fixture
    def lookup(self):
        return build_lookup(
            [
                Category(id="food_dining", name="Food & Dining"),
                Category(id="shopping", name="Shopping"),
            ]
        )

    def test_top_category_by_name(self, lookup):
        transactions = [
            enrich(make_transaction(amount=amount, cat_id=cat_id), lookup)
            for amount, cat_id in [(120, "food_dining"), (780, "shopping"), (45, "food_dining")]
        ]

        assert compute_top_category(transactions) == {"name": "Shopping", "value": 780}

    def test_top_category_groups_missing_as_uncategorized(self, lookup):
        transactions = [
            enrich(make_transaction(amount=10, cat_id="gone"), lookup),
            enrich(make_transaction(amount=5, cat_id="food_dining"), lookup),
        ]

        assert compute_top_category(transactions) == {"name": UNCATEGORIZED, "value": 10}

    def test_top_category_tie_keeps_first(self, lookup):
        transactions = [
            enrich(make_transaction(amount=50, cat_id="shopping"), lookup),
            enrich(make_transaction(amount=50, cat_id="food_dining"), lookup),
        ]

        assert compute_top_category(transactions)["name"] == "Shopping"

    def test_top_category_empty(self):
        assert compute_top_category([]) is None

    def test_mini_chart_per_day_oldest_first(self, lookup):
        transactions = [
            enrich(make_transaction(amount=amount, date=day), lookup)
            for amount, day in [(45, "2025-12-28"), (120, "2025-12-28"), (5, "2025-12-27"), (7, "2025-12-20")]
        ]

        assert compute_mini_chart(transactions) == [7, 5, 165]

    def test_mini_chart_caps_points(self, lookup):
        transactions = [
            enrich(make_transaction(amount=day, date=f"2025-12-{day:02d}"), lookup)
            for day in range(28, 0, -1)
        ]

        chart = compute_mini_chart(transactions, max_points=5)

        assert chart == [24, 25, 26, 27, 28]

    def test_mini_chart_empty(self):
        assert compute_mini_chart([]) == []
