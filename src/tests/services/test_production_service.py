"""
Tests for committing recipe sessions and querying production batches.

Verifies that:
1. The Chips scenario prices, commits and deducts stock end to end
2. Recipe, line items, stock deductions and batch commit together or not at all
3. Stock is checked against live data at commit time, never a stale preview
4. Concurrent commits racing for the same ingredient never drive stock negative
5. Batch queries and the stock summary reflect committed batches
"""

import logging
import threading
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from src.models import BatchStatus, Ingredient, ProductionBatch, Recipe, RecipeIngredient
from src.models.enums import ConversionStatus, SessionState
from src.services import catalog_service, production_service
from src.services.cost_calculator import CostCalculator
from src.services.database import session_scope
from src.services.dto import PaginationParams
from src.services.exceptions import (
    IngredientNotFound,
    InsufficientStock,
    PersistenceFailure,
    ProductionBatchNotFound,
    RecipeNotFound,
)
from src.services.production_service import (
    ProductionGateway,
    decrement_stock,
    get_batch,
    get_batch_summary,
    get_recipe,
    list_batches,
)
from src.services.recipe_session import RecipeSession


# =============================================================================
# Helpers
# =============================================================================


def _clock(*args):
    moment = datetime(*args)
    return lambda: moment


def _stock(ingredient_id):
    with session_scope() as session:
        return session.get(Ingredient, ingredient_id).current_stock


def _count(model):
    with session_scope() as session:
        return session.query(model).count()


def _chips_session(catalog, clock=None, potato_kg="2", oil_ml="500", produced="40"):
    """Fill a Chips session: Potato in KG, then Oil in ML with the produced quantity."""
    session = RecipeSession(
        calculator=CostCalculator(strict=False),
        clock=clock or _clock(2025, 12, 28, 20, 57, 40),
    )
    session.select_dish(catalog["dish_id"])
    session.set_ingredient_count(2)
    session.add_line_item(catalog["potato_id"], potato_kg, "KG")
    session.add_line_item(catalog["oil_id"], oil_ml, "ML", produced_quantity=produced)
    return session


def _potato_only_session(catalog, dish_id, kg, clock):
    session = RecipeSession(calculator=CostCalculator(strict=False), clock=clock)
    session.select_dish(dish_id)
    session.set_ingredient_count(1)
    session.add_line_item(catalog["potato_id"], kg, "KG", produced_quantity=10)
    return session


# =============================================================================
# End-to-end
# =============================================================================


class TestChipsScenario:
    def test_line_item_previews(self, chips_catalog):
        session = _chips_session(chips_catalog)

        potato, oil = session.line_items
        assert potato.cost == Decimal("160")
        assert potato.remaining_stock == Decimal("48")
        assert oil.base_quantity == Decimal("0.5")
        assert oil.cost == Decimal("150")
        assert oil.remaining_stock == Decimal("9.5")
        assert oil.cost_per_dish == Decimal("7.75")
        assert session.state == SessionState.FINALIZABLE

    def test_finalize_commits_batch_and_deducts_stock(self, chips_catalog):
        session = _chips_session(chips_catalog)

        batch = session.finalize()

        assert session.state == SessionState.FINALIZED
        assert batch["batch_number"] == f"BATCH-20251228-205740-{chips_catalog['dish_id']}"
        assert batch["dish_name"] == "Chips"
        assert batch["qty_produced"] == Decimal("40")
        assert batch["qty_remaining"] == Decimal("40")
        assert batch["qty_sold"] == Decimal("0")
        assert batch["total_production_cost"] == Decimal("310")
        assert batch["cost_per_unit"] == Decimal("7.75")
        assert batch["selling_price"] == Decimal("15")
        assert batch["status"] == BatchStatus.IN_STOCK.value
        assert batch["production_date"] == date(2025, 12, 28)

        assert _stock(chips_catalog["potato_id"]) == Decimal("48")
        assert _stock(chips_catalog["oil_id"]) == Decimal("9.5")

    def test_committed_recipe_and_line_items(self, chips_catalog):
        batch = _chips_session(chips_catalog).finalize()

        recipe = get_recipe(batch["recipe_id"])

        assert recipe["batch_number"] == batch["batch_number"]
        assert recipe["barcode"] == "6001234567890"
        assert recipe["status"] == "Completed"
        assert Decimal(recipe["total_cost"]) == Decimal("310")
        items = recipe["line_items"]
        assert [item["ingredient_name"] for item in items] == ["Potato", "Oil"]
        assert [item["position"] for item in items] == [1, 2]
        oil = items[1]
        assert oil["unit_measure"] == "L"
        assert oil["convert_unit"] == "ML"
        assert Decimal(oil["qty_issued"]) == Decimal("500")
        assert Decimal(oil["qty_in_base"]) == Decimal("0.5")
        assert Decimal(oil["remaining_qty"]) == Decimal("9.5")
        assert oil["conversion_status"] == ConversionStatus.CONVERTED.value

    def test_get_batch(self, chips_catalog):
        committed = _chips_session(chips_catalog).finalize()

        fetched = get_batch(committed["batch_number"])

        for key in ("batch_number", "dish_id", "recipe_id", "qty_produced", "cost_per_unit", "status"):
            assert fetched[key] == committed[key]
        assert fetched["created_at"] is not None

    def test_commit_is_logged(self, chips_catalog, caplog):
        with caplog.at_level(logging.INFO, logger="recipe_costing.services"):
            _chips_session(chips_catalog).finalize()

        records = [
            r for r in caplog.records if getattr(r, "operation", None) == "commit_production"
        ]
        assert len(records) == 1
        assert records[0].outcome == "success"
        assert Decimal(records[0].total_cost) == Decimal("310")


# =============================================================================
# Atomicity
# =============================================================================


class TestCommitAtomicity:
    def test_failure_after_stock_decrement_rolls_everything_back(self, chips_catalog, monkeypatch):
        def fail_batch_insert(*args, **kwargs):
            raise OperationalError("INSERT INTO production_batches", {}, Exception("disk I/O error"))

        monkeypatch.setattr(production_service, "save_production_batch", fail_batch_insert)
        session = _chips_session(chips_catalog)

        with pytest.raises(PersistenceFailure) as exc_info:
            session.finalize()

        assert isinstance(exc_info.value.original_error, OperationalError)
        assert session.state == SessionState.FINALIZABLE
        assert _stock(chips_catalog["potato_id"]) == Decimal("50")
        assert _stock(chips_catalog["oil_id"]) == Decimal("10")
        assert _count(Recipe) == 0
        assert _count(RecipeIngredient) == 0
        assert _count(ProductionBatch) == 0

    def test_insufficient_second_ingredient_restores_first(self, chips_catalog):
        session = _chips_session(chips_catalog)
        with session_scope() as db:
            db.get(Ingredient, chips_catalog["oil_id"]).current_stock = Decimal("0.25")

        with pytest.raises(InsufficientStock) as exc_info:
            session.finalize()

        assert exc_info.value.ingredient_name == "Oil"
        assert exc_info.value.required == Decimal("0.5")
        assert exc_info.value.available == Decimal("0.25")
        assert _stock(chips_catalog["potato_id"]) == Decimal("50")
        assert _stock(chips_catalog["oil_id"]) == Decimal("0.25")
        assert _count(Recipe) == 0
        assert _count(ProductionBatch) == 0

    def test_retry_after_restock_succeeds(self, chips_catalog):
        session = _chips_session(chips_catalog)
        with session_scope() as db:
            db.get(Ingredient, chips_catalog["oil_id"]).current_stock = Decimal("0.25")

        with pytest.raises(InsufficientStock):
            session.finalize()

        catalog_service.receive_stock(chips_catalog["oil_id"], 1, "L")
        batch = session.finalize()

        assert batch["qty_produced"] == Decimal("40")
        assert _stock(chips_catalog["oil_id"]) == Decimal("0.75")

    def test_repeated_ingredient_is_deducted_once_in_total(self, chips_catalog):
        session = RecipeSession(
            calculator=CostCalculator(strict=False), clock=_clock(2025, 12, 28, 9, 0, 0)
        )
        session.select_dish(chips_catalog["dish_id"])
        session.set_ingredient_count(2)
        session.add_line_item(chips_catalog["potato_id"], 30, "KG")
        session.add_line_item(chips_catalog["potato_id"], 30, "KG", produced_quantity=100)

        with pytest.raises(InsufficientStock) as exc_info:
            session.finalize()

        assert exc_info.value.required == Decimal("60")
        assert _stock(chips_catalog["potato_id"]) == Decimal("50")


# =============================================================================
# Stock Decrement
# =============================================================================


class TestDecrementStock:
    def test_decrement(self, chips_catalog):
        with session_scope() as session:
            decrement_stock(chips_catalog["potato_id"], Decimal("5"), session=session)
        assert _stock(chips_catalog["potato_id"]) == Decimal("45")

    def test_decrement_to_exactly_zero(self, chips_catalog):
        with session_scope() as session:
            decrement_stock(chips_catalog["potato_id"], Decimal("50"), session=session)
        assert _stock(chips_catalog["potato_id"]) == Decimal("0")

    def test_decrement_beyond_stock(self, chips_catalog):
        with pytest.raises(InsufficientStock) as exc_info:
            with session_scope() as session:
                decrement_stock(chips_catalog["potato_id"], Decimal("51"), session=session)

        assert exc_info.value.available == Decimal("50")
        assert exc_info.value.unit == "KG"
        assert _stock(chips_catalog["potato_id"]) == Decimal("50")

    def test_repeated_fractional_issues_use_up_stock_exactly(self, chips_catalog):
        salt = catalog_service.create_ingredient(
            {"code": "ING-SLT", "name": "Salt", "base_unit": "KG", "current_stock": "0.3"}
        )
        for second in range(3):
            session = RecipeSession(
                calculator=CostCalculator(strict=False), clock=_clock(2025, 12, 28, 9, 0, second)
            )
            session.select_dish(chips_catalog["dish_id"])
            session.set_ingredient_count(1)
            session.add_line_item(salt.id, 100, "G", produced_quantity=1)
            session.finalize()

        assert _stock(salt.id) == Decimal("0")
        with pytest.raises(InsufficientStock):
            with session_scope() as db:
                decrement_stock(salt.id, Decimal("0.001"), session=db)

    def test_received_fractions_can_be_issued_in_full(self, chips_catalog):
        salt = catalog_service.create_ingredient({"code": "ING-SLT", "name": "Salt"})
        for _ in range(3):
            catalog_service.receive_stock(salt.id, 100, "G")

        with session_scope() as db:
            decrement_stock(salt.id, Decimal("0.3"), session=db)

        assert _stock(salt.id) == Decimal("0")

    def test_decrement_unknown_ingredient(self, test_db):
        with pytest.raises(IngredientNotFound):
            with session_scope() as session:
                decrement_stock(999, Decimal("1"), session=session)


# =============================================================================
# Concurrency
# =============================================================================


class TestConcurrentCommits:
    def test_stale_preview_is_rechecked_at_commit(self, chips_catalog):
        """Two operators both see 50 KG of potato; only the first 30 KG commit fits."""
        mash = catalog_service.create_dish({"code": "DSH-MASH", "name": "Mash"})
        first = _potato_only_session(
            chips_catalog, chips_catalog["dish_id"], 30, _clock(2025, 12, 28, 9, 0, 0)
        )
        second = _potato_only_session(chips_catalog, mash.id, 30, _clock(2025, 12, 28, 9, 0, 1))
        assert first.line_items[0].remaining_stock == Decimal("20")
        assert second.line_items[0].remaining_stock == Decimal("20")

        first.finalize()
        with pytest.raises(InsufficientStock):
            second.finalize()

        assert second.state == SessionState.FINALIZABLE
        assert _stock(chips_catalog["potato_id"]) == Decimal("20")
        assert _count(ProductionBatch) == 1

    def test_threaded_commits_never_oversell(self, file_db, chips_catalog_file):
        catalog = chips_catalog_file
        mash = catalog_service.create_dish({"code": "DSH-MASH", "name": "Mash"})
        sessions = [
            _potato_only_session(catalog, catalog["dish_id"], 30, _clock(2025, 12, 28, 9, 0, 0)),
            _potato_only_session(catalog, mash.id, 30, _clock(2025, 12, 28, 9, 0, 1)),
        ]

        # Open both pooled connections up front so neither thread connects mid-commit
        connections = [file_db.connect() for _ in sessions]
        for connection in connections:
            connection.close()

        barrier = threading.Barrier(len(sessions))
        outcomes = []
        lock = threading.Lock()

        def finalize(session):
            barrier.wait()
            try:
                result = session.finalize()
            except Exception as e:
                with lock:
                    outcomes.append(e)
            else:
                with lock:
                    outcomes.append(result)

        threads = [threading.Thread(target=finalize, args=(s,)) for s in sessions]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        successes = [o for o in outcomes if isinstance(o, dict)]
        failures = [o for o in outcomes if isinstance(o, Exception)]
        assert len(successes) == 1
        assert len(failures) == 1
        assert isinstance(failures[0], InsufficientStock)
        assert _stock(catalog["potato_id"]) == Decimal("20")
        assert _count(ProductionBatch) == 1


# =============================================================================
# Batch Numbers
# =============================================================================


class TestBatchNumberCollision:
    def test_same_dish_same_second_gets_suffix(self, chips_catalog):
        first = _chips_session(chips_catalog).finalize()
        second = _chips_session(chips_catalog).finalize()

        assert second["batch_number"] == f"{first['batch_number']}-2"
        recipe = get_recipe(second["recipe_id"])
        assert recipe["batch_number"] == second["batch_number"]


# =============================================================================
# Queries
# =============================================================================


class TestBatchQueries:
    @pytest.fixture
    def two_batches(self, chips_catalog):
        first = _chips_session(chips_catalog, clock=_clock(2025, 12, 28, 9, 0, 0)).finalize()
        second = _chips_session(
            chips_catalog, clock=_clock(2025, 12, 28, 12, 0, 0), produced="20"
        ).finalize()
        return first, second

    def test_list_batches_newest_first(self, two_batches):
        first, second = two_batches
        numbers = [batch["batch_number"] for batch in list_batches()]
        assert numbers == [second["batch_number"], first["batch_number"]]

    def test_list_batches_filters(self, chips_catalog, two_batches):
        assert len(list_batches(dish_id=chips_catalog["dish_id"])) == 2
        assert list_batches(dish_id=chips_catalog["dish_id"] + 100) == []
        assert len(list_batches(status=BatchStatus.IN_STOCK.value)) == 2
        assert list_batches(status=BatchStatus.SOLD_OUT.value) == []

    def test_list_batches_paginated(self, two_batches):
        first, _ = two_batches
        page = list_batches(pagination=PaginationParams(page=2, per_page=1))
        assert [batch["batch_number"] for batch in page] == [first["batch_number"]]

    def test_pagination_bounds(self):
        with pytest.raises(ValueError):
            PaginationParams(page=0)
        with pytest.raises(ValueError):
            PaginationParams(per_page=1001)

    def test_get_batch_not_found(self, test_db):
        with pytest.raises(ProductionBatchNotFound):
            get_batch("BATCH-19990101-000000-1")

    def test_get_recipe_not_found(self, test_db):
        with pytest.raises(RecipeNotFound):
            get_recipe(1)

    def test_batch_summary(self, two_batches):
        summary = get_batch_summary()

        assert summary["batch_count"] == 2
        assert summary["total_produced"] == Decimal("60")
        assert summary["total_remaining"] == Decimal("60")
        # 60 units at a selling price of 15
        assert summary["remaining_value"] == Decimal("900")
        # 40 at 7.75 plus 20 at 15.5
        assert summary["remaining_cost"] == Decimal("620")
        assert summary["projected_profit"] == Decimal("280")

    def test_empty_summary(self, test_db):
        summary = get_batch_summary()
        assert summary["batch_count"] == 0
        assert summary["projected_profit"] == Decimal("0")


class TestProductionGateway:
    def test_gateway_commits_into_callers_session(self, chips_catalog):
        draft = _chips_session(chips_catalog).build_draft()

        with session_scope() as session:
            result = ProductionGateway(session=session).commit(draft)
            assert session.query(ProductionBatch).count() == 1

        assert get_batch(result["batch_number"])["qty_produced"] == Decimal("40")

    def test_failed_commit_leaves_callers_session_clean(self, chips_catalog):
        draft = _chips_session(chips_catalog).build_draft()
        with session_scope() as db:
            db.get(Ingredient, chips_catalog["oil_id"]).current_stock = Decimal("0.25")

        with session_scope() as db:
            db.get(Ingredient, chips_catalog["potato_id"]).reorder_point = Decimal("12")
            with pytest.raises(InsufficientStock):
                ProductionGateway(session=db).commit(draft)
            db.commit()

        assert _count(Recipe) == 0
        assert _count(RecipeIngredient) == 0
        assert _count(ProductionBatch) == 0
        assert _stock(chips_catalog["potato_id"]) == Decimal("50")
        with session_scope() as db:
            assert db.get(Ingredient, chips_catalog["potato_id"]).reorder_point == Decimal("12")
