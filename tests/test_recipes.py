import pytest

from foodstock.domain import recipes as graph
from foodstock.domain.errors import NotFound, RecipeCycleError, ValidationError
from foodstock.domain.models import ItemKind, ItemRef, ParentRef, RecipeLine
from foodstock.infra.repositories import RecipeRepo
from foodstock.usecases.recipes import (
    add_recipe_line,
    expand_raw_requirements,
    expand_requirements,
    find_recipe_cycles,
    get_recipe,
    recipe_cost,
)


def _line(parent_wip, item, qty, unit):
    return RecipeLine(f"RC-{parent_wip}-{item}", ParentRef.wip(parent_wip), item, qty, unit)


def _book(**recipes):
    """wip id -> list of lines, as a `lines_for` lookup."""
    return lambda wip_id: recipes.get(wip_id, [])


# -------------------------
# pure expansion
# -------------------------

def test_expand_scales_direct_lines_only():
    lines = [
        _line("W010", ItemRef.product("I001"), 100, "g"),
        _line("W010", ItemRef.wip("W002"), 0.5, "kg"),
    ]
    reqs = graph.expand(lines, 3)
    assert [(r.input, r.quantity, r.unit) for r in reqs] == [
        (ItemRef.product("I001"), 300, "g"),
        (ItemRef.wip("W002"), 1.5, "kg"),
    ]


def test_expand_empty_recipe_is_no_consumption():
    assert graph.expand([], 5) == []


@pytest.mark.parametrize("batch", [0, -1, "abc", None])
def test_expand_rejects_bad_batch(batch):
    with pytest.raises(ValidationError):
        graph.expand([], batch)


def test_expand_transitive_aggregates_per_product():
    lookup = _book(
        W010=[
            _line("W010", ItemRef.product("I001"), 100, "g"),
            _line("W010", ItemRef.wip("W002"), 2, "kg"),
        ],
        W002=[
            _line("W002", ItemRef.product("I001"), 10, "g"),
            _line("W002", ItemRef.product("I002"), 5, "ml"),
        ],
    )
    reqs = graph.expand_transitive("W010", 2, lookup)
    assert [(r.input.item_id, r.quantity, r.unit) for r in reqs] == [
        ("I001", 240, "g"),   # 100*2 + 10*2*2
        ("I002", 20, "ml"),   # 5*2*2
    ]
    assert all(r.input.kind is ItemKind.PRODUCT for r in reqs)


def test_expand_transitive_detects_cycle():
    lookup = _book(
        W1=[_line("W1", ItemRef.wip("W2"), 1, "kg")],
        W2=[_line("W2", ItemRef.wip("W1"), 1, "kg")],
    )
    with pytest.raises(RecipeCycleError):
        graph.expand_transitive("W1", 1, lookup)
    assert graph.find_cycle("W1", lookup) == ["W1", "W2", "W1"]


def test_would_create_cycle():
    lookup = _book(W2=[_line("W2", ItemRef.wip("W3"), 1, "kg")])
    assert graph.would_create_cycle("W3", "W2", lookup)
    assert graph.would_create_cycle("W1", "W1", lookup)
    assert not graph.would_create_cycle("W1", "W2", lookup)


def test_recipe_cost_recurses_into_wip():
    lookup = _book(W2=[_line("W2", ItemRef.product("I2"), 4, "g")])
    lines = [
        _line("W1", ItemRef.product("I1"), 10, "g"),
        _line("W1", ItemRef.wip("W2"), 0.5, "kg"),
    ]
    prices = {"I1": 2.0, "I2": 1.5}
    assert graph.recipe_cost(lines, prices.get, lookup) == pytest.approx(10 * 2.0 + 0.5 * 4 * 1.5)


# -------------------------
# persisted recipes
# -------------------------

def test_get_recipe_and_expand_from_db(seeded):
    lines = get_recipe(ParentRef.wip("W002"), db_path=seeded)
    assert [l.input.item_id for l in lines] == ["I010", "I030", "I032", "I034"]

    reqs = expand_requirements("W002", 2, db_path=seeded)
    assert {r.input.item_id: r.quantity for r in reqs} == {
        "I010": 2000, "I030": 100, "I032": 60, "I034": 20,
    }


def test_add_recipe_line_rejects_cycle(seeded):
    add_recipe_line(ParentRef.wip("W003"), ItemRef.wip("W002"), 1, "kg", db_path=seeded)
    with pytest.raises(RecipeCycleError):
        add_recipe_line(ParentRef.wip("W002"), ItemRef.wip("W003"), 1, "l", db_path=seeded)
    with pytest.raises(RecipeCycleError):
        add_recipe_line(ParentRef.wip("W003"), ItemRef.wip("W003"), 1, "l", db_path=seeded)
    # nothing was written by the rejected edges
    assert len(get_recipe(ParentRef.wip("W002"), db_path=seeded)) == 4


def test_add_recipe_line_validation(seeded):
    with pytest.raises(ValidationError):
        add_recipe_line(ParentRef.menu("M001"), ItemRef.product("I010"), 0, "g", db_path=seeded)
    with pytest.raises(NotFound):
        add_recipe_line(ParentRef.menu("M999"), ItemRef.product("I010"), 1, "g", db_path=seeded)
    with pytest.raises(NotFound):
        add_recipe_line(ParentRef.menu("M001"), ItemRef.product("I999"), 1, "g", db_path=seeded)


def test_expand_raw_requirements_two_levels(seeded):
    add_recipe_line(ParentRef.wip("W003"), ItemRef.wip("W002"), 0.5, "kg", db_path=seeded)
    add_recipe_line(ParentRef.wip("W003"), ItemRef.product("I030"), 200, "ml", db_path=seeded)
    reqs = expand_raw_requirements("W003", 2, db_path=seeded)
    assert {(r.input.item_id, r.unit): r.quantity for r in reqs} == {
        ("I010", "g"): 1000,
        ("I030", "ml"): 50 + 400,
        ("I032", "ml"): 30,
        ("I034", "g"): 10,
    }


def test_recipe_cost_for_wip_and_menu(seeded):
    # 1000*0.5 + 50*0.3 + 30*0.4 + 10*0.1
    assert recipe_cost(ParentRef.wip("W002"), db_path=seeded)["unit_cost"] == pytest.approx(528.0)

    add_recipe_line(ParentRef.menu("M001"), ItemRef.wip("W002"), 0.125, "kg", db_path=seeded)
    res = recipe_cost(ParentRef.menu("M001"), db_path=seeded)
    assert res["unit_cost"] == pytest.approx(66.0)
    assert res["price"] == 900.0
    assert res["cost_rate"] == pytest.approx(7.33)


def test_find_recipe_cycles_reports_loops_written_around_validation(seeded):
    add_recipe_line(ParentRef.wip("W003"), ItemRef.wip("W002"), 0.2, "kg", db_path=seeded)
    assert find_recipe_cycles(db_path=seeded) == []

    # a row inserted straight into the table skips the cycle check
    RecipeRepo(seeded).insert(_line("W002", ItemRef.wip("W003"), 0.1, "l"))
    assert find_recipe_cycles(db_path=seeded) == [["W002", "W003", "W002"]]
