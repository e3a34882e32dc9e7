from __future__ import annotations

from stockkeeper.store.postgres import compile_count, compile_select, compile_where
from stockkeeper.store.query import QueryPlan, parse_filter, parse_sort


def test_unconstrained_select_orders_by_insertion():
    sql, params = compile_select(QueryPlan())

    assert sql.endswith("FROM public.products ORDER BY created_at ASC, id ASC")
    assert params == []


def test_where_clause_parameterises_every_value():
    where, params = compile_where(
        parse_filter({"name": "50%_off", "price": {"$gte": 30, "$lte": 100}, "_id": {"$in": ["a"]}})
    )

    assert where == " WHERE name ILIKE %s AND price >= %s AND price <= %s AND id = ANY(%s)"
    assert params == ["%50\\%\\_off%", 30, 100, ["a"]]


def test_select_with_sort_skip_and_limit():
    plan = QueryPlan(
        predicates=parse_filter({"category": "elec"}),
        sort=parse_sort({"price": -1}),
        skip=20,
        limit=10,
    )

    sql, params = compile_select(plan)

    assert "WHERE category ILIKE %s" in sql
    assert "ORDER BY price DESC NULLS LAST, created_at ASC, id ASC LIMIT %s OFFSET %s" in sql
    assert params == ["%elec%", 10, 20]


def test_count_ignores_sort_and_pagination():
    plan = QueryPlan(predicates=parse_filter({"quantity": 0}), sort=parse_sort("name"), skip=5, limit=5)

    sql, params = compile_count(plan)

    assert sql == "SELECT count(*) AS total FROM public.products WHERE quantity = %s"
    assert params == [0]
