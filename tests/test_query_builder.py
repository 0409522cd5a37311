from services.query_builder import QueryBuilder


def test_get_passes_accumulated_parts(repo, conn):
    conn.rows = [{"id": 1, "name": "a"}]

    rows = (
        QueryBuilder(101, repo)
        .select(["id", "name"])
        .where({"status": "active"})
        .and_where("age", 18, ">=")
        .order_by("name ASC")
        .limit(20)
        .offset(40)
        .get()
    )

    sql, params = conn.statements[-1]
    assert rows == [{"id": 1, "name": "a"}]
    assert sql == (
        'SELECT "id", "name" FROM "users" WHERE "status" = %(w1)s AND "age" >= %(w2)s '
        'ORDER BY "name" ASC LIMIT %(limit)s OFFSET %(offset)s'
    )
    assert params == {"w1": "active", "w2": 18, "limit": 20, "offset": 40}


def test_and_where_replaces_condition_on_same_field(repo, conn):
    QueryBuilder(101, repo).and_where("age", 1, ">").and_where("age", 9, "<").get()

    sql, params = conn.statements[-1]
    assert '"age" < %(w1)s' in sql
    assert params["w1"] == 9


def test_first_limits_to_one_row(repo, conn):
    conn.rows = [{"id": 5}]

    assert QueryBuilder(101, repo).where({"id": 5}).first() == {"id": 5}
    assert conn.statements[-1][1]["limit"] == 1

    conn.rows = []
    assert QueryBuilder(101, repo).first() is None


def test_count_and_exists(repo, conn):
    conn.rows = [{"count": 0}]
    query = QueryBuilder(101, repo).where({"status": "x"})

    assert query.count() == 0
    assert query.exists() is False

    conn.rows = [{"count": 2}]
    assert query.exists() is True
    assert conn.statements[-1][0].startswith('SELECT COUNT(*) AS "count" FROM "users"')


def test_join_is_forwarded(repo, conn):
    QueryBuilder(101, repo).join(102, "id", "user_id", "left", ["total"]).get()

    sql, _ = conn.statements[-1]
    assert 'LEFT JOIN "orders" ON "users"."id" = "orders"."user_id"' in sql
    assert '"orders"."total"' in sql


def test_invalid_where_gives_no_rows(repo, conn):
    conn.rows = [{"id": 1}]

    assert QueryBuilder(101, repo).where({"nope": 1}).get() == []
    assert QueryBuilder(101, repo).where({"nope": 1}).exists() is False
    assert conn.statements == []
