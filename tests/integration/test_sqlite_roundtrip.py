"""End-to-end tests against an in-memory SQLite database."""

import pandas as pd
import pytest

from sqlchain import Database
from sqlchain.common.exceptions import ErrorCode, SqlChainError
from sqlchain.settings import CompilerSettings, ConnectionSettings, SqlChainSettings


USERS = [
    {"name": "Ann", "email": "ann@example.com", "age": 34, "votes": 120, "dept": "eng"},
    {"name": "Bob", "email": "bob@example.com", "age": 17, "votes": 5, "dept": "ops"},
    {"name": "Cy", "email": None, "age": 41, "votes": 300, "dept": "eng"},
    {"name": "Tess", "email": "tess@example.com", "age": 25, "votes": 80, "dept": "sales"},
]


@pytest.fixture
def seeded(db):
    for user in USERS:
        db.table("users").insert(user)
    return db


class TestInsertAndSelect:

    def test_insert_returns_generated_ids(self, db):
        """Test that inserts return SQLite's generated row ids."""
        assert db.table("users").insert({"name": "John", "email": "j@x.com"}) == 1
        assert db.table("users").insert({"name": "Jane"}) == 2

    def test_one(self, seeded):
        """Test that one() returns the selected columns of a single row."""
        assert seeded.table("users").select("name, age").where("id", 1).one() == {"name": "Ann", "age": 34}

    def test_one_without_match(self, seeded):
        """Test that one() returns None when nothing matches."""
        assert seeded.table("users").where("id", 999).one() is None

    def test_where_or_where(self, seeded):
        """Test that OR-connected conditions select the union of matches."""
        rows = (
            seeded.table("users")
            .select("name")
            .where("votes", ">", 100)
            .or_where("name", "like", "T%")
            .order_by("id")
            .get("column")
        )

        assert rows == ["Ann", "Cy", "Tess"]

    def test_nested_group(self, seeded):
        """Test that a nested group is evaluated as one parenthesized condition."""
        rows = (
            seeded.table("users")
            .select("name")
            .where("dept", "eng")
            .where(lambda q: q.where("age", ">", 40).or_where("votes", "<", 150))
            .order_by("id")
            .get("column")
        )

        assert rows == ["Ann", "Cy"]

    def test_null_comparisons(self, seeded):
        """Test that None comparisons match NULL columns."""
        assert seeded.table("users").select("name").where("email", None).get("column") == ["Cy"]
        assert seeded.table("users").where_not_null("email").count() == 3

    def test_in_and_between(self, seeded):
        """Test that IN and BETWEEN filters combine."""
        names = (
            seeded.table("users")
            .select("name")
            .where_in("dept", ["eng", "sales"])
            .where_between("age", 30, 45)
            .order_by("name", "desc")
            .get("column")
        )

        assert names == ["Cy", "Ann"]

    def test_distinct_and_grouping(self, seeded):
        """Test that DISTINCT, GROUP BY and HAVING run with raw ordering."""
        assert seeded.table("users").select("dept").distinct().order_by("dept").get("column") == [
            "eng", "ops", "sales",
        ]

        totals = (
            seeded.table("users")
            .select("dept, SUM(votes) AS total")
            .group_by("dept")
            .having_raw("SUM(votes) > ?", [50])
            .order_by_raw("total DESC")
            .get("num")
        )

        assert totals == [("eng", 420), ("sales", 80)]

    def test_fetch_styles(self, seeded):
        """Test that BOTH and GROUP fetch styles shape real rows."""
        def query():
            return seeded.table("users").select("dept, name").where("dept", "eng").order_by("id")

        assert query().get("both")[0] == {"dept": "eng", "name": "Ann", 0: "eng", 1: "Ann"}
        assert query().get("group") == {"eng": [{"name": "Ann"}, {"name": "Cy"}]}

    def test_pagination(self, seeded):
        """Test that paginate and offset select the expected pages."""
        assert seeded.table("users").select("id").order_by("id").paginate(2, 2).get("column") == [3, 4]
        assert seeded.table("users").select("id").order_by("id").offset(3).get("column") == [4]

    def test_dataframe(self, seeded):
        """Test that dataframe returns ordered rows as a DataFrame."""
        df = seeded.table("users").select("name, votes").order_by("votes", "desc").dataframe()

        assert isinstance(df, pd.DataFrame)
        assert df["name"].tolist() == ["Cy", "Ann", "Tess", "Bob"]


class TestCountUpdateDelete:

    def test_count(self, seeded):
        """Test that count ignores ordering and honours conditions."""
        assert seeded.table("users").count() == 4
        assert seeded.table("users").where("age", ">=", 18).order_by("name").count() == 3

    def test_count_of_grouped_query(self, seeded):
        """Test that counting a grouped query counts the groups."""
        assert seeded.table("users").select("dept").group_by("dept").count() == 3

    def test_count_of_paginated_query(self, seeded):
        """Test that counting a limited query counts only the page."""
        assert seeded.table("users").order_by("id").limit(2).count() == 2

    def test_update(self, seeded):
        """Test that update changes only matching rows and returns the count."""
        assert seeded.table("users").where("dept", "eng").update({"votes": 0}) == 2
        assert seeded.table("users").where("votes", 0).count() == 2

    def test_delete(self, seeded):
        """Test that delete removes only matching rows."""
        assert seeded.table("users").where("age", "<", 18).delete() == 1
        assert seeded.table("users").count() == 3

    def test_unconditional_delete_needs_confirmation(self, seeded):
        """Test that an unconditional delete runs only after confirmation."""
        with pytest.raises(SqlChainError) as exc_info:
            seeded.table("users").delete()

        assert exc_info.value.error_code == ErrorCode.BUILD_UNCONDITIONAL_WRITE
        assert seeded.table("users").count() == 4
        seeded.table("users").unconditional().delete()
        assert seeded.table("users").count() == 0


class TestRawAndJoins:

    def test_raw_sql_with_named_parameters(self, seeded):
        """Test that raw SQL binds named parameters given with a leading colon."""
        row = seeded.raw_sql("SELECT COUNT(*) AS n FROM users WHERE age > :age", {":age": 18}).one()

        assert row == {"n": 3}

    def test_raw_count(self, seeded):
        """Test that count on raw SQL returns the number of rows it selects."""
        assert seeded.raw_sql("SELECT name FROM users WHERE dept = ?", ["eng"]).count() == 2

    def test_raw_count_accepts_text_that_cannot_be_nested(self, seeded):
        """Test that raw SQL with a trailing semicolon counts the same rows get() returns."""
        sql = "SELECT * FROM users WHERE age > :age;"

        rows = seeded.raw_sql(sql, {":age": 18}).get()

        assert seeded.raw_sql(sql, {":age": 18}).count() == len(rows) == 3

    def test_joins(self, seeded):
        """Test that structured and raw joins return joined rows."""
        seeded.raw_sql(
            "CREATE TABLE posts (id INTEGER PRIMARY KEY, user_id INTEGER, title TEXT)"
        ).execute()
        seeded.table("posts").insert({"user_id": 1, "title": "Hello"})
        seeded.table("posts").insert({"user_id": 1, "title": "Again"})
        seeded.table("posts").insert({"user_id": 3, "title": "Mine"})

        rows = (
            seeded.table("users u")
            .select("u.name, p.title")
            .join("posts p", "u.id", "=", "p.user_id")
            .where("u.dept", "eng")
            .order_by("p.id")
            .get("num")
        )
        assert rows == [("Ann", "Hello"), ("Ann", "Again"), ("Cy", "Mine")]

        without_posts = (
            seeded.table("users")
            .select("users.name")
            .left_join_raw("posts", "posts.user_id = users.id")
            .where_null("posts.id")
            .order_by("users.id")
            .get("column")
        )
        assert without_posts == ["Bob", "Tess"]

    def test_missing_table_is_an_execution_error(self, db):
        """Test that a failing statement raises EXECUTION_QUERY_FAILED with the query text."""
        with pytest.raises(SqlChainError) as exc_info:
            db.table("missing").where("id", 1).get()

        error = exc_info.value
        assert error.error_code == ErrorCode.EXECUTION_QUERY_FAILED
        assert error.details == {"query": "SELECT * FROM missing WHERE id = ?", "param_count": 1}


class TestNamedPlaceholders:

    @pytest.fixture
    def named_db(self):
        settings = SqlChainSettings(
            connection=ConnectionSettings(dsn="sqlite://"),
            compiler=CompilerSettings(placeholder_style="named", dialect="sqlite", quote_identifiers=True),
        )
        with Database.from_settings(settings) as database:
            database.raw_sql("CREATE TABLE items (id INTEGER PRIMARY KEY, label TEXT, qty INTEGER)").execute()
            yield database

    def test_roundtrip(self, named_db):
        """Test that named placeholders and quoted identifiers work end to end."""
        named_db.table("items").insert({"label": "bolt", "qty": 10})
        named_db.table("items").insert({"label": "nut", "qty": 3})

        query = named_db.table("items").select("label").where("qty", ">", 5)
        assert query.to_sql() == 'SELECT "label" FROM "items" WHERE "qty" > :p1'
        assert query.get("column") == ["bolt"]

        assert named_db.table("items").where_raw("label = :label", {":label": "nut"}).update({"qty": 4}) == 1
        assert named_db.table("items").select("qty").where("label", "nut").one("column") == 4
