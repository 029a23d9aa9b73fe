"""Unit tests for SQL compilation through the builder and the compiler."""

import pytest

from sqlchain import QueryBuilder, StatementCompiler
from sqlchain.clauses import GroupItem, OrderItem, Statement, predicate_equals
from sqlchain.common.exceptions import ErrorCode, SqlChainError
from sqlchain.constants.sql import PlaceholderStyle, QueryType


def _query(compiler=None) -> QueryBuilder:
    return QueryBuilder(compiler=compiler or StatementCompiler())


class TestSelectCompilation:

    def test_or_where_example(self):
        """Test that where and or_where chain into one OR-joined WHERE clause."""
        compiled = _query().table("users").where("votes", ">", 100).or_where("name", "like", "T%").compile()

        assert compiled.sql == "SELECT * FROM users WHERE votes > ? OR name LIKE ?"
        assert compiled.parameters == [100, "T%"]

    def test_clause_order_is_fixed(self):
        """Test that clauses render in canonical order regardless of call order."""
        compiled = (
            _query()
            .limit(10)
            .order_by("name")
            .group_by("dept")
            .where("active", 1)
            .join("posts", "users.id", "=", "posts.user_id")
            .select("dept, COUNT(*) AS n")
            .table("users")
            .offset(5)
            .compile()
        )

        assert compiled.sql == (
            "SELECT dept, COUNT(*) AS n FROM users "
            "INNER JOIN posts ON users.id = posts.user_id "
            "WHERE active = ? GROUP BY dept ORDER BY name ASC LIMIT 10 OFFSET 5"
        )
        assert compiled.parameters == [1]

    def test_compilation_is_idempotent(self):
        """Test that compiling the same builder twice gives identical SQL and parameters."""
        builder = _query().table("users").where("a", 1).where(lambda q: q.where("b", 2).or_where("c", 3))

        first = builder.compile()
        second = builder.compile()

        assert first.sql == second.sql
        assert first.parameters == second.parameters

    def test_values_never_appear_in_sql_text(self):
        """Test that bound values are kept out of the SQL text."""
        compiled = (
            _query()
            .table("users")
            .where("password", "s3cr3t-value")
            .where_in("id", [987654, 123456])
            .where_between("age", 41, 77)
            .compile()
        )

        for literal in ("s3cr3t-value", "987654", "123456", "41", "77"):
            assert literal not in compiled.sql
        assert compiled.parameters == ["s3cr3t-value", 987654, 123456, 41, 77]

    def test_distinct_and_projection_list(self):
        """Test that distinct() prefixes a multi-argument projection."""
        compiled = _query().table("users").select("name", "email").distinct().compile()
        assert compiled.sql == "SELECT DISTINCT name, email FROM users"

    def test_select_star_is_default(self):
        """Test that select() with no columns projects every column."""
        assert _query().table("users").select().compile().sql == "SELECT * FROM users"

    def test_having_and_raw_fragments_keep_parameter_order(self):
        """Test that WHERE parameters precede HAVING parameters."""
        compiled = (
            _query()
            .table("orders")
            .select("customer_id, SUM(total) AS total")
            .where("status", "paid")
            .group_by("customer_id")
            .having_raw("SUM(total) > ?", [100])
            .order_by_raw("SUM(total) DESC")
            .compile()
        )

        assert compiled.sql == (
            "SELECT customer_id, SUM(total) AS total FROM orders WHERE status = ? "
            "GROUP BY customer_id HAVING SUM(total) > ? ORDER BY SUM(total) DESC"
        )
        assert compiled.parameters == ["paid", 100]

    def test_group_by_raw_params_precede_having(self):
        """Test that raw GROUP BY parameters bind before HAVING parameters."""
        compiled = (
            _query()
            .table("events")
            .select("bucket")
            .group_by_raw("strftime(?, created_at)", ["%Y"])
            .having("bucket", ">", "2020")
            .compile()
        )

        assert compiled.sql == "SELECT bucket FROM events GROUP BY strftime(?, created_at) HAVING bucket > ?"
        assert compiled.parameters == ["%Y", "2020"]

    def test_order_by_mapping(self):
        """Test that order_by accepts a column to direction mapping."""
        compiled = _query().table("users").order_by({"name": "asc", "id": "DESC"}).compile()
        assert compiled.sql == "SELECT * FROM users ORDER BY name ASC, id DESC"


class TestPredicateRendering:

    def test_equivalent_where_shapes_match(self):
        """Test that chained, list and mapping conditions compile identically."""
        chained = _query().table("t").where("a", 1).where("b", ">", 2).compile()
        triples = _query().table("t").where([("a", 1), ("b", ">", 2)]).compile()
        mapping = _query().table("t").where({"a": 1}).where("b", ">", 2).compile()

        assert chained.sql == triples.sql == mapping.sql == "SELECT * FROM t WHERE a = ? AND b > ?"
        assert chained.parameters == triples.parameters == mapping.parameters == [1, 2]

    def test_nested_callable_group(self):
        """Test that a callback condition renders as a parenthesized group."""
        compiled = (
            _query()
            .table("users")
            .where("active", True)
            .where(lambda q: q.where("role", "admin").or_where("votes", ">", 100))
            .compile()
        )

        assert compiled.sql == "SELECT * FROM users WHERE active = ? AND (role = ? OR votes > ?)"
        assert compiled.parameters == [True, "admin", 100]

    def test_single_item_wrappers_do_not_hide_parentheses(self):
        """Test that nested single-item groups still parenthesize the inner OR."""
        compiled = (
            _query()
            .table("t")
            .where("a", 1)
            .where(lambda g: g.where(lambda h: h.where("b", 2).or_where("c", 3)))
            .compile()
        )

        assert compiled.sql == "SELECT * FROM t WHERE a = ? AND (b = ? OR c = ?)"

    def test_sole_group_is_not_parenthesized(self):
        """Test that a group forming the whole WHERE clause is rendered bare."""
        compiled = _query().table("t").where([("a", 1), ("b", 2)]).compile()
        assert compiled.sql == "SELECT * FROM t WHERE a = ? AND b = ?"

    def test_or_where_with_triples(self):
        """Test that or_where with a condition list groups it under OR."""
        compiled = _query().table("t").where("a", 1).or_where([("b", 2), ("c", "<", 3)]).compile()

        assert compiled.sql == "SELECT * FROM t WHERE a = ? OR (b = ? AND c < ?)"
        assert compiled.parameters == [1, 2, 3]

    def test_null_comparisons_bind_nothing(self):
        """Test that NULL comparisons render IS NULL forms without parameters."""
        compiled = (
            _query()
            .table("users")
            .where("deleted_at", None)
            .where("email", "!=", None)
            .where_null("banned_at")
            .where_not_null("verified_at")
            .compile()
        )

        assert compiled.sql == (
            "SELECT * FROM users WHERE deleted_at IS NULL AND email IS NOT NULL "
            "AND banned_at IS NULL AND verified_at IS NOT NULL"
        )
        assert compiled.parameters == []

    def test_list_and_range_operators(self):
        """Test that IN and BETWEEN operators expand one placeholder per value."""
        compiled = (
            _query()
            .table("users")
            .where_in("id", [1, 2, 3])
            .where_not_in("role", ("guest",))
            .where("age", "not between", [18, 30])
            .compile()
        )

        assert compiled.sql == (
            "SELECT * FROM users WHERE id IN (?, ?, ?) AND role NOT IN (?) AND age NOT BETWEEN ? AND ?"
        )
        assert compiled.parameters == [1, 2, 3, "guest", 18, 30]

    def test_raw_predicates_are_verbatim(self):
        """Test that raw predicates keep their text and parameters."""
        compiled = (
            _query()
            .table("users")
            .where("a", 1)
            .where_raw("b > ?", [2])
            .or_where_raw("c = ?", (3,))
            .compile()
        )

        assert compiled.sql == "SELECT * FROM users WHERE a = ? AND b > ? OR c = ?"
        assert compiled.parameters == [1, 2, 3]


class TestPlaceholderStyles:

    @pytest.mark.parametrize("style,expected_sql,expected_params", [
        ("qmark", "SELECT * FROM t WHERE a = ? AND b > ?", [1, 2]),
        ("format", "SELECT * FROM t WHERE a = %s AND b > %s", [1, 2]),
        ("named", "SELECT * FROM t WHERE a = :p1 AND b > :p2", {"p1": 1, "p2": 2}),
        ("pyformat", "SELECT * FROM t WHERE a = %(p1)s AND b > %(p2)s", {"p1": 1, "p2": 2}),
    ])
    def test_styles(self, style, expected_sql, expected_params):
        """Test that each placeholder style renders its markers and parameter container."""
        compiler = StatementCompiler(placeholder_style=style)
        compiled = _query(compiler).table("t").where("a", 1).where("b", ">", 2).compile()

        assert compiled.sql == expected_sql
        assert compiled.parameters == expected_params

    def test_generated_names_skip_raw_parameter_names(self):
        """Test that generated named placeholders avoid names used by raw fragments."""
        compiler = StatementCompiler(placeholder_style=PlaceholderStyle.NAMED)
        compiled = _query(compiler).table("t").where_raw("c = :p1", {":p1": 5}).where("a", 1).compile()

        assert compiled.sql == "SELECT * FROM t WHERE c = :p1 AND a = :p2"
        assert compiled.parameters == {"p1": 5, "p2": 1}

    def test_positional_style_rejects_mapping_params(self):
        """Test that positional placeholder styles refuse named raw parameters."""
        builder = _query().table("t").where_raw("c = :c", {"c": 1})

        with pytest.raises(SqlChainError) as exc_info:
            builder.compile()
        assert exc_info.value.error_code == ErrorCode.BUILD_INVALID_ARGUMENT

    def test_named_style_rejects_sequence_params(self):
        """Test that the named placeholder style refuses positional raw parameters."""
        builder = _query(StatementCompiler(placeholder_style="named")).table("t").where_raw("c = ?", [1])

        with pytest.raises(SqlChainError) as exc_info:
            builder.compile()
        assert exc_info.value.error_code == ErrorCode.BUILD_INVALID_ARGUMENT

    def test_duplicate_raw_names_are_rejected(self):
        """Test that two raw fragments binding the same name fail to compile."""
        builder = (
            _query(StatementCompiler(placeholder_style="named"))
            .table("t")
            .where_raw("a = :x", {"x": 1})
            .where_raw("b = :x", {":x": 2})
        )

        with pytest.raises(SqlChainError):
            builder.compile()


class TestRawStatements:

    def test_raw_sql_is_passed_through_unchanged(self):
        """Test that raw SQL overrides structured clauses and is emitted verbatim."""
        sql = "SELECT COUNT(*) FROM users WHERE age > :age"
        compiled = (
            _query()
            .table("users")
            .where("x", 1)
            .order_by("id")
            .raw_sql(sql, {":age": 18})
            .compile()
        )

        assert compiled.sql == sql
        assert compiled.parameters == {":age": 18}
        assert compiled.operation == QueryType.EXECUTE_SQL.value

    def test_raw_sql_requires_text(self):
        """Test that blank raw SQL is rejected."""
        with pytest.raises(SqlChainError):
            _query().raw_sql("   ")


class TestPagination:

    def test_limit_zero_is_allowed(self):
        """Test that LIMIT 0 is a valid limit."""
        assert _query().table("users").limit(0).compile().sql == "SELECT * FROM users LIMIT 0"

    @pytest.mark.parametrize("method,value", [
        ("limit", -1),
        ("offset", -1),
        ("limit", "10"),
        ("limit", 2.5),
        ("offset", True),
    ])
    def test_invalid_limits_raise(self, method, value):
        """Test that negative or non-integer limits and offsets are rejected."""
        builder = _query().table("users")

        with pytest.raises(SqlChainError) as exc_info:
            getattr(builder, method)(value)
        assert exc_info.value.error_code == ErrorCode.BUILD_INVALID_LIMIT

    def test_paginate(self):
        """Test that paginate converts page numbers into LIMIT and OFFSET."""
        compiled = _query().table("users").order_by("id").paginate(3, 10).compile()
        assert compiled.sql == "SELECT * FROM users ORDER BY id ASC LIMIT 10 OFFSET 20"

    @pytest.mark.parametrize("page,per_page", [(0, 10), (1, 0), (-1, 10)])
    def test_paginate_rejects_non_positive(self, page, per_page):
        """Test that paginate requires positive page and page size."""
        with pytest.raises(SqlChainError) as exc_info:
            _query().paginate(page, per_page)
        assert exc_info.value.error_code == ErrorCode.BUILD_INVALID_LIMIT

    @pytest.mark.parametrize("dialect,expected", [
        ("sqlite", "SELECT * FROM users LIMIT -1 OFFSET 20"),
        ("mysql", "SELECT * FROM users LIMIT 18446744073709551615 OFFSET 20"),
        ("postgres", "SELECT * FROM users OFFSET 20"),
        ("tsql", "SELECT * FROM users ORDER BY (SELECT NULL) OFFSET 20 ROWS"),
    ])
    def test_offset_without_limit_per_dialect(self, dialect, expected):
        """Test that an offset without a limit renders each dialect's form."""
        compiled = _query(StatementCompiler(dialect=dialect)).table("users").offset(20).compile()
        assert compiled.sql == expected

    def test_tsql_offset_fetch_after_existing_order(self):
        """Test that T-SQL paging uses OFFSET FETCH after the given ORDER BY."""
        compiled = (
            _query(StatementCompiler(dialect="tsql"))
            .table("users")
            .order_by("id")
            .limit(10)
            .offset(20)
            .compile()
        )

        assert compiled.sql == "SELECT * FROM users ORDER BY id ASC OFFSET 20 ROWS FETCH NEXT 10 ROWS ONLY"


class TestJoins:

    def test_both_join_forms(self):
        """Test that structured and raw joins render with their join types."""
        compiled = (
            _query()
            .table("users")
            .join("posts", "users.id = posts.user_id")
            .left_join("comments c", "posts.id", "=", "c.post_id")
            .right_join_raw("tags", "tags.post_id = posts.id")
            .compile()
        )

        assert compiled.sql == (
            "SELECT * FROM users "
            "INNER JOIN posts ON users.id = posts.user_id "
            "LEFT JOIN comments AS c ON posts.id = c.post_id "
            "RIGHT JOIN tags ON tags.post_id = posts.id"
        )

    def test_named_join_variants(self):
        """Test that the explicit join helpers render aliases and conditions."""
        compiled = (
            _query()
            .table("users u")
            .join_on("posts p", "u.id", "=", "p.user_id")
            .left_join_on("teams t", "u.team_id", "=", "t.id")
            .join_raw("roles r", "r.id = u.role_id")
            .compile()
        )

        assert compiled.sql == (
            "SELECT * FROM users AS u "
            "INNER JOIN posts AS p ON u.id = p.user_id "
            "LEFT JOIN teams AS t ON u.team_id = t.id "
            "INNER JOIN roles AS r ON r.id = u.role_id"
        )

    def test_three_argument_join_is_rejected(self):
        """Test that a join with a missing right-hand column is rejected."""
        with pytest.raises(SqlChainError) as exc_info:
            _query().table("users").join("posts", "users.id", "=")
        assert exc_info.value.error_code == ErrorCode.BUILD_INVALID_ARGUMENT


class TestIdentifierQuoting:

    def test_postgres_quoting(self):
        """Test that PostgreSQL quoting wraps identifiers but not expressions."""
        compiler = StatementCompiler(dialect="postgres", quote_identifiers=True)
        compiled = (
            _query(compiler)
            .table("users AS u")
            .select("u.id, COUNT(*) AS n")
            .where("u.name", "x")
            .compile()
        )

        assert compiled.sql == 'SELECT "u"."id", COUNT(*) AS n FROM "users" AS "u" WHERE "u"."name" = ?'

    def test_mysql_quoting_keeps_star(self):
        """Test that MySQL quoting uses backticks and keeps the star unquoted."""
        compiler = StatementCompiler(dialect="mysql", quote_identifiers=True)
        compiled = _query(compiler).table("users").select("users.*").order_by("id", "desc").compile()

        assert compiled.sql == "SELECT `users`.* FROM `users` ORDER BY `id` DESC"


class TestCompilerDirect:

    def test_count_replaces_projection_and_drops_ordering(self, compiler):
        """Test that compile_count swaps the projection for COUNT and drops ORDER BY."""
        statement = Statement(
            table="users",
            predicates=[predicate_equals("active", True)],
            ordering=[OrderItem(column="name")],
        )

        compiled = compiler.compile_count(statement)

        assert compiled.sql == "SELECT COUNT(*) AS aggregate FROM users WHERE active = ?"
        assert compiled.parameters == [True]

    def test_count_wraps_grouped_statements(self, compiler):
        """Test that compile_count wraps grouped statements in a subquery."""
        statement = Statement(
            operation=QueryType.SELECT,
            table="users",
            columns=["dept"],
            grouping=[GroupItem(column="dept")],
        )

        compiled = compiler.compile_count(statement)

        assert compiled.sql == (
            "SELECT COUNT(*) AS aggregate FROM (SELECT dept FROM users GROUP BY dept) AS aggregate_table"
        )

    def test_count_refuses_to_rewrite_raw_statements(self, compiler):
        """Test that compile_count leaves raw SQL alone instead of wrapping it in a subquery."""
        statement = Statement(raw_sql="SELECT * FROM users WHERE age > ?;", raw_params=[18])

        with pytest.raises(SqlChainError) as exc_info:
            compiler.compile_count(statement)

        assert exc_info.value.error_code == ErrorCode.BUILD_INVALID_ARGUMENT
        assert compiler.compile(statement).sql == "SELECT * FROM users WHERE age > ?;"

    def test_missing_table(self, compiler):
        """Test that compiling a SELECT without a table is a build error."""
        with pytest.raises(SqlChainError) as exc_info:
            compiler.compile(Statement(operation=QueryType.SELECT))
        assert exc_info.value.error_code == ErrorCode.BUILD_MISSING_TABLE
        assert exc_info.value.is_build_error

    def test_missing_operation(self, compiler):
        """Test that compiling a statement without an operation is a build error."""
        with pytest.raises(SqlChainError) as exc_info:
            compiler.compile(Statement(table="users"))
        assert exc_info.value.error_code == ErrorCode.BUILD_ERROR

    def test_unsupported_operation_is_internal_error(self, compiler):
        """Test that an operation with no renderer is an internal compile error."""
        with pytest.raises(SqlChainError) as exc_info:
            compiler.compile(Statement(operation=QueryType.EXECUTE_SQL, table="users"))
        assert exc_info.value.error_code == ErrorCode.COMPILE_INTERNAL

    def test_unknown_node_is_internal_error(self, compiler):
        """Test that an unknown condition node is an internal compile error."""
        params = compiler._collector(Statement())

        with pytest.raises(SqlChainError) as exc_info:
            compiler._render_conditions([object()], params)
        assert exc_info.value.error_code == ErrorCode.COMPILE_INTERNAL

    def test_insert_rejects_where(self, compiler):
        """Test that an INSERT carrying WHERE conditions is rejected."""
        statement = Statement(
            operation=QueryType.INSERT,
            table="users",
            values={"name": "x"},
            predicates=[predicate_equals("id", 1)],
        )

        with pytest.raises(SqlChainError) as exc_info:
            compiler.compile(statement)
        assert exc_info.value.error_code == ErrorCode.BUILD_INVALID_ARGUMENT

    def test_update_requires_values(self, compiler):
        """Test that an UPDATE without assignments is rejected."""
        statement = Statement(operation=QueryType.UPDATE, table="users", unconditional=True)

        with pytest.raises(SqlChainError) as exc_info:
            compiler.compile(statement)
        assert exc_info.value.error_code == ErrorCode.BUILD_MISSING_VALUES

    @pytest.mark.parametrize("kwargs,config_key", [
        ({"placeholder_style": "dollar"}, "placeholder_style"),
        ({"dialect": "not-a-dialect"}, "dialect"),
    ])
    def test_invalid_configuration(self, kwargs, config_key):
        """Test that invalid compiler options raise CONFIG_INVALID naming the option."""
        with pytest.raises(SqlChainError) as exc_info:
            StatementCompiler(**kwargs)
        assert exc_info.value.error_code == ErrorCode.CONFIG_INVALID
        assert exc_info.value.details["config_key"] == config_key
