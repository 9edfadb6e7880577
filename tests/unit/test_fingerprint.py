"""Unit tests for sql_fingerprint.fingerprint."""

from __future__ import annotations

import hashlib
import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from sql_fingerprint import (
    CURRENT_VERSION,
    Dialect,
    FingerprintVersion,
    compute_fingerprint_hash,
    fingerprint_many,
    fingerprint_one,
    get_fingerprint_version,
    hash_fingerprint,
)
from sql_fingerprint.sql_toolkit import SqlRenderError, register_implementation, reset_toolkit
from sql_fingerprint.sql_toolkit.impl.sqlglot_impl import SqlGlotToolkit


@pytest.fixture(autouse=True)
def _reset_singleton():
    reset_toolkit()
    yield
    reset_toolkit()


# ---------------------------------------------------------------------------
# Reference scenarios
# ---------------------------------------------------------------------------


class TestReferenceScenarios:
    def test_projection_and_order_by(self):
        assert fingerprint_one("SELECT a, b FROM c ORDER BY b") == "SELECT ... FROM c ORDER BY ..."

    def test_repeated_savepoint_gets_new_alias(self):
        assert fingerprint_many(['SAVEPOINT "s1234"', 'SAVEPOINT "s1234"']) == [
            "SAVEPOINT s1",
            "SAVEPOINT s2",
        ]

    def test_insert_values_returning(self):
        sql = "INSERT INTO c (a, b) VALUES (1, 2), (3, 4) RETURNING d"
        assert fingerprint_one(sql, Dialect.POSTGRES) == "INSERT INTO c (...) VALUES (...) RETURNING ..."

    def test_outer_join_with_quoted_predicate(self):
        sql = 'SELECT a, b FROM c LEFT OUTER JOIN d ON ("d"."a" = "c"."a")'
        assert fingerprint_one(sql) == "SELECT ... FROM c LEFT OUTER JOIN d ON ..."

    def test_unparsable_input_is_returned_unchanged(self):
        assert fingerprint_one("SELECT  SELECT  SELECT  SELECT") == "SELECT  SELECT  SELECT  SELECT"

    def test_empty_input(self):
        assert fingerprint_one("") == ""


# ---------------------------------------------------------------------------
# SELECT rules
# ---------------------------------------------------------------------------


class TestSelectRules:
    @pytest.mark.parametrize(
        ("sql", "expected"),
        [
            ("SELECT a FROM t WHERE b = 1 AND c = 'x'", "SELECT ... FROM t WHERE ..."),
            ("SELECT a AS x, b FROM t", "SELECT ... FROM t"),
            ("SELECT 1", "SELECT ..."),
            ("SELECT *, a FROM t", "SELECT * FROM t"),
            ("SELECT t.*, a FROM t", "SELECT t.* FROM t"),
            ("SELECT a, * FROM t", "SELECT ... FROM t"),
            ("SELECT DISTINCT a, b FROM t", "SELECT DISTINCT ... FROM t"),
            ("SELECT a, COUNT(*) FROM t GROUP BY a, b", "SELECT ... FROM t GROUP BY ..."),
            ("SELECT a FROM t ORDER BY a DESC, b", "SELECT ... FROM t ORDER BY ... DESC"),
            ("SELECT a FROM t ORDER BY a ASC", "SELECT ... FROM t ORDER BY ... ASC"),
            ("SELECT a FROM t LIMIT 21 OFFSET 101", "SELECT ... FROM t LIMIT ... OFFSET ..."),
            ("SELECT a FROM t LIMIT 5", "SELECT ... FROM t LIMIT ..."),
            ("SELECT a FROM t -- note", "SELECT ... FROM t"),
            ("SELECT a FROM t WHERE b IN (SELECT c FROM u)", "SELECT ... FROM t WHERE ..."),
        ],
    )
    def test_select(self, sql, expected):
        assert fingerprint_one(sql) == expected

    def test_distinct_on(self):
        sql = "SELECT DISTINCT ON (a, b) a, b, c FROM t"
        assert fingerprint_one(sql, Dialect.POSTGRES) == "SELECT DISTINCT ON (...) ... FROM t"

    def test_having_is_kept(self):
        sql = 'SELECT a FROM t GROUP BY a HAVING "my col" > 1'
        assert fingerprint_one(sql) == 'SELECT ... FROM t GROUP BY ... HAVING "my col" > 1'

    def test_derived_table_is_normalised(self):
        sql = "SELECT a FROM (SELECT b, c FROM u WHERE d = 1) AS s"
        assert fingerprint_one(sql) == "SELECT ... FROM (SELECT ... FROM u WHERE ...) AS s"

    def test_cte_body_is_normalised(self):
        sql = "WITH x AS (SELECT a FROM t WHERE b = 1) SELECT * FROM x"
        assert fingerprint_one(sql) == "WITH x AS (SELECT ... FROM t WHERE ...) SELECT * FROM x"

    def test_mysql_comma_limit(self):
        result = fingerprint_one("SELECT a FROM t LIMIT 5, 10", Dialect.MYSQL)
        assert "LIMIT ..." in result
        assert "5" not in result
        assert "10" not in result

    @pytest.mark.parametrize("dialect", [Dialect.CLICKHOUSE, Dialect.GENERIC])
    def test_limit_by_after_offset(self, dialect):
        sql = "SELECT a FROM b LIMIT 21 OFFSET 3 BY c, d"
        assert fingerprint_one(sql, dialect) == "SELECT ... FROM b LIMIT ... OFFSET ... BY ..."

    def test_unnest_arguments_and_alias_columns(self):
        sql = "SELECT a FROM UNNEST(ARRAY[1, 2, 3]) AS t(a)"
        result = fingerprint_one(sql, Dialect.POSTGRES)
        assert "UNNEST(...)" in result
        assert "t(...)" in result
        assert "2" not in result


class TestJoins:
    @pytest.mark.parametrize(
        ("sql", "expected"),
        [
            (
                "SELECT a FROM t INNER JOIN u ON t.id = u.id",
                "SELECT ... FROM t INNER JOIN u ON ...",
            ),
            (
                "SELECT a FROM t JOIN u ON t.id = u.id AND u.x > 3",
                "SELECT ... FROM t JOIN u ON ...",
            ),
            (
                "SELECT a FROM t RIGHT JOIN u ON t.id = u.id",
                "SELECT ... FROM t RIGHT JOIN u ON ...",
            ),
            ("SELECT a FROM t JOIN u USING (id)", "SELECT ... FROM t JOIN u USING (id)"),
            ("SELECT a FROM t CROSS JOIN u", "SELECT ... FROM t CROSS JOIN u"),
        ],
    )
    def test_join(self, sql, expected):
        assert fingerprint_one(sql) == expected


class TestSetOperations:
    def test_union(self):
        sql = "SELECT a FROM t UNION SELECT b FROM u"
        assert fingerprint_one(sql) == "SELECT ... FROM t UNION SELECT ... FROM u"

    def test_union_all_of_three(self):
        sql = "SELECT a FROM t WHERE x = 1 UNION ALL SELECT b FROM u UNION ALL SELECT c FROM v WHERE y = 2"
        assert fingerprint_one(sql) == (
            "SELECT ... FROM t WHERE ... UNION ALL SELECT ... FROM u UNION ALL SELECT ... FROM v WHERE ..."
        )

    def test_modifiers_on_set_operation(self):
        sql = "SELECT a FROM t UNION SELECT b FROM u ORDER BY a LIMIT 5"
        assert fingerprint_one(sql) == "SELECT ... FROM t UNION SELECT ... FROM u ORDER BY ... LIMIT ..."

    def test_parenthesised_branches_keep_their_modifiers(self):
        sql = "(SELECT a FROM t LIMIT 1) UNION (SELECT b FROM u LIMIT 2)"
        result = fingerprint_one(sql)
        assert "(SELECT ... FROM t LIMIT ...)" in result
        assert "(SELECT ... FROM u LIMIT ...)" in result
        assert "UNION" in result

    def test_except_and_intersect(self):
        assert fingerprint_one("SELECT a FROM t EXCEPT SELECT a FROM u") == (
            "SELECT ... FROM t EXCEPT SELECT ... FROM u"
        )
        assert fingerprint_one("SELECT a FROM t INTERSECT SELECT a FROM u") == (
            "SELECT ... FROM t INTERSECT SELECT ... FROM u"
        )


# ---------------------------------------------------------------------------
# DML rules
# ---------------------------------------------------------------------------


class TestDmlRules:
    def test_insert_without_column_list(self):
        assert fingerprint_one("INSERT INTO t VALUES (1, 'a')") == "INSERT INTO t VALUES (...)"

    def test_insert_select(self):
        sql = "INSERT INTO t (a, b) SELECT x, y FROM u WHERE z = 1"
        assert fingerprint_one(sql) == "INSERT INTO t (...) SELECT ... FROM u WHERE ..."

    def test_insert_row_count_does_not_matter(self):
        one_row = fingerprint_one("INSERT INTO t (a) VALUES (1)")
        many_rows = fingerprint_one("INSERT INTO t (a, b, c) VALUES (1, 2, 3), (4, 5, 6), (7, 8, 9)")
        assert one_row == many_rows

    def test_on_conflict_do_update(self):
        sql = "INSERT INTO t (a, b) VALUES (1, 2) ON CONFLICT (a) DO UPDATE SET b = 3, c = 4"
        result = fingerprint_one(sql, Dialect.POSTGRES)
        assert "ON CONFLICT (...)" in result
        assert "... = ..." in result
        assert "3" not in result
        assert "4" not in result

    def test_on_conflict_do_nothing(self):
        sql = "INSERT INTO t (a) VALUES (1) ON CONFLICT (a) DO NOTHING"
        result = fingerprint_one(sql, Dialect.POSTGRES)
        assert result.startswith("INSERT INTO t (...) VALUES (...) ON CONFLICT (...)")
        assert result.endswith("DO NOTHING")

    def test_on_duplicate_key_is_left_alone(self):
        sql = "INSERT INTO t (a) VALUES (1) ON DUPLICATE KEY UPDATE a = 2"
        result = fingerprint_one(sql, Dialect.MYSQL)
        assert "ON DUPLICATE KEY" in result
        assert "a = 2" in result
        assert "VALUES (...)" in result

    def test_update(self):
        sql = "UPDATE t SET a = 1, b = 2 WHERE c = 3 RETURNING a"
        assert fingerprint_one(sql, Dialect.POSTGRES) == "UPDATE t SET ... = ... WHERE ... RETURNING ..."

    def test_update_without_where(self):
        assert fingerprint_one("UPDATE t SET a = 1") == "UPDATE t SET ... = ..."

    def test_delete(self):
        assert fingerprint_one("DELETE FROM t WHERE a = 1") == "DELETE FROM t WHERE ..."

    def test_delete_returning(self):
        sql = "DELETE FROM t WHERE a = 1 RETURNING *"
        assert fingerprint_one(sql, Dialect.POSTGRES) == "DELETE FROM t WHERE ... RETURNING ..."

    def test_delete_all_rows(self):
        assert fingerprint_one("DELETE FROM t") == "DELETE FROM t"

    def test_declare_cursor(self):
        sql = "DECLARE c1, c2 CURSOR FOR SELECT a FROM t WHERE b = 1"
        assert fingerprint_one(sql) == "DECLARE ... CURSOR FOR SELECT ... FROM t WHERE ..."

    def test_merge_actions_are_left_alone(self):
        sql = (
            "MERGE INTO t USING u ON t.a = u.a "
            "WHEN MATCHED THEN UPDATE SET a = 1 "
            "WHEN NOT MATCHED THEN INSERT (a, b) VALUES (1, 2)"
        )
        result = fingerprint_one(sql)
        assert "ON t.a = u.a" in result
        assert "UPDATE SET a = 1" in result
        assert "INSERT (a, b) VALUES (1, 2)" in result
        assert "..." not in result

    def test_bigquery_variable_declaration(self):
        batch = ["SELECT 1", "DECLARE x INT64", "SELECT 2"]
        assert fingerprint_many(batch, Dialect.BIGQUERY) == ["SELECT ...", "DECLARE ... INT64", "SELECT ..."]

    @pytest.mark.parametrize(
        ("sql", "dialect"),
        [
            ("DECLARE x, y INT64 DEFAULT 1", Dialect.BIGQUERY),
            ("DECLARE x INT DEFAULT 5", Dialect.DATABRICKS),
        ],
    )
    def test_variable_names_collapse(self, sql, dialect):
        result = fingerprint_one(sql, dialect)
        assert result.startswith("DECLARE")
        assert "..." in result
        assert "x" not in result
        assert "y" not in result

    def test_other_statements_pass_through(self):
        assert fingerprint_one("COMMIT") == "COMMIT"


# ---------------------------------------------------------------------------
# Identifier quoting
# ---------------------------------------------------------------------------


class TestIdentifierQuoting:
    @pytest.mark.parametrize(
        ("sql", "expected"),
        [
            ('SELECT "a" FROM "c"."d"', "SELECT ... FROM c.d"),
            ('SELECT * FROM "my_table_1"', "SELECT * FROM my_table_1"),
            ('SELECT * FROM "my table"', 'SELECT * FROM "my table"'),
            ('SELECT * FROM "a-b"', 'SELECT * FROM "a-b"'),
            ('UPDATE "t" SET a = 1', "UPDATE t SET ... = ..."),
            ('DELETE FROM "s"."t"', "DELETE FROM s.t"),
            ('SELECT "t".* FROM "t"', "SELECT t.* FROM t"),
        ],
    )
    def test_redundant_quotes_are_dropped(self, sql, expected):
        assert fingerprint_one(sql) == expected

    def test_quotes_in_join_tables(self):
        sql = 'SELECT a FROM "x" JOIN "y z" ON x.id = 1'
        assert fingerprint_one(sql) == 'SELECT ... FROM x JOIN "y z" ON ...'


# ---------------------------------------------------------------------------
# Batch behaviour
# ---------------------------------------------------------------------------


class TestBatch:
    def test_multi_statement_input_is_joined_with_a_space(self):
        assert fingerprint_one("SELECT 1; SELECT a FROM t WHERE b = 2") == "SELECT ... SELECT ... FROM t WHERE ..."

    def test_comment_only_input(self):
        assert fingerprint_one("-- nothing to see") == ""

    def test_blank_input(self):
        assert fingerprint_one("   \n  ") == ""

    def test_order_and_length_are_preserved(self):
        batch = ["SELECT a FROM t", "SELECT SELECT (", "", "DELETE FROM t WHERE a = 1"]
        assert fingerprint_many(batch) == [
            "SELECT ... FROM t",
            "SELECT SELECT (",
            "",
            "DELETE FROM t WHERE ...",
        ]

    def test_failure_is_local_to_one_element(self):
        good = ["SELECT a FROM t WHERE b = 1", "UPDATE t SET a = 1"]
        with_failure = [good[0], "SELECT SELECT", good[1]]
        result = fingerprint_many(with_failure)
        assert result[0] == fingerprint_many(good)[0]
        assert result[1] == "SELECT SELECT"
        assert result[2] == fingerprint_many(good)[1]

    def test_empty_batch(self):
        assert fingerprint_many([]) == []

    def test_default_dialect_is_generic(self):
        sql = "SELECT a FROM t WHERE b = 1"
        assert fingerprint_one(sql) == fingerprint_one(sql, Dialect.GENERIC)

    def test_unparsable_input_is_logged_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="sql_fingerprint.fingerprint"):
            fingerprint_one("SELECT SELECT")
        assert any("did not parse" in r.message for r in caplog.records)


class TestProperties:
    @pytest.mark.parametrize(
        "sql",
        [
            "SELECT a, b FROM c ORDER BY b",
            "SELECT a FROM t WHERE b = 1 LIMIT 10 OFFSET 5",
            "SAVEPOINT x",
            "DELETE FROM t",
            "COMMIT",
            "",
            "SELECT  SELECT  SELECT  SELECT",
        ],
    )
    def test_idempotent_under_reparse(self, sql):
        once = fingerprint_one(sql)
        assert fingerprint_one(once) == once

    def test_literal_insensitivity(self):
        a = fingerprint_one("SELECT a FROM t WHERE b = 1 LIMIT 5 OFFSET 10")
        b = fingerprint_one("SELECT a FROM t WHERE b = 'zzz' LIMIT 500 OFFSET 0")
        assert a == b

    def test_column_list_insensitivity(self):
        assert fingerprint_one("SELECT a FROM t") == fingerprint_one("SELECT a, b, c, d FROM t")

    def test_concurrent_batches_match_sequential(self):
        batch = [
            "SAVEPOINT a",
            "SELECT a FROM t WHERE b = 1",
            "RELEASE SAVEPOINT a",
            "INSERT INTO t (a) VALUES (1)",
        ]
        expected = fingerprint_many(batch)
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(fingerprint_many, [batch] * 32))
        assert all(result == expected for result in results)


# ---------------------------------------------------------------------------
# Render failures
# ---------------------------------------------------------------------------


class _FailingRenderer:
    def render(self, node, dialect=Dialect.GENERIC, *, pretty=False):
        raise SqlRenderError("cannot render")


class _FailingRenderToolkit:
    def __init__(self) -> None:
        base = SqlGlotToolkit()
        self.parser = base.parser
        self.fingerprinter = base.fingerprinter
        self.renderer = _FailingRenderer()


class TestRenderFailure:
    def test_original_is_returned_and_warning_logged(self, caplog):
        register_implementation(_FailingRenderToolkit)
        with caplog.at_level(logging.WARNING, logger="sql_fingerprint.fingerprint"):
            result = fingerprint_many(["SELECT a FROM t WHERE b = 1", "SELECT SELECT"])
        assert result == ["SELECT a FROM t WHERE b = 1", "SELECT SELECT"]
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert warnings[0].batch_index == 0

    def test_empty_input_still_renders_nothing(self):
        register_implementation(_FailingRenderToolkit)
        assert fingerprint_one("") == ""


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


class TestFingerprintHash:
    def test_hash_is_sha256_hex(self):
        digest = compute_fingerprint_hash("SELECT a FROM t")
        assert len(digest) == 64
        assert all(c in "0123456789abcdef" for c in digest)

    def test_hash_is_versioned(self):
        expected = hashlib.sha256(b"sql-fingerprint-v1:SELECT ... FROM t").hexdigest()
        assert compute_fingerprint_hash("SELECT a FROM t") == expected

    def test_equal_fingerprints_hash_equal(self):
        assert compute_fingerprint_hash("SELECT a FROM t WHERE b = 1") == compute_fingerprint_hash(
            "select x, y from t where b = 2"
        )

    def test_different_shapes_hash_differently(self):
        assert compute_fingerprint_hash("SELECT a FROM t") != compute_fingerprint_hash("SELECT a FROM u")

    def test_hash_fingerprint_matches_compute(self):
        sql = "UPDATE t SET a = 1 WHERE b = 2"
        assert hash_fingerprint(fingerprint_one(sql)) == compute_fingerprint_hash(sql)

    def test_explicit_version(self):
        sql = "SELECT 1"
        assert compute_fingerprint_hash(sql, version=FingerprintVersion.V1) == compute_fingerprint_hash(sql)

    def test_version_accessors(self):
        assert CURRENT_VERSION is FingerprintVersion.V1
        assert get_fingerprint_version() == "v1"
