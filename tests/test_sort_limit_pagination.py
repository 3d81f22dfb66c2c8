import unittest

from crudkit.core.errors import InvalidPaginationError, SerializationMethodError
from crudkit.query.limits import apply_limit
from crudkit.query.pagination import Paginator, paginate
from crudkit.query.sorting import SortClause, apply_sort, parse_sort
from tests.fakes import RecordingQuery, Row


class SortTests(unittest.TestCase):
    def test_order_is_preserved(self):
        query = RecordingQuery()
        apply_sort(query, "category,-price,name")
        self.assertEqual(
            query.calls,
            [("order_by", "category", "ASC"), ("order_by", "price", "DESC"), ("order_by", "name", "ASC")],
        )

    def test_empty_tokens_are_ignored(self):
        self.assertEqual(parse_sort("name,,price"), parse_sort("name,price"))
        self.assertEqual(parse_sort(" name , -price "), (SortClause("name", "ASC"), SortClause("price", "DESC")))
        self.assertEqual(parse_sort("-"), ())

    def test_camel_case_fields(self):
        self.assertEqual(parse_sort("-createdAt"), (SortClause("created_at", "DESC"),))

    def test_empty_sort_applies_no_ordering(self):
        # Unordered searches fall back to the store's natural order, which is not guaranteed stable.
        for raw in ("", None, " , "):
            query = RecordingQuery()
            apply_sort(query, raw)
            self.assertEqual(query.calls, [])


class LimitTests(unittest.TestCase):
    def test_positive_limit_is_applied(self):
        query = RecordingQuery()
        apply_limit(query, 5)
        self.assertEqual(query.calls, [("limit", 5)])

    def test_non_positive_or_missing_limit_is_a_no_op(self):
        for raw in (None, 0, -3, True):
            query = RecordingQuery()
            apply_limit(query, raw)
            self.assertEqual(query.calls, [])


class PaginationTests(unittest.TestCase):
    def _rows(self, count):
        return [Row(id=index) for index in range(1, count + 1)]

    def test_first_page_metadata(self):
        query = RecordingQuery(rows=self._rows(50))
        result = paginate(query, 10)
        self.assertEqual(result.meta, {"current": 1, "perPage": 10, "pagesCount": 5, "count": 50})
        self.assertEqual([row["id"] for row in result.rows], list(range(1, 11)))
        self.assertEqual(query.calls, [("count",), ("paginate", 10, 1)])

    def test_partial_last_page(self):
        result = paginate(RecordingQuery(rows=self._rows(45)), 20, page=3)
        self.assertEqual(result.meta, {"current": 3, "perPage": 20, "pagesCount": 3, "count": 45})
        self.assertEqual(len(result.rows), 5)

    def test_page_beyond_last_is_empty_not_an_error(self):
        result = paginate(RecordingQuery(rows=self._rows(50)), 10, page=9)
        self.assertEqual(result.rows, [])
        self.assertEqual(result.meta, {"current": 9, "perPage": 10, "pagesCount": 5, "count": 50})

    def test_no_rows(self):
        result = paginate(RecordingQuery(), 10)
        self.assertEqual(result.rows, [])
        self.assertEqual(result.meta, {"current": 1, "perPage": 10, "pagesCount": 0, "count": 0})

    def test_page_below_one_is_clamped(self):
        result = paginate(RecordingQuery(rows=self._rows(3)), 10, page=0)
        self.assertEqual(result.meta["current"], 1)

    def test_skip_pagination_returns_everything_with_empty_meta(self):
        query = RecordingQuery(rows=self._rows(50))
        result = paginate(query, 10, skip_pagination=True)
        self.assertEqual(result.meta, {})
        self.assertEqual(len(result.rows), 50)
        self.assertEqual(query.calls, [("all",)])

    def test_row_cap_holds_in_paged_mode(self):
        query = RecordingQuery(rows=self._rows(10))
        apply_sort(query, "id")
        apply_limit(query, 3)
        result = paginate(query, 10)
        self.assertEqual([row["id"] for row in result.rows], [1, 2, 3])
        self.assertEqual(result.meta["count"], 10)
        self.assertEqual(
            query.calls,
            [("order_by", "id", "ASC"), ("limit", 3), ("count",), ("paginate", 10, 1)],
        )

    def test_row_cap_cuts_later_pages(self):
        query = RecordingQuery(rows=self._rows(10))
        apply_limit(query, 3)
        self.assertEqual([row["id"] for row in paginate(query, 2, page=2).rows], [3])
        self.assertEqual(paginate(query, 2, page=3).rows, [])

    def test_custom_serialization_method(self):
        result = paginate(RecordingQuery(rows=self._rows(2)), 10, "to_summary")
        self.assertEqual(result.rows, [{"id": 1}, {"id": 2}])

    def test_missing_serialization_method_is_fatal(self):
        with self.assertRaises(SerializationMethodError) as ctx:
            paginate(RecordingQuery(rows=self._rows(1)), 10, "to_csv_row")
        self.assertEqual(ctx.exception.method, "to_csv_row")
        self.assertEqual(ctx.exception.status_code, 500)

    def test_invalid_page_size(self):
        for per_page in (0, -1):
            with self.assertRaises(InvalidPaginationError):
                paginate(RecordingQuery(rows=self._rows(1)), per_page)

    def test_paginator_resets_state_between_calls(self):
        paginator = Paginator()
        paginator.build(RecordingQuery(rows=self._rows(12)), 5)
        self.assertEqual(len(paginator.rows), 5)
        self.assertEqual(paginator.meta["count"], 12)

        paginator.build(RecordingQuery(rows=self._rows(2)), 5, skip_pagination=True)
        self.assertEqual(len(paginator.rows), 2)
        self.assertEqual(paginator.meta, {})


if __name__ == "__main__":
    unittest.main()
