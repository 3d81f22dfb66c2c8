from crudkit.query.builder import Page


class RecordingQuery:
    """QueryBuilder double that records every call, nesting group and relation scopes."""

    def __init__(self, dialect_name="postgresql", rows=None):
        self.dialect_name = dialect_name
        self.rows = list(rows or [])
        self.calls = []
        self.cap = None

    def _child(self):
        return RecordingQuery(self.dialect_name)

    def where_equals(self, column, value):
        self.calls.append(("where_equals", column, value))

    def where_not_equals(self, column, value):
        self.calls.append(("where_not_equals", column, value))

    def where_compare(self, column, operator, value):
        self.calls.append(("where_compare", column, operator, value))

    def where_in(self, column, values):
        self.calls.append(("where_in", column, list(values)))

    def where_not_in(self, column, values):
        self.calls.append(("where_not_in", column, list(values)))

    def where_like(self, column, pattern, *, case_insensitive):
        self.calls.append(("where_like", column, pattern, case_insensitive))

    def where_null(self, column):
        self.calls.append(("where_null", column))

    def where_not_null(self, column):
        self.calls.append(("where_not_null", column))

    def where_between(self, column, lower, upper):
        self.calls.append(("where_between", column, lower, upper))

    def where_json_contains(self, column, key, value):
        self.calls.append(("where_json_contains", column, key, value))

    def where_any(self, build):
        group = self._child()
        build(group)
        self.calls.append(("where_any", group.calls))

    def where_has(self, relation, build):
        scoped = self._child()
        build(scoped)
        self.calls.append(("where_has", relation, scoped.calls))

    def order_by(self, column, direction):
        self.calls.append(("order_by", column, direction))

    def limit(self, count):
        self.cap = count
        self.calls.append(("limit", count))

    def count(self):
        self.calls.append(("count",))
        return len(self.rows)

    def paginate(self, per_page, page=1):
        self.calls.append(("paginate", per_page, page))
        start = (page - 1) * per_page
        stop = start + per_page if self.cap is None else min(start + per_page, self.cap)
        return Page(items=self.rows[start:stop], current_page=page, per_page=per_page)

    def all(self):
        self.calls.append(("all",))
        return list(self.rows if self.cap is None else self.rows[:self.cap])


class Row:
    def __init__(self, **values):
        self.values = values

    def to_dict(self):
        return dict(self.values)

    def to_summary(self):
        return {"id": self.values.get("id")}
