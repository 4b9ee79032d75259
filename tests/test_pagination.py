"""Unit tests for page/limit clamping and sort parsing."""

import unittest

from app.core.errors import ValidationFailed
from app.models import User
from app.services.pagination import page_meta, parse_sort, resolve_page


class TestResolvePage(unittest.TestCase):
    def test_defaults(self) -> None:
        request = resolve_page(None, None)
        self.assertEqual((request.page, request.limit, request.offset), (1, 20, 0))

    def test_clamps(self) -> None:
        self.assertEqual(resolve_page(0, 500).limit, 100)
        self.assertEqual(resolve_page(-3, 0).page, 1)
        self.assertEqual(resolve_page(3, 10).offset, 20)

    def test_meta(self) -> None:
        meta = page_meta(resolve_page(2, 10), 25)
        self.assertEqual((meta.page, meta.limit, meta.total, meta.total_pages), (2, 10, 25, 3))
        self.assertEqual(page_meta(resolve_page(1, 10), 0).total_pages, 0)


class TestParseSort(unittest.TestCase):
    allowed = {"email": User.email, "created_at": User.created_at}

    def test_default_and_direction(self) -> None:
        clauses = parse_sort(None, self.allowed, "-created_at")
        self.assertEqual(len(clauses), 1)
        self.assertIn("DESC", str(clauses[0]))
        clauses = parse_sort("email,-created_at", self.allowed, "-created_at")
        self.assertEqual([("DESC" in str(c)) for c in clauses], [False, True])

    def test_unknown_field_rejected(self) -> None:
        with self.assertRaises(ValidationFailed):
            parse_sort("password_hash", self.allowed, "-created_at")


if __name__ == "__main__":
    unittest.main()
