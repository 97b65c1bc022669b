import unittest

from megumi.catalog import CatalogService, parse_price
from megumi.errors import InvalidField, InvalidId, MissingField, NotFound
from megumi.store import RecordStore, connect_sql


class ParsePriceTests(unittest.TestCase):
    def test_numbers_and_numeric_strings(self):
        self.assertEqual(parse_price("19.99"), 19.99)
        self.assertEqual(parse_price(" 5 "), 5.0)
        self.assertEqual(parse_price(7), 7.0)
        self.assertEqual(parse_price(0), 0.0)

    def test_blank_is_absent(self):
        self.assertIsNone(parse_price(None))
        self.assertIsNone(parse_price(""))
        self.assertIsNone(parse_price("   "))

    def test_invalid_values(self):
        for value in ["abc", "-1", -0.5, "nan", "inf", True, [1]]:
            with self.subTest(value=value):
                with self.assertRaises(InvalidField):
                    parse_price(value)


class CatalogServiceTests(unittest.TestCase):
    def setUp(self):
        self.catalog = CatalogService(RecordStore(None))

    def test_create_applies_defaults(self):
        product = self.catalog.create(
            {"name": "Shirt", "category": "boys", "price": "19.99"}
        )
        self.assertEqual(product.price, 19.99)
        self.assertEqual(product.description, "")
        self.assertEqual(product.image_url, "")
        self.assertIsNotNone(product.created_at)
        self.assertIsNone(product.updated_at)

    def test_create_requires_name_and_category(self):
        for fields in [{"name": "Shirt"}, {"category": "boys"}, {"name": "", "category": "boys"}]:
            with self.subTest(fields=fields):
                with self.assertRaises(MissingField):
                    self.catalog.create(fields)

    def test_create_then_get_returns_supplied_fields(self):
        created = self.catalog.create(
            {
                "name": "Dress",
                "category": "girls",
                "price": 25,
                "description": "linen",
                "imageUrl": "https://example.test/dress.png",
            }
        )
        fetched = self.catalog.get(created.id)
        self.assertEqual(fetched.name, "Dress")
        self.assertEqual(fetched.category, "girls")
        self.assertEqual(fetched.price, 25.0)
        self.assertEqual(fetched.description, "linen")
        self.assertEqual(fetched.image_url, "https://example.test/dress.png")
        self.assertEqual(fetched.created_at, created.created_at)
        self.assertIsNone(fetched.updated_at)

    def test_list_filters_by_exact_category_newest_first(self):
        first = self.catalog.create({"name": "Shirt", "category": "boys"})
        self.catalog.create({"name": "Dress", "category": "girls"})
        second = self.catalog.create({"name": "Shorts", "category": "boys"})
        self.catalog.create({"name": "Boots", "category": "Boys"})

        boys = self.catalog.list("boys")
        self.assertEqual([p.id for p in boys], [second.id, first.id])
        self.assertEqual(len(self.catalog.list()), 4)
        self.assertEqual(len(self.catalog.list("")), 4)

    def test_list_unknown_category_is_empty(self):
        self.catalog.create({"name": "Shirt", "category": "boys"})
        self.assertEqual(self.catalog.list("girls"), [])

    def test_update_changes_only_supplied_fields(self):
        created = self.catalog.create(
            {"name": "Shirt", "category": "boys", "price": "19.99", "description": "soft"}
        )
        updated = self.catalog.update(created.id, {"price": 9.99})
        self.assertEqual(updated.price, 9.99)
        self.assertEqual(updated.name, "Shirt")
        self.assertEqual(updated.category, "boys")
        self.assertEqual(updated.description, "soft")
        self.assertIsNotNone(updated.updated_at)
        self.assertEqual(self.catalog.get(created.id).price, 9.99)

    def test_update_maps_image_url_and_rejects_empty_name(self):
        created = self.catalog.create({"name": "Shirt", "category": "boys"})
        updated = self.catalog.update(created.id, {"imageUrl": "x.png", "unknown": 1})
        self.assertEqual(updated.image_url, "x.png")
        with self.assertRaises(InvalidField):
            self.catalog.update(created.id, {"name": ""})
        self.assertEqual(self.catalog.get(created.id).name, "Shirt")

    def test_update_missing_product(self):
        with self.assertRaises(NotFound):
            self.catalog.update("missing", {"price": 1})

    def test_delete_then_get_is_not_found(self):
        created = self.catalog.create({"name": "Shirt", "category": "boys"})
        self.catalog.delete(created.id)
        with self.assertRaises(NotFound):
            self.catalog.get(created.id)
        with self.assertRaises(NotFound):
            self.catalog.delete(created.id)


class DurableCatalogTests(unittest.TestCase):
    def setUp(self):
        result = connect_sql("sqlite+pysqlite:///:memory:")
        self.store = RecordStore(lambda: result)
        self.catalog = CatalogService(self.store)

    def tearDown(self):
        self.store.close()

    def test_malformed_id_is_invalid(self):
        with self.assertRaises(InvalidId):
            self.catalog.get("not-a-uuid")

    def test_round_trip_through_durable_backend(self):
        created = self.catalog.create({"name": "Shirt", "category": "boys", "price": "19.99"})
        self.assertEqual(self.catalog.get(created.id).price, 19.99)
        self.catalog.delete(created.id)
        with self.assertRaises(NotFound):
            self.catalog.get(created.id)


if __name__ == "__main__":
    unittest.main()
