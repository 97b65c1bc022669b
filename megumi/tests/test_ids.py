import unittest
import uuid

from megumi.errors import InvalidId
from megumi.ids import DurableIdScheme, IdKind, TransientIdScheme


class DurableIdSchemeTests(unittest.TestCase):
    def setUp(self):
        self.ids = DurableIdScheme()

    def test_new_id_round_trips_through_string_form(self):
        new_id = self.ids.new_id()
        self.assertEqual(new_id.kind, IdKind.DURABLE)
        self.assertIsInstance(new_id.value, uuid.UUID)
        self.assertEqual(self.ids.parse_id(str(new_id)), new_id)

    def test_parse_rejects_malformed_ids(self):
        for raw in ["", "abc", "12345", uuid.uuid4().hex, "{%s}" % uuid.uuid4()]:
            with self.subTest(raw=raw):
                with self.assertRaises(InvalidId):
                    self.ids.parse_id(raw)

    def test_parse_accepts_uppercase_canonical_form(self):
        value = uuid.uuid4()
        self.assertEqual(self.ids.parse_id(str(value).upper()).value, value)


class TransientIdSchemeTests(unittest.TestCase):
    def setUp(self):
        self.ids = TransientIdScheme()

    def test_new_ids_are_unique_tokens(self):
        generated = {str(self.ids.new_id()) for _ in range(1000)}
        self.assertEqual(len(generated), 1000)
        for token in list(generated)[:5]:
            self.assertEqual(len(token), 32)

    def test_parse_is_identity(self):
        for raw in ["anything", "", "not-a-uuid"]:
            parsed = self.ids.parse_id(raw)
            self.assertEqual(parsed.kind, IdKind.TRANSIENT)
            self.assertEqual(str(parsed), raw)


if __name__ == "__main__":
    unittest.main()
