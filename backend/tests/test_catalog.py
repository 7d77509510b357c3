import json
import tempfile
import unittest
from pathlib import Path

from models import GeoPoint, Place, place_from_dict
from services.catalog import InMemoryPlaceCatalog, load_catalog, parse_records

SAMPLE = Path(__file__).resolve().parent.parent / "data" / "sample_places.json"
CAPITOL_HILL = GeoPoint(lat=47.6230, lon=-122.3204)


class TestPlaceFromDict(unittest.TestCase):
    def test_flat_record(self):
        p = place_from_dict({"id": 7, "lat": "47.6", "lon": -122.3, "categories": ["cafe", "cafe", " bar "], "rating": "4.2"})
        self.assertEqual(p.id, "7")
        self.assertEqual(p.location, GeoPoint(47.6, -122.3))
        self.assertEqual(p.categories, ("cafe", "bar"))
        self.assertEqual(p.rating, 4.2)
        self.assertIsNone(p.is_open_now)

    def test_nested_location_and_synonyms(self):
        p = place_from_dict({"id": "x", "location": {"lat": 1.0, "lng": 2.0}, "category": "park", "isOpenNow": "false"})
        self.assertEqual(p.location, GeoPoint(1.0, 2.0))
        self.assertEqual(p.categories, ("park",))
        self.assertIs(p.is_open_now, False)
        self.assertIsNone(p.rating)

    def test_missing_id_or_coordinates(self):
        with self.assertRaises(ValueError):
            place_from_dict({"lat": 1.0, "lon": 1.0})
        with self.assertRaises(ValueError):
            place_from_dict({"id": "a", "lat": 1.0})


class TestCatalog(unittest.TestCase):
    def test_places_within_radius(self):
        near = Place(id="near", location=GeoPoint(47.6240, -122.3200), categories=("cafe",), rating=4.0)
        far = Place(id="far", location=GeoPoint(47.6652, -122.3972), categories=("cafe",), rating=4.0)
        catalog = InMemoryPlaceCatalog([near, far])
        ids = {p.id for p in catalog.places_within(CAPITOL_HILL, 2000.0)}
        self.assertEqual(ids, {"near"})
        self.assertEqual(len(catalog.places_within(CAPITOL_HILL, 20000.0)), 2)

    def test_bad_query_returns_nothing(self):
        catalog = InMemoryPlaceCatalog([Place(id="a", location=CAPITOL_HILL, categories=("cafe",), rating=4.0)])
        self.assertEqual(catalog.places_within(CAPITOL_HILL, 0), [])
        self.assertEqual(catalog.places_within(GeoPoint(200.0, 0.0), 1000.0), [])

    def test_duplicate_id_keeps_later_record(self):
        first = Place(id="dup", location=CAPITOL_HILL, categories=("cafe",), rating=3.0)
        second = Place(id="dup", location=CAPITOL_HILL, categories=("bar",), rating=4.0)
        catalog = InMemoryPlaceCatalog([first, second])
        self.assertEqual(len(catalog), 1)
        self.assertEqual(catalog.get("dup").categories, ("bar",))
        self.assertIsNone(catalog.get("missing"))

    def test_parse_records_skips_bad_rows(self):
        places = parse_records([{"id": "ok", "lat": 0, "lon": 0}, {"lat": 0, "lon": 0}, "nope"])
        self.assertEqual([p.id for p in places], ["ok"])

    def test_load_sample_catalog(self):
        catalog = load_catalog(SAMPLE)
        # the record without an id is skipped, the unrated one is kept
        self.assertEqual(len(catalog), 9)
        self.assertIsNone(catalog.get("unrated-1").rating)
        self.assertIs(catalog.get("cap-bar-1").is_open_now, False)

    def test_unreadable_categories_skip_only_that_record(self):
        with self.assertRaises(ValueError):
            place_from_dict({"id": "bad", "lat": 0, "lon": 0, "categories": 5})
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "mixed.json"
            path.write_text(
                json.dumps(
                    [
                        {"id": "ok", "lat": 1, "lon": 1, "rating": 4, "categories": ["cafe"]},
                        {"id": "bad", "lat": 1, "lon": 1, "rating": 4, "categories": 5},
                        {"id": "also-bad", "lat": 1, "lon": 1, "rating": 4, "categories": {"a": 1}},
                    ]
                ),
                encoding="utf-8",
            )
            catalog = load_catalog(path)
        self.assertEqual(len(catalog), 1)
        self.assertIsNotNone(catalog.get("ok"))
        self.assertIsNone(catalog.get("bad"))

    def test_places_within_radius_covering_a_pole(self):
        origin = GeoPoint(89.6, 0.0)
        across = Place(id="across", location=GeoPoint(89.97, 180.0), categories=("landmark",), rating=4.0)
        side = Place(id="side", location=GeoPoint(89.85, -90.0), categories=("landmark",), rating=4.0)
        catalog = InMemoryPlaceCatalog([across, side])
        ids = {p.id for p in catalog.places_within(origin, 50000.0)}
        self.assertEqual(ids, {"across", "side"})

    def test_load_plain_list_and_reject_scalars(self):
        with tempfile.TemporaryDirectory() as tmp:
            good = Path(tmp) / "list.json"
            good.write_text(json.dumps([{"id": "a", "lat": 1, "lon": 1, "rating": 4, "categories": ["x"]}]), encoding="utf-8")
            self.assertEqual(len(load_catalog(good)), 1)

            bad = Path(tmp) / "scalar.json"
            bad.write_text("42", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_catalog(bad)


if __name__ == "__main__":
    unittest.main()
