import unittest

from storebrowse.routes import (
    Route,
    bucket_hash,
    location_from_arg,
    parse_hash,
    route_hash,
    search_hash,
)


class TestParseHash(unittest.TestCase):
    def test_empty_and_root_render_bucket_listing(self) -> None:
        self.assertEqual(parse_hash(""), Route())
        self.assertEqual(parse_hash("#"), Route())
        self.assertEqual(parse_hash("#/buckets"), Route())
        self.assertEqual(parse_hash("#/buckets/"), Route())

    def test_unknown_prefix_falls_back_to_listing(self) -> None:
        self.assertEqual(parse_hash("#/elsewhere/docs"), Route())

    def test_bucket_without_revision_is_incomplete(self) -> None:
        route = parse_hash("#/buckets/docs")
        self.assertEqual(route.bucket_name, "docs")
        self.assertIsNone(route.revision_str)
        self.assertFalse(route.is_complete)

    def test_full_route(self) -> None:
        route = parse_hash("#/buckets/docs/2000/a/b")
        self.assertEqual(route.bucket_name, "docs")
        self.assertEqual(route.revision_str, "2000")
        self.assertEqual(route.root_dir_segments, ("a", "b"))
        self.assertEqual(route.root_dir, "a/b")
        self.assertTrue(route.is_complete)

    def test_segments_are_decoded_individually(self) -> None:
        route = parse_hash("#/buckets/my%20docs/latest/a%2Fb/c%23d")
        self.assertEqual(route.bucket_name, "my docs")
        self.assertEqual(route.revision_str, "latest")
        self.assertEqual(route.root_dir_segments, ("a/b", "c#d"))

    def test_empty_dir_segments_are_dropped(self) -> None:
        route = parse_hash("#/buckets/docs/latest/a//b/")
        self.assertEqual(route.root_dir_segments, ("a", "b"))

    def test_search_route(self) -> None:
        route = parse_hash("#/search/report%20q1")
        self.assertEqual(route.search_term, "report q1")
        self.assertIsNone(route.bucket_name)
        self.assertEqual(parse_hash("#/search").search_term, "")


class TestBuildHash(unittest.TestCase):
    def test_bucket_hash_encodes_name(self) -> None:
        self.assertEqual(bucket_hash("my docs"), "#/buckets/my%20docs")

    def test_route_hash_encodes_each_segment(self) -> None:
        self.assertEqual(
            route_hash("docs", "2000", ["a b", "c/d"]),
            "#/buckets/docs/2000/a%20b/c%2Fd",
        )

    def test_round_trip(self) -> None:
        cases = [
            ("docs", "2000", ()),
            ("my bucket", "latest", ("a",)),
            ("b%1", "1000", ("x?y", "50% off", "z#1")),
        ]
        for bucket, revision, segments in cases:
            route = parse_hash(route_hash(bucket, revision, segments))
            self.assertEqual(
                (route.bucket_name, route.revision_str, route.root_dir_segments),
                (bucket, revision, segments),
            )

    def test_route_to_hash(self) -> None:
        self.assertEqual(Route().to_hash(), "#/buckets")
        self.assertEqual(Route(bucket_name="docs").to_hash(), "#/buckets/docs")
        self.assertEqual(
            Route(bucket_name="docs").with_revision("latest").to_hash(),
            "#/buckets/docs/latest",
        )
        self.assertEqual(Route(search_term="x y").to_hash(), search_hash("x y"))

    def test_location_from_arg(self) -> None:
        self.assertEqual(location_from_arg(""), "#/buckets")
        self.assertEqual(location_from_arg("docs"), "#/buckets/docs")
        self.assertEqual(location_from_arg("docs/latest/a/b"), "#/buckets/docs/latest/a/b")
        self.assertEqual(location_from_arg("/docs/"), "#/buckets/docs")
        self.assertEqual(location_from_arg("#/buckets/x"), "#/buckets/x")


if __name__ == "__main__":
    unittest.main()
