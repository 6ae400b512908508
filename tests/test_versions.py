import itertools
import unittest

from goblin.versions import UNKNOWN_VERSION, compare_versions, version_from_filename

SAMPLE = [
    "v0.0.1",
    "0.1",
    "v1",
    "1.0.0",
    "v1.2",
    "1.2.3",
    "v1.10.0",
    "2",
    "v2.0.1",
    "10.0.0",
]


class TestCompareVersions(unittest.TestCase):
    def test_prefix_and_short_form_are_normalized(self) -> None:
        self.assertEqual(compare_versions("v1.2", "1.2.0"), 0)
        self.assertEqual(compare_versions("v1", "1.0.0"), 0)
        self.assertEqual(compare_versions("2", "v2.0"), 0)

    def test_numeric_not_lexicographic(self) -> None:
        self.assertEqual(compare_versions("v1.10.0", "v1.9.9"), 1)
        self.assertEqual(compare_versions("v1.2.3", "v1.2.10"), -1)
        self.assertEqual(compare_versions("10.0.0", "9.99.99"), 1)

    def test_reflexive(self) -> None:
        for v in SAMPLE + [UNKNOWN_VERSION]:
            self.assertEqual(compare_versions(v, v), 0, v)

    def test_antisymmetric(self) -> None:
        for a, b in itertools.product(SAMPLE, repeat=2):
            self.assertEqual(compare_versions(a, b), -compare_versions(b, a), (a, b))

    def test_transitive(self) -> None:
        for a, b, c in itertools.product(SAMPLE, repeat=3):
            if compare_versions(a, b) <= 0 and compare_versions(b, c) <= 0:
                self.assertLessEqual(compare_versions(a, c), 0, (a, b, c))

    def test_unknown_sorts_below_everything(self) -> None:
        for v in SAMPLE + ["latest", "garbage"]:
            self.assertEqual(compare_versions(UNKNOWN_VERSION, v), -1, v)
            self.assertEqual(compare_versions(v, UNKNOWN_VERSION), 1, v)

    def test_non_numeric_components_parse_as_zero(self) -> None:
        self.assertEqual(compare_versions("1.x.3", "1.0.3"), 0)
        self.assertEqual(compare_versions("1.2.3-beta", "1.2.3"), 0)
        self.assertEqual(compare_versions("latest", "0.0.0"), 0)

    def test_only_three_components_are_compared(self) -> None:
        self.assertEqual(compare_versions("1.2.3.4", "1.2.3"), 0)


class TestVersionFromFilename(unittest.TestCase):
    def test_archive_with_prefixed_version(self) -> None:
        self.assertEqual(version_from_filename("rg-v14.1.0.tar.gz", "rg"), "v14.1.0")

    def test_plain_extension(self) -> None:
        self.assertEqual(version_from_filename("tool-1.2.3.zip", "tool"), "1.2.3")

    def test_bare_versioned_binary_keeps_last_component(self) -> None:
        self.assertEqual(version_from_filename("tool-v1.2.0", "tool"), "v1.2.0")

    def test_platform_only_name_is_unknown(self) -> None:
        self.assertEqual(version_from_filename("rg_linux_amd64", "rg"), UNKNOWN_VERSION)
        self.assertEqual(version_from_filename("rg", "rg"), UNKNOWN_VERSION)


if __name__ == "__main__":
    unittest.main()
