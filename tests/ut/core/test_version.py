"""版本排序测试 — 固定比较规则的黄金用例"""

from __future__ import annotations

import itertools

import pytest

from rtpkg.core.exceptions import InvalidVersionError, ValidationError
from rtpkg.core.models import Comparison
from rtpkg.core.version import (
    compare_versions,
    highest_version,
    is_outdated,
    is_version_greater,
    sort_versions,
    split_name_and_version,
    validate_name,
    validate_version,
)

GOLDEN_ORDER = [
    "0.9",
    "1.0",
    "1.00",
    "1.0.beta",
    "1.0-rc2",
    "1.0-rc10",
    "1.0.0",
    "1.0.9",
    "1.0.10",
    "1.1",
    "1.1a",
    "2.0",
    "10.0",
]


class TestOrdering:
    def test_golden_sort(self) -> None:
        shuffled = list(reversed(GOLDEN_ORDER))
        assert sort_versions(shuffled) == GOLDEN_ORDER

    def test_sort_reverse(self) -> None:
        assert sort_versions(["1.2", "1.10", "1.9"], reverse=True) == ["1.10", "1.9", "1.2"]

    @pytest.mark.parametrize(("a", "b"), [
        ("1.0.10", "1.0.9"),      # 数字段按整数比较
        ("1.0.0", "1.0.beta"),    # 数字段大于非数字段
        ("1.0-beta", "1.0-alpha"),
        ("1.0-rc10", "1.0-rc2"),
        ("1.0.1", "1.0"),         # 前缀相同，段数多者大
        ("1.00", "1.0"),          # 完全等价时按原始字符串
        ("R12B", "R11B"),
    ])
    def test_greater(self, a: str, b: str) -> None:
        assert is_version_greater(a, b)
        assert not is_version_greater(b, a)
        assert compare_versions(a, b) == 1
        assert compare_versions(b, a) == -1

    def test_equal_only_when_identical(self) -> None:
        assert compare_versions("1.2.3", "1.2.3") == 0
        assert compare_versions("1.0", "1.00") != 0

    def test_total_order(self) -> None:
        """任意两者恰有一种关系，且可传递"""
        for a, b in itertools.product(GOLDEN_ORDER, repeat=2):
            relations = [compare_versions(a, b) < 0, a == b, compare_versions(a, b) > 0]
            assert relations.count(True) == 1
        for a, b, c in itertools.combinations(GOLDEN_ORDER, 3):
            assert compare_versions(a, b) < 0 and compare_versions(b, c) < 0
            assert compare_versions(a, c) < 0

    def test_highest_version(self) -> None:
        assert highest_version(["1.0", "1.2", "1.10", "1.9"]) == "1.10"
        assert highest_version([]) is None

    def test_invalid_version_rejected(self) -> None:
        with pytest.raises(InvalidVersionError):
            compare_versions("1..0", "1.0")


class TestIsOutdated:
    @pytest.mark.parametrize(("local", "remote", "expected"), [
        ("1.0", "1.2", Comparison.LOWER),
        ("1.2", "1.2", Comparison.SAME),
        ("1.10", "1.9", Comparison.HIGHER),
    ])
    def test_relation(self, local: str, remote: str, expected: Comparison) -> None:
        assert is_outdated(local, remote) is expected


class TestValidation:
    @pytest.mark.parametrize("version", ["1", "1.0", "5.6.3", "1.0-rc1", "R12B-5", "1_2"])
    def test_valid_versions(self, version: str) -> None:
        assert validate_version(version) == version

    @pytest.mark.parametrize("version", ["", "1.", ".1", "1..2", "1.0/2", "1 0"])
    def test_invalid_versions(self, version: str) -> None:
        with pytest.raises(InvalidVersionError):
            validate_version(version)

    def test_name(self) -> None:
        assert validate_name("gas_lib") == "gas_lib"
        with pytest.raises(ValidationError):
            validate_name("Gas")
        with pytest.raises(ValidationError):
            validate_name("my-app")

    @pytest.mark.parametrize(("label", "expected"), [
        ("alpha-1.2.0", ("alpha", "1.2.0")),
        ("alpha-1.2.0.tar.gz", ("alpha", "1.2.0")),
        ("erts-5.6.3", ("erts", "5.6.3")),
        ("web_app-2.0-rc1", ("web_app", "2.0-rc1")),
    ])
    def test_split_name_and_version(self, label: str, expected: tuple[str, str]) -> None:
        assert split_name_and_version(label) == expected

    def test_split_rejects_missing_version(self) -> None:
        with pytest.raises(ValidationError, match="<name>-<version>"):
            split_name_and_version("alpha")
