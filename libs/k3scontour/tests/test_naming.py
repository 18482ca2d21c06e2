"""Tests for k3scontour naming helpers."""

import hashlib

import pytest

from k3scontour.naming import MAX_NAME_LENGTH, child_name, domain_hash


class TestChildName:
    def test_short_name(self):
        assert child_name("hello-contour-external-", "foo.example.com") == (
            "hello-contour-external-foo.example.com"
        )

    @pytest.mark.parametrize("parent,suffix", [
        ("hello-contour-external-", "a" * 60),
        ("p" * 70, "-suffix"),
        ("p" * 40, "s" * 30),
        ("short-", "very.long.host.name.under.a.deep.subdomain.example.com"),
    ])
    def test_long_names_are_bounded(self, parent, suffix):
        name = child_name(parent, suffix)
        assert len(name) <= MAX_NAME_LENGTH
        assert not name.endswith("-")

    def test_deterministic(self):
        suffix = "x" * 50
        assert child_name("hello-", suffix) == child_name("hello-", suffix)

    def test_distinct_hosts_get_distinct_names(self):
        parent = "hello-contour-external-"
        a = child_name(parent, "first-very-long-host-name.subdomain.example.com")
        b = child_name(parent, "second-very-long-host-name.subdomain.example.com")
        assert a != b

    def test_long_parent_keeps_suffix(self):
        name = child_name("p" * 70, "-suffix")
        assert name.endswith("-suffix")
        assert hashlib.md5(("p" * 70).encode()).hexdigest() in name

    def test_31_char_suffix_hashes_whole_name(self):
        parent = "my-long-ingress-name-contour-external-"
        suffix = "host-with-31-characters.example"
        assert len(suffix) == 31

        digest = hashlib.md5((parent + suffix).encode()).hexdigest()
        assert child_name(parent, suffix) == parent[:31] + digest

    def test_30_char_suffix_keeps_suffix(self):
        parent = "my-long-ingress-name-contour-external-"
        suffix = "host-with-30-character.example"
        assert len(suffix) == 30

        digest = hashlib.md5(parent.encode()).hexdigest()
        assert child_name(parent, suffix) == parent[:1] + digest + suffix

    def test_truncated_parent_keeps_trailing_dash(self):
        name = child_name("p" * 70, "suffix-")
        assert name.endswith("suffix-")
        assert len(name) == MAX_NAME_LENGTH


class TestDomainHash:
    def test_domain_hash(self):
        assert domain_hash("foo.example.com") == hashlib.sha1(b"foo.example.com").hexdigest()
        assert len(domain_hash("foo.example.com")) == 40
