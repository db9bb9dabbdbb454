"""Tests for provisioner.environment module."""

from __future__ import annotations

from pathlib import Path

from provisioner.environment import bin_overlay, compose, runtime_overlay
from provisioner.models import EnvironmentOverlay, RootDir


class TestCompose:
    def test_order_is_provisioning_order(self):
        runtime = runtime_overlay(Path("/tmp/otp-26.2.1"))
        compiler = bin_overlay(Path("/tmp/elixir-1.16.0"))
        hypervisor = bin_overlay(Path("/tmp/qemu-8.2.0"))
        merged = compose(runtime, compiler, hypervisor)
        assert merged.path_prepends == (
            "/tmp/otp-26.2.1/usr/local/bin",
            "/tmp/elixir-1.16.0/bin",
            "/tmp/qemu-8.2.0/bin",
        )
        assert merged.root_dir == RootDir("ERL_ROOTDIR", "/tmp/otp-26.2.1/usr/local/lib/erlang")

    def test_later_root_dir_overrides(self):
        first = EnvironmentOverlay(("/a",), RootDir("ERL_ROOTDIR", "/first"))
        second = EnvironmentOverlay(("/b",), RootDir("ERL_ROOTDIR", "/second"))
        assert compose(first, second).root_dir == RootDir("ERL_ROOTDIR", "/second")

    def test_overlay_without_root_keeps_previous(self):
        first = EnvironmentOverlay(("/a",), RootDir("ERL_ROOTDIR", "/first"))
        assert compose(first, EnvironmentOverlay(("/b",))).root_dir.value == "/first"

    def test_repeated_entry_keeps_first_position(self):
        merged = compose(EnvironmentOverlay(("/a", "/b")), EnvironmentOverlay(("/c", "/a")))
        assert merged.path_prepends == ("/a", "/b", "/c")

    def test_empty(self):
        assert compose() == EnvironmentOverlay()

    def test_inputs_not_mutated(self):
        first = EnvironmentOverlay(("/a",))
        compose(first, EnvironmentOverlay(("/b",)))
        assert first.path_prepends == ("/a",)


class TestApply:
    def test_prepends_to_inherited_path(self):
        env = EnvironmentOverlay(("/x", "/y")).apply({"PATH": "/usr/bin", "LANG": "C"})
        assert env == {"PATH": "/x:/y:/usr/bin", "LANG": "C"}

    def test_without_inherited_path(self):
        assert EnvironmentOverlay(("/x",)).apply({})["PATH"] == "/x"

    def test_base_not_mutated(self):
        base = {"PATH": "/usr/bin"}
        EnvironmentOverlay(("/x",), RootDir("ERL_ROOTDIR", "/r")).apply(base)
        assert base == {"PATH": "/usr/bin"}

    def test_empty_overlay_copies_base(self):
        base = {"PATH": "/usr/bin"}
        env = EnvironmentOverlay().apply(base)
        assert env == base
        assert env is not base
