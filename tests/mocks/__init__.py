"""Test doubles for Brigade Observer tests."""

from tests.mocks.fake_kind import FakeKind

__all__ = ["FakeKind"]
