"""Tests for fieldkit/rules.py - validator helpers."""

from __future__ import annotations

import asyncio
from typing import List

import pytest

from fieldkit import ErrorDescriptor, define_field, define_model
from fieldkit.rules import all_of, predicate, type_validator


class TestTypeValidator:
    """Tests for type_validator."""

    def test_accepts_matching_value(self):
        f = define_field("qty", default=3, validator=type_validator(int))()
        assert asyncio.run(f.validate()) is True

    def test_rejects_with_pydantic_details(self):
        f = define_field("qty", default="many", validator=type_validator(int))()
        assert asyncio.run(f.validate()) is False
        [error] = f.validation
        assert error.code == "int_parsing"
        assert error.path == ()

    def test_nested_paths(self):
        f = define_field("codes", default=[1, "x", 3], validator=type_validator(List[int]))()
        asyncio.run(f.validate())
        assert [e.path for e in f.validation] == [(1,)]

    def test_strict(self):
        lax = define_field("n", default="1", validator=type_validator(int))()
        strict = define_field("n", default="1", validator=type_validator(int, strict=True))()
        assert asyncio.run(lax.validate()) is True
        assert asyncio.run(strict.validate()) is False


class TestPredicate:
    """Tests for predicate."""

    def test_custom_message(self):
        check = predicate(lambda v: v >= 0, "Must not be negative", code="min")
        f = define_field("n", default=-1, validator=check)()
        asyncio.run(f.validate())
        assert f.validation == [ErrorDescriptor("Must not be negative", (), "min")]

        f.value = 1
        assert asyncio.run(f.validate()) is True

    def test_async_check(self):
        async def exists(value):
            return value in {"a", "b"}

        f = define_field("code", default="z", validator=predicate(exists, "Unknown code"))()
        assert asyncio.run(f.validate()) is False


class TestAllOf:
    """Tests for all_of."""

    def test_first_failure_wins(self):
        calls = []

        def first(value):
            calls.append("first")
            return "first failed"

        def second(value):
            calls.append("second")
            return True

        f = define_field("x", validator=all_of(first, second))()
        asyncio.run(f.validate())
        assert f.validation == [ErrorDescriptor("first failed")]
        assert calls == ["first"]

    def test_all_pass(self):
        validator = all_of(type_validator(int), predicate(lambda v: v < 10, "Too big"))
        m = define_model({"n": {"default": 5, "validator": validator}})()
        assert asyncio.run(m.validate()) is True

        m.fields["n"].value = 50
        assert asyncio.run(m.validate(force=True)) is False
        assert m.validation["n"]["errors"] == [ErrorDescriptor("Too big")]

    def test_exceptions_propagate(self):
        def broken(value):
            raise RuntimeError("boom")

        f = define_field("x", validator=all_of(broken))()
        with pytest.raises(RuntimeError):
            asyncio.run(f.validate())
