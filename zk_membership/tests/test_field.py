"""Tests for field element helpers."""

import pytest

from zk_membership import field
from zk_membership.config import FIELD_MODULUS


def test_is_field_element_bounds():
    assert field.is_field_element(0)
    assert field.is_field_element(FIELD_MODULUS - 1)
    assert not field.is_field_element(FIELD_MODULUS)
    assert not field.is_field_element(-1)
    assert not field.is_field_element(True)
    assert not field.is_field_element("1")


def test_require_field_element_errors():
    with pytest.raises(TypeError):
        field.require_field_element(1.0)
    with pytest.raises(TypeError):
        field.require_field_element(False)
    with pytest.raises(ValueError, match="FIELD_MODULUS"):
        field.require_field_element(FIELD_MODULUS)


def test_bytes_codec():
    value = 0x1234
    encoded = field.field_to_bytes(value)
    assert len(encoded) == 32
    assert encoded[-2:] == b"\x12\x34"
    assert field.field_from_bytes(encoded) == value


def test_field_from_bytes_rejects_non_canonical():
    with pytest.raises(ValueError, match="canonical"):
        field.field_from_bytes(FIELD_MODULUS.to_bytes(32, "big"))
    with pytest.raises(ValueError, match="32 bytes"):
        field.field_from_bytes(b"\x01" * 31)


def test_from_be_bytes_mod_order_reduces():
    data = b"\xff" * 32
    expected = int.from_bytes(data, "big") % FIELD_MODULUS
    assert field.from_be_bytes_mod_order(data) == expected
    with pytest.raises(ValueError):
        field.from_be_bytes_mod_order(b"")


def test_inverse():
    assert field.inverse(7) * 7 % FIELD_MODULUS == 1
    with pytest.raises(ZeroDivisionError):
        field.inverse(0)


def test_native_field_operations_reduce():
    ops = field.NATIVE_FIELD
    assert ops.add(FIELD_MODULUS - 1, 2) == 1
    assert ops.mul(FIELD_MODULUS - 1, FIELD_MODULUS - 1) == 1
    assert ops.scale(3, FIELD_MODULUS + 2) == 6
    assert ops.constant(-1) == FIELD_MODULUS - 1
