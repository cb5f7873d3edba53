# Файл: multicast_store/models/keys.py

from __future__ import annotations

from typing import Any

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

from multicast_store.exceptions import InvalidKeyError


class EUI64:
    """
    64-битный идентификатор устройства (DevEUI).
    Текстовая форма: 16 hex-символов в нижнем регистре.
    """

    __slots__ = ("_value",)

    SIZE = 8

    def __init__(self, value: bytes):
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise InvalidKeyError(f"EUI64 expects bytes, got {type(value).__name__}")
        value = bytes(value)
        if len(value) != self.SIZE:
            raise InvalidKeyError(f"EUI64 must be exactly {self.SIZE} bytes, got {len(value)}")
        self._value = value

    @classmethod
    def from_hex(cls, text: str) -> EUI64:
        text = text.strip()
        if len(text) != cls.SIZE * 2:
            raise InvalidKeyError(f"invalid EUI64 '{text}': expected {cls.SIZE * 2} hex characters")
        try:
            return cls(bytes.fromhex(text))
        except ValueError as e:
            raise InvalidKeyError(f"invalid EUI64 '{text}': {e}") from e

    @classmethod
    def parse(cls, value: Any) -> EUI64:
        """Приводит EUI64 / bytes / hex-строку к EUI64."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls.from_hex(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return cls(value)
        raise InvalidKeyError(f"cannot interpret {value!r} as EUI64")

    def __bytes__(self) -> bytes:
        return self._value

    def __str__(self) -> str:
        return self._value.hex()

    def __repr__(self) -> str:
        return f"EUI64('{self}')"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EUI64):
            return NotImplemented
        return self._value == other._value

    def __lt__(self, other: EUI64) -> bool:
        if not isinstance(other, EUI64):
            return NotImplemented
        return self._value < other._value

    def __hash__(self) -> int:
        return hash(self._value)

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: GetCoreSchemaHandler) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.parse,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )
