"""Credit card type table and the Luhn (mod 10) checksum."""
from __future__ import annotations

import re
from functools import cached_property
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from fieldcheck.errors import InvalidCardTableError

TABLE_KEY = "credit_cards"
DEFAULT_TYPE = "default"


class CardType(BaseModel):
    """One entry of the credit_cards table."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    length: str
    prefix: str = ""
    luhn: bool = True

    @field_validator("length", mode="before")
    @classmethod
    def lengths_as_text(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        if isinstance(v, (list, tuple)):
            return ",".join(str(n) for n in v)
        return v

    @field_validator("prefix")
    @classmethod
    def prefix_compiles(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as exc:
            raise ValueError(f"bad prefix pattern: {exc}") from exc
        return v

    @cached_property
    def lengths(self) -> frozenset[int]:
        return frozenset(int(n) for n in re.split(r"\D+", self.length) if n)

    @cached_property
    def prefix_pattern(self) -> re.Pattern:
        return re.compile(f"(?:{self.prefix})")

    def accepts(self, digits: str) -> bool:
        if len(digits) not in self.lengths:
            return False
        if not self.prefix_pattern.match(digits):
            return False
        return not self.luhn or luhn_valid(digits)


def card_type(table: Mapping[str, Any], name: str) -> CardType | None:
    """Look up a card type by case-insensitive name. None when unknown."""
    key = name.lower()
    entry = table.get(key)
    if entry is None:
        entry = next((v for k, v in table.items() if str(k).lower() == key), None)
    if entry is None:
        return None
    try:
        return CardType.model_validate(entry)
    except ValidationError as exc:
        raise InvalidCardTableError.malformed(key, str(exc.errors()[0]["msg"]), cause=exc) from exc


def luhn_checksum(digits: str) -> int:
    """Sum digits from the right, doubling every second one (minus 9 when >= 10)."""
    checksum = 0
    for position, char in enumerate(reversed(digits)):
        digit = int(char)
        if position % 2:
            digit *= 2
            if digit >= 10:
                digit -= 9
        checksum += digit
    return checksum


def luhn_valid(digits: str) -> bool:
    return luhn_checksum(digits) % 10 == 0
