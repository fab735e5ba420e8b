"""Validated quantity types parsed from user-friendly text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, localcontext

_QUANTITY_RE = re.compile(r"^\s*(?P<number>[0-9]+(?:\.[0-9]*)?|\.[0-9]+)\s*(?P<unit>[A-Za-z]*)\s*$")

ONE_TERAGAS = 10**12
ONE_GIGAGAS = 10**9
ONE_NEAR = 10**24
ONE_MILLINEAR = 10**21

_GAS_UNITS = {
    "gas": 1,
    "ggas": ONE_GIGAGAS,
    "gigagas": ONE_GIGAGAS,
    "tgas": ONE_TERAGAS,
    "teragas": ONE_TERAGAS,
}

_TOKEN_UNITS = {
    "near": ONE_NEAR,
    "millinear": ONE_MILLINEAR,
    "yoctonear": 1,
}


def _split_quantity(raw: str, kind: str) -> tuple[Decimal, str]:
    match = _QUANTITY_RE.match(raw)
    if match is None:
        raise ValueError(f"Could not parse {kind} from '{raw}'")
    try:
        number = Decimal(match.group("number"))
    except InvalidOperation as exc:  # pragma: no cover - regex guards the format
        raise ValueError(f"Could not parse {kind} from '{raw}'") from exc
    return number, match.group("unit").lower()


def _scale(number: Decimal, multiplier: int, raw: str, kind: str) -> int:
    with localcontext() as ctx:
        ctx.prec = 80
        scaled = number * multiplier
    if scaled != scaled.to_integral_value():
        raise ValueError(f"'{raw}' is more precise than the smallest {kind} unit")
    return int(scaled)


def format_scaled(value: int, decimals: int) -> str:
    """Exact decimal rendering of *value* / 10**decimals without trailing zeros."""

    whole, fraction = divmod(value, 10**decimals)
    if not fraction:
        return str(whole)
    return f"{whole}.{str(fraction).rjust(decimals, '0').rstrip('0')}"


@dataclass(frozen=True, order=True)
class NearGas:
    """Amount of gas attached to a function call."""

    gas: int

    @classmethod
    def from_tgas(cls, tgas: int) -> "NearGas":
        return cls(tgas * ONE_TERAGAS)

    @classmethod
    def from_str(cls, raw: str) -> "NearGas":
        """Parse values such as ``100 TeraGas``, ``30 Tgas`` or ``5000000 gas``."""

        number, unit = _split_quantity(raw, "gas")
        if not unit:
            raise ValueError(f"Gas amount '{raw}' needs a unit (gas, Ggas, TeraGas)")
        try:
            multiplier = _GAS_UNITS[unit]
        except KeyError as exc:
            raise ValueError(f"Unknown gas unit '{unit}' (expected gas, Ggas or TeraGas)") from exc
        return cls(_scale(number, multiplier, raw, "gas"))

    def as_gas(self) -> int:
        return self.gas

    def __str__(self) -> str:
        return f"{format_scaled(self.gas, 12)} Tgas"


MAX_GAS = NearGas.from_tgas(300)
MAX_GAS_MESSAGE = "You need to enter a value of no more than 300 TeraGas"


def validate_gas(gas: NearGas) -> str | None:
    """Return an error message when *gas* exceeds the protocol ceiling."""

    if gas > MAX_GAS:
        return MAX_GAS_MESSAGE
    return None


@dataclass(frozen=True, order=True)
class NearToken:
    """Amount of the native token, stored in yoctoNEAR."""

    yoctonear: int

    @classmethod
    def from_near(cls, near: int) -> "NearToken":
        return cls(near * ONE_NEAR)

    @classmethod
    def from_millinear(cls, millinear: int) -> "NearToken":
        return cls(millinear * ONE_MILLINEAR)

    @classmethod
    def from_str(cls, raw: str) -> "NearToken":
        """Parse values such as ``10 NEAR``, ``0.5 near`` or ``10000 yoctonear``."""

        number, unit = _split_quantity(raw, "NEAR amount")
        if not unit:
            raise ValueError(f"NEAR amount '{raw}' needs a unit (NEAR, millinear, yoctoNEAR)")
        try:
            multiplier = _TOKEN_UNITS[unit]
        except KeyError as exc:
            raise ValueError(f"Unknown token unit '{unit}' (expected NEAR, millinear or yoctoNEAR)") from exc
        return cls(_scale(number, multiplier, raw, "NEAR"))

    def as_yoctonear(self) -> int:
        return self.yoctonear

    def __str__(self) -> str:
        if 0 < self.yoctonear < ONE_MILLINEAR:
            return f"{self.yoctonear} yoctoNEAR"
        return f"{format_scaled(self.yoctonear, 24)} NEAR"
