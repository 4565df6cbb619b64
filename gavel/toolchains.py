"""Language tag -> compiler invocation lookup."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType

from gavel.errors import UnsupportedLanguage


@dataclass(frozen=True)
class Toolchain:
    compiler: str
    flags: tuple[str, ...]


_COMMON_FLAGS = ("-O2", "-Wall", "-DONLINE_JUDGE", "-lm")

TOOLCHAINS = MappingProxyType({
    "c": Toolchain("gcc", ("-std=c11", *_COMMON_FLAGS)),
    "c++": Toolchain("g++", ("-std=c++14", *_COMMON_FLAGS)),
    "c++17": Toolchain("g++", ("-std=c++17", *_COMMON_FLAGS)),
    "c++20": Toolchain("g++", ("-std=c++20", *_COMMON_FLAGS)),
})


def resolve_toolchain(language: str) -> Toolchain:
    try:
        return TOOLCHAINS[language]
    except KeyError:
        raise UnsupportedLanguage(language) from None


def supported_languages() -> list[str]:
    return sorted(TOOLCHAINS)
