"""Catálogos estáticos del dominio Sui.

Tablas inmutables: se leen en runtime pero nunca se mutan.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from core.domain.models import KnownPackage

SUI_COIN_TYPE = "0x2::sui::SUI"

KNOWN_PACKAGES: tuple[KnownPackage, ...] = (
    KnownPackage(id="0x1", name="Sui Standard Library"),
    KnownPackage(id="0x2", name="Sui Framework"),
    KnownPackage(id="0x3", name="Sui System"),
    KnownPackage(
        id="0x1eab094c502c42b29be2535787f3b610c43666d736780829a295552345e612f0",
        name="Cetus DEX",
    ),
    KnownPackage(id="0xdee9", name="DeepBook"),
    KnownPackage(
        id="0xbc3af878b651fd573cf907544ef7656bd8fc910fa095886915994472f2736aba",
        name="Aftermath Finance",
    ),
    KnownPackage(
        id="0x48d39f604d57c96365a6e87f7112836254130635293297a79e49a88880d97970",
        name="Scallop Lending",
    ),
    KnownPackage(
        id="0x0686483134372f7af61937966f10399564f344f62f8350616b3f79020473922c",
        name="Navi Protocol",
    ),
    KnownPackage(
        id="0x153920977232230e9d6b2c62c9339e875f1ec2df887e076722d7159f8c0a9697",
        name="BlueMove",
    ),
)

# Iconos de respaldo por coin type. Solo aportan `icon_url`: nombre, símbolo y
# decimales siempre vienen de una fuente de datos.
FALLBACK_COIN_ICONS: Mapping[str, str] = MappingProxyType(
    {
        SUI_COIN_TYPE: "https://s2.coinmarketcap.com/static/img/coins/64x64/20947.png",
        "0x0000000000000000000000000000000000000000000000000000000000000002::sui::SUI": (
            "https://s2.coinmarketcap.com/static/img/coins/64x64/20947.png"
        ),
        "0xdba34672e30cb065b1f93e3ab55318768fd6fef66c15942c9f7cb846e2f900e7::usdc::USDC": (
            "https://s2.coinmarketcap.com/static/img/coins/64x64/3408.png"
        ),
    }
)


def known_package_name(package_id: str) -> str | None:
    for package in KNOWN_PACKAGES:
        if package.id == package_id:
            return package.name
    return None
