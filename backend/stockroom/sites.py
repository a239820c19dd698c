"""Closed registry of sites and the data partitions they own.

Every equipment, withdrawal and user row carries the partition name of
exactly one site. The warehouse partition belongs to administrators and is
never a valid target for engineer sign-up or login.
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional

from .config import Settings, get_settings
from .errors import InvalidSite


logger = logging.getLogger(__name__)

WAREHOUSE_KEY = "WAREHOUSE"

# canonical key -> (display name, settings attribute holding the partition name)
_SITE_TABLE = {
    "ENAM": ("ENAM", "partition_enam"),
    "MINFOPRA": ("MINFOPRA", "partition_minfopra"),
    "SUPPTIC": ("SUP'PTIC", "partition_supptic"),
    "ISMP": ("ISMP", "partition_ismp"),
}
_WAREHOUSE_ENTRY = ("Warehouse", "partition_warehouse")

_NON_ALNUM = re.compile(r"[^0-9A-Za-z]")


@dataclass(frozen=True)
class Site:
    key: str
    display_name: str
    partition: str

    @property
    def is_warehouse(self) -> bool:
        return self.key == WAREHOUSE_KEY


def normalize_site_key(identifier: Optional[str]) -> str:
    return _NON_ALNUM.sub("", identifier or "").upper()


def _build(key: str, entry: tuple[str, str], settings: Settings) -> Site:
    display_name, attr = entry
    return Site(key=key, display_name=display_name, partition=getattr(settings, attr))


def all_sites(settings: Optional[Settings] = None) -> list[Site]:
    settings = settings or get_settings()
    return [_build(key, entry, settings) for key, entry in _SITE_TABLE.items()]


def warehouse(settings: Optional[Settings] = None) -> Site:
    return _build(WAREHOUSE_KEY, _WAREHOUSE_ENTRY, settings or get_settings())


def resolve_site(identifier: Optional[str], settings: Optional[Settings] = None) -> Site:
    key = normalize_site_key(identifier)
    entry = _SITE_TABLE.get(key)
    if entry is None:
        raise InvalidSite(identifier)
    return _build(key, entry, settings or get_settings())


def resolve_partition(identifier: Optional[str], settings: Optional[Settings] = None) -> Site:
    """Like ``resolve_site`` but also accepts the warehouse key."""
    if normalize_site_key(identifier) == WAREHOUSE_KEY:
        return warehouse(settings)
    return resolve_site(identifier, settings)


def validate_registry(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    seen: dict[str, str] = {}
    for site in all_sites(settings) + [warehouse(settings)]:
        if not site.partition or not site.partition.strip():
            raise RuntimeError(f"No partition configured for site {site.key}")
        if site.partition in seen:
            raise RuntimeError(
                f"Sites {seen[site.partition]} and {site.key} share partition {site.partition!r}"
            )
        seen[site.partition] = site.key
    logger.info("site registry ok: %s", ", ".join(f"{k}->{p}" for p, k in seen.items()))
