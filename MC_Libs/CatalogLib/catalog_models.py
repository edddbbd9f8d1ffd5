"""
Catalog data models for Minifig Composer.

Mirrors the record shapes returned by the Rebrickable catalog API. The
composer treats these as opaque inputs; only the part image URL, name and
color are read.

Classes:
    PartColor: Color of a part instance
    CatalogPart: Catalog part definition
    MinifigPart: A part as it appears in one minifig's inventory
    Minifig: Minifig summary record
"""

from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Optional


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k in cls.__dataclass_fields__}


@dataclass
class PartColor:
    id: int = 0
    name: str = ""
    rgb: str = ""
    is_trans: bool = False
    external_ids: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PartColor":
        return cls(**_known_fields(cls, data))


@dataclass
class CatalogPart:
    part_num: str = ""
    name: str = ""
    part_img_url: str = ""
    part_cat_id: int = 0
    part_url: str = ""
    external_ids: Dict[str, Any] = field(default_factory=dict)
    print_of: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CatalogPart":
        filtered = _known_fields(cls, data)
        # The API reports parts without artwork as null
        filtered["part_img_url"] = filtered.get("part_img_url") or ""
        return cls(**filtered)


@dataclass
class MinifigPart:
    """A part entry from a minifig inventory.

    Attributes:
        part: The catalog part definition
        color: Color of this instance
        quantity: Number of copies in the minifig
        set_num: Minifig the entry belongs to
    """
    part: CatalogPart = field(default_factory=CatalogPart)
    color: PartColor = field(default_factory=PartColor)
    id: int = 0
    inv_part_id: int = 0
    set_num: str = ""
    quantity: int = 1
    is_spare: bool = False
    element_id: str = ""
    num_sets: int = 0

    @property
    def image_url(self) -> str:
        return self.part.part_img_url

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MinifigPart":
        filtered = _known_fields(cls, data)
        filtered["part"] = CatalogPart.from_dict(data.get("part") or {})
        filtered["color"] = PartColor.from_dict(data.get("color") or {})
        filtered["element_id"] = filtered.get("element_id") or ""
        return cls(**filtered)


@dataclass
class Minifig:
    set_num: str = ""
    name: str = ""
    num_parts: int = 0
    set_img_url: str = ""
    set_url: str = ""
    last_modified_dt: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Minifig":
        filtered = _known_fields(cls, data)
        filtered["set_img_url"] = filtered.get("set_img_url") or ""
        return cls(**filtered)
