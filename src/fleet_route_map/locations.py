"""
locations.py

Provinces, municipalities and main neighbourhoods of Angola (DPA 2025),
used by the cascading origin/destination pickers. Static data: loaded once
at import, never modified.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from fleet_route_map.models import build_label

# province -> municipality -> neighbourhoods
DIVISIONS: Dict[str, Dict[str, List[str]]] = {
    "Luanda": {
        "Luanda": ["Ingombota", "Maianga", "Rangel", "Samba", "Sambizanga",
                   "Marçal", "Maculusso", "Kinaxixe", "Mutamba", "Prenda"],
        "Belas": ["Benfica", "Futungo", "Morro Bento", "Ramiros"],
        "Cacuaco": ["Centro", "Kikolo", "Funda", "Mulenvos"],
        "Cazenga": ["Centro", "Hoji ya Henda", "Tala Hady", "11 de Novembro"],
        "Kilamba Kiaxi": ["Centro", "Palanca", "Golf", "Sapú"],
        "Talatona": ["Centro", "Camama", "Lar Patriota", "Kilamba"],
        "Viana": ["Centro", "Zango 1", "Zango 2", "Zango 3", "Zango 4", "Zango 5",
                  "Estalagem", "Kikuxi", "Baia"],
        "Mussulo": ["Centro", "Pontas"],
    },
    "Bengo": {
        "Ambriz": ["Centro"],
        "Dande": ["Caxito"],
        "Dembos": ["Centro"],
        "Nambuangongo": ["Centro"],
        "Pango Aluquém": ["Centro"],
        "Bula Atumba": ["Centro"],
    },
    "Benguela": {
        "Benguela": ["Cavaco", "Lobito", "Catumbela", "Praia Morena"],
        "Lobito": ["Restinga", "Compão", "Egipto Praia"],
        "Baía Farta": ["Centro"],
        "Cubal": ["Centro"],
        "Ganda": ["Centro"],
        "Chongorói": ["Centro"],
    },
    "Huambo": {
        "Huambo": ["Centralidade", "São Pedro", "Comandante Cowboy"],
        "Caála": ["Centro"],
        "Ecunha": ["Centro"],
        "Londuimbali": ["Centro"],
        "Longonjo": ["Centro"],
    },
    "Huíla": {
        "Lubango": ["Lage", "Santo António", "Mapunda"],
        "Chibia": ["Centro"],
        "Humpata": ["Centro"],
        "Quipungo": ["Centro"],
        "Matala": ["Centro"],
    },
    "Cabinda": {
        "Cabinda": ["Centro"],
        "Cacongo": ["Lândana"],
        "Buco-Zau": ["Centro"],
        "Belize": ["Centro"],
    },
    "Cuanza Norte": {
        "Ndalatando": ["Centro"],
        "Cambambe": ["Dondo"],
        "Golungo Alto": ["Centro"],
        "Ambaca": ["Centro"],
        "Lucala": ["Centro"],
        "Banga": ["Centro"],
    },
    "Cuanza Sul": {
        "Sumbe": ["Centro"],
        "Porto Amboim": ["Centro"],
        "Amboim": ["Gabela"],
        "Quibala": ["Centro"],
        "Waku Kungo": ["Centro"],
    },
    "Bié": {
        "Kuito": ["Centro"],
        "Camacupa": ["Centro"],
        "Andulo": ["Centro"],
        "Nharea": ["Centro"],
    },
    "Malanje": {
        "Malanje": ["Centro"],
        "Cacuso": ["Centro"],
        "Calandula": ["Centro"],
        "Cangandala": ["Centro"],
    },
    "Uíge": {
        "Uíge": ["Centro"],
        "Negage": ["Centro"],
        "Maquela do Zombo": ["Centro"],
        "Songo": ["Centro"],
    },
    "Zaire": {
        "M'Banza Kongo": ["Centro"],
        "Soyo": ["Centro"],
        "Cuimba": ["Centro"],
    },
    "Lunda Norte": {
        "Dundo": ["Centro"],
        "Cambulo": ["Centro"],
        "Lucapa": ["Centro"],
    },
    "Lunda Sul": {
        "Saurimo": ["Centro"],
        "Muconda": ["Centro"],
        "Dala": ["Centro"],
    },
    "Moxico": {
        "Luena": ["Centro"],
        "Cameia": ["Lumeje"],
        "Cazombo": ["Centro"],
    },
    "Namibe": {
        "Moçâmedes": ["Centro"],
        "Tômbwa": ["Centro"],
        "Bibala": ["Centro"],
    },
    "Cunene": {
        "Ondjiva": ["Centro"],
        "Cuanhama": ["Centro"],
        "Ombadja": ["Centro"],
    },
    "Cuando Cubango": {
        "Menongue": ["Centro"],
        "Cuito Cuanavale": ["Centro"],
        "Dirico": ["Centro"],
    },
    "Kuando Norte": {
        "Lumbala N'Guimbo": ["Centro"],
    },
    "Icolo e Bengo": {
        "Catete": ["Centro"],
        "Bom Jesus": ["Centro"],
        "Calumbo": ["Centro"],
    },
}


@dataclass(frozen=True)
class Municipality:
    name: str
    neighbourhoods: Tuple[str, ...]


@dataclass(frozen=True)
class Province:
    name: str
    municipalities: Tuple[Municipality, ...]


PROVINCES: Tuple[Province, ...] = tuple(
    Province(name, tuple(Municipality(m, tuple(bairros)) for m, bairros in municipios.items()))
    for name, municipios in DIVISIONS.items()
)


# ══════════════════════════════════════════════════════════════════════
# LOOKUPS FOR THE CASCADING SELECTORS
# ══════════════════════════════════════════════════════════════════════

def find_province(name: str) -> Optional[Province]:
    return next((p for p in PROVINCES if p.name == name), None)


def find_municipality(province: str, name: str) -> Optional[Municipality]:
    p = find_province(province)
    if p is None:
        return None
    return next((m for m in p.municipalities if m.name == name), None)


def province_names() -> List[str]:
    return [p.name for p in PROVINCES]


def municipality_names(province: str) -> List[str]:
    p = find_province(province)
    return [m.name for m in p.municipalities] if p else []


def neighbourhood_names(province: str, municipality: str) -> List[str]:
    m = find_municipality(province, municipality)
    return list(m.neighbourhoods) if m else []


def is_valid_selection(province: str, municipality: str = "", neighbourhood: str = "") -> bool:
    """True when the (possibly partial, top-down) selection exists in the hierarchy."""
    if not province or find_province(province) is None:
        return False
    if not municipality:
        return not neighbourhood
    m = find_municipality(province, municipality)
    if m is None:
        return False
    return not neighbourhood or neighbourhood in m.neighbourhoods


def label_for(province: str, municipality: str = "", neighbourhood: str = "") -> str:
    """Location label for a picker selection, e.g. 'Luanda · Viana · Zango 3'."""
    if not is_valid_selection(province, municipality, neighbourhood):
        raise ValueError(f"Unknown location: {province!r} / {municipality!r} / {neighbourhood!r}")
    return build_label(province, municipality, neighbourhood)
