"""Static reference set of canonical regions (the 50 US states)."""
from __future__ import annotations

import pathlib
from typing import Dict, Mapping, Tuple

import yaml

from .models import Region

_STATE_ABBREVIATIONS: Dict[str, str] = {
    "Alabama": "AL",
    "Alaska": "AK",
    "Arizona": "AZ",
    "Arkansas": "AR",
    "California": "CA",
    "Colorado": "CO",
    "Connecticut": "CT",
    "Delaware": "DE",
    "Florida": "FL",
    "Georgia": "GA",
    "Hawaii": "HI",
    "Idaho": "ID",
    "Illinois": "IL",
    "Indiana": "IN",
    "Iowa": "IA",
    "Kansas": "KS",
    "Kentucky": "KY",
    "Louisiana": "LA",
    "Maine": "ME",
    "Maryland": "MD",
    "Massachusetts": "MA",
    "Michigan": "MI",
    "Minnesota": "MN",
    "Mississippi": "MS",
    "Missouri": "MO",
    "Montana": "MT",
    "Nebraska": "NE",
    "Nevada": "NV",
    "New Hampshire": "NH",
    "New Jersey": "NJ",
    "New Mexico": "NM",
    "New York": "NY",
    "North Carolina": "NC",
    "North Dakota": "ND",
    "Ohio": "OH",
    "Oklahoma": "OK",
    "Oregon": "OR",
    "Pennsylvania": "PA",
    "Rhode Island": "RI",
    "South Carolina": "SC",
    "South Dakota": "SD",
    "Tennessee": "TN",
    "Texas": "TX",
    "Utah": "UT",
    "Vermont": "VT",
    "Virginia": "VA",
    "Washington": "WA",
    "West Virginia": "WV",
    "Wisconsin": "WI",
    "Wyoming": "WY",
}

# Census FIPS codes, used by the choropleth renderer to join against us-10m topojson ids.
STATE_FIPS: Dict[str, int] = {
    "AL": 1, "AK": 2, "AZ": 4, "AR": 5, "CA": 6, "CO": 8, "CT": 9, "DE": 10,
    "FL": 12, "GA": 13, "HI": 15, "ID": 16, "IL": 17, "IN": 18, "IA": 19,
    "KS": 20, "KY": 21, "LA": 22, "ME": 23, "MD": 24, "MA": 25, "MI": 26,
    "MN": 27, "MS": 28, "MO": 29, "MT": 30, "NE": 31, "NV": 32, "NH": 33,
    "NJ": 34, "NM": 35, "NY": 36, "NC": 37, "ND": 38, "OH": 39, "OK": 40,
    "OR": 41, "PA": 42, "RI": 44, "SC": 45, "SD": 46, "TN": 47, "TX": 48,
    "UT": 49, "VT": 50, "VA": 51, "WA": 53, "WV": 54, "WI": 55, "WY": 56,
}


def build_regions(mapping: Mapping[str, str]) -> Tuple[Region, ...]:
    """Build an immutable region collection from a ``name -> abbreviation`` mapping."""
    regions = []
    seen_abbreviations: set[str] = set()
    for name, abbreviation in mapping.items():
        name = str(name).strip()
        abbreviation = str(abbreviation).strip()
        if not name or not abbreviation:
            raise ValueError(f"Region entries need a name and an abbreviation: {name!r}")
        if abbreviation in seen_abbreviations:
            raise ValueError(f"Duplicate region abbreviation: {abbreviation}")
        seen_abbreviations.add(abbreviation)
        regions.append(Region(name=name, abbreviation=abbreviation))
    return tuple(regions)


US_STATES: Tuple[Region, ...] = build_regions(_STATE_ABBREVIATIONS)


def load_regions(path: str | pathlib.Path | None = None) -> Tuple[Region, ...]:
    """Load the region reference set, defaulting to the built-in US states.

    A custom set is a YAML mapping of full name to abbreviation.
    """
    if path is None:
        return US_STATES
    region_path = pathlib.Path(path)
    if not region_path.exists():
        raise FileNotFoundError(f"Region file not found: {region_path}")
    with region_path.open("r", encoding="utf-8") as handle:
        mapping = yaml.safe_load(handle) or {}
    if not isinstance(mapping, dict):
        raise ValueError(f"Region file must contain a name -> abbreviation mapping: {region_path}")
    return build_regions(mapping)


def abbreviation_lookup(regions: Tuple[Region, ...] = US_STATES) -> Dict[str, str]:
    """Map region names to abbreviations."""
    return {region.name: region.abbreviation for region in regions}
