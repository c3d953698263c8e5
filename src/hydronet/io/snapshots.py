"""
Zone snapshot XML files.

Layout:

    <zone_data>
      <zone label1="1">
        <optional_properties>
          <property name="t9">1.000000000000000e+01</property>
          <property name="x" tag1="0">1.000000000000000e+00</property>
          ...
        </optional_properties>
        <mass_fractions>
          <nuclide name="he4">
            <z>2</z>
            <a>4</a>
            <x>1.000000000000000e+00</x>
          </nuclide>
          ...
        </mass_fractions>
      </zone>
      ...
    </zone_data>

The scale factor and its rate are stored as the tagged property "x" (tags
"0" and "1"). Only nuclides with non-zero mass fraction are written.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple, Union

from hydronet.core.errors import ConfigurationError
from hydronet.zone import PARTICLE, X0, X1, Zone

MASS_FRACTION_FORMAT = "%.15e"

_TAGGED = {X0: ("x", "0"), X1: ("x", "1")}
_UNTAGGED = {tags: name for name, tags in _TAGGED.items()}


@dataclass
class ZoneSnapshot:
    """Properties and mass fractions of a zone at one output dump."""
    label: str
    properties: Dict[str, Union[float, str]] = field(default_factory=dict)
    mass_fractions: Dict[str, Tuple[int, int, float]] = field(default_factory=dict)

    @classmethod
    def from_zone(cls, zone: Zone, label: str) -> "ZoneSnapshot":
        properties: Dict[str, Union[float, str]] = dict(zone.properties)
        properties[PARTICLE] = zone.particle
        mass_fractions = {
            nuc.name: (nuc.z, nuc.a, float(x))
            for nuc, x in zip(zone.network.nuclides, zone.mass_fractions)
            if x > 0.0
        }
        return cls(label=label, properties=properties, mass_fractions=mass_fractions)

    def x(self, name: str) -> float:
        """Mass fraction of a nuclide (0 if absent)."""
        entry = self.mass_fractions.get(name)
        return entry[2] if entry is not None else 0.0


def _format_value(value) -> str:
    if isinstance(value, str):
        return value
    return MASS_FRACTION_FORMAT % value


def _parse_value(text: str) -> Union[float, str]:
    try:
        return float(text)
    except ValueError:
        return text


def snapshots_to_element(snapshots: List[ZoneSnapshot]) -> ET.Element:
    root = ET.Element("zone_data")
    for snap in snapshots:
        zone_el = ET.SubElement(root, "zone", {"label1": snap.label})

        props_el = ET.SubElement(zone_el, "optional_properties")
        for name, value in snap.properties.items():
            attrs = {"name": name}
            if name in _TAGGED:
                attrs = {"name": _TAGGED[name][0], "tag1": _TAGGED[name][1]}
            prop = ET.SubElement(props_el, "property", attrs)
            prop.text = _format_value(value)

        mf_el = ET.SubElement(zone_el, "mass_fractions")
        for name, (z, a, x) in snap.mass_fractions.items():
            nuc_el = ET.SubElement(mf_el, "nuclide", {"name": name})
            ET.SubElement(nuc_el, "z").text = str(z)
            ET.SubElement(nuc_el, "a").text = str(a)
            ET.SubElement(nuc_el, "x").text = MASS_FRACTION_FORMAT % x
    return root


def write_zone_xml(path: Union[str, Path], snapshots: List[ZoneSnapshot]) -> None:
    """Write snapshots to an XML zone-data file, replacing any existing file."""
    root = snapshots_to_element(snapshots)
    ET.indent(root)
    tree = ET.ElementTree(root)
    with open(path, "wb") as f:
        tree.write(f, encoding="utf-8", xml_declaration=True)


def read_zone_xml(path: Union[str, Path]) -> List[ZoneSnapshot]:
    """
    Read the zones of an XML zone-data file in document order.

    Raises:
        ConfigurationError: the file is missing or not a zone-data document.
    """
    try:
        root = ET.parse(path).getroot()
    except (OSError, ET.ParseError) as exc:
        raise ConfigurationError(f"Cannot read zone data from {path}: {exc}") from exc
    if root.tag != "zone_data":
        raise ConfigurationError(f"{path} is not a zone_data document (root <{root.tag}>)")

    snapshots = []
    for zone_el in root.findall("zone"):
        snap = ZoneSnapshot(label=zone_el.get("label1", ""))
        for prop in zone_el.iterfind("optional_properties/property"):
            name = prop.get("name", "")
            tag = prop.get("tag1")
            if tag is not None:
                name = _UNTAGGED.get((name, tag), f"{name} {tag}")
            snap.properties[name] = _parse_value(prop.text or "")
        for nuc_el in zone_el.iterfind("mass_fractions/nuclide"):
            snap.mass_fractions[nuc_el.get("name")] = (
                int(nuc_el.findtext("z")),
                int(nuc_el.findtext("a")),
                float(nuc_el.findtext("x")),
            )
        snapshots.append(snap)
    return snapshots


def initial_mass_fractions(path: Union[str, Path]) -> Dict[str, float]:
    """Mass fractions of the last zone in a zone-data file."""
    snapshots = read_zone_xml(path)
    if not snapshots:
        raise ConfigurationError(f"No zones in {path}")
    return {name: x for name, (_, _, x) in snapshots[-1].mass_fractions.items()}


class SnapshotWriter:
    """
    Collects output dumps and writes them to a zone-data file.

    Each dump is labelled with a running counter starting at 1. With
    `write_every_dump` the file is rewritten after each dump.
    """

    def __init__(self, path: Union[str, Path, None], write_every_dump: bool = False):
        self.path = Path(path) if path is not None else None
        self.write_every_dump = write_every_dump
        self.snapshots: List[ZoneSnapshot] = []

    def dump(self, zone: Zone) -> ZoneSnapshot:
        snap = ZoneSnapshot.from_zone(zone, label=str(len(self.snapshots) + 1))
        self.snapshots.append(snap)
        if self.write_every_dump:
            self.write()
        return snap

    def write(self) -> None:
        if self.path is not None:
            write_zone_xml(self.path, self.snapshots)
