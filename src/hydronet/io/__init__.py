from hydronet.io.snapshots import (
    SnapshotWriter,
    ZoneSnapshot,
    initial_mass_fractions,
    read_zone_xml,
    write_zone_xml,
)

__all__ = [
    "SnapshotWriter",
    "ZoneSnapshot",
    "initial_mass_fractions",
    "read_zone_xml",
    "write_zone_xml",
]
