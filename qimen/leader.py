"""Decade leader, instrument and void branches for a chart's reference pair."""

from dataclasses import dataclass

from qimen.plates import Layout
from qimen.sexagenary import (
    Pillar,
    decade_leader,
    instrument_for,
    void_branches,
)


@dataclass(frozen=True)
class LeaderInfo:
    reference: Pillar
    leader: Pillar
    instrument: str
    void_branches: tuple  # two branch characters
    chief_region: int  # earth region of the instrument, center aliased to 2

    def to_dict(self):
        return {
            "reference_pair": self.reference.chinese,
            "leader": self.leader.chinese,
            "instrument": self.instrument,
            "void_branches": list(self.void_branches),
            "chief_region": self.chief_region,
        }


def resolve_leader(reference: Pillar, earth: Layout) -> LeaderInfo:
    leader = decade_leader(reference)
    instrument = instrument_for(leader).chinese
    return LeaderInfo(
        reference=reference,
        leader=leader,
        instrument=instrument,
        void_branches=tuple(b.chinese for b in void_branches(leader)),
        chief_region=earth.region_of(instrument),
    )
