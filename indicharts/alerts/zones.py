"""Zone and crossing classification with hysteresis.

Every level carries a latch recording which side of the level the value is
committed to. A latch only flips once the value travels past the level by
more than the hysteresis margin (``level + margin`` upward, ``level - margin``
downward), and each flip is reported as a crossing. Oscillation inside the
band around a level therefore produces at most one crossing until the value
has retreated past the opposite edge of the band.
"""

from bisect import bisect_right
from typing import Literal, NamedTuple, Optional, Sequence

Direction = Literal["up", "down"]


class Crossing(NamedTuple):
    level: float
    direction: Direction


class Classification(NamedTuple):
    """Result of classifying one indicator value.

    Attributes:
        zone: Zone of the raw value (below / between / above).
        interval: Index of the interval the value falls in (0..len(levels)).
        side: Zone implied by the latches after this value.
        previous_side: Zone implied by the latches before this value
            (None on cold start).
        latches: Latches after this value, aligned with the sorted levels.
        crossings: Latch flips, ordered in the direction of travel.
        cold_start: True when there were no previous latches.
    """

    zone: str
    interval: int
    side: str
    previous_side: Optional[str]
    latches: list[Optional[bool]]
    crossings: list[Crossing]
    cold_start: bool


def zone_of(value: float, levels: Sequence[float]) -> str:
    """Zone of a value relative to ascending levels."""
    if not levels:
        return "between"
    if value < levels[0]:
        return "below"
    if value > levels[-1]:
        return "above"
    return "between"


def side_of(latches: Sequence[Optional[bool]]) -> str:
    """Zone implied by a set of latches."""
    if not latches:
        return "between"
    if latches[0] is False:
        return "below"
    if latches[-1] is True:
        return "above"
    return "between"


class ZoneClassifier:
    """Maps indicator values to zones and crossing events."""

    def classify(
        self,
        value: float,
        levels: Sequence[float],
        margin: float = 0.0,
        previous_latches: Optional[Sequence[Optional[bool]]] = None,
    ) -> Classification:
        """Classify `value` against ascending `levels`.

        Args:
            value: Current indicator value.
            levels: Threshold levels sorted ascending.
            margin: Hysteresis margin in indicator units.
            previous_latches: Latches from the previous evaluation, or None
                for a cold start. Latches that do not line up with `levels`
                (the rule's levels were edited) are treated as a cold start.

        Returns:
            Classification of the value.
        """
        levels = list(levels)
        cold_start = previous_latches is None or len(previous_latches) != len(levels)

        if cold_start:
            latches: list[Optional[bool]] = [value >= level for level in levels]
            return Classification(
                zone=zone_of(value, levels),
                interval=bisect_right(levels, value),
                side=side_of(latches),
                previous_side=None,
                latches=latches,
                crossings=[],
                cold_start=True,
            )

        latches = list(previous_latches)
        crossings: list[Crossing] = []
        for i, level in enumerate(levels):
            latch = latches[i]
            if latch is None:
                latches[i] = value >= level
            elif latch is False and value > level + margin:
                latches[i] = True
                crossings.append(Crossing(level, "up"))
            elif latch is True and value < level - margin:
                latches[i] = False
                crossings.append(Crossing(level, "down"))

        if crossings and crossings[0].direction == "down":
            crossings.reverse()

        return Classification(
            zone=zone_of(value, levels),
            interval=bisect_right(levels, value),
            side=side_of(latches),
            previous_side=side_of(previous_latches),
            latches=latches,
            crossings=crossings,
            cold_start=False,
        )
