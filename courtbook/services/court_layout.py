"""Court layout view.

Places a facility's courts on a floor grid: courts are grouped by sport in
the order they first appear, and each sport's group is laid out row by row
using that sport's column count from the facility config.
"""
from typing import Dict, List

from courtbook.schemas.availability import CourtTile
from courtbook.schemas.facility import Court, FacilityConfig, Sport
from courtbook.services.availability_service import AvailabilityResolver
from courtbook.services.pricing import sport_display_price

DEFAULT_COLUMNS = 5


def group_by_sport(courts: List[Court]) -> Dict[Sport, List[Court]]:
    groups: Dict[Sport, List[Court]] = {}
    for court in courts:
        groups.setdefault(court.sport, []).append(court)
    return groups


def build_court_layout(
    facility: FacilityConfig,
    resolver: AvailabilityResolver,
    time_value: str,
) -> List[CourtTile]:
    """
    Lay out every court with its status at the given time.

    Args:
        facility: Facility whose courts to place
        resolver: Availability for the selected date
        time_value: Slot start in either clock format

    Returns:
        Tiles in display order; rows continue across sport groups
    """
    tiles = []
    row_offset = 0

    for sport, courts in group_by_sport(facility.courts).items():
        columns = max(1, facility.layout_columns.get(sport, DEFAULT_COLUMNS))
        for index, court in enumerate(courts):
            tiles.append(
                CourtTile(
                    court_id=court.id,
                    court_name=court.name,
                    sport=court.sport,
                    row=row_offset + index // columns,
                    column=index % columns,
                    status=resolver.slot_status(court.id, time_value),
                    display_price=sport_display_price(court.sport),
                )
            )
        row_offset += (len(courts) + columns - 1) // columns

    return tiles
