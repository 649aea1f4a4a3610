from enum import Enum as PyEnum


class CapacityTier(str, PyEnum):
    """
    Size class of a room, derived from its numeric capacity.

    Values
    ------
    small
        1 to 6 people.
    medium
        7 to 15 people.
    large
        16 people and above.
    """
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


# (tier, min, max) inclusive bounds
TIER_BOUNDS = (
    (CapacityTier.SMALL, 1, 6),
    (CapacityTier.MEDIUM, 7, 15),
    (CapacityTier.LARGE, 16, 50),
)

TIER_DESCRIPTIONS = {
    CapacityTier.SMALL: "Small Meeting Room",
    CapacityTier.MEDIUM: "Medium Conference Room",
    CapacityTier.LARGE: "Large Boardroom",
}


def classify(capacity: int) -> CapacityTier:
    """
    Map a room capacity to its capacity tier.

    Capacities above the LARGE upper bound still classify as LARGE.

    Parameters
    ----------
    capacity : int
        Number of people the room holds (at least 1).

    Returns
    -------
    CapacityTier
        The tier whose bounds contain the capacity.

    Raises
    ------
    ValueError
        If capacity is below 1.
    """
    if capacity < 1:
        raise ValueError("capacity must be at least 1")

    for tier, low, high in TIER_BOUNDS:
        if low <= capacity <= high:
            return tier
    return CapacityTier.LARGE


def tier_label(tier: CapacityTier) -> str:
    for candidate, low, high in TIER_BOUNDS:
        if candidate == tier:
            return f"{TIER_DESCRIPTIONS[tier]} ({low}-{high} people)"
    return tier.value
