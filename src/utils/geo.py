def calculate_distance(location1: int, location2: int) -> int:
    """Calculate the distance between two profile locations.

    Locations are scalar positions on a single axis measured from a common
    origin, so the distance is the magnitude of their difference.

    Args:
        location1: Location of the first profile.
        location2: Location of the second profile.

    Returns:
        The non-negative distance.
    """
    return abs(location1 - location2)
