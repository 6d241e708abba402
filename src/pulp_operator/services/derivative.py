"""Partial equality between a desired definition and a live object."""

from kubernetes.utils import parse_quantity

# Maps whose values are resource quantities ("1000m" and "1" are the same cpu)
QUANTITY_MAPS = ("requests", "limits")


def quantities_equal(desired, live):
    """Compare two resource quantities by value, falling back to plain equality."""
    if live is None:
        return False
    try:
        return parse_quantity(desired) == parse_quantity(live)
    except (TypeError, ValueError):
        return desired == live


def derivative_match(desired, live, quantities=False):
    """Return True if every field set in ``desired`` equals the same field in ``live``.

    Both sides are plain dicts as produced by ``sanitize_for_serialization``.
    Unset (None) values and empty strings in ``desired`` are unconstrained,
    so fields defaulted by the API server never count as drift. Lists must
    have the same length and match element by element. Values under
    ``requests`` and ``limits`` are compared as resource quantities.
    """
    if desired is None:
        return True

    if isinstance(desired, dict):
        if live is None:
            live = {}
        if not isinstance(live, dict):
            return False
        return all(
            derivative_match(value, live.get(key), quantities=key in QUANTITY_MAPS)
            for key, value in desired.items()
        )

    if isinstance(desired, list):
        if live is None:
            live = []
        if not isinstance(live, list) or len(desired) != len(live):
            return False
        return all(derivative_match(d, l) for d, l in zip(desired, live))

    if isinstance(desired, str) and not desired:
        return True

    if quantities:
        return quantities_equal(desired, live)
    return desired == live


def get_path(obj, path):
    """Fetch a nested value, None if any key on the way is missing."""
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def set_path(obj, path, value):
    """Set a nested value, creating intermediate dicts as needed."""
    for key in path[:-1]:
        obj = obj.setdefault(key, {})
    obj[path[-1]] = value
