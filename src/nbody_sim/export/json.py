"""
JSON export and import of body lists.

Format:

    {
      "num_blackholes": 1,
      "bodies": [
        {"mass": 5000000.0, "x": 250.0, "y": 250.0, "vx": 0.0, "vy": 0.0},
        ...
      ]
    }

A bare list of body objects is also accepted on import (num_blackholes = 0).
Only strings are produced and consumed; reading and writing files is left
to the caller.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Optional, Sequence, Union

from ..types import Body, Vector
from ..validation import (
    ConfigurationError,
    InvalidBodyError,
    validate_body,
    validate_num_blackholes,
)

if TYPE_CHECKING:
    from ..simulation import Simulation


def body_to_dict(body: Body) -> dict[str, float]:
    """Flatten a body into a {mass, x, y, vx, vy} dict."""
    return {
        "mass": body.mass,
        "x": body.position.x,
        "y": body.position.y,
        "vx": body.velocity.x,
        "vy": body.velocity.y,
    }


def body_from_dict(data: dict[str, Any]) -> Body:
    """
    Build a body from a {mass, x, y, vx, vy} dict.

    Velocity components default to 0.

    Raises:
        InvalidBodyError: If a required field is missing or not numeric
    """
    try:
        body = Body(
            mass=float(data["mass"]),
            position=Vector(float(data["x"]), float(data["y"])),
            velocity=Vector(float(data.get("vx", 0.0)), float(data.get("vy", 0.0))),
        )
    except KeyError as e:
        raise InvalidBodyError(f"Body is missing field {e.args[0]!r}: {data!r}") from e
    except (TypeError, ValueError) as e:
        raise InvalidBodyError(f"Body has a non-numeric field: {data!r}") from e
    return validate_body(body)


def to_json(
    source: Union[Simulation, Sequence[Body]],
    *,
    num_blackholes: Optional[int] = None,
    indent: Optional[int] = None,
) -> str:
    """
    Export bodies to a JSON string.

    Args:
        source: A simulation, or a sequence of Body values
        num_blackholes: Black hole count to record. Defaults to the
            simulation's count, or 0 for a plain sequence.
        indent: Passed to json.dumps

    Returns:
        JSON string representation of the bodies
    """
    if isinstance(source, Sequence):
        bodies = list(source)
        count = 0
    else:
        bodies = source.bodies()
        count = source.num_blackholes
    if num_blackholes is not None:
        count = num_blackholes

    data = {
        "num_blackholes": count,
        "bodies": [body_to_dict(b) for b in bodies],
    }
    return json.dumps(data, indent=indent)


def from_json(text: str) -> tuple[list[Body], int]:
    """
    Import bodies from a JSON string.

    Returns:
        (bodies, num_blackholes)

    Raises:
        InvalidBodyError: If the document or any body is malformed, or if
            num_blackholes is not in [0, number of bodies]
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidBodyError(f"Invalid JSON: {e}") from e

    if isinstance(data, list):
        records, raw_count = data, 0
    elif isinstance(data, dict) and isinstance(data.get("bodies"), list):
        records = data["bodies"]
        raw_count = data.get("num_blackholes", 0)
    else:
        raise InvalidBodyError("Expected a list of bodies or an object with a 'bodies' list")

    bodies = []
    for record in records:
        if not isinstance(record, dict):
            raise InvalidBodyError(f"Body must be an object, got {record!r}")
        bodies.append(body_from_dict(record))

    if not isinstance(raw_count, int) or isinstance(raw_count, bool):
        raise InvalidBodyError(f"JSON num_blackholes must be an integer, got {raw_count!r}")
    try:
        count = validate_num_blackholes(raw_count, len(bodies))
    except ConfigurationError as e:
        raise InvalidBodyError(f"JSON document has invalid num_blackholes: {e}") from e
    return bodies, count


__all__ = ["body_to_dict", "body_from_dict", "to_json", "from_json"]
