"""Process graph: steps, connections and boundary validation.

The map editor owns the value stream and hands it to the simulation as
a ProcessGraph. Ranges are checked when the records are constructed so
the engine can assume well-formed input.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from vsmsim.core.entities import ConnectionType


# Keys of the editor's JSON-shaped map, mapped to dataclass fields
STEP_FIELD_MAP: Dict[str, str] = {
    "id": "id",
    "name": "name",
    "type": "type",
    "description": "description",
    "processTime": "process_time",
    "leadTime": "lead_time",
    "percentCompleteAccurate": "percent_complete_accurate",
    "queueSize": "queue_size",
    "batchSize": "batch_size",
    "peopleCount": "people_count",
}

CONNECTION_FIELD_MAP: Dict[str, str] = {
    "id": "id",
    "source": "source",
    "target": "target",
    "type": "type",
    "reworkRate": "rework_rate",
}


@dataclass
class Step:
    """A single process step in the value stream.

    Attributes:
        id: Unique step identifier.
        name: Display name.
        process_time: Hands-on work time (minutes).
        lead_time: Total elapsed time including waiting (minutes).
        percent_complete_accurate: %C&A quality metric (0-100).
        queue_size: Items waiting to enter (informational only).
        batch_size: Items processed together (descriptive).
        people_count: Staff assigned to the step (descriptive).
        type: Step category from the editor (development, testing, ...).
        description: Free text.
    """
    id: str
    name: str
    process_time: float = 0.0
    lead_time: float = 0.0
    percent_complete_accurate: float = 100.0
    queue_size: int = 0
    batch_size: int = 1
    people_count: int = 1
    type: str = "custom"
    description: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Step id must not be empty")
        if not self.name:
            raise ValueError(f"Step {self.id}: name must not be empty")
        if self.process_time < 0:
            raise ValueError(
                f"Step {self.id}: process_time must be >= 0, got {self.process_time}"
            )
        if self.lead_time < self.process_time:
            raise ValueError(
                f"Step {self.id}: lead_time ({self.lead_time}) must be >= "
                f"process_time ({self.process_time})"
            )
        if not 0 <= self.percent_complete_accurate <= 100:
            raise ValueError(
                f"Step {self.id}: percent_complete_accurate must be in [0, 100], "
                f"got {self.percent_complete_accurate}"
            )
        if self.queue_size < 0:
            raise ValueError(f"Step {self.id}: queue_size must be >= 0")
        if self.batch_size < 1:
            raise ValueError(f"Step {self.id}: batch_size must be >= 1")
        if self.people_count < 1:
            raise ValueError(f"Step {self.id}: people_count must be >= 1")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Step":
        """Build a Step from an editor record (camelCase keys)."""
        kwargs = {
            attr: data[key] for key, attr in STEP_FIELD_MAP.items()
            if data.get(key) is not None
        }
        # Older maps omit lead time; it can never be below process time
        kwargs.setdefault("lead_time", kwargs.get("process_time", 0.0))
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to an editor record (camelCase keys)."""
        return {key: getattr(self, attr) for key, attr in STEP_FIELD_MAP.items()}


@dataclass
class Connection:
    """Directed link between two steps.

    Attributes:
        id: Unique connection identifier.
        source: Id of the step work leaves.
        target: Id of the step work enters.
        type: FORWARD or REWORK.
        rework_rate: Rework percentage shown on the map (0-100). Display
            only: the rework decision is driven by the source step's %C&A.
    """
    id: str
    source: str
    target: str
    type: Union[ConnectionType, str] = ConnectionType.FORWARD
    rework_rate: float = 0.0

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Connection id must not be empty")
        if not self.source or not self.target:
            raise ValueError(f"Connection {self.id}: source and target are required")
        try:
            self.type = ConnectionType(self.type)
        except ValueError:
            raise ValueError(
                f"Connection {self.id}: unknown type {self.type!r}"
            ) from None
        if not 0 <= self.rework_rate <= 100:
            raise ValueError(
                f"Connection {self.id}: rework_rate must be in [0, 100], "
                f"got {self.rework_rate}"
            )

    @property
    def is_rework(self) -> bool:
        return self.type is ConnectionType.REWORK

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Connection":
        """Build a Connection from an editor record (camelCase keys)."""
        kwargs = {
            attr: data[key] for key, attr in CONNECTION_FIELD_MAP.items()
            if data.get(key) is not None
        }
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to an editor record (camelCase keys)."""
        record = {key: getattr(self, attr) for key, attr in CONNECTION_FIELD_MAP.items()}
        record["type"] = self.type.value
        return record


@dataclass
class ProcessGraph:
    """The value stream: ordered steps plus the connections between them.

    The first step in list order is the entry point for new work items.
    A graph is treated as read-only for the duration of a run; use
    clone() to derive a what-if copy.

    Attributes:
        steps: Process steps in flow order.
        connections: Forward and rework links.
        id: Map identifier from the editor, if any.
        name: Map name.
    """
    steps: List[Step] = field(default_factory=list)
    connections: List[Connection] = field(default_factory=list)
    id: Optional[str] = None
    name: str = ""

    def __post_init__(self) -> None:
        step_ids = [s.id for s in self.steps]
        if len(set(step_ids)) != len(step_ids):
            raise ValueError("Step ids must be unique")

        known = set(step_ids)
        outgoing = set()
        for conn in self.connections:
            if conn.source not in known or conn.target not in known:
                raise ValueError(
                    f"Connection {conn.id} references unknown step "
                    f"({conn.source} -> {conn.target})"
                )
            # The engine looks up "the" forward/rework target of a step
            key = (conn.source, conn.type)
            if key in outgoing:
                raise ValueError(
                    f"Step {conn.source} has more than one {conn.type.value} connection"
                )
            outgoing.add(key)

    @property
    def first_step_id(self) -> Optional[str]:
        """Entry step id, or None for an empty graph."""
        return self.steps[0].id if self.steps else None

    def get_step(self, step_id: str) -> Optional[Step]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def clone(self) -> "ProcessGraph":
        """Deep copy with no shared mutable structure."""
        return copy.deepcopy(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProcessGraph":
        """Build a graph from the editor's JSON-shaped map.

        Raises:
            ValueError: If the structure is invalid or any record fails
                range validation.
        """
        valid, errors = validate_vsm_data(data)
        if not valid:
            raise ValueError("Invalid value stream map: " + "; ".join(errors))
        return cls(
            steps=[Step.from_dict(s) for s in data["steps"]],
            connections=[Connection.from_dict(c) for c in data["connections"]],
            id=data.get("id"),
            name=data.get("name") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "steps": [s.to_dict() for s in self.steps],
            "connections": [c.to_dict() for c in self.connections],
        }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_vsm_data(data: Any) -> Tuple[bool, List[str]]:
    """Structural validation of a JSON-shaped value stream map.

    Args:
        data: Decoded map, normally a dict.

    Returns:
        Tuple of (valid, errors). errors is empty when valid is True.
    """
    errors: List[str] = []

    if not isinstance(data, dict):
        return False, ["Data must be an object"]

    for key in ("id", "name", "steps", "connections"):
        if key not in data:
            errors.append(f"Missing field: {key}")

    steps = data.get("steps")
    connections = data.get("connections")
    if "steps" in data and not isinstance(steps, list):
        errors.append("steps must be an array")
    if "connections" in data and not isinstance(connections, list):
        errors.append("connections must be an array")

    if isinstance(steps, list):
        for index, step in enumerate(steps):
            if not isinstance(step, dict):
                errors.append(f"Step {index}: must be an object")
                continue
            if not step.get("id"):
                errors.append(f"Step {index}: missing id")
            if not step.get("name"):
                errors.append(f"Step {index}: missing name")
            for key in ("processTime", "leadTime"):
                if key in step and not _is_number(step[key]):
                    errors.append(f"Step {index}: {key} must be a number")

    if isinstance(connections, list):
        for index, conn in enumerate(connections):
            if not isinstance(conn, dict):
                errors.append(f"Connection {index}: must be an object")
                continue
            for key in ("id", "source", "target"):
                if not conn.get(key):
                    errors.append(f"Connection {index}: missing {key}")

    return len(errors) == 0, errors


def sanitize_vsm_data(data: Any) -> Dict[str, Any]:
    """Normalise a map with safe defaults for missing or mistyped fields."""
    if not isinstance(data, dict):
        data = {}

    return {
        "id": data.get("id") or None,
        "name": data.get("name") or "",
        "description": data.get("description") or "",
        "steps": data["steps"] if isinstance(data.get("steps"), list) else [],
        "connections": (
            data["connections"] if isinstance(data.get("connections"), list) else []
        ),
        "createdAt": data.get("createdAt") or None,
        "updatedAt": data.get("updatedAt") or None,
    }
