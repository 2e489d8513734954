"""Data model for an editor flow snapshot.

Mirrors the node/edge shape the workflow editor sends: camelCase keys on
the wire, arbitrary extra fields (icons, positions, app ids) carried through
untouched.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


class NodeKind(str, Enum):
    """Node kinds known to the editor. Unknown kinds are still valid nodes."""

    trigger = "trigger"
    action = "action"
    condition = "condition"
    parallel = "parallel"
    loop = "loop"
    merge = "merge"
    end = "end"
    placeholder = "placeholder"
    custom = "custom"
    wait = "wait"


# kinds that open a branching block
BLOCK_HEAD_KINDS = frozenset(
    kind.value for kind in (NodeKind.condition, NodeKind.parallel, NodeKind.loop)
)

# branch ids written on edges leaving a block head
TRUE_BRANCH = "true"
FALSE_BRANCH = "false"
LOOP_BODY_BRANCH = "loop-output"
LOOP_BYPASS_BRANCH = "loop-bypass"


class NodeData(BaseModel):
    """Open data record attached to every node."""

    model_config = {
        "extra": "allow",
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

    label: str | None = None
    sub_label: str | None = None
    params: dict[str, Any] | None = None

    is_placeholder: bool = False
    is_branch_placeholder: bool = False
    is_merge_placeholder: bool = False
    is_merge_node: bool = False  # set by layout on populated join points

    # cached answer of the merge resolver, owned and invalidated by the editor
    merge_node_id: str | None = None

    @field_validator(
        "is_placeholder",
        "is_branch_placeholder",
        "is_merge_placeholder",
        "is_merge_node",
        mode="before",
    )
    @classmethod
    def _null_flag_is_false(cls, value: Any) -> Any:
        return False if value is None else value


class Node(BaseModel):
    """A step in the flow."""

    model_config = {"extra": "allow"}

    id: str
    type: str | None = None  # NodeKind value, or any editor-specific kind
    data: NodeData = Field(default_factory=NodeData)

    @field_validator("data", mode="before")
    @classmethod
    def _missing_data_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class Edge(BaseModel):
    """A directed connection between two steps."""

    model_config = {
        "extra": "allow",
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

    id: str | None = None
    source: str
    target: str
    branch_id: str | None = None  # which branch of a block head this edge starts


class FlowGraph(BaseModel):
    """the full flow snapshot an edit or query runs against."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    flow_id: str | None = None
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    def node(self, node_id: str) -> Node | None:
        """first node with the given id, if any."""
        return next((n for n in self.nodes if n.id == node_id), None)
