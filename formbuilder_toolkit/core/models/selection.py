from __future__ import annotations

"""The "currently addressed node" value type."""

from dataclasses import dataclass

from formbuilder_toolkit.core.models.nodes import NodeKind

__all__ = ["Selection"]


@dataclass(frozen=True)
class Selection:
    """Tagged reference to a node at one of the five granularities.

    Attributes
    ----------
    kind
        Granularity of the selected node.
    node_id
        Id of the node; a weak reference, the tree stays the source of truth.
    name
        Denormalised display name captured at selection time.
    """

    kind: NodeKind
    node_id: str
    name: str = ""
