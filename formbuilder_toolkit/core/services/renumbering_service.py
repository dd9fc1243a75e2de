from __future__ import annotations

"""Order-field maintenance for the form tree.

After any structural change the children of every touched container must
carry contiguous order fields ``1..n`` matching their position, and each
child must point at its container through ``parent_id``. This module is the
only place that writes those two fields.

The functions are pure with respect to the published snapshot: they act on a
:class:`~formbuilder_toolkit.core.models.tree.TreeDraft` (or return new node
objects) and are idempotent.
"""

import dataclasses
import logging
from typing import Dict, List, Optional, Sequence

from formbuilder_toolkit.core.models import FormTree, Node, NodeKind, TreeDraft
from formbuilder_toolkit.core.models.nodes import CONTAINER_KINDS, child_kind

__all__ = ["renumbered", "renumber_container", "renumber_touched", "check_invariants"]

logger = logging.getLogger(__name__)


def renumbered(children: Sequence[Node], parent_id: str) -> List[Node]:
    """Return *children* with order fields ``1..n`` and ``parent_id`` set.

    Nodes that already carry the right values are returned as-is, so a
    renumbering of a consistent container produces no new objects.
    """
    result: List[Node] = []
    for position, child in enumerate(children, start=1):
        order_field = child.ORDER_FIELD
        changes = {}
        if order_field is not None and getattr(child, order_field) != position:
            changes[order_field] = position
        if child.parent_id != parent_id:
            changes["parent_id"] = parent_id
        result.append(dataclasses.replace(child, **changes) if changes else child)
    return result


def renumber_container(draft: TreeDraft, container_id: str) -> int:
    """Renumber the direct children of *container_id* inside *draft*.

    Only the directly affected container is visited. Returns the number of
    children that had to be rewritten.
    """
    children = [draft.get(cid) for cid in draft.children_ids(container_id)]
    updated = renumbered(children, container_id)
    rewritten = 0
    for old, new in zip(children, updated):
        if new is not old:
            draft.put(new)
            rewritten += 1
    if rewritten:
        logger.debug("Renumbered container=%s rewritten=%d", container_id, rewritten)
    return rewritten


def renumber_touched(draft: TreeDraft) -> List[str]:
    """Renumber every container recorded in ``draft.touched`` that still exists.

    Returns the renumbered container ids in a stable order.
    """
    done: List[str] = []
    for container_id in sorted(draft.touched):
        if container_id in draft:
            renumber_container(draft, container_id)
            done.append(container_id)
    return done


def check_invariants(tree: FormTree) -> List[str]:
    """Return human-readable invariant violations; empty when consistent.

    Checks contiguous order fields, parent references and child kinds, and
    that no node is orphaned or owned twice.
    """
    problems: List[str] = []
    if tree.is_empty:
        if len(tree):
            problems.append(f"Empty tree still holds {len(tree)} node(s)")
        return problems

    nodes = tree.as_mapping()
    owned: Dict[str, int] = {}
    for node in nodes.values():
        if node.kind not in CONTAINER_KINDS:
            continue
        expected_kind: Optional[NodeKind] = child_kind(node.kind)
        for position, cid in enumerate(node.children, start=1):
            owned[cid] = owned.get(cid, 0) + 1
            child = nodes.get(cid)
            if child is None:
                problems.append(f"{node.kind.value} {node.id}: missing child {cid}")
                continue
            if child.kind != expected_kind:
                problems.append(
                    f"{node.kind.value} {node.id}: child {cid} is a {child.kind.value}"
                )
            if child.parent_id != node.id:
                problems.append(
                    f"{child.kind.value} {cid}: parent_id {child.parent_id!r} != {node.id!r}"
                )
            order_field = child.ORDER_FIELD
            if order_field is not None and getattr(child, order_field) != position:
                problems.append(
                    f"{child.kind.value} {cid}: {order_field}={getattr(child, order_field)} "
                    f"at position {position}"
                )

    for node_id in nodes:
        if node_id == tree.root_id:
            continue
        count = owned.get(node_id, 0)
        if count == 0:
            problems.append(f"Orphaned node {node_id}")
        elif count > 1:
            problems.append(f"Node {node_id} owned by {count} containers")

    return problems
