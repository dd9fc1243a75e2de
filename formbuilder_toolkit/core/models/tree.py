from __future__ import annotations

"""Immutable tree snapshots and copy-on-write drafts.

A :class:`FormTree` is a flat arena ``{id: node}`` plus the root id. It is
never mutated after construction: every edit goes through a
:class:`TreeDraft`, which records replaced, inserted and removed nodes on
top of the base snapshot and produces a new :class:`FormTree` on commit.
Nodes that were not touched are shared between the old and the new
snapshot, so readers holding an older snapshot keep a consistent view.

Examples
--------
    tree = FormTree.new(title="Contact")
    draft = tree.edit()
    ...  # insert / detach / replace nodes
    new_tree = draft.commit()
"""

import dataclasses
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from formbuilder_toolkit.core.exceptions import NodeNotFoundError
from formbuilder_toolkit.core.models.nodes import (
    CONTAINER_KINDS,
    FormNode,
    Node,
    NodeKind,
    PageNode,
)
from formbuilder_toolkit.core.utils import generate_node_id

__all__ = ["FormTree", "TreeDraft"]


class FormTree:
    """Immutable snapshot of a form document.

    Attributes
    ----------
    root_id
        Id of the :class:`FormNode`, or None for an empty tree (after the
        form itself was deleted).
    retired_ids
        Ids of nodes deleted from this document. They are never reused, so
        a stale selection or drag payload cannot resolve to a new node.
    """

    __slots__ = ("_nodes", "_root_id", "_retired")

    def __init__(self, nodes: Mapping[str, Node], root_id: Optional[str],
                 retired: Iterable[str] = ()) -> None:
        self._nodes: Mapping[str, Node] = MappingProxyType(dict(nodes))
        self._root_id = root_id
        # Ids of deleted nodes; never handed out again within this document
        self._retired: FrozenSet[str] = frozenset(retired)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def empty(cls) -> "FormTree":
        return cls({}, None)

    @classmethod
    def new(cls, title: str = "Untitled Form", page_title: str = "Page 1") -> "FormTree":
        """Create a new form with one default page and no sections."""
        form_id = generate_node_id("form")
        page_id = generate_node_id("page", {form_id})
        page = PageNode(id=page_id, parent_id=form_id, title=page_title, page_number=1)
        form = FormNode(id=form_id, title=title, children=(page_id,))
        return cls({form_id: form, page_id: page}, form_id)

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    @property
    def root_id(self) -> Optional[str]:
        return self._root_id

    @property
    def is_empty(self) -> bool:
        return self._root_id is None

    @property
    def root(self) -> FormNode:
        if self._root_id is None:
            raise NodeNotFoundError("The tree has no form")
        return self._nodes[self._root_id]  # type: ignore[return-value]

    @property
    def pages(self) -> Tuple[PageNode, ...]:
        if self._root_id is None:
            return ()
        return self.children_of(self._root_id)  # type: ignore[return-value]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def contains(self, node_id: str) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FormTree):
            return NotImplemented
        return self._root_id == other._root_id and dict(self._nodes) == dict(other._nodes)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"FormTree(root_id={self._root_id!r}, nodes={len(self._nodes)})"

    def find(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def get(self, node_id: str, kind: Optional[NodeKind] = None) -> Node:
        """Return the node with *node_id*, optionally checking its kind.

        Raises
        ------
        NodeNotFoundError
            If the id is unknown or the node is not of the requested kind.
        """
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(f"No node with id '{node_id}'", node_id=node_id)
        if kind is not None and node.kind != NodeKind(kind):
            raise NodeNotFoundError(
                f"Node '{node_id}' is a {node.kind.value}, not a {NodeKind(kind).value}",
                node_id=node_id,
            )
        return node

    def kind_of(self, node_id: str) -> NodeKind:
        return self.get(node_id).kind

    def children_of(self, container_id: str) -> Tuple[Node, ...]:
        """Return the ordered children of a container."""
        node = self.get(container_id)
        if node.kind not in CONTAINER_KINDS:
            raise NodeNotFoundError(f"Node '{container_id}' is not a container", node_id=container_id)
        return tuple(self._nodes[cid] for cid in node.children)

    def get_path(self, node_id: str) -> Tuple[str, ...]:
        """Return the ancestor ids of *node_id*, root first, excluding the node."""
        node = self.get(node_id)
        chain: List[str] = []
        parent_id = node.parent_id
        while parent_id is not None:
            chain.append(parent_id)
            parent_id = self._nodes[parent_id].parent_id
        chain.reverse()
        return tuple(chain)

    def iter_subtree(self, node_id: str) -> Iterator[Node]:
        """Yield *node_id* and all its descendants in document order."""
        stack = [self.get(node_id)]
        while stack:
            node = stack.pop()
            yield node
            children = getattr(node, "children", ())
            for cid in reversed(children):
                stack.append(self._nodes[cid])

    def iter_nodes(self, kind: Optional[NodeKind] = None) -> Iterator[Node]:
        """Yield all nodes in document order, optionally filtered by kind."""
        if self._root_id is None:
            return
        for node in self.iter_subtree(self._root_id):
            if kind is None or node.kind == NodeKind(kind):
                yield node

    def count(self, kind: NodeKind) -> int:
        kind = NodeKind(kind)
        return sum(1 for n in self._nodes.values() if n.kind == kind)

    @property
    def retired_ids(self) -> FrozenSet[str]:
        return self._retired

    def as_mapping(self) -> Mapping[str, Node]:
        """Read-only view of the arena."""
        return self._nodes

    def edit(self) -> "TreeDraft":
        return TreeDraft(self)


class TreeDraft:
    """Copy-on-write working copy of a :class:`FormTree`.

    Structural helpers keep parent/child links consistent but never touch
    order fields; callers renumber every container listed in
    :attr:`touched` before committing.
    """

    def __init__(self, base: FormTree) -> None:
        self._base = base
        self._changes: Dict[str, Optional[Node]] = {}
        self._root_id = base.root_id
        self._retired: Set[str] = set()
        self.touched: Set[str] = set()

    def __contains__(self, node_id: object) -> bool:
        if node_id in self._changes:
            return self._changes[node_id] is not None  # type: ignore[index]
        return node_id in self._base

    def is_retired(self, node_id: str) -> bool:
        """True if *node_id* belonged to a node deleted from this document."""
        return node_id in self._retired or node_id in self._base.retired_ids

    @property
    def root_id(self) -> Optional[str]:
        return self._root_id

    @property
    def has_changes(self) -> bool:
        return bool(self._changes) or self._root_id != self._base.root_id

    def find(self, node_id: str) -> Optional[Node]:
        if node_id in self._changes:
            return self._changes[node_id]
        return self._base.find(node_id)

    def get(self, node_id: str, kind: Optional[NodeKind] = None) -> Node:
        node = self.find(node_id)
        if node is None:
            raise NodeNotFoundError(f"No node with id '{node_id}'", node_id=node_id)
        if kind is not None and node.kind != NodeKind(kind):
            raise NodeNotFoundError(
                f"Node '{node_id}' is a {node.kind.value}, not a {NodeKind(kind).value}",
                node_id=node_id,
            )
        return node

    def children_ids(self, container_id: str) -> Tuple[str, ...]:
        return self.get(container_id).children  # type: ignore[union-attr]

    def put(self, node: Node) -> Node:
        self._changes[node.id] = node
        return node

    def replace(self, node_id: str, **changes) -> Node:
        """Store a copy of the node with *changes* applied and return it."""
        node = dataclasses.replace(self.get(node_id), **changes)
        return self.put(node)

    def set_root(self, node: Optional[FormNode]) -> None:
        if node is None:
            self._root_id = None
        else:
            self.put(node)
            self._root_id = node.id

    def insert_child(self, parent_id: str, node: Node, at_index: Optional[int] = None) -> int:
        """Add *node* to the arena and link it into *parent_id* at *at_index*.

        ``at_index`` follows ``list.insert`` semantics; None appends. Returns
        the index the child ended up at.
        """
        parent = self.get(parent_id)
        children = list(parent.children)  # type: ignore[union-attr]
        if at_index is None:
            at_index = len(children)
        children.insert(at_index, node.id)
        index = children.index(node.id)
        if node.parent_id != parent_id:
            node = dataclasses.replace(node, parent_id=parent_id)
        self.put(node)
        self.replace(parent_id, children=tuple(children))
        self.touched.add(parent_id)
        return index

    def detach(self, node_id: str) -> Tuple[str, int]:
        """Unlink *node_id* from its container, keeping it in the arena.

        Returns ``(parent_id, index)`` of the former position.
        """
        node = self.get(node_id)
        parent_id = node.parent_id
        if parent_id is None:
            raise NodeNotFoundError("The form root has no container", node_id=node_id)
        children = list(self.children_ids(parent_id))
        index = children.index(node_id)
        del children[index]
        self.replace(parent_id, children=tuple(children))
        self.touched.add(parent_id)
        return parent_id, index

    def remove_subtree(self, node_id: str) -> List[Node]:
        """Detach *node_id* and drop it and all descendants from the arena.

        Returns the removed nodes, the subtree root first.
        """
        node = self.get(node_id)
        if node.parent_id is not None:
            self.detach(node_id)
        else:
            self._root_id = None
        removed: List[Node] = []
        stack = [node]
        while stack:
            current = stack.pop()
            removed.append(current)
            for cid in reversed(getattr(current, "children", ())):
                stack.append(self.get(cid))
        for gone in removed:
            self._changes[gone.id] = None
            self._retired.add(gone.id)
            self.touched.discard(gone.id)
        return removed

    def commit(self) -> FormTree:
        """Produce the new immutable snapshot (the base if nothing changed)."""
        if not self.has_changes:
            return self._base
        nodes = dict(self._base.as_mapping())
        for node_id, node in self._changes.items():
            if node is None:
                nodes.pop(node_id, None)
            else:
                nodes[node_id] = node
        return FormTree(nodes, self._root_id, self._base.retired_ids | self._retired)
