import pytest

from formbuilder_toolkit.core.exceptions import NodeNotFoundError
from formbuilder_toolkit.core.models import FormTree, NodeKind, SectionNode


def test_new_tree_has_one_default_page():
    tree = FormTree.new(title="Contact")
    assert tree.root.title == "Contact"
    assert not tree.root.is_multi_page
    (page,) = tree.pages
    assert page.title == "Page 1"
    assert page.page_number == 1
    assert page.parent_id == tree.root_id
    assert page.children == ()


def test_get_raises_for_unknown_id_and_wrong_kind():
    tree = FormTree.new()
    with pytest.raises(NodeNotFoundError):
        tree.get("missing")
    with pytest.raises(NodeNotFoundError):
        tree.get(tree.pages[0].id, NodeKind.SECTION)


def test_draft_commit_without_changes_returns_same_snapshot():
    tree = FormTree.new()
    assert tree.edit().commit() is tree


def test_draft_is_copy_on_write():
    tree = FormTree.new()
    page_id = tree.pages[0].id
    draft = tree.edit()
    draft.insert_child(page_id, SectionNode(id="section_a", parent_id="", title="A"))
    new_tree = draft.commit()

    assert tree.pages[0].children == ()
    assert "section_a" not in tree
    assert new_tree.get(page_id).children == ("section_a",)
    assert new_tree.get("section_a").parent_id == page_id
    # Untouched nodes are shared between snapshots
    assert new_tree.root is tree.root


def test_insert_child_follows_list_insert_semantics():
    tree = FormTree.new()
    page_id = tree.pages[0].id
    draft = tree.edit()
    draft.insert_child(page_id, SectionNode(id="a", parent_id=page_id))
    draft.insert_child(page_id, SectionNode(id="b", parent_id=page_id), 0)
    assert draft.insert_child(page_id, SectionNode(id="c", parent_id=page_id), 99) == 2
    assert draft.children_ids(page_id) == ("b", "a", "c")
    assert page_id in draft.touched


def test_get_path_and_iteration_order():
    tree = FormTree.new()
    page_id = tree.pages[0].id
    draft = tree.edit()
    draft.insert_child(page_id, SectionNode(id="s1", parent_id=page_id))
    draft.insert_child(page_id, SectionNode(id="s2", parent_id=page_id))
    tree = draft.commit()

    assert tree.get_path("s2") == (tree.root_id, page_id)
    assert tree.get_path(tree.root_id) == ()
    assert [n.id for n in tree.iter_nodes()] == [tree.root_id, page_id, "s1", "s2"]
    assert tree.count(NodeKind.SECTION) == 2


def test_removing_the_root_empties_the_tree():
    tree = FormTree.new()
    draft = tree.edit()
    removed = draft.remove_subtree(tree.root_id)
    empty = draft.commit()
    assert len(removed) == 2
    assert empty.is_empty
    assert len(empty) == 0
    assert empty.pages == ()
    with pytest.raises(NodeNotFoundError):
        empty.root


def test_contains_and_kind_of():
    tree = FormTree.new()
    page_id = tree.pages[0].id
    assert tree.contains(page_id)
    assert page_id in tree
    assert not tree.contains("page_missing")
    assert tree.kind_of(page_id) == NodeKind.PAGE
