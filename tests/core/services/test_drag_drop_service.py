import pytest

from formbuilder_toolkit.core.exceptions import DragSessionError, NodeNotFoundError
from formbuilder_toolkit.core.models import (
    CanvasTarget,
    ElementTarget,
    ExistingElement,
    InsertionMode,
    NewElementTemplate,
    NodeKind,
    RowTarget,
    SectionTarget,
    SessionState,
)
from formbuilder_toolkit.core.services.drag_drop_service import classify_drop
from formbuilder_toolkit.core.services.renumbering_service import check_invariants


def _elements(tree, row_id):
    return list(tree.children_of(row_id))


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def test_classify_drop_resolution_table(populated):
    tree = populated.context.tree
    assert classify_drop(tree, RowTarget(populated.row_empty)).action.mode == InsertionMode.JOIN_ROW
    assert classify_drop(tree, RowTarget(populated.row_full)).ambiguous
    assert classify_drop(tree, ElementTarget(populated.first)).ambiguous
    section_plan = classify_drop(tree, SectionTarget(populated.section_id))
    assert section_plan.action.mode == InsertionMode.NEW_ROW
    canvas_plan = classify_drop(tree, CanvasTarget(populated.page_id))
    assert canvas_plan.action.container_id == populated.section_id


def test_classify_drop_ignores_the_moving_element(populated):
    ctx, editing = populated.context, populated.editing
    editing.move_child(ctx, populated.second, populated.row_empty)
    # row_full now holds only `first`
    plan = classify_drop(ctx.tree, RowTarget(populated.row_full), moving_id=populated.first)
    assert not plan.ambiguous


# ---------------------------------------------------------------------------
# Template drops
# ---------------------------------------------------------------------------

def test_email_template_onto_empty_section(context, editing, drag_drop):
    page_id = context.tree.pages[0].id
    section_a = editing.create_child(context, page_id, NodeKind.SECTION, fields={"title": "SectionA"})

    session = drag_drop.start_drag(context, NewElementTemplate("email"))
    outcome = session.drop(SectionTarget(section_a))

    assert outcome.committed
    tree = context.tree
    (row,) = tree.children_of(section_a)
    assert row.row_number == 1
    (element,) = tree.children_of(row.id)
    assert element.type == "email"
    assert element.element_number == 1
    assert element.label == "Email Address"
    assert element.validation == {"email": True}
    assert outcome.element_id == element.id


def test_template_onto_empty_row_commits_immediately(populated, drag_drop, make_recorder):
    ctx = populated.context
    recorder = make_recorder(ctx)
    session = drag_drop.start_drag(ctx, NewElementTemplate("text"))

    outcome = session.drop(RowTarget(populated.row_empty))

    assert outcome.state == SessionState.COMMITTED
    (element,) = _elements(ctx.tree, populated.row_empty)
    assert element.element_number == 1
    assert recorder.count == 1
    assert ctx.drag_session is None


def test_template_onto_full_row_then_join_row(populated, drag_drop, make_recorder):
    ctx = populated.context
    session = drag_drop.start_drag(ctx, NewElementTemplate("phone"))
    before = ctx.tree

    outcome = session.drop(RowTarget(populated.row_full))
    assert outcome.awaiting
    assert session.state == SessionState.AWAITING_DISAMBIGUATION
    assert ctx.tree is before

    recorder = make_recorder(ctx)
    outcome = session.resolve("joinRow")
    assert outcome.committed
    elements = _elements(ctx.tree, populated.row_full)
    assert [e.element_number for e in elements] == [1, 2, 3]
    assert elements[-1].type == "tel"
    assert recorder.count == 1


def test_template_onto_full_row_then_new_row(populated, drag_drop):
    ctx = populated.context
    rows_before = len(ctx.tree.get(populated.section_id).children)
    session = drag_drop.start_drag(ctx, NewElementTemplate("text"))
    session.drop(RowTarget(populated.row_full))

    outcome = session.resolve("new_row")

    tree = ctx.tree
    rows = tree.children_of(populated.section_id)
    assert len(rows) == rows_before + 1
    assert [r.row_number for r in rows] == [1, 2, 3]
    (element,) = tree.children_of(rows[-1].id)
    assert element.id == outcome.element_id
    assert len(tree.get(populated.row_full).children) == 2
    assert check_invariants(tree) == []


def test_element_target_resolves_to_its_row(populated, drag_drop):
    session = drag_drop.start_drag(populated.context, NewElementTemplate("text"))
    outcome = session.drop(ElementTarget(populated.second))
    assert outcome.awaiting
    assert session.prompt.candidates
    join = session.prompt.candidates[next(iter(session.prompt.candidates))]
    assert join.container_id == populated.row_full


def test_canvas_drop_on_page_without_sections_creates_default_section(context, drag_drop, make_recorder):
    recorder = make_recorder(context)
    page_id = context.tree.pages[0].id
    session = drag_drop.start_drag(context, NewElementTemplate("select"))

    outcome = session.drop(CanvasTarget(page_id))

    tree = context.tree
    (section,) = tree.children_of(page_id)
    assert section.title == "Section 1"
    (row,) = tree.children_of(section.id)
    (element,) = tree.children_of(row.id)
    assert element.type == "select"
    assert element.options["choices"][0]["value"] == "option1"
    assert outcome.action.mode == InsertionMode.NEW_SECTION
    assert recorder.count == 1


def test_canvas_drop_targets_first_section(populated, drag_drop):
    ctx = populated.context
    populated.editing.create_child(ctx, populated.page_id, NodeKind.SECTION)
    session = drag_drop.start_drag(ctx, NewElementTemplate("text"))
    session.drop(CanvasTarget(populated.page_id))
    assert len(ctx.tree.get(populated.section_id).children) == 3


def test_template_elements_get_unique_names(populated, drag_drop):
    ctx = populated.context
    for _ in range(2):
        drag_drop.start_drag(ctx, NewElementTemplate("email")).drop(SectionTarget(populated.section_id))
    names = [e.name for e in ctx.tree.iter_nodes(NodeKind.ELEMENT) if e.type == "email"]
    assert names == ["email_1", "email_2", "email_3"]


# ---------------------------------------------------------------------------
# Existing element moves
# ---------------------------------------------------------------------------

def test_move_existing_element_to_another_section(populated, drag_drop, make_recorder):
    ctx = populated.context
    other = populated.editing.create_child(ctx, populated.page_id, NodeKind.SECTION)
    recorder = make_recorder(ctx)

    outcome = drag_drop.start_drag(ctx, ExistingElement(populated.first)).drop(SectionTarget(other))

    tree = ctx.tree
    assert outcome.committed and outcome.changed
    (row,) = tree.children_of(other)
    assert tree.get(row.id).children == (populated.first,)
    assert tree.get(populated.first).element_number == 1
    assert tree.get(populated.second).element_number == 1
    assert recorder.count == 1
    assert check_invariants(tree) == []


def test_move_last_element_keeps_empty_origin_row(populated, drag_drop):
    ctx = populated.context
    drag_drop.start_drag(ctx, ExistingElement(populated.first)).drop(RowTarget(populated.row_empty))
    outcome = drag_drop.start_drag(ctx, ExistingElement(populated.second)).drop(RowTarget(populated.row_empty))
    assert outcome.awaiting
    outcome = ctx.drag_session.resolve("join_row")
    assert outcome.committed
    assert ctx.tree.get(populated.row_full).children == ()
    assert ctx.tree.get(populated.row_empty).children == (populated.first, populated.second)


def test_move_into_own_row_at_own_position_is_noop(populated, drag_drop, make_recorder):
    ctx = populated.context
    recorder = make_recorder(ctx)
    before = ctx.tree

    session = drag_drop.start_drag(ctx, ExistingElement(populated.second))
    session.drop(RowTarget(populated.row_full))
    outcome = session.resolve("join_row")

    assert outcome.committed
    assert not outcome.changed
    assert ctx.tree is before
    assert recorder.count == 0


def test_move_sole_element_onto_own_row_is_noop(populated, drag_drop, make_recorder):
    ctx = populated.context
    drag_drop.start_drag(ctx, ExistingElement(populated.first)).drop(RowTarget(populated.row_empty))
    recorder = make_recorder(ctx)

    outcome = drag_drop.start_drag(ctx, ExistingElement(populated.first)).drop(ElementTarget(populated.first))

    assert outcome.committed and not outcome.changed
    assert recorder.count == 0


def test_drop_element_onto_itself_in_shared_row_is_noop(populated, drag_drop, make_recorder):
    ctx = populated.context
    recorder = make_recorder(ctx)
    before = ctx.tree

    session = drag_drop.start_drag(ctx, ExistingElement(populated.first))
    outcome = session.drop(ElementTarget(populated.first))

    assert outcome.committed and not outcome.changed
    assert session.prompt is None
    assert ctx.drag_session is None
    assert ctx.tree is before
    assert ctx.tree.get(populated.row_full).children == (populated.first, populated.second)
    assert recorder.count == 0


def test_move_first_element_to_end_of_own_row(populated, drag_drop):
    ctx = populated.context
    session = drag_drop.start_drag(ctx, ExistingElement(populated.first))
    session.drop(RowTarget(populated.row_full))
    session.resolve("join_row")
    assert ctx.tree.get(populated.row_full).children == (populated.second, populated.first)
    assert ctx.tree.get(populated.first).element_number == 2


# ---------------------------------------------------------------------------
# Cancellation and protocol misuse
# ---------------------------------------------------------------------------

def test_drop_without_target_cancels_without_mutation(populated, drag_drop, make_recorder):
    ctx = populated.context
    recorder = make_recorder(ctx)
    session = drag_drop.start_drag(ctx, NewElementTemplate("text"))
    outcome = session.drop(None)
    assert outcome.state == SessionState.CANCELLED
    assert recorder.count == 0


def test_explicit_cancel_while_awaiting(populated, drag_drop):
    ctx = populated.context
    before = ctx.tree
    session = drag_drop.start_drag(ctx, NewElementTemplate("text"))
    session.drop(RowTarget(populated.row_full))
    prompt = session.prompt

    assert session.cancel().state == SessionState.CANCELLED
    assert ctx.tree is before
    assert not prompt.is_open
    with pytest.raises(DragSessionError):
        session.resolve("join_row")


def test_re_dropping_after_cancel_creates_fresh_prompt(populated, drag_drop):
    ctx = populated.context
    first = drag_drop.start_drag(ctx, NewElementTemplate("text"))
    first.drop(RowTarget(populated.row_full))
    first.cancel()

    second = drag_drop.start_drag(ctx, NewElementTemplate("text"))
    second.drop(RowTarget(populated.row_full))
    assert second.prompt is not first.prompt
    assert second.prompt.is_open


def test_protocol_misuse_raises(populated, drag_drop):
    session = drag_drop.start_drag(populated.context, NewElementTemplate("text"))
    with pytest.raises(DragSessionError):
        session.resolve("join_row")
    session.drop(RowTarget(populated.row_empty))
    with pytest.raises(DragSessionError):
        session.drop(RowTarget(populated.row_empty))
    with pytest.raises(DragSessionError):
        session.cancel()
    with pytest.raises(DragSessionError):
        session.begin()


def test_prompt_answers_exactly_once(populated, drag_drop):
    session = drag_drop.start_drag(populated.context, NewElementTemplate("text"))
    session.drop(RowTarget(populated.row_full))
    prompt = session.prompt
    prompt.resolve("newRow")
    with pytest.raises(DragSessionError):
        prompt.resolve("joinRow")
    with pytest.raises(DragSessionError):
        session.resolve("joinRow")


def test_unknown_choice_keeps_session_waiting(populated, drag_drop):
    session = drag_drop.start_drag(populated.context, NewElementTemplate("text"))
    session.drop(RowTarget(populated.row_full))
    with pytest.raises(DragSessionError):
        session.resolve("both")
    assert session.state == SessionState.AWAITING_DISAMBIGUATION
    assert session.resolve("new_row").committed


def test_starting_a_drag_cancels_pending_one(populated, drag_drop):
    ctx = populated.context
    pending = drag_drop.start_drag(ctx, NewElementTemplate("text"))
    pending.drop(RowTarget(populated.row_full))

    current = drag_drop.start_drag(ctx, NewElementTemplate("email"))

    assert pending.state == SessionState.CANCELLED
    assert ctx.drag_session is current
    assert current.state == SessionState.DRAGGING


def test_stale_target_raises_and_cancels(populated, drag_drop):
    ctx = populated.context
    session = drag_drop.start_drag(ctx, NewElementTemplate("text"))
    populated.editing.delete_child(ctx, populated.row_empty)
    before = ctx.tree

    with pytest.raises(NodeNotFoundError):
        session.drop(RowTarget(populated.row_empty))
    assert session.state == SessionState.CANCELLED
    assert ctx.tree is before


def test_stale_payload_raises_and_cancels(populated, drag_drop):
    ctx = populated.context
    session = drag_drop.start_drag(ctx, ExistingElement(populated.first))
    populated.editing.delete_child(ctx, populated.first)
    with pytest.raises(NodeNotFoundError):
        session.drop(RowTarget(populated.row_empty))
    assert session.state == SessionState.CANCELLED


def test_target_deleted_while_awaiting(populated, drag_drop):
    ctx = populated.context
    session = drag_drop.start_drag(ctx, NewElementTemplate("text"))
    session.drop(RowTarget(populated.row_full))
    populated.editing.delete_child(ctx, populated.row_full)
    with pytest.raises(NodeNotFoundError):
        session.resolve("join_row")
    assert session.state == SessionState.CANCELLED


def test_unknown_template_or_element_cannot_start(context, drag_drop):
    with pytest.raises(NodeNotFoundError):
        drag_drop.start_drag(context, NewElementTemplate("hologram"))
    with pytest.raises(NodeNotFoundError):
        drag_drop.start_drag(context, ExistingElement("element_gone"))
    assert context.drag_session is None


def test_active_session_requires_a_drag(context, drag_drop):
    with pytest.raises(DragSessionError):
        drag_drop.active_session(context)
