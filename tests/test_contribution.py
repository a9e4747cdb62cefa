import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from catalog.static import StaticItemCatalog
from crafting.contribution import contribute, update_enchantments
from crafting.errors import (
    DependenciesIncompleteError,
    InvalidActionError,
    InvalidNodeKindError,
    InvalidQuantityError,
    NodeAlreadyCraftedError,
    NodeNotFoundError,
)
from crafting.leaderboard import contribution_leaderboard
from crafting.nodes import Enchantment
from crafting.snapshots import restore_snapshot, serialize_nodes
from crafting.status import NodeStatus
from crafting.store import ContributionAction, InMemoryNodeStore
from crafting.tree import expand_tree


def _pickaxe_project(project_id: int = 1):
    store = InMemoryNodeStore()
    tree = expand_tree(StaticItemCatalog.from_file(), "iron_pickaxe", 1)
    nodes = store.create_nodes(project_id, tree.nodes)
    return store, {node.item_name: node for node in nodes}


def _collect(store, node, quantity, user="steve", project_id=1):
    return contribute(
        store,
        project_id=project_id,
        node_id=node.id,
        actor_id=user,
        quantity=quantity,
        action="collected",
    )


def _craft(store, node, user="alex", project_id=1, quantity=1):
    return contribute(
        store,
        project_id=project_id,
        node_id=node.id,
        actor_id=user,
        quantity=quantity,
        action="crafted",
    )


def test_collect_adds_and_records() -> None:
    store, nodes = _pickaxe_project()

    result = _collect(store, nodes["iron_ingot"], 2)

    assert result.node.collected_qty == 2
    assert result.status is NodeStatus.NEEDS_GATHERING
    assert result.contribution.quantity == 2
    assert result.contribution.action is ContributionAction.COLLECTED
    assert result.milestone is None


def test_collect_clamps_and_emits_milestone_once() -> None:
    store, nodes = _pickaxe_project()
    ingot = nodes["iron_ingot"]

    first = _collect(store, ingot, 5)
    second = _collect(store, ingot, 4)

    assert first.node.collected_qty == 3
    assert first.status is NodeStatus.GATHERED
    assert first.contribution.quantity == 3
    assert first.milestone is not None
    assert first.milestone.quantity == 3
    assert second.node.collected_qty == 3
    assert second.contribution.quantity == 0
    assert second.milestone is None

    actions = [record.action for record in store.list_contributions(1)]
    assert actions.count(ContributionAction.MILESTONE) == 1


@pytest.mark.parametrize("quantity", [0, -1])
def test_non_positive_quantity_changes_nothing(quantity: int) -> None:
    store, nodes = _pickaxe_project()

    with pytest.raises(InvalidQuantityError):
        _collect(store, nodes["iron_ingot"], quantity)

    assert store.list_nodes(1)[1].collected_qty == 0
    assert store.list_contributions(1) == []


def test_unknown_action_is_rejected() -> None:
    store, nodes = _pickaxe_project()
    with pytest.raises(InvalidActionError):
        contribute(
            store,
            project_id=1,
            node_id=nodes["iron_ingot"].id,
            actor_id="steve",
            quantity=1,
            action="milestone",
        )
    with pytest.raises(InvalidActionError):
        contribute(
            store,
            project_id=1,
            node_id=nodes["iron_ingot"].id,
            actor_id="steve",
            quantity=1,
            action="smelted",
        )


def test_node_from_another_project_is_not_found() -> None:
    store, nodes = _pickaxe_project()
    with pytest.raises(NodeNotFoundError):
        _collect(store, nodes["iron_ingot"], 1, project_id=2)
    with pytest.raises(NodeNotFoundError):
        contribute(store, project_id=1, node_id=999, actor_id="steve", quantity=1, action="collected")


def test_action_must_match_node_kind() -> None:
    store, nodes = _pickaxe_project()
    with pytest.raises(InvalidNodeKindError):
        _collect(store, nodes["stick"], 1)
    with pytest.raises(InvalidNodeKindError):
        _craft(store, nodes["iron_ingot"])


def test_craft_requires_every_direct_child() -> None:
    store, nodes = _pickaxe_project()
    _collect(store, nodes["iron_ingot"], 3)

    with pytest.raises(DependenciesIncompleteError) as excinfo:
        _craft(store, nodes["iron_pickaxe"])

    assert [child.item_name for child in excinfo.value.incomplete] == ["stick"]
    assert "Stick (0/2)" in str(excinfo.value)
    assert store.list_nodes(1)[0].collected_qty == 0


def test_full_craft_flow() -> None:
    store, nodes = _pickaxe_project()
    _collect(store, nodes["iron_ingot"], 3)
    _collect(store, nodes["oak_planks"], 2)

    stick = _craft(store, nodes["stick"])
    pickaxe = _craft(store, nodes["iron_pickaxe"])

    assert stick.status is NodeStatus.CRAFTED
    assert stick.node.collected_qty == 2
    assert stick.contribution.quantity == 2
    assert stick.milestone.quantity == 2
    assert pickaxe.status is NodeStatus.CRAFTED
    with pytest.raises(NodeAlreadyCraftedError):
        _craft(store, nodes["iron_pickaxe"])


def test_craft_credits_only_the_applied_amount() -> None:
    store, nodes = _pickaxe_project()
    _collect(store, nodes["oak_planks"], 2)

    stick = _craft(store, nodes["stick"], user="greedy", quantity=1_000_000)

    assert stick.node.collected_qty == 2
    assert stick.contribution.quantity == 2
    board = contribution_leaderboard(store.list_contributions(1))
    greedy = next(entry for entry in board if entry["user_id"] == "greedy")
    assert greedy["crafted"] == 2
    assert greedy["total_contributions"] == 2


def test_failed_transaction_leaves_store_untouched() -> None:
    store, nodes = _pickaxe_project()
    before = store.list_nodes(1)

    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            tx.add_clamped(nodes["iron_ingot"].id, 3, 3)
            tx.append_contribution(1, nodes["iron_ingot"].id, "steve", 3, ContributionAction.COLLECTED)
            raise RuntimeError("boom")

    assert store.list_nodes(1) == before
    assert store.list_contributions(1) == []


def test_concurrent_collects_obey_clamp_law() -> None:
    store = InMemoryNodeStore()
    tree = expand_tree(StaticItemCatalog.from_file(), "diamond", 50)
    (node,) = store.create_nodes(1, tree.nodes)
    amounts = [3, 7, 1, 9, 4, 6, 2, 8, 5, 10] * 3

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda qty: _collect(store, node, qty), amounts))

    assert store.list_nodes(1)[0].collected_qty == min(sum(amounts), 50)
    assert sum(result.contribution.quantity for result in results) == 50
    assert sum(1 for result in results if result.milestone is not None) == 1


def test_restore_race_never_lets_an_invalid_craft_through() -> None:
    store, nodes = _pickaxe_project()
    empty_plan = serialize_nodes(store.list_nodes(1))
    _collect(store, nodes["iron_ingot"], 3)
    _collect(store, nodes["oak_planks"], 2)
    _craft(store, nodes["stick"])

    barrier = threading.Barrier(2)
    outcomes = []

    def craft() -> None:
        barrier.wait()
        try:
            _craft(store, nodes["iron_pickaxe"])
            outcomes.append("crafted")
        except DependenciesIncompleteError:
            outcomes.append("rejected")

    def restore() -> None:
        barrier.wait()
        restore_snapshot(store, 1, 1, empty_plan, "planner")

    threads = [threading.Thread(target=craft), threading.Thread(target=restore)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    final = store.list_nodes(1)
    pickaxe = next(node for node in final if node.item_name == "iron_pickaxe")
    children = [node for node in final if node.parent_id == pickaxe.id]
    assert outcomes in (["crafted"], ["rejected"])
    assert not (pickaxe.is_complete and any(not child.is_complete for child in children))


def test_craft_checks_live_children_after_a_restore() -> None:
    store, nodes = _pickaxe_project()
    empty_plan = serialize_nodes(store.list_nodes(1))
    _collect(store, nodes["iron_ingot"], 3)
    _collect(store, nodes["oak_planks"], 2)
    _craft(store, nodes["stick"])

    restore_snapshot(store, 1, 1, empty_plan, "planner")

    with pytest.raises(DependenciesIncompleteError):
        _craft(store, nodes["iron_pickaxe"])


def test_update_enchantments_replaces_the_list() -> None:
    store, nodes = _pickaxe_project()

    updated = update_enchantments(
        store,
        project_id=1,
        node_id=nodes["iron_pickaxe"].id,
        enchantments=[Enchantment("efficiency", 5), Enchantment("mending", 1)],
    )

    assert [e.name for e in updated.enchantments] == ["efficiency", "mending"]
    assert store.list_nodes(1)[0].enchantments == updated.enchantments
    with pytest.raises(NodeNotFoundError):
        update_enchantments(store, project_id=2, node_id=updated.id, enchantments=[])
