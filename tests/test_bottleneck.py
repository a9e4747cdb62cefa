from catalog.static import StaticItemCatalog
from crafting.bottleneck import find_bottlenecks
from crafting.contribution import contribute
from crafting.nodes import NodeState
from crafting.store import InMemoryNodeStore
from crafting.tree import expand_tree


def _node(node_id, parent_id, item, required, collected=0, resource=True, depth=1) -> NodeState:
    return NodeState(
        id=node_id,
        project_id=1,
        parent_id=parent_id,
        item_name=item,
        display_name=item.title(),
        required_qty=required,
        collected_qty=collected,
        is_resource=resource,
        depth=depth,
    )


def test_planks_under_stick_rank_first_for_iron_pickaxe() -> None:
    store = InMemoryNodeStore()
    nodes = store.create_nodes(1, expand_tree(StaticItemCatalog.from_file(), "iron_pickaxe", 1).nodes)
    ingot = next(node for node in nodes if node.item_name == "iron_ingot")
    contribute(store, project_id=1, node_id=ingot.id, actor_id="steve", quantity=3, action="collected")

    ranked = find_bottlenecks(store.list_nodes(1))

    assert [entry.item_name for entry in ranked] == ["oak_planks"]
    assert ranked[0].blocked_ancestors == 2
    assert ranked[0].remaining_qty == 2


def test_ordering_uses_count_then_remaining_then_name() -> None:
    nodes = [
        _node(1, None, "beacon", 1, resource=False, depth=0),
        _node(2, 1, "glass", 5),
        _node(3, 1, "obsidian", 3),
        _node(4, 1, "nether_star", 1),
        _node(5, 1, "sand", 5),
    ]

    ranked = find_bottlenecks(nodes)

    assert [entry.node_id for entry in ranked] == [2, 5, 3, 4]
    assert {entry.blocked_ancestors for entry in ranked} == {1}


def test_walk_stops_at_first_unblocked_ancestor() -> None:
    nodes = [
        _node(1, None, "root", 1, resource=False, depth=0),
        _node(2, 1, "middle", 1, collected=1, resource=False),
        _node(3, 2, "leaf", 4, depth=2),
        _node(4, 1, "other", 1),
    ]

    ranked = {entry.node_id: entry for entry in find_bottlenecks(nodes)}

    assert ranked[3].blocked_ancestors == 0
    assert ranked[4].blocked_ancestors == 1


def test_complete_resources_and_composites_are_not_candidates() -> None:
    nodes = [
        _node(1, None, "root", 1, resource=False, depth=0),
        _node(2, 1, "done", 4, collected=4),
        _node(3, 1, "todo", 4, collected=1),
    ]

    ranked = find_bottlenecks(nodes)

    assert [entry.node_id for entry in ranked] == [3]
    assert ranked[0].to_dict()["remaining_qty"] == 3


def test_limit_and_missing_parent() -> None:
    nodes = [
        _node(1, 99, "orphan", 2),
        _node(2, None, "loose", 7, depth=0),
        _node(3, None, "another", 1, depth=0),
    ]

    ranked = find_bottlenecks(nodes, limit=2)

    assert [entry.node_id for entry in ranked] == [2, 1]
    assert all(entry.blocked_ancestors == 0 for entry in ranked)


def test_parent_cycle_does_not_loop() -> None:
    nodes = [
        _node(1, 2, "a", 1, resource=False),
        _node(2, 1, "b", 1, resource=False),
        _node(3, 1, "c", 2),
    ]

    ranked = find_bottlenecks(nodes)

    assert ranked[0].blocked_ancestors == 2


def test_empty_project_has_no_bottlenecks() -> None:
    assert find_bottlenecks([]) == []
