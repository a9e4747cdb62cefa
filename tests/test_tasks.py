from catalog.static import StaticItemCatalog
from crafting.contribution import contribute
from crafting.store import InMemoryNodeStore
from crafting.tasks import suggest_tasks
from crafting.tree import expand_tree


def _project(quantity: int = 1, enchantments=None):
    store = InMemoryNodeStore()
    tree = expand_tree(
        StaticItemCatalog.from_file(), "iron_pickaxe", quantity, enchantments=enchantments
    )
    nodes = store.create_nodes(1, tree.nodes)
    return store, {node.item_name: node for node in nodes}


def _collect(store, node, quantity) -> None:
    contribute(
        store, project_id=1, node_id=node.id, actor_id="steve", quantity=quantity, action="collected"
    )


def test_miner_gets_gathering_work_by_remaining() -> None:
    store, _ = _project(quantity=20)

    tasks = suggest_tasks(store.list_nodes(1), role="miner")

    assert [(task.item_name, task.qty, task.priority) for task in tasks] == [
        ("iron_ingot", 60, "high"),
        ("oak_planks", 20, "medium"),
    ]
    assert tasks[0].action == "collect"
    assert tasks[0].reason == "Collect 60 more Iron Ingot"


def test_builder_sees_only_craftable_nodes() -> None:
    store, nodes = _project()
    assert suggest_tasks(store.list_nodes(1), role="builder") == []

    _collect(store, nodes["oak_planks"], 2)
    tasks = suggest_tasks(store.list_nodes(1), role="Builder")

    assert [(task.action, task.item_name, task.priority) for task in tasks] == [
        ("craft", "stick", "medium")
    ]


def test_planner_sees_enchantments_and_partial_nodes() -> None:
    store, nodes = _project(enchantments=[{"name": "efficiency", "level": 5}])
    _collect(store, nodes["iron_ingot"], 3)

    tasks = suggest_tasks(store.list_nodes(1), role="planner")

    assert [(task.action, task.item_name) for task in tasks] == [
        ("plan", "iron_pickaxe"),
        ("review", "iron_pickaxe"),
    ]
    assert tasks[0].reason == "Needs enchantments: efficiency"
    assert tasks[1].reason == "1/2 ingredients ready, coordinate the rest"


def test_default_role_mixes_gathering_and_crafting() -> None:
    store, nodes = _project()
    _collect(store, nodes["oak_planks"], 2)

    tasks = suggest_tasks(store.list_nodes(1))

    assert [(task.action, task.item_name) for task in tasks] == [
        ("craft", "stick"),
        ("collect", "iron_ingot"),
    ]
    assert tasks[1].reason == "Need 3 more Iron Ingot"
    assert tasks[0].to_dict()["node_id"] == nodes["stick"].id
