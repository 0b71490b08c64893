import pytest
from sqlalchemy.exc import OperationalError

from carenotes.errors import NotFoundError, StorageError, ValidationError
from carenotes.hierarchy import HierarchyStore


def test_self_edge_exists_after_creation(hierarchy):
    org = hierarchy.create_node('organisation', 'Org')
    assert hierarchy.get_closure_edges(org['id']) == [(org['id'], org['id'], 0)]


def test_new_leaf_inherits_parent_chain(hierarchy, chain):
    edges = hierarchy.get_closure_edges(chain['E']['id'])
    assert sorted(edges, key=lambda edge: edge[2]) == [
        (chain['E']['id'], chain['E']['id'], 0),
        (chain['C']['id'], chain['E']['id'], 1),
        (chain['T']['id'], chain['E']['id'], 2),
        (chain['O']['id'], chain['E']['id'], 3),
    ]


def test_read_after_write(hierarchy, chain):
    team = hierarchy.create_node('team', 'X', chain['O']['id'])
    stored = hierarchy.get_node_by_id(team['id'])

    assert stored['name'] == 'X'
    assert stored['type'] == 'team'
    assert stored['created_at'] == stored['updated_at']


def test_engine_is_type_agnostic(hierarchy):
    # Level policy lives in the API layer; the engine accepts any depth.
    root = hierarchy.create_node('folder', 'root')
    node = root
    for i in range(6):
        node = hierarchy.create_node('folder', f'level {i}', node['id'])

    assert len(hierarchy.get_ancestors(node['id'])) == 6
    assert len(hierarchy.get_all_descendants(root['id'])) == 6


def test_unknown_parent_is_rejected_without_trace(hierarchy):
    with pytest.raises(NotFoundError):
        hierarchy.create_node('client', 'Y', 'bogus-id')

    assert hierarchy.get_nodes_by_type('client') == []


@pytest.mark.parametrize("parent_id", [{"a": 1}, ["x"], 42])
def test_non_string_parent_is_rejected(hierarchy, chain, parent_id):
    with pytest.raises(ValidationError):
        hierarchy.create_node('client', 'Y', parent_id)

    assert hierarchy.get_children(chain['T']['id']) == [chain['C']]


@pytest.mark.parametrize("node_type,name", [
    ('', 'Name'),
    ('team', ''),
    ('team', '   '),
    (None, 'Name'),
    ('team', None),
])
def test_empty_type_or_name_is_rejected(hierarchy, node_type, name):
    with pytest.raises(ValidationError):
        hierarchy.create_node(node_type, name)


def test_failed_propagation_rolls_back_node(hierarchy, chain, monkeypatch):
    def broken_propagation(self, session, node_id, parent_edges):
        raise OperationalError("INSERT INTO hierarchy_closure", {}, Exception("disk I/O error"))

    monkeypatch.setattr(HierarchyStore, '_propagate_closure', broken_propagation)

    with pytest.raises(StorageError):
        hierarchy.create_node('client', 'Half Made', chain['T']['id'])

    names = [c['name'] for c in hierarchy.get_nodes_by_type('client')]
    assert 'Half Made' not in names
    assert [c['id'] for c in hierarchy.get_children(chain['T']['id'])] == [chain['C']['id']]
