from carenotes.tree import build_tree, flatten_tree, group_notes


def test_build_tree_nests_levels_and_notes(hierarchy, notes, chain):
    episode_note = notes.create_note('Episode note', chain['E']['id'])
    org_note = notes.create_note('Org note', chain['O']['id'])

    tree = build_tree(hierarchy, notes)

    assert len(tree) == 1
    org = tree[0]
    assert org['id'] == chain['O']['id']
    assert org['parent_id'] is None
    assert [n['id'] for n in org['notes']] == [org_note['id']]

    team = org['children'][0]
    client = team['children'][0]
    episode = client['children'][0]
    assert (team['id'], client['id'], episode['id']) == (chain['T']['id'], chain['C']['id'], chain['E']['id'])
    assert episode['parent_id'] == chain['C']['id']
    assert episode['children'] == []
    assert [n['id'] for n in episode['notes']] == [episode_note['id']]


def test_build_tree_stops_at_last_level(hierarchy, notes, chain):
    hierarchy.create_node('episode', 'Nested too deep', chain['E']['id'])

    tree = build_tree(hierarchy, notes, levels=('organisation', 'team'))

    team = tree[0]['children'][0]
    assert team['id'] == chain['T']['id']
    assert team['children'] == []


def test_flatten_tree(hierarchy, notes, chain):
    flat = flatten_tree(build_tree(hierarchy, notes))

    assert [o['id'] for o in flat['organisations']] == [chain['O']['id']]
    assert flat['teams'][0]['parent_id'] == chain['O']['id']
    assert flat['episodes'][0]['parent_id'] == chain['C']['id']
    assert 'children' not in flat['clients'][0]


def test_group_notes_by_attachment():
    grouped = group_notes([
        {"id": "1", "attached_to_id": "a", "attached_to_type": "team"},
        {"id": "2", "attached_to_id": "a", "attached_to_type": "team"},
        {"id": "3", "attached_to_id": "b", "attached_to_type": "client"},
    ])

    assert [n['id'] for n in grouped[("a", "team")]] == ["1", "2"]
    assert [n['id'] for n in grouped[("b", "client")]] == ["3"]
