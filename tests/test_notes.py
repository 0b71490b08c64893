import pytest

from carenotes.errors import NotFoundError, ValidationError


def test_create_note_denormalises_node_type(notes, chain):
    note = notes.create_note('Seen today', chain['C']['id'], ['review'])

    assert note['attached_to_id'] == chain['C']['id']
    assert note['attached_to_type'] == 'client'
    assert note['tags'] == ['review']
    assert note['created_at'] == note['updated_at']


def test_create_note_on_missing_node(notes):
    with pytest.raises(NotFoundError):
        notes.create_note('Orphan', 'missing')
    assert notes.list_notes() == []


@pytest.mark.parametrize("attached_to_id", [None, '', [1], {"id": "x"}])
def test_create_note_requires_string_node_id(notes, attached_to_id):
    with pytest.raises(ValidationError):
        notes.create_note('Orphan', attached_to_id)
    assert notes.list_notes() == []


def test_create_note_requires_content(notes, chain):
    with pytest.raises(ValidationError):
        notes.create_note('  ', chain['C']['id'])


def test_tags_are_a_set(notes, chain):
    note = notes.create_note('Tagged', chain['E']['id'], [' urgent', 'urgent', '', 'follow-up'])
    assert note['tags'] == ['urgent', 'follow-up']


@pytest.mark.parametrize("tags", ['urgent', [1, 2], {'a': 1}])
def test_bad_tags_are_rejected(notes, chain, tags):
    with pytest.raises(ValidationError):
        notes.create_note('Tagged', chain['E']['id'], tags)


def test_list_notes_for_node(notes, chain):
    first = notes.create_note('First', chain['E']['id'])
    notes.create_note('Elsewhere', chain['C']['id'])
    second = notes.create_note('Second', chain['E']['id'])

    listed = notes.list_notes_for_node(chain['E']['id'])
    assert [n['id'] for n in listed] == [first['id'], second['id']]


def test_update_note(notes, chain):
    note = notes.create_note('Draft', chain['E']['id'], ['draft'])

    updated = notes.update_note(note['id'], 'Final')
    assert updated['content'] == 'Final'
    assert updated['tags'] == ['draft']
    assert updated['updated_at'] > note['updated_at']

    retagged = notes.update_note(note['id'], 'Final', ['signed'])
    assert retagged['tags'] == ['signed']
    assert notes.get_note(note['id'])['tags'] == ['signed']


def test_update_missing_note(notes):
    assert notes.update_note('missing', 'Content') is None


def test_delete_note(notes, chain):
    note = notes.create_note('Temporary', chain['E']['id'])

    assert notes.delete_note(note['id']) is True
    assert notes.get_note(note['id']) is None
    assert notes.delete_note(note['id']) is False
