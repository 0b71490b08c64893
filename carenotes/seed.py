"""
Seed data import.

A seed file holds one list per hierarchy level plus a list of notes:

    {
      "organisations": [{"id": "org-1", "name": "..."}],
      "teams": [{"id": "team-1", "name": "...", "parent_id": "org-1"}],
      "clients": [...],
      "episodes": [...],
      "notes": [{"content": "...", "attached_to_id": "team-1", "tags": ["..."]}]
    }

Ids in the file are only used to wire parents and notes together; the
imported nodes get freshly generated ids.
"""
import json
import logging
import os

from cryptography.fernet import Fernet, InvalidToken

from .config import HIERARCHY_LEVELS, level_route
from .errors import ValidationError
from .notes import normalize_tags

logger = logging.getLogger(__name__)


def load_cipher(key_file):
    if not key_file or not os.path.exists(key_file):
        return None
    with open(key_file, 'rb') as kf:
        return Fernet(kf.read())


def load_or_create_key(key_file):
    """Returns the Fernet key in key_file, generating and saving one if needed."""
    if os.path.exists(key_file):
        with open(key_file, 'rb') as kf:
            return kf.read()

    key = Fernet.generate_key()
    with open(key_file, 'wb') as kf:
        kf.write(key)
    logger.info("Generated key file %s", key_file)
    return key


def encrypt_seed_file(path, key_file):
    """
    Encrypts a plain seed file in place. Returns False when the file is
    already encrypted with this key.
    """
    cipher = Fernet(load_or_create_key(key_file))
    with open(path, 'rb') as f:
        data = f.read()

    try:
        cipher.decrypt(data)
        return False
    except InvalidToken:
        pass

    with open(path, 'wb') as f:
        f.write(cipher.encrypt(data))
    logger.info("Encrypted %s", path)
    return True


def load_seed_file(path, key_file=None):
    """
    Reads a seed file. When a key file is present the payload is decrypted
    first; payloads that are not Fernet tokens are read as plain JSON.
    """
    with open(path, 'rb') as f:
        file_content = f.read()

    seed_data = file_content
    cipher = load_cipher(key_file)
    if cipher:
        try:
            seed_data = cipher.decrypt(file_content)
        except InvalidToken:
            logger.debug("%s is not encrypted, reading as plain text", path)

    try:
        data = json.loads(seed_data)
    except ValueError as e:
        raise ValidationError(f"Seed file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValidationError("Seed file must contain a JSON object")
    return data


def _entries(data, key):
    entries = data.get(key, [])
    if not isinstance(entries, list):
        raise ValidationError(f"Seed '{key}' must be a list")
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValidationError(f"Seed '{key}' entries must be objects, got {entry!r}")
    return entries


def _is_seed_id(value):
    return isinstance(value, (str, int)) and not isinstance(value, bool) and value != ""


def _is_text(value):
    return isinstance(value, str) and value.strip() != ""


def validate_seed(data, levels=HIERARCHY_LEVELS):
    """
    Checks the whole seed before anything is written: every node of a
    lower level points at a node of the level above, every note at a node,
    and every note's tags are a list of strings.
    """
    known = {}  # seed id -> level
    for index, level in enumerate(levels):
        for item in _entries(data, level_route(level)):
            seed_id = item.get('id')
            if not _is_seed_id(seed_id):
                raise ValidationError(f"{level} entry without a usable id: {seed_id!r}")
            if seed_id in known:
                raise ValidationError(f"Duplicate seed id: {seed_id}")
            if not _is_text(item.get('name')):
                raise ValidationError(f"{level} {seed_id} has no name")

            parent_id = item.get('parent_id')
            if index == 0:
                if parent_id:
                    raise ValidationError(f"{level} {seed_id} cannot have a parent")
            elif not _is_seed_id(parent_id) or known.get(parent_id) != levels[index - 1]:
                raise ValidationError(
                    f"{level} {seed_id} must have a {levels[index - 1]} parent, got {parent_id!r}"
                )
            known[seed_id] = level

    for note in _entries(data, 'notes'):
        attached_to_id = note.get('attached_to_id')
        if not _is_seed_id(attached_to_id) or attached_to_id not in known:
            raise ValidationError(f"Note attached to unknown node {attached_to_id!r}")
        if not _is_text(note.get('content')):
            raise ValidationError("Note without content")
        normalize_tags(note.get('tags'))


def import_seed(hierarchy, note_store, data, levels=HIERARCHY_LEVELS):
    """Creates the seed's nodes level by level, then its notes."""
    validate_seed(data, levels)

    id_map = {}
    counts = {}
    for level in levels:
        items = data.get(level_route(level), [])
        for item in items:
            parent_id = id_map.get(item.get('parent_id'))
            node = hierarchy.create_node(level, item['name'], parent_id)
            id_map[item['id']] = node['id']
        counts[level_route(level)] = len(items)

    notes = data.get('notes', [])
    for note in notes:
        note_store.create_note(note['content'], id_map[note['attached_to_id']], note.get('tags'))
    counts['notes'] = len(notes)

    logger.info("Imported seed: %s", counts)
    return counts
