"""
Nested tree view for presentation, built only from the hierarchy queries.

The walk is a sequence of independent reads, so a mutation landing between
two of them can show up in one branch and not another. Callers get a
best-effort snapshot, not a consistent one.
"""
from collections import defaultdict

from .config import HIERARCHY_LEVELS, level_route


def group_notes(notes):
    """{(attached_to_id, attached_to_type): [note, ...]}"""
    grouped = defaultdict(list)
    for note in notes:
        grouped[(note["attached_to_id"], note["attached_to_type"])].append(note)
    return grouped


def build_tree(hierarchy, note_store, levels=HIERARCHY_LEVELS):
    grouped = group_notes(note_store.list_notes())

    def expand(node, parent_id, level_index):
        item = dict(node)
        item["parent_id"] = parent_id
        item["notes"] = grouped.get((node["id"], node["type"]), [])
        item["children"] = []
        if level_index + 1 < len(levels):
            for child in hierarchy.get_children(node["id"]):
                item["children"].append(expand(child, node["id"], level_index + 1))
        return item

    return [expand(root, None, 0) for root in hierarchy.get_nodes_by_type(levels[0])]


def flatten_tree(tree):
    """Tree -> {"organisations": [...], "teams": [...], ...}, children stripped."""
    flat = defaultdict(list)

    def walk(item):
        node = {k: v for k, v in item.items() if k not in ("children", "notes")}
        flat[level_route(node["type"])].append(node)
        for child in item["children"]:
            walk(child)

    for root in tree:
        walk(root)
    return dict(flat)
