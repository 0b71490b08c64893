import logging

from sqlalchemy import delete, select

from .db import generate_id, get_current_time
from .errors import NotFoundError, ValidationError
from .models import HierarchyNode, Note

logger = logging.getLogger(__name__)


def normalize_tags(tags):
    """
    Tags are an unordered set; keep first occurrence, drop blanks.
    """
    if tags is None:
        return []
    if isinstance(tags, str) or not isinstance(tags, (list, tuple, set)):
        raise ValidationError("Tags must be a list of strings")

    result = []
    for tag in tags:
        if not isinstance(tag, str):
            raise ValidationError("Tags must be a list of strings")
        tag = tag.strip()
        if tag and tag not in result:
            result.append(tag)
    return result


def _require_content(content):
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Content is required")


class NoteStore:
    """Notes attached to hierarchy nodes."""

    def __init__(self, db):
        self.db = db

    def create_note(self, content, attached_to_id, tags=None):
        _require_content(content)
        if not isinstance(attached_to_id, str) or not attached_to_id:
            raise ValidationError("attached_to_id must be a node id")
        tags = normalize_tags(tags)

        with self.db.transaction() as session:
            node = session.get(HierarchyNode, attached_to_id)
            if node is None:
                raise NotFoundError(f"Node not found: {attached_to_id}")

            now = get_current_time()
            note = Note(
                id=generate_id(),
                content=content,
                attached_to_id=node.id,
                attached_to_type=node.type,
                tags=tags,
                created_at=now,
                updated_at=now,
            )
            session.add(note)
            result = note.to_dict()

        logger.debug("Created note %s on %s %s", result["id"], result["attached_to_type"], result["attached_to_id"])
        return result

    def get_note(self, note_id):
        with self.db.session() as session:
            note = session.get(Note, note_id)
            return note.to_dict() if note else None

    def list_notes(self):
        stmt = select(Note).order_by(Note.created_at, Note.id)
        with self.db.session() as session:
            return [n.to_dict() for n in session.scalars(stmt)]

    def list_notes_for_node(self, node_id):
        stmt = (
            select(Note)
            .where(Note.attached_to_id == node_id)
            .order_by(Note.created_at, Note.id)
        )
        with self.db.session() as session:
            return [n.to_dict() for n in session.scalars(stmt)]

    def update_note(self, note_id, content, tags=None):
        """
        Returns None (not an error) when the note does not exist.
        Tags are left as they are when not given.
        """
        _require_content(content)
        if tags is not None:
            tags = normalize_tags(tags)

        with self.db.transaction() as session:
            note = session.get(Note, note_id)
            if note is None:
                return None
            note.content = content
            if tags is not None:
                note.tags = tags
            note.updated_at = get_current_time()
            session.flush()
            return note.to_dict()

    def delete_note(self, note_id):
        with self.db.transaction() as session:
            result = session.execute(delete(Note).where(Note.id == note_id))
            deleted = result.rowcount > 0

        if deleted:
            logger.debug("Deleted note %s", note_id)
        return deleted

    def delete_for_nodes(self, session, node_ids):
        """Cascade step; runs inside the caller's transaction."""
        if not node_ids:
            return 0
        result = session.execute(delete(Note).where(Note.attached_to_id.in_(node_ids)))
        return result.rowcount
