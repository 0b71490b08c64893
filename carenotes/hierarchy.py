"""
Closure-table hierarchy engine.

Every node has a self-edge (n, n, 0) and one edge per ancestor at its
distance, so children, descendants, ancestors and parent are each a single
join against hierarchy_closure:

    ancestor | descendant | depth
    ---------|------------|------
    O        | O          | 0
    O        | T          | 1
    O        | C          | 2
    T        | T          | 0
    T        | C          | 1
    C        | C          | 0

Growth only appends edges. Edges are pruned only by
delete_node_and_descendants, which removes the whole subtree, its notes and
every edge touching it in one transaction.
"""
import logging

from sqlalchemy import delete, or_, select, update

from .db import generate_id, get_current_time
from .errors import NotFoundError, ValidationError
from .models import HierarchyClosure, HierarchyNode

logger = logging.getLogger(__name__)


def _require_text(value, field):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field.capitalize()} is required")


def _with_depth(node, depth):
    data = node.to_dict()
    data["depth"] = depth
    return data


class HierarchyStore:
    def __init__(self, db, notes):
        self.db = db
        self.notes = notes

    # --- Mutations ---

    def create_node(self, node_type, name, parent_id=None):
        """
        Insert a node, its self-edge and one edge per ancestor of the parent
        (shifted one level deeper), all in one transaction.

        Raises:
            ValidationError: empty type or name
            NotFoundError: parent_id given but no such node
        """
        _require_text(node_type, "type")
        _require_text(name, "name")
        if parent_id is not None and not isinstance(parent_id, str):
            raise ValidationError("Parent id must be a string")

        node_id = generate_id()
        now = get_current_time()

        with self.db.transaction() as session:
            parent_edges = []
            if parent_id is not None:
                parent_edges = session.execute(
                    select(HierarchyClosure.ancestor, HierarchyClosure.depth)
                    .where(HierarchyClosure.descendant == parent_id)
                ).all()
                # A live node always has its self-edge.
                if not parent_edges:
                    raise NotFoundError(f"Parent node not found: {parent_id}")

            node = HierarchyNode(
                id=node_id,
                type=node_type,
                name=name,
                created_at=now,
                updated_at=now,
            )
            session.add(node)
            session.flush()

            self._propagate_closure(session, node_id, parent_edges)
            result = node.to_dict()

        logger.debug("Created %s %s (parent=%s)", node_type, node_id, parent_id)
        return result

    def _propagate_closure(self, session, node_id, parent_edges):
        edges = [HierarchyClosure(ancestor=node_id, descendant=node_id, depth=0)]
        for ancestor, depth in parent_edges:
            edges.append(HierarchyClosure(ancestor=ancestor, descendant=node_id, depth=depth + 1))
        session.add_all(edges)
        session.flush()

    def update_node(self, node_id, name):
        """Rename a node. Returns None if it does not exist."""
        _require_text(name, "name")

        with self.db.transaction() as session:
            result = session.execute(
                update(HierarchyNode)
                .where(HierarchyNode.id == node_id)
                .values(name=name, updated_at=get_current_time())
            )
            if result.rowcount == 0:
                return None
            node = session.get(HierarchyNode, node_id, populate_existing=True)
            data = node.to_dict()

        logger.debug("Renamed node %s", node_id)
        return data

    def delete_node_and_descendants(self, node_id):
        """
        Delete a node, all of its descendants, every note attached to any of
        them and every closure edge touching any of them.

        Returns the number of nodes deleted. Nothing is deleted unless all
        steps succeed.
        """
        if self.get_node_by_id(node_id) is None:
            raise NotFoundError(f"Node not found: {node_id}")

        with self.db.transaction() as session:
            subtree_ids = list(session.scalars(
                select(HierarchyClosure.descendant)
                .where(HierarchyClosure.ancestor == node_id)
            ))
            if not subtree_ids:
                # Deleted between the existence check and this transaction.
                raise NotFoundError(f"Node not found: {node_id}")

            notes_deleted = self.notes.delete_for_nodes(session, subtree_ids)
            self._delete_edges(session, subtree_ids)
            self._delete_nodes(session, subtree_ids)

        logger.debug(
            "Deleted node %s: %d nodes, %d notes", node_id, len(subtree_ids), notes_deleted
        )
        return len(subtree_ids)

    def _delete_edges(self, session, node_ids):
        session.execute(
            delete(HierarchyClosure).where(or_(
                HierarchyClosure.ancestor.in_(node_ids),
                HierarchyClosure.descendant.in_(node_ids),
            ))
        )

    def _delete_nodes(self, session, node_ids):
        session.execute(delete(HierarchyNode).where(HierarchyNode.id.in_(node_ids)))

    # --- Queries ---

    def get_node_by_id(self, node_id):
        with self.db.session() as session:
            node = session.get(HierarchyNode, node_id)
            return node.to_dict() if node else None

    def get_nodes_by_type(self, node_type):
        stmt = (
            select(HierarchyNode)
            .where(HierarchyNode.type == node_type)
            .order_by(HierarchyNode.created_at, HierarchyNode.id)
        )
        with self.db.session() as session:
            return [n.to_dict() for n in session.scalars(stmt)]

    def get_children(self, node_id, depth=1):
        """Nodes exactly `depth` levels below node_id, in creation order."""
        stmt = (
            select(HierarchyNode)
            .join(HierarchyClosure, HierarchyNode.id == HierarchyClosure.descendant)
            .where(
                HierarchyClosure.ancestor == node_id,
                HierarchyClosure.depth == depth,
            )
            .order_by(HierarchyNode.created_at, HierarchyNode.id)
        )
        with self.db.session() as session:
            return [n.to_dict() for n in session.scalars(stmt)]

    def get_all_descendants(self, node_id):
        """All nodes below node_id, level by level, each with its depth."""
        stmt = (
            select(HierarchyNode, HierarchyClosure.depth)
            .join(HierarchyClosure, HierarchyNode.id == HierarchyClosure.descendant)
            .where(
                HierarchyClosure.ancestor == node_id,
                HierarchyClosure.depth > 0,
            )
            .order_by(HierarchyClosure.depth, HierarchyNode.created_at, HierarchyNode.id)
        )
        with self.db.session() as session:
            return [_with_depth(node, depth) for node, depth in session.execute(stmt)]

    def get_ancestors(self, node_id):
        """All nodes above node_id, nearest first, each with its depth."""
        stmt = (
            select(HierarchyNode, HierarchyClosure.depth)
            .join(HierarchyClosure, HierarchyNode.id == HierarchyClosure.ancestor)
            .where(
                HierarchyClosure.descendant == node_id,
                HierarchyClosure.depth > 0,
            )
            .order_by(HierarchyClosure.depth)
        )
        with self.db.session() as session:
            return [_with_depth(node, depth) for node, depth in session.execute(stmt)]

    def get_parent(self, node_id):
        stmt = (
            select(HierarchyNode)
            .join(HierarchyClosure, HierarchyNode.id == HierarchyClosure.ancestor)
            .where(
                HierarchyClosure.descendant == node_id,
                HierarchyClosure.depth == 1,
            )
            .limit(1)
        )
        with self.db.session() as session:
            node = session.scalars(stmt).first()
            return node.to_dict() if node else None

    def get_closure_edges(self, node_id):
        """Raw (ancestor, descendant, depth) rows touching node_id."""
        stmt = (
            select(HierarchyClosure.ancestor, HierarchyClosure.descendant, HierarchyClosure.depth)
            .where(or_(
                HierarchyClosure.ancestor == node_id,
                HierarchyClosure.descendant == node_id,
            ))
            .order_by(HierarchyClosure.depth)
        )
        with self.db.session() as session:
            return [tuple(row) for row in session.execute(stmt)]
