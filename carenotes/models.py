from sqlalchemy import JSON, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class HierarchyNode(Base):
    """
    One node of the organisation -> team -> client -> episode tree.
    Parent linkage is not stored here; it lives in the closure table.
    """
    __tablename__ = "hierarchy_nodes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    # 'organisation', 'team', 'client', 'episode'
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[str] = mapped_column(String(32), nullable=False)
    updated_at: Mapped[str] = mapped_column(String(32), nullable=False)

    __table_args__ = (
        Index("idx_hierarchy_nodes_type", "type"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class HierarchyClosure(Base):
    """
    (ancestor, descendant, depth) facts. depth 0 is the self-edge.
    The composite key allows one depth per pair, which holds for a tree.
    """
    __tablename__ = "hierarchy_closure"

    ancestor: Mapped[str] = mapped_column(
        String(36), ForeignKey("hierarchy_nodes.id", ondelete="CASCADE"), primary_key=True
    )
    descendant: Mapped[str] = mapped_column(
        String(36), ForeignKey("hierarchy_nodes.id", ondelete="CASCADE"), primary_key=True
    )
    depth: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        Index("idx_hierarchy_closure_ancestor", "ancestor"),
        Index("idx_hierarchy_closure_descendant", "descendant"),
        Index("idx_hierarchy_closure_depth", "depth"),
    )


class Note(Base):
    __tablename__ = "notes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    attached_to_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("hierarchy_nodes.id", ondelete="CASCADE"), nullable=False
    )
    # Copy of the node's type at attachment time
    attached_to_type: Mapped[str] = mapped_column(String(64), nullable=False)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[str] = mapped_column(String(32), nullable=False)
    updated_at: Mapped[str] = mapped_column(String(32), nullable=False)

    __table_args__ = (
        Index("idx_notes_attached_to", "attached_to_id", "attached_to_type"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "content": self.content,
            "attached_to_id": self.attached_to_id,
            "attached_to_type": self.attached_to_type,
            "tags": list(self.tags or []),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
