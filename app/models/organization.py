"""
Sales Daily Report — organisation reference data.

Models:
    - Position:     static position master (Staff=1, Manager=2, Director=3)
    - Salesperson:  employee who writes daily reports; carries the reporting chain
    - Customer:     visit target referenced by VisitRecord

Reporting chain:
    Salesperson.manager_id  ──▶ Salesperson (level >= 2)
    Salesperson.director_id ──▶ Salesperson (level 3)

The chain is stored as plain foreign keys.  Authorization decisions compare
ids against these columns; no object-graph traversal is needed.
"""

from datetime import datetime, timezone

from app.models import db


# ── Constants ────────────────────────────────────────────────────────────────

class PositionLevel:
    """Ordered position levels forming the approval chain."""

    STAFF = 1
    MANAGER = 2
    DIRECTOR = 3


class Position(db.Model):
    __tablename__ = "positions"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    level = db.Column(db.Integer, nullable=False, comment="1=Staff | 2=Manager | 3=Director")

    salespersons = db.relationship("Salesperson", back_populates="position", lazy="dynamic")

    def to_dict(self):
        return {"id": self.id, "name": self.name, "level": self.level}

    def __repr__(self):
        return f"<Position {self.id} {self.name} L{self.level}>"


class Salesperson(db.Model):
    __tablename__ = "salespersons"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    position_id = db.Column(db.Integer, db.ForeignKey("positions.id"), nullable=False)
    manager_id = db.Column(
        db.Integer,
        db.ForeignKey("salespersons.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Direct manager (level >= 2); validated by the admin screens, not here",
    )
    director_id = db.Column(
        db.Integer,
        db.ForeignKey("salespersons.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Assigned director (level 3)",
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    position = db.relationship("Position", back_populates="salespersons")
    manager = db.relationship("Salesperson", remote_side=[id], foreign_keys=[manager_id])
    director = db.relationship("Salesperson", remote_side=[id], foreign_keys=[director_id])

    @property
    def position_level(self) -> int:
        """Effective level is the level of the assigned position."""
        return self.position.level if self.position else PositionLevel.STAFF

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "position": self.position.to_dict() if self.position else None,
            "manager_id": self.manager_id,
            "director_id": self.director_id,
            "is_active": self.is_active,
        }

    def to_summary(self):
        return {"id": self.id, "name": self.name}

    def __repr__(self):
        return f"<Salesperson {self.id} {self.email}>"


class Customer(db.Model):
    __tablename__ = "customers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_summary(self):
        return {"id": self.id, "name": self.name}

    def __repr__(self):
        return f"<Customer {self.id} {self.name}>"
