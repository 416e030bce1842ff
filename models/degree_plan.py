from datetime import datetime
from extensions import db


class DegreePlan(db.Model):
    __tablename__ = "degree_plan"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
    )
    name = db.Column(db.String(120), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # User relationship (many plans per user)
    user = db.relationship("User", back_populates="degree_plans", lazy=True)

    # Children: cascade so a plan delete cleans everything
    plan_courses = db.relationship(
        "PlanCourse",
        back_populates="plan",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy=True,
    )

    constraints = db.relationship(
        "PlanConstraint",
        back_populates="degree_plan",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy=True,
    )

    def constraint_or(self, name: str, default):
        """A PlanConstraint setting, or default when the plan has none set."""
        value = getattr(self.constraints, name, None) if self.constraints else None
        return value if value else default

    def __repr__(self) -> str:
        return f"<DegreePlan {self.id} {self.name!r}>"
