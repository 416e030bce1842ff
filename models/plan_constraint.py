from extensions import db


# Global default constraints per plan (not per semester)
class PlanConstraint(db.Model):
    __tablename__ = "plan_constraint"

    id = db.Column(db.Integer, primary_key=True)

    degree_plan_id = db.Column(
        db.Integer,
        db.ForeignKey("degree_plan.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,  # 1-to-1 with DegreePlan
    )

    # per semester constraints (global defaults)
    max_credits_per_semester = db.Column(db.Integer, nullable=True)

    # plan structure
    semesters_per_year = db.Column(db.Integer, nullable=True)

    # grade-aware prerequisite checks (minimum grades) are opt-in
    enforce_min_grades = db.Column(db.Boolean, nullable=False, default=False)

    degree_plan = db.relationship("DegreePlan", back_populates="constraints", lazy=True)

    def __repr__(self) -> str:
        return f"<PlanConstraint plan={self.degree_plan_id}>"
