from extensions import db

STATUS_PLANNED = "planned"
STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"

PLAN_COURSE_STATUSES = (STATUS_PLANNED, STATUS_IN_PROGRESS, STATUS_COMPLETED)


class PlanCourse(db.Model):
    __tablename__ = "plan_course"

    __table_args__ = (
        # Prevent the same catalog course being added twice in the same plan
        db.UniqueConstraint("plan_id", "catalog_course_id", name="uq_plan_course_catalog"),
    )

    id = db.Column(db.Integer, primary_key=True)

    # Ownership
    plan_id = db.Column(
        db.Integer,
        db.ForeignKey("degree_plan.id", ondelete="CASCADE"),
        nullable=False,
    )

    catalog_course_id = db.Column(
        db.Integer,
        db.ForeignKey("catalog_courses.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Plan-specific state
    status = db.Column(db.String(32), default=STATUS_PLANNED, nullable=False)

    # Global semester index (1..n); None for courses completed before the plan
    semester_number = db.Column(db.Integer, nullable=True)

    # Letter grade once completed (only read by grade-aware checks)
    grade = db.Column(db.String(4), nullable=True)

    # Relationships
    plan = db.relationship("DegreePlan", back_populates="plan_courses")
    catalog_course = db.relationship("CatalogCourse")

    @property
    def code(self) -> str:
        return self.catalog_course.code

    def __repr__(self) -> str:
        return f"<PlanCourse plan={self.plan_id} catalog={self.catalog_course_id} {self.status}>"
