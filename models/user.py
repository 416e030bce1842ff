from flask_login import UserMixin
from extensions import db, login_manager


class User(UserMixin, db.Model):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(150), unique=True, nullable=False)

    # Academic record fields used by GPA / credit / classification prereq gates.
    # Nullable: a missing value makes that gate unverifiable, not failed.
    gpa = db.Column(db.Float, nullable=True)
    total_credits_earned = db.Column(db.Float, nullable=True)
    class_year = db.Column(db.Integer, nullable=True)  # 1=Freshman .. 4=Senior

    # relationship (explicit instead of backref)
    degree_plans = db.relationship(
        "DegreePlan",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<User {self.email}>"


@login_manager.user_loader
def load_user(user_id: str):
    return db.session.get(User, int(user_id))
