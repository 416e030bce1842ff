import json

from extensions import db
from utils.prereq_parser import StoredPrerequisites


class CatalogCourse(db.Model):
    __tablename__ = "catalog_courses"

    id = db.Column(db.Integer, primary_key=True)

    # Canonical identifier, "SUBJECT NUMBER" (for example "CS 1331")
    code = db.Column(db.String(32), unique=True, index=True, nullable=False)

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    credits = db.Column(db.Float, nullable=True)
    difficulty = db.Column(db.Integer, nullable=True)

    # Raw catalog JSON, stored as text exactly as uploaded:
    #   prerequisites  -> ["and", {"id": "CS 1331", "grade": "C"}, ["or", ...]]
    #   postrequisites -> ["CS 2340", "CS 3510"]
    prerequisites = db.Column(db.Text, nullable=True)
    postrequisites = db.Column(db.Text, nullable=True)

    def stored_prerequisites(self) -> StoredPrerequisites:
        return StoredPrerequisites(self.prerequisites)

    def postrequisite_codes(self) -> list[str]:
        """Flat adjacency list; bad JSON is treated as 'none listed'."""
        if not self.postrequisites:
            return []
        try:
            data = json.loads(self.postrequisites)
        except json.JSONDecodeError:
            return []
        if not isinstance(data, list):
            return []
        return [str(x) for x in data if isinstance(x, str)]

    def __repr__(self) -> str:
        return f"<CatalogCourse {self.code} {self.title}>"
