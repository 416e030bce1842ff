import json

from app import app
from extensions import db
from models.catalog_course import CatalogCourse
from utils.course_catalog import load_catalog, transform_catalog


def seed_catalog():
    entries = load_catalog(app.config["CATALOG_DIR"])
    result = transform_catalog(entries, max_depth=app.config["PREREQ_MAX_DEPTH"])
    readable = {c.code: c for c in result.courses}

    inserted = 0
    updated = 0

    for entry in entries:
        course = readable[entry.code]

        row = CatalogCourse.query.filter_by(code=entry.code).first()
        if row is None:
            row = CatalogCourse(code=entry.code)
            db.session.add(row)
            inserted += 1
        else:
            updated += 1

        row.title = course.title
        row.description = course.description
        row.credits = course.credits
        row.difficulty = course.difficulty

        # stored raw; malformed data is kept so checks can report it as unverifiable
        row.prerequisites = json.dumps(entry.prerequisites) if entry.prerequisites is not None else None
        row.postrequisites = json.dumps(list(course.postrequisites))

    db.session.commit()
    print(f"Catalog seed complete: {inserted} inserted, {updated} updated")
    if result.malformed:
        print(f"{len(result.malformed)} courses have malformed prerequisites (see debug_prereq_parse.py)")


if __name__ == "__main__":
    with app.app_context():
        seed_catalog()
