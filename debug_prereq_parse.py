from collections import Counter

from config import Config
from utils.course_catalog import load_catalog, transform_catalog


if __name__ == "__main__":
    entries = load_catalog(Config.CATALOG_DIR)
    result = transform_catalog(entries, max_depth=Config.PREREQ_MAX_DEPTH)

    known = set(result.trees)
    referenced = Counter()
    unknown_examples = {}  # course id -> example "CODE - title"

    for c in result.courses:
        for course_id in c.prerequisite_courses:
            if course_id in known:
                continue
            referenced[course_id] += 1
            unknown_examples.setdefault(course_id, f"{c.code} - {c.title}")

    print("Courses loaded:", len(result.courses))
    print("Courses with prerequisites:", sum(1 for c in result.courses if c.prerequisite_courses))
    print("Malformed prerequisite entries:", len(result.malformed))
    print("Prerequisite ids not in catalog:", sum(referenced.values()))

    print("\nMalformed:")
    for code, error in sorted(result.malformed.items())[:20]:
        print(f"  {code}: {error}")

    print("\nTop ids not in catalog:")
    for course_id, cnt in referenced.most_common(20):
        print(f"{cnt:>3} x {course_id}   (e.g. {unknown_examples[course_id]})")
