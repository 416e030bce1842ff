import argparse
import json

from app import app
from services.upload_validation import apply_upload


def _read(path):
    if not path:
        return None
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def main():
    parser = argparse.ArgumentParser(description="Bulk load prerequisite / postrequisite JSON into the catalog")
    parser.add_argument("--prerequisites", help="JSON object: course code -> prerequisite tree")
    parser.add_argument("--postrequisites", help="JSON object: course code -> list of course codes")
    parser.add_argument("--validate-only", action="store_true")
    args = parser.parse_args()

    if not args.prerequisites and not args.postrequisites:
        parser.error("pass --prerequisites and/or --postrequisites")

    with app.app_context():
        report = apply_upload(
            _read(args.prerequisites),
            _read(args.postrequisites),
            validate_only=args.validate_only,
            max_depth=app.config["PREREQ_MAX_DEPTH"],
        )
        out = report.to_dict(app.config["UPLOAD_MAX_ERRORS"])

    print(out["message"])
    for k, v in out["stats"].items():
        print(f"  {k}: {v}")
    for err in out["errors"]:
        print("  -", err)


if __name__ == "__main__":
    main()
