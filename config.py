import os


# Absolute path to project root
# (a stable anchor for all file paths)
basedir = os.path.abspath(os.path.dirname(__file__))

# Runtime only directory (DB, uploads, secrets)
instance_dir = os.path.join(basedir, "instance")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", "sqlite:///" + os.path.join(instance_dir, "app.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Catalog exports (GT crawler JSON, CSV, xlsx). Put your files in this folder.
    CATALOG_DIR = os.path.join(basedir, "data_catalog")

    # Prerequisite engine limits.
    # Observed trees are <= 4 levels; anything past the cap is treated as malformed.
    PREREQ_MAX_DEPTH = 25

    # Upload report keeps at most this many error messages
    UPLOAD_MAX_ERRORS = 50

    # Card summaries use the compact rendering
    COMPACT_PREREQ_LENGTH = 60

    # Used by the chain planner when a plan has no PlanConstraint row
    DEFAULT_MAX_CREDITS_PER_SEMESTER = 18
    DEFAULT_SEMESTERS_PER_YEAR = 2


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "DEBUG"
