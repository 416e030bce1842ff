# Importing the package registers every table on db.metadata
from models.user import User  # noqa: F401
from models.catalog_course import CatalogCourse  # noqa: F401
from models.degree_plan import DegreePlan  # noqa: F401
from models.plan_course import PlanCourse  # noqa: F401
from models.plan_constraint import PlanConstraint  # noqa: F401
