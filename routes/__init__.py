from flask import Blueprint

# single main blueprint for the JSON API
main_bp = Blueprint("main", __name__)

# route modules register themselves on main_bp
from . import courses  # noqa: F401,E402
from . import plans    # noqa: F401,E402
