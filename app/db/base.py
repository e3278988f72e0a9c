# import every model so Base.metadata knows all tables
from app.db.base_class import Base  # noqa: F401
from app.models import (  # noqa: F401
    course,
    course_module,
    department,
    enrollment,
    module_completion,
    notification,
    progress,
    timeline,
    timeline_ledger,
    user,
)
