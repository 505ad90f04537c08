from backend.app.db.base_class import Base

# Import models to register metadata for Base.metadata.create_all in tests
from backend.app.models.customer import Customer  # noqa: F401
from backend.app.models.import_batch import ImportBatch  # noqa: F401
from backend.app.models.timesheet_entry import TimesheetEntry  # noqa: F401
from backend.app.models.charge import Charge  # noqa: F401
from backend.app.models.invoice import Invoice  # noqa: F401
from backend.app.models.template import Template  # noqa: F401
from backend.app.models.email_log import EmailLog  # noqa: F401
from backend.app.models.app_setting import AppSetting  # noqa: F401
