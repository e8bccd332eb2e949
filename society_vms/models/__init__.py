# Society VMS database models
# Import all models here for SQLAlchemy discovery

from society_vms.models.flat import Flat                          # noqa
from society_vms.models.resident import Resident                  # noqa
from society_vms.models.visitor_request import VisitorRequest     # noqa
from society_vms.models.audit_log import AuditLog                 # noqa
