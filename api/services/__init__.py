"""
API Services Layer.

Database operations behind the API endpoints. Mutations add their rows to
the caller's session and commit once per unit of work.
"""

from api.services.jobs import (
    approve_job,
    close_job,
    create_job,
    get_job,
    get_job_history,
    list_jobs,
    reject_job,
    submit_for_approval,
    update_job,
)

from api.services.notifications import (
    list_notifications,
    mark_all_notifications_read,
    mark_notification_read,
)

from api.services.audit import record_audit

from api.services.auth import authenticate_user

from api.services.dashboard import get_dashboard

__all__ = [
    # Jobs
    "create_job",
    "update_job",
    "get_job",
    "list_jobs",
    "get_job_history",
    "submit_for_approval",
    "approve_job",
    "reject_job",
    "close_job",
    # Notifications
    "list_notifications",
    "mark_notification_read",
    "mark_all_notifications_read",
    # Audit
    "record_audit",
    # Auth
    "authenticate_user",
    # Dashboard
    "get_dashboard",
]
