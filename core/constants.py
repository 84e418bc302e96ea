# core/constants.py
USER_ROLE_CHOICES = (
    ('customer', 'Customer'),          # Posts jobs and picks a tradesperson
    ('tradesperson', 'Tradesperson'),  # Applies to open jobs
    ('admin', 'Admin'),                # Moderates jobs and users
)

JOB_STATUS_CHOICES = (
    ('draft', 'Draft'),               # Saved by the customer, not yet visible
    ('open', 'Open'),                 # Job is available for applications
    ('in-progress', 'In Progress'),   # A tradesperson has been selected and is working
    ('completed', 'Completed'),       # Work is done
    ('canceled', 'Canceled'),         # Job was withdrawn by its owner or an admin
)

JOB_TERMINAL_STATUSES = ('completed', 'canceled')
JOB_ASSIGNED_STATUSES = ('in-progress', 'completed')

APPLICATION_STATUS_CHOICES = (
    ('pending', 'Pending'),           # Tradesperson applied, awaiting customer response
    ('shortlisted', 'Shortlisted'),   # Customer is considering the application
    ('accepted', 'Accepted'),         # Customer picked this application
    ('rejected', 'Rejected'),         # Customer turned the application down
    ('withdrawn', 'Withdrawn'),       # Tradesperson pulled the application
)

BUDGET_TYPE_CHOICES = (
    ('fixed', 'Fixed'),
    ('range', 'Range'),
    ('negotiable', 'Negotiable'),
)

BID_TYPE_CHOICES = (
    ('fixed', 'Fixed'),
    ('hourly', 'Hourly'),
    ('negotiable', 'Negotiable'),
)

WEEKDAY_CHOICES = (
    ('Monday', 'Monday'),
    ('Tuesday', 'Tuesday'),
    ('Wednesday', 'Wednesday'),
    ('Thursday', 'Thursday'),
    ('Friday', 'Friday'),
    ('Saturday', 'Saturday'),
    ('Sunday', 'Sunday'),
)

DEFAULT_CURRENCY = 'GBP'
