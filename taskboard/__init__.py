# Taskboard client: session, API access, and per-screen view state
#
# Components:
#   schema.py      - Data model (Task, Project, User, Session, TaskStatus, Role)
#   config.py      - YAML + environment configuration
#   errors.py      - Exception taxonomy for client and server failures
#   events.py      - Transient notifications (toasts) with subscribers
#   storage.py     - Durable key/value storage for the session
#   api.py         - requests-based REST client
#   session.py     - Login / logout / restore lifecycle
#   cache.py       - Server-record reducers, mutations, request sequencing
#   forms.py       - Create/edit drafts and client-side validation
#   dashboard.py   - Task list with filters
#   kanban.py      - Three-column board and drag-and-drop sync
#   projects.py    - Project administration
#   user_admin.py  - User administration, search and pagination
#   task_detail.py - Single task view with optimistic status updates
#   cli.py         - Command-line front end

__version__ = "0.3.0"
