"""
Use cases for the MediKeep API.

Each service orchestrates the repository and adapters (asset store, mailer)
to implement the business rules for one resource. Routers call these services
instead of touching sessions, files or SMTP directly.
"""
