"""Smart Attendance backend.

Feature modules (users, attendance, schedules, reports, ...) each carry a
repository Protocol with MySQL and MongoDB adapters, a service layer holding
the business rules, and a thin Flask controller.
"""
