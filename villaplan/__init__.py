"""Villa shift planning for residential care.

Modules:
- config: load and validate configuration (YAML or JSON)
- logging_setup: console and rotating-file logging
- errors: business-rule refusals raised by the services
- domain: SQLAlchemy models, status enums, repositories, session helpers
- services: skeleton generation, assignment, conflicts, validation,
  working time, leave counters, absences, appointments
- patterns: reusable weekly shift patterns
- io: CSV export for payroll
"""

__all__ = [
    "config",
    "logging_setup",
    "errors",
    "domain",
    "services",
    "patterns",
    "io",
]
