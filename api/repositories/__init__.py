"""
Persistence adapters.

Services depend on SQLRepository instead of opening sessions themselves, so
the approval workflow can be exercised against any SQLAlchemy backend.
"""
